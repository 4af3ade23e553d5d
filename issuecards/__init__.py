"""Issue Cards - markdown issue tracking with tag-driven task expansion."""

from .document import IssueDocumentEngine, render_issue
from .errors import (
    IssueCardsError,
    SectionNotFoundError,
    StructuralError,
    TagValidationError,
)
from .models import AddTaskResult, CompletionResult, NoteMode, Task, TaskPosition
from .templates import DirectoryIssueTemplateStore, DirectoryTagTemplateStore
from .workflow import IssueWorkflow
from .workspace import IssueWorkspace

__all__ = [
    "AddTaskResult",
    "CompletionResult",
    "DirectoryIssueTemplateStore",
    "DirectoryTagTemplateStore",
    "IssueCardsError",
    "IssueDocumentEngine",
    "IssueWorkflow",
    "IssueWorkspace",
    "NoteMode",
    "SectionNotFoundError",
    "StructuralError",
    "TagValidationError",
    "Task",
    "TaskPosition",
    "render_issue",
]
