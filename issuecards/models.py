"""Data models for Issue Cards documents.

This module contains the value types the document engine derives from
an issue's raw markdown text: sections, tasks, tags and tag templates,
plus the result values returned by mutating operations.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .errors import UserError

# Reserved placeholder substituted with the task description on expansion.
TASK_PLACEHOLDER = "{{TASK}}"
# Full-line placeholder used by older tag templates.
LEGACY_TASK_PLACEHOLDER = "[ACTUAL TASK GOES HERE]"
DEFAULT_FAILURE_REASON = "Not specified"

ISSUE_SECTIONS = (
    "Problem to be solved",
    "Planned approach",
    "Failed approaches",
    "Questions to resolve",
    "Tasks",
    "Instructions",
    "Next steps",
)

# Issue template placeholder filled with each section's body.
ISSUE_SECTION_FIELDS = {
    "Problem to be solved": "PROBLEM",
    "Planned approach": "APPROACH",
    "Failed approaches": "FAILED_APPROACHES",
    "Questions to resolve": "QUESTIONS",
    "Tasks": "TASKS",
    "Instructions": "INSTRUCTIONS",
    "Next steps": "NEXT_STEPS",
}
ISSUE_TEMPLATE_FIELDS = ("NUMBER", "TITLE", *ISSUE_SECTION_FIELDS.values())


class TaskPosition(str, Enum):
    """Where a new task is inserted relative to the current task."""

    BEFORE_CURRENT = "before-current"
    AFTER_CURRENT = "after-current"
    END = "end"

    @classmethod
    def parse(cls, value: "TaskPosition | str | None") -> "TaskPosition":
        """Accept enum members, their string values, or None (end)."""
        if value is None:
            return cls.END
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower().replace("_", "-")
        aliases = {"before": cls.BEFORE_CURRENT, "after": cls.AFTER_CURRENT}
        if normalized in aliases:
            return aliases[normalized]
        try:
            return cls(normalized)
        except ValueError:
            raise UserError(
                f"Invalid task position '{value}'",
                hint="Use 'before-current', 'after-current' or 'end'",
            ) from None


class NoteMode(str, Enum):
    """Formatting applied to content inserted into a section."""

    PLAIN = "plain"
    QUESTION = "question"
    FAILURE = "failure"


@dataclass(slots=True, frozen=True)
class FailureDetails:
    """Parameters recognised when logging a failed approach."""

    reason: str = DEFAULT_FAILURE_REASON


@dataclass(slots=True)
class Section:
    """A level-2 heading and the body it owns."""

    name: str
    content: str
    start_line: int
    end_line: int

    @property
    def is_empty(self) -> bool:
        return self.content == ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "name": self.name,
            "content": self.content,
            "start_line": self.start_line,
            "end_line": self.end_line,
        }


@dataclass(slots=True)
class Task:
    """Representation of a single checklist line in the Tasks section."""

    text: str
    completed: bool
    index: int

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "text": self.text,
            "completed": self.completed,
            "index": self.index,
        }


@dataclass(slots=True)
class Tag:
    """A `+name` or `+name(key=value,...)` annotation."""

    name: str
    params: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {"name": self.name, "params": dict(self.params)}


@dataclass(slots=True)
class TagTemplate:
    """A parsed tag template document."""

    name: str
    steps: List[str]
    has_steps_section: bool
    has_placeholder: bool

    def validate(self) -> List[str]:
        """Validate the template structure and return any issues."""
        issues = []
        if not self.has_steps_section:
            issues.append("Template must have a Steps section")
        if not self.has_placeholder:
            issues.append(f"Template must have a {TASK_PLACEHOLDER} placeholder in Steps")
        return issues


@dataclass(slots=True)
class FailedApproach:
    """A logged failed approach and the reason it failed."""

    approach: str
    reason: str = DEFAULT_FAILURE_REASON

    def to_dict(self) -> Dict[str, str]:
        return {"approach": self.approach, "reason": self.reason}


@dataclass(slots=True)
class Question:
    """A checklist entry in the Questions to resolve section."""

    text: str
    completed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"text": self.text, "completed": self.completed}


@dataclass(slots=True)
class TaskContext:
    """Issue context shown alongside a task."""

    problem: str = ""
    approach: str = ""
    instructions: str = ""
    next_steps: str = ""
    failed_approaches: List[FailedApproach] = field(default_factory=list)
    questions: List[Question] = field(default_factory=list)
    previous_task: Optional[str] = None
    next_task: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "problem": self.problem,
            "approach": self.approach,
            "instructions": self.instructions,
            "next_steps": self.next_steps,
            "failed_approaches": [item.to_dict() for item in self.failed_approaches],
            "questions": [item.to_dict() for item in self.questions],
            "previous_task": self.previous_task,
            "next_task": self.next_task,
        }


@dataclass(slots=True)
class AddTaskResult:
    """Outcome of adding a task to a document."""

    document: str
    added_tasks: List[str]
    position: TaskPosition
    expanded: bool = False
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "added_tasks": list(self.added_tasks),
            "position": self.position.value,
            "expanded": self.expanded,
            "warnings": list(self.warnings),
        }


@dataclass(slots=True)
class CompletionResult:
    """Outcome of completing the current task."""

    document: str
    completed_text: str
    next_task: Optional[Task] = None
    context: Optional[TaskContext] = None

    @property
    def issue_completed(self) -> bool:
        return self.next_task is None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "completed_task": self.completed_text,
            "next_task": self.next_task.to_dict() if self.next_task else None,
            "issue_completed": self.issue_completed,
            "context": self.context.to_dict() if self.context else None,
        }


@dataclass(slots=True)
class IssueSummary:
    """An issue file known to the workspace."""

    number: str
    title: str
    status: str
    path: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "number": self.number,
            "title": self.title,
            "status": self.status,
            "path": self.path,
        }
