"""Error types raised by the Issue Cards document engine and workspace.

Every error carries a terse message, a human-readable display message and
an optional recovery hint. All three are fixed when the error is built.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Iterable, List, Optional


class ErrorKind(str, Enum):
    USER = "user"
    SECTION_NOT_FOUND = "section_not_found"
    TAG_VALIDATION = "tag_validation"
    STRUCTURAL = "structural"
    NOT_FOUND = "not_found"
    INTERNAL = "internal"


class IssueCardsError(Exception):
    """Base error for Issue Cards."""

    kind: ErrorKind = ErrorKind.INTERNAL
    exit_code: int = 1

    def __init__(
        self,
        message: str,
        *,
        hint: Optional[str] = None,
        display_message: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.hint = hint
        if display_message is None:
            display_message = f"{message} ({hint})" if hint else message
        self.display_message = display_message

    def to_dict(self) -> Dict[str, Any]:
        """Render the error for tool results."""
        return {
            "error": self.display_message,
            "kind": self.kind.value,
            "message": self.message,
            "suggestion": self.hint,
        }


class UserError(IssueCardsError):
    """Invalid input from the caller."""

    kind = ErrorKind.USER
    exit_code = 2


class InternalError(IssueCardsError):
    """An inconsistency inside Issue Cards itself."""

    kind = ErrorKind.INTERNAL
    exit_code = 4


class SectionNotFoundError(UserError):
    kind = ErrorKind.SECTION_NOT_FOUND

    def __init__(self, section_name: str, *, hint: Optional[str] = None):
        super().__init__(f'Section "{section_name}" not found in issue', hint=hint)
        self.section_name = section_name


class TagValidationError(UserError):
    """One or more tags on a task cannot be expanded."""

    kind = ErrorKind.TAG_VALIDATION

    def __init__(self, errors: Iterable[str]):
        self.errors: List[str] = list(errors)
        super().__init__(
            f"Invalid tags in task: {', '.join(self.errors)}",
            hint="Run list_tags to see the available tag templates",
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["validation_errors"] = list(self.errors)
        return data


class StructuralError(IssueCardsError):
    """A section every issue must have is missing from the document."""

    kind = ErrorKind.STRUCTURAL
    exit_code = 3

    def __init__(self, section_name: str):
        super().__init__(
            f'Issue document has no "{section_name}" section',
            hint="The issue file may have been edited by hand; restore the missing heading",
        )
        self.section_name = section_name


class NoCurrentTaskError(UserError):
    kind = ErrorKind.NOT_FOUND

    def __init__(self):
        super().__init__(
            "No current task",
            hint="All tasks are completed; add a task with add_task",
            display_message="No tasks found or all tasks are already completed.",
        )


class TaskNotFoundError(UserError):
    kind = ErrorKind.NOT_FOUND

    def __init__(self, index: int):
        super().__init__(f"Task index {index} out of bounds")
        self.index = index


class IssueNotFoundError(UserError):
    kind = ErrorKind.NOT_FOUND

    def __init__(self, issue_number: str | int):
        super().__init__(
            f"Issue #{issue_number} not found",
            hint="Run list_issues to see the open issues",
        )
        self.issue_number = str(issue_number)


class NoCurrentIssueError(UserError):
    kind = ErrorKind.NOT_FOUND

    def __init__(self):
        super().__init__(
            "No current issue found",
            hint="Specify an issue number or set a current issue",
        )


class TemplateNotFoundError(UserError):
    kind = ErrorKind.NOT_FOUND

    def __init__(self, template_name: str):
        super().__init__(f"Template not found: {template_name}")
        self.template_name = template_name


class UninitializedError(UserError):
    def __init__(self):
        super().__init__(
            "Issue tracking is not initialized",
            hint="Run init_issues first",
        )


class TemplateExpansionError(InternalError):
    """A tag template failed to expand after it passed validation."""

    def __init__(self, tag_name: str, reason: str):
        super().__init__(f"Tag '{tag_name}' could not be expanded: {reason}")
        self.tag_name = tag_name
        self.reason = reason


class InvalidContentError(UserError):
    """Content that would change the section structure of an issue."""

    def __init__(self, line: str):
        super().__init__(
            f"Content cannot contain a level-1 or level-2 heading: '{line.strip()}'",
            hint="Use ### or deeper headings inside a section",
        )
        self.line = line


class InvalidTemplateError(UserError):
    """A template exists but does not have the required structure."""

    def __init__(self, template_name: str, errors: Iterable[str]):
        self.errors: List[str] = list(errors)
        super().__init__(
            f"Template '{template_name}' is invalid: {', '.join(self.errors)}",
            hint="Run list_templates to check template structure",
        )
        self.template_name = template_name
