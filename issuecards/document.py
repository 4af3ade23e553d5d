"""Issue document engine.

Every operation here is a pure function of the document text and its
arguments: it returns new text (and a result value) and never touches
storage. Nothing is changed until all checks for the operation pass.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from .context import extract_context
from .errors import (
    NoCurrentTaskError,
    StructuralError,
    TagValidationError,
    TemplateExpansionError,
    UserError,
)
from .expander import TagExpander, TagTemplateStore
from .issue_logging import log_error_with_context
from .models import (
    ISSUE_SECTION_FIELDS,
    ISSUE_SECTIONS,
    AddTaskResult,
    CompletionResult,
    FailureDetails,
    NoteMode,
    Tag,
    Task,
    TaskPosition,
)
from .positioner import find_insertion_line_number, find_tasks_section_end, insert_lines
from .sections import add_content_to_section, find_section_by_name, format_note_for_section, reject_headings
from .task_parser import (
    TASKS_SECTION,
    extract_tags_from_task,
    extract_tasks,
    find_current_task,
    mark_task_completed,
)

logger = logging.getLogger("issuecards.document")


def issue_template_values(
    number: str,
    title: str,
    *,
    problem: str = "",
    approach: str = "",
    failed_approaches: Optional[Iterable[str]] = None,
    questions: Optional[Iterable[str]] = None,
    tasks: Optional[Iterable[str]] = None,
    instructions: str = "",
    next_steps: str = "",
) -> Dict[str, str]:
    """Format the fields of a new issue as template values.

    Raises InvalidContentError when a field carries a section heading and
    UserError when a task spans several lines.
    """
    for text in (title, problem, approach, instructions, next_steps, *(failed_approaches or []), *(questions or [])):
        reject_headings(text)
    task_lines = []
    for task in tasks or []:
        task = task.strip()
        if not task:
            continue
        if "\n" in task:
            raise UserError("Task text must be a single line", hint="Pass each task separately")
        task_lines.append(task if task.startswith("- [") else f"- [ ] {task}")
    failures = [
        format_note_for_section(item.strip(), NoteMode.FAILURE)
        for item in failed_approaches or []
        if item.strip()
    ]
    return {
        "NUMBER": number,
        "TITLE": title.strip(),
        "PROBLEM": problem.strip(),
        "APPROACH": approach.strip(),
        "FAILED_APPROACHES": "\n\n".join(failures),
        "QUESTIONS": "\n".join(
            format_note_for_section(item.strip(), NoteMode.QUESTION)
            for item in questions or []
            if item.strip()
        ),
        "TASKS": "\n".join(task_lines),
        "INSTRUCTIONS": instructions.strip(),
        "NEXT_STEPS": next_steps.strip(),
    }


def render_issue(number: str, title: str, **fields) -> str:
    """Render a new issue document in the persisted format.

    Takes the same keyword fields as issue_template_values.
    """
    values = issue_template_values(number, title, **fields)
    parts = [f"# Issue {values['NUMBER']}: {values['TITLE']}"]
    for name in ISSUE_SECTIONS:
        parts.append("")
        parts.append(f"## {name}")
        body = values[ISSUE_SECTION_FIELDS[name]]
        if body:
            parts.append(body)
    return "\n".join(parts) + "\n"


class IssueDocumentEngine:
    """Read and mutate issue documents."""

    def __init__(self, template_store: TagTemplateStore):
        self.expander = TagExpander(template_store)

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def get_tasks(self, document: str) -> List[Task]:
        return extract_tasks(document)

    def get_current_task(self, document: str) -> Optional[Task]:
        """Return the first incomplete task, or None."""
        return find_current_task(extract_tasks(document))

    def validate_tags(self, tags: Iterable[Tag | str]) -> List[str]:
        return self.expander.validate_tags(tags)

    def task_steps(self, task: Task) -> List[str]:
        """Return the steps a task expands into, or its own text.

        Tasks written straight into an issue file are never validated, so
        a tag without a usable template shows the task as written.
        """
        try:
            return self.expander.expand_task(task)
        except TemplateExpansionError as e:
            logger.warning(f"Showing task without expansion: {e.message}")
            return [task.text]

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def add_task(
        self,
        document: str,
        text: str,
        position: TaskPosition | str = TaskPosition.END,
    ) -> AddTaskResult:
        """Add a task, expanding its trailing tags into template steps.

        Raises TagValidationError without touching the document when any
        trailing tag is unknown or has a malformed template.
        """
        position = TaskPosition.parse(position)
        text = text.strip()
        if not text:
            raise UserError("Task text cannot be empty", hint="Describe the task to add")
        if "\n" in text:
            raise UserError("Task text must be a single line", hint="Add each task separately")

        tags = extract_tags_from_task(text)
        errors = self.expander.validate_tags(tags)
        if errors:
            raise TagValidationError(errors)

        line_number = self._insertion_line(document, position)

        warnings: List[str] = []
        expanded = False
        new_tasks = [text]
        if tags:
            try:
                new_tasks = self.expander.expand_task(text)
                expanded = True
            except TemplateExpansionError as e:
                # Validation passed a moment ago, so this is an inconsistency in the store.
                log_error_with_context(e, {"operation": "add_task", "task": text, "tag": e.tag_name})
                warnings.append(f"{e.message}; added the task without expansion")

        updated = insert_lines(document, line_number, [f"- [ ] {task}" for task in new_tasks])
        logger.debug(f"Inserted {len(new_tasks)} task line(s) at line {line_number} ({position.value})")
        return AddTaskResult(
            document=updated,
            added_tasks=new_tasks,
            position=position,
            expanded=expanded,
            warnings=warnings,
        )

    def _insertion_line(self, document: str, position: TaskPosition) -> int:
        current = self.get_current_task(document)
        if position is TaskPosition.BEFORE_CURRENT and current:
            return find_insertion_line_number(document, current, before=True)
        if position is TaskPosition.AFTER_CURRENT and current:
            return find_insertion_line_number(document, current, before=False)
        return find_tasks_section_end(document)

    def complete_task(self, document: str) -> CompletionResult:
        """Mark the current task completed and report what comes next."""
        if find_section_by_name(document, TASKS_SECTION) is None:
            raise StructuralError(TASKS_SECTION)
        current = self.get_current_task(document)
        if current is None:
            raise NoCurrentTaskError()

        updated = mark_task_completed(document, current.index)
        next_task = self.get_current_task(updated)
        return CompletionResult(
            document=updated,
            completed_text=current.text,
            next_task=next_task,
            context=extract_context(updated, next_task) if next_task else None,
        )

    # ------------------------------------------------------------------
    # Notes
    # ------------------------------------------------------------------

    def add_note(self, document: str, section: str, text: str) -> str:
        """Append a plain note to any section."""
        return add_content_to_section(document, section, text, NoteMode.PLAIN)

    def add_question(self, document: str, text: str) -> str:
        """Append a question to Questions to resolve."""
        return add_content_to_section(document, "Questions to resolve", text, NoteMode.QUESTION)

    def log_failure(self, document: str, text: str, reason: Optional[str] = None) -> str:
        """Record a failed approach and why it failed."""
        details = FailureDetails(reason=reason) if reason else FailureDetails()
        return add_content_to_section(document, "Failed approaches", text, NoteMode.FAILURE, details)
