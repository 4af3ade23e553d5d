"""Issue context extraction.

Collects the prose sections, failed approaches and open questions that are
shown next to a task so the person (or agent) working on it has the whole
picture.
"""

from __future__ import annotations

from typing import List, Optional

from .models import DEFAULT_FAILURE_REASON, FailedApproach, Question, Task, TaskContext
from .sections import FAILURE_HEADING, get_sections
from .task_parser import extract_tasks, match_task_line

_REASON_MARKER = "**Reason:**"


def parse_failed_approaches(content: str) -> List[FailedApproach]:
    """Parse the entries of a Failed approaches section."""
    if not content:
        return []
    approaches = []
    for chunk in content.split(FAILURE_HEADING)[1:]:
        chunk = chunk.strip()
        if not chunk:
            continue
        approach, _, reason = chunk.partition(_REASON_MARKER)
        approaches.append(
            FailedApproach(
                approach=approach.strip(),
                reason=reason.strip() or DEFAULT_FAILURE_REASON,
            )
        )
    return approaches


def parse_questions(content: str) -> List[Question]:
    """Parse the checklist entries of a Questions to resolve section."""
    questions = []
    for line in (content or "").split("\n"):
        match = match_task_line(line.strip())
        if match:
            questions.append(Question(text=match.group("text").strip(), completed=match.group("mark") != " "))
    return questions


def extract_context(document: str, task: Optional[Task] = None) -> TaskContext:
    """Build the context for a task (or for the issue as a whole)."""
    context = TaskContext()
    for section in get_sections(document):
        if section.name == "Problem to be solved":
            context.problem = section.content
        elif section.name == "Planned approach":
            context.approach = section.content
        elif section.name == "Failed approaches":
            context.failed_approaches = parse_failed_approaches(section.content)
        elif section.name == "Questions to resolve":
            context.questions = parse_questions(section.content)
        elif section.name == "Instructions":
            context.instructions = section.content
        elif section.name == "Next steps":
            context.next_steps = section.content

    if task is not None:
        tasks = extract_tasks(document)
        if 0 < task.index <= len(tasks):
            context.previous_task = tasks[task.index - 1].text
        if task.index + 1 < len(tasks):
            context.next_task = tasks[task.index + 1].text
    return context
