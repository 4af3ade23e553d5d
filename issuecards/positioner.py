"""Insertion-point computation for new tasks.

Both scans walk the document line by line through an explicit state
machine: BEFORE_SECTION until the Tasks heading, IN_SECTION over its body,
AFTER_SECTION once the next heading closes it.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterator, List, Optional, Tuple

from .errors import StructuralError
from .models import Task
from .task_parser import TASKS_SECTION, heading_level, match_task_line


class ScanState(Enum):
    BEFORE_SECTION = "before"
    IN_SECTION = "in"
    AFTER_SECTION = "after"


def _scan(lines: List[str]) -> Iterator[Tuple[ScanState, int, bool]]:
    """Yield (state, line_number, is_task) for every line of the document."""
    state = ScanState.BEFORE_SECTION
    for number, line in enumerate(lines):
        heading = heading_level(line)
        if heading:
            level, name = heading
            if state is ScanState.BEFORE_SECTION and level == 2 and name == TASKS_SECTION:
                state = ScanState.IN_SECTION
                yield state, number, False
                continue
            if state is ScanState.IN_SECTION:
                state = ScanState.AFTER_SECTION
        is_task = state is ScanState.IN_SECTION and match_task_line(line.strip()) is not None
        yield state, number, is_task


def find_tasks_section_end(document: str) -> int:
    """Line number at which a task appended to the list is inserted.

    That is the line after the last task item, or the line after the
    heading when the list is empty.
    """
    heading_line: Optional[int] = None
    last_task_line: Optional[int] = None
    for state, number, is_task in _scan(document.split("\n")):
        if state is ScanState.AFTER_SECTION:
            break
        if state is ScanState.IN_SECTION:
            if heading_line is None:
                heading_line = number
            elif is_task:
                last_task_line = number
    if heading_line is None:
        raise StructuralError(TASKS_SECTION)
    if last_task_line is not None:
        return last_task_line + 1
    return heading_line + 1


def find_insertion_line_number(document: str, task: Task, before: bool) -> int:
    """Line number for inserting just before or just after a given task.

    Falls back to the end of the task list when the task is not found
    before the section ends.
    """
    seen = 0
    found_section = False
    for state, number, is_task in _scan(document.split("\n")):
        if state is ScanState.AFTER_SECTION:
            break
        if state is ScanState.IN_SECTION:
            found_section = True
        if not is_task:
            continue
        if seen == task.index:
            return number if before else number + 1
        seen += 1
    if not found_section:
        raise StructuralError(TASKS_SECTION)
    return find_tasks_section_end(document)


def insert_lines(document: str, line_number: int, new_lines: List[str]) -> str:
    """Insert lines so the first of them ends up at line_number."""
    lines = document.split("\n")
    lines[line_number:line_number] = new_lines
    return "\n".join(lines)
