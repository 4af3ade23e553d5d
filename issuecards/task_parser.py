"""Task parsing for issue documents.

Reads the checklist in an issue's Tasks section, tracks completion and
recognises the trailing `+tag` annotations that drive task expansion.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional

from .errors import TaskNotFoundError
from .models import Tag, Task

TASKS_SECTION = "Tasks"

_HEADING_PATTERN = re.compile(r"^(?P<level>#{1,2})\s+(?P<name>.*?)\s*$")
_TASK_LINE_PATTERN = re.compile(r"^(?P<prefix>\s*)- \[(?P<mark> |x|X)\] ?(?P<text>.*)$")
_TAG_BODY = r"[A-Za-z0-9][A-Za-z0-9-]*(?:\([^()]*\))?"
_TRAILING_TAG_PATTERN = re.compile(rf"(?:^|\s)\+(?P<tag>{_TAG_BODY})\s*$")
_TAG_PATTERN = re.compile(r"^(?P<name>[A-Za-z0-9][A-Za-z0-9-]*)(?:\((?P<params>[^()]*)\))?$")


def heading_level(line: str) -> Optional[tuple[int, str]]:
    """Return (level, name) for level-1 and level-2 headings."""
    match = _HEADING_PATTERN.match(line.strip())
    if not match:
        return None
    return len(match.group("level")), match.group("name")


def match_task_line(line: str) -> Optional[re.Match[str]]:
    return _TASK_LINE_PATTERN.match(line)


def extract_tasks(document: str) -> List[Task]:
    """Extract the checklist items of the Tasks section, in order."""
    tasks: List[Task] = []
    in_tasks = False
    for line in document.split("\n"):
        heading = heading_level(line)
        if heading:
            level, name = heading
            in_tasks = level == 2 and name == TASKS_SECTION
            continue
        if not in_tasks:
            continue
        match = _TASK_LINE_PATTERN.match(line.strip())
        if match:
            tasks.append(
                Task(
                    text=match.group("text"),
                    completed=match.group("mark") != " ",
                    index=len(tasks),
                )
            )
    return tasks


def find_task_by_index(tasks: List[Task], index: int) -> Optional[Task]:
    for task in tasks:
        if task.index == index:
            return task
    return None


def find_current_task(tasks: List[Task]) -> Optional[Task]:
    """Return the first task that is not completed, or None."""
    for task in tasks:
        if not task.completed:
            return task
    return None


def parse_tag(tag_string: str) -> Optional[Tag]:
    """Parse `name` or `name(key=value,...)`.

    Malformed parameter lists yield None: tags are optional markup, so a
    bad tag is simply not a tag.
    """
    match = _TAG_PATTERN.match(tag_string.strip())
    if not match:
        return None
    params: Dict[str, str] = {}
    raw_params = match.group("params")
    if raw_params is not None:
        for pair in raw_params.split(","):
            key, sep, value = pair.partition("=")
            key, value = key.strip(), value.strip()
            if not sep or not key or not value:
                return None
            params[key] = value
    return Tag(name=match.group("name"), params=params)


def format_tag(tag: Tag) -> str:
    """Render a tag back to its `+name(params)` text form."""
    if not tag.params:
        return f"+{tag.name}"
    params = ",".join(f"{key}={value}" for key, value in tag.params.items())
    return f"+{tag.name}({params})"


def _split_trailing_tags(text: str) -> tuple[str, List[Tag]]:
    remainder = text.rstrip()
    tags: List[Tag] = []
    while True:
        match = _TRAILING_TAG_PATTERN.search(remainder)
        if not match:
            break
        tag = parse_tag(match.group("tag"))
        if tag is None:
            # A malformed annotation ends the trailing run; nothing before it is live.
            return text.rstrip(), []
        tags.insert(0, tag)
        remainder = remainder[: match.start()].rstrip()
    return remainder, tags


def extract_tags_from_task(task: Task | str) -> List[Tag]:
    """Return the trailing tag annotations of a task, in written order."""
    text = task.text if isinstance(task, Task) else task
    return _split_trailing_tags(text)[1]


def extract_tag_names_from_task(task: Task | str) -> List[str]:
    return [tag.name for tag in extract_tags_from_task(task)]


def is_tag_at_end(task_text: str, tag: Tag | str) -> bool:
    """Check whether a tag annotation sits literally at the end of the text.

    Public helper for callers holding one tag. Expansion itself reads every
    trailing tag at once with extract_tags_from_task.
    """
    annotation = format_tag(tag) if isinstance(tag, Tag) else tag
    stripped = task_text.rstrip()
    if not annotation or not stripped.endswith(annotation):
        return False
    before = stripped[: -len(annotation)]
    return before == "" or before[-1].isspace()


def get_clean_task_text(task: Task | str) -> str:
    """Return the task text with its trailing tag annotations removed."""
    text = task.text if isinstance(task, Task) else task
    remainder, tags = _split_trailing_tags(text)
    return remainder if tags else text.strip()


def mark_task_completed(document: str, task_index: int) -> str:
    """Flip the checkbox of the task at task_index to completed.

    Completion is one-way; there is no operation that reopens a task.
    """
    lines = document.split("\n")
    in_tasks = False
    seen = 0
    for number, line in enumerate(lines):
        heading = heading_level(line)
        if heading:
            level, name = heading
            in_tasks = level == 2 and name == TASKS_SECTION
            continue
        if not in_tasks:
            continue
        match = _TASK_LINE_PATTERN.match(line.strip())
        if not match:
            continue
        if seen == task_index:
            lines[number] = line.replace(f"- [{match.group('mark')}]", "- [x]", 1)
            return "\n".join(lines)
        seen += 1
    raise TaskNotFoundError(task_index)
