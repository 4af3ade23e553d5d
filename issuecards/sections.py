"""Section lookup and content insertion for issue documents.

Sections are delimited purely by heading markers: a level-2 heading opens
a section and the next level-1 or level-2 heading closes it. Lower-level
headings (such as the `###` lines of failure entries) are section content.
"""

from __future__ import annotations

import re
from typing import List, Optional

from .errors import InvalidContentError, SectionNotFoundError
from .models import DEFAULT_FAILURE_REASON, FailureDetails, NoteMode, Section
from .task_parser import heading_level

_SECTION_ALIASES = {
    "problem": "Problem to be solved",
    "problemtobesolved": "Problem to be solved",
    "approach": "Planned approach",
    "plannedapproach": "Planned approach",
    "failed": "Failed approaches",
    "failedapproaches": "Failed approaches",
    "failures": "Failed approaches",
    "questions": "Questions to resolve",
    "questionstoresolve": "Questions to resolve",
    "tasks": "Tasks",
    "instructions": "Instructions",
    "next": "Next steps",
    "nextsteps": "Next steps",
}

LIST_SECTIONS = ("Questions to resolve", "Tasks")
FAILURE_HEADING = "### Failed attempt"


def _alias_key(name: str) -> str:
    return re.sub(r"[\s_-]+", "", name).lower()


def normalize_section_name(section_name: str) -> str:
    """Map short or differently formatted names to the canonical heading."""
    return _SECTION_ALIASES.get(_alias_key(section_name), section_name)


def get_sections(document: str) -> List[Section]:
    """Split a document into its level-2 sections."""
    sections: List[Section] = []
    current: Optional[Section] = None
    body: List[str] = []

    def close() -> None:
        if current is not None:
            current.content = "\n".join(body)
            sections.append(current)

    for number, line in enumerate(document.split("\n")):
        heading = heading_level(line)
        if heading:
            close()
            body = []
            level, name = heading
            current = Section(name=name, content="", start_line=number, end_line=number) if level == 2 else None
            continue
        if current is not None and line.strip():
            body.append(line.strip())
            current.end_line = number
    close()
    return sections


def find_section_by_name(document: str, section_name: str) -> Optional[Section]:
    """Find a section by name, honouring aliases and formatting differences."""
    wanted = normalize_section_name(section_name)
    wanted_key = _alias_key(wanted)
    for section in get_sections(document):
        if section.name == wanted or _alias_key(normalize_section_name(section.name)) == wanted_key:
            return section
    return None


def get_section_content(document: str, section_name: str) -> Optional[str]:
    section = find_section_by_name(document, section_name)
    return section.content if section else None


def reject_headings(content: str) -> None:
    """Raise InvalidContentError if any line would open or close a section."""
    for line in content.split("\n"):
        if heading_level(line):
            raise InvalidContentError(line)


def format_note_for_section(
    text: str,
    mode: NoteMode = NoteMode.PLAIN,
    extra: Optional[FailureDetails] = None,
) -> str:
    """Render one entry for insertion into a section."""
    if mode is NoteMode.QUESTION:
        question = text.rstrip()
        if not question.endswith("?"):
            question += "?"
        return f"- [ ] {question}"
    if mode is NoteMode.FAILURE:
        reason = (extra.reason if extra else None) or DEFAULT_FAILURE_REASON
        return f"{FAILURE_HEADING}\n\n{text}\n\n**Reason:** {reason}"
    return text


def add_content_to_section(
    document: str,
    section_name: str,
    content: str,
    mode: NoteMode = NoteMode.PLAIN,
    extra: Optional[FailureDetails] = None,
) -> str:
    """Append content at the end of a section's existing content.

    Raises SectionNotFoundError when the section does not exist and
    InvalidContentError when the content carries a section heading. Blank
    content leaves the document as it is. Other sections are left untouched.
    """
    section = find_section_by_name(document, section_name)
    if section is None:
        raise SectionNotFoundError(section_name)
    if not content.strip():
        return document
    reject_headings(content)
    if extra:
        reject_headings(extra.reason)

    entry = format_note_for_section(content, mode, extra)
    is_list = section.name in LIST_SECTIONS
    if is_list and mode is NoteMode.PLAIN and not entry.startswith("- "):
        entry = f"- [ ] {entry}"

    lines = document.split("\n")
    # Prose entries are separated by a blank line; list items are not.
    new_lines = [entry] if section.is_empty or is_list else ["", entry]
    insert_at = section.end_line + 1
    lines[insert_at:insert_at] = new_lines
    return "\n".join(lines)
