"""Issue and tag template storage.

A tag template is a markdown document named after its tag. Its `## Steps`
section lists the tasks a tagged task expands into; one step carries the
{{TASK}} placeholder that receives the original task description.

An issue template is the skeleton of a new issue: every issue section
heading, with a `{{FIELD}}` placeholder for the title, number and each
section body.
"""

from __future__ import annotations

import logging
import re
import textwrap
from pathlib import Path
from typing import Dict, List, Optional

from .errors import InvalidTemplateError, TemplateNotFoundError
from .models import (
    ISSUE_SECTIONS,
    ISSUE_TEMPLATE_FIELDS,
    LEGACY_TASK_PLACEHOLDER,
    TASK_PLACEHOLDER,
    TagTemplate,
)
from .task_parser import heading_level

logger = logging.getLogger("issuecards.templates")

STEPS_SECTION = "Steps"
ISSUE = "issue"
TAG = "tag"

_FIELD_PLACEHOLDER = re.compile(r"\{\{\s*([A-Z_]+)\s*\}\}")


def parse_tag_template(name: str, content: str) -> TagTemplate:
    """Parse the Steps list of a tag template document."""
    steps: List[str] = []
    has_steps_section = False
    in_steps = False
    for line in content.split("\n"):
        stripped = line.strip()
        if stripped.startswith("#"):
            heading = heading_level(stripped)
            in_steps = bool(heading) and heading[0] == 2 and heading[1] == STEPS_SECTION
            has_steps_section = has_steps_section or in_steps
            continue
        if in_steps and stripped.startswith("-"):
            steps.append(stripped[1:].strip())
    has_placeholder = any(
        TASK_PLACEHOLDER in step or step == LEGACY_TASK_PLACEHOLDER for step in steps
    )
    return TagTemplate(
        name=name,
        steps=steps,
        has_steps_section=has_steps_section,
        has_placeholder=has_placeholder,
    )


def validate_issue_template(content: str) -> List[str]:
    """Check an issue template for every section heading and field placeholder."""
    headings = {heading_level(line) for line in content.split("\n")}
    errors = [
        f"Missing required section: {section}"
        for section in ISSUE_SECTIONS
        if (2, section) not in headings
    ]
    present = set(_FIELD_PLACEHOLDER.findall(content))
    errors.extend(
        f"Missing variable placeholder: {{{{{field}}}}}"
        for field in ISSUE_TEMPLATE_FIELDS
        if field not in present
    )
    return errors


def _next_content_line(lines: List[str], start: int) -> Optional[str]:
    for line in lines[start:]:
        if line.strip():
            return line
    return None


def _tidy_rendered_issue(text: str) -> str:
    """Collapse the blank lines left behind by empty fields.

    Section bodies start directly under their heading; sections are
    separated by one blank line.
    """
    lines = [line.rstrip() for line in text.split("\n")]
    tidy: List[str] = []
    for number, line in enumerate(lines):
        if line:
            tidy.append(line)
            continue
        if not tidy or not tidy[-1]:
            continue
        following = _next_content_line(lines, number + 1)
        if heading_level(tidy[-1]) and following is not None and not heading_level(following):
            continue
        tidy.append(line)
    while tidy and not tidy[-1]:
        tidy.pop()
    return "\n".join(tidy) + "\n"


def render_issue_template(content: str, values: Dict[str, str]) -> str:
    """Fill an issue template's placeholders; unknown fields are left as written."""
    rendered = _FIELD_PLACEHOLDER.sub(lambda match: values.get(match.group(1), match.group(0)), content)
    return _tidy_rendered_issue(rendered)


class _TemplateDirectory:
    """Templates of one type stored as `<name>.md` files in a directory."""

    template_type = ""

    def __init__(self, directory: Path | str):
        self.directory = Path(directory)

    def _path(self, name: str) -> Path:
        return self.directory / f"{name}.md"

    def default_templates(self) -> Dict[str, str]:
        return {}

    def exists(self, name: str) -> bool:
        """Check if a template exists under this name."""
        if not name or "/" in name or "\\" in name or name.startswith("."):
            return False
        return self._path(name).is_file()

    def list_names(self) -> List[str]:
        """List available template names, sorted."""
        if not self.directory.is_dir():
            return []
        return sorted(path.stem for path in self.directory.glob("*.md"))

    def read(self, name: str) -> str:
        if not self.exists(name):
            raise TemplateNotFoundError(f"{name}.md ({self.template_type})")
        return self._path(name).read_text(encoding="utf-8")

    def install_defaults(self, *, overwrite: bool = False) -> List[str]:
        """Write the bundled templates into the directory."""
        self.directory.mkdir(parents=True, exist_ok=True)
        written = []
        for name, content in self.default_templates().items():
            path = self._path(name)
            if path.exists() and not overwrite:
                continue
            path.write_text(content, encoding="utf-8")
            written.append(name)
        return written


class DirectoryTagTemplateStore(_TemplateDirectory):
    """Resolve tag names to `<name>.md` files in a directory."""

    template_type = TAG

    def default_templates(self) -> Dict[str, str]:
        return DEFAULT_TAG_TEMPLATES

    def load(self, name: str) -> TagTemplate:
        """Load and parse a tag template."""
        template = parse_tag_template(name, self.read(name))
        logger.debug(f"Loaded tag template '{name}' with {len(template.steps)} steps")
        return template


class DirectoryIssueTemplateStore(_TemplateDirectory):
    """Issue skeletons used when creating issues."""

    template_type = ISSUE

    def default_templates(self) -> Dict[str, str]:
        return DEFAULT_ISSUE_TEMPLATES

    def validate(self, name: str) -> List[str]:
        try:
            return validate_issue_template(self.read(name))
        except TemplateNotFoundError:
            return ["Template not found"]

    def render(self, name: str, values: Dict[str, str]) -> str:
        """Render a new issue document from the named template."""
        content = self.read(name)
        errors = validate_issue_template(content)
        if errors:
            raise InvalidTemplateError(name, errors)
        return render_issue_template(content, values)


DEFAULT_TAG_TEMPLATES: Dict[str, str] = {
    "unit-test": textwrap.dedent(
        """\
        # unit-test

        ## Steps
        - Write failing unit tests for {{TASK}}
        - Run the unit tests and verify they fail for the expected reason
        - {{TASK}}
        - Run unit tests and verify they now pass
        - Refactor while keeping the tests green
        """
    ),
    "e2e-test": textwrap.dedent(
        """\
        # e2e-test

        ## Steps
        - Write a failing end-to-end test covering the user journey for {{TASK}}
        - {{TASK}}
        - Run the end-to-end test and verify it passes
        - Verify the feature works in the full application context
        """
    ),
    "integration-test": textwrap.dedent(
        """\
        # integration-test

        ## Steps
        - Write failing integration tests for {{TASK}}
        - {{TASK}}
        - Run integration tests and verify they pass
        """
    ),
    "update-docs": textwrap.dedent(
        """\
        # update-docs

        ## Steps
        - {{TASK}}
        - Update the documentation for {{TASK}}
        - Review the documentation for accuracy
        """
    ),
}


def _issue_template(extra_instructions: str = "") -> str:
    instructions = "{{INSTRUCTIONS}}"
    if extra_instructions:
        instructions += "\n\n" + extra_instructions
    return textwrap.dedent(
        """\
        # Issue {{NUMBER}}: {{TITLE}}

        ## Problem to be solved
        {{PROBLEM}}

        ## Planned approach
        {{APPROACH}}

        ## Failed approaches
        {{FAILED_APPROACHES}}

        ## Questions to resolve
        {{QUESTIONS}}

        ## Tasks
        {{TASKS}}

        ## Instructions
        %s

        ## Next steps
        {{NEXT_STEPS}}
        """
    ) % instructions


DEFAULT_ISSUE_TEMPLATES: Dict[str, str] = {
    "feature": _issue_template(),
    "bugfix": _issue_template(
        "Reproduce the bug with a failing test before changing any code. "
        "Fix the root cause, not the symptom."
    ),
    "refactor": _issue_template(
        "Keep behaviour unchanged: the existing tests must pass before and after every step."
    ),
    "audit": _issue_template(
        "Record every finding in Next steps, with the file and line it concerns."
    ),
}
