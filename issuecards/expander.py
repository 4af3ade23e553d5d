"""Tag-driven task expansion.

A task whose text ends in one or more `+tag` annotations is replaced by
the steps of each tag's template, with the placeholder filled in by the
task's own description.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, List, Protocol

from .errors import TemplateExpansionError, TemplateNotFoundError
from .models import LEGACY_TASK_PLACEHOLDER, TASK_PLACEHOLDER, Tag, TagTemplate, Task
from .task_parser import extract_tags_from_task, get_clean_task_text

logger = logging.getLogger("issuecards.expander")

_PARAM_PLACEHOLDER = re.compile(r"\{\{\s*([A-Za-z0-9_-]+)\s*\}\}")


class TagTemplateStore(Protocol):
    def exists(self, name: str) -> bool: ...

    def load(self, name: str) -> TagTemplate: ...

    def list_names(self) -> List[str]: ...


def combine_steps(description: str, steps: Iterable[str], params: dict | None = None) -> List[str]:
    """Fill each step's placeholders with the description and tag parameters."""
    values = dict(params or {})
    combined = []
    for step in steps:
        if step == LEGACY_TASK_PLACEHOLDER:
            combined.append(description)
            continue
        rendered = step.replace(TASK_PLACEHOLDER, description)
        if values:
            rendered = _PARAM_PLACEHOLDER.sub(
                lambda match: values.get(match.group(1), match.group(0)), rendered
            )
        combined.append(rendered)
    return combined


class TagExpander:
    """Validate tags against a template store and expand tagged tasks."""

    def __init__(self, store: TagTemplateStore):
        self.store = store

    def validate_tag_template(self, tag_name: str) -> List[str]:
        """Return the structural problems of a tag's template."""
        try:
            template = self.store.load(tag_name)
        except TemplateNotFoundError:
            return ["Template not found"]
        return template.validate()

    def validate_tags(self, tags: Iterable[Tag | str]) -> List[str]:
        """Collect validation errors for every tag, not just the first."""
        errors: List[str] = []
        available = set(self.store.list_names())
        for tag in tags:
            name = tag.name if isinstance(tag, Tag) else tag
            if name not in available:
                errors.append(f"Tag '{name}' does not exist")
                continue
            problems = self.validate_tag_template(name)
            if problems:
                errors.append(f"Tag '{name}' has invalid template: {', '.join(problems)}")
        return errors

    def extract_tag_steps(self, tag_name: str) -> List[str]:
        """Return the raw Steps of a tag template."""
        try:
            template = self.store.load(tag_name)
        except TemplateNotFoundError as exc:
            raise TemplateExpansionError(tag_name, str(exc)) from exc
        problems = template.validate()
        if problems:
            raise TemplateExpansionError(tag_name, ", ".join(problems))
        return list(template.steps)

    def expand_task(self, task: Task | str) -> List[str]:
        """Expand a task into the step lines of its trailing tags.

        Returns the task text unchanged (as a one-element list) when it
        carries no trailing tags. Raises TemplateExpansionError when a
        tag's template is missing or malformed.
        """
        text = task.text if isinstance(task, Task) else task
        tags = extract_tags_from_task(text)
        if not tags:
            return [text]

        description = get_clean_task_text(text)
        expanded: List[str] = []
        for tag in tags:
            steps = self.extract_tag_steps(tag.name)
            expanded.extend(combine_steps(description, steps, tag.params))
        logger.debug(
            f"Expanded task '{description}' with tags {[tag.name for tag in tags]} into {len(expanded)} steps"
        )
        return expanded
