"""Workspace management for Issue Cards.

This module owns the on-disk layout of an issue tracker:

    .issues/
        open/issue-0001.md
        closed/issue-0002.md
        config/templates/issue/<template>.md
        config/templates/tag/<tag>.md

Issue files are read and written whole. There is no locking: two callers
that read, modify and write the same issue concurrently can overwrite each
other's change, and the last write wins.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Dict, List, Optional

from .document import issue_template_values, render_issue
from .errors import IssueNotFoundError, NoCurrentIssueError, UninitializedError, UserError
from .issue_logging import log_error_with_context, log_issue_event, log_operation, log_performance
from .models import IssueSummary
from .templates import DirectoryIssueTemplateStore, DirectoryTagTemplateStore

_ISSUE_FILE_PATTERN = re.compile(r"^issue-(\d+)\.md$")
_TITLE_PATTERN = re.compile(r"^#\s+Issue\s+\d+:\s+(.+)$")
OPEN = "open"
CLOSED = "closed"


def extract_issue_title(content: str) -> str:
    """Read the title from an issue's first line."""
    first_line = content.split("\n", 1)[0]
    match = _TITLE_PATTERN.match(first_line.strip())
    return match.group(1).strip() if match else "Untitled Issue"


def normalize_issue_number(issue_number: str | int) -> str:
    """Zero-pad an issue number to four digits."""
    value = str(issue_number).strip().lstrip("#")
    if not value.isdigit():
        raise UserError(f"Invalid issue number '{issue_number}'", hint="Use the number shown by list_issues")
    return value.zfill(4)


class IssueWorkspace:
    """Manage issue files within a repository."""

    ISSUE_DIR_ENV = "ISSUE_CARDS_DIR"
    DEFAULT_DIR_NAME = ".issues"

    def __init__(self, root: Path | str):
        self.root = Path(root).resolve()
        override = os.getenv(self.ISSUE_DIR_ENV)
        if override:
            base_dir = Path(override).expanduser()
            if not base_dir.is_absolute():
                base_dir = self.root / base_dir
        else:
            base_dir = self.root / self.DEFAULT_DIR_NAME
        self.base_dir = base_dir
        self.open_dir = self.base_dir / OPEN
        self.closed_dir = self.base_dir / CLOSED
        self.templates_dir = self.base_dir / "config" / "templates"
        self.issue_templates_dir = self.templates_dir / "issue"
        self.tag_templates_dir = self.templates_dir / "tag"
        self.issue_store = DirectoryIssueTemplateStore(self.issue_templates_dir)
        self.tag_store = DirectoryTagTemplateStore(self.tag_templates_dir)

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    def is_initialized(self) -> bool:
        return self.base_dir.is_dir()

    def ensure_initialized(self) -> None:
        if not self.is_initialized():
            raise UninitializedError()

    @log_performance("initialize_workspace")
    def initialize(self) -> Dict[str, List[str]]:
        """Create the directory layout and install the default templates.

        Returns the names of the templates written, by template type.
        Templates that already exist are kept as they are.
        """
        logger = logging.getLogger("issuecards.workspace")
        try:
            for directory in (self.open_dir, self.closed_dir, self.issue_templates_dir, self.tag_templates_dir):
                directory.mkdir(parents=True, exist_ok=True)
            installed = {
                "issue": self.issue_store.install_defaults(),
                "tag": self.tag_store.install_defaults(),
            }
        except OSError as e:
            log_error_with_context(e, {"operation": "initialize", "root": str(self.root)})
            raise
        logger.info(f"Issue tracking initialized at {self.base_dir}")
        log_issue_event("workspace_initialized", root=str(self.root), templates=installed)
        return installed

    # ------------------------------------------------------------------
    # Issue files
    # ------------------------------------------------------------------

    def issue_path(self, issue_number: str | int, status: str = OPEN) -> Path:
        """Get the path of an issue file."""
        if status not in {OPEN, CLOSED}:
            raise UserError(f"Invalid issue status: {status}", hint="Use 'open', 'closed' or 'all'")
        directory = self.open_dir if status == OPEN else self.closed_dir
        return directory / f"issue-{normalize_issue_number(issue_number)}.md"

    def read_issue(self, path: Path) -> str:
        return Path(path).read_text(encoding="utf-8")

    def write_issue(self, path: Path, content: str) -> None:
        Path(path).write_text(content, encoding="utf-8")

    def _issue_files(self, status: str) -> List[Path]:
        directory = self.open_dir if status == OPEN else self.closed_dir
        if not directory.is_dir():
            return []
        return sorted(path for path in directory.iterdir() if _ISSUE_FILE_PATTERN.match(path.name))

    def list_issues(self, status: str = OPEN) -> List[IssueSummary]:
        """List issues with the given status ('open', 'closed' or 'all')."""
        self.ensure_initialized()
        statuses = [OPEN, CLOSED] if status == "all" else [status]
        issues: List[IssueSummary] = []
        for current_status in statuses:
            if current_status not in {OPEN, CLOSED}:
                raise UserError(f"Invalid issue status: {status}", hint="Use 'open', 'closed' or 'all'")
            for path in self._issue_files(current_status):
                number = _ISSUE_FILE_PATTERN.match(path.name).group(1)
                issues.append(
                    IssueSummary(
                        number=number,
                        title=extract_issue_title(self.read_issue(path)),
                        status=current_status,
                        path=str(path),
                    )
                )
        return issues

    def find_issue(self, issue_number: str | int) -> IssueSummary:
        """Locate an issue in the open or closed directory."""
        self.ensure_initialized()
        number = normalize_issue_number(issue_number)
        for status in (OPEN, CLOSED):
            path = self.issue_path(number, status)
            if path.exists():
                return IssueSummary(
                    number=number,
                    title=extract_issue_title(self.read_issue(path)),
                    status=status,
                    path=str(path),
                )
        raise IssueNotFoundError(issue_number)

    def get_current_issue(self) -> IssueSummary:
        """The oldest open issue is the current one."""
        issues = self.list_issues(OPEN)
        if not issues:
            raise NoCurrentIssueError()
        return issues[0]

    def resolve_issue(self, issue_number: Optional[str | int] = None) -> IssueSummary:
        if issue_number is None or str(issue_number).strip() == "":
            return self.get_current_issue()
        return self.find_issue(issue_number)

    def next_issue_number(self) -> str:
        highest = 0
        for status in (OPEN, CLOSED):
            for path in self._issue_files(status):
                highest = max(highest, int(_ISSUE_FILE_PATTERN.match(path.name).group(1)))
        return f"{highest + 1:04d}"

    @log_performance("create_issue")
    def create_issue(
        self,
        title: str,
        *,
        problem: str = "",
        approach: str = "",
        failed_approaches: Optional[List[str]] = None,
        questions: Optional[List[str]] = None,
        tasks: Optional[List[str]] = None,
        instructions: str = "",
        next_steps: str = "",
        template: Optional[str] = None,
    ) -> IssueSummary:
        """Create a new open issue file.

        With a template name the issue is rendered from that issue template;
        otherwise the built-in layout is used.
        """
        self.ensure_initialized()
        if not title or not title.strip():
            raise UserError("Issue title cannot be empty", hint="Give the issue a short title")
        number = self.next_issue_number()
        path = self.issue_path(number)
        fields = {
            "problem": problem,
            "approach": approach,
            "failed_approaches": failed_approaches,
            "questions": questions,
            "tasks": tasks,
            "instructions": instructions,
            "next_steps": next_steps,
        }
        with log_operation("create_issue", issue_number=number, template=template):
            if template:
                content = self.issue_store.render(template, issue_template_values(number, title, **fields))
            else:
                content = render_issue(number, title, **fields)
            self.write_issue(path, content)
        log_issue_event("issue_created", issue_number=number, title=title.strip(), template=template)
        return IssueSummary(number=number, title=title.strip(), status=OPEN, path=str(path))

    def close_issue(self, issue_number: str | int) -> IssueSummary:
        """Move an open issue into the closed directory."""
        issue = self.find_issue(issue_number)
        if issue.status == CLOSED:
            return issue
        target = self.issue_path(issue.number, CLOSED)
        self.closed_dir.mkdir(parents=True, exist_ok=True)
        Path(issue.path).replace(target)
        log_issue_event("issue_closed", issue_number=issue.number)
        return IssueSummary(number=issue.number, title=issue.title, status=CLOSED, path=str(target))
