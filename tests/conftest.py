"""Shared fixtures for the Issue Cards test suite."""

from pathlib import Path

import pytest

from issuecards.document import IssueDocumentEngine, render_issue
from issuecards.issue_logging import issue_events, performance_monitor
from issuecards.templates import DirectoryTagTemplateStore


def write_tag_template(directory: Path, name: str, steps) -> Path:
    """Write a tag template with the given Steps list."""
    directory.mkdir(parents=True, exist_ok=True)
    lines = [f"# {name}", "", "## Steps"] + [f"- {step}" for step in steps]
    path = directory / f"{name}.md"
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep environment overrides and global observers out of each test."""
    monkeypatch.delenv("ISSUE_CARDS_DIR", raising=False)
    monkeypatch.delenv("ISSUE_CARDS_ROOT", raising=False)
    issue_events.clear()
    performance_monitor.clear()
    yield
    issue_events.clear()
    performance_monitor.clear()


@pytest.fixture
def make_tag_template():
    return write_tag_template


@pytest.fixture
def tag_dir(tmp_path):
    """A tag template directory holding a simple unit-test template."""
    directory = tmp_path / "tags"
    write_tag_template(
        directory,
        "unit-test",
        ["Write failing tests for {{TASK}}", "Implement {{TASK}}", "Verify tests pass"],
    )
    return directory


@pytest.fixture
def store(tag_dir):
    return DirectoryTagTemplateStore(tag_dir)


@pytest.fixture
def engine(store):
    return IssueDocumentEngine(store)


@pytest.fixture
def sample_document():
    """A rendered issue with two open tasks."""
    return render_issue(
        "0001",
        "Login",
        problem="Users cannot log in.",
        approach="Add a form.",
        tasks=["Create form", "Wire up API"],
        instructions="Use TDD.",
    )
