"""Unit tests for the issue document engine."""

import pytest

from issuecards.document import IssueDocumentEngine, render_issue
from issuecards.errors import (
    InvalidContentError,
    NoCurrentTaskError,
    SectionNotFoundError,
    StructuralError,
    TagValidationError,
    TemplateNotFoundError,
    UserError,
)
from issuecards.models import Task, TagTemplate, TaskPosition


class FlakyStore:
    """A store whose template disappears after it has been validated."""

    def __init__(self):
        self.loads = 0

    def exists(self, name):
        return True

    def list_names(self):
        return ["unit-test"]

    def load(self, name):
        self.loads += 1
        if self.loads > 1:
            raise TemplateNotFoundError(name)
        return TagTemplate(name=name, steps=["{{TASK}}"], has_steps_section=True, has_placeholder=True)


class TestRenderIssue:
    """Test cases for rendering new issues."""

    def test_render_layout(self):
        """Test the persisted document layout."""
        document = render_issue("0007", "Fix bug", tasks=["One"])

        assert document == (
            "# Issue 0007: Fix bug\n\n"
            "## Problem to be solved\n\n"
            "## Planned approach\n\n"
            "## Failed approaches\n\n"
            "## Questions to resolve\n\n"
            "## Tasks\n- [ ] One\n\n"
            "## Instructions\n\n"
            "## Next steps\n"
        )

    def test_blank_tasks_are_dropped(self):
        """Test that empty task strings are not rendered."""
        document = render_issue("0001", "X", tasks=["One", "  ", "Two"])

        assert "## Tasks\n- [ ] One\n- [ ] Two\n\n" in document

    def test_render_failures_and_questions(self):
        """Test the starting failed approaches and questions."""
        document = render_issue("0001", "X", failed_approaches=["Polling"], questions=["Which queue"])

        assert "## Failed approaches\n### Failed attempt\n\nPolling\n\n**Reason:** Not specified\n\n" in document
        assert "## Questions to resolve\n- [ ] Which queue?\n\n" in document

    def test_render_rejects_section_headings(self):
        """Test that a field cannot add a section to the new issue."""
        with pytest.raises(InvalidContentError):
            render_issue("0001", "X", approach="Plan\n## Tasks\n- [ ] injected")


class TestReading:
    """Test cases for read operations."""

    def test_reads_do_not_change_the_document(self, engine, sample_document):
        """Test that reading twice gives the same answer."""
        original = str(sample_document)

        first = engine.get_tasks(sample_document)
        second = engine.get_tasks(sample_document)

        assert first == second
        assert engine.get_current_task(sample_document) == engine.get_current_task(sample_document)
        assert sample_document == original

    def test_current_task(self, engine, sample_document):
        """Test the first incomplete task is current."""
        assert engine.get_current_task(sample_document).text == "Create form"
        assert engine.get_current_task(render_issue("0002", "Empty")) is None


class TestAddTask:
    """Test cases for adding tasks."""

    def test_add_at_end(self, engine, sample_document):
        """Test appending a plain task."""
        result = engine.add_task(sample_document, "Deploy")

        assert [task.text for task in engine.get_tasks(result.document)] == ["Create form", "Wire up API", "Deploy"]
        assert result.added_tasks == ["Deploy"]
        assert result.position is TaskPosition.END
        assert not result.expanded

    def test_add_before_current(self, engine, sample_document):
        """Test inserting before the current task."""
        result = engine.add_task(sample_document, "Sketch UI", TaskPosition.BEFORE_CURRENT)

        assert [task.text for task in engine.get_tasks(result.document)] == ["Sketch UI", "Create form", "Wire up API"]
        assert engine.get_current_task(result.document).text == "Sketch UI"

    def test_add_after_current(self, engine, sample_document):
        """Test inserting after the current task."""
        result = engine.add_task(sample_document, "Style form", "after-current")

        assert [task.text for task in engine.get_tasks(result.document)] == ["Create form", "Style form", "Wire up API"]

    def test_positions_follow_completed_tasks(self, engine, sample_document):
        """Test that the current task moves past completed ones."""
        document = engine.complete_task(sample_document).document

        result = engine.add_task(document, "Mock API", "before-current")

        assert [task.text for task in engine.get_tasks(result.document)] == ["Create form", "Mock API", "Wire up API"]

    def test_relative_position_without_current_task(self, engine):
        """Test that relative positions fall back to the end of an empty list."""
        document = render_issue("0001", "Empty")

        result = engine.add_task(document, "First", "before-current")

        assert "## Tasks\n- [ ] First\n\n## Instructions" in result.document

    def test_add_expands_trailing_tag(self, engine, sample_document):
        """Test that a trailing tag expands into template steps."""
        result = engine.add_task(sample_document, "Add logout +unit-test")

        assert result.expanded
        assert result.added_tasks == [
            "Write failing tests for Add logout",
            "Implement Add logout",
            "Verify tests pass",
        ]
        assert "+unit-test" not in result.document

    def test_unknown_tag_rejected_before_any_change(self, engine, sample_document):
        """Test that tag validation fails the whole operation."""
        with pytest.raises(TagValidationError) as exc_info:
            engine.add_task(sample_document, "Add logout +bogus")

        assert exc_info.value.errors == ["Tag 'bogus' does not exist"]
        assert exc_info.value.to_dict()["validation_errors"] == ["Tag 'bogus' does not exist"]

    def test_mid_text_tag_is_literal(self, engine, sample_document):
        """Test that a non-trailing tag is kept as text."""
        result = engine.add_task(sample_document, "Use +bogus wording")

        assert result.added_tasks == ["Use +bogus wording"]

    def test_empty_text(self, engine, sample_document):
        """Test that blank tasks are rejected."""
        with pytest.raises(UserError, match="Task text cannot be empty"):
            engine.add_task(sample_document, "   ")

    def test_invalid_position(self, engine, sample_document):
        """Test that unknown positions are rejected."""
        with pytest.raises(UserError, match="Invalid task position"):
            engine.add_task(sample_document, "Deploy", "middle")

    def test_multiline_text(self, engine, sample_document):
        """Test that a task cannot smuggle in extra lines."""
        with pytest.raises(UserError, match="single line"):
            engine.add_task(sample_document, "Deploy\n## Instructions")

    def test_missing_tasks_section(self, engine):
        """Test adding to a document without a Tasks section."""
        with pytest.raises(StructuralError):
            engine.add_task("# Issue 0001: X\n\n## Problem to be solved\n", "Deploy")

    def test_expansion_failure_falls_back_to_literal_task(self, sample_document):
        """Test that a template vanishing after validation adds the literal task."""
        engine = IssueDocumentEngine(FlakyStore())

        result = engine.add_task(sample_document, "Add logout +unit-test")

        assert result.added_tasks == ["Add logout +unit-test"]
        assert not result.expanded
        assert len(result.warnings) == 1
        assert "could not be expanded" in result.warnings[0]
        assert "- [ ] Add logout +unit-test" in result.document


class TestCompleteTask:
    """Test cases for completing tasks."""

    def test_complete_current(self, engine, sample_document):
        """Test completing the current task."""
        result = engine.complete_task(sample_document)

        assert result.completed_text == "Create form"
        assert result.next_task.text == "Wire up API"
        assert not result.issue_completed
        assert result.context.previous_task == "Create form"
        assert "- [x] Create form" in result.document

    def test_complete_last(self, engine, sample_document):
        """Test completing the final task."""
        document = engine.complete_task(sample_document).document

        result = engine.complete_task(document)

        assert result.issue_completed
        assert result.next_task is None
        assert result.to_dict()["issue_completed"] is True

    def test_nothing_to_complete(self, engine):
        """Test completing when every task is done."""
        with pytest.raises(NoCurrentTaskError):
            engine.complete_task("## Tasks\n- [x] Done\n")

    def test_missing_tasks_section(self, engine):
        """Test completing in a document without a Tasks section."""
        with pytest.raises(StructuralError):
            engine.complete_task("# Issue 0001: X\n\n## Problem to be solved\n")


class TestNotes:
    """Test cases for notes, questions and failures."""

    def test_add_note(self, engine, sample_document):
        """Test adding a plain note."""
        updated = engine.add_note(sample_document, "approach", "Use OAuth.")

        assert "Add a form.\n\nUse OAuth.\n" in updated

    def test_add_note_unknown_section(self, engine, sample_document):
        """Test adding a note to a missing section."""
        with pytest.raises(SectionNotFoundError):
            engine.add_note(sample_document, "Appendix", "text")

    def test_add_question(self, engine, sample_document):
        """Test adding a question."""
        updated = engine.add_question(sample_document, "Which IdP")

        assert "## Questions to resolve\n- [ ] Which IdP?\n" in updated

    def test_log_failure(self, engine, sample_document):
        """Test logging a failed approach."""
        updated = engine.log_failure(sample_document, "Used cookies", "Blocked by browser")

        assert "### Failed attempt\n\nUsed cookies\n\n**Reason:** Blocked by browser" in updated

    def test_log_failure_without_reason(self, engine, sample_document):
        """Test the default reason."""
        updated = engine.log_failure(sample_document, "Used cookies")

        assert "**Reason:** Not specified" in updated


class TestTaskSteps:
    """Test cases for showing the steps of a task."""

    def test_tagged_task_expands(self, engine):
        """Test that a tagged task lists its template steps."""
        steps = engine.task_steps(Task(text="Add logout +unit-test", completed=False, index=0))

        assert steps == ["Write failing tests for Add logout", "Implement Add logout", "Verify tests pass"]

    def test_plain_task_is_itself(self, engine):
        """Test that an untagged task is its own single step."""
        assert engine.task_steps(Task(text="Deploy", completed=False, index=0)) == ["Deploy"]

    def test_unknown_tag_shows_literal_text(self, engine):
        """Test that a tag without a template falls back to the task as written."""
        task = Task(text="Add logout +bogus", completed=False, index=0)

        assert engine.task_steps(task) == ["Add logout +bogus"]
