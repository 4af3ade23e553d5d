"""Unit tests for tag template parsing and storage."""

import pytest

from issuecards.errors import InvalidTemplateError, TemplateNotFoundError
from issuecards.templates import (
    DEFAULT_ISSUE_TEMPLATES,
    DEFAULT_TAG_TEMPLATES,
    DirectoryIssueTemplateStore,
    DirectoryTagTemplateStore,
    parse_tag_template,
    render_issue_template,
    validate_issue_template,
)


class TestParseTagTemplate:
    """Test cases for tag template parsing."""

    def test_steps_are_read_from_steps_section_only(self):
        """Test that list items outside Steps are ignored."""
        content = "# unit-test\n\n## Steps\n- Write tests for {{TASK}}\n- Run them\n\n## Notes\n- ignored\n"

        template = parse_tag_template("unit-test", content)

        assert template.steps == ["Write tests for {{TASK}}", "Run them"]
        assert template.has_steps_section
        assert template.has_placeholder
        assert template.validate() == []

    def test_missing_steps_section(self):
        """Test a template without a Steps heading."""
        template = parse_tag_template("broken", "# broken\n\n- {{TASK}}\n")

        assert template.steps == []
        assert template.validate() == [
            "Template must have a Steps section",
            "Template must have a {{TASK}} placeholder in Steps",
        ]

    def test_missing_placeholder(self):
        """Test a template whose steps never mention the task."""
        template = parse_tag_template("broken", "## Steps\n- Do something\n")

        assert template.validate() == ["Template must have a {{TASK}} placeholder in Steps"]

    def test_legacy_placeholder(self):
        """Test that the full-line legacy placeholder counts."""
        template = parse_tag_template("legacy", "## Steps\n- [ACTUAL TASK GOES HERE]\n- Run tests\n")

        assert template.has_placeholder
        assert template.validate() == []


class TestDirectoryTagTemplateStore:
    """Test cases for the directory-backed template store."""

    def test_list_and_load(self, store):
        """Test listing and loading a template."""
        assert store.list_names() == ["unit-test"]
        assert store.exists("unit-test")

        template = store.load("unit-test")

        assert template.name == "unit-test"
        assert len(template.steps) == 3

    def test_load_missing(self, store):
        """Test loading a template that does not exist."""
        with pytest.raises(TemplateNotFoundError, match="Template not found: nope.md"):
            store.load("nope")

    def test_rejects_path_like_names(self, store):
        """Test that names cannot escape the directory."""
        assert not store.exists("../unit-test")
        assert not store.exists(".hidden")
        assert not store.exists("")

    def test_missing_directory(self, tmp_path):
        """Test a store whose directory does not exist yet."""
        assert DirectoryTagTemplateStore(tmp_path / "absent").list_names() == []

    def test_install_defaults(self, tmp_path):
        """Test installing the bundled templates once."""
        store = DirectoryTagTemplateStore(tmp_path / "tags")

        first = store.install_defaults()
        second = store.install_defaults()
        forced = store.install_defaults(overwrite=True)

        assert first == list(DEFAULT_TAG_TEMPLATES)
        assert second == []
        assert forced == list(DEFAULT_TAG_TEMPLATES)
        assert store.list_names() == sorted(DEFAULT_TAG_TEMPLATES)

    def test_install_defaults_keeps_edits(self, tmp_path, make_tag_template):
        """Test that a customised template is not overwritten."""
        directory = tmp_path / "tags"
        make_tag_template(directory, "unit-test", ["Custom {{TASK}}"])
        store = DirectoryTagTemplateStore(directory)

        store.install_defaults()

        assert store.load("unit-test").steps == ["Custom {{TASK}}"]

    @pytest.mark.parametrize("name", sorted(DEFAULT_TAG_TEMPLATES))
    def test_default_templates_are_valid(self, name):
        """Test that every bundled template passes validation."""
        assert parse_tag_template(name, DEFAULT_TAG_TEMPLATES[name]).validate() == []


class TestIssueTemplates:
    """Test cases for issue templates."""

    @pytest.fixture
    def issue_store(self, tmp_path):
        store = DirectoryIssueTemplateStore(tmp_path / "issue")
        store.install_defaults()
        return store

    @pytest.mark.parametrize("name", sorted(DEFAULT_ISSUE_TEMPLATES))
    def test_default_templates_are_valid(self, name):
        """Test that every bundled issue template passes validation."""
        assert validate_issue_template(DEFAULT_ISSUE_TEMPLATES[name]) == []

    def test_validate_reports_missing_parts(self):
        """Test the errors for a template missing a section and placeholders."""
        errors = validate_issue_template("# Issue {{NUMBER}}: {{TITLE}}\n\n## Tasks\n{{TASKS}}\n")

        assert "Missing required section: Problem to be solved" in errors
        assert "Missing required section: Tasks" not in errors
        assert "Missing variable placeholder: {{PROBLEM}}" in errors
        assert "Missing variable placeholder: {{TASKS}}" not in errors

    def test_render_collapses_empty_fields(self):
        """Test that empty fields leave one blank line between sections."""
        content = "# Issue {{NUMBER}}: {{TITLE}}\n\n## Problem to be solved\n{{PROBLEM}}\n\n## Tasks\n{{TASKS}}\n"

        rendered = render_issue_template(content, {"NUMBER": "0003", "TITLE": "Login", "PROBLEM": "", "TASKS": "- [ ] One"})

        assert rendered == "# Issue 0003: Login\n\n## Problem to be solved\n\n## Tasks\n- [ ] One\n"

    def test_render_keeps_unknown_placeholders(self):
        """Test that placeholders without a value are left as written."""
        rendered = render_issue_template("## Tasks\n{{TASKS}} {{OWNER}}\n", {"TASKS": "- [ ] One"})

        assert rendered == "## Tasks\n- [ ] One {{OWNER}}\n"

    def test_store_lists_defaults(self, issue_store):
        """Test that the bundled issue templates are installed."""
        assert issue_store.list_names() == ["audit", "bugfix", "feature", "refactor"]
        assert all(issue_store.validate(name) == [] for name in issue_store.list_names())

    def test_store_validate_missing(self, issue_store):
        """Test validating a template that does not exist."""
        assert issue_store.validate("epic") == ["Template not found"]

    def test_store_render_rejects_invalid_template(self, issue_store):
        """Test that a malformed template is not rendered."""
        (issue_store.directory / "bare.md").write_text("# {{TITLE}}\n", encoding="utf-8")

        with pytest.raises(InvalidTemplateError, match="Template 'bare' is invalid"):
            issue_store.render("bare", {"TITLE": "Login"})

    def test_store_render_missing(self, issue_store):
        """Test rendering a template that does not exist."""
        with pytest.raises(TemplateNotFoundError, match=r"epic.md \(issue\)"):
            issue_store.render("epic", {})
