"""Issue workflow commands.

Each command reads one issue file, runs a document operation on its text
and writes the whole file back. Results are dictionaries suitable for MCP
tool responses; user-facing failures come back as error dictionaries with
a suggestion instead of raising.
"""

from __future__ import annotations

import logging
from functools import wraps
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .context import extract_context
from .document import IssueDocumentEngine
from .errors import IssueCardsError, UserError
from .issue_logging import log_issue_event, log_operation, log_performance
from .models import IssueSummary, TaskPosition
from .sections import normalize_section_name
from .task_parser import extract_tasks
from .workspace import IssueWorkspace

logger = logging.getLogger("issuecards.workflow")


def _user_errors(step: str) -> Callable:
    """Turn IssueCardsError into an error result."""

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except IssueCardsError as e:
                logger.warning(f"{func.__name__} failed: {e.message}")
                result = e.to_dict()
                result["next_suggested_step"] = step
                return result

        return wrapper

    return decorator


class IssueWorkflow:
    """Run issue commands against a workspace."""

    def __init__(self, root: Path | str):
        self.workspace = IssueWorkspace(root)
        self.engine = IssueDocumentEngine(self.workspace.tag_store)

    def _update(self, issue: IssueSummary, operation: Callable[[str], Any]) -> Any:
        path = Path(issue.path)
        document = self.workspace.read_issue(path)
        result = operation(document)
        updated = result if isinstance(result, str) else result.document
        if updated != document:
            self.workspace.write_issue(path, updated)
        return result

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def init(self) -> Dict[str, Any]:
        installed = self.workspace.initialize()
        return {
            "issues_dir": str(self.workspace.base_dir),
            "installed_issue_templates": installed["issue"],
            "installed_tag_templates": installed["tag"],
            "next_suggested_step": "create_issue",
            "workflow_tip": "Next: Create an issue with create_issue, listing its tasks",
            "message": f"Issue tracking initialized. Installed {len(installed['issue'])} issue templates and {len(installed['tag'])} tag templates.",
        }

    @_user_errors("init_issues")
    def create_issue(
        self,
        title: str,
        problem: str = "",
        approach: str = "",
        tasks: Optional[List[str]] = None,
        instructions: str = "",
        next_steps: str = "",
        failed_approaches: Optional[List[str]] = None,
        questions: Optional[List[str]] = None,
        template: Optional[str] = None,
    ) -> Dict[str, Any]:
        issue = self.workspace.create_issue(
            title,
            problem=problem,
            approach=approach,
            failed_approaches=failed_approaches,
            questions=questions,
            tasks=tasks,
            instructions=instructions,
            next_steps=next_steps,
            template=template,
        )
        return {
            "issue": issue.to_dict(),
            "next_suggested_step": "get_current_task",
            "workflow_tip": "Next: Use get_current_task to start on the first task",
            "message": f"Created issue #{issue.number}: {issue.title}",
        }

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    @_user_errors("init_issues")
    def list_issues(self, state: str = "open") -> Dict[str, Any]:
        issues = self.workspace.list_issues(state)
        return {
            "issues": [issue.to_dict() for issue in issues],
            "count": len(issues),
            "message": f"Found {len(issues)} issues" if issues else "No issues found. Use create_issue to add one.",
        }

    @_user_errors("list_issues")
    def show_issue(self, issue_number: Optional[str] = None) -> Dict[str, Any]:
        issue = self.workspace.resolve_issue(issue_number)
        content = self.workspace.read_issue(Path(issue.path))
        tasks = extract_tasks(content)
        return {
            "issue": issue.to_dict(),
            "content": content,
            "tasks": [task.to_dict() for task in tasks],
            "remaining": sum(1 for task in tasks if not task.completed),
        }

    @_user_errors("create_issue")
    def current_task(self, issue_number: Optional[str] = None) -> Dict[str, Any]:
        issue = self.workspace.resolve_issue(issue_number)
        content = self.workspace.read_issue(Path(issue.path))
        task = self.engine.get_current_task(content)
        return {
            "issue": issue.to_dict(),
            "task": task.to_dict() if task else None,
            "expanded_steps": self.engine.task_steps(task) if task else [],
            "context": extract_context(content, task).to_dict() if task else None,
            "message": f"Current task: {task.text}" if task else "No open tasks in this issue.",
        }

    def list_tags(self) -> Dict[str, Any]:
        store = self.workspace.tag_store
        tags = []
        for name in store.list_names():
            template = store.load(name)
            tags.append({"name": name, "steps": template.steps, "errors": template.validate()})
        return {"tags": tags, "count": len(tags)}

    @_user_errors("init_issues")
    def list_templates(self, template_type: Optional[str] = None) -> Dict[str, Any]:
        """List issue and tag templates with their validation errors."""
        self.workspace.ensure_initialized()
        if template_type not in (None, "", "issue", "tag"):
            raise UserError(f"Invalid template type: {template_type}", hint="Use 'issue' or 'tag'")
        result: Dict[str, Any] = {}
        if template_type in (None, "", "issue"):
            store = self.workspace.issue_store
            result["issue"] = [{"name": name, "errors": store.validate(name)} for name in store.list_names()]
        if template_type in (None, "", "tag"):
            result["tag"] = self.list_tags()["tags"]
        result["message"] = "Use an issue template with create_issue(template=...) and a tag as a trailing +tag on a task"
        return result

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    @_user_errors("list_tags")
    @log_performance("add_task")
    def add_task(
        self,
        text: str,
        issue_number: Optional[str] = None,
        position: str = TaskPosition.END.value,
    ) -> Dict[str, Any]:
        issue = self.workspace.resolve_issue(issue_number)
        with log_operation("add_task", issue_number=issue.number, position=position):
            result = self._update(issue, lambda document: self.engine.add_task(document, text, position))
        log_issue_event("task_added", issue_number=issue.number, tasks=result.added_tasks)
        response = result.to_dict()
        response.update({
            "issue_number": issue.number,
            "next_suggested_step": "get_current_task",
            "workflow_tip": (
                f"Expanded into {len(result.added_tasks)} tasks" if result.expanded
                else "Add a trailing +tag to expand a task into template steps"
            ),
            "message": f"Task added to issue {issue.number} at position: {result.position.value}",
        })
        return response

    @_user_errors("show_issue")
    def add_note(self, text: str, section: str = "problem", issue_number: Optional[str] = None) -> Dict[str, Any]:
        issue = self.workspace.resolve_issue(issue_number)
        section_name = normalize_section_name(section)
        with log_operation("add_note", issue_number=issue.number, section=section_name):
            self._update(issue, lambda document: self.engine.add_note(document, section_name, text))
        log_issue_event("note_added", issue_number=issue.number, section=section_name)
        return {
            "issue_number": issue.number,
            "section": section_name,
            "message": f"Added note to {section_name} section of issue #{issue.number}",
        }

    @_user_errors("show_issue")
    def add_question(self, text: str, issue_number: Optional[str] = None) -> Dict[str, Any]:
        issue = self.workspace.resolve_issue(issue_number)
        with log_operation("add_question", issue_number=issue.number):
            self._update(issue, lambda document: self.engine.add_question(document, text))
        log_issue_event("question_added", issue_number=issue.number)
        return {"issue_number": issue.number, "message": f"Added question to issue #{issue.number}"}

    @_user_errors("show_issue")
    def log_failure(
        self,
        text: str,
        reason: Optional[str] = None,
        issue_number: Optional[str] = None,
    ) -> Dict[str, Any]:
        issue = self.workspace.resolve_issue(issue_number)
        with log_operation("log_failure", issue_number=issue.number):
            self._update(issue, lambda document: self.engine.log_failure(document, text, reason))
        log_issue_event("failure_logged", issue_number=issue.number)
        return {"issue_number": issue.number, "message": f"Logged failed approach to issue #{issue.number}"}

    @_user_errors("add_task")
    @log_performance("complete_task")
    def complete_task(self, issue_number: Optional[str] = None) -> Dict[str, Any]:
        """Complete the current task; close the issue when none remain."""
        issue = self.workspace.resolve_issue(issue_number)
        with log_operation("complete_task", issue_number=issue.number):
            result = self._update(issue, self.engine.complete_task)
        log_issue_event("task_completed", issue_number=issue.number, task=result.completed_text)

        response = result.to_dict()
        response["issue_number"] = issue.number
        if result.issue_completed:
            closed = self.workspace.close_issue(issue.number)
            response.update({
                "issue": closed.to_dict(),
                "next_suggested_step": "list_issues",
                "workflow_tip": "Next: Pick up another open issue or create a new one",
                "message": f"Completed: {result.completed_text}. All tasks complete! Issue has been closed.",
            })
        else:
            response.update({
                "next_suggested_step": "complete_task",
                "workflow_tip": "Log failed approaches with log_failure before moving on",
                "message": f"Completed: {result.completed_text}. Next task: {result.next_task.text}",
            })
        return response
