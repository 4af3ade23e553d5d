"""MCP server exposing Issue Cards tools."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP

from issuecards import IssueWorkflow, IssueWorkspace
from issuecards.issue_logging import setup_logging

mcp = FastMCP("issue-cards")

ROOT_ENV = "ISSUE_CARDS_ROOT"
LOG_LEVEL_ENV = "ISSUE_CARDS_LOG_LEVEL"


def _candidate_bases() -> List[Path]:
    cwd = Path.cwd().resolve()
    return [cwd, *cwd.parents]


def _locate_workspace_root() -> Optional[Path]:
    for base in _candidate_bases():
        if IssueWorkspace(base).is_initialized():
            return base
    return None


def _resolve_root(root: Optional[str]) -> Path:
    if root:
        resolved = Path(root).expanduser().resolve()
        if not resolved.exists():
            raise ValueError(f"Provided root '{root}' does not exist.")
        return resolved

    env_root = os.getenv(ROOT_ENV)
    if env_root:
        env_path = Path(env_root).expanduser().resolve()
        if not env_path.exists():
            raise ValueError(
                f"Environment variable {ROOT_ENV} points to '{env_root}', which does not exist."
            )
        return env_path

    detected_root = _locate_workspace_root()
    if detected_root:
        return detected_root
    return Path.cwd().resolve()


def _workflow(root: Optional[str]) -> IssueWorkflow:
    return IssueWorkflow(_resolve_root(root))


@mcp.tool()
def init_issues(root: Optional[str] = None) -> Dict[str, Any]:
    """STEP 1: Create the .issues/ directory and install the default issue and tag templates."""
    return _workflow(root).init()


@mcp.tool()
def create_issue(
    title: str,
    problem: str = "",
    approach: str = "",
    tasks: Optional[List[str]] = None,
    instructions: str = "",
    next_steps: str = "",
    failed_approaches: Optional[List[str]] = None,
    questions: Optional[List[str]] = None,
    template: Optional[str] = None,
    root: Optional[str] = None,
) -> Dict[str, Any]:
    """STEP 2: Create a new issue. Tasks may end in +tag to expand later via add_task.
    template picks an issue template: feature, bugfix, refactor or audit (see list_templates)."""
    return _workflow(root).create_issue(
        title,
        problem=problem,
        approach=approach,
        tasks=tasks,
        instructions=instructions,
        next_steps=next_steps,
        failed_approaches=failed_approaches,
        questions=questions,
        template=template,
    )


@mcp.tool()
def list_issues(state: str = "open", root: Optional[str] = None) -> Dict[str, Any]:
    """List issues by state: 'open', 'closed' or 'all'."""
    return _workflow(root).list_issues(state)


@mcp.tool()
def show_issue(issue_number: Optional[str] = None, root: Optional[str] = None) -> Dict[str, Any]:
    """Show an issue's full document and task list; defaults to the current issue."""
    return _workflow(root).show_issue(issue_number)


@mcp.tool()
def get_current_task(issue_number: Optional[str] = None, root: Optional[str] = None) -> Dict[str, Any]:
    """Return the first incomplete task with the issue context needed to work on it."""
    return _workflow(root).current_task(issue_number)


@mcp.tool()
def add_task(
    description: str,
    issue_number: Optional[str] = None,
    position: str = "end",
    root: Optional[str] = None,
) -> Dict[str, Any]:
    """Add a task at 'end', 'before-current' or 'after-current'.
    A trailing +tag (for example 'Implement login +unit-test') expands into the tag template's steps."""
    return _workflow(root).add_task(description, issue_number=issue_number, position=position)


@mcp.tool()
def add_note(
    note: str,
    section: str = "problem",
    issue_number: Optional[str] = None,
    root: Optional[str] = None,
) -> Dict[str, Any]:
    """Add a plain note to a section: problem, approach, failed, questions, tasks, instructions, next-steps."""
    return _workflow(root).add_note(note, section=section, issue_number=issue_number)


@mcp.tool()
def add_question(question: str, issue_number: Optional[str] = None, root: Optional[str] = None) -> Dict[str, Any]:
    """Add a question to the Questions to resolve section."""
    return _workflow(root).add_question(question, issue_number=issue_number)


@mcp.tool()
def log_failure(
    approach: str,
    reason: Optional[str] = None,
    issue_number: Optional[str] = None,
    root: Optional[str] = None,
) -> Dict[str, Any]:
    """Record an approach that did not work, and why, under Failed approaches."""
    return _workflow(root).log_failure(approach, reason=reason, issue_number=issue_number)


@mcp.tool()
def complete_task(issue_number: Optional[str] = None, root: Optional[str] = None) -> Dict[str, Any]:
    """Mark the current task complete and return the next one; closes the issue after the last task."""
    return _workflow(root).complete_task(issue_number)


@mcp.tool()
def list_tags(root: Optional[str] = None) -> Dict[str, Any]:
    """List the tag templates available for task expansion."""
    return _workflow(root).list_tags()


@mcp.tool()
def list_templates(template_type: Optional[str] = None, root: Optional[str] = None) -> Dict[str, Any]:
    """List issue and tag templates; template_type narrows to 'issue' or 'tag'."""
    return _workflow(root).list_templates(template_type)


@mcp.resource("issue-cards://current")
def resource_current_task() -> str:
    """Resource view of the current task of the current issue."""

    result = _workflow(None).current_task()
    if "error" in result:
        return result["error"]
    if not result["task"]:
        return f"Issue #{result['issue']['number']} has no open tasks."
    lines = [
        f"Issue #{result['issue']['number']}: {result['issue']['title']}",
        "",
        f"Current task: {result['task']['text']}",
    ]
    if result["expanded_steps"] != [result["task"]["text"]]:
        lines.extend(["", "Steps:", *(f"- {step}" for step in result["expanded_steps"])])
    context = result["context"]
    if context["problem"]:
        lines.extend(["", "Problem:", context["problem"]])
    if context["approach"]:
        lines.extend(["", "Approach:", context["approach"]])
    if context["instructions"]:
        lines.extend(["", "Instructions:", context["instructions"]])
    return "\n".join(lines)


def main() -> None:
    setup_logging(os.getenv(LOG_LEVEL_ENV, "INFO"))
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
