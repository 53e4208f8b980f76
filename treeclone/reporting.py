from __future__ import annotations

from typing import TYPE_CHECKING

from rich.markup import escape

from treeclone.models import PathIssue

if TYPE_CHECKING:
    from rich.console import Console


def record_issue(
    issues: list[PathIssue],
    console: "Console | None",
    operation: str,
    path: object,
    exc: BaseException,
) -> PathIssue:
    message = getattr(exc, "strerror", None) or str(exc) or exc.__class__.__name__
    issue = PathIssue(operation=operation, path=str(path), message=message)
    issues.append(issue)
    report_issue(console, issue)
    return issue


def _printable(text: str) -> str:
    # Undecodable file name bytes arrive as lone surrogates; show them as escapes.
    return escape(text.encode("utf-8", "backslashreplace").decode("utf-8"))


def report_issue(console: "Console | None", issue: PathIssue) -> None:
    if console is None:
        return
    console.print(f"[red]Error during {_printable(issue.operation)}:[/red] {_printable(issue.message)}")


def report_progress(console: "Console | None", verbose: bool, message: str) -> None:
    if console is None or not verbose:
        return
    console.print(_printable(message))


def render_issue_summary(console: "Console", issues: list[PathIssue]) -> None:
    if not issues:
        return
    console.print(f"[red]Completed with {len(issues)} error(s):[/red]")
    for issue in issues:
        console.print(f"  {_printable(issue.path)}: {_printable(issue.message)}")
