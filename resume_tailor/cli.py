"""CLI - Command line interface for Resume Tailor."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from .config import DEFAULT_CONFIG_PATH, load_config
from .domain.ats_scorer import format_score_report
from .errors import TailorError
from .factory import TailorApp, build_app
from .history import TimelineTransition
from .models import AgentResult, TimelineEntry, ensure_resume
from .observability import configure_logging

console = Console()


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def print_result(result: AgentResult):
    """Print an agent run: plan, diffs, score and any prompts."""
    actions = Table(title=f"Plan ({result.intent})")
    actions.add_column("Tool")
    actions.add_column("Source")
    actions.add_column("Status")
    actions.add_column("Note", overflow="fold")
    for action in actions_rows(result):
        actions.add_row(*action)
    console.print(actions)

    if result.diffs:
        diffs = Table(title="Changes")
        diffs.add_column("Pointer")
        diffs.add_column("Before", overflow="fold")
        diffs.add_column("After", overflow="fold")
        for change in result.diffs:
            diffs.add_row(change.pointer or "-", change.before or "", change.after or "")
        console.print(diffs)
    else:
        console.print("No content changes.", style="dim")

    console.print(Markdown(format_score_report(result.ats_report)))

    if result.history_record:
        record = result.history_record
        console.print(
            f"Saved entry [bold]{record['id']}[/bold] (version {record['resume_version_id']})",
            style="green",
        )
    for prompt in result.ui_prompts:
        console.print(Panel(prompt, style="yellow"))


def actions_rows(result: AgentResult) -> List[List[str]]:
    rows = []
    for action in result.actions:
        note = action.error if action.status == "failed" else action.rationale
        rows.append([action.tool, action.source, action.status, note or ""])
    return rows


def print_transition(transition: TimelineTransition):
    if not transition.changed:
        console.print(f"Nothing changed ({transition.reason}).", style="yellow")
        return
    current = transition.current
    if current is None:
        console.print("Timeline is now before the first saved version.", style="green")
    else:
        console.print(f"Current version: [bold]{current.resume_version_id}[/bold] ({current.created_at})")


def print_timeline(past: List[TimelineEntry], current: Optional[TimelineEntry], future: List[TimelineEntry]):
    table = Table(title="Timeline")
    table.add_column("")
    table.add_column("Entry")
    table.add_column("Version")
    table.add_column("Score")
    table.add_column("Created")
    table.add_column("Notes", overflow="fold")

    def add(entry: TimelineEntry, marker: str):
        score = "-" if entry.ats_score is None else str(entry.ats_score)
        table.add_row(marker, entry.id, entry.resume_version_id, score, entry.created_at, entry.notes or "")

    for entry in past:
        add(entry, " ")
    if current is not None:
        add(current, "*")
    for entry in future:
        add(entry, "~")
    console.print(table)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def cmd_run(app: TailorApp, args) -> int:
    payload: Dict[str, Any] = {
        "userId": args.user,
        "command": args.prompt,
        "resume_json": read_json(args.resume) if args.resume else None,
        "job_url": args.job_url,
        "job_description": read_text(args.job_file) if args.job_file else None,
    }
    result = await app.runtime.run(payload)
    print_result(result)

    if args.out:
        Path(args.out).write_text(json.dumps(result.artifacts.resume_json, indent=2, ensure_ascii=False), encoding="utf-8")
        console.print(f"Resume written to {args.out}", style="dim")
    if args.html and result.artifacts.preview_html:
        Path(args.html).write_text(result.artifacts.preview_html, encoding="utf-8")
        console.print(f"Preview written to {args.html}", style="dim")
    return 1 if result.failures else 0


async def cmd_score(app: TailorApp, args) -> int:
    resume = ensure_resume(read_json(args.resume))
    job_text = read_text(args.job_file) if args.job_file else ""
    report = app.engine.score(resume, job_text, generate_quick_wins=args.quick_wins)
    console.print(Markdown(format_score_report(report)))
    for win in report.quick_wins:
        console.print(f"- {win.text} (+{win.impact})")
    return 0


async def cmd_undo(app: TailorApp, args) -> int:
    if args.to:
        transition = await app.timeline.undo_to(args.user, args.to)
    else:
        transition = await app.timeline.undo(args.user)
    print_transition(transition)
    await write_current_version(app, transition, args.out)
    return 0


async def cmd_redo(app: TailorApp, args) -> int:
    transition = await app.timeline.redo(args.user)
    print_transition(transition)
    await write_current_version(app, transition, args.out)
    return 0


async def cmd_timeline(app: TailorApp, args) -> int:
    snapshot = await app.timeline.get_timeline(args.user)
    if args.json:
        console.print_json(json.dumps(snapshot.to_dict()))
    else:
        print_timeline(list(snapshot.past), snapshot.current, list(snapshot.future))
    return 0


async def cmd_clear(app: TailorApp, args) -> int:
    await app.timeline.clear_timeline(args.user)
    console.print(f"Timeline cleared for {args.user}.", style="green")
    return 0


COMMANDS = {
    "run": cmd_run,
    "score": cmd_score,
    "undo": cmd_undo,
    "redo": cmd_redo,
    "timeline": cmd_timeline,
    "clear": cmd_clear,
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def read_json(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def read_text(path: str) -> str:
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


async def write_current_version(app: TailorApp, transition: TimelineTransition, out: Optional[str]):
    if not out or not transition.changed or transition.current is None:
        return
    version = await app.timeline.get_version(transition.current.resume_version_id)
    if version is None:
        console.print("Version content is no longer stored.", style="yellow")
        return
    Path(out).write_text(json.dumps(version.resume_json, indent=2, ensure_ascii=False), encoding="utf-8")
    console.print(f"Resume written to {out}", style="dim")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="resume-tailor",
        description="Resume Tailor - tailor a resume to a job posting with undoable edits",
    )
    parser.add_argument(
        "--config", "-c",
        default=DEFAULT_CONFIG_PATH,
        help="Path to configuration file",
    )
    parser.add_argument("--env-file", help="Optional .env file to load")
    parser.add_argument("--log-level", help="Override the configured log level")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Plan and apply a tailoring command")
    run.add_argument("--user", "-u", required=True, help="User id")
    run.add_argument("--prompt", "-p", required=True, help='Command, e.g. "add skills: Docker, Kubernetes"')
    run.add_argument("--resume", "-r", help="Resume JSON file")
    run.add_argument("--job-url", help="Job posting URL to fetch")
    run.add_argument("--job-file", help="File with the job description text")
    run.add_argument("--out", "-o", help="Write the edited resume JSON here")
    run.add_argument("--html", help="Write the rendered preview here")

    score = sub.add_parser("score", help="Score a resume against a job description")
    score.add_argument("--resume", "-r", required=True, help="Resume JSON file")
    score.add_argument("--job-file", help="File with the job description text")
    score.add_argument("--quick-wins", action="store_true", help="Include quick-win suggestions")

    undo = sub.add_parser("undo", help="Step back one saved version")
    undo.add_argument("--user", "-u", required=True, help="User id")
    undo.add_argument("--to", help="Undo until this resume version is current")
    undo.add_argument("--out", "-o", help="Write the now-current resume JSON here")

    redo = sub.add_parser("redo", help="Step forward one saved version")
    redo.add_argument("--user", "-u", required=True, help="User id")
    redo.add_argument("--out", "-o", help="Write the now-current resume JSON here")

    timeline = sub.add_parser("timeline", help="Show a user's timeline")
    timeline.add_argument("--user", "-u", required=True, help="User id")
    timeline.add_argument("--json", action="store_true", help="Print raw JSON")

    clear = sub.add_parser("clear", help="Clear a user's timeline")
    clear.add_argument("--user", "-u", required=True, help="User id")
    return parser


async def run_command(args) -> int:
    config = load_config(args.config, env_file=args.env_file)
    configure_logging(args.log_level or config.logging.level)

    app = build_app(config)
    await app.start()
    try:
        return await COMMANDS[args.command](app, args)
    finally:
        await app.close()


def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    args = build_parser().parse_args(argv)
    try:
        code = asyncio.run(run_command(args))
    except TailorError as e:
        console.print(f"❌ {e.code}: {e.message}", style="red")
        code = 2
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"❌ Error: {e}", style="red")
        code = 2
    sys.exit(code)


if __name__ == "__main__":
    main()
