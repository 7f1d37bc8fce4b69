"""Agent runtime - plan a command, run the tools in phase order, commit.

A run always comes back as an :class:`AgentResult`. A failing tool is
recorded and the plan continues; only authorization and durable-store
failures escape ``run``.
"""

from __future__ import annotations

import logging
import re
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

import pydantic

from ..domain.ats_scorer import ScoringEngine
from ..domain.design import Theme
from ..domain.document import resume_to_text
from ..domain.language import detect_language_async
from ..errors import AuthorizationError, StoreUnavailable, TailorError, ValidationError
from ..history import TimelineService
from ..models import (
    ActionRecord,
    AgentArtifacts,
    AgentResult,
    ChangeRecord,
    LanguageResult,
    RunInput,
    ScoreReport,
    ensure_resume,
    make_id,
)
from ..observability import AgentObserver
from ..tools.base import BaseTool, RunContext, ToolResult
from .auth import Authorizer, RequireUserAuthorizer
from .intents import TIMELINE_INTENTS
from .planner import Plan, PlannedStep, Planner

logger = logging.getLogger(__name__)

LanguageClassifier = Callable[[str], Awaitable[Optional[Dict[str, Any]]]]

SCORE_FALLBACK_PROMPT = "ATS score used a safe fallback due to a transient issue."
RENDER_FALLBACK_PROMPT = "Preview could not be rendered for this run; your edits were still saved."
SCRAPE_FALLBACK_PROMPT = "The job posting could not be fetched; the score ignores job keywords."
TIMELINE_PROMPT = "Undo, Redo and Compare work on saved versions; use the timeline to move between them."

FALLBACK_PROMPTS = {
    "ats.score": SCORE_FALLBACK_PROMPT,
    "layout.render": RENDER_FALLBACK_PROMPT,
    "job.scrape": SCRAPE_FALLBACK_PROMPT,
}
_TIMELINE_RE = re.compile(r"\b(?:undo|redo|compare)\b", re.IGNORECASE)


class AgentRuntime:
    """Runs one command end to end for one user."""

    def __init__(
        self,
        planner: Planner,
        tools: Dict[str, BaseTool],
        timeline: TimelineService,
        engine: ScoringEngine,
        authorizer: Optional[Authorizer] = None,
        default_layout: str = "modern",
        redact: bool = True,
        language_classifier: Optional[LanguageClassifier] = None,
    ):
        self.planner = planner
        self.tools = tools
        self.timeline = timeline
        self.engine = engine
        self.authorizer = authorizer or RequireUserAuthorizer()
        self.default_layout = default_layout
        self.redact = redact
        self.language_classifier = language_classifier
        self.last_observer: Optional[AgentObserver] = None

    async def run(self, run_input: Union[RunInput, Dict[str, Any]]) -> AgentResult:
        """Plan and execute *run_input*.

        Raises:
            AuthorizationError: before any state is touched.
            ValidationError: for a malformed input payload or resume.
            StoreUnavailable: when the history commit cannot be persisted.
        """
        request = _coerce_input(run_input)
        await self.authorizer.authorize(request.user_id)

        observer = AgentObserver(run_id=make_id("run"), redact=self.redact)
        self.last_observer = observer

        context = RunContext(
            user_id=request.user_id,
            command=request.command or "",
            resume=ensure_resume(request.resume_json),
            job_text=(request.job_description or "").strip(),
            theme=Theme(layout=self.default_layout),
        )

        plan = await self.planner.plan(
            context.command,
            resume=context.resume,
            job_text=context.job_text or None,
            job_url=request.job_url,
            design=request.design,
        )
        observer.log_plan(
            plan.intent,
            [step.action.to_record(step.source).model_dump() for step in plan.steps],
            plan.suggested,
        )

        actions: List[ActionRecord] = []
        diffs: List[ChangeRecord] = []
        failures: List[Dict[str, Any]] = []
        prompts: List[str] = []
        if not plan.suggestions_available:
            observer.log_error("suggestions", plan.suggestion_error or "Suggestion service unavailable")

        for step in plan.steps:
            result = await self._execute(step, context, observer)
            status = "ok" if result.success else "failed"
            actions.append(step.action.to_record(step.source, status=status, error=result.error))
            diffs.extend(result.changes)
            if not result.success:
                failures.append({"tool": step.action.tool, "error": result.error, "source": step.source})
            note = result.degraded or (None if result.success else FALLBACK_PROMPTS.get(step.action.tool))
            if note:
                _add_prompt(prompts, note)

        report = self._final_report(context, prompts)
        if _mentions_timeline(plan, context.command):
            _add_prompt(prompts, TIMELINE_PROMPT)

        language = await self._language(context)
        history_record = None
        if context.entry is not None:
            history_record = context.entry.to_dict()
            observer.log_commit(context.entry.id, context.entry.resume_version_id, context.entry.ats_score)

        stats = observer.get_run_stats()
        logger.info(
            "Run finished: intent=%s tools=%d failed=%d diffs=%d",
            plan.intent,
            stats["tool_calls"],
            stats["failed_tool_calls"],
            len(diffs),
        )
        return AgentResult(
            intent=plan.intent,
            actions=actions,
            diffs=diffs,
            artifacts=AgentArtifacts(
                resume_json=context.resume,
                preview_html=context.rendering.html if context.rendering else "",
                theme=context.theme.to_dict(),
                job=context.job,
            ),
            ats_report=report,
            history_record=history_record,
            ui_prompts=prompts,
            language=language,
            failures=failures,
        )

    async def _execute(self, step: PlannedStep, context: RunContext, observer: AgentObserver) -> ToolResult:
        action = step.action
        tool = self.tools.get(action.tool)
        if tool is None:
            observer.log_error("tool_missing", f"No tool registered for {action.tool}")
            return ToolResult(success=False, output="", error=f"No tool registered for {action.tool}")

        start_time = time.time()
        try:
            result = await tool.execute(context, action.args)
        except (AuthorizationError, StoreUnavailable) as e:
            observer.log_error(type(e).__name__, e.message, {"tool": action.tool})
            raise
        except TailorError as e:
            observer.log_error(type(e).__name__, e.message, {"tool": action.tool, "code": e.code})
            result = ToolResult(success=False, output="", error=e.message)
        except Exception as e:
            logger.exception("Tool %s crashed", action.tool)
            observer.log_error(type(e).__name__, str(e), {"tool": action.tool})
            result = ToolResult(success=False, output="", error=str(e) or type(e).__name__)

        duration_ms = (time.time() - start_time) * 1000
        observer.log_tool_call(
            action.tool,
            action.args.model_dump(),
            duration_ms,
            success=result.success,
            changes=len(result.changes),
        )
        return result

    def _final_report(self, context: RunContext, prompts: List[str]) -> ScoreReport:
        """The run's score report; a failed score step gets one retry, then a neutral report."""
        if context.report is not None:
            return context.report
        try:
            context.report = self.engine.score(context.resume, context.job_text, generate_quick_wins=False)
        except (TailorError, ValueError) as e:
            logger.warning("Scoring fallback used: %s", e)
            context.report = ScoreReport()
            _add_prompt(prompts, SCORE_FALLBACK_PROMPT)
        return context.report

    async def _language(self, context: RunContext) -> LanguageResult:
        return await detect_language_async(
            resume_to_text(context.resume),
            call_model=self.language_classifier,
        )


def _coerce_input(run_input: Union[RunInput, Dict[str, Any]]) -> RunInput:
    if isinstance(run_input, RunInput):
        return run_input
    try:
        return RunInput.model_validate(run_input)
    except pydantic.ValidationError as e:
        raise ValidationError("Invalid run input", {"errors": e.errors(include_url=False)}) from e


def _add_prompt(prompts: List[str], note: str) -> None:
    if note not in prompts:
        prompts.append(note)


def _mentions_timeline(plan: Plan, command: str) -> bool:
    return plan.intent in TIMELINE_INTENTS or bool(_TIMELINE_RE.search(command))
