"""Rule-based planner with optional advisory suggestions.

The rule parser is the source of truth: every recognized instruction in the
command becomes exactly one typed action. A suggestion service may add a
few more, but only after they decode against the tool vocabulary, and the
plan never depends on it answering.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..domain.design import DENSITIES, LAYOUTS, SPACINGS, normalize_color
from ..errors import DependencyUnavailable, ValidationError
from ..retry import with_timeout
from ..tools.args import (
    MAX_SKILLS_PER_ACTION,
    CommitArgs,
    RenderArgs,
    ScrapeArgs,
    SkillsAddArgs,
    StrengthenArgs,
    ThemeArgs,
)
from .actions import (
    MANDATORY_TOOLS,
    Action,
    CommitAction,
    JobScrapeAction,
    RenderAction,
    ScoreAction,
    SkillsAddAction,
    SkillsOptimizeAction,
    StrengthenAction,
    ThemeAction,
    decode_action,
)
from .intents import detect_intent
from .suggestions import NoopSuggestionService, SuggestionRequest, SuggestionService

logger = logging.getLogger(__name__)

MIN_SUGGESTED_ACTIONS = 2
MAX_SUGGESTED_ACTIONS = 5
_MAX_NOTE_CHARS = 200

_SKILLS_RE = re.compile(r"\b(?:add|include)\s+skills?\s*:\s*([^;\n]+)", re.IGNORECASE)
_SKILL_SPLIT_RE = re.compile(r",|\band\b", re.IGNORECASE)
_STRENGTHEN_RE = re.compile(
    r"\b(?:strengthen|rewrite|improve)\b(?:\s+(?:my|the))?(?:\s+(summary|experience|skills))?",
    re.IGNORECASE,
)
_OPTIMIZE_RE = re.compile(r"\b(?:optimi[sz]e|tailor)\b|\bats\b", re.IGNORECASE)
_FONT_RE = re.compile(
    r"\bfont(?:\s+(?:family|to))*\s+(?!colou?r\b)([A-Za-z][A-Za-z0-9\- ]*?)(?=\s*(?:[,;.]|\band\b|\bwith\b|\bcolou?r\b|$))",
    re.IGNORECASE,
)
_COLOR_RE = re.compile(
    r"\bcolou?r\s+(?:to\s+)?(#[0-9A-Fa-f]{6}\b|#[0-9A-Fa-f]{3}\b|[0-9A-Fa-f]{6}\b|[A-Za-z]+)",
    re.IGNORECASE,
)
_RTL_RE = re.compile(r"\b(?:rtl|right[- ]to[- ]left)\b", re.IGNORECASE)
_LTR_RE = re.compile(r"\b(?:ltr|left[- ]to[- ]right)\b", re.IGNORECASE)


def _choice_re(noun: str, values: Tuple[str, ...]) -> re.Pattern:
    options = "|".join(values)
    return re.compile(
        rf"\b({options})\s+{noun}\b|\b{noun}\s+(?:to\s+)?({options})\b",
        re.IGNORECASE,
    )


_LAYOUT_RE = _choice_re("layout", LAYOUTS)
_SPACING_RE = _choice_re("spacing", SPACINGS)
_DENSITY_RE = _choice_re("density", DENSITIES)


@dataclass(frozen=True)
class PlannedStep:
    action: Action
    source: str = "rule"


@dataclass
class Plan:
    intent: str
    steps: List[PlannedStep] = field(default_factory=list)
    suggested: int = 0
    suggestions_available: bool = True
    suggestion_error: Optional[str] = None

    @property
    def tools(self) -> List[str]:
        return [step.action.tool for step in self.steps]


class Planner:
    """Builds a phase-ordered plan from a command."""

    def __init__(
        self,
        suggestions: Optional[SuggestionService] = None,
        min_suggested: int = MIN_SUGGESTED_ACTIONS,
        max_suggested: int = MAX_SUGGESTED_ACTIONS,
        suggestion_timeout_seconds: float = 8.0,
    ):
        self.suggestions = suggestions or NoopSuggestionService()
        self.min_suggested = min_suggested
        self.max_suggested = max_suggested
        self.suggestion_timeout_seconds = suggestion_timeout_seconds

    async def plan(
        self,
        command: str,
        resume: Optional[Dict[str, Any]] = None,
        job_text: Optional[str] = None,
        job_url: Optional[str] = None,
        design: Optional[Dict[str, Any]] = None,
    ) -> Plan:
        intent = detect_intent(command)
        rules = parse_command(command, job_url=job_url, has_job_text=bool(job_text), design=design)

        raw, error = await self._suggest(SuggestionRequest(command=command, resume=resume, job_text=job_text))
        suggested = merge_suggestions(rules, raw, self.min_suggested, self.max_suggested)

        steps = [PlannedStep(action, "rule") for action in rules]
        steps += [PlannedStep(action, "suggestion") for action in suggested]
        steps.sort(key=lambda step: step.action.phase)
        return Plan(
            intent=intent,
            steps=steps,
            suggested=len(suggested),
            suggestions_available=error is None,
            suggestion_error=error,
        )

    async def _suggest(self, request: SuggestionRequest) -> Tuple[List[Dict[str, Any]], Optional[str]]:
        """Raw suggestions plus the reason they are missing, if they are."""
        try:
            raw = await with_timeout(
                self.suggestions.suggest(request),
                self.suggestion_timeout_seconds,
                "Suggestion service",
            )
        except DependencyUnavailable as e:
            logger.warning("Suggestions unavailable, using rule plan only: %s", e.message)
            return [], e.message
        except Exception as e:
            # any service failure degrades to the rule plan
            logger.warning("Suggestion service failed (%s), using rule plan only: %s", type(e).__name__, e)
            return [], f"{type(e).__name__}: {e}"
        if not isinstance(raw, list):
            logger.warning("Suggestion service returned %s, ignoring", type(raw).__name__)
            return [], f"unexpected answer type {type(raw).__name__}"
        return raw, None


# ---------------------------------------------------------------------------
# Rule parser
# ---------------------------------------------------------------------------


def parse_command(
    command: str,
    job_url: Optional[str] = None,
    has_job_text: bool = False,
    design: Optional[Dict[str, Any]] = None,
) -> List[Action]:
    """Translate a command into typed actions; mandatory steps are always appended.

    Raises:
        ValidationError: when ``job_url`` is given but is not an http(s) URL.
    """
    command = command or ""
    actions: List[Action] = []

    if job_url and not has_job_text:
        actions.append(JobScrapeAction(args=_build(ScrapeArgs, job_url=job_url), rationale="Fetch job details"))

    skills = parse_skills(command)
    if skills:
        actions.append(SkillsAddAction(args=SkillsAddArgs(skills=skills), rationale="Add requested skills"))

    if _OPTIMIZE_RE.search(command):
        actions.append(SkillsOptimizeAction(rationale="Surface missing job keywords"))

    strengthen = _STRENGTHEN_RE.search(command)
    if strengthen:
        section = (strengthen.group(1) or "summary").lower()
        actions.append(
            StrengthenAction(args=StrengthenArgs(section=section), rationale=f"Strengthen {section}")
        )

    theme = _theme_args(command, design or {})
    if theme:
        actions.append(ThemeAction(args=ThemeArgs(**theme), rationale="Apply requested theme"))

    actions.append(RenderAction(args=RenderArgs(**_render_args(command, theme)), rationale="Render preview"))
    actions.append(ScoreAction(rationale="Compute ATS score"))
    actions.append(
        CommitAction(args=CommitArgs(notes=command.strip()[:_MAX_NOTE_CHARS] or None), rationale="Record run")
    )
    return actions


def parse_skills(command: str) -> List[str]:
    match = _SKILLS_RE.search(command or "")
    if not match:
        return []
    skills: List[str] = []
    seen = set()
    for part in _SKILL_SPLIT_RE.split(match.group(1)):
        skill = part.strip().rstrip(".").strip()
        if skill and skill.lower() not in seen:
            seen.add(skill.lower())
            skills.append(skill)
    return skills[:MAX_SKILLS_PER_ACTION]


def merge_suggestions(
    rules: List[Action],
    raw: List[Dict[str, Any]],
    min_count: int = MIN_SUGGESTED_ACTIONS,
    max_count: int = MAX_SUGGESTED_ACTIONS,
) -> List[Action]:
    """Decode suggestions and keep the ones that add something to *rules*.

    Undecodable items, mandatory tools, duplicates and a second scrape are
    dropped. At most *max_count* are kept; fewer than *min_count* survivors
    means none are used.
    """
    accepted: List[Action] = []
    seen = {action.signature() for action in rules}
    has_scrape = any(action.tool == "job.scrape" for action in rules)

    for item in raw:
        if len(accepted) >= max_count:
            break
        try:
            action = decode_action(item)
        except ValidationError as e:
            logger.info("Dropping suggestion: %s", e.message)
            continue
        if action.tool in MANDATORY_TOOLS:
            continue
        if action.tool == "job.scrape" and has_scrape:
            continue
        if action.signature() in seen:
            continue
        seen.add(action.signature())
        has_scrape = has_scrape or action.tool == "job.scrape"
        accepted.append(action)

    if len(accepted) < min_count:
        if accepted:
            logger.info("Discarding %d suggestions (minimum is %d)", len(accepted), min_count)
        return []
    return accepted


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


def _build(model, **values):
    """Construct an argument record, mapping pydantic errors onto ValidationError."""
    try:
        return model(**values)
    except ValueError as e:
        raise ValidationError(f"Invalid {model.__name__}", {"error": str(e)}) from e


def _theme_args(command: str, design: Dict[str, Any]) -> Dict[str, str]:
    theme = {
        key: str(design[key]).strip()
        for key in ThemeArgs.model_fields
        if isinstance(design.get(key), str) and design[key].strip()
    }

    font = _FONT_RE.search(command)
    if font:
        theme["font_family"] = font.group(1).strip()

    color = _COLOR_RE.search(command)
    if color:
        value = color.group(1)
        candidate = value if value.startswith("#") or not re.fullmatch(r"[0-9A-Fa-f]{6}", value) else f"#{value}"
        if normalize_color(candidate):
            theme["color_hex"] = candidate

    for key, pattern in (("layout", _LAYOUT_RE), ("spacing", _SPACING_RE), ("density", _DENSITY_RE)):
        match = pattern.search(command)
        if match:
            theme[key] = (match.group(1) or match.group(2)).lower()
    return theme


def _render_args(command: str, theme: Dict[str, str]) -> Dict[str, str]:
    args: Dict[str, str] = {}
    if theme.get("layout"):
        args["layout"] = theme["layout"]
    if _RTL_RE.search(command):
        args["direction"] = "rtl"
    elif _LTR_RE.search(command):
        args["direction"] = "ltr"
    return args
