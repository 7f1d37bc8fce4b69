"""Content tools - turn skill and strengthening requests into change records.

Each tool builds pointer-addressed :class:`ChangeRecord` values and hands
them to the document writer, so every edit is described, reversible via
history, and subject to the writer's no-deletion rule.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from ..domain.document import resume_to_text, skill_list
from ..domain.pointer import join_pointer
from ..domain.resume_writer import apply_changes
from ..domain.skills_miner import is_valid_skill, mine_skills
from ..models import ChangeCategory, ChangeRecord
from .args import SkillsAddArgs, SkillsOptimizeArgs, StrengthenArgs
from .base import BaseTool, RunContext, ToolResult

logger = logging.getLogger(__name__)

MAX_SURFACED_SKILLS = 5
SUMMARY_SKILLS = 3

WEAK_OPENERS = (
    ("responsible for", "Led"),
    ("worked on", "Built"),
    ("helped with", "Supported"),
    ("assisted with", "Supported"),
    ("involved in", "Contributed to"),
    ("participated in", "Contributed to"),
    ("tasked with", "Delivered"),
    ("helped", "Supported"),
)

_IRREGULAR_PAST = {
    "build": "built",
    "lead": "led",
    "run": "ran",
    "write": "wrote",
    "make": "made",
    "drive": "drove",
    "teach": "taught",
    "bring": "brought",
    "set": "set",
}
_GERUND_RE = re.compile(r"^([A-Za-z]+)ing\b")


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


class SkillsAddTool(BaseTool):
    """Append explicitly requested skills to the technical skills list."""

    name = "skills.add"
    description = "Add the given skills to the resume's technical skills, skipping ones already listed."
    args_model = SkillsAddArgs

    async def execute(self, context: RunContext, args: SkillsAddArgs) -> ToolResult:
        records = skill_records(context.resume, args.skills, confidence="high", reason="Requested by user")
        return _apply(context, records, "skills")


class SkillsOptimizeTool(BaseTool):
    """Add the top job keywords the resume is missing."""

    name = "skills.optimize"
    description = "Add up to `limit` missing job-description keywords to the technical skills list."
    args_model = SkillsOptimizeArgs

    async def execute(self, context: RunContext, args: SkillsOptimizeArgs) -> ToolResult:
        if not context.job_text.strip():
            return ToolResult(success=True, output="No job text available; nothing to optimize")
        mined = mine_skills(context.resume, context.job_text)
        candidates = [phrase for phrase in mined.missing if is_valid_skill(phrase)][: args.limit]
        records = skill_records(context.resume, candidates, confidence="medium", reason="Missing job keyword")
        return _apply(context, records, "job keywords")


class StrengthenContentTool(BaseTool):
    """Deterministic strengthening of the summary, experience bullets, or skills list."""

    name = "content.strengthen"
    description = "Strengthen one section: summary, experience, or skills."
    args_model = StrengthenArgs

    async def execute(self, context: RunContext, args: StrengthenArgs) -> ToolResult:
        if args.section == "summary":
            records = summary_records(context.resume, context.job_text)
        elif args.section == "experience":
            records = experience_records(context.resume)
        else:
            records = surfaced_skill_records(context.resume, context.job_text)
        return _apply(context, records, f"{args.section} edits")


# ---------------------------------------------------------------------------
# Record builders
# ---------------------------------------------------------------------------


def skill_records(
    resume: Dict[str, Any],
    skills: List[str],
    confidence: str = "medium",
    reason: str = "",
) -> List[ChangeRecord]:
    """One append record per skill not already listed (case-insensitive)."""
    listed = {skill.lower() for skill in skill_list(resume, "technical")}
    records: List[ChangeRecord] = []
    for skill in skills:
        if skill.lower() in listed:
            continue
        listed.add(skill.lower())
        records.append(
            ChangeRecord(
                summary=f"Add skill: {skill}",
                scope="bullet",
                category=ChangeCategory.CONTENT,
                confidence=confidence,
                after=skill,
                rationale=reason or None,
                metadata={"pointer": "/skills/technical/-"},
            )
        )
    return records


def summary_records(resume: Dict[str, Any], job_text: str = "") -> List[ChangeRecord]:
    before = str(resume.get("summary") or "")
    skills = _prioritized_skills(resume, job_text)

    if not before.strip():
        title = _latest_title(resume)
        if not title and not skills:
            return []
        lead = title or "Professional"
        after = f"{lead} experienced in {_join(skills[:SUMMARY_SKILLS])}." if skills else f"{lead}."
    else:
        absent = [s for s in skills if s.lower() not in before.lower()][:SUMMARY_SKILLS]
        if not absent:
            return []
        after = f"{before.rstrip()}{'' if before.rstrip().endswith('.') else '.'} Skilled in {_join(absent)}."

    return [
        ChangeRecord(
            summary="Strengthen summary",
            scope="paragraph",
            category=ChangeCategory.CONTENT,
            confidence="medium",
            before=before,
            after=after,
            rationale="Lead with role and the most relevant skills",
            metadata={"pointer": "/summary"},
        )
    ]


def experience_records(resume: Dict[str, Any]) -> List[ChangeRecord]:
    records: List[ChangeRecord] = []
    for i, item in enumerate(resume.get("experience") or []):
        if not isinstance(item, dict):
            continue
        for j, bullet in enumerate(item.get("achievements") or []):
            if not isinstance(bullet, str):
                continue
            stronger = strengthen_bullet(bullet)
            if stronger is None:
                continue
            records.append(
                ChangeRecord(
                    summary="Open bullet with an action verb",
                    scope="bullet",
                    category=ChangeCategory.CONTENT,
                    confidence="medium",
                    before=bullet,
                    after=stronger,
                    metadata={"pointer": join_pointer("experience", i, "achievements", j)},
                )
            )
    return records


def surfaced_skill_records(resume: Dict[str, Any], job_text: str = "") -> List[ChangeRecord]:
    """Skills the resume already mentions in prose but does not list."""
    text = resume_to_text(resume).lower()
    listed = {skill.lower() for skill in skill_list(resume, "technical")}
    mined = mine_skills(resume, job_text)
    candidates = [
        phrase
        for phrase in mined.keywords
        if phrase.lower() not in listed and phrase.lower() in text and is_valid_skill(phrase)
    ]
    return skill_records(resume, candidates[:MAX_SURFACED_SKILLS], reason="Mentioned in experience")


def strengthen_bullet(bullet: str) -> Optional[str]:
    """Rewrite a weak opener ("Responsible for ...") into an action verb, or ``None``."""
    stripped = bullet.strip()
    lowered = stripped.lower()
    for weak, strong in WEAK_OPENERS:
        if not re.match(rf"{re.escape(weak)}\b", lowered):
            continue
        rest = stripped[len(weak):].lstrip()
        if not rest:
            return None
        gerund = _GERUND_RE.match(rest)
        if gerund:
            verb = _past_tense(gerund.group(1).lower())
            return verb.capitalize() + rest[gerund.end():]
        return f"{strong} {rest}"
    return None


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


def _apply(context: RunContext, records: List[ChangeRecord], label: str) -> ToolResult:
    if not records:
        return ToolResult(success=True, output=f"No {label} to apply")
    outcome = apply_changes(context.resume, records)
    context.resume = outcome.document
    applied = set(outcome.applied)
    changes = [record for record in records if record.id in applied]
    if outcome.skipped:
        logger.info("Skipped %d of %d %s", len(outcome.skipped), len(records), label)
    return ToolResult(
        success=True,
        output=f"Applied {len(changes)} {label}",
        data={"applied": len(changes), "skipped": outcome.skipped},
        changes=changes,
    )


def _prioritized_skills(resume: Dict[str, Any], job_text: str) -> List[str]:
    """Technical skills, with the ones the job mentions first."""
    skills = skill_list(resume, "technical")
    if not job_text:
        return skills
    job_lower = job_text.lower()
    ranked: List[Tuple[int, int, str]] = [
        (0 if skill.lower() in job_lower else 1, i, skill) for i, skill in enumerate(skills)
    ]
    return [skill for _, _, skill in sorted(ranked)]


def _latest_title(resume: Dict[str, Any]) -> str:
    for item in resume.get("experience") or []:
        if isinstance(item, dict) and str(item.get("title") or "").strip():
            return str(item["title"]).strip()
    return ""


def _join(items: List[str]) -> str:
    if len(items) <= 1:
        return "".join(items)
    return ", ".join(items[:-1]) + f" and {items[-1]}"


def _past_tense(stem: str) -> str:
    if stem in _IRREGULAR_PAST:
        return _IRREGULAR_PAST[stem]
    if len(stem) > 2 and stem[-1] == stem[-2] and stem[-1] not in "aeiouls":
        return _IRREGULAR_PAST.get(stem[:-1], stem + "ed")
    if stem.endswith("e"):
        return stem + "d"
    return stem + "ed"
