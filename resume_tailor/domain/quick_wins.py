"""Template-based quick-win suggestions for the scoring engine.

Generation is deterministic for a given resume and job, and the result is
cached by content hash so repeated scoring returns the same list.
"""

from __future__ import annotations

import hashlib
import re
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..cache import TTLCache
from ..models import QuickWin
from .document import resume_to_text, skill_list

MAX_QUICK_WINS = 5

_ACTION_VERBS = (
    "achieved",
    "built",
    "delivered",
    "designed",
    "developed",
    "drove",
    "implemented",
    "improved",
    "increased",
    "launched",
    "led",
    "managed",
    "optimized",
    "reduced",
    "shipped",
    "streamlined",
)


def quick_win_cache_key(resume: Dict[str, Any], job_text: str, required_skills: Sequence[str]) -> str:
    """Hash of the normalized resume text, job title and required-skill list."""
    normalized_resume = " ".join(resume_to_text(resume).lower().split())
    return TTLCache.make_key(
        "quick_wins",
        normalized_resume,
        job_title(job_text),
        [skill.lower() for skill in required_skills],
    )


def build_quick_wins(
    resume: Dict[str, Any],
    job_text: str,
    missing: Sequence[Tuple[str, float]] = (),
    required_skills: Sequence[str] = (),
    subscores: Optional[Dict[str, int]] = None,
    cache: Optional[TTLCache] = None,
) -> List[QuickWin]:
    """Return up to :data:`MAX_QUICK_WINS` suggestions ordered by impact."""
    key = quick_win_cache_key(resume, job_text, required_skills)
    if cache is not None:
        cached = cache.get(key)
        if cached is not None:
            return list(cached)

    wins = _generate(resume, job_text, missing, required_skills, subscores or {})
    if cache is not None:
        cache.set(key, tuple(wins))
    return wins


def job_title(job_text: str) -> str:
    """First non-empty line of the job text, used as the job title."""
    for line in (job_text or "").splitlines():
        stripped = line.strip(" \t-#*")
        if stripped:
            return stripped[:120]
    return ""


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


def _generate(
    resume: Dict[str, Any],
    job_text: str,
    missing: Sequence[Tuple[str, float]],
    required_skills: Sequence[str],
    subscores: Dict[str, int],
) -> List[QuickWin]:
    candidates: List[QuickWin] = []
    resume_text = resume_to_text(resume).lower()

    for skill in required_skills:
        if skill.lower() not in resume_text:
            candidates.append(
                _win(
                    f"Add '{skill}' to your technical skills if you have used it",
                    impact=8.0,
                    category="keywords",
                    keywords=[skill],
                )
            )

    for keyword, impact in list(missing)[:3]:
        candidates.append(
            _win(
                f"Mention '{keyword}' in a relevant experience bullet",
                impact=impact,
                category="keywords",
                keywords=[keyword],
            )
        )

    if subscores.get("metrics_presence", 0) < 50:
        candidates.append(
            _win(
                "Quantify at least one achievement per role (e.g. 'cut build time by 30%')",
                impact=6.0,
                category="metrics",
            )
        )

    title = job_title(job_text)
    summary = str(resume.get("summary") or "")
    if not summary.strip():
        candidates.append(_win("Add a two-sentence summary aimed at this role", impact=5.0, category="content"))
    elif title and title.lower() not in summary.lower():
        candidates.append(
            _win(f"Reference the target role '{title}' in your summary", impact=4.0, category="content")
        )

    weak = _weak_bullets(resume)
    if weak:
        candidates.append(
            _win(
                f"Start {weak} bullet(s) with a strong action verb such as Led, Built or Delivered",
                impact=3.0,
                category="content",
            )
        )

    if not skill_list(resume, "technical"):
        candidates.append(_win("Add a technical skills list", impact=5.0, category="structure"))

    unique: Dict[str, QuickWin] = {}
    for win in candidates:
        unique.setdefault(win.id, win)
    ranked = sorted(unique.values(), key=lambda win: (-win.impact, win.id))
    return ranked[:MAX_QUICK_WINS]


def _win(text: str, impact: float, category: str, keywords: Optional[List[str]] = None) -> QuickWin:
    digest = hashlib.sha1(text.encode("utf-8")).hexdigest()[:10]
    return QuickWin(
        id=f"qw_{digest}",
        text=text,
        impact=round(float(impact), 1),
        category=category,
        quick_win=True,
        keywords=keywords or [],
    )


def _weak_bullets(resume: Dict[str, Any]) -> int:
    count = 0
    for item in resume.get("experience") or []:
        if not isinstance(item, dict):
            continue
        for bullet in item.get("achievements") or []:
            if not isinstance(bullet, str) or not bullet.strip():
                continue
            first = re.split(r"\s+", bullet.strip(), maxsplit=1)[0].lower()
            if first not in _ACTION_VERBS:
                count += 1
    return count
