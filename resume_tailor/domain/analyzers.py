"""Resume analyzers for title alignment, recency and format safety.

Every analyzer returns an integer in ``[0, 100]``. None of them reads the
clock: recency is measured against the newest year written on the resume,
so a given document always scores the same.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Any, Dict, Iterator, List, Optional, Tuple

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

TITLE_NO_TARGET = 50
TITLE_NO_RESUME_TITLES = 20
LATEST_TITLE_BOOST = 10
SENIORITY_MISMATCH_PENALTY = 15

SENIORITY_LEVELS = {
    "entry": 1,
    "mid": 2,
    "senior": 3,
    "staff": 4,
    "principal": 5,
    "executive": 6,
}

RECENCY_NO_EXPERIENCE = 50
DECAY_START_YEARS = 3
DECAY_PER_YEAR = 0.1
MAX_DECAY = 0.5
LATEST_ROLE_KEYWORD_RATIO = 0.6
LATEST_ROLE_BOOST = 10
YEARS_PER_UNDATED_ROLE = 2
PRESENT_WORDS = frozenset({"present", "current", "now", "today", "כיום", "היום"})

TABLES_PENALTY = 20
IMAGES_PENALTY = 10
ODD_GLYPHS_PENALTY = 5

_TITLE_PATTERNS = (
    re.compile(r"(?:position|role|title|job)[ \t]*:[ \t]*([^\n]+)", re.IGNORECASE),
    re.compile(r"we are (?:looking for|hiring|seeking) (?:a|an)[ \t]+([^\n.,;]+)", re.IGNORECASE),
    re.compile(r"^[ \t]*([A-Z][a-z]+(?:[ \t]+[A-Z][a-z]+){1,4})[ \t]*$", re.MULTILINE),
)
_SENIORITY_MARKERS_RE = re.compile(r"\b(?:jr|sr|senior|junior|lead|staff|principal)\b")
_LEVEL_NUMERALS_RE = re.compile(r"\b(?:i|ii|iii|iv|v|1|2|3|4|5)\b")
_NON_WORD_RE = re.compile(r"[^\w\s]")
_YEAR_RE = re.compile(r"\b(?:19|20)\d{2}\b")
_IMAGE_RE = re.compile(r"!\[[^\]]*\]\(|<img\b", re.IGNORECASE)
_ODD_GLYPH_CATEGORIES = frozenset({"So", "Co", "Cs", "Cn"})


# ---------------------------------------------------------------------------
# Title alignment
# ---------------------------------------------------------------------------


def target_title(job_text: str) -> str:
    """The job title a posting advertises, or ``""``."""
    for pattern in _TITLE_PATTERNS:
        match = pattern.search(job_text or "")
        if match:
            return match.group(1).strip()[:120]
    return ""


def job_seniority(job_text: str) -> str:
    lower = (job_text or "").lower()
    if _has_any(lower, ("senior", "lead", "principal", "staff")):
        return "senior"
    if _has_any(lower, ("director", "vp", "vice president", "chief", "head of")):
        return "executive"
    if _has_any(lower, ("junior", "entry level", "entry-level", "graduate", "intern")):
        return "entry"
    return "mid"


def title_seniority(title: str) -> str:
    lower = title.lower()
    if _has_any(lower, ("principal", "director")):
        return "principal"
    if _has_any(lower, ("staff",)):
        return "staff"
    if _has_any(lower, ("lead", "senior", "sr")):
        return "senior"
    if _has_any(lower, ("junior", "jr", "entry")):
        return "entry"
    return "mid"


def normalize_title(title: str) -> str:
    """Lowercase, without seniority markers, level numerals or punctuation."""
    text = _SENIORITY_MARKERS_RE.sub(" ", title.lower())
    text = _LEVEL_NUMERALS_RE.sub(" ", text)
    text = _NON_WORD_RE.sub(" ", text)
    return " ".join(text.split())


def title_similarity(first: str, second: str) -> float:
    """Mean of edit similarity and token Jaccard over normalized titles."""
    a, b = normalize_title(first), normalize_title(second)
    if a == b:
        return 1.0
    tokens_a, tokens_b = set(a.split()), set(b.split())
    union = tokens_a | tokens_b
    jaccard = len(tokens_a & tokens_b) / len(union) if union else 0.0
    return 0.5 * edit_similarity(a, b) + 0.5 * jaccard


def title_alignment(resume: Dict[str, Any], job_text: str) -> int:
    """How closely the resume's titles match the advertised one.

    The best-matching title scores its similarity, plus a boost when it is
    the latest role and minus a penalty when its seniority is more than one
    level away from the posting's.
    """
    target = target_title(job_text)
    if not target:
        return TITLE_NO_TARGET
    titles = resume_titles(resume)
    if not titles:
        return TITLE_NO_RESUME_TITLES

    best_index, best_similarity = 0, -1.0
    for i, title in enumerate(titles):
        similarity = title_similarity(title, target)
        if similarity > best_similarity:
            best_index, best_similarity = i, similarity

    score = best_similarity * 100
    if best_index == 0:
        score = min(100.0, score + LATEST_TITLE_BOOST)
    if not seniority_matches(titles[best_index], job_seniority(job_text)):
        score = max(0.0, score - SENIORITY_MISMATCH_PENALTY)
    return round(score)


def seniority_matches(title: str, target_level: str) -> bool:
    resume_level = SENIORITY_LEVELS.get(title_seniority(title), 2)
    wanted = SENIORITY_LEVELS.get(target_level, 2)
    return abs(resume_level - wanted) <= 1


def resume_titles(resume: Dict[str, Any]) -> List[str]:
    """Experience titles, latest role first."""
    return [
        str(item["title"]).strip()
        for item in _roles(resume)
        if str(item.get("title") or "").strip()
    ]


def edit_similarity(a: str, b: str) -> float:
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1 - levenshtein(a, b) / longest


def levenshtein(a: str, b: str) -> int:
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, 1):
        current = [i]
        for j, char_b in enumerate(b, 1):
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + (char_a != char_b)))
        previous = current
    return previous[-1]


# ---------------------------------------------------------------------------
# Recency
# ---------------------------------------------------------------------------


def recency_fit(resume: Dict[str, Any], latest_role_ratio: Optional[float] = None) -> int:
    """Relevance of the latest role, discounted by how old the roles are.

    ``latest_role_ratio`` is the share of job keywords found in the latest
    role, or ``None`` when the job names none; then only age counts.
    """
    roles = _roles(resume)
    if not roles:
        return RECENCY_NO_EXPERIENCE

    if latest_role_ratio is None:
        base = 100.0
    else:
        base = latest_role_ratio * 100
        if latest_role_ratio >= LATEST_ROLE_KEYWORD_RATIO:
            base = min(100.0, base + LATEST_ROLE_BOOST)

    reference = reference_year(roles)
    decays = [decay_factor(years_ago(role, i, reference)) for i, role in enumerate(roles)]
    return round(min(100.0, base * sum(decays) / len(decays)))


def latest_role_text(resume: Dict[str, Any]) -> str:
    roles = _roles(resume)
    if not roles:
        return ""
    latest = roles[0]
    parts = [str(latest.get("title") or ""), str(latest.get("company") or "")]
    parts += [b for b in latest.get("achievements") or [] if isinstance(b, str)]
    return " ".join(part for part in parts if part)


def reference_year(roles: List[Dict[str, Any]]) -> Optional[int]:
    """The newest year written in any role's dates."""
    years = [
        int(match)
        for role in roles
        for key in ("startDate", "endDate")
        for match in _YEAR_RE.findall(str(role.get(key) or ""))
    ]
    return max(years) if years else None


def years_ago(role: Dict[str, Any], index: int, reference: Optional[int]) -> int:
    end = str(role.get("endDate") or "").strip()
    if end and end.lower() not in PRESENT_WORDS:
        years = _YEAR_RE.findall(end)
        if years and reference is not None:
            return max(0, reference - int(years[-1]))
    if index == 0:
        return 0
    return index * YEARS_PER_UNDATED_ROLE


def decay_factor(age_years: int) -> float:
    if age_years <= DECAY_START_YEARS:
        return 1.0
    return 1.0 - min(MAX_DECAY, (age_years - DECAY_START_YEARS) * DECAY_PER_YEAR)


# ---------------------------------------------------------------------------
# Format safety
# ---------------------------------------------------------------------------


def format_parseability(resume: Dict[str, Any]) -> Tuple[int, List[str]]:
    """Format safety score and the issues that lowered it.

    Only what a JSON document can show is checked: embedded tables, image
    references and symbol glyphs that parsers tend to drop.
    """
    texts = list(_strings(resume))
    score = 100
    issues: List[str] = []
    if any("<table" in text.lower() or text.count("|") >= 3 for text in texts):
        score -= TABLES_PENALTY
        issues.append("Replace tables with plain lists; ATS parsers often scramble them")
    if any(_IMAGE_RE.search(text) for text in texts):
        score -= IMAGES_PENALTY
        issues.append("Remove images; ATS parsers ignore them")
    if any(has_odd_glyphs(text) for text in texts):
        score -= ODD_GLYPHS_PENALTY
        issues.append("Replace symbols and emoji with plain text")
    return max(0, min(100, score)), issues


def has_odd_glyphs(text: str) -> bool:
    return any(unicodedata.category(char) in _ODD_GLYPH_CATEGORIES for char in text)


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


def _roles(resume: Dict[str, Any]) -> List[Dict[str, Any]]:
    return [item for item in resume.get("experience") or [] if isinstance(item, dict)]


def _has_any(text: str, words: Tuple[str, ...]) -> bool:
    return any(re.search(rf"\b{re.escape(word)}\b", text) for word in words)


def _strings(value: Any) -> Iterator[str]:
    if isinstance(value, str):
        yield value
    elif isinstance(value, dict):
        for item in value.values():
            yield from _strings(item)
    elif isinstance(value, list):
        for item in value:
            yield from _strings(item)
