"""Pure domain logic for ATS (Applicant Tracking System) compatibility scoring.

The overall score is the weighted share of job-description tokens that also
appear in the resume after normalization. Per-language sub-reports, named
sub-scores and deterministic recommendations explain the number, and the
``composite`` figure blends every sub-score with fixed weights.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from ..cache import TTLCache
from ..models import LanguageReport, ScoreReport
from .analyzers import format_parseability, latest_role_text, recency_fit, target_title, title_alignment
from .document import resume_to_text, skill_list
from .language import RTL_LANGUAGE_CODES, token_language
from .quick_wins import build_quick_wins
from .skills_miner import extract_skill_phrases, is_acronym

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MIN_LANGUAGE_TOKENS = 3
MAX_MISSING_KEYWORDS = 25

#: Extra weight for a job token that is part of a mined skill phrase.
PHRASE_BONUS = 1.0
#: Extra weight for a job token written as an acronym (``AWS``, ``SQL``).
ACRONYM_BONUS = 0.5

#: Composite weights; renormalized over the sub-scores actually computed.
SUBSCORE_WEIGHTS: Dict[str, float] = {
    "keyword_exact": 0.22,
    "keyword_phrase": 0.12,
    "title_alignment": 0.10,
    "metrics_presence": 0.10,
    "section_completeness": 0.08,
    "format_parseability": 0.14,
    "recency_fit": 0.08,
}
KEYWORD_SUBSCORES = ("keyword_exact", "keyword_phrase")
TITLE_RECOMMENDATION_THRESHOLD = 50

_STOP_WORDS = frozenset(
    """
    the and for are but not you all can had her was one our out has have been will with this
    that from they were which their about would there what also into more other than then them
    these some such only over very just being through during before after above below between
    under again further once here when where both each most same should could does doing while
    must work working looking seeking ability able including using strong excellent good great
    well team role position company join ideal candidate required preferred minimum years year
    experience plus who our your its per via etc any may
    """.split()
) | frozenset("של את עם על גם או זה זו כי אני הוא היא אשר לא כל יש עד אל בין מה".split())

SYNONYMS: Dict[str, str] = {
    "js": "javascript",
    "ts": "typescript",
    "py": "python",
    "k8s": "kubernetes",
    "postgres": "postgresql",
    "psql": "postgresql",
    "reactjs": "react",
    "react.js": "react",
    "nodejs": "node",
    "node.js": "node",
    "golang": "go",
    "tf": "terraform",
    "gke": "kubernetes",
    "mongo": "mongodb",
}

_TOKEN_RE = re.compile(r"[^\W\d_][\w+#]*(?:\.[^\W\d_][\w+#]*)*", re.UNICODE)
_HEBREW_PREFIXES = "ובהלמשכ"
_METRIC_RE = re.compile(r"\d+(?:[.,]\d+)?\s*(?:%|percent|[kKmMbB]\b|x\b)|[$€£₪]\s*\d|\b\d{2,}\b")

SECTION_CHECKS: Tuple[Tuple[str, str], ...] = (
    ("name", "Add your full name to the contact section"),
    ("email", "Add an email address so recruiters can reach you"),
    ("summary", "Add a short professional summary"),
    ("skills", "List your technical skills"),
    ("experience", "Add at least one experience entry"),
    ("education", "Add your education"),
)


@dataclass(frozen=True)
class Token:
    """A normalized token with the surface form it was read from."""

    surface: str
    norm: str
    lang: str


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


class ScoringEngine:
    """Computes :class:`ScoreReport` values; quick wins go through a shared cache."""

    def __init__(
        self,
        cache: Optional[TTLCache] = None,
        min_language_tokens: int = MIN_LANGUAGE_TOKENS,
        max_missing_keywords: int = MAX_MISSING_KEYWORDS,
    ):
        self.cache = cache if cache is not None else TTLCache()
        self.min_language_tokens = min_language_tokens
        self.max_missing_keywords = max_missing_keywords

    def score(
        self,
        resume: Dict[str, Any],
        job_text: str = "",
        generate_quick_wins: bool = False,
    ) -> ScoreReport:
        """Score *resume* against *job_text*.

        Identical inputs always produce an identical report. Quick wins are
        served from the cache while the entry is fresh.
        """
        resume_text = resume_to_text(resume)
        resume_tokens = tokenize(resume_text)
        job_tokens = tokenize(job_text or "")
        required_phrases = extract_skill_phrases(job_text or "")

        weights, surfaces = weigh_job_tokens(job_tokens, required_phrases)
        resume_norms = {token.norm for token in resume_tokens}

        keyword_exact = _coverage(weights, resume_norms)
        missing = rank_missing(weights, surfaces, resume_norms)
        format_score, format_issues = format_parseability(resume)
        subscores = {
            "keyword_exact": keyword_exact if weights else 0,
            "keyword_phrase": _phrase_coverage(required_phrases, resume_text, fallback=keyword_exact),
            "title_alignment": title_alignment(resume, job_text or ""),
            "metrics_presence": metrics_presence(resume),
            "section_completeness": section_completeness(resume),
            "format_parseability": format_score,
            "recency_fit": recency_fit(resume, latest_role_ratio(resume, weights, required_phrases)),
        }
        overall = keyword_exact if weights else subscores["section_completeness"]

        recommendations = build_recommendations(resume, subscores, [k for k, _ in missing[:5]])
        recommendations += format_issues
        target = target_title(job_text or "")
        if target and subscores["title_alignment"] < TITLE_RECOMMENDATION_THRESHOLD:
            recommendations.append(f"Align your latest job title or summary with the target role '{target}'")

        report = ScoreReport(
            score=overall,
            composite=composite_score(subscores, skip=() if weights else KEYWORD_SUBSCORES),
            missing_keywords=[keyword for keyword, _ in missing[: self.max_missing_keywords]],
            languages=self._language_reports(resume_tokens, job_tokens, weights, surfaces, resume_norms),
            subscores=subscores,
            recommendations=recommendations,
        )

        if generate_quick_wins:
            total_weight = sum(weights.values()) or 1.0
            impacts = [(keyword, round(100 * weight / total_weight, 1)) for keyword, weight in missing]
            quick_wins = build_quick_wins(
                resume,
                job_text or "",
                missing=impacts,
                required_skills=required_phrases,
                subscores=subscores,
                cache=self.cache,
            )
            report = report.model_copy(update={"quick_wins": quick_wins})

        logger.debug(
            "Scored resume: score=%s job_tokens=%d missing=%d",
            report.score,
            len(weights),
            len(report.missing_keywords),
        )
        return report

    def _language_reports(
        self,
        resume_tokens: List[Token],
        job_tokens: List[Token],
        weights: Dict[str, float],
        surfaces: Dict[str, str],
        resume_norms: set,
    ) -> Dict[str, LanguageReport]:
        resume_counts = _count_by_language(resume_tokens)
        job_counts = _count_by_language(job_tokens)
        langs = sorted(
            lang
            for lang in set(resume_counts) | set(job_counts)
            if lang != "other"
            and (
                resume_counts.get(lang, 0) >= self.min_language_tokens
                or job_counts.get(lang, 0) >= self.min_language_tokens
                or (lang == "en" and (resume_counts.get(lang, 0) or job_counts.get(lang, 0)))
            )
        )

        reports: Dict[str, LanguageReport] = {}
        for lang in langs:
            lang_norms = {token.norm for token in job_tokens if token.lang == lang}
            lang_weights = {norm: weight for norm, weight in weights.items() if norm in lang_norms}
            gaps = rank_missing(lang_weights, surfaces, resume_norms)
            reports[lang] = LanguageReport(
                score=_coverage(lang_weights, resume_norms) if lang_weights else 100,
                gaps=[keyword for keyword, _ in gaps[: self.max_missing_keywords]],
                rtl=lang in RTL_LANGUAGE_CODES,
            )
        return reports


def tokenize(text: str) -> List[Token]:
    """Split *text* into normalized tokens.

    Normalization lowercases, maps synonyms onto a canonical form, applies
    light suffix stemming to Latin words, strips one Hebrew prefix letter
    from longer Hebrew words, and drops stop words.
    """
    tokens: List[Token] = []
    for match in _TOKEN_RE.finditer(text or ""):
        surface = match.group(0).strip(".")
        lower = surface.lower()
        if lower in _STOP_WORDS:
            continue
        if lower in SYNONYMS:
            norm = normalize_token(SYNONYMS[lower])
        elif len(lower) < 3 and not (surface.isupper() or "+" in lower or "#" in lower):
            continue
        else:
            norm = normalize_token(lower)
        if not norm or norm in _STOP_WORDS:
            continue
        tokens.append(Token(surface=surface, norm=norm, lang=token_language(lower)))
    return tokens


def normalize_token(token: str) -> str:
    lang = token_language(token)
    if lang == "he":
        if len(token) > 3 and token[0] in _HEBREW_PREFIXES:
            return token[1:]
        return token
    if not token.isalpha() or not token.isascii():
        return token
    if len(token) > 5 and token.endswith("ing"):
        return token[:-3]
    if len(token) > 4 and token.endswith("ies"):
        return token[:-3] + "y"
    if len(token) > 4 and token.endswith("ed"):
        return token[:-2]
    if len(token) > 3 and token.endswith("s") and not token.endswith("ss"):
        return token[:-1]
    return token


def weigh_job_tokens(
    job_tokens: List[Token], required_phrases: List[str]
) -> Tuple[Dict[str, float], Dict[str, str]]:
    """Return ``(weights, surfaces)`` keyed by normalized token, in first-seen order."""
    phrase_norms = {token.norm for phrase in required_phrases for token in tokenize(phrase)}
    weights: Dict[str, float] = {}
    surfaces: Dict[str, str] = {}
    for token in job_tokens:
        if token.norm not in weights:
            surfaces[token.norm] = token.surface if is_acronym(token.surface) else token.surface.lower()
            weights[token.norm] = 0.0
            if token.norm in phrase_norms:
                weights[token.norm] += PHRASE_BONUS
            if is_acronym(token.surface):
                weights[token.norm] += ACRONYM_BONUS
        weights[token.norm] += 1.0
    return weights, surfaces


def rank_missing(
    weights: Dict[str, float], surfaces: Dict[str, str], present: set
) -> List[Tuple[str, float]]:
    """Missing tokens by descending weight; ties keep first-appearance order."""
    order = {norm: i for i, norm in enumerate(weights)}
    missing = [norm for norm in weights if norm not in present]
    missing.sort(key=lambda norm: (-weights[norm], order[norm]))
    return [(surfaces.get(norm, norm), weights[norm]) for norm in missing]


def metrics_presence(resume: Dict[str, Any]) -> int:
    """Percentage of experience bullets that carry a number or metric."""
    bullets = [
        bullet
        for item in resume.get("experience") or []
        if isinstance(item, dict)
        for bullet in item.get("achievements") or []
        if isinstance(bullet, str) and bullet.strip()
    ]
    if not bullets:
        return 0
    with_metrics = sum(1 for bullet in bullets if _METRIC_RE.search(bullet))
    return round(100 * with_metrics / len(bullets))


def section_completeness(resume: Dict[str, Any]) -> int:
    present = sum(1 for name, _ in SECTION_CHECKS if _has_section(resume, name))
    return round(100 * present / len(SECTION_CHECKS))


def composite_score(subscores: Dict[str, int], skip: Tuple[str, ...] = ()) -> int:
    """Weighted mean of the known sub-scores, leaving out *skip*."""
    used = {
        name: weight
        for name, weight in SUBSCORE_WEIGHTS.items()
        if name in subscores and name not in skip
    }
    total = sum(used.values())
    if total <= 0:
        return 0
    return round(sum(subscores[name] * weight for name, weight in used.items()) / total)


def latest_role_ratio(
    resume: Dict[str, Any], weights: Dict[str, float], required_phrases: List[str]
) -> Optional[float]:
    """Share of the job's must-have tokens found in the latest role.

    Must-haves are the mined skill phrases when there are any, otherwise
    every job token. ``None`` when the job names nothing.
    """
    must_have = list(dict.fromkeys(token.norm for token in tokenize(" ".join(required_phrases))))
    if not must_have:
        must_have = list(weights)
    if not must_have:
        return None
    latest = {token.norm for token in tokenize(latest_role_text(resume))}
    return sum(1 for norm in must_have if norm in latest) / len(must_have)


def build_recommendations(
    resume: Dict[str, Any], subscores: Dict[str, int], top_missing: List[str]
) -> List[str]:
    recommendations = [message for name, message in SECTION_CHECKS if not _has_section(resume, name)]
    if subscores.get("metrics_presence", 0) < 50:
        recommendations.append("Quantify achievements with numbers (e.g. 'Reduced latency by 30%')")
    if top_missing:
        recommendations.append(f"Consider covering these job keywords: {', '.join(top_missing)}")
    return recommendations


# ---------------------------------------------------------------------------
# Formatting report (pure string output)
# ---------------------------------------------------------------------------


def format_score_report(report: ScoreReport) -> str:
    """Render a :class:`ScoreReport` as a human-readable report."""
    lines = [
        f"## ATS Score: {report.score}/100 {_score_to_grade(report.score)}",
        _score_bar(report.score),
        f"Composite: {report.composite}/100",
        "",
        "| Subscore              | Score |",
        "|-----------------------|-------|",
    ]
    for name, value in report.subscores.items():
        lines.append(f"| {name:<21} | {value:5d} |")

    if report.missing_keywords:
        lines.append("")
        lines.append("Missing keywords: " + ", ".join(report.missing_keywords[:10]))

    if report.recommendations:
        lines.append("")
        lines.append("### Suggestions")
        for i, s in enumerate(report.recommendations, 1):
            lines.append(f"{i}. {s}")

    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _coverage(weights: Dict[str, float], present: set) -> int:
    total = sum(weights.values())
    if total <= 0:
        return 0
    matched = sum(weight for norm, weight in weights.items() if norm in present)
    return round(100 * matched / total)


def _phrase_coverage(phrases: List[str], resume_text: str, fallback: int) -> int:
    if not phrases:
        return fallback
    lower = resume_text.lower()
    found = sum(1 for phrase in phrases if phrase.lower() in lower)
    return round(100 * found / len(phrases))


def _count_by_language(tokens: List[Token]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for token in tokens:
        counts[token.lang] = counts.get(token.lang, 0) + 1
    return counts


def _has_section(resume: Dict[str, Any], name: str) -> bool:
    contact = resume.get("contact") if isinstance(resume.get("contact"), dict) else {}
    if name in ("name", "email"):
        return bool(str(contact.get(name) or "").strip())
    if name == "summary":
        return bool(str(resume.get("summary") or "").strip())
    if name == "skills":
        return bool(skill_list(resume, "technical") or skill_list(resume, "soft"))
    return bool(resume.get(name))


def _score_to_grade(score: int) -> str:
    if score >= 90:
        return "Excellent"
    elif score >= 75:
        return "Good"
    elif score >= 60:
        return "Fair"
    else:
        return "Needs Work"


def _score_bar(score: int, width: int = 20) -> str:
    filled = round(score / 100 * width)
    return f"[{'=' * filled}{' ' * (width - filled)}]"
