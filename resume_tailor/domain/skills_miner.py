"""Pure domain logic for mining candidate skill phrases from free text.

Short capitalized acronyms (``API``, ``SQL``, ``QA``) are too ambiguous to
stand alone as skill tags. They are only kept when adjacent words turn them
into a concrete phrase such as ``REST API integrations``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List

from .document import resume_to_text, skill_list
from .language import bucketize_text, diff_buckets

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

#: Words taken on each side of an acronym run when building a phrase.
CONTEXT_WINDOW = 2
MAX_PHRASE_WORDS = 5

_ACRONYM_RE = re.compile(r"^[A-Z]{2,4}s?$")
_WORDLIKE_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+#.\-]*$")
_CLAUSE_SPLIT_RE = re.compile(r"[,;:!?()\[\]{}\n\r\t|]+|\.(?=\s|$)")
_QUOTED_RE = re.compile(r"\"([^\"\n]{2,60})\"|“([^”\n]{2,60})”|(?<!\w)'([^'\n]{2,60})'(?!\w)")

_TECH_TOKEN_PATTERNS = (
    re.compile(r"^[A-Z][a-z]+(?:[A-Z][A-Za-z0-9]*)+$"),  # JavaScript, GraphQL
    re.compile(r"^[A-Za-z]+(?:\+\+|#)$"),  # C++, C#
    re.compile(r"^\.[A-Z][A-Za-z]+$"),  # .NET
    re.compile(r"^[A-Za-z]+\.(?:js|ts|io|net)$", re.IGNORECASE),  # Node.js
)

KNOWN_TECHNOLOGIES = frozenset(
    """
    python java kotlin swift ruby php scala rust golang typescript javascript
    react angular vue svelte django flask fastapi spring rails express nextjs
    docker kubernetes terraform ansible jenkins git linux bash
    postgresql postgres mysql mongodb redis kafka rabbitmq elasticsearch
    spark hadoop airflow snowflake databricks dbt tableau looker excel
    pandas numpy pytorch tensorflow scikit-learn graphql figma jira
    azure gcp salesforce sap
    """.split()
)

NON_SKILL_WORDS = frozenset(
    """
    and or the a an to in at of for with by from as on is are was were be been being
    add include use apply implement create develop
    job title position role work company skills skill section resume more other also plus
    responsibility responsibilities requirement requirements qualification qualifications
    candidate applicant posted description preferred benefit benefits salary location
    remote hybrid technical experience years year team
    """.split()
)

_STOP_WORDS = frozenset(
    """
    your you our we my his her their its it this that these those into onto over under
    about than then them they there here when where while must should could would will
    can may might not but all any each some such only very just both
    """.split()
)

_ACTION_VERBS = frozenset(
    """
    achieved administered analyzed built collaborated created delivered designed developed
    directed established executed generated implemented improved increased launched led
    managed optimized organized produced reduced resolved streamlined wrote maintained
    integrated migrated deployed shipped owned drove
    """.split()
)


@dataclass
class SkillsMinerResult:
    """Structured result from skill mining."""

    keywords: List[str]
    missing: List[str] = field(default_factory=list)
    languages: Dict[str, Dict[str, List[str]]] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def mine_skills(resume: Dict[str, Any], job_text: str = "") -> SkillsMinerResult:
    """Mine candidate skill phrases from *job_text* and the resume.

    ``keywords`` lists job-text phrases first, then resume phrases, with no
    case-insensitive duplicates. ``missing`` holds the job phrases the resume
    does not mention anywhere. ``languages`` reports per-language token
    buckets for both inputs and the job tokens absent from the resume.
    """
    resume_text = resume_to_text(resume)
    job_phrases = extract_skill_phrases(job_text or "")
    resume_phrases = extract_skill_phrases(resume_text) + skill_list(resume, "technical")

    resume_lower = resume_text.lower()
    missing = [phrase for phrase in job_phrases if phrase.lower() not in resume_lower]

    resume_buckets = bucketize_text(resume_text)
    job_buckets = bucketize_text(job_text or "")
    gaps = diff_buckets(resume_buckets, job_buckets)
    languages = {
        lang: {
            "resume": resume_buckets.get(lang, []),
            "job": job_buckets.get(lang, []),
            "gaps": gaps.get(lang, []),
        }
        for lang in gaps
    }

    return SkillsMinerResult(
        keywords=dedupe_preserve_case(job_phrases + resume_phrases),
        missing=dedupe_preserve_case(missing),
        languages=languages,
    )


def extract_skill_phrases(text: str) -> List[str]:
    """Extract an ordered, case-insensitively unique list of skill phrases."""
    if not text or not text.strip():
        return []

    candidates: List[str] = []
    for match in _QUOTED_RE.finditer(text):
        term = next(group for group in match.groups() if group is not None).strip()
        if is_valid_skill(term):
            candidates.append(term)

    for clause in _CLAUSE_SPLIT_RE.split(text):
        words = _clause_words(clause)
        candidates.extend(_acronym_phrases(words))
        candidates.extend(word for word in words if _is_tech_token(word))

    return dedupe_preserve_case(candidates)


def is_valid_skill(term: str) -> bool:
    """Return whether *term* is specific enough to be used as a skill tag."""
    stripped = term.strip()
    lower = stripped.lower()
    if len(lower) < 2 or lower in NON_SKILL_WORDS or lower.isdigit():
        return False
    words = stripped.split()
    if len(words) > MAX_PHRASE_WORDS:
        return False
    if len(words) == 1 and _ACRONYM_RE.match(stripped):
        return False
    if len(words) == 1 and len(lower) < 3 and not _is_tech_token(stripped):
        return False
    return all(_WORDLIKE_RE.match(word) or word.startswith(".") for word in words)


def dedupe_preserve_case(items: Iterable[str]) -> List[str]:
    """Drop case-insensitive duplicates, keeping the first-seen casing."""
    seen = set()
    result: List[str] = []
    for item in items:
        cleaned = " ".join(str(item).split())
        key = cleaned.lower()
        if not cleaned or key in seen:
            continue
        seen.add(key)
        result.append(cleaned)
    return result


def is_acronym(token: str) -> bool:
    return bool(_ACRONYM_RE.match(token))


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


def _clause_words(clause: str) -> List[str]:
    words = []
    for raw in clause.split():
        word = raw.strip("'\"“”‘’*`")
        if word:
            words.append(word)
    return words


def _acronym_phrases(words: List[str]) -> List[str]:
    phrases: List[str] = []
    i = 0
    while i < len(words):
        if not is_acronym(words[i]):
            i += 1
            continue
        start = i
        while i < len(words) and is_acronym(words[i]):
            i += 1
        end = i  # exclusive

        left = start
        while left > 0 and start - left < CONTEXT_WINDOW and _is_left_context(words[left - 1]):
            left -= 1
        right = end
        while right < len(words) and right - end < CONTEXT_WINDOW and _is_right_context(words[right]):
            right += 1

        has_context = left < start or right > end
        if end - start < 2 and not has_context:
            continue
        phrase = " ".join(words[left:right])
        if len(phrase.split()) <= MAX_PHRASE_WORDS:
            phrases.append(phrase)
    return phrases


def _is_context_word(word: str) -> bool:
    lower = word.lower()
    if not _WORDLIKE_RE.match(word) or is_acronym(word):
        return False
    if lower in NON_SKILL_WORDS or lower in _STOP_WORDS or lower in _ACTION_VERBS:
        return False
    return len(lower) >= 3 or _is_tech_token(word)


def _is_left_context(word: str) -> bool:
    if not _is_context_word(word):
        return False
    # lowercase verb forms ("building", "used") describe activity, not the skill
    return not (word.islower() and re.search(r"(?:ing|ed)$", word))


def _is_right_context(word: str) -> bool:
    return _is_context_word(word) and word.replace("-", "").isalpha()


def _is_tech_token(word: str) -> bool:
    if word.lower() in KNOWN_TECHNOLOGIES:
        return True
    return any(pattern.match(word) for pattern in _TECH_TOKEN_PATTERNS)
