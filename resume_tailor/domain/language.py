"""Script-based language and directionality detection.

The heuristic path is synchronous and always available. An optional
external classifier can override it through :func:`detect_language_async`.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Awaitable, Callable, Dict, List, Mapping, Optional

from ..models import LanguageResult

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "en"
RTL_LANGUAGE_CODES = frozenset({"he", "ar", "fa", "ur"})

#: Dominant-script ratio at or above which an RTL script wins outright.
HIGH_SCRIPT_RATIO = 0.8
#: Ratio a second script needs before the span counts as mixed.
MINOR_SCRIPT_RATIO = 0.15
#: Spans with fewer letters than this never get a confident verdict.
MIN_LETTERS_FOR_CONFIDENCE = 6

_SCRIPT_RANGES = {
    "he": ((0x0590, 0x05FF), (0xFB1D, 0xFB4F)),
    "ar": ((0x0600, 0x06FF), (0x0750, 0x077F), (0x08A0, 0x08FF)),
    "ru": ((0x0400, 0x04FF),),
    "latin": ((0x0041, 0x005A), (0x0061, 0x007A), (0x00C0, 0x024F)),
}

_LATIN_FUNCTION_WORDS: Dict[str, frozenset] = {
    "en": frozenset(
        "the and of to in for with on at by from is are was were this that our your you we as an or be".split()
    ),
    "es": frozenset("el la los las de del y en con para por que una un es son su sus al como más".split()),
    "fr": frozenset("le la les des du et en avec pour par que une un est sont sur dans au aux vous nous".split()),
    "de": frozenset("der die das und mit für von zu im ist sind ein eine auf den dem des wir sie".split()),
}

_WORD_RE = re.compile(r"[^\W\d_]+", re.UNICODE)

ModelClassifier = Callable[[str], Awaitable[Optional[Mapping[str, object]]]]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def detect_language(text: str, default_language: str = DEFAULT_LANGUAGE) -> LanguageResult:
    """Classify *text* by Unicode script with a confidence in ``[0, 1]``.

    - an RTL script at or above :data:`HIGH_SCRIPT_RATIO` yields that language
    - two scripts each at or above :data:`MINOR_SCRIPT_RATIO` yield ``mixed``
      with a confidence in ``(0.4, 0.65]``
    - Latin text is resolved to a language by function-word counts
    """
    counts = count_scripts(text or "")
    total = sum(counts.values())
    if total == 0:
        return LanguageResult(
            lang=default_language,
            rtl=default_language in RTL_LANGUAGE_CODES,
            confidence=0.0 if not (text or "").strip() else 0.2,
        )

    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    primary_script, primary_count = ranked[0]
    primary_ratio = primary_count / total
    secondary_ratio = ranked[1][1] / total if len(ranked) > 1 else 0.0

    primary_rtl = primary_script in RTL_LANGUAGE_CODES
    if primary_rtl and primary_ratio >= HIGH_SCRIPT_RATIO:
        return LanguageResult(lang=primary_script, rtl=True, confidence=_confidence(primary_ratio, total))

    if secondary_ratio >= MINOR_SCRIPT_RATIO:
        rtl = any(script in RTL_LANGUAGE_CODES for script, _ in ranked[:2])
        confidence = 0.4 + 0.25 * min(1.0, 2 * (1 - primary_ratio))
        return LanguageResult(lang="mixed", rtl=rtl, confidence=round(min(0.65, max(0.41, confidence)), 3))

    lang = _latin_language(text, default_language) if primary_script == "latin" else primary_script
    return LanguageResult(
        lang=lang,
        rtl=lang in RTL_LANGUAGE_CODES,
        confidence=_confidence(primary_ratio, total),
    )


async def detect_language_async(
    text: str,
    prefer_model: bool = False,
    call_model: Optional[ModelClassifier] = None,
    min_confidence_for_model: float = 0.75,
    timeout_seconds: float = 5.0,
    default_language: str = DEFAULT_LANGUAGE,
) -> LanguageResult:
    """Heuristic detection, optionally overridden by an external classifier.

    The classifier is consulted when *prefer_model* is set or the heuristic
    is below *min_confidence_for_model*. A usable classifier answer replaces
    the heuristic result wholesale; any failure falls back to the heuristic.
    """
    heuristic = detect_language(text, default_language)
    if call_model is None:
        return heuristic
    if not prefer_model and heuristic.confidence >= min_confidence_for_model:
        return heuristic

    try:
        answer = await asyncio.wait_for(call_model(text), timeout=timeout_seconds)
    except asyncio.CancelledError:
        raise
    except Exception as e:
        logger.warning("Language classifier failed, using heuristic: %s", e)
        return heuristic

    if not answer or not isinstance(answer.get("lang"), str) or not answer["lang"]:
        return heuristic

    lang = str(answer["lang"]).lower()
    raw_confidence = answer.get("confidence")
    confidence = float(raw_confidence) if isinstance(raw_confidence, (int, float)) else heuristic.confidence
    rtl = answer.get("rtl")
    return LanguageResult(
        lang=lang,
        rtl=rtl if isinstance(rtl, bool) else lang in RTL_LANGUAGE_CODES,
        confidence=min(1.0, max(0.0, confidence)),
        source="model",
    )


def count_scripts(text: str) -> Dict[str, int]:
    """Count letters per script bucket, ignoring digits and punctuation."""
    counts: Dict[str, int] = {}
    for char in text:
        script = char_script(char)
        if script:
            counts[script] = counts.get(script, 0) + 1
    return counts


def char_script(char: str) -> Optional[str]:
    code = ord(char)
    for script, ranges in _SCRIPT_RANGES.items():
        for low, high in ranges:
            if low <= code <= high:
                return script
    return None


# ---------------------------------------------------------------------------
# Token buckets
# ---------------------------------------------------------------------------


def token_language(token: str) -> str:
    """Language bucket for a single token: ``he``, ``ar``, ``ru``, ``en`` or ``other``."""
    scripts = {char_script(ch) for ch in token} - {None}
    for code in ("he", "ar", "ru"):
        if code in scripts:
            return code
    if re.fullmatch(r"[A-Za-z0-9+#.\-]+", token) and "latin" in scripts:
        return "en"
    return "other"


def bucketize_tokens(tokens: List[str]) -> Dict[str, List[str]]:
    """Group *tokens* by :func:`token_language`, deduplicated, order kept."""
    buckets: Dict[str, List[str]] = {}
    seen: Dict[str, set] = {}
    for token in tokens:
        lang = token_language(token)
        bucket_seen = seen.setdefault(lang, set())
        if token in bucket_seen:
            continue
        bucket_seen.add(token)
        buckets.setdefault(lang, []).append(token)
    return buckets


def bucketize_text(text: str) -> Dict[str, List[str]]:
    tokens = [t for t in re.split(r"[^\w+#\-]+", (text or "").lower(), flags=re.UNICODE) if len(t) >= 2]
    return bucketize_tokens(tokens)


def diff_buckets(source: Dict[str, List[str]], compare: Dict[str, List[str]]) -> Dict[str, List[str]]:
    """Tokens present in *compare* but absent from *source*, per language."""
    result: Dict[str, List[str]] = {}
    for lang in list(source) + [code for code in compare if code not in source]:
        have = set(source.get(lang, []))
        result[lang] = [token for token in compare.get(lang, []) if token not in have]
    return result


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


def _confidence(ratio: float, total_letters: int) -> float:
    if ratio >= 0.9:
        confidence = 0.92
    elif ratio >= 0.75:
        confidence = 0.78
    elif ratio >= 0.6:
        confidence = 0.62
    else:
        confidence = 0.45
    if total_letters < MIN_LETTERS_FOR_CONFIDENCE:
        confidence = min(confidence, 0.6)
    return confidence


def _latin_language(text: str, default_language: str) -> str:
    words = [w.lower() for w in _WORD_RE.findall(text)]
    hits = {code: sum(1 for w in words if w in vocab) for code, vocab in _LATIN_FUNCTION_WORDS.items()}
    best = max(hits.items(), key=lambda item: item[1])
    if best[1] == 0 or hits.get("en", 0) == best[1]:
        return default_language if default_language not in RTL_LANGUAGE_CODES else "en"
    return best[0]
