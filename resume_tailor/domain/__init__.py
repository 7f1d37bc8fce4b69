"""Resume Tailor Domain - Pure domain logic for resume tailoring.

This package contains pure functions with no network, storage or model
dependencies. Documents are plain dicts; every edit returns a new document.
"""

from .analyzers import format_parseability, recency_fit, title_alignment
from .ats_scorer import ScoringEngine, composite_score, format_score_report, tokenize
from .design import Theme, build_theme, normalize_color, normalize_font, theme_changes
from .document import iter_text_fields, resume_to_text
from .language import bucketize_text, detect_language, detect_language_async, diff_buckets
from .layout import HtmlLayoutRenderer, LayoutOptions, LayoutRenderer, Rendering, check_rendering
from .pointer import ABSENT, get_by_pointer, join_pointer, remove_by_pointer, set_by_pointer
from .quick_wins import build_quick_wins
from .resume_writer import WriteOutcome, apply_changes, apply_diff, apply_proposed_changes
from .skills_miner import SkillsMinerResult, extract_skill_phrases, mine_skills

__all__ = [
    # Pointer
    "ABSENT",
    "get_by_pointer",
    "set_by_pointer",
    "remove_by_pointer",
    "join_pointer",
    # Language
    "detect_language",
    "detect_language_async",
    "bucketize_text",
    "diff_buckets",
    # Skills
    "mine_skills",
    "extract_skill_phrases",
    "SkillsMinerResult",
    # Scoring
    "ScoringEngine",
    "format_score_report",
    "composite_score",
    "title_alignment",
    "recency_fit",
    "format_parseability",
    "tokenize",
    "build_quick_wins",
    # Writer
    "apply_diff",
    "apply_proposed_changes",
    "apply_changes",
    "WriteOutcome",
    # Design + layout
    "Theme",
    "build_theme",
    "normalize_font",
    "normalize_color",
    "theme_changes",
    "HtmlLayoutRenderer",
    "LayoutOptions",
    "LayoutRenderer",
    "Rendering",
    "check_rendering",
    # Document views
    "resume_to_text",
    "iter_text_fields",
]
