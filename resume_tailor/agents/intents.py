"""Intent classification for free-form commands."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Tuple

DEFAULT_INTENT = "rewrite"


@dataclass(frozen=True)
class IntentInfo:
    id: str
    label: str
    description: str


INTENTS: Dict[str, IntentInfo] = {
    info.id: info
    for info in (
        IntentInfo("rewrite", "Rewrite resume", "Rewrite or strengthen resume content for clarity and impact."),
        IntentInfo("add_skills", "Add skills", "Include additional skills or keywords in the resume."),
        IntentInfo("design", "Adjust design", "Tweak visual design elements like fonts, colors, or styles."),
        IntentInfo("layout", "Modify layout", "Change resume layout, spacing, or density preferences."),
        IntentInfo("ats_optimize", "ATS optimize", "Optimize resume content for applicant tracking systems."),
        IntentInfo("export", "Export resume", "Generate downloadable resume files."),
        IntentInfo("undo", "Undo change", "Revert the most recent resume change."),
        IntentInfo("redo", "Redo change", "Reapply the most recently undone change."),
        IntentInfo("compare", "Compare versions", "Compare resume versions to review differences."),
        IntentInfo("save_history", "Save history", "Store the current resume progress in history."),
    )
}

# First match wins.
_INTENT_PATTERNS: List[Tuple[str, re.Pattern]] = [
    ("add_skills", re.compile(r"\b(add|include)\s+skills?\b", re.IGNORECASE)),
    ("rewrite", re.compile(r"\b(rewrite|strengthen|improve)\b", re.IGNORECASE)),
    ("design", re.compile(r"\b(font|colou?r|theme|style)\b", re.IGNORECASE)),
    ("layout", re.compile(r"\b(layout|spacing|density)\b", re.IGNORECASE)),
    ("ats_optimize", re.compile(r"\b(optimi[sz]e|tailor)\b|\bats\b", re.IGNORECASE)),
    ("export", re.compile(r"\b(export|download|pdf|docx)\b", re.IGNORECASE)),
    ("undo", re.compile(r"\bundo\b", re.IGNORECASE)),
    ("redo", re.compile(r"\bredo\b", re.IGNORECASE)),
    ("compare", re.compile(r"\b(compare|diff)\b", re.IGNORECASE)),
    ("save_history", re.compile(r"\bsave(\s+to)?\s+history\b", re.IGNORECASE)),
]

TIMELINE_INTENTS = ("undo", "redo", "compare")


def detect_intent(command: str) -> str:
    """Return the first matching intent id, or ``rewrite``."""
    for intent, pattern in _INTENT_PATTERNS:
        if pattern.search(command or ""):
            return intent
    return DEFAULT_INTENT
