"""Pure domain logic for theme and style customization.

Fonts are restricted to a library of professional, ATS-safe families and
colors are normalized to lowercase ``#rrggbb``.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from ..errors import ValidationError
from ..models import ChangeCategory, ChangeRecord

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_FONT = "Arial"
DEFAULT_COLOR = "#1e3a8a"
DEFAULT_LAYOUT = "modern"
LAYOUTS = ("modern", "classic", "minimal", "compact")
SPACINGS = ("tight", "normal", "relaxed")
DENSITIES = ("compact", "comfortable")

FONT_LIBRARY: Dict[str, Dict[str, Any]] = {
    "times new roman": {"name": "Times New Roman", "aliases": ["times", "times new", "tnr"], "category": "serif"},
    "georgia": {"name": "Georgia", "aliases": [], "category": "serif"},
    "garamond": {"name": "Garamond", "aliases": ["eb garamond", "eb-garamond"], "category": "serif"},
    "cambria": {"name": "Cambria", "aliases": [], "category": "serif"},
    "arial": {"name": "Arial", "aliases": [], "category": "sans-serif"},
    "helvetica": {"name": "Helvetica", "aliases": ["helvetica neue"], "category": "sans-serif"},
    "calibri": {"name": "Calibri", "aliases": [], "category": "sans-serif"},
    "verdana": {"name": "Verdana", "aliases": [], "category": "sans-serif"},
    "tahoma": {"name": "Tahoma", "aliases": [], "category": "sans-serif"},
    "trebuchet ms": {"name": "Trebuchet MS", "aliases": ["trebuchet"], "category": "sans-serif"},
    "roboto": {"name": "Roboto", "aliases": [], "category": "sans-serif"},
    "open sans": {"name": "Open Sans", "aliases": ["opensans"], "category": "sans-serif"},
    "lato": {"name": "Lato", "aliases": [], "category": "sans-serif"},
    "inter": {"name": "Inter", "aliases": [], "category": "sans-serif"},
    "assistant": {"name": "Assistant", "aliases": [], "category": "sans-serif"},
    "heebo": {"name": "Heebo", "aliases": [], "category": "sans-serif"},
    "rubik": {"name": "Rubik", "aliases": [], "category": "sans-serif"},
}

NAMED_COLORS: Dict[str, str] = {
    "blue": "#3b82f6",
    "light blue": "#bfdbfe",
    "dark blue": "#1e40af",
    "navy": "#1e3a8a",
    "sky": "#0ea5e9",
    "green": "#10b981",
    "light green": "#86efac",
    "dark green": "#065f46",
    "emerald": "#10b981",
    "lime": "#84cc16",
    "red": "#ef4444",
    "light red": "#fca5a5",
    "dark red": "#991b1b",
    "rose": "#f43f5e",
    "gray": "#6b7280",
    "grey": "#6b7280",
    "light gray": "#d1d5db",
    "dark gray": "#374151",
    "slate": "#64748b",
    "black": "#000000",
    "white": "#ffffff",
    "yellow": "#fbbf24",
    "purple": "#a855f7",
    "pink": "#ec4899",
    "orange": "#f97316",
    "teal": "#14b8a6",
    "indigo": "#6366f1",
    "brown": "#92400e",
}

_HEX_RE = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


@dataclass(frozen=True)
class Theme:
    font_family: str = DEFAULT_FONT
    color_hex: str = DEFAULT_COLOR
    layout: str = DEFAULT_LAYOUT
    spacing: str = "normal"
    density: str = "comfortable"

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def normalize_font(name: Optional[str]) -> Optional[str]:
    """Map *name* (or one of its aliases) onto a library font, else ``None``."""
    if not name:
        return None
    key = " ".join(name.lower().replace("_", " ").split())
    if key in FONT_LIBRARY:
        return FONT_LIBRARY[key]["name"]
    for entry in FONT_LIBRARY.values():
        if key in entry["aliases"]:
            return entry["name"]
    return None


def normalize_color(value: Optional[str]) -> Optional[str]:
    """Return lowercase ``#rrggbb`` for a hex or named color, else ``None``."""
    if not value:
        return None
    cleaned = " ".join(value.strip().lower().split())
    if cleaned in NAMED_COLORS:
        return NAMED_COLORS[cleaned]
    match = _HEX_RE.match(cleaned)
    if not match:
        return None
    digits = match.group(1)
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    return f"#{digits.lower()}"


def build_theme(
    base: Optional[Theme] = None,
    font_family: Optional[str] = None,
    color_hex: Optional[str] = None,
    layout: Optional[str] = None,
    spacing: Optional[str] = None,
    density: Optional[str] = None,
) -> Theme:
    """Return *base* (or the default theme) with the given overrides applied.

    Raises:
        ValidationError: when a value is not a known font, color, layout,
            spacing or density.
    """
    theme = base or Theme()
    updates: Dict[str, str] = {}

    if font_family is not None:
        font = normalize_font(font_family)
        if font is None:
            raise ValidationError(f"Unsupported font: {font_family}", {"font_family": font_family})
        updates["font_family"] = font
    if color_hex is not None:
        color = normalize_color(color_hex)
        if color is None:
            raise ValidationError(f"Unsupported color: {color_hex}", {"color_hex": color_hex})
        updates["color_hex"] = color
    for name, value, allowed in (
        ("layout", layout, LAYOUTS),
        ("spacing", spacing, SPACINGS),
        ("density", density, DENSITIES),
    ):
        if value is None:
            continue
        if value.lower() not in allowed:
            raise ValidationError(f"Unsupported {name}: {value}", {name: value, "allowed": list(allowed)})
        updates[name] = value.lower()

    return Theme(**{**theme.to_dict(), **updates})


def theme_changes(before: Theme, after: Theme) -> List[ChangeRecord]:
    """One ``style`` change record per theme field that differs."""
    records: List[ChangeRecord] = []
    old, new = before.to_dict(), after.to_dict()
    for key in old:
        if old[key] == new[key]:
            continue
        records.append(
            ChangeRecord(
                summary=f"Set {key.replace('_', ' ')} to {new[key]}",
                scope="style",
                category=ChangeCategory.FORMATTING,
                confidence="high",
                before=old[key],
                after=new[key],
                metadata={"pointer": f"/theme/{key}"},
            )
        )
    return records


def theme_from_dict(data: Optional[Dict[str, Any]]) -> Theme:
    """Build a theme from loosely-typed settings, ignoring unknown keys."""
    if not data:
        return Theme()
    known = {key: data[key] for key in Theme.__dataclass_fields__ if isinstance(data.get(key), str)}
    return build_theme(**known)
