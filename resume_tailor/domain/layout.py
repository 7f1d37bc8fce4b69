"""Directional HTML preview rendering for resume documents.

Whatever renderer is plugged in, its markup must carry a ``dir`` attribute
matching the requested direction and a ``lang`` attribute matching the
document's detected language. :func:`check_rendering` verifies both.
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol

import markdown as md_lib

from ..errors import ValidationError
from ..models import Direction, LanguageResult
from .design import Theme
from .document import resume_to_text, skill_list
from .language import count_scripts, detect_language

_HTML_TAG_RE = re.compile(r"<html\b([^>]*)>", re.IGNORECASE)
_ATTR_RE = re.compile(r'(\w+)="([^"]*)"')

_SCRIPT_TO_LANG = {"latin": "en", "he": "he", "ar": "ar", "ru": "ru"}

_BASE_CSS = """
        * {{ margin: 0; padding: 0; box-sizing: border-box; }}
        body {{ font-family: '{font}', sans-serif; line-height: {line_height}; color: #222; }}
        .resume-container {{ max-width: 800px; margin: 0 auto; padding: {padding}; }}
        h1 {{ font-size: 2em; margin-bottom: 0.2em; color: {color}; }}
        h2 {{ font-size: 1.2em; margin-top: 1.5em; border-bottom: 1px solid {color}; color: {color}; }}
        p {{ margin-bottom: 0.8em; }}
        ul {{ margin-inline-start: 1.5em; }}
        li {{ margin-bottom: 0.3em; }}
"""

_SPACING = {"tight": ("1.3", "24px"), "normal": ("1.6", "40px"), "relaxed": ("1.8", "48px")}


@dataclass(frozen=True)
class LayoutOptions:
    layout: str = "modern"
    direction: Optional[Direction] = None
    theme: Optional[Theme] = None


@dataclass(frozen=True)
class Rendering:
    html: str
    direction: Direction
    lang: str
    layout: str


class LayoutRenderer(Protocol):
    def render(self, resume: Dict[str, Any], options: LayoutOptions) -> Rendering: ...


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


class HtmlLayoutRenderer:
    """Renders a resume to a standalone HTML document via Markdown."""

    def render(self, resume: Dict[str, Any], options: LayoutOptions) -> Rendering:
        text = resume_to_text(resume)
        detected = detect_language(text)
        direction: Direction = options.direction or detected.direction
        lang = html_language(text, detected)
        theme = options.theme or Theme(layout=options.layout)

        body = md_lib.markdown(resume_to_markdown(resume), extensions=["tables"])
        document = _wrap_html(body, lang=lang, direction=direction, theme=theme, layout=options.layout)
        return Rendering(html=document, direction=direction, lang=lang, layout=options.layout)


def resume_to_markdown(resume: Dict[str, Any]) -> str:
    """Markdown view of a resume; user text is HTML-escaped."""
    lines: List[str] = []
    contact = resume.get("contact") if isinstance(resume.get("contact"), dict) else {}
    if contact.get("name"):
        lines.append(f"# {_esc(contact['name'])}")
    details = [_esc(str(contact[key])) for key in ("email", "phone", "location") if contact.get(key)]
    if details:
        lines.append(" | ".join(details))

    summary = str(resume.get("summary") or "").strip()
    if summary:
        lines.extend(["", "## Summary", "", _esc(summary)])

    technical = skill_list(resume, "technical")
    soft = skill_list(resume, "soft")
    if technical or soft:
        lines.extend(["", "## Skills", ""])
        if technical:
            lines.append(f"- **Technical:** {_esc(', '.join(technical))}")
        if soft:
            lines.append(f"- **Soft:** {_esc(', '.join(soft))}")

    experience = [item for item in resume.get("experience") or [] if isinstance(item, dict)]
    if experience:
        lines.extend(["", "## Experience"])
        for item in experience:
            heading = " - ".join(_esc(str(item[key])) for key in ("title", "company") if item.get(key))
            lines.extend(["", f"### {heading}" if heading else "###"])
            dates = " - ".join(_esc(str(item[key])) for key in ("startDate", "endDate") if item.get(key))
            if dates:
                lines.extend(["", f"*{dates}*"])
            bullets = [b for b in item.get("achievements") or [] if isinstance(b, str) and b.strip()]
            if bullets:
                lines.append("")
                lines.extend(f"- {_esc(bullet.strip())}" for bullet in bullets)

    education = resume.get("education") or []
    if education:
        lines.extend(["", "## Education", ""])
        for item in education:
            if isinstance(item, dict):
                values = [str(v) for v in item.values() if isinstance(v, (str, int)) and v]
                lines.append(f"- {_esc(' - '.join(values))}")
            elif isinstance(item, str):
                lines.append(f"- {_esc(item)}")

    return "\n".join(lines).strip() + "\n"


def html_language(text: str, detected: Optional[LanguageResult] = None) -> str:
    """Language code for the ``lang`` attribute; ``mixed`` maps to the dominant script."""
    detected = detected or detect_language(text)
    if detected.lang != "mixed":
        return detected.lang
    counts = count_scripts(text)
    if not counts:
        return "en"
    script = max(sorted(counts), key=lambda name: counts[name])
    return _SCRIPT_TO_LANG.get(script, "en")


def check_rendering(rendering: Rendering, direction: Direction, lang: str) -> None:
    """Raise :class:`ValidationError` when the markup breaks the dir/lang contract."""
    match = _HTML_TAG_RE.search(rendering.html)
    attrs: Dict[str, str] = dict(_ATTR_RE.findall(match.group(1))) if match else {}
    if attrs.get("dir") != direction or attrs.get("lang") != lang:
        raise ValidationError(
            "Rendering does not honor direction/language",
            {"expected": {"dir": direction, "lang": lang}, "found": attrs},
        )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _esc(text: str) -> str:
    return html.escape(text, quote=False)


def _wrap_html(body: str, lang: str, direction: Direction, theme: Theme, layout: str) -> str:
    line_height, padding = _SPACING.get(theme.spacing, _SPACING["normal"])
    css = _BASE_CSS.format(font=theme.font_family, color=theme.color_hex, line_height=line_height, padding=padding)
    return (
        "<!DOCTYPE html>\n"
        f'<html lang="{lang}" dir="{direction}">\n'
        "<head>\n"
        '    <meta charset="UTF-8">\n'
        '    <meta name="viewport" content="width=device-width, initial-scale=1.0">\n'
        "    <title>Resume</title>\n"
        "    <style>\n"
        f"{css}\n"
        "    </style>\n"
        "</head>\n"
        "<body>\n"
        f'    <div class="resume-container layout-{layout}" dir="{direction}" lang="{lang}">\n'
        f"{body}\n"
        "    </div>\n"
        "</body>\n"
        "</html>"
    )
