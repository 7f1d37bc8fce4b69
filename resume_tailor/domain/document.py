"""Read-only views over resume documents (flattened text, addressable fields)."""

from __future__ import annotations

from typing import Any, Dict, Iterator, List, Tuple

from .pointer import join_pointer


def iter_text_fields(resume: Dict[str, Any]) -> Iterator[Tuple[str, str]]:
    """Yield ``(pointer, text)`` for every editable prose field, in display order."""
    summary = resume.get("summary")
    if isinstance(summary, str) and summary:
        yield join_pointer("summary"), summary

    experience = resume.get("experience")
    if isinstance(experience, list):
        for i, item in enumerate(experience):
            if not isinstance(item, dict):
                continue
            achievements = item.get("achievements")
            if not isinstance(achievements, list):
                continue
            for j, bullet in enumerate(achievements):
                if isinstance(bullet, str) and bullet:
                    yield join_pointer("experience", i, "achievements", j), bullet


def skill_list(resume: Dict[str, Any], kind: str = "technical") -> List[str]:
    skills = resume.get("skills")
    if not isinstance(skills, dict):
        return []
    values = skills.get(kind)
    if not isinstance(values, list):
        return []
    return [str(v) for v in values if isinstance(v, str) and v.strip()]


def resume_to_text(resume: Dict[str, Any]) -> str:
    """Flatten a resume document into newline-separated plain text.

    Section order follows the document's display order so the same document
    always yields the same text.
    """
    lines: List[str] = []
    contact = resume.get("contact")
    if isinstance(contact, dict) and isinstance(contact.get("name"), str):
        lines.append(contact["name"])

    summary = resume.get("summary")
    if isinstance(summary, str) and summary.strip():
        lines.append("Summary")
        lines.append(summary.strip())

    technical = skill_list(resume, "technical")
    soft = skill_list(resume, "soft")
    if technical or soft:
        lines.append("Skills")
        if technical:
            lines.append(", ".join(technical))
        if soft:
            lines.append(", ".join(soft))

    experience = resume.get("experience")
    if isinstance(experience, list) and experience:
        lines.append("Experience")
        for item in experience:
            if not isinstance(item, dict):
                continue
            header = " - ".join(
                str(item.get(key)) for key in ("title", "company", "location") if item.get(key)
            )
            dates = " - ".join(str(item.get(key)) for key in ("startDate", "endDate") if item.get(key))
            if header:
                lines.append(header)
            if dates:
                lines.append(dates)
            for bullet in item.get("achievements") or []:
                if isinstance(bullet, str) and bullet.strip():
                    lines.append(f"- {bullet.strip()}")

    education = resume.get("education")
    if isinstance(education, list) and education:
        lines.append("Education")
        for item in education:
            if isinstance(item, dict):
                lines.append(" - ".join(str(v) for v in item.values() if isinstance(v, (str, int)) and v))
            elif isinstance(item, str):
                lines.append(item)

    return "\n".join(line for line in lines if line)
