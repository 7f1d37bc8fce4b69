"""Typed argument records, one per tool."""

from __future__ import annotations

from typing import List, Literal, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_SKILLS_PER_ACTION = 20


class ToolArgs(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class ScrapeArgs(ToolArgs):
    job_url: str

    @field_validator("job_url")
    @classmethod
    def _http_only(cls, value: str) -> str:
        value = value.strip()
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError("job_url must be an http(s) URL")
        return value


class SkillsAddArgs(ToolArgs):
    skills: List[str] = Field(min_length=1, max_length=MAX_SKILLS_PER_ACTION)

    @field_validator("skills")
    @classmethod
    def _strip(cls, value: List[str]) -> List[str]:
        cleaned = [s.strip() for s in value if s and s.strip()]
        if not cleaned:
            raise ValueError("at least one non-blank skill is required")
        return cleaned


class SkillsOptimizeArgs(ToolArgs):
    limit: int = Field(5, ge=1, le=10)


class StrengthenArgs(ToolArgs):
    section: Literal["summary", "experience", "skills"] = "summary"


class ThemeArgs(ToolArgs):
    font_family: Optional[str] = None
    color_hex: Optional[str] = None
    layout: Optional[str] = None
    spacing: Optional[str] = None
    density: Optional[str] = None


class RenderArgs(ToolArgs):
    layout: Optional[str] = None
    direction: Optional[Literal["ltr", "rtl"]] = None


class ScoreArgs(ToolArgs):
    generate_quick_wins: bool = True


class CommitArgs(ToolArgs):
    notes: Optional[str] = Field(None, max_length=500)
