"""Data contracts exchanged between the domain, history, and agent layers.

Resume documents travel as plain JSON-compatible dicts so the pointer engine
can address them structurally. The pydantic models here validate payloads
at the edges and describe the records the system produces.
"""

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError

ChangeScope = Literal["section", "paragraph", "bullet", "style"]
ConfidenceLevel = Literal["low", "medium", "high"]
Direction = Literal["ltr", "rtl"]

DELETION_MARKER = "allow_deletion"
POINTER_METADATA_KEYS = ("pointer", "json_pointer", "path")


def utc_now_iso() -> str:
    """Return current UTC time in ISO-8601 format."""
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def make_id(prefix: str) -> str:
    """Create an opaque id with a readable prefix."""
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


# ---------------------------------------------------------------------------
# Resume document
# ---------------------------------------------------------------------------


class ContactInfo(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str = ""
    email: str = ""
    phone: str = ""
    location: str = ""


class SkillSet(BaseModel):
    model_config = ConfigDict(extra="allow")

    technical: List[str] = Field(default_factory=list)
    soft: List[str] = Field(default_factory=list)


class ExperienceItem(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    title: str = ""
    company: str = ""
    location: str = ""
    start_date: str = Field("", alias="startDate")
    end_date: str = Field("", alias="endDate")
    achievements: List[str] = Field(default_factory=list)


class ResumeDocumentModel(BaseModel):
    """Validation shape for a resume document. Unknown keys are kept."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    contact: ContactInfo = Field(default_factory=ContactInfo)
    summary: str = ""
    skills: SkillSet = Field(default_factory=SkillSet)
    experience: List[ExperienceItem] = Field(default_factory=list)
    education: List[Any] = Field(default_factory=list)
    match_score: float = Field(0, alias="matchScore")
    key_improvements: List[str] = Field(default_factory=list, alias="keyImprovements")
    missing_keywords: List[str] = Field(default_factory=list, alias="missingKeywords")


def ensure_resume(raw: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Return a resume dict with every default key present.

    ``None`` yields an empty document. Anything that is not a mapping, or
    whose known fields have the wrong type, raises :class:`ValidationError`.
    List order is preserved and unknown keys pass through untouched.
    """
    if raw is None:
        return ResumeDocumentModel().model_dump(by_alias=True)
    if not isinstance(raw, dict):
        raise ValidationError("resume_json must be an object", {"type": type(raw).__name__})
    try:
        model = ResumeDocumentModel.model_validate(raw)
    except PydanticValidationError as e:
        raise ValidationError("resume_json failed validation", {"errors": e.errors()}) from e
    return model.model_dump(by_alias=True)


# ---------------------------------------------------------------------------
# Change records
# ---------------------------------------------------------------------------


class ChangeCategory(str, Enum):
    CONTENT = "content"
    STRUCTURE = "structure"
    FORMATTING = "formatting"
    DATA_QUALITY = "data_quality"
    COMPLIANCE = "compliance"


class ChangeRecord(BaseModel):
    """A described edit with a scope, before/after values, and a target pointer."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: make_id("chg"))
    summary: str = ""
    scope: ChangeScope = "paragraph"
    category: ChangeCategory = ChangeCategory.CONTENT
    confidence: ConfidenceLevel = "medium"
    before: Optional[str] = None
    after: Optional[str] = None
    rationale: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def pointer(self) -> Optional[str]:
        for key in POINTER_METADATA_KEYS:
            value = self.metadata.get(key)
            if isinstance(value, str):
                return value
        return None

    @property
    def is_deletion(self) -> bool:
        return bool(self.before) and not (self.after or "").strip()

    @property
    def allows_deletion(self) -> bool:
        return self.metadata.get(DELETION_MARKER) is True


# ---------------------------------------------------------------------------
# Language + scoring
# ---------------------------------------------------------------------------


class LanguageResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    lang: str
    rtl: bool = False
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    source: Literal["heuristic", "model"] = "heuristic"

    @property
    def direction(self) -> Direction:
        return "rtl" if self.rtl else "ltr"


class LanguageReport(BaseModel):
    score: int = Field(0, ge=0, le=100)
    gaps: List[str] = Field(default_factory=list)
    rtl: bool = False


class QuickWin(BaseModel):
    id: str
    text: str
    impact: float
    category: str
    quick_win: bool = True
    keywords: List[str] = Field(default_factory=list)


class ScoreReport(BaseModel):
    score: int = Field(0, ge=0, le=100)
    composite: int = Field(0, ge=0, le=100)
    missing_keywords: List[str] = Field(default_factory=list)
    languages: Dict[str, LanguageReport] = Field(default_factory=dict)
    subscores: Dict[str, int] = Field(default_factory=dict)
    recommendations: List[str] = Field(default_factory=list)
    quick_wins: List[QuickWin] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Job postings
# ---------------------------------------------------------------------------


class JobPosting(BaseModel):
    job_title: str = ""
    company_name: str = ""
    location: str = ""
    about_this_job: str = ""
    requirements: List[str] = Field(default_factory=list)
    responsibilities: List[str] = Field(default_factory=list)
    qualifications: List[str] = Field(default_factory=list)
    url: Optional[str] = None
    raw_text: str = ""

    @property
    def is_structured(self) -> bool:
        return bool(self.job_title or self.requirements or self.responsibilities or self.qualifications)

    def to_text(self) -> str:
        if not self.is_structured:
            return self.raw_text
        parts = [self.job_title, self.company_name, self.location, self.about_this_job]
        for heading, items in (
            ("Requirements", self.requirements),
            ("Responsibilities", self.responsibilities),
            ("Qualifications", self.qualifications),
        ):
            if items:
                parts.append(heading + ":")
                parts.extend(f"- {item}" for item in items)
        if not (self.requirements or self.responsibilities or self.qualifications) and self.raw_text:
            parts.append(self.raw_text)
        return "\n".join(p for p in parts if p)


# ---------------------------------------------------------------------------
# Timeline
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TimelineEntry:
    id: str
    user_id: str
    resume_version_id: str
    ats_score: Optional[int] = None
    notes: Optional[str] = None
    created_at: str = field(default_factory=utc_now_iso)
    job: Optional[Dict[str, Any]] = None
    artifacts: List[Dict[str, Any]] = field(default_factory=list)
    applied_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ResumeVersion:
    id: str
    user_id: str
    resume_json: Dict[str, Any]
    created_at: str = field(default_factory=utc_now_iso)


# ---------------------------------------------------------------------------
# Agent run contracts
# ---------------------------------------------------------------------------


class RunInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId")
    command: str
    resume_json: Optional[Dict[str, Any]] = None
    job_url: Optional[str] = None
    job_description: Optional[str] = None
    design: Dict[str, Any] = Field(default_factory=dict)


class ActionRecord(BaseModel):
    tool: str
    args: Dict[str, Any] = Field(default_factory=dict)
    rationale: str = ""
    source: Literal["rule", "suggestion", "runtime"] = "rule"
    status: Literal["ok", "failed", "skipped"] = "ok"
    error: Optional[str] = None


class AgentArtifacts(BaseModel):
    resume_json: Dict[str, Any] = Field(default_factory=dict)
    preview_html: str = ""
    theme: Dict[str, Any] = Field(default_factory=dict)
    job: Optional[JobPosting] = None


class AgentResult(BaseModel):
    intent: str
    actions: List[ActionRecord] = Field(default_factory=list)
    diffs: List[ChangeRecord] = Field(default_factory=list)
    artifacts: AgentArtifacts = Field(default_factory=AgentArtifacts)
    ats_report: ScoreReport = Field(default_factory=ScoreReport)
    history_record: Optional[Dict[str, Any]] = None
    ui_prompts: List[str] = Field(default_factory=list)
    language: Optional[LanguageResult] = None
    failures: List[Dict[str, Any]] = Field(default_factory=list)
