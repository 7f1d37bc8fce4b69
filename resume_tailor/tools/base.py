"""Base tool class and the per-run state tools read and update."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel

from ..domain.design import Theme
from ..domain.layout import Rendering
from ..models import ChangeRecord, JobPosting, ResumeVersion, ScoreReport, TimelineEntry


@dataclass
class ToolResult:
    """Result from a tool execution."""

    success: bool
    output: str
    error: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)
    changes: List[ChangeRecord] = field(default_factory=list)
    degraded: Optional[str] = None  # user-facing note when a fallback was used


@dataclass
class RunContext:
    """Mutable state for one agent run. Tools run sequentially, so no locking."""

    user_id: str
    command: str
    resume: Dict[str, Any]
    job_text: str = ""
    job: Optional[JobPosting] = None
    theme: Theme = field(default_factory=Theme)
    rendering: Optional[Rendering] = None
    report: Optional[ScoreReport] = None
    version: Optional[ResumeVersion] = None
    entry: Optional[TimelineEntry] = None


class BaseTool(ABC):
    """Base class for all tools."""

    name: str
    description: str
    args_model: Type[BaseModel]

    @abstractmethod
    async def execute(self, context: RunContext, args: BaseModel) -> ToolResult:
        """Execute the tool against *context* with decoded arguments."""
        pass
