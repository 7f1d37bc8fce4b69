"""History tool - commit the run's document as a version and a timeline entry."""

from __future__ import annotations

from typing import Any, Dict, List

from ..history.service import TimelineService
from ..models import TimelineEntry, make_id
from .args import CommitArgs
from .base import BaseTool, RunContext, ToolResult


class CommitTool(BaseTool):
    """Versioning plus timeline save. Store failures propagate to the caller."""

    name = "history.commit"
    description = "Save the current resume as a new version and make it the current timeline entry."
    args_model = CommitArgs

    def __init__(self, timeline: TimelineService):
        self.timeline = timeline

    async def execute(self, context: RunContext, args: CommitArgs) -> ToolResult:
        version = await self.timeline.commit_version(context.user_id, context.resume)
        entry = await self.timeline.save(
            TimelineEntry(
                id=make_id("tl"),
                user_id=context.user_id,
                resume_version_id=version.id,
                ats_score=context.report.score if context.report else None,
                notes=args.notes,
                job=context.job.model_dump(exclude={"raw_text"}) if context.job else None,
                artifacts=_artifacts(context),
            )
        )
        context.version = version
        context.entry = entry
        return ToolResult(
            success=True,
            output=f"Saved version {version.id}",
            data={"entry_id": entry.id, "resume_version_id": version.id},
        )


def _artifacts(context: RunContext) -> List[Dict[str, Any]]:
    if context.rendering is None:
        return []
    rendering = context.rendering
    return [{"type": "html", "layout": rendering.layout, "lang": rendering.lang, "dir": rendering.direction}]
