"""ATS scoring tool."""

from __future__ import annotations

from ..domain.ats_scorer import ScoringEngine
from ..domain.pointer import set_by_pointer
from .args import ScoreArgs
from .base import BaseTool, RunContext, ToolResult

#: Missing keywords copied onto the document's computed ``missingKeywords`` field.
DOCUMENT_MISSING_KEYWORDS = 10


class ScoreTool(BaseTool):
    """Score the current document against the resolved job text."""

    name = "ats.score"
    description = "Compute the ATS compatibility score, missing keywords, and quick wins."
    args_model = ScoreArgs

    def __init__(self, engine: ScoringEngine):
        self.engine = engine

    async def execute(self, context: RunContext, args: ScoreArgs) -> ToolResult:
        report = self.engine.score(context.resume, context.job_text, generate_quick_wins=args.generate_quick_wins)
        context.report = report

        resume = set_by_pointer(context.resume, "/matchScore", report.score)
        context.resume = set_by_pointer(
            resume, "/missingKeywords", list(report.missing_keywords[:DOCUMENT_MISSING_KEYWORDS])
        )
        return ToolResult(
            success=True,
            output=f"ATS score {report.score}/100",
            data={"score": report.score, "missing": len(report.missing_keywords)},
        )
