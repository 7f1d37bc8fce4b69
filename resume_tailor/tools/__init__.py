"""Resume Tailor Tools - one tool per action in the plan vocabulary."""

from .ats_tool import ScoreTool
from .base import BaseTool, RunContext, ToolResult
from .design_tools import RenderTool, ThemeTool
from .history_tools import CommitTool
from .job_scraper import JobScraper, JobScrapeTool, parse_job_posting
from .resume_tools import SkillsAddTool, SkillsOptimizeTool, StrengthenContentTool

__all__ = [
    "BaseTool",
    "RunContext",
    "ToolResult",
    "JobScraper",
    "JobScrapeTool",
    "parse_job_posting",
    "SkillsAddTool",
    "SkillsOptimizeTool",
    "StrengthenContentTool",
    "ThemeTool",
    "RenderTool",
    "ScoreTool",
    "CommitTool",
]
