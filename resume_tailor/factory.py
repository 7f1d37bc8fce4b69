"""Wiring - build a ready-to-use runtime from a :class:`TailorConfig`."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional

from .agents.auth import Authorizer
from .agents.planner import Planner
from .agents.runtime import AgentRuntime
from .agents.suggestions import HttpSuggestionService, NoopSuggestionService, SuggestionService
from .cache import TTLCache
from .config import TailorConfig
from .domain.ats_scorer import ScoringEngine
from .history import HistoryStore, InMemoryHistoryStore, SQLiteHistoryStore, TimelineService
from .tools import (
    BaseTool,
    CommitTool,
    JobScraper,
    JobScrapeTool,
    RenderTool,
    ScoreTool,
    SkillsAddTool,
    SkillsOptimizeTool,
    StrengthenContentTool,
    ThemeTool,
)

logger = logging.getLogger(__name__)


@dataclass
class TailorApp:
    """Everything a caller needs, plus the resources to release on shutdown."""

    config: TailorConfig
    runtime: AgentRuntime
    timeline: TimelineService
    engine: ScoringEngine
    scraper: JobScraper
    suggestions: SuggestionService

    async def start(self) -> None:
        await self.timeline.start()

    async def close(self) -> None:
        await self.suggestions.close()
        await self.scraper.close()
        await self.timeline.stop()


def build_store(config: TailorConfig) -> HistoryStore:
    if config.store.backend == "memory":
        return InMemoryHistoryStore()
    return SQLiteHistoryStore(config.store.db_path)


def build_suggestions(config: TailorConfig) -> SuggestionService:
    settings = config.suggestions
    if not settings.enabled:
        return NoopSuggestionService()
    if not settings.api_key:
        logger.warning("Suggestions enabled without an API key; using rule plans only")
        return NoopSuggestionService()
    return HttpSuggestionService(
        api_key=settings.api_key,
        api_base=settings.api_base,
        model=settings.model,
        timeout_seconds=config.agent.suggestion_timeout_seconds,
        max_items=config.agent.max_suggested_actions,
    )


def build_tools(scraper: JobScraper, engine: ScoringEngine, timeline: TimelineService) -> Dict[str, BaseTool]:
    tools = [
        JobScrapeTool(scraper),
        SkillsAddTool(),
        SkillsOptimizeTool(),
        StrengthenContentTool(),
        ThemeTool(),
        RenderTool(),
        ScoreTool(engine),
        CommitTool(timeline),
    ]
    return {tool.name: tool for tool in tools}


def build_app(
    config: Optional[TailorConfig] = None,
    store: Optional[HistoryStore] = None,
    suggestions: Optional[SuggestionService] = None,
    scraper: Optional[JobScraper] = None,
    authorizer: Optional[Authorizer] = None,
) -> TailorApp:
    """Assemble the runtime. Explicit collaborators override the config-driven defaults."""
    config = config or TailorConfig()

    timeline = TimelineService(store or build_store(config))
    cache = TTLCache(
        ttl_seconds=config.scoring.quick_win_ttl_seconds,
        max_entries=config.scoring.quick_win_cache_size,
    )
    engine = ScoringEngine(
        cache=cache,
        min_language_tokens=config.scoring.min_language_tokens,
        max_missing_keywords=config.scoring.max_missing_keywords,
    )
    suggestions = suggestions or build_suggestions(config)
    scraper = scraper or JobScraper(timeout_seconds=config.agent.scrape_timeout_seconds)

    planner = Planner(
        suggestions=suggestions,
        min_suggested=config.agent.min_suggested_actions,
        max_suggested=config.agent.max_suggested_actions,
        suggestion_timeout_seconds=config.agent.suggestion_timeout_seconds,
    )
    runtime = AgentRuntime(
        planner=planner,
        tools=build_tools(scraper, engine, timeline),
        timeline=timeline,
        engine=engine,
        authorizer=authorizer,
        default_layout=config.agent.default_layout,
        redact=config.logging.redact,
    )
    return TailorApp(
        config=config,
        runtime=runtime,
        timeline=timeline,
        engine=engine,
        scraper=scraper,
        suggestions=suggestions,
    )
