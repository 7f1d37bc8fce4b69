"""End-to-end tests for AgentRuntime wired through build_app."""

from __future__ import annotations

import copy

import pytest
import pytest_asyncio

from resume_tailor.agents.runtime import SCORE_FALLBACK_PROMPT, SCRAPE_FALLBACK_PROMPT, TIMELINE_PROMPT
from resume_tailor.errors import AuthorizationError, DependencyUnavailable, StoreUnavailable, ValidationError
from resume_tailor.factory import build_app
from resume_tailor.history import InMemoryHistoryStore
from resume_tailor.tools.args import ScoreArgs
from resume_tailor.tools.base import BaseTool


class FailingScraper:
    def __init__(self):
        self.urls = []

    async def fetch(self, url):
        self.urls.append(url)
        raise DependencyUnavailable("Job page could not be fetched", {"job_url": url})

    async def close(self):
        pass


class ExplodingScoreTool(BaseTool):
    name = "ats.score"
    description = "Always crashes."
    args_model = ScoreArgs

    async def execute(self, context, args):
        raise RuntimeError("scorer exploded")


class DownSuggestions:
    async def suggest(self, request):
        raise ConnectionError("suggestion backend down")

    async def close(self):
        pass


class BrokenStore(InMemoryHistoryStore):
    async def append_entry(self, entry, discard_ids):
        raise StoreUnavailable("History store save failed")


@pytest_asyncio.fixture
async def app():
    application = build_app(store=InMemoryHistoryStore(), scraper=FailingScraper())
    await application.start()
    yield application
    await application.close()


def run_input(resume, command, **extra):
    payload = {"userId": "u1", "command": command, "resume_json": resume}
    payload.update(extra)
    return payload


class TestHappyPath:
    @pytest.mark.asyncio
    async def test_skills_and_strengthen(self, app, sample_resume, job_text):
        original = copy.deepcopy(sample_resume)
        result = await app.runtime.run(
            run_input(sample_resume, "add skills: Docker, Kubernetes; strengthen my experience", job_description=job_text)
        )

        assert result.intent == "add_skills"
        assert [a.tool for a in result.actions] == [
            "skills.add",
            "content.strengthen",
            "layout.render",
            "ats.score",
            "history.commit",
        ]
        assert all(a.status == "ok" for a in result.actions)
        assert result.failures == []
        assert [d.after for d in result.diffs] == [
            "Docker",
            "Kubernetes",
            "Led the billing API serving 2M requests per day",
            "Migrated services to Docker",
        ]

        resume = result.artifacts.resume_json
        assert resume["skills"]["technical"] == ["Python", "PostgreSQL", "Docker", "Kubernetes"]
        assert resume["matchScore"] == result.ats_report.score
        assert 0 < result.ats_report.score <= 100
        assert sample_resume == original

    @pytest.mark.asyncio
    async def test_commit_lands_on_timeline(self, app, sample_resume):
        result = await app.runtime.run(run_input(sample_resume, "strengthen summary"))

        record = result.history_record
        assert record["id"].startswith("tl_")
        snapshot = await app.timeline.get_timeline("u1")
        assert snapshot.current.id == record["id"]
        version = await app.timeline.get_version(record["resume_version_id"])
        assert version.resume_json == result.artifacts.resume_json

    @pytest.mark.asyncio
    async def test_preview_and_language(self, app, sample_resume):
        result = await app.runtime.run(run_input(sample_resume, "classic layout"))
        assert '<html lang="en" dir="ltr">' in result.artifacts.preview_html
        assert result.artifacts.theme["layout"] == "classic"
        assert result.language.lang == "en"
        assert not result.language.rtl

    @pytest.mark.asyncio
    async def test_empty_resume_still_scores(self, app):
        result = await app.runtime.run({"userId": "u1", "command": "tailor"})
        assert result.failures == []
        assert result.ats_report.score >= 0
        assert result.history_record is not None


class TestFailures:
    @pytest.mark.asyncio
    async def test_missing_user_is_fatal(self, app, sample_resume):
        with pytest.raises(AuthorizationError):
            await app.runtime.run({"userId": "  ", "command": "tailor", "resume_json": sample_resume})
        assert (await app.timeline.get_timeline("u1")).current is None

    @pytest.mark.asyncio
    async def test_malformed_input(self, app):
        with pytest.raises(ValidationError):
            await app.runtime.run({"command": "tailor"})
        with pytest.raises(ValidationError):
            await app.runtime.run(run_input(["not", "a", "resume"], "tailor"))

    @pytest.mark.asyncio
    async def test_store_failure_is_fatal(self, sample_resume):
        application = build_app(store=BrokenStore(), scraper=FailingScraper())
        try:
            with pytest.raises(StoreUnavailable):
                await application.runtime.run(run_input(sample_resume, "strengthen summary"))
        finally:
            await application.close()

    @pytest.mark.asyncio
    async def test_suggestion_service_crash_uses_rule_plan(self, sample_resume):
        application = build_app(store=InMemoryHistoryStore(), suggestions=DownSuggestions(), scraper=FailingScraper())
        await application.start()
        try:
            result = await application.runtime.run(run_input(sample_resume, "add skills: Docker"))
        finally:
            await application.close()

        assert [a.tool for a in result.actions] == ["skills.add", "layout.render", "ats.score", "history.commit"]
        assert all(a.source == "rule" for a in result.actions)
        assert result.history_record is not None
        errors = [e for e in application.runtime.last_observer.events if e.kind == "error"]
        assert errors[0].data["error_type"] == "suggestions"
        assert "ConnectionError" in errors[0].data["message"]

    @pytest.mark.asyncio
    async def test_failing_tool_does_not_abort_run(self, app, sample_resume):
        result = await app.runtime.run(run_input(sample_resume, "change font to Comic Papyrus"))

        theme = next(a for a in result.actions if a.tool == "design.theme")
        assert theme.status == "failed"
        assert "Unsupported font" in theme.error
        assert [f["tool"] for f in result.failures] == ["design.theme"]
        assert result.history_record is not None
        assert result.artifacts.theme["font_family"] == "Arial"

    @pytest.mark.asyncio
    async def test_scrape_failure_prompts_and_continues(self, app, sample_resume):
        result = await app.runtime.run(
            run_input(sample_resume, "tailor to this job", job_url="https://jobs.example.com/42")
        )
        assert app.scraper.urls == ["https://jobs.example.com/42"]
        assert result.actions[0].tool == "job.scrape"
        assert result.actions[0].status == "failed"
        assert SCRAPE_FALLBACK_PROMPT in result.ui_prompts
        assert result.ui_prompts.count(SCRAPE_FALLBACK_PROMPT) == 1
        assert result.history_record is not None

    @pytest.mark.asyncio
    async def test_crashing_scorer_falls_back(self, app, sample_resume, job_text):
        app.runtime.tools["ats.score"] = ExplodingScoreTool()
        result = await app.runtime.run(run_input(sample_resume, "tailor", job_description=job_text))

        score = next(a for a in result.actions if a.tool == "ats.score")
        assert score.status == "failed"
        assert score.error == "scorer exploded"
        assert SCORE_FALLBACK_PROMPT in result.ui_prompts
        assert result.ats_report.score > 0
        assert result.history_record["ats_score"] is None


class TestPrompts:
    @pytest.mark.asyncio
    async def test_timeline_prompt(self, app, sample_resume):
        result = await app.runtime.run(run_input(sample_resume, "undo the last change"))
        assert result.intent == "undo"
        assert TIMELINE_PROMPT in result.ui_prompts

    @pytest.mark.asyncio
    async def test_no_prompts_on_clean_run(self, app, sample_resume):
        result = await app.runtime.run(run_input(sample_resume, "add skills: Go"))
        assert result.ui_prompts == []

    @pytest.mark.asyncio
    async def test_observer_records_every_tool(self, app, sample_resume):
        await app.runtime.run(run_input(sample_resume, "add skills: Go"))
        stats = app.runtime.last_observer.get_run_stats()
        assert stats["tool_calls"] == 4
        assert stats["failed_tool_calls"] == 0
