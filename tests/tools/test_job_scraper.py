"""Tests for job posting fetch and extraction."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from resume_tailor.errors import DependencyUnavailable, ValidationError
from resume_tailor.retry import RetryConfig
from resume_tailor.tools import JobScraper, JobScrapeTool, RunContext, parse_job_posting
from resume_tailor.tools.args import ScrapeArgs

POSTING_HTML = """<!DOCTYPE html>
<html><head>
<title>Senior Backend Engineer at Acme | LinkedIn</title>
<meta property="og:site_name" content="Acme Careers">
<script type="application/ld+json">
{"@context": "https://schema.org", "@type": "JobPosting", "title": "Senior Backend Engineer",
 "hiringOrganization": {"@type": "Organization", "name": "Acme"},
 "jobLocation": {"address": {"addressLocality": "Tel Aviv", "addressCountry": "IL"}},
 "description": "<p>Build APIs.</p><p>Own uptime.</p>"}
</script>
<style>body { color: red; }</style>
</head><body>
<h1>Senior Backend Engineer</h1>
<h2>Requirements</h2>
<ul><li>Python and PostgreSQL</li><li>Kubernetes</li></ul>
<h2>What you'll do</h2>
<ul><li>Design REST APIs</li></ul>
<h3>Nice to have</h3>
<ul><li>Go</li></ul>
</body></html>
"""


def html_response(text: str, status: int = 200, content_type: str = "text/html; charset=utf-8") -> httpx.Response:
    return httpx.Response(status, headers={"content-type": content_type}, text=text)


def make_scraper(handler, **kwargs) -> JobScraper:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    kwargs.setdefault("retry_config", RetryConfig(max_attempts=2, base_delay=0.01))
    return JobScraper(client=client, **kwargs)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


class TestParseJobPosting:
    def test_json_ld_and_sections(self):
        posting = parse_job_posting(POSTING_HTML, "https://jobs.example.com/1")

        assert posting.job_title == "Senior Backend Engineer"
        assert posting.company_name == "Acme"
        assert posting.location == "Tel Aviv, IL"
        assert posting.about_this_job == "Build APIs.\nOwn uptime."
        assert posting.requirements == ["Python and PostgreSQL", "Kubernetes"]
        assert posting.responsibilities == ["Design REST APIs"]
        assert posting.qualifications == ["Go"]
        assert posting.url == "https://jobs.example.com/1"
        assert "color: red" not in posting.raw_text

    def test_to_text_lists_sections(self):
        text = parse_job_posting(POSTING_HTML).to_text()
        assert "Requirements:\n- Python and PostgreSQL\n- Kubernetes" in text
        assert "Qualifications:\n- Go" in text

    def test_og_title_hiring_pattern(self):
        html = (
            '<html><head><meta property="og:title" content="Globex hiring Data Engineer in Berlin">'
            '<meta property="og:description" content="Join the data team"></head>'
            "<body><p>Apply now</p></body></html>"
        )
        posting = parse_job_posting(html)
        assert posting.job_title == "Data Engineer"
        assert posting.company_name == "Globex"
        assert posting.about_this_job == "Join the data team"

    def test_title_dash_company(self):
        posting = parse_job_posting("<html><head><title>Platform Engineer - Initech</title></head></html>")
        assert posting.job_title == "Platform Engineer"
        assert posting.company_name == "Initech"

    def test_unstructured_page_keeps_raw_text(self):
        html = "<html><body><div>We need someone great.</div><script>var x = 1;</script></body></html>"
        posting = parse_job_posting(html)
        assert not posting.is_structured
        assert posting.raw_text == "We need someone great."
        assert posting.to_text() == "We need someone great."

    def test_bad_json_ld_is_ignored(self):
        html = '<script type="application/ld+json">{not json</script><h1>QA Lead</h1>'
        assert parse_job_posting(html).job_title == "QA Lead"


# ---------------------------------------------------------------------------
# Fetching
# ---------------------------------------------------------------------------


class TestFetch:
    @pytest.mark.asyncio
    async def test_fetch_success_sends_user_agent(self):
        seen = []

        def handler(request):
            seen.append(request)
            return html_response(POSTING_HTML)

        scraper = make_scraper(handler, user_agent="tailor-test/1.0")
        try:
            posting = await scraper.fetch("https://jobs.example.com/1")
        finally:
            await scraper.close()
        assert posting.job_title == "Senior Backend Engineer"
        assert seen[0].headers["User-Agent"] == "tailor-test/1.0"

    @pytest.mark.asyncio
    async def test_non_http_url_rejected(self):
        scraper = make_scraper(lambda request: html_response(POSTING_HTML))
        with pytest.raises(ValidationError):
            await scraper.fetch("ftp://jobs.example.com/1")
        await scraper.close()

    @pytest.mark.asyncio
    async def test_server_errors_are_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) == 1:
                return html_response("busy", status=503)
            return html_response(POSTING_HTML)

        scraper = make_scraper(handler)
        posting = await scraper.fetch("https://jobs.example.com/1")
        await scraper.close()
        assert len(calls) == 2
        assert posting.company_name == "Acme"

    @pytest.mark.asyncio
    async def test_persistent_server_errors_become_unavailable(self):
        calls = []

        def handler(request):
            calls.append(request)
            return html_response("busy", status=503)

        scraper = make_scraper(handler)
        with pytest.raises(DependencyUnavailable):
            await scraper.fetch("https://jobs.example.com/1")
        await scraper.close()
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_not_found_is_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            return html_response("gone", status=404)

        scraper = make_scraper(handler)
        with pytest.raises(DependencyUnavailable):
            await scraper.fetch("https://jobs.example.com/1")
        await scraper.close()
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_unsupported_content_type(self):
        scraper = make_scraper(lambda request: html_response("%PDF-1.7", content_type="application/pdf"))
        with pytest.raises(DependencyUnavailable):
            await scraper.fetch("https://jobs.example.com/1.pdf")
        await scraper.close()

    @pytest.mark.asyncio
    async def test_empty_page(self):
        scraper = make_scraper(lambda request: html_response("<html><body></body></html>"))
        with pytest.raises(DependencyUnavailable):
            await scraper.fetch("https://jobs.example.com/1")
        await scraper.close()

    @pytest.mark.asyncio
    async def test_deadline(self):
        async def handler(request):
            await asyncio.sleep(1.0)
            return html_response(POSTING_HTML)

        scraper = make_scraper(handler, timeout_seconds=0.05)
        with pytest.raises(DependencyUnavailable):
            await scraper.fetch("https://jobs.example.com/1")
        await scraper.close()


class TestJobScrapeTool:
    @pytest.mark.asyncio
    async def test_populates_context(self):
        scraper = make_scraper(lambda request: html_response(POSTING_HTML))
        context = RunContext(user_id="u1", command="tailor", resume={})
        result = await JobScrapeTool(scraper).execute(context, ScrapeArgs(job_url="https://jobs.example.com/1"))
        await scraper.close()

        assert result.success
        assert result.degraded is None
        assert context.job.company_name == "Acme"
        assert "Kubernetes" in context.job_text

    @pytest.mark.asyncio
    async def test_failure_is_degraded_not_raised(self):
        scraper = make_scraper(lambda request: html_response("gone", status=404))
        context = RunContext(user_id="u1", command="tailor", resume={})
        result = await JobScrapeTool(scraper).execute(context, ScrapeArgs(job_url="https://jobs.example.com/1"))
        await scraper.close()

        assert not result.success
        assert result.degraded
        assert context.job is None
        assert context.job_text == ""

    @pytest.mark.asyncio
    async def test_plain_text_page_is_flagged(self):
        scraper = make_scraper(lambda request: html_response("<p>We need someone great.</p>"))
        context = RunContext(user_id="u1", command="tailor", resume={})
        result = await JobScrapeTool(scraper).execute(context, ScrapeArgs(job_url="https://jobs.example.com/1"))
        await scraper.close()

        assert result.success
        assert "plain text" in result.degraded
        assert context.job_text == "We need someone great."
