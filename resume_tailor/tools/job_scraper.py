"""Job posting scraper - fetch a posting URL and extract structured fields.

Extraction is best-effort: JSON-LD ``JobPosting`` data first, then meta
tags and headed lists. When no structure is found the visible page text is
returned as ``raw_text``.
"""

from __future__ import annotations

import json
import logging
import re
from html.parser import HTMLParser
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse

import httpx

from ..errors import DependencyUnavailable, TailorError, ValidationError
from ..models import JobPosting
from ..retry import PermanentError, RetryConfig, TransientError, retry_with_backoff, with_timeout
from .args import ScrapeArgs
from .base import BaseTool, RunContext, ToolResult

logger = logging.getLogger(__name__)

_ALLOWED_CONTENT_TYPES = ("text/", "application/xhtml+xml", "application/xml")
_SKIP_TAGS = ("script", "style", "noscript", "template")
_HEADING_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6", "strong", "b", "dt")
_BLOCK_TAGS = ("title", "p", "div", "li", "br", "tr", "section", "article") + _HEADING_TAGS
_WS_RE = re.compile(r"\s+")

SECTION_KEYWORDS = {
    "requirements": ("requirement", "what you bring", "what you'll need", "must have", "skills"),
    "responsibilities": ("responsibilit", "what you'll do", "what you will do", "the role", "duties"),
    "qualifications": ("qualification", "nice to have", "preferred", "bonus"),
}


class _JobPageParser(HTMLParser):
    """Collects title, meta tags, JSON-LD blocks, headed list items and visible text."""

    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.title = ""
        self.h1 = ""
        self.meta: Dict[str, str] = {}
        self.ld_json: List[str] = []
        self.sections: Dict[str, List[str]] = {}
        self._chunks: List[str] = []
        self._skip = 0
        self._capture: Optional[str] = None
        self._buffer: List[str] = []
        self._current_heading = ""
        self._in_ld_json = False

    def handle_starttag(self, tag: str, attrs):
        attributes = {k.lower(): (v or "") for k, v in attrs}
        if tag == "meta":
            key = attributes.get("property") or attributes.get("name")
            if key and attributes.get("content"):
                self.meta[key.lower()] = attributes["content"].strip()
            return
        if tag == "script" and attributes.get("type", "").lower() == "application/ld+json":
            self._in_ld_json = True
            self._buffer = []
            return
        if tag in _SKIP_TAGS:
            self._skip += 1
            return
        if tag in _BLOCK_TAGS:
            self._chunks.append("\n")
        if tag == "li" or (self._capture != "li" and (tag == "title" or tag in _HEADING_TAGS)):
            self._flush()
            self._capture = tag
            self._buffer = []

    def handle_endtag(self, tag: str):
        if self._in_ld_json and tag == "script":
            self.ld_json.append("".join(self._buffer))
            self._in_ld_json = False
            self._buffer = []
            return
        if tag in _SKIP_TAGS:
            self._skip = max(0, self._skip - 1)
            return
        if tag == self._capture:
            self._flush()
        if tag in _BLOCK_TAGS:
            self._chunks.append("\n")

    def handle_data(self, data: str):
        if self._in_ld_json:
            self._buffer.append(data)
            return
        if self._skip:
            return
        self._chunks.append(data)
        if self._capture:
            self._buffer.append(data)

    def _flush(self):
        tag, text = self._capture, _clean("".join(self._buffer))
        self._capture, self._buffer = None, []
        if not tag or not text:
            return
        if tag == "title":
            self.title = self.title or text
        elif tag == "h1":
            self.h1 = self.h1 or text
            self._current_heading = text
        elif tag == "li":
            section = _section_for(self._current_heading)
            if section:
                self.sections.setdefault(section, []).append(text)
        else:
            self._current_heading = text

    def visible_text(self) -> str:
        lines = (_clean(line) for line in "".join(self._chunks).split("\n"))
        return "\n".join(line for line in lines if line)


class JobScraper:
    """Fetches job posting pages with retries and a hard deadline."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout_seconds: float = 10.0,
        retry_config: Optional[RetryConfig] = None,
        max_bytes: int = 2_000_000,
        user_agent: str = "resume-tailor/1.0",
    ):
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout_seconds, follow_redirects=True)
        self.timeout_seconds = timeout_seconds
        self.retry_config = retry_config or RetryConfig(max_attempts=2, base_delay=0.5)
        self.max_bytes = max_bytes
        self.user_agent = user_agent

    async def fetch(self, url: str) -> JobPosting:
        """Fetch *url* and parse it.

        Raises:
            ValidationError: for non-http(s) URLs.
            DependencyUnavailable: when the page cannot be fetched in time
                or has no readable text.
        """
        parsed = urlparse(url or "")
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValidationError("Only http/https URLs are supported.", {"job_url": url})

        try:
            html = await with_timeout(
                retry_with_backoff(self._get, self.retry_config, url),
                self.timeout_seconds,
                "Job scrape",
            )
        except (PermanentError, TransientError, httpx.HTTPError) as e:
            raise DependencyUnavailable("Job page could not be fetched", {"job_url": url, "error": str(e)}) from e

        posting = parse_job_posting(html, url)
        if not posting.is_structured and not posting.raw_text.strip():
            raise DependencyUnavailable("Job page had no readable text", {"job_url": url})
        return posting

    async def _get(self, url: str) -> str:
        response = await self.client.get(url, headers={"User-Agent": self.user_agent})
        if response.status_code == 429 or response.status_code >= 500:
            raise TransientError(f"HTTP {response.status_code} from {url}")
        response.raise_for_status()

        content_type = response.headers.get("content-type", "").lower()
        if content_type and not content_type.startswith(_ALLOWED_CONTENT_TYPES):
            raise PermanentError(f"Unsupported content type: {content_type}")
        if len(response.content) > self.max_bytes:
            raise PermanentError(f"Response too large (> {self.max_bytes} bytes).")
        return response.text

    async def close(self):
        if self._owns_client:
            await self.client.aclose()


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def parse_job_posting(html: str, url: Optional[str] = None) -> JobPosting:
    """Extract posting fields from *html*; never raises on odd markup."""
    parser = _JobPageParser()
    parser.feed(html or "")
    parser.close()

    raw_text = parser.visible_text()
    fields = _from_ld_json(parser.ld_json)
    title, company = _split_title(parser.meta.get("og:title") or parser.title)

    return JobPosting(
        job_title=fields.get("job_title") or parser.h1 or title,
        company_name=fields.get("company_name") or parser.meta.get("og:site_name") or company,
        location=fields.get("location") or parser.meta.get("job:location", ""),
        about_this_job=fields.get("about_this_job") or parser.meta.get("og:description", ""),
        requirements=parser.sections.get("requirements", []),
        responsibilities=parser.sections.get("responsibilities", []),
        qualifications=parser.sections.get("qualifications", []),
        url=url,
        raw_text=raw_text,
    )


def _from_ld_json(blocks: List[str]) -> Dict[str, str]:
    for block in blocks:
        try:
            data = json.loads(block)
        except ValueError:
            logger.debug("Skipping unparseable JSON-LD block")
            continue
        for item in data if isinstance(data, list) else [data]:
            if isinstance(item, dict) and item.get("@type") == "JobPosting":
                return _job_posting_fields(item)
    return {}


def _job_posting_fields(item: Dict[str, Any]) -> Dict[str, str]:
    org = item.get("hiringOrganization")
    location = item.get("jobLocation")
    if isinstance(location, list):
        location = location[0] if location else None
    address = location.get("address") if isinstance(location, dict) else None
    locality = ""
    if isinstance(address, dict):
        locality = ", ".join(
            str(address[key]) for key in ("addressLocality", "addressCountry") if isinstance(address.get(key), str)
        )

    description = item.get("description") or ""
    if description:
        text_parser = _JobPageParser()
        text_parser.feed(str(description))
        text_parser.close()
        description = text_parser.visible_text()

    return {
        "job_title": _clean(str(item.get("title") or "")),
        "company_name": _clean(str(org.get("name") or "")) if isinstance(org, dict) else "",
        "location": locality,
        "about_this_job": description,
    }


def _split_title(title: str) -> Tuple[str, str]:
    """Split "Title at Company" / "Company hiring Title" / "Title - Company" page titles."""
    title = re.sub(r"\s*\|\s*LinkedIn.*$", "", _clean(title), flags=re.IGNORECASE)
    if not title:
        return "", ""
    hiring = re.match(r"^(.+?)\s+hiring\s+(.+?)(?:\s+in\s+.+)?$", title, re.IGNORECASE)
    if hiring:
        return hiring.group(2).strip(), hiring.group(1).strip()
    for separator in (r"\s+at\s+", r"\s+-\s+"):
        parts = re.split(separator, title, maxsplit=1, flags=re.IGNORECASE)
        if len(parts) == 2:
            return parts[0].strip(), parts[1].strip()
    return title, ""


def _section_for(heading: str) -> Optional[str]:
    lowered = heading.lower()
    for section, keywords in SECTION_KEYWORDS.items():
        if any(keyword in lowered for keyword in keywords):
            return section
    return None


def _clean(text: str) -> str:
    return _WS_RE.sub(" ", text or "").strip()


# ---------------------------------------------------------------------------
# Tool
# ---------------------------------------------------------------------------


class JobScrapeTool(BaseTool):
    """Resolve the job text from a posting URL."""

    name = "job.scrape"
    description = "Fetch a job posting URL and extract title, company, and requirement lists."
    args_model = ScrapeArgs

    def __init__(self, scraper: JobScraper):
        self.scraper = scraper

    async def execute(self, context: RunContext, args: ScrapeArgs) -> ToolResult:
        try:
            posting = await self.scraper.fetch(args.job_url)
        except TailorError as e:
            logger.warning("Job scrape failed for %s: %s", args.job_url, e.message)
            return ToolResult(
                success=False,
                output="",
                error=e.message,
                degraded="The job posting could not be fetched; the score ignores job keywords.",
            )

        context.job = posting
        context.job_text = posting.to_text()
        degraded = None
        if not posting.is_structured:
            degraded = "Job details were read as plain text; paste the description for better matching."
        return ToolResult(
            success=True,
            output=posting.job_title or "Job text fetched",
            data={"job": posting.model_dump(exclude={"raw_text"}), "structured": posting.is_structured},
            degraded=degraded,
        )
