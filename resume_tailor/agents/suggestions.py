"""Advisory suggestion services.

A suggestion service proposes extra ``{tool, args, rationale}`` candidates
for a command. It is a soft dependency: the planner treats any failure as
an empty suggestion list.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol

import httpx

from ..domain.document import resume_to_text
from ..errors import DependencyUnavailable
from .actions import describe_vocabulary

logger = logging.getLogger(__name__)

MAX_SUGGESTIONS = 5
_MAX_PROMPT_CHARS = 6000

SYSTEM_PROMPT = """You plan edits for a resume tailoring tool.
Return a JSON object {"actions": [...]} with at most 5 items.
Each item is {"tool": <name>, "args": <object>, "rationale": <short string>}.
Only use these tools and argument shapes:
{vocabulary}
Never invent skills the candidate does not have. Return {"actions": []} when nothing fits."""


@dataclass(frozen=True)
class SuggestionRequest:
    command: str
    resume: Optional[Dict[str, Any]] = None
    job_text: Optional[str] = None


class SuggestionService(Protocol):
    async def suggest(self, request: SuggestionRequest) -> List[Dict[str, Any]]:
        """Return candidate actions, or raise :class:`DependencyUnavailable`."""
        ...

    async def close(self) -> None:
        ...


class NoopSuggestionService:
    """Default service: never suggests anything."""

    async def suggest(self, request: SuggestionRequest) -> List[Dict[str, Any]]:
        return []

    async def close(self) -> None:
        pass


class HttpSuggestionService:
    """Suggestions from an OpenAI-compatible ``/chat/completions`` endpoint."""

    def __init__(
        self,
        api_key: str,
        api_base: str = "https://api.openai.com/v1",
        model: str = "gpt-4o-mini",
        client: Optional[httpx.AsyncClient] = None,
        timeout_seconds: float = 8.0,
        max_items: int = MAX_SUGGESTIONS,
    ):
        self.api_key = api_key
        self.api_base = api_base.rstrip("/")
        self.model = model
        self.max_items = max_items
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout_seconds)

    async def suggest(self, request: SuggestionRequest) -> List[Dict[str, Any]]:
        payload = {
            "model": self.model,
            "temperature": 0,
            "response_format": {"type": "json_object"},
            "messages": [
                {
                    "role": "system",
                    "content": SYSTEM_PROMPT.replace("{vocabulary}", json.dumps(describe_vocabulary())),
                },
                {"role": "user", "content": _user_message(request)},
            ],
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

        try:
            response = await self.client.post(f"{self.api_base}/chat/completions", json=payload, headers=headers)
            response.raise_for_status()
            content = response.json()["choices"][0]["message"]["content"]
            items = parse_suggestions(content)
        except httpx.HTTPError as e:
            raise DependencyUnavailable("Suggestion service request failed", {"error": str(e)}) from e
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise DependencyUnavailable("Suggestion service returned malformed output", {"error": str(e)}) from e

        logger.debug("Suggestion service proposed %d actions", len(items))
        return items[: self.max_items]

    async def close(self):
        if self._owns_client:
            await self.client.aclose()


def parse_suggestions(content: Any) -> List[Dict[str, Any]]:
    """Accept ``{"actions": [...]}`` or a bare list; keep only dict items.

    Raises:
        ValueError: when the content is not JSON of either shape.
    """
    data = json.loads(content) if isinstance(content, str) else content
    if isinstance(data, dict):
        data = data.get("actions")
    if not isinstance(data, list):
        raise ValueError("expected a list of actions")
    return [item for item in data if isinstance(item, dict)]


def _user_message(request: SuggestionRequest) -> str:
    parts = [f"Command: {request.command}"]
    if request.resume:
        parts.append("Resume:\n" + resume_to_text(request.resume)[:_MAX_PROMPT_CHARS])
    if request.job_text:
        parts.append("Job description:\n" + request.job_text[:_MAX_PROMPT_CHARS])
    return "\n\n".join(parts)
