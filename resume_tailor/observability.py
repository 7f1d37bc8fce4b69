"""Run tracing - per-run event list, one log line per event, run totals."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from .redaction import redact_for_log

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str = "WARNING") -> logging.Logger:
    """Attach one stream handler to the package logger and set its level.

    Safe to call repeatedly; later calls only change the level.
    """
    package_logger = logging.getLogger("resume_tailor")
    if not package_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        package_logger.addHandler(handler)
    package_logger.setLevel(getattr(logging, str(level).upper(), logging.WARNING))
    return package_logger


@dataclass
class AgentEvent:
    """Something that happened during a run."""

    kind: str  # plan | tool_call | error | commit
    data: Dict[str, Any]
    duration_ms: Optional[float] = None
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def event_type(self) -> str:
        return self.kind


class AgentObserver:
    """Collects the events of one run.

    Argument values and error messages pass through :func:`redact_for_log`
    before they are stored or logged, unless ``redact`` is off.
    """

    def __init__(self, run_id: Optional[str] = None, redact: bool = True):
        self.run_id = run_id
        self.redact = redact
        self.events: List[AgentEvent] = []
        self.logger = logging.getLogger("resume_tailor.agent")

    def _record(self, level: int, kind: str, data: Dict[str, Any], line: str, duration_ms: Optional[float] = None):
        self.events.append(AgentEvent(kind=kind, data=data, duration_ms=duration_ms))
        if self.run_id:
            line = f"[{self.run_id}] {line}"
        self.logger.log(level, line)

    def log_plan(self, intent: str, actions: List[Dict[str, Any]], suggested: int = 0):
        tools = ", ".join(str(a.get("tool")) for a in actions) or "-"
        self._record(
            logging.INFO,
            "plan",
            {"intent": intent, "actions": actions, "suggested": suggested},
            f"Plan {intent}: {tools} ({suggested} suggested)",
        )

    def log_tool_call(
        self,
        tool_name: str,
        args: Dict[str, Any],
        duration_ms: float,
        success: bool = True,
        changes: int = 0,
    ):
        """Record one tool execution; ``changes`` is the number of change records it produced."""
        outcome = "ok" if success else "FAILED"
        self._record(
            logging.INFO if success else logging.WARNING,
            "tool_call",
            {
                "tool": tool_name,
                "args": redact_for_log(args, self.redact),
                "success": success,
                "changes": changes,
            },
            f"{tool_name} {outcome} in {duration_ms:.1f}ms, {changes} change(s)",
            duration_ms=duration_ms,
        )

    def log_error(self, error_type: str, message: str, context: Optional[Dict[str, Any]] = None):
        safe_message = redact_for_log(message, self.redact)
        self._record(
            logging.WARNING,
            "error",
            {
                "error_type": error_type,
                "message": safe_message,
                "context": redact_for_log(context or {}, self.redact),
            },
            f"{error_type}: {safe_message}",
        )

    def log_commit(self, entry_id: str, version_id: str, ats_score: Optional[int]):
        score = "n/a" if ats_score is None else ats_score
        self._record(
            logging.INFO,
            "commit",
            {"entry_id": entry_id, "version_id": version_id, "ats_score": ats_score},
            f"Committed {entry_id} as {version_id} (ATS {score})",
        )

    def get_run_stats(self) -> Dict[str, Any]:
        """Counts per event kind plus failed tool calls and summed tool time."""
        kinds = Counter(e.kind for e in self.events)
        return {
            "event_count": len(self.events),
            "tool_calls": kinds["tool_call"],
            "failed_tool_calls": sum(
                1 for e in self.events if e.kind == "tool_call" and not e.data.get("success", True)
            ),
            "errors": kinds["error"],
            "commits": kinds["commit"],
            "total_duration_ms": sum(e.duration_ms or 0 for e in self.events),
        }

    def clear(self):
        self.events.clear()
