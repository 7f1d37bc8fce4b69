"""Tests for log redaction and the run observer."""

from __future__ import annotations

import logging

from resume_tailor.observability import AgentObserver, configure_logging
from resume_tailor.redaction import redact_for_log, redact_text


class TestRedaction:
    def test_masks_contact_details_and_keys(self):
        text = "Reach dana@example.com or +972 54-123-4567, token sk-abcdef1234567890"
        redacted = redact_text(text)
        assert "dana@example.com" not in redacted
        assert "[REDACTED_EMAIL]" in redacted
        assert "[REDACTED_PHONE]" in redacted
        assert "[REDACTED_KEY]" in redacted

    def test_truncates_long_values(self):
        assert redact_text("x" * 500, max_length=20) == "x" * 20 + "..."

    def test_recurses_into_containers(self):
        value = {"skills": ["Go"], "contact": ("dana@example.com",), "count": 3}
        redacted = redact_for_log(value)
        assert redacted == {"skills": ["Go"], "contact": ("[REDACTED_EMAIL]",), "count": 3}

    def test_disabled(self):
        value = {"email": "dana@example.com"}
        assert redact_for_log(value, enabled=False) is value


class TestAgentObserver:
    def test_run_stats(self):
        observer = AgentObserver(run_id="run_1")
        observer.log_plan("add_skills", [{"tool": "skills.add"}], suggested=0)
        observer.log_tool_call("skills.add", {"skills": ["Go"]}, 1.5, success=True, changes=1)
        observer.log_tool_call("design.theme", {"font_family": "Nope"}, 0.5, success=False)
        observer.log_error("ValidationError", "Unsupported font: Nope")
        observer.log_commit("tl_1", "ver_1", 72)

        stats = observer.get_run_stats()
        assert stats["tool_calls"] == 2
        assert stats["failed_tool_calls"] == 1
        assert stats["errors"] == 1
        assert stats["commits"] == 1
        assert stats["total_duration_ms"] == 2.0

    def test_tool_args_are_redacted(self):
        observer = AgentObserver()
        observer.log_tool_call("job.scrape", {"job_url": "https://x.example.com/?email=dana@example.com"}, 1.0)
        assert "dana@example.com" not in observer.events[0].data["args"]["job_url"]

    def test_logs_with_run_prefix(self, caplog):
        observer = AgentObserver(run_id="run_42")
        with caplog.at_level(logging.INFO, logger="resume_tailor.agent"):
            observer.log_commit("tl_1", "ver_1", None)
        assert "[run_42] Committed tl_1" in caplog.text

    def test_clear(self):
        observer = AgentObserver()
        observer.log_commit("tl_1", "ver_1", None)
        observer.clear()
        assert observer.events == []


def test_configure_logging_installs_one_handler():
    logger = configure_logging("debug")
    configure_logging("info")
    assert len(logger.handlers) == 1
    assert logger.level == logging.INFO
