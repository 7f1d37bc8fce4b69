"""Global pytest fixtures for deterministic test environment."""

from __future__ import annotations

import pytest


@pytest.fixture(autouse=True)
def _isolate_runtime_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Clear local runtime env that can leak into tests on developer machines."""
    for key in (
        "RESUME_TAILOR_DB_PATH",
        "RESUME_TAILOR_STORE_BACKEND",
        "RESUME_TAILOR_SUGGESTIONS_ENABLED",
        "RESUME_TAILOR_SUGGESTIONS_API_KEY",
        "RESUME_TAILOR_SUGGESTIONS_API_BASE",
        "RESUME_TAILOR_SUGGESTIONS_MODEL",
        "RESUME_TAILOR_LOG_LEVEL",
    ):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def sample_resume():
    """A small but complete resume document."""
    return {
        "contact": {"name": "Dana Levi", "email": "dana@example.com", "phone": "", "location": "Tel Aviv"},
        "summary": "Backend engineer building data platforms.",
        "skills": {"technical": ["Python", "PostgreSQL"], "soft": ["Mentoring"]},
        "experience": [
            {
                "title": "Backend Engineer",
                "company": "Acme",
                "startDate": "2020",
                "endDate": "Present",
                "achievements": [
                    "Responsible for the billing API serving 2M requests per day",
                    "Worked on migrating services to Docker",
                ],
            }
        ],
        "education": [{"degree": "B.Sc. Computer Science", "school": "Technion"}],
    }


@pytest.fixture
def job_text():
    return (
        "Senior Backend Engineer\n"
        "Requirements:\n"
        "- Python and PostgreSQL\n"
        "- Kubernetes and Docker in production\n"
        "- Experience with REST API design\n"
    )
