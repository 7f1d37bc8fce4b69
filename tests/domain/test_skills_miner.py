"""Tests for skill phrase mining."""

from resume_tailor.domain.skills_miner import (
    dedupe_preserve_case,
    extract_skill_phrases,
    is_valid_skill,
    mine_skills,
)


class TestAcronymFilter:
    def test_bare_acronym_is_not_a_skill(self):
        assert extract_skill_phrases("Add API to your skills section.") == []
        assert mine_skills({}, "Add API to your skills section.").keywords == []

    def test_acronym_with_context_is_kept(self):
        mined = mine_skills({}, "Add REST API integrations to your technical skills.")
        assert "REST API integrations" in mined.keywords

    def test_is_valid_skill(self):
        assert not is_valid_skill("API")
        assert not is_valid_skill("skills")
        assert not is_valid_skill("2024")
        assert is_valid_skill("Kubernetes")
        assert is_valid_skill("REST API integrations")
        assert not is_valid_skill("one two three four five six")


class TestExtraction:
    def test_known_technologies_and_patterns(self):
        phrases = extract_skill_phrases("We use Python, Node.js, C++ and GraphQL with .NET services.")
        for expected in ("Python", "Node.js", "C++", "GraphQL", ".NET"):
            assert expected in phrases

    def test_quoted_terms(self):
        assert "event sourcing" in extract_skill_phrases('Experience with "event sourcing" is a plus')

    def test_case_insensitive_dedupe(self):
        assert dedupe_preserve_case(["Python", "python", " Go ", "go"]) == ["Python", "Go"]

    def test_empty_text(self):
        assert extract_skill_phrases("   ") == []


class TestMineSkills:
    def test_missing_lists_job_phrases_absent_from_resume(self, sample_resume, job_text):
        mined = mine_skills(sample_resume, job_text)
        assert "Kubernetes" in mined.missing
        assert "Python" not in mined.missing
        assert "Docker" not in mined.missing

    def test_job_phrases_come_first(self, sample_resume, job_text):
        mined = mine_skills(sample_resume, job_text)
        assert mined.keywords[0] == "Python"
        assert mined.keywords.index("Kubernetes") < mined.keywords.index("REST API design")

    def test_language_buckets(self, sample_resume, job_text):
        mined = mine_skills(sample_resume, job_text)
        assert "kubernetes" in mined.languages["en"]["gaps"]
        assert "python" in mined.languages["en"]["resume"]
