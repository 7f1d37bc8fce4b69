"""Tests for the document writer and its no-deletion rule."""

import copy

from resume_tailor.domain.pointer import get_by_pointer
from resume_tailor.domain.resume_writer import apply_changes, apply_diff, apply_proposed_changes
from resume_tailor.models import ChangeRecord


def _record(**kwargs):
    kwargs.setdefault("scope", "bullet")
    return ChangeRecord(**kwargs)


class TestApplyDiff:
    def test_empty_batch_is_identity(self, sample_resume):
        assert apply_diff(sample_resume, []) == sample_resume
        assert apply_changes(sample_resume, []).document == sample_resume

    def test_replaces_first_matching_text(self, sample_resume):
        updated = apply_diff(sample_resume, [_record(before="Worked on", after="Led")])
        assert updated["experience"][0]["achievements"][1] == "Led migrating services to Docker"

    def test_unmatched_before_is_a_no_op(self, sample_resume):
        updated = apply_diff(sample_resume, [_record(before="never written", after="x")])
        assert updated == sample_resume

    def test_style_records_are_ignored(self, sample_resume):
        updated = apply_diff(sample_resume, [_record(scope="style", before="Backend", after="Frontend")])
        assert updated == sample_resume

    def test_input_is_not_mutated(self, sample_resume):
        original = copy.deepcopy(sample_resume)
        apply_diff(sample_resume, [_record(before="Backend engineer", after="Platform engineer", scope="paragraph")])
        assert sample_resume == original

    def test_accepts_plain_dicts(self, sample_resume):
        updated = apply_diff(sample_resume, [{"scope": "paragraph", "before": "Backend", "after": "Platform"}])
        assert updated["summary"].startswith("Platform")


class TestNoDeletion:
    def test_empty_after_is_never_applied(self, sample_resume):
        bullet = sample_resume["experience"][0]["achievements"][0]
        records = [
            _record(before=bullet, after=""),
            _record(before=bullet, after=None, metadata={"pointer": "/experience/0/achievements/0"}),
            _record(before=bullet, after="   ", metadata={"pointer": "/experience/0/achievements/0"}),
        ]
        outcome = apply_changes(sample_resume, records)
        assert get_by_pointer(outcome.document, "/experience/0/achievements/0") == bullet
        assert outcome.applied == []
        assert {skip["reason"] for skip in outcome.skipped} == {"deletion_not_allowed"}

    def test_explicit_marker_allows_deletion(self, sample_resume):
        bullet = sample_resume["experience"][0]["achievements"][0]
        record = _record(
            before=bullet,
            after="",
            metadata={"pointer": "/experience/0/achievements/0", "allow_deletion": True},
        )
        outcome = apply_changes(sample_resume, [record])
        assert outcome.applied == [record.id]
        assert outcome.document["experience"][0]["achievements"] == ["Worked on migrating services to Docker"]

    def test_truthy_marker_is_not_enough(self, sample_resume):
        record = _record(
            before="Backend engineer building data platforms.",
            after="",
            metadata={"pointer": "/summary", "allow_deletion": "yes"},
        )
        assert apply_changes(sample_resume, [record]).document == sample_resume


class TestPointerApplication:
    def test_sets_value_at_pointer(self, sample_resume):
        record = _record(after="Kubernetes", metadata={"pointer": "/skills/technical/-"})
        outcome = apply_changes(sample_resume, [record])
        assert outcome.document["skills"]["technical"] == ["Python", "PostgreSQL", "Kubernetes"]

    def test_stale_before_is_skipped_and_batch_continues(self, sample_resume):
        stale = _record(before="Old summary", after="New", metadata={"pointer": "/summary"}, scope="paragraph")
        good = _record(after="Go", metadata={"pointer": "/skills/technical/-"})
        outcome = apply_changes(sample_resume, [stale, good])
        assert outcome.document["summary"] == sample_resume["summary"]
        assert outcome.document["skills"]["technical"][-1] == "Go"
        assert outcome.applied == [good.id]
        assert outcome.skipped[0]["reason"] == "stale"

    def test_path_error_is_skipped(self, sample_resume):
        bad = _record(after="x", metadata={"pointer": "/summary/0/text"})
        outcome = apply_changes(sample_resume, [bad])
        assert outcome.document == sample_resume
        assert outcome.skipped[0]["reason"] == "path_error"

    def test_json_pointer_and_path_aliases(self, sample_resume):
        records = [
            _record(before="Dana Levi", after="Dana L.", metadata={"json_pointer": "/contact/name"}),
            _record(before="Tel Aviv", after="Haifa", metadata={"path": "/contact/location"}),
        ]
        updated = apply_proposed_changes(sample_resume, records)
        assert updated["contact"]["name"] == "Dana L."
        assert updated["contact"]["location"] == "Haifa"

    def test_missing_before_does_not_overwrite_existing_content(self, sample_resume):
        record = {"scope": "paragraph", "before": None, "after": "Replaced", "metadata": {"pointer": "/summary"}}
        outcome = apply_changes(sample_resume, [record])
        assert outcome.document["summary"] == "Backend engineer building data platforms."
        assert outcome.applied == []
        assert outcome.skipped[0]["reason"] == "stale"
        assert apply_proposed_changes(sample_resume, [record])["summary"] == sample_resume["summary"]

    def test_missing_before_fills_vacant_slots(self, sample_resume):
        records = [
            _record(after="+972 50 000 0000", metadata={"pointer": "/contact/phone"}),
            _record(after="https://github.com/dana", metadata={"pointer": "/contact/github"}),
            _record(after="Go", metadata={"pointer": "/skills/technical/-"}),
        ]
        outcome = apply_changes(sample_resume, records)
        assert outcome.applied == [r.id for r in records]
        assert outcome.document["contact"]["phone"] == "+972 50 000 0000"
        assert outcome.document["contact"]["github"] == "https://github.com/dana"
        assert outcome.document["skills"]["technical"] == ["Python", "PostgreSQL", "Go"]

    def test_missing_before_does_not_replace_list_items(self, sample_resume):
        record = _record(after="Rust", metadata={"pointer": "/skills/technical/0"})
        outcome = apply_changes(sample_resume, [record])
        assert outcome.document["skills"]["technical"] == ["Python", "PostgreSQL"]
        assert outcome.skipped[0]["reason"] == "stale"

    def test_malformed_records_are_dropped(self, sample_resume):
        outcome = apply_changes(sample_resume, [{"id": "bad", "scope": "chapter", "after": "x"}])
        assert outcome.document == sample_resume
        assert outcome.skipped[0]["id"] == "bad"
        assert outcome.skipped[0]["reason"] == "invalid"
