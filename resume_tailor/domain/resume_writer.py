"""Pure domain logic for applying change records to resume documents.

All functions accept a document and return a new one; the input is never
mutated. A record whose ``after`` is empty is never applied unless its
metadata carries ``allow_deletion: True``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from ..errors import PathError, StaleDiffError
from ..models import ChangeRecord
from .document import iter_text_fields
from .pointer import ABSENT, get_by_pointer, remove_by_pointer, set_by_pointer

logger = logging.getLogger(__name__)

TEXT_SCOPES = ("paragraph", "bullet")

RecordLike = Union[ChangeRecord, Dict[str, Any]]


@dataclass
class WriteOutcome:
    """Result of applying a batch of change records."""

    document: Dict[str, Any]
    applied: List[str] = field(default_factory=list)
    skipped: List[Dict[str, str]] = field(default_factory=list)

    def skip(self, record_id: str, reason: str, error: Optional[Exception] = None):
        entry = {"id": record_id, "reason": reason}
        if error is not None:
            entry["error"] = str(error)
        self.skipped.append(entry)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def apply_diff(doc: Dict[str, Any], records: Iterable[RecordLike]) -> Dict[str, Any]:
    """Replace each record's ``before`` text with its ``after`` text.

    Only ``paragraph`` and ``bullet`` records are considered. A record whose
    ``before`` cannot be found is a no-op; the rest of the batch proceeds.
    """
    return apply_diff_with_outcome(doc, records).document


def apply_proposed_changes(doc: Dict[str, Any], records: Iterable[RecordLike]) -> Dict[str, Any]:
    """Assign each record's ``after`` at its ``metadata.pointer``.

    Records whose ``before`` no longer matches the current value are skipped.
    Records without a pointer fall back to textual replacement.
    """
    return apply_changes(doc, records).document


def apply_diff_with_outcome(doc: Dict[str, Any], records: Iterable[RecordLike]) -> WriteOutcome:
    outcome = WriteOutcome(document=doc)
    for record in _coerce_records(records, outcome):
        if record.scope not in TEXT_SCOPES:
            outcome.skip(record.id, "unsupported_scope")
            continue
        if not _passes_deletion_guard(record, outcome):
            continue
        updated, reason = _replace_text(outcome.document, record)
        if updated is None:
            outcome.skip(record.id, reason)
            continue
        outcome.document = updated
        outcome.applied.append(record.id)
    return outcome


def apply_changes(doc: Dict[str, Any], records: Iterable[RecordLike]) -> WriteOutcome:
    """Pointer-based application with per-record outcome tracking."""
    outcome = WriteOutcome(document=doc)
    for record in _coerce_records(records, outcome):
        if not _passes_deletion_guard(record, outcome):
            continue

        pointer = record.pointer
        if pointer is None:
            updated, reason = _replace_text(outcome.document, record)
            if updated is None:
                outcome.skip(record.id, reason)
            else:
                outcome.document = updated
                outcome.applied.append(record.id)
            continue

        try:
            outcome.document = _apply_at_pointer(outcome.document, pointer, record)
        except StaleDiffError as e:
            logger.info("Skipping stale change %s at %s", record.id, pointer)
            outcome.skip(record.id, "stale", e)
            continue
        except PathError as e:
            logger.warning("Skipping change %s: %s", record.id, e.message)
            outcome.skip(record.id, "path_error", e)
            continue
        outcome.applied.append(record.id)
    return outcome


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


def _coerce_records(records: Iterable[RecordLike], outcome: WriteOutcome) -> List[ChangeRecord]:
    coerced: List[ChangeRecord] = []
    for raw in records or []:
        if isinstance(raw, ChangeRecord):
            coerced.append(raw)
            continue
        try:
            coerced.append(ChangeRecord.model_validate(raw))
        except PydanticValidationError as e:
            record_id = raw.get("id", "?") if isinstance(raw, dict) else "?"
            logger.warning("Dropping malformed change record %s", record_id)
            outcome.skip(str(record_id), "invalid", e)
    return coerced


def _passes_deletion_guard(record: ChangeRecord, outcome: WriteOutcome) -> bool:
    if (record.after or "").strip():
        return True
    if record.allows_deletion and (record.before or record.pointer):
        return True
    outcome.skip(record.id, "deletion_not_allowed" if record.is_deletion else "empty_after")
    return False


def _apply_at_pointer(doc: Dict[str, Any], pointer: str, record: ChangeRecord) -> Dict[str, Any]:
    current = get_by_pointer(doc, pointer)
    if record.before is None:
        # without a ``before`` a record may only fill an empty slot or append
        if not (pointer.endswith("/-") or _is_vacant(current)):
            raise StaleDiffError(
                f"Value at {pointer} exists but the change did not expect one",
                {"pointer": pointer, "expected": None, "found": current},
            )
    elif current != record.before:
        raise StaleDiffError(
            f"Value at {pointer} no longer matches",
            {"pointer": pointer, "expected": record.before, "found": None if current is ABSENT else current},
        )
    if not (record.after or "").strip():
        return remove_by_pointer(doc, pointer)
    return set_by_pointer(doc, pointer, record.after)


def _is_vacant(value: Any) -> bool:
    return value is ABSENT or value is None or (isinstance(value, str) and not value.strip())


def _replace_text(doc: Dict[str, Any], record: ChangeRecord) -> Tuple[Optional[Dict[str, Any]], str]:
    before = record.before
    if not before:
        return None, "missing_before"
    after = record.after or ""

    pointer = record.pointer
    targets = [(pointer, get_by_pointer(doc, pointer))] if pointer else list(iter_text_fields(doc))
    for target_pointer, value in targets:
        if isinstance(value, str) and before in value:
            try:
                return set_by_pointer(doc, target_pointer, value.replace(before, after, 1)), ""
            except PathError as e:
                logger.warning("Text replacement failed at %s: %s", target_pointer, e.message)
                return None, "path_error"
    return None, "before_not_found"
