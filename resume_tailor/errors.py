"""Error taxonomy shared by the domain, history, and agent layers."""

from __future__ import annotations

from typing import Any, Dict, Optional


class TailorError(Exception):
    """Application-level error with a stable code for callers."""

    code = "TAILOR_ERROR"

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        code: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if code:
            self.code = code

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
            }
        }


class ValidationError(TailorError):
    """Malformed or missing required input. Never retried."""

    code = "VALIDATION_ERROR"


class PathError(TailorError):
    """A pointer traversed a scalar as if it were a container."""

    code = "PATH_ERROR"


class StaleDiffError(TailorError):
    """A change record's ``before`` no longer matches the document."""

    code = "STALE_DIFF"


class DependencyUnavailable(TailorError):
    """An external service did not answer in time or answered garbage."""

    code = "DEPENDENCY_UNAVAILABLE"


class StoreUnavailable(DependencyUnavailable):
    """The durable history store failed; history integrity cannot be faked."""

    code = "STORE_UNAVAILABLE"


class AuthorizationError(TailorError):
    """The caller may not act for this user. Aborts an agent run."""

    code = "UNAUTHORIZED"
