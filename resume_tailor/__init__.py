"""Resume Tailor - tailor a resume to a job with traceable, undoable edits."""

__version__ = "0.1.0"

from .errors import (
    AuthorizationError,
    DependencyUnavailable,
    PathError,
    StaleDiffError,
    StoreUnavailable,
    TailorError,
    ValidationError,
)
from .factory import TailorApp, build_app

__all__ = [
    "TailorApp",
    "build_app",
    "TailorError",
    "ValidationError",
    "PathError",
    "StaleDiffError",
    "DependencyUnavailable",
    "StoreUnavailable",
    "AuthorizationError",
]
