"""Exception hierarchy for lessonkit.

Text-transform stages never raise for malformed input; these exceptions
only cover the generation boundary and PDF capture.
"""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .render.models import ValidationReport


class LessonKitError(Exception):
    """Base exception for all lessonkit errors."""
    pass


class GenerationError(LessonKitError):
    """Raised when the upstream generator returns nothing usable."""
    pass


class ContentRejectedError(LessonKitError):
    """Raised when generated content must be discarded and regenerated."""

    def __init__(self, report: "ValidationReport", attempts: int = 1):
        self.report = report
        self.attempts = attempts
        kinds = sorted({f.kind.value for f in report.findings})
        super().__init__(
            f"Generated content rejected after {attempts} attempt(s): {', '.join(kinds) or 'no findings'}"
        )


class CaptureError(LessonKitError):
    """Raised when a capture session cannot produce a PDF at all."""

    def __init__(self, target: str, reason: str):
        self.target = target
        self.reason = reason
        super().__init__(f"PDF capture of '{target}' failed: {reason}")
