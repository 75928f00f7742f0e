from __future__ import annotations


class VerificationError(Exception):
    """Base class for errors raised by the verification pipeline."""


class InvalidURLError(VerificationError):
    pass


class BatchSizeError(VerificationError):
    pass


class ClassificationError(VerificationError):
    """The Gemini classifier could not produce a usable verdict."""
