"""
errors.py
Failure types shared by every stage. A stage's main() catches
RateTrackerError, logs it and exits non-zero.
"""


class RateTrackerError(Exception):
    """Base for every failure the pipeline reports."""


class TransportError(RateTrackerError):
    """Upstream API unreachable or answered with a non-success status."""


class ValidationError(RateTrackerError, ValueError):
    """Payload or sample is structurally invalid (bad code, non-finite rate…)."""


class StorageIOError(RateTrackerError, IOError):
    """A store file exists but can't be read, or can't be written."""
