"""Caller-visible failures."""


class InfectoScanError(Exception):
    """Base class for every error raised by infectoscan."""


class AnalysisFailed(InfectoScanError):
    """Any failure of an analysis: transport, provider error, empty or malformed reply."""


class CaptureAccessDenied(InfectoScanError):
    """The camera could not be opened."""


class InvalidTransition(InfectoScanError):
    """A session transition was attempted from a phase that does not allow it."""


class UnknownHistoryEntry(InfectoScanError, LookupError):
    """No history entry matches the requested id or position."""
