"""Exception hierarchy shared by the presence, gating and vote services."""

from __future__ import annotations


class AssemblyStageError(RuntimeError):
    """Base exception for all Assembly Stage failures."""


class ConfigurationError(AssemblyStageError):
    """Raised when required external-store credentials are missing.

    Fatal at startup: the service halts instead of degrading silently.
    """


class StoreUnavailable(AssemblyStageError):
    """Raised when the presence store or record store cannot be reached.

    Callers must treat presence as unknown, never as absent.
    """


class GateRejected(AssemblyStageError):
    """Raised when activity is attempted on an assembly that is not accepting it."""

    def __init__(self, assembly_id: str, reason: str) -> None:
        super().__init__(reason)
        self.assembly_id = assembly_id
        self.reason = reason


class InputValidationError(AssemblyStageError, ValueError):
    """Raised for malformed or out-of-enum input, before any side effect."""


class IntegrityComputationError(AssemblyStageError):
    """Raised when a vote commitment hash cannot be computed."""


class ReportGenerationError(AssemblyStageError):
    """Raised when the final report for an assembly could not be produced."""


class RecordNotFound(AssemblyStageError, LookupError):
    """Raised when an assembly or vote does not exist in the record store."""
