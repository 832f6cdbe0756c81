"""Exception taxonomy for CodePulse."""

from __future__ import annotations


class CodePulseError(Exception):
    """Base class for all CodePulse errors."""


class ModuleReadFailure(CodePulseError):
    """One module's content could not be fetched. The scan skips it."""

    def __init__(self, path: str, reason: str = ""):
        self.path = path
        self.reason = reason
        message = f"Could not read module {path}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class RecordStoreFailure(CodePulseError):
    """Persisting or querying fix records failed."""

    def __init__(self, message: str, fix_ids: list[str] | None = None):
        self.fix_ids = list(fix_ids or [])
        super().__init__(message)


class InvalidConfig(CodePulseError):
    """A configuration value is outside its allowed range."""


class ScanInProgress(CodePulseError):
    """A scan was requested while another one is still running."""


class InvalidTransition(CodePulseError):
    """A state machine was asked to make a transition it does not allow."""


class FixNotFound(CodePulseError, KeyError):
    """No fix candidate is tracked under the requested id."""

    def __init__(self, fix_id: str):
        self.fix_id = fix_id
        super().__init__(f"No fix candidate tracked with id {fix_id!r}")

    def __str__(self) -> str:
        return self.args[0]
