"""Custom exceptions for the rendering context with failure classification."""

from enum import Enum
from typing import List, Optional


class FailureKind(str, Enum):
    """
    Machine-readable failure classes with their HTTP-style status.

    Caller input errors (400) and tooling errors (500) never carry a log;
    compile failures (422) and timeouts (408) always do.
    """

    TOOLING_MISSING = "TOOLING_MISSING"
    NO_FILES = "NO_FILES"
    MAIN_FILE_NOT_FOUND = "MAIN_FILE_NOT_FOUND"
    INVALID_FILE = "INVALID_FILE"
    COMPILE_FAILED = "COMPILE_FAILED"
    TIMEOUT = "TIMEOUT"

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]


_STATUS_CODES = {
    FailureKind.TOOLING_MISSING: 500,
    FailureKind.NO_FILES: 400,
    FailureKind.MAIN_FILE_NOT_FOUND: 400,
    FailureKind.INVALID_FILE: 400,
    FailureKind.COMPILE_FAILED: 422,
    FailureKind.TIMEOUT: 408,
}


class CompilationError(Exception):
    """
    Base exception for classified pipeline failures.

    Attributes:
        kind: Failure class (see FailureKind)
        message: Short human-readable description
        log: Bounded build log (compile failures and timeouts only)
        errors: LaTeX error lines parsed from the log
    """

    kind: FailureKind = FailureKind.COMPILE_FAILED

    def __init__(
        self,
        message: str,
        log: Optional[str] = None,
        errors: Optional[List[str]] = None,
    ):
        self.message = message
        self.log = log
        self.errors = errors or []

        # Build enhanced error message
        parts = [f"[{self.kind.value}] {message}"]
        if self.errors:
            parts.append(f"First error: {self.errors[0]}")

        super().__init__("\n".join(parts))

    @property
    def status_code(self) -> int:
        return self.kind.status_code

    def to_dict(self) -> dict:
        """Collaborator-facing payload: kind, message, status and log (when present)."""
        payload = {
            "kind": self.kind.value,
            "message": self.message,
            "status_code": self.status_code,
        }
        if self.log is not None:
            payload["log"] = self.log
        if self.errors:
            payload["errors"] = list(self.errors)
        return payload


class ToolingMissingError(CompilationError):
    """Neither the full-build tool nor the single-pass engine is installed."""

    kind = FailureKind.TOOLING_MISSING


class NoFilesError(CompilationError):
    """Project request with an empty file list."""

    kind = FailureKind.NO_FILES


class MainFileNotFoundError(CompilationError):
    """Project request whose main file is not among the provided files."""

    kind = FailureKind.MAIN_FILE_NOT_FOUND


class InvalidSourceFileError(CompilationError):
    """
    Source file rejected before any write.

    Raised for paths that would escape the workspace (absolute paths, '..'
    segments, empty paths) and for binary content that is not valid base64.
    """

    kind = FailureKind.INVALID_FILE

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        super().__init__(message)


class CompileFailedError(CompilationError):
    """The toolchain ran but produced no PDF. Fixable by editing the source."""

    kind = FailureKind.COMPILE_FAILED


class CompileTimeoutError(CompilationError):
    """The toolchain exceeded the time budget. Retry with simpler source or more time."""

    kind = FailureKind.TIMEOUT
