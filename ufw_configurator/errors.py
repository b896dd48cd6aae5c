"""Exception hierarchy and process exit codes."""

from typing import List, Optional

EXIT_SUCCESS: int = 0
EXIT_FAILURE: int = 1
EXIT_INTERRUPTED: int = 130


class UfwConfiguratorError(Exception):
    """Base class for every failure the configurator reports."""

    exit_code: int = EXIT_FAILURE


class PrerequisiteError(UfwConfiguratorError):
    """Missing privileges or required tools."""


class DetectionError(UfwConfiguratorError):
    """A required network fact could not be determined."""


class ValidationError(UfwConfiguratorError):
    """Detected network values are unsuitable for rule generation."""


class NetworkConflictError(ValidationError):
    """The LAN network collides with a Docker network."""


class UserAbort(ValidationError):
    """The user declined to continue with a suspicious network."""


class MutationError(UfwConfiguratorError):
    """A firewall operation failed while applying the plan."""

    def __init__(self, message: str, rollback_errors: Optional[List[str]] = None):
        super().__init__(message)
        self.rollback_errors = rollback_errors or []


class CommandError(UfwConfiguratorError):
    """An external command failed or timed out."""

    def __init__(
        self,
        cmd: List[str],
        returncode: Optional[int] = None,
        stdout: str = "",
        stderr: str = "",
        timed_out: bool = False,
    ):
        self.cmd = list(cmd)
        self.returncode = returncode
        self.stdout = stdout or ""
        self.stderr = stderr or ""
        self.timed_out = timed_out
        if timed_out:
            message = f"Command timed out: {' '.join(self.cmd)}"
        else:
            message = f"Command failed ({returncode}): {' '.join(self.cmd)}"
            if self.stderr.strip():
                message += f": {self.stderr.strip()}"
        super().__init__(message)
