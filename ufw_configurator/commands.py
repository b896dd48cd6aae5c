# ----------------------------------------------------------------
# Command Execution Helper
# ----------------------------------------------------------------
import os
import shutil
import subprocess
from typing import Dict, List, Optional

from .errors import CommandError
from .logger import get_logger


class CommandRunner:
    """
    Runs external commands synchronously.

    Privileged commands are prefixed with sudo when the process is not root.
    Every invocation is logged at debug level.
    """

    def __init__(self, default_timeout: int = 60, sudo: Optional[bool] = None):
        self.default_timeout = default_timeout
        self.use_sudo = (os.geteuid() != 0) if sudo is None else sudo
        self.logger = get_logger()

    def which(self, name: str) -> Optional[str]:
        # ufw and iptables live in sbin, which is not always on a user's PATH
        return shutil.which(name) or shutil.which(name, path="/usr/sbin:/sbin")

    def has_command(self, name: str) -> bool:
        return self.which(name) is not None

    def run(
        self,
        cmd: List[str],
        check: bool = True,
        privileged: bool = False,
        timeout: Optional[int] = None,
        env: Optional[Dict[str, str]] = None,
        input: Optional[str] = None,
    ) -> subprocess.CompletedProcess:
        """
        Execute a command and return the CompletedProcess.

        Raises CommandError on a nonzero exit (when check is set) or timeout.
        """
        full_cmd = list(cmd)
        if privileged and self.use_sudo:
            full_cmd.insert(0, "sudo")
        timeout = self.default_timeout if timeout is None else timeout

        self.logger.debug(f"Running command: {' '.join(full_cmd)}")
        try:
            result = subprocess.run(
                full_cmd,
                input=input,
                check=False,
                text=True,
                capture_output=True,
                timeout=timeout,
                env=env or os.environ.copy(),
            )
        except subprocess.TimeoutExpired as e:
            self.logger.debug(f"Command timed out after {timeout}s: {' '.join(full_cmd)}")
            raise CommandError(full_cmd, timed_out=True) from e
        except FileNotFoundError as e:
            if not check:
                return subprocess.CompletedProcess(full_cmd, 127, "", str(e))
            raise CommandError(full_cmd, returncode=127, stderr=str(e)) from e

        if check and result.returncode != 0:
            self.logger.debug(
                f"Command exited {result.returncode}: {' '.join(full_cmd)}"
                f" stderr={result.stderr.strip()!r}"
            )
            raise CommandError(
                full_cmd,
                returncode=result.returncode,
                stdout=result.stdout,
                stderr=result.stderr,
            )
        return result

    def succeeds(
        self, cmd: List[str], privileged: bool = False, timeout: Optional[int] = None
    ) -> bool:
        """Return True when the command exits zero, False on any failure."""
        try:
            self.run(cmd, check=True, privileged=privileged, timeout=timeout)
            return True
        except CommandError:
            return False

    def output(
        self, cmd: List[str], privileged: bool = False, timeout: Optional[int] = None
    ) -> str:
        """Return stdout of a command that must succeed."""
        return self.run(cmd, privileged=privileged, timeout=timeout).stdout
