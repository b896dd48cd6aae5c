# ----------------------------------------------------------------
# UFW Configuration Backup
# ----------------------------------------------------------------
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from .commands import CommandRunner
from .config import UFW_FILES_TO_BACKUP, Config, timestamp
from .errors import CommandError
from .logger import get_logger

STATUS_FILE: str = "status.txt"
IPTABLES_FILE: str = "iptables.txt"


@dataclass(frozen=True)
class BackupSnapshot:
    path: Path
    created: str
    files: Tuple[str, ...] = field(default_factory=tuple)


class BackupManager:
    """
    Snapshots /etc/ufw into a timestamped backup-* directory and restores it.

    All filesystem writes go through the runner so they pick up sudo.
    """

    def __init__(self, runner: CommandRunner, config: Config):
        self.runner = runner
        self.config = config
        self.logger = get_logger()

    def create(self, stamp: Optional[str] = None) -> BackupSnapshot:
        """
        Copy the ufw rule files and current status into a new backup directory.

        Raises CommandError if the directory cannot be created. Individual
        files that fail to copy only produce a warning.
        """
        stamp = stamp or timestamp()
        backup_dir = self.config.backup_dir(stamp)
        self.logger.info(f"Creating backup directory: {backup_dir}")
        self.runner.run(["mkdir", "-p", str(backup_dir)], privileged=True)

        copied: List[str] = []
        for name in UFW_FILES_TO_BACKUP:
            source = self.config.ufw_dir / name
            if not source.is_file():
                continue
            try:
                self.runner.run(["cp", "-p", str(source), str(backup_dir) + "/"], privileged=True)
                copied.append(name)
            except CommandError as e:
                self.logger.warning(f"Failed to backup {name}: {e}")

        self._save_output(
            [self.config.ufw_binary, "status", "verbose"], backup_dir / STATUS_FILE
        )
        self._save_output(["iptables-save"], backup_dir / IPTABLES_FILE)

        try:
            self.config.backup_location_file.write_text(f"{backup_dir}\n")
        except OSError as e:
            self.logger.warning(f"Could not record backup location: {e}")

        self.logger.info(f"Backup created successfully: {backup_dir}")
        return BackupSnapshot(path=backup_dir, created=stamp, files=tuple(copied))

    def _save_output(self, cmd: List[str], destination: Path) -> None:
        try:
            result = self.runner.run(cmd, check=False, privileged=True)
            content = result.stdout + result.stderr
            self.runner.run(
                ["tee", str(destination)], privileged=True, input=content
            )
        except CommandError as e:
            self.logger.debug(f"Could not save {destination.name}: {e}")

    def restore(self, snapshot: BackupSnapshot) -> None:
        """
        Copy the snapshot's rule files back and reload ufw.

        Raises CommandError if a copy or the reload fails.
        """
        self.logger.warning(f"Restoring from backup: {snapshot.path}")
        for name in snapshot.files:
            self.runner.run(
                ["cp", "-p", str(snapshot.path / name), str(self.config.ufw_dir) + "/"],
                privileged=True,
            )
        self.runner.run([self.config.ufw_binary, "reload"], privileged=True)
