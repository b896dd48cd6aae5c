"""
Firewall rule application.

The plan runs inside a FirewallTransaction. Each applied operation pushes
its compensation onto a rollback stack: the reset pushes a restore of the
pre-run snapshot, each rule pushes its `ufw delete`. A failure unwinds the
stack in reverse order and raises MutationError; success commits and
clears it.
"""

from typing import Callable, List, Optional, Tuple

from .backup import BackupManager, BackupSnapshot
from .commands import CommandRunner
from .config import Config
from .errors import CommandError, MutationError
from .logger import get_logger
from .rules import RESET, FirewallOperation, FirewallPlan


class RollbackStack:
    """LIFO stack of (description, callable) compensations."""

    def __init__(self) -> None:
        self._actions: List[Tuple[str, Callable[[], None]]] = []

    def push(self, description: str, action: Callable[[], None]) -> None:
        self._actions.append((description, action))

    def clear(self) -> None:
        self._actions.clear()

    def __len__(self) -> int:
        return len(self._actions)

    def unwind(self) -> List[str]:
        """
        Run every compensation, newest first.

        Returns the failures as messages; one failing compensation does
        not stop the others.
        """
        logger = get_logger()
        errors: List[str] = []
        while self._actions:
            description, action = self._actions.pop()
            logger.debug(f"Rolling back: {description}")
            try:
                action()
            except Exception as e:
                message = f"{description}: {e}"
                logger.error(f"Rollback step failed: {message}")
                errors.append(message)
        return errors


class FirewallTransaction:
    def __init__(
        self,
        runner: CommandRunner,
        config: Config,
        backups: BackupManager,
        snapshot: BackupSnapshot,
    ):
        self.runner = runner
        self.config = config
        self.backups = backups
        self.snapshot = snapshot
        self.rollback = RollbackStack()
        self.applied: List[FirewallOperation] = []
        self.committed = False
        self.logger = get_logger()

    def __enter__(self) -> "FirewallTransaction":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if exc_type is not None and not self.committed:
            errors = self.rollback.unwind()
            if isinstance(exc_val, MutationError):
                exc_val.rollback_errors.extend(errors)
        return False

    def execute(self, op: FirewallOperation) -> None:
        self.logger.info(op.description)
        try:
            self.runner.run(op.command(self.config.ufw_binary), privileged=True)
        except CommandError as e:
            raise MutationError(f"Failed to apply '{op.command_line()}': {e}") from e
        self.applied.append(op)
        self._push_compensation(op)

    def _push_compensation(self, op: FirewallOperation) -> None:
        if op.kind == RESET:
            self.rollback.push(
                f"restore snapshot {self.snapshot.path}",
                lambda: self.backups.restore(self.snapshot),
            )
            return
        undo = op.undo_command(self.config.ufw_binary)
        if undo is not None:
            self.rollback.push(
                " ".join(undo),
                lambda: self.runner.run(undo, privileged=True),
            )

    def commit(self) -> None:
        self.committed = True
        self.rollback.clear()


class FirewallApplier:
    """Applies a FirewallPlan after taking a snapshot of the current state."""

    def __init__(
        self,
        runner: CommandRunner,
        config: Config,
        backups: Optional[BackupManager] = None,
    ):
        self.runner = runner
        self.config = config
        self.backups = backups or BackupManager(runner, config)
        self.logger = get_logger()

    def apply(self, plan: FirewallPlan) -> BackupSnapshot:
        """
        Snapshot, then run every operation in order.

        Returns the snapshot taken before mutation. Raises MutationError if
        the snapshot or any operation fails; no operation runs without a
        snapshot.
        """
        try:
            snapshot = self.backups.create()
        except CommandError as e:
            raise MutationError(f"Could not create backup, nothing applied: {e}") from e

        with FirewallTransaction(self.runner, self.config, self.backups, snapshot) as txn:
            for op in plan.operations:
                txn.execute(op)
            txn.commit()

        self.logger.info("UFW configuration completed successfully")
        return snapshot
