"""
Supervision of the enclave's service processes.

The supervisor launches every entry of the process table in order and then
blocks until the critical process exits. Non-critical processes are spawned
and never looked at again. Once the critical process has exited the
supervisor returns, and the init process exiting is what shuts the enclave
down.
"""

import os
import subprocess
from typing import Dict, Iterable, Tuple

from ..logging_config import get_logger
from .models import (
    ALLOWED_TRANSITIONS,
    ConfigurationError,
    ManagedProcess,
    SpawnError,
    SupervisorState,
)
from .process_table import PROCESS_TABLE

logger = get_logger(__name__)


def validate_process_table(processes: Tuple[ManagedProcess, ...]) -> ManagedProcess:
    """Check a process table and return its critical entry.

    Raises:
        ConfigurationError: If the table is empty, has duplicate names, or
            does not have exactly one critical process
    """
    if not processes:
        raise ConfigurationError("Process table cannot be empty")

    names = [process.name for process in processes]
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        raise ConfigurationError(f"Duplicate process names in table: {duplicates}")

    critical = [process for process in processes if process.critical]
    if len(critical) != 1:
        raise ConfigurationError(
            f"Process table must have exactly one critical process, got {len(critical)}"
        )
    return critical[0]


class Supervisor:
    """Launches the process table and waits on its critical process."""

    def __init__(self, processes: Iterable[ManagedProcess] = PROCESS_TABLE):
        self.processes: Tuple[ManagedProcess, ...] = tuple(processes)
        self.critical = validate_process_table(self.processes)
        self._state = SupervisorState.IDLE
        self._launched: Dict[str, subprocess.Popen] = {}

    @property
    def state(self) -> SupervisorState:
        return self._state

    @property
    def launched(self) -> Dict[str, subprocess.Popen]:
        """Spawned processes by name, in launch order."""
        return dict(self._launched)

    def _transition(self, new_state: SupervisorState) -> None:
        if new_state not in ALLOWED_TRANSITIONS[self._state]:
            raise RuntimeError(
                f"Invalid supervisor transition: {self._state.value} -> {new_state.value}"
            )
        logger.debug(f"Supervisor state: {self._state.value} -> {new_state.value}")
        self._state = new_state

    def spawn(self, process: ManagedProcess) -> subprocess.Popen:
        """Start one managed process.

        Args:
            process: The process to start

        Returns:
            The Popen handle of the started process

        Raises:
            SpawnError: If the OS fails to create the process
        """
        if process.name in self._launched:
            raise RuntimeError(f"{process.name} has already been launched")

        command = process.command()
        logger.info(f"Starting {process.name}: {' '.join(command)}")
        try:
            child = subprocess.Popen(command, env=process.environment(os.environ))
        except OSError as e:
            error_msg = f"{process.name} failed to start: {e}"
            logger.error(error_msg)
            raise SpawnError(process, error_msg) from e

        self._launched[process.name] = child
        logger.info(f"Started {process.name} (pid {child.pid})")
        return child

    def run(self) -> None:
        """Launch every process, then block until the critical one exits.

        A spawn failure stops the run before any later process is launched
        or waited on. The critical process's exit status is reported but has
        no effect on the run: any exit means the enclave is shutting down.

        Raises:
            SpawnError: If any process fails to spawn
            RuntimeError: If the supervisor has already been run
        """
        if self._state is not SupervisorState.IDLE:
            raise RuntimeError("Supervisor can only be run once")

        self._transition(SupervisorState.LAUNCHING)
        try:
            for process in self.processes:
                self.spawn(process)
        except SpawnError:
            self._transition(SupervisorState.TERMINATING)
            raise

        self._transition(SupervisorState.AWAITING_CRITICAL)
        returncode = self._launched[self.critical.name].wait()

        logger.warning(f"{self.critical.name} has exited (status {returncode})")
        self._transition(SupervisorState.TERMINATING)
