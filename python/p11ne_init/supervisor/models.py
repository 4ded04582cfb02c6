"""Process descriptions and supervisor state for the enclave init."""

from enum import Enum
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ConfigurationError(Exception):
    """Exception raised for process table validation errors."""

    pass


class SupervisorState(str, Enum):
    """Lifecycle of a supervisor run.

    IDLE -> LAUNCHING -> AWAITING_CRITICAL -> TERMINATING, with a direct
    LAUNCHING -> TERMINATING when a process fails to spawn.
    """

    IDLE = "idle"
    LAUNCHING = "launching"
    AWAITING_CRITICAL = "awaiting_critical"
    TERMINATING = "terminating"


ALLOWED_TRANSITIONS: Dict[SupervisorState, Tuple[SupervisorState, ...]] = {
    SupervisorState.IDLE: (SupervisorState.LAUNCHING,),
    SupervisorState.LAUNCHING: (
        SupervisorState.AWAITING_CRITICAL,
        SupervisorState.TERMINATING,
    ),
    SupervisorState.AWAITING_CRITICAL: (SupervisorState.TERMINATING,),
    SupervisorState.TERMINATING: (),
}


class ManagedProcess(BaseModel):
    """One child service launched by the init process.

    Attributes:
        name: Human readable name used in log and error messages
        program: Executable name, resolved through PATH at launch
        args: Ordered argument list passed after the program
        env: Environment variables set on top of the inherited environment,
            stored read-only
        critical: Whether the supervisor waits on this process; its exit
            shuts the enclave down. Non-critical processes are not observed
            after they have been spawned.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    program: str
    args: Tuple[str, ...] = ()
    env: Mapping[str, str] = Field(default_factory=dict, validate_default=True)
    critical: bool = False

    @field_validator("name", "program")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be empty")
        return value

    @field_validator("env")
    @classmethod
    def _read_only_env(cls, value: Mapping[str, str]) -> Mapping[str, str]:
        return MappingProxyType(dict(value))

    def command(self) -> List[str]:
        """Argument vector handed to the OS, program first."""
        return [self.program, *self.args]

    def environment(self, base: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        """Inherited environment with this process's overrides applied."""
        merged = dict(base or {})
        merged.update(self.env)
        return merged


class SpawnError(RuntimeError):
    """Raised when the OS fails to create a managed process."""

    def __init__(self, process: ManagedProcess, message: str):
        super().__init__(message)
        self.process = process
