"""Unit tests for the supervisor process model."""

import pytest
from pydantic import ValidationError

from p11ne_init.supervisor.models import (
    ALLOWED_TRANSITIONS,
    ManagedProcess,
    SpawnError,
    SupervisorState,
)


class TestManagedProcess:
    """Test the ManagedProcess model."""

    def test_defaults(self):
        """Test that a process defaults to no args, no env and non-critical."""
        process = ManagedProcess(name="echo", program="echo")

        assert process.args == ()
        assert process.env == {}
        assert process.critical is False

    def test_command_puts_program_first(self):
        """Test that the argument vector starts with the program."""
        process = ManagedProcess(name="server", program="p11ne-server", args=("vsock", "10000"))
        assert process.command() == ["p11ne-server", "vsock", "10000"]

    def test_args_list_coerced_to_tuple(self):
        """Test that an argument list is stored as an ordered tuple."""
        process = ManagedProcess(name="ls", program="ls", args=["-l", "-a"])
        assert process.args == ("-l", "-a")

    def test_environment_applies_overrides(self):
        """Test that overrides are applied on top of the inherited environment."""
        process = ManagedProcess(
            name="p11-kit", program="p11-kit", env={"P11_KIT_STRICT": "yes"}
        )

        env = process.environment({"PATH": "/usr/bin", "P11_KIT_STRICT": "no"})

        assert env == {"PATH": "/usr/bin", "P11_KIT_STRICT": "yes"}

    def test_environment_does_not_mutate_base(self):
        """Test that the inherited environment mapping is left untouched."""
        base = {"PATH": "/usr/bin"}
        process = ManagedProcess(name="p", program="p", env={"X": "1"})

        process.environment(base)

        assert base == {"PATH": "/usr/bin"}

    def test_environment_without_base(self):
        """Test that only the overrides are returned without a base."""
        process = ManagedProcess(name="p", program="p", env={"X": "1"})
        assert process.environment() == {"X": "1"}

    def test_frozen(self):
        """Test that a process description cannot be modified."""
        process = ManagedProcess(name="p", program="p")
        with pytest.raises(ValidationError):
            process.critical = True

    def test_env_is_read_only(self):
        """Test that the environment overrides cannot be changed after creation."""
        process = ManagedProcess(name="p", program="p", env={"X": "1"})

        with pytest.raises(TypeError):
            process.env["X"] = "2"

        assert process.environment() == {"X": "1"}

    def test_default_env_is_read_only(self):
        """Test that the default empty environment is read-only as well."""
        process = ManagedProcess(name="p", program="p")

        with pytest.raises(TypeError):
            process.env["X"] = "1"

    def test_env_copied_from_source_mapping(self):
        """Test that later changes to the source dict do not leak into the process."""
        source = {"X": "1"}
        process = ManagedProcess(name="p", program="p", env=source)

        source["X"] = "2"

        assert process.env == {"X": "1"}

    @pytest.mark.parametrize("field", ["name", "program"])
    @pytest.mark.parametrize("value", ["", "   "])
    def test_blank_fields_rejected(self, field, value):
        """Test that name and program cannot be blank."""
        kwargs = {"name": "p", "program": "p", field: value}
        with pytest.raises(ValidationError, match="must not be empty"):
            ManagedProcess(**kwargs)


class TestSupervisorState:
    """Test the supervisor state machine table."""

    def test_happy_path_transitions(self):
        """Test that the normal lifecycle is allowed."""
        assert SupervisorState.LAUNCHING in ALLOWED_TRANSITIONS[SupervisorState.IDLE]
        assert (
            SupervisorState.AWAITING_CRITICAL
            in ALLOWED_TRANSITIONS[SupervisorState.LAUNCHING]
        )
        assert (
            SupervisorState.TERMINATING
            in ALLOWED_TRANSITIONS[SupervisorState.AWAITING_CRITICAL]
        )

    def test_spawn_failure_transition(self):
        """Test that launching can go straight to terminating."""
        assert SupervisorState.TERMINATING in ALLOWED_TRANSITIONS[SupervisorState.LAUNCHING]

    def test_terminating_is_final(self):
        """Test that nothing follows terminating."""
        assert ALLOWED_TRANSITIONS[SupervisorState.TERMINATING] == ()

    def test_idle_cannot_skip_launching(self):
        """Test that idle cannot jump to waiting or terminating."""
        assert ALLOWED_TRANSITIONS[SupervisorState.IDLE] == (SupervisorState.LAUNCHING,)


class TestSpawnError:
    """Test the SpawnError exception."""

    def test_carries_process(self):
        """Test that the failed process is attached to the error."""
        process = ManagedProcess(name="p", program="p")
        error = SpawnError(process, "p failed to start")

        assert error.process is process
        assert str(error) == "p failed to start"
        assert isinstance(error, RuntimeError)
