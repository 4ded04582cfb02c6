"""
Process supervision for the p11ne enclave init.

The init process launches the enclave's services from a fixed table and
exits when the critical one (the provisioning server) exits, which shuts
the enclave down.
"""

from .models import ConfigurationError, ManagedProcess, SpawnError, SupervisorState
from .process_table import P11_KIT_SERVER, PROCESS_TABLE, PROVISIONING_SERVER
from .supervisor import Supervisor, validate_process_table

__all__ = [
    "ConfigurationError",
    "ManagedProcess",
    "SpawnError",
    "Supervisor",
    "SupervisorState",
    "PROCESS_TABLE",
    "P11_KIT_SERVER",
    "PROVISIONING_SERVER",
    "validate_process_table",
]
