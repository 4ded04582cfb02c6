"""p11ne enclave init.

Launches the enclave's service processes and ties the enclave's lifetime to
the provisioning server:
- Supervisor: from .supervisor import Supervisor
- Logging: from .logging_config import initialize, get_logger
"""

__version__ = "0.1.0"
