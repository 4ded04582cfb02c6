#!/usr/bin/env python3
"""
p11ne Enclave Init

Init process of the p11ne enclave. Starts the p11-kit server and the
provisioning server, then blocks until the provisioning server exits.
Returning from main ends the init process, which terminates the enclave.

Usage:
    p11ne-init

All process parameters are compiled in; the command takes no arguments.
"""

import sys

from p11ne_init.logging_config import get_logger, initialize
from p11ne_init.supervisor.models import ConfigurationError, SpawnError
from p11ne_init.supervisor.supervisor import Supervisor


def main() -> int:
    """
    Main entry point for p11ne-init.

    Returns:
        Exit code: 0 once the provisioning server has exited, whatever its
        own status; 1 if a process could not be started
    """
    initialize()
    logger = get_logger(__name__)

    if sys.argv[1:]:
        logger.warning(f"Ignoring command-line arguments: {' '.join(sys.argv[1:])}")

    try:
        Supervisor().run()
    except (SpawnError, ConfigurationError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    logger.info("Shutting down enclave")
    return 0


if __name__ == "__main__":
    sys.exit(main())
