"""The enclave's service processes, in launch order."""

from typing import Tuple

from .models import ManagedProcess

# Exposes the PKCS#11 token over vsock. Launched and left alone.
P11_KIT_SERVER = ManagedProcess(
    name="p11-kit server",
    program="p11-kit",
    args=(
        "server",
        "-n",
        "vsock:port=9999",
        "--provider",
        "/usr/lib/libvtok_p11.so",
        "-f",
        "-v",
        "pkcs11:",
    ),
    env={"P11_KIT_STRICT": "yes"},
    critical=False,
)

# Provisioning/RPC server. When it exits the enclave shuts down.
PROVISIONING_SERVER = ManagedProcess(
    name="provisioning server",
    program="p11ne-server",
    args=("vsock", "10000"),
    critical=True,
)

PROCESS_TABLE: Tuple[ManagedProcess, ...] = (P11_KIT_SERVER, PROVISIONING_SERVER)
