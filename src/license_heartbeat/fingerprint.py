"""Machine fingerprinting."""

import hashlib
import platform
import uuid


def get_fingerprint() -> str:
    """
    Generate a stable fingerprint for this machine.
    Combines MAC address, hostname, OS and architecture into a SHA-256 digest.
    """
    mac = ":".join(
        "{:02x}".format((uuid.getnode() >> shift) & 0xFF) for shift in range(40, -1, -8)
    )
    data = f"{mac}|{platform.node()}|{platform.system()}|{platform.machine()}"
    return hashlib.sha256(data.encode()).hexdigest()
