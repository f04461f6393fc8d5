"""
Prefixed unique identifiers.

Ids combine a millisecond timestamp with a random suffix and sort roughly by
creation time.
"""

import time
from uuid import uuid4


def new_id(prefix: str) -> str:
    """Mint an id such as ``session_1718000000000_3f9a0c1b2``."""
    return f"{prefix}_{int(time.time() * 1000)}_{uuid4().hex[:9]}"


def new_permission_id() -> str:
    return new_id("mcp_perm")


def new_session_id() -> str:
    return new_id("session")


def new_client_id() -> str:
    return new_id("client")


__all__ = ["new_id", "new_permission_id", "new_session_id", "new_client_id"]
