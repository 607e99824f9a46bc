from __future__ import annotations

import threading
from typing import Any, Dict, Optional, Tuple

from ..auth.providers import AuthContext, AuthError, make_client

try:
    import oci  # type: ignore
except Exception:  # pragma: no cover - surfaced when a client is first requested
    oci = None  # type: ignore


# One client per (service, region, auth identity, timeout) for the life of the process.
_CLIENT_CACHE: Dict[Tuple[str, str, int, Optional[float]], Any] = {}
_CLIENT_LOCK = threading.Lock()


def clear_client_cache() -> None:
    with _CLIENT_LOCK:
        _CLIENT_CACHE.clear()


def _cached_client(service: str, factory: Any, ctx: AuthContext, region: str, timeout: Optional[float]) -> Any:
    key = (service, region, id(ctx), timeout)
    with _CLIENT_LOCK:
        client = _CLIENT_CACHE.get(key)
        if client is None:
            client = make_client(factory, ctx, region=region, timeout=timeout)
            _CLIENT_CACHE[key] = client
        return client


def get_compute_client(ctx: AuthContext, region: str, timeout: Optional[float] = None) -> Any:
    """
    ComputeClient for instance listing and VNIC attachment lookups.
    """
    if oci is None:  # pragma: no cover
        raise AuthError("oci Python SDK not installed.")
    return _cached_client("compute", oci.core.ComputeClient, ctx, region, timeout)  # type: ignore[attr-defined]


def get_network_client(ctx: AuthContext, region: str, timeout: Optional[float] = None) -> Any:
    """
    VirtualNetworkClient for VNIC detail lookups.
    """
    if oci is None:  # pragma: no cover
        raise AuthError("oci Python SDK not installed.")
    return _cached_client("network", oci.core.VirtualNetworkClient, ctx, region, timeout)  # type: ignore[attr-defined]
