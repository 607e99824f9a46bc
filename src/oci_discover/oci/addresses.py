from __future__ import annotations

from typing import Optional

from ..auth.providers import AuthContext
from ..logging import get_logger
from ..model import NoAddress, NoAttachment, Resolved, ResolutionResult, Target
from .clients import get_compute_client, get_network_client

LOG = get_logger(__name__)


def _first_vnic_id(ctx: AuthContext, target: Target, instance_id: str, timeout: Optional[float]) -> Optional[str]:
    client = get_compute_client(ctx, target.region, timeout=timeout)
    resp = client.list_vnic_attachments(target.compartment_id, instance_id=instance_id)
    attachments = getattr(resp, "data", None) or []
    if not attachments:
        return None
    vnic_id = getattr(attachments[0], "vnic_id", None)
    return str(vnic_id) if vnic_id else None


def _vnic_private_ip(ctx: AuthContext, target: Target, vnic_id: str, timeout: Optional[float]) -> Optional[str]:
    client = get_network_client(ctx, target.region, timeout=timeout)
    vnic = getattr(client.get_vnic(vnic_id), "data", None)
    private_ip = getattr(vnic, "private_ip", None)
    return str(private_ip) if private_ip else None


def resolve_private_ip(
    ctx: AuthContext,
    target: Target,
    instance_id: str,
    *,
    timeout: Optional[float] = None,
) -> ResolutionResult:
    """
    Resolve an instance's private IP: first VNIC attachment -> VNIC -> private_ip.

    Both lookups are best effort. Not-found, transport errors and timeouts
    all collapse into the sentinel for the stage that failed:
    NoAttachment if no VNIC id could be obtained (the VNIC lookup is then
    skipped), NoAddress if the VNIC yielded no private IP. Nothing is retried.
    """
    try:
        vnic_id = _first_vnic_id(ctx, target, instance_id, timeout)
    except Exception as e:
        LOG.debug("VNIC attachment lookup failed", extra={"instance_id": instance_id, "error": str(e)})
        vnic_id = None
    if not vnic_id:
        return NoAttachment()

    try:
        private_ip = _vnic_private_ip(ctx, target, vnic_id, timeout)
    except Exception as e:
        LOG.debug("VNIC lookup failed", extra={"instance_id": instance_id, "vnic_id": vnic_id, "error": str(e)})
        private_ip = None
    if not private_ip:
        return NoAddress()
    return Resolved(private_ip)
