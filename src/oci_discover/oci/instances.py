from __future__ import annotations

from typing import Any, List, Optional

from ..auth.providers import AuthContext
from ..logging import get_logger
from ..model import Instance, Target
from ..util.errors import DiscoveryError, map_oci_error
from ..util.pagination import paginate_oci
from .clients import get_compute_client

LOG = get_logger(__name__)

RUNNING = "RUNNING"
PAGE_LIMIT = 1000


def _to_instance(item: Any) -> Optional[Instance]:
    ocid = getattr(item, "id", None)
    name = getattr(item, "display_name", None)
    if not ocid or not name:
        return None
    return Instance(id=str(ocid), name=str(name))


def list_running_instances(ctx: AuthContext, target: Target, *, timeout: Optional[float] = None) -> List[Instance]:
    """
    Return every RUNNING instance in the target compartment/region, in the
    order the API lists them. Pages are followed until exhausted; callers
    never see a partial inventory.

    Instances without an id or a display name are dropped. Any provider
    failure, a response without a payload, or an inventory with no usable
    instance raises DiscoveryError.
    """
    context = f"listing RUNNING instances in {target.compartment_id} ({target.region})"
    try:
        client = get_compute_client(ctx, target.region, timeout=timeout)
        items = list(
            paginate_oci(
                client.list_instances,
                target.compartment_id,
                lifecycle_state=RUNNING,
                limit=PAGE_LIMIT,
            )
        )
    except Exception as e:
        mapped = map_oci_error(e, f"OCI SDK error while {context}")
        raise DiscoveryError(str(mapped or f"Failed {context}: {e}")) from e

    instances: List[Instance] = []
    skipped = 0
    for item in items:
        inst = _to_instance(item)
        if inst is None:
            skipped += 1
            continue
        instances.append(inst)
    if skipped:
        LOG.debug("Skipped instances without id or name", extra={"skipped": skipped})
    if not instances:
        raise DiscoveryError(f"No RUNNING instances returned while {context}")
    return instances
