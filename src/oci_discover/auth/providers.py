from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from ..util.errors import OCIClientError, map_oci_error

try:
    import oci  # type: ignore
except Exception:  # pragma: no cover - import error surfaced at runtime/CI
    oci = None  # type: ignore


ConfigDict = Dict[str, Any]
AUTH_METHODS = ("auto", "config", "instance", "resource", "security_token")


@dataclass(frozen=True)
class AuthContext:
    """
    Resolved authentication used to build OCI SDK clients.
    Exactly one of (config_dict, signer) is set.
    """

    method: str  # config|instance|resource (resolved final)
    config_dict: Optional[ConfigDict]
    signer: Optional[Any]
    profile: Optional[str]
    tenancy_ocid: Optional[str]


class AuthError(RuntimeError):
    pass


def _require_oci() -> None:
    if oci is None:
        raise AuthError("oci Python SDK not installed. Install dependencies and try again: pip install .")


def _reraise_auth(e: Exception, what: str) -> None:
    mapped = map_oci_error(e, f"OCI SDK error while resolving {what}")
    if mapped:
        raise mapped from e
    raise AuthError(f"Failed to resolve {what}: {e}") from e


def _from_config(profile: Optional[str], tenancy_ocid: Optional[str]) -> AuthContext:
    try:
        if profile:
            cfg = oci.config.from_file(profile_name=profile)  # type: ignore[attr-defined]
        else:
            cfg = oci.config.from_file()  # type: ignore[attr-defined]
    except Exception as e:
        _reraise_auth(e, "config profile")
    return AuthContext(
        method="config",
        config_dict=cfg,
        signer=None,
        profile=profile or "DEFAULT",
        tenancy_ocid=tenancy_ocid or cfg.get("tenancy"),
    )


def _from_instance_principals(tenancy_ocid: Optional[str]) -> AuthContext:
    try:
        signer = oci.auth.signers.InstancePrincipalsSecurityTokenSigner()  # type: ignore[attr-defined]
    except Exception as e:
        _reraise_auth(e, "instance principals")
    return AuthContext(method="instance", config_dict=None, signer=signer, profile=None, tenancy_ocid=tenancy_ocid)


def _from_resource_principals(tenancy_ocid: Optional[str]) -> AuthContext:
    try:
        signer = oci.auth.signers.get_resource_principals_signer()  # type: ignore[attr-defined]
    except Exception as e:
        _reraise_auth(e, "resource principals")
    return AuthContext(method="resource", config_dict=None, signer=signer, profile=None, tenancy_ocid=tenancy_ocid)


def resolve_auth(method: str, profile: Optional[str], tenancy_ocid: Optional[str] = None) -> AuthContext:
    """
    Resolve auth according to the requested method.
    - auto: resource principals -> instance principals -> config file
    - config / security_token: ~/.oci/config profile
    - instance: instance principals (what the discovery host normally runs with)
    - resource: resource principals
    """
    _require_oci()
    method = (method or "auto").lower()

    if method in ("config", "security_token"):
        return _from_config(profile, tenancy_ocid)
    if method == "instance":
        return _from_instance_principals(tenancy_ocid)
    if method == "resource":
        return _from_resource_principals(tenancy_ocid)
    if method != "auto":
        raise AuthError(f"Unsupported auth method: {method}")

    for attempt in (_from_resource_principals, _from_instance_principals):
        try:
            return attempt(tenancy_ocid)
        except (AuthError, OCIClientError):
            continue
    try:
        return _from_config(profile, tenancy_ocid)
    except OCIClientError:
        raise
    except Exception as e:
        raise AuthError(
            "Failed to resolve auth in 'auto' mode. Tried resource principals, instance principals, then config.\n"
            f"Last error: {e}"
        ) from e


def _no_retry_strategy() -> Optional[Any]:
    factory = getattr(getattr(oci, "retry", None), "NoneRetryStrategy", None)
    return factory() if callable(factory) else None


def client_timeout(timeout: Optional[float]) -> Optional[Tuple[float, float]]:
    """(connect, read) timeout tuple as accepted by OCI SDK clients."""
    if timeout is None or timeout <= 0:
        return None
    return (float(timeout), float(timeout))


def make_client(
    client_cls: Any,
    ctx: AuthContext,
    region: Optional[str] = None,
    timeout: Optional[float] = None,
) -> Any:
    """
    Construct an OCI SDK client of type client_cls pinned to region.
    SDK retries are switched off: a failed call is reported once, as is.
    timeout (seconds) bounds both connect and read on every request.
    """
    _require_oci()
    kwargs: Dict[str, Any] = {}
    retry = _no_retry_strategy()
    if retry is not None:
        kwargs["retry_strategy"] = retry
    timeouts = client_timeout(timeout)
    if timeouts is not None:
        kwargs["timeout"] = timeouts

    if ctx.config_dict is not None:
        cfg = dict(ctx.config_dict)
        if region:
            cfg["region"] = region
        return client_cls(cfg, **kwargs)
    if ctx.signer is not None:
        resolved_region = region or os.getenv("OCI_REGION") or os.getenv("OCI_CLI_REGION")
        if not resolved_region:
            raise AuthError(
                "Region is required for signer-based auth. Set OCI_REGION/OCI_CLI_REGION or pass an explicit region."
            )
        return client_cls({"region": resolved_region}, signer=ctx.signer, **kwargs)
    raise AuthError("Invalid AuthContext: neither config_dict nor signer present")
