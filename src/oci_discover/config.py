from __future__ import annotations

import argparse
import json
import os
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .auth.providers import AUTH_METHODS
from .model import DEFAULT_PORT, DEFAULT_USER
from .naming import MATCH_ALL_PATTERN
from .util.errors import ConfigError

# --------
# Defaults
# --------
DEFAULT_WORKERS = 1
DEFAULT_TIMEOUT = 30.0
ENV_PREFIX = "OCI_DISCOVER_"
ALLOWED_CONFIG_KEYS = {
    "compartment_id",
    "region",
    "filters",
    "outdir",
    "workers",
    "timeout",
    "user",
    "port",
    "auth",
    "profile",
    "log_level",
    "json_logs",
    "progress",
}
BOOL_CONFIG_KEYS = {"json_logs", "progress"}
INT_CONFIG_KEYS = {"workers", "port"}
FLOAT_CONFIG_KEYS = {"timeout"}
STR_CONFIG_KEYS = {"compartment_id", "region", "outdir", "user", "auth", "profile", "log_level"}


@dataclass(frozen=True)
class RunConfig:
    compartment_id: str
    region: str
    filters: List[str] = field(default_factory=lambda: [MATCH_ALL_PATTERN])
    outdir: Path = field(default_factory=Path.cwd)

    # Resolution
    workers: int = DEFAULT_WORKERS
    timeout: Optional[float] = DEFAULT_TIMEOUT

    # Connection metadata written to every row
    user: str = DEFAULT_USER
    port: int = DEFAULT_PORT

    # Auth
    auth: str = "auto"  # auto|config|instance|resource|security_token
    profile: Optional[str] = None

    # Output
    log_level: str = "INFO"
    json_logs: bool = False
    progress: bool = True


def _parse_config_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text) or {}
    except Exception as e:
        raise ValueError(f"Failed to parse config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ValueError("Top-level config must be an object")
    return data


def _env(name: str) -> Optional[str]:
    raw = os.getenv(ENV_PREFIX + name)
    if raw is None or not raw.strip():
        return None
    return raw.strip()


def _coerce_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        raw = value.strip().lower()
        if raw in {"1", "true", "yes", "on"}:
            return True
        if raw in {"0", "false", "no", "off"}:
            return False
    raise ValueError(f"Config field '{key}' must be a boolean")


def _coerce_int(key: str, value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return int(value)
        except ValueError:
            pass
    raise ValueError(f"Config field '{key}' must be an integer")


def _coerce_float(key: str, value: Any) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    if isinstance(value, str) and value.strip():
        try:
            return float(value)
        except ValueError:
            pass
    raise ValueError(f"Config field '{key}' must be a number")


def _coerce_filters(value: Any) -> List[str]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, list) and all(isinstance(f, str) for f in value):
        return list(value)
    raise ValueError("Config field 'filters' must be a string or a list of strings")


def _normalize(data: Dict[str, Any], *, source: str) -> Dict[str, Any]:
    """
    Type-check and coerce a flat mapping of settings. Keys with None values
    are dropped so they don't override lower-precedence layers.
    """
    unknown = sorted(set(data.keys()) - ALLOWED_CONFIG_KEYS)
    if unknown:
        warnings.warn(f"Unknown {source} keys ignored: {', '.join(unknown)}")
    out: Dict[str, Any] = {}
    for key, value in data.items():
        if key not in ALLOWED_CONFIG_KEYS or value is None:
            continue
        if key == "filters":
            out[key] = _coerce_filters(value)
        elif key in BOOL_CONFIG_KEYS:
            out[key] = _coerce_bool(key, value)
        elif key in INT_CONFIG_KEYS:
            out[key] = _coerce_int(key, value)
        elif key in FLOAT_CONFIG_KEYS:
            out[key] = _coerce_float(key, value)
        elif key in STR_CONFIG_KEYS:
            if isinstance(value, Path):
                value = str(value)
            if not isinstance(value, str):
                raise ValueError(f"Config field '{key}' must be a string")
            out[key] = value
    auth = out.get("auth")
    if auth is not None:
        auth = auth.lower()
        if auth not in AUTH_METHODS:
            raise ValueError(f"Config field 'auth' must be one of: {', '.join(sorted(AUTH_METHODS))}")
        out["auth"] = auth
    return out


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="oci-discover",
        description="Discover running OCI instances and write one connection CSV per name filter.",
        epilog=(
            "Filters on the command line require both positionals. "
            "If no filters are given every instance is written to all_instances.csv. "
            "Example: oci-discover ocid1.compartment.oc1..aaa ap-singapore-2 'web.*' '.*db.*'"
        ),
    )
    parser.add_argument("compartment_id", nargs="?", default=None, help="OCI compartment OCID")
    parser.add_argument("region", nargs="?", default=None, help="OCI region (e.g. ap-singapore-2)")
    parser.add_argument("filters", nargs="*", default=None, help="Regex patterns over instance display names")
    parser.add_argument("--config", type=Path, help="Optional YAML/JSON config file")
    parser.add_argument("--outdir", type=Path, default=None, help="Directory for the CSV files (default: cwd)")
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help=f"Parallel IP lookups per filter (default {DEFAULT_WORKERS}, sequential)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help=f"Per-request connect/read timeout in seconds, 0 disables (default {DEFAULT_TIMEOUT:g})",
    )
    parser.add_argument("--user", default=None, help=f"Login user written to every row (default {DEFAULT_USER})")
    parser.add_argument("--port", type=int, default=None, help=f"SSH port written to every row (default {DEFAULT_PORT})")
    parser.add_argument("--auth", default=None, choices=list(AUTH_METHODS), help="Auth method (default: auto)")
    parser.add_argument("--profile", default=None, help="OCI config profile (for config auth)")
    parser.add_argument("--log-level", default=None, help="Log level (INFO, DEBUG, ...)")
    parser.add_argument("--json-logs", action=argparse.BooleanOptionalAction, default=None, help="Enable JSON logs")
    parser.add_argument(
        "--progress",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Show rich progress bars and summary table",
    )
    return parser


def load_run_config(argv: Optional[List[str]] = None) -> RunConfig:
    """
    Build RunConfig by merging defaults, optional config file, env vars, and CLI args.
    Precedence (low -> high): defaults < config file < env < CLI.
    """
    ns = build_parser().parse_intermixed_args(argv)
    if ns.compartment_id and not ns.region:
        # Positionals bind in order; a lone one would be taken as the compartment.
        raise ConfigError(
            "Positional arguments are <compartment_id> <region> [filter ...]; "
            "give both compartment and region on the command line when passing filters"
        )

    base: Dict[str, Any] = {
        "filters": [],
        "workers": DEFAULT_WORKERS,
        "timeout": DEFAULT_TIMEOUT,
        "user": DEFAULT_USER,
        "port": DEFAULT_PORT,
        "auth": "auto",
        "log_level": "INFO",
        "json_logs": False,
        "progress": True,
    }

    file_cfg: Dict[str, Any] = {}
    if ns.config:
        file_cfg = _normalize(_parse_config_file(Path(ns.config)), source="config")

    env_cfg = _normalize(
        {
            "compartment_id": _env("COMPARTMENT_ID"),
            "region": _env("REGION") or os.getenv("OCI_REGION") or None,
            "outdir": _env("OUTDIR"),
            "workers": _env("WORKERS"),
            "timeout": _env("TIMEOUT"),
            "user": _env("USER"),
            "port": _env("PORT"),
            "auth": _env("AUTH"),
            "profile": _env("PROFILE"),
            "log_level": _env("LOG_LEVEL"),
            "json_logs": _env("JSON_LOGS"),
            "progress": _env("PROGRESS"),
        },
        source="env",
    )

    cli_cfg = _normalize(
        {
            "compartment_id": ns.compartment_id,
            "region": ns.region,
            "filters": ns.filters or None,
            "outdir": ns.outdir,
            "workers": ns.workers,
            "timeout": ns.timeout,
            "user": ns.user,
            "port": ns.port,
            "auth": ns.auth,
            "profile": ns.profile,
            "log_level": ns.log_level,
            "json_logs": ns.json_logs,
            "progress": ns.progress,
        },
        source="cli",
    )

    merged: Dict[str, Any] = {**base, **file_cfg, **env_cfg, **cli_cfg}
    return _build(merged)


def _build(merged: Dict[str, Any]) -> RunConfig:
    compartment_id = (merged.get("compartment_id") or "").strip()
    region = (merged.get("region") or "").strip()
    if not compartment_id or not region:
        raise ConfigError("Both a compartment OCID and a region are required")

    filters = [f for f in merged.get("filters") or [] if f != ""]
    workers = int(merged["workers"])
    if workers < 1:
        raise ConfigError("workers must be >= 1")
    port = int(merged["port"])
    if not 0 < port < 65536:
        raise ConfigError(f"port out of range: {port}")
    timeout = merged.get("timeout")

    return RunConfig(
        compartment_id=compartment_id,
        region=region,
        filters=filters or [MATCH_ALL_PATTERN],
        outdir=Path(merged["outdir"]) if merged.get("outdir") else Path.cwd(),
        workers=workers,
        timeout=float(timeout) if timeout else None,
        user=str(merged["user"]),
        port=port,
        auth=str(merged["auth"] or "auto"),
        profile=str(merged["profile"]) if merged.get("profile") else None,
        log_level=str(merged["log_level"] or "INFO").upper(),
        json_logs=bool(merged["json_logs"]),
        progress=bool(merged["progress"]),
    )


def dump_config(cfg: RunConfig) -> Dict[str, Any]:
    return {
        "compartment_id": cfg.compartment_id,
        "region": cfg.region,
        "filters": list(cfg.filters),
        "outdir": str(cfg.outdir),
        "workers": cfg.workers,
        "timeout": cfg.timeout,
        "user": cfg.user,
        "port": cfg.port,
        "auth": cfg.auth,
        "profile": cfg.profile,
        "log_level": cfg.log_level,
        "json_logs": cfg.json_logs,
        "progress": cfg.progress,
    }
