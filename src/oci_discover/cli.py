from __future__ import annotations

import logging
import re
import sys
from functools import partial
from pathlib import Path
from time import perf_counter
from typing import Any, Dict, List, Optional

from .auth.providers import AuthContext, AuthError, resolve_auth
from .config import RunConfig, dump_config, load_run_config
from .export.csv import count_data_rows
from .logging import LogConfig, get_logger, setup_logging
from .model import ArtifactSummary, Target
from .naming import artifact_path
from .oci.addresses import resolve_private_ip
from .oci.instances import list_running_instances
from .partition import write_filter_artifact
from .util.errors import (
    AuthResolutionError,
    DiscoveryError,
    ExitCode,
    ExportError,
    FilterPatternError,
    as_exit_code,
)
from .util.rich_progress import RunProgress, render_artifact_summary_table

LOG = get_logger(__name__)

COMPARTMENT_OCID_RE = re.compile(r"^ocid1\.compartment\.oc1\.")

DISCOVERY_HINTS = (
    "Compartment OCID is correct",
    "Region is valid",
    "OCI authentication is working",
    "You have permissions to list instances in this compartment",
)


class _StepTimers:
    def __init__(self) -> None:
        self._starts: Dict[str, float] = {}

    def start(self, key: str) -> None:
        self._starts[key] = perf_counter()

    def finish(self, key: str) -> Optional[int]:
        started = self._starts.pop(key, None)
        if started is None:
            return None
        return int((perf_counter() - started) * 1000)


def _log_event(
    logger: Any,
    level: int,
    message: str,
    *,
    step: str,
    phase: str,
    timers: Optional[_StepTimers] = None,
    timer_key: Optional[str] = None,
    **extra: Any,
) -> None:
    key = timer_key or step
    duration_ms = None
    if timers is not None:
        if phase == "start":
            timers.start(key)
        elif phase in {"complete", "error", "warning", "skipped"}:
            duration_ms = timers.finish(key)
    payload: Dict[str, Any] = {"step": step, "phase": phase, "event": f"{step}.{phase}"}
    if duration_ms is not None:
        payload["duration_ms"] = duration_ms
    payload.update(extra)
    logger.log(level, message, extra=payload)


def _resolve_auth(cfg: RunConfig) -> AuthContext:
    try:
        return resolve_auth(cfg.auth, cfg.profile)
    except AuthError as e:
        raise AuthResolutionError(str(e)) from e


def _print_summary(artifacts: List[ArtifactSummary]) -> None:
    print("Discovery complete! Generated CSV files:")
    for art in artifacts:
        print(f"  {art.path} ({art.rows} instances)")


def cmd_run(cfg: RunConfig) -> int:
    """
    Fetch the RUNNING inventory once, then write one artifact per filter in
    the configured order. A failed fetch aborts before any file is touched;
    a bad filter, or one whose artifact cannot be written, is logged and
    skipped while the remaining filters proceed.
    """
    timers = _StepTimers()
    target = Target(compartment_id=cfg.compartment_id, region=cfg.region)

    _log_event(
        LOG,
        logging.INFO,
        "Starting instance discovery",
        step="run",
        phase="start",
        timers=timers,
        compartment_id=cfg.compartment_id,
        region=cfg.region,
        filters=list(cfg.filters),
        outdir=str(cfg.outdir),
    )
    LOG.debug("Effective configuration", extra={"config": dump_config(cfg)})
    if not COMPARTMENT_OCID_RE.match(cfg.compartment_id):
        LOG.warning(
            "Compartment ID format doesn't match expected pattern (ocid1.compartment.oc1.); continuing anyway",
            extra={"compartment_id": cfg.compartment_id},
        )

    ctx = _resolve_auth(cfg)

    _log_event(LOG, logging.INFO, "Discovering running instances", step="inventory", phase="start", timers=timers)
    try:
        instances = list_running_instances(ctx, target, timeout=cfg.timeout)
    except DiscoveryError as e:
        _log_event(
            LOG,
            logging.ERROR,
            f"Failed to retrieve instances from compartment {cfg.compartment_id} in region {cfg.region}",
            step="inventory",
            phase="error",
            timers=timers,
            error=str(e),
        )
        for hint in DISCOVERY_HINTS:
            LOG.error(f"Please check: {hint}")
        raise
    _log_event(
        LOG,
        logging.INFO,
        f"Found {len(instances)} total running instances",
        step="inventory",
        phase="complete",
        timers=timers,
        count=len(instances),
    )

    resolve = partial(resolve_private_ip, ctx, target, timeout=cfg.timeout)
    produced: List[Path] = []
    patterns: Dict[Path, str] = {}

    with RunProgress(enabled=cfg.progress) as progress:
        for pattern in cfg.filters:
            path = artifact_path(cfg.outdir, pattern)
            timer_key = f"filter:{pattern}"
            _log_event(
                LOG,
                logging.INFO,
                f"Processing filter: '{pattern}' -> {path}",
                step="filter",
                phase="start",
                timers=timers,
                timer_key=timer_key,
                filter=pattern,
                path=str(path),
            )
            try:
                rows = write_filter_artifact(
                    pattern,
                    path,
                    instances,
                    resolve,
                    user=cfg.user,
                    port=cfg.port,
                    max_workers=cfg.workers,
                    progress=progress,
                )
            except (FilterPatternError, ExportError) as e:
                if path in patterns and not path.exists():
                    produced.remove(path)
                    patterns.pop(path)
                _log_event(
                    LOG,
                    logging.ERROR,
                    f"Filter '{pattern}' skipped",
                    step="filter",
                    phase="error",
                    timers=timers,
                    timer_key=timer_key,
                    filter=pattern,
                    error=str(e),
                )
                continue
            if path in patterns:
                LOG.warning(
                    f"Filter '{pattern}' overwrote the artifact of filter '{patterns[path]}'",
                    extra={"path": str(path)},
                )
                produced.remove(path)
            produced.append(path)
            patterns[path] = pattern
            _log_event(
                LOG,
                logging.INFO,
                f"Created: {path}",
                step="filter",
                phase="complete",
                timers=timers,
                timer_key=timer_key,
                filter=pattern,
                rows=rows,
            )

    artifacts = [ArtifactSummary(pattern=patterns[p], path=p, rows=count_data_rows(p)) for p in produced]
    _print_summary(artifacts)
    render_artifact_summary_table(enabled=cfg.progress, artifacts=artifacts, total_instances=len(instances))
    _log_event(
        LOG,
        logging.INFO,
        "Discovery complete",
        step="run",
        phase="complete",
        timers=timers,
        artifacts=[str(a.path) for a in artifacts],
        artifact_count=len(artifacts),
    )
    return int(ExitCode.OK)


def main(argv: Optional[List[str]] = None) -> None:
    try:
        cfg = load_run_config(argv)
        setup_logging(LogConfig(level=cfg.log_level, json_logs=cfg.json_logs))
        sys.exit(cmd_run(cfg))
    except SystemExit:
        raise
    except BrokenPipeError:
        # Common when users pipe to `head` or similar tools.
        sys.exit(0)
    except KeyboardInterrupt:
        sys.exit(130)
    except Exception as e:
        setup_logging(LogConfig())
        LOG.error("Execution failed", extra={"error": str(e)})
        sys.exit(as_exit_code(e))


if __name__ == "__main__":
    main()
