from __future__ import annotations

import re
from pathlib import Path
from typing import Callable, List, Optional, Pattern, Sequence

from .export.csv import write_connection_csv
from .logging import get_logger
from .model import DEFAULT_PORT, DEFAULT_USER, Instance, OutputRecord, ResolutionResult
from .util.concurrency import parallel_map_ordered
from .util.errors import FilterPatternError
from .util.rich_progress import RunProgress

LOG = get_logger(__name__)

Resolver = Callable[[str], ResolutionResult]


def compile_filter(pattern: str) -> Pattern[str]:
    try:
        return re.compile(pattern)
    except re.error as e:
        raise FilterPatternError(pattern, str(e)) from e


def select_instances(regex: Pattern[str], instances: Sequence[Instance]) -> List[Instance]:
    """Instances whose name matches anywhere, in inventory order."""
    return [inst for inst in instances if regex.search(inst.name)]


def write_filter_artifact(
    pattern: str,
    path: Path,
    instances: Sequence[Instance],
    resolve: Resolver,
    *,
    user: str = DEFAULT_USER,
    port: int = DEFAULT_PORT,
    max_workers: int = 1,
    progress: Optional[RunProgress] = None,
) -> int:
    """
    Build the artifact for one filter and return its data row count.

    Every matched instance is resolved (once per filter, no sharing between
    filters) and written as one row, failed resolutions included. A pattern
    that does not compile raises FilterPatternError after removing any stale
    artifact at path, so a broken filter never leaves a file behind.
    """
    try:
        regex = compile_filter(pattern)
    except FilterPatternError:
        if path.exists():
            LOG.warning("Removing stale artifact for invalid filter", extra={"path": str(path)})
            path.unlink()
        raise

    matched = select_instances(regex, instances)
    if path.exists():
        LOG.info(f"Overwriting existing file: {path}", extra={"path": str(path)})

    if not matched:
        LOG.warning(
            f"No instances matching pattern '{pattern}' found; writing header-only file",
            extra={"filter": pattern, "path": str(path)},
        )
        return write_connection_csv([], path)

    LOG.info(
        f"Found {len(matched)} instances for filter '{pattern}', resolving IPs",
        extra={"filter": pattern, "matched": len(matched)},
    )
    if progress is not None:
        progress.start_filter(pattern, total=len(matched))

    def _record(inst: Instance) -> OutputRecord:
        rec = OutputRecord(name=inst.name, result=resolve(inst.id), user=user, port=port)
        LOG.debug(f"Resolved {inst.name}: {rec.result.annotation()}", extra={"instance_id": inst.id})
        if progress is not None:
            progress.advance_filter()
        return rec

    records = parallel_map_ordered(_record, matched, max_workers=max_workers)
    failed = sum(1 for r in records if r.failed)
    if failed:
        LOG.warning(
            f"{failed} of {len(records)} instances for filter '{pattern}' have no private IP",
            extra={"filter": pattern, "failed": failed},
        )
    return write_connection_csv(records, path)
