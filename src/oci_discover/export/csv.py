from __future__ import annotations

import csv
import os
import tempfile
from pathlib import Path
from typing import Iterable

from ..model import OutputRecord
from ..util.errors import ExportError

CSV_HEADER = ["Name", "PrivateIP", "User", "Port"]


def _umask() -> int:
    current = os.umask(0)
    os.umask(current)
    return current


def write_connection_csv(records: Iterable[OutputRecord], path: Path) -> int:
    """
    Write a connection CSV: the bare header line followed by one fully quoted
    row per record, in the order given. Returns the number of data rows.

    The file is built next to its target and moved into place with os.replace,
    so readers see either the previous content or the complete new file.
    Filesystem failures surface as ExportError.
    """
    tmp_name = None
    rows = 0
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            csv.writer(f, lineterminator="\n").writerow(CSV_HEADER)
            writer = csv.writer(f, quoting=csv.QUOTE_ALL, lineterminator="\n")
            for rec in records:
                writer.writerow(rec.as_row())
                rows += 1
        # mkstemp creates 0600; match what a plain open() would have produced.
        os.chmod(tmp_name, 0o666 & ~_umask())
        os.replace(tmp_name, path)
    except BaseException as e:
        if tmp_name is not None:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
        if isinstance(e, OSError):
            raise ExportError(f"Failed to write {path}: {e}") from e
        raise
    return rows


def count_data_rows(path: Path) -> int:
    """Number of CSV records in an artifact, header excluded."""
    with path.open("r", encoding="utf-8", newline="") as f:
        records = sum(1 for _ in csv.reader(f))
    return max(records - 1, 0)
