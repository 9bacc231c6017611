"""Helpers for constructing timestamped data-file paths."""

from __future__ import annotations

import datetime as _dt
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

DEFAULT_PREFIX = "gyro_data"


def _format_start_ts(start_dt: _dt.datetime) -> str:
    """Return the canonical timestamp string used in data filenames."""

    return start_dt.strftime("%Y%m%d_%H%M%S")


@dataclass(frozen=True)
class DataFilePaths:
    """Container with the generated data path and .meta.json sidecar path."""

    data_path: Path
    meta_path: Path


def build_data_file_paths(
    out_dir: Path | str,
    prefix: str = DEFAULT_PREFIX,
    start_dt: Optional[_dt.datetime] = None,
) -> DataFilePaths:
    """
    Return paths for a new recording.

    Example: ``out/gyro_data_20251204_153045.txt`` plus
    ``out/gyro_data_20251204_153045.txt.meta.json``.
    """

    start_dt = start_dt or _dt.datetime.now()
    stem = f"{prefix.strip() or DEFAULT_PREFIX}_{_format_start_ts(start_dt)}"
    data_path = Path(out_dir).expanduser() / f"{stem}.txt"
    meta_path = data_path.with_suffix(data_path.suffix + ".meta.json")
    return DataFilePaths(data_path=data_path, meta_path=meta_path)
