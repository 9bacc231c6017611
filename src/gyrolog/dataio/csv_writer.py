"""Text output for calibrated gyro samples."""

from __future__ import annotations

import csv
import json
import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Any, List, Mapping, Optional, Protocol

if TYPE_CHECKING:
    from ..core.models import PhysicalSample

logger = logging.getLogger(__name__)

HEADER = ["Timestamp", "UnixTime", "GyroX", "GyroY", "GyroZ", "Temperature"]


class OutputSink(Protocol):
    """Receives finished sample records; ``flush`` forces buffered rows out."""

    def append(self, sample: "PhysicalSample") -> None: ...

    def flush(self) -> None: ...

    def close(self) -> None: ...


def format_record(sample: "PhysicalSample") -> List[str]:
    """Gyro axes to 3 decimals, temperature to 2."""
    return [
        sample.timestamp,
        str(sample.unix_time),
        f"{sample.gyro_x:.3f}",
        f"{sample.gyro_y:.3f}",
        f"{sample.gyro_z:.3f}",
        f"{sample.temperature:.2f}",
    ]


class CsvSampleSink:
    """
    Comma-separated sample file with an optional ``.meta.json`` sidecar.

    The file is created exclusively so an existing recording is never
    overwritten. ``flush()`` hands rows to the OS and only calls
    ``os.fsync()`` when ``fsync_each_flush`` is set; ``close()`` always
    syncs once.
    """

    def __init__(
        self,
        path: Path | str,
        *,
        meta_path: Optional[Path | str] = None,
        fsync_each_flush: bool = False,
    ) -> None:
        self.path = Path(path)
        self.meta_path = Path(meta_path) if meta_path is not None else None
        self.fsync_each_flush = fsync_each_flush
        self.rows_written = 0
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._fh = open(self.path, "x", newline="", encoding="utf-8")
        self._writer = csv.writer(self._fh, lineterminator="\n")
        self._writer.writerow(HEADER)
        logger.info("Recording to %s", self.path)

    @property
    def closed(self) -> bool:
        return self._fh is None

    def append(self, sample: "PhysicalSample") -> None:
        if self._fh is None:
            raise ValueError(f"append to closed sink {self.path}")
        self._writer.writerow(format_record(sample))
        self.rows_written += 1

    def flush(self) -> None:
        if self._fh is None:
            return
        self._fh.flush()
        if self.fsync_each_flush:
            os.fsync(self._fh.fileno())

    def write_metadata(self, meta: Mapping[str, Any]) -> Optional[Path]:
        if self.meta_path is None:
            return None
        with open(self.meta_path, "w", encoding="utf-8") as mfh:
            json.dump(dict(meta), mfh, indent=2)
        return self.meta_path

    def close(self) -> None:
        if self._fh is None:
            return
        fh, self._fh = self._fh, None
        try:
            fh.flush()
            os.fsync(fh.fileno())
        finally:
            fh.close()
        logger.info("Data file closed (%d rows)", self.rows_written)
