"""Explicitly owned runtime state shared by calibration and sampling."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from ..sensors.bus import RegisterBus
from .models import CalibrationOffsets, RunState

if TYPE_CHECKING:
    from ..dataio.csv_writer import OutputSink

logger = logging.getLogger(__name__)


@dataclass
class RuntimeContext:
    """
    Bus handle, output sink, offsets and run state for one process run.

    Use as a context manager: :meth:`close` runs on every exit path and
    releases the sink and the bus exactly once each, even when one of them
    fails to close.
    """

    bus: RegisterBus
    run_state: RunState = field(default_factory=RunState)
    sink: Optional[OutputSink] = None
    offsets: CalibrationOffsets = field(default_factory=CalibrationOffsets)
    _closed: bool = field(default=False, repr=False)

    def __enter__(self) -> "RuntimeContext":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        # Sink first so buffered rows hit the disk even if the bus is wedged
        if self.sink is not None:
            try:
                self.sink.close()
            except Exception:
                logger.exception("Failed to close output sink")
        try:
            self.bus.close()
        except Exception:
            logger.exception("Failed to close I2C bus")
