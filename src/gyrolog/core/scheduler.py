"""
Fixed-rate acquisition loop.

Each iteration acquires a raw sample, converts and offsets it, stamps it with
wall-clock time, hands it to the sink, then sleeps until ``n * period`` has
elapsed on the monotonic clock since the loop started. Late iterations are
counted as overruns and the next one starts immediately; nothing is skipped
to catch up.
"""

from __future__ import annotations

import datetime as _dt
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from ..sensors.iam20380 import IAM20380, RawSample
from .context import RuntimeContext
from .models import CalibrationOffsets, PhysicalSample, SchedulerState

logger = logging.getLogger(__name__)

DEFAULT_RATE_HZ = 1000.0
DEFAULT_FLUSH_EVERY = 100
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class SchedulerStateError(RuntimeError):
    """``run()`` was called on a scheduler that already ran."""


@dataclass
class SchedulerStats:
    samples: int = 0
    overruns: int = 0
    max_lag_ns: int = 0
    elapsed_ns: int = 0

    @property
    def effective_rate_hz(self) -> float:
        if self.elapsed_ns <= 0:
            return 0.0
        return self.samples / (self.elapsed_ns / 1e9)


def to_physical(
    driver: IAM20380,
    raw: RawSample,
    offsets: CalibrationOffsets,
    wall_time: float,
) -> PhysicalSample:
    """Scale ``raw``, subtract ``offsets`` and stamp it with ``wall_time`` (epoch seconds)."""
    gx, gy, gz = driver.gyro_dps(raw)
    ox, oy, oz = offsets.gyro_offset
    stamp = _dt.datetime.fromtimestamp(wall_time)
    return PhysicalSample(
        timestamp=stamp.strftime(TIMESTAMP_FORMAT),
        unix_time=int(wall_time),
        gyro_x=gx - ox,
        gyro_y=gy - oy,
        gyro_z=gz - oz,
        temperature=driver.temperature_c(raw) - offsets.temp_offset,
    )


class SamplingScheduler:
    """
    Paced ``Idle -> Running -> Stopped`` acquisition loop.

    The stop flag in ``context.run_state`` is checked once per iteration, at
    the top. A bus error ends the loop and propagates to the caller, which
    owns cleanup through the :class:`RuntimeContext`.
    """

    def __init__(
        self,
        driver: IAM20380,
        context: RuntimeContext,
        *,
        rate_hz: float = DEFAULT_RATE_HZ,
        flush_every: int = DEFAULT_FLUSH_EVERY,
        max_samples: Optional[int] = None,
        duration_s: Optional[float] = None,
        timing_warnings: bool = False,
        monotonic_ns: Callable[[], int] = time.monotonic_ns,
        wall_clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if rate_hz <= 0:
            raise ValueError(f"rate_hz must be positive, got {rate_hz}")
        if context.sink is None:
            raise ValueError("RuntimeContext has no output sink")
        self.driver = driver
        self.context = context
        self.period_ns = int(round(1e9 / rate_hz))
        self.flush_every = max(1, int(flush_every))
        self.max_samples = max_samples if max_samples and max_samples > 0 else None
        self.duration_ns = int(duration_s * 1e9) if duration_s and duration_s > 0 else None
        self.timing_warnings = timing_warnings
        self._monotonic_ns = monotonic_ns
        self._wall_clock = wall_clock
        self._sleep = sleep
        self.state = SchedulerState.IDLE
        self.stats = SchedulerStats()

    def _done(self, n: int, elapsed_ns: int) -> bool:
        if self.max_samples is not None and n >= self.max_samples:
            return True
        return self.duration_ns is not None and elapsed_ns >= self.duration_ns

    def run(self) -> SchedulerStats:
        if self.state is not SchedulerState.IDLE:
            raise SchedulerStateError(f"scheduler is {self.state.value}, not idle")

        ctx = self.context
        sink = ctx.sink
        offsets = ctx.offsets
        stats = self.stats
        warn_every = 50

        self.state = SchedulerState.RUNNING
        logger.info("Starting data collection at %.0f Hz", 1e9 / self.period_ns)
        start_ns = self._monotonic_ns()
        n = 0
        try:
            while not ctx.run_state.stopping:
                raw = self.driver.read_raw_sample()
                sample = to_physical(self.driver, raw, offsets, self._wall_clock())
                sink.append(sample)
                n += 1
                stats.samples = n

                target_ns = n * self.period_ns
                elapsed_ns = self._monotonic_ns() - start_ns
                if elapsed_ns < target_ns:
                    self._sleep((target_ns - elapsed_ns) / 1e9)
                else:
                    lag_ns = elapsed_ns - target_ns
                    stats.overruns += 1
                    stats.max_lag_ns = max(stats.max_lag_ns, lag_ns)
                    if self.timing_warnings and stats.overruns % warn_every == 1:
                        logger.warning(
                            "Overrun: loop behind by %.3f ms (count=%d)",
                            lag_ns / 1e6,
                            stats.overruns,
                        )

                if n % self.flush_every == 0:
                    sink.flush()

                if self._done(n, self._monotonic_ns() - start_ns):
                    break
        except Exception:
            logger.error("Acquisition stopped after %d samples", n)
            raise
        finally:
            stats.elapsed_ns = self._monotonic_ns() - start_ns
            self.state = SchedulerState.STOPPED

        logger.info("Stopped after %d samples (%s)", n, ctx.run_state.reason or "limit reached")
        return stats
