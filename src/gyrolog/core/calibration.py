"""
Start-up calibration for the gyroscope.

Two procedures run once, in order:

1. :meth:`CalibrationEngine.run_self_test` compares readings with and without
   the on-chip self-test stimulus against the factory trim. Diagnostic only.
2. :meth:`CalibrationEngine.compute_offsets` averages rest-state readings and
   returns the :class:`CalibrationOffsets` subtracted from every later sample.

Both rely on the device being stationary; the engine can only ask for that.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Sequence

import numpy as np

from ..sensors.iam20380 import IAM20380, RawSample
from ..tools.debug import time_block
from .models import CalibrationOffsets, SelfTestResult

logger = logging.getLogger(__name__)

SELF_TEST_SAMPLES = 200
SELF_TEST_INTERVAL_S = 0.001
SELF_TEST_POWER_SETTLE_S = 0.200
SELF_TEST_ENABLE_SETTLE_S = 0.200
SELF_TEST_DISABLE_SETTLE_S = 0.100
SELF_TEST_RATIO_BAND = (0.5, 1.5)

OFFSET_SAMPLES = 200
OFFSET_INTERVAL_S = 0.005
OFFSET_SETTLE_S = 1.0

FACTORY_TRIM_BASE = 2620.0 / 8.0
FACTORY_TRIM_STEP = 1.01


def factory_trim(code: int) -> float:
    """Expected self-test response magnitude for a SELF_TEST_*_GYRO code."""
    return FACTORY_TRIM_BASE * FACTORY_TRIM_STEP ** (code - 1)


def ratio_within_band(ratios: Sequence[float], band: tuple[float, float] = SELF_TEST_RATIO_BAND) -> bool:
    """True only when every ratio lies strictly inside ``band``."""
    lo, hi = band
    return all(lo < r < hi for r in ratios)


class CalibrationEngine:
    """Self-test and offset calibration over an :class:`IAM20380` driver."""

    def __init__(
        self,
        driver: IAM20380,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.driver = driver
        self._sleep = sleep

    def _collect(self, count: int, interval_s: float, read: Callable[[], Sequence[float]]) -> np.ndarray:
        """Call ``read`` ``count`` times, ``interval_s`` apart; return the column means."""
        if count <= 0:
            raise ValueError(f"sample count must be positive, got {count}")
        rows = []
        for _ in range(count):
            rows.append(read())
            self._sleep(interval_s)
        return np.asarray(rows, dtype=float).mean(axis=0)

    # ------------------------------------------------------------------ self-test
    def run_self_test(self, samples: int = SELF_TEST_SAMPLES) -> SelfTestResult:
        drv = self.driver
        with time_block("self-test"):
            drv.enable_all_axes(SELF_TEST_POWER_SETTLE_S)

            codes = drv.read_factory_trim_codes()
            trim = np.array([factory_trim(c) for c in codes])
            logger.info("Factory Trim: X=%.2f, Y=%.2f, Z=%.2f", *trim)

            baseline = self._collect(samples, SELF_TEST_INTERVAL_S, drv.read_gyro_raw)
            drv.set_self_test(True, SELF_TEST_ENABLE_SETTLE_S)
            stimulated = self._collect(samples, SELF_TEST_INTERVAL_S, drv.read_gyro_raw)
            drv.set_self_test(False, SELF_TEST_DISABLE_SETTLE_S)

        response = stimulated - baseline
        ratio = np.abs(response / trim)
        passed = ratio_within_band(ratio.tolist())

        logger.info("Self-Test Response: X=%.2f, Y=%.2f, Z=%.2f", *response)
        logger.info("Self-Test Ratio: X=%.2f, Y=%.2f, Z=%.2f", *ratio)
        if passed:
            logger.info("Self-test PASSED")
        else:
            logger.warning("Self-test FAILED: ratios outside (%.1f, %.1f)", *SELF_TEST_RATIO_BAND)

        return SelfTestResult(
            factory_trim=tuple(trim.tolist()),
            self_test_response=tuple(response.tolist()),
            ratio=tuple(ratio.tolist()),
            passed=passed,
        )

    # ------------------------------------------------------------------ offsets
    def _physical_row(self) -> tuple[float, float, float, float]:
        raw: RawSample = self.driver.read_raw_sample()
        gx, gy, gz = self.driver.gyro_dps(raw)
        return gx, gy, gz, self.driver.temperature_c(raw)

    def compute_offsets(
        self,
        samples: int = OFFSET_SAMPLES,
        *,
        settle_s: float = OFFSET_SETTLE_S,
    ) -> CalibrationOffsets:
        """
        Average ``samples`` rest-state readings into per-axis gyro offsets.

        The temperature offset is the mean temperature minus the driver's
        reference temperature, so later readings are relative to it.
        """
        logger.info("Keep the sensor still for offset calculation...")
        self._sleep(settle_s)

        with time_block("offset calibration"):
            means = self._collect(samples, OFFSET_INTERVAL_S, self._physical_row)

        gyro = tuple(float(v) for v in means[:3])
        temp_offset = float(means[3]) - self.driver.temperature.reference_c
        offsets = CalibrationOffsets(gyro_offset=gyro, temp_offset=temp_offset)
        logger.info("Gyro offsets: X=%.2f, Y=%.2f, Z=%.2f", *gyro)
        logger.info("Temperature offset: %.2f", temp_offset)
        return offsets
