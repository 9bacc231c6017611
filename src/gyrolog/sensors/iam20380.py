"""
IAM-20380HT three-axis gyroscope driver.

Register map (subset used here)
-------------------------------
SELF_TEST_X/Y/Z_GYRO  0x00-0x02  factory trim codes (read-only)
SMPLRT_DIV            0x19       sample-rate divider
CONFIG                0x1A       DLPF configuration
GYRO_CONFIG           0x1B       full-scale range + self-test enable bits
TEMP_OUT_H            0x41       temperature, 16-bit big-endian
GYRO_X/Y/ZOUT_H       0x43-0x47  angular rate, 16-bit big-endian
PWR_MGMT_1/2          0x6B/0x6C  reset, clock source, axis enables
WHO_AM_I              0x75       identity (0xFA)

Scaling
-------
Gyro raw → dps = raw / sensitivity  (16.4 LSB/(deg/s) at ±2000 dps)
Temp raw → °C  = raw / 340.0 + 36.53
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Tuple

from .bus import RegisterBus

logger = logging.getLogger(__name__)

DEFAULT_ADDRESS = 0x69
EXPECTED_WHO_AM_I = 0xFA

SELF_TEST_X_GYRO = 0x00
SELF_TEST_Y_GYRO = 0x01
SELF_TEST_Z_GYRO = 0x02
SMPLRT_DIV = 0x19
CONFIG = 0x1A
GYRO_CONFIG = 0x1B
TEMP_OUT_H = 0x41
GYRO_XOUT_H = 0x43
GYRO_YOUT_H = 0x45
GYRO_ZOUT_H = 0x47
PWR_MGMT_1 = 0x6B
PWR_MGMT_2 = 0x6C
WHO_AM_I = 0x75

SELF_TEST_REGS = (SELF_TEST_X_GYRO, SELF_TEST_Y_GYRO, SELF_TEST_Z_GYRO)
GYRO_OUT_REGS = (GYRO_XOUT_H, GYRO_YOUT_H, GYRO_ZOUT_H)

PWR1_DEVICE_RESET = 0x80
PWR1_CLKSEL_PLL = 0x01
GYRO_ST_ALL = 0xE0  # XG_ST | YG_ST | ZG_ST
GYRO_FS_MASK = 0x18

# FS_SEL code → (range in dps, sensitivity in LSB/(deg/s))
GYRO_FULL_SCALE: Dict[int, Tuple[int, float]] = {
    0: (250, 131.0),
    1: (500, 65.5),
    2: (1000, 32.8),
    3: (2000, 16.4),
}
FS_SEL_2000DPS = 3

# Settle times (seconds) after mode-changing writes
WRITE_SETTLE_S = 10e-6
RESET_SETTLE_S = 0.100
WAKE_SETTLE_S = 0.010


@dataclass(frozen=True)
class RawSample:
    """One acquisition: three gyro axes and the die temperature, raw counts."""

    gyro_x: int
    gyro_y: int
    gyro_z: int
    temperature_raw: int


@dataclass(frozen=True)
class TemperatureModel:
    """Linear raw → °C conversion plus the reference point offsets are taken against."""

    sensitivity: float = 340.0
    intercept_c: float = 36.53
    reference_c: float = 25.0

    def to_celsius(self, raw: int) -> float:
        return raw / self.sensitivity + self.intercept_c


class IAM20380:
    """Logical operations on an IAM-20380HT over a :class:`RegisterBus`."""

    def __init__(
        self,
        bus: RegisterBus,
        *,
        temperature: TemperatureModel | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.bus = bus
        self.temperature = temperature or TemperatureModel()
        self._sleep = sleep
        self._fs_sel = FS_SEL_2000DPS

    # ------------------------------------------------------------------ registers
    def _write(self, reg: int, value: int, settle_s: float = WRITE_SETTLE_S) -> None:
        self.bus.write_byte(reg, value)
        self._sleep(settle_s)

    @property
    def range_bits(self) -> int:
        return (self._fs_sel << 3) & GYRO_FS_MASK

    @property
    def full_scale_dps(self) -> int:
        return GYRO_FULL_SCALE[self._fs_sel][0]

    @property
    def sensitivity(self) -> float:
        """LSB per deg/s for the configured full-scale range."""
        return GYRO_FULL_SCALE[self._fs_sel][1]

    # ------------------------------------------------------------------ setup
    def identify(self) -> int:
        return self.bus.read_byte(WHO_AM_I)

    def reset_and_wake(self) -> None:
        self._write(PWR_MGMT_1, PWR1_DEVICE_RESET, RESET_SETTLE_S)
        # PLL with X-gyro reference
        self._write(PWR_MGMT_1, PWR1_CLKSEL_PLL, WAKE_SETTLE_S)

    def configure_max_performance(self) -> None:
        """±2000 dps, DLPF off, no sample-rate divider."""
        self._fs_sel = FS_SEL_2000DPS
        self._write(GYRO_CONFIG, self.range_bits)
        self._write(CONFIG, 0x00)
        self._write(SMPLRT_DIV, 0x00)
        logger.info("Sensor initialized for maximum performance (±%d dps)", self.full_scale_dps)

    def prepare_for_sampling(self) -> None:
        """Re-assert the divider and DLPF settings right before streaming."""
        self._write(SMPLRT_DIV, 0x00)
        self._write(CONFIG, 0x00)

    def enable_all_axes(self, settle_s: float = WRITE_SETTLE_S) -> None:
        self._write(PWR_MGMT_2, 0x00, settle_s)

    def set_self_test(self, enabled: bool, settle_s: float = WRITE_SETTLE_S) -> None:
        value = self.range_bits | (GYRO_ST_ALL if enabled else 0x00)
        self._write(GYRO_CONFIG, value, settle_s)

    def read_factory_trim_codes(self) -> Tuple[int, int, int]:
        x, y, z = (self.bus.read_byte(reg) for reg in SELF_TEST_REGS)
        return x, y, z

    # ------------------------------------------------------------------ data
    def read_gyro_raw(self) -> Tuple[int, int, int]:
        x, y, z = (self.bus.read_word(reg) for reg in GYRO_OUT_REGS)
        return x, y, z

    def read_raw_sample(self) -> RawSample:
        gx, gy, gz = self.read_gyro_raw()
        temp = self.bus.read_word(TEMP_OUT_H)
        return RawSample(gyro_x=gx, gyro_y=gy, gyro_z=gz, temperature_raw=temp)

    def gyro_dps(self, raw: RawSample) -> Tuple[float, float, float]:
        s = self.sensitivity
        return (raw.gyro_x / s, raw.gyro_y / s, raw.gyro_z / s)

    def temperature_c(self, raw: RawSample) -> float:
        return self.temperature.to_celsius(raw.temperature_raw)
