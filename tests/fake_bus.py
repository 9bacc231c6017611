"""In-memory stand-ins for the I2C bus and the clocks used in tests."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple

from gyrolog.sensors import iam20380 as regs
from gyrolog.sensors.bus import BusError, RegisterBus


class FakeBus(RegisterBus):
    """Byte-addressed register file that records every transaction."""

    def __init__(self, registers: Optional[Dict[int, int]] = None) -> None:
        self.registers: Dict[int, int] = dict(registers or {})
        self.reads: List[int] = []
        self.writes: List[Tuple[int, int]] = []
        self.fail_reads: set[int] = set()
        self.fail_after_reads: Optional[int] = None
        self.close_calls = 0
        self.close_error: Optional[Exception] = None

    def set_word(self, reg: int, value: int) -> None:
        value &= 0xFFFF
        self.registers[reg] = value >> 8
        self.registers[reg + 1] = value & 0xFF

    def _on_read(self, reg: int) -> None:
        """Hook for subclasses that synthesise register contents."""

    def read_byte(self, reg: int) -> int:
        if reg in self.fail_reads or (
            self.fail_after_reads is not None and len(self.reads) >= self.fail_after_reads
        ):
            raise BusError("read", reg, OSError(121, "Remote I/O error"))
        self._on_read(reg)
        self.reads.append(reg)
        return self.registers.get(reg, 0) & 0xFF

    def write_byte(self, reg: int, value: int) -> None:
        self.writes.append((reg, value & 0xFF))
        self.registers[reg] = value & 0xFF

    def close(self) -> None:
        self.close_calls += 1
        if self.close_error is not None:
            raise self.close_error


class SimulatedGyro(FakeBus):
    """
    A stationary IAM-20380HT.

    Each high-byte gyro read returns ``rest + noise`` (raw counts), plus the
    self-test response while GYRO_CONFIG has the self-test bits set.
    """

    def __init__(
        self,
        rest: Tuple[int, int, int] = (0, 0, 0),
        temp_raw: int = 0,
        self_test_response: Tuple[int, int, int] = (0, 0, 0),
        trim_codes: Tuple[int, int, int] = (1, 1, 1),
        identity: int = regs.EXPECTED_WHO_AM_I,
        noise: Optional[Iterable[int]] = None,
    ) -> None:
        super().__init__({regs.WHO_AM_I: identity})
        for reg, code in zip(regs.SELF_TEST_REGS, trim_codes):
            self.registers[reg] = code
        self.rest = rest
        self.temp_raw = temp_raw
        self.self_test_response = self_test_response
        self._noise = iter(noise) if noise is not None else None

    @property
    def self_test_on(self) -> bool:
        return bool(self.registers.get(regs.GYRO_CONFIG, 0) & regs.GYRO_ST_ALL)

    def _on_read(self, reg: int) -> None:
        if reg in regs.GYRO_OUT_REGS:
            axis = regs.GYRO_OUT_REGS.index(reg)
            value = self.rest[axis]
            if self._noise is not None:
                value += next(self._noise, 0)
            if self.self_test_on:
                value += self.self_test_response[axis]
            self.set_word(reg, value)
        elif reg == regs.TEMP_OUT_H:
            self.set_word(reg, self.temp_raw)


class FakeClock:
    """Monotonic clock that only moves when slept on or explicitly advanced."""

    def __init__(self, start_ns: int = 1_000_000_000) -> None:
        self.now_ns = start_ns
        self.sleeps: List[float] = []

    def monotonic_ns(self) -> int:
        return self.now_ns

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now_ns += int(round(seconds * 1e9))

    def advance(self, ns: int) -> None:
        self.now_ns += ns


class RecordingSink:
    def __init__(self) -> None:
        self.samples: list = []
        self.flushes = 0
        self.close_calls = 0
        self.close_error: Optional[Exception] = None

    def append(self, sample) -> None:
        self.samples.append(sample)

    def flush(self) -> None:
        self.flushes += 1

    def close(self) -> None:
        self.close_calls += 1
        if self.close_error is not None:
            raise self.close_error
