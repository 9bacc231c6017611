"""Shared dataclasses for calibration results, samples and run state."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Tuple

Vector3 = Tuple[float, float, float]


@dataclass(frozen=True)
class CalibrationOffsets:
    """Rest-state bias subtracted from every sample (gyro in dps, temp in °C)."""

    gyro_offset: Vector3 = (0.0, 0.0, 0.0)
    temp_offset: float = 0.0

    def to_dict(self) -> dict:
        return {"gyro_offset": list(self.gyro_offset), "temp_offset": self.temp_offset}


@dataclass(frozen=True)
class SelfTestResult:
    factory_trim: Vector3
    self_test_response: Vector3
    ratio: Vector3
    passed: bool

    def to_dict(self) -> dict:
        return {
            "factory_trim": list(self.factory_trim),
            "self_test_response": list(self.self_test_response),
            "ratio": list(self.ratio),
            "pass": self.passed,
        }


@dataclass(frozen=True)
class PhysicalSample:
    timestamp: str
    unix_time: int
    gyro_x: float
    gyro_y: float
    gyro_z: float
    temperature: float


class SchedulerState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class RunState:
    """
    Process-wide stop flag.

    Starts in the running state; :meth:`request_stop` is the only transition
    and it is never undone. Safe to call from a signal handler.
    """

    def __init__(self) -> None:
        self._stopping = False
        self.reason = ""

    def __repr__(self) -> str:
        state = "stopping" if self._stopping else "running"
        return f"RunState({state})"

    @property
    def stopping(self) -> bool:
        return self._stopping

    def request_stop(self, reason: str = "") -> None:
        if self._stopping:
            return
        self._stopping = True
        self.reason = reason
