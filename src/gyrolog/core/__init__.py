"""Calibration, runtime state and the paced acquisition loop."""

from .calibration import CalibrationEngine
from .context import RuntimeContext
from .models import (
    CalibrationOffsets,
    PhysicalSample,
    RunState,
    SchedulerState,
    SelfTestResult,
)
from .scheduler import SamplingScheduler, SchedulerStats

__all__ = [
    "CalibrationEngine",
    "CalibrationOffsets",
    "PhysicalSample",
    "RunState",
    "RuntimeContext",
    "SamplingScheduler",
    "SchedulerState",
    "SchedulerStats",
    "SelfTestResult",
]
