"""Register-level access to the gyroscope.

:mod:`bus` defines the byte/word transport contract and its smbus2 backing,
:mod:`iam20380` maps logical device operations onto register transactions.
"""

from .bus import BusError, RegisterBus, SMBusRegisterBus
from .iam20380 import IAM20380, RawSample, TemperatureModel

__all__ = [
    "BusError",
    "IAM20380",
    "RawSample",
    "RegisterBus",
    "SMBusRegisterBus",
    "TemperatureModel",
]
