"""Register-addressed byte transport.

Every transaction is a single request/response on a half-duplex bus. Failures
are never retried: a :class:`BusError` is raised and the caller is expected to
tear the run down.
"""

from __future__ import annotations

import abc
import logging
from typing import Optional

logger = logging.getLogger(__name__)


class BusError(OSError):
    """A byte-level bus transaction failed."""

    def __init__(self, op: str, reg: int, cause: Optional[BaseException] = None) -> None:
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"I2C {op} failed at register 0x{reg:02X}{detail}")
        self.op = op
        self.reg = reg
        self.cause = cause


def to_int16(value: int) -> int:
    """Interpret the low 16 bits of ``value`` as a two's-complement integer."""
    value &= 0xFFFF
    if value & 0x8000:
        value -= 0x10000
    return value


class RegisterBus(abc.ABC):
    """Minimal read/write contract keyed by 8-bit register address.

    Subclasses implement the single-byte primitives; :meth:`read_word` is
    composed from them. Settle delays after mode changes belong to the caller.
    """

    @abc.abstractmethod
    def read_byte(self, reg: int) -> int:
        """Return the unsigned byte stored at ``reg``."""

    @abc.abstractmethod
    def write_byte(self, reg: int, value: int) -> None:
        """Store ``value`` (truncated to 8 bits) at ``reg``."""

    def read_word(self, reg: int) -> int:
        """Read ``reg`` and ``reg + 1`` as a big-endian signed 16-bit value."""
        hi = self.read_byte(reg)
        lo = self.read_byte(reg + 1)
        return to_int16((hi << 8) | lo)

    def close(self) -> None:
        """Release the underlying handle. The default does nothing."""


class SMBusRegisterBus(RegisterBus):
    """:class:`RegisterBus` backed by an ``smbus2.SMBus`` handle."""

    def __init__(self, bus_id: int, address: int) -> None:
        from smbus2 import SMBus

        self.bus_id = bus_id
        self.address = address
        # FileNotFoundError / PermissionError propagate: bus-open failure
        self._bus: Optional[SMBus] = SMBus(bus_id)
        logger.debug("Opened I2C bus %d for device 0x%02X", bus_id, address)

    def _handle(self, op: str, reg: int):
        if self._bus is None:
            raise BusError(op, reg, RuntimeError("bus is closed"))
        return self._bus

    def read_byte(self, reg: int) -> int:
        bus = self._handle("read", reg)
        try:
            return bus.read_byte_data(self.address, reg) & 0xFF
        except OSError as exc:
            raise BusError("read", reg, exc) from exc

    def write_byte(self, reg: int, value: int) -> None:
        bus = self._handle("write", reg)
        try:
            bus.write_byte_data(self.address, reg, value & 0xFF)
        except OSError as exc:
            raise BusError("write", reg, exc) from exc

    def close(self) -> None:
        if self._bus is None:
            return
        bus, self._bus = self._bus, None
        bus.close()
        logger.info("I2C device closed")
