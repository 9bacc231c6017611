"""Runtime configuration for the gyro logger."""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Callable, Mapping, MutableMapping, Optional

import yaml

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class GyroLogConfig:
    """
    Tuning knobs for one logging run.

    The defaults drive an IAM-20380HT at 0x69 on ``/dev/i2c-1`` at 1 kHz.
    """

    bus_id: int = 1
    address: int = 0x69
    expected_identity: int = 0xFA

    sample_rate_hz: float = 1000.0
    duration_s: Optional[float] = None
    max_samples: Optional[int] = None

    run_self_test: bool = True
    self_test_samples: int = 200
    calibration_samples: int = 200

    # Temperature conversion: raw / sensitivity + intercept, offsets relative to reference
    temp_sensitivity: float = 340.0
    temp_intercept_c: float = 36.53
    temp_reference_c: float = 25.0

    output_dir: str = "."
    file_prefix: str = "gyro_data"
    flush_every: int = 100
    fsync_each_flush: bool = False
    write_metadata: bool = True

    def sanitized(self) -> GyroLogConfig:
        """Return a copy with derived limits applied.

        Raises ``ValueError`` for values that cannot be coerced (e.g. a YAML
        null or list) and for an address outside the 7-bit I2C range.
        """
        duration = _coerce("duration_s", float, self.duration_s, optional=True)
        if duration is not None and duration <= 0:
            duration = None
        max_samples = _coerce("max_samples", int, self.max_samples, optional=True)
        if max_samples is not None and max_samples <= 0:
            max_samples = None
        sensitivity = _coerce("temp_sensitivity", float, self.temp_sensitivity)
        if sensitivity == 0:
            raise ValueError("temp_sensitivity must be non-zero")
        address = _coerce("address", _parse_int, self.address)
        if not 0 <= address <= 0x7F:
            raise ValueError(f"address must be a 7-bit I2C address, got 0x{address:02X}")
        identity = _coerce("expected_identity", _parse_int, self.expected_identity)
        if not 0 <= identity <= 0xFF:
            raise ValueError(f"expected_identity must fit in one byte, got {identity}")
        return replace(
            self,
            bus_id=_coerce("bus_id", int, self.bus_id),
            address=address,
            expected_identity=identity,
            sample_rate_hz=max(1.0, _coerce("sample_rate_hz", float, self.sample_rate_hz)),
            duration_s=duration,
            max_samples=max_samples,
            run_self_test=bool(self.run_self_test),
            self_test_samples=max(1, _coerce("self_test_samples", int, self.self_test_samples)),
            calibration_samples=max(1, _coerce("calibration_samples", int, self.calibration_samples)),
            temp_sensitivity=sensitivity,
            temp_intercept_c=_coerce("temp_intercept_c", float, self.temp_intercept_c),
            temp_reference_c=_coerce("temp_reference_c", float, self.temp_reference_c),
            output_dir=_coerce("output_dir", _text, self.output_dir),
            file_prefix=_coerce("file_prefix", _text, self.file_prefix).strip() or "gyro_data",
            flush_every=max(1, _coerce("flush_every", int, self.flush_every)),
            fsync_each_flush=bool(self.fsync_each_flush),
            write_metadata=bool(self.write_metadata),
        )

    def to_mapping(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def _coerce(name: str, convert: Callable[[Any], Any], value: Any, *, optional: bool = False) -> Any:
    """Apply ``convert`` to a config value, reporting bad types as ``ValueError``."""
    if value is None and optional:
        return None
    try:
        return convert(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"invalid value for {name}: {value!r}") from exc


def _text(value: Any) -> str:
    if not isinstance(value, (str, int, float)) or isinstance(value, bool):
        raise TypeError(f"expected a string, got {type(value).__name__}")
    return str(value)


def _parse_int(value: Any) -> int:
    """Accept ints and strings such as ``"0x69"`` or ``"105"``."""
    if isinstance(value, str):
        return int(value.strip(), 0)
    return int(value)


def _recognized_fields() -> set[str]:
    """Return the dataclass field names accepted by :class:`GyroLogConfig`."""
    return {f.name for f in fields(GyroLogConfig)}


def _normalize_mapping(data: Mapping[str, Any]) -> MutableMapping[str, Any]:
    """Flatten an optional top-level ``gyrolog`` section."""
    if "gyrolog" in data and isinstance(data["gyrolog"], Mapping):
        merged: MutableMapping[str, Any] = {}
        for key, value in data.items():
            if key == "gyrolog":
                merged.update(value)
            else:
                merged[key] = value
        return merged
    return dict(data)


def config_from_mapping(data: Mapping[str, Any] | None) -> GyroLogConfig:
    """Build :class:`GyroLogConfig` from ``data`` (ignoring unknown keys)."""
    if not data:
        return GyroLogConfig()
    normalized = _normalize_mapping(data)
    known = _recognized_fields()
    payload = {key: normalized[key] for key in normalized.keys() & known}
    return GyroLogConfig(**payload).sanitized()


def load_config(path: str | Path | None) -> GyroLogConfig:
    """
    Load configuration from ``path``.

    Missing files fall back to default :class:`GyroLogConfig` with a warning.
    """
    if path is None:
        return GyroLogConfig()
    cfg_path = Path(path)
    if not cfg_path.exists():
        logger.warning("Config file %s not found; using defaults", cfg_path)
        return GyroLogConfig()
    with cfg_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh) or {}
    if not isinstance(raw, Mapping):
        raise ValueError(f"Expected mapping in {cfg_path}, got {type(raw).__name__}")
    return config_from_mapping(raw)


__all__ = ["GyroLogConfig", "config_from_mapping", "load_config"]
