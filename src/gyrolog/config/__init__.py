"""Configuration objects and helpers for gyrolog.

A small YAML file (optionally under a top-level ``gyrolog:`` key) supplies
defaults for the bus, sampling rate, calibration and output settings; the
command line overrides them.
"""

from .runtime import GyroLogConfig, config_from_mapping, load_config

__all__ = ["GyroLogConfig", "config_from_mapping", "load_config"]
