"""
Command-line entry point: identify, calibrate, then log at a fixed rate.

Examples
--------
# 1 kHz to ./gyro_data_<timestamp>.txt until Ctrl+C
gyrolog

# 500 Hz for 10 s into ./logs, skipping the self-test
gyrolog --rate 500 --duration 10 --out ./logs --skip-self-test

Configuration via YAML
----------------------
``--config path.yaml`` supplies defaults (optionally under a ``gyrolog:``
key); explicit command-line options override them.

Exit codes: 0 clean shutdown, 1 device/bus/output failure, 2 bad arguments.
"""

from __future__ import annotations

import argparse
import logging
import signal
import socket
import sys
import time
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence

import yaml

from . import __version__
from .config.runtime import GyroLogConfig, load_config
from .core.calibration import CalibrationEngine
from .core.context import RuntimeContext
from .core.models import RunState, SelfTestResult
from .core.scheduler import SamplingScheduler, SchedulerStats
from .dataio.csv_writer import HEADER, CsvSampleSink
from .dataio.file_paths import build_data_file_paths
from .sensors.bus import BusError, RegisterBus, SMBusRegisterBus
from .sensors.iam20380 import IAM20380, TemperatureModel
from .tools.debug import debug_enabled

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2

BusFactory = Callable[[int, int], RegisterBus]


class DeviceNotFoundError(RuntimeError):
    """The identity register read back as zero: nothing answered."""


def check_identity(driver: IAM20380, expected: int) -> int:
    """
    Read WHO_AM_I and compare it with ``expected``.

    A zero reading raises :class:`DeviceNotFoundError`; any other mismatch is
    logged as a warning and the run continues.
    """
    whoami = driver.identify()
    logger.info("WHOAMI: 0x%02X (Expected: 0x%02X)", whoami, expected)
    if whoami == expected:
        logger.info("Device identified successfully")
    elif whoami == 0:
        raise DeviceNotFoundError("No response. Check connections and I2C address.")
    else:
        logger.warning("Unexpected WHOAMI value 0x%02X; continuing", whoami)
    return whoami


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="gyrolog",
        description="Calibrate an IAM-20380HT gyroscope and log rate/temperature samples.",
    )
    ap.add_argument("--config", type=str, default=None, help="YAML file with defaults")
    ap.add_argument("--bus", type=int, default=None, help="I2C bus number (default 1)")
    ap.add_argument(
        "--address",
        type=lambda s: int(s, 0),
        default=None,
        help="Device address, hex or decimal (default 0x69)",
    )
    ap.add_argument("--rate", type=float, default=None, help="Sampling rate in Hz (default 1000)")
    ap.add_argument("--out", type=str, default=None, help="Output folder (default .)")
    ap.add_argument("--prefix", type=str, default=None, help="Output filename prefix")
    ap.add_argument(
        "--calibration-samples",
        type=int,
        default=None,
        help="Rest-state samples averaged for offsets (default 200)",
    )
    ap.add_argument("--skip-self-test", action="store_true", help="Do not run the self-test")
    ap.add_argument("--duration", type=float, default=None, help="Stop after this many seconds")
    ap.add_argument("--samples", type=int, default=None, help="Stop after this many samples")
    ap.add_argument("--flush-every", type=int, default=None, help="Flush every N rows (default 100)")
    ap.add_argument(
        "--fsync-each-flush",
        action="store_true",
        help="Call os.fsync() on each periodic flush (default: final only)",
    )
    ap.add_argument("--no-metadata", action="store_true", help="Do not write the .meta.json sidecar")
    ap.add_argument("--timing-warnings", action="store_true", help="Log loop overruns")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    ap.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return ap


def resolve_config(args: argparse.Namespace) -> GyroLogConfig:
    """Config file values first, explicit CLI options on top."""
    cfg = load_config(args.config)
    overrides = {
        "bus_id": args.bus,
        "address": args.address,
        "sample_rate_hz": args.rate,
        "output_dir": args.out,
        "file_prefix": args.prefix,
        "calibration_samples": args.calibration_samples,
        "duration_s": args.duration,
        "max_samples": args.samples,
        "flush_every": args.flush_every,
    }
    changes = {key: value for key, value in overrides.items() if value is not None}
    # Boolean flags can only switch behaviour on relative to the config
    if args.skip_self_test:
        changes["run_self_test"] = False
    if args.fsync_each_flush:
        changes["fsync_each_flush"] = True
    if args.no_metadata:
        changes["write_metadata"] = False
    return replace(cfg, **changes).sanitized()


def _metadata(
    cfg: GyroLogConfig,
    driver: IAM20380,
    ctx: RuntimeContext,
    whoami: int,
    self_test: Optional[SelfTestResult],
    started: datetime,
) -> dict:
    return {
        "start_utc": started.isoformat(),
        "hostname": socket.gethostname(),
        "bus": cfg.bus_id,
        "address_hex": f"0x{cfg.address:02X}",
        "who_am_i_hex": f"0x{whoami:02X}",
        "expected_who_am_i_hex": f"0x{cfg.expected_identity:02X}",
        "fs_gyro": f"±{driver.full_scale_dps}dps",
        "sensitivity_lsb_per_dps": driver.sensitivity,
        "sample_rate_hz": cfg.sample_rate_hz,
        "calibration_samples": cfg.calibration_samples,
        "offsets": ctx.offsets.to_dict(),
        "self_test": self_test.to_dict() if self_test is not None else None,
        "temperature_model": {
            "sensitivity": driver.temperature.sensitivity,
            "intercept_c": driver.temperature.intercept_c,
            "reference_c": driver.temperature.reference_c,
        },
        "header": HEADER,
        "config": cfg.to_mapping(),
        "version": 1,
    }


def _log_summary(stats: SchedulerStats, sink: Optional[CsvSampleSink]) -> None:
    logger.info("=== Run summary ===")
    logger.info(" Samples: %d (%.1f Hz effective)", stats.samples, stats.effective_rate_hz)
    logger.info(" Overruns: %d (max lag %.3f ms)", stats.overruns, stats.max_lag_ns / 1e6)
    if sink is not None:
        logger.info(" Output: %s", sink.path)


def run(
    cfg: GyroLogConfig,
    *,
    run_state: Optional[RunState] = None,
    bus_factory: BusFactory = SMBusRegisterBus,
    sleep: Callable[[float], None] = time.sleep,
    timing_warnings: bool = False,
) -> int:
    """Execute one logging session and return the process exit code."""
    try:
        bus = bus_factory(cfg.bus_id, cfg.address)
    except OSError as exc:
        logger.error("Failed to open I2C device %d @0x%02X: %s", cfg.bus_id, cfg.address, exc)
        return EXIT_FAILURE

    started = datetime.now(timezone.utc)
    with RuntimeContext(bus=bus, run_state=run_state or RunState()) as ctx:
        driver = IAM20380(
            bus,
            temperature=TemperatureModel(
                sensitivity=cfg.temp_sensitivity,
                intercept_c=cfg.temp_intercept_c,
                reference_c=cfg.temp_reference_c,
            ),
            sleep=sleep,
        )
        try:
            whoami = check_identity(driver, cfg.expected_identity)
        except DeviceNotFoundError as exc:
            logger.error("%s", exc)
            return EXIT_FAILURE
        except BusError:
            logger.exception("Failed to read device identity")
            return EXIT_FAILURE

        paths = build_data_file_paths(cfg.output_dir, cfg.file_prefix, started.astimezone())
        try:
            sink = CsvSampleSink(
                paths.data_path,
                meta_path=paths.meta_path if cfg.write_metadata else None,
                fsync_each_flush=cfg.fsync_each_flush,
            )
        except OSError as exc:
            logger.error("Failed to open data file %s: %s", paths.data_path, exc)
            return EXIT_FAILURE
        ctx.sink = sink

        scheduler: Optional[SamplingScheduler] = None
        try:
            driver.reset_and_wake()
            driver.configure_max_performance()

            engine = CalibrationEngine(driver, sleep=sleep)
            self_test = None
            if cfg.run_self_test:
                logger.info("Performing self-test...")
                self_test = engine.run_self_test(cfg.self_test_samples)
            logger.info("Calculating offsets...")
            ctx.offsets = engine.compute_offsets(cfg.calibration_samples)
            driver.prepare_for_sampling()

            if cfg.write_metadata:
                sink.write_metadata(_metadata(cfg, driver, ctx, whoami, self_test, started))

            scheduler = SamplingScheduler(
                driver,
                ctx,
                rate_hz=cfg.sample_rate_hz,
                flush_every=cfg.flush_every,
                max_samples=cfg.max_samples,
                duration_s=cfg.duration_s,
                timing_warnings=timing_warnings,
            )
            logger.info("Press Ctrl+C to stop")
            scheduler.run()
        except BusError:
            logger.exception("Fatal I2C error; shutting down")
            return EXIT_FAILURE
        except OSError:
            logger.exception("Failed to write output; shutting down")
            return EXIT_FAILURE
        finally:
            if scheduler is not None:
                _log_summary(scheduler.stats, sink)

    return EXIT_OK


def install_signal_handlers(run_state: RunState) -> None:
    """Route SIGINT/SIGTERM to ``run_state.request_stop``."""

    def _handle(signum, frame):
        name = signal.Signals(signum).name
        if not run_state.stopping:
            logger.info("Shutting down (%s)...", name)
        run_state.request_stop(name)

    signal.signal(signal.SIGINT, _handle)
    signal.signal(signal.SIGTERM, _handle)


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        cfg = resolve_config(args)
    except (ValueError, yaml.YAMLError) as exc:
        logger.error("Invalid configuration: %s", exc)
        return EXIT_USAGE

    run_state = RunState()
    install_signal_handlers(run_state)
    return run(cfg, run_state=run_state, timing_warnings=args.timing_warnings or debug_enabled())


if __name__ == "__main__":
    sys.exit(main())
