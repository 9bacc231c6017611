import pathlib
import sys
import tempfile
import unittest

# Ensure src/ is on path for direct test execution
ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from gyrolog.config.runtime import GyroLogConfig, config_from_mapping, load_config  # noqa: E402


class GyroLogConfigTest(unittest.TestCase):
    def test_defaults_match_device(self):
        cfg = GyroLogConfig()
        self.assertEqual(cfg.bus_id, 1)
        self.assertEqual(cfg.address, 0x69)
        self.assertEqual(cfg.expected_identity, 0xFA)
        self.assertEqual(cfg.sample_rate_hz, 1000.0)
        self.assertEqual(cfg.calibration_samples, 200)
        self.assertEqual(cfg.flush_every, 100)
        self.assertEqual(cfg.temp_reference_c, 25.0)

    def test_mapping_ignores_unknown_keys(self):
        cfg = config_from_mapping({"sample_rate_hz": 500, "colour": "blue"})
        self.assertEqual(cfg.sample_rate_hz, 500.0)

    def test_mapping_flattens_gyrolog_section(self):
        cfg = config_from_mapping({"gyrolog": {"address": "0x68", "bus_id": 0}})
        self.assertEqual(cfg.address, 0x68)
        self.assertEqual(cfg.bus_id, 0)

    def test_sanitized_clamps_values(self):
        cfg = GyroLogConfig(
            sample_rate_hz=0,
            calibration_samples=-5,
            flush_every=0,
            duration_s=-1,
            max_samples=0,
            file_prefix="   ",
        ).sanitized()
        self.assertEqual(cfg.sample_rate_hz, 1.0)
        self.assertEqual(cfg.calibration_samples, 1)
        self.assertEqual(cfg.flush_every, 1)
        self.assertIsNone(cfg.duration_s)
        self.assertIsNone(cfg.max_samples)
        self.assertEqual(cfg.file_prefix, "gyro_data")

    def test_zero_temperature_sensitivity_is_rejected(self):
        with self.assertRaises(ValueError):
            GyroLogConfig(temp_sensitivity=0).sanitized()

    def test_load_missing_file_returns_defaults(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with self.assertLogs("gyrolog.config.runtime", level="WARNING") as logs:
                cfg = load_config(pathlib.Path(tmpdir) / "missing.yaml")
        self.assertEqual(cfg, GyroLogConfig())
        self.assertIn("not found", logs.output[0])

    def test_null_value_is_reported_as_value_error(self):
        with self.assertRaises(ValueError) as ctx:
            config_from_mapping({"sample_rate_hz": None})
        self.assertIn("sample_rate_hz", str(ctx.exception))

    def test_list_address_is_reported_as_value_error(self):
        with self.assertRaises(ValueError) as ctx:
            config_from_mapping({"address": [1]})
        self.assertIn("address", str(ctx.exception))

    def test_address_above_7_bits_is_rejected(self):
        with self.assertRaises(ValueError):
            GyroLogConfig(address=0xE9).sanitized()
        self.assertEqual(GyroLogConfig(address="0x7F").sanitized().address, 0x7F)

    def test_optional_limits_accept_null(self):
        cfg = config_from_mapping({"duration_s": None, "max_samples": None})
        self.assertIsNone(cfg.duration_s)
        self.assertIsNone(cfg.max_samples)

    def test_to_mapping_round_trips(self):
        cfg = GyroLogConfig(sample_rate_hz=250.0).sanitized()
        self.assertEqual(config_from_mapping(cfg.to_mapping()), cfg)

    def test_load_none_returns_defaults(self):
        self.assertEqual(load_config(None), GyroLogConfig())

    def test_load_yaml_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = pathlib.Path(tmpdir) / "gyrolog.yaml"
            path.write_text(
                "gyrolog:\n  address: 0x68\n  sample_rate_hz: 250\n  run_self_test: false\n",
                encoding="utf-8",
            )
            cfg = load_config(path)
        self.assertEqual(cfg.address, 0x68)
        self.assertEqual(cfg.sample_rate_hz, 250.0)
        self.assertFalse(cfg.run_self_test)

    def test_load_rejects_non_mapping(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = pathlib.Path(tmpdir) / "bad.yaml"
            path.write_text("- 1\n- 2\n", encoding="utf-8")
            with self.assertRaises(ValueError):
                load_config(path)

    def test_example_config_loads(self):
        cfg = load_config(ROOT / "gyrolog.example.yaml")
        self.assertEqual(cfg.address, 0x69)
        self.assertEqual(cfg.expected_identity, 0xFA)
        self.assertEqual(cfg.output_dir, "./logs")


if __name__ == "__main__":
    unittest.main()
