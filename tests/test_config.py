import tempfile
import unittest
from pathlib import Path

from mcgate.core.web_config import WebConfig


class WebConfigTests(unittest.TestCase):
    def test_reads_basic_values(self):
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            conf = root / "mcgate.env"
            conf.write_text(
                "\n".join(
                    [
                        "# comment",
                        "WEB_HOST=0.0.0.0",
                        "WEB_PORT=8080",
                        "RCON_COMMAND_TIMEOUT_SECONDS=2.5",
                        "DATA_DIR=./state",
                        'DISPLAY_TZ="Asia/Manila"',
                    ]
                ),
                encoding="utf-8",
            )
            cfg = WebConfig(conf, root, environ={})
            self.assertEqual(cfg.get_str("WEB_HOST", "x"), "0.0.0.0")
            self.assertEqual(cfg.get_int("WEB_PORT", 0), 8080)
            self.assertEqual(cfg.get_float("RCON_COMMAND_TIMEOUT_SECONDS", 0.0), 2.5)
            self.assertEqual(cfg.get_path("DATA_DIR", root / "none"), root / "state")
            self.assertEqual(cfg.get_str("DISPLAY_TZ", "UTC"), "Asia/Manila")

    def test_environment_overrides_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            conf = root / "mcgate.env"
            conf.write_text("WEB_PORT=8080\nMCGATE_SECRET_KEY=from-file\n", encoding="utf-8")
            cfg = WebConfig(conf, root, environ={"MCGATE_WEB_PORT": "9090", "MCGATE_SECRET_KEY": "from-env"})
            self.assertEqual(cfg.get_int("WEB_PORT", 0), 9090)
            self.assertEqual(cfg.get_str("MCGATE_SECRET_KEY", ""), "from-env")

    def test_missing_file_and_bad_values_fall_back(self):
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            cfg = WebConfig(
                root / "absent.env",
                root,
                environ={
                    "MCGATE_RCON_PARALLEL_WORKERS": "0",
                    "MCGATE_RCON_CONNECT_TIMEOUT_SECONDS": "60",
                    "MCGATE_RATE_LIMIT_RCON_PER_MINUTE": "lots",
                },
            )
            self.assertEqual(cfg.get_int("RCON_PARALLEL_WORKERS", 4, minimum=1), 1)
            self.assertEqual(cfg.get_float("RCON_CONNECT_TIMEOUT_SECONDS", 8.0, minimum=0.5, maximum=10.0), 10.0)
            self.assertEqual(cfg.get_int("RATE_LIMIT_RCON_PER_MINUTE", 300), 300)
            self.assertEqual(cfg.get_str("WEB_HOST", "127.0.0.1"), "127.0.0.1")

    def test_get_bool(self):
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            cfg = WebConfig(
                root / "absent.env",
                root,
                environ={"MCGATE_A": "off", "MCGATE_B": "Yes", "MCGATE_C": "maybe"},
            )
            self.assertFalse(cfg.get_bool("A", True))
            self.assertTrue(cfg.get_bool("B", False))
            self.assertTrue(cfg.get_bool("C", True))
            self.assertFalse(cfg.get_bool("D", False))


if __name__ == "__main__":
    unittest.main()
