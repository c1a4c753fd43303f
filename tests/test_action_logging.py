import tempfile
import unittest
from datetime import timezone
from pathlib import Path

from flask import Flask

from mcgate.core.action_logging import _rotate_log_file, get_client_ip, make_log_action, make_log_exception


class ActionLoggingTests(unittest.TestCase):
    def test_writes_one_sanitised_line(self):
        with tempfile.TemporaryDirectory() as tmp:
            log_dir = Path(tmp) / "logs"
            log_file = log_dir / "mcgate-actions.log"
            log_action = make_log_action(timezone.utc, log_dir, log_file)
            log_action("kick", command="Steve\ngriefing", rejection_message="No player was found")
            lines = log_file.read_text(encoding="utf-8").splitlines()
        self.assertEqual(len(lines), 1)
        self.assertIn("<mcgate> [mcgate/kick] Steve griefing rejected: No player was found", lines[0])

    def test_exception_logger_appends_traceback(self):
        with tempfile.TemporaryDirectory() as tmp:
            log_dir = Path(tmp)
            log_file = log_dir / "mcgate.log"
            log_exception = make_log_exception(make_log_action(timezone.utc, log_dir, log_file))
            try:
                raise RuntimeError("boom")
            except RuntimeError as exc:
                log_exception("route/kick", exc)
            text = log_file.read_text(encoding="utf-8")
        self.assertIn("[mcgate/error]", text)
        self.assertIn("route/kick: RuntimeError: boom | traceback:", text)

    def test_rotation_shifts_backups(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "mcgate-actions.log"
            path.write_text("x" * 20, encoding="utf-8")
            path.with_name("mcgate-actions.log.1").write_text("old", encoding="utf-8")
            _rotate_log_file(path, max_bytes=10, backup_count=3)
            self.assertFalse(path.exists())
            self.assertEqual(path.with_name("mcgate-actions.log.1").read_text(encoding="utf-8"), "x" * 20)
            self.assertEqual(path.with_name("mcgate-actions.log.2").read_text(encoding="utf-8"), "old")

    def test_client_ip_uses_rightmost_forwarded_hop(self):
        app = Flask(__name__)
        self.assertEqual(get_client_ip(), "mcgate")
        with app.test_request_context("/", headers={"X-Forwarded-For": "1.2.3.4, 10.0.0.2"}):
            self.assertEqual(get_client_ip(), "10.0.0.2")
        with app.test_request_context("/", environ_base={"REMOTE_ADDR": "203.0.113.9"}):
            self.assertEqual(get_client_ip(), "203.0.113.9")


if __name__ == "__main__":
    unittest.main()
