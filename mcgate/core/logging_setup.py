"""Logging setup helpers."""

from mcgate.core.action_logging import make_log_action, make_log_exception


def build_loggers(display_tz, log_dir, action_log_file, system_log_file):
    """Create mcgate action/system log writers and the exception logger."""
    log_mcgate_action = make_log_action(display_tz, log_dir, action_log_file)
    log_mcgate_log = make_log_action(display_tz, log_dir, system_log_file)
    log_mcgate_exception = make_log_exception(log_mcgate_log)
    return log_mcgate_action, log_mcgate_log, log_mcgate_exception
