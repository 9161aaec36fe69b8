import logging
import sys
from logging.handlers import SysLogHandler

PACKAGE_LOGGER = "wg_config_sync"
SYSLOG_ADDRESS = "/dev/log"


def configure_logging(app_name: str, level: str = "INFO", stderr: bool = False) -> logging.Logger:
    """Route the package logger to the system log.

    Messages carry the app name and pid like openlog(app, LOG_PID, LOG_USER).
    Falls back to stderr when the syslog socket is unavailable.
    """
    log = logging.getLogger(PACKAGE_LOGGER)
    for h in list(log.handlers):
        log.removeHandler(h)
        h.close()
    log.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    syslog_ok = True
    try:
        syslog_handler = SysLogHandler(address=SYSLOG_ADDRESS, facility=SysLogHandler.LOG_USER)
        syslog_handler.setFormatter(logging.Formatter(f"{app_name}[%(process)d]: %(message)s"))
        log.addHandler(syslog_handler)
    except OSError:
        syslog_ok = False

    if stderr or not syslog_ok:
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setFormatter(logging.Formatter(f"[{app_name}] %(levelname)s %(message)s"))
        log.addHandler(stderr_handler)

    if not syslog_ok:
        log.warning("Syslog socket %s unavailable, logging to stderr", SYSLOG_ADDRESS)
    return log
