import argparse

from ..common import add_path_overrides, load_daemon_config
from ..daemon import ConfigSyncDaemon
from ..logsetup import configure_logging


def add_run_cmd(subparsers: argparse._SubParsersAction) -> None:
    p = subparsers.add_parser(
        "run",
        help="Run the configuration updater daemon",
        description="Materializes the WireGuard parameters, starts the VPN script and restarts it on every change.",
    )
    add_path_overrides(p)
    p.add_argument("--log-level", default=None, help="Log level (env: WGCS_LOG_LEVEL). Default: INFO")
    stderr_group = p.add_mutually_exclusive_group()
    stderr_group.add_argument("--log-stderr", dest="log_stderr", action="store_true", default=None,
                              help="Also log to stderr")
    stderr_group.add_argument("--no-log-stderr", dest="log_stderr", action="store_false")
    p.add_argument("--poll-interval", type=float, default=None,
                   help="Seconds between stop-flag checks while idle (env: WGCS_POLL_INTERVAL)")
    p.set_defaults(log_stderr=None, func=run_run_cmd)


def run_run_cmd(args: argparse.Namespace) -> int:
    cfg = load_daemon_config(args)
    if cfg is None:
        return 2
    configure_logging(cfg.app_name, cfg.log_level, cfg.log_stderr)
    return ConfigSyncDaemon(cfg).run()
