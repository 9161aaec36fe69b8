import argparse
import sys

from ..common import add_path_overrides, load_daemon_config
from ..context import SyncContext
from ..launcher import start
from ..logsetup import configure_logging
from ..materializer import materialize
from ..params import ParameterError, YamlParameterStore


def add_materialize_cmd(subparsers: argparse._SubParsersAction) -> None:
    p = subparsers.add_parser(
        "materialize",
        help="Write the config file once from the current parameters",
        description="Reads the parameter file once, writes the key=value config and exits.",
    )
    add_path_overrides(p)
    p.add_argument("--restart", action="store_true", help="Start the WireGuard script after writing")
    p.add_argument("--log-stderr", dest="log_stderr", action="store_true", default=None,
                   help="Also log to stderr")
    p.set_defaults(func=run_materialize_cmd)


def run_materialize_cmd(args: argparse.Namespace) -> int:
    cfg = load_daemon_config(args)
    if cfg is None:
        return 2
    configure_logging(cfg.app_name, cfg.log_level, cfg.log_stderr)

    # No watcher: read once and exit
    try:
        store = YamlParameterStore(cfg.params_file, cfg.app_name)
    except ParameterError as e:
        print(f"Failed to initialize parameters: {e}", file=sys.stderr)
        return 1
    ctx = SyncContext(config=cfg, store=store)
    if not materialize(ctx):
        print(f"Failed to write {cfg.config_file}", file=sys.stderr)
        return 1
    print(f"Config written to {cfg.config_file}")
    if getattr(args, "restart", False):
        if start(ctx) is None:
            return 1
    return 0
