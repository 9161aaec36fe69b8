import argparse
import os
import sys

from ..config import DaemonConfig


def add_validate_cfg_cmd(subparsers: argparse._SubParsersAction) -> None:
    v = subparsers.add_parser(
        "validate-cfg",
        help="Check a daemon config file before running the updater",
        description=(
            "Loads a daemon config YAML and checks the parameter namespace (app-name), "
            "the config-file/params-file and script-path/script-source pairs, "
            "log-level and poll-interval. Prints the resolved paths when valid."
        ),
    )
    v.add_argument(
        "-c",
        "--config",
        default=os.environ.get("WGCS_CONFIG", "wg-config-sync.yml"),
        help="Daemon config to check (env: WGCS_CONFIG). Default: wg-config-sync.yml",
    )
    v.set_defaults(func=run_validate_cfg_cmd)


def run_validate_cfg_cmd(args: argparse.Namespace) -> int:
    path = args.config
    if not os.path.exists(path):
        print(f"Daemon config not found: {path}", file=sys.stderr)
        return 2
    try:
        cfg = DaemonConfig.read_file(path)
    except Exception as e:
        print(f"Failed to parse daemon config {path}: {e}", file=sys.stderr)
        return 2

    errs = cfg.validate()
    if errs:
        print(f"Invalid daemon config {path}:", file=sys.stderr)
        for err in errs:
            print(f"- {err}", file=sys.stderr)
        return 2

    print(f"Parameters {cfg.namespace_prefix}* from {cfg.params_file}")
    print(f"Writes {cfg.config_file}, runs {cfg.script_path} (bundled: {cfg.script_source})")
    if not os.path.exists(cfg.script_path) and not os.path.exists(cfg.script_source):
        print(f"Warning: neither {cfg.script_path} nor {cfg.script_source} exists yet", file=sys.stderr)
    return 0
