import argparse
import os
import sys

from ..config import DaemonConfig


def add_init_cmd(subparsers: argparse._SubParsersAction) -> None:
    init = subparsers.add_parser(
        "init",
        help="Generate a daemon config YAML",
        description="Generate a daemon config YAML. Values can come from env (WGCS_*) and flags.",
    )
    init.add_argument(
        "-o",
        "--output",
        default=os.environ.get("WGCS_OUTPUT", "wg-config-sync.yml"),
        help="Path to write the generated config (env: WGCS_OUTPUT). Default: wg-config-sync.yml",
    )
    init.add_argument(
        "--overwrite",
        action="store_true",
        help="Overwrite output file if it exists",
    )

    paths = init.add_argument_group("paths")
    paths.add_argument("--app-name", default=None)
    paths.add_argument("--config-file", default=None)
    paths.add_argument("--script-path", default=None)
    paths.add_argument("--script-source", default=None)
    paths.add_argument("--params-file", default=None)

    logs = init.add_argument_group("logging")
    logs.add_argument("--log-level", default=None)
    stderr_group = logs.add_mutually_exclusive_group()
    stderr_group.add_argument("--log-stderr", dest="log_stderr", action="store_true", default=None)
    stderr_group.add_argument("--no-log-stderr", dest="log_stderr", action="store_false")
    init.add_argument("--poll-interval", type=float, default=None)

    init.set_defaults(log_stderr=None, func=run_init_cmd)


def run_init_cmd(args: argparse.Namespace) -> int:
    out_path = args.output
    if os.path.exists(out_path) and not args.overwrite:
        print(f"Refusing to overwrite existing file: {out_path}. Use --overwrite to replace.", file=sys.stderr)
        return 2

    cfg = DaemonConfig.from_env(os.environ)
    cfg.apply_args_overrides(args)

    errs = cfg.validate()
    if errs:
        print("Config validation failed:", file=sys.stderr)
        for e in errs:
            print(f"- {e}", file=sys.stderr)
        return 2

    cfg.write_file(out_path, overwrite=args.overwrite)
    print(f"Config written to {out_path}")
    return 0
