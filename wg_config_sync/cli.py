import argparse
from typing import Callable, Optional

from .commands.init_cmd import add_init_cmd
from .commands.init_params_cmd import add_init_params_cmd
from .commands.validate_cfg_cmd import add_validate_cfg_cmd
from .commands.materialize_cmd import add_materialize_cmd
from .commands.run_cmd import add_run_cmd

CommandHandler = Callable[[argparse.Namespace], int]


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="wg-config-sync",
        description="Keeps a WireGuard key=value config in sync with device parameters.",
    )
    # Subcommands are responsible for their own --config options

    sub = p.add_subparsers(dest="command", required=True)
    add_run_cmd(sub)
    add_materialize_cmd(sub)
    add_init_cmd(sub)
    add_init_params_cmd(sub)
    add_validate_cfg_cmd(sub)
    return p


def main(argv: list[str] | None = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    handler: Optional[CommandHandler] = getattr(args, "func", None)
    if handler is None:
        parser.error("No subcommand handler attached")
    return handler(args)
