import argparse
import os
import sys

from ..config import dump_yaml, generate_wg_keypair
from ..materializer import FIELDS


def add_init_params_cmd(subparsers: argparse._SubParsersAction) -> None:
    p = subparsers.add_parser(
        "init-params",
        help="Write a seed parameter file",
        description="Writes the six WireGuard parameters with defaults. Generates a keypair unless --private-key is given.",
    )
    p.add_argument("-o", "--output", default=os.environ.get("WGCS_PARAMS_FILE", "params.yml"),
                   help="Path to write the parameter file (env: WGCS_PARAMS_FILE). Default: params.yml")
    p.add_argument("--overwrite", action="store_true", help="Overwrite output file if it exists")
    p.add_argument("--private-key", default=None)
    p.add_argument("--listen-port", default=None)
    p.add_argument("--endpoint", default=None)
    p.add_argument("--peer-public-key", default=None)
    p.add_argument("--allowed-ips", default=None)
    p.add_argument("--client-ip", default=None)
    p.set_defaults(func=run_init_params_cmd)


def run_init_params_cmd(args: argparse.Namespace) -> int:
    out_path = args.output
    overwrite = getattr(args, "overwrite", False)
    if os.path.exists(out_path) and not overwrite:
        print(f"Refusing to overwrite existing file: {out_path}. Use --overwrite to replace.", file=sys.stderr)
        return 2

    params = {}
    for f in FIELDS:
        val = getattr(args, f.key, None)
        params[f.param] = f.default if val is None else str(val)

    public_key = None
    if not params["PrivateKey"]:
        params["PrivateKey"], public_key = generate_wg_keypair()

    parent = os.path.dirname(os.path.abspath(out_path))
    os.makedirs(parent, exist_ok=True)
    with open(out_path, "w", encoding="utf-8") as fh:
        fh.write(dump_yaml(params))
    try:
        os.chmod(out_path, 0o600)
    except OSError:
        pass

    print(f"Parameters written to {out_path}")
    if public_key is not None:
        print(f"Generated public key: {public_key}")
    return 0
