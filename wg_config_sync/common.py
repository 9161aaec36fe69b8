import os
import sys
from typing import Optional

from .config import DaemonConfig


def resolve_config_path(args) -> str:
    path = getattr(args, "config", None) or os.environ.get("WGCS_CONFIG") or "wg-config-sync.yml"
    return path


def load_daemon_config(args) -> Optional[DaemonConfig]:
    """Config file if present, otherwise env; command-line flags win over both."""
    path = resolve_config_path(args)
    if os.path.exists(path):
        try:
            cfg = DaemonConfig.read_file(path)
        except Exception as e:
            print(f"Failed to parse config: {e}", file=sys.stderr)
            return None
    else:
        cfg = DaemonConfig.from_env(os.environ)
    cfg.apply_args_overrides(args)

    errs = cfg.validate()
    if errs:
        print("Invalid configuration:", file=sys.stderr)
        for e in errs:
            print(f"- {e}", file=sys.stderr)
        return None
    return cfg


def add_path_overrides(p) -> None:
    p.add_argument("-c", "--config", default=os.environ.get("WGCS_CONFIG", "wg-config-sync.yml"),
                   help="Path to daemon config file (env: WGCS_CONFIG)")
    p.add_argument("--app-name", default=None, help="Parameter namespace / syslog ident (env: WGCS_APP_NAME)")
    p.add_argument("--config-file", default=None, help="Materialized key=value file (env: WGCS_CONFIG_FILE)")
    p.add_argument("--script-path", default=None, help="Runtime startup script (env: WGCS_SCRIPT_PATH)")
    p.add_argument("--script-source", default=None, help="Bundled startup script (env: WGCS_SCRIPT_SOURCE)")
    p.add_argument("--params-file", default=None, help="Parameter YAML file (env: WGCS_PARAMS_FILE)")
