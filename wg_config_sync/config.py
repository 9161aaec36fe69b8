import codecs
import os
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, NewType, Optional
import yaml  # type: ignore
from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey
from cryptography.hazmat.primitives import serialization


ENV_PREFIX = "WGCS_"

APP_NAME = "wireguardconfig"
PACKAGE_DIR = "/usr/local/packages/" + APP_NAME

AppName = NewType("AppName", str)
FilePath = NewType("FilePath", str)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass()
class DaemonConfig:
    app_name: AppName = AppName(APP_NAME)
    config_file: FilePath = FilePath(PACKAGE_DIR + "/config.txt")
    script_path: FilePath = FilePath(PACKAGE_DIR + "/start_wireguard.sh")
    script_source: FilePath = FilePath(PACKAGE_DIR + "/lib/start_wireguard.sh")
    params_file: FilePath = FilePath(PACKAGE_DIR + "/params.yml")
    log_level: str = "INFO"
    log_stderr: bool = False
    poll_interval: float = 1.0

    @property
    def namespace_prefix(self) -> str:
        return f"root.{self.app_name}."

    def qualify(self, name: str) -> str:
        if name.startswith(self.namespace_prefix):
            return name
        return self.namespace_prefix + name

    def simple_name(self, name: str) -> str:
        prefix = self.namespace_prefix
        if name.startswith(prefix):
            return name[len(prefix):]
        return name

    # File IO
    @classmethod
    def read_file(cls, path: str) -> "DaemonConfig":
        with open(path, "r", encoding="utf-8") as f:
            text = f.read()
        data = load_yaml(text)
        return parse_daemon_config(data)

    def write_file(self, path: str, overwrite: bool = False) -> None:
        if os.path.exists(path) and not overwrite:
            raise FileExistsError(f"Refusing to overwrite existing file: {path}")
        parent = os.path.dirname(os.path.abspath(path))
        if parent and not os.path.exists(parent):
            os.makedirs(parent, exist_ok=True)
        text = dump_yaml(to_yaml_dict(self))
        with open(path, "w", encoding="utf-8") as f:
            f.write(text)

    # Validation
    def validate(self) -> List[str]:
        errs: List[str] = []
        name = str(self.app_name)
        if not name:
            errs.append("app_name must be non-empty")
        elif not _valid_app_name(name):
            errs.append(f"app_name invalid: {name}")
        for label, value in (
            ("config_file", self.config_file),
            ("script_path", self.script_path),
            ("script_source", self.script_source),
            ("params_file", self.params_file),
        ):
            if not value:
                errs.append(f"{label} must be non-empty")
        if self.script_path and self.script_source:
            if os.path.abspath(self.script_path) == os.path.abspath(self.script_source):
                errs.append("script_path must differ from script_source")
        if self.config_file and self.params_file:
            if os.path.abspath(self.config_file) == os.path.abspath(self.params_file):
                errs.append("config_file must differ from params_file")
        if str(self.log_level).upper() not in LOG_LEVELS:
            errs.append(f"log_level invalid: {self.log_level}")
        if self.poll_interval <= 0:
            errs.append(f"poll_interval must be positive: {self.poll_interval}")
        return errs

    def validate_or_raise(self) -> None:
        errs = self.validate()
        if errs:
            raise ValueError("Config validation failed:\n- " + "\n- ".join(errs))

    # Fill from env/args
    @classmethod
    def from_env(cls, env: Mapping[str, str]) -> "DaemonConfig":
        r = EnvReader(env)
        app_name = r.get("APP_NAME", APP_NAME) or APP_NAME
        base = f"/usr/local/packages/{app_name}"
        return cls(
            app_name=AppName(app_name),
            config_file=FilePath(r.get("CONFIG_FILE") or base + "/config.txt"),
            script_path=FilePath(r.get("SCRIPT_PATH") or base + "/start_wireguard.sh"),
            script_source=FilePath(r.get("SCRIPT_SOURCE") or base + "/lib/start_wireguard.sh"),
            params_file=FilePath(r.get("PARAMS_FILE") or base + "/params.yml"),
            log_level=(r.get("LOG_LEVEL", "INFO") or "INFO").upper(),
            log_stderr=r.get_bool("LOG_STDERR", False),
            poll_interval=r.get_float("POLL_INTERVAL", 1.0),
        )

    def apply_args_overrides(self, args: object) -> None:
        if getattr(args, "app_name", None) is not None:
            self.app_name = AppName(getattr(args, "app_name"))
        for attr in ("config_file", "script_path", "script_source", "params_file"):
            val = getattr(args, attr, None)
            if val is not None:
                setattr(self, attr, FilePath(val))
        if getattr(args, "log_level", None) is not None:
            self.log_level = str(getattr(args, "log_level")).upper()
        if getattr(args, "log_stderr", None) is not None:
            self.log_stderr = bool(getattr(args, "log_stderr"))
        if getattr(args, "poll_interval", None) is not None:
            self.poll_interval = float(getattr(args, "poll_interval"))


class EnvReader:
    def __init__(self, env: Mapping[str, str], prefix: str = ENV_PREFIX) -> None:
        self._env = env
        self._prefix = prefix

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._env.get(self._prefix + key, default)

    def get_bool(self, key: str, default: bool) -> bool:
        val = self._env.get(self._prefix + key)
        if val is None:
            return default
        val_lower = val.strip().lower()
        if val_lower in {"1", "true", "yes", "y", "on"}:
            return True
        if val_lower in {"0", "false", "no", "n", "off"}:
            return False
        return default

    def get_float(self, key: str, default: float) -> float:
        val = self._env.get(self._prefix + key)
        if val is None:
            return default
        try:
            return float(val)
        except ValueError:
            return default


def _valid_app_name(name: str) -> bool:
    return re.fullmatch(r"[A-Za-z0-9_-]+", name) is not None


def generate_wg_keypair() -> tuple[str, str]:
    """Generate a WireGuard (X25519) keypair as base64 strings using cryptography.

    Matches `wg genkey | wg pubkey` semantics: 32-byte raw keys, Base64 encoded.
    """
    private_key = X25519PrivateKey.generate()
    priv_bytes = private_key.private_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PrivateFormat.Raw,
        encryption_algorithm=serialization.NoEncryption(),
    )
    priv_b64 = codecs.encode(priv_bytes, "base64").decode("utf8").strip()
    pub_bytes = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )
    pub_b64 = codecs.encode(pub_bytes, "base64").decode("utf8").strip()
    return priv_b64, pub_b64


def to_yaml_dict(cfg: DaemonConfig) -> Dict[str, Any]:
    return {
        "app-name": cfg.app_name,
        "config-file": cfg.config_file,
        "script-path": cfg.script_path,
        "script-source": cfg.script_source,
        "params-file": cfg.params_file,
        "log-level": cfg.log_level,
        "log-stderr": cfg.log_stderr,
        "poll-interval": cfg.poll_interval,
    }


def dump_yaml(data: Dict[str, Any]) -> str:
    return yaml.safe_dump(data, sort_keys=False, default_flow_style=False, allow_unicode=True)


def load_yaml(text: str) -> Dict[str, Any]:
    obj = yaml.safe_load(text)
    if not isinstance(obj, dict):
        raise ValueError("Invalid YAML root: expected mapping")
    return obj


def parse_daemon_config(data: Dict[str, Any]) -> DaemonConfig:
    defaults = DaemonConfig()
    app_name = str(data.get("app-name", defaults.app_name))
    base = f"/usr/local/packages/{app_name}"
    return DaemonConfig(
        app_name=AppName(app_name),
        config_file=FilePath(str(data.get("config-file") or base + "/config.txt")),
        script_path=FilePath(str(data.get("script-path") or base + "/start_wireguard.sh")),
        script_source=FilePath(str(data.get("script-source") or base + "/lib/start_wireguard.sh")),
        params_file=FilePath(str(data.get("params-file") or base + "/params.yml")),
        log_level=str(data.get("log-level", defaults.log_level)).upper(),
        log_stderr=bool(data.get("log-stderr", defaults.log_stderr)),
        poll_interval=float(data.get("poll-interval", defaults.poll_interval)),
    )
