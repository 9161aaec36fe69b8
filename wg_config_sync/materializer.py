import logging
import os
from dataclasses import dataclass
from typing import List, Tuple

from .context import SyncContext
from .params import ParameterError, ParameterStore

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecordField:
    param: str
    key: str
    default: str
    sensitive: bool = False


# Order is the on-disk line order
FIELDS: Tuple[RecordField, ...] = (
    RecordField("PrivateKey", "private_key", "", sensitive=True),
    RecordField("ListenPort", "listen_port", "51820"),
    RecordField("Endpoint", "endpoint", ""),
    RecordField("PeerPublicKey", "peer_public_key", "", sensitive=True),
    RecordField("AllowedIPs", "allowed_ips", "0.0.0.0/0"),
    RecordField("ClientIP", "client_ip", "10.0.0.2/24"),
)

PARAM_NAMES: Tuple[str, ...] = tuple(f.param for f in FIELDS)

CONFIG_FILE_MODE = 0o600


@dataclass()
class ConfigRecord:
    private_key: str = ""
    listen_port: str = "51820"
    endpoint: str = ""
    peer_public_key: str = ""
    allowed_ips: str = "0.0.0.0/0"
    client_ip: str = "10.0.0.2/24"

    def items(self) -> List[Tuple[str, str]]:
        return [(f.key, getattr(self, f.key)) for f in FIELDS]


def read_record(store: ParameterStore) -> ConfigRecord:
    values = {}
    for f in FIELDS:
        try:
            value = store.get(f.param)
        except ParameterError as e:
            log.error("Failed to get %s: %s", f.param, e)
            value = None
        values[f.key] = f.default if value is None else value
    return ConfigRecord(**values)


def render_record(record: ConfigRecord) -> str:
    return "".join(f"{key}={value}\n" for key, value in record.items())


def materialize(ctx: SyncContext) -> bool:
    """Write the current parameter values to the config file.

    Every pass re-reads all parameters; missing ones fall back to defaults.
    The file is truncated and rewritten in place, so a concurrent reader can
    see a partial file.
    """
    record = read_record(ctx.require_store())
    path = ctx.config.config_file
    try:
        f = open(path, "w", encoding="utf-8")
    except OSError as e:
        log.error("Failed to open config file %s for writing: %s", path, e)
        return False
    try:
        with f:
            f.write(render_record(record))
    except OSError as e:
        log.error("Failed to write config file %s: %s", path, e)
        return False

    # Contains the private key
    try:
        os.chmod(path, CONFIG_FILE_MODE)
    except OSError as e:
        log.error("Failed to restrict permissions on %s: %s", path, e)

    log.info("Updated configuration file with new parameters")
    for rf in FIELDS:
        value = getattr(record, rf.key)
        if rf.sensitive:
            shown = "(set)" if value else "(empty)"
        else:
            shown = value if value else "(empty)"
        log.info("%s=%s", rf.key, shown)
    return True
