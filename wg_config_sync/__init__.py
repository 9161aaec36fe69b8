from .config import (
    DaemonConfig,
    AppName,
    FilePath,
)
from .context import SyncContext
from .daemon import ConfigSyncDaemon, State
from .materializer import ConfigRecord, FIELDS, PARAM_NAMES
from .params import ParameterError, ParameterStore, YamlParameterStore

__all__ = [
    "DaemonConfig",
    "AppName",
    "FilePath",
    "SyncContext",
    "ConfigSyncDaemon",
    "State",
    "ConfigRecord",
    "FIELDS",
    "PARAM_NAMES",
    "ParameterError",
    "ParameterStore",
    "YamlParameterStore",
]
