import sys
from pathlib import Path


# Ensure the package root is importable when running tests without install
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest

from wg_config_sync import DaemonConfig, ParameterError, ParameterStore, SyncContext


class FakeStore(ParameterStore):
    """In-memory store; names in fail_get/fail_register raise ParameterError."""

    def __init__(self, values=None, namespace="wireguardconfig", fail_get=(), fail_register=()):
        super().__init__(namespace)
        self.values = dict(values or {})
        self.fail_get = set(fail_get)
        self.fail_register = set(fail_register)
        self.callbacks = {}
        self.registered = []
        self.closed = False

    def get(self, name):
        simple = self.simple_name(name)
        if simple in self.fail_get or simple not in self.values:
            raise ParameterError(f"no such parameter: {name}")
        return self.values[simple]

    def register_callback(self, name, callback, context):
        if name in self.fail_register:
            raise ParameterError(f"cannot register {name}")
        self.registered.append(name)
        self.callbacks.setdefault(self.simple_name(name), []).append((callback, context))

    def fire(self, name, value):
        self.values[name] = value
        for callback, context in self.callbacks.get(name, []):
            callback(self.qualified_name(name), value, context)

    def close(self):
        self.closed = True


DEFAULT_VALUES = {
    "PrivateKey": "cHJpdmF0ZS1rZXktbWF0ZXJpYWwtZm9yLXRlc3RzIQ==",
    "ListenPort": "51820",
    "Endpoint": "vpn.example.com:51820",
    "PeerPublicKey": "cGVlci1wdWJsaWMta2V5LW1hdGVyaWFsLWZvci10ZXN0",
    "AllowedIPs": "10.0.0.0/24",
    "ClientIP": "10.0.0.5/24",
}


@pytest.fixture
def daemon_cfg(tmp_path):
    lib = tmp_path / "lib"
    lib.mkdir()
    source = lib / "start_wireguard.sh"
    source.write_text("#!/bin/sh\necho started >> \"$(dirname \"$0\")/started.log\"\n")
    source.chmod(0o644)
    return DaemonConfig(
        config_file=str(tmp_path / "config.txt"),
        script_path=str(tmp_path / "start_wireguard.sh"),
        script_source=str(source),
        params_file=str(tmp_path / "params.yml"),
        poll_interval=0.05,
    )


@pytest.fixture
def fake_store():
    return FakeStore(DEFAULT_VALUES)


@pytest.fixture
def ctx(daemon_cfg, fake_store):
    return SyncContext(config=daemon_cfg, store=fake_store)
