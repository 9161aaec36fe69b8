import os
import signal
import threading
import time

from wg_config_sync import ConfigSyncDaemon, ParameterError, State
from wg_config_sync import daemon as daemon_mod

from conftest import DEFAULT_VALUES, FakeStore


def make_daemon(daemon_cfg, store, monkeypatch):
    starts = []
    monkeypatch.setattr(daemon_mod.launcher, "start", lambda ctx: starts.append(ctx))
    d = ConfigSyncDaemon(daemon_cfg, store_factory=lambda post: store)
    return d, starts


def send_sigterm():
    os.kill(os.getpid(), signal.SIGTERM)


def config_lines(cfg):
    with open(cfg.config_file, encoding="utf-8") as f:
        return f.read().splitlines()


def test_signal_while_idle_exits_cleanly(daemon_cfg, monkeypatch):
    store = FakeStore(DEFAULT_VALUES)
    d, starts = make_daemon(daemon_cfg, store, monkeypatch)
    materialized = []
    real = daemon_mod.materializer.materialize
    monkeypatch.setattr(daemon_mod.materializer, "materialize", lambda ctx: materialized.append(1) or real(ctx))

    previous = signal.getsignal(signal.SIGTERM)
    d.post(send_sigterm)
    # Must not run once the stop flag is set
    d.post(lambda: store.fire("ListenPort", "1"))
    rc = d.run()

    assert rc == 0
    assert d.state is State.TERMINATED
    assert materialized == [1]
    assert len(starts) == 1
    assert store.closed is True
    assert signal.getsignal(signal.SIGTERM) == previous


def test_startup_provisions_script_and_registers_all(daemon_cfg, monkeypatch):
    store = FakeStore(DEFAULT_VALUES)
    d, starts = make_daemon(daemon_cfg, store, monkeypatch)
    d.post(send_sigterm)
    assert d.run() == 0
    assert os.path.exists(daemon_cfg.script_path)
    assert len(config_lines(daemon_cfg)) == 6
    assert store.registered == list(daemon_mod.PARAM_NAMES)
    assert len(starts) == 1


def test_listen_port_change_rewrites_and_restarts(daemon_cfg, monkeypatch):
    store = FakeStore(DEFAULT_VALUES)
    d, starts = make_daemon(daemon_cfg, store, monkeypatch)
    d.post(lambda: store.fire("ListenPort", "51821"))
    d.post(send_sigterm)
    assert d.run() == 0
    assert "listen_port=51821" in config_lines(daemon_cfg)
    assert len(starts) == 2


def test_registration_falls_back_to_qualified_name(daemon_cfg, monkeypatch):
    store = FakeStore(DEFAULT_VALUES, fail_register=["AllowedIPs"])
    d, starts = make_daemon(daemon_cfg, store, monkeypatch)
    d.post(lambda: store.fire("AllowedIPs", "192.168.0.0/16"))
    d.post(send_sigterm)
    assert d.run() == 0
    assert "root.wireguardconfig.AllowedIPs" in store.registered
    assert "allowed_ips=192.168.0.0/16" in config_lines(daemon_cfg)
    assert len(starts) == 2


def test_all_registrations_failing_is_not_fatal(daemon_cfg, monkeypatch, caplog):
    names = list(daemon_mod.PARAM_NAMES)
    store = FakeStore(DEFAULT_VALUES, fail_register=names + [f"root.wireguardconfig.{n}" for n in names])
    d, _ = make_daemon(daemon_cfg, store, monkeypatch)
    seen = []
    d.post(lambda: seen.append(d.state))
    d.post(send_sigterm)
    with caplog.at_level("INFO", logger="wg_config_sync"):
        assert d.run() == 0
    assert seen == [State.RUNNING]
    assert store.registered == []
    assert "Fallback ClientIP registration failed" in caplog.text


def test_store_init_failure_is_fatal(daemon_cfg, monkeypatch):
    starts = []
    monkeypatch.setattr(daemon_mod.launcher, "start", lambda ctx: starts.append(ctx))

    def broken(post):
        raise ParameterError("store unavailable")

    d = ConfigSyncDaemon(daemon_cfg, store_factory=broken)
    assert d.run() == 1
    assert d.state is State.TERMINATED
    assert starts == []
    assert not os.path.exists(daemon_cfg.config_file)


def test_failing_event_does_not_stop_loop(daemon_cfg, monkeypatch):
    store = FakeStore(DEFAULT_VALUES)
    d, _ = make_daemon(daemon_cfg, store, monkeypatch)
    ran = []

    def boom():
        raise RuntimeError("handler bug")

    d.post(boom)
    d.post(lambda: ran.append(True))
    d.post(send_sigterm)
    assert d.run() == 0
    assert ran == [True]


def replace_params(path, text):
    tmp = path + ".tmp"
    with open(tmp, "w", encoding="utf-8") as f:
        f.write(text)
    os.replace(tmp, path)


def wait_for(predicate, timeout=10.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.05)
    return False


def test_params_file_edit_reaches_running_daemon(daemon_cfg, monkeypatch):
    replace_params(daemon_cfg.params_file, "ListenPort: 51820\nEndpoint: vpn.example.com:51820\n")
    starts = []
    monkeypatch.setattr(daemon_mod.launcher, "start", lambda ctx: starts.append(1))
    d = ConfigSyncDaemon(daemon_cfg)
    stores = []
    outcome = {}

    def edit_then_stop():
        try:
            outcome["running"] = wait_for(lambda: d.state is State.RUNNING)
            stores.append(d.ctx.store)
            replace_params(daemon_cfg.params_file, "ListenPort: 51821\nEndpoint: vpn.example.com:51820\n")
            outcome["rewritten"] = wait_for(
                lambda: "listen_port=51821" in config_lines(daemon_cfg) and len(starts) == 2
            )
        finally:
            os.kill(os.getpid(), signal.SIGTERM)

    helper = threading.Thread(target=edit_then_stop, daemon=True)
    helper.start()
    rc = d.run()
    helper.join(timeout=10)

    assert rc == 0
    assert outcome == {"running": True, "rewritten": True}
    assert "listen_port=51821" in config_lines(daemon_cfg)
    assert starts == [1, 1]
    assert stores[0]._observer is None
    assert d.ctx.store is None
