import enum
import logging
import queue
import signal
from typing import Any, Callable, Dict, Optional

from . import dispatcher, launcher, materializer
from .config import DaemonConfig
from .context import SyncContext
from .materializer import PARAM_NAMES
from .params import ParameterError, ParameterStore, Post, YamlParameterStore

log = logging.getLogger(__name__)

Event = Callable[[], None]
StoreFactory = Callable[[Post], ParameterStore]

STOP_SIGNALS = (signal.SIGTERM, signal.SIGINT)


class State(enum.Enum):
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    TERMINATED = "terminated"


def yaml_store_factory(cfg: DaemonConfig) -> StoreFactory:
    def factory(post: Post) -> ParameterStore:
        return YamlParameterStore.open(cfg.params_file, cfg.app_name, post=post)

    return factory


class ConfigSyncDaemon:
    """Keeps the WireGuard config file in step with the parameter store.

    Store notifications are queued and handled one at a time on the thread
    that called run(). SIGTERM/SIGINT only set a flag; the loop notices it
    within poll_interval seconds.
    """

    def __init__(self, cfg: DaemonConfig, store_factory: Optional[StoreFactory] = None) -> None:
        self.ctx = SyncContext(config=cfg)
        self.state = State.STARTING
        self.events: "queue.Queue[Event]" = queue.Queue()
        self._store_factory = store_factory or yaml_store_factory(cfg)
        self._stop_requested = False
        self._prev_handlers: Dict[int, Any] = {}

    def post(self, event: Event) -> None:
        self.events.put(event)

    def request_stop(self) -> None:
        self._stop_requested = True

    def _handle_signal(self, signum, frame) -> None:
        log.info("Received signal %d, WireGuard configuration updater stopping.", signum)
        self.request_stop()

    def _install_signal_handlers(self) -> None:
        for sig in STOP_SIGNALS:
            self._prev_handlers[sig] = signal.signal(sig, self._handle_signal)

    def _restore_signal_handlers(self) -> None:
        for sig, handler in self._prev_handlers.items():
            signal.signal(sig, handler)
        self._prev_handlers = {}

    def _register_callbacks(self, store: ParameterStore) -> None:
        for name in PARAM_NAMES:
            try:
                store.register_callback(name, dispatcher.on_parameter_changed, self.ctx)
                continue
            except ParameterError as e:
                log.error("Failed to register %s callback: %s", name, e)
            full_name = self.ctx.config.qualify(name)
            try:
                store.register_callback(full_name, dispatcher.on_parameter_changed, self.ctx)
            except ParameterError:
                log.info("Fallback %s registration failed (this may be normal)", name)

    def _startup(self) -> bool:
        log.info("WireGuard config updater starting")
        try:
            self.ctx.store = self._store_factory(self.post)
        except (ParameterError, OSError) as e:
            log.error("Failed to initialize parameters: %s", e)
            return False

        launcher.ensure_script_present(self.ctx)
        materializer.materialize(self.ctx)
        launcher.start(self.ctx)
        self._register_callbacks(self.ctx.store)
        return True

    def _run_loop(self) -> None:
        timeout = self.ctx.config.poll_interval
        while not self._stop_requested:
            try:
                event = self.events.get(timeout=timeout)
            except queue.Empty:
                continue
            if self._stop_requested:
                break
            try:
                event()
            except Exception:
                log.exception("Parameter change handler failed")

    def _shutdown(self) -> None:
        if self.ctx.store is not None:
            self.ctx.store.close()
            self.ctx.store = None
        self._restore_signal_handlers()

    def run(self) -> int:
        self.state = State.STARTING
        self._install_signal_handlers()
        if not self._startup():
            self._restore_signal_handlers()
            self.state = State.TERMINATED
            return 1

        self.state = State.RUNNING
        log.info("WireGuard config updater running. Waiting for parameter changes...")
        try:
            self._run_loop()
        finally:
            self.state = State.STOPPING
            self._shutdown()
            self.state = State.TERMINATED
        return 0
