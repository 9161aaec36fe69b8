"""Parameter store client.

The daemon only relies on the small ``ParameterStore`` surface: read a
parameter by name and register a change callback for it. ``YamlParameterStore``
backs that surface with a YAML mapping file and a watchdog observer.
"""

import logging
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import yaml  # type: ignore

log = logging.getLogger(__name__)

ChangeCallback = Callable[[str, str, Any], None]
Post = Callable[[Callable[[], None]], None]


class ParameterError(Exception):
    """Raised when a parameter cannot be read or subscribed to."""


class ParameterStore:
    def __init__(self, namespace: str) -> None:
        self.namespace = namespace

    @property
    def prefix(self) -> str:
        return f"root.{self.namespace}."

    def simple_name(self, name: str) -> str:
        if name.startswith(self.prefix):
            return name[len(self.prefix):]
        return name

    def qualified_name(self, name: str) -> str:
        return self.prefix + self.simple_name(name)

    def get(self, name: str) -> str:
        raise NotImplementedError

    def register_callback(self, name: str, callback: ChangeCallback, context: Any) -> None:
        raise NotImplementedError

    def close(self) -> None:
        pass


class YamlParameterStore(ParameterStore):
    def __init__(self, path: str, namespace: str, post: Optional[Post] = None) -> None:
        super().__init__(namespace)
        self._path = Path(path).resolve()
        self._post = post
        self._lock = threading.Lock()
        self._callbacks: Dict[str, List[Tuple[ChangeCallback, Any]]] = {}
        self._observer: Any = None
        self._values = self._load()

    @classmethod
    def open(cls, path: str, namespace: str, post: Optional[Post] = None) -> "YamlParameterStore":
        store = cls(path, namespace, post=post)
        store.start()
        return store

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> Dict[str, Optional[str]]:
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                obj = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ParameterError(f"cannot load parameters from {self._path}: {e}") from e
        if obj is None:
            obj = {}
        if not isinstance(obj, dict):
            raise ParameterError(f"invalid parameter file {self._path}: expected mapping")
        values: Dict[str, Optional[str]] = {}
        for k, v in obj.items():
            values[self.simple_name(str(k))] = None if v is None else _scalar_to_str(v)
        return values

    def get(self, name: str) -> str:
        simple = self.simple_name(name)
        with self._lock:
            if simple not in self._values:
                raise ParameterError(f"parameter {self.qualified_name(simple)} not defined")
            value = self._values[simple]
        if value is None:
            raise ParameterError(f"parameter {self.qualified_name(simple)} has no value")
        return value

    def register_callback(self, name: str, callback: ChangeCallback, context: Any) -> None:
        simple = self.simple_name(name)
        with self._lock:
            if simple not in self._values:
                raise ParameterError(f"cannot subscribe to undefined parameter {name}")
            self._callbacks.setdefault(simple, []).append((callback, context))

    def reload(self) -> None:
        """Re-read the file and fire callbacks for parameters whose value changed."""
        try:
            new_values = self._load()
        except ParameterError as e:
            log.error("Failed to reload parameters, keeping previous values: %s", e)
            return
        with self._lock:
            old_values = self._values
            self._values = new_values
            # Removed parameters count as changed
            names = list(new_values) + [k for k in old_values if k not in new_values]
            pending = [
                (k, new_values.get(k), list(self._callbacks[k])) for k in names
                if k in self._callbacks and old_values.get(k) != new_values.get(k)
            ]
        for simple, value, callbacks in pending:
            qualified = self.qualified_name(simple)
            for callback, context in callbacks:
                try:
                    callback(qualified, "" if value is None else value, context)
                except Exception:
                    log.exception("Change callback for %s failed", qualified)

    def _on_file_event(self) -> None:
        if self._post is None:
            self.reload()
        else:
            self._post(self.reload)

    def _create_file_handler(self) -> Any:  # pragma: no cover
        from watchdog.events import FileSystemEventHandler

        store = self

        class ParamFileHandler(FileSystemEventHandler):  # type: ignore[misc]
            def _matches(self, raw: Any) -> bool:
                if not raw:
                    return False
                if isinstance(raw, bytes):
                    raw = raw.decode()
                return Path(raw).resolve() == store._path

            def on_modified(self, event: Any) -> None:
                if not event.is_directory and self._matches(event.src_path):
                    store._on_file_event()

            def on_created(self, event: Any) -> None:
                self.on_modified(event)

            def on_moved(self, event: Any) -> None:
                if not event.is_directory and self._matches(getattr(event, "dest_path", None)):
                    store._on_file_event()

        return ParamFileHandler()

    def start(self) -> None:
        from watchdog.observers import Observer

        if self._observer is not None:
            return
        observer = Observer()
        observer.schedule(self._create_file_handler(), str(self._path.parent), recursive=False)
        observer.daemon = True
        observer.start()
        self._observer = observer
        log.debug("Watching %s for parameter changes", self._path)

    def close(self) -> None:
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=2.0)
            self._observer = None


def _scalar_to_str(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return str(value)
