from dataclasses import dataclass
from typing import Optional

from .config import DaemonConfig
from .params import ParameterStore


@dataclass()
class SyncContext:
    """State shared by the loop, the dispatcher, the materializer and the launcher."""

    config: DaemonConfig
    store: Optional[ParameterStore] = None

    def require_store(self) -> ParameterStore:
        if self.store is None:
            raise RuntimeError("parameter store is not open")
        return self.store
