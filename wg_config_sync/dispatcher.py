import logging

from . import launcher, materializer
from .context import SyncContext

log = logging.getLogger(__name__)

REDACTED = "(sensitive value)"
SENSITIVE_MARKERS = ("PrivateKey", "PeerPublicKey")


def is_sensitive(simple_name: str) -> bool:
    return any(marker in simple_name for marker in SENSITIVE_MARKERS)


def on_parameter_changed(qualified_name: str, new_value: str, ctx: SyncContext) -> None:
    simple_name = ctx.config.simple_name(qualified_name)
    shown = REDACTED if is_sensitive(simple_name) else new_value
    log.info("Parameter changed: %s = %s", simple_name, shown)

    # Any change rewrites the whole file and restarts the script
    materializer.materialize(ctx)
    launcher.start(ctx)
