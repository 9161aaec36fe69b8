import logging
import os
import shutil
import subprocess
from typing import Optional

from .context import SyncContext

log = logging.getLogger(__name__)

SCRIPT_MODE = 0o755


def ensure_script_present(ctx: SyncContext) -> bool:
    """Copy the bundled startup script into place if it is missing."""
    dest = ctx.config.script_path
    if os.path.exists(dest):
        return True
    src = ctx.config.script_source
    log.info("Copying script from %s to %s", src, dest)
    try:
        shutil.copyfile(src, dest)
    except OSError as e:
        log.error("Failed to copy script %s to %s: %s", src, dest, e)
        return False
    try:
        os.chmod(dest, SCRIPT_MODE)
    except OSError as e:
        log.error("Failed to make script executable: %s", e)
        return False
    log.info("Script copied and made executable successfully")
    return True


def start(ctx: SyncContext) -> Optional[subprocess.Popen]:
    """Spawn the startup script as a detached child.

    Earlier instances are neither tracked nor stopped; the script has to cope
    with a previous copy of itself still running.
    """
    script = ctx.config.script_path
    log.info("Starting WireGuard VPN script")
    if not os.path.exists(script):
        log.info("Script not found at %s, copying from lib folder", script)
        ensure_script_present(ctx)

    try:
        proc = subprocess.Popen(
            [script],
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            close_fds=True,
            start_new_session=True,
        )
    except OSError as e:
        log.error("Failed to execute WireGuard script %s: %s", script, e)
        return None

    log.info("WireGuard script started with PID: %d", proc.pid)
    return proc
