import platform
import shutil
import subprocess
import os
import sys
import logging
from typing import List

logger = logging.getLogger(__name__)


def is_admin() -> bool:
    try:
        return os.geteuid() == 0
    except AttributeError:
        return False


def which(cmd: str) -> str | None:
    return shutil.which(cmd)


def run(cmd: List[str], check: bool = False, env: dict | None = None) -> subprocess.CompletedProcess:
    """Run a command and capture its output as text."""
    logger.debug('Running %s', ' '.join(cmd))
    return subprocess.run(cmd, capture_output=True, text=True, check=check, env=env)


def current_platform() -> str:
    return platform.system()


def elevate_if_needed(want_gui: bool = True) -> bool:
    """Ensure the process runs as root.

    Returns True if a privileged re-launch was initiated and current process should exit.
    Returns False if already root or elevation could not be initiated.
    """
    if is_admin():
        return False

    exe = sys.executable or sys.argv[0]

    # Relaunch through our entry module, keeping the original CLI args.
    if getattr(sys, 'frozen', False):
        relaunch_args = sys.argv[1:]
    else:
        relaunch_args = ['-m', 'efi_recreate.main', *sys.argv[1:]]

    # pkexec gives a GUI prompt; sudo only makes sense from a terminal.
    pk = which('pkexec')
    if pk and want_gui:
        env_args = []
        for key in ('DISPLAY', 'XAUTHORITY', 'WAYLAND_DISPLAY', 'XDG_RUNTIME_DIR'):
            val = os.environ.get(key)
            if val:
                env_args += [f'{key}={val}']
        cmd = [pk, 'env', *env_args, exe, *relaunch_args]
        try:
            subprocess.Popen(cmd)
            return True
        except OSError as e:
            logger.warning('Could not start pkexec: %s', e)

    sudo = which('sudo')
    if sudo and not want_gui:
        try:
            os.execvp(sudo, [sudo, exe, *relaunch_args])
        except OSError as e:
            logger.warning('Could not start sudo: %s', e)
    return False
