from __future__ import annotations
import logging
import re
import subprocess
from typing import Callable, List, Optional

from .common import run, which
from efi_recreate.errors import DumpError, ToolUnavailableError
from efi_recreate.models import BootEntry, EntrySpec, Step, StepKind

logger = logging.getLogger(__name__)

BINARY = 'efibootmgr'

Runner = Callable[[List[str]], subprocess.CompletedProcess]


def bootnum(n: int) -> str:
    return format(n, 'X')


class Efibootmgr:
    """Argument vectors for, and execution of, the efibootmgr utility."""

    def __init__(self, runner: Runner = run, path: Optional[str] = None) -> None:
        self.runner = runner
        self.path = path or which(BINARY)

    def available(self) -> bool:
        return self.path is not None

    def use_bare_name(self) -> None:
        # for printing commands when efibootmgr is not installed here
        if self.path is None:
            self.path = BINARY

    @property
    def command(self) -> str:
        if self.path is None:
            raise ToolUnavailableError('efibootmgr not found; install it or add it to PATH')
        return self.path

    def dump_argv(self) -> List[str]:
        return [self.command, '--unicode']

    def delete_argv(self, index: int) -> List[str]:
        return [self.command, '--bootnum', bootnum(index), '--delete-bootnum']

    def create_argv(self, disk: str, partition: int, spec: EntrySpec) -> List[str]:
        argv = [
            self.command,
            '--create',
            '--disk', disk,
            '--part', str(partition),
            '--label', spec.label,
            '--loader', spec.loader,
        ]
        if spec.parameters:
            argv += ['--unicode', spec.parameters]
        return argv

    def order_argv(self, order: List[int]) -> List[str]:
        return [self.command, '--bootorder', ','.join(bootnum(n) for n in order)]

    def execute(self, argv: List[str]) -> subprocess.CompletedProcess:
        # exit status is left to the caller
        return self.runner(argv)

    def dump(self) -> str:
        argv = self.dump_argv()
        cp = self.execute(argv)
        if cp.returncode != 0:
            raise DumpError(Step(StepKind.DUMP, 'current boot entries', argv, passthrough=True), cp.returncode, cp.stderr)
        return cp.stdout or ''

    def list_entries(self, text: Optional[str] = None) -> List[BootEntry]:
        if text is None:
            text = self.dump()
        current = re.search(r"BootCurrent:\s*(\w+)", text)
        next_ = re.search(r"BootNext:\s*(\w+)", text)
        cur = current.group(1) if current else None
        nxt = next_.group(1) if next_ else None
        entries: List[BootEntry] = []
        for m in re.finditer(r"^Boot([0-9A-Fa-f]{4})\*?\s+(.+)$", text, re.MULTILINE):
            bid, desc = m.group(1).upper(), m.group(2).strip()
            # -v and --unicode listings append the device path after a tab
            desc = desc.split('\t', 1)[0].strip()
            entries.append(BootEntry(id=bid, description=desc, is_current=(bid == cur), is_next=(bid == nxt), extra=m.group(0)))
        return entries
