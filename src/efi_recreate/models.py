from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from efi_recreate.errors import BootEntryNotFoundError, StepError


@dataclass
class BootEntry:
    id: str  # '0000' style bootnum as printed by efibootmgr
    description: str
    is_current: bool = False
    is_next: bool = False
    extra: Optional[str] = None  # raw listing line

    @property
    def number(self) -> int:
        return int(self.id, 16)


@dataclass
class EntrySpec:
    label: str
    loader: str
    parameters: Optional[str] = None  # passed to the loader via --unicode


class ErrorPolicy(str, Enum):
    ABORT = 'abort'
    CONTINUE = 'continue'


@dataclass
class Recipe:
    """Everything needed to recreate the boot entries of one machine."""
    disk: str
    partition: int
    delete: List[int]
    entries: List[EntrySpec]
    boot_order: List[int]
    on_error: ErrorPolicy = ErrorPolicy.ABORT

    @property
    def boot_order_arg(self) -> str:
        return ','.join(format(n, 'X') for n in self.boot_order)


class StepKind(str, Enum):
    DUMP = 'dump'
    DELETE = 'delete'
    CREATE = 'create'
    ORDER = 'order'


@dataclass
class Step:
    kind: StepKind
    description: str
    argv: List[str]
    passthrough: bool = False  # stdout goes to the operator unmodified
    bootnum: Optional[int] = None

    @property
    def mutating(self) -> bool:
        return self.kind is not StepKind.DUMP


@dataclass
class StepResult:
    step: Step
    returncode: Optional[int] = None  # None when the step was not executed
    stdout: str = ''
    error: Optional[StepError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def executed(self) -> bool:
        return self.returncode is not None


@dataclass
class RunReport:
    results: List[StepResult] = field(default_factory=list)
    aborted: bool = False

    @property
    def failures(self) -> List[StepResult]:
        return [r for r in self.results if not r.ok]

    @property
    def ok(self) -> bool:
        # missing entries at delete time leave NVRAM in the wanted state
        return not self.aborted and all(
            isinstance(r.error, BootEntryNotFoundError) for r in self.failures
        )

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1
