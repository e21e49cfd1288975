"""Recreate the boot entries of a recipe, one efibootmgr invocation at a time.

Every step after the first dump writes to firmware NVRAM and none of them
can be rolled back. Steps run strictly in order: dump, delete, create,
boot order, dump.
"""
from __future__ import annotations
import logging
import shlex
from typing import Callable, List, Optional, Set

from efi_recreate.errors import (
    BootEntryNotFoundError, BootOrderError, CreateEntryError, DeleteEntryError, DumpError, StepError,
)
from efi_recreate.models import ErrorPolicy, Recipe, RunReport, Step, StepKind, StepResult
from efi_recreate.platforms.efibootmgr import Efibootmgr

logger = logging.getLogger(__name__)

_ERRORS = {
    StepKind.DUMP: DumpError,
    StepKind.DELETE: DeleteEntryError,
    StepKind.CREATE: CreateEntryError,
    StepKind.ORDER: BootOrderError,
}

_VERBS = {
    StepKind.DUMP: 'Listing',
    StepKind.DELETE: 'Deleting',
    StepKind.CREATE: 'Creating',
    StepKind.ORDER: 'Setting boot order',
}


def build_steps(recipe: Recipe, tool: Efibootmgr) -> List[Step]:
    steps = [Step(StepKind.DUMP, 'current boot entries', tool.dump_argv(), passthrough=True)]
    for n in recipe.delete:
        steps.append(Step(StepKind.DELETE, f'Boot{n:04X}', tool.delete_argv(n), bootnum=n))
    for spec in recipe.entries:
        steps.append(Step(StepKind.CREATE, repr(spec.label), tool.create_argv(recipe.disk, recipe.partition, spec)))
    steps.append(Step(StepKind.ORDER, recipe.boot_order_arg, tool.order_argv(recipe.boot_order)))
    steps.append(Step(StepKind.DUMP, 'resulting boot entries', tool.dump_argv(), passthrough=True))
    return steps


def format_command(step: Step) -> str:
    return shlex.join(step.argv)


class Recreator:
    def __init__(
        self,
        tool: Efibootmgr,
        policy: ErrorPolicy = ErrorPolicy.ABORT,
        on_output: Optional[Callable[[str], None]] = None,
        on_command: Optional[Callable[[str], None]] = None,
        dry_run: bool = False,
    ) -> None:
        self.tool = tool
        self.policy = policy
        self.on_output = on_output
        self.on_command = on_command
        self.dry_run = dry_run

    def run(self, recipe: Recipe) -> RunReport:
        report = RunReport()
        listed: Optional[Set[int]] = None
        for step in build_steps(recipe, self.tool):
            if report.aborted and step.mutating:
                report.results.append(StepResult(step))
                continue
            if self.dry_run:
                if self.on_command:
                    self.on_command(format_command(step))
                report.results.append(StepResult(step))
                continue

            result = self._execute(step, listed)
            report.results.append(result)

            if step.kind is StepKind.DUMP and listed is None and result.ok:
                listed = {e.number for e in self.tool.list_entries(result.stdout)}

            if result.ok:
                continue
            if isinstance(result.error, BootEntryNotFoundError):
                logger.warning('%s; nothing to delete', result.error)
                continue
            logger.error('%s', result.error)
            if self.policy is ErrorPolicy.ABORT and not report.aborted:
                logger.error('Skipping the remaining changes; NVRAM may be partially modified.')
                report.aborted = True
        return report

    def _execute(self, step: Step, listed: Optional[Set[int]]) -> StepResult:
        logger.info('%s %s', _VERBS[step.kind], step.description)
        cp = self.tool.execute(step.argv)
        stdout = cp.stdout or ''
        if step.passthrough and self.on_output:
            self.on_output(stdout)
        if cp.returncode == 0:
            return StepResult(step, cp.returncode, stdout if step.passthrough else '')
        error_cls = _ERRORS[step.kind]
        if step.kind is StepKind.DELETE and listed is not None and step.bootnum not in listed:
            error_cls = BootEntryNotFoundError
        error: StepError = error_cls(step, cp.returncode, cp.stderr)
        return StepResult(step, cp.returncode, stdout if step.passthrough else '', error)


def run_recipe(recipe: Recipe, tool: Efibootmgr, **kwargs) -> RunReport:
    kwargs.setdefault('policy', recipe.on_error)
    return Recreator(tool, **kwargs).run(recipe)
