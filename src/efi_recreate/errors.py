"""
Exceptions shared by the recipe loader, the efibootmgr wrapper and the
recreator. Step errors are not raised out of a run; the recreator stores
them in the matching :class:`StepResult` and the caller decides what to do.
"""


class RecreateError(Exception):
    """Base class for every error this tool reports."""


class ConfigError(RecreateError):
    """The recipe could not be read or does not describe a valid run."""


class ToolUnavailableError(RecreateError):
    """efibootmgr is not installed or not on PATH."""


class StepError(RecreateError):
    """An efibootmgr invocation exited with a non-zero status."""

    action = 'run efibootmgr'

    def __init__(self, step, returncode, message=''):
        self.step = step
        self.returncode = returncode
        self.message = (message or '').strip()
        super().__init__(str(self))

    def __str__(self):
        text = f'Failed to {self.action}: {self.step.description} (exit status {self.returncode})'
        if self.message:
            text += f': {self.message}'
        return text

    def __repr__(self):
        return '%s(%r, %r, %r)' % (self.__class__.__name__, self.step.description, self.returncode, self.message)


class DumpError(StepError):
    action = 'list boot entries'


class DeleteEntryError(StepError):
    action = 'delete boot entry'


class BootEntryNotFoundError(DeleteEntryError):
    """The deleted bootnum was not present in the initial listing."""

    action = 'delete missing boot entry'


class CreateEntryError(StepError):
    action = 'create boot entry'


class BootOrderError(StepError):
    action = 'set boot order'
