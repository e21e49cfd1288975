from __future__ import annotations
import argparse
import json
import logging
import sys
from typing import List

from .config import CONFIG_ENV, resolve_recipe
from .errors import ConfigError, DumpError, RecreateError
from .models import BootEntry, ErrorPolicy
from .platforms.common import current_platform, elevate_if_needed, is_admin
from .platforms.efibootmgr import Efibootmgr
from .recreator import run_recipe

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_ENVIRONMENT = 2
EXIT_INTERRUPTED = 130


def get_tool() -> Efibootmgr:
    return Efibootmgr()


def format_entries(entries: List[BootEntry], output: str) -> str:
    if output == 'json':
        return json.dumps([
            {
                'id': e.id,
                'description': e.description,
                'is_current': e.is_current,
                'is_next': e.is_next,
            } for e in entries
        ], ensure_ascii=False, indent=2)
    # default: table-like text
    lines = ["ID\tCURRENT\tNEXT\tDESCRIPTION"]
    for e in entries:
        lines.append(f"{e.id}\t{int(e.is_current)}\t{int(e.is_next)}\t{e.description}")
    return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog='efi-recreate', description='Delete and recreate the UEFI boot entries of this machine')
    sub = p.add_subparsers(dest='cmd', required=False)

    p.add_argument('--gui', action='store_true', help='Open the graphical front-end')
    p.add_argument('-c', '--config', metavar='PATH', help=f'JSON recipe (default: ${CONFIG_ENV} or the built-in recipe)')
    p.add_argument('--on-error', choices=[e.value for e in ErrorPolicy],
                   help='Stop changing NVRAM after the first failure, or attempt every step anyway')
    p.add_argument('-n', '--dry-run', action='store_true', help='Print the efibootmgr commands instead of running them')
    p.add_argument('-v', '--verbose', action='store_true', help='Log debug messages')
    p.add_argument('--log-file', metavar='PATH', help='Append a debug log to PATH')

    sub.add_parser('apply', help='Recreate the boot entries (default)')

    list_p = sub.add_parser('list', help='List current boot entries')
    list_p.add_argument('-o', '--output', choices=['text', 'json'], default='text')

    sub.add_parser('plan', help='Print the efibootmgr commands apply would run')

    return p


def _write(text: str) -> None:
    sys.stdout.write(text)
    sys.stdout.flush()


def list_entries(tool: Efibootmgr, output: str) -> int:
    if not tool.available():
        logger.error('efibootmgr not found. Install it or add it to PATH.')
        return EXIT_ENVIRONMENT
    try:
        entries = tool.list_entries()
    except DumpError as e:
        logger.error('%s', e)
        return EXIT_FAILED
    print(format_entries(entries, output))
    return EXIT_OK


def run_cli(args: argparse.Namespace) -> int:
    if current_platform() != 'Linux':
        logger.error('UEFI boot entries can only be managed on Linux.')
        return EXIT_ENVIRONMENT
    tool = get_tool()
    if args.cmd == 'list':
        return list_entries(tool, getattr(args, 'output', 'text'))

    try:
        recipe = resolve_recipe(args.config, args.on_error)
    except ConfigError as e:
        logger.error('Invalid recipe: %s', e)
        return EXIT_ENVIRONMENT

    dry_run = args.dry_run or args.cmd == 'plan'
    if not tool.available():
        if not dry_run:
            logger.error('efibootmgr not found. Install it or add it to PATH.')
            return EXIT_ENVIRONMENT
        tool.use_bare_name()

    if not dry_run and not is_admin():
        if elevate_if_needed(want_gui=False):
            return EXIT_OK
        logger.error('Changing boot entries needs root. Run again with sudo.')
        return EXIT_ENVIRONMENT

    logger.debug('Error policy: %s', recipe.on_error.value)
    try:
        report = run_recipe(recipe, tool, on_output=_write, on_command=print, dry_run=dry_run)
    except KeyboardInterrupt:
        logger.error('Interrupted. Boot entries may be partially deleted or created; check efibootmgr output.')
        return EXIT_INTERRUPTED
    except RecreateError as e:
        logger.error('%s', e)
        return EXIT_ENVIRONMENT

    if dry_run:
        return EXIT_OK
    if report.aborted:
        logger.error('Aborted after the first failure. Rerun with --on-error continue to attempt every step.')
    elif not report.ok:
        logger.error('%d step(s) failed.', len(report.failures))
    else:
        logger.info('Boot entries recreated.')
    return report.exit_code

