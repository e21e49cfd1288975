"""Recipe defaults and the JSON recipe loader.

The built-in recipe describes the desktop this tool was written for: a single
NVMe disk whose first partition is the ESP holding the Artix kernels. Other
machines pass their own recipe with ``--config`` or ``EFI_RECREATE_CONFIG``.

A recipe file is a JSON object; every key is optional::

    {
        "disk": "/dev/nvme0n1",
        "partition": 1,
        "delete": [0, 1, 2, 3, 4],
        "entries": [
            {"label": "Linux", "loader": "VMLINUZ-LINUX", "parameters": "root=... rw"}
        ],
        "boot_order": [0],
        "on_error": "abort"
    }
"""
from __future__ import annotations
import json
import logging
import os
from typing import List, Optional

from efi_recreate.errors import ConfigError
from efi_recreate.models import EntrySpec, ErrorPolicy, Recipe

logger = logging.getLogger(__name__)

CONFIG_ENV = 'EFI_RECREATE_CONFIG'

DISK = '/dev/nvme0n1'
PARTITION = 1
DELETE = [0, 1, 2, 3, 4]
BOOT_ORDER = [2, 3, 0, 1, 4]

ROOT_UUID = '5b0f1c7e-2a9d-4e63-8f14-9c3e7a2d61b8'

ZEN_PARAMETERS = (
    f'root=UUID={ROOT_UUID} rw loglevel=3 '
    'initrd=\\AMD-UCODE.IMG initrd=\\INITRAMFS-LINUX-ZEN.IMG '
    'amdgpu.ppfeaturemask=0xffffffff amdgpu.dcdebugmask=0x10 '
    'video=DP-1:e video=DP-2:e video=HDMI-A-1:e '
    'drm.edid_firmware=DP-1:edid/dp1.bin,DP-2:edid/dp2.bin,HDMI-A-1:edid/hdmi1.bin'
)
ZEN_FALLBACK_PARAMETERS = ZEN_PARAMETERS.replace('INITRAMFS-LINUX-ZEN.IMG', 'INITRAMFS-LINUX-ZEN-FALLBACK.IMG')
LINUX_PARAMETERS = ZEN_PARAMETERS.replace('INITRAMFS-LINUX-ZEN.IMG', 'INITRAMFS-LINUX.IMG')
LINUX_FALLBACK_PARAMETERS = ZEN_PARAMETERS.replace('INITRAMFS-LINUX-ZEN.IMG', 'INITRAMFS-LINUX-FALLBACK.IMG')

ENTRIES = [
    EntrySpec('NVME / Artix Linux (linux-zen)', 'VMLINUZ-LINUX-ZEN', ZEN_PARAMETERS),
    EntrySpec('NVME / Artix Linux (linux-zen, fallback)', 'VMLINUZ-LINUX-ZEN', ZEN_FALLBACK_PARAMETERS),
    EntrySpec('NVME / Artix Linux (linux)', 'VMLINUZ-LINUX', LINUX_PARAMETERS),
    EntrySpec('NVME / Artix Linux (linux, fallback)', 'VMLINUZ-LINUX', LINUX_FALLBACK_PARAMETERS),
    EntrySpec('NVME / UEFI Shell', '\\EFI\\TOOLS\\SHELLX64.EFI'),
]

MAX_BOOTNUM = 0xFFFF


def default_recipe() -> Recipe:
    return Recipe(
        disk=DISK,
        partition=PARTITION,
        delete=list(DELETE),
        entries=[EntrySpec(e.label, e.loader, e.parameters) for e in ENTRIES],
        boot_order=list(BOOT_ORDER),
    )


def _as_index(value, key: str) -> int:
    if isinstance(value, str):
        # bootnums are hex in efibootmgr's own output ("Boot000A")
        try:
            value = int(value, 16)
        except ValueError:
            raise ConfigError(f'{key}: {value!r} is not a boot number')
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f'{key}: {value!r} is not a boot number')
    return value


def _as_list(value, key: str) -> list:
    if not isinstance(value, list):
        raise ConfigError(f'{key}: expected a list')
    return value


def _as_policy(value) -> ErrorPolicy:
    try:
        return ErrorPolicy(value)
    except ValueError:
        choices = ', '.join(p.value for p in ErrorPolicy)
        raise ConfigError(f'on_error: {value!r} is not one of {choices}')


def _parse_entries(raw) -> List[EntrySpec]:
    if not isinstance(raw, list):
        raise ConfigError('entries: expected a list')
    entries = []
    for i, item in enumerate(raw):
        if not isinstance(item, dict):
            raise ConfigError(f'entries[{i}]: expected an object')
        unknown = set(item) - {'label', 'loader', 'parameters'}
        if unknown:
            raise ConfigError(f'entries[{i}]: unknown keys {", ".join(sorted(unknown))}')
        try:
            entries.append(EntrySpec(item['label'], item['loader'], item.get('parameters')))
        except KeyError as e:
            raise ConfigError(f'entries[{i}]: missing {e.args[0]!r}')
    return entries


def recipe_from_dict(data: dict) -> Recipe:
    if not isinstance(data, dict):
        raise ConfigError('recipe must be a JSON object')
    unknown = set(data) - {'disk', 'partition', 'delete', 'entries', 'boot_order', 'on_error'}
    if unknown:
        raise ConfigError(f'unknown keys {", ".join(sorted(unknown))}')
    recipe = default_recipe()
    if 'disk' in data:
        recipe.disk = data['disk']
    if 'partition' in data:
        partition = data['partition']
        if isinstance(partition, bool) or not isinstance(partition, int):
            raise ConfigError(f'partition: {partition!r} is not a partition number')
        recipe.partition = partition
    if 'delete' in data:
        recipe.delete = [_as_index(v, 'delete') for v in _as_list(data['delete'], 'delete')]
    if 'entries' in data:
        recipe.entries = _parse_entries(data['entries'])
    if 'boot_order' in data:
        order = data['boot_order']
        if isinstance(order, str):
            order = [p for p in order.split(',') if p]
        recipe.boot_order = [_as_index(v, 'boot_order') for v in _as_list(order, 'boot_order')]
    if 'on_error' in data:
        recipe.on_error = _as_policy(data['on_error'])
    validate_recipe(recipe)
    return recipe


def validate_recipe(recipe: Recipe) -> None:
    if not isinstance(recipe.disk, str) or not recipe.disk:
        raise ConfigError('disk: expected a device path')
    if recipe.partition < 1:
        raise ConfigError(f'partition: {recipe.partition} is not a partition number')
    for key, values in (('delete', recipe.delete), ('boot_order', recipe.boot_order)):
        for n in values:
            if not 0 <= n <= MAX_BOOTNUM:
                raise ConfigError(f'{key}: {n} is outside 0..{MAX_BOOTNUM:#x}')
    labels = set()
    for i, e in enumerate(recipe.entries):
        if not isinstance(e.label, str) or not e.label:
            raise ConfigError(f'entries[{i}]: empty label')
        if not isinstance(e.loader, str) or not e.loader:
            raise ConfigError(f'entries[{i}]: empty loader')
        if e.parameters is not None and not isinstance(e.parameters, str):
            raise ConfigError(f'entries[{i}]: parameters must be a string')
        if e.label in labels:
            raise ConfigError(f'entries[{i}]: duplicate label {e.label!r}')
        labels.add(e.label)
    if not recipe.boot_order:
        raise ConfigError('boot_order: empty')
    if len(set(recipe.boot_order)) != len(recipe.boot_order):
        raise ConfigError(f'boot_order: duplicate index in {recipe.boot_order_arg}')
    # efibootmgr hands new entries the lowest free bootnums
    deleted = sorted(set(recipe.delete))
    recreated = set(deleted[:len(recipe.entries)])
    for n in recipe.boot_order:
        if n in deleted and n not in recreated:
            raise ConfigError(f'boot_order: {n:X} is deleted and never recreated')


def load_recipe(path: str) -> Recipe:
    try:
        with open(path, encoding='utf-8') as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigError(f'{path}: {e.strerror or e}')
    except json.JSONDecodeError as e:
        raise ConfigError(f'{path}: invalid JSON: {e}')
    except UnicodeDecodeError as e:
        raise ConfigError(f'{path}: not UTF-8: {e}')
    try:
        return recipe_from_dict(data)
    except ConfigError as e:
        raise ConfigError(f'{path}: {e}')


def resolve_recipe(path: Optional[str] = None, on_error: Optional[str] = None) -> Recipe:
    """Pick the recipe from ``path``, then ``$EFI_RECREATE_CONFIG``, then the built-in one."""
    path = path or os.environ.get(CONFIG_ENV)
    if path:
        logger.debug('Loading recipe from %s', path)
        recipe = load_recipe(path)
    else:
        recipe = default_recipe()
    if on_error:
        recipe.on_error = _as_policy(on_error)
    return recipe
