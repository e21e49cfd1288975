import logging
import subprocess

import pytest

from efi_recreate import cli
from efi_recreate.logger import LOGGER_NAME
from efi_recreate.config import CONFIG_ENV
from efi_recreate.platforms.efibootmgr import Efibootmgr


LISTING_BEFORE = """BootCurrent: 0002
Timeout: 1 seconds
BootOrder: 0002,0003,0000,0001,0004
Boot0000* NVME / Artix Linux (linux-zen)\tHD(1,GPT,0b1f3c0e-6c2d-4f4b-a2d1-7b8e9f0a1c2d,0x800,0x100000)/File(VMLINUZ-LINUX-ZEN)
Boot0001* NVME / Artix Linux (linux-zen, fallback)\tHD(1,GPT,0b1f3c0e-6c2d-4f4b-a2d1-7b8e9f0a1c2d,0x800,0x100000)/File(VMLINUZ-LINUX-ZEN)
Boot0002* NVME / Artix Linux (linux)\tHD(1,GPT,0b1f3c0e-6c2d-4f4b-a2d1-7b8e9f0a1c2d,0x800,0x100000)/File(VMLINUZ-LINUX)
Boot0003* NVME / Artix Linux (linux, fallback)\tHD(1,GPT,0b1f3c0e-6c2d-4f4b-a2d1-7b8e9f0a1c2d,0x800,0x100000)/File(VMLINUZ-LINUX)
Boot0004* NVME / UEFI Shell\tHD(1,GPT,0b1f3c0e-6c2d-4f4b-a2d1-7b8e9f0a1c2d,0x800,0x100000)/File(\\EFI\\TOOLS\\SHELLX64.EFI)
"""

LISTING_AFTER = LISTING_BEFORE.replace("Timeout: 1 seconds", "Timeout: 1 seconds\nBootNext: 0000")

# Firmware that never had any of our entries.
LISTING_FRESH = """BootCurrent: 0007
Timeout: 0 seconds
BootOrder: 0007
Boot0007* UEFI OS\tHD(1,GPT,0b1f3c0e-6c2d-4f4b-a2d1-7b8e9f0a1c2d,0x800,0x100000)/File(\\EFI\\BOOT\\BOOTX64.EFI)
"""

MUTATION_STDOUT = "BootCurrent: 0002\nstdout of a mutating call\n"
DUMP_STDERR = "EFI variables are not supported on this system.\n"


class FakeEfibootmgr:
    """Stand-in for the efibootmgr binary.

    Records every argument vector. Listings are returned in order, the last
    one repeating. ``fail`` maps a fragment of the space-joined arguments to
    the exit status of the matching calls.
    """

    def __init__(self, listings=(LISTING_BEFORE, LISTING_AFTER), fail=None, dump_returncode=0):
        self.listings = list(listings)
        self.fail = fail or {}
        self.dump_returncode = dump_returncode
        self.calls = []

    def __call__(self, argv):
        self.calls.append(list(argv))
        args = argv[1:]
        if args == ["--unicode"]:
            text = self.listings.pop(0) if len(self.listings) > 1 else self.listings[0]
            stderr = DUMP_STDERR if self.dump_returncode else ""
            return subprocess.CompletedProcess(argv, self.dump_returncode, text, stderr)
        joined = " ".join(args)
        for fragment, returncode in self.fail.items():
            if fragment in joined:
                return subprocess.CompletedProcess(argv, returncode, "", "efibootmgr: could not write variable\n")
        return subprocess.CompletedProcess(argv, 0, MUTATION_STDOUT, "")

    @property
    def kinds(self):
        kinds = []
        for argv in self.calls:
            flag = argv[1]
            kinds.append({"--unicode": "dump", "--bootnum": "delete", "--create": "create", "--bootorder": "order"}[flag])
        return kinds


@pytest.fixture
def fake_runner():
    return FakeEfibootmgr()


@pytest.fixture
def make_tool():
    def factory(runner):
        return Efibootmgr(runner=runner, path="efibootmgr")

    return factory


@pytest.fixture
def tool(fake_runner, make_tool):
    return make_tool(fake_runner)


@pytest.fixture(autouse=True)
def no_recipe_env(monkeypatch):
    monkeypatch.delenv(CONFIG_ENV, raising=False)


@pytest.fixture
def cli_env(monkeypatch, make_tool):
    """Run the CLI as root on Linux against a fake efibootmgr; swap state["runner"] to change its behavior."""
    state = {"runner": FakeEfibootmgr()}
    monkeypatch.setattr(cli, "current_platform", lambda: "Linux")
    monkeypatch.setattr(cli, "is_admin", lambda: True)
    monkeypatch.setattr(cli, "elevate_if_needed", lambda want_gui=False: False)
    monkeypatch.setattr(cli, "get_tool", lambda: make_tool(state["runner"]))
    return state


@pytest.fixture(autouse=True)
def reset_logger():
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
