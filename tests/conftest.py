import os

import pytest

import hibernator.__main__ as main_module
import hibernator.host as host_module
import hibernator.managers.bootloader as bootloader_module
import hibernator.managers.initramfs as initramfs_module
import hibernator.managers.mountpoint as mountpoint_module
import hibernator.managers.subvolume as subvolume_module
import hibernator.managers.swapfile as swapfile_module
import hibernator.utils.mount as mount_module
from hibernator.utils.logging import logger

PHYSICAL_OFFSET = 1234567
ROOT_UUID = "0b8c1f2e-3d4a-4b5c-9d6e-7f8091a2b3c4"


class FakeHost:
  """Stands in for the system commands, keeping just enough state to make repeated runs observable."""

  def __init__(self):
    self.commands: list[str] = []
    self.subvolumes: set[str] = set()
    self.active_swaps: set[str] = set()
    self.mounted: set[str] = set()
    self.outputs: dict[str, str] = {
      "findmnt -n -o FSTYPE /": "btrfs",
      "findmnt -n -o SOURCE /": "/dev/nvme0n1p2[/@]",
      "blkid -s UUID -o value": ROOT_UUID,
    }
    self.failing: set[str] = set()
    self.offset = PHYSICAL_OFFSET

  def executed(self, prefix: str) -> list[str]:
    return [command for command in self.commands if command.startswith(prefix)]

  def fails(self, command: str) -> bool:
    return any(command.startswith(prefix) for prefix in self.failing)

  def shell(self, command: str, check: bool = True, executable: str = "/bin/sh"):
    self.commands.append(command)
    failed = self.fails(command)
    if not failed:
      self.apply(command.split())
    assert not failed or not check, f"command failed: {command}"

  def shell_output(self, command: str, check: bool = True, executable: str = "/bin/sh") -> str:
    self.commands.append(command)
    if command.startswith("swapon --show"):
      return "\n".join(["NAME TYPE SIZE USED PRIO", *(f"{path} file 16M 0B -2" for path in sorted(self.active_swaps))])
    if command.startswith("filefrag -v "):
      return self.filefrag(command.split()[-1])
    for prefix, output in self.outputs.items():
      if command.startswith(prefix):
        return output
    return ""

  def shell_success(self, command: str, executable: str = "/bin/sh") -> bool:
    self.commands.append(command)
    if command.startswith("btrfs subvolume show "):
      return os.path.basename(command.split()[-1]) in self.subvolumes
    if command.startswith("findmnt -n "):
      return command.split()[-1] in self.mounted
    return not self.fails(command)

  def apply(self, parts: list[str]):
    match parts:
      case ["btrfs", "subvolume", "create", path]:
        self.subvolumes.add(os.path.basename(path))
      case ["truncate", "-s", "0", path]:
        open(path, "wb").close()
      case ["fallocate", "-l", size, path]:
        os.truncate(path, int(size))
      case ["swapon", path]:
        self.active_swaps.add(path)
      case ["swapoff", path]:
        self.active_swaps.discard(path)
      case ["mount", path]:
        self.mounted.add(path)

  def filefrag(self, path: str) -> str:
    if not os.path.isfile(path):
      return ""
    size = os.stat(path).st_size
    blocks = size // 4096
    return "\n".join([
      "Filesystem type is: 9123683e",
      f"File size of {path} is {size} ({blocks} blocks of 4096 bytes)",
      " ext:     logical_offset:        physical_offset: length:   expected: flags:",
      f"   0:        0..{blocks - 1:>8}:  {self.offset:>9}..{self.offset + blocks - 1:>9}: {blocks:>6}:             last,eof",
      f"{path}: 1 extent found",
    ])


@pytest.fixture
def fake_host(monkeypatch):
  host = FakeHost()
  for module in [main_module, mount_module, subvolume_module, mountpoint_module, swapfile_module, bootloader_module, initramfs_module]:
    if hasattr(module, "shell"):
      monkeypatch.setattr(module, "shell", host.shell)
  for module in [host_module, swapfile_module]:
    monkeypatch.setattr(module, "shell_output", host.shell_output)
  for module in [subvolume_module, mountpoint_module]:
    monkeypatch.setattr(module, "shell_success", host.shell_success)
  monkeypatch.setattr(initramfs_module, "which", lambda name: None)
  return host


@pytest.fixture(autouse = True)
def clear_logger():
  logger.clear()
  yield
  logger.clear()
