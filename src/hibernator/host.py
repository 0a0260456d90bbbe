from __future__ import annotations

import os
from abc import ABCMeta, abstractmethod
from os import getuid
from re import MULTILINE, search

from hibernator.utils.logging import logger
from hibernator.utils.shell import shell_output


class PreconditionError(AssertionError):
  """The host does not meet the requirements for setting up hibernation."""
  pass


def assert_privileged():
  if getuid() != 0:
    raise PreconditionError("this program must be run as root (or through sudo)")


def assert_btrfs_root():
  fstype = shell_output("findmnt -n -o FSTYPE /", check = False)
  if fstype != "btrfs":
    raise PreconditionError(f"this program is designed for btrfs filesystems (detected filesystem: {fstype or 'unknown'})")


def mem_total_kib(meminfo: str = "/proc/meminfo") -> int:
  with open(meminfo, encoding = "utf-8") as fh:
    matched = search(r"^MemTotal:\s+(\d+)\s+kB", fh.read(), MULTILINE)
  assert matched is not None, f"MemTotal not found in {meminfo}"
  return int(matched.group(1))


def default_swap_size(meminfo: str = "/proc/meminfo") -> str:
  """RAM size in GiB (rounded down) plus 2 GiB of headroom, e.g. "18G" for 16 GiB of RAM."""
  ram_gib = mem_total_kib(meminfo) // 1024 // 1024
  return f"{ram_gib + 2}G"


def resume_offset(swapfile: str) -> int | None:
  """Physical offset of the first extent of the file, as needed for the resume_offset kernel parameter."""
  output = shell_output(f"filefrag -v {swapfile}", check = False)
  matched = search(r"^\s*0:\s*\d+\.\.\s*\d+:\s*(\d+)\.\.", output, MULTILINE)
  return int(matched.group(1)) if matched else None


def device_uuid(device: str) -> str:
  return shell_output(f"blkid -s UUID -o value {device}", check = False)


def device_exists(path: str) -> bool:
  return os.path.exists(path)


class RootSource(metaclass = ABCMeta):
  """The mount source of the root filesystem, classified by its shape."""
  source: str

  def __init__(self, source: str):
    self.source = source

  @abstractmethod
  def resolve(self) -> str | None:
    """Returns the device path to use for mounting the top-level subvolume and for resume=."""
    pass

  def __str__(self):
    return f"{self.__class__.__name__}('{self.source}')"

  @staticmethod
  def classify(source: str) -> RootSource:
    # findmnt appends the btrfs subvolume in brackets, e.g. /dev/nvme0n1p2[/@]
    source = source.split("[", 1)[0]
    if source.startswith("/dev/mapper/luks-"):
      return LuksSource(source)
    if source.startswith("/dev/mapper/"):
      return DeviceMapperSource(source)
    if os.path.islink(source):
      return SymlinkSource(source)
    return BlockDeviceSource(source)


class LuksSource(RootSource):
  def resolve(self) -> str | None:
    return self.source


class DeviceMapperSource(RootSource):
  """LVM and other device-mapper targets."""

  def resolve(self) -> str | None:
    return self.source


class SymlinkSource(RootSource):
  def resolve(self) -> str | None:
    resolved = os.path.realpath(self.source)
    if resolved.startswith("/dev/dm-"):
      output = shell_output(f"dmsetup info -c --noheadings -o name {resolved}", check = False)
      name = output.splitlines()[0].strip() if output else ""
      if name:
        return f"/dev/mapper/{name}"
      logger.warn(f"unable to look up device-mapper name of {resolved}, using it directly")
    return resolved


class BlockDeviceSource(RootSource):
  def resolve(self) -> str | None:
    return self.source


def detect_root_device() -> str:
  source = shell_output("findmnt -n -o SOURCE /", check = False)
  root_source = RootSource.classify(source)
  resolved = root_source.resolve() if source else None
  if not resolved or not device_exists(resolved):
    raise PreconditionError(f"could not detect root device (mount source: '{source}', resolved: '{resolved or ''}')")
  return resolved
