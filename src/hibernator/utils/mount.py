from __future__ import annotations

import os
from contextlib import contextmanager
from tempfile import mkdtemp
from typing import Generator

from hibernator.utils.shell import shell


@contextmanager
def scratch_mount(device: str, options: str = "subvolid=5") -> Generator[str]:
  """Temporarily mounts a device (by default the btrfs top-level subvolume) at a fresh directory.
  The device gets unmounted again even if the body raises. The directory is only removed once
  nothing is mounted on it anymore; a failing umount propagates and leaves it in place."""
  mountpoint = mkdtemp(prefix = "hibernator.")
  try:
    shell(f"mount -o {options} {device} {mountpoint}")
  except AssertionError:
    os.rmdir(mountpoint)
    raise
  try:
    yield mountpoint
  finally:
    shell(f"umount {mountpoint}")
    os.rmdir(mountpoint)
