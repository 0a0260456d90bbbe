from __future__ import annotations

import os
from hashlib import sha256
from typing import Generator, Sequence

from hibernator.items.mountpoint import MountPoint
from hibernator.model import Action, ConfigItemState, ConfigManager, ConfigModel, Phase
from hibernator.utils.logging import logger
from hibernator.utils.shell import shell, shell_success


class MountPointState(ConfigItemState):
  def __init__(self, exists: bool, mounted: bool):
    self.exists = exists
    self.mounted = mounted

  def sha256(self) -> str:
    sha256_hash = sha256()
    sha256_hash.update(f"{self.exists}:{self.mounted}".encode())
    return sha256_hash.hexdigest()


class MountPointManager(ConfigManager[MountPoint, MountPointState]):
  managed_classes = [MountPoint]

  def assert_installable(self, item: MountPoint, model: ConfigModel):
    assert os.path.isabs(item.path), f"mount point must be an absolute path: {item.path}"

  def get_state_current(self, item: MountPoint) -> MountPointState | None:
    if not os.path.isdir(item.path):
      return None
    return MountPointState(exists = True, mounted = shell_success(f"findmnt -n {item.path}"))

  def get_state_target(self, item: MountPoint, model: ConfigModel, phase: Phase) -> MountPointState:
    return MountPointState(exists = True, mounted = True)

  def get_install_actions(self, items_to_check: Sequence[MountPoint], model: ConfigModel, phase: Phase) -> Generator[Action]:
    for item in items_to_check:
      current, target = self.get_states(item, model, phase)
      if current == target:
        continue
      if current is None:
        yield Action(
          installs = [item],
          description = f"create and mount {item.path}",
          execute = lambda: self.create_and_mount(item),
        )
      else:
        yield Action(
          updates = [item],
          description = f"mount {item.path}",
          execute = lambda: self.mount(item),
        )

  def create_and_mount(self, item: MountPoint):
    os.makedirs(item.path, exist_ok = True)
    print(f"directory {item.path} created")
    self.mount(item)

  def mount(self, item: MountPoint):
    # a failing mount is not fatal, the directory is still usable (just not on its own subvolume)
    shell(f"mount {item.path}", check = False)
    if not shell_success(f"findmnt -n {item.path}"):
      logger.warn(f"{item.path} could not be mounted, continuing with a plain directory")
