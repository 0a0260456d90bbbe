from __future__ import annotations

from typing import Generator, Sequence

from hibernator.items.subvolume import BtrfsSubvolume
from hibernator.model import Action, ConfigItemState, ConfigManager, ConfigModel, Phase
from hibernator.utils.mount import scratch_mount
from hibernator.utils.shell import shell, shell_success


class BtrfsSubvolumeState(ConfigItemState):
  def sha256(self) -> str:
    return "present"


class BtrfsSubvolumeManager(ConfigManager[BtrfsSubvolume, BtrfsSubvolumeState]):
  managed_classes = [BtrfsSubvolume]

  def assert_installable(self, item: BtrfsSubvolume, model: ConfigModel):
    assert item.device is not None, "missing device parameter"

  def get_state_current(self, item: BtrfsSubvolume) -> BtrfsSubvolumeState | None:
    assert item.device is not None
    with scratch_mount(item.device) as toplevel:
      exists = shell_success(f"btrfs subvolume show {toplevel}/{item.name}")
    return BtrfsSubvolumeState() if exists else None

  def get_state_target(self, item: BtrfsSubvolume, model: ConfigModel, phase: Phase) -> BtrfsSubvolumeState:
    return BtrfsSubvolumeState()

  def get_install_actions(self, items_to_check: Sequence[BtrfsSubvolume], model: ConfigModel, phase: Phase) -> Generator[Action]:
    for item in items_to_check:
      current, target = self.get_states(item, model, phase)
      if current == target:
        continue
      yield Action(
        installs = [item],
        description = f"create btrfs subvolume {item.name}",
        additional_info = f"on device {item.device}",
        execute = lambda: self.create_subvolume(item),
      )

  def create_subvolume(self, item: BtrfsSubvolume):
    assert item.device is not None
    with scratch_mount(item.device) as toplevel:
      shell(f"btrfs subvolume create {toplevel}/{item.name}")
    print(f"subvolume {item.name} created")
