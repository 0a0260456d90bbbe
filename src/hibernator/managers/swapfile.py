from __future__ import annotations

import os.path
from hashlib import sha256
from typing import Generator, Sequence

from hibernator.items.swapfile import SwapActivation, Swapfile
from hibernator.model import Action, ConfigItemState, ConfigManager, ConfigModel, Phase
from hibernator.utils.shell import shell, shell_output
from hibernator.utils.size import format_size


class SwapfileState(ConfigItemState):
  def __init__(self, size_bytes: int):
    self.size_bytes = size_bytes

  def sha256(self) -> str:
    sha256_hash = sha256()
    sha256_hash.update(str(self.size_bytes).encode())
    return sha256_hash.hexdigest()


class SwapActivationState(ConfigItemState):
  def sha256(self) -> str:
    return "active"


class SwapfileManager(ConfigManager[Swapfile | SwapActivation, SwapfileState | SwapActivationState]):
  """Creates swapfiles suitable for btrfs (copy-on-write disabled, fully allocated) and activates them.
  Swapfiles that are at least as large as requested are never touched, since recreating them
  would invalidate the resume offset configured in the bootloader."""
  managed_classes = [Swapfile, SwapActivation]

  def assert_installable(self, item: Swapfile | SwapActivation, model: ConfigModel):
    if isinstance(item, Swapfile):
      assert item.size_bytes is not None, "missing size parameter"
      assert item.size_bytes > 0, f"swapfile size must be positive: {item.size}"

  def get_state_current(self, item: Swapfile | SwapActivation) -> SwapfileState | SwapActivationState | None:
    if isinstance(item, Swapfile):
      if not os.path.isfile(item.filename):
        return None
      return SwapfileState(size_bytes = os.stat(item.filename).st_size)
    return SwapActivationState() if self.is_active(item.filename) else None

  def get_state_target(self, item: Swapfile | SwapActivation, model: ConfigModel, phase: Phase) -> SwapfileState | SwapActivationState:
    if isinstance(item, Swapfile):
      assert item.size_bytes is not None
      return SwapfileState(size_bytes = item.size_bytes)
    return SwapActivationState()

  def get_install_actions(self, items_to_check: Sequence[Swapfile | SwapActivation], model: ConfigModel, phase: Phase) -> Generator[Action]:
    for item in items_to_check:
      if isinstance(item, Swapfile):
        yield from self.get_swapfile_actions(item, model, phase)
      else:
        yield from self.get_activation_actions(item, model, phase)

  def get_swapfile_actions(self, item: Swapfile, model: ConfigModel, phase: Phase) -> Generator[Action]:
    current, target = self.get_states(item, model, phase)
    assert current is None or isinstance(current, SwapfileState)
    assert isinstance(target, SwapfileState)

    if current is None:
      yield Action(
        installs = [item],
        description = f"create swapfile {item.filename}",
        additional_info = f"size = {format_size(target.size_bytes)} ({target.size_bytes} bytes)",
        execute = lambda: self.create_swapfile(item, target.size_bytes),
      )
    elif current.size_bytes < target.size_bytes:
      yield Action(
        updates = [item],
        description = f"recreate swapfile {item.filename} (too small)",
        additional_info = [
          f"size {current.size_bytes} => {target.size_bytes} bytes",
          "the resume offset changes, bootloader entries might need to be updated manually",
        ],
        execute = lambda: self.recreate_swapfile(item, target.size_bytes),
      )

  def get_activation_actions(self, item: SwapActivation, model: ConfigModel, phase: Phase) -> Generator[Action]:
    current, target = self.get_states(item, model, phase)
    if current == target and not (phase == "planning" and self.will_be_recreated(item.filename, model)):
      return
    yield Action(
      installs = [item],
      description = f"activate swapfile {item.filename}",
      execute = lambda: self.activate_swapfile(item),
    )

  def create_swapfile(self, item: Swapfile, size_bytes: int):
    # copy-on-write can only be disabled as long as the file has no extents
    shell(f"truncate -s 0 {item.filename}")
    shell(f"chattr +C {item.filename}")
    shell(f"fallocate -l {size_bytes} {item.filename}")
    shell(f"chmod 600 {item.filename}")
    shell(f"mkswap {item.filename}")
    print(f"swapfile {item.filename} created")

  def recreate_swapfile(self, item: Swapfile, size_bytes: int):
    shell(f"swapoff {item.filename}", check = False)
    os.unlink(item.filename)
    self.create_swapfile(item, size_bytes)

  def activate_swapfile(self, item: SwapActivation):
    shell(f"swapon {item.filename}")
    print(f"swapfile {item.filename} activated")

  def will_be_recreated(self, filename: str, model: ConfigModel) -> bool:
    """Recreating a swapfile turns it off, so an active swapfile still needs to be activated afterwards."""
    swapfile = model.find(Swapfile(filename))
    if swapfile is None or swapfile.size_bytes is None:
      return False
    current = self.get_state_current(swapfile)
    return isinstance(current, SwapfileState) and current.size_bytes < swapfile.size_bytes

  def is_active(self, filename: str) -> bool:
    return filename in shell_output("swapon --show", check = False)
