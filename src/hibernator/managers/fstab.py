from __future__ import annotations

import os
from typing import Generator, Sequence

from hibernator.items.fstab import FstabEntry
from hibernator.model import Action, ConfigItemState, ConfigManager, ConfigModel, Phase


class FstabEntryState(ConfigItemState):
  def sha256(self) -> str:
    return "present"


class FstabManager(ConfigManager[FstabEntry, FstabEntryState]):
  """Appends entries to the fstab. Existing lines are never modified or removed."""
  managed_classes = [FstabEntry]
  fstab: str

  def __init__(self, fstab: str = "/etc/fstab"):
    super().__init__()
    self.fstab = fstab

  def assert_installable(self, item: FstabEntry, model: ConfigModel):
    assert item.line is not None, "missing line parameter"
    assert item.marker in item.line, f"line does not contain the marker '{item.marker}'"

  def get_state_current(self, item: FstabEntry) -> FstabEntryState | None:
    return FstabEntryState() if item.marker in self.read_fstab() else None

  def get_state_target(self, item: FstabEntry, model: ConfigModel, phase: Phase) -> FstabEntryState:
    return FstabEntryState()

  def get_install_actions(self, items_to_check: Sequence[FstabEntry], model: ConfigModel, phase: Phase) -> Generator[Action]:
    for item in items_to_check:
      current, target = self.get_states(item, model, phase)
      if current == target:
        continue
      yield Action(
        installs = [item],
        description = f"add entry to {self.fstab}",
        additional_info = item.line,
        execute = lambda: self.append_entry(item),
      )

  def append_entry(self, item: FstabEntry):
    assert item.line is not None
    content = self.read_fstab()
    lines = "" if content.endswith("\n") or not content else "\n"
    if item.comment is not None:
      lines += f"\n# {item.comment}\n"
    lines += f"{item.line}\n"
    with open(self.fstab, "a", encoding = "utf-8") as fh:
      fh.write(lines)
    print(f"entry for {item.marker} added to {self.fstab}")

  def read_fstab(self) -> str:
    if not os.path.isfile(self.fstab):
      return ""
    with open(self.fstab, encoding = "utf-8") as fh:
      return fh.read()
