from __future__ import annotations

from typing import Unpack

from hibernator.model import ConfigItem, ManagedConfigItem, ManagedConfigItemBaseArgs


class InitramfsHook(ManagedConfigItem):
  """A hook that has to be part of the initramfs. For mkinitcpio it gets inserted into the HOOKS
  list right behind `after_hook`; dracut picks up its modules by itself."""
  name: str
  after_hook: str

  def __init__(
    self,
    name: str,
    after_hook: str = "filesystems",
    **kwargs: Unpack[ManagedConfigItemBaseArgs],
  ):
    super().__init__(**kwargs)
    self.name = name
    self.after_hook = after_hook

  @property
  def identifier(self) -> str:
    return self.name

  def merge(self, other: ConfigItem) -> InitramfsHook:
    assert isinstance(other, InitramfsHook) and self == other
    assert self.after_hook == other.after_hook, f"Conflicting after_hook in {self}"
    return InitramfsHook(
      name = self.name,
      after_hook = self.after_hook,
      **self.merged_attrs(other),
    )
