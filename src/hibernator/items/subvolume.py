from __future__ import annotations

from typing import Unpack

from hibernator.model import ConfigItem, ManagedConfigItem, ManagedConfigItemBaseArgs


class BtrfsSubvolume(ManagedConfigItem):
  """A subvolume directly below the top-level subvolume (id 5) of a btrfs filesystem."""
  name: str
  device: str | None

  def __init__(
    self,
    name: str,
    device: str | None = None,
    **kwargs: Unpack[ManagedConfigItemBaseArgs],
  ):
    super().__init__(**kwargs)
    assert "/" not in name, f"subvolume name must not contain slashes: {name}"
    self.name = name
    self.device = device

  @property
  def identifier(self) -> str:
    return self.name

  def merge(self, other: ConfigItem) -> BtrfsSubvolume:
    assert isinstance(other, BtrfsSubvolume) and self == other
    if self.device is not None and other.device is not None:
      assert self.device == other.device, f"Conflicting device in {self}"
    return BtrfsSubvolume(
      name = self.name,
      device = self.device or other.device,
      **self.merged_attrs(other),
    )
