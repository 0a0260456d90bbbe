from __future__ import annotations

from typing import Unpack

from hibernator.model import ConfigItem, ManagedConfigItem, ManagedConfigItemBaseArgs


class MountPoint(ManagedConfigItem):
  """A directory that should exist and be mounted according to its fstab entry."""
  path: str

  def __init__(self, path: str, **kwargs: Unpack[ManagedConfigItemBaseArgs]):
    super().__init__(**kwargs)
    self.path = path

  @property
  def identifier(self) -> str:
    return self.path

  def merge(self, other: ConfigItem) -> MountPoint:
    assert isinstance(other, MountPoint) and self == other
    return MountPoint(self.path, **self.merged_attrs(other))
