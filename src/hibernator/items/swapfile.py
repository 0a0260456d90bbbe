from __future__ import annotations

from typing import Unpack

from hibernator.model import ConfigItem, ManagedConfigItem, ManagedConfigItemBaseArgs
from hibernator.utils.size import parse_size


class Swapfile(ManagedConfigItem):
  size: str | None
  filename: str

  def __init__(
    self,
    filename: str,
    size: str | None = None,
    **kwargs: Unpack[ManagedConfigItemBaseArgs],
  ):
    super().__init__(**kwargs)
    self.filename = filename
    self.size = size

  @property
  def size_bytes(self) -> int | None:
    return parse_size(self.size) if self.size is not None else None

  @property
  def identifier(self) -> str:
    return self.filename

  def merge(self, other: ConfigItem) -> Swapfile:
    assert isinstance(other, Swapfile) and self == other
    if self.size_bytes is not None and other.size_bytes is not None:
      assert other.size_bytes == self.size_bytes, f"Conflicting size in {self}"
    return Swapfile(
      filename = self.filename,
      size = self.size or other.size,
      **self.merged_attrs(other),
    )


class SwapActivation(ManagedConfigItem):
  """Makes sure the swapfile is currently in use (swapon)."""
  filename: str

  def __init__(self, filename: str, **kwargs: Unpack[ManagedConfigItemBaseArgs]):
    super().__init__(**kwargs)
    self.filename = filename

  @property
  def identifier(self) -> str:
    return self.filename

  def merge(self, other: ConfigItem) -> SwapActivation:
    assert isinstance(other, SwapActivation) and self == other
    return SwapActivation(self.filename, **self.merged_attrs(other))
