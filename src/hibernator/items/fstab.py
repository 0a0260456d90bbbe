from __future__ import annotations

from typing import Unpack

from hibernator.model import ConfigItem, ManagedConfigItem, ManagedConfigItemBaseArgs


class FstabEntry(ManagedConfigItem):
  """A line in /etc/fstab. The entry counts as present as soon as the file contains the marker
  anywhere, so entries written by hand (possibly with other options) are left alone."""
  marker: str
  line: str | None
  comment: str | None

  def __init__(
    self,
    marker: str,
    line: str | None = None,
    comment: str | None = None,
    **kwargs: Unpack[ManagedConfigItemBaseArgs],
  ):
    super().__init__(**kwargs)
    self.marker = marker
    self.line = line
    self.comment = comment

  @property
  def identifier(self) -> str:
    return self.marker

  def merge(self, other: ConfigItem) -> FstabEntry:
    assert isinstance(other, FstabEntry) and self == other
    if self.line is not None and other.line is not None:
      assert self.line == other.line, f"Conflicting line in {self}"
    return FstabEntry(
      marker = self.marker,
      line = self.line or other.line,
      comment = self.comment or other.comment,
      **self.merged_attrs(other),
    )
