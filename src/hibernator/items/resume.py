from __future__ import annotations

from typing import Unpack

from hibernator.model import ConfigItem, ManagedConfigItem, ManagedConfigItemBaseArgs


class ResumeParameters(ManagedConfigItem):
  """The resume=UUID=... and resume_offset=... kernel parameters, pointing to a swapfile on the
  given device. They get added to the configuration of the detected bootloader."""
  device: str | None
  swapfile: str | None

  def __init__(
    self,
    device: str | None = None,
    swapfile: str | None = None,
    **kwargs: Unpack[ManagedConfigItemBaseArgs],
  ):
    super().__init__(**kwargs)
    self.device = device
    self.swapfile = swapfile

  @property
  def identifier(self) -> str:
    return ""

  def merge(self, other: ConfigItem) -> ResumeParameters:
    assert isinstance(other, ResumeParameters)
    if self.device is not None and other.device is not None:
      assert self.device == other.device, f"Conflicting device in {self}"
    if self.swapfile is not None and other.swapfile is not None:
      assert self.swapfile == other.swapfile, f"Conflicting swapfile in {self}"
    return ResumeParameters(
      device = self.device or other.device,
      swapfile = self.swapfile or other.swapfile,
      **self.merged_attrs(other),
    )
