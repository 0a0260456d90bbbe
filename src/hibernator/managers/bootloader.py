from __future__ import annotations

import os
from glob import glob
from hashlib import sha256
from re import MULTILINE, search, sub
from typing import Generator, Literal, Sequence

from hibernator.host import device_uuid, resume_offset
from hibernator.items.resume import ResumeParameters
from hibernator.model import Action, ConfigItemState, ConfigManager, ConfigModel, Phase
from hibernator.utils.logging import logger
from hibernator.utils.shell import shell

type Bootloader = Literal["systemd-boot", "grub", "unknown"]


class ResumeParametersState(ConfigItemState):
  files_without_resume: list[str]

  def __init__(self, files_without_resume: list[str]):
    self.files_without_resume = files_without_resume

  def sha256(self) -> str:
    sha256_hash = sha256()
    for filename in sorted(self.files_without_resume):
      sha256_hash.update(filename.encode())
    return sha256_hash.hexdigest()


class BootloaderManager(ConfigManager[ResumeParameters, ResumeParametersState]):
  """Adds the resume parameters to the kernel command line of systemd-boot entries or GRUB.
  Files that already contain a resume= parameter are left alone."""
  managed_classes = [ResumeParameters]
  loader_entries_dir: str
  grub_default: str
  grub_cfg: str

  def __init__(
    self,
    loader_entries_dir: str = "/boot/loader/entries",
    grub_default: str = "/etc/default/grub",
    grub_cfg: str = "/boot/grub/grub.cfg",
  ):
    super().__init__()
    self.loader_entries_dir = loader_entries_dir
    self.grub_default = grub_default
    self.grub_cfg = grub_cfg

  def assert_installable(self, item: ResumeParameters, model: ConfigModel):
    assert item.device is not None, "missing device parameter"
    assert item.swapfile is not None, "missing swapfile parameter"

  def detect_bootloader(self) -> Bootloader:
    if os.path.isdir(self.loader_entries_dir):
      return "systemd-boot"
    if os.path.isfile(self.grub_default):
      return "grub"
    return "unknown"

  def config_files(self) -> list[str]:
    bootloader = self.detect_bootloader()
    if bootloader == "systemd-boot":
      return sorted(filename for filename in glob(f"{self.loader_entries_dir}/*.conf") if os.path.isfile(filename))
    if bootloader == "grub":
      return [self.grub_default]
    return []

  def get_state_current(self, item: ResumeParameters) -> ResumeParametersState | None:
    return ResumeParametersState([filename for filename in self.config_files() if not self.has_resume_parameter(filename)])

  def get_state_target(self, item: ResumeParameters, model: ConfigModel, phase: Phase) -> ResumeParametersState:
    return ResumeParametersState([])

  def get_install_actions(self, items_to_check: Sequence[ResumeParameters], model: ConfigModel, phase: Phase) -> Generator[Action]:
    for item in items_to_check:
      bootloader = self.detect_bootloader()
      if bootloader == "unknown":
        # placeholders are fine here, nothing gets written
        params = self.kernel_parameters(item, "planning")
        logger.warn(f"no supported bootloader found, please add these kernel parameters manually: {params}")
        continue

      for filename in self.config_files():
        if self.has_resume_parameter(filename):
          self.warn_about_stale_offset(filename, item)

      current, target = self.get_states(item, model, phase)
      assert current is not None
      if current == target:
        continue

      params = self.kernel_parameters(item, phase)
      if bootloader == "systemd-boot":
        for entry in current.files_without_resume:
          yield Action(
            updates = [item],
            description = f"add resume parameters to boot entry {entry}",
            additional_info = params,
            execute = lambda entry = entry: self.update_loader_entry(entry, params),
          )
      else:
        yield Action(
          updates = [item],
          description = f"add resume parameters to {self.grub_default} and regenerate {self.grub_cfg}",
          additional_info = params,
          execute = lambda: self.update_grub(params),
        )

  def kernel_parameters(self, item: ResumeParameters, phase: Phase) -> str:
    """During planning, the swapfile might not exist yet, so placeholders are used for unknown values."""
    assert item.device is not None
    uuid = device_uuid(item.device)
    offset = self.swapfile_offset(item)
    if phase == "execution":
      assert uuid, f"unable to determine UUID of {item.device}"
      assert offset is not None, f"unable to determine resume offset of {item.swapfile}"
    uuid_param = uuid or f"<uuid of {item.device}>"
    offset_param = offset if offset is not None else "<determined after swapfile creation>"
    return f"resume=UUID={uuid_param} resume_offset={offset_param}"

  def swapfile_offset(self, item: ResumeParameters) -> int | None:
    assert item.swapfile is not None
    return resume_offset(item.swapfile) if os.path.isfile(item.swapfile) else None

  def has_resume_parameter(self, filename: str) -> bool:
    with open(filename, encoding = "utf-8") as fh:
      return "resume=" in fh.read()

  def warn_about_stale_offset(self, filename: str, item: ResumeParameters):
    with open(filename, encoding = "utf-8") as fh:
      configured = search(r"resume_offset=(\d+)", fh.read())
    offset = self.swapfile_offset(item) if configured is not None else None
    if offset is not None and configured is not None and int(configured.group(1)) != offset:
      logger.warn(f"{filename} contains resume_offset={configured.group(1)}, but the swapfile is located at offset {offset}")

  def update_loader_entry(self, entry: str, params: str):
    with open(entry, encoding = "utf-8") as fh:
      content = fh.read()
    if search(r"^options", content, MULTILINE):
      content = sub(r"^options.*$", lambda matched: f"{matched.group(0)} {params}", content, flags = MULTILINE)
    else:
      content += ("" if content.endswith("\n") or not content else "\n") + f"options {params}\n"
    with open(entry, "w", encoding = "utf-8") as fh:
      fh.write(content)
    print(f"boot entry {entry} updated")

  def update_grub(self, params: str):
    with open(self.grub_default, encoding = "utf-8") as fh:
      content = fh.read()
    if 'GRUB_CMDLINE_LINUX_DEFAULT="' in content:
      content = content.replace('GRUB_CMDLINE_LINUX_DEFAULT="', f'GRUB_CMDLINE_LINUX_DEFAULT="{params} ')
    else:
      content += ("" if content.endswith("\n") or not content else "\n") + f'GRUB_CMDLINE_LINUX_DEFAULT="{params}"\n'
    with open(self.grub_default, "w", encoding = "utf-8") as fh:
      fh.write(content)
    print(f"{self.grub_default} updated")
    shell(f"grub-mkconfig -o {self.grub_cfg}")
