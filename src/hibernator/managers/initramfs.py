from __future__ import annotations

import os
from hashlib import sha256
from re import MULTILINE, escape, fullmatch, search, sub
from shutil import which
from typing import Generator, Literal, Sequence

from hibernator.items.initramfs import InitramfsHook
from hibernator.model import Action, ConfigItemState, ConfigManager, ConfigModel, Phase
from hibernator.utils.logging import logger
from hibernator.utils.shell import shell

type InitramfsGenerator = Literal["mkinitcpio", "dracut", "unknown"]

HOOKS_LINE = r"^HOOKS=.*$"


class InitramfsHookState(ConfigItemState):
  def __init__(self, generator: InitramfsGenerator):
    self.generator = generator

  def sha256(self) -> str:
    sha256_hash = sha256()
    sha256_hash.update(self.generator.encode())
    return sha256_hash.hexdigest()


class InitramfsManager(ConfigManager[InitramfsHook, InitramfsHookState]):
  """mkinitcpio gets the hook added to its HOOKS list, followed by a rebuild of all presets.
  dracut includes the resume module automatically, so its images only get regenerated (on every run)."""
  managed_classes = [InitramfsHook]
  mkinitcpio_conf: str

  def __init__(self, mkinitcpio_conf: str = "/etc/mkinitcpio.conf"):
    super().__init__()
    self.mkinitcpio_conf = mkinitcpio_conf

  def assert_installable(self, item: InitramfsHook, model: ConfigModel):
    assert fullmatch(r"[\w-]+", item.name), f"invalid hook name: {item.name}"

  def detect_generator(self) -> InitramfsGenerator:
    if os.path.isfile(self.mkinitcpio_conf):
      return "mkinitcpio"
    if which("dracut") is not None:
      return "dracut"
    return "unknown"

  def get_state_current(self, item: InitramfsHook) -> InitramfsHookState | None:
    generator = self.detect_generator()
    if generator == "mkinitcpio":
      hooks = self.mkinitcpio_hooks()
      return InitramfsHookState(generator) if hooks is not None and item.name in self.hook_names(hooks) else None
    # there is no way to tell if an existing dracut image is up to date
    return None

  def get_state_target(self, item: InitramfsHook, model: ConfigModel, phase: Phase) -> InitramfsHookState:
    return InitramfsHookState(self.detect_generator())

  def get_install_actions(self, items_to_check: Sequence[InitramfsHook], model: ConfigModel, phase: Phase) -> Generator[Action]:
    for item in items_to_check:
      current, target = self.get_states(item, model, phase)
      if current == target:
        continue

      if target.generator == "mkinitcpio":
        hooks = self.mkinitcpio_hooks()
        if hooks is None or search(rf"\b{escape(item.after_hook)}\b", hooks) is None:
          logger.warn(f"{self.mkinitcpio_conf}: no HOOKS entry containing '{item.after_hook}' found, please add the '{item.name}' hook manually")
          continue
        yield Action(
          installs = [item],
          description = f"add '{item.name}' hook to {self.mkinitcpio_conf} and regenerate initramfs",
          additional_info = "mkinitcpio -P",
          execute = lambda: self.add_mkinitcpio_hook(item),
        )
      elif target.generator == "dracut":
        yield Action(
          updates = [item],
          description = "regenerate initramfs with dracut",
          additional_info = "dracut -f",
          execute = lambda: shell("dracut -f"),
        )
      else:
        logger.warn(f"no supported initramfs generator found (mkinitcpio or dracut), please add the '{item.name}' hook manually")

  def mkinitcpio_hooks(self) -> str | None:
    with open(self.mkinitcpio_conf, encoding = "utf-8") as fh:
      matched = search(HOOKS_LINE, fh.read(), MULTILINE)
    return matched.group(0) if matched else None

  @staticmethod
  def hook_names(hooks_line: str) -> list[str]:
    return hooks_line.split("=", 1)[1].strip("()\"' ").split()

  def add_mkinitcpio_hook(self, item: InitramfsHook):
    with open(self.mkinitcpio_conf, encoding = "utf-8") as fh:
      content = fh.read()
    content = sub(
      HOOKS_LINE,
      lambda matched: sub(rf"\b{escape(item.after_hook)}\b", f"{item.after_hook} {item.name}", matched.group(0), count = 1),
      content,
      count = 1,
      flags = MULTILINE,
    )
    with open(self.mkinitcpio_conf, "w", encoding = "utf-8") as fh:
      fh.write(content)
    print(f"hook '{item.name}' added to {self.mkinitcpio_conf}")
    shell("mkinitcpio -P")
