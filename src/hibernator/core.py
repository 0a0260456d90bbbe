from __future__ import annotations

import sys
from shutil import get_terminal_size
from typing import Generator, Iterable, Sequence

import hibernator.utils.shell as shell_module
from hibernator.model import (
  Action, ConfigDict, ConfigItem, ConfigManager, ConfigModel, ExecutionPlan, ManagedConfigItem, MergedConfig, Phase, Section,
)
from hibernator.optimizer import InfeasibleError, InstallOrderOptimizer
from hibernator.utils.confirm import confirm
from hibernator.utils.error_handling import handle_ctrl_c
from hibernator.utils.logging import logger
from hibernator.utils.text import *


class Hibernator:
  """Brings the system into the state described by the configs. Every run consists of a planning phase,
  which only inspects the system, followed by the execution phase. During execution the actions are
  determined again step by step, because earlier steps change what later steps find on the system."""
  managers: list[ConfigManager]
  configs: ConfigDict
  assume_yes: bool

  def __init__(self, managers: Iterable[ConfigManager], configs: ConfigDict, assume_yes: bool = False):
    self.managers = list(managers)
    self.configs = configs
    self.assume_yes = assume_yes
    for section, items in self.effective_sections():
      for item in items:
        if isinstance(item, ManagedConfigItem):
          self.manager_for(item)

  def manager_for(self, item: ManagedConfigItem) -> ConfigManager:
    candidates = [manager for manager in self.managers if item.__class__ in manager.managed_classes]
    assert candidates, f"no manager found for class {item.__class__.__name__}"
    assert len(candidates) == 1, f"multiple managers found for class {item.__class__.__name__}"
    return candidates[0]

  def effective_sections(self) -> Generator[tuple[Section, list[ConfigItem]]]:
    for section, items in self.configs.items():
      if not section.enabled or items is None:
        continue
      if isinstance(items, ConfigItem):
        yield section, [items]
      else:
        yield section, [item for item in items if item is not None]

  def merge_sections(self) -> list[MergedConfig]:
    merged: dict[ConfigItem, ConfigItem] = {}
    for section, items in self.effective_sections():
      for item in items:
        merged[item] = merged[item].merge(item) if item in merged else item
    return [
      MergedConfig(description = section.description, provides = [merged[item] for item in items])
      for section, items in self.effective_sections()
    ]

  def create_model(self) -> ConfigModel:
    configs = self.merge_sections()
    managed_items = [
      managed for managed in ([item for item in config.provides if isinstance(item, ManagedConfigItem)] for config in configs) if managed
    ]
    optimizer = InstallOrderOptimizer(configs = managed_items, managers = self.managers)
    try:
      steps = optimizer.calc_install_steps()
    except InfeasibleError:
      self.print_inconsistent_subset(optimizer.find_iis())
      raise SystemExit(1)

    model = ConfigModel(configs = configs, managers = self.managers, steps = steps)
    for step in model.steps:
      for item in step.items_to_install:
        try:
          step.manager.assert_installable(item, model)
        except AssertionError as e:
          raise AssertionError(f"{item}: {e}") from e
    return model

  def actions(self, model: ConfigModel, phase: Phase, progress: bool = False) -> Generator[Action]:
    for manager in self.managers:
      manager.initialize(model, phase)
    for step in model.steps:
      if progress:
        sys.stdout.write(".")
        sys.stdout.flush()
      yield from step.manager.get_install_actions(step.items_to_install, model, phase)
    for manager in self.managers:
      manager.finalize(model, phase)

  @handle_ctrl_c
  def plan(self, config_summary: bool = False, install_order_summary: bool = False) -> ExecutionPlan:
    logger.clear()
    model = self.create_model()
    sys.stdout.write("checking system state")
    actions = list(self.actions(model, "planning", progress = True))
    print()
    print()
    self.print_plan(model, actions, config_summary, install_order_summary)
    return ExecutionPlan(model = model, expected_actions = actions)

  @handle_ctrl_c
  def execute(self, plan: ExecutionPlan):
    logger.clear()
    for action in self.actions(plan.model, "execution"):
      self.execute_action(action, plan)
    self.print_divider_line()
    print("execution finished.")
    self.print_messages("Messages logged during execution:")

  @handle_ctrl_c
  def run(self, config_summary: bool = False, install_order_summary: bool = False):
    plan = self.plan(config_summary = config_summary, install_order_summary = install_order_summary)
    if not plan.expected_actions:
      return
    if not self.assume_yes:
      confirm("apply these changes")
    self.execute(plan)

  def execute_action(self, action: Action, plan: ExecutionPlan):
    self.print_divider_line()
    printc(f"executing: {self.color_for_action(action)}{action.description}")
    for info in action.additional_info:
      printc(info)
    if not plan.predicts(action) and not self.assume_yes:
      confirm("this action was not predicted during planning, continue anyway")
    shell_module.verbose_mode = True
    try:
      action.execute()
    finally:
      shell_module.verbose_mode = False

  def print_plan(self, model: ConfigModel, actions: Sequence[Action], config_summary: bool, install_order_summary: bool):
    if config_summary:
      printc(f"{BOLD}Config Summary:")
      for config in model.configs:
        managed = [item for item in config.provides if isinstance(item, ManagedConfigItem)]
        printc(f"{self.marker_for_items(actions, managed)} {config.description}")
      print()

    if install_order_summary:
      printc(f"{BOLD}Install Order Summary:")
      for step in model.steps:
        for item in step.items_to_install:
          printc(f"{self.marker_for_items(actions, [item])} {item}")
      print()

    if self.print_messages("Messages logged during planning:"):
      print()

    if not actions:
      print("system is already configured for hibernation, nothing to do.")
      return
    printc(f"{BOLD}Actions that will be executed (in order):")
    for action in actions:
      print_listitem(f"{self.color_for_action(action)}{action.description}")
      for info in action.additional_info:
        printc(f"  {info}")
    print()

  @staticmethod
  def print_messages(title: str) -> bool:
    if not logger.messages:
      return False
    printc(f"{BOLD}{title}")
    for message in logger.messages:
      print_listitem(message)
    return True

  @staticmethod
  def print_inconsistent_subset(items: Sequence[ManagedConfigItem]):
    print()
    printc(f"{RED}Unable to calculate a consistent execution order.")
    print("The following items very likely depend on each other in a circle:")
    print()
    for item in items:
      print_listitem(f"{item}")

  @staticmethod
  def print_divider_line():
    printc("-" * (get_terminal_size().columns - 1))

  @staticmethod
  def marker_for_items(actions: Sequence[Action], items: Sequence[ManagedConfigItem]) -> str:
    if any(item in action.updates for action in actions for item in items):
      return f"{YELLOW}~"
    if any(item in action.installs for action in actions for item in items):
      return f"{GREEN}+"
    return "-"

  @staticmethod
  def color_for_action(action: Action) -> str:
    if action.updates:
      return YELLOW
    if action.installs:
      return GREEN
    return PURPLE
