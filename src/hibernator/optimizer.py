from __future__ import annotations

from collections import defaultdict
from typing import Sequence

from pyscipopt import Model, SCIP_PARAMEMPHASIS, Variable  # type: ignore

from hibernator.model import ConfigManager, InstallStep, ManagedConfigItem


class InfeasibleError(AssertionError):
  pass


class SolverHints:
  """Constraints that get added between solver runs to split up install steps that mix managers."""
  same_step: list[list[ManagedConfigItem]]
  different_steps: list[tuple[ManagedConfigItem, ManagedConfigItem]]

  def __init__(
    self,
    same_step: list[list[ManagedConfigItem]] | None = None,
    different_steps: list[tuple[ManagedConfigItem, ManagedConfigItem]] | None = None,
  ):
    self.same_step = same_step or []
    self.different_steps = different_steps or []


class InstallOrderOptimizer:
  """Assigns every item an install step so that all ordering constraints are satisfied and the
  number of steps (i.e. manager invocations) is minimal. Items inside a section keep their declared
  order; requires/after/before declarations are honored across sections."""
  managers: Sequence[ConfigManager]
  configs: Sequence[Sequence[ManagedConfigItem]]

  def __init__(self, configs: Sequence[Sequence[ManagedConfigItem]], managers: Sequence[ConfigManager]):
    self.managers = managers
    self.configs = configs

  def calc_install_steps(self) -> Sequence[InstallStep]:
    # the solver is free to put items of different managers into the same step if nothing
    # separates them, so it gets rerun with additional hints until every step has a single manager
    hints: SolverHints | None = SolverHints()
    solution: dict[ManagedConfigItem, int] = {}
    while hints is not None:
      solution = self.solve(self.configs, hints)
      hints = self.refine_hints(solution, hints)

    if not solution:
      return []
    steps: list[list[ManagedConfigItem]] = [[] for _ in range(max(solution.values()) + 1)]
    for config in self.configs:
      for item in config:
        if item not in steps[solution[item]]:
          steps[solution[item]].append(item)

    return [
      InstallStep(manager = self.manager_for(items[0]), items_to_install = items)
      for items in steps if items
    ]

  def solve(
    self,
    configs: Sequence[Sequence[ManagedConfigItem]],
    hints: SolverHints | None = None,
    feasibility_only: bool = False,
  ) -> dict[ManagedConfigItem, int]:
    hints = hints or SolverHints()
    model = Model("hibernator")
    last_step = model.addVar("last_step", vtype = "I")

    items: list[ManagedConfigItem] = list(dict.fromkeys([item for config in configs for item in config]))
    step_of: dict[ManagedConfigItem, Variable] = dict((item, model.addVar(vtype = "I")) for item in items)

    # declared order inside each section; consecutive items of the same manager may share a step
    for config in configs:
      for earlier, later in zip(config[:-1], config[1:]):
        distance = 0 if self.manager_for(earlier) == self.manager_for(later) else 1
        model.addCons(step_of[later] - step_of[earlier] >= distance)
      if config:
        model.addCons(last_step >= step_of[config[-1]])

    # dependencies never share a step, so managers cannot reorder them
    for subject in items:
      for required in subject.requires:
        if required not in step_of:
          if feasibility_only:
            continue
          raise AssertionError(f"{subject}: required item {required} not found")
        model.addCons(step_of[subject] - step_of[required] >= 1)
      for other in self.resolve_references(subject.after, items):
        model.addCons(step_of[subject] - step_of[other] >= 1)
      for other in self.resolve_references(subject.before, items):
        model.addCons(step_of[other] - step_of[subject] >= 1)

    for group in hints.same_step:
      for item1, item2 in zip(group[:-1], group[1:]):
        model.addCons(step_of[item1] == step_of[item2])
    for item1, item2 in hints.different_steps:
      model.addCons(abs(step_of[item1] - step_of[item2]) >= 1)

    model.hideOutput(True)
    model.setMinimize()
    model.setObjective(last_step)
    if feasibility_only:
      model.setEmphasis(SCIP_PARAMEMPHASIS.FEASIBILITY)
    model.optimize()

    if model.getStatus() == "infeasible":
      raise InfeasibleError()

    sol = model.getBestSol()
    return dict((item, round(sol[step_of[item]])) for item in items)

  @staticmethod
  def resolve_references(references: Sequence[ManagedConfigItem], items: Sequence[ManagedConfigItem]) -> list[ManagedConfigItem]:
    # after/before may point to items that are not part of the configuration
    return [reference for reference in references if reference in items]

  def refine_hints(self, solution: dict[ManagedConfigItem, int], hints: SolverHints) -> SolverHints | None:
    """Returns extended hints if some step contains items of more than one manager, None otherwise."""
    items_by_step: dict[int, list[ManagedConfigItem]] = defaultdict(list)
    for item, step in solution.items():
      items_by_step[step].append(item)

    same_step: list[list[ManagedConfigItem]] = []
    different_steps = list(hints.different_steps)
    mixed = False
    for items in items_by_step.values():
      items_by_manager: dict[ConfigManager, list[ManagedConfigItem]] = defaultdict(list)
      for item in items:
        items_by_manager[self.manager_for(item)].append(item)
      same_step += items_by_manager.values()
      groups = list(items_by_manager.values())
      for group1, group2 in zip(groups[:-1], groups[1:]):
        different_steps.append((group1[0], group2[0]))
        mixed = True

    return SolverHints(same_step, different_steps) if mixed else None

  def find_iis(self) -> Sequence[ManagedConfigItem]:
    """Shrinks the configuration to an irreducible infeasible subset, i.e. a set of items
    whose constraints contradict each other, but become feasible when any item is removed."""
    configs: Sequence[Sequence[ManagedConfigItem]] = self.configs

    item_classes = list(dict.fromkeys([item.__class__ for config in configs for item in config]))
    for item_class in item_classes:
      reduced = [[x for x in config if x.__class__ != item_class] for config in configs]
      reduced = [config for config in reduced if config]
      if not self.is_feasible(reduced):
        configs = reduced

    for item in [item for config in configs for item in config]:
      reduced = [[x for x in config if x != item] for config in configs]
      reduced = [config for config in reduced if config]
      if not self.is_feasible(reduced):
        configs = reduced

    return list(dict.fromkeys([item for config in configs for item in config]))

  def is_feasible(self, configs: Sequence[Sequence[ManagedConfigItem]]) -> bool:
    try:
      self.solve(configs, feasibility_only = True)
      return True
    except InfeasibleError:
      return False

  def manager_for(self, item: ManagedConfigItem) -> ConfigManager:
    for manager in self.managers:
      if item.__class__ in manager.managed_classes:
        return manager
    raise AssertionError(f"no manager found for {item}")
