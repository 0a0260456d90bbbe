from __future__ import annotations

from abc import ABCMeta, abstractmethod
from typing import Any, Callable, Generator, Iterable, Literal, Sequence, Type, TypedDict, cast

type Phase = Literal["planning", "execution"]
type ConfigItems = ConfigItem | Iterable[ConfigItem | None] | None
type ConfigDict = dict[Section, ConfigItems]
type ItemReferences = ManagedConfigItem | Iterable[ManagedConfigItem] | None


class Section:
  """A named group of items. The items of a section get installed in the order they are listed.
  Sections are compared by identity, so two sections may share a description."""
  description: str
  enabled: bool

  def __init__(self, description: str, enabled: bool = True):
    self.description = description
    self.enabled = enabled

  def __str__(self) -> str:
    return self.description


class ConfigItem(metaclass = ABCMeta):
  """Something that should be present on the system. Items of the same class with the same
  identifier describe the same thing and get merged before planning."""
  tags: set[str]

  def __init__(self, tags: Iterable[str] | str | None = None):
    self.tags = {tags} if isinstance(tags, str) else set(tags or [])

  @property
  @abstractmethod
  def identifier(self) -> str:
    pass

  @abstractmethod
  def merge(self, other: ConfigItem) -> ConfigItem:
    """Combines two declarations of the same item, failing with an AssertionError on contradicting attributes."""
    pass

  def __str__(self) -> str:
    identifier = f"'{self.identifier}'" if self.identifier else ""
    return f"{self.__class__.__name__}({identifier})"

  def __eq__(self, other: Any) -> bool:
    return isinstance(other, ConfigItem) and str(self) == str(other)

  def __hash__(self):
    return hash(str(self))


class ManagedConfigItemBaseArgs(TypedDict, total = False):
  tags: Iterable[str] | str | None
  requires: ItemReferences
  after: ItemReferences
  before: ItemReferences


def as_list(references: ItemReferences) -> list[ManagedConfigItem]:
  if references is None:
    return []
  if isinstance(references, ManagedConfigItem):
    return [references]
  return list(references)


class ManagedConfigItem(ConfigItem, metaclass = ABCMeta):
  """An item that is installed by a ConfigManager.

  - requires: the other items must be declared too and get installed in an earlier step
  - after/before: ordering only, references to undeclared items are ignored
  """
  requires: list[ManagedConfigItem]
  after: list[ManagedConfigItem]
  before: list[ManagedConfigItem]

  def __init__(
    self,
    tags: Iterable[str] | str | None = None,
    requires: ItemReferences = None,
    after: ItemReferences = None,
    before: ItemReferences = None,
  ):
    super().__init__(tags)
    self.requires = as_list(requires)
    self.after = as_list(after)
    self.before = as_list(before)

  def merged_attrs(self, other: ManagedConfigItem) -> ManagedConfigItemBaseArgs:
    return ManagedConfigItemBaseArgs(
      tags = self.tags | other.tags,
      requires = [*self.requires, *other.requires],
      after = [*self.after, *other.after],
      before = [*self.before, *other.before],
    )


class ConfigItemState(metaclass = ABCMeta):
  """Snapshot of an item, either as found on the system or as it should be.
  States are equal if their digests are equal."""

  @abstractmethod
  def sha256(self) -> str:
    pass

  def __eq__(self, other: Any) -> bool:
    return other.__class__ == self.__class__ and self.sha256() == other.sha256()

  def __hash__(self):
    return hash(self.sha256())


class ConfigManager[T: ManagedConfigItem, S: ConfigItemState](metaclass = ABCMeta):
  """Knows how to inspect and install one or more item classes. Managers must not change the
  system outside of the execute callbacks of the actions they return."""
  managed_classes: list[Type] = []

  @abstractmethod
  def assert_installable(self, item: T, model: ConfigModel):
    """Raises an AssertionError if the item lacks attributes needed for installation."""
    pass

  @abstractmethod
  def get_state_current(self, item: T) -> S | None:
    """None means the item is absent from the system."""
    pass

  @abstractmethod
  def get_state_target(self, item: T, model: ConfigModel, phase: Phase) -> S:
    """Values that only exist after earlier actions ran (e.g. the offset of a swapfile that is yet
    to be created) are unknown during planning; managers have to cope with that."""
    pass

  def get_states(self, item: T, model: ConfigModel, phase: Phase) -> tuple[S | None, S]:
    return self.get_state_current(item), self.get_state_target(item, model, phase)

  @abstractmethod
  def get_install_actions(self, items_to_check: Sequence[T], model: ConfigModel, phase: Phase) -> Generator[Action]:
    """Yields an action for every item whose current state differs from its target state.
    During execution each action runs before the generator is resumed."""
    pass

  def initialize(self, model: ConfigModel, phase: Phase):
    pass

  def finalize(self, model: ConfigModel, phase: Phase):
    pass


class Action:
  """A single change to the system. Items listed in installs are new, those in updates exist already."""
  description: str
  execute: Callable[[], None]
  additional_info: list[str]
  installs: list[ManagedConfigItem]
  updates: list[ManagedConfigItem]

  def __init__(
    self,
    description: str,
    execute: Callable[[], None],
    additional_info: list[str] | str | None = None,
    installs: Sequence[ManagedConfigItem] | None = None,
    updates: Sequence[ManagedConfigItem] | None = None,
  ):
    self.description = description
    self.execute = execute
    self.additional_info = [additional_info] if isinstance(additional_info, str) else list(additional_info or [])
    self.installs = list(installs or [])
    self.updates = list(updates or [])

  def is_covered_by(self, expected: Action) -> bool:
    """Actions get rebuilt during execution, so they are matched against the planned ones by content."""
    return (
      self.description == expected.description
      and set(self.installs) <= set(expected.installs)
      and set(self.updates) <= set(expected.updates)
    )


class ExecutionPlan:
  model: ConfigModel
  expected_actions: list[Action]

  def __init__(self, model: ConfigModel, expected_actions: Sequence[Action]):
    self.model = model
    self.expected_actions = list(expected_actions)

  def predicts(self, action: Action) -> bool:
    return any(action.is_covered_by(expected) for expected in self.expected_actions)


class MergedConfig:
  """A section after merging, referring to the merged items."""
  description: str
  provides: list[ConfigItem]

  def __init__(self, description: str, provides: Sequence[ConfigItem]):
    self.description = description
    self.provides = list(provides)


class InstallStep:
  manager: ConfigManager
  items_to_install: list[ManagedConfigItem]

  def __init__(self, manager: ConfigManager, items_to_install: Sequence[ManagedConfigItem]):
    self.manager = manager
    self.items_to_install = list(items_to_install)


class ConfigModel:
  """The merged target state of the system together with the order in which it gets installed."""
  configs: list[MergedConfig]
  managers: list[ConfigManager]
  steps: list[InstallStep]

  def __init__(self, configs: Sequence[MergedConfig], managers: Sequence[ConfigManager], steps: Sequence[InstallStep]):
    self.configs = list(configs)
    self.managers = list(managers)
    self.steps = list(steps)

  def find[T: ConfigItem](self, reference: T) -> T | None:
    """Looks up the merged version of an item, None if it is not part of the configuration."""
    for config in self.configs:
      for item in config.provides:
        if item == reference:
          return cast(T, item)
    return None
