from __future__ import annotations

from typing import Literal

from hibernator.utils.text import YELLOW

type LogLevel = Literal["info", "warn"]


class LogMessage:
  level: LogLevel
  text: str

  def __init__(self, level: LogLevel, text: str):
    self.level = level
    self.text = text

  def __str__(self) -> str:
    color = YELLOW if self.level == "warn" else ""
    return f"{color}{self.text}"


class Logger:
  """Managers report problems that need manual attention here instead of printing them, because their
  output would otherwise get lost between the progress dots. The messages get listed after each phase."""
  entries: list[LogMessage]

  def __init__(self):
    self.entries = []

  @property
  def messages(self) -> list[str]:
    """The formatted messages, without duplicates (planning and execution often report the same thing)."""
    return list(dict.fromkeys(str(entry) for entry in self.entries))

  def clear(self):
    self.entries = []

  def info(self, message: str):
    self.entries.append(LogMessage("info", message))

  def warn(self, message: str):
    self.entries.append(LogMessage("warn", message))


logger = Logger()
