from __future__ import annotations

from sys import exit, stdin


def confirm(message: str) -> bool:
  """Asks a yes/no question; answering "n" cancels the whole run."""
  if not stdin.isatty():
    raise AssertionError(f"{message}: no terminal available for confirmation, rerun with --yes")
  while True:
    try:
      answer = input(f"{message}: [Y/n] ").strip().lower()
    except EOFError:
      answer = "n"
    if answer in ("y", "yes", ""):
      return True
    if answer in ("n", "no"):
      print("execution cancelled, no further changes were made")
      exit(1)
