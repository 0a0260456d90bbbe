from __future__ import annotations

CYAN = '\033[0;36m'
GREEN = '\033[0;32m'
YELLOW = '\033[0;33m'
RED = '\033[0;31m'
PURPLE = '\033[0;35m'
BOLD = '\033[1m'
ENDC = '\033[0m'

__all__ = ["CYAN", "GREEN", "YELLOW", "RED", "PURPLE", "BOLD", "ENDC", "printc", "print_listitem"]


def printc(line: str):
  print(f"{ENDC}{line}{ENDC}")


def print_listitem(line: str):
  printc(f"- {line}")

