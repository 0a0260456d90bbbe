from __future__ import annotations

from inspect import cleandoc
from subprocess import CalledProcessError, CompletedProcess, Popen, run

# set while actions are executed, so every command shows up in the output before it runs
verbose_mode: bool = False


def echo_command(command: str):
  for idx, line in enumerate(cleandoc(command).splitlines()):
    print(f"{'$' if idx == 0 else ' '} {line}")


def shell(command: str, check: bool = True, executable: str = "/bin/sh"):
  """Runs a command with its output going straight to the terminal."""
  if verbose_mode:
    echo_command(command)
  with Popen(command, shell = True, executable = executable) as process:
    exitcode = process.wait()
  assert exitcode == 0 or not check, f"command failed (exit code {exitcode}): {command}"


def capture(command: str, check: bool, executable: str) -> CompletedProcess[str]:
  return run(command, executable = executable, check = check, shell = True, capture_output = True, text = True)


def shell_output(command: str, check: bool = True, executable: str = "/bin/sh") -> str:
  """Returns the stripped stdout of a command. Probes pass check = False and treat empty output as "unknown"."""
  try:
    return capture(command, check, executable).stdout.strip()
  except CalledProcessError as e:
    raise AssertionError(f"command failed (exit code {e.returncode}): {command}") from e


def shell_success(command: str, executable: str = "/bin/sh") -> bool:
  return capture(command, False, executable).returncode == 0
