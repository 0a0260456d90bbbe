from functools import wraps
from typing import Any, Callable, cast


def handle_ctrl_c[F: Callable[..., Any]](func: F) -> F:
  @wraps(func)
  def wrapped(*args: Any, **kwargs: Any) -> Any:
    try:
      return func(*args, **kwargs)
    except KeyboardInterrupt:
      print()
      # every action checks the current state first, so a rerun picks up where this one stopped
      raise SystemExit("interrupted by user, run hibernator again to complete the setup")

  return cast(F, wrapped)
