from __future__ import annotations

from re import fullmatch

IEC_UNITS = ["", "K", "M", "G", "T", "P", "E"]


def parse_size(size: str) -> int:
  """Converts a size like "32G" into bytes, using binary (1024-based) units."""
  matched = fullmatch(r"(\d+)([KMGTPE]?)", size.strip().upper())
  assert matched is not None, f"invalid size: '{size}' (expected an integer with an optional K/M/G/T/P/E suffix)"
  number, unit = matched.groups()
  return int(number) * 1024 ** IEC_UNITS.index(unit)


def format_size(size_bytes: int) -> str:
  """Inverse of parse_size(), picking the largest unit that represents the value exactly."""
  for exponent in reversed(range(len(IEC_UNITS))):
    factor = 1024 ** exponent
    if size_bytes >= factor and size_bytes % factor == 0:
      return f"{size_bytes // factor}{IEC_UNITS[exponent]}"
  return str(size_bytes)
