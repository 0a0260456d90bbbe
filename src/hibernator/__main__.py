from __future__ import annotations

import argparse
import sys
from typing import Sequence

from hibernator.core import Hibernator
from hibernator.host import assert_btrfs_root, assert_privileged, default_swap_size, detect_root_device
from hibernator.presets import HibernationPresets
from hibernator.utils.shell import shell
from hibernator.utils.size import parse_size
from hibernator.utils.text import *


def create_parser() -> argparse.ArgumentParser:
  parser = argparse.ArgumentParser(
    prog = "hibernator",
    description = "Sets up hibernation into a swapfile on a btrfs root filesystem: creates a @swap subvolume "
                  "and a swapfile, configures fstab, the kernel resume parameters (systemd-boot/GRUB) and "
                  "the initramfs (mkinitcpio/dracut). Safe to run repeatedly.",
  )
  parser.add_argument("swap_size", nargs = "?", default = None, help = "size of the swapfile, e.g. 32G (default: RAM size + 2G)")
  parser.add_argument("-y", "--yes", action = "store_true", help = "do not ask for confirmation")
  parser.add_argument("--dry-run", action = "store_true", help = "only show the actions that would be executed")
  parser.add_argument("--summary", action = "store_true", help = "also print the config summary and install order")
  return parser


def main(argv: Sequence[str] | None = None):
  args = create_parser().parse_args(argv)
  try:
    assert_privileged()
    assert_btrfs_root()
    device = detect_root_device()
    swap_size = args.swap_size or default_swap_size()
    required_bytes = parse_size(swap_size)
    printc(f"root device: {device}, swap size: {swap_size} ({required_bytes} bytes)")

    hibernator = Hibernator(
      managers = HibernationPresets.managers(),
      configs = HibernationPresets.btrfs_swapfile(device, swap_size),
      assume_yes = args.yes,
    )
    if args.dry_run:
      hibernator.plan(config_summary = args.summary, install_order_summary = args.summary)
      return
    hibernator.run(config_summary = args.summary, install_order_summary = args.summary)
  except AssertionError as e:
    print(f"{RED}error: {e}{ENDC}", file = sys.stderr)
    raise SystemExit(1)

  print()
  shell("swapon --show", check = False)
  print()
  printc(f"{BOLD}You must reboot for hibernation to work. Afterwards, test it with: systemctl hibernate")


if __name__ == "__main__":
  main()
