from __future__ import annotations

from hibernator.items import *
from hibernator.managers import *
from hibernator.model import ConfigDict, ConfigManager, Section


class HibernationPresets:

  @staticmethod
  def managers(
    fstab: str = "/etc/fstab",
    loader_entries_dir: str = "/boot/loader/entries",
    grub_default: str = "/etc/default/grub",
    grub_cfg: str = "/boot/grub/grub.cfg",
    mkinitcpio_conf: str = "/etc/mkinitcpio.conf",
  ) -> list[ConfigManager]:
    return [
      BtrfsSubvolumeManager(),
      FstabManager(fstab),
      MountPointManager(),
      SwapfileManager(),
      BootloaderManager(loader_entries_dir, grub_default, grub_cfg),
      InitramfsManager(mkinitcpio_conf),
    ]

  @staticmethod
  def btrfs_swapfile(
    device: str,
    swap_size: str,
    subvolume: str = "@swap",
    mountpoint: str = "/swap",
    filename: str = "swapfile",
  ) -> ConfigDict:
    """Target state for hibernating into a swapfile that lives on its own btrfs subvolume."""
    swapfile_path = f"{mountpoint}/{filename}"
    subvol = BtrfsSubvolume(subvolume, device = device)
    subvol_entry = FstabEntry(
      marker = subvolume,
      line = f"{device} {mountpoint} btrfs subvol=/{subvolume},defaults,noatime,nodatacow 0 0",
      comment = "Swap subvolume for hibernation",
      after = subvol,
    )
    mount = MountPoint(mountpoint, after = subvol_entry)
    swapfile = Swapfile(swapfile_path, size = swap_size, after = mount)
    activation = SwapActivation(swapfile_path, requires = swapfile)
    swap_entry = FstabEntry(
      marker = swapfile_path,
      line = f"{swapfile_path} none swap defaults 0 0",
      after = activation,
    )
    resume = ResumeParameters(device = device, swapfile = swapfile_path, requires = swapfile, after = swap_entry)
    return {
      Section(f"btrfs subvolume {subvolume} mounted at {mountpoint}"): (
        subvol,
        subvol_entry,
        mount,
      ),
      Section(f"{swap_size} swapfile {swapfile_path}"): (
        swapfile,
        activation,
        swap_entry,
      ),
      Section("resume from swapfile after hibernation"): (
        resume,
        InitramfsHook("resume", after = resume),
      ),
    }
