import os
from inspect import cleandoc

import pytest

import hibernator.managers.initramfs as initramfs_module
from hibernator.items import *
from hibernator.managers import *
from hibernator.model import ConfigModel, MergedConfig
from hibernator.utils.logging import logger

from conftest import PHYSICAL_OFFSET, ROOT_UUID

RESUME_PARAMS = f"resume=UUID={ROOT_UUID} resume_offset={PHYSICAL_OFFSET}"


def run_actions(manager, items, phase = "execution") -> list[str]:
  model = ConfigModel(configs = [], managers = [manager], steps = [])
  descriptions = []
  for action in manager.get_install_actions(items, model, phase):
    descriptions.append(action.description)
    if phase == "execution":
      action.execute()
  return descriptions


def create_swapfile(path, size: int):
  with open(path, "wb") as fh:
    fh.truncate(size)


class TestFstabManager:

  def test_appends_entry_with_comment_once(self, tmp_path):
    fstab = tmp_path / "fstab"
    fstab.write_text("UUID=1234 / btrfs subvol=/@ 0 0")
    manager = FstabManager(str(fstab))
    entry = FstabEntry("@swap", line = "/dev/sda2 /swap btrfs subvol=/@swap,defaults,noatime,nodatacow 0 0", comment = "Swap subvolume for hibernation")

    assert len(run_actions(manager, [entry])) == 1
    assert run_actions(manager, [entry]) == []
    assert fstab.read_text() == cleandoc("""
      UUID=1234 / btrfs subvol=/@ 0 0

      # Swap subvolume for hibernation
      /dev/sda2 /swap btrfs subvol=/@swap,defaults,noatime,nodatacow 0 0
    """) + "\n"

  def test_existing_entry_is_detected_by_marker(self, tmp_path):
    fstab = tmp_path / "fstab"
    fstab.write_text("/swap/swapfile swap swap sw 0 0\n")
    manager = FstabManager(str(fstab))
    assert run_actions(manager, [FstabEntry("/swap/swapfile", line = "/swap/swapfile none swap defaults 0 0")]) == []
    assert fstab.read_text() == "/swap/swapfile swap swap sw 0 0\n"


class TestBtrfsSubvolumeManager:

  def test_creates_missing_subvolume(self, fake_host):
    descriptions = run_actions(BtrfsSubvolumeManager(), [BtrfsSubvolume("@swap", device = "/dev/nvme0n1p2")])
    assert descriptions == ["create btrfs subvolume @swap"]
    assert fake_host.subvolumes == {"@swap"}
    assert len(fake_host.executed("mount -o subvolid=5 /dev/nvme0n1p2")) == 2
    assert len(fake_host.executed("umount")) == 2

  def test_existing_subvolume_is_left_alone(self, fake_host):
    fake_host.subvolumes.add("@swap")
    assert run_actions(BtrfsSubvolumeManager(), [BtrfsSubvolume("@swap", device = "/dev/nvme0n1p2")]) == []
    assert fake_host.executed("btrfs subvolume create") == []


class TestMountPointManager:

  def test_creates_and_mounts_directory(self, tmp_path, fake_host):
    path = str(tmp_path / "swap")
    assert run_actions(MountPointManager(), [MountPoint(path)]) == [f"create and mount {path}"]
    assert os.path.isdir(path)
    assert run_actions(MountPointManager(), [MountPoint(path)]) == []

  def test_failing_mount_is_not_fatal(self, tmp_path, fake_host):
    path = str(tmp_path / "swap")
    fake_host.failing.add("mount ")
    run_actions(MountPointManager(), [MountPoint(path)])
    assert os.path.isdir(path)
    assert len(logger.messages) == 1


class TestSwapfileManager:

  def test_creates_swapfile_with_cow_disabled_before_allocation(self, tmp_path, fake_host):
    path = str(tmp_path / "swapfile")
    run_actions(SwapfileManager(), [Swapfile(path, size = "16M")])
    assert [command.split()[0] for command in fake_host.commands] == ["truncate", "chattr", "fallocate", "chmod", "mkswap"]
    assert fake_host.executed("chattr") == [f"chattr +C {path}"]
    assert fake_host.executed("fallocate") == [f"fallocate -l {16 * 2 ** 20} {path}"]
    assert os.stat(path).st_size == 16 * 2 ** 20

  def test_undersized_swapfile_is_recreated(self, tmp_path, fake_host):
    path = str(tmp_path / "swapfile")
    create_swapfile(path, 8 * 2 ** 20)
    fake_host.active_swaps.add(path)
    descriptions = run_actions(SwapfileManager(), [Swapfile(path, size = "16M")])
    assert descriptions == [f"recreate swapfile {path} (too small)"]
    assert fake_host.commands[0] == f"swapoff {path}"
    assert os.stat(path).st_size >= 16 * 2 ** 20

  def test_swapoff_failure_is_ignored_when_recreating(self, tmp_path, fake_host):
    path = str(tmp_path / "swapfile")
    create_swapfile(path, 8 * 2 ** 20)
    fake_host.failing.add("swapoff")
    run_actions(SwapfileManager(), [Swapfile(path, size = "16M")])
    assert os.stat(path).st_size == 16 * 2 ** 20

  def test_large_enough_swapfile_is_left_alone(self, tmp_path, fake_host):
    path = str(tmp_path / "swapfile")
    create_swapfile(path, 32 * 2 ** 20)
    assert run_actions(SwapfileManager(), [Swapfile(path, size = "16M")]) == []
    assert fake_host.commands == []
    assert os.stat(path).st_size == 32 * 2 ** 20

  def test_activation_only_when_inactive(self, tmp_path, fake_host):
    path = str(tmp_path / "swapfile")
    assert run_actions(SwapfileManager(), [SwapActivation(path)]) == [f"activate swapfile {path}"]
    assert fake_host.executed("swapon /") == [f"swapon {path}"]
    assert run_actions(SwapfileManager(), [SwapActivation(path)]) == []
    assert len(fake_host.executed("swapon /")) == 1

  def test_active_swapfile_is_reactivated_after_planned_recreation(self, tmp_path, fake_host):
    path = str(tmp_path / "swapfile")
    create_swapfile(path, 8 * 2 ** 20)
    fake_host.active_swaps.add(path)
    manager = SwapfileManager()
    model = ConfigModel(configs = [MergedConfig("swap", [Swapfile(path, size = "16M"), SwapActivation(path)])], managers = [manager], steps = [])
    assert run_actions(manager, [SwapActivation(path)], phase = "planning") == []
    planned = list(manager.get_install_actions([Swapfile(path, size = "16M"), SwapActivation(path)], model, "planning"))
    assert [action.description for action in planned] == [f"recreate swapfile {path} (too small)", f"activate swapfile {path}"]

  def test_rejects_missing_size(self):
    model = ConfigModel(configs = [], managers = [], steps = [])
    with pytest.raises(AssertionError, match = "missing size"):
      SwapfileManager().assert_installable(Swapfile("/swap/swapfile"), model)


class TestBootloaderManager:

  @pytest.fixture
  def swapfile(self, tmp_path):
    path = tmp_path / "swapfile"
    create_swapfile(path, 16 * 2 ** 20)
    return str(path)

  def manager(self, tmp_path) -> BootloaderManager:
    return BootloaderManager(
      loader_entries_dir = str(tmp_path / "loader" / "entries"),
      grub_default = str(tmp_path / "grub"),
      grub_cfg = str(tmp_path / "grub.cfg"),
    )

  def test_systemd_boot_entries_get_resume_parameters_once(self, tmp_path, fake_host, swapfile):
    entries = tmp_path / "loader" / "entries"
    entries.mkdir(parents = True)
    (entries / "arch.conf").write_text("title Arch Linux\nlinux /vmlinuz-linux\noptions root=UUID=abc rw\n")
    (entries / "arch-resume.conf").write_text("title Arch Linux\noptions root=UUID=abc rw resume=/dev/sda3\n")
    item = ResumeParameters(device = "/dev/nvme0n1p2", swapfile = swapfile)

    assert run_actions(self.manager(tmp_path), [item]) == [f"add resume parameters to boot entry {entries / 'arch.conf'}"]
    assert (entries / "arch.conf").read_text() == f"title Arch Linux\nlinux /vmlinuz-linux\noptions root=UUID=abc rw {RESUME_PARAMS}\n"
    assert (entries / "arch-resume.conf").read_text() == "title Arch Linux\noptions root=UUID=abc rw resume=/dev/sda3\n"
    assert run_actions(self.manager(tmp_path), [item]) == []

  def test_boot_entry_without_options_line_gets_one(self, tmp_path, fake_host, swapfile):
    entries = tmp_path / "loader" / "entries"
    entries.mkdir(parents = True)
    entry = entries / "arch.conf"
    entry.write_text("title Arch Linux\nlinux /vmlinuz-linux")
    item = ResumeParameters(device = "/dev/nvme0n1p2", swapfile = swapfile)

    assert len(run_actions(self.manager(tmp_path), [item])) == 1
    assert entry.read_text() == f"title Arch Linux\nlinux /vmlinuz-linux\noptions {RESUME_PARAMS}\n"
    assert run_actions(self.manager(tmp_path), [item]) == []

  def test_grub_default_without_cmdline_gets_one(self, tmp_path, fake_host, swapfile):
    grub = tmp_path / "grub"
    grub.write_text("GRUB_TIMEOUT=5")
    item = ResumeParameters(device = "/dev/nvme0n1p2", swapfile = swapfile)

    assert len(run_actions(self.manager(tmp_path), [item])) == 1
    assert grub.read_text() == f'GRUB_TIMEOUT=5\nGRUB_CMDLINE_LINUX_DEFAULT="{RESUME_PARAMS}"\n'
    assert run_actions(self.manager(tmp_path), [item]) == []
    assert len(fake_host.executed("grub-mkconfig")) == 1

  def test_grub_gets_resume_parameters_and_is_regenerated_once(self, tmp_path, fake_host, swapfile):
    grub = tmp_path / "grub"
    grub.write_text('GRUB_TIMEOUT=5\nGRUB_CMDLINE_LINUX_DEFAULT="quiet splash"\n')
    item = ResumeParameters(device = "/dev/nvme0n1p2", swapfile = swapfile)

    assert len(run_actions(self.manager(tmp_path), [item])) == 1
    assert grub.read_text() == f'GRUB_TIMEOUT=5\nGRUB_CMDLINE_LINUX_DEFAULT="{RESUME_PARAMS} quiet splash"\n'
    assert fake_host.executed("grub-mkconfig") == [f"grub-mkconfig -o {tmp_path / 'grub.cfg'}"]

    assert run_actions(self.manager(tmp_path), [item]) == []
    assert len(fake_host.executed("grub-mkconfig")) == 1

  def test_unknown_bootloader_is_a_no_op_with_warning(self, tmp_path, fake_host, swapfile):
    item = ResumeParameters(device = "/dev/nvme0n1p2", swapfile = swapfile)
    assert run_actions(self.manager(tmp_path), [item]) == []
    assert any(RESUME_PARAMS in message for message in logger.messages)

  def test_planning_works_before_swapfile_exists(self, tmp_path, fake_host):
    (tmp_path / "grub").write_text('GRUB_CMDLINE_LINUX_DEFAULT=""\n')
    item = ResumeParameters(device = "/dev/nvme0n1p2", swapfile = str(tmp_path / "missing"))
    model = ConfigModel(configs = [], managers = [], steps = [])
    actions = list(self.manager(tmp_path).get_install_actions([item], model, "planning"))
    assert len(actions) == 1
    assert "<determined after swapfile creation>" in actions[0].additional_info[0]

  def test_execution_fails_without_resume_offset(self, tmp_path, fake_host):
    (tmp_path / "grub").write_text('GRUB_CMDLINE_LINUX_DEFAULT=""\n')
    item = ResumeParameters(device = "/dev/nvme0n1p2", swapfile = str(tmp_path / "missing"))
    with pytest.raises(AssertionError, match = "unable to determine resume offset"):
      run_actions(self.manager(tmp_path), [item])

  def test_stale_resume_offset_is_reported_but_not_changed(self, tmp_path, fake_host, swapfile):
    grub = tmp_path / "grub"
    grub.write_text(f'GRUB_CMDLINE_LINUX_DEFAULT="resume=UUID={ROOT_UUID} resume_offset=42"\n')
    item = ResumeParameters(device = "/dev/nvme0n1p2", swapfile = swapfile)
    assert run_actions(self.manager(tmp_path), [item]) == []
    assert "resume_offset=42" in grub.read_text()
    assert len(logger.messages) == 1


class TestInitramfsManager:

  def test_mkinitcpio_hook_is_added_after_filesystems_once(self, tmp_path, fake_host):
    conf = tmp_path / "mkinitcpio.conf"
    conf.write_text("# HOOKS=(base udev)\nMODULES=()\nHOOKS=(base udev autodetect block filesystems fsck)\n")
    manager = InitramfsManager(str(conf))

    assert len(run_actions(manager, [InitramfsHook("resume")])) == 1
    assert conf.read_text() == "# HOOKS=(base udev)\nMODULES=()\nHOOKS=(base udev autodetect block filesystems resume fsck)\n"
    assert fake_host.executed("mkinitcpio") == ["mkinitcpio -P"]

    assert run_actions(manager, [InitramfsHook("resume")]) == []
    assert len(fake_host.executed("mkinitcpio")) == 1

  def test_hooks_without_filesystems_are_not_edited(self, tmp_path, fake_host):
    conf = tmp_path / "mkinitcpio.conf"
    conf.write_text("HOOKS=(base systemd)\n")
    assert run_actions(InitramfsManager(str(conf)), [InitramfsHook("resume")]) == []
    assert conf.read_text() == "HOOKS=(base systemd)\n"
    assert len(logger.messages) == 1

  def test_dracut_is_regenerated_on_every_run(self, tmp_path, fake_host, monkeypatch):
    monkeypatch.setattr(initramfs_module, "which", lambda name: f"/usr/bin/{name}")
    manager = InitramfsManager(str(tmp_path / "mkinitcpio.conf"))
    run_actions(manager, [InitramfsHook("resume")])
    run_actions(manager, [InitramfsHook("resume")])
    assert fake_host.executed("dracut") == ["dracut -f", "dracut -f"]

  def test_no_generator_is_a_no_op_with_warning(self, tmp_path, fake_host):
    assert run_actions(InitramfsManager(str(tmp_path / "mkinitcpio.conf")), [InitramfsHook("resume")]) == []
    assert len(logger.messages) == 1
