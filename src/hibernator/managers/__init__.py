from hibernator.managers.bootloader import BootloaderManager
from hibernator.managers.fstab import FstabManager
from hibernator.managers.initramfs import InitramfsManager
from hibernator.managers.mountpoint import MountPointManager
from hibernator.managers.subvolume import BtrfsSubvolumeManager
from hibernator.managers.swapfile import SwapfileManager
