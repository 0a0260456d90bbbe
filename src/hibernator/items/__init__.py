from hibernator.items.fstab import FstabEntry
from hibernator.items.initramfs import InitramfsHook
from hibernator.items.mountpoint import MountPoint
from hibernator.items.resume import ResumeParameters
from hibernator.items.subvolume import BtrfsSubvolume
from hibernator.items.swapfile import SwapActivation, Swapfile
