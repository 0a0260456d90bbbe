from hibernator.core import Hibernator
from hibernator.items import *
from hibernator.managers import *
from hibernator.model import *
from hibernator.presets import HibernationPresets
