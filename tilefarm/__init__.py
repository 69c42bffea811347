from .common import ConfigManager, DataManager
from .events import EventBus, EventKind
from .game import FarmGame

__version__ = "1.0.0"
