from .clock import Clock, now_ms
from .config_manager import ConfigManager, CropSpec
from .data_manager import DataManager
