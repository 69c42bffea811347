from . import logic, models
from .logic import FERTILIZE, HARVEST, WATER, ToolLogic
