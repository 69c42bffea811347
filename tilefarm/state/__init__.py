from . import manager, models, selectors
from .manager import StateManager, StateValidator
from .models import GameState
