from . import logic, models
from .logic import AreaLogic
