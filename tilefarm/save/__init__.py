from . import logic, migration, models
from .logic import DEFAULT_SLOT, SaveLogic
from .models import SaveData, SaveFormatError
