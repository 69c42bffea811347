from .bus import EventBus, Handler, Unsubscribe
from .models import (
    EVENT_TYPES, AreaHovered, AreaUnlocked, CoinsChanged, CropFertilized, CropGrown,
    CropHarvested, CropPlanted, CropWatered, EventKind, GameEvent, GameEventUnion,
    GameInitialized, GameReset, PurchaseAttempted, SaveGame, SaveLoad, TileChanged,
    ToolSelected, ToolUsed, ViewRefresh,
)
