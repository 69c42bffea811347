"""
Game events

Every event is an immutable value carrying a timestamp and a ``kind``
discriminant. The set of kinds is closed; ``GameEventUnion`` validates any
serialized event back into its concrete class.
"""
from enum import Enum
from typing import Annotated, Any, Dict, Literal, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, computed_field, model_validator

from ..world.models import RoadTile, SoilTile, Tile, TileAdapter, TileKind


class EventKind(str, Enum):
    GAME_INITIALIZED = "game:initialized"
    GAME_RESET = "game:reset"
    TILE_CHANGED = "tile:changed"
    CROP_PLANTED = "crop:planted"
    CROP_GROWN = "crop:grown"
    CROP_HARVESTED = "crop:harvested"
    CROP_WATERED = "crop:watered"
    CROP_FERTILIZED = "crop:fertilized"
    AREA_UNLOCKED = "area:unlocked"
    AREA_HOVERED = "area:hovered"
    COINS_CHANGED = "economy:coins-changed"
    PURCHASE_ATTEMPTED = "economy:purchase-attempted"
    TOOL_SELECTED = "tool:selected"
    TOOL_USED = "tool:used"
    VIEW_REFRESH = "view:refresh"
    SAVE_GAME = "save:game"
    SAVE_LOAD = "save:load"


class GameEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp: int


class GameInitialized(GameEvent):
    kind: Literal[EventKind.GAME_INITIALIZED] = EventKind.GAME_INITIALIZED


class GameReset(GameEvent):
    kind: Literal[EventKind.GAME_RESET] = EventKind.GAME_RESET


class TileChanged(GameEvent):
    """A tile record was created, replaced, mutated or removed.

    ``tile`` is the record after the change, None when the tile was removed.
    Each read returns a fresh copy, so handlers never share one record. A
    kind of None means undeveloped ground.
    """
    kind: Literal[EventKind.TILE_CHANGED] = EventKind.TILE_CHANGED
    x: int
    y: int
    old_kind: Optional[TileKind] = None
    new_kind: Optional[TileKind] = None
    _tile: Optional[Union[SoilTile, RoadTile]] = PrivateAttr(default=None)

    @model_validator(mode="wrap")
    @classmethod
    def _take_tile(cls, data: Any, handler):
        tile = None
        if isinstance(data, dict) and "tile" in data:
            data = dict(data)
            tile = data.pop("tile")
        event = handler(data)
        if tile is not None:
            event._tile = TileAdapter.validate_python(tile).model_copy(deep=True)
        return event

    @computed_field
    @property
    def tile(self) -> Optional[Tile]:
        return self._tile.model_copy(deep=True) if self._tile is not None else None


class CropPlanted(GameEvent):
    kind: Literal[EventKind.CROP_PLANTED] = EventKind.CROP_PLANTED
    x: int
    y: int
    crop_type: str


class CropGrown(GameEvent):
    kind: Literal[EventKind.CROP_GROWN] = EventKind.CROP_GROWN
    x: int
    y: int
    new_stage: int
    max_stages: int


class CropHarvested(GameEvent):
    kind: Literal[EventKind.CROP_HARVESTED] = EventKind.CROP_HARVESTED
    x: int
    y: int
    crop_type: str
    reward: int
    was_mature: bool = False


class CropWatered(GameEvent):
    kind: Literal[EventKind.CROP_WATERED] = EventKind.CROP_WATERED
    x: int
    y: int


class CropFertilized(GameEvent):
    kind: Literal[EventKind.CROP_FERTILIZED] = EventKind.CROP_FERTILIZED
    x: int
    y: int


class AreaUnlocked(GameEvent):
    kind: Literal[EventKind.AREA_UNLOCKED] = EventKind.AREA_UNLOCKED
    area_x: int
    area_y: int
    cost: int


class AreaHovered(GameEvent):
    kind: Literal[EventKind.AREA_HOVERED] = EventKind.AREA_HOVERED
    area_x: int
    area_y: int
    is_locked: bool


class CoinsChanged(GameEvent):
    kind: Literal[EventKind.COINS_CHANGED] = EventKind.COINS_CHANGED
    old_amount: int
    new_amount: int
    delta: int
    reason: str


class PurchaseAttempted(GameEvent):
    kind: Literal[EventKind.PURCHASE_ATTEMPTED] = EventKind.PURCHASE_ATTEMPTED
    item: str
    cost: int
    success: bool


class ToolSelected(GameEvent):
    kind: Literal[EventKind.TOOL_SELECTED] = EventKind.TOOL_SELECTED
    tool_id: Optional[str] = None
    previous_tool: Optional[str] = None


class ToolUsed(GameEvent):
    kind: Literal[EventKind.TOOL_USED] = EventKind.TOOL_USED
    tool_id: str
    x: int
    y: int
    success: bool


class ViewRefresh(GameEvent):
    kind: Literal[EventKind.VIEW_REFRESH] = EventKind.VIEW_REFRESH
    reason: str


class SaveGame(GameEvent):
    kind: Literal[EventKind.SAVE_GAME] = EventKind.SAVE_GAME
    success: bool
    slot: str = ""


class SaveLoad(GameEvent):
    kind: Literal[EventKind.SAVE_LOAD] = EventKind.SAVE_LOAD
    success: bool
    slot: str = ""


GameEventUnion = Annotated[
    Union[
        GameInitialized, GameReset, TileChanged, CropPlanted, CropGrown,
        CropHarvested, CropWatered, CropFertilized, AreaUnlocked, AreaHovered,
        CoinsChanged, PurchaseAttempted, ToolSelected, ToolUsed, ViewRefresh,
        SaveGame, SaveLoad,
    ],
    Field(discriminator="kind"),
]

EVENT_TYPES: Dict[EventKind, Type[GameEvent]] = {
    EventKind.GAME_INITIALIZED: GameInitialized,
    EventKind.GAME_RESET: GameReset,
    EventKind.TILE_CHANGED: TileChanged,
    EventKind.CROP_PLANTED: CropPlanted,
    EventKind.CROP_GROWN: CropGrown,
    EventKind.CROP_HARVESTED: CropHarvested,
    EventKind.CROP_WATERED: CropWatered,
    EventKind.CROP_FERTILIZED: CropFertilized,
    EventKind.AREA_UNLOCKED: AreaUnlocked,
    EventKind.AREA_HOVERED: AreaHovered,
    EventKind.COINS_CHANGED: CoinsChanged,
    EventKind.PURCHASE_ATTEMPTED: PurchaseAttempted,
    EventKind.TOOL_SELECTED: ToolSelected,
    EventKind.TOOL_USED: ToolUsed,
    EventKind.VIEW_REFRESH: ViewRefresh,
    EventKind.SAVE_GAME: SaveGame,
    EventKind.SAVE_LOAD: SaveLoad,
}
