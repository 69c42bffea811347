from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..world.models import Area, Tile


class UIState(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    offset_x: float = 0.0
    offset_y: float = 0.0
    scale: float = Field(default=1.0, gt=0, le=10)
    is_dragging: bool = False
    last_mouse_x: float = 0.0
    last_mouse_y: float = 0.0
    tile_x: int = 0
    tile_y: int = 0
    selected_tool: Optional[str] = None


class EconomyState(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    coins: int = Field(default=0, ge=0)


class WorldState(BaseModel):
    """Tiles and areas keyed by "x,y". Records here are snapshot-owned copies."""
    model_config = ConfigDict(validate_assignment=True)

    tiles: Dict[str, Tile] = Field(default_factory=dict)
    areas: Dict[str, Area] = Field(default_factory=dict)


class MetaState(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    last_save_time: int = 0
    game_start_time: int = 0
    version: str = "1.0.0"


class Statistics(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    crops_planted: int = Field(default=0, ge=0)
    crops_harvested: int = Field(default=0, ge=0)
    harvest_income: int = Field(default=0, ge=0)
    coins_earned: int = Field(default=0, ge=0)
    coins_spent: int = Field(default=0, ge=0)
    areas_unlocked: int = Field(default=0, ge=0)


class GameState(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    ui: UIState = Field(default_factory=UIState)
    economy: EconomyState = Field(default_factory=EconomyState)
    world: WorldState = Field(default_factory=WorldState)
    meta: MetaState = Field(default_factory=MetaState)
    statistics: Statistics = Field(default_factory=Statistics)
