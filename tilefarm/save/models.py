from typing import List, Optional

from pydantic import BaseModel, Field

from ..economy.models import LedgerEntry
from ..world.models import Area, Tile


class SaveFormatError(ValueError):
    """The payload cannot be read as a save at all."""


class SavedGameState(BaseModel):
    coins: int = Field(ge=0)
    offsetX: float = 0.0
    offsetY: float = 0.0
    scale: float = Field(default=1.0, gt=0, le=10)
    selectedTool: Optional[str] = None


class TileEntry(BaseModel):
    x: int
    y: int
    data: Tile


class AreaEntry(BaseModel):
    x: int
    y: int
    data: Area


class SaveData(BaseModel):
    version: str
    timestamp: int
    gameState: SavedGameState
    tiles: List[TileEntry] = Field(default_factory=list)
    areas: List[AreaEntry] = Field(default_factory=list)
    ledger: List[LedgerEntry] = Field(default_factory=list)


class SaveInfo(BaseModel):
    slot: str
    version: str
    timestamp: int
    coins: int = 0
    tiles: int = 0
    areas: int = 0
