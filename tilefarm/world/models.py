from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator


class TileKind(str, Enum):
    SOIL = "soil"
    ROAD = "road"


class PlantedCrop(BaseModel):
    """A crop growing on a soil tile. ``stage`` is a cache, always re-derivable."""
    model_config = ConfigDict(validate_assignment=True)

    cropType: str
    plantedAt: int
    stage: int = Field(default=0, ge=0)
    maxStages: int = Field(ge=2)
    # effective growth (ms at multiplier 1.0) accumulated up to growthAnchorAt
    growthMs: float = Field(default=0.0, ge=0)
    growthAnchorAt: Optional[int] = None

    @model_validator(mode="after")
    def _stage_in_range(self):
        if self.stage > self.maxStages - 1:
            raise ValueError(f"stage {self.stage} out of range for {self.maxStages} stages")
        return self

    @property
    def anchor(self) -> int:
        return self.plantedAt if self.growthAnchorAt is None else self.growthAnchorAt

    @property
    def is_mature(self) -> bool:
        return self.stage >= self.maxStages - 1


class SoilTile(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    kind: Literal["soil"] = "soil"
    crop: Optional[PlantedCrop] = None
    watered: bool = False
    wateredAt: Optional[int] = None
    fertilized: bool = False
    fertilizedAt: Optional[int] = None
    fertilizerUsed: int = Field(default=0, ge=0)
    fertilizerMax: int = Field(default=0, ge=0)

    def clear_water(self):
        self.watered = False
        self.wateredAt = None

    def clear_fertilizer(self):
        self.fertilized = False
        self.fertilizedAt = None
        self.fertilizerUsed = 0
        self.fertilizerMax = 0


class RoadTile(BaseModel):
    """Roads carry nothing: no crop, no enhancements."""
    model_config = ConfigDict(validate_assignment=True)

    kind: Literal["road"] = "road"


Tile = Annotated[Union[SoilTile, RoadTile], Field(discriminator="kind")]

TileAdapter = TypeAdapter(Tile)


class Area(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    x: int
    y: int
    unlocked: bool = False
    unlockedAt: Optional[int] = None
    costPaid: Optional[int] = None


def new_tile(kind: TileKind) -> Union[SoilTile, RoadTile]:
    if kind == TileKind.SOIL:
        return SoilTile()
    return RoadTile()
