from typing import Dict, Optional

from pydantic import BaseModel, Field


class HarvestResult(BaseModel):
    success: bool
    reward: int = 0
    crop_type: Optional[str] = None
    was_mature: bool = False
    watered: bool = False
    fertilized: bool = False
    reason: str = ""


class BatchUpdateResult(BaseModel):
    """Outcome of one growth sweep over the whole world"""
    crops_updated: int = 0
    effects_expired: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.crops_updated or self.effects_expired)


class CropInfo(BaseModel):
    crop_type: str
    name: str
    stage: int
    max_stages: int
    progress: float
    is_mature: bool
    status: str                      # growing / mature
    time_elapsed: int                # whole seconds since planting
    expected_reward: int
    watered: bool = False
    fertilized: bool = False
    growth_multiplier: float = 1.0


class TileStatistics(BaseModel):
    total_tiles: int = 0
    soil_tiles: int = 0
    road_tiles: int = 0
    crops_planted: int = 0
    mature_crops: int = 0
    watered_tiles: int = 0
    fertilized_tiles: int = 0


class CropStatistics(BaseModel):
    total_crops: int = 0
    mature_crops: int = 0
    growing_crops: int = 0
    watered_crops: int = 0
    fertilized_crops: int = 0
    crops_by_type: Dict[str, int] = Field(default_factory=dict)
    average_progress: float = 0.0
    total_expected_value: int = 0
