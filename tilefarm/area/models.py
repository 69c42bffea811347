from typing import Optional

from pydantic import BaseModel


class AreaBounds(BaseModel):
    """Inclusive tile bounds of one area"""
    min_x: int
    min_y: int
    max_x: int
    max_y: int


class AreaPurchaseResult(BaseModel):
    can_purchase: bool
    cost: int
    reason: str = ""


class AreaStatistics(BaseModel):
    total_areas: int = 0
    unlocked_areas: int = 0
    locked_areas: int = 0
    purchasable_areas: int = 0
    total_spent: int = 0
    next_cheapest_cost: Optional[int] = None
