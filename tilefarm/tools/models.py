from enum import Enum
from typing import Optional

from pydantic import BaseModel


class ToolCategory(str, Enum):
    TERRAIN = "terrain"
    CROP = "crop"
    ACTION = "action"


class Tool(BaseModel):
    id: str
    name: str
    category: ToolCategory
    cost: int = 0
    crop_type: Optional[str] = None    # crop tools only


class ToolUsageStats(BaseModel):
    tool_id: str
    usage_count: int = 0
    success_count: int = 0
    failure_count: int = 0
    last_used: int = 0
    total_cost_spent: int = 0

    @property
    def success_rate(self) -> float:
        return self.success_count / self.usage_count if self.usage_count else 0.0
