import logging
from typing import Dict, List, Optional

from ..common.clock import Clock, now_ms
from ..common.config_manager import ConfigManager
from ..events.bus import EventBus
from ..events.models import EventKind, ToolSelected, ToolUsed
from .models import Tool, ToolCategory, ToolUsageStats

logger = logging.getLogger(__name__)

HARVEST = "harvest"
WATER = "water"
FERTILIZE = "fertilize"


class ToolLogic:
    """
    Tool catalogue, current selection and usage counters

    The catalogue is two terrain tools (soil, road), one tool per crop in
    the crop table and three actions (harvest, water, fertilize).
    """

    def __init__(self, bus: EventBus, config: Optional[ConfigManager] = None, clock: Optional[Clock] = None):
        self.bus = bus
        self.config = config or ConfigManager()
        self.clock = clock or now_ms
        self.catalogue: Dict[str, Tool] = self._build_catalogue()
        self.selected: Optional[str] = None
        self.usage: Dict[str, ToolUsageStats] = {}
        self._init_usage()
        # selection may also change through StateManager.update_selected_tool
        self.bus.subscribe(EventKind.TOOL_SELECTED, self._on_tool_selected)

    def _build_catalogue(self) -> Dict[str, Tool]:
        c = self.config
        tools = [
            Tool(id="soil", name="Soil", category=ToolCategory.TERRAIN, cost=c.terrain_cost("soil")),
            Tool(id="road", name="Road", category=ToolCategory.TERRAIN, cost=c.terrain_cost("road")),
        ]
        for spec in c.crops():
            tools.append(Tool(id=spec.id, name=spec.name, category=ToolCategory.CROP, cost=spec.cost, crop_type=spec.id))
        tools += [
            Tool(id=HARVEST, name="Harvest", category=ToolCategory.ACTION, cost=0),
            Tool(id=WATER, name="Water", category=ToolCategory.ACTION, cost=c.water_cost),
            Tool(id=FERTILIZE, name="Fertilize", category=ToolCategory.ACTION, cost=c.fertilizer_cost),
        ]
        return {t.id: t for t in tools}

    def _init_usage(self):
        self.usage = {tool_id: ToolUsageStats(tool_id=tool_id) for tool_id in self.catalogue}

    # ========== catalogue ==========

    def get_tool(self, tool_id: str) -> Optional[Tool]:
        return self.catalogue.get(tool_id)

    def is_valid_tool(self, tool_id: Optional[str]) -> bool:
        return tool_id is None or tool_id in self.catalogue

    def tools(self, category: Optional[ToolCategory] = None) -> List[Tool]:
        return [t for t in self.catalogue.values() if category is None or t.category == category]

    # ========== selection ==========

    def select_tool(self, tool_id: Optional[str]) -> bool:
        """Select a tool, or deselect with None. Unknown ids are refused."""
        if not self.is_valid_tool(tool_id):
            logger.warning(f"unknown tool '{tool_id}'")
            return False
        previous = self.selected
        self.selected = tool_id
        self.bus.publish(ToolSelected(timestamp=self.clock(), tool_id=tool_id, previous_tool=previous))
        return True

    def deselect_tool(self):
        self.select_tool(None)

    def _on_tool_selected(self, event: ToolSelected):
        if self.is_valid_tool(event.tool_id):
            self.selected = event.tool_id

    # ========== usage ==========

    def record_tool_usage(self, tool_id: str, x: int, y: int, success: bool, cost_spent: int = 0):
        stats = self.usage.get(tool_id)
        if stats is not None:
            stats.usage_count += 1
            stats.last_used = self.clock()
            stats.total_cost_spent += cost_spent
            if success:
                stats.success_count += 1
            else:
                stats.failure_count += 1
        self.bus.publish(ToolUsed(timestamp=self.clock(), tool_id=tool_id, x=x, y=y, success=success))

    def usage_stats(self, tool_id: str) -> Optional[ToolUsageStats]:
        return self.usage.get(tool_id)

    def most_used_tools(self, limit: int = 5) -> List[ToolUsageStats]:
        ranked = sorted(self.usage.values(), key=lambda s: s.usage_count, reverse=True)
        return [s for s in ranked if s.usage_count > 0][:limit]

    def reset(self):
        self.selected = None
        self._init_usage()
