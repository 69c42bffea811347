"""
FarmGame - wires the engines together around one bus and one clock

The input layer talks to this class: it applies tools at tile coordinates,
buys areas and drives the periodic growth sweep. Engines stay reactive; the
only scheduling lives in run().
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from .area.logic import AreaLogic
from .common.clock import Clock, now_ms
from .common.config_manager import ConfigManager
from .common.data_manager import DataManager
from .economy.logic import Economy
from .events.bus import EventBus
from .events.models import GameInitialized, GameReset, ViewRefresh
from .farm.logic import FarmLogic
from .farm.models import BatchUpdateResult, CropInfo
from .farm.render import FarmRenderer
from .save.logic import DEFAULT_SLOT, SaveLogic
from .state.manager import StateManager
from .tools.logic import FERTILIZE, HARVEST, WATER, ToolLogic
from .tools.models import Tool, ToolCategory
from .world.models import SoilTile, Tile

logger = logging.getLogger(__name__)


class ToolOutcome(BaseModel):
    success: bool
    tool_id: Optional[str] = None
    cost: int = 0
    reward: int = 0
    reason: str = ""


class AreaPurchaseOutcome(BaseModel):
    success: bool
    area_x: int
    area_y: int
    cost: int = 0
    reason: str = ""


class FarmGame:
    """
    Usage:
        game = FarmGame(data_manager=DataManager(base_path=tmp_path))
        game.use_tool(0, 0, "soil")
        game.use_tool(0, 0, "wheat")
        game.update()
        game.purchase_area(1, 0)
    """

    def __init__(self, config: Optional[ConfigManager] = None, clock: Optional[Clock] = None,
                 data_manager: Optional[DataManager] = None, bus: Optional[EventBus] = None):
        self.config = config or ConfigManager()
        self.clock = clock or now_ms
        self.bus = bus or EventBus()

        self.farm = FarmLogic(self.bus, self.config, self.clock)
        self.areas = AreaLogic(self.bus, self.config, self.clock)
        self.economy = Economy(self.bus, self.config, self.clock)
        self.tools = ToolLogic(self.bus, self.config, self.clock)
        self.state = StateManager(
            self.bus, self.economy, self.config, self.clock, tool_validator=self.tools.is_valid_tool,
        )
        self.saves = SaveLogic(
            self.bus, self.farm, self.areas, self.economy, self.state,
            data_manager=data_manager, config=self.config, clock=self.clock,
        )
        self.renderer = FarmRenderer()

        self.state.set_areas_map(self.areas.areas.as_dict())
        self.bus.publish(GameInitialized(timestamp=self.clock()))

    # ========== tools ==========

    def select_tool(self, tool_id: Optional[str]) -> bool:
        return self.tools.select_tool(tool_id)

    def _check_tool(self, tool: Tool, x: int, y: int) -> Optional[str]:
        """Reason the tool cannot be used at (x, y), or None."""
        tile = self.farm.get_tile(x, y)
        if tool.category == ToolCategory.TERRAIN:
            if tile is not None and tile.kind == tool.id:
                return f"tile is already {tool.id}"
            return None
        if tool.category == ToolCategory.CROP:
            if not isinstance(tile, SoilTile):
                return "crops need soil"
            if tile.crop is not None:
                return "tile already has a crop"
            return None
        if tool.id == HARVEST:
            return None if self.farm.has_crop(x, y) else "nothing to harvest"
        if tool.id in (WATER, FERTILIZE):
            return None if isinstance(tile, SoilTile) else f"can only {tool.id} soil"
        return f"unsupported tool '{tool.id}'"

    def _apply_tool(self, tool: Tool, x: int, y: int) -> ToolOutcome:
        if tool.category == ToolCategory.TERRAIN:
            ok = self.farm.set_tile_kind(x, y, tool.id)
        elif tool.category == ToolCategory.CROP:
            ok = self.farm.plant(x, y, tool.crop_type)
        elif tool.id == WATER:
            ok = self.farm.water_crop(x, y)
        elif tool.id == FERTILIZE:
            ok = self.farm.fertilize_crop(x, y)
        else:
            result = self.farm.harvest(x, y)
            if result.success and result.reward > 0:
                self.economy.earn(result.reward, f"harvested {result.crop_type}")
            return ToolOutcome(success=result.success, tool_id=tool.id, reward=result.reward, reason=result.reason)
        return ToolOutcome(success=ok, tool_id=tool.id, cost=tool.cost if ok else 0)

    def use_tool(self, x: int, y: int, tool_id: Optional[str] = None) -> ToolOutcome:
        """
        Apply a tool at tile (x, y), charging its cost.

        Preconditions are checked before any coins move, so a refused action
        never touches the ledger.
        """
        tool_id = tool_id if tool_id is not None else self.tools.selected
        if tool_id is None:
            return ToolOutcome(success=False, reason="no tool selected")
        tool = self.tools.get_tool(tool_id)
        if tool is None:
            return ToolOutcome(success=False, tool_id=tool_id, reason=f"unknown tool '{tool_id}'")

        if not self.areas.is_tile_unlocked(x, y):
            reason = "tile is in a locked area"
        else:
            reason = self._check_tool(tool, x, y)
        if reason is None and tool.cost > 0:
            payment = self.economy.attempt_purchase(tool.name, tool.cost)
            if not payment.success:
                reason = payment.reason
        if reason is not None:
            self.tools.record_tool_usage(tool.id, x, y, False)
            return ToolOutcome(success=False, tool_id=tool.id, reason=reason)

        outcome = self._apply_tool(tool, x, y)
        if not outcome.success and tool.cost > 0:
            logger.warning(f"{tool.id} at {x},{y} failed after payment, refunding {tool.cost}")
            self.economy.earn(tool.cost, f"refund {tool.name}")
        self.tools.record_tool_usage(tool.id, x, y, outcome.success, outcome.cost)
        return outcome

    # ========== areas ==========

    def purchase_area(self, ax: int, ay: int) -> AreaPurchaseOutcome:
        check = self.areas.can_purchase_area(ax, ay)
        if not check.can_purchase:
            return AreaPurchaseOutcome(success=False, area_x=ax, area_y=ay, cost=check.cost, reason=check.reason)
        payment = self.economy.attempt_purchase(f"area {ax},{ay}", check.cost)
        if not payment.success:
            return AreaPurchaseOutcome(success=False, area_x=ax, area_y=ay, cost=check.cost, reason=payment.reason)
        self.areas.unlock_area(ax, ay, check.cost)
        self.bus.publish(ViewRefresh(timestamp=self.clock(), reason="area unlocked"))
        return AreaPurchaseOutcome(success=True, area_x=ax, area_y=ay, cost=check.cost)

    def purchase_area_at_tile(self, tx: int, ty: int) -> AreaPurchaseOutcome:
        return self.purchase_area(*self.areas.tile_area(tx, ty))

    def hover_tile(self, tx: int, ty: int):
        self.areas.hover_area(*self.areas.tile_area(tx, ty))

    # ========== scheduling ==========

    def update(self) -> BatchUpdateResult:
        result = self.farm.update_all_crops()
        if result.changed:
            self.bus.publish(ViewRefresh(timestamp=self.clock(), reason="growth sweep"))
        return result

    async def run(self, stop_event: Optional[asyncio.Event] = None, autosave: bool = True,
                  slot: str = DEFAULT_SLOT):
        """Sweep every growth interval and autosave every autosave interval until stopped."""
        stop_event = stop_event or asyncio.Event()
        interval = self.config.growth_update_interval_ms / 1000
        last_save = self.clock()
        while not stop_event.is_set():
            self.update()
            if autosave and self.clock() - last_save >= self.config.autosave_interval_ms:
                await self.saves.async_save_game(slot)
                last_save = self.clock()
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass

    def reset(self):
        self.farm.clear()
        self.areas.reset()
        self.economy.reset()
        self.tools.reset()
        self.state.reset_state()
        self.state.set_areas_map(self.areas.areas.as_dict())
        self.bus.publish(GameReset(timestamp=self.clock()))
        logger.info("game reset")

    # ========== persistence ==========

    def save(self, slot: str = DEFAULT_SLOT) -> bool:
        return self.saves.save_game(slot)

    def load(self, slot: str = DEFAULT_SLOT) -> bool:
        ok = self.saves.load_game(slot)
        if ok:
            self.bus.publish(ViewRefresh(timestamp=self.clock(), reason="game loaded"))
        return ok

    # ========== queries ==========

    def get_tile(self, x: int, y: int) -> Optional[Tile]:
        return self.state.get_tile(x, y)

    def get_balance(self) -> int:
        return self.state.get_economy_balance()

    def get_crop_info(self, x: int, y: int) -> Optional[CropInfo]:
        return self.farm.get_crop_info(x, y)

    def statistics(self) -> Dict[str, Any]:
        return {
            "summary": self.state.summary(),
            "tiles": self.farm.tile_statistics().model_dump(),
            "crops": self.farm.crop_statistics().model_dump(),
            "areas": self.areas.statistics().model_dump(),
            "economy": self.economy.statistics().model_dump(),
        }

    def crop_infos(self) -> List[CropInfo]:
        return [self.farm.get_crop_info(x, y) for x, y, _ in self.farm.all_crop_tiles()]

    def status_report(self) -> str:
        return self.renderer.render_status(
            summary=self.state.summary(),
            crops=self.crop_infos(),
            economy=self.economy.statistics(),
            areas=self.areas.statistics(),
            recent=self.economy.recent_transactions(5),
        )
