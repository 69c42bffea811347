"""
State manager - the single authoritative game snapshot

Every write clones the current snapshot, applies the change (pydantic
validates each assignment), runs StateValidator over the result and only
then commits. A rejected write leaves the previous snapshot in place.
"""
import logging
import math
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import ValidationError

from ..common.clock import Clock, now_ms
from ..common.config_manager import ConfigManager
from ..economy.logic import Economy
from ..events.bus import EventBus, Unsubscribe
from ..events.models import (
    AreaUnlocked, CoinsChanged, CropHarvested, CropPlanted, EventKind, TileChanged, ToolSelected,
)
from ..world.models import Area, RoadTile, SoilTile, Tile
from ..world.store import parse_key, tile_key
from .models import GameState, MetaState, Statistics, WorldState
from . import selectors

logger = logging.getLogger(__name__)

# reason carried by coins-changed events that reseed rather than transact
BALANCE_SET = "balance set"


class StateValidator:
    """Structural checks run on every candidate snapshot"""

    @staticmethod
    def validate(state: GameState) -> List[str]:
        errors = []
        if state.economy.coins < 0:
            errors.append(f"negative coins: {state.economy.coins}")
        ui = state.ui
        for name in ("offset_x", "offset_y", "last_mouse_x", "last_mouse_y"):
            if not math.isfinite(getattr(ui, name)):
                errors.append(f"ui.{name} is not finite")
        if not (0 < ui.scale <= 10):
            errors.append(f"ui.scale out of range: {ui.scale}")

        for key, tile in state.world.tiles.items():
            try:
                parse_key(key)
            except ValueError:
                errors.append(f"bad tile key {key!r}")
            if not isinstance(tile, (SoilTile, RoadTile)):
                errors.append(f"tile {key} is not a tile record")

        for key, area in state.world.areas.items():
            try:
                pos = parse_key(key)
            except ValueError:
                errors.append(f"bad area key {key!r}")
                continue
            if not isinstance(area, Area):
                errors.append(f"area {key} is not an area record")
            elif pos != (area.x, area.y):
                errors.append(f"area {key} holds coordinates {area.x},{area.y}")
        return errors

    @classmethod
    def is_valid(cls, state: GameState) -> bool:
        return not cls.validate(state)


def clone_state(state: GameState) -> GameState:
    # records are never mutated inside a snapshot, so maps copy shallowly
    return GameState.model_construct(
        ui=state.ui.model_copy(),
        economy=state.economy.model_copy(),
        world=WorldState.model_construct(tiles=dict(state.world.tiles), areas=dict(state.world.areas)),
        meta=state.meta.model_copy(),
        statistics=state.statistics.model_copy(),
    )


class StateManager:
    """
    Owns the GameState snapshot and keeps it in step with the engines.

    Coins move through the Economy; the snapshot follows its
    economy:coins-changed events. Tiles and areas follow tile:changed and
    area:unlocked. Readers use the query methods or the selectors module,
    never the engines.
    """

    def __init__(self, bus: EventBus, economy: Economy, config: Optional[ConfigManager] = None,
                 clock: Optional[Clock] = None, tool_validator: Optional[Callable[[Optional[str]], bool]] = None):
        self.bus = bus
        self.economy = economy
        # None accepts any id; FarmGame passes ToolLogic.is_valid_tool
        self.tool_validator = tool_validator
        self.config = config or ConfigManager()
        self.clock = clock or now_ms
        self._state = self._initial_state()
        self._subscriptions: List[Unsubscribe] = [
            bus.subscribe(EventKind.TILE_CHANGED, self._on_tile_changed),
            bus.subscribe(EventKind.AREA_UNLOCKED, self._on_area_unlocked),
            bus.subscribe(EventKind.COINS_CHANGED, self._on_coins_changed),
            bus.subscribe(EventKind.CROP_PLANTED, self._on_crop_planted),
            bus.subscribe(EventKind.CROP_HARVESTED, self._on_crop_harvested),
            bus.subscribe(EventKind.TOOL_SELECTED, self._on_tool_selected),
        ]

    def _initial_state(self) -> GameState:
        state = GameState(meta=MetaState(game_start_time=self.clock(), version=self.config.save_version))
        state.economy.coins = self.economy.balance
        return state

    @property
    def state(self) -> GameState:
        """The committed snapshot. Treat as read-only."""
        return self._state

    def _update(self, action: str, updater: Callable[[GameState], None]) -> bool:
        candidate = clone_state(self._state)
        try:
            updater(candidate)
        except (ValidationError, ValueError) as e:
            logger.error(f"state update '{action}' rejected: {e}")
            return False
        errors = StateValidator.validate(candidate)
        if errors:
            logger.error(f"state update '{action}' rejected: {'; '.join(errors)}")
            return False
        self._state = candidate
        return True

    # ========== ui ==========

    def update_camera(self, offset_x: Optional[float] = None, offset_y: Optional[float] = None,
                      scale: Optional[float] = None) -> bool:
        def apply(s: GameState):
            if offset_x is not None:
                s.ui.offset_x = offset_x
            if offset_y is not None:
                s.ui.offset_y = offset_y
            if scale is not None:
                s.ui.scale = scale
        return self._update("camera", apply)

    def update_mouse_state(self, is_dragging: Optional[bool] = None, last_mouse_x: Optional[float] = None,
                           last_mouse_y: Optional[float] = None, tile_x: Optional[int] = None,
                           tile_y: Optional[int] = None) -> bool:
        fields = {
            "is_dragging": is_dragging, "last_mouse_x": last_mouse_x, "last_mouse_y": last_mouse_y,
            "tile_x": tile_x, "tile_y": tile_y,
        }

        def apply(s: GameState):
            for name, value in fields.items():
                if value is not None:
                    setattr(s.ui, name, value)
        return self._update("mouse", apply)

    def _known_tool(self, tool_id: Optional[str]) -> bool:
        return tool_id is None or self.tool_validator is None or self.tool_validator(tool_id)

    def update_selected_tool(self, tool_id: Optional[str]) -> bool:
        """
        Select a tool, or deselect with None.

        Returns:
            False when the id is not a known tool; nothing is committed then
        """
        if not self._known_tool(tool_id):
            logger.error(f"state update 'selected tool' rejected: unknown tool '{tool_id}'")
            return False
        previous = self._state.ui.selected_tool
        if not self._update("selected tool", lambda s: setattr(s.ui, "selected_tool", tool_id)):
            return False
        self.bus.publish(ToolSelected(timestamp=self.clock(), tool_id=tool_id, previous_tool=previous))
        return True

    # ========== economy ==========

    def can_afford(self, cost: int) -> bool:
        return self.economy.can_afford(cost).can_afford

    def spend_coins(self, cost: int, reason: str = "purchase") -> bool:
        return self.economy.spend(cost, reason).success

    def earn_coins(self, amount: int, reason: str = "sale") -> bool:
        return self.economy.earn(amount, reason).success

    def set_coins(self, amount: int) -> bool:
        """Reseed the balance outright (load, debug). Bypasses the ledger."""
        old = self._state.economy.coins
        if not self._update("set coins", lambda s: setattr(s.economy, "coins", amount)):
            return False
        self.economy.restore(amount)
        self.bus.publish(CoinsChanged(
            timestamp=self.clock(), old_amount=old, new_amount=amount, delta=amount - old, reason=BALANCE_SET,
        ))
        return True

    # ========== world ==========

    def set_tiles_map(self, tiles: Dict[str, Tile]) -> bool:
        copies = {k: t.model_copy(deep=True) for k, t in tiles.items()}
        return self._update("tiles map", lambda s: setattr(s.world, "tiles", copies))

    def set_areas_map(self, areas: Dict[str, Area]) -> bool:
        copies = {k: a.model_copy(deep=True) for k, a in areas.items()}
        return self._update("areas map", lambda s: setattr(s.world, "areas", copies))

    def sync_tile(self, x: int, y: int, tile: Optional[Tile]) -> bool:
        key = tile_key(x, y)

        def apply(s: GameState):
            if tile is None:
                s.world.tiles.pop(key, None)
            else:
                s.world.tiles[key] = tile.model_copy(deep=True)
        return self._update(f"tile {key}", apply)

    def sync_area(self, area: Area) -> bool:
        key = tile_key(area.x, area.y)
        copy = area.model_copy(deep=True)
        return self._update(f"area {key}", lambda s: s.world.areas.__setitem__(key, copy))

    def load_snapshot(self, tiles: Dict[str, Tile], areas: Dict[str, Area], coins: int,
                      offset_x: float = 0.0, offset_y: float = 0.0, scale: float = 1.0,
                      selected_tool: Optional[str] = None) -> bool:
        """Replace world, coins and camera in one commit. Statistics restart.

        An unknown selected tool is dropped to None rather than failing the load.
        """
        if not self._known_tool(selected_tool):
            logger.warning(f"dropping unknown selected tool '{selected_tool}' from snapshot")
            selected_tool = None
        tile_copies = {k: t.model_copy(deep=True) for k, t in tiles.items()}
        area_copies = {k: a.model_copy(deep=True) for k, a in areas.items()}

        def apply(s: GameState):
            s.world = WorldState(tiles=tile_copies, areas=area_copies)
            s.economy.coins = coins
            s.ui.offset_x = offset_x
            s.ui.offset_y = offset_y
            s.ui.scale = scale
            s.ui.selected_tool = selected_tool
            s.statistics = Statistics()
        return self._update("load", apply)

    def update_last_save_time(self, timestamp: Optional[int] = None) -> bool:
        ts = self.clock() if timestamp is None else timestamp
        return self._update("last save time", lambda s: setattr(s.meta, "last_save_time", ts))

    # ========== event sync ==========

    def _on_tile_changed(self, event: TileChanged):
        self.sync_tile(event.x, event.y, event.tile)

    def _on_area_unlocked(self, event: AreaUnlocked):
        area = Area(x=event.area_x, y=event.area_y, unlocked=True, unlockedAt=event.timestamp, costPaid=event.cost)

        def apply(s: GameState):
            s.world.areas[tile_key(area.x, area.y)] = area
            s.statistics.areas_unlocked += 1
        self._update(f"area {area.x},{area.y} unlocked", apply)

    def _on_coins_changed(self, event: CoinsChanged):
        def apply(s: GameState):
            s.economy.coins = event.new_amount
            if event.reason == BALANCE_SET:
                return
            if event.delta > 0:
                s.statistics.coins_earned += event.delta
            elif event.delta < 0:
                s.statistics.coins_spent += -event.delta
        self._update("coins", apply)

    def _on_crop_planted(self, event: CropPlanted):
        self._update("crop planted", lambda s: setattr(s.statistics, "crops_planted", s.statistics.crops_planted + 1))

    def _on_crop_harvested(self, event: CropHarvested):
        def apply(s: GameState):
            s.statistics.crops_harvested += 1
            s.statistics.harvest_income += event.reward
        self._update("crop harvested", apply)

    def _on_tool_selected(self, event: ToolSelected):
        if event.tool_id != self._state.ui.selected_tool and self._known_tool(event.tool_id):
            self._update("selected tool", lambda s: setattr(s.ui, "selected_tool", event.tool_id))

    # ========== queries ==========

    def get_tile(self, x: int, y: int) -> Optional[Tile]:
        return selectors.select_tile(self._state, x, y)

    def get_area(self, ax: int, ay: int) -> Optional[Area]:
        return selectors.select_area(self._state, ax, ay)

    def is_tile_unlocked(self, tx: int, ty: int) -> bool:
        size = self.config.area_size
        area = self.get_area(tx // size, ty // size)
        return area is not None and area.unlocked

    def get_crop_progress(self, x: int, y: int) -> Optional[float]:
        tile = self.get_tile(x, y)
        if not isinstance(tile, SoilTile) or tile.crop is None:
            return None
        return tile.crop.stage / (tile.crop.maxStages - 1)

    def get_fertilizer_usage(self, x: int, y: int) -> Optional[Tuple[int, int]]:
        tile = self.get_tile(x, y)
        if not isinstance(tile, SoilTile) or not selectors.fertilizer_active(tile):
            return None
        return tile.fertilizerUsed, tile.fertilizerMax

    def get_economy_balance(self) -> int:
        return self._state.economy.coins

    def get_selected_tool(self) -> Optional[str]:
        return self._state.ui.selected_tool

    def game_duration(self) -> int:
        return selectors.select_game_duration(self._state, self.clock())

    # ========== lifecycle ==========

    def reset_state(self) -> bool:
        fresh = self._initial_state()
        errors = StateValidator.validate(fresh)
        if errors:
            logger.error(f"reset rejected: {'; '.join(errors)}")
            return False
        self._state = fresh
        return True

    def validate_current_state(self) -> bool:
        errors = StateValidator.validate(self._state)
        for error in errors:
            logger.error(f"invalid state: {error}")
        return not errors

    def summary(self) -> Dict[str, Any]:
        stats = selectors.select_game_stats(self._state, self.clock())
        stats["selected_tool"] = self._state.ui.selected_tool
        return stats

    def detach(self):
        """Drop all bus subscriptions."""
        for unsubscribe in self._subscriptions:
            unsubscribe()
        self._subscriptions = []
