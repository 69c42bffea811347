import json
import logging
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from ..area.logic import AreaLogic
from ..common.clock import Clock, now_ms
from ..common.config_manager import ConfigManager
from ..common.data_manager import DataManager
from ..economy.logic import Economy
from ..events.bus import EventBus
from ..events.models import SaveGame, SaveLoad, ToolSelected
from ..farm.logic import FarmLogic
from ..state.manager import StateManager
from ..world.store import tile_key
from .migration import migrate_payload
from .models import AreaEntry, SaveData, SaveFormatError, SavedGameState, SaveInfo, TileEntry

logger = logging.getLogger(__name__)

DEFAULT_SLOT = "autosave"


class SaveLogic:
    """
    Save system

    Builds a SaveData from the live engines and writes it through the
    DataManager; loading parses and validates the whole payload, commits it
    to the StateManager, and only then swaps the engine maps. A payload that
    fails at any point before the swap leaves every engine untouched.

    Usage:
        saves = SaveLogic(bus, farm, areas, economy, state, data_manager=dm)
        saves.save_game()
        saves.load_game()
    """

    def __init__(self, bus: EventBus, farm: FarmLogic, areas: AreaLogic, economy: Economy, state: StateManager,
                 data_manager: Optional[DataManager] = None, config: Optional[ConfigManager] = None,
                 clock: Optional[Clock] = None):
        self.bus = bus
        self.farm = farm
        self.areas = areas
        self.economy = economy
        self.state = state
        self.dm = data_manager or DataManager()
        self.config = config or ConfigManager()
        self.clock = clock or now_ms
        self.version = self.config.save_version

    # ========== build ==========

    def create_save_data(self) -> SaveData:
        ui = self.state.state.ui
        return SaveData(
            version=self.version,
            timestamp=self.clock(),
            gameState=SavedGameState(
                coins=self.economy.balance,
                offsetX=ui.offset_x,
                offsetY=ui.offset_y,
                scale=ui.scale,
                selectedTool=ui.selected_tool,
            ),
            tiles=[TileEntry(x=x, y=y, data=t) for x, y, t in self.farm.all_tiles()],
            areas=[AreaEntry(x=x, y=y, data=a) for x, y, a in self.areas.areas.items()],
            ledger=list(self.economy.history),
        )

    def serialize(self) -> Dict[str, Any]:
        return self.create_save_data().model_dump(mode="json")

    # ========== parse / apply ==========

    def parse(self, raw: Union[str, bytes, Dict[str, Any]]) -> SaveData:
        """
        Turn raw save content into SaveData.

        Raises:
            SaveFormatError: not JSON, not an object, or invalid for its version
        """
        if isinstance(raw, (str, bytes)):
            try:
                raw = json.loads(raw)
            except ValueError as e:
                raise SaveFormatError(f"save is not valid JSON: {e}") from e
        if not isinstance(raw, dict):
            raise SaveFormatError("save must be a JSON object")

        version = raw.get("version")
        if version == self.version:
            try:
                return SaveData.model_validate(raw)
            except ValidationError as e:
                raise SaveFormatError(f"invalid save data: {e}") from e

        logger.warning(f"save version {version!r} differs from {self.version!r}, migrating")
        return migrate_payload(raw, self.version, self.config.fertilizer_max_usage)

    def apply(self, data: SaveData) -> bool:
        tiles = {tile_key(e.x, e.y): e.data for e in data.tiles}
        areas = {tile_key(e.x, e.y): e.data for e in data.areas}
        # the origin is unlocked in every world, saved or not
        origin = areas.get(tile_key(0, 0))
        if origin is None or not origin.unlocked:
            areas[tile_key(0, 0)] = self.areas.get_area(0, 0).model_copy()

        game_state = data.gameState
        previous_tool = self.state.get_selected_tool()
        if not self.state.load_snapshot(
                tiles, areas, game_state.coins,
                offset_x=game_state.offsetX, offset_y=game_state.offsetY, scale=game_state.scale,
                selected_tool=game_state.selectedTool):
            return False

        self.farm.replace_tiles({k: t.model_copy(deep=True) for k, t in tiles.items()})
        self.areas.replace_areas({k: a.model_copy(deep=True) for k, a in areas.items()})
        self.economy.restore(game_state.coins, data.ledger)
        selected = self.state.get_selected_tool()
        if selected != previous_tool:
            self.bus.publish(ToolSelected(
                timestamp=self.clock(), tool_id=selected, previous_tool=previous_tool,
            ))
        return True

    def load_payload(self, raw: Union[str, bytes, Dict[str, Any]], slot: str = "") -> bool:
        try:
            data = self.parse(raw)
        except SaveFormatError as e:
            logger.error(f"failed to load save {slot!r}: {e}")
            self.bus.publish(SaveLoad(timestamp=self.clock(), success=False, slot=slot))
            return False

        ok = self.apply(data)
        if ok:
            logger.info(f"loaded save {slot!r}: {len(data.tiles)} tiles, {len(data.areas)} areas")
        else:
            logger.error(f"failed to load save {slot!r}: snapshot rejected")
        self.bus.publish(SaveLoad(timestamp=self.clock(), success=ok, slot=slot))
        return ok

    # ========== slots ==========

    def _saved(self, slot: str, ok: bool) -> bool:
        if ok:
            self.state.update_last_save_time()
            logger.info(f"game saved to slot {slot!r}")
        self.bus.publish(SaveGame(timestamp=self.clock(), success=ok, slot=slot))
        return ok

    def save_game(self, slot: str = DEFAULT_SLOT) -> bool:
        try:
            self.dm.save_slot(slot, self.serialize())
        except OSError as e:
            logger.error(f"failed to save slot {slot!r}: {e}")
            return self._saved(slot, False)
        return self._saved(slot, True)

    def load_game(self, slot: str = DEFAULT_SLOT) -> bool:
        try:
            text = self.dm.load_slot_text(slot)
        except OSError as e:
            logger.error(f"failed to read slot {slot!r}: {e}")
            text = None
        if text is None:
            logger.info(f"no save in slot {slot!r}")
            return False
        return self.load_payload(text, slot)

    async def async_save_game(self, slot: str = DEFAULT_SLOT) -> bool:
        try:
            await self.dm.async_save_slot(slot, self.serialize())
        except RuntimeError as e:
            logger.error(str(e))
            return self._saved(slot, False)
        return self._saved(slot, True)

    async def async_load_game(self, slot: str = DEFAULT_SLOT) -> bool:
        if not self.dm.has_slot(slot):
            logger.info(f"no save in slot {slot!r}")
            return False
        data = await self.dm.async_load_slot(slot)
        if data is None:
            self.bus.publish(SaveLoad(timestamp=self.clock(), success=False, slot=slot))
            return False
        return self.load_payload(data, slot)

    def has_save(self, slot: str = DEFAULT_SLOT) -> bool:
        return self.dm.has_slot(slot)

    def get_save_info(self, slot: str = DEFAULT_SLOT) -> Optional[SaveInfo]:
        raw = self.dm.load_slot(slot)
        if not isinstance(raw, dict):
            return None
        game_state = raw.get("gameState")
        try:
            return SaveInfo(
                slot=slot,
                version=str(raw.get("version", "")),
                timestamp=int(raw.get("timestamp", 0)),
                coins=int(game_state.get("coins", 0)) if isinstance(game_state, dict) else 0,
                tiles=len(raw.get("tiles") or []),
                areas=len(raw.get("areas") or []),
            )
        except (TypeError, ValueError, OverflowError) as e:
            logger.error(f"unreadable save info in slot {slot!r}: {e}")
            return None

    def delete_save(self, slot: str = DEFAULT_SLOT) -> bool:
        return self.dm.delete_slot(slot)

    def list_saves(self) -> List[str]:
        return self.dm.list_slots()
