"""
Selectors - pure read-only projections over a GameState

None of these mutate the snapshot or expire anything; enhancement flags are
read as stored.
"""
from typing import Any, Dict, Optional, Tuple

from ..world.models import Area, RoadTile, SoilTile, Tile
from ..world.store import tile_key
from .models import GameState


def fertilizer_active(tile: SoilTile) -> bool:
    return tile.fertilized and tile.fertilizerUsed < tile.fertilizerMax


def select_camera(state: GameState) -> Tuple[float, float, float]:
    return state.ui.offset_x, state.ui.offset_y, state.ui.scale


def select_coins(state: GameState) -> int:
    return state.economy.coins


def select_selected_tool(state: GameState) -> Optional[str]:
    return state.ui.selected_tool


def select_tile(state: GameState, x: int, y: int) -> Optional[Tile]:
    return state.world.tiles.get(tile_key(x, y))


def select_area(state: GameState, ax: int, ay: int) -> Optional[Area]:
    return state.world.areas.get(tile_key(ax, ay))


def _soil_tiles(state: GameState):
    return [t for t in state.world.tiles.values() if isinstance(t, SoilTile)]


def select_tile_count(state: GameState) -> int:
    return len(state.world.tiles)


def select_soil_count(state: GameState) -> int:
    return len(_soil_tiles(state))


def select_road_count(state: GameState) -> int:
    return sum(1 for t in state.world.tiles.values() if isinstance(t, RoadTile))


def select_crop_count(state: GameState) -> int:
    return sum(1 for t in _soil_tiles(state) if t.crop is not None)


def select_mature_crop_count(state: GameState) -> int:
    return sum(1 for t in _soil_tiles(state) if t.crop is not None and t.crop.is_mature)


def select_watered_count(state: GameState) -> int:
    return sum(1 for t in _soil_tiles(state) if t.watered)


def select_fertilized_count(state: GameState) -> int:
    return sum(1 for t in _soil_tiles(state) if fertilizer_active(t))


def select_area_count(state: GameState) -> int:
    return len(state.world.areas)


def select_unlocked_area_count(state: GameState) -> int:
    return sum(1 for a in state.world.areas.values() if a.unlocked)


def select_game_duration(state: GameState, now: int) -> int:
    return max(0, now - state.meta.game_start_time)


def select_game_stats(state: GameState, now: int) -> Dict[str, Any]:
    return {
        "coins": select_coins(state),
        "tiles": select_tile_count(state),
        "soil_tiles": select_soil_count(state),
        "road_tiles": select_road_count(state),
        "crops": select_crop_count(state),
        "mature_crops": select_mature_crop_count(state),
        "watered_tiles": select_watered_count(state),
        "fertilized_tiles": select_fertilized_count(state),
        "areas": select_area_count(state),
        "unlocked_areas": select_unlocked_area_count(state),
        "game_duration": select_game_duration(state, now),
        "statistics": state.statistics.model_dump(),
    }
