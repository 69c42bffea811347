"""
Best-effort migration of saves written under another version

Records are read one at a time. A record that still does not validate after
renaming legacy keys is skipped with a warning; only a payload without the
top-level structure fails as a whole.
"""
import logging
import math
from typing import Any, Dict, List

from pydantic import ValidationError

from ..economy.models import LedgerEntry
from .models import AreaEntry, SaveData, SaveFormatError, SavedGameState, TileEntry
from ..world.models import Area, TileAdapter

logger = logging.getLogger(__name__)

TILE_RENAMES = {
    "type": "kind",
    "isWatered": "watered",
    "isFertilized": "fertilized",
    "fertilizerUsageCount": "fertilizerUsed",
    "fertilizerMaxUsage": "fertilizerMax",
}

AREA_RENAMES = {
    "cost": "costPaid",
}


def _renamed(raw: Dict[str, Any], renames: Dict[str, str]) -> Dict[str, Any]:
    if not isinstance(raw, dict):
        raise TypeError(f"record must be an object, got {type(raw).__name__}")
    data = {}
    for key, value in raw.items():
        if value is None:
            continue
        new_key = renames.get(key, key)
        # a current-name key beats its legacy alias
        if new_key != key and new_key in raw:
            continue
        data[new_key] = value
    return data


def migrate_tile_record(raw: Dict[str, Any], fertilizer_max: int):
    data = _renamed(raw, TILE_RENAMES)
    if data.get("kind") == "road":
        return TileAdapter.validate_python({"kind": "road"})

    crop = data.get("crop")
    if isinstance(crop, dict) and "stage" in crop and "maxStages" in crop:
        crop = dict(crop)
        crop["stage"] = max(0, min(int(crop["stage"]), int(crop["maxStages"]) - 1))
        data["crop"] = crop
    if data.get("fertilized") and not data.get("fertilizerMax"):
        data["fertilizerMax"] = fertilizer_max
    return TileAdapter.validate_python(data)


def migrate_area_record(raw: Dict[str, Any], x: int, y: int) -> Area:
    data = _renamed(raw, AREA_RENAMES)
    data["x"], data["y"] = x, y
    return Area.model_validate(data)


def _entries(payload: Dict[str, Any], name: str) -> List[Any]:
    entries = payload.get(name, [])
    if not isinstance(entries, list):
        raise SaveFormatError(f"'{name}' must be a list")
    return entries


def migrate_payload(payload: Dict[str, Any], version: str, fertilizer_max: int) -> SaveData:
    """
    Rebuild a SaveData from a payload of another version.

    Raises:
        SaveFormatError: gameState, tiles or areas are missing or malformed
    """
    game_state = payload.get("gameState")
    if not isinstance(game_state, dict):
        raise SaveFormatError("missing gameState")
    try:
        saved_state = SavedGameState.model_validate(
            {k: v for k, v in game_state.items() if v is not None}
        )
    except ValidationError as e:
        raise SaveFormatError(f"unreadable gameState: {e}") from e

    tiles = []
    for entry in _entries(payload, "tiles"):
        try:
            x, y = int(entry["x"]), int(entry["y"])
            tiles.append(TileEntry(x=x, y=y, data=migrate_tile_record(entry["data"], fertilizer_max)))
        except (KeyError, TypeError, ValueError, OverflowError) as e:
            logger.warning(f"skipping unreadable tile record {entry!r}: {e}")

    areas = []
    for entry in _entries(payload, "areas"):
        try:
            x, y = int(entry["x"]), int(entry["y"])
            areas.append(AreaEntry(x=x, y=y, data=migrate_area_record(entry["data"], x, y)))
        except (KeyError, TypeError, ValueError, OverflowError) as e:
            logger.warning(f"skipping unreadable area record {entry!r}: {e}")

    raw_ledger = payload.get("ledger") or []
    if not isinstance(raw_ledger, list):
        logger.warning(f"dropping ledger history: expected a list, got {type(raw_ledger).__name__}")
        raw_ledger = []
    ledger = []
    for entry in raw_ledger:
        try:
            ledger.append(LedgerEntry.model_validate(entry))
        except ValidationError as e:
            logger.warning(f"dropping ledger history: {e}")
            ledger = []
            break

    timestamp = payload.get("timestamp")
    return SaveData(
        version=version,
        timestamp=int(timestamp) if isinstance(timestamp, (int, float)) and math.isfinite(timestamp) else 0,
        gameState=saved_state,
        tiles=tiles,
        areas=areas,
        ledger=ledger,
    )
