"""
Data manager - JSON file storage for save slots

Sync methods are for simple call sites and tests; the async variants go
through aiofiles so a running asyncio loop is never blocked on disk.
"""
from pathlib import Path
import json
import logging
from typing import Optional, Dict, Any, List

import aiofiles

logger = logging.getLogger(__name__)


class DataManager:
    """
    Data manager - one JSON file per save slot

    Layout: {root}/saves/{slot}.json

    Usage:
        dm = DataManager(base_path=tmp_path)
        dm.save_slot('autosave', {'version': '1.0.0'})
        data = dm.load_slot('autosave')

        data = await dm.async_load_slot('autosave')
        await dm.async_save_slot('autosave', data)
    """

    def __init__(self, base_path: Optional[Path] = None):
        if base_path:
            self.root = Path(base_path)
        else:
            # falls back to a data dir next to the package
            self.root = Path(__file__).resolve().parents[2] / "data"

        self.root.mkdir(parents=True, exist_ok=True)
        self.saves_dir = self.root / "saves"
        self.saves_dir.mkdir(parents=True, exist_ok=True)

    def _slot_file(self, slot: str) -> Path:
        return self.saves_dir / f"{slot}.json"

    # ========== sync ==========
    def load_slot(self, slot: str) -> Optional[Dict[str, Any]]:
        """Load a slot; None when missing or unreadable"""
        p = self._slot_file(slot)
        if not p.exists():
            return None
        try:
            return json.loads(p.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.error(f"failed to read save slot '{slot}': {e}")
            return None

    def save_slot(self, slot: str, data: Dict[str, Any]):
        p = self._slot_file(slot)
        p.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")

    def load_slot_text(self, slot: str) -> Optional[str]:
        p = self._slot_file(slot)
        if not p.exists():
            return None
        return p.read_text(encoding="utf-8")

    # ========== async ==========
    async def async_load_slot(self, slot: str) -> Optional[Dict[str, Any]]:
        p = self._slot_file(slot)
        if not p.exists():
            return None
        try:
            async with aiofiles.open(p, 'r', encoding='utf-8') as f:
                content = await f.read()
                return json.loads(content)
        except (OSError, ValueError) as e:
            logger.error(f"failed to read save slot '{slot}': {e}")
            return None

    async def async_save_slot(self, slot: str, data: Dict[str, Any]):
        p = self._slot_file(slot)
        content = json.dumps(data, ensure_ascii=False, indent=2)
        try:
            async with aiofiles.open(p, 'w', encoding='utf-8') as f:
                await f.write(content)
        except OSError as e:
            raise RuntimeError(f"failed to write save slot '{slot}': {e}")

    # ========== slots ==========
    def has_slot(self, slot: str) -> bool:
        return self._slot_file(slot).exists()

    def delete_slot(self, slot: str) -> bool:
        p = self._slot_file(slot)
        if not p.exists():
            return False
        p.unlink()
        return True

    def list_slots(self) -> List[str]:
        return sorted(p.stem for p in self.saves_dir.glob("*.json"))

    def get_data_path(self) -> Path:
        return self.root
