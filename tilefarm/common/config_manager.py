"""
Config manager - tunable constants for the world, economy and crops

All values are read by the engines at construction time; changing them on a
running game has no effect until the game is rebuilt.
"""
import copy
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError


class CropSpec(BaseModel):
    """One row of the crop table"""
    id: str
    name: str
    cost: int = Field(ge=0)          # seed price
    reward: int = Field(ge=0)        # base harvest reward
    growTime: float = Field(gt=0)    # seconds for a full grow, unenhanced
    stages: int = Field(ge=2)


DEFAULT_CROPS: Dict[str, Dict[str, Any]] = {
    "wheat": {"name": "Wheat", "cost": 12, "reward": 20, "growTime": 25, "stages": 5},
    "spinach": {"name": "Spinach", "cost": 8, "reward": 15, "growTime": 18, "stages": 5},
    "carrot": {"name": "Carrot", "cost": 15, "reward": 25, "growTime": 30, "stages": 5},
    "potato": {"name": "Potato", "cost": 10, "reward": 18, "growTime": 22, "stages": 5},
    "tomato": {"name": "Tomato", "cost": 20, "reward": 35, "growTime": 35, "stages": 5},
    "corn": {"name": "Corn", "cost": 25, "reward": 45, "growTime": 40, "stages": 5},
    "onion": {"name": "Onion", "cost": 18, "reward": 32, "growTime": 45, "stages": 5},
    "pea": {"name": "Pea", "cost": 16, "reward": 28, "growTime": 28, "stages": 5},
    "eggplant": {"name": "Eggplant", "cost": 30, "reward": 55, "growTime": 50, "stages": 5},
    "pepper": {"name": "Pepper", "cost": 35, "reward": 65, "growTime": 55, "stages": 5},
}


class ConfigManager:
    """
    Config manager

    Holds a flat dict of settings. Defaults come from DEFAULT_CONFIG and can be
    overridden either at construction or with load_config().

    Usage:
        config = ConfigManager({"starting_coins": 1000})
        config.area_size          # 12
        config.crop("wheat")      # CropSpec(...)
    """

    DEFAULT_CONFIG: Dict[str, Any] = {
        # world / areas
        "area_size": 12,
        "area_base_cost": 200,
        "area_distance_multiplier": 100,
        # economy
        "starting_coins": 300,
        "ledger_history_limit": 1000,
        "terrain_costs": {"soil": 3, "road": 8},
        # enhancements
        "water_cost": 5,
        "water_duration_ms": 60000,
        "water_speed_bonus": 0.30,
        "fertilizer_cost": 15,
        "fertilizer_speed_bonus": 0.50,
        "fertilizer_max_usage": 3,
        # harvest
        "harvest_water_bonus": 0.10,
        "harvest_fertilizer_bonus": 0.20,
        "immature_harvest_ratio": 0.5,
        # scheduling / persistence
        "growth_update_interval_ms": 1000,
        "autosave_interval_ms": 30000,
        "save_version": "1.0.0",
        "crops": DEFAULT_CROPS,
    }

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self._config: Dict[str, Any] = copy.deepcopy(self.DEFAULT_CONFIG)
        self._crops: Dict[str, CropSpec] = {}
        self.load_config(config)

    def load_config(self, config: Optional[Dict[str, Any]]) -> None:
        """
        Merge overrides into the current settings.

        Args:
            config: flat dict of overrides; unknown keys are kept as-is

        Raises:
            ValueError: the crop table does not validate
        """
        if config:
            self._config.update(copy.deepcopy(config))
        self._crops = self._build_crop_table(self._config.get("crops") or {})

    def _build_crop_table(self, raw: Dict[str, Dict[str, Any]]) -> Dict[str, CropSpec]:
        crops = {}
        for crop_id, row in raw.items():
            try:
                crops[crop_id] = CropSpec(id=crop_id, **{k: v for k, v in row.items() if k != "id"})
            except ValidationError as e:
                raise ValueError(f"invalid crop definition '{crop_id}': {e}") from e
        return crops

    def get(self, key: str, default: Any = None) -> Any:
        return self._config.get(key, default)

    def as_dict(self) -> Dict[str, Any]:
        return copy.deepcopy(self._config)

    # ========== crops ==========

    def crop(self, crop_id: str) -> Optional[CropSpec]:
        return self._crops.get(crop_id)

    def crop_ids(self) -> List[str]:
        return list(self._crops.keys())

    def crops(self) -> List[CropSpec]:
        return list(self._crops.values())

    # ========== typed accessors ==========

    @property
    def area_size(self) -> int:
        return int(self._config["area_size"])

    @property
    def area_base_cost(self) -> int:
        return int(self._config["area_base_cost"])

    @property
    def area_distance_multiplier(self) -> int:
        return int(self._config["area_distance_multiplier"])

    @property
    def starting_coins(self) -> int:
        return int(self._config["starting_coins"])

    @property
    def ledger_history_limit(self) -> int:
        return int(self._config["ledger_history_limit"])

    def terrain_cost(self, kind: str) -> int:
        return int(self._config["terrain_costs"].get(kind, 0))

    @property
    def water_cost(self) -> int:
        return int(self._config["water_cost"])

    @property
    def water_duration_ms(self) -> int:
        return int(self._config["water_duration_ms"])

    @property
    def water_speed_bonus(self) -> float:
        return float(self._config["water_speed_bonus"])

    @property
    def fertilizer_cost(self) -> int:
        return int(self._config["fertilizer_cost"])

    @property
    def fertilizer_speed_bonus(self) -> float:
        return float(self._config["fertilizer_speed_bonus"])

    @property
    def fertilizer_max_usage(self) -> int:
        return int(self._config["fertilizer_max_usage"])

    @property
    def harvest_water_bonus(self) -> float:
        return float(self._config["harvest_water_bonus"])

    @property
    def harvest_fertilizer_bonus(self) -> float:
        return float(self._config["harvest_fertilizer_bonus"])

    @property
    def immature_harvest_ratio(self) -> float:
        return float(self._config["immature_harvest_ratio"])

    @property
    def growth_update_interval_ms(self) -> int:
        return int(self._config["growth_update_interval_ms"])

    @property
    def autosave_interval_ms(self) -> int:
        return int(self._config["autosave_interval_ms"])

    @property
    def save_version(self) -> str:
        return str(self._config["save_version"])
