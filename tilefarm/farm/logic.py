import logging
from typing import Dict, List, Optional, Tuple, Union

from ..common.clock import Clock, now_ms
from ..common.config_manager import ConfigManager, CropSpec
from ..events.bus import EventBus
from ..events.models import CropFertilized, CropGrown, CropHarvested, CropPlanted, CropWatered, TileChanged
from ..world.models import PlantedCrop, RoadTile, SoilTile, Tile, TileKind, new_tile
from ..world.store import KeyedStore
from .models import BatchUpdateResult, CropInfo, CropStatistics, HarvestResult, TileStatistics

logger = logging.getLogger(__name__)


class FarmLogic:
    """
    Tile and crop engine

    Owns the tile map. Growth is never ticked: a crop's stage is derived from
    the effective growth it has accumulated, where each millisecond counts
    ``1 + water_bonus + fertilizer_bonus`` for whichever enhancements were
    active during it. ``growthMs`` holds the total up to ``growthAnchorAt``;
    the tail from the anchor to now is integrated on demand. Any change to a
    tile's enhancements first checkpoints the crop, so a change only affects
    growth from that moment on.
    """

    def __init__(self, bus: EventBus, config: Optional[ConfigManager] = None, clock: Optional[Clock] = None):
        self.bus = bus
        self.config = config or ConfigManager()
        self.clock = clock or now_ms
        self.tiles: KeyedStore[Tile] = KeyedStore()

        self._water_duration = self.config.water_duration_ms
        self._water_bonus = self.config.water_speed_bonus
        self._fertilizer_bonus = self.config.fertilizer_speed_bonus
        self._fertilizer_max = self.config.fertilizer_max_usage

    # ========== tiles ==========

    def get_tile(self, x: int, y: int) -> Optional[Tile]:
        return self.tiles.get(x, y)

    def _soil(self, x: int, y: int) -> Optional[SoilTile]:
        tile = self.tiles.get(x, y)
        return tile if isinstance(tile, SoilTile) else None

    def has_soil(self, x: int, y: int) -> bool:
        return self._soil(x, y) is not None

    def has_crop(self, x: int, y: int) -> bool:
        tile = self._soil(x, y)
        return tile is not None and tile.crop is not None

    def set_tile_kind(self, x: int, y: int, kind: Union[TileKind, str]) -> bool:
        """
        Place soil or road at (x, y)

        The tile gets a fresh record, so turning soil into road drops its
        crop and enhancements.

        Args:
            x: tile x coordinate
            y: tile y coordinate
            kind: "soil" or "road"

        Returns:
            False when the tile is already that kind
        """
        kind = TileKind(kind)
        old = self.tiles.get(x, y)
        old_kind = TileKind(old.kind) if old is not None else None
        if old_kind == kind:
            return False
        # a fresh record: soil->road drops the crop and enhancements with it
        tile = new_tile(kind)
        self.tiles.set(x, y, tile)
        self._tile_changed(x, y, old_kind, tile)
        return True

    def remove_tile(self, x: int, y: int) -> bool:
        old = self.tiles.get(x, y)
        if old is None:
            return False
        self.tiles.delete(x, y)
        self._tile_changed(x, y, TileKind(old.kind), None)
        return True

    def _tile_changed(self, x: int, y: int, old_kind: Optional[TileKind], tile: Optional[Tile]):
        new_kind = TileKind(tile.kind) if tile is not None else None
        self.bus.publish(TileChanged(
            timestamp=self.clock(), x=x, y=y, old_kind=old_kind, new_kind=new_kind,
            tile=tile,
        ))

    def _touched(self, x: int, y: int, tile: Tile):
        kind = TileKind(tile.kind)
        self._tile_changed(x, y, kind, tile)

    # ========== growth ==========

    def _fertilizer_active(self, tile: SoilTile) -> bool:
        return tile.fertilized and tile.fertilizerUsed < tile.fertilizerMax

    def _effective_growth(self, tile: SoilTile, start: int, end: int) -> float:
        """Growth gained between start and end under the tile's current enhancements."""
        if end <= start:
            return 0.0
        gained = float(end - start)
        if self._fertilizer_active(tile):
            gained += self._fertilizer_bonus * (end - start)
        if tile.watered and tile.wateredAt is not None:
            # the window closes at wateredAt + duration whether or not anyone looked
            w_start = max(start, tile.wateredAt)
            w_end = min(end, tile.wateredAt + self._water_duration)
            if w_end > w_start:
                gained += self._water_bonus * (w_end - w_start)
        return gained

    def _progress_ms(self, tile: SoilTile, crop: PlantedCrop, now: int) -> float:
        return crop.growthMs + self._effective_growth(tile, crop.anchor, now)

    def _checkpoint(self, tile: SoilTile, now: int):
        crop = tile.crop
        if crop is None or now <= crop.anchor:
            return
        crop.growthMs = self._progress_ms(tile, crop, now)
        crop.growthAnchorAt = now

    def _target_stage(self, tile: SoilTile, crop: PlantedCrop, spec: CropSpec, now: int) -> int:
        per_stage = spec.growTime * 1000 / crop.maxStages
        stage = int(self._progress_ms(tile, crop, now) // per_stage)
        # never below the cached stage
        return max(crop.stage, min(stage, crop.maxStages - 1))

    def growth_multiplier(self, x: int, y: int) -> float:
        tile = self._soil(x, y)
        if tile is None:
            return 1.0
        multiplier = 1.0
        if self.is_watered(x, y):
            multiplier += self._water_bonus
        if self.is_fertilized(x, y):
            multiplier += self._fertilizer_bonus
        return multiplier

    def update_crop_growth(self, x: int, y: int) -> bool:
        """Recompute the stage of the crop at (x, y). True only if the stage moved."""
        tile = self._soil(x, y)
        if tile is None or tile.crop is None:
            return False
        crop = tile.crop
        spec = self.config.crop(crop.cropType)
        if spec is None:
            logger.warning(f"unknown crop type '{crop.cropType}' at {x},{y}")
            return False

        new_stage = self._target_stage(tile, crop, spec, self.clock())
        if new_stage == crop.stage:
            return False
        crop.stage = new_stage
        self.bus.publish(CropGrown(timestamp=self.clock(), x=x, y=y, new_stage=new_stage, max_stages=crop.maxStages))
        self._touched(x, y, tile)
        return True

    def is_crop_mature(self, x: int, y: int) -> bool:
        tile = self._soil(x, y)
        return tile is not None and tile.crop is not None and tile.crop.is_mature

    def get_crop_progress(self, x: int, y: int) -> Optional[float]:
        tile = self._soil(x, y)
        if tile is None or tile.crop is None:
            return None
        return tile.crop.stage / (tile.crop.maxStages - 1)

    # ========== planting ==========

    def plant(self, x: int, y: int, crop_type: str, max_stages: Optional[int] = None) -> bool:
        """
        Plant a crop on empty soil

        Planting on fertilized soil consumes one fertilizer charge.

        Args:
            x: tile x coordinate
            y: tile y coordinate
            crop_type: id from the crop table
            max_stages: overrides the crop table's stage count

        Returns:
            True if the crop was planted
        """
        tile = self._soil(x, y)
        if tile is None or tile.crop is not None:
            return False
        spec = self.config.crop(crop_type)
        if spec is None:
            logger.warning(f"cannot plant unknown crop type '{crop_type}'")
            return False
        stages = max_stages if max_stages is not None else spec.stages
        if stages < 2:
            return False

        now = self.clock()
        fertilized = self.is_fertilized(x, y)
        tile.crop = PlantedCrop(cropType=crop_type, plantedAt=now, maxStages=stages, growthAnchorAt=now)
        if fertilized:
            tile.fertilizerUsed += 1

        self._touched(x, y, tile)
        self.bus.publish(CropPlanted(timestamp=now, x=x, y=y, crop_type=crop_type))
        return True

    # ========== enhancements ==========

    def is_watered(self, x: int, y: int) -> bool:
        """Water is active for [wateredAt, wateredAt + duration). Clears itself once stale."""
        tile = self._soil(x, y)
        if tile is None or not tile.watered:
            return False
        now = self.clock()
        if tile.wateredAt is not None and now - tile.wateredAt < self._water_duration:
            return True
        self._checkpoint(tile, now)
        tile.clear_water()
        self._touched(x, y, tile)
        return False

    def is_fertilized(self, x: int, y: int) -> bool:
        tile = self._soil(x, y)
        if tile is None or not tile.fertilized:
            return False
        if self._fertilizer_active(tile):
            return True
        self._checkpoint(tile, self.clock())
        tile.clear_fertilizer()
        self._touched(x, y, tile)
        return False

    def get_fertilizer_usage(self, x: int, y: int) -> Optional[Tuple[int, int]]:
        if not self.is_fertilized(x, y):
            return None
        tile = self._soil(x, y)
        return tile.fertilizerUsed, tile.fertilizerMax

    def water(self, x: int, y: int) -> bool:
        """
        Water the soil at (x, y), restarting its water window

        Returns:
            False when there is no soil at (x, y)
        """
        tile = self._soil(x, y)
        if tile is None:
            return False
        now = self.clock()
        self._checkpoint(tile, now)
        tile.watered = True
        tile.wateredAt = now
        self._touched(x, y, tile)
        return True

    def fertilize(self, x: int, y: int) -> bool:
        tile = self._soil(x, y)
        if tile is None:
            return False
        now = self.clock()
        self._checkpoint(tile, now)
        tile.fertilized = True
        tile.fertilizedAt = now
        tile.fertilizerUsed = 0
        tile.fertilizerMax = self._fertilizer_max
        self._touched(x, y, tile)
        return True

    def water_crop(self, x: int, y: int) -> bool:
        if not self.water(x, y):
            return False
        self.bus.publish(CropWatered(timestamp=self.clock(), x=x, y=y))
        return True

    def fertilize_crop(self, x: int, y: int) -> bool:
        if not self.fertilize(x, y):
            return False
        self.bus.publish(CropFertilized(timestamp=self.clock(), x=x, y=y))
        return True

    # ========== harvest ==========

    def _reward(self, base: int, mature: bool, watered: bool, fertilized: bool) -> int:
        # whole percents keep the floor exact: floor(20 * 1.20) must be 24
        maturity = 100 if mature else round(self.config.immature_harvest_ratio * 100)
        water = 100 + (round(self.config.harvest_water_bonus * 100) if watered else 0)
        fertilizer = 100 + (round(self.config.harvest_fertilizer_bonus * 100) if fertilized else 0)
        return base * maturity * water * fertilizer // 1_000_000

    def harvest(self, x: int, y: int) -> HarvestResult:
        """
        Remove the crop at (x, y) and work out its reward

        Growth is brought up to date first. Immature crops pay a reduced
        reward; active water and fertilizer each add their bonus.

        Args:
            x: tile x coordinate
            y: tile y coordinate

        Returns:
            HarvestResult; success is False when there is no crop
        """
        tile = self._soil(x, y)
        if tile is None or tile.crop is None:
            return HarvestResult(success=False, reason="no crop to harvest")

        self.update_crop_growth(x, y)
        crop = tile.crop
        spec = self.config.crop(crop.cropType)
        mature = crop.is_mature
        watered = self.is_watered(x, y)
        fertilized = self.is_fertilized(x, y)
        reward = self._reward(spec.reward if spec else 0, mature, watered, fertilized)

        tile.crop = None
        self._touched(x, y, tile)
        self.bus.publish(CropHarvested(
            timestamp=self.clock(), x=x, y=y, crop_type=crop.cropType, reward=reward, was_mature=mature,
        ))
        logger.debug(f"harvested {crop.cropType} at {x},{y} for {reward}")
        return HarvestResult(
            success=True, reward=reward, crop_type=crop.cropType,
            was_mature=mature, watered=watered, fertilized=fertilized,
        )

    # ========== sweep ==========

    def update_all_effects(self) -> int:
        """Expire stale water everywhere; returns how many tiles were cleared."""
        expired = 0
        for x, y, tile in self.tiles.items():
            if isinstance(tile, SoilTile) and tile.watered and not self.is_watered(x, y):
                expired += 1
        return expired

    def update_all_crops(self) -> BatchUpdateResult:
        """
        Growth sweep over the whole world

        Returns:
            how many crops advanced a stage and how many water effects expired
        """
        expired = self.update_all_effects()
        updated = 0
        for x, y, _ in self.all_crop_tiles():
            if self.update_crop_growth(x, y):
                updated += 1
        result = BatchUpdateResult(crops_updated=updated, effects_expired=expired)
        if result.changed:
            logger.debug(f"growth sweep: {updated} crop(s) advanced, {expired} effect(s) expired")
        return result

    # ========== queries ==========

    def get_crop_info(self, x: int, y: int) -> Optional[CropInfo]:
        tile = self._soil(x, y)
        if tile is None or tile.crop is None:
            return None
        self.update_crop_growth(x, y)
        crop = tile.crop
        spec = self.config.crop(crop.cropType)
        watered = self.is_watered(x, y)
        fertilized = self.is_fertilized(x, y)
        multiplier = 1.0 + (self._water_bonus if watered else 0.0) + (self._fertilizer_bonus if fertilized else 0.0)
        return CropInfo(
            crop_type=crop.cropType,
            name=spec.name if spec else crop.cropType,
            stage=crop.stage,
            max_stages=crop.maxStages,
            progress=crop.stage / (crop.maxStages - 1),
            is_mature=crop.is_mature,
            status="mature" if crop.is_mature else "growing",
            time_elapsed=max(0, self.clock() - crop.plantedAt) // 1000,
            expected_reward=self._reward(spec.reward if spec else 0, crop.is_mature, watered, fertilized),
            watered=watered,
            fertilized=fertilized,
            growth_multiplier=multiplier,
        )

    def all_tiles(self) -> List[Tuple[int, int, Tile]]:
        return list(self.tiles.items())

    def all_crop_tiles(self) -> List[Tuple[int, int, SoilTile]]:
        return [(x, y, t) for x, y, t in self.tiles.items() if isinstance(t, SoilTile) and t.crop is not None]

    def tile_statistics(self) -> TileStatistics:
        stats = TileStatistics()
        for x, y, tile in self.tiles.items():
            stats.total_tiles += 1
            if isinstance(tile, RoadTile):
                stats.road_tiles += 1
                continue
            stats.soil_tiles += 1
            if self.is_watered(x, y):
                stats.watered_tiles += 1
            if self.is_fertilized(x, y):
                stats.fertilized_tiles += 1
            if tile.crop is not None:
                stats.crops_planted += 1
                if tile.crop.is_mature:
                    stats.mature_crops += 1
        return stats

    def crop_statistics(self) -> CropStatistics:
        stats = CropStatistics()
        total_progress = 0.0
        for x, y, _ in self.all_crop_tiles():
            info = self.get_crop_info(x, y)
            stats.total_crops += 1
            stats.crops_by_type[info.crop_type] = stats.crops_by_type.get(info.crop_type, 0) + 1
            if info.is_mature:
                stats.mature_crops += 1
            else:
                stats.growing_crops += 1
            if info.watered:
                stats.watered_crops += 1
            if info.fertilized:
                stats.fertilized_crops += 1
            total_progress += info.progress
            stats.total_expected_value += info.expected_reward
        if stats.total_crops:
            stats.average_progress = total_progress / stats.total_crops
        return stats

    # ========== bulk ==========

    def replace_tiles(self, tiles: Dict[str, Tile]):
        """Swap in a whole tile map (load path). No events."""
        self.tiles.replace(tiles)

    def clear(self):
        self.tiles.clear()
