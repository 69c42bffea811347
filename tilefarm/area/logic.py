import logging
from typing import Dict, List, Optional, Tuple

from ..common.clock import Clock, now_ms
from ..common.config_manager import ConfigManager
from ..events.bus import EventBus
from ..events.models import AreaHovered, AreaUnlocked
from ..world.models import Area
from ..world.store import KeyedStore
from .models import AreaBounds, AreaPurchaseResult, AreaStatistics

logger = logging.getLogger(__name__)

NEIGHBOR_OFFSETS = ((0, -1), (1, 0), (0, 1), (-1, 0))


class AreaLogic:
    """
    Area engine

    The world is cut into ``area_size`` x ``area_size`` squares addressed by
    area coordinates. The origin is always unlocked; any other area can only
    be unlocked next to an already unlocked one, so the unlocked region stays
    orthogonally connected to the origin. Absent records are locked.
    """

    def __init__(self, bus: EventBus, config: Optional[ConfigManager] = None, clock: Optional[Clock] = None):
        self.bus = bus
        self.config = config or ConfigManager()
        self.clock = clock or now_ms
        self.size = self.config.area_size
        self.base_cost = self.config.area_base_cost
        self.distance_multiplier = self.config.area_distance_multiplier
        self.areas: KeyedStore[Area] = KeyedStore()
        self._unlock_origin()

    def _unlock_origin(self):
        self.areas.set(0, 0, Area(x=0, y=0, unlocked=True, unlockedAt=self.clock(), costPaid=0))

    # ========== coordinates ==========

    def tile_area(self, tx: int, ty: int) -> Tuple[int, int]:
        """
        Area containing a tile

        Args:
            tx: tile x coordinate
            ty: tile y coordinate

        Returns:
            (area_x, area_y)
        """
        # floor division keeps tile -1 in area -1, not area 0
        return tx // self.size, ty // self.size

    def tile_local_coordinates(self, tx: int, ty: int) -> Tuple[int, int]:
        return tx % self.size, ty % self.size

    def area_bounds(self, ax: int, ay: int) -> AreaBounds:
        return AreaBounds(
            min_x=ax * self.size,
            min_y=ay * self.size,
            max_x=(ax + 1) * self.size - 1,
            max_y=(ay + 1) * self.size - 1,
        )

    # ========== lookup ==========

    def get_area(self, ax: int, ay: int) -> Optional[Area]:
        return self.areas.get(ax, ay)

    def get_or_create_area(self, ax: int, ay: int) -> Area:
        area = self.areas.get(ax, ay)
        if area is None:
            area = Area(x=ax, y=ay)
            self.areas.set(ax, ay, area)
        return area

    def is_area_unlocked(self, ax: int, ay: int) -> bool:
        area = self.areas.get(ax, ay)
        return area is not None and area.unlocked

    def is_tile_unlocked(self, tx: int, ty: int) -> bool:
        return self.is_area_unlocked(*self.tile_area(tx, ty))

    # ========== purchase ==========

    def area_cost(self, ax: int, ay: int) -> int:
        """Base cost plus the Manhattan distance from the origin times the multiplier."""
        return self.base_cost + (abs(ax) + abs(ay)) * self.distance_multiplier

    def has_unlocked_neighbor(self, ax: int, ay: int) -> bool:
        return any(self.is_area_unlocked(ax + dx, ay + dy) for dx, dy in NEIGHBOR_OFFSETS)

    def can_purchase_area(self, ax: int, ay: int) -> AreaPurchaseResult:
        """
        Check whether an area may be bought. Funds are not checked here.

        Args:
            ax: area x coordinate
            ay: area y coordinate

        Returns:
            AreaPurchaseResult with the cost and, when refused, the reason
        """
        cost = self.area_cost(ax, ay)
        if self.is_area_unlocked(ax, ay):
            return AreaPurchaseResult(can_purchase=False, cost=cost, reason="area is already unlocked")
        if not self.has_unlocked_neighbor(ax, ay):
            return AreaPurchaseResult(
                can_purchase=False, cost=cost,
                reason="area must be adjacent to an unlocked area",
            )
        return AreaPurchaseResult(can_purchase=True, cost=cost)

    def unlock_area(self, ax: int, ay: int, cost_paid: Optional[int] = None) -> bool:
        """
        Mark an eligible area unlocked. Funds are the caller's business.

        Args:
            ax: area x coordinate
            ay: area y coordinate
            cost_paid: recorded on the area; defaults to area_cost

        Returns:
            False when the area is already unlocked or not adjacent
        """
        check = self.can_purchase_area(ax, ay)
        if not check.can_purchase:
            logger.debug(f"unlock of area {ax},{ay} refused: {check.reason}")
            return False
        paid = check.cost if cost_paid is None else cost_paid
        area = self.get_or_create_area(ax, ay)
        area.unlocked = True
        area.unlockedAt = self.clock()
        area.costPaid = paid
        self.bus.publish(AreaUnlocked(timestamp=area.unlockedAt, area_x=ax, area_y=ay, cost=paid))
        logger.info(f"area {ax},{ay} unlocked for {paid}")
        return True

    def hover_area(self, ax: int, ay: int):
        self.bus.publish(AreaHovered(
            timestamp=self.clock(), area_x=ax, area_y=ay, is_locked=not self.is_area_unlocked(ax, ay),
        ))

    # ========== queries ==========

    def unlocked_areas(self) -> List[Area]:
        return [a for _, _, a in self.areas.items() if a.unlocked]

    def purchasable_areas(self) -> List[Tuple[int, int]]:
        """Locked areas next to the unlocked region, cheapest first. Creates no records."""
        found = set()
        for area in self.unlocked_areas():
            for dx, dy in NEIGHBOR_OFFSETS:
                pos = (area.x + dx, area.y + dy)
                if not self.is_area_unlocked(*pos):
                    found.add(pos)
        return sorted(found, key=lambda p: (self.area_cost(*p), p))

    def cheapest_purchasable_area(self) -> Optional[Tuple[int, int, int]]:
        candidates = self.purchasable_areas()
        if not candidates:
            return None
        ax, ay = candidates[0]
        return ax, ay, self.area_cost(ax, ay)

    def statistics(self) -> AreaStatistics:
        unlocked = self.unlocked_areas()
        cheapest = self.cheapest_purchasable_area()
        return AreaStatistics(
            total_areas=len(self.areas),
            unlocked_areas=len(unlocked),
            locked_areas=len(self.areas) - len(unlocked),
            purchasable_areas=len(self.purchasable_areas()),
            total_spent=sum(a.costPaid or 0 for a in unlocked),
            next_cheapest_cost=cheapest[2] if cheapest else None,
        )

    # ========== bulk ==========

    def replace_areas(self, areas: Dict[str, Area]):
        """Swap in a whole area map (load path). The origin stays unlocked."""
        self.areas.replace(areas)
        if not self.is_area_unlocked(0, 0):
            self._unlock_origin()

    def reset(self):
        self.areas.clear()
        self._unlock_origin()
