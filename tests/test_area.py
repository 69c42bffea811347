import inspect
import itertools
import random

import pytest

from tilefarm.area.logic import AreaLogic, NEIGHBOR_OFFSETS
from tilefarm.events.models import EventKind


@pytest.fixture
def areas(bus, config, clock):
    return AreaLogic(bus, config, clock)


def test_origin_unlocked_at_creation(areas):
    origin = areas.get_area(0, 0)
    assert origin.unlocked
    assert origin.costPaid == 0
    assert areas.is_tile_unlocked(0, 0)
    assert areas.is_tile_unlocked(11, 11)
    assert not areas.is_tile_unlocked(12, 0)
    assert not areas.is_tile_unlocked(-1, 0)


def test_tile_to_area_handles_negatives(areas):
    assert areas.tile_area(0, 0) == (0, 0)
    assert areas.tile_area(11, 12) == (0, 1)
    assert areas.tile_area(-1, -12) == (-1, -1)
    assert areas.tile_area(-13, 5) == (-2, 0)
    assert areas.tile_local_coordinates(-1, 13) == (11, 1)


def test_area_bounds(areas):
    b = areas.area_bounds(-1, 2)
    assert (b.min_x, b.min_y, b.max_x, b.max_y) == (-12, 24, -1, 35)


def test_cost_formula(areas):
    assert areas.area_cost(0, 0) == 200
    assert areas.area_cost(1, 0) == 300
    assert areas.area_cost(-2, 3) == 700


def test_cost_depends_only_on_distance(areas):
    before = {(x, y): areas.area_cost(x, y) for x, y in itertools.product(range(-3, 4), repeat=2)}
    areas.unlock_area(1, 0)
    areas.unlock_area(1, 1)
    areas.unlock_area(0, -1)
    after = {(x, y): areas.area_cost(x, y) for x, y in before}
    assert before == after
    for (x, y), cost in before.items():
        assert cost == 200 + (abs(x) + abs(y)) * 100


def test_non_adjacent_purchase_refused(areas):
    result = areas.can_purchase_area(5, 5)
    assert not result.can_purchase
    assert "adjacent" in result.reason
    assert result.cost == 1200
    # diagonal only does not count
    assert not areas.can_purchase_area(1, 1).can_purchase


def test_unlock_adjacent(areas, recorder, clock):
    clock.set(500)
    assert areas.can_purchase_area(0, 1).can_purchase
    assert areas.unlock_area(0, 1, 300)
    area = areas.get_area(0, 1)
    assert area.unlocked and area.unlockedAt == 500 and area.costPaid == 300

    event = recorder.of(EventKind.AREA_UNLOCKED)[0]
    assert (event.area_x, event.area_y, event.cost) == (0, 1, 300)

    # now the diagonal is adjacent to (0,1)
    assert areas.can_purchase_area(1, 1).can_purchase


def test_reunlock_is_noop_failure(areas, recorder):
    assert areas.unlock_area(1, 0)
    assert not areas.unlock_area(1, 0)
    assert not areas.unlock_area(0, 0)
    assert len(recorder.of(EventKind.AREA_UNLOCKED)) == 1
    assert "already" in areas.can_purchase_area(1, 0).reason


def test_unlocked_region_stays_connected(areas):
    rng = random.Random(7)
    for _ in range(200):
        areas.unlock_area(rng.randint(-4, 4), rng.randint(-4, 4))

    unlocked = {(a.x, a.y) for a in areas.unlocked_areas()}
    assert len(unlocked) > 1
    seen, todo = {(0, 0)}, [(0, 0)]
    while todo:
        x, y = todo.pop()
        for dx, dy in NEIGHBOR_OFFSETS:
            n = (x + dx, y + dy)
            if n in unlocked and n not in seen:
                seen.add(n)
                todo.append(n)
    assert seen == unlocked


def test_purchasable_areas_creates_no_records(areas):
    options = areas.purchasable_areas()
    assert set(options) == {(0, -1), (1, 0), (0, 1), (-1, 0)}
    assert len(areas.areas) == 1
    assert areas.cheapest_purchasable_area()[2] == 300


def test_get_or_create_area(areas):
    assert areas.get_area(3, 3) is None
    area = areas.get_or_create_area(3, 3)
    assert not area.unlocked
    assert areas.get_area(3, 3) is area


def test_hover_area(areas, recorder):
    areas.hover_area(0, 0)
    areas.hover_area(2, 0)
    hovered = recorder.of(EventKind.AREA_HOVERED)
    assert [h.is_locked for h in hovered] == [False, True]


def test_statistics_and_reset(areas):
    areas.unlock_area(1, 0, 300)
    stats = areas.statistics()
    assert stats.unlocked_areas == 2
    assert stats.total_spent == 300
    assert stats.purchasable_areas == 6
    assert stats.next_cheapest_cost == 300

    areas.reset()
    assert [(a.x, a.y) for a in areas.unlocked_areas()] == [(0, 0)]


def test_replace_areas_keeps_origin(areas):
    areas.replace_areas({})
    assert areas.is_area_unlocked(0, 0)


@pytest.mark.parametrize("name", ["tile_area", "can_purchase_area", "unlock_area"])
def test_area_operations_document_their_results(name):
    doc = inspect.getdoc(getattr(AreaLogic, name))
    assert doc and "Returns:" in doc
    assert inspect.getdoc(AreaLogic.area_cost)
