import math

import pytest

from tilefarm.area.logic import AreaLogic
from tilefarm.economy.logic import Economy
from tilefarm.events.models import EventKind
from tilefarm.state.manager import BALANCE_SET, StateManager, StateValidator, clone_state
from tilefarm.tools.logic import ToolLogic
from tilefarm.world.models import Area, RoadTile, SoilTile


@pytest.fixture
def economy(bus, config, clock):
    return Economy(bus, config, clock)


@pytest.fixture
def state(bus, economy, config, clock):
    return StateManager(bus, economy, config, clock)


@pytest.fixture
def areas(bus, config, clock, state):
    areas = AreaLogic(bus, config, clock)
    state.set_areas_map(areas.areas.as_dict())
    return areas


def test_initial_snapshot(state):
    assert state.get_economy_balance() == 300
    assert state.state.ui.scale == 1.0
    assert state.get_selected_tool() is None
    assert state.validate_current_state()


@pytest.mark.parametrize("kwargs", [
    {"scale": 0},
    {"scale": -1},
    {"scale": 11},
    {"scale": math.inf},
    {"offset_x": math.inf},
    {"offset_y": math.nan},
])
def test_invalid_camera_update_is_rejected(state, kwargs):
    before = state.state
    assert state.update_camera(**kwargs) is False
    assert state.state is before
    assert state.state.ui.scale == 1.0
    assert state.state.ui.offset_x == 0.0


def test_camera_update_commits(state):
    before = state.state
    assert state.update_camera(offset_x=10, offset_y=-4, scale=2)
    assert state.state is not before
    assert before.ui.scale == 1.0
    assert (state.state.ui.offset_x, state.state.ui.offset_y, state.state.ui.scale) == (10, -4, 2)


def test_mouse_state(state):
    assert state.update_mouse_state(is_dragging=True, tile_x=3, tile_y=-2)
    ui = state.state.ui
    assert ui.is_dragging and (ui.tile_x, ui.tile_y) == (3, -2)


def test_set_coins(state, economy, recorder):
    assert state.set_coins(-5) is False
    assert economy.balance == 300
    assert state.get_economy_balance() == 300

    assert state.set_coins(1000)
    assert economy.balance == 1000
    assert economy.history == []
    assert state.get_economy_balance() == 1000
    assert state.state.statistics.coins_earned == 0
    event = recorder.of(EventKind.COINS_CHANGED)[-1]
    assert event.reason == BALANCE_SET and event.delta == 700


def test_coins_follow_the_economy(state, economy):
    economy.spend(40, "seeds")
    economy.earn(15, "harvest")
    assert state.get_economy_balance() == 275
    assert state.state.statistics.coins_spent == 40
    assert state.state.statistics.coins_earned == 15
    assert state.spend_coins(500) is False
    assert state.can_afford(275)
    assert not state.can_afford(276)


def test_tiles_follow_the_farm(state, farm):
    farm.set_tile_kind(0, 0, "soil")
    tile = state.get_tile(0, 0)
    assert isinstance(tile, SoilTile)
    assert tile is not farm.get_tile(0, 0)

    farm.plant(0, 0, "wheat")
    assert state.get_tile(0, 0).crop.cropType == "wheat"
    assert state.state.statistics.crops_planted == 1

    farm.set_tile_kind(0, 0, "road")
    assert isinstance(state.get_tile(0, 0), RoadTile)

    farm.remove_tile(0, 0)
    assert state.get_tile(0, 0) is None


def test_committed_snapshot_is_not_mutated_by_later_changes(state, farm):
    farm.set_tile_kind(0, 0, "soil")
    snapshot = state.state
    seen = state.get_tile(0, 0)
    farm.water(0, 0)
    assert seen.watered is False
    assert snapshot.world.tiles["0,0"].watered is False
    assert state.get_tile(0, 0).watered is True


def test_crop_progress_and_fertilizer_usage(state, farm, clock):
    farm.set_tile_kind(0, 0, "soil")
    farm.fertilize(0, 0)
    assert state.get_fertilizer_usage(0, 0) == (0, 3)
    farm.plant(0, 0, "wheat")
    assert state.get_fertilizer_usage(0, 0) == (1, 3)
    assert state.get_crop_progress(0, 0) == 0.0
    assert state.get_crop_progress(5, 5) is None


def test_harvest_statistics(state, farm, economy, clock):
    farm.set_tile_kind(0, 0, "soil")
    farm.plant(0, 0, "wheat")
    clock.advance(25000)
    result = farm.harvest(0, 0)
    assert result.reward == 20
    assert state.state.statistics.crops_harvested == 1
    assert state.state.statistics.harvest_income == 20


def test_areas_follow_unlocks(state, areas):
    assert state.is_tile_unlocked(0, 0)
    assert not state.is_tile_unlocked(12, 0)
    areas.unlock_area(1, 0)
    assert state.get_area(1, 0).unlocked
    assert state.is_tile_unlocked(12, 0)
    assert not state.is_tile_unlocked(24, 0)
    assert state.state.statistics.areas_unlocked == 1


def test_tool_selection_stays_in_sync(bus, config, clock, state):
    tools = ToolLogic(bus, config, clock)
    tools.select_tool("wheat")
    assert state.get_selected_tool() == "wheat"
    assert state.update_selected_tool("road")
    assert tools.selected == "road"


def test_unknown_tool_is_refused_on_both_sides(bus, economy, config, clock):
    tools = ToolLogic(bus, config, clock)
    state = StateManager(bus, economy, config, clock, tool_validator=tools.is_valid_tool)
    assert state.update_selected_tool("wheat")

    assert state.update_selected_tool("bogus") is False
    assert state.get_selected_tool() == "wheat"
    assert tools.selected == "wheat"

    assert tools.select_tool("bogus") is False
    assert state.get_selected_tool() == "wheat"

    assert state.load_snapshot({}, {"0,0": Area(x=0, y=0, unlocked=True)}, 5, selected_tool="bogus")
    assert state.get_selected_tool() is None


def test_load_snapshot(state):
    tiles = {"2,3": SoilTile(), "-1,0": RoadTile()}
    origin = {"0,0": Area(x=0, y=0, unlocked=True)}
    assert state.load_snapshot(tiles, origin, 77, offset_x=5, scale=1.5, selected_tool="soil")
    assert state.get_economy_balance() == 77
    assert isinstance(state.get_tile(-1, 0), RoadTile)
    assert state.get_selected_tool() == "soil"
    assert state.state.ui.scale == 1.5


@pytest.mark.parametrize("tiles,areas,coins", [
    ({"a,b": SoilTile()}, {}, 10),
    ({}, {"0,0": Area(x=1, y=0)}, 10),
    ({}, {}, -1),
])
def test_bad_snapshot_is_rejected(state, tiles, areas, coins):
    before = state.state
    assert state.load_snapshot(tiles, areas, coins) is False
    assert state.state is before


def test_validator_reports_errors(state):
    bad = clone_state(state.state)
    bad.world.tiles["1,2,3"] = SoilTile()
    errors = StateValidator.validate(bad)
    assert any("1,2,3" in e for e in errors)
    assert StateValidator.is_valid(state.state)


def test_reset_and_duration(state, economy, clock):
    economy.spend(100)
    state.update_camera(scale=3)
    clock.advance(500)
    assert state.game_duration() == 500
    assert state.reset_state()
    assert state.state.ui.scale == 1.0
    assert state.get_economy_balance() == 200
    assert state.game_duration() == 0


def test_summary(state, farm):
    farm.set_tile_kind(0, 0, "soil")
    farm.set_tile_kind(1, 0, "road")
    summary = state.summary()
    assert summary["tiles"] == 2
    assert summary["soil_tiles"] == 1
    assert summary["road_tiles"] == 1
    assert summary["coins"] == 300
    assert summary["selected_tool"] is None


def test_detach_stops_syncing(state, farm):
    state.detach()
    farm.set_tile_kind(0, 0, "soil")
    assert state.get_tile(0, 0) is None
