import asyncio

import pytest

from tilefarm.common.config_manager import ConfigManager
from tilefarm.events.models import EventKind
from tilefarm.game import FarmGame
from tilefarm.world.models import RoadTile, SoilTile

from conftest import EventRecorder


@pytest.fixture
def game(config, clock, dm):
    return FarmGame(config=config, clock=clock, data_manager=dm)


@pytest.fixture
def events(game):
    return EventRecorder(game.bus)


def test_needs_a_tool(game):
    outcome = game.use_tool(0, 0)
    assert not outcome.success
    assert outcome.reason == "no tool selected"
    unknown = game.use_tool(0, 0, "hoe")
    assert not unknown.success and "unknown tool" in unknown.reason


def test_tool_costs(game):
    game.select_tool("soil")
    assert game.use_tool(0, 0).cost == 3
    assert game.get_balance() == 297
    assert game.use_tool(1, 0, "road").cost == 8
    assert game.use_tool(0, 0, "wheat").cost == 12
    assert game.use_tool(0, 0, "water").cost == 5
    assert game.use_tool(0, 0, "fertilize").cost == 15
    assert game.get_balance() == 300 - 3 - 8 - 12 - 5 - 15
    assert game.economy.balance == game.get_balance()
    assert [e.reason for e in game.economy.history] == [
        "purchased Soil", "purchased Road", "purchased Wheat", "purchased Water", "purchased Fertilize",
    ]
    assert isinstance(game.get_tile(0, 0), SoilTile)
    assert isinstance(game.get_tile(1, 0), RoadTile)
    assert game.get_tile(0, 0).crop.cropType == "wheat"


@pytest.mark.parametrize("setup,x,tool_id,reason", [
    ([], 0, "wheat", "crops need soil"),
    ([(0, "road")], 0, "wheat", "crops need soil"),
    ([(0, "soil")], 0, "soil", "tile is already soil"),
    ([(0, "soil"), (0, "wheat")], 0, "corn", "tile already has a crop"),
    ([(0, "soil")], 0, "harvest", "nothing to harvest"),
    ([(0, "road")], 0, "water", "can only water soil"),
    ([], 0, "fertilize", "can only fertilize soil"),
    ([], 12, "soil", "tile is in a locked area"),
    ([], -1, "soil", "tile is in a locked area"),
])
def test_refused_actions_never_touch_the_ledger(game, setup, x, tool_id, reason):
    for sx, sid in setup:
        assert game.use_tool(sx, 0, sid).success
    balance = game.get_balance()
    entries = len(game.economy.history)

    outcome = game.use_tool(x, 0, tool_id)
    assert not outcome.success
    assert outcome.reason == reason
    assert game.get_balance() == balance
    assert len(game.economy.history) == entries


def test_insufficient_funds(clock, dm):
    game = FarmGame(config=ConfigManager({"starting_coins": 10}), clock=clock, data_manager=dm)
    assert game.use_tool(0, 0, "soil").success
    outcome = game.use_tool(0, 0, "wheat")
    assert not outcome.success
    assert "cannot afford" in outcome.reason
    assert game.get_balance() == 7
    assert len(game.economy.history) == 1
    assert game.get_tile(0, 0).crop is None
    assert game.tools.usage_stats("wheat").failure_count == 1


def test_grow_and_harvest(game, clock, events):
    game.use_tool(0, 0, "soil")
    game.use_tool(0, 0, "wheat")
    clock.advance(25000)
    result = game.update()
    assert result.crops_updated == 1
    assert events.of(EventKind.VIEW_REFRESH)[-1].reason == "growth sweep"
    assert game.get_crop_info(0, 0).is_mature

    outcome = game.use_tool(0, 0, "harvest")
    assert outcome.success and outcome.reward == 20
    assert game.get_balance() == 300 - 3 - 12 + 20
    assert game.economy.history[-1].reason == "harvested wheat"
    assert game.get_tile(0, 0).crop is None
    assert game.state.state.statistics.harvest_income == 20


def test_boosted_harvest(game, clock):
    game.use_tool(0, 0, "soil")
    game.use_tool(0, 0, "fertilize")
    game.use_tool(0, 0, "wheat")
    game.use_tool(0, 0, "water")
    clock.advance(25000)
    assert game.use_tool(0, 0, "harvest").reward == 26


def test_immature_harvest_pays_half(game, clock):
    game.use_tool(0, 0, "soil")
    game.use_tool(0, 0, "wheat")
    clock.advance(1000)
    outcome = game.use_tool(0, 0, "harvest")
    assert outcome.success and outcome.reward == 10


def test_quiet_update(game):
    events = EventRecorder(game.bus)
    assert not game.update().changed
    assert events.of(EventKind.VIEW_REFRESH) == []


def test_area_purchase(game, events):
    far = game.purchase_area(5, 5)
    assert not far.success
    assert far.cost == 1200
    assert "adjacent" in far.reason
    assert game.economy.history == []

    ok = game.purchase_area(1, 0)
    assert ok.success and ok.cost == 300
    assert game.get_balance() == 0
    assert game.state.is_tile_unlocked(12, 0)
    assert game.use_tool(12, 0, "harvest").reason == "nothing to harvest"
    assert events.of(EventKind.VIEW_REFRESH)[-1].reason == "area unlocked"

    again = game.purchase_area(1, 0)
    assert not again.success and again.reason == "area is already unlocked"

    broke = game.purchase_area_at_tile(-1, 0)
    assert not broke.success
    assert (broke.area_x, broke.area_y) == (-1, 0)
    assert "cannot afford" in broke.reason
    assert not game.areas.is_area_unlocked(-1, 0)


def test_hover_tile(game, events):
    game.hover_tile(-1, 5)
    hovered = events.of(EventKind.AREA_HOVERED)[-1]
    assert (hovered.area_x, hovered.area_y, hovered.is_locked) == (-1, 0, True)


def test_reset(clock, dm):
    game = FarmGame(config=ConfigManager({"starting_coins": 1000}), clock=clock, data_manager=dm)
    game.select_tool("soil")
    game.use_tool(0, 0)
    assert game.purchase_area(0, 1).success
    game.reset()

    assert game.get_balance() == 1000
    assert game.farm.get_tile(0, 0) is None
    assert game.get_tile(0, 0) is None
    assert [(a.x, a.y) for a in game.areas.unlocked_areas()] == [(0, 0)]
    assert game.state.get_area(0, 1) is None
    assert game.tools.selected is None

    # engines and state are still wired after a reset
    game.use_tool(0, 0, "soil")
    assert isinstance(game.get_tile(0, 0), SoilTile)
    assert game.get_balance() == 997


def test_statistics_and_report(game, clock):
    game.use_tool(0, 0, "soil")
    game.use_tool(0, 0, "wheat")
    stats = game.statistics()
    assert stats["tiles"]["soil_tiles"] == 1
    assert stats["crops"]["total_crops"] == 1
    assert stats["economy"]["total_expenses"] == 15
    assert stats["areas"]["unlocked_areas"] == 1
    assert stats["summary"]["crops"] == 1

    report = game.status_report()
    assert "Wheat" in report
    assert "purchased Wheat" in report
    assert "Coins: <b>285</b>" in report


def test_run_loop_sweeps_and_autosaves(clock, dm):
    config = ConfigManager({"growth_update_interval_ms": 10, "autosave_interval_ms": 0})
    game = FarmGame(config=config, clock=clock, data_manager=dm)
    game.use_tool(0, 0, "soil")
    game.use_tool(0, 0, "wheat")
    clock.advance(25000)

    async def scenario():
        stop = asyncio.Event()

        async def stopper():
            await asyncio.sleep(0.05)
            stop.set()

        task = asyncio.ensure_future(stopper())
        await game.run(stop_event=stop, slot="loop")
        await task

    asyncio.run(scenario())
    assert game.farm.is_crop_mature(0, 0)
    assert game.saves.has_save("loop")
    assert game.saves.get_save_info("loop").tiles == 1


def test_unknown_tool_keeps_selection(game):
    assert game.select_tool("soil")
    assert game.state.update_selected_tool("bogus") is False
    assert game.select_tool("bogus") is False
    assert game.state.get_selected_tool() == "soil"
    assert game.tools.selected == "soil"
    assert game.use_tool(0, 0).success
