import pytest
from pydantic import ValidationError

from tilefarm.world.models import Area, PlantedCrop, RoadTile, SoilTile, TileAdapter, TileKind, new_tile
from tilefarm.world.store import KeyedStore, parse_key, tile_key


def test_key_encoding_round_trip_with_negatives():
    assert tile_key(3, -7) == "3,-7"
    assert parse_key("3,-7") == (3, -7)
    assert parse_key(tile_key(-12, 0)) == (-12, 0)


@pytest.mark.parametrize("bad", ["", "1", "1,2,3", "a,b"])
def test_parse_key_rejects_malformed(bad):
    with pytest.raises(ValueError):
        parse_key(bad)


def test_keyed_store_basics():
    store = KeyedStore()
    assert store.get(0, 0) is None
    store.set(0, 0, "a")
    store.set(-1, 4, "b")
    assert store.has(-1, 4)
    assert len(store) == 2
    assert sorted(store.items()) == [(-1, 4, "b"), (0, 0, "a")]
    assert store.delete(0, 0) is True
    assert store.delete(0, 0) is False
    assert "0,0" not in store


def test_keyed_store_replace_validates_keys():
    store = KeyedStore()
    store.set(1, 1, "x")
    with pytest.raises(ValueError):
        store.replace({"oops": "y"})
    assert store.get(1, 1) == "x"
    store.replace({"2,3": "z"})
    assert store.as_dict() == {"2,3": "z"}


def test_road_tile_cannot_carry_a_crop():
    road = TileAdapter.validate_python({"kind": "road", "crop": {"cropType": "wheat", "plantedAt": 0, "maxStages": 3}})
    assert isinstance(road, RoadTile)
    assert not hasattr(road, "crop")


def test_tile_union_dispatches_on_kind():
    soil = TileAdapter.validate_python({"kind": "soil", "watered": True, "wateredAt": 10})
    assert isinstance(soil, SoilTile)
    assert soil.watered and soil.wateredAt == 10
    with pytest.raises(ValidationError):
        TileAdapter.validate_python({"kind": "lava"})


def test_crop_stage_must_stay_in_range():
    crop = PlantedCrop(cropType="wheat", plantedAt=0, maxStages=3)
    assert crop.anchor == 0
    with pytest.raises(ValidationError):
        crop.stage = 3
    with pytest.raises(ValidationError):
        PlantedCrop(cropType="wheat", plantedAt=0, maxStages=1)


def test_new_tile_kinds():
    assert isinstance(new_tile(TileKind.SOIL), SoilTile)
    assert isinstance(new_tile(TileKind.ROAD), RoadTile)


def test_area_defaults_locked():
    area = Area(x=2, y=-1)
    assert area.unlocked is False
    assert area.unlockedAt is None and area.costPaid is None
