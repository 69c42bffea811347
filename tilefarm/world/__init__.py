from .models import Area, PlantedCrop, RoadTile, SoilTile, Tile, TileAdapter, TileKind, new_tile
from .store import KeyedStore, parse_key, tile_key
