"""
Keyed stores for tiles and areas

Both maps are keyed by the canonical coordinate string "x,y". Negative
coordinates are valid; the world is unbounded.
"""
from typing import Dict, Generic, Iterator, List, Optional, Tuple, TypeVar

T = TypeVar("T")


def tile_key(x: int, y: int) -> str:
    return f"{x},{y}"


def parse_key(key: str) -> Tuple[int, int]:
    """Inverse of tile_key. Raises ValueError on anything else."""
    parts = key.split(",")
    if len(parts) != 2:
        raise ValueError(f"malformed coordinate key: {key!r}")
    return int(parts[0]), int(parts[1])


class KeyedStore(Generic[T]):
    """Dict of records addressed by integer coordinates."""

    def __init__(self):
        self._items: Dict[str, T] = {}

    def get(self, x: int, y: int) -> Optional[T]:
        return self._items.get(tile_key(x, y))

    def has(self, x: int, y: int) -> bool:
        return tile_key(x, y) in self._items

    def set(self, x: int, y: int, item: T):
        self._items[tile_key(x, y)] = item

    def delete(self, x: int, y: int) -> bool:
        return self._items.pop(tile_key(x, y), None) is not None

    def items(self) -> Iterator[Tuple[int, int, T]]:
        # list() so callers may mutate the store while iterating
        for key, item in list(self._items.items()):
            x, y = parse_key(key)
            yield x, y, item

    def values(self) -> List[T]:
        return list(self._items.values())

    def replace(self, items: Dict[str, T]):
        for key in items:
            parse_key(key)
        self._items = dict(items)

    def as_dict(self) -> Dict[str, T]:
        return dict(self._items)

    def clear(self):
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, key: str) -> bool:
        return key in self._items
