# spatial_hash.py
from __future__ import annotations
from typing import Iterable, List, Tuple
from collections import defaultdict
import math

class SpatialHash:
    """
    Uniform grid over the habitat for nearest-agent lookups.
    Rebuilt once per tick; agents that move mid-tick stay in their old cell
    until the next rebuild, so queries pad the search by one cell.
    """

    def __init__(self, world_width: float, world_height: float, cell_size: float = 5.0):
        self.width = world_width
        self.height = world_height
        self.cell_size = cell_size if cell_size > 0 else 5.0
        self.grid: dict[Tuple[int, int], List] = defaultdict(list)

    def clear(self):
        self.grid.clear()

    def _get_cell(self, x: float, y: float) -> Tuple[int, int]:
        return (int(math.floor(x / self.cell_size)), int(math.floor(y / self.cell_size)))

    def insert(self, obj, x: float, y: float):
        self.grid[self._get_cell(x, y)].append(obj)

    def rebuild(self, objects: Iterable):
        """Clear and re-insert every object at its current ``x``/``y``."""
        self.clear()
        for obj in objects:
            self.insert(obj, obj.x, obj.y)

    def query_radius(self, x: float, y: float, radius: float) -> List:
        """
        Candidates near (x, y): everything in the cells overlapping the radius.
        Callers still check exact distance.
        """
        results = []

        cell_radius = int(radius / self.cell_size) + 1
        cx, cy = self._get_cell(x, y)

        for dx in range(-cell_radius, cell_radius + 1):
            for dy in range(-cell_radius, cell_radius + 1):
                cell = (cx + dx, cy + dy)
                if cell in self.grid:
                    results.extend(self.grid[cell])

        return results

    def __len__(self) -> int:
        return sum(len(bucket) for bucket in self.grid.values())
