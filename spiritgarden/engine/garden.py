from __future__ import annotations
import uuid
from typing import List, Optional, Tuple

from spiritgarden.config import GameConfig
from spiritgarden.models import PlacedSpirit
from spiritgarden.persistence.store import GameStateStore
from spiritgarden.utils import Clock, wall_clock_ms


class Garden:
    """The grid: which cells are open, and moving spirits on and off it."""

    def __init__(self, store: GameStateStore, config: GameConfig, clock: Clock = wall_clock_ms):
        self.store = store
        self.config = config
        self.clock = clock

    # --- Grid geometry (row-major) ---

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.config.grid_cols and 0 <= y < self.config.grid_rows

    def cell_index(self, x: int, y: int) -> int:
        return y * self.config.grid_cols + x

    def is_cell_unlocked(self, x: int, y: int) -> bool:
        return self.in_bounds(x, y) and self.cell_index(x, y) < self.store.unlocked_cells

    def empty_unlocked_cells(self) -> List[Tuple[int, int]]:
        cells = []
        for idx in range(min(self.store.unlocked_cells, self.config.grid_cols * self.config.grid_rows)):
            x, y = idx % self.config.grid_cols, idx // self.config.grid_cols
            if self.store.get_spirit_at(x, y) is None:
                cells.append((x, y))
        return cells

    # --- Actions ---

    def _new_instance_id(self) -> str:
        return f"spirit_{self.clock()}_{uuid.uuid4().hex[:9]}"

    def place_from_inventory(self, spirit_id: str, x: int, y: int) -> Optional[PlacedSpirit]:
        """
        Move one copy from the inventory onto (x, y).
        Locked, occupied or unaffordable placements change nothing and return None.
        """
        if not self.is_cell_unlocked(x, y):
            return None
        if self.store.get_spirit_at(x, y) is not None:
            return None
        if not self.store.remove_from_inventory(spirit_id):
            return None

        placed = PlacedSpirit(
            id=self._new_instance_id(),
            spirit_id=spirit_id,
            grid_x=x,
            grid_y=y,
        )
        self.store.place_spirit(placed)
        self.store.save()
        return placed

    def pick_up(self, instance_id: str) -> bool:
        """Take a spirit off the grid and back into the inventory. Its level is lost."""
        removed = self.store.remove_spirit_by_id(instance_id)
        if removed is None:
            return False
        self.store.add_to_inventory(removed.spirit_id)
        self.store.save()
        return True
