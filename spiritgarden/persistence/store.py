from __future__ import annotations
import copy
import dataclasses
import logging
from typing import Optional, Tuple

from spiritgarden.config import DEFAULT_CONFIG, GameConfig
from spiritgarden.data.catalog import SpiritCatalog
from spiritgarden.models import GameSave, InventoryEntry, PlacedSpirit
from spiritgarden.persistence.io import BlobStore, decode_save, default_save, encode_save, rehydrate_save
from spiritgarden.utils import Clock, wall_clock_ms

logger = logging.getLogger(__name__)


class GameStateStore:
    """
    Owns the single mutable save record and its load/persist cycle.

    Engines read through the accessors and change state only through the
    mutators below; get_state() hands out a detached copy.
    """

    def __init__(
        self,
        blobs: BlobStore,
        config: GameConfig = DEFAULT_CONFIG,
        clock: Clock = wall_clock_ms,
        catalog: Optional[SpiritCatalog] = None,
    ):
        self.blobs = blobs
        self.config = config
        self.clock = clock
        self.catalog = catalog
        self._state: GameSave = self.load()

    # ==========================================================================
    #  Load / Save
    # ==========================================================================

    def load(self) -> GameSave:
        """Read the record from the blob store. Never raises; falls back to defaults."""
        now = self.clock()
        try:
            data = self.blobs.get(self.config.save_key)
        except OSError as e:
            logger.error(f"Could not read save '{self.config.save_key}' ({e}). Starting new garden.")
            return default_save(self.config, now)

        if data is None:
            return default_save(self.config, now)

        try:
            raw = decode_save(data)
        except (ValueError, UnicodeDecodeError, RecursionError) as e:
            logger.error(f"Save data corrupt or incompatible ({e}). Starting new garden.")
            return default_save(self.config, now)

        return rehydrate_save(raw, self.config, now, self.catalog)

    def save(self) -> bool:
        """Stamp lastSaveTime and write. Failures are logged, not raised."""
        self._state.last_save_time = self.clock()
        try:
            ok = self.blobs.set(self.config.save_key, encode_save(self._state))
        except OSError as e:
            logger.error(f"Failed to save: {e}")
            return False
        if not ok:
            logger.error(f"Failed to save: blob store rejected key '{self.config.save_key}'.")
        return bool(ok)

    def reset(self) -> None:
        """Throw away progress and persist a fresh record."""
        self._state = default_save(self.config, self.clock())
        self.save()

    # ==========================================================================
    #  Whole-record access
    # ==========================================================================

    def get_state(self) -> GameSave:
        return copy.deepcopy(self._state)

    def update_state(self, **changes) -> None:
        """Shallow merge: fields not named keep their values."""
        self._state = dataclasses.replace(self._state, **changes)

    @property
    def essence(self) -> float:
        return self._state.essence

    @property
    def gems(self) -> int:
        return self._state.gems

    @property
    def unlocked_cells(self) -> int:
        return self._state.unlocked_cells

    @property
    def total_summons(self) -> int:
        return self._state.total_summons

    @property
    def last_save_time(self) -> int:
        return self._state.last_save_time

    @property
    def placed_spirits(self) -> Tuple[PlacedSpirit, ...]:
        return tuple(self._state.placed_spirits)

    @property
    def inventory(self) -> Tuple[InventoryEntry, ...]:
        return tuple(self._state.inventory)

    # ==========================================================================
    #  Resources
    # ==========================================================================

    def add_essence(self, amount: float) -> None:
        if amount < 0:
            raise ValueError(f"add_essence() needs a non-negative amount, got {amount}")
        self._state.essence += amount
        self._state.total_essence_earned += amount

    def spend_essence(self, amount: float) -> bool:
        if self._state.essence >= amount:
            self._state.essence -= amount
            return True
        return False

    def add_gems(self, amount: int) -> None:
        if amount < 0:
            raise ValueError(f"add_gems() needs a non-negative amount, got {amount}")
        self._state.gems += int(amount)

    def spend_gems(self, amount: int) -> bool:
        if self._state.gems >= amount:
            self._state.gems -= int(amount)
            return True
        return False

    def increment_summons(self, count: int = 1) -> None:
        self._state.total_summons += count

    # ==========================================================================
    #  Inventory
    # ==========================================================================

    def _inventory_index(self, spirit_id: str) -> int:
        for i, entry in enumerate(self._state.inventory):
            if entry.spirit_id == spirit_id:
                return i
        return -1

    def add_to_inventory(self, spirit_id: str, count: int = 1) -> None:
        if count <= 0:
            return
        idx = self._inventory_index(spirit_id)
        if idx >= 0:
            entry = self._state.inventory[idx]
            self._state.inventory[idx] = InventoryEntry(spirit_id, entry.count + count)
        else:
            self._state.inventory.append(InventoryEntry(spirit_id, count))

    def remove_from_inventory(self, spirit_id: str) -> bool:
        """Take exactly one unit; the entry disappears when it hits zero."""
        idx = self._inventory_index(spirit_id)
        if idx < 0 or self._state.inventory[idx].count <= 0:
            return False
        newq = self._state.inventory[idx].count - 1
        if newq > 0:
            self._state.inventory[idx] = InventoryEntry(spirit_id, newq)
        else:
            del self._state.inventory[idx]
        return True

    def get_inventory_count(self, spirit_id: str) -> int:
        idx = self._inventory_index(spirit_id)
        return self._state.inventory[idx].count if idx >= 0 else 0

    def owns(self, spirit_id: str) -> bool:
        """True if the spirit sits in the inventory or on the grid."""
        if self.get_inventory_count(spirit_id) > 0:
            return True
        return any(p.spirit_id == spirit_id for p in self._state.placed_spirits)

    # ==========================================================================
    #  Placed spirits
    # ==========================================================================

    def place_spirit(self, spirit: PlacedSpirit) -> None:
        """Caller has already checked the cell and taken the inventory unit."""
        self._state.placed_spirits.append(spirit)

    def remove_spirit_by_id(self, instance_id: str) -> Optional[PlacedSpirit]:
        for i, p in enumerate(self._state.placed_spirits):
            if p.id == instance_id:
                return self._state.placed_spirits.pop(i)
        return None

    def get_spirit_by_id(self, instance_id: str) -> Optional[PlacedSpirit]:
        return next((p for p in self._state.placed_spirits if p.id == instance_id), None)

    def get_spirit_at(self, x: int, y: int) -> Optional[PlacedSpirit]:
        return next(
            (p for p in self._state.placed_spirits if p.grid_x == x and p.grid_y == y),
            None,
        )

    def update_spirit(self, instance_id: str, **changes) -> Optional[PlacedSpirit]:
        """Swap a placed instance for a copy with `changes` applied, keeping its slot."""
        for i, p in enumerate(self._state.placed_spirits):
            if p.id == instance_id:
                updated = dataclasses.replace(p, **changes)
                self._state.placed_spirits[i] = updated
                return updated
        return None
