from __future__ import annotations
import logging
import math
from typing import Mapping, Optional

from spiritgarden.config import GameConfig
from spiritgarden.data.catalog import RARITY_MULTIPLIERS, SpiritCatalog
from spiritgarden.models import Rarity
from spiritgarden.persistence.store import GameStateStore

logger = logging.getLogger(__name__)

# ==============================================================================
#  Cost curves
# ==============================================================================

def upgrade_cost(
    rarity: Rarity,
    level: int,
    config: GameConfig,
    multipliers: Mapping[Rarity, float] = RARITY_MULTIPLIERS,
) -> int:
    """Price of going from `level` to `level + 1`."""
    rarity_mult = multipliers.get(rarity, 1.0)
    level_mult = config.upgrade_cost_multiplier ** (level - 1)
    return math.floor(config.upgrade_base_cost * rarity_mult * level_mult)

def expand_cost(unlocked_cells: int, config: GameConfig) -> int:
    """Price of unlocking one more cell when `unlocked_cells` are open."""
    expansions = unlocked_cells - config.starting_grid_size
    return math.floor(config.expand_base_cost * config.expand_cost_multiplier ** expansions)

# ==============================================================================
#  Actions
# ==============================================================================

class ProgressionService:
    """Spirit levelling and garden expansion."""

    def __init__(self, store: GameStateStore, catalog: SpiritCatalog, config: GameConfig):
        self.store = store
        self.catalog = catalog
        self.config = config

    def next_upgrade_cost(self, instance_id: str) -> Optional[int]:
        """None when the spirit is maxed, gone, or no longer in the catalog."""
        placed = self.store.get_spirit_by_id(instance_id)
        if placed is None or placed.level >= self.config.max_spirit_level:
            return None
        spirit = self.catalog.get_by_id(placed.spirit_id)
        if spirit is None:
            return None
        return upgrade_cost(spirit.rarity, placed.level, self.config)

    def upgrade_spirit(self, instance_id: str) -> bool:
        cost = self.next_upgrade_cost(instance_id)
        if cost is None:
            return False
        if not self.store.spend_essence(cost):
            return False

        placed = self.store.get_spirit_by_id(instance_id)
        self.store.update_spirit(instance_id, level=placed.level + 1)
        self.store.save()
        logger.debug(f"Upgraded {placed.spirit_id} ({instance_id}) to level {placed.level + 1} for {cost}.")
        return True

    def next_expansion_cost(self) -> Optional[int]:
        if self.store.unlocked_cells >= self.config.max_grid_size:
            return None
        return expand_cost(self.store.unlocked_cells, self.config)

    def expand_garden(self) -> bool:
        cost = self.next_expansion_cost()
        if cost is None:
            return False
        if not self.store.spend_essence(cost):
            return False

        self.store.update_state(unlocked_cells=self.store.unlocked_cells + 1)
        self.store.save()
        return True
