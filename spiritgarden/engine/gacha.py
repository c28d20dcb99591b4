from __future__ import annotations
import logging
import random
from typing import Dict, List, Mapping, Optional, Set

from spiritgarden.config import GameConfig
from spiritgarden.data.catalog import RARITY_WEIGHTS, SpiritCatalog
from spiritgarden.models import Rarity, SpiritDef, SummonResult, SummonStats
from spiritgarden.persistence.store import GameStateStore
from spiritgarden.utils import weighted_choice

logger = logging.getLogger(__name__)


class SummonEngine:
    """Weighted-rarity summoning paid for with essence."""

    def __init__(
        self,
        store: GameStateStore,
        catalog: SpiritCatalog,
        config: GameConfig,
        rng: Optional[random.Random] = None,
        weights: Mapping[Rarity, float] = RARITY_WEIGHTS,
    ):
        self.store = store
        self.catalog = catalog
        self.config = config
        self.rng = rng or random.Random()
        # Enum declaration order is the walk order
        self._weight_table = [(r, float(weights.get(r, 0))) for r in Rarity]

    # --- Rolls ---

    def roll_rarity(self) -> Rarity:
        return weighted_choice(self._weight_table, self.rng, fallback=Rarity.COMMON)

    def roll_spirit(self) -> SpiritDef:
        rarity = self.roll_rarity()
        pool = self.catalog.get_by_rarity(rarity)
        if not pool:
            # Only reachable with a catalog that skipped validation.
            logger.warning(f"No spirits of rarity '{rarity.value}'; rolling from the whole catalog.")
            pool = list(self.catalog)
        return self.rng.choice(pool)

    # --- Affordability ---

    def can_afford_single(self) -> bool:
        return self.store.essence >= self.config.single_summon_cost

    def can_afford_multi(self) -> bool:
        return self.store.essence >= self.config.multi_summon_cost

    # --- Summons ---

    def perform_single_summon(self) -> Optional[SummonResult]:
        if not self.can_afford_single():
            return None
        if not self.store.spend_essence(self.config.single_summon_cost):
            return None
        self.store.increment_summons(1)

        spirit = self.roll_spirit()
        is_new = not self.store.owns(spirit.id)

        self.store.add_to_inventory(spirit.id)
        self.store.save()
        return SummonResult(spirit, is_new)

    def perform_multi_summon(self) -> List[SummonResult]:
        if not self.can_afford_multi():
            return []
        if not self.store.spend_essence(self.config.multi_summon_cost):
            return []
        count = self.config.multi_summon_count
        self.store.increment_summons(count)

        results: List[SummonResult] = []
        drawn: Set[str] = set()

        for _ in range(count):
            spirit = self.roll_spirit()
            is_new = spirit.id not in drawn and not self.store.owns(spirit.id)
            drawn.add(spirit.id)

            self.store.add_to_inventory(spirit.id)
            results.append(SummonResult(spirit, is_new))

        self.store.save()
        return results

    # --- Statistics ---

    def summon_stats(self) -> SummonStats:
        """Owned copies per rarity, counting inventory and the grid."""
        by_rarity: Dict[Rarity, int] = {r: 0 for r in Rarity}
        owned: Dict[str, int] = {}
        for entry in self.store.inventory:
            owned[entry.spirit_id] = owned.get(entry.spirit_id, 0) + entry.count
        for p in self.store.placed_spirits:
            owned[p.spirit_id] = owned.get(p.spirit_id, 0) + 1

        for s_id, count in owned.items():
            spirit = self.catalog.get_by_id(s_id)
            if spirit:
                by_rarity[spirit.rarity] += count

        return SummonStats(total=self.store.total_summons, by_rarity=by_rarity)
