from __future__ import annotations
import logging
import math
from typing import List, Optional, Sequence

from spiritgarden.config import GameConfig
from spiritgarden.data.catalog import SpiritCatalog
from spiritgarden.models import Element, OfflineReport, PlacedSpirit, ProductionInfo
from spiritgarden.persistence.store import GameStateStore
from spiritgarden.utils import Clock, clamp, wall_clock_ms

logger = logging.getLogger(__name__)

# Orthogonal neighbours only
ADJACENT_OFFSETS = ((-1, 0), (1, 0), (0, -1), (0, 1))


class ProductionEngine:
    """
    Turns the placed spirits into essence.

    Process-wide state that is not persisted: the tap-bonus expiry, the
    time of the previous tick and the fractional essence not yet credited.
    """

    def __init__(
        self,
        store: GameStateStore,
        catalog: SpiritCatalog,
        config: GameConfig,
        clock: Clock = wall_clock_ms,
    ):
        self.store = store
        self.catalog = catalog
        self.config = config
        self.clock = clock

        self.tap_bonus_end_ms: int = 0
        self.last_tick_ms: int = clock()
        self.accumulated_essence: float = 0.0

    # -------------------------------------------------
    # RATES
    # -------------------------------------------------

    def calculate_spirit_production(
        self, spirit: PlacedSpirit, all_spirits: Sequence[PlacedSpirit]
    ) -> ProductionInfo:
        spirit_def = self.catalog.get_by_id(spirit.spirit_id)
        if spirit_def is None:
            return ProductionInfo(spirit_id=spirit.spirit_id)

        base = spirit_def.base_production
        level_bonus = base * (spirit.level - 1) * self.config.upgrade_level_bonus
        synergy_bonus = self._calculate_synergy_bonus(spirit, all_spirits)

        return ProductionInfo(
            spirit_id=spirit.spirit_id,
            base_production=base,
            level_bonus=level_bonus,
            synergy_bonus=synergy_bonus,
            total_production=(base + level_bonus) * (1 + synergy_bonus),
        )

    def _calculate_synergy_bonus(self, spirit: PlacedSpirit, all_spirits: Sequence[PlacedSpirit]) -> float:
        """One bonus step per neighbour whose element this spirit has a synergy with."""
        spirit_def = self.catalog.get_by_id(spirit.spirit_id)
        if spirit_def is None or not spirit_def.synergies:
            return 0.0

        matches = 0
        for element in self._neighbour_elements(spirit.grid_x, spirit.grid_y, all_spirits):
            if spirit_def.has_synergy_with(element):
                matches += 1
        return matches * self.config.synergy_bonus

    def _neighbour_elements(self, x: int, y: int, all_spirits: Sequence[PlacedSpirit]) -> List[Element]:
        elements: List[Element] = []
        for dx, dy in ADJACENT_OFFSETS:
            nx, ny = x + dx, y + dy
            neighbour = next((s for s in all_spirits if s.grid_x == nx and s.grid_y == ny), None)
            if neighbour is None:
                continue
            n_def = self.catalog.get_by_id(neighbour.spirit_id)
            if n_def is not None:
                elements.append(n_def.element)
        return elements

    def adjacent_elements(self, x: int, y: int) -> List[Element]:
        """Elements of the occupied cells around (x, y). Used for synergy hints."""
        return self._neighbour_elements(x, y, self.store.placed_spirits)

    def calculate_total_production(self) -> float:
        placed = self.store.placed_spirits
        return sum(self.calculate_spirit_production(s, placed).total_production for s in placed)

    def get_production_per_second(self) -> float:
        return self.calculate_total_production()

    # -------------------------------------------------
    # TICK
    # -------------------------------------------------

    def tick(self) -> float:
        """
        Credit production since the previous tick.

        Only whole essence reaches the store; the fraction waits for the
        next tick. Returns the unrounded amount produced this tick.
        """
        now = self.clock()
        elapsed = (now - self.last_tick_ms) / 1000
        self.last_tick_ms = now
        elapsed = clamp(elapsed, 0.0, self.config.max_tick_seconds)

        production = self.calculate_total_production()
        tap_multiplier = self.config.tap_bonus_multiplier if self.is_tap_bonus_active() else 1.0

        essence_gained = production * elapsed * tap_multiplier
        self.accumulated_essence += essence_gained

        whole = math.floor(self.accumulated_essence)
        if whole > 0:
            self.store.add_essence(whole)
            self.accumulated_essence -= whole

        return essence_gained

    # -------------------------------------------------
    # TAP BONUS
    # -------------------------------------------------

    def activate_tap_bonus(self) -> None:
        # Re-tapping restarts the full duration; it never stacks.
        self.tap_bonus_end_ms = self.clock() + self.config.tap_bonus_duration_ms

    def is_tap_bonus_active(self) -> bool:
        return self.clock() < self.tap_bonus_end_ms

    def get_tap_bonus_remaining(self) -> int:
        return max(0, self.tap_bonus_end_ms - self.clock())

    # -------------------------------------------------
    # OFFLINE PROGRESS
    # -------------------------------------------------

    def calculate_offline_essence(self, elapsed_ms: float) -> int:
        production = self.calculate_total_production()
        seconds = elapsed_ms / 1000
        return math.floor(production * seconds * self.config.offline_efficiency)

    def offline_essence_for(self, elapsed_ms: float) -> int:
        """Offline payout with the threshold and the cap applied."""
        if elapsed_ms <= self.config.offline_min_elapsed_ms:
            return 0
        return self.calculate_offline_essence(min(elapsed_ms, self.config.max_offline_ms))

    def collect_offline_progress(self) -> Optional[OfflineReport]:
        """
        Pay out the time since the last save. Call once per session start.
        Returns None when there was nothing to credit.
        """
        elapsed = self.clock() - self.store.last_save_time
        essence = self.offline_essence_for(elapsed)
        if essence <= 0:
            return None

        self.store.add_essence(essence)
        self.store.save()
        credited = min(elapsed, self.config.max_offline_ms)
        logger.info(f"Offline progress: {essence} essence for {credited // 1000}s away.")
        return OfflineReport(essence=essence, elapsed_ms=elapsed, credited_ms=credited)
