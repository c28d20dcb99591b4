from __future__ import annotations
from dataclasses import dataclass, field
from typing import Callable, Optional
import logging
import random

from spiritgarden.config import DEFAULT_CONFIG, GameConfig
from spiritgarden.data.catalog import DEFAULT_CATALOG, SpiritCatalog
from spiritgarden.engine.gacha import SummonEngine
from spiritgarden.engine.garden import Garden
from spiritgarden.engine.production import ProductionEngine
from spiritgarden.engine.progression import ProgressionService
from spiritgarden.models import OfflineReport
from spiritgarden.persistence.io import BlobStore, MemoryBlobStore
from spiritgarden.persistence.store import GameStateStore
from spiritgarden.utils import Clock, get_rng, wall_clock_ms

logger = logging.getLogger(__name__)


class AutoSaver:
    """
    Periodic persist driven by the host loop (no threads).
    poll() writes when the interval has passed; cancel() stops it for good.
    """

    def __init__(self, save: Callable[[], bool], interval_ms: int, clock: Clock):
        self._save = save
        self.interval_ms = interval_ms
        self.clock = clock
        self.last_run_ms = clock()
        self.cancelled = False

    def poll(self) -> bool:
        """Returns True when a save was attempted."""
        if self.cancelled or self.interval_ms <= 0:
            return False
        now = self.clock()
        if now - self.last_run_ms < self.interval_ms:
            return False
        self.last_run_ms = now
        self._save()
        return True

    def cancel(self) -> None:
        self.cancelled = True


@dataclass
class GardenSession:
    """Top-level context: builds every service once and hands them out by reference."""

    blobs: BlobStore = field(default_factory=MemoryBlobStore)
    config: GameConfig = DEFAULT_CONFIG
    catalog: SpiritCatalog = DEFAULT_CATALOG
    clock: Clock = wall_clock_ms
    rng: Optional[random.Random] = None

    # Services
    store: GameStateStore = field(init=False)
    production: ProductionEngine = field(init=False)
    summons: SummonEngine = field(init=False)
    progression: ProgressionService = field(init=False)
    garden: Garden = field(init=False)
    autosaver: AutoSaver = field(init=False)

    # Lifecycle
    started: bool = field(default=False, init=False)
    closed: bool = field(default=False, init=False)
    _offline_report: Optional[OfflineReport] = field(default=None, init=False, repr=False)

    def __post_init__(self):
        if self.rng is None:
            self.rng = get_rng(self.config.rng_seed)

        self.store = GameStateStore(self.blobs, self.config, self.clock, self.catalog)
        self.production = ProductionEngine(self.store, self.catalog, self.config, self.clock)
        self.summons = SummonEngine(self.store, self.catalog, self.config, self.rng)
        self.progression = ProgressionService(self.store, self.catalog, self.config)
        self.garden = Garden(self.store, self.config, self.clock)
        self.autosaver = AutoSaver(self.store.save, self.config.auto_save_interval_ms, self.clock)

    def start(self) -> Optional[OfflineReport]:
        """Run the offline catch-up once. Later calls return None."""
        if self.started or self.closed:
            return None
        self.started = True
        self._offline_report = self.production.collect_offline_progress()
        return self._offline_report

    def consume_offline_report(self) -> Optional[OfflineReport]:
        """The offline payout, handed out a single time for display."""
        report, self._offline_report = self._offline_report, None
        return report

    def update(self) -> float:
        """One host-loop step: produce, then auto-save if due."""
        if self.closed:
            return 0.0
        gained = self.production.tick()
        self.autosaver.poll()
        return gained

    def shutdown(self) -> None:
        """Final save, then stop the timer so nothing writes after teardown."""
        if self.closed:
            return
        self.store.save()
        self.autosaver.cancel()
        self.closed = True
