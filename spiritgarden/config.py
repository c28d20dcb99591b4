from __future__ import annotations
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from spiritgarden.utils import nested_get

logger = logging.getLogger(__name__)

# Garden grid
GRID_COLS          = 5
GRID_ROWS          = 6
STARTING_GRID_SIZE = 12       # unlocked cells
MAX_GRID_SIZE      = 30

# Starting resources
STARTING_ESSENCE = 100.0
STARTING_GEMS    = 10

# Summoning
SINGLE_SUMMON_COST = 50
MULTI_SUMMON_COST  = 450      # bundle of MULTI_SUMMON_COUNT
MULTI_SUMMON_COUNT = 10

# Production
BASE_TICK_RATE_MS    = 1000   # host loop hint
SYNERGY_BONUS        = 0.25   # per matching neighbour
TAP_BONUS_MULTIPLIER = 2.0
TAP_BONUS_DURATION_MS = 5000
MAX_TICK_SECONDS     = 60.0   # longer gaps are clamped

# Upgrades
SPIRIT_UPGRADE_BASE_COST       = 50
SPIRIT_UPGRADE_COST_MULTIPLIER = 1.5
SPIRIT_UPGRADE_BONUS           = 0.2    # per level above 1
MAX_SPIRIT_LEVEL               = 10

# Garden expansion
GARDEN_EXPAND_BASE_COST       = 200
GARDEN_EXPAND_COST_MULTIPLIER = 2.0

# Save
SAVE_KEY              = "pocket_spirit_garden_save"
AUTO_SAVE_INTERVAL_MS = 30000

# Offline progress
OFFLINE_MIN_ELAPSED_MS = 60000
MAX_OFFLINE_HOURS      = 8
OFFLINE_EFFICIENCY     = 0.5

# Cosmetic defaults
DEFAULT_MUSIC_VOLUME = 0.7
DEFAULT_SFX_VOLUME   = 1.0


@dataclass(frozen=True, slots=True)
class GameConfig:
    """Tuning knobs for one garden session. Defaults mirror the module constants."""
    grid_cols: int = GRID_COLS
    grid_rows: int = GRID_ROWS
    starting_grid_size: int = STARTING_GRID_SIZE
    max_grid_size: int = MAX_GRID_SIZE

    starting_essence: float = STARTING_ESSENCE
    starting_gems: int = STARTING_GEMS

    single_summon_cost: int = SINGLE_SUMMON_COST
    multi_summon_cost: int = MULTI_SUMMON_COST
    multi_summon_count: int = MULTI_SUMMON_COUNT

    base_tick_rate_ms: int = BASE_TICK_RATE_MS
    synergy_bonus: float = SYNERGY_BONUS
    tap_bonus_multiplier: float = TAP_BONUS_MULTIPLIER
    tap_bonus_duration_ms: int = TAP_BONUS_DURATION_MS
    max_tick_seconds: float = MAX_TICK_SECONDS

    upgrade_base_cost: int = SPIRIT_UPGRADE_BASE_COST
    upgrade_cost_multiplier: float = SPIRIT_UPGRADE_COST_MULTIPLIER
    upgrade_level_bonus: float = SPIRIT_UPGRADE_BONUS
    max_spirit_level: int = MAX_SPIRIT_LEVEL

    expand_base_cost: int = GARDEN_EXPAND_BASE_COST
    expand_cost_multiplier: float = GARDEN_EXPAND_COST_MULTIPLIER

    save_key: str = SAVE_KEY
    auto_save_interval_ms: int = AUTO_SAVE_INTERVAL_MS

    offline_min_elapsed_ms: int = OFFLINE_MIN_ELAPSED_MS
    max_offline_hours: float = MAX_OFFLINE_HOURS
    offline_efficiency: float = OFFLINE_EFFICIENCY

    music_volume: float = DEFAULT_MUSIC_VOLUME
    sfx_volume: float = DEFAULT_SFX_VOLUME

    rng_seed: Optional[int] = None

    @property
    def max_offline_ms(self) -> int:
        return int(self.max_offline_hours * 60 * 60 * 1000)

    def validate(self) -> None:
        """Raise ValueError on inconsistent limits."""
        if self.grid_cols <= 0 or self.grid_rows <= 0:
            raise ValueError("grid.cols and grid.rows must be positive")
        if self.max_grid_size > self.grid_cols * self.grid_rows:
            raise ValueError("grid.max_cells cannot exceed cols * rows")
        if not 0 < self.starting_grid_size <= self.max_grid_size:
            raise ValueError("grid.starting_cells must be in 1..grid.max_cells")
        if self.single_summon_cost <= 0 or self.multi_summon_cost <= 0:
            raise ValueError("summon costs must be positive")
        if self.multi_summon_count <= 0:
            raise ValueError("summon.multi_count must be positive")
        if self.upgrade_base_cost <= 0 or self.expand_base_cost <= 0:
            raise ValueError("upgrade.base_cost and expand.base_cost must be positive")
        if self.upgrade_cost_multiplier < 1.0 or self.expand_cost_multiplier < 1.0:
            raise ValueError("cost multipliers must be >= 1")
        if self.auto_save_interval_ms <= 0:
            raise ValueError("save.auto_save_interval_ms must be positive")
        if self.max_offline_hours <= 0:
            raise ValueError("offline.max_hours must be positive")
        if self.max_spirit_level < 1:
            raise ValueError("upgrade.max_level must be >= 1")
        if not 0.0 <= self.offline_efficiency <= 1.0:
            raise ValueError("offline.efficiency must be within 0..1")
        if self.max_tick_seconds <= 0:
            raise ValueError("production.max_tick_seconds must be positive")
        if self.tap_bonus_multiplier < 1.0:
            raise ValueError("production.tap_multiplier must be >= 1")


DEFAULT_CONFIG = GameConfig()


def config_from_dict(cfg: Dict[str, Any]) -> GameConfig:
    """Build a GameConfig from the nested JSON layout; absent keys keep defaults."""
    d = DEFAULT_CONFIG

    def g(keys, default):
        return nested_get(cfg, keys, default)

    def num(cast, keys, default):
        raw = g(keys, default)
        if isinstance(raw, bool):
            raise ValueError(f"{'.'.join(keys)} must be a number, got {raw!r}")
        try:
            return cast(raw)
        except (TypeError, ValueError, OverflowError) as e:
            raise ValueError(f"{'.'.join(keys)} must be a number, got {raw!r}") from e

    seed = cfg.get("rng_seed", d.rng_seed)

    conf = GameConfig(
        grid_cols=num(int, ["grid", "cols"], d.grid_cols),
        grid_rows=num(int, ["grid", "rows"], d.grid_rows),
        starting_grid_size=num(int, ["grid", "starting_cells"], d.starting_grid_size),
        max_grid_size=num(int, ["grid", "max_cells"], d.max_grid_size),
        starting_essence=num(float, ["start", "essence"], d.starting_essence),
        starting_gems=num(int, ["start", "gems"], d.starting_gems),
        single_summon_cost=num(int, ["summon", "single_cost"], d.single_summon_cost),
        multi_summon_cost=num(int, ["summon", "multi_cost"], d.multi_summon_cost),
        multi_summon_count=num(int, ["summon", "multi_count"], d.multi_summon_count),
        base_tick_rate_ms=num(int, ["production", "tick_rate_ms"], d.base_tick_rate_ms),
        synergy_bonus=num(float, ["production", "synergy_bonus"], d.synergy_bonus),
        tap_bonus_multiplier=num(float, ["production", "tap_multiplier"], d.tap_bonus_multiplier),
        tap_bonus_duration_ms=num(int, ["production", "tap_duration_ms"], d.tap_bonus_duration_ms),
        max_tick_seconds=num(float, ["production", "max_tick_seconds"], d.max_tick_seconds),
        upgrade_base_cost=num(int, ["upgrade", "base_cost"], d.upgrade_base_cost),
        upgrade_cost_multiplier=num(float, ["upgrade", "cost_multiplier"], d.upgrade_cost_multiplier),
        upgrade_level_bonus=num(float, ["upgrade", "level_bonus"], d.upgrade_level_bonus),
        max_spirit_level=num(int, ["upgrade", "max_level"], d.max_spirit_level),
        expand_base_cost=num(int, ["expand", "base_cost"], d.expand_base_cost),
        expand_cost_multiplier=num(float, ["expand", "cost_multiplier"], d.expand_cost_multiplier),
        save_key=str(g(["save", "key"], d.save_key)),
        auto_save_interval_ms=num(int, ["save", "auto_save_interval_ms"], d.auto_save_interval_ms),
        offline_min_elapsed_ms=num(int, ["offline", "min_elapsed_ms"], d.offline_min_elapsed_ms),
        max_offline_hours=num(float, ["offline", "max_hours"], d.max_offline_hours),
        offline_efficiency=num(float, ["offline", "efficiency"], d.offline_efficiency),
        music_volume=num(float, ["settings", "music_volume"], d.music_volume),
        sfx_volume=num(float, ["settings", "sfx_volume"], d.sfx_volume),
        rng_seed=num(int, ["rng_seed"], seed) if seed is not None else None,
    )
    conf.validate()
    return conf


def load_config(path: str = "config.json") -> GameConfig:
    """Load tuning from JSON. Missing file -> defaults; bad values -> ValueError."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            cfg = json.load(f)
    except FileNotFoundError:
        logger.info(f"{path} not found. Using defaults.")
        return DEFAULT_CONFIG

    if not isinstance(cfg, dict):
        raise ValueError(f"{path} must contain a JSON object")

    conf = config_from_dict(cfg)
    logger.info(
        f"Loaded {path}. Grid {conf.starting_grid_size}/{conf.max_grid_size} cells, "
        f"summon {conf.single_summon_cost}/{conf.multi_summon_cost}, "
        f"max level {conf.max_spirit_level}."
    )
    return conf
