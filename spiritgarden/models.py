from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional


class Element(Enum):
    FIRE = "fire"
    WATER = "water"
    EARTH = "earth"
    AIR = "air"
    LIGHT = "light"
    SHADOW = "shadow"

class Rarity(Enum):
    # Declaration order is the roll order and the fallback order.
    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    LEGENDARY = "legendary"


@dataclass(frozen=True, slots=True)
class SpiritDef:
    """Static catalog entry. Never mutated after load."""
    id: str
    name: str
    element: Element
    rarity: Rarity
    base_production: float   # essence per second
    description: str = ""
    synergies: FrozenSet[Element] = frozenset()
    evolution_id: Optional[str] = None
    evolution_cost: Optional[int] = None

    def has_synergy_with(self, element: Element) -> bool:
        return element in self.synergies


@dataclass(frozen=True, slots=True)
class PlacedSpirit:
    """A spirit standing on the garden grid."""
    id: str
    spirit_id: str
    grid_x: int
    grid_y: int
    level: int = 1
    experience: int = 0

    @property
    def position(self) -> tuple[int, int]:
        return self.grid_x, self.grid_y


@dataclass(frozen=True, slots=True)
class InventoryEntry:
    spirit_id: str
    count: int


@dataclass(slots=True)
class Settings:
    music_volume: float = 0.7
    sfx_volume: float = 1.0


@dataclass(slots=True)
class GameSave:
    """Root save record. One per session, owned by the state store."""
    version: int
    essence: float
    gems: int
    unlocked_cells: int
    placed_spirits: List[PlacedSpirit] = field(default_factory=list)
    inventory: List[InventoryEntry] = field(default_factory=list)
    total_summons: int = 0
    total_essence_earned: float = 0.0
    achievements: List[str] = field(default_factory=list)
    last_save_time: int = 0
    settings: Settings = field(default_factory=Settings)


# ==============================================================================
#  Engine results (presentation-facing, read-only)
# ==============================================================================

@dataclass(frozen=True, slots=True)
class SummonResult:
    spirit: SpiritDef
    is_new: bool

@dataclass(frozen=True, slots=True)
class SummonStats:
    total: int
    by_rarity: Dict[Rarity, int]

@dataclass(frozen=True, slots=True)
class ProductionInfo:
    """Per-spirit breakdown; all zero when the catalog entry is gone."""
    spirit_id: str
    base_production: float = 0.0
    level_bonus: float = 0.0
    synergy_bonus: float = 0.0
    total_production: float = 0.0

@dataclass(frozen=True, slots=True)
class OfflineReport:
    essence: int          # credited amount
    elapsed_ms: int       # real time away
    credited_ms: int      # time actually paid out (after the cap)
