from __future__ import annotations
from typing import Dict, Iterable, Iterator, List, Optional

from spiritgarden.models import Element, Rarity, SpiritDef

RARITY_WEIGHTS: Dict[Rarity, float] = {
    Rarity.COMMON: 50,
    Rarity.UNCOMMON: 30,
    Rarity.RARE: 15,
    Rarity.LEGENDARY: 5,
}

RARITY_MULTIPLIERS: Dict[Rarity, float] = {
    Rarity.COMMON: 1.0,
    Rarity.UNCOMMON: 1.5,
    Rarity.RARE: 2.5,
    Rarity.LEGENDARY: 5.0,
}


class SpiritCatalog:
    """Read-only lookup over a fixed list of spirit definitions."""

    def __init__(self, spirits: Iterable[SpiritDef]):
        self._spirits: tuple[SpiritDef, ...] = tuple(spirits)
        self._by_id: Dict[str, SpiritDef] = {s.id: s for s in self._spirits}

    def __iter__(self) -> Iterator[SpiritDef]:
        return iter(self._spirits)

    def __len__(self) -> int:
        return len(self._spirits)

    def __contains__(self, spirit_id: object) -> bool:
        return spirit_id in self._by_id

    def get_by_id(self, spirit_id: str) -> Optional[SpiritDef]:
        return self._by_id.get(spirit_id)

    def get_by_rarity(self, rarity: Rarity) -> List[SpiritDef]:
        return [s for s in self._spirits if s.rarity == rarity]

    def get_by_element(self, element: Element) -> List[SpiritDef]:
        return [s for s in self._spirits if s.element == element]


def _spirit(id, name, element, rarity, base, description, synergies, evolution_id=None, evolution_cost=None):
    return SpiritDef(
        id=id, name=name, element=element, rarity=rarity,
        base_production=base, description=description,
        synergies=frozenset(synergies),
        evolution_id=evolution_id, evolution_cost=evolution_cost,
    )

F, W, E, A, L, S = Element.FIRE, Element.WATER, Element.EARTH, Element.AIR, Element.LIGHT, Element.SHADOW

# ==============================================================================
#  BUILT-IN SPIRITS
# ==============================================================================

SPIRITS: List[SpiritDef] = [
    # Common
    _spirit("ember_wisp", "Ember Wisp", F, Rarity.COMMON, 1,
            "A tiny flame spirit that flickers happily.", [A], "flame_dancer", 100),
    _spirit("droplet", "Droplet", W, Rarity.COMMON, 1,
            "A cheerful water spirit that loves to splash.", [E], "tide_spirit", 100),
    _spirit("pebble", "Pebble", E, Rarity.COMMON, 1,
            "A sturdy little rock spirit.", [W], "stone_guardian", 100),
    _spirit("breeze", "Breeze", A, Rarity.COMMON, 1,
            "A gentle wind spirit that drifts lazily.", [F], "gale_spirit", 100),
    _spirit("spark", "Spark", L, Rarity.COMMON, 1,
            "A tiny mote of pure light.", [S], "radiant_orb", 100),
    _spirit("shade", "Shade", S, Rarity.COMMON, 1,
            "A mysterious dark wisp.", [L], "phantom", 100),

    # Uncommon
    _spirit("flame_dancer", "Flame Dancer", F, Rarity.UNCOMMON, 2.5,
            "A graceful fire spirit that twirls and leaps.", [A, L]),
    _spirit("tide_spirit", "Tide Spirit", W, Rarity.UNCOMMON, 2.5,
            "A flowing water spirit with calming presence.", [E, S]),
    _spirit("stone_guardian", "Stone Guardian", E, Rarity.UNCOMMON, 2.5,
            "A protective earth spirit that watches over others.", [W, F]),
    _spirit("gale_spirit", "Gale Spirit", A, Rarity.UNCOMMON, 2.5,
            "A swift wind spirit that rushes through the garden.", [F, L]),
    _spirit("radiant_orb", "Radiant Orb", L, Rarity.UNCOMMON, 2.5,
            "A glowing sphere of warm light.", [S, A]),
    _spirit("phantom", "Phantom", S, Rarity.UNCOMMON, 2.5,
            "A mysterious spirit that phases in and out.", [L, W]),

    # Rare
    _spirit("inferno_phoenix", "Inferno Phoenix", F, Rarity.RARE, 5,
            "A majestic bird of flame that inspires all fire spirits.", [A, L, E]),
    _spirit("ocean_sage", "Ocean Sage", W, Rarity.RARE, 5,
            "An ancient water spirit with deep wisdom.", [E, S, A]),
    _spirit("crystal_golem", "Crystal Golem", E, Rarity.RARE, 5,
            "A towering spirit made of precious gems.", [W, F, L]),
    _spirit("storm_herald", "Storm Herald", A, Rarity.RARE, 5,
            "A powerful spirit that commands the winds.", [F, W, S]),
    _spirit("solar_guardian", "Solar Guardian", L, Rarity.RARE, 5,
            "A radiant protector blessed by the sun.", [S, F, E]),
    _spirit("void_walker", "Void Walker", S, Rarity.RARE, 5,
            "A spirit that traverses between dimensions.", [L, W, A]),

    # Legendary
    _spirit("primordial_flame", "Primordial Flame", F, Rarity.LEGENDARY, 12,
            "The essence of the first fire ever kindled.", [F, A, L, E]),
    _spirit("eternal_tide", "Eternal Tide", W, Rarity.LEGENDARY, 12,
            "The spirit of the endless ocean depths.", [W, E, S, A]),
    _spirit("world_tree_spirit", "World Tree Spirit", E, Rarity.LEGENDARY, 12,
            "Guardian of the great tree that connects all gardens.", [E, W, L, F]),
    _spirit("celestial_wind", "Celestial Wind", A, Rarity.LEGENDARY, 12,
            "A divine breeze from beyond the stars.", [A, L, S, F]),
    _spirit("dawn_keeper", "Dawn Keeper", L, Rarity.LEGENDARY, 12,
            "The spirit that brings each new day.", [L, S, F, A]),
    _spirit("eclipse_lord", "Eclipse Lord", S, Rarity.LEGENDARY, 12,
            "Master of the moment when light and dark unite.", [S, L, W, E]),
]

DEFAULT_CATALOG = SpiritCatalog(SPIRITS)
