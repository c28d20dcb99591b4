import random

import pytest

from spiritgarden.config import GameConfig
from spiritgarden.data.catalog import SpiritCatalog
from spiritgarden.engine.session import GardenSession
from spiritgarden.models import Element, PlacedSpirit, Rarity, SpiritDef
from spiritgarden.persistence.io import MemoryBlobStore

START_MS = 1_700_000_000_000


class ManualClock:
    """Wall clock the test moves by hand."""

    def __init__(self, now_ms: int = START_MS):
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> None:
        self.now_ms += ms


class FixedRandom(random.Random):
    """random() always returns `value`; choice() always picks the first item."""

    def __init__(self, value: float = 0.0):
        super().__init__(0)
        self.value = value

    def random(self):
        return self.value

    def choice(self, seq):
        return seq[0]


class CountingBlobStore(MemoryBlobStore):
    def __init__(self, initial=None, fail=False):
        super().__init__(initial)
        self.writes = 0
        self.fail = fail

    def set(self, key, data):
        self.writes += 1
        if self.fail:
            return False
        return super().set(key, data)


@pytest.fixture
def clock():
    return ManualClock()

@pytest.fixture
def blobs():
    return CountingBlobStore()

@pytest.fixture
def config():
    return GameConfig()

@pytest.fixture
def session(blobs, clock, config):
    return GardenSession(blobs=blobs, config=config, clock=clock, rng=random.Random(1234))

@pytest.fixture
def duo_catalog():
    """
    Two base-1 spirits: 'seeker' (fire) likes water, 'brook' (water) likes nothing.
    Used where a one-way synergy is needed.
    """
    return SpiritCatalog([
        SpiritDef("seeker", "Seeker", Element.FIRE, Rarity.COMMON, 1.0,
                  synergies=frozenset({Element.WATER})),
        SpiritDef("brook", "Brook", Element.WATER, Rarity.COMMON, 1.0),
        SpiritDef("gem", "Gem", Element.EARTH, Rarity.LEGENDARY, 10.0),
    ])


def put(session, spirit_id, x, y, level=1, instance_id=None):
    """Drop a spirit straight onto the grid, bypassing the inventory."""
    placed = PlacedSpirit(
        id=instance_id or f"inst_{spirit_id}_{x}_{y}",
        spirit_id=spirit_id,
        grid_x=x,
        grid_y=y,
        level=level,
    )
    session.store.place_spirit(placed)
    return placed
