import json

import pytest

from conftest import START_MS, CountingBlobStore
from spiritgarden.config import GameConfig
from spiritgarden.data.catalog import DEFAULT_CATALOG
from spiritgarden.models import PlacedSpirit
from spiritgarden.persistence.io import MemoryBlobStore
from spiritgarden.persistence.store import GameStateStore

KEY = GameConfig().save_key


def make_store(raw=None, clock=lambda: START_MS, catalog=DEFAULT_CATALOG):
    blobs = MemoryBlobStore()
    if raw is not None:
        blobs.set(KEY, raw if isinstance(raw, bytes) else json.dumps(raw).encode("utf-8"))
    return GameStateStore(blobs, GameConfig(), clock, catalog)


# --- Resources ---

@pytest.mark.parametrize("balance,cost", [(100, 50), (50, 50), (49.5, 50), (0, 1), (10, 0)])
def test_spend_essence_is_all_or_nothing(balance, cost):
    store = make_store()
    store.update_state(essence=balance)
    ok = store.spend_essence(cost)
    assert ok == (balance >= cost)
    assert store.essence == (balance - cost if ok else balance)

def test_add_essence_tracks_lifetime_total_and_spending_does_not_reduce_it():
    store = make_store()
    store.add_essence(40)
    store.spend_essence(120)
    state = store.get_state()
    assert state.essence == 20
    assert state.total_essence_earned == 40

def test_add_essence_rejects_negative_amounts():
    with pytest.raises(ValueError):
        make_store().add_essence(-1)

def test_gems_mirror_essence_rules():
    store = make_store()
    assert store.gems == 10
    assert not store.spend_gems(11)
    assert store.gems == 10
    store.add_gems(5)
    assert store.spend_gems(15)
    assert store.gems == 0


# --- Inventory ---

def test_inventory_round_trip_on_absent_entry():
    store = make_store()
    store.add_to_inventory("pebble")
    assert store.remove_from_inventory("pebble")
    assert store.inventory == ()

def test_inventory_round_trip_on_existing_entry():
    store = make_store()
    store.add_to_inventory("pebble", 3)
    before = store.inventory
    store.add_to_inventory("pebble")
    store.remove_from_inventory("pebble")
    assert store.inventory == before

def test_remove_from_empty_inventory_fails():
    store = make_store()
    assert not store.remove_from_inventory("pebble")
    assert store.get_inventory_count("pebble") == 0

def test_owns_looks_at_inventory_and_grid():
    store = make_store()
    assert not store.owns("spark")
    store.place_spirit(PlacedSpirit("a", "spark", 0, 0))
    assert store.owns("spark")


# --- Placement ---

def test_place_find_and_remove_spirit():
    store = make_store()
    p = PlacedSpirit("inst1", "shade", 2, 1)
    store.place_spirit(p)
    assert store.get_spirit_at(2, 1) == p
    assert store.get_spirit_at(1, 2) is None
    assert store.remove_spirit_by_id("inst1") == p
    assert store.remove_spirit_by_id("inst1") is None
    assert store.placed_spirits == ()

def test_update_spirit_keeps_list_order():
    store = make_store()
    store.place_spirit(PlacedSpirit("a", "shade", 0, 0))
    store.place_spirit(PlacedSpirit("b", "spark", 1, 0))
    store.update_spirit("a", level=4)
    assert [p.id for p in store.placed_spirits] == ["a", "b"]
    assert store.get_spirit_by_id("a").level == 4
    assert store.update_spirit("missing", level=2) is None


# --- Whole record ---

def test_update_state_is_a_shallow_merge():
    store = make_store()
    store.update_state(gems=99)
    state = store.get_state()
    assert state.gems == 99
    assert state.essence == 100

def test_update_state_rejects_unknown_fields():
    with pytest.raises(TypeError):
        make_store().update_state(mana=5)

def test_get_state_is_detached():
    store = make_store()
    snapshot = store.get_state()
    snapshot.essence = 1e9
    snapshot.inventory.append("junk")
    assert store.essence == 100
    assert store.inventory == ()


# --- Load / save ---

def test_missing_blob_gives_default_record():
    state = make_store().get_state()
    assert state.essence == 100
    assert state.gems == 10
    assert state.unlocked_cells == 12
    assert state.last_save_time == START_MS
    assert state.settings.music_volume == 0.7

@pytest.mark.parametrize("blob", [
    b"{not json",
    b"[1, 2, 3]",
    b"\xff\xfe",
    b"null",
    b"[" * 200000 + b"]" * 200000,
])
def test_corrupt_blob_falls_back_to_defaults(blob, caplog):
    store = make_store(blob)
    assert store.essence == 100
    assert "corrupt" in caplog.text.lower()

HUGE = b"1" + b"0" * 400

@pytest.mark.parametrize("blob", [
    b'{"version": 1, "essence": ' + HUGE + b"}",
    b'{"version": 1, "totalEssenceEarned": ' + HUGE + b"}",
    b'{"version": 1, "settings": {"musicVolume": ' + HUGE + b"}}",
    b'{"version": 1, "essence": 1e999}',
])
def test_out_of_range_numbers_fall_back_to_defaults(blob):
    state = make_store(blob).get_state()
    assert state.essence == 100
    assert state.total_essence_earned == 0
    assert state.settings.music_volume == 0.7

def test_partial_blob_is_backfilled_from_defaults():
    store = make_store({"version": 1, "essence": 777, "settings": {"sfxVolume": 0.2}})
    state = store.get_state()
    assert state.essence == 777
    assert state.gems == 10
    assert state.unlocked_cells == 12
    assert state.settings.sfx_volume == 0.2
    assert state.settings.music_volume == 0.7

def test_save_stamps_time_and_round_trips():
    times = iter([START_MS, START_MS + 5000, START_MS + 9000])
    blobs = MemoryBlobStore()
    store = GameStateStore(blobs, GameConfig(), lambda: next(times))
    store.add_to_inventory("droplet", 2)
    store.place_spirit(PlacedSpirit("x1", "pebble", 1, 1, level=3))
    assert store.save()

    raw = json.loads(blobs.get(KEY))
    assert raw["lastSaveTime"] == START_MS + 5000
    assert raw["inventory"] == [{"spiritId": "droplet", "count": 2}]
    assert raw["placedSpirits"][0]["gridY"] == 1

    reloaded = GameStateStore(blobs, GameConfig(), lambda: START_MS + 9000).get_state()
    assert reloaded.last_save_time == START_MS + 5000
    assert reloaded.placed_spirits == [PlacedSpirit("x1", "pebble", 1, 1, level=3)]
    assert reloaded.inventory == store.get_state().inventory

def test_write_failure_is_swallowed_and_state_kept(caplog):
    blobs = CountingBlobStore(fail=True)
    store = GameStateStore(blobs, GameConfig(), lambda: START_MS)
    store.add_essence(5)
    assert store.save() is False
    assert store.essence == 105
    assert "failed to save" in caplog.text.lower()

def test_reset_restores_defaults_and_persists():
    store = make_store()
    store.update_state(essence=5, total_summons=9)
    store.reset()
    assert store.essence == 100
    assert store.total_summons == 0


# --- Migration & sanitizing ---

def test_unversioned_save_with_dict_inventory_is_migrated():
    store = make_store({"essence": 12, "inventory": {"pebble": 2, "shade": 0}})
    state = store.get_state()
    assert state.version == 1
    assert [(e.spirit_id, e.count) for e in state.inventory] == [("pebble", 2)]

def test_duplicate_inventory_entries_are_merged_and_empty_ones_dropped():
    store = make_store({"version": 1, "inventory": [
        {"spiritId": "pebble", "count": 1},
        {"spiritId": "pebble", "count": 2},
        {"spiritId": "spark", "count": 0},
        {"spiritId": "shade", "count": -4},
    ]})
    assert [(e.spirit_id, e.count) for e in store.inventory] == [("pebble", 3)]

def test_colliding_or_locked_spirits_go_back_to_inventory():
    store = make_store({"version": 1, "placedSpirits": [
        {"id": "a", "spiritId": "pebble", "gridX": 0, "gridY": 0, "level": 2, "experience": 0},
        {"id": "b", "spiritId": "spark", "gridX": 0, "gridY": 0, "level": 1, "experience": 0},
        {"id": "c", "spiritId": "shade", "gridX": 4, "gridY": 5, "level": 1, "experience": 0},
    ]})
    assert [p.id for p in store.placed_spirits] == ["a"]
    assert store.get_inventory_count("spark") == 1
    assert store.get_inventory_count("shade") == 1

def test_levels_and_cells_are_clamped_into_range():
    store = make_store({"version": 1, "unlockedCells": 500, "placedSpirits": [
        {"id": "a", "spiritId": "pebble", "gridX": 0, "gridY": 0, "level": 99},
    ]})
    assert store.unlocked_cells == 30
    assert store.placed_spirits[0].level == 10
    assert store.placed_spirits[0].experience == 0

def test_stale_ids_are_kept_and_warned_about(caplog):
    store = make_store({"version": 1,
                        "inventory": [{"spiritId": "retired_spirit", "count": 1}],
                        "placedSpirits": [{"id": "a", "spiritId": "retired_spirit", "gridX": 1, "gridY": 0}]})
    assert store.get_inventory_count("retired_spirit") == 1
    assert store.placed_spirits[0].spirit_id == "retired_spirit"
    assert "missing from catalog" in caplog.text

def test_raising_blob_store_is_logged_not_raised(caplog):
    class BrokenDisk(MemoryBlobStore):
        def get(self, key):
            raise OSError("disk gone")

        def set(self, key, data):
            raise OSError("disk full")

    store = GameStateStore(BrokenDisk(), GameConfig(), lambda: START_MS)
    assert store.essence == 100
    assert store.save() is False
    assert "disk full" in caplog.text
