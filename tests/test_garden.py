from conftest import put


def test_cell_indexing_is_row_major(session):
    g = session.garden
    assert g.cell_index(0, 0) == 0
    assert g.cell_index(4, 0) == 4
    assert g.cell_index(0, 1) == 5
    assert g.is_cell_unlocked(1, 2)        # index 11
    assert not g.is_cell_unlocked(2, 2)    # index 12
    assert not g.is_cell_unlocked(-1, 0)
    assert not g.is_cell_unlocked(5, 0)

def test_empty_unlocked_cells(session):
    put(session, "pebble", 0, 0)
    cells = session.garden.empty_unlocked_cells()
    assert len(cells) == 11
    assert (0, 0) not in cells
    assert cells[-1] == (1, 2)

def test_place_from_inventory(session, blobs):
    session.store.add_to_inventory("spark", 2)
    placed = session.garden.place_from_inventory("spark", 3, 1)
    assert placed.spirit_id == "spark"
    assert placed.level == 1 and placed.experience == 0
    assert placed.id.startswith("spirit_")
    assert session.store.get_spirit_at(3, 1) == placed
    assert session.store.get_inventory_count("spark") == 1
    assert blobs.writes == 1

def test_instance_ids_are_unique(session):
    session.store.add_to_inventory("spark", 2)
    a = session.garden.place_from_inventory("spark", 0, 0)
    b = session.garden.place_from_inventory("spark", 1, 0)
    assert a.id != b.id

def test_invalid_placements_change_nothing(session, blobs):
    session.store.add_to_inventory("spark")
    put(session, "shade", 0, 0)
    before = session.store.get_state()

    assert session.garden.place_from_inventory("spark", 0, 0) is None    # occupied
    assert session.garden.place_from_inventory("spark", 4, 5) is None    # locked
    assert session.garden.place_from_inventory("spark", 9, 9) is None    # off grid
    assert session.garden.place_from_inventory("pebble", 1, 0) is None   # not owned

    assert session.store.get_state() == before
    assert blobs.writes == 0

def test_expanded_cell_accepts_spirits(session):
    session.store.add_to_inventory("spark")
    session.store.update_state(essence=200)
    assert session.progression.expand_garden()
    assert session.garden.place_from_inventory("spark", 2, 2) is not None

def test_pick_up_returns_spirit_to_inventory(session):
    p = put(session, "pebble", 1, 1, level=5)
    assert session.garden.pick_up(p.id)
    assert session.store.get_spirit_at(1, 1) is None
    assert session.store.get_inventory_count("pebble") == 1
    assert not session.garden.pick_up(p.id)
