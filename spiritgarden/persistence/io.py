import json
import logging
import os
import tempfile
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Tuple

from spiritgarden.config import GameConfig
from spiritgarden.data.catalog import SpiritCatalog
from spiritgarden.models import GameSave, InventoryEntry, PlacedSpirit, Settings
from spiritgarden.persistence.types import SaveGame, SaveInventoryEntry, SavePlacedSpirit
from spiritgarden.utils import canonical_slug, clamp, coerce_float, coerce_int

logger = logging.getLogger(__name__)

SAVE_VERSION = 1

# ==============================================================================
#  Blob stores (the host's persistence transport)
# ==============================================================================

class BlobStore(Protocol):
    """
    Key -> bytes transport supplied by the host.
    Transport failures surface as OSError (or a False return from set); the
    state store logs those and carries on. Anything else is a bug and propagates.
    """

    def get(self, key: str) -> Optional[bytes]: ...
    def set(self, key: str, data: bytes) -> bool: ...


class MemoryBlobStore:
    """Dict-backed store. Handy for tests and for hosts that persist elsewhere."""

    def __init__(self, initial: Optional[Dict[str, bytes]] = None):
        self._blobs: Dict[str, bytes] = dict(initial or {})

    def get(self, key: str) -> Optional[bytes]:
        return self._blobs.get(key)

    def set(self, key: str, data: bytes) -> bool:
        self._blobs[key] = bytes(data)
        return True


class FileBlobStore:
    """
    One JSON file per key inside `folder`.
    Writes go to a temp file first and are swapped in with os.replace,
    so a crash mid-write never leaves a half-written save behind.
    """

    def __init__(self, folder: str = os.path.join("data", "saves")):
        self.folder = folder

    def path_for(self, key: str) -> str:
        return os.path.join(self.folder, f"{canonical_slug(key) or 'save'}.json")

    def get(self, key: str) -> Optional[bytes]:
        path = self.path_for(key)
        if not os.path.exists(path):
            return None
        try:
            with open(path, "rb") as f:
                return f.read()
        except OSError as e:
            logger.error(f"Could not read save file {path}: {e}")
            return None

    def set(self, key: str, data: bytes) -> bool:
        path = self.path_for(key)
        tmp_path = None
        try:
            os.makedirs(self.folder, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.folder, prefix=".tmp_", suffix=".json")
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_path, path)
            return True
        except OSError as e:
            logger.error(f"Could not write save file {path}: {e}")
            if tmp_path and os.path.exists(tmp_path):
                try:
                    os.remove(tmp_path)
                except OSError:
                    pass
            return False

# ==============================================================================
#  Save record <-> JSON
# ==============================================================================

def default_save(config: GameConfig, now_ms: int) -> GameSave:
    """Fresh record for a brand-new garden."""
    return GameSave(
        version=SAVE_VERSION,
        essence=float(config.starting_essence),
        gems=int(config.starting_gems),
        unlocked_cells=config.starting_grid_size,
        last_save_time=now_ms,
        settings=Settings(music_volume=config.music_volume, sfx_volume=config.sfx_volume),
    )

def serialize_save(save: GameSave) -> SaveGame:
    placed: List[SavePlacedSpirit] = [
        {
            "id": p.id,
            "spiritId": p.spirit_id,
            "gridX": p.grid_x,
            "gridY": p.grid_y,
            "level": p.level,
            "experience": p.experience,
        }
        for p in save.placed_spirits
    ]
    inventory: List[SaveInventoryEntry] = [
        {"spiritId": e.spirit_id, "count": e.count} for e in save.inventory
    ]
    return {
        "version": save.version,
        "essence": save.essence,
        "gems": save.gems,
        "unlockedCells": save.unlocked_cells,
        "placedSpirits": placed,
        "inventory": inventory,
        "totalSummons": save.total_summons,
        "totalEssenceEarned": save.total_essence_earned,
        "achievements": list(save.achievements),
        "lastSaveTime": save.last_save_time,
        "settings": {
            "musicVolume": save.settings.music_volume,
            "sfxVolume": save.settings.sfx_volume,
        },
    }

def encode_save(save: GameSave) -> bytes:
    return json.dumps(serialize_save(save), separators=(",", ":")).encode("utf-8")

def decode_save(data: bytes) -> Dict[str, Any]:
    """Bytes -> raw dict. Raises ValueError when the blob is not a JSON object."""
    raw = json.loads(data.decode("utf-8"))
    if not isinstance(raw, dict):
        raise ValueError(f"save root must be an object, got {type(raw).__name__}")
    return raw

# ==============================================================================
#  Migrations (keyed by the version stored in the blob)
# ==============================================================================

def _migrate_v0(raw: Dict[str, Any]) -> Dict[str, Any]:
    """
    Unversioned saves kept inventory as {spirit_id: qty}.
    Convert to the entry-list form.
    """
    out = dict(raw)
    inv = raw.get("inventory")
    if isinstance(inv, Mapping):
        out["inventory"] = [{"spiritId": str(k), "count": v} for k, v in inv.items()]
    out["version"] = 1
    return out

_MIGRATIONS: Dict[int, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
    0: _migrate_v0,
}

def migrate(raw: Dict[str, Any]) -> Dict[str, Any]:
    version = coerce_int(raw.get("version"), 0) if "version" in raw else 0
    if version > SAVE_VERSION:
        logger.warning(f"Save is from a newer version (v{version}); loading what is recognisable.")
        return raw
    while version < SAVE_VERSION:
        step = _MIGRATIONS.get(version)
        if step is not None:
            raw = step(raw)
        version += 1
    return raw

# ==============================================================================
#  Rehydration Logic (raw dict -> GameSave, with sanitizing)
# ==============================================================================

def _rehydrate_inventory(raw_inv: Any, catalog: Optional[SpiritCatalog]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    if not isinstance(raw_inv, list):
        return counts
    for entry in raw_inv:
        if not isinstance(entry, Mapping):
            continue
        s_id = entry.get("spiritId")
        qty = coerce_int(entry.get("count"), 0)
        if not isinstance(s_id, str) or not s_id or qty <= 0:
            continue
        if catalog is not None and s_id not in catalog:
            logger.warning(f"Spirit '{s_id}' found in saved inventory but missing from catalog.")
        counts[s_id] = counts.get(s_id, 0) + qty
    return counts

def _rehydrate_placed(
    raw_placed: Any,
    config: GameConfig,
    catalog: Optional[SpiritCatalog],
    unlocked_cells: int,
) -> Tuple[List[PlacedSpirit], List[str]]:
    """Returns (placed spirits, spirit ids displaced back to inventory)."""
    placed: List[PlacedSpirit] = []
    displaced: List[str] = []
    if not isinstance(raw_placed, list):
        return placed, displaced

    taken_cells = set()
    taken_ids = set()
    for entry in raw_placed:
        if not isinstance(entry, Mapping):
            continue
        inst_id, s_id = entry.get("id"), entry.get("spiritId")
        if not isinstance(s_id, str) or not s_id:
            continue
        if catalog is not None and s_id not in catalog:
            logger.warning(f"Placed spirit '{s_id}' found in save file but missing from catalog.")

        x = coerce_int(entry.get("gridX"), -1)
        y = coerce_int(entry.get("gridY"), -1)
        in_grid = 0 <= x < config.grid_cols and 0 <= y < config.grid_rows
        if (not in_grid or y * config.grid_cols + x >= unlocked_cells
                or (x, y) in taken_cells
                or not isinstance(inst_id, str) or inst_id in taken_ids):
            logger.warning(f"Placed spirit '{s_id}' at ({x},{y}) is invalid; returned to inventory.")
            displaced.append(s_id)
            continue

        taken_cells.add((x, y))
        taken_ids.add(inst_id)
        placed.append(PlacedSpirit(
            id=inst_id,
            spirit_id=s_id,
            grid_x=x,
            grid_y=y,
            level=int(clamp(coerce_int(entry.get("level"), 1), 1, config.max_spirit_level)),
            experience=max(0, coerce_int(entry.get("experience"), 0)),
        ))
    return placed, displaced

def rehydrate_save(
    raw_data: Dict[str, Any],
    config: GameConfig,
    now_ms: int,
    catalog: Optional[SpiritCatalog] = None,
) -> GameSave:
    """
    Converts a raw save dict into a GameSave on top of the default record.
    Every field is coerced on its own: a bad or missing field falls back
    to its default without discarding the rest.
    """
    raw = migrate(raw_data)
    base = default_save(config, now_ms)

    unlocked = int(clamp(
        coerce_int(raw.get("unlockedCells"), base.unlocked_cells),
        config.starting_grid_size, config.max_grid_size,
    ))

    counts = _rehydrate_inventory(raw.get("inventory"), catalog)
    placed, displaced = _rehydrate_placed(raw.get("placedSpirits"), config, catalog, unlocked)
    for s_id in displaced:
        counts[s_id] = counts.get(s_id, 0) + 1

    raw_settings = raw.get("settings")
    if not isinstance(raw_settings, Mapping):
        raw_settings = {}
    settings = Settings(
        music_volume=clamp(coerce_float(raw_settings.get("musicVolume"), base.settings.music_volume), 0.0, 1.0),
        sfx_volume=clamp(coerce_float(raw_settings.get("sfxVolume"), base.settings.sfx_volume), 0.0, 1.0),
    )

    raw_ach = raw.get("achievements")
    achievements = [str(a) for a in raw_ach if isinstance(a, str)] if isinstance(raw_ach, list) else []

    essence = max(0.0, coerce_float(raw.get("essence"), base.essence))
    return GameSave(
        version=SAVE_VERSION,
        essence=essence,
        gems=max(0, coerce_int(raw.get("gems"), base.gems)),
        unlocked_cells=unlocked,
        placed_spirits=placed,
        inventory=[InventoryEntry(s_id, qty) for s_id, qty in counts.items()],
        total_summons=max(0, coerce_int(raw.get("totalSummons"), base.total_summons)),
        total_essence_earned=max(0.0, coerce_float(raw.get("totalEssenceEarned"), base.total_essence_earned)),
        achievements=achievements,
        last_save_time=coerce_int(raw.get("lastSaveTime"), base.last_save_time),
        settings=settings,
    )
