import json
import logging
import os
from typing import Any, List, Optional

from spiritgarden.data.catalog import RARITY_WEIGHTS, SpiritCatalog
from spiritgarden.data.validators import validate_catalog
from spiritgarden.models import Element, Rarity, SpiritDef
from spiritgarden.utils import canonical_spirit_id, coerce_float

logger = logging.getLogger(__name__)


def load_json(path: str) -> Any:
    if not os.path.exists(path):
        logger.warning(f"File not found: {path}")
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse JSON {path}: {e}")
        return {}

def _parse_element(raw: Any) -> Optional[Element]:
    return getattr(Element, str(raw or "").upper(), None)

# ==============================================================================
#  SPIRITS
# ==============================================================================

def parse_spirit(s_data: dict) -> SpiritDef:
    """Build one SpiritDef from its JSON object. Raises on missing name/element."""
    name = s_data["name"]
    element = _parse_element(s_data.get("element"))
    if element is None:
        raise ValueError(f"unknown element {s_data.get('element')!r}")

    # Rarity is lenient: "legendary", "LEGENDARY" and junk (-> COMMON) all load
    r_str = str(s_data.get("rarity", "COMMON")).upper()
    rarity = getattr(Rarity, r_str, Rarity.COMMON)

    synergies = []
    for raw in s_data.get("synergies", []) or []:
        el = _parse_element(raw)
        if el is None:
            logger.warning(f"Spirit '{name}' lists unknown synergy element {raw!r}; ignored.")
            continue
        synergies.append(el)

    evo_cost = s_data.get("evolution_cost")
    return SpiritDef(
        id=s_data.get("id") or canonical_spirit_id(name),
        name=name,
        element=element,
        rarity=rarity,
        base_production=max(0.0, coerce_float(s_data.get("base_production"), 0.0)),
        description=s_data.get("description", ""),
        synergies=frozenset(synergies),
        evolution_id=s_data.get("evolution_id"),
        evolution_cost=int(evo_cost) if evo_cost is not None else None,
    )

def load_spirits(path: str) -> SpiritCatalog:
    """
    Loads a spirit catalog from a JSON list (or an {id: spirit} dict).
    Broken entries are skipped; the survivors must pass validate_catalog.
    """
    data = load_json(path)
    if not isinstance(data, list):
        if isinstance(data, dict):
            data = list(data.values())
        else:
            logger.error(f"{path} must be a list. Loaded empty.")
            data = []

    spirits: List[SpiritDef] = []
    for s_data in data:
        try:
            spirits.append(parse_spirit(s_data))
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            label = s_data.get("name", "Unknown") if isinstance(s_data, dict) else "Unknown"
            logger.error(f"Skipping spirit {label}: {e}")

    validate_catalog(spirits, RARITY_WEIGHTS)
    logger.info(f"Loaded {len(spirits)} spirits.")
    return SpiritCatalog(spirits)
