from __future__ import annotations
from typing import Iterable, Mapping

from spiritgarden.models import Rarity, SpiritDef


def validate_catalog(spirits: Iterable[SpiritDef], weights: Mapping[Rarity, float]) -> None:
    """
    Fail fast on a catalog the engines cannot use:
    duplicate ids, evolution targets that do not exist, or a rarity that
    can be rolled but has nobody to hand out.
    """
    spirits = list(spirits)
    seen = set()
    for s in spirits:
        if s.id in seen:
            raise ValueError(f"Duplicate spirit id '{s.id}'.")
        seen.add(s.id)

    for s in spirits:
        if s.evolution_id and s.evolution_id not in seen:
            raise ValueError(
                f"Spirit '{s.id}' evolves into unknown spirit '{s.evolution_id}'."
                " Add it to the catalog or fix the id."
            )

    for rarity, weight in weights.items():
        if weight > 0 and not any(s.rarity == rarity for s in spirits):
            raise ValueError(f"Rarity '{rarity.value}' has weight {weight} but no spirits.")
