"""
General-purpose helpers for the project.
IMPORTANT: This module must NOT import from other spiritgarden.* modules
to avoid circular imports. Keep it self-contained.

Conventions:
- Pure utilities only (numeric coercion, RNG helpers, slugs, dict access).
- No game-specific classes imported here.
"""

from __future__ import annotations
from typing import Any, Callable, Mapping, Optional, Sequence, Tuple, TypeVar
import math
import random
import re
import time

T = TypeVar("T")

Clock = Callable[[], int]

# ----------------------------
# Numeric coercion & clamping
# ----------------------------

def coerce_int(x: Any, default: int = 0) -> int:
    """Best-effort int conversion with default fallback."""
    if isinstance(x, bool):
        return int(default)
    try:
        return int(x)
    except (TypeError, ValueError, OverflowError):
        return int(default)

def coerce_float(x: Any, default: float = 0.0) -> float:
    """Best-effort float conversion with default fallback. NaN and infinities count as invalid."""
    if isinstance(x, bool):
        return float(default)
    try:
        val = float(x)
    except (TypeError, ValueError, OverflowError):
        return float(default)
    if not math.isfinite(val):
        return float(default)
    return val

def clamp(value: float, lo: float, hi: float) -> float:
    """Clamp 'value' to [lo, hi]."""
    return max(lo, min(hi, value))

# ----------------------------
# Time
# ----------------------------

def wall_clock_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)

# ----------------------------
# Random helpers
# ----------------------------

def get_rng(seed: Optional[int] = None) -> random.Random:
    """Return a dedicated RNG; seeded when a seed is given."""
    return random.Random(seed) if seed is not None else random.Random()

def weighted_choice(
    options: Sequence[Tuple[T, float]],
    rng: random.Random,
    fallback: Optional[T] = None,
) -> Optional[T]:
    """
    Pick a single item from (item, weight) pairs, walking them in order.

    Draws r in [0, total) and subtracts each weight until the remainder
    drops to zero or below. If float drift runs the table out, returns
    `fallback` (or the first item when no fallback is given).
    """
    if not options:
        return fallback

    total = sum(max(0.0, float(w)) for _, w in options)
    if total <= 0:
        return fallback if fallback is not None else options[0][0]

    roll = rng.random() * total
    for item, weight in options:
        weight = float(weight)
        if weight <= 0:
            continue
        roll -= weight
        if roll <= 0:
            return item
    return fallback if fallback is not None else options[0][0]

# ----------------------------
# Strings, slugs
# ----------------------------

_slug_re = re.compile(r"[^a-z0-9]+", re.IGNORECASE)

def canonical_slug(s: str) -> str:
    """
    Lowercase ASCII-like slug: spaces/punctuation -> '_', collapse repeats, trim.
    NOTE: Does not strip accents; pre-normalize upstream if needed.
    """
    s = s.strip().lower()
    s = _slug_re.sub("_", s)
    s = re.sub(r"_+", "_", s)
    return s.strip("_")

def canonical_spirit_id(name: str) -> str:
    """Converts 'Ember Wisp' -> 'ember_wisp'."""
    if not name:
        return ""
    return canonical_slug(str(name))

# ----------------------------
# Dict helpers
# ----------------------------

def nested_get(d: Mapping[str, Any], keys: Sequence[str], default: Any = None) -> Any:
    """
    Safe nested dictionary get: nested_get(obj, ["a","b","c"], default).
    Returns default if any key is missing or 'd' isn't a mapping at some level.
    """
    cur: Any = d
    for k in keys:
        if not isinstance(cur, Mapping) or k not in cur:
            return default
        cur = cur[k]
    return cur


__all__ = [
    "Clock",
    "coerce_int", "coerce_float", "clamp",
    "wall_clock_ms",
    "get_rng", "weighted_choice",
    "canonical_slug", "canonical_spirit_id",
    "nested_get",
]
