"""
Games module - One adapter per game variant.

Each adapter translates a variant's rules into the shared capability set
(slots, toggle placement, local legality, commit payload) so the engine
never branches on the variant.

Usage:
    adapter = get_adapter("scrabble")
    adapter = get_adapter(Variant.TILE_MATCHING)
"""

from __future__ import annotations

from ..engine_core.state import Variant
from .base import GameAdapter
from .placement import PlacementGridAdapter
from .targeting import TargetingGridAdapter
from .codebreaking import CodeBreakingAdapter
from .tilematching import TileMatchingAdapter

ADAPTERS: dict[Variant, type[GameAdapter]] = {
    Variant.PLACEMENT_GRID: PlacementGridAdapter,
    Variant.TARGETING_GRID: TargetingGridAdapter,
    Variant.CODE_BREAKING: CodeBreakingAdapter,
    Variant.TILE_MATCHING: TileMatchingAdapter,
}

ROUTES: dict[str, Variant] = {cls.route: variant for variant, cls in ADAPTERS.items()}


def get_adapter(variant: Variant | str) -> GameAdapter:
    """
    Build the adapter for a variant, given as a Variant, its value or a route.

    Raises:
        KeyError: If the variant is unknown
    """
    if isinstance(variant, str):
        if variant in ROUTES:
            variant = ROUTES[variant]
        else:
            try:
                variant = Variant(variant)
            except ValueError:
                raise KeyError(f"Unknown game variant: {variant}")
    return ADAPTERS[variant]()


__all__ = [
    "GameAdapter",
    "PlacementGridAdapter",
    "TargetingGridAdapter",
    "CodeBreakingAdapter",
    "TileMatchingAdapter",
    "ADAPTERS",
    "ROUTES",
    "get_adapter",
]
