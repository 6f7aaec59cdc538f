"""
Responsive Merger.

Collapses one logical node's property maps across breakpoints into a single
map whose divergent values are fixed 5-slot arrays ``[mobile, sm, tablet, lg, pc]``.
Also folds maps across variants into ``VariantPropValue`` selections.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .base import is_default_prop

INITIAL = 'initial'
PSEUDO_PREFIX = 'on-'


class Breakpoint(str, Enum):
    """Width buckets, smallest first."""
    MOBILE = "mobile"
    SM = "sm"
    TABLET = "tablet"
    LG = "lg"
    PC = "pc"

    @property
    def slot(self) -> int:
        return BREAKPOINT_ORDER.index(self)


BREAKPOINT_ORDER: List[Breakpoint] = [
    Breakpoint.MOBILE,
    Breakpoint.SM,
    Breakpoint.TABLET,
    Breakpoint.LG,
    Breakpoint.PC,
]

BREAKPOINT_WIDTHS: Dict[Breakpoint, float] = {
    Breakpoint.MOBILE: 480,
    Breakpoint.SM: 768,
    Breakpoint.TABLET: 992,
    Breakpoint.LG: 1280,
    Breakpoint.PC: math.inf,
}

# Props that later breakpoints inherit unless explicitly reset
CASCADING_PROPS = frozenset({
    'display', 'position', 'pos', 'transform', 'w', 'h', 'textAlign',
    'flexDir', 'flexWrap', 'justify', 'alignItems', 'alignContent', 'alignSelf',
    'gap', 'rowGap', 'columnGap', 'flex', 'flexGrow', 'flexShrink', 'flexBasis', 'order',
    'gridTemplateColumns', 'gridTemplateRows', 'gridColumn', 'gridRow', 'gridArea',
    'top', 'right', 'bottom', 'left', 'zIndex',
    'overflow', 'overflowX', 'overflowY',
    'p', 'pt', 'pr', 'pb', 'pl', 'px', 'py',
    'm', 'mt', 'mr', 'mb', 'ml', 'mx', 'my',
})


def breakpoint_for_width(width: float) -> Breakpoint:
    """Smallest breakpoint whose upper bound holds ``width``."""
    for bp in BREAKPOINT_ORDER:
        if width <= BREAKPOINT_WIDTHS[bp]:
            return bp
    return Breakpoint.PC


def viewport_to_breakpoint(viewport: str) -> Breakpoint:
    """Map a 'viewport' variant value (mobile/tablet/desktop) to a breakpoint."""
    lower = viewport.lower()
    if lower == 'mobile':
        return Breakpoint.MOBILE
    if lower == 'tablet':
        return Breakpoint.TABLET
    return Breakpoint.PC


def group_by_breakpoint(nodes: Iterable[Any]) -> Dict[Breakpoint, List[Any]]:
    """Group anything with a ``width`` attribute by breakpoint, preserving order."""
    groups: Dict[Breakpoint, List[Any]] = {}
    for node in nodes:
        groups.setdefault(breakpoint_for_width(node.width), []).append(node)
    return groups


def is_pseudo_key(key: str) -> bool:
    return key.startswith(PSEUDO_PREFIX)


def _is_equal(a: Any, b: Any) -> bool:
    if a is None or b is None:
        return a is b
    if isinstance(a, bool) != isinstance(b, bool):
        return False
    return a == b


def optimize_responsive_value(value: Any, key: Optional[str] = None) -> Any:
    """Shrink a breakpoint array to its minimal form.

    - consecutive duplicates keep only the first occurrence
    - a default value in slot 0 becomes null
    - trailing nulls are trimmed
    - a lone value in slot 0 collapses to the bare value
    - nothing left means None (omit the prop)

    Scalars are treated as a one-slot array, so the function is idempotent.
    """
    slots = list(value) if isinstance(value, list) else [value]
    if all(v is None for v in slots):
        return None

    last = None
    for i, current in enumerate(slots):
        if current is None:
            continue
        if _is_equal(current, last):
            slots[i] = None
        else:
            last = current

    if key and slots[0] is not None and is_default_prop(key, slots[0]):
        slots[0] = None

    while slots and slots[-1] is None:
        slots.pop()

    if not slots:
        return None
    if len(slots) == 1:
        return slots[0]
    return slots


def _insert_reset(values: List[Any], present: Iterable[Breakpoint]) -> List[Any]:
    """Put 'initial' at the first existing breakpoint after the last explicit value."""
    last = -1
    for i in range(len(values) - 1, -1, -1):
        if values[i] is not None:
            last = i
            break
    if last < 0 or last >= len(BREAKPOINT_ORDER) - 1:
        return values
    present = set(present)
    for i in range(last + 1, len(BREAKPOINT_ORDER)):
        if BREAKPOINT_ORDER[i] in present:
            reset = values[:i + 1]
            reset[i] = INITIAL
            return reset
    return values


def merge_props_to_responsive(
    breakpoint_props: Mapping[Any, Mapping[str, Any]],
) -> Dict[str, Any]:
    """Merge per-breakpoint property maps into one responsive map.

    ``breakpoint_props`` maps a ``Breakpoint`` (or its name) to the map
    extracted at that breakpoint.
    """
    props_by_bp: Dict[Breakpoint, Mapping[str, Any]] = {
        Breakpoint(bp): props or {} for bp, props in breakpoint_props.items()
    }
    if len(props_by_bp) == 1:
        return dict(next(iter(props_by_bp.values())))

    keys: List[str] = []
    for props in props_by_bp.values():
        for key in props:
            if key not in keys:
                keys.append(key)

    result: Dict[str, Any] = {}
    for key in keys:
        if is_pseudo_key(key):
            nested = {
                bp: (props[key] if isinstance(props.get(key), dict) else {})
                for bp, props in props_by_bp.items()
            }
            if any(isinstance(props.get(key), dict) for props in props_by_bp.values()):
                result[key] = merge_props_to_responsive(nested)
            continue

        values = [
            props_by_bp[bp].get(key) if bp in props_by_bp else None
            for bp in BREAKPOINT_ORDER
        ]
        if key in CASCADING_PROPS:
            values = _insert_reset(values, props_by_bp)

        optimized = optimize_responsive_value(values, key)
        if optimized is not None:
            result[key] = optimized
    return result


# ============================================================================
# Variant-conditional values
# ============================================================================

@dataclass
class VariantPropValue:
    """Select ``values[<active variant>]`` at render time."""
    variant_key: str
    values: Dict[str, Any] = field(default_factory=dict)


def merge_props_to_variant(
    variant_key: str,
    variant_props: Mapping[str, Mapping[str, Any]],
) -> Dict[str, Any]:
    """Fold per-variant property maps into one map keyed by ``variant_key``.

    Identical values stay bare; differing ones become a ``VariantPropValue``
    that lists only the variants with a value.
    """
    if len(variant_props) == 1:
        return dict(next(iter(variant_props.values())) or {})

    keys: List[str] = []
    for props in variant_props.values():
        for key in props:
            if key not in keys:
                keys.append(key)

    result: Dict[str, Any] = {}
    for key in keys:
        if is_pseudo_key(key):
            nested = {
                variant: props[key]
                for variant, props in variant_props.items()
                if isinstance(props.get(key), dict)
            }
            if nested:
                result[key] = merge_props_to_variant(variant_key, nested)
            continue

        by_variant = {variant: props.get(key) for variant, props in variant_props.items()}
        values = list(by_variant.values())
        if all(v is None for v in values):
            continue
        if values[0] is not None and all(_is_equal(v, values[0]) for v in values):
            result[key] = values[0]
            continue
        present = {variant: v for variant, v in by_variant.items() if v is not None}
        result[key] = VariantPropValue(variant_key, present)
    return result
