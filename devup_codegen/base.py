"""
Shared helpers for the Devup code generator.

Number/colour formatting, spacing shorthands, blend mode mapping and the
short-attribute tables used by every stage of the pipeline.
"""

import math
import re
from typing import Any, Dict, Optional


# ---------------------------------------------------------------------------
# Number formatting
# ---------------------------------------------------------------------------

def _trim_fixed(value: float, digits: int) -> str:
    text = f"{value:.{digits}f}"
    if '.' in text:
        text = text.rstrip('0').rstrip('.')
    if text == '-0':
        text = '0'
    return text


def fmt_pct(n: float) -> str:
    """Round to 2 decimal places and drop trailing zeros (156.30 -> '156.3')."""
    return _trim_fixed(math.floor(n * 100 + 0.5) / 100, 2)


def fmt_duration(n: float) -> str:
    """Seconds with up to 3 decimals, trailing zeros removed."""
    return _trim_fixed(math.floor(n * 1000 + 0.5) / 1000, 3)


def add_px(value: Any, fallback: Optional[str] = None) -> Optional[str]:
    """Format a number as a px length. Zero and non-numbers yield ``fallback``."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return fallback
    text = _trim_fixed(value, 3)
    if text == '0':
        return fallback
    return f"{text}px"


def _round2(value: float) -> float:
    return math.floor(value * 100 + 0.5) / 100


def four_value_shortcut(first: float, second: float, third: float, fourth: float) -> str:
    """CSS four-value shorthand (top/right/bottom/left or corner order)."""
    a, b, c, d = _round2(first), _round2(second), _round2(third), _round2(fourth)
    if a == b == c == d:
        return add_px(a, '0')
    if a == c and b == d:
        return f"{add_px(a, '0')} {add_px(b, '0')}"
    if b == d:
        return f"{add_px(a, '0')} {add_px(b, '0')} {add_px(c, '0')}"
    return f"{add_px(a, '0')} {add_px(b, '0')} {add_px(c, '0')} {add_px(d, '0')}"


def optimize_space(kind: str, t: float, r: float, b: float, l: float) -> Dict[str, Optional[str]]:
    """Collapse four sides into the shortest Devup spacing props (p, px/py, pt...)."""
    t, r, b, l = _round2(t), _round2(r), _round2(b), _round2(l)
    if t == r == b == l:
        return {kind: add_px(t)}
    if t == b and r == l:
        return {f'{kind}y': add_px(t), f'{kind}x': add_px(l)}
    if t == b:
        return {f'{kind}y': add_px(t), f'{kind}r': add_px(r), f'{kind}l': add_px(l)}
    if l == r:
        return {f'{kind}x': add_px(l), f'{kind}t': add_px(t), f'{kind}b': add_px(b)}
    return {
        f'{kind}t': add_px(t),
        f'{kind}r': add_px(r),
        f'{kind}b': add_px(b),
        f'{kind}l': add_px(l),
    }


# ---------------------------------------------------------------------------
# Colours
# ---------------------------------------------------------------------------

def rgba_to_hex(color: Dict[str, float], opacity: float = 1) -> str:
    """Convert a Figma RGBA colour (0-1 channels) to upper-case hex."""
    r = round(color.get('r', 0) * 255)
    g = round(color.get('g', 0) * 255)
    b = round(color.get('b', 0) * 255)
    a = color.get('a', 1) * opacity
    if a < 1:
        return f"#{r:02X}{g:02X}{b:02X}{round(a * 255):02X}"
    return f"#{r:02X}{g:02X}{b:02X}"


def optimize_hex(value: str) -> str:
    """Shorten #RRGGBB(AA) to #RGB(A) when every channel repeats."""
    if not value.startswith('#') or len(value) not in (7, 9):
        return value
    pairs = [value[i:i + 2] for i in range(1, len(value), 2)]
    if all(p[0] == p[1] for p in pairs):
        return '#' + ''.join(p[0] for p in pairs)
    return value


def color_to_css(color: Dict[str, float], opacity: float = 1) -> str:
    return optimize_hex(rgba_to_hex(color, opacity))


def rgb_to_string(color: Dict[str, float], opacity: Optional[float] = None) -> str:
    r = round(color.get('r', 0) * 255)
    g = round(color.get('g', 0) * 255)
    b = round(color.get('b', 0) * 255)
    if opacity is not None and opacity < 1:
        return f"rgba({r}, {g}, {b}, {fmt_pct(opacity)})"
    return f"rgb({r}, {g}, {b})"


def is_same_color(first: Dict[str, float], second: Dict[str, float]) -> bool:
    return all(abs(first.get(ch, 0) - second.get(ch, 0)) < 0.01 for ch in ('r', 'g', 'b'))


BLEND_MODE_MAP: Dict[str, Optional[str]] = {
    'PASS_THROUGH': None,
    'NORMAL': None,
    'DARKEN': 'darken',
    'MULTIPLY': 'multiply',
    'LINEAR_BURN': 'color-burn',
    'COLOR_BURN': 'color-burn',
    'LIGHTEN': 'lighten',
    'SCREEN': 'screen',
    'LINEAR_DODGE': 'color-dodge',
    'COLOR_DODGE': 'color-dodge',
    'OVERLAY': 'overlay',
    'SOFT_LIGHT': 'soft-light',
    'HARD_LIGHT': 'hard-light',
    'DIFFERENCE': 'difference',
    'EXCLUSION': 'exclusion',
    'HUE': 'hue',
    'SATURATION': 'saturation',
    'COLOR': 'color',
    'LUMINOSITY': 'luminosity',
}


# ---------------------------------------------------------------------------
# Names
# ---------------------------------------------------------------------------

def to_camel(name: str) -> str:
    """'Primary / Bg-Color' -> 'primaryBgColor'."""
    parts = [p for p in re.split(r'[^0-9a-zA-Z]+', name) if p]
    if not parts:
        return ''
    head = parts[0][0].lower() + parts[0][1:]
    return head + ''.join(p[0].upper() + p[1:] for p in parts[1:])


def to_pascal(name: str) -> str:
    camel = to_camel(name)
    return camel[:1].upper() + camel[1:]


def token_reference(name: str) -> str:
    """Devup theme reference for a design-token name."""
    return f"${to_camel(name)}"


# Devup shorthand -> CSS long-form property name
SHORT_TO_LONG: Dict[str, str] = {
    'bg': 'background',
    'bgAttachment': 'background-attachment',
    'bgClip': 'background-clip',
    'bgColor': 'background-color',
    'bgImage': 'background-image',
    'bgBlendMode': 'background-blend-mode',
    'bgPosition': 'background-position',
    'bgRepeat': 'background-repeat',
    'bgSize': 'background-size',
    'flexDir': 'flex-direction',
    'pos': 'position',
    'm': 'margin',
    'mt': 'margin-top',
    'mr': 'margin-right',
    'mb': 'margin-bottom',
    'ml': 'margin-left',
    'mx': 'margin-inline',
    'my': 'margin-block',
    'p': 'padding',
    'pt': 'padding-top',
    'pr': 'padding-right',
    'pb': 'padding-bottom',
    'pl': 'padding-left',
    'px': 'padding-inline',
    'py': 'padding-block',
    'w': 'width',
    'h': 'height',
    'boxSize': 'width,height',
    'minW': 'min-width',
    'minH': 'min-height',
    'maxW': 'max-width',
    'maxH': 'max-height',
}


def to_long_form(key: str) -> str:
    """Devup prop key -> dash-separated CSS name (bg -> background, boxShadow -> box-shadow)."""
    if key in SHORT_TO_LONG:
        return SHORT_TO_LONG[key]
    dashed = re.sub(r'([A-Z])', lambda m: '-' + m.group(1).lower(), key)
    if dashed.startswith('webkit-'):
        dashed = '-' + dashed
    return dashed


# ---------------------------------------------------------------------------
# Default values
# ---------------------------------------------------------------------------

_ZERO = re.compile(r'\b0(px)?\b')

DEFAULT_PROPS_MAP: Dict[str, re.Pattern] = {
    'p': _ZERO, 'pr': _ZERO, 'pt': _ZERO, 'pb': _ZERO, 'px': _ZERO, 'py': _ZERO, 'pl': _ZERO,
    'm': _ZERO, 'mt': _ZERO, 'mb': _ZERO, 'mr': _ZERO, 'ml': _ZERO, 'mx': _ZERO, 'my': _ZERO,
    'gap': _ZERO,
    'textDecorationSkipInk': re.compile(r'\bauto\b'),
    'textDecorationThickness': re.compile(r'\bauto\b'),
    'textDecorationStyle': re.compile(r'\bsolid\b'),
    'textDecorationColor': re.compile(r'\bauto\b'),
    'textUnderlineOffset': re.compile(r'\bauto\b'),
    'alignItems': re.compile(r'\bflex-start\b'),
    'justifyContent': re.compile(r'\bflex-start\b'),
    'flexDir': re.compile(r'\brow\b'),
}


def is_default_prop(key: str, value: Any) -> bool:
    """True when ``value`` is the CSS default for ``key``. Only scalars qualify."""
    pattern = DEFAULT_PROPS_MAP.get(key)
    if pattern is None or isinstance(value, bool) or not isinstance(value, (str, int, float)):
        return False
    return bool(pattern.search(str(value)))
