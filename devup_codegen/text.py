"""
Typography props and text children for TEXT nodes.

A text node is split into styled runs (``characterStyleOverrides``). Each run
gets its own typography; the most common colour and typography are hoisted
to the outer ``Text`` and multi-run nodes render one nested ``Text`` per run.
"""

import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .base import fmt_pct, to_camel
from .facts import FactProvider, NodeFacts
from .paint import solid_to_css
from .render import render_node

logger = logging.getLogger(__name__)

Props = Dict[str, Any]

TYPOGRAPHY_KEYS = ('fontFamily', 'fontSize', 'fontWeight', 'fontStyle', 'letterSpacing', 'lineHeight')

_SPECIAL_CHARS = re.compile(r'([{}&<>]+)')
_EDGE_SPACE = re.compile(r'(^\s+)|(\s+$)')

_BASE_STYLE_KEYS = (
    'fontFamily', 'fontWeight', 'fontSize', 'italic', 'letterSpacing',
    'lineHeightPx', 'lineHeightPercentFontSize', 'lineHeightUnit',
    'textCase', 'textDecoration',
)


@dataclass
class TextSegment:
    characters: str
    style: Dict[str, Any] = field(default_factory=dict)
    fills: List[Dict[str, Any]] = field(default_factory=list)
    text_style_id: Optional[str] = None


@dataclass
class RenderedText:
    children: List[str]
    props: Props


def fix_text_child(text: str) -> str:
    """Escape JSX-significant characters and preserve edge whitespace."""
    text = _SPECIAL_CHARS.sub(lambda m: '{"' + m.group(1) + '"}', text)
    return _EDGE_SPACE.sub(lambda m: '{"' + ' ' * len(m.group(0)) + '"}', text)


def style_to_typography(style: Dict[str, Any]) -> Props:
    """Devup typography props from a REST ``TypeStyle``."""
    props: Props = {
        'fontFamily': style.get('fontFamily'),
        'fontStyle': 'italic' if style.get('italic') or 'Italic' in (style.get('fontPostScriptName') or '') else None,
        'fontWeight': str(style['fontWeight']) if style.get('fontWeight') else None,
        'fontSize': f"{fmt_pct(style['fontSize'])}px" if style.get('fontSize') else None,
    }

    decoration = (style.get('textDecoration') or 'NONE').lower()
    props['textDecoration'] = None if decoration == 'none' else decoration.replace('strikethrough', 'line-through')
    case = style.get('textCase') or 'ORIGINAL'
    props['textTransform'] = {
        'UPPER': 'uppercase',
        'LOWER': 'lowercase',
        'TITLE': 'capitalize',
    }.get(case)

    unit = style.get('lineHeightUnit')
    if unit == 'FONT_SIZE_%' and style.get('lineHeightPercentFontSize'):
        props['lineHeight'] = fmt_pct(math.floor(style['lineHeightPercentFontSize'] / 10 + 0.5) / 10)
    elif unit == 'PIXELS' and style.get('lineHeightPx'):
        props['lineHeight'] = f"{fmt_pct(style['lineHeightPx'])}px"
    elif unit is not None:
        props['lineHeight'] = 'normal'

    spacing = style.get('letterSpacing')
    if spacing:
        props['letterSpacing'] = f"{fmt_pct(spacing)}px"
    return {k: v for k, v in props.items() if v is not None}


def text_segments(facts: NodeFacts) -> List[TextSegment]:
    """Split the node's characters into runs sharing one style override."""
    characters = facts.get('characters') or ''
    base_style = {key: facts.get(key) for key in _BASE_STYLE_KEYS if facts.get(key) is not None}
    base_style.update(facts.get('style') or {})
    text_style_id = (facts.get('styles') or {}).get('text')
    overrides = facts.get('characterStyleOverrides') or []
    table = facts.get('styleOverrideTable') or {}

    def segment(text: str, override: Any) -> TextSegment:
        entry = table.get(str(override)) if override else None
        if not entry:
            return TextSegment(text, dict(base_style), list(facts.fills), text_style_id)
        style = {**base_style, **entry}
        fills = entry.get('fills', facts.fills)
        return TextSegment(text, style, list(fills), text_style_id)

    if not overrides or not table:
        return [segment(characters, None)]

    runs: List[TextSegment] = []
    start = 0
    current = overrides[0] if overrides else 0
    for i in range(1, len(characters) + 1):
        override = overrides[i] if i < len(overrides) else 0
        if i == len(characters) or override != current:
            runs.append(segment(characters[start:i], current))
            start, current = i, override
    return [run for run in runs if run.characters]


async def color_from_fills(fills: List[Dict[str, Any]], provider: FactProvider) -> Optional[str]:
    for fill in fills:
        if fill.get('visible', True) and fill.get('type') == 'SOLID':
            return await solid_to_css(fill, provider)
    return None


async def typography_token(text_style_id: Optional[str], provider: FactProvider) -> Optional[str]:
    """Name of the shared text style, as a theme typography key."""
    if not text_style_id:
        return None
    try:
        token = await provider.resolve_token(text_style_id)
    except Exception as e:
        logger.warning("Failed to resolve text style %s: %s", text_style_id, e)
        return None
    if token is None:
        return None
    return to_camel(token.name.split('/')[-1])


async def segment_props(segment: TextSegment, provider: FactProvider) -> Props:
    props = style_to_typography(segment.style)
    color = await color_from_fills(segment.fills, provider)
    if color:
        props['color'] = color
    typography = await typography_token(segment.text_style_id, provider)
    if typography:
        for key in TYPOGRAPHY_KEYS:
            props.pop(key, None)
        props['typography'] = typography
    return props


def _most_common(values: List[Optional[str]]) -> Optional[str]:
    best, best_count = None, 0
    for value in values:
        count = values.count(value)
        if count > best_count:
            best, best_count = value, count
    return best


async def render_text(facts: NodeFacts, provider: FactProvider) -> RenderedText:
    """Text children and hoisted props for a TEXT node."""
    segments = text_segments(facts)
    props_list = [await segment_props(segment, provider) for segment in segments]

    if len(segments) <= 1:
        props = props_list[0] if props_list else {}
        text = segments[0].characters if segments else ''
        return RenderedText([fix_text_child(text).replace('\n', '<br />')], props)

    main_color = _most_common([p.get('color') for p in props_list])
    main_typography = _most_common([p.get('typography') for p in props_list])

    children = []
    for segment, props in zip(segments, props_list):
        if props.get('color') == main_color:
            props.pop('color', None)
        if props.get('typography') == main_typography:
            props.pop('typography', None)
        text = fix_text_child(segment.characters).replace('\n', '<br />')
        children.append(render_node('Text', props, 0, [text]))

    hoisted: Props = {}
    if main_color:
        hoisted['color'] = main_color
    if main_typography:
        hoisted['typography'] = main_typography
    return RenderedText(children, hoisted)
