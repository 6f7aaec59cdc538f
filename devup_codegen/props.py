"""
Synchronous property sub-extractors.

Each function reads one concern from a ``NodeContext`` and returns a partial
property map (or None when the concern does not apply). None values inside
a map mean "explicitly unset" and are dropped at render time.
"""

import math
from typing import Any, Dict, Optional

from .base import (
    BLEND_MODE_MAP,
    add_px,
    color_to_css,
    fmt_pct,
    four_value_shortcut,
    optimize_space,
)
from .facts import NodeContext, NodeFacts, is_free_layout

Props = Dict[str, Any]

JUSTIFY_CONTENT_MAP = {
    'MIN': 'flex-start',
    'MAX': 'flex-end',
    'CENTER': 'center',
    'SPACE_BETWEEN': 'space-between',
}

ALIGN_ITEMS_MAP = {
    'MIN': 'flex-start',
    'MAX': 'flex-end',
    'CENTER': 'center',
    'SPACE_BETWEEN': 'space-between',
    'BASELINE': 'baseline',
}


def _round2(value: float) -> float:
    return math.floor(value * 100 + 0.5) / 100


# ============================================================================
# Layout
# ============================================================================

def auto_layout_props(ctx: NodeContext) -> Optional[Props]:
    """Flex or grid container props."""
    facts = ctx.facts
    mode = facts.get('layoutMode', 'NONE')
    if not mode or mode == 'NONE' or ctx.asset is not None:
        return None
    if mode == 'GRID':
        row_gap = facts.get('gridRowGap', 0) or 0
        column_gap = facts.get('gridColumnGap', 0) or 0
        same_gap = _round2(row_gap) == _round2(column_gap)
        return {
            'display': 'grid',
            'gridTemplateColumns': f"repeat({facts.get('gridColumnCount', 1)}, 1fr)",
            'gridTemplateRows': f"repeat({facts.get('gridRowCount', 1)}, 1fr)",
            'rowGap': None if same_gap else add_px(row_gap),
            'columnGap': None if same_gap else add_px(column_gap),
            'gap': add_px(row_gap) if same_gap else None,
        }

    visible_children = sum(1 for child in ctx.children if child.visible)
    primary = facts.get('primaryAxisAlignItems', 'MIN')
    return {
        'display': 'flex',
        'flexDir': {'HORIZONTAL': 'row', 'VERTICAL': 'column'}.get(mode),
        'flexWrap': 'wrap' if facts.get('layoutWrap') == 'WRAP' else None,
        'gap': add_px(facts.get('itemSpacing', 0))
        if visible_children > 1 and primary != 'SPACE_BETWEEN' else None,
        'justifyContent': JUSTIFY_CONTENT_MAP.get(primary),
        'alignItems': ALIGN_ITEMS_MAP.get(facts.get('counterAxisAlignItems', 'MIN')),
    }


def min_max_props(ctx: NodeContext) -> Props:
    facts = ctx.facts
    return {
        'maxW': add_px(facts.get('maxWidth')),
        'maxH': add_px(facts.get('maxHeight')),
        'minW': add_px(facts.get('minWidth')),
        'minH': add_px(facts.get('minHeight')),
    }


def _is_child_width_shrinker(parent: Optional[NodeFacts]) -> bool:
    """Vertical auto-layout that centres its children on the cross axis."""
    return (
        parent is not None
        and parent.get('layoutMode') == 'VERTICAL'
        and parent.get('counterAxisAlignItems') == 'CENTER'
    )


def _text_layout_props(facts: NodeFacts) -> Optional[Props]:
    resize = facts.get('textAutoResize', 'NONE')
    if resize == 'WIDTH_AND_HEIGHT':
        return {}
    if resize == 'HEIGHT':
        return {'w': add_px(facts.width)}
    return None


def _layout_props(ctx: NodeContext) -> Props:
    facts = ctx.facts
    parent = ctx.parent
    if ctx.can_be_absolute:
        if facts.type == 'TEXT' or (parent is not None and parent.width > facts.width):
            w = add_px(facts.width) if ctx.asset or not facts.children else None
        else:
            w = '100%'
        if facts.children or facts.type == 'TEXT':
            h = None
        else:
            h = add_px(facts.height)
        return {'w': w, 'h': h}

    w_type = facts.get('layoutSizingHorizontal', 'FIXED')
    h_type = facts.get('layoutSizingVertical', 'FIXED')
    if facts.type == 'TEXT' and w_type == 'FIXED' and h_type == 'FIXED':
        text_props = _text_layout_props(facts)
        if text_props is not None:
            return text_props

    ratio = facts.get('targetAspectRatio')
    is_page_node = ctx.page_node is not None and ctx.page_node.id == facts.id
    if is_page_node:
        w = None
    elif w_type == 'FIXED':
        w = add_px(facts.width)
    elif w_type == 'FILL' and (_is_child_width_shrinker(parent) or facts.get('maxWidth') is not None):
        w = '100%'
    else:
        w = None

    if h_type == 'FIXED':
        h = add_px(facts.height)
    elif h_type == 'FILL' and (_is_child_width_shrinker(parent) or facts.get('maxHeight') is not None):
        h = '100%'
    else:
        h = None

    return {
        'aspectRatio': math.floor(ratio['x'] / ratio['y'] * 100) / 100
        if ratio and ratio.get('y') else None,
        'flex': 1 if w_type == 'FILL' and parent is not None
        and parent.get('layoutMode') == 'HORIZONTAL' else None,
        'w': w,
        'h': h,
    }


def layout_props(ctx: NodeContext) -> Props:
    """Width/height, collapsing equal sides into ``boxSize``."""
    result = _layout_props(ctx)
    if result.get('w') and result.get('h') == result.get('w'):
        result['boxSize'] = result.pop('w')
        del result['h']
    return result


# ============================================================================
# Shape
# ============================================================================

def border_radius_props(ctx: NodeContext) -> Optional[Props]:
    facts = ctx.facts
    radius = facts.get('cornerRadius')
    radii = facts.get('rectangleCornerRadii')
    if radii and len(radii) == 4:
        value = four_value_shortcut(*radii)
        if value == '0':
            return None
        return {'borderRadius': value}
    if isinstance(radius, (int, float)) and radius:
        return {'borderRadius': add_px(radius)}
    arc = facts.get('arcData') or {}
    if facts.type == 'ELLIPSE' and not arc.get('innerRadius'):
        return {'borderRadius': '50%'}
    return None


def blend_props(ctx: NodeContext) -> Props:
    facts = ctx.facts
    return {
        'opacity': fmt_pct(facts.opacity) if facts.opacity < 1 else None,
        'mixBlendMode': BLEND_MODE_MAP.get(facts.blend_mode),
    }


_PADDING_KEYS = ('paddingTop', 'paddingRight', 'paddingBottom', 'paddingLeft')


def padding_props(ctx: NodeContext) -> Optional[Props]:
    facts = ctx.facts
    if not any(key in facts.raw for key in _PADDING_KEYS):
        return None
    return optimize_space('p', *(facts.get(key, 0) or 0 for key in _PADDING_KEYS))


def object_fit_props(ctx: NodeContext) -> Optional[Props]:
    if not ctx.asset:
        return None
    for fill in ctx.facts.fills:
        if fill.get('type') == 'IMAGE' and fill.get('visible', True):
            return {'objectFit': {'FIT': 'contain', 'CROP': 'cover'}.get(fill.get('scaleMode'))}
    return None


# ============================================================================
# Text
# ============================================================================

def text_align_props(ctx: NodeContext) -> Optional[Props]:
    facts = ctx.facts
    if facts.type != 'TEXT':
        return None
    w_type = facts.get('layoutSizingHorizontal', 'FIXED')
    h_type = facts.get('layoutSizingVertical', 'FIXED')
    return {
        'textAlign': None if w_type == 'HUG' else {
            'CENTER': 'center',
            'RIGHT': 'right',
            'JUSTIFIED': 'justify',
        }.get(facts.get('textAlignHorizontal')),
        'alignContent': None if h_type == 'HUG' else {
            'CENTER': 'center',
            'BOTTOM': 'end',
        }.get(facts.get('textAlignVertical')),
    }


def max_line_props(ctx: NodeContext) -> Optional[Props]:
    facts = ctx.facts
    max_lines = facts.get('maxLines')
    if facts.type != 'TEXT' or not max_lines:
        return None
    if max_lines == 1:
        return {'whiteSpace': 'nowrap'}
    return {
        'WebkitLineClamp': str(max_lines),
        'WebkitBoxOrient': 'vertical',
        'display': '-webkit-box',
    }


def ellipsis_props(ctx: NodeContext) -> Optional[Props]:
    facts = ctx.facts
    if (
        facts.type != 'TEXT'
        or facts.get('textTruncation', 'DISABLED') == 'DISABLED'
        or facts.get('layoutSizingHorizontal') == 'HUG'
    ):
        return None
    return {'textOverflow': 'ellipsis', 'overflow': 'hidden'}


def text_shadow_props(ctx: NodeContext) -> Optional[Props]:
    facts = ctx.facts
    if facts.type != 'TEXT':
        return None
    shadows = [
        e for e in facts.effects
        if e.get('visible', True) and e.get('type') == 'DROP_SHADOW'
    ]
    if not shadows:
        return None
    return {
        'textShadow': ', '.join(
            f"{add_px(s.get('offset', {}).get('x', 0), '0')} "
            f"{add_px(s.get('offset', {}).get('y', 0), '0')} "
            f"{add_px(s.get('radius', 0), '0')} "
            f"{color_to_css(s.get('color', {}))}"
            for s in shadows
        )
    }


# ============================================================================
# Effects
# ============================================================================

def _shadow_to_css(effect: Dict[str, Any]) -> str:
    offset = effect.get('offset', {})
    parts = [
        add_px(offset.get('x', 0), '0'),
        add_px(offset.get('y', 0), '0'),
        add_px(effect.get('radius', 0), '0'),
        add_px(effect.get('spread', 0), '0'),
        color_to_css(effect.get('color', {})),
    ]
    if effect.get('type') == 'INNER_SHADOW':
        parts.insert(0, 'inset')
    return ' '.join(parts)


def effect_props(ctx: NodeContext) -> Optional[Props]:
    """Shadows and blurs."""
    effects = [e for e in ctx.facts.effects if e.get('visible', True)]
    if not effects:
        return None
    shadows = []
    filters = []
    backdrop = []
    for effect in effects:
        effect_type = effect.get('type')
        if effect_type in ('DROP_SHADOW', 'INNER_SHADOW'):
            if ctx.facts.type != 'TEXT':
                shadows.append(_shadow_to_css(effect))
        elif effect_type == 'LAYER_BLUR':
            filters.append(f"blur({add_px(effect.get('radius', 0) / 2, '0')})")
        elif effect_type == 'BACKGROUND_BLUR':
            backdrop.append(f"blur({add_px(effect.get('radius', 0) / 2, '0')})")
    backdrop_filter = ' '.join(backdrop) or None
    return {
        'boxShadow': ', '.join(shadows) or None,
        'filter': ' '.join(filters) or None,
        'backdropFilter': backdrop_filter,
        'WebkitBackdropFilter': backdrop_filter,
    }


# ============================================================================
# Positioning
# ============================================================================

def position_props(ctx: NodeContext) -> Optional[Props]:
    """Absolute placement inside free layouts, or ``relative`` on their containers."""
    facts = ctx.facts
    parent = ctx.parent
    if parent is not None and ctx.can_be_absolute:
        constraints = facts.get('constraints')
        if not constraints and ctx.children:
            constraints = ctx.children[0].get('constraints')
        if not constraints:
            if is_free_layout(parent):
                return {
                    'pos': 'absolute',
                    'left': add_px(facts.x, '0px'),
                    'top': add_px(facts.y, '0px'),
                }
            return None

        left = right = top = bottom = None
        translate_x = translate_y = None
        horizontal = constraints.get('horizontal')
        vertical = constraints.get('vertical')
        if horizontal == 'MIN':
            left = add_px(facts.x, '0px')
        elif horizontal == 'MAX':
            right = add_px(parent.width - facts.x - facts.width, '0px')
        elif horizontal == 'CENTER':
            left = '50%'
            translate_x = '50%'
        else:
            left = right = '0px'
        if vertical == 'MIN':
            top = add_px(facts.y, '0px')
        elif vertical == 'MAX':
            bottom = add_px(parent.height - facts.y - facts.height, '0px')
        elif vertical == 'CENTER':
            top = '50%'
            translate_y = '50%'
        else:
            top = bottom = '0px'

        if translate_x and translate_y:
            transform = f"translate(-{translate_x}, -{translate_y})"
        elif translate_x:
            transform = f"translateX(-{translate_x})"
        elif translate_y:
            transform = f"translateY(-{translate_y})"
        else:
            transform = None
        return {
            'pos': 'absolute',
            'left': left,
            'right': right,
            'top': top,
            'bottom': bottom,
            'transform': transform,
        }

    if ctx.children and ctx.asset is None and not ctx.is_page_root:
        has_absolute = any(c.get('layoutPositioning') == 'ABSOLUTE' for c in ctx.children)
        free_children = is_free_layout(facts) and any(
            c.get('layoutPositioning', 'AUTO') == 'AUTO' for c in ctx.children
        )
        if has_absolute or free_children:
            return {'pos': 'relative'}
    return None


def grid_child_props(ctx: NodeContext) -> Optional[Props]:
    facts = ctx.facts
    parent = ctx.parent
    column = facts.get('gridColumnAnchorIndex')
    row = facts.get('gridRowAnchorIndex')
    if column is None or row is None or parent is None or parent.get('layoutMode') != 'GRID':
        return None
    index = column + row * (parent.get('gridColumnCount', 1) or 1)
    if index < len(parent.children) and parent.children[index] == facts.id:
        return None
    return {
        'gridColumn': f"{column + 1} / span 1",
        'gridRow': f"{row + 1} / span 1",
    }


def transform_props(ctx: NodeContext) -> Optional[Props]:
    rotation = ctx.facts.rotation
    if abs(rotation) <= 0.01:
        return None
    return {
        'transform': f"rotate({fmt_pct(-rotation)}deg)",
        'transformOrigin': 'top left' if ctx.can_be_absolute else None,
    }


def overflow_props(ctx: NodeContext) -> Props:
    facts = ctx.facts
    result: Props = {}
    direction = facts.get('overflowDirection', 'NONE')
    if direction == 'HORIZONTAL':
        result['overflowX'] = 'auto'
    elif direction == 'VERTICAL':
        result['overflowY'] = 'auto'
    elif direction == 'BOTH':
        result['overflow'] = 'auto'
    if facts.get('clipsContent'):
        result['overflow'] = 'hidden'
    return result


# ============================================================================
# Interaction
# ============================================================================

def cursor_props(ctx: NodeContext) -> Optional[Props]:
    for reaction in ctx.facts.reactions:
        if (reaction.get('trigger') or {}).get('type') == 'ON_CLICK':
            return {'cursor': 'pointer'}
    return None


def visibility_props(ctx: NodeContext) -> Optional[Props]:
    return None if ctx.facts.visible else {'display': 'none'}
