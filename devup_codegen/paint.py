"""
Asynchronous paint sub-extractors: background, border/outline and text stroke.

These are the only extractors that may suspend, because a paint bound to a
design variable is rendered as a ``$token`` reference that the Fact Provider
has to resolve. An unresolved token falls back to the literal colour.
"""

import logging
import math
from typing import Any, Dict, List, Optional

from .base import BLEND_MODE_MAP, add_px, color_to_css, fmt_pct, token_reference
from .facts import FactProvider, NodeContext, NodeFacts, slug

logger = logging.getLogger(__name__)

Props = Dict[str, Any]

IMAGE_SIZE_MAP = {
    'FILL': 'center/cover no-repeat',
    'CROP': 'center/cover no-repeat',
    'FIT': 'center/contain no-repeat',
    'TILE': 'repeat',
}


async def _bound_color(paint: Dict[str, Any], provider: FactProvider) -> Optional[str]:
    binding = (paint.get('boundVariables') or {}).get('color')
    if not binding or not binding.get('id'):
        return None
    try:
        token = await provider.resolve_token(binding['id'])
    except Exception as e:
        logger.warning("Failed to resolve colour token %s: %s", binding['id'], e)
        return None
    if token is None:
        return None
    return token_reference(token.name)


async def solid_to_css(paint: Dict[str, Any], provider: FactProvider) -> str:
    """Token reference when the paint is bound to a variable, else hex."""
    token = await _bound_color(paint, provider)
    if token:
        return token
    return color_to_css(paint.get('color', {}), paint.get('opacity', 1))


def calculate_gradient_angle(handle_positions: List[Dict[str, float]]) -> float:
    """CSS gradient angle (0deg = up, clockwise) from Figma handle positions."""
    if not handle_positions or len(handle_positions) < 2:
        return 180
    start, end = handle_positions[0], handle_positions[1]
    dx = end.get('x', 0) - start.get('x', 0)
    dy = end.get('y', 0) - start.get('y', 0)
    return (math.degrees(math.atan2(dy, dx)) + 90) % 360


async def _gradient_stops(paint: Dict[str, Any], provider: FactProvider) -> str:
    stops = []
    opacity = paint.get('opacity', 1)
    for stop in paint.get('gradientStops', []):
        color = await _bound_color(stop, provider)
        if color is None:
            color = color_to_css(stop.get('color', {}), opacity)
        stops.append(f"{color} {fmt_pct(stop.get('position', 0) * 100)}%")
    return ', '.join(stops)


async def paint_to_css(
    paint: Dict[str, Any],
    facts: NodeFacts,
    provider: FactProvider,
    last: bool,
) -> Optional[str]:
    """CSS background layer for one Figma paint."""
    paint_type = paint.get('type')
    if paint_type == 'SOLID':
        color = await solid_to_css(paint, provider)
        return color if last else f"linear-gradient({color}, {color})"

    if paint_type == 'GRADIENT_LINEAR':
        angle = calculate_gradient_angle(paint.get('gradientHandlePositions', []))
        return f"linear-gradient({fmt_pct(angle)}deg, {await _gradient_stops(paint, provider)})"

    if paint_type in ('GRADIENT_RADIAL', 'GRADIENT_DIAMOND'):
        handles = paint.get('gradientHandlePositions') or [{'x': 0.5, 'y': 0.5}]
        center = handles[0]
        shape = 'ellipse' if paint_type == 'GRADIENT_DIAMOND' else 'circle'
        return (
            f"radial-gradient({shape} at {fmt_pct(center.get('x', 0.5) * 100)}% "
            f"{fmt_pct(center.get('y', 0.5) * 100)}%, {await _gradient_stops(paint, provider)})"
        )

    if paint_type == 'GRADIENT_ANGULAR':
        handles = paint.get('gradientHandlePositions') or [{'x': 0.5, 'y': 0.5}]
        center = handles[0]
        angle = calculate_gradient_angle(handles)
        return (
            f"conic-gradient(from {fmt_pct(angle)}deg at {fmt_pct(center.get('x', 0.5) * 100)}% "
            f"{fmt_pct(center.get('y', 0.5) * 100)}%, {await _gradient_stops(paint, provider)})"
        )

    if paint_type in ('IMAGE', 'PATTERN'):
        size = IMAGE_SIZE_MAP.get(paint.get('scaleMode', 'FILL'), 'center/cover no-repeat')
        return f"url(/images/{slug(facts.name)}.png) {size}"

    return None


# ============================================================================
# Sub-extractors
# ============================================================================

async def background_props(ctx: NodeContext) -> Optional[Props]:
    """``bg`` from the visible fills (top-most layer first), gradient text included."""
    facts = ctx.facts
    fills = facts.fills
    if not fills:
        return None
    gradient_text = facts.type == 'TEXT' and any(
        fill.get('visible', True)
        and (fill.get('type') == 'IMAGE' or 'GRADIENT' in fill.get('type', ''))
        for fill in fills
    )

    layers = []
    blend = 'NORMAL'
    for i, fill in enumerate(reversed(fills)):
        if fill.get('opacity', 1) == 0 or not fill.get('visible', True):
            continue
        layer = await paint_to_css(fill, facts, ctx.provider, i == len(fills) - 1)
        if fill.get('type') == 'SOLID' and fill.get('blendMode', 'NORMAL') != 'NORMAL':
            blend = fill['blendMode']
        if layer:
            layers.append(layer)

    if not layers:
        return None
    return {
        'bg': ', '.join(layers) if facts.type != 'TEXT' or gradient_text else None,
        'bgBlendMode': BLEND_MODE_MAP.get(blend),
        'color': 'transparent' if gradient_text else None,
        'bgClip': 'text' if gradient_text else None,
    }


def _side_weights(facts: NodeFacts) -> Optional[Dict[str, float]]:
    individual = facts.get('individualStrokeWeights')
    if individual:
        return {side: individual.get(side, 0) for side in ('top', 'right', 'bottom', 'left')}
    if 'strokeTopWeight' in facts.raw:
        return {
            'top': facts.get('strokeTopWeight', 0),
            'right': facts.get('strokeRightWeight', 0),
            'bottom': facts.get('strokeBottomWeight', 0),
            'left': facts.get('strokeLeftWeight', 0),
        }
    return None


async def border_props(ctx: NodeContext) -> Optional[Props]:
    """``border`` (inside strokes) or ``outline`` (center/outside strokes)."""
    facts = ctx.facts
    if facts.type == 'TEXT':
        return None
    strokes = [s for s in facts.strokes if s.get('visible', True)]
    weight = facts.get('strokeWeight', 0)
    if not strokes or not isinstance(weight, (int, float)) or weight <= 0:
        return None

    stroke = strokes[0]
    if stroke.get('type') == 'SOLID':
        color = await solid_to_css(stroke, ctx.provider)
    else:
        color = await paint_to_css(stroke, facts, ctx.provider, True)
    style = 'dashed' if facts.get('strokeDashes') else 'solid'

    align = facts.get('strokeAlign', 'INSIDE')
    if align != 'INSIDE':
        return {
            'outline': f"{style} {add_px(weight, '0')} {color}",
            'outlineOffset': add_px(-weight / 2) if align == 'CENTER' else None,
        }

    sides = _side_weights(facts)
    if sides and len(set(sides.values())) > 1:
        return {
            f"border{side.capitalize()}": f"{style} {add_px(value)} {color}" if value else None
            for side, value in sides.items()
        }
    return {'border': f"{style} {add_px(weight, '0')} {color}"}


async def text_stroke_props(ctx: NodeContext) -> Optional[Props]:
    facts = ctx.facts
    if facts.type != 'TEXT':
        return None
    solids = [s for s in facts.strokes if s.get('visible', True) and s.get('type') == 'SOLID']
    weight = facts.get('strokeWeight', 0)
    if not solids or not isinstance(weight, (int, float)) or weight == 0:
        return None
    return {
        'paintOrder': 'stroke fill',
        'WebkitTextStroke': f"{add_px(weight, '0')} {await solid_to_css(solids[0], ctx.provider)}",
    }
