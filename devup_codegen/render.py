"""
Renderer.

Serialises a canonical, responsive or variant-conditional property map plus
already-rendered children into indented JSX, and wraps a finished tree into
an exported component with its props interface.
"""

import json
import logging
import re
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from .base import is_default_prop
from .responsive import VariantPropValue

logger = logging.getLogger(__name__)

Props = Dict[str, Any]

INDENT = '  '
MULTILINE_PROP_COUNT = 5

_IDENTIFIER = re.compile(r'^[A-Za-z_$][\w$]*$')
_KEYFRAMES = re.compile(r'^keyframes\((.+)\)$', re.DOTALL)


class ComponentKind(str, Enum):
    """Devup layout primitives and the props each one already implies."""
    BOX = 'Box'
    FLEX = 'Flex'
    VSTACK = 'VStack'
    CENTER = 'Center'
    GRID = 'Grid'
    TEXT = 'Text'
    IMAGE = 'Image'

    @property
    def implied_props(self) -> Dict[str, str]:
        return _IMPLIED_PROPS.get(self, {})


_IMPLIED_PROPS: Dict[ComponentKind, Dict[str, str]] = {
    ComponentKind.FLEX: {'display': 'flex'},
    ComponentKind.VSTACK: {'display': 'flex', 'flexDir': 'column'},
    ComponentKind.CENTER: {'display': 'flex', 'alignItems': 'center', 'justifyContent': 'center'},
    ComponentKind.GRID: {'display': 'grid'},
}


def component_for_props(props: Mapping[str, Any]) -> str:
    """Pick the Devup primitive whose implied layout matches ``props``."""
    display = props.get('display')
    if display == 'flex':
        if props.get('alignItems') == 'center' and props.get('justifyContent') == 'center':
            return ComponentKind.CENTER.value
        if props.get('flexDir') == 'column':
            return ComponentKind.VSTACK.value
        return ComponentKind.FLEX.value
    if display == 'grid':
        return ComponentKind.GRID.value
    return ComponentKind.BOX.value


def space(depth: int) -> str:
    return INDENT * depth


def indent_lines(code: str, depth: int) -> str:
    if depth == 0:
        return code
    return '\n'.join(space(depth) + line for line in code.split('\n'))


# ============================================================================
# Prop filtering
# ============================================================================

def filter_props(props: Mapping[str, Any]) -> Props:
    """Drop unset and CSS-default values; numbers become strings."""
    result: Props = {}
    for key, value in props.items():
        if value is None:
            continue
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            value = _number(value)
        if is_default_prop(key, value):
            continue
        result[key] = value
    return result


def filter_props_with_component(component: str, props: Mapping[str, Any]) -> Props:
    """Remove the props the component identifier already implies."""
    try:
        implied = ComponentKind(component).implied_props
    except ValueError:
        return dict(props)
    return {key: value for key, value in props.items() if implied.get(key) != value}


# ============================================================================
# Value literals
# ============================================================================

def _number(value: float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _is_complex(value: Any) -> bool:
    return isinstance(value, (list, dict, VariantPropValue))


def _object_key(key: str) -> str:
    return key if _IDENTIFIER.match(key) else json.dumps(key, ensure_ascii=False)


def format_value(value: Any, depth: int = 0) -> str:
    """JavaScript literal for ``value``; nested objects indent from ``depth``."""
    if value is None:
        return 'null'
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, (int, float)):
        return _number(value)
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, VariantPropValue):
        return format_variant_value(value, depth)
    if isinstance(value, (list, tuple)):
        return '[' + ', '.join(format_value(item, depth) for item in value) + ']'
    if isinstance(value, dict):
        if not value:
            return '{}'
        lines = [
            f"{space(depth + 1)}{json.dumps(str(k), ensure_ascii=False)}: {format_value(v, depth + 1)}"
            for k, v in value.items()
        ]
        return '{\n' + ',\n'.join(lines) + '\n' + space(depth) + '}'
    logger.debug("Falling back to str() for %r", value)
    return str(value)


def format_variant_value(value: VariantPropValue, depth: int = 0) -> str:
    """``{ a: x, b: y }[key]``, multi-line when any entry is itself complex."""
    if not any(_is_complex(v) for v in value.values.values()):
        entries = ', '.join(
            f"{_object_key(k)}: {format_value(v, depth)}" for k, v in value.values.items()
        )
        return f"{{ {entries} }}[{value.variant_key}]"
    lines = [
        f"{space(depth + 1)}{_object_key(k)}: {format_value(v, depth + 1)}"
        for k, v in value.values.items()
    ]
    return '{\n' + ',\n'.join(lines) + '\n' + space(depth) + f"}}[{value.variant_key}]"


def _format_keyframes(key: str, value: str) -> str:
    match = _KEYFRAMES.match(value)
    if match:
        try:
            frames = json.loads(match.group(1))
        except ValueError:
            return f"{key}={{{value}}}"
        return f"{key}={{keyframes({json.dumps(frames, indent=2, ensure_ascii=False)})}}"
    return f"{key}={{{value}}}"


def _sort_key(key: str):
    return (0 if key[:1].isupper() else 1, key)


def props_to_string(props: Mapping[str, Any]) -> str:
    """Render props as JSX attributes, capitalised keys first, then by name."""
    parts: List[str] = []
    for key in sorted(props, key=_sort_key):
        value = props[key]
        if isinstance(value, bool):
            parts.append(key if value else f"{key}={{false}}")
        elif isinstance(value, (dict, list, tuple, VariantPropValue)):
            parts.append(f"{key}={{{format_value(value)}}}")
        elif key == 'animationName' and isinstance(value, str) and value.startswith('keyframes('):
            parts.append(_format_keyframes(key, value))
        elif '"' in str(value):
            parts.append(f"{key}={{{json.dumps(str(value))}}}")
        else:
            parts.append(f'{key}="{value}"')

    multiline = len(props) >= MULTILINE_PROP_COUNT or any(isinstance(v, dict) for v in props.values())
    return ('\n' if multiline else ' ').join(parts)


# ============================================================================
# Nodes and components
# ============================================================================

def render_node(
    component: str,
    props: Mapping[str, Any],
    depth: int = 0,
    children: Optional[List[str]] = None,
) -> str:
    """One JSX element with its children, indented at ``depth``."""
    children = children or []
    props_string = props_to_string(filter_props_with_component(component, filter_props(props)))
    multi_props = '\n' in props_string

    head = f"{space(depth)}<{component}"
    if props_string:
        head += f"\n{indent_lines(props_string, depth + 1)}" if multi_props else f" {props_string}"
    if multi_props:
        head += '\n' + space(depth)
    elif not children:
        head += ' '
    head += '>' if children else '/>'

    lines = [head]
    if children:
        for child in children:
            lines.append(space(depth + 1) + child.replace('\n', '\n' + space(depth + 1)))
        lines.append(f"{space(depth)}</{component}>")
    return '\n'.join(lines)


def render_error(message: str, depth: int = 0) -> str:
    """Visible placeholder for a node whose rendering failed."""
    return f"{space(depth)}{{/* Error: {message.replace('*/', '* /')} */}}"


def render_condition(condition: str, code: str, depth: int = 0) -> str:
    """``{condition && <Node />}``, parenthesising multi-line elements."""
    if ' || ' in condition:
        condition = f"({condition})"
    body = f"(\n{indent_lines(code, 1)}\n)" if '\n' in code else code
    return indent_lines(f"{{{condition} && {body}}}", depth)


def wrap_return(code: str, depth: int = 1) -> str:
    if '\n' not in code:
        return code.strip()
    return f"(\n{indent_lines(code, depth + 1)}\n{space(depth)})"


def render_component(
    name: str,
    code: str,
    variants: Optional[Mapping[str, str]] = None,
    optional: Optional[List[str]] = None,
) -> str:
    """Export ``code`` as a function component, with a props interface when it has variants."""
    variants = variants or {}
    optional = optional or []
    if not variants:
        return f"export function {name}() {{\n{INDENT}return {wrap_return(code)}\n}}"

    fields = '\n'.join(
        f"{INDENT}{key}{'?' if key in optional else ''}: {kind}" for key, kind in variants.items()
    )
    interface = f"export interface {name}Props {{\n{fields}\n}}\n\n"
    params = ', '.join(variants)
    return (
        f"{interface}export function {name}({{ {params} }}: {name}Props) {{\n"
        f"{INDENT}return {wrap_return(code)}\n}}"
    )
