"""
Fact Provider - read-only access to design nodes.

The pipeline never holds host node objects. It addresses nodes by their
identity string and reads an immutable ``NodeFacts`` snapshot on demand.
Token and destination-node lookups are the only asynchronous reads.
"""

import logging
import math
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)


# ============================================================================
# Node snapshots
# ============================================================================

@dataclass(frozen=True)
class TokenRef:
    """Named design token or shared style."""
    id: str
    name: str
    kind: str = 'variable'


@dataclass
class NodeFacts:
    """Snapshot of one design node's attributes."""
    id: str
    name: str
    type: str
    visible: bool = True
    x: float = 0
    y: float = 0
    width: float = 0
    height: float = 0
    rotation: float = 0
    opacity: float = 1
    blend_mode: str = 'PASS_THROUGH'
    fills: List[Dict[str, Any]] = field(default_factory=list)
    strokes: List[Dict[str, Any]] = field(default_factory=list)
    effects: List[Dict[str, Any]] = field(default_factory=list)
    reactions: List[Dict[str, Any]] = field(default_factory=list)
    parent_id: Optional[str] = None
    children: List[str] = field(default_factory=list)
    variant_axes: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    variant_properties: Dict[str, str] = field(default_factory=dict)
    raw: Dict[str, Any] = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        """Read a layout/text attribute that has no dedicated field."""
        return self.raw.get(key, default)


def parse_variant_name(name: str) -> Dict[str, str]:
    """Parse 'size=lg, effect=hover' into {'size': 'lg', 'effect': 'hover'}."""
    result: Dict[str, str] = {}
    for part in name.split(','):
        if '=' not in part:
            continue
        key, value = part.split('=', 1)
        key, value = key.strip(), value.strip()
        if key:
            result[key] = value
    return result


# ============================================================================
# Provider interface
# ============================================================================

class FactProvider(ABC):
    """Supplies node facts and performs the asynchronous lookups."""

    @abstractmethod
    def get_node_facts(self, node_id: str) -> Optional[NodeFacts]:
        """Instantaneous read. None when the node is unknown."""

    @abstractmethod
    async def resolve_token(self, token_id: str) -> Optional[TokenRef]:
        """Resolve a variable or style id to its name."""

    @abstractmethod
    async def resolve_node_by_id(self, node_id: str) -> Optional[str]:
        """Make a node readable (fetching it if needed) and return its id. May raise."""

    def parent_of(self, facts: NodeFacts) -> Optional[NodeFacts]:
        if not facts.parent_id:
            return None
        return self.get_node_facts(facts.parent_id)

    def children_of(self, facts: NodeFacts) -> List[NodeFacts]:
        children = []
        for child_id in facts.children:
            child = self.get_node_facts(child_id)
            if child is not None:
                children.append(child)
        return children


# ============================================================================
# Figma REST JSON adapter
# ============================================================================

# REST constraint names -> MIN/MAX/CENTER/STRETCH/SCALE
_CONSTRAINT_MAP = {
    'LEFT': 'MIN', 'TOP': 'MIN',
    'RIGHT': 'MAX', 'BOTTOM': 'MAX',
    'LEFT_RIGHT': 'STRETCH', 'TOP_BOTTOM': 'STRETCH',
    'CENTER': 'CENTER', 'SCALE': 'SCALE',
    'MIN': 'MIN', 'MAX': 'MAX', 'STRETCH': 'STRETCH',
}

_OVERFLOW_MAP = {
    'HORIZONTAL_SCROLLING': 'HORIZONTAL',
    'VERTICAL_SCROLLING': 'VERTICAL',
    'HORIZONTAL_AND_VERTICAL_SCROLLING': 'BOTH',
}

# Text style keys promoted to node level
_TEXT_STYLE_KEYS = (
    'textAlignHorizontal', 'textAlignVertical', 'textAutoResize',
    'textTruncation', 'maxLines', 'fontFamily', 'fontWeight', 'fontSize',
    'italic', 'letterSpacing', 'lineHeightPx', 'lineHeightPercentFontSize',
    'lineHeightUnit', 'textCase', 'textDecoration',
)


def _normalize_reactions(reactions: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    normalized = []
    for reaction in reactions or []:
        actions = reaction.get('actions')
        if actions is None:
            action = reaction.get('action')
            actions = [action] if action else []
        normalized.append({**reaction, 'actions': [a for a in actions if a]})
    return normalized


class DictFactProvider(FactProvider):
    """In-memory provider over Figma REST node JSON.

    ``variables`` and ``styles`` map token ids to ``{'name': ...}`` records,
    as returned by the variables and file endpoints.
    """

    def __init__(
        self,
        document: Optional[Dict[str, Any]] = None,
        variables: Optional[Dict[str, Dict[str, Any]]] = None,
        styles: Optional[Dict[str, Dict[str, Any]]] = None,
    ):
        self._raw: Dict[str, Dict[str, Any]] = {}
        self._parents: Dict[str, Optional[str]] = {}
        self._facts: Dict[str, NodeFacts] = {}
        self.variables: Dict[str, Dict[str, Any]] = dict(variables or {})
        self.styles: Dict[str, Dict[str, Any]] = dict(styles or {})
        if document is not None:
            self.add_subtree(document)

    def add_subtree(self, node: Dict[str, Any], parent_id: Optional[str] = None) -> str:
        """Index ``node`` and its descendants. Returns the node id."""
        node_id = node['id']
        self._raw[node_id] = node
        self._facts.pop(node_id, None)
        if parent_id is not None or node_id not in self._parents:
            self._parents[node_id] = parent_id
        for child in node.get('children', []):
            self.add_subtree(child, node_id)
        return node_id

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._raw

    def get_node_facts(self, node_id: str) -> Optional[NodeFacts]:
        facts = self._facts.get(node_id)
        if facts is None:
            raw = self._raw.get(node_id)
            if raw is None:
                return None
            facts = self._build_facts(raw)
            self._facts[node_id] = facts
        return facts

    async def resolve_token(self, token_id: str) -> Optional[TokenRef]:
        record = self.variables.get(token_id)
        if record and record.get('name'):
            return TokenRef(id=token_id, name=record['name'], kind='variable')
        record = self.styles.get(token_id)
        if record and record.get('name'):
            return TokenRef(id=token_id, name=record['name'], kind=record.get('styleType', 'style').lower())
        return None

    async def resolve_node_by_id(self, node_id: str) -> Optional[str]:
        return node_id if node_id in self._raw else None

    def _absolute_box(self, node_id: Optional[str]) -> Dict[str, float]:
        if node_id is None or node_id not in self._raw:
            return {}
        return self._raw[node_id].get('absoluteBoundingBox') or {}

    def _build_facts(self, node: Dict[str, Any]) -> NodeFacts:
        node_id = node['id']
        parent_id = self._parents.get(node_id)
        box = node.get('absoluteBoundingBox') or {}
        size = node.get('size') or {}
        width = size.get('x', box.get('width', 0))
        height = size.get('y', box.get('height', 0))

        transform = node.get('relativeTransform')
        if transform and len(transform) >= 2:
            x, y = transform[0][2], transform[1][2]
        else:
            parent_box = self._absolute_box(parent_id)
            x = box.get('x', 0) - parent_box.get('x', 0)
            y = box.get('y', 0) - parent_box.get('y', 0)

        raw = dict(node)
        raw.pop('children', None)
        style = node.get('style') or {}
        for key in _TEXT_STYLE_KEYS:
            if key in style and key not in raw:
                raw[key] = style[key]

        constraints = node.get('constraints')
        if constraints:
            raw['constraints'] = {
                'horizontal': _CONSTRAINT_MAP.get(constraints.get('horizontal'), constraints.get('horizontal')),
                'vertical': _CONSTRAINT_MAP.get(constraints.get('vertical'), constraints.get('vertical')),
            }
        overflow = node.get('overflowDirection')
        if overflow:
            raw['overflowDirection'] = _OVERFLOW_MAP.get(overflow, overflow)
        raw.setdefault('layoutPositioning', 'AUTO')

        variant_properties = node.get('variantProperties')
        if variant_properties is None and node.get('type') == 'COMPONENT':
            parent = self._raw.get(parent_id) if parent_id else None
            if parent and parent.get('type') == 'COMPONENT_SET':
                variant_properties = parse_variant_name(node.get('name', ''))
        if variant_properties is None and node.get('componentProperties'):
            variant_properties = {
                key: str(prop.get('value'))
                for key, prop in node['componentProperties'].items()
                if prop.get('type') == 'VARIANT'
            }

        return NodeFacts(
            id=node_id,
            name=node.get('name', ''),
            type=node.get('type', 'FRAME'),
            visible=node.get('visible', True),
            x=x,
            y=y,
            width=width,
            height=height,
            rotation=math.degrees(node.get('rotation', 0) or 0),
            opacity=node.get('opacity', 1),
            blend_mode=node.get('blendMode', 'PASS_THROUGH'),
            fills=list(node.get('fills') or []),
            strokes=list(node.get('strokes') or []),
            effects=list(node.get('effects') or []),
            reactions=_normalize_reactions(node.get('reactions')),
            parent_id=parent_id,
            children=[child['id'] for child in node.get('children', [])],
            variant_axes=dict(node.get('componentPropertyDefinitions') or {}),
            variant_properties=dict(variant_properties or {}),
            raw=raw,
        )


# ============================================================================
# Per-node context
# ============================================================================

_PAGE_PARENTS = ('PAGE', 'SECTION', 'COMPONENT_SET', 'CANVAS', 'DOCUMENT')
_VECTOR_TYPES = ('VECTOR', 'STAR', 'POLYGON', 'LINE', 'BOOLEAN_OPERATION', 'REGULAR_POLYGON')


def check_asset_node(provider: FactProvider, facts: NodeFacts) -> Optional[str]:
    """'svg' or 'png' when the node should be exported as an asset, else None."""
    if facts.type in _VECTOR_TYPES:
        return 'svg'
    arc = facts.get('arcData') or {}
    if facts.type == 'ELLIPSE' and arc.get('innerRadius'):
        return 'svg'
    if not facts.children:
        for fill in facts.fills:
            if fill.get('visible', True) and (
                fill.get('type') == 'PATTERN'
                or (fill.get('type') == 'IMAGE' and fill.get('scaleMode') == 'TILE')
            ):
                return None
        if not (facts.get('isAsset') or facts.get('exportSettings')):
            return None
        if any(f.get('visible', True) and f.get('type') == 'IMAGE' for f in facts.fills):
            return 'png'
        if all(f.get('visible', True) and f.get('type') == 'SOLID' for f in facts.fills):
            return None
        return 'svg'
    children = provider.children_of(facts)
    if len(children) == 1:
        paddings = [facts.get(k, 0) or 0 for k in ('paddingLeft', 'paddingRight', 'paddingTop', 'paddingBottom')]
        if any(p > 0 for p in paddings) or facts.fills:
            return None
        return check_asset_node(provider, children[0])
    if children and all(c.visible and check_asset_node(provider, c) for c in children):
        return 'svg'
    return None


def is_page_root(provider: FactProvider, facts: NodeFacts) -> bool:
    parent = provider.parent_of(facts)
    return parent is not None and parent.type in _PAGE_PARENTS


def is_free_layout(facts: NodeFacts) -> bool:
    return facts.get('layoutMode', 'NONE') in (None, 'NONE') and facts.get('layoutPositioning', 'AUTO') == 'AUTO'


def can_be_absolute(provider: FactProvider, facts: NodeFacts) -> bool:
    parent = provider.parent_of(facts)
    if parent is None:
        return False
    if facts.get('layoutPositioning') == 'ABSOLUTE':
        return True
    return (
        is_free_layout(parent)
        and facts.get('constraints') is not None
        and not is_page_root(provider, facts)
    )


def get_page_node(provider: FactProvider, facts: NodeFacts) -> Optional[NodeFacts]:
    """Topmost frame below a page, section or component set."""
    current = facts
    while True:
        parent = provider.parent_of(current)
        if parent is None:
            return None
        if parent.type in _PAGE_PARENTS:
            return None if current.type in ('SECTION', 'PAGE', 'CANVAS') else current
        current = parent


@dataclass
class NodeContext:
    """Cross-cutting facts computed once per extraction."""
    facts: NodeFacts
    provider: FactProvider
    asset: Optional[str]
    can_be_absolute: bool
    is_page_root: bool
    parent: Optional[NodeFacts]
    page_node: Optional[NodeFacts]
    children: List[NodeFacts]

    @classmethod
    def build(cls, provider: FactProvider, facts: NodeFacts) -> 'NodeContext':
        return cls(
            facts=facts,
            provider=provider,
            asset=check_asset_node(provider, facts),
            can_be_absolute=can_be_absolute(provider, facts),
            is_page_root=is_page_root(provider, facts),
            parent=provider.parent_of(facts),
            page_node=get_page_node(provider, facts),
            children=provider.children_of(facts),
        )


def slug(name: str) -> str:
    """File-safe asset name."""
    return re.sub(r'[^0-9a-zA-Z_-]+', '-', name).strip('-') or 'asset'
