"""
Caller layer: walks a node tree, builds the intermediate ``NodeTree`` and
renders it, optionally merged across breakpoints and variants.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple, TypeVar

from .base import rgba_to_hex, to_pascal
from .extractor import PropertyExtractor
from .facts import FactProvider, NodeContext, NodeFacts, check_asset_node, slug
from .props import position_props, transform_props
from .reaction import AnimationChainBuilder
from .render import (
    ComponentKind,
    component_for_props,
    render_component,
    render_condition,
    render_error,
    render_node,
)
from .responsive import (
    BREAKPOINT_ORDER,
    Breakpoint,
    breakpoint_for_width,
    merge_props_to_responsive,
    merge_props_to_variant,
    optimize_responsive_value,
    viewport_to_breakpoint,
)
from .selector import (
    DEFAULT_EFFECT,
    EFFECT_KEY,
    VIEWPORT_KEY,
    SelectorEngine,
    extract_instance_variant_props,
    find_axis,
    is_reserved_variant_key,
    sanitize_property_name,
    variant_type,
)
from .text import render_text

logger = logging.getLogger(__name__)

Props = Dict[str, Any]
K = TypeVar('K')

DEFAULT_GROUP = '__default__'
_BR = '<br />'


# ============================================================================
# Trees
# ============================================================================

@dataclass
class NodeTree:
    """Intermediate representation of one rendered element."""
    component: str
    props: Props = field(default_factory=dict)
    children: List['NodeTree'] = field(default_factory=list)
    node_type: str = 'FRAME'
    node_name: str = ''
    is_component: bool = False
    text_children: Optional[List[str]] = None
    error: Optional[str] = None
    condition: Optional[str] = None

    def clone(self) -> 'NodeTree':
        return NodeTree(
            component=self.component,
            props=dict(self.props),
            children=[child.clone() for child in self.children],
            node_type=self.node_type,
            node_name=self.node_name,
            is_component=self.is_component,
            text_children=list(self.text_children) if self.text_children is not None else None,
            error=self.error,
            condition=self.condition,
        )


@dataclass
class ComponentTree:
    name: str
    node_id: str
    tree: NodeTree
    variants: Dict[str, str] = field(default_factory=dict)


@dataclass
class GeneratedComponent:
    name: str
    code: str


def component_name(provider: FactProvider, facts: NodeFacts) -> str:
    if facts.type == 'COMPONENT':
        parent = provider.parent_of(facts)
        if parent is not None and parent.type == 'COMPONENT_SET':
            return to_pascal(parent.name) or 'Component'
    return to_pascal(facts.name) or 'Component'


def render_tree(tree: NodeTree, depth: int = 0) -> str:
    """Render a ``NodeTree`` (and its subtree) to JSX."""
    if tree.condition:
        return render_condition(tree.condition, _render_element(tree, 0), depth)
    return _render_element(tree, depth)


def _render_element(tree: NodeTree, depth: int) -> str:
    if tree.error is not None:
        return render_error(tree.error, depth)
    if tree.text_children:
        return render_node(tree.component, tree.props, depth, tree.text_children)
    return render_node(tree.component, tree.props, depth, [render_tree(c) for c in tree.children])


def render_components(trees: Mapping[str, ComponentTree], skip: Optional[str] = None) -> List[GeneratedComponent]:
    """One exported component per distinct name."""
    result: List[GeneratedComponent] = []
    seen = {skip} if skip else set()
    for component in trees.values():
        if component.name in seen:
            continue
        seen.add(component.name)
        optional = [key for key, kind in component.variants.items() if kind == 'boolean']
        code = render_component(component.name, render_tree(component.tree), component.variants, optional)
        result.append(GeneratedComponent(component.name, code))
    return result


def same_color(provider: FactProvider, facts: NodeFacts, color: Optional[str] = None) -> Optional[str]:
    """The single solid colour an icon is painted with, if it has exactly one."""
    target = color
    for fill in facts.fills:
        if not fill.get('visible', True):
            continue
        if fill.get('type') != 'SOLID':
            return None
        hex_color = rgba_to_hex(fill.get('color', {}))
        if target is None:
            target = hex_color
        elif target != hex_color:
            return None
    for child in provider.children_of(facts):
        if not child.visible:
            continue
        found = same_color(provider, child, target)
        if target is None:
            target = found
        elif target != found:
            return None
    return target


# ============================================================================
# Session
# ============================================================================

class CodegenSession:
    """Shared caches for one generation pass."""

    def __init__(self, provider: FactProvider):
        self.provider = provider
        self.animations = AnimationChainBuilder(provider)
        self.extractor = PropertyExtractor(provider, self.animations)
        self.selector = SelectorEngine(provider, self.extractor)
        self._main_components: Dict[str, 'asyncio.Future[Optional[NodeFacts]]'] = {}

    def reset(self) -> None:
        logger.debug("Resetting codegen session")
        self.extractor.reset()
        self.selector.reset()
        self.animations.reset()
        self._main_components.clear()

    async def main_component(self, instance: NodeFacts) -> Optional[NodeFacts]:
        pending = self._main_components.get(instance.id)
        if pending is None:
            pending = asyncio.ensure_future(self._fetch_main_component(instance))
            self._main_components[instance.id] = pending
        return await pending

    async def _fetch_main_component(self, instance: NodeFacts) -> Optional[NodeFacts]:
        component_id = instance.get('componentId')
        if not component_id:
            return None
        try:
            resolved = await self.provider.resolve_node_by_id(component_id)
        except Exception as e:
            logger.warning("Failed to resolve main component %s of %s: %s", component_id, instance.id, e)
            return None
        return self.provider.get_node_facts(resolved) if resolved else None


# ============================================================================
# Single-node walk
# ============================================================================

class Codegen:
    """Builds and renders the tree rooted at one node."""

    def __init__(self, session: CodegenSession, node_id: str):
        self.session = session
        self.provider = session.provider
        self.root = self.provider.get_node_facts(node_id)
        if self.root is None:
            raise ValueError(f"Unknown node: {node_id}")
        self.component_trees: Dict[str, ComponentTree] = {}
        self._trees: Dict[str, 'asyncio.Future[NodeTree]'] = {}
        self._pending_components: Dict[str, 'asyncio.Future[None]'] = {}

    async def run(self, depth: int = 0) -> str:
        tree = await self.get_tree()
        return render_tree(tree, depth)

    async def get_tree(self) -> NodeTree:
        """Tree of the root node, with every referenced component registered."""
        tree = await self.build_tree(self.root)
        while True:
            pending = [f for f in self._pending_components.values() if not f.done()]
            if not pending:
                break
            await asyncio.gather(*pending)
        return tree

    def components(self, skip: Optional[str] = None) -> List[GeneratedComponent]:
        return render_components(self.component_trees, skip)

    async def build_tree(self, facts: NodeFacts) -> NodeTree:
        pending = self._trees.get(facts.id)
        if pending is None:
            pending = asyncio.ensure_future(self._build(facts))
            self._trees[facts.id] = pending
        return (await pending).clone()

    async def _build_child(self, facts: NodeFacts) -> NodeTree:
        try:
            return await self.build_tree(facts)
        except Exception as e:
            logger.warning("Failed to build node %s (%s): %s", facts.id, facts.name, e)
            return NodeTree(
                component=ComponentKind.BOX.value,
                node_type=facts.type,
                node_name=facts.name,
                error=f"{facts.name}: {e}",
            )

    async def _build(self, facts: NodeFacts) -> NodeTree:
        asset = check_asset_node(self.provider, facts)
        if asset:
            return await self._asset_tree(facts, asset)
        if facts.type == 'INSTANCE':
            return await self._instance_tree(facts)

        props_future = asyncio.ensure_future(self.session.extractor.get_props(facts.id))
        self._register_root_component(facts)

        children = [await self._build_child(child) for child in self.provider.children_of(facts)]
        props = await props_future

        text_children = None
        if facts.type == 'TEXT':
            rendered = await render_text(facts, self.provider)
            text_children = rendered.children
            props.update(rendered.props)
            component = ComponentKind.TEXT.value
        else:
            component = component_for_props(props)

        return NodeTree(
            component=component,
            props=props,
            children=children,
            node_type=facts.type,
            node_name=facts.name,
            text_children=text_children,
        )

    async def _asset_tree(self, facts: NodeFacts, asset: str) -> NodeTree:
        props = await self.session.extractor.get_props(facts.id)
        folder = 'icons' if asset == 'svg' else 'images'
        props['src'] = f"/{folder}/{slug(facts.name)}.{asset}"
        if asset == 'svg':
            mask_color = same_color(self.provider, facts)
            if mask_color:
                props['maskImage'] = f"url({props.pop('src')})"
                props['maskRepeat'] = 'no-repeat'
                props['maskSize'] = 'contain'
                props['bg'] = mask_color
        return NodeTree(
            component=ComponentKind.IMAGE.value if 'src' in props else ComponentKind.BOX.value,
            props=props,
            node_type=facts.type,
            node_name=facts.name,
        )

    async def _instance_tree(self, facts: NodeFacts) -> NodeTree:
        main = await self.session.main_component(facts)
        if main is not None:
            self._schedule_component(main)
        name = component_name(self.provider, main or facts)
        reference = NodeTree(
            component=name,
            props=extract_instance_variant_props(facts),
            node_type=facts.type,
            node_name=facts.name,
            is_component=True,
        )

        ctx = NodeContext.build(self.provider, facts)
        position = position_props(ctx) or {}
        if not position.get('pos'):
            return reference
        page = ctx.page_node
        wrapper = {
            key: position.get(key) for key in ('pos', 'top', 'left', 'right', 'bottom')
        }
        wrapper['transform'] = position.get('transform') or (transform_props(ctx) or {}).get('transform')
        wrapper['w'] = '100%' if page is not None and page.width == facts.width else None
        return NodeTree(
            component=ComponentKind.BOX.value,
            props=wrapper,
            children=[reference],
            node_type='WRAPPER',
            node_name=f"{facts.name}_wrapper",
        )

    def _register_root_component(self, facts: NodeFacts) -> None:
        root = self.root
        if facts.type == 'COMPONENT' and facts.id == root.id:
            self._schedule_component(facts)
        elif root.type == 'COMPONENT_SET' and facts.id == root.id:
            default = self.session.selector.default_variant(root)
            if default is not None:
                self._schedule_component(default)

    def _schedule_component(self, component: NodeFacts) -> None:
        if component.id in self._pending_components:
            return
        self._pending_components[component.id] = asyncio.ensure_future(self._add_component_tree(component))

    async def _add_component_tree(self, component: NodeFacts) -> None:
        try:
            props_future = asyncio.ensure_future(self.session.extractor.get_props(component.id))
            selector_future = asyncio.ensure_future(self.session.selector.get_selector_props(component.id))
            children = [await self._build_child(child) for child in self.provider.children_of(component)]
            props = await props_future
            selector = await selector_future
        except Exception as e:
            logger.warning("Failed to build component %s: %s", component.id, e)
            return

        variants: Dict[str, str] = {}
        if selector is not None:
            props.update(selector.props)
            variants.update(selector.variants)
        self.component_trees[component.id] = ComponentTree(
            name=component_name(self.provider, component),
            node_id=component.id,
            tree=NodeTree(
                component=component_for_props(props),
                props=props,
                children=children,
                node_type=component.type,
                node_name=component.name,
            ),
            variants=variants,
        )


# ============================================================================
# Tree merging
# ============================================================================

def _children_by_name(tree: NodeTree) -> Dict[str, List[NodeTree]]:
    result: Dict[str, List[NodeTree]] = {}
    for child in tree.children:
        result.setdefault(child.node_name, []).append(child)
    return result


def child_slots(trees: Mapping[K, NodeTree]) -> List[Dict[K, NodeTree]]:
    """Align children across trees by name, then by position among same-named siblings."""
    maps = {key: _children_by_name(tree) for key, tree in trees.items()}
    names: List[str] = []
    for children in maps.values():
        for name in children:
            if name not in names:
                names.append(name)

    slots: List[Dict[K, NodeTree]] = []
    for name in names:
        count = max(len(children.get(name, [])) for children in maps.values())
        for index in range(count):
            slot = {
                key: children[name][index]
                for key, children in maps.items()
                if len(children.get(name, [])) > index
            }
            slots.append(slot)
    return slots


def _first(trees: Mapping[Any, NodeTree]) -> NodeTree:
    return next(iter(trees.values()))


def merge_text_children(texts: Mapping[Breakpoint, List[str]]) -> List[str]:
    """Identical texts stay as they are; line breaks present only at some breakpoints become responsive."""
    present = {bp: ''.join(children) for bp, children in texts.items() if children}
    if len(present) <= 1:
        return _first_children(texts)
    normalized = {bp: text.replace(_BR, '\n') for bp, text in present.items()}
    if len(set(normalized.values())) == 1:
        return _first_children(texts)

    base = max(normalized.values(), key=len)
    breaks: Dict[int, Dict[Breakpoint, bool]] = {}
    for bp, text in normalized.items():
        for i, char in enumerate(text):
            if char == '\n':
                breaks.setdefault(i, {})[bp] = True
    for marks in breaks.values():
        for bp in normalized:
            marks.setdefault(bp, False)

    merged = ''
    for i, char in enumerate(base):
        if char != '\n':
            merged += char
            continue
        marks = breaks[i]
        if all(marks.values()):
            merged += _BR
            continue
        display = [
            None if bp not in marks else ('inline' if marks[bp] else 'none')
            for bp in BREAKPOINT_ORDER
        ]
        optimized = optimize_responsive_value(display, 'display')
        if optimized == 'inline':
            merged += _BR
        elif isinstance(optimized, list):
            values = ', '.join('null' if v is None else f'"{v}"' for v in optimized)
            merged += f'<Box as="br" display={{[{values}]}} />'
    return [merged]


def _first_children(texts: Mapping[Breakpoint, List[str]]) -> List[str]:
    for children in texts.values():
        if children:
            return children
    return []


def merge_trees_responsive(trees: Mapping[Breakpoint, NodeTree]) -> NodeTree:
    """One tree whose props are responsive arrays; children missing at a breakpoint are hidden there."""
    first = _first(trees)
    if len(trees) == 1:
        return first.clone()

    merged = NodeTree(
        component=first.component,
        props=merge_props_to_responsive({bp: tree.props for bp, tree in trees.items()}),
        node_type=first.node_type,
        node_name=first.node_name,
        is_component=first.is_component,
        error=first.error,
    )
    if first.text_children is not None:
        merged.text_children = merge_text_children(
            {bp: tree.text_children or [] for bp, tree in trees.items()}
        )
        return merged

    for slot in child_slots(trees):
        template = _first(slot)
        complete: Dict[Breakpoint, NodeTree] = {}
        for bp in trees:
            if bp in slot:
                complete[bp] = slot[bp]
            else:
                hidden = template.clone()
                hidden.props['display'] = 'none'
                complete[bp] = hidden
        merged.children.append(merge_trees_responsive(complete))
    return merged


def _variant_condition(variant_key: str, slot: Mapping[str, NodeTree], variants: List[str]) -> Optional[str]:
    conditions = [tree.condition for tree in slot.values()]
    if len(slot) == len(variants) and len(set(conditions)) == 1:
        return conditions[0]
    clauses = []
    for variant, tree in slot.items():
        clause = f'{variant_key} === "{variant}"'
        clauses.append(f"({clause} && {tree.condition})" if tree.condition else clause)
    return ' || '.join(clauses)


def merge_trees_variant(variant_key: str, trees: Mapping[str, NodeTree]) -> NodeTree:
    """One tree whose differing props are keyed by ``variant_key``; partial children become conditional."""
    first = _first(trees)
    if len(trees) == 1:
        return first.clone()

    merged = NodeTree(
        component=first.component,
        props=merge_props_to_variant(variant_key, {v: tree.props for v, tree in trees.items()}),
        node_type=first.node_type,
        node_name=first.node_name,
        is_component=first.is_component,
        text_children=list(first.text_children) if first.text_children is not None else None,
        error=first.error,
    )
    if first.text_children is not None:
        return merged

    variants = list(trees)
    for slot in child_slots(trees):
        child = merge_trees_variant(variant_key, slot)
        child.condition = _variant_condition(variant_key, slot, variants)
        merged.children.append(child)
    return merged


def fold_variants(keys: List[str], trees: Mapping[Tuple[str, ...], NodeTree]) -> NodeTree:
    """Merge trees keyed by variant-value tuples, outermost key first."""
    if not keys or len(trees) == 1:
        return _first(trees).clone()
    groups: Dict[str, Dict[Tuple[str, ...], NodeTree]] = {}
    for values, tree in trees.items():
        groups.setdefault(values[0], {})[values[1:]] = tree
    inner = {value: fold_variants(keys[1:], group) for value, group in groups.items()}
    return merge_trees_variant(keys[0], inner)


# ============================================================================
# Responsive generation
# ============================================================================

class ResponsiveCodegen:
    """Sections (one frame per breakpoint) and component sets (viewport and variant axes)."""

    def __init__(self, session: CodegenSession):
        self.session = session
        self.provider = session.provider

    async def section(self, section: NodeFacts, name: Optional[str] = None) -> List[GeneratedComponent]:
        nodes: Dict[Breakpoint, NodeFacts] = {}
        for child in self.provider.children_of(section):
            nodes.setdefault(breakpoint_for_width(child.width), child)
        name = name or to_pascal(section.name) or 'Section'
        if not nodes:
            return [GeneratedComponent(name, '// No responsive variants found in section')]

        trees: Dict[Breakpoint, NodeTree] = {}
        components: Dict[str, ComponentTree] = {}
        for bp in BREAKPOINT_ORDER:
            if bp not in nodes:
                continue
            codegen = Codegen(self.session, nodes[bp].id)
            trees[bp] = await codegen.get_tree()
            components.update(codegen.component_trees)
        logger.debug("Merging section %s across %d breakpoints", section.id, len(trees))

        code = render_tree(merge_trees_responsive(trees))
        return [GeneratedComponent(name, render_component(name, code))] + render_components(components, name)

    async def component_set(self, component_set: NodeFacts, name: Optional[str] = None) -> List[GeneratedComponent]:
        name = name or component_name(self.provider, component_set)
        effect_key = find_axis(component_set, EFFECT_KEY)
        viewport_key = find_axis(component_set, VIEWPORT_KEY)
        variant_keys = [
            key for key, definition in component_set.variant_axes.items()
            if definition.get('type', 'VARIANT') == 'VARIANT' and not is_reserved_variant_key(key)
        ]
        signatures = {
            sanitize_property_name(key): variant_type(component_set.variant_axes[key])
            for key in variant_keys
        }

        if not viewport_key and not variant_keys:
            return await self._effect_only(component_set, name)

        groups: Dict[Tuple[str, ...], Dict[Optional[Breakpoint], NodeFacts]] = {}
        for component in self.session.selector.components_of(component_set):
            variants = component.variant_properties
            if effect_key and variants.get(effect_key) != DEFAULT_EFFECT:
                continue
            bp: Optional[Breakpoint] = None
            if viewport_key:
                if not variants.get(viewport_key):
                    continue
                bp = viewport_to_breakpoint(variants[viewport_key])
            key = tuple(variants.get(k) or DEFAULT_GROUP for k in variant_keys)
            groups.setdefault(key, {}).setdefault(bp, component)
        if not groups:
            return []

        components: Dict[str, ComponentTree] = {}
        merged: Dict[Tuple[str, ...], NodeTree] = {}
        for key, by_breakpoint in groups.items():
            variant_filter = {k: v for k, v in zip(variant_keys, key) if v != DEFAULT_GROUP}
            trees: Dict[Breakpoint, NodeTree] = {}
            for bp in sorted(by_breakpoint, key=lambda b: b.slot if b is not None else 0):
                component = by_breakpoint[bp]
                codegen = Codegen(self.session, component.id)
                tree = await codegen.get_tree()
                components.update(codegen.component_trees)
                if effect_key:
                    viewport = component.variant_properties.get(viewport_key) if viewport_key else None
                    tree.props.update(await self.session.selector.get_selector_props_for_group(
                        component_set.id, variant_filter, viewport,
                    ))
                trees[bp or Breakpoint.MOBILE] = tree
            merged[key] = merge_trees_responsive(trees)

        tree = fold_variants([sanitize_property_name(k) for k in variant_keys], merged)
        code = render_tree(tree)
        return [GeneratedComponent(name, render_component(name, code, signatures))] + render_components(components, name)

    async def _effect_only(self, component_set: NodeFacts, name: str) -> List[GeneratedComponent]:
        default = self.session.selector.default_variant(component_set)
        if default is None:
            return []
        codegen = Codegen(self.session, default.id)
        tree = await codegen.get_tree()
        tree.props.update(await self.session.selector.get_selector_props_for_group(component_set.id, {}))
        code = render_tree(tree)
        return [GeneratedComponent(name, render_component(name, code))] + codegen.components(name)


# ============================================================================
# Entry point
# ============================================================================

async def generate(
    session: CodegenSession,
    node_id: str,
    name: Optional[str] = None,
) -> List[GeneratedComponent]:
    """Generate every component for ``node_id``, picking the responsive path where it applies."""
    facts = session.provider.get_node_facts(node_id)
    if facts is None:
        raise ValueError(f"Unknown node: {node_id}")

    responsive = ResponsiveCodegen(session)
    if facts.type == 'SECTION':
        return await responsive.section(facts, name)
    if facts.type == 'COMPONENT_SET':
        return await responsive.component_set(facts, name)
    parent = session.provider.parent_of(facts)
    if facts.type == 'COMPONENT' and parent is not None and parent.type == 'COMPONENT_SET':
        return await responsive.component_set(parent, name)

    codegen = Codegen(session, facts.id)
    code = await codegen.run()
    name = name or to_pascal(facts.name) or 'Component'
    return [GeneratedComponent(name, render_component(name, code))] + codegen.components(name)
