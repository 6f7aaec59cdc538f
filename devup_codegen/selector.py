"""
Variant Diff Engine.

For a component set, computes one pseudo-selector block per non-default
interaction state (only the props that differ from the default variant),
a transition declaration covering every diffed prop, and the typed
signature of each exposed variant property.
"""

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from .base import fmt_pct, to_long_form
from .extractor import PropertyExtractor
from .facts import FactProvider, NodeFacts
from .reaction import easing_function
from .responsive import PSEUDO_PREFIX

logger = logging.getLogger(__name__)

Props = Dict[str, Any]

EFFECT_KEY = 'effect'
VIEWPORT_KEY = 'viewport'
RESERVED_VARIANT_KEYS = (EFFECT_KEY, VIEWPORT_KEY)
DEFAULT_EFFECT = 'default'

TRIGGER_EFFECT_MAP = {
    'ON_HOVER': 'hover',
    'MOUSE_ENTER': 'hover',
    'ON_PRESS': 'active',
    'MOUSE_DOWN': 'active',
}

# Korean for "property"; Figma's default name for new variant axes in that locale
_PROPERTY_MARKER = '속성'


def sanitize_property_name(name: str) -> str:
    """Turn a Figma variant property name into a valid TypeScript identifier."""
    result = name.split('#', 1)[0].strip()
    result = result.replace(_PROPERTY_MARKER, 'property')
    result = re.sub(r'[\s\-_]+(.)', lambda m: m.group(1).upper(), result)
    result = re.sub(r'^(\d)', r'_\1', result)
    cleaned = re.sub(r'[^\w$]', '', result, flags=re.ASCII)
    if not cleaned or cleaned.isdigit():
        return 'variant'
    return cleaned


def is_reserved_variant_key(key: str) -> bool:
    lower = key.lower()
    return any(lower == reserved or lower.startswith(f"{reserved}#") for reserved in RESERVED_VARIANT_KEYS)


def trigger_to_effect(trigger_type: Optional[str]) -> Optional[str]:
    if not trigger_type:
        return None
    return TRIGGER_EFFECT_MAP.get(trigger_type)


def variant_type(definition: Mapping[str, Any]) -> str:
    """TypeScript type for one component property definition."""
    kind = definition.get('type', 'VARIANT')
    if kind == 'BOOLEAN':
        return 'boolean'
    if kind == 'TEXT':
        return 'string'
    if kind == 'INSTANCE_SWAP':
        return 'React.ReactNode'
    return ' | '.join(f"'{option}'" for option in definition.get('variantOptions') or [])


def find_axis(facts: NodeFacts, reserved: str) -> Optional[str]:
    """Original name of the ``effect``/``viewport`` axis, if the set has one."""
    for key in facts.variant_axes:
        lower = key.lower()
        if lower == reserved or lower.startswith(f"{reserved}#"):
            return key
    return None


def variant_signatures(facts: NodeFacts) -> Dict[str, str]:
    """Sanitised, non-reserved variant keys mapped to their TypeScript types."""
    return {
        sanitize_property_name(name): variant_type(definition)
        for name, definition in facts.variant_axes.items()
        if not is_reserved_variant_key(name)
    }


def extract_instance_variant_props(facts: NodeFacts) -> Dict[str, str]:
    """Variant props an INSTANCE passes to its component, reserved axes excluded."""
    result: Dict[str, str] = {}
    for key, prop in (facts.get('componentProperties') or {}).items():
        if prop.get('type') == 'VARIANT' and not is_reserved_variant_key(key):
            result[sanitize_property_name(key)] = str(prop.get('value'))
    return result


def difference(props: Mapping[str, Any], default: Mapping[str, Any]) -> Props:
    """Entries of ``props`` whose value differs from ``default``."""
    return {key: value for key, value in props.items() if default.get(key) != value}


@dataclass
class SelectorProps:
    props: Props = field(default_factory=dict)
    variants: Dict[str, str] = field(default_factory=dict)

    def copy(self) -> 'SelectorProps':
        return SelectorProps(dict(self.props), dict(self.variants))


class SelectorEngine:
    """Pseudo-selector diffs for component sets, cached per set and per variant group."""

    def __init__(self, provider: FactProvider, extractor: PropertyExtractor):
        self.provider = provider
        self.extractor = extractor
        self._single: Dict[str, 'asyncio.Future[Optional[SelectorProps]]'] = {}
        self._grouped: Dict[str, 'asyncio.Future[Props]'] = {}

    def reset(self) -> None:
        logger.debug("Resetting selector caches (%d sets, %d groups)",
                     len(self._single), len(self._grouped))
        self._single.clear()
        self._grouped.clear()

    # ------------------------------------------------------------------
    # Structure helpers
    # ------------------------------------------------------------------

    def components_of(self, component_set: NodeFacts) -> List[NodeFacts]:
        return [c for c in self.provider.children_of(component_set) if c.type == 'COMPONENT']

    def default_variant(self, component_set: NodeFacts) -> Optional[NodeFacts]:
        components = self.components_of(component_set)
        if not components:
            return None
        effect_key = find_axis(component_set, EFFECT_KEY)
        if effect_key:
            for component in components:
                if component.variant_properties.get(effect_key) == DEFAULT_EFFECT:
                    return component
        default_id = component_set.get('defaultVariantId')
        for component in components:
            if component.id == default_id:
                return component
        return components[0]

    def effect_of(self, component: NodeFacts, effect_key: Optional[str]) -> Optional[str]:
        if effect_key:
            return component.variant_properties.get(effect_key)
        trigger = (component.reactions[0].get('trigger') or {}) if component.reactions else {}
        return trigger_to_effect(trigger.get('type'))

    def _transition(self, default: NodeFacts) -> Optional[Dict[str, Any]]:
        for reaction in default.reactions:
            for action in reaction.get('actions', []):
                if action.get('type') == 'NODE':
                    return action.get('transition')
        return None

    async def _diff_states(
        self,
        components: List[NodeFacts],
        default: NodeFacts,
        effect_key: Optional[str],
    ) -> Props:
        default_props = await self.extractor.get_props(default.id)
        result: Props = {}
        diff_keys: List[str] = []
        for component in components:
            effect = self.effect_of(component, effect_key)
            if not effect or component.id == default.id or effect == DEFAULT_EFFECT:
                continue
            diff = difference(await self.extractor.get_props(component.id), default_props)
            if not diff:
                continue
            result[f"{PSEUDO_PREFIX}{effect}"] = diff
            diff_keys.extend(diff)

        transition = self._transition(default)
        if transition and transition.get('type') == 'SMART_ANIMATE' and diff_keys:
            duration = transition.get('duration') or 0
            result['transition'] = f"{fmt_pct(duration * 1000)}ms {easing_function(transition.get('easing'))}"
            result['transitionProperty'] = ','.join(sorted({to_long_form(k) for k in diff_keys}))
        return result

    # ------------------------------------------------------------------
    # Public queries
    # ------------------------------------------------------------------

    async def get_selector_props(self, node_id: str) -> Optional[SelectorProps]:
        """Diffs and variant signatures for a component set (or one of its variants)."""
        facts = self.provider.get_node_facts(node_id)
        if facts is None:
            return None
        if facts.type == 'COMPONENT':
            parent = self.provider.parent_of(facts)
            if parent is not None and parent.type == 'COMPONENT_SET':
                return await self.get_selector_props(parent.id)
        if facts.type != 'COMPONENT_SET':
            return None

        pending = self._single.get(facts.id)
        if pending is None:
            pending = asyncio.ensure_future(self._compute(facts))
            self._single[facts.id] = pending
        result = await pending
        return result.copy() if result is not None else None

    async def _compute(self, component_set: NodeFacts) -> SelectorProps:
        result = SelectorProps(variants=variant_signatures(component_set))
        default = self.default_variant(component_set)
        if default is None:
            return result
        components = self.components_of(component_set)
        result.props = await self._diff_states(
            components, default, find_axis(component_set, EFFECT_KEY)
        )
        return result

    @staticmethod
    def group_key(set_id: str, variant_filter: Mapping[str, str], viewport: Optional[str]) -> str:
        parts = '|'.join(f"{k}={v}" for k, v in sorted(variant_filter.items()))
        return f"{set_id}::{parts}::{viewport or ''}"

    async def get_selector_props_for_group(
        self,
        set_id: str,
        variant_filter: Mapping[str, str],
        viewport: Optional[str] = None,
    ) -> Props:
        """Pseudo-selector props for the variants matching ``variant_filter`` (and ``viewport``)."""
        key = self.group_key(set_id, variant_filter, viewport)
        pending = self._grouped.get(key)
        if pending is None:
            pending = asyncio.ensure_future(self._compute_group(set_id, dict(variant_filter), viewport))
            self._grouped[key] = pending
        return dict(await pending)

    async def _compute_group(
        self,
        set_id: str,
        variant_filter: Dict[str, str],
        viewport: Optional[str],
    ) -> Props:
        component_set = self.provider.get_node_facts(set_id)
        if component_set is None or component_set.type != 'COMPONENT_SET':
            return {}
        effect_key = find_axis(component_set, EFFECT_KEY)
        viewport_key = find_axis(component_set, VIEWPORT_KEY)

        matching = []
        for component in self.components_of(component_set):
            variants = component.variant_properties
            if any(variants.get(k) != v for k, v in variant_filter.items()):
                continue
            if viewport is not None and viewport_key and variants.get(viewport_key) != viewport:
                continue
            matching.append(component)
        if not matching:
            return {}

        default = self._group_default(matching, effect_key)
        return await self._diff_states(matching, default, effect_key)

    def _group_default(self, components: List[NodeFacts], effect_key: Optional[str]) -> NodeFacts:
        if effect_key:
            for component in components:
                if component.variant_properties.get(effect_key) == DEFAULT_EFFECT:
                    return component
        for component in components:
            if self.effect_of(component, effect_key) is None:
                return component
        return components[0]
