"""
Animation Chain Builder.

Follows timed SMART_ANIMATE transitions from a start node, detects loops and
turns the visited states into keyframe animations, one per child (matched by
name) or one for the node itself.
"""

import asyncio
import json
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from .base import fmt_duration, fmt_pct, is_same_color, rgb_to_string
from .facts import FactProvider, NodeFacts

logger = logging.getLogger(__name__)

Props = Dict[str, Any]

DEFAULT_DURATION = 0.3
MIN_DELAY = 0.01

EASING_MAP = {
    'EASE_IN': 'ease-in',
    'EASE_OUT': 'ease-out',
    'EASE_IN_AND_OUT': 'ease-in-out',
    'LINEAR': 'linear',
}


@dataclass
class AnimationStep:
    node_id: str
    duration: float
    easing: Optional[Dict[str, Any]]
    delay: float


@dataclass
class AnimationChain:
    steps: List[AnimationStep] = field(default_factory=list)
    is_loop: bool = False

    @property
    def total_duration(self) -> float:
        return sum(step.duration for step in self.steps)


@dataclass
class NodeAnimation:
    """Animation props for a start node and for its children, keyed by child name."""
    own: Props = field(default_factory=dict)
    children: Dict[str, Props] = field(default_factory=dict)


def easing_function(easing: Optional[Dict[str, Any]]) -> str:
    if not easing:
        return 'linear'
    if easing.get('type') == 'CUSTOM_CUBIC_BEZIER':
        curve = easing.get('easingFunctionCubicBezier') or {}
        if curve:
            return "cubic-bezier({})".format(', '.join(
                fmt_pct(curve.get(k, 0)) for k in ('x1', 'y1', 'x2', 'y2')
            ))
    return EASING_MAP.get(easing.get('type'), 'linear')


def timed_transitions(facts: NodeFacts):
    """Yield (action, trigger) for every AFTER_TIMEOUT smart-animate navigation."""
    for reaction in facts.reactions:
        trigger = reaction.get('trigger') or {}
        if trigger.get('type') != 'AFTER_TIMEOUT':
            continue
        for action in reaction.get('actions', []):
            transition = action.get('transition') or {}
            if (
                action.get('type') == 'NODE'
                and transition.get('type') == 'SMART_ANIMATE'
                and action.get('destinationId')
            ):
                yield action, trigger


def node_differences(source: NodeFacts, target: NodeFacts) -> Props:
    """Animatable props of ``target`` that differ from ``source``."""
    changes: Props = {}
    if source.x != target.x or source.y != target.y:
        changes['transform'] = (
            f"translate({fmt_pct(target.x - source.x)}px, {fmt_pct(target.y - source.y)}px)"
        )
    if source.width != target.width:
        changes['w'] = f"{fmt_pct(target.width)}px"
    if source.height != target.height:
        changes['h'] = f"{fmt_pct(target.height)}px"
    if source.opacity != target.opacity:
        changes['opacity'] = fmt_pct(target.opacity)
    if source.fills and target.fills:
        first, second = source.fills[0], target.fills[0]
        if (
            first.get('type') == 'SOLID'
            and second.get('type') == 'SOLID'
            and not is_same_color(first.get('color', {}), second.get('color', {}))
        ):
            changes['bg'] = rgb_to_string(second.get('color', {}), second.get('opacity'))
    if source.rotation != target.rotation:
        rotate = f"rotate({fmt_pct(target.rotation)}deg)"
        existing = changes.get('transform')
        changes['transform'] = f"{existing} {rotate}" if existing else rotate
    return changes


def _serialized(value: Any) -> str:
    return json.dumps(value, sort_keys=True)


def build_keyframes(
    all_changes: List[Props],
    starting_values: Props,
    chain: AnimationChain,
) -> Dict[str, Props]:
    """Percentage-keyed keyframes with incremental changes only."""
    animated: List[str] = []
    for changes in all_changes:
        for key in changes:
            if key not in animated:
                animated.append(key)

    needs_initial: Dict[str, bool] = {}
    include: Dict[str, bool] = {}
    for key in animated:
        seen = [_serialized(c[key]) for c in all_changes if key in c]
        needs_initial[key] = len(set(seen)) > 1
        include[key] = len(set(seen)) > 1 or len(seen) == 1

    initial = {
        key: starting_values[key]
        for key in animated
        if needs_initial[key] and key in starting_values
    }
    keyframes: Dict[str, Props] = {'0%': initial}

    total = chain.total_duration
    elapsed = 0.0
    previous = dict(initial)
    for step, changes in zip(chain.steps, all_changes):
        elapsed += step.duration
        percentage = math.floor(elapsed / total * 100 + 0.5) if total else 100
        incremental = {
            key: value for key, value in changes.items()
            if include.get(key) and previous.get(key) != value
        }
        if incremental:
            keyframes[f"{percentage}%"] = incremental
            previous.update(incremental)

    if chain.is_loop and len(keyframes) > 1 and '100%' not in keyframes:
        restore = {key: value for key, value in initial.items() if previous.get(key) != value}
        keyframes['100%'] = restore or dict(initial)
    return keyframes


def animation_props(keyframes: Dict[str, Props], chain: AnimationChain) -> Props:
    first = chain.steps[0]
    props: Props = {
        'animationName': f"keyframes({json.dumps(keyframes, separators=(',', ':'))})",
        'animationDuration': f"{fmt_duration(chain.total_duration)}s",
        'animationTimingFunction': easing_function(first.easing),
        'animationFillMode': 'forwards',
    }
    if first.delay >= MIN_DELAY:
        props['animationDelay'] = f"{fmt_duration(first.delay)}s"
    if chain.is_loop:
        props['animationIterationCount'] = 'infinite'
    return props


class AnimationChainBuilder:
    """Builds and memoises timed-transition animations per start node."""

    def __init__(self, provider: FactProvider):
        self.provider = provider
        self._cache: Dict[str, 'asyncio.Future[NodeAnimation]'] = {}

    def reset(self) -> None:
        logger.debug("Resetting animation cache (%d entries)", len(self._cache))
        self._cache.clear()

    async def get_reaction_props(self, facts: NodeFacts) -> Props:
        """Animation props for ``facts``, inherited from its parent's chain when it has one."""
        parent = self.provider.parent_of(facts)
        if parent is not None and parent.reactions:
            inherited = (await self.animations_for(parent)).children.get(facts.name)
            if inherited:
                return dict(inherited)
        if not facts.reactions:
            return {}
        return dict((await self.animations_for(facts)).own)

    async def animations_for(self, facts: NodeFacts) -> NodeAnimation:
        pending = self._cache.get(facts.id)
        if pending is None:
            pending = asyncio.ensure_future(self._build(facts))
            self._cache[facts.id] = pending
        return await pending

    async def _fetch(self, node_id: str) -> Optional[NodeFacts]:
        resolved = await self.provider.resolve_node_by_id(node_id)
        if not resolved:
            return None
        facts = self.provider.get_node_facts(resolved)
        if facts is None or facts.type in ('DOCUMENT', 'PAGE', 'CANVAS'):
            return None
        return facts

    async def _build(self, start: NodeFacts) -> NodeAnimation:
        for action, trigger in timed_transitions(start):
            transition = action['transition']
            try:
                destination = await self._fetch(action['destinationId'])
            except Exception as e:
                logger.warning("Failed to resolve destination %s of %s: %s",
                               action['destinationId'], start.id, e)
                continue
            if destination is None:
                continue

            chain = await self.build_chain(
                start,
                destination,
                transition.get('duration') or DEFAULT_DURATION,
                transition.get('easing'),
                trigger.get('timeout') or 0,
            )
            if not chain.steps:
                continue

            children = self.child_animations(start, chain)
            if children:
                return NodeAnimation(children=children)
            own = self.self_animation(start, chain)
            if own:
                return NodeAnimation(own=own)
        return NodeAnimation()

    async def build_chain(
        self,
        start: NodeFacts,
        current: NodeFacts,
        duration: float,
        easing: Optional[Dict[str, Any]],
        delay: float,
        visited: Optional[Set[str]] = None,
    ) -> AnimationChain:
        """Follow timed transitions from ``current`` until the chain ends or returns to ``start``."""
        visited = visited if visited is not None else set()
        if current.id in visited:
            return AnimationChain()
        if current.id == start.id:
            return AnimationChain(is_loop=True)

        visited.add(current.id)
        chain = AnimationChain(steps=[AnimationStep(current.id, duration, easing, delay)])

        for action, trigger in timed_transitions(current):
            transition = action['transition']
            next_id = action['destinationId']
            next_duration = transition.get('duration') or DEFAULT_DURATION
            next_delay = trigger.get('timeout') or 0
            if next_id == start.id:
                chain.steps.append(
                    AnimationStep(start.id, next_duration, transition.get('easing'), next_delay)
                )
                chain.is_loop = True
                return chain
            if next_id in visited:
                continue
            try:
                next_node = await self._fetch(next_id)
            except Exception as e:
                logger.warning("Failed to resolve next node %s in chain from %s: %s",
                               next_id, start.id, e)
                continue
            if next_node is None:
                continue
            rest = await self.build_chain(
                start, next_node, next_duration, transition.get('easing'),
                next_delay, set(visited),
            )
            chain.steps.extend(rest.steps)
            if rest.is_loop:
                chain.is_loop = True
        return chain

    def _child_named(self, node_id: str, name: str) -> Optional[NodeFacts]:
        facts = self.provider.get_node_facts(node_id)
        if facts is None:
            return None
        for child in self.provider.children_of(facts):
            if child.name == name:
                return child
        return None

    def child_animations(self, start: NodeFacts, chain: AnimationChain) -> Dict[str, Props]:
        """One animation per start-node child whose counterparts change along the chain."""
        result: Dict[str, Props] = {}
        names: List[str] = []
        for child in self.provider.children_of(start):
            if child.name not in names:
                names.append(child.name)

        for name in names:
            all_changes: List[Props] = []
            previous_id = start.id
            for step in chain.steps:
                before = self._child_named(previous_id, name)
                after = self._child_named(step.node_id, name)
                all_changes.append(node_differences(before, after) if before and after else {})
                previous_id = step.node_id

            starting: Props = {}
            start_child = self._child_named(start.id, name)
            first_child = self._child_named(chain.steps[0].node_id, name)
            if start_child and first_child:
                starting = node_differences(first_child, start_child)

            keyframes = build_keyframes(all_changes, starting, chain)
            if len(keyframes) > 1:
                result[name] = animation_props(keyframes, chain)
        return result

    def self_animation(self, start: NodeFacts, chain: AnimationChain) -> Props:
        """Keyframes for the start node itself, used when no child animates."""
        all_changes: List[Props] = []
        previous = start
        for step in chain.steps:
            current = self.provider.get_node_facts(step.node_id)
            all_changes.append(node_differences(previous, current) if current else {})
            previous = current or previous

        first = self.provider.get_node_facts(chain.steps[0].node_id)
        starting = node_differences(first, start) if first else {}
        keyframes = build_keyframes(all_changes, starting, chain)
        if len(keyframes) > 1:
            return animation_props(keyframes, chain)
        return {}
