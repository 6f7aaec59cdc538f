"""
Property Extractor.

Turns one node's facts into its canonical property map. Asynchronous
sub-extractors are started first, every synchronous one runs while they are
pending, then results are joined and merged in the fixed table order, so the
later entry always wins a key collision regardless of completion order.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Union

from . import paint, props
from .facts import FactProvider, NodeContext, NodeFacts
from .reaction import AnimationChainBuilder

logger = logging.getLogger(__name__)

Props = Dict[str, Any]
SubExtractor = Callable[[NodeContext], Union[Optional[Props], Awaitable[Optional[Props]]]]

# (name, extractor, is_async, text_only) in merge order
SUB_EXTRACTORS: List[Tuple[str, Optional[SubExtractor], bool, bool]] = [
    ('auto_layout', props.auto_layout_props, False, False),
    ('min_max', props.min_max_props, False, False),
    ('layout', props.layout_props, False, False),
    ('border_radius', props.border_radius_props, False, False),
    ('border', paint.border_props, True, False),
    ('background', paint.background_props, True, False),
    ('blend', props.blend_props, False, False),
    ('padding', props.padding_props, False, False),
    ('text_align', props.text_align_props, False, True),
    ('object_fit', props.object_fit_props, False, False),
    ('max_line', props.max_line_props, False, True),
    ('ellipsis', props.ellipsis_props, False, True),
    ('effect', props.effect_props, False, False),
    ('position', props.position_props, False, False),
    ('grid_child', props.grid_child_props, False, False),
    ('transform', props.transform_props, False, False),
    ('overflow', props.overflow_props, False, False),
    ('text_stroke', paint.text_stroke_props, True, True),
    ('text_shadow', props.text_shadow_props, False, True),
    ('reaction', None, True, False),
    ('cursor', props.cursor_props, False, False),
    ('visibility', props.visibility_props, False, False),
]


class PropertyExtractor:
    """Canonical property maps, memoised by node id."""

    def __init__(self, provider: FactProvider, animations: Optional[AnimationChainBuilder] = None):
        self.provider = provider
        self.animations = animations or AnimationChainBuilder(provider)
        self._pending: Dict[str, 'asyncio.Future[Props]'] = {}
        self._resolved: Dict[str, Props] = {}

    def reset(self) -> None:
        """Drop every cached map. Call between unrelated passes."""
        logger.debug("Resetting property cache (%d entries)", len(self._resolved))
        self._pending.clear()
        self._resolved.clear()

    async def get_props(self, node_id: str) -> Props:
        """Property map for ``node_id``. Always a fresh shallow copy."""
        resolved = self._resolved.get(node_id)
        if resolved is not None:
            return dict(resolved)
        pending = self._pending.get(node_id)
        if pending is None:
            pending = asyncio.ensure_future(self._extract(node_id))
            self._pending[node_id] = pending
        result = await pending
        self._resolved[node_id] = result
        return dict(result)

    async def _guarded(self, name: str, node_id: str, awaitable: Awaitable[Optional[Props]]) -> Optional[Props]:
        try:
            return await awaitable
        except Exception as e:
            logger.warning("Sub-extractor %s failed for node %s: %s", name, node_id, e)
            return None

    def _reaction(self, ctx: NodeContext) -> Awaitable[Props]:
        return self.animations.get_reaction_props(ctx.facts)

    async def _extract(self, node_id: str) -> Props:
        facts = self.provider.get_node_facts(node_id)
        if facts is None:
            logger.warning("No facts for node %s", node_id)
            return {}
        return await self.extract(facts)

    async def extract(self, facts: NodeFacts) -> Props:
        """Run every sub-extractor for ``facts`` and merge in table order. Uncached."""
        ctx = NodeContext.build(self.provider, facts)
        is_text = facts.type == 'TEXT'
        applicable = [entry for entry in SUB_EXTRACTORS if is_text or not entry[3]]

        # Phase 1: start the asynchronous lookups
        pending: Dict[str, 'asyncio.Future[Optional[Props]]'] = {}
        for name, extractor, is_async, _ in applicable:
            if is_async:
                awaitable = self._reaction(ctx) if extractor is None else extractor(ctx)
                pending[name] = asyncio.ensure_future(self._guarded(name, facts.id, awaitable))

        # Phase 2: synchronous work while the lookups are in flight
        results: Dict[str, Optional[Props]] = {}
        for name, extractor, is_async, _ in applicable:
            if is_async:
                continue
            try:
                results[name] = extractor(ctx)
            except Exception as e:
                logger.warning("Sub-extractor %s failed for node %s: %s", name, facts.id, e)
                results[name] = None

        # Phase 3: join in fixed order, then merge
        for name, future in pending.items():
            results[name] = await future

        merged: Props = {}
        for name, _, _, _ in applicable:
            contribution = results.get(name)
            if contribution:
                merged.update(contribution)
        return merged
