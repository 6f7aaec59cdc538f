"""Tests for interaction-state diffs and variant signatures of component sets."""
import pytest

from conftest import page
from devup_codegen.extractor import PropertyExtractor
from devup_codegen.facts import DictFactProvider
from devup_codegen.selector import (
    SelectorEngine,
    is_reserved_variant_key,
    sanitize_property_name,
    trigger_to_effect,
    variant_type,
)


def _engine(*nodes):
    provider = DictFactProvider(page(*nodes))
    return SelectorEngine(provider, PropertyExtractor(provider)), provider


class TestNames:

    def test_sanitize_property_name(self):
        assert sanitize_property_name('button size') == 'buttonSize'
        assert sanitize_property_name('Label#12:3') == 'Label'
        assert sanitize_property_name('1st') == '_1st'
        assert sanitize_property_name('속성 1') == 'property1'
        assert sanitize_property_name('!!!') == 'variant'

    def test_reserved_keys(self):
        assert is_reserved_variant_key('Effect')
        assert is_reserved_variant_key('viewport#4:0')
        assert not is_reserved_variant_key('effects')

    def test_variant_types(self):
        assert variant_type({'type': 'VARIANT', 'variantOptions': ['sm', 'lg']}) == "'sm' | 'lg'"
        assert variant_type({'type': 'BOOLEAN'}) == 'boolean'
        assert variant_type({'type': 'TEXT'}) == 'string'
        assert variant_type({'type': 'INSTANCE_SWAP'}) == 'React.ReactNode'

    def test_triggers(self):
        assert trigger_to_effect('ON_HOVER') == 'hover'
        assert trigger_to_effect('ON_PRESS') == 'active'
        assert trigger_to_effect('ON_CLICK') is None
        assert trigger_to_effect(None) is None


class TestSelectorProps:

    @pytest.mark.asyncio
    async def test_hover_diff_with_transition(self, hover_set):
        engine, _ = _engine(hover_set)
        result = await engine.get_selector_props('10:0')
        assert result.variants == {}
        assert result.props == {
            'on-hover': {'bg': '#F00'},
            'transition': '300ms ease-out',
            'transitionProperty': 'background',
        }

    @pytest.mark.asyncio
    async def test_variant_resolves_to_its_set(self, hover_set):
        engine, _ = _engine(hover_set)
        from_variant = await engine.get_selector_props('10:2')
        from_set = await engine.get_selector_props('10:0')
        assert from_variant.props == from_set.props

    @pytest.mark.asyncio
    async def test_results_are_copies(self, hover_set):
        engine, _ = _engine(hover_set)
        first = await engine.get_selector_props('10:0')
        first.props.clear()
        second = await engine.get_selector_props('10:0')
        assert 'on-hover' in second.props

    @pytest.mark.asyncio
    async def test_plain_frame_has_no_selectors(self, card_frame):
        engine, _ = _engine(card_frame)
        assert await engine.get_selector_props('1:1') is None

    @pytest.mark.asyncio
    async def test_signatures_skip_reserved_axes(self, button_set):
        engine, _ = _engine(button_set)
        result = await engine.get_selector_props('20:0')
        assert result.variants == {'size': "'sm' | 'lg'"}

    @pytest.mark.asyncio
    async def test_default_variant_prefers_effect_default(self, button_set):
        engine, provider = _engine(button_set)
        default = engine.default_variant(provider.get_node_facts('20:0'))
        assert default.id == '20:1'


class TestGroupSelectorProps:

    @pytest.mark.asyncio
    async def test_diff_is_scoped_to_group(self, button_set):
        engine, _ = _engine(button_set)
        small = await engine.get_selector_props_for_group('20:0', {'size': 'sm'})
        large = await engine.get_selector_props_for_group('20:0', {'size': 'lg'})
        assert small == {'on-hover': {'bg': '#F00'}}
        assert large == {'on-hover': {'bg': '#F00'}}

    @pytest.mark.asyncio
    async def test_no_matching_variants(self, button_set):
        engine, _ = _engine(button_set)
        assert await engine.get_selector_props_for_group('20:0', {'size': 'xl'}) == {}

    @pytest.mark.asyncio
    async def test_unknown_set(self, button_set):
        engine, _ = _engine(button_set)
        assert await engine.get_selector_props_for_group('nope', {}) == {}

    def test_group_key_is_order_independent(self):
        first = SelectorEngine.group_key('1:0', {'a': '1', 'b': '2'}, 'mobile')
        second = SelectorEngine.group_key('1:0', {'b': '2', 'a': '1'}, 'mobile')
        assert first == second
