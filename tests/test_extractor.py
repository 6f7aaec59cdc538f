"""Tests for property extraction from Figma node facts."""
import asyncio

import pytest

from conftest import BLUE, page, solid
from devup_codegen import extractor as extractor_module
from devup_codegen.extractor import PropertyExtractor
from devup_codegen.facts import DictFactProvider, NodeContext


def _extractor(document, **kwargs):
    provider = DictFactProvider(document, **kwargs)
    return PropertyExtractor(provider), provider


def _row(*children):
    return {
        'id': '4:0', 'name': 'Row', 'type': 'FRAME', 'layoutMode': 'HORIZONTAL',
        'size': {'x': 200, 'y': 50}, 'children': list(children),
    }


def _set(props):
    return {k: v for k, v in props.items() if v is not None}


class TestContainerProps:

    @pytest.mark.asyncio
    async def test_auto_layout_frame(self, styled_frame):
        extractor, _ = _extractor(page(styled_frame))
        props = _set(await extractor.get_props('3:1'))
        assert props['display'] == 'flex'
        assert props['flexDir'] == 'column'
        assert props['gap'] == '8px'
        assert props['alignItems'] == 'center'
        assert props['p'] == '16px'
        assert props['borderRadius'] == '8px'
        assert props['bg'] == '#FFF'

    @pytest.mark.asyncio
    async def test_page_frame_has_no_width(self, styled_frame):
        extractor, _ = _extractor(page(styled_frame))
        props = _set(await extractor.get_props('3:1'))
        assert 'w' not in props
        assert 'h' not in props

    @pytest.mark.asyncio
    async def test_dashed_border(self, styled_frame):
        extractor, _ = _extractor(page(styled_frame))
        props = await extractor.get_props('3:1')
        assert props['border'] == 'dashed 2px #000'

    @pytest.mark.asyncio
    async def test_drop_shadow(self, styled_frame):
        extractor, _ = _extractor(page(styled_frame))
        props = await extractor.get_props('3:1')
        assert props['boxShadow'] == '0 2px 4px 0 #00000040'

    @pytest.mark.asyncio
    async def test_fixed_child_size(self, styled_frame):
        extractor, _ = _extractor(page(styled_frame))
        props = _set(await extractor.get_props('3:2'))
        assert props['w'] == '100px'
        assert props['h'] == '20px'
        assert props['bg'] == '#000'


class TestAbsolutePosition:

    @pytest.mark.asyncio
    async def test_right_constrained_child(self, free_layout_frame):
        extractor, provider = _extractor(page(free_layout_frame))
        ctx = NodeContext.build(provider, provider.get_node_facts('2:2'))
        assert ctx.can_be_absolute

        props = _set(await extractor.get_props('2:2'))
        assert props['pos'] == 'absolute'
        assert props['right'] == '350px'
        assert props['top'] == '20px'
        assert 'left' not in props
        assert props['w'] == '40px'
        assert props['h'] == '20px'


class TestTokensAndFailures:

    @pytest.mark.asyncio
    async def test_bound_variable_becomes_token(self):
        rect = {
            'id': '4:1', 'name': 'Swatch', 'type': 'RECTANGLE', 'size': {'x': 10, 'y': 10},
            'fills': [solid(BLUE, boundVariables={'color': {'type': 'VARIABLE_ALIAS', 'id': 'VariableID:1'}})],
        }
        extractor, _ = _extractor(page(rect), variables={'VariableID:1': {'name': 'primary/500'}})
        props = await extractor.get_props('4:1')
        assert props['bg'] == '$primary500'

    @pytest.mark.asyncio
    async def test_unresolved_variable_falls_back_to_hex(self):
        rect = {
            'id': '4:1', 'name': 'Swatch', 'type': 'RECTANGLE', 'size': {'x': 10, 'y': 10},
            'fills': [solid(BLUE, boundVariables={'color': {'type': 'VARIABLE_ALIAS', 'id': 'VariableID:9'}})],
        }
        extractor, _ = _extractor(page(rect))
        props = await extractor.get_props('4:1')
        assert props['bg'] == '#00F'

    @pytest.mark.asyncio
    async def test_failing_lookup_degrades_to_literal_colour(self):
        class BrokenTokens(DictFactProvider):
            async def resolve_token(self, token_id):
                raise RuntimeError("token service down")

        rect = {
            'id': '4:1', 'name': 'Swatch', 'type': 'RECTANGLE', 'size': {'x': 10, 'y': 12},
            'fills': [solid(BLUE, boundVariables={'color': {'type': 'VARIABLE_ALIAS', 'id': 'VariableID:1'}})],
        }
        extractor = PropertyExtractor(BrokenTokens(page(_row(rect))))
        props = _set(await extractor.get_props('4:1'))
        assert props['bg'] == '#00F'
        assert props['w'] == '10px'
        assert props['h'] == '12px'

    @pytest.mark.asyncio
    async def test_failing_sub_extractor_drops_only_its_props(self, monkeypatch):
        def explode(ctx):
            raise RuntimeError("boom")

        table = [entry if entry[0] != 'background' else ('background', explode, False, False)
                 for entry in extractor_module.SUB_EXTRACTORS]
        monkeypatch.setattr(extractor_module, 'SUB_EXTRACTORS', table)
        rect = {'id': '4:1', 'name': 'Swatch', 'type': 'RECTANGLE', 'size': {'x': 10, 'y': 12}, 'fills': [solid(BLUE)]}
        extractor, _ = _extractor(page(_row(rect)))
        props = _set(await extractor.get_props('4:1'))
        assert 'bg' not in props
        assert props['w'] == '10px'

    @pytest.mark.asyncio
    async def test_hidden_node(self):
        rect = {'id': '4:1', 'name': 'Ghost', 'type': 'RECTANGLE', 'visible': False, 'size': {'x': 5, 'y': 5}}
        extractor, _ = _extractor(page(rect))
        props = await extractor.get_props('4:1')
        assert props['display'] == 'none'

    @pytest.mark.asyncio
    async def test_unknown_node_is_empty(self):
        extractor, _ = _extractor(page())
        assert await extractor.get_props('missing') == {}


class TestMergeOrder:

    @pytest.mark.asyncio
    async def test_visibility_overrides_line_clamp_display(self):
        label = {
            'id': '4:1', 'name': 'Label', 'type': 'TEXT', 'visible': False, 'characters': 'Clamp me',
            'size': {'x': 100, 'y': 40}, 'style': {'fontSize': 14, 'maxLines': 2},
        }
        extractor, _ = _extractor(page(_row(label)))
        props = await extractor.get_props('4:1')
        assert props['WebkitLineClamp'] == '2'
        assert props['display'] == 'none'

    @pytest.mark.asyncio
    async def test_scroll_overflow_overrides_ellipsis(self):
        label = {
            'id': '4:1', 'name': 'Label', 'type': 'TEXT', 'characters': 'Long text',
            'size': {'x': 100, 'y': 20}, 'style': {'fontSize': 14, 'textTruncation': 'ENDING'},
            'overflowDirection': 'HORIZONTAL_AND_VERTICAL_SCROLLING',
        }
        extractor, _ = _extractor(page(_row(label)))
        props = await extractor.get_props('4:1')
        assert props['textOverflow'] == 'ellipsis'
        assert props['overflow'] == 'auto'

    @pytest.mark.asyncio
    async def test_later_entry_wins_regardless_of_completion(self, card_document, monkeypatch):
        async def slow(ctx):
            await asyncio.sleep(0.01)
            return {'display': 'slow', 'cursor': 'slow'}

        async def fast(ctx):
            return {'display': 'fast'}

        def sync(ctx):
            return {'cursor': 'sync'}

        monkeypatch.setattr(extractor_module, 'SUB_EXTRACTORS', [
            ('slow', slow, True, False),
            ('fast', fast, True, False),
            ('sync', sync, False, False),
        ])
        extractor, _ = _extractor(card_document)
        assert await extractor.get_props('1:2') == {'display': 'fast', 'cursor': 'sync'}


class TestCaching:

    @pytest.mark.asyncio
    async def test_returns_fresh_copies(self, card_document):
        extractor, _ = _extractor(card_document)
        first = await extractor.get_props('1:2')
        first['bg'] = 'mutated'
        second = await extractor.get_props('1:2')
        assert second['bg'] == '#000'

    @pytest.mark.asyncio
    async def test_extracts_once(self, card_document, monkeypatch):
        extractor, _ = _extractor(card_document)
        calls = []
        original = extractor.extract

        async def counting(facts):
            calls.append(facts.id)
            return await original(facts)

        monkeypatch.setattr(extractor, 'extract', counting)
        await extractor.get_props('1:2')
        await extractor.get_props('1:2')
        assert calls == ['1:2']

        extractor.reset()
        await extractor.get_props('1:2')
        assert calls == ['1:2', '1:2']
