"""Tests for typography props and text children."""
import pytest

from conftest import BLACK, page, solid
from devup_codegen.facts import DictFactProvider
from devup_codegen.text import fix_text_child, render_text, style_to_typography, text_segments


class TestTypography:

    def test_full_style(self):
        style = {
            'fontFamily': 'Pretendard',
            'fontWeight': 700,
            'fontSize': 16,
            'lineHeightUnit': 'FONT_SIZE_%',
            'lineHeightPercentFontSize': 150,
            'letterSpacing': -0.32,
            'textDecoration': 'UNDERLINE',
            'textCase': 'UPPER',
        }
        assert style_to_typography(style) == {
            'fontFamily': 'Pretendard',
            'fontWeight': '700',
            'fontSize': '16px',
            'textDecoration': 'underline',
            'textTransform': 'uppercase',
            'lineHeight': '1.5',
            'letterSpacing': '-0.32px',
        }

    def test_pixel_line_height(self):
        assert style_to_typography({'lineHeightUnit': 'PIXELS', 'lineHeightPx': 24})['lineHeight'] == '24px'

    def test_intrinsic_line_height(self):
        assert style_to_typography({'lineHeightUnit': 'INTRINSIC_%'})['lineHeight'] == 'normal'

    def test_italic_and_strikethrough(self):
        props = style_to_typography({'italic': True, 'textDecoration': 'STRIKETHROUGH'})
        assert props == {'fontStyle': 'italic', 'textDecoration': 'line-through'}


class TestTextChildren:

    def test_escapes_jsx_characters(self):
        assert fix_text_child('a < b') == 'a {"<"} b'
        assert fix_text_child('{x}') == '{"{"}x{"}"}'

    def test_keeps_edge_spaces(self):
        assert fix_text_child(' hi ') == '{" "}hi{" "}'

    def test_segments_follow_overrides(self, text_node):
        provider = DictFactProvider(page(text_node))
        segments = text_segments(provider.get_node_facts('8:1'))
        assert [s.characters for s in segments] == ['Hi ', 'there']
        assert segments[1].style['fontWeight'] == 700

    @pytest.mark.asyncio
    async def test_single_run_with_line_break(self):
        node = {
            'id': '8:2', 'name': 'Lines', 'type': 'TEXT', 'characters': 'Hello\nWorld',
            'style': {'fontFamily': 'Inter', 'fontSize': 12}, 'fills': [solid(BLACK)],
        }
        provider = DictFactProvider(page(node))
        rendered = await render_text(provider.get_node_facts('8:2'), provider)
        assert rendered.children == ['Hello<br />World']
        assert rendered.props == {'fontFamily': 'Inter', 'fontSize': '12px', 'color': '#000'}

    @pytest.mark.asyncio
    async def test_multiple_runs_hoist_common_color(self, text_node):
        provider = DictFactProvider(page(text_node))
        rendered = await render_text(provider.get_node_facts('8:1'), provider)
        assert rendered.props == {'color': '#000'}
        assert len(rendered.children) == 2
        assert rendered.children[0] == \
            '<Text fontFamily="Inter" fontSize="14px" fontWeight="400">\n  Hi{" "}\n</Text>'
        assert 'fontWeight="700"' in rendered.children[1]
        assert 'there' in rendered.children[1]

    @pytest.mark.asyncio
    async def test_text_style_becomes_typography(self):
        node = {
            'id': '8:3', 'name': 'Heading', 'type': 'TEXT', 'characters': 'Title',
            'style': {'fontFamily': 'Inter', 'fontSize': 32, 'fontWeight': 700},
            'styles': {'text': 'S:1'},
            'fills': [solid(BLACK)],
        }
        provider = DictFactProvider(page(node), styles={'S:1': {'name': 'Heading/H1 Bold', 'styleType': 'TEXT'}})
        rendered = await render_text(provider.get_node_facts('8:3'), provider)
        assert rendered.props == {'color': '#000', 'typography': 'h1Bold'}
