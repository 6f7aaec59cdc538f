"""Shared Figma REST node fixtures."""
import pytest

BLACK = {'r': 0, 'g': 0, 'b': 0, 'a': 1}
BLUE = {'r': 0, 'g': 0, 'b': 1, 'a': 1}
RED = {'r': 1, 'g': 0, 'b': 0, 'a': 1}
WHITE = {'r': 1, 'g': 1, 'b': 1, 'a': 1}


def solid(color, **extra):
    return {'type': 'SOLID', 'visible': True, 'opacity': 1, 'blendMode': 'NORMAL', 'color': color, **extra}


def page(*children):
    return {'id': '0:1', 'name': 'Page 1', 'type': 'CANVAS', 'children': list(children)}


@pytest.fixture
def card_frame():
    """Vertical auto-layout card with one 1px divider."""
    return {
        'id': '1:1',
        'name': 'Card',
        'type': 'FRAME',
        'layoutMode': 'VERTICAL',
        'itemSpacing': 0,
        'size': {'x': 320, 'y': 200},
        'layoutSizingHorizontal': 'FIXED',
        'layoutSizingVertical': 'FIXED',
        'fills': [],
        'children': [{
            'id': '1:2',
            'name': 'Divider',
            'type': 'RECTANGLE',
            'size': {'x': 320, 'y': 1},
            'layoutSizingHorizontal': 'FILL',
            'layoutSizingVertical': 'FIXED',
            'fills': [solid(BLACK)],
        }],
    }


@pytest.fixture
def card_document(card_frame):
    return page(card_frame)


@pytest.fixture
def styled_frame():
    """Page frame with padding, radius, shadow and a white fill."""
    return {
        'id': '3:1',
        'name': 'Panel',
        'type': 'FRAME',
        'layoutMode': 'VERTICAL',
        'itemSpacing': 8,
        'counterAxisAlignItems': 'CENTER',
        'paddingTop': 16,
        'paddingRight': 16,
        'paddingBottom': 16,
        'paddingLeft': 16,
        'cornerRadius': 8,
        'size': {'x': 320, 'y': 200},
        'layoutSizingVertical': 'HUG',
        'fills': [solid(WHITE)],
        'strokes': [solid(BLACK)],
        'strokeWeight': 2,
        'strokeAlign': 'INSIDE',
        'strokeDashes': [5, 3],
        'effects': [{
            'type': 'DROP_SHADOW', 'visible': True, 'radius': 4, 'spread': 0,
            'color': {'r': 0, 'g': 0, 'b': 0, 'a': 0.25},
            'offset': {'x': 0, 'y': 2},
        }],
        'children': [
            {
                'id': '3:2', 'name': 'Title', 'type': 'RECTANGLE',
                'size': {'x': 100, 'y': 20}, 'fills': [solid(BLACK)],
            },
            {
                'id': '3:3', 'name': 'Body', 'type': 'RECTANGLE',
                'size': {'x': 100, 'y': 40}, 'fills': [solid(BLACK)],
            },
        ],
    }


@pytest.fixture
def free_layout_frame():
    """Frame without auto layout holding one constrained badge."""
    return {
        'id': '2:1',
        'name': 'Stage',
        'type': 'FRAME',
        'size': {'x': 400, 'y': 300},
        'fills': [],
        'children': [{
            'id': '2:2',
            'name': 'Badge',
            'type': 'RECTANGLE',
            'size': {'x': 40, 'y': 20},
            'relativeTransform': [[1, 0, 10], [0, 1, 20]],
            'constraints': {'horizontal': 'RIGHT', 'vertical': 'TOP'},
            'fills': [solid(RED)],
        }],
    }


def _button_variant(node_id, size, effect, color, width, height):
    return {
        'id': node_id,
        'name': f'size={size}, effect={effect}',
        'type': 'COMPONENT',
        'size': {'x': width, 'y': height},
        'fills': [solid(color)],
    }


@pytest.fixture
def button_set():
    """Component set with a size axis and an effect axis."""
    return {
        'id': '20:0',
        'name': 'Button',
        'type': 'COMPONENT_SET',
        'componentPropertyDefinitions': {
            'size': {'type': 'VARIANT', 'defaultValue': 'sm', 'variantOptions': ['sm', 'lg']},
            'effect': {'type': 'VARIANT', 'defaultValue': 'default', 'variantOptions': ['default', 'hover']},
        },
        'children': [
            _button_variant('20:1', 'sm', 'default', BLUE, 80, 32),
            _button_variant('20:2', 'sm', 'hover', RED, 80, 32),
            _button_variant('20:3', 'lg', 'default', BLUE, 120, 48),
            _button_variant('20:4', 'lg', 'hover', RED, 120, 48),
        ],
    }


@pytest.fixture
def hover_set():
    """Effect-only component set whose default variant smart-animates to hover."""
    default = {
        'id': '10:1',
        'name': 'effect=default',
        'type': 'COMPONENT',
        'size': {'x': 100, 'y': 40},
        'fills': [solid(BLUE)],
        'reactions': [{
            'trigger': {'type': 'ON_HOVER'},
            'actions': [{
                'type': 'NODE',
                'destinationId': '10:2',
                'navigation': 'CHANGE_TO',
                'transition': {'type': 'SMART_ANIMATE', 'duration': 0.3, 'easing': {'type': 'EASE_OUT'}},
            }],
        }],
    }
    hover = {
        'id': '10:2',
        'name': 'effect=hover',
        'type': 'COMPONENT',
        'size': {'x': 100, 'y': 40},
        'fills': [solid(RED)],
    }
    return {
        'id': '10:0',
        'name': 'Link',
        'type': 'COMPONENT_SET',
        'componentPropertyDefinitions': {
            'effect': {'type': 'VARIANT', 'defaultValue': 'default', 'variantOptions': ['default', 'hover']},
        },
        'children': [default, hover],
    }


def _timed(destination, duration=0.5):
    return {
        'trigger': {'type': 'AFTER_TIMEOUT', 'timeout': 0},
        'actions': [{
            'type': 'NODE',
            'destinationId': destination,
            'navigation': 'NAVIGATE',
            'transition': {'type': 'SMART_ANIMATE', 'duration': duration, 'easing': {'type': 'EASE_OUT'}},
        }],
    }


@pytest.fixture
def blinking_frames():
    """Two frames that auto-advance into each other, differing only in opacity."""
    return page(
        {
            'id': '5:1', 'name': 'Blink A', 'type': 'FRAME', 'opacity': 1,
            'size': {'x': 100, 'y': 100}, 'relativeTransform': [[1, 0, 0], [0, 1, 0]],
            'reactions': [_timed('5:2')],
        },
        {
            'id': '5:2', 'name': 'Blink B', 'type': 'FRAME', 'opacity': 0.5,
            'size': {'x': 100, 'y': 100}, 'relativeTransform': [[1, 0, 0], [0, 1, 0]],
            'reactions': [_timed('5:1')],
        },
    )


@pytest.fixture
def sliding_frames():
    """Two frames whose 'Dot' child moves 100px between them."""
    def dot(node_id, x):
        return {
            'id': node_id, 'name': 'Dot', 'type': 'ELLIPSE',
            'size': {'x': 10, 'y': 10}, 'relativeTransform': [[1, 0, x], [0, 1, 0]],
        }

    return page(
        {
            'id': '6:1', 'name': 'Slide A', 'type': 'FRAME',
            'size': {'x': 200, 'y': 50}, 'relativeTransform': [[1, 0, 0], [0, 1, 0]],
            'reactions': [_timed('6:2')],
            'children': [dot('6:11', 0)],
        },
        {
            'id': '6:2', 'name': 'Slide B', 'type': 'FRAME',
            'size': {'x': 200, 'y': 50}, 'relativeTransform': [[1, 0, 0], [0, 1, 0]],
            'reactions': [_timed('6:1')],
            'children': [dot('6:12', 100)],
        },
    )


@pytest.fixture
def hero_section():
    """Section with a mobile and a pc frame; the banner only exists on pc."""
    def logo(node_id):
        return {
            'id': node_id, 'name': 'Logo', 'type': 'RECTANGLE',
            'size': {'x': 40, 'y': 40}, 'fills': [solid(BLACK)],
        }

    mobile = {
        'id': '7:1', 'name': 'Hero Mobile', 'type': 'FRAME',
        'layoutMode': 'VERTICAL', 'itemSpacing': 0,
        'paddingTop': 16, 'paddingRight': 16, 'paddingBottom': 16, 'paddingLeft': 16,
        'size': {'x': 375, 'y': 400}, 'layoutSizingVertical': 'HUG',
        'children': [logo('7:11')],
    }
    pc = {
        'id': '7:2', 'name': 'Hero PC', 'type': 'FRAME',
        'layoutMode': 'VERTICAL', 'itemSpacing': 0,
        'paddingTop': 40, 'paddingRight': 40, 'paddingBottom': 40, 'paddingLeft': 40,
        'size': {'x': 1440, 'y': 600}, 'layoutSizingVertical': 'HUG',
        'children': [
            logo('7:21'),
            {
                'id': '7:22', 'name': 'Banner', 'type': 'RECTANGLE',
                'size': {'x': 200, 'y': 100}, 'fills': [solid(BLACK)],
            },
        ],
    }
    return page({'id': '7:0', 'name': 'Hero', 'type': 'SECTION', 'children': [mobile, pc]})


@pytest.fixture
def text_node():
    """Two-run text: regular 'Hi ' then bold 'there'."""
    return {
        'id': '8:1',
        'name': 'Greeting',
        'type': 'TEXT',
        'characters': 'Hi there',
        'style': {'fontFamily': 'Inter', 'fontWeight': 400, 'fontSize': 14},
        'characterStyleOverrides': [0, 0, 0, 1, 1, 1, 1, 1],
        'styleOverrideTable': {'1': {'fontWeight': 700}},
        'fills': [solid(BLACK)],
        'size': {'x': 100, 'y': 20},
    }
