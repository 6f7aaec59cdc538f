"""
Figma node to Devup UI code generation.
"""

from .codegen import (
    Codegen,
    CodegenSession,
    ComponentTree,
    GeneratedComponent,
    NodeTree,
    ResponsiveCodegen,
    generate,
    render_tree,
)
from .config import CodegenSettings, configure_logging
from .extractor import PropertyExtractor
from .facts import DictFactProvider, FactProvider, NodeFacts, TokenRef
from .figma_client import FigmaClient, FigmaRestFactProvider
from .reaction import AnimationChainBuilder
from .render import props_to_string, render_component, render_node
from .responsive import (
    Breakpoint,
    VariantPropValue,
    merge_props_to_responsive,
    merge_props_to_variant,
    optimize_responsive_value,
)
from .selector import SelectorEngine, SelectorProps

__all__ = [
    'AnimationChainBuilder',
    'Breakpoint',
    'Codegen',
    'CodegenSession',
    'CodegenSettings',
    'ComponentTree',
    'DictFactProvider',
    'FactProvider',
    'FigmaClient',
    'FigmaRestFactProvider',
    'GeneratedComponent',
    'NodeFacts',
    'NodeTree',
    'PropertyExtractor',
    'ResponsiveCodegen',
    'SelectorEngine',
    'SelectorProps',
    'TokenRef',
    'VariantPropValue',
    'configure_logging',
    'generate',
    'merge_props_to_responsive',
    'merge_props_to_variant',
    'optimize_responsive_value',
    'props_to_string',
    'render_component',
    'render_node',
    'render_tree',
]
