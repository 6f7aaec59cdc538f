"""Tests for breakpoint and variant merging of property maps."""
from devup_codegen.responsive import (
    Breakpoint,
    VariantPropValue,
    breakpoint_for_width,
    group_by_breakpoint,
    merge_props_to_responsive,
    merge_props_to_variant,
    optimize_responsive_value,
    viewport_to_breakpoint,
)
from devup_codegen.facts import NodeFacts


class TestBreakpoints:

    def test_widths_map_to_smallest_holding_bucket(self):
        assert breakpoint_for_width(375) == Breakpoint.MOBILE
        assert breakpoint_for_width(480) == Breakpoint.MOBILE
        assert breakpoint_for_width(481) == Breakpoint.SM
        assert breakpoint_for_width(992) == Breakpoint.TABLET
        assert breakpoint_for_width(1280) == Breakpoint.LG
        assert breakpoint_for_width(1920) == Breakpoint.PC

    def test_viewport_names(self):
        assert viewport_to_breakpoint('Mobile') == Breakpoint.MOBILE
        assert viewport_to_breakpoint('tablet') == Breakpoint.TABLET
        assert viewport_to_breakpoint('desktop') == Breakpoint.PC

    def test_slots_follow_order(self):
        assert [bp.slot for bp in (Breakpoint.MOBILE, Breakpoint.TABLET, Breakpoint.PC)] == [0, 2, 4]

    def test_group_by_breakpoint_keeps_order(self):
        nodes = [
            NodeFacts(id='a', name='a', type='FRAME', width=1440),
            NodeFacts(id='b', name='b', type='FRAME', width=375),
            NodeFacts(id='c', name='c', type='FRAME', width=1920),
        ]
        groups = group_by_breakpoint(nodes)
        assert [n.id for n in groups[Breakpoint.PC]] == ['a', 'c']
        assert [n.id for n in groups[Breakpoint.MOBILE]] == ['b']


class TestOptimizeResponsiveValue:

    def test_consecutive_duplicates_become_null(self):
        assert optimize_responsive_value(['100px', '100px', '120px']) == ['100px', None, '120px']

    def test_single_leading_value_collapses(self):
        assert optimize_responsive_value(['10px', None, None, None, None]) == '10px'

    def test_all_null_is_omitted(self):
        assert optimize_responsive_value([None] * 5) is None

    def test_default_in_first_slot_is_dropped(self):
        assert optimize_responsive_value(['0px', '0px', '8px'], 'gap') == [None, None, '8px']

    def test_default_only_is_omitted(self):
        assert optimize_responsive_value(['flex-start', 'flex-start'], 'alignItems') is None

    def test_scalars_are_idempotent(self):
        assert optimize_responsive_value('red') == 'red'
        once = optimize_responsive_value(['a', 'b', 'b', None, 'c'])
        assert optimize_responsive_value(once) == once

    def test_booleans_are_not_equal_to_numbers(self):
        assert optimize_responsive_value([1, True]) == [1, True]


class TestMergePropsToResponsive:

    def test_single_breakpoint_is_returned_as_is(self):
        merged = merge_props_to_responsive({Breakpoint.PC: {'w': '10px'}})
        assert merged == {'w': '10px'}

    def test_differing_values_become_arrays(self):
        merged = merge_props_to_responsive({
            Breakpoint.MOBILE: {'w': '100px', 'bg': 'red'},
            Breakpoint.PC: {'w': '200px', 'bg': 'red'},
        })
        assert merged == {'w': ['100px', None, None, None, '200px'], 'bg': 'red'}

    def test_breakpoint_names_are_accepted(self):
        merged = merge_props_to_responsive({'mobile': {'h': '1px'}, 'tablet': {'h': '2px'}})
        assert merged == {'h': ['1px', None, '2px']}

    def test_cascading_prop_is_reset(self):
        merged = merge_props_to_responsive({
            Breakpoint.MOBILE: {'pos': 'absolute'},
            Breakpoint.PC: {},
        })
        assert merged == {'pos': ['absolute', None, None, None, 'initial']}

    def test_reset_lands_on_next_existing_breakpoint(self):
        merged = merge_props_to_responsive({
            Breakpoint.MOBILE: {'display': None},
            Breakpoint.TABLET: {'display': 'none'},
            Breakpoint.PC: {},
        })
        assert merged == {'display': [None, None, 'none', None, 'initial']}

    def test_equal_values_stay_bare(self):
        merged = merge_props_to_responsive({
            Breakpoint.MOBILE: {'gap': '4px'},
            Breakpoint.SM: {'gap': '4px'},
            Breakpoint.PC: {'gap': '4px'},
        })
        assert merged == {'gap': '4px'}

    def test_non_cascading_prop_is_not_reset(self):
        merged = merge_props_to_responsive({
            Breakpoint.MOBILE: {'bg': 'red'},
            Breakpoint.PC: {},
        })
        assert merged == {'bg': 'red'}

    def test_pseudo_selector_blocks_merge_recursively(self):
        merged = merge_props_to_responsive({
            Breakpoint.MOBILE: {'on-hover': {'bg': 'red'}},
            Breakpoint.PC: {'on-hover': {'bg': 'blue'}},
        })
        assert merged == {'on-hover': {'bg': ['red', None, None, None, 'blue']}}


class TestMergePropsToVariant:

    def test_equal_values_stay_bare(self):
        merged = merge_props_to_variant('size', {
            'sm': {'w': '10px', 'bg': 'red'},
            'lg': {'w': '20px', 'bg': 'red'},
        })
        assert merged['bg'] == 'red'
        assert merged['w'] == VariantPropValue('size', {'sm': '10px', 'lg': '20px'})

    def test_missing_values_are_left_out(self):
        merged = merge_props_to_variant('kind', {'a': {'opacity': '0.5'}, 'b': {}})
        assert merged == {'opacity': VariantPropValue('kind', {'a': '0.5'})}

    def test_pseudo_blocks_merge_per_variant(self):
        merged = merge_props_to_variant('size', {
            'sm': {'on-hover': {'bg': 'red'}},
            'lg': {'on-hover': {'bg': 'red'}},
        })
        assert merged == {'on-hover': {'bg': 'red'}}

    def test_single_variant_is_copied(self):
        source = {'w': '1px'}
        merged = merge_props_to_variant('size', {'sm': source})
        assert merged == source
        assert merged is not source
