import itertools
import math

import numpy as np
import pytest

from fractal_bitshadows import (FractalConfig, TreeBuilder, CyclingColorSource, default_palette,
                                fixed_angles, ColorSourceError, GeometryError, ResourceLimitError,
                                FractalError)


def test_node_count_depth_two_branching_three(small_config, counter):
    tree = TreeBuilder().build(small_config, counter)
    assert len(tree) == 13
    assert counter.calls == 13


@pytest.mark.parametrize("depth,branching,expected", [
    (0, 3, 1),
    (1, 3, 4),
    (3, 2, 15),
    (4, 1, 5),
    (3, 4, 85),
])
def test_node_count_formula(depth, branching, expected, counter):
    config = FractalConfig(depth=depth, branching_factor=branching)
    assert len(TreeBuilder().build(config, counter)) == expected


def test_depth_zero_is_root_only(counter):
    config = FractalConfig(depth=0, branching_factor=7)
    tree = TreeBuilder().build(config, counter)
    assert len(tree) == 1
    assert tree.children(tree.root) == ()
    assert tree.root.is_root


def test_root_values():
    config = FractalConfig(depth=1, init_offset_angle=0.25, init_opacity=0.8, origin=(5, -3))
    tree = TreeBuilder().build(config, CyclingColorSource(['root', 'child']))
    root = tree.root
    assert root.scale == 40
    assert root.offset_angle == 0.25
    assert root.opacity == 0.8
    assert root.location == (5.0, -3.0)
    assert root.depth_level == 0
    assert root.color == 'root'
    assert (root.hue, root.saturation, root.lightness, root.blur) == (200, 0.5, 0.5, 0)


def test_scale_law(counter):
    config = FractalConfig(depth=3, max_scale=40, scale_ratio=0.6)
    tree = TreeBuilder().build(config, counter)
    for node in tree:
        assert node.scale == pytest.approx(40 * 0.6 ** node.depth_level)
    assert tree.level(1)[0].scale == pytest.approx(24)
    assert tree.level(2)[0].scale == pytest.approx(14.4)


def test_opacity_law(counter):
    config = FractalConfig(depth=3, max_scale=40, max_opacity=0.5)
    tree = TreeBuilder().build(config, counter)
    for node in tree:
        if node.depth_level >= 1:
            assert node.opacity == pytest.approx(0.5 * (1 - node.scale / 40))
    assert tree.level(2)[0].opacity == pytest.approx(0.32)


def test_geometry_scenario(counter):
    config = FractalConfig(depth=1, max_scale=40, branching_factor=3, angle_offset=0)
    tree = TreeBuilder().build(config, counter)
    first, second, third = tree.children(tree.root)

    assert first.location[0] == pytest.approx(60)
    assert first.location[1] == pytest.approx(0, abs=1e-9)
    assert second.location[0] == pytest.approx(-30)
    assert second.location[1] == pytest.approx(51.9615, abs=1e-4)
    assert third.location[0] == pytest.approx(-30)
    assert third.location[1] == pytest.approx(-51.9615, abs=1e-4)
    assert [c.offset_angle for c in (first, second, third)] == pytest.approx(
        [0, 2 * math.pi / 3, 4 * math.pi / 3])


def test_children_offset_accumulates_parent_angle(counter):
    config = FractalConfig(depth=2, branching_factor=2, angle_strategy=fixed_angles([0.1, 0.5]))
    tree = TreeBuilder().build(config, counter)
    for node in tree:
        for branch, child in enumerate(tree.children(node)):
            assert child.offset_angle == pytest.approx(node.offset_angle + [0.1, 0.5][branch])
            distance = node.scale * 1.5
            assert child.location[0] == pytest.approx(node.location[0] + distance * math.cos(child.offset_angle))
            assert child.location[1] == pytest.approx(node.location[1] + distance * math.sin(child.offset_angle))


def test_preorder_construction_and_color_order(numbers):
    config = FractalConfig(depth=2, branching_factor=2)
    tree = TreeBuilder().build(config, numbers)

    assert [node.parent_index for node in tree] == [None, 0, 1, 1, 0, 4, 4]
    assert [node.depth_level for node in tree] == [0, 1, 2, 2, 1, 2, 2]
    assert [node.color for node in tree] == list(range(7))
    assert [node.index for node in tree] == list(range(7))


def test_children_in_branch_order(small_config, counter):
    tree = TreeBuilder().build(small_config, counter)
    for node in tree:
        children = tree.children(node)
        assert all(child.parent_index == node.index for child in children)
        assert all(child.depth_level == node.depth_level + 1 for child in children)
        if node.depth_level < small_config.depth:
            assert len(children) == 3
        else:
            assert children == ()


def test_appearance_is_inherited(counter):
    config = FractalConfig(depth=3, hue=42, saturation=0.9, lightness=0.1, blur=2)
    tree = TreeBuilder().build(config, counter)
    assert {(n.hue, n.saturation, n.lightness, n.blur) for n in tree} == {(42, 0.9, 0.1, 2)}


def test_distance_uses_parent_scale():
    seen = []

    def distance(node):
        seen.append((node.index, node.scale))
        return 10.0

    config = FractalConfig(depth=2, branching_factor=2, distance_strategy=distance)
    tree = TreeBuilder().build(config, itertools.count())

    # one call per expanded node, before its children are created
    assert [index for index, _ in seen] == [0, 1, 4]
    assert seen[0][1] == 40
    assert seen[1][1] == pytest.approx(24)
    assert len(tree) == 7


def test_angle_strategy_receives_configured_offset():
    calls = []

    def angles(offset):
        calls.append(offset)
        return [offset, offset]

    config = FractalConfig(depth=2, branching_factor=2, angle_offset=0.3, init_offset_angle=1.0,
                           angle_strategy=angles)
    TreeBuilder().build(config, itertools.count())
    assert calls == [0.3] * 3


def test_determinism_with_fresh_palettes():
    config = FractalConfig(depth=4)
    first = TreeBuilder().build(config, default_palette(seed=11))
    second = TreeBuilder().build(config, default_palette(seed=11))

    assert len(first) == len(second)
    for a, b in zip(first, second):
        assert a == b


def test_reset_palette_reproduces_tree():
    config = FractalConfig(depth=3)
    palette = default_palette(seed=5)
    first = TreeBuilder().build(config, palette)
    palette.reset()
    second = TreeBuilder().build(config, palette)
    assert [n.color for n in first] == [n.color for n in second]


def test_color_source_exhaustion_aborts_build():
    builder = TreeBuilder()
    with pytest.raises(ColorSourceError):
        builder.build(FractalConfig(depth=2), CyclingColorSource(['a'], limit=5))


def test_iterator_exhaustion_becomes_color_source_error():
    with pytest.raises(ColorSourceError, match="exhausted"):
        TreeBuilder().build(FractalConfig(depth=2), iter(['a', 'b']))


def test_foreign_color_source_failure_is_wrapped():
    class Broken:
        def next(self):
            raise KeyError('palette')

    with pytest.raises(ColorSourceError) as excinfo:
        TreeBuilder().build(FractalConfig(depth=1), Broken())
    assert isinstance(excinfo.value.__cause__, KeyError)


def test_invalid_color_source_type():
    with pytest.raises(ColorSourceError):
        TreeBuilder().build(FractalConfig(depth=1), 42)


@pytest.mark.parametrize("bad_distance", [float('nan'), float('inf'), -1.0])
def test_bad_distance_raises_geometry_error(bad_distance, counter):
    config = FractalConfig(depth=2, distance_strategy=lambda node: bad_distance)
    with pytest.raises(GeometryError):
        TreeBuilder().build(config, counter)


def test_zero_distance_is_allowed(counter):
    config = FractalConfig(depth=1, distance_strategy=lambda node: 0)
    tree = TreeBuilder().build(config, counter)
    assert all(node.location == pytest.approx((0, 0)) for node in tree)


def test_failing_distance_strategy_is_wrapped(counter):
    config = FractalConfig(depth=1, distance_strategy=lambda node: 1 / 0)
    with pytest.raises(GeometryError) as excinfo:
        TreeBuilder().build(config, counter)
    assert isinstance(excinfo.value.__cause__, ZeroDivisionError)


def test_wrong_angle_count_raises_geometry_error(counter):
    config = FractalConfig(depth=1, branching_factor=4, angle_strategy=fixed_angles([0, 1, 2]))
    with pytest.raises(GeometryError, match="expected 4"):
        TreeBuilder().build(config, counter)


def test_non_finite_angle_raises_geometry_error(counter):
    config = FractalConfig(depth=1, branching_factor=2, angle_strategy=lambda offset: [0, float('nan')])
    with pytest.raises(GeometryError):
        TreeBuilder().build(config, counter)


def test_resource_cap_rejects_huge_tree_before_building(counter):
    config = FractalConfig(depth=50, branching_factor=10)
    with pytest.raises(ResourceLimitError):
        TreeBuilder().build(config, counter)
    assert counter.calls == 0


def test_custom_node_cap(counter):
    config = FractalConfig(depth=2, branching_factor=3, max_nodes=12)
    with pytest.raises(ResourceLimitError):
        TreeBuilder().build(config, counter)
    assert TreeBuilder().check_limits(config.replace(max_nodes=13)) == 13


def test_recursion_cap(counter):
    config = FractalConfig(depth=1001, branching_factor=1)
    with pytest.raises(ResourceLimitError, match="recursion cap"):
        TreeBuilder().build(config, counter)


def test_deep_chain_does_not_use_call_stack(counter):
    config = FractalConfig(depth=1000, branching_factor=1, scale_ratio=1)
    tree = TreeBuilder().build(config, counter)
    assert len(tree) == 1001
    assert tree[-1].depth_level == 1000
    assert len(tree.lineage(tree[-1])) == 1001


def test_errors_share_base_class():
    for error in (ColorSourceError, GeometryError, ResourceLimitError):
        assert issubclass(error, FractalError)


def test_iter_nodes_is_lazy(small_config, counter):
    nodes = TreeBuilder().iter_nodes(small_config, counter)
    first_three = list(itertools.islice(nodes, 3))
    assert [n.index for n in first_three] == [0, 1, 2]
    assert counter.calls == 3


def test_iter_nodes_restarts_from_root(small_config):
    builder = TreeBuilder()
    first = list(builder.iter_nodes(small_config, itertools.count()))
    second = list(builder.iter_nodes(small_config, itertools.count()))
    assert first == second
    assert first[0].is_root


def test_iter_nodes_checks_limits_immediately(counter):
    with pytest.raises(ResourceLimitError):
        TreeBuilder().iter_nodes(FractalConfig(depth=50, branching_factor=10), counter)


def test_single_argument_angle_strategy_builds(counter):
    config = FractalConfig(depth=1, angle_strategy=lambda offset: [offset, offset + 1, offset + 2])
    tree = TreeBuilder().build(config, counter)
    assert [child.offset_angle for child in tree.children(tree.root)] == pytest.approx([0, 1, 2])


def test_default_angles_use_branching_factor(counter):
    tree = TreeBuilder().build(FractalConfig(depth=1, branching_factor=4), counter)
    assert [child.offset_angle for child in tree.children(tree.root)] == pytest.approx(
        [0, math.pi / 2, math.pi, 3 * math.pi / 2])


@pytest.mark.parametrize("distance", ["5", True, None, [1.0], float('inf'), -1])
def test_out_of_contract_distance_raises_geometry_error(counter, distance):
    config = FractalConfig(depth=1, distance_strategy=lambda node: distance)
    with pytest.raises(GeometryError):
        TreeBuilder().build(config, counter)


def test_numpy_distance_is_accepted(counter):
    config = FractalConfig(depth=1, distance_strategy=lambda node: np.float64(2.5))
    tree = TreeBuilder().build(config, counter)
    assert tree[1].location == pytest.approx((2.5, 0))


@pytest.mark.parametrize("angles", [["0", 1, 2], [0, None, 2], [0, 1, False]])
def test_non_numeric_angle_raises_geometry_error(counter, angles):
    config = FractalConfig(depth=1, angle_strategy=lambda offset: angles)
    with pytest.raises(GeometryError):
        TreeBuilder().build(config, counter)
