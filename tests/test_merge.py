"""
Unit tests for the Box type and box merging.
"""

import itertools

import pytest
from flawdetect.core import Box, merge
from flawdetect.core.merge import union, intersects


class TestBox:

    def test_area_derived(self):
        assert Box(1, 2, 3, 4).area == 12

    def test_area_supplied(self):
        assert Box(0, 0, 10, 10, 77).area == 77

    def test_tuple_order(self):
        box = Box.from_tuple((5, 6, 7, 8, 56))
        assert box.as_tuple() == (5, 6, 7, 8, 56)
        assert Box.from_tuple((5, 6, 7, 8)).area == 56

    def test_from_stats_ignores_pixel_count(self):
        assert Box.from_stats([3, 4, 10, 20, 150]).area == 200

    def test_rect_is_half_open(self):
        assert Box(10, 20, 5, 6).rect == (10, 20, 15, 26)

    def test_negative_size_rejected(self):
        with pytest.raises(ValueError):
            Box(0, 0, -1, 5)

    def test_touching_edges_do_not_intersect(self):
        a = Box(0, 0, 10, 10)
        b = Box(10, 0, 10, 10)
        assert not a.intersects(b)
        assert not intersects(b, a)

    def test_overlap_intersects(self):
        assert Box(0, 0, 10, 10).intersects(Box(9, 9, 10, 10))

    def test_union_commutative_and_minimal(self):
        a = Box(0, 0, 20, 20)
        b = Box(15, 15, 20, 20)
        u = union(a, b)

        assert u == union(b, a)
        assert u.as_tuple() == (0, 0, 35, 35, 1225)
        assert u.contains(a) and u.contains(b)

    def test_to_dict(self):
        assert Box(1, 2, 3, 4).to_dict() == {"x": 1, "y": 2, "w": 3, "h": 4, "area": 12}


class TestMerge:

    @pytest.fixture
    def box_lists(self):
        return [
            [],
            [Box(0, 0, 10, 10)],
            [Box(0, 0, 20, 20), Box(15, 15, 20, 20), Box(100, 100, 10, 10)],
            [Box(0, 0, 10, 10), Box(8, 0, 10, 10), Box(16, 0, 10, 10), Box(200, 200, 5, 5)],
            [Box(50, 50, 5, 5), Box(0, 0, 10, 10), Box(100, 100, 10, 10), Box(5, 5, 100, 100)],
            [Box(0, 0, 10, 10), Box(10, 0, 10, 10), Box(0, 10, 10, 10)],
        ]

    def test_scenario(self):
        boxes = [Box(0, 0, 20, 20), Box(15, 15, 20, 20), Box(100, 100, 10, 10)]
        assert merge(boxes) == [Box(0, 0, 35, 35), Box(100, 100, 10, 10)]

    def test_input_not_modified(self):
        boxes = [Box(0, 0, 20, 20), Box(15, 15, 20, 20)]
        merge(boxes)
        assert len(boxes) == 2

    def test_idempotent(self, box_lists):
        for boxes in box_lists:
            once = merge(boxes)
            assert merge(once) == once

    def test_output_pairwise_disjoint(self, box_lists):
        for boxes in box_lists:
            merged = merge(boxes)
            assert len(merged) <= len(boxes)
            for a, b in itertools.combinations(merged, 2):
                assert not a.intersects(b)

    def test_chain_collapses(self):
        boxes = [Box(0, 0, 10, 10), Box(8, 0, 10, 10), Box(16, 0, 10, 10)]
        assert merge(boxes) == [Box(0, 0, 26, 10)]

    def test_union_takes_lower_index_position(self):
        far = Box(200, 200, 5, 5)
        boxes = [far, Box(0, 0, 10, 10), Box(5, 5, 10, 10)]
        assert merge(boxes) == [far, Box(0, 0, 15, 15)]

    def test_first_pair_wins(self):
        # (0, 1) is merged before (1, 2); the union then absorbs box 2
        boxes = [Box(0, 0, 10, 10), Box(5, 0, 10, 10), Box(12, 0, 10, 10), Box(300, 0, 5, 5)]
        assert merge(boxes) == [Box(0, 0, 22, 10), Box(300, 0, 5, 5)]

    def test_disjoint_order_preserved(self):
        boxes = [Box(100, 0, 5, 5), Box(0, 0, 5, 5), Box(50, 0, 5, 5)]
        assert merge(boxes) == boxes

    def test_max_passes(self):
        boxes = [Box(0, 0, 10, 10), Box(8, 0, 10, 10), Box(16, 0, 10, 10)]
        assert merge(boxes, max_passes=1) == [Box(0, 0, 18, 10), Box(16, 0, 10, 10)]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
