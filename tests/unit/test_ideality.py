"""
Unit tests for ideality scoring.
"""

import pytest

from bitsentinel.analysis import ideality


def test_alternating_scenario():
    result = ideality.calculate_ideality("10101010", 2, 0, 7)
    assert result.ideality_percentage == pytest.approx(100.0)
    assert result.repeating_count == 8
    assert result.total_bits == 8
    assert result.ideal_bit_indices == list(range(8))


@pytest.mark.parametrize("block,repeats", [("1", 2), ("011", 3), ("11010010", 5)])
def test_exact_repetition_scores_100(block, repeats):
    bits = block * repeats
    result = ideality.calculate_ideality(bits, len(block), 0, len(bits) - 1)
    assert result.ideality_percentage == pytest.approx(100.0)


def test_random_input_scores_near_zero(random_bits):
    result = ideality.calculate_ideality(random_bits, 8, 0, len(random_bits) - 1)
    assert result.ideality_percentage < 5.0


def test_single_bit_window_on_random_input(random_bits):
    # neighbour match chance is 1/2 per side
    result = ideality.calculate_ideality(random_bits, 1)
    assert 70.0 < result.ideality_percentage < 80.0


def test_only_adjacent_equal_chunks_count():
    # chunks: 00 11 11 01 -> the middle pair repeats
    result = ideality.calculate_ideality("00111101", 2)
    assert result.repeating_count == 4
    assert result.ideal_bit_indices == [2, 3, 4, 5]
    assert result.ideality_percentage == pytest.approx(50.0)


def test_trailing_partial_chunk_counts_toward_total():
    result = ideality.calculate_ideality("0101010", 2)
    assert result.total_bits == 7
    assert result.repeating_count == 6


def test_offset_range_reports_global_indices():
    result = ideality.calculate_ideality("11" + "0101", 2, 2, 5)
    assert result.ideal_bit_indices == [2, 3, 4, 5]


@pytest.mark.parametrize(
    "window,start,end",
    [(2, 5, 5), (2, 6, 3), (0, 0, 7), (-3, 0, 7)],
)
def test_degenerate_requests_are_zeroed(window, start, end):
    result = ideality.calculate_ideality("10101010", window, start, end)
    assert result.ideality_percentage == 0.0
    assert result.repeating_count == 0
    assert result.ideal_bit_indices == []


def test_end_is_clamped():
    result = ideality.calculate_ideality("1010", 2, 0, 100)
    assert result.total_bits == 4
    assert result.ideality_percentage == pytest.approx(100.0)


def test_all_idealities_follow_catalog():
    results = ideality.calculate_all_idealities("10" * 64)
    sizes = [r.window_size for r in results]
    assert sizes == [1, 2, 3, 4, 6, 8, 12, 16, 24, 32, 48, 64]
    by_size = {r.window_size: r for r in results}
    assert by_size[2].ideality_percentage == pytest.approx(100.0)
    assert by_size[1].ideality_percentage == 0.0


def test_all_idealities_custom_sizes():
    results = ideality.calculate_all_idealities("0000", window_sizes=[2, 1, 2])
    assert [r.window_size for r in results] == [1, 2]


def test_top_windows_order():
    top = ideality.top_ideality_windows("10" * 64, top_n=3)
    assert len(top) == 3
    assert top[0].window_size == 2
    assert top[0].ideality_percentage >= top[1].ideality_percentage >= top[2].ideality_percentage
