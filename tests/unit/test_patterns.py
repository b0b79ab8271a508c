"""
Unit tests for pattern analysis.
"""

import pytest

from bitsentinel.analysis import compression, patterns
from bitsentinel.data.bitstring import BitString


class TestFindAllPatterns:
    """Sliding-window pattern frequency."""

    def test_alternating_pairs(self):
        matches = patterns.find_all_patterns("10101010", 2, 2)
        assert [(m.pattern, m.count, m.positions) for m in matches] == [
            ("10", 4, [0, 2, 4, 6]),
            ("01", 3, [1, 3, 5]),
        ]

    def test_ties_break_by_first_occurrence(self):
        assert [m.pattern for m in patterns.find_all_patterns("0011", 1, 1)] == ["0", "1"]
        assert [m.pattern for m in patterns.find_all_patterns("1100", 1, 1)] == ["1", "0"]

    def test_respects_window_and_min_count(self, random_bits):
        matches = patterns.find_all_patterns(random_bits, 5, 3)
        assert matches
        for m in matches:
            assert len(m.pattern) == 5
            assert m.count >= 3
            assert m.count == len(m.positions)
            assert m.positions == sorted(m.positions)
            assert all(random_bits.bits[p:p + 5] == m.pattern for p in m.positions)

    def test_counts_cover_every_window(self, random_bits):
        matches = patterns.find_all_patterns(random_bits, 7, 1)
        assert sum(m.count for m in matches) == len(random_bits) - 7 + 1

    def test_long_window_fallback(self):
        block = "1" + "0" * 69
        bits = block + block + "1"
        matches = patterns.find_all_patterns(bits, 70, 2)
        assert [(m.pattern, m.positions) for m in matches] == [
            (block, [0, 70]),
            ("0" * 69 + "1", [1, 71]),
        ]

    @pytest.mark.parametrize("window", [0, -1, 9])
    def test_degenerate_windows(self, window):
        assert patterns.find_all_patterns("10101010", window, 1) == []


def test_packed_codes_match_text(random_bits):
    text = random_bits.bits[:500]
    codes = patterns.packed_codes(text, 13)
    assert codes.size == 500 - 13 + 1
    assert [int(c) for c in codes[:50]] == [int(text[i:i + 13], 2) for i in range(50)]
    assert patterns.packed_codes("1011", 2).tolist() == [2, 1, 3]


def test_packed_codes_rejects_oversized_window():
    with pytest.raises(ValueError):
        patterns.packed_codes("1011", 64)


def test_pattern_frequency_and_chunks():
    assert patterns.pattern_frequency("0110", 2) == {"01": 1, "11": 1, "10": 1}
    assert patterns.chunk_distribution("00011011", 2) == {"00": 1, "01": 1, "10": 1, "11": 1}
    assert patterns.chunk_distribution("000", 2) == {"00": 1}
    assert patterns.chunk_distribution("0", 2) == {}


def test_unique_ngrams_and_diversity():
    assert patterns.unique_ngrams("0000", 2) == 1
    assert patterns.pattern_diversity("0000", 2) == pytest.approx(1 / 3)
    assert patterns.pattern_diversity("01", 8) == 0.0


class TestLongestRepeatedSubstring:
    def test_overlapping_occurrences(self):
        match = patterns.find_longest_repeated_substring("0110110")
        assert match.pattern == "0110"
        assert match.positions == [0, 3]

    def test_no_repeat(self):
        assert patterns.find_longest_repeated_substring("01") is None
        assert patterns.find_longest_repeated_substring("") is None

    def test_length_cap(self):
        match = patterns.find_longest_repeated_substring("0" * 100, max_len=10)
        assert match.pattern == "0" * 10


def test_transition_matrix():
    assert patterns.transition_matrix("0110") == {"00": 0, "01": 1, "10": 1, "11": 1}
    assert patterns.transition_matrix("1") == {"00": 0, "01": 0, "10": 0, "11": 0}


def test_search_sequence():
    result = patterns.search_sequence("1010100", "101")
    assert result.positions == [0, 2]
    assert result.count == 2
    assert result.mean_distance == pytest.approx(2.0)
    assert result.variance_distance == pytest.approx(0.0)
    assert patterns.search_sequence("1010", "").count == 0


def test_lz_phrase_count():
    assert patterns.lz_phrase_count("0101") == 3
    assert patterns.lz_phrase_count("0000") == 3
    assert patterns.lz_phrase_count("") == 0


def test_lz_parse_is_shared_between_callers(random_bits):
    patterns._lz78_phrases.cache_clear()
    first = patterns.lz_phrase_count(random_bits)
    compression.lz_ratio(random_bits)
    assert patterns.lz_phrase_count(random_bits.bits) == first
    info = patterns._lz78_phrases.cache_info()
    assert info.misses == 1
    assert info.hits == 2


def test_accepts_bitstring_instances():
    b = BitString("10101010")
    assert patterns.find_all_patterns(b, 2) == patterns.find_all_patterns(b.bits, 2)
