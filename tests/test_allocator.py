"""Tests for code rendering and sequence probing."""
from datetime import date
from types import SimpleNamespace

import pytest

from django_barcodes import allocator
from django_barcodes.exceptions import SequenceExhaustedError


def make_config(pattern='{PREFIX}{SEQ8}', prefix='JEU', current_sequence=0):
    return SimpleNamespace(
        module='game',
        pattern=pattern,
        prefix=prefix,
        current_sequence=current_sequence,
    )


class TestRender:
    """Test suite for render()."""

    def test_prefix_and_sequence(self):
        """Default pattern pads the sequence to 8 digits."""
        assert allocator.render('{PREFIX}{SEQ8}', 1, 'JEU') == 'JEU00000001'

    def test_date_tokens_padded(self):
        """YEAR4, MONTH2 and DAY2 are zero-padded."""
        code = allocator.render('{PREFIX}{YEAR4}{MONTH2}{DAY2}-{SEQ4}', 7, 'LIV', date(2026, 3, 5))
        assert code == 'LIV20260305-0007'

    def test_date_tokens_short(self):
        """YEAR2, MONTH and DAY drop leading digits."""
        assert allocator.render('{YEAR2}/{MONTH}/{DAY}', 1, 'X', date(2026, 3, 5)) == '26/3/5'

    def test_all_sequence_widths(self):
        """SEQ4, SEQ6 and SEQ10 pad to their width."""
        assert allocator.render('{SEQ4}', 42, '') == '0042'
        assert allocator.render('{SEQ6}', 42, '') == '000042'
        assert allocator.render('{SEQ10}', 42, '') == '0000000042'

    def test_unknown_token_kept_literally(self):
        """Unknown tokens pass through unchanged."""
        assert allocator.render('{PREFIX}{FOO}{SEQ4}', 1, 'JEU') == 'JEU{FOO}0001'

    def test_repeated_token_replaced_everywhere(self):
        """A token used twice is substituted twice."""
        assert allocator.render('{PREFIX}-{SEQ4}-{PREFIX}', 3, 'DSQ') == 'DSQ-0003-DSQ'

    def test_sequence_wider_than_token_not_truncated(self):
        """zfill never cuts a longer number."""
        assert allocator.render('{SEQ4}', 12345, '') == '12345'


class TestSequenceCapacity:

    def test_capacity_of_narrowest_seq_token(self):
        assert allocator.sequence_capacity('{PREFIX}{SEQ4}') == 9999
        assert allocator.sequence_capacity('{SEQ8}{SEQ6}') == 999999

    def test_no_seq_token(self):
        assert allocator.sequence_capacity('{PREFIX}{YEAR4}') is None


class TestCurrentPeriod:
    """Test suite for current_period()."""

    def test_periods(self):
        """Each policy yields its marker."""
        when = date(2026, 10, 19)
        assert allocator.current_period('yearly', when) == '2026'
        assert allocator.current_period('monthly', when) == '202610'
        assert allocator.current_period('daily', when) == '20261019'

    def test_never_has_no_period(self):
        assert allocator.current_period('never', date(2026, 10, 19)) is None


class TestFindNextAvailable:
    """Test suite for find_next_available()."""

    def test_starts_after_current_sequence(self):
        """First candidate is current_sequence + 1."""
        config = make_config(current_sequence=41)
        assert allocator.find_next_available(config, lambda code: False) == 42

    def test_skips_taken_codes(self):
        """Taken candidates are skipped."""
        taken = {'JEU00000001', 'JEU00000002'}
        assert allocator.find_next_available(make_config(), taken.__contains__) == 3

    def test_bounded_collision_budget(self):
        """Endless collisions end in SequenceExhaustedError."""
        with pytest.raises(SequenceExhaustedError):
            allocator.find_next_available(make_config(), lambda code: True, max_attempts=5)

    def test_pattern_overflow(self):
        """A sequence beyond the SEQ width is exhausted."""
        config = make_config(pattern='{PREFIX}{SEQ4}', current_sequence=9999)
        with pytest.raises(SequenceExhaustedError):
            allocator.find_next_available(config, lambda code: False)


class TestAllocate:
    """Test suite for allocate()."""

    def test_collects_free_sequences(self):
        """Taken codes are skipped and the rest returned in order."""
        taken = {'JEU00000002', 'JEU00000004'}
        result = allocator.allocate(make_config(), 3, lambda codes: taken & set(codes))
        assert result == [(1, 'JEU00000001'), (3, 'JEU00000003'), (5, 'JEU00000005')]

    def test_probes_in_batches(self):
        """Large quantities take several batched lookups."""
        calls = []

        def taken_among(codes):
            calls.append(len(codes))
            return set()

        result = allocator.allocate(make_config(), 250, taken_among)

        assert [sequence for sequence, _ in result] == list(range(1, 251))
        assert len(calls) == 2

    def test_duplicate_renders_exhaust(self):
        """A pattern without SEQ renders one code only."""
        config = make_config(pattern='{PREFIX}')
        with pytest.raises(SequenceExhaustedError):
            allocator.allocate(config, 2, lambda codes: set(), max_attempts=3)

    def test_capacity_reached_mid_lot(self):
        """Running out of width aborts the whole allocation."""
        config = make_config(pattern='{PREFIX}{SEQ4}', current_sequence=9998)
        with pytest.raises(SequenceExhaustedError) as exc_info:
            allocator.allocate(config, 2, lambda codes: set())
        assert exc_info.value.sequence == 10000
