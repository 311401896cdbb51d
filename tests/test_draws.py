"""
Tests for draw validation, dates and range helpers
"""
import random
from datetime import datetime

import pytest

import config
from draws import (
    InvalidDrawError, bucket_index, clean_history, generate_random_numbers, get_predicted_numbers, parse_draw_date,
    range_buckets, similarity, sort_draws_by_date, validate_draw, validate_numbers,
)
from conftest import TZ, make_draw


class TestValidation:
    def test_valid(self):
        assert validate_numbers([1, 20, 45, 67, 90], 90)

    @pytest.mark.parametrize('numbers', [
        [1, 2, 3, 4],
        [1, 2, 3, 4, 4],
        [0, 2, 3, 4, 5],
        [1, 2, 3, 4, 91],
        [1, 2, 3, 4, 5.0],
        None,
    ])
    def test_invalid(self, numbers):
        assert not validate_numbers(numbers, 90)

    def test_range_is_explicit(self):
        assert validate_numbers([1, 2, 3, 4, 95], 99)
        assert not validate_numbers([1, 2, 3, 4, 95], 90)

    def test_validate_draw_checks_prediction(self):
        validate_draw(make_draw([1, 2, 3, 4, 5], predicted_numbers=[6, 7, 8, 9, 10]), 90)
        with pytest.raises(InvalidDrawError):
            validate_draw(make_draw([1, 2, 3, 4, 5], predicted_numbers=[6, 6, 8, 9, 10]), 90)
        with pytest.raises(InvalidDrawError):
            validate_draw(make_draw([1, 2, 3, 4]), 90)

    def test_clean_history(self):
        good = make_draw([1, 2, 3, 4, 5])
        bad = make_draw([1, 2, 3, 4, 500])
        assert clean_history([good, bad, good], 90) == [good, good]

    def test_predicted_numbers(self):
        assert get_predicted_numbers(make_draw([1, 2, 3, 4, 5], predicted_numbers=(6, 7, 8, 9, 10)), 90) == [6, 7, 8, 9, 10]
        assert get_predicted_numbers(make_draw([1, 2, 3, 4, 5]), 90) is None
        assert get_predicted_numbers(make_draw([1, 2, 3, 4, 5], predicted_numbers=[6, 6, 8, 9, 10]), 90) is None
        assert get_predicted_numbers(make_draw([1, 2, 3, 4, 5], predicted_numbers=[6, 7, 8, 9, 95]), 90) is None
        assert get_predicted_numbers(make_draw([1, 2, 3, 4, 5], predicted_numbers=[6, 7, 8, 9, 95]), 99) == [6, 7, 8, 9, 95]


class TestRandomNumbers:
    def test_structure(self):
        rng = random.Random(0)
        for _ in range(50):
            numbers = generate_random_numbers(5, 90, rng)
            assert validate_numbers(numbers, 90)
            assert numbers == sorted(numbers)


class TestDates:
    def test_iso_with_zulu(self):
        parsed = parse_draw_date('2024-05-18T19:00:00.000Z', TZ)
        assert parsed.utcoffset().total_seconds() == 0
        assert parsed.hour == 19

    def test_dotted(self):
        parsed = parse_draw_date('2024.05.18', TZ)
        assert (parsed.year, parsed.month, parsed.day) == (2024, 5, 18)
        assert parsed.tzinfo is not None

    def test_naive_datetime_localized(self):
        parsed = parse_draw_date(datetime(2024, 1, 6, 20, 0), TZ)
        assert parsed.utcoffset().total_seconds() == 3600

    def test_garbage(self):
        assert parse_draw_date('yesterday', TZ) is None
        assert parse_draw_date(None, TZ) is None

    def test_sort_newest_first(self):
        draws = [
            {'id': 'a', 'numbers': [1, 2, 3, 4, 5], 'date': '2024.01.01'},
            {'id': 'b', 'numbers': [1, 2, 3, 4, 5], 'date': '2024-03-01T10:00:00+01:00'},
            {'id': 'c', 'numbers': [1, 2, 3, 4, 5], 'date': 'bad'},
            {'id': 'd', 'numbers': [1, 2, 3, 4, 5], 'date': '2024-02-01'},
        ]
        assert [d['id'] for d in sort_draws_by_date(draws, TZ)] == ['b', 'd', 'a', 'c']


class TestRanges:
    def test_legacy_buckets(self):
        assert range_buckets(99) == [(1, 20), (21, 40), (41, 60), (61, 80), (81, 99)]

    def test_ninety_buckets(self):
        assert range_buckets(90) == [(1, 18), (19, 36), (37, 54), (55, 72), (73, 90)]

    def test_bucket_index(self):
        buckets = range_buckets(90)
        assert bucket_index(1, buckets) == 0
        assert bucket_index(90, buckets) == 4
        assert bucket_index(91, buckets) == -1

    def test_scale_is_identity_on_legacy_range(self):
        assert config.scale_int(30, 99) == 30
        assert config.scale_int(70, 99) == 70
        assert config.scale_int(30, 90) == 27


def test_similarity():
    assert similarity([1, 2, 3, 4, 5], [1, 2, 3, 4, 5]) == 1.0
    assert similarity([1, 2, 3, 4, 5], [1, 2, 3, 9, 10]) == pytest.approx(0.6)
    assert similarity([1, 2, 3, 4, 5], [6, 7, 8, 9, 10]) == 0.0


def test_setup_logging_accepts_file(tmp_path):
    config.setup_logging(level='DEBUG', log_file=str(tmp_path / 'engine.log'))
    assert config.now().tzinfo is not None
