#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Draw record helpers

History rows are plain dicts:
    {'id': '...', 'numbers': [5 ints], 'date': ISO string or datetime,
     'predicted_numbers': [5 ints] (optional),
     'manipulation_score': {'score', 'confidence', 'patterns'} (optional)}
"""

import math
import random
import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple

import config

logger = logging.getLogger(__name__)


class InvalidDrawError(ValueError):
    """Raised when a draw violates the 5-distinct-numbers-in-range rule"""


def validate_numbers(numbers, max_number: int = None) -> bool:
    """Check for exactly 5 distinct integers within 1..max_number"""
    max_number = max_number or config.MAX_NUMBER
    if not isinstance(numbers, (list, tuple)) or len(numbers) != config.NUMBERS_PER_DRAW:
        return False
    for num in numbers:
        if isinstance(num, bool) or not isinstance(num, int):
            return False
        if num < 1 or num > max_number:
            return False
    return len(set(numbers)) == config.NUMBERS_PER_DRAW


def validate_draw(draw: Dict, max_number: int = None):
    """Raise InvalidDrawError if the draw (or its prediction) is malformed"""
    numbers = draw.get('numbers')
    if not validate_numbers(numbers, max_number):
        raise InvalidDrawError(f"Invalid numbers in draw {draw.get('id')}: {numbers}")

    predicted = draw.get('predicted_numbers')
    if predicted is not None and not validate_numbers(predicted, max_number):
        raise InvalidDrawError(f"Invalid predicted numbers in draw {draw.get('id')}: {predicted}")


def clean_history(history: List[Dict], max_number: int = None) -> List[Dict]:
    """Drop rows whose numbers are malformed, keeping order"""
    valid = []
    for draw in history or []:
        if validate_numbers(draw.get('numbers'), max_number):
            valid.append(draw)
        else:
            logger.warning(f"Skipping malformed draw {draw.get('id')}: {draw.get('numbers')}")
    return valid


def generate_random_numbers(count: int = 5, max_number: int = None, rng: random.Random = None) -> List[int]:
    """Uniform random sorted sample of distinct numbers"""
    max_number = max_number or config.MAX_NUMBER
    rng = rng or random
    return sorted(rng.sample(range(1, max_number + 1), count))


def parse_draw_date(value, tz=None) -> Optional[datetime]:
    """Parse a draw date into an aware datetime

    Accepts datetime objects, ISO-8601 strings (a trailing 'Z' is allowed)
    and the dotted 'YYYY.MM.DD' form. Returns None if unparseable.
    """
    tz = tz or config.get_timezone()

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip().rstrip('.')
        if '.' in text and '-' not in text:
            text = text.replace('.', '-')
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = tz.localize(parsed)
    return parsed


def sort_draws_by_date(draws: List[Dict], tz=None) -> List[Dict]:
    """Newest-first copy; undated rows go last"""
    epoch = config.get_timezone('UTC').localize(datetime(1970, 1, 1))
    return sorted(
        draws,
        key=lambda d: parse_draw_date(d.get('date'), tz) or epoch,
        reverse=True
    )


def get_predicted_numbers(draw: Dict, max_number: int = None) -> Optional[List[int]]:
    """The stored prediction of a draw, or None when missing or malformed"""
    predicted = draw.get('predicted_numbers')
    if validate_numbers(predicted, max_number):
        return list(predicted)
    return None


def range_buckets(max_number: int = None) -> List[Tuple[int, int]]:
    """Five contiguous buckets covering 1..max_number (1-20 ... 81-99 for 99)"""
    max_number = max_number or config.MAX_NUMBER
    width = math.ceil(max_number / 5)
    buckets = []
    for i in range(5):
        low = i * width + 1
        high = max_number if i == 4 else (i + 1) * width
        buckets.append((low, high))
    return buckets


def bucket_label(bucket: Tuple[int, int]) -> str:
    return f"{bucket[0]}-{bucket[1]}"


def bucket_index(num: int, buckets: List[Tuple[int, int]]) -> int:
    for idx, (low, high) in enumerate(buckets):
        if low <= num <= high:
            return idx
    return -1


def has_consecutive(numbers) -> bool:
    ordered = sorted(numbers)
    return any(ordered[i] - ordered[i - 1] == 1 for i in range(1, len(ordered)))


def min_spacing(numbers) -> int:
    ordered = sorted(numbers)
    if len(ordered) < 2:
        return 0
    return min(ordered[i] - ordered[i - 1] for i in range(1, len(ordered)))


def similarity(set1, set2) -> float:
    """Share of matching numbers (5 matches = 1.0, 3 matches = 0.6)"""
    return len(set(set1) & set(set2)) / config.NUMBERS_PER_DRAW
