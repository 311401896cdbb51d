#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Manipulation detection and behavioral profiling

Scores how "hand-picked" a selection looks and summarizes the habits of
whoever produced a history of selections.

Manipulation score weights (100% total):
   - Runs test (15%)
   - Chi-square uniformity (20%)
   - Serial correlation (15%)
   - Consecutive avoidance (12%)
   - Spread preference (10%)
   - Middle range preference (10%)
   - Digit ending preference (10%)
   - Visual pattern (8%)
"""

import math
import logging
from collections import Counter
from typing import Dict, List

import config
import statistical_tests as st
from draws import range_buckets, bucket_label, bucket_index, has_consecutive, min_spacing

logger = logging.getLogger(__name__)

MANIPULATION_WEIGHTS = {
    'runs_test': 0.15,
    'chi_square': 0.20,
    'serial_correlation': 0.15,
    'consecutive_avoidance': 0.12,
    'spread_preference': 0.10,
    'middle_range_preference': 0.10,
    'digit_ending_preference': 0.10,
    'visual_pattern': 0.08,
}

PATTERN_LABELS = {
    'runs_test': "Non-random odd/even or high/low patterns",
    'chi_square': "Non-uniform number distribution",
    'serial_correlation': "Consecutive draws show patterns",
    'consecutive_avoidance': "Avoids consecutive numbers",
    'spread_preference': "Prefers spread-out numbers",
    'middle_range_preference': "Prefers middle-range numbers",
    'digit_ending_preference': "Digit-ending preferences detected",
    'visual_pattern': "Visual/aesthetic patterns detected",
}

PATTERN_THRESHOLD = 30

# Runs test needs this much history before it contributes
RUNS_TEST_MIN_HISTORY = 3

# Serial correlation only looks at the newest draws
SERIAL_CORRELATION_WINDOW = 20

FAVORITE_NUMBERS_LIMIT = 20
STRATEGY_SHARE = 0.6


def empty_profile() -> Dict:
    return {
        'favorite_ranges': {},
        'favorite_numbers': {},
        'digit_ending_preferences': {},
        'compensation_patterns': {
            'after_low': [],
            'after_high': [],
            'after_consecutive': [],
        },
        'randomness_strategy': {
            'avoids_consecutive': False,
            'prefers_spread': False,
            'prefers_middle_range': False,
        },
    }


def _average(numbers) -> float:
    return sum(numbers) / len(numbers)


def build_user_profile(history: List[Dict], max_number: int = None) -> Dict:
    """Build a preference profile from newest-first history

    All fractions are counts divided by the total number of picks
    (len(history) * 5).
    """
    profile = empty_profile()
    if not history:
        return profile

    max_number = max_number or config.MAX_NUMBER
    buckets = range_buckets(max_number)
    middle_min = config.scale_int(30, max_number)
    middle_max = config.scale_int(70, max_number)
    low_avg = config.scale(30, max_number)
    high_avg = config.scale(70, max_number)

    range_counts = Counter()
    number_counts = Counter()
    ending_counts = Counter()

    avoids_consecutive = 0
    prefers_spread = 0
    prefers_middle = 0

    compensation = profile['compensation_patterns']

    for idx, draw in enumerate(history):
        numbers = draw['numbers']
        for num in numbers:
            number_counts[num] += 1
            bucket = bucket_index(num, buckets)
            if bucket >= 0:
                range_counts[bucket] += 1
            ending_counts[num % 10] += 1

        if not has_consecutive(numbers):
            avoids_consecutive += 1
        if min_spacing(numbers) > 15:
            prefers_spread += 1
        if sum(1 for n in numbers if middle_min <= n <= middle_max) >= 3:
            prefers_middle += 1

        # What did the next selection look like after a given shape?
        if idx > 0:
            prev_numbers = history[idx - 1]['numbers']
            prev_avg = _average(prev_numbers)
            if prev_avg < low_avg:
                compensation['after_low'].extend(numbers)
            elif prev_avg > high_avg:
                compensation['after_high'].extend(numbers)
            if has_consecutive(prev_numbers):
                compensation['after_consecutive'].extend(numbers)

    total = len(history) * config.NUMBERS_PER_DRAW

    for idx, bucket in enumerate(buckets):
        profile['favorite_ranges'][bucket_label(bucket)] = range_counts[idx] / total

    top_numbers = sorted(number_counts.items(), key=lambda x: (-x[1], x[0]))[:FAVORITE_NUMBERS_LIMIT]
    for num, count in top_numbers:
        profile['favorite_numbers'][num] = count / total

    for ending in range(10):
        profile['digit_ending_preferences'][ending] = ending_counts[ending] / total

    threshold = len(history) * STRATEGY_SHARE
    strategy = profile['randomness_strategy']
    strategy['avoids_consecutive'] = avoids_consecutive > threshold
    strategy['prefers_spread'] = prefers_spread > threshold
    strategy['prefers_middle_range'] = prefers_middle > threshold

    return profile


def calculate_manipulation_score(draw: Dict, history: List[Dict], max_number: int = None) -> Dict:
    """Score one selection for non-randomness given newest-first history

    History-wide tests contribute 0 until enough draws exist. Never raises for
    well-formed input.
    """
    max_number = max_number or config.MAX_NUMBER
    numbers = list(draw['numbers'])
    history = history or []

    if len(history) >= RUNS_TEST_MIN_HISTORY:
        runs_score = st.runs_test(numbers, max_number)
    else:
        runs_score = 0.0

    details = {
        'runs_test': runs_score,
        'chi_square': st.chi_square_test(history, max_number),
        'serial_correlation': st.serial_correlation_test(
            history[:SERIAL_CORRELATION_WINDOW], max_number
        ),
        'consecutive_avoidance': st.consecutive_avoidance(numbers),
        'spread_preference': st.spread_preference(numbers),
        'middle_range_preference': st.middle_range_preference(numbers, max_number),
        'digit_ending_preference': st.digit_ending_preference(numbers, history),
        'visual_pattern': st.visual_pattern_score(numbers),
    }

    patterns = [PATTERN_LABELS[name] for name, value in details.items() if value > PATTERN_THRESHOLD]

    weighted = sum(details[name] * weight for name, weight in MANIPULATION_WEIGHTS.items())
    score = int(math.floor(min(100.0, weighted) + 0.5))
    confidence = min(100, 30 + len(history) * 5)

    logger.debug(f"Manipulation score {score} (confidence {confidence}) for {numbers}: {patterns}")

    return {
        'score': score,
        'confidence': confidence,
        'patterns': patterns,
        'details': details,
    }


def summarize_score(result: Dict) -> Dict:
    """The part of a manipulation score stored alongside a draw"""
    return {
        'score': result['score'],
        'confidence': result['confidence'],
        'patterns': list(result['patterns']),
    }
