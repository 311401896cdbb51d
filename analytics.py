#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
History analytics and the analytics-driven predictor

build_analytics() produces a display snapshot (hot/cold numbers, pairs,
ranges, odd/even, sums, digit endings, recent trends). predict_from_analytics()
turns a snapshot into a 5-number prediction without the full number scorer.
"""

import math
import random
import logging
from typing import Dict, List
from collections import Counter

import config
from draws import (
    clean_history, range_buckets, bucket_label, bucket_index, has_consecutive,
    generate_random_numbers, validate_numbers,
)
from prediction_engine import weighted_sample, CANDIDATE_POOL_SIZE

logger = logging.getLogger(__name__)

HOT_COLD_LIMIT = 20
PAIR_LIMIT = 20
TREND_LIMIT = 15

ANALYTICS_ITERATIONS = 50


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _ranked_counts(counter: Counter, limit: int) -> List[Dict]:
    ranked = sorted(counter.items(), key=lambda x: (-x[1], x[0]))[:limit]
    return [{'number': num, 'count': count} for num, count in ranked]


def empty_analytics(max_number: int = None) -> Dict:
    return {
        'max_number': max_number or config.MAX_NUMBER,
        'total_draws': 0,
        'hot_numbers': [],
        'cold_numbers': [],
        'most_common_pairs': [],
        'number_frequency': {},
        'range_distribution': [],
        'odd_even_distribution': [],
        'sum_distribution': {'min': 0, 'max': 0, 'average': 0, 'most_common': 0},
        'digit_ending_distribution': [],
        'recent_trends': {'last_10': [], 'last_30': []},
        'consecutive_patterns': {'has_consecutive': 0, 'no_consecutive': 0, 'percentage': 0},
    }


def build_analytics(history: List[Dict], max_number: int = None) -> Dict:
    """Aggregate statistics over all of a newest-first history"""
    max_number = max_number or config.MAX_NUMBER
    history = clean_history(history, max_number)
    if not history:
        return empty_analytics(max_number)

    buckets = range_buckets(max_number)
    frequency = Counter({num: 0 for num in range(1, max_number + 1)})
    pairs = Counter()
    range_counts = [0] * len(buckets)
    ending_counts = Counter({ending: 0 for ending in range(10)})
    odd = even = 0
    sums = []
    with_consecutive = 0

    for draw in history:
        numbers = draw['numbers']
        for num in numbers:
            frequency[num] += 1
            range_counts[bucket_index(num, buckets)] += 1
            ending_counts[num % 10] += 1
            if num % 2 == 0:
                even += 1
            else:
                odd += 1

        ordered = sorted(numbers)
        for i in range(len(ordered)):
            for j in range(i + 1, len(ordered)):
                pairs[(ordered[i], ordered[j])] += 1

        sums.append(sum(numbers))
        if has_consecutive(numbers):
            with_consecutive += 1

    total_numbers = len(history) * config.NUMBERS_PER_DRAW

    def pct(count):
        return count / total_numbers * 100

    ranked = sorted(frequency.items(), key=lambda x: (-x[1], x[0]))
    hot = [{'number': n, 'count': c, 'percentage': pct(c)} for n, c in ranked[:HOT_COLD_LIMIT]]

    appeared = sorted(((n, c) for n, c in frequency.items() if c > 0), key=lambda x: (x[1], x[0]))
    cold = [{'number': n, 'count': c, 'percentage': pct(c)} for n, c in appeared[:HOT_COLD_LIMIT]]

    sum_counts = Counter(sums)
    most_common_sum = sorted(sum_counts.items(), key=lambda x: (-x[1], x[0]))[0][0]

    recent_10 = Counter(num for draw in history[:10] for num in draw['numbers'])
    recent_30 = Counter(num for draw in history[:30] for num in draw['numbers'])

    snapshot = {
        'max_number': max_number,
        'total_draws': len(history),
        'hot_numbers': hot,
        'cold_numbers': cold,
        'most_common_pairs': [
            {'pair': pair, 'count': count} for pair, count in pairs.most_common(PAIR_LIMIT)
        ],
        'number_frequency': dict(frequency),
        'range_distribution': [
            {'range': bucket_label(bucket), 'count': range_counts[idx], 'percentage': pct(range_counts[idx])}
            for idx, bucket in enumerate(buckets)
        ],
        'odd_even_distribution': [
            {'type': 'Odd', 'count': odd, 'percentage': pct(odd)},
            {'type': 'Even', 'count': even, 'percentage': pct(even)},
        ],
        'sum_distribution': {
            'min': min(sums),
            'max': max(sums),
            'average': _round_half_up(sum(sums) / len(sums)),
            'most_common': most_common_sum,
        },
        'digit_ending_distribution': [
            {'ending': ending, 'count': count, 'percentage': pct(count)}
            for ending, count in sorted(ending_counts.items(), key=lambda x: (-x[1], x[0]))
        ],
        'recent_trends': {
            'last_10': _ranked_counts(recent_10, TREND_LIMIT),
            'last_30': _ranked_counts(recent_30, TREND_LIMIT),
        },
        'consecutive_patterns': {
            'has_consecutive': with_consecutive,
            'no_consecutive': len(history) - with_consecutive,
            'percentage': with_consecutive / len(history) * 100,
        },
    }

    logger.info(f"Calculated analytics for {snapshot['total_draws']} draws")
    return snapshot


class AnalyticsPredictor:
    """Lighter prediction driven by an analytics snapshot"""

    def __init__(self, max_number: int = None, rng: random.Random = None):
        self.max_number = max_number or config.MAX_NUMBER
        self.rng = rng or random.Random()
        self.buckets = range_buckets(self.max_number)

    def predict(self, analytics: Dict) -> List[int]:
        logger.info("Starting analytics-based prediction")

        if not analytics or not analytics.get('total_draws'):
            logger.info("No analytics data, returning random numbers")
            return generate_random_numbers(5, self.max_number, self.rng)

        scores = self.score_numbers(analytics)

        ranked = sorted(scores.items(), key=lambda x: x[1], reverse=True)
        pool = ranked[:CANDIDATE_POOL_SIZE]

        candidates = []
        for _ in range(ANALYTICS_ITERATIONS):
            picked = weighted_sample(pool, 5, self.rng, self.max_number)
            if len(picked) != 5:
                continue
            picked.sort()
            candidates.append((picked, self.score_combination(picked, analytics)))

        candidates.sort(key=lambda x: x[1], reverse=True)

        if candidates:
            result = candidates[0][0]
        else:
            result = sorted(num for num, _ in ranked[:5])
            logger.warning(f"No complete candidates, using top scored numbers {result}")

        if validate_numbers(result, self.max_number):
            result = sorted(result)
        else:
            logger.warning(f"Invalid result {result}, falling back to random")
            result = generate_random_numbers(5, self.max_number, self.rng)

        logger.info(f"Analytics prediction: {result}")
        return result

    def score_numbers(self, analytics: Dict) -> Dict[int, float]:
        """Per-number scores seeded from the snapshot"""
        scores = {num: 0.0 for num in range(1, self.max_number + 1)}

        def boost(num, amount):
            if num in scores:
                scores[num] += amount

        # Hot numbers with decreasing weight by rank
        for index, item in enumerate(analytics['hot_numbers'][:15]):
            weight = (15 - index) / 15
            boost(item['number'], item['percentage'] * 10 * weight)

        last_10 = analytics['recent_trends']['last_10']
        last_30 = analytics['recent_trends']['last_30']
        last_10_numbers = {item['number'] for item in last_10}
        recent_numbers = last_10_numbers | {item['number'] for item in last_30}

        for item in last_10:
            boost(item['number'], item['count'] * 15)
        for item in last_30:
            if item['number'] not in last_10_numbers:
                boost(item['number'], item['count'] * 8)

        # Cold numbers that are quiet lately, inverse weight
        for item in analytics['cold_numbers'][:10]:
            if item['number'] not in recent_numbers:
                boost(item['number'], (100 - item['percentage']) * 0.5)

        for item in analytics['most_common_pairs'][:10]:
            num1, num2 = item['pair']
            boost(num1, item['count'] * 2)
            boost(num2, item['count'] * 2)

        ranges = analytics['range_distribution']
        if ranges:
            avg_percentage = sum(r['percentage'] for r in ranges) / len(ranges)
            for item in ranges:
                if item['percentage'] < avg_percentage * 0.8:
                    low, high = (int(part) for part in item['range'].split('-'))
                    for num in range(low, high + 1):
                        boost(num, 3)

        for item in analytics['digit_ending_distribution'][:5]:
            for num in range(item['ending'] or 10, self.max_number + 1, 10):
                boost(num, item['percentage'] * 0.3)

        odd_even = {item['type']: item['percentage'] for item in analytics['odd_even_distribution']}
        odd_percentage = odd_even.get('Odd', 50)
        even_percentage = odd_even.get('Even', 50)
        if odd_percentage > 55:
            for num in range(2, self.max_number + 1, 2):
                boost(num, 2)
        elif even_percentage > 55:
            for num in range(1, self.max_number + 1, 2):
                boost(num, 2)

        return scores

    def score_combination(self, candidate: List[int], analytics: Dict) -> float:
        combo_score = 0.0

        sum_diff = abs(sum(candidate) - analytics['sum_distribution']['average'])
        combo_score += max(0.0, 10 - sum_diff / 10)

        combo_score += len({bucket_index(num, self.buckets) for num in candidate}) * 3

        pair_counts = {tuple(item['pair']): item['count'] for item in analytics['most_common_pairs']}
        for i in range(len(candidate)):
            for j in range(i + 1, len(candidate)):
                combo_score += pair_counts.get((candidate[i], candidate[j]), 0) * 2

        hot = {item['number']: item['percentage'] for item in analytics['hot_numbers']}
        last_10 = {item['number']: item['count'] for item in analytics['recent_trends']['last_10']}
        last_30 = {item['number']: item['count'] for item in analytics['recent_trends']['last_30']}
        for num in candidate:
            combo_score += hot.get(num, 0) * 2
            if num in last_10:
                combo_score += last_10[num] * 5
            elif num in last_30:
                combo_score += last_30[num] * 2

        odd_count = sum(1 for n in candidate if n % 2 == 1)
        if 2 <= odd_count <= 3:
            combo_score += 3

        return combo_score
