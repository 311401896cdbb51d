#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Behavioral Prediction Engine for 5-number lottery draws

This module scores every number in the configured range from the draw
history, then runs a weighted Monte Carlo search over the best numbers to
pick one 5-number combination.

Number scoring phases (applied in order to one running score map):

1. Recency + Frequency:
   - Exponential decay by draw age, position weighting, pair co-occurrence
2. Gap Analysis:
   - Boost numbers overdue relative to their expected return cycle
3. Frequency Normalization:
   - Boost under-represented, damp over-represented numbers
4. Pair Synergy:
   - Boost numbers that co-occur with the current top 15
5. Sum Target:
   - Historical sum mean +/- one standard deviation (used by combo scoring)
6. Range Balancing:
   - Boost fifths of the range that the last 15 draws neglected
6.5 Behavioral Reweighting:
   - Blend in the user profile when past selections look hand-picked
6.6 Anti-Repetition:
   - Penalize numbers from the last 5 predictions
7. Close Pairs:
   - Tally near-adjacent pairs in recent draws (reference only)

Combination search:
   - 100 weighted trials over the top 30 numbers
   - Combo score: sum target, range diversity, pair history, base scores,
     behavioral fit, dissimilarity from recent predictions
   - Fallbacks: raw top 5, then uniform random
"""

import math
import time
import random
import logging
from typing import Dict, List, Tuple
from collections import Counter, defaultdict
from datetime import datetime

import numpy as np

import config
from draws import (
    clean_history, parse_draw_date, get_predicted_numbers, generate_random_numbers,
    validate_numbers, range_buckets, bucket_index, has_consecutive, min_spacing, similarity,
)
from manipulation_detection import build_user_profile

logger = logging.getLogger(__name__)

# Recency decay
DECAY_RATE = 0.1
RECENCY_SCALE = 5.0

# Gap analysis
OVERDUE_THRESHOLD = 1.2
OVERDUE_BOOST = 2.5
OVERDUE_CAP = 3.0

# Frequency normalization
UNDER_REPRESENTED_RATIO = 0.7
OVER_REPRESENTED_RATIO = 1.5
UNDER_REPRESENTED_BOOST = 2.0
OVER_REPRESENTED_DAMPING = 0.9

# Pair synergy
PAIR_TOP_NUMBERS = 15
PAIR_SYNERGY_WEIGHT = 0.3

# Range balancing
RANGE_WINDOW = 15
RANGE_NEGLECT_RATIO = 0.6
RANGE_BOOST = 1.5

# Behavioral blending kicks in above this weight
BEHAVIORAL_MIN_WEIGHT = 0.2
BEHAVIORAL_SCORE_SCALE = 50.0

# Anti-repetition
RECENT_PREDICTIONS_LIMIT = 5
REPEAT_PENALTY = 0.3

CLOSE_PAIR_GAP = 5

# Monte Carlo simulation iterations
MONTE_CARLO_ITERATIONS = 100
CANDIDATE_POOL_SIZE = 30
MIN_SAMPLING_WEIGHT = 0.001

# Candidates matching more than 3 numbers of the last prediction are skipped
MAX_SIMILARITY = 0.6

SECONDS_PER_DAY = 24 * 60 * 60


def weighted_sample(pool: List[Tuple[int, float]], count: int, rng: random.Random,
                    max_number: int = None) -> List[int]:
    """Draw up to `count` distinct numbers without replacement

    Weights are floored at MIN_SAMPLING_WEIGHT. Stops early when the pool is
    exhausted, so callers must check the length of the result.
    """
    max_number = max_number or config.MAX_NUMBER
    available = list(pool)
    picked = []

    while len(picked) < count and available:
        weights = [max(MIN_SAMPLING_WEIGHT, score) for _, score in available]
        total_weight = sum(weights)
        if total_weight <= 0:
            break

        target = rng.random() * total_weight
        index = len(available) - 1
        for i, weight in enumerate(weights):
            target -= weight
            if target <= 0:
                index = i
                break

        num, _ = available.pop(index)
        if 1 <= num <= max_number and num not in picked:
            picked.append(num)

    return picked


def behavioral_adjustments(profile: Dict, weight: float, last_numbers: List[int],
                           max_number: int = None) -> Dict[int, float]:
    """Score boosts derived from a user profile

    Args:
        profile: Output of build_user_profile
        weight: Behavioral weight in [0, 1]
        last_numbers: Numbers of the most recent draw (compensation trigger)
        max_number: Top of the number range

    Returns:
        Mapping number -> additive boost
    """
    max_number = max_number or config.MAX_NUMBER
    boosts = defaultdict(float)

    for num, preference in profile['favorite_numbers'].items():
        boosts[num] += preference * 10 * weight

    for label, preference in profile['favorite_ranges'].items():
        low, high = (int(part) for part in label.split('-'))
        for num in range(low, high + 1):
            boosts[num] += preference * 5 * weight

    for ending, preference in profile['digit_ending_preferences'].items():
        for num in range(ending or 10, max_number + 1, 10):
            boosts[num] += preference * 3 * weight

    if last_numbers:
        compensation = profile['compensation_patterns']
        last_avg = sum(last_numbers) / len(last_numbers)
        split = config.scale(50, max_number)

        if last_avg < config.scale(30, max_number) and compensation['after_low']:
            # Tends to go high after a low selection
            for num in set(compensation['after_low']):
                if num >= split:
                    boosts[num] += 3 * weight
        elif last_avg > config.scale(70, max_number) and compensation['after_high']:
            for num in set(compensation['after_high']):
                if num <= split:
                    boosts[num] += 3 * weight

        if has_consecutive(last_numbers) and compensation['after_consecutive']:
            for num in set(compensation['after_consecutive']):
                boosts[num] += 2 * weight

    if profile['randomness_strategy']['prefers_middle_range']:
        for num in range(config.scale_int(30, max_number), config.scale_int(70, max_number) + 1):
            boosts[num] += 2 * weight

    return {num: boost for num, boost in boosts.items() if 1 <= num <= max_number}


def behavioral_weight_for(history: List[Dict]) -> float:
    """min(1, average stored manipulation score / 50)"""
    scores = [
        d['manipulation_score']['score'] for d in history
        if d.get('manipulation_score') and d['manipulation_score'].get('score') is not None
    ]
    if not scores:
        return 0.0
    return min(1.0, (sum(scores) / len(scores)) / BEHAVIORAL_SCORE_SCALE)


class PredictionEngine:
    """Number scorer + Monte Carlo candidate selection"""

    def __init__(self, max_number: int = None, rng: random.Random = None, tz=None):
        """Initialize the prediction engine

        Args:
            max_number: Top of the number range (defaults to LOTTO_MAX_NUMBER)
            rng: Random source for sampling (a fresh random.Random if omitted)
            tz: pytz zone for naive dates and "now"
        """
        self.max_number = max_number or config.MAX_NUMBER
        self.rng = rng or random.Random()
        self.tz = tz or config.get_timezone()
        self.buckets = range_buckets(self.max_number)

    def predict(self, history: List[Dict], now: datetime = None) -> List[int]:
        """Predict the next 5 numbers from newest-first history

        Always returns 5 distinct sorted numbers within range.
        """
        started = time.perf_counter()
        history = clean_history(history, self.max_number)
        logger.info(f"Starting prediction with {len(history)} historical records")

        if not history:
            logger.info("No history, returning random numbers")
            return generate_random_numbers(5, self.max_number, self.rng)

        context = self.score_numbers(history, now)
        result = self.select_best(context)

        logger.info(f"Predicted numbers: {result} (took {time.perf_counter() - started:.2f}s)")
        return result

    # === Number scoring ===

    def score_numbers(self, history: List[Dict], now: datetime = None) -> Dict:
        """Run scoring phases 1-7 and return the scoring context

        Returns:
            Dictionary with 'scores' (number -> float) plus the intermediate
            tables the combination search needs
        """
        history = clean_history(history, self.max_number)
        now = now or config.now(self.tz)
        if now.tzinfo is None:
            now = self.tz.localize(now)

        context = {
            'now': now,
            'history': history,
            'scores': {num: 0.0 for num in range(1, self.max_number + 1)},
            'counts': Counter(),
            'last_seen': {},
            'pair_weights': defaultdict(float),
            'sums': [],
        }

        logger.debug("Phase 1: recency and frequency")
        self._phase_recency(context)
        logger.debug("Phase 2: gap analysis")
        self._phase_gaps(context)
        logger.debug("Phase 3: frequency normalization")
        self._phase_frequency(context)
        logger.debug("Phase 4: pair synergy")
        self._phase_pairs(context)
        logger.debug("Phase 5: sum target")
        self._phase_sum_target(context)
        logger.debug("Phase 6: range balancing")
        self._phase_ranges(context)
        logger.debug("Phase 6.5: behavioral reweighting")
        self._phase_behavior(context)
        logger.debug("Phase 6.6: anti-repetition")
        self._phase_recent_predictions(context)
        logger.debug("Phase 7: close pairs")
        self._phase_close_pairs(context)

        return context

    def _draw_time(self, draw: Dict, now: datetime) -> datetime:
        parsed = parse_draw_date(draw.get('date'), self.tz)
        if parsed is None:
            logger.warning(f"Unparseable date for draw {draw.get('id')}: {draw.get('date')!r}, using now")
            return now
        return parsed

    def _phase_recency(self, context: Dict):
        now = context['now']
        scores = context['scores']

        for draw in context['history']:
            drawn_at = self._draw_time(draw, now)
            age_days = (now - drawn_at).total_seconds() / SECONDS_PER_DAY
            recency_weight = math.exp(-DECAY_RATE * age_days) * RECENCY_SCALE

            numbers = draw['numbers']
            context['sums'].append(sum(numbers))

            for pos, num in enumerate(numbers):
                context['counts'][num] += 1

                # Middle slots count slightly more
                position_weight = 1.0 + (2 - abs(pos - 2)) * 0.15
                scores[num] += recency_weight * position_weight

                last = context['last_seen'].get(num)
                if last is None or drawn_at > last:
                    context['last_seen'][num] = drawn_at

                for other in numbers:
                    if num < other:
                        context['pair_weights'][(num, other)] += recency_weight

    def _phase_gaps(self, context: Dict):
        now = context['now']
        history = context['history']

        if len(history) > 1:
            oldest = self._draw_time(history[-1], now)
            avg_interval = (now - oldest).total_seconds() / (len(history) - 1)
        else:
            avg_interval = 0.0
        expected_cycle = avg_interval * (self.max_number / 5)

        for num in context['scores']:
            last = context['last_seen'].get(num)
            gap = math.inf if last is None else (now - last).total_seconds()

            if expected_cycle <= 0:
                overdue_factor = OVERDUE_CAP if gap > 0 else 0.0
            elif gap > expected_cycle * OVERDUE_THRESHOLD:
                overdue_factor = min(gap / expected_cycle / 2, OVERDUE_CAP)
            else:
                overdue_factor = 0.0

            context['scores'][num] += OVERDUE_BOOST * overdue_factor

    def _phase_frequency(self, context: Dict):
        total = len(context['history']) * config.NUMBERS_PER_DRAW
        if total == 0:
            return
        expected = 1 / self.max_number
        scores = context['scores']

        for num in scores:
            ratio = (context['counts'][num] / total) / expected
            if ratio < UNDER_REPRESENTED_RATIO:
                scores[num] += UNDER_REPRESENTED_BOOST * (1 - ratio)
            if ratio > OVER_REPRESENTED_RATIO:
                scores[num] *= OVER_REPRESENTED_DAMPING

    def _phase_pairs(self, context: Dict):
        scores = context['scores']
        pair_weights = context['pair_weights']
        ranked = sorted(scores.items(), key=lambda x: x[1], reverse=True)
        top_numbers = [num for num, _ in ranked[:PAIR_TOP_NUMBERS]]

        for num in scores:
            pair_score = 0.0
            for top in top_numbers:
                if num != top:
                    key = (num, top) if num < top else (top, num)
                    pair_score += pair_weights.get(key, 0.0)
            scores[num] += pair_score * PAIR_SYNERGY_WEIGHT

    def _phase_sum_target(self, context: Dict):
        sums = np.asarray(context['sums'], dtype=float)
        if sums.size:
            mean = float(np.mean(sums))
            std = float(np.std(sums))
        else:
            mean = std = 0.0
        context['sum_stats'] = {
            'mean': mean,
            'std': std,
            'optimal_min': mean - std,
            'optimal_max': mean + std,
        }

    def _phase_ranges(self, context: Dict):
        range_counts = [0] * len(self.buckets)
        for draw in context['history'][:RANGE_WINDOW]:
            for num in draw['numbers']:
                idx = bucket_index(num, self.buckets)
                if idx >= 0:
                    range_counts[idx] += 1

        avg_count = sum(range_counts) / len(self.buckets)
        for idx, (low, high) in enumerate(self.buckets):
            if range_counts[idx] < avg_count * RANGE_NEGLECT_RATIO:
                for num in range(low, high + 1):
                    context['scores'][num] += RANGE_BOOST

    def _phase_behavior(self, context: Dict):
        history = context['history']
        context['profile'] = build_user_profile(history, self.max_number)
        context['behavioral_weight'] = behavioral_weight_for(history)

        if context['behavioral_weight'] <= BEHAVIORAL_MIN_WEIGHT:
            return

        boosts = behavioral_adjustments(
            context['profile'], context['behavioral_weight'],
            history[0]['numbers'], self.max_number
        )
        for num, boost in boosts.items():
            context['scores'][num] += boost

    def _phase_recent_predictions(self, context: Dict):
        recent = []
        for draw in context['history']:
            predicted = get_predicted_numbers(draw, self.max_number)
            if predicted:
                recent.append(predicted)
            if len(recent) == RECENT_PREDICTIONS_LIMIT:
                break
        context['recent_predictions'] = recent

        scores = context['scores']
        for idx, predicted in enumerate(recent):
            recency_penalty = 1.0 / (idx + 1)
            for num in predicted:
                if num in scores:
                    scores[num] *= 1 - recency_penalty * REPEAT_PENALTY

        if recent:
            logger.debug(f"Applied penalties for {len(recent)} recent predictions")

    def _phase_close_pairs(self, context: Dict):
        close_pairs = Counter()
        for draw in context['history'][:RANGE_WINDOW]:
            ordered = sorted(draw['numbers'])
            for i in range(len(ordered) - 1):
                if ordered[i + 1] - ordered[i] <= CLOSE_PAIR_GAP:
                    close_pairs[(ordered[i], ordered[i + 1])] += 1
        context['close_pairs'] = close_pairs

    # === Combination search ===

    def score_combination(self, candidate: List[int], context: Dict) -> float:
        """Holistic score for a sorted 5-number candidate"""
        combo_score = 0.0
        sum_stats = context['sum_stats']

        if sum_stats['optimal_min'] <= sum(candidate) <= sum_stats['optimal_max']:
            combo_score += 5

        combo_ranges = {bucket_index(num, self.buckets) for num in candidate}
        combo_score += len(combo_ranges) * 2

        recent = context['recent_predictions']
        if recent:
            max_similarity = max(
                similarity(candidate, predicted) * (1.0 / (idx + 1))
                for idx, predicted in enumerate(recent)
            )
            if max_similarity > 0.6:
                combo_score -= 20 * max_similarity
            elif max_similarity > 0.4:
                combo_score -= 10 * max_similarity
            elif max_similarity > 0.2:
                combo_score -= 5 * max_similarity

            if max_similarity < 0.2:
                combo_score += 3

        weight = context['behavioral_weight']
        if weight > BEHAVIORAL_MIN_WEIGHT:
            strategy = context['profile']['randomness_strategy']
            spacing = min_spacing(candidate)
            avg_value = sum(candidate) / len(candidate)

            if strategy['avoids_consecutive'] and not has_consecutive(candidate) and spacing > 10:
                combo_score += 5 * weight
            if strategy['prefers_spread'] and spacing > 15:
                combo_score += 4 * weight
            if (strategy['prefers_middle_range']
                    and config.scale(30, self.max_number) <= avg_value <= config.scale(70, self.max_number)):
                combo_score += 3 * weight

            endings = context['profile']['digit_ending_preferences']
            ending_matches = sum(1 for num in candidate if endings.get(num % 10, 0) > 0.12)
            combo_score += ending_matches * 2 * weight

        pair_weights = context['pair_weights']
        for i in range(len(candidate)):
            for j in range(i + 1, len(candidate)):
                combo_score += pair_weights.get((candidate[i], candidate[j]), 0.0) * 0.5

        for num in candidate:
            combo_score += context['scores'].get(num, 0.0) * 0.3

        return combo_score

    def generate_candidates(self, context: Dict) -> List[Tuple[List[int], float]]:
        """Monte Carlo candidates ranked best first; incomplete trials dropped"""
        ranked = sorted(context['scores'].items(), key=lambda x: x[1], reverse=True)
        pool = ranked[:CANDIDATE_POOL_SIZE]

        candidates = []
        for _ in range(MONTE_CARLO_ITERATIONS):
            picked = weighted_sample(pool, 5, self.rng, self.max_number)
            if len(picked) != 5:
                continue
            picked.sort()
            candidates.append((picked, self.score_combination(picked, context)))

        candidates.sort(key=lambda x: x[1], reverse=True)
        return candidates

    def select_best(self, context: Dict) -> List[int]:
        """Pick the best candidate not too close to the latest prediction"""
        candidates = self.generate_candidates(context)
        logger.debug(f"Selecting best combination from {len(candidates)} candidates")

        recent = context['recent_predictions']
        most_recent = recent[0] if recent else None

        best = None
        for numbers, _ in candidates:
            if most_recent and similarity(numbers, most_recent) > MAX_SIMILARITY:
                logger.debug(f"Skipping candidate {numbers} - too similar to recent prediction")
                continue
            best = numbers
            break

        if best is None and candidates:
            best = candidates[0][0]
            if most_recent:
                logger.warning(
                    f"Using best candidate despite {similarity(best, most_recent) * 100:.0f}% "
                    f"similarity to recent prediction"
                )

        if best is None:
            ranked = sorted(context['scores'].items(), key=lambda x: x[1], reverse=True)
            best = sorted(num for num, _ in ranked[:5])
            logger.warning(f"No complete candidates, using top scored numbers {best}")

        return self.finalize(best)

    def finalize(self, numbers: List[int]) -> List[int]:
        """Validate a result, replacing it with random numbers if invalid"""
        if validate_numbers(list(numbers), self.max_number):
            return sorted(numbers)
        logger.warning(f"Invalid result generated: {numbers}. Falling back to random numbers.")
        return generate_random_numbers(5, self.max_number, self.rng)
