#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Entry points used by the surrounding application

    engine = LottoEngine()
    numbers = engine.predict(history)
    numbers = engine.predict_from_analytics(engine.build_analytics(history))
    result = engine.score_manipulation(draw, history)

History is always a newest-first list of draw dicts (see draws.py).
"""

import random
import logging
from typing import Dict, List
from datetime import datetime

import config
from analytics import AnalyticsPredictor, build_analytics
from manipulation_detection import calculate_manipulation_score, summarize_score
from prediction_engine import PredictionEngine

logger = logging.getLogger(__name__)


class LottoEngine:
    """Facade over the prediction, analytics and manipulation modules"""

    def __init__(self, max_number: int = None, rng: random.Random = None, tz=None,
                 history_limit: int = None):
        self.max_number = max_number or config.MAX_NUMBER
        self.rng = rng or random.Random()
        self.tz = tz or config.get_timezone()
        self.history_limit = history_limit or config.MANIPULATION_HISTORY_LIMIT

        self.predictor = PredictionEngine(self.max_number, self.rng, self.tz)
        self.analytics_predictor = AnalyticsPredictor(self.max_number, self.rng)

    def predict(self, history: List[Dict], now: datetime = None) -> List[int]:
        return self.predictor.predict(history, now)

    def build_analytics(self, history: List[Dict]) -> Dict:
        return build_analytics(history, self.max_number)

    def predict_from_analytics(self, analytics: Dict) -> List[int]:
        return self.analytics_predictor.predict(analytics)

    def score_manipulation(self, draw: Dict, history: List[Dict]) -> Dict:
        """Manipulation score for `draw` against the newest capped history"""
        return calculate_manipulation_score(draw, (history or [])[:self.history_limit], self.max_number)

    def annotate_draws(self, new_draws: List[Dict], history: List[Dict]) -> List[Dict]:
        """Attach manipulation score summaries to a batch of incoming draws

        Each draw is scored against the existing history plus the draws
        annotated before it, then placed at the front of that context.
        Returns annotated copies in input order.
        """
        context = list(history or [])
        annotated = []

        for draw in new_draws:
            result = self.score_manipulation(draw, context)
            tagged = dict(draw, manipulation_score=summarize_score(result))
            annotated.append(tagged)
            context.insert(0, tagged)

        logger.info(f"Annotated {len(annotated)} draws with manipulation scores")
        return annotated


def predict(history: List[Dict], max_number: int = None, now: datetime = None,
            rng: random.Random = None) -> List[int]:
    return LottoEngine(max_number, rng).predict(history, now)


def predict_from_analytics(analytics: Dict, max_number: int = None, rng: random.Random = None) -> List[int]:
    max_number = max_number or (analytics or {}).get('max_number')
    return LottoEngine(max_number, rng).predict_from_analytics(analytics)


def score_manipulation(draw: Dict, history: List[Dict], max_number: int = None) -> Dict:
    return LottoEngine(max_number).score_manipulation(draw, history)
