import os
import sys
import random
from datetime import datetime, timedelta

import pytest
import pytz

# Add project root to path
PROJECT_ROOT = os.path.join(os.path.dirname(__file__), '..')
sys.path.insert(0, PROJECT_ROOT)

TZ = pytz.timezone('Europe/Budapest')
NOW = TZ.localize(datetime(2024, 6, 1, 20, 0, 0))


def make_draw(numbers, days_ago=0, draw_id=None, **extra):
    draw = {
        'id': draw_id or f"draw-{days_ago}",
        'numbers': list(numbers),
        'date': (NOW - timedelta(days=days_ago)).isoformat(),
    }
    draw.update(extra)
    return draw


def random_history(count, seed=0, max_number=90, spacing_days=3):
    """Newest-first history of random draws, one every `spacing_days`"""
    rng = random.Random(seed)
    return [
        make_draw(sorted(rng.sample(range(1, max_number + 1), 5)), days_ago=i * spacing_days, draw_id=f"r{i}")
        for i in range(count)
    ]


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def tz():
    return TZ
