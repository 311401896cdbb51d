#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Engine configuration

Values come from the environment (optionally a .env file) with the defaults
used by the Ötöslottó (5 of 90) game.
"""

import os
import sys
import logging
from datetime import datetime

import pytz
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Configuration
MAX_NUMBER = int(os.getenv("LOTTO_MAX_NUMBER", "90"))
NUMBERS_PER_DRAW = int(os.getenv("LOTTO_NUMBERS_PER_DRAW", "5"))
TIMEZONE = os.getenv("TIMEZONE", "Europe/Budapest")
MANIPULATION_HISTORY_LIMIT = int(os.getenv("MANIPULATION_HISTORY_LIMIT", "200"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", "lotto_engine.log")

# Heuristic thresholds were tuned on the old 1-99 ticket
LEGACY_MAX_NUMBER = 99

if NUMBERS_PER_DRAW != 5:
    raise ValueError(f"LOTTO_NUMBERS_PER_DRAW must be 5, got {NUMBERS_PER_DRAW}")
if MAX_NUMBER < 10:
    raise ValueError(f"LOTTO_MAX_NUMBER too small: {MAX_NUMBER}")


def get_timezone(name: str = None):
    """Return the pytz zone for `name` (defaults to TIMEZONE)"""
    return pytz.timezone(name or TIMEZONE)


def now(tz=None) -> datetime:
    """Timezone-aware current time"""
    return datetime.now(tz or get_timezone())


def scale(value: float, max_number: int) -> float:
    """Rescale a threshold written for the 1-99 range to 1..max_number"""
    return value * max_number / LEGACY_MAX_NUMBER


def scale_int(value: int, max_number: int) -> int:
    return int(round(scale(value, max_number)))


def setup_logging(level: str = None, log_file: str = None):
    """Configure root logging (console + optional file)"""
    handlers = [logging.StreamHandler(sys.stdout)]
    target = LOG_FILE if log_file is None else log_file
    if target:
        handlers.insert(0, logging.FileHandler(target, encoding='utf-8'))

    logging.basicConfig(
        level=getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )
