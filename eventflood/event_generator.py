"""
eventflood Event Generator

Synthesizes FCM registration-token events for the Meiro SDK sample app and
splits them into fixed-size batches.
"""

import random
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

# =====================================================================
# STATIC TABLES
# =====================================================================

BASE_TIMESTAMP = datetime(2024, 5, 10, 12, 42, 18, tzinfo=timezone.utc)

OS_TYPES = ('Android', 'iOS')

APP_IDS = {
    'Android': '1:353411649331:android:807159721d149925fa7846',
    'iOS': '1:353411649331:ios:0c81a6f862765278fa7846',
}

DEVICE_MODELS = {
    'Android': (
        'Pixel 7',
        'Samsung Galaxy S23',
        'OnePlus 11',
        'Xiaomi 13',
        'Google Pixel 6',
    ),
    'iOS': (
        'iPhone15,2',
        'iPhone14,8',
        'iPhone13,3',
        'iPhone12,8',
        'iPhone11,2',
    ),
}

MANUFACTURERS = {'Android': 'Google', 'iOS': 'Apple'}
OS_VERSIONS = {'Android': '13.0', 'iOS': '16.6'}

APP_NAME = 'MeiroSDKSample'
APP_VERSION = '1.0.0'
APP_LANGUAGE = 'en'
EVENT_TYPE = 'fcm_registration_token_registered'
FIREBASE_PROJECT_ID = 'meiro-testing-project'
SCHEMA_VERSION = '1.0.0'

TIMESTAMP_FORMAT = '%Y-%m-%dT%H:%M:%SZ'


def generate_unique_values(count: int) -> Tuple[List[str], List[str]]:
    """
    Generate ``count`` distinct registration tokens and session IDs.

    Returns:
        (tokens, sessions): tokens look like ``fcm_token_<uuid4>``,
        sessions are bare uuid4 strings.
    """
    tokens: Dict[str, None] = {}
    sessions: Dict[str, None] = {}
    # dicts keep insertion order; keys give uniqueness
    while len(tokens) < count:
        tokens[f"fcm_token_{uuid.uuid4()}"] = None
    while len(sessions) < count:
        sessions[str(uuid.uuid4())] = None
    return list(tokens), list(sessions)


def generate_event(
    os_type: str,
    registration_token: str,
    session_id: str,
    base_timestamp: datetime = BASE_TIMESTAMP,
    rng: Optional[random.Random] = None,
) -> Dict[str, Any]:
    """Build one event with a timestamp up to ~31 days before ``base_timestamp``."""
    if os_type not in APP_IDS:
        raise ValueError(f"Unknown OS type: {os_type}")
    rng = rng or random

    offset = timedelta(
        days=rng.randint(0, 30),
        hours=rng.randint(0, 24),
        minutes=rng.randint(0, 60),
    )
    event_timestamp = base_timestamp - offset

    return {
        'app': {
            'id': APP_IDS[os_type],
            'language': APP_LANGUAGE,
            'name': APP_NAME,
            'version': APP_VERSION,
        },
        'device': {
            'manufacturer': MANUFACTURERS[os_type],
            'model': rng.choice(DEVICE_MODELS[os_type]),
        },
        'event_timestamp': event_timestamp.strftime(TIMESTAMP_FORMAT),
        'event_type': EVENT_TYPE,
        'firebase': {
            'project_id': FIREBASE_PROJECT_ID,
            'registration_token': registration_token,
        },
        'os': {
            'type': os_type,
            'version': OS_VERSIONS[os_type],
        },
        'session_id': session_id,
        'user_id': session_id,
        'version': SCHEMA_VERSION,
    }


def generate_events(
    count: int,
    rng: Optional[random.Random] = None,
    base_timestamp: datetime = BASE_TIMESTAMP,
) -> List[Dict[str, Any]]:
    """Generate ``count`` events, each with its own token and session."""
    rng = rng or random
    tokens, sessions = generate_unique_values(count)
    return [
        generate_event(
            'Android' if rng.random() < 0.5 else 'iOS',
            tokens[i],
            sessions[i],
            base_timestamp=base_timestamp,
            rng=rng,
        )
        for i in range(count)
    ]


def chunk(items: Sequence[Any], size: int) -> List[Tuple[Any, ...]]:
    """Split ``items`` into contiguous tuples of ``size`` (last may be shorter)."""
    if size < 1:
        raise ValueError(f"chunk size too low: {size}")
    return [tuple(items[i:i + size]) for i in range(0, len(items), size)]
