# =====================================================================
# eventflood Pytest Configuration and Fixtures
# =====================================================================
# This file contains shared fixtures and configuration for all tests
# =====================================================================

import logging
import threading

import pytest
from unittest.mock import MagicMock, Mock

from eventflood.dispatcher import RequestResult


# --- Fake time ---

class FakeClock:
    """Manually advanced monotonic clock; sleeping advances it."""

    def __init__(self, start=1000.0):
        self.now = start
        self.sleeps = []

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_clock():
    return FakeClock()


# --- Mock Configuration ---

@pytest.fixture
def mock_config():
    """Mock configuration object for a small, fast run"""
    config = Mock()

    config.TOTAL_EVENTS = 10
    config.BATCH_SIZE = 3
    config.CONCURRENCY = 2
    config.RATE_LIMIT = 10_000
    config.BURST_LIMIT = 10_000
    config.RATE_WINDOW_SECONDS = 1.0
    config.RATE_POLL_INTERVAL = 0.01
    config.REQUEST_TIMEOUT = None
    config.FANOUT_WORKERS = 0
    config.HTTP_POOL_SIZE = 10
    config.METRICS_PORT = 0
    config.LOG_LEVEL = "INFO"

    return config


# --- HTTP mocks ---

def make_response(status_code=200):
    response = MagicMock()
    response.status_code = status_code
    return response


@pytest.fixture
def response_factory():
    """Build a mock HTTP response with the given status code"""
    return make_response


@pytest.fixture
def mock_session():
    """requests.Session stand-in answering 200 to every POST"""
    session = MagicMock()
    session.post.return_value = make_response(200)
    return session


@pytest.fixture
def unlimited_limiter():
    """Rate limiter stand-in that never blocks"""
    limiter = Mock()
    limiter.acquire.return_value = None
    return limiter


# --- Dispatch stand-ins ---

class ScriptedDispatcher:
    """
    Dispatcher stand-in that fails events whose ``seq`` is in ``fail_seqs``.

    Records every event it was asked to send (thread-safe).
    """

    def __init__(self, fail_seqs=(), delay=0.0):
        self.fail_seqs = set(fail_seqs)
        self.delay = delay
        self.lock = threading.Lock()
        self.sent = []

    def send(self, event, endpoint):
        if self.delay:
            threading.Event().wait(self.delay)
        with self.lock:
            self.sent.append(event["seq"])
        if event["seq"] in self.fail_seqs:
            return RequestResult(ok=False, status=500)
        return RequestResult(ok=True, status=200)


@pytest.fixture
def scripted_dispatcher():
    return ScriptedDispatcher


@pytest.fixture
def sample_events():
    """Minimal events tagged with their position"""
    return [{"seq": i} for i in range(10)]


# --- Logging isolation ---

@pytest.fixture(autouse=True)
def restore_root_logging():
    """
    Restore root logger handlers and level after each test.

    setup_json_logging() replaces root handlers; without this, handlers
    bound to a test's captured stream leak into later tests.
    """
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
