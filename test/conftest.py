"""
Test Configuration

Unit tests only: every external dependency (Redis, browser, Telegram) is
replaced by the doubles in test/service/autobooking/unit/test_helpers.py.
"""

# =============================================================================
# CRITICAL: Environment setup MUST happen before any other imports
# This ensures REDIS_KEY_PREFIX and TEST_LOG_DIR are set before modules
# that read them at import time (settings, logging config)
# =============================================================================
import os
from pathlib import Path


def _early_setup_test_environment() -> None:
    """Set test environment variables before any module imports."""
    worker_id = os.environ.get('PYTEST_XDIST_WORKER', 'master')
    if worker_id == 'master':
        os.environ['REDIS_KEY_PREFIX'] = 'test_'
    else:
        os.environ['REDIS_KEY_PREFIX'] = f'test_{worker_id}_'

    test_log_dir = Path(__file__).parent / 'test_log'
    test_log_dir.mkdir(exist_ok=True)
    os.environ['TEST_LOG_DIR'] = str(test_log_dir)

    os.environ['GIFT_CARD_ENCRYPTION_KEY'] = '00112233445566778899aabbccddeeff' * 2
    os.environ.setdefault('SERVICE_NAME', 'autobooking-test')
    os.environ.setdefault('DEPLOY_ENV', 'test')


# Call immediately to set env vars before any imports
_early_setup_test_environment()

import pytest  # noqa: E402

from test.service.autobooking.unit.test_helpers import (  # noqa: E402
    FakeBrowserSessionFactory,
    InMemoryJobStore,
)


@pytest.fixture
def job_store() -> InMemoryJobStore:
    return InMemoryJobStore()


@pytest.fixture
def browser_session_factory() -> FakeBrowserSessionFactory:
    return FakeBrowserSessionFactory()
