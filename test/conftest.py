import pytest
from loguru import logger


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "slow: marks test as slow running test")


@pytest.fixture
def log_records():
    """Capture loguru records (WARNING and above) emitted during a test."""
    records = []
    handler_id = logger.add(lambda msg: records.append(msg.record), level="WARNING")
    yield records
    logger.remove(handler_id)
