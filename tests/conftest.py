"""Shared pytest fixtures for job continuation tests.

Every test gets a fresh in-memory queue adapter and a capturing logger, so
no job state or log output leaks between tests.
"""

import pytest

from job_continuation import (
    Container,
    InMemoryQueueAdapter,
    ListLogger,
    clear_job_loggers,
    set_logger,
)


@pytest.fixture(autouse=True)
def queue_adapter() -> InMemoryQueueAdapter:
    """Fixture that installs a fresh InMemoryQueueAdapter via Container.

    Yields:
        The adapter jobs are enqueued to
    """
    adapter = InMemoryQueueAdapter()
    Container.set_queue_adapter(adapter)
    yield adapter
    Container.reset()


@pytest.fixture(autouse=True)
def job_logger() -> ListLogger:
    """Fixture that captures log lines written by the LogEventHandler.

    Yields:
        ListLogger collecting messages
    """
    logger = ListLogger()
    set_logger(logger)
    yield logger
    set_logger(None)
    clear_job_loggers()
