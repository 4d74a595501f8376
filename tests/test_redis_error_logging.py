"""Tests for Redis error handling and logging."""

import pytest
import redis
from loguru import logger

from modules.errors import InsertFailed, StoreUnavailable, UpdateFailed
from modules.store import RequestStore, TicketStore


class FailingRedis:
    def get(self, *args, **kwargs):
        raise redis.RedisError("boom")

    def hget(self, *args, **kwargs):
        raise redis.RedisError("boom")

    def zcount(self, *args, **kwargs):
        raise redis.RedisError("boom")

    def set(self, *args, **kwargs):
        raise redis.RedisError("boom")

    def delete(self, *args, **kwargs):
        raise redis.RedisError("boom")

    def pipeline(self, *args, **kwargs):
        raise redis.RedisError("boom")


ROW = {
    "name": "A. Kumar",
    "designation": "alumni",
    "status": "pending",
}


@pytest.fixture
def log_errors(caplog):
    logger.remove()
    logger.add(caplog.handler, level="ERROR")
    return caplog


def test_get_request_logs_error(log_errors):
    with pytest.raises(StoreUnavailable):
        RequestStore(FailingRedis()).get("1")
    assert "failed to fetch gate pass request 1" in log_errors.text


def test_list_logs_error(log_errors):
    with pytest.raises(StoreUnavailable):
        RequestStore(FailingRedis()).list()
    assert "failed to list gate pass requests" in log_errors.text


def test_insert_logs_error_and_cleanup(log_errors):
    with pytest.raises(InsertFailed):
        RequestStore(FailingRedis()).insert(ROW)
    assert "failed to insert gate pass request" in log_errors.text
    assert "cleanup failed" in log_errors.text


def test_update_logs_error(log_errors):
    with pytest.raises(UpdateFailed):
        RequestStore(FailingRedis()).update("1", {"status": "approved"})
    assert "failed to update gate pass request 1" in log_errors.text


def test_ticket_lookup_logs_error(log_errors):
    with pytest.raises(StoreUnavailable):
        TicketStore(FailingRedis()).get_by_request("1")
    assert "failed to look up ticket for request 1" in log_errors.text
