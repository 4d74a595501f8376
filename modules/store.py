"""Redis-backed repositories for visitor requests and tickets.

Rows are stored as JSON documents. Visitor requests are additionally indexed
in sorted sets scored by ``created_at``, tickets in sorted sets scored by
``issued_at``, so listings can be filtered, ordered newest-first and paged on
the server. See :mod:`utils.redis` for key names.
"""

from __future__ import annotations

import json
import uuid
from typing import Any, Iterator, Optional

import redis
from loguru import logger
from redis.exceptions import RedisError, WatchError

from modules.errors import (
    Conflict,
    InsertFailed,
    NotFound,
    StoreUnavailable,
    UpdateFailed,
)
from utils.ids import generate_id
from utils.time import to_score, utcnow_iso

STATUSES = ("pending", "approved", "rejected")

REQUEST_KEY = "gatepass:request:{}"
IDX_ALL = "gatepass:idx:all"
IDX_STATUS = "gatepass:idx:status:{}"
IDX_DESIGNATION = "gatepass:idx:designation:{}"
TICKET_KEY = "gatepass:ticket:{}"
TICKET_BY_REQUEST = "gatepass:ticket_by_request"
TICKET_IDX_ALL = "gatepass:ticket_idx:all"
TICKET_IDX_STATE = "gatepass:ticket_idx:{}"


def _loads(raw: str | bytes | None) -> Optional[dict]:
    if raw is None:
        return None
    return json.loads(raw if isinstance(raw, str) else raw.decode())


def _decode(value: str | bytes) -> str:
    return value.decode() if isinstance(value, bytes) else value


def _state(ticket: dict) -> str:
    return "used" if ticket.get("is_used") else "issued"


class RequestStore:
    """Repository for visitor requests."""

    def __init__(self, client: redis.Redis, scan_batch: int = 200) -> None:
        self.client = client
        self.scan_batch = scan_batch

    # reads ---------------------------------------------------------------

    def get(self, request_id: str) -> Optional[dict]:
        try:
            raw = self.client.get(REQUEST_KEY.format(request_id))
        except RedisError as exc:
            logger.exception("failed to fetch gate pass request {}", request_id)
            raise StoreUnavailable("Request store unavailable") from exc
        return _loads(raw)

    def get_many(self, request_ids: list[str]) -> dict[str, dict]:
        """Return ``{id: row}`` for the requests that exist."""
        if not request_ids:
            return {}
        try:
            raws = self.client.mget([REQUEST_KEY.format(i) for i in request_ids])
        except RedisError as exc:
            logger.exception("failed to fetch gate pass requests")
            raise StoreUnavailable("Request store unavailable") from exc
        rows = (_loads(raw) for raw in raws)
        return {row["id"]: row for row in rows if row is not None}

    def _source_keys(self, status: str | None, designation: str | None) -> list[str]:
        keys = []
        if status:
            keys.append(IDX_STATUS.format(status))
        if designation:
            keys.append(IDX_DESIGNATION.format(designation))
        return keys or [IDX_ALL]

    def _fetch_rows(self, ids: list[str]) -> list[dict]:
        if not ids:
            return []
        raws = self.client.mget([REQUEST_KEY.format(_decode(i)) for i in ids])
        rows = []
        for request_id, raw in zip(ids, raws):
            row = _loads(raw)
            if row is None:
                logger.warning("index points at missing request {}", _decode(request_id))
                continue
            rows.append(row)
        return rows

    def _with_source(self, keys: list[str], fn):
        """Run ``fn(source_key)`` against a single index or an intersection."""
        if len(keys) == 1:
            return fn(keys[0])
        tmp = f"gatepass:tmp:{uuid.uuid4().hex}"
        try:
            self.client.zinterstore(tmp, keys, aggregate="MAX")
            self.client.expire(tmp, 30)
            return fn(tmp)
        finally:
            self.client.delete(tmp)

    def list(
        self,
        *,
        status: str | None = None,
        designation: str | None = None,
        created_from: float | None = None,
        created_to: float | None = None,
        offset: int = 0,
        limit: int = 25,
    ) -> tuple[list[dict], int]:
        """Return ``(rows, total)`` for one newest-first page."""
        lo = created_from if created_from is not None else "-inf"
        hi = created_to if created_to is not None else "+inf"

        def _query(source: str) -> tuple[list[dict], int]:
            total = self.client.zcount(source, lo, hi)
            ids = self.client.zrevrangebyscore(source, hi, lo, start=offset, num=limit)
            return self._fetch_rows(list(ids)), int(total)

        try:
            return self._with_source(self._source_keys(status, designation), _query)
        except RedisError as exc:
            logger.exception("failed to list gate pass requests")
            raise StoreUnavailable("Request store unavailable") from exc

    def scan(
        self,
        *,
        status: str | None = None,
        designation: str | None = None,
        created_from: float | None = None,
        created_to: float | None = None,
        max_rows: int = 5000,
    ) -> Iterator[dict]:
        """Yield rows newest-first in batches, stopping after ``max_rows``."""
        offset = 0
        while offset < max_rows:
            count = min(self.scan_batch, max_rows - offset)
            rows, total = self.list(
                status=status,
                designation=designation,
                created_from=created_from,
                created_to=created_to,
                offset=offset,
                limit=count,
            )
            yield from rows
            offset += count
            if offset >= total:
                return

    def counts(self) -> dict[str, int]:
        try:
            pipe = self.client.pipeline(transaction=False)
            pipe.zcard(IDX_ALL)
            for status in STATUSES:
                pipe.zcard(IDX_STATUS.format(status))
            total, *per_status = pipe.execute()
        except RedisError as exc:
            logger.exception("failed to count gate pass requests")
            raise StoreUnavailable("Request store unavailable") from exc
        stats = {"total": int(total)}
        stats.update({s: int(n) for s, n in zip(STATUSES, per_status)})
        return stats

    # writes --------------------------------------------------------------

    def insert(self, row: dict[str, Any]) -> dict:
        """Insert a new request row and index it. Returns the stored row."""
        row = dict(row)
        row.setdefault("id", generate_id())
        now = utcnow_iso()
        row.setdefault("created_at", now)
        row.setdefault("updated_at", row["created_at"])
        key = REQUEST_KEY.format(row["id"])
        score = to_score(row["created_at"])
        try:
            if not self.client.set(key, json.dumps(row), nx=True):
                raise Conflict("Request id already exists", code="duplicate_id")
            pipe = self.client.pipeline()
            pipe.zadd(IDX_ALL, {row["id"]: score})
            pipe.zadd(IDX_STATUS.format(row["status"]), {row["id"]: score})
            pipe.zadd(IDX_DESIGNATION.format(row["designation"]), {row["id"]: score})
            pipe.execute()
        except RedisError as exc:
            logger.exception("failed to insert gate pass request {}", row["id"])
            try:
                self.client.delete(key)
            except RedisError:
                logger.exception("cleanup failed for request {}", row["id"])
            raise InsertFailed("Failed to save gate pass request") from exc
        return row

    def update(
        self,
        request_id: str,
        patch: dict[str, Any],
        expected_status: str | None = None,
    ) -> dict:
        """Apply ``patch`` atomically.

        When ``expected_status`` is given the write only succeeds if the row
        still has that status when the transaction commits; otherwise
        :class:`Conflict` is raised.
        """
        key = REQUEST_KEY.format(request_id)
        try:
            with self.client.pipeline() as pipe:
                pipe.watch(key)
                row = _loads(pipe.get(key))
                if row is None:
                    raise NotFound("Gate pass request not found")
                old_status = row["status"]
                if expected_status is not None and old_status != expected_status:
                    raise Conflict(
                        f"Request is {old_status}, expected {expected_status}",
                        code="status_conflict",
                    )
                row.update(patch)
                pipe.multi()
                pipe.set(key, json.dumps(row))
                if row["status"] != old_status:
                    score = to_score(row["created_at"])
                    pipe.zrem(IDX_STATUS.format(old_status), request_id)
                    pipe.zadd(IDX_STATUS.format(row["status"]), {request_id: score})
                pipe.execute()
        except WatchError as exc:
            logger.warning("concurrent update on gate pass request {}", request_id)
            raise Conflict(
                "Request was modified concurrently", code="status_conflict"
            ) from exc
        except RedisError as exc:
            logger.exception("failed to update gate pass request {}", request_id)
            raise UpdateFailed("Failed to update gate pass request") from exc
        return row

    def delete(self, request_id: str) -> Optional[dict]:
        """Delete a request and its index entries; return the removed row."""
        key = REQUEST_KEY.format(request_id)
        try:
            row = _loads(self.client.get(key))
            if row is None:
                return None
            pipe = self.client.pipeline()
            pipe.delete(key)
            pipe.zrem(IDX_ALL, request_id)
            pipe.zrem(IDX_STATUS.format(row["status"]), request_id)
            pipe.zrem(IDX_DESIGNATION.format(row["designation"]), request_id)
            pipe.execute()
        except RedisError as exc:
            logger.exception("failed to delete gate pass request {}", request_id)
            raise UpdateFailed("Failed to delete gate pass request") from exc
        return row


class TicketStore:
    """Repository for issued tickets, at most one per visitor request."""

    def __init__(self, client: redis.Redis) -> None:
        self.client = client

    def get(self, ticket_id: str) -> Optional[dict]:
        try:
            return _loads(self.client.get(TICKET_KEY.format(ticket_id)))
        except RedisError as exc:
            logger.exception("failed to fetch ticket {}", ticket_id)
            raise StoreUnavailable("Ticket store unavailable") from exc

    def get_by_request(self, request_id: str) -> Optional[dict]:
        try:
            ticket_id = self.client.hget(TICKET_BY_REQUEST, request_id)
        except RedisError as exc:
            logger.exception("failed to look up ticket for request {}", request_id)
            raise StoreUnavailable("Ticket store unavailable") from exc
        if not ticket_id:
            return None
        return self.get(_decode(ticket_id))

    def list(
        self, *, state: str | None = None, offset: int = 0, limit: int = 25
    ) -> tuple[list[dict], int]:
        """Return ``(tickets, total)`` for one page, newest issued first.

        ``state`` is ``"issued"`` (not yet used), ``"used"`` or ``None``.
        """
        source = TICKET_IDX_STATE.format(state) if state else TICKET_IDX_ALL
        try:
            total = self.client.zcard(source)
            ids = self.client.zrevrange(source, offset, offset + limit - 1)
            keys = [TICKET_KEY.format(_decode(i)) for i in ids]
            raws = self.client.mget(keys) if keys else []
        except RedisError as exc:
            logger.exception("failed to list tickets")
            raise StoreUnavailable("Ticket store unavailable") from exc
        rows = []
        for ticket_id, raw in zip(ids, raws):
            ticket = _loads(raw)
            if ticket is None:
                logger.warning("index points at missing ticket {}", _decode(ticket_id))
                continue
            rows.append(ticket)
        return rows, int(total)

    def scan(
        self, *, state: str | None = None, batch: int = 200, max_rows: int = 5000
    ) -> Iterator[dict]:
        """Yield tickets newest-first in batches, stopping after ``max_rows``."""
        offset = 0
        while offset < max_rows:
            count = min(batch, max_rows - offset)
            rows, total = self.list(state=state, offset=offset, limit=count)
            yield from rows
            offset += count
            if offset >= total:
                return

    def insert(self, ticket: dict[str, Any]) -> dict:
        """Insert ``ticket`` and claim its request; one ticket per request."""
        request_id = ticket["gate_pass_request_id"]
        try:
            with self.client.pipeline() as pipe:
                pipe.watch(TICKET_BY_REQUEST)
                if pipe.hexists(TICKET_BY_REQUEST, request_id):
                    raise Conflict(
                        "A ticket was already issued for this request",
                        code="ticket_exists",
                    )
                pipe.multi()
                pipe.hset(TICKET_BY_REQUEST, request_id, ticket["id"])
                pipe.set(TICKET_KEY.format(ticket["id"]), json.dumps(ticket))
                score = to_score(ticket["issued_at"])
                pipe.zadd(TICKET_IDX_ALL, {ticket["id"]: score})
                pipe.zadd(TICKET_IDX_STATE.format(_state(ticket)), {ticket["id"]: score})
                pipe.execute()
        except WatchError as exc:
            raise Conflict(
                "A ticket was issued concurrently for this request",
                code="ticket_exists",
            ) from exc
        except RedisError as exc:
            logger.exception("failed to insert ticket {}", ticket["id"])
            raise InsertFailed("Failed to save ticket") from exc
        return ticket

    def mark_used(self, ticket_id: str, used_at: str) -> dict:
        """Flag the ticket as used; a ticket can be used exactly once."""
        key = TICKET_KEY.format(ticket_id)
        try:
            with self.client.pipeline() as pipe:
                pipe.watch(key)
                ticket = _loads(pipe.get(key))
                if ticket is None:
                    raise NotFound("Ticket not found")
                if ticket.get("is_used"):
                    raise Conflict("Ticket has already been used", code="ticket_used")
                ticket["is_used"] = True
                ticket["used_at"] = used_at
                pipe.multi()
                pipe.set(key, json.dumps(ticket))
                score = to_score(ticket["issued_at"])
                pipe.zrem(TICKET_IDX_STATE.format("issued"), ticket_id)
                pipe.zadd(TICKET_IDX_STATE.format("used"), {ticket_id: score})
                pipe.execute()
        except WatchError as exc:
            raise Conflict("Ticket has already been used", code="ticket_used") from exc
        except RedisError as exc:
            logger.exception("failed to mark ticket {} used", ticket_id)
            raise UpdateFailed("Failed to update ticket") from exc
        return ticket

    def delete(self, ticket_id: str) -> Optional[dict]:
        key = TICKET_KEY.format(ticket_id)
        try:
            ticket = _loads(self.client.get(key))
            if ticket is None:
                return None
            pipe = self.client.pipeline()
            pipe.delete(key)
            pipe.hdel(TICKET_BY_REQUEST, ticket["gate_pass_request_id"])
            pipe.zrem(TICKET_IDX_ALL, ticket_id)
            pipe.zrem(TICKET_IDX_STATE.format(_state(ticket)), ticket_id)
            pipe.execute()
        except RedisError as exc:
            logger.exception("failed to delete ticket {}", ticket_id)
            raise UpdateFailed("Failed to delete ticket") from exc
        return ticket
