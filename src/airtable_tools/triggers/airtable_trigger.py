"""
Airtable polling trigger.

Lists a table on a fixed interval and emits records created since the
previous successful poll. Each running trigger owns one PollState
(the watermark) and one timer task.

Usage:
    trigger = AirtableTrigger(config, credentials, emit=handle_batch)
    handle = await trigger.start()
    ...
    handle.cancel()
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from airtable_tools.config import MAX_PAGE_SIZE, TriggerConfig
from airtable_tools.credentials import AirtableCredentials
from airtable_tools.tools.airtable_tool.client import AirtableClient

logger = logging.getLogger(__name__)

Item = dict[str, Any]
Emit = Callable[[list[Item]], Awaitable[None] | None]
Clock = Callable[[], datetime]
Sleep = Callable[[float], Awaitable[Any]]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_created_time(value: Any) -> datetime | None:
    """Parse Airtable's ISO-8601 createdTime ('2024-01-01T00:00:00.000Z')."""
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class PollState:
    """Watermark of one trigger: records created after last_check are new."""

    last_check: datetime = field(default_factory=utc_now)


def select_new_records(records: list[Mapping[str, Any]], last_check: datetime) -> list[Item]:
    """Project records whose createdTime is strictly after last_check into items."""
    new_items: list[Item] = []
    for record in records:
        created = parse_created_time(record.get("createdTime"))
        if created is None:
            logger.debug(f"Skipping record {record.get('id')!r} without a valid createdTime")
            continue
        if created > last_check:
            new_items.append({
                "json": {
                    "recordId": record.get("id"),
                    "fields": record.get("fields", {}),
                    "createdTime": record.get("createdTime"),
                }
            })
    return new_items


async def run_poll_cycle(
    state: PollState,
    client: AirtableClient,
    config: TriggerConfig,
    clock: Clock = utc_now,
) -> list[Item]:
    """
    Run one fetch-and-diff cycle.

    On success the watermark advances to the cycle's completion time and the
    new records are returned. On failure the exception propagates and
    `state` is left untouched.
    """
    response = await client.list_records(
        config.base_id,
        config.table_name,
        filter_formula=config.filter_formula or None,
        page_size=MAX_PAGE_SIZE,
    )
    new_items = select_new_records(response.get("records", []), state.last_check)
    state.last_check = clock()
    return new_items


class PollingHandle:
    """Cancellation handle returned by AirtableTrigger.start()."""

    def __init__(self, trigger: "AirtableTrigger"):
        self._trigger = trigger

    @property
    def cancelled(self) -> bool:
        return self._trigger.stopped

    def cancel(self) -> None:
        self._trigger.stop()

    def __call__(self) -> None:
        self.cancel()


class AirtableTrigger:
    """
    Polls an Airtable table and emits newly created records.

    States: idle (timer armed), polling (one cycle in flight) and stopped.
    A timer tick that finds a cycle still in flight is skipped, never
    queued. Cycle failures are logged and the timer keeps ticking; only
    stop() ends the loop.
    """

    def __init__(
        self,
        config: TriggerConfig,
        credentials: AirtableCredentials,
        emit: Emit,
        client: AirtableClient | None = None,
        clock: Clock = utc_now,
        sleep: Sleep = asyncio.sleep,
    ):
        self.config = config
        self._emit = emit
        self._clock = clock
        self._sleep = sleep
        self._client = client or AirtableClient(
            credentials,
            retry_policy=config.retry_policy,
            timeout_ms=config.timeout,
        )
        self.state: PollState | None = None
        self._timer_task: asyncio.Task | None = None
        self._cycle_task: asyncio.Task | None = None
        self._in_flight = False
        self._stopped = False

    @property
    def stopped(self) -> bool:
        return self._stopped

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def interval_seconds(self) -> float:
        return self.config.interval_ms / 1000

    async def start(self) -> PollingHandle:
        """Poll once immediately, then arm the timer."""
        if self._timer_task is not None or self._stopped:
            raise RuntimeError("Airtable trigger already started")

        self.state = PollState(last_check=self._clock())
        logger.info(
            "Starting Airtable trigger",
            extra={
                "base_id": self.config.base_id,
                "table_name": self.config.table_name,
                "interval_ms": self.config.interval_ms,
            },
        )

        self._in_flight = True
        await self._run_cycle()

        if not self._stopped:
            self._timer_task = asyncio.create_task(self._run_timer())
        return PollingHandle(self)

    def stop(self) -> None:
        """Cancel the timer. A cycle already in flight finishes but emits nothing."""
        if self._stopped:
            return
        self._stopped = True
        if self._timer_task is not None:
            self._timer_task.cancel()
            self._timer_task = None
        logger.info("Airtable trigger stopped")

    async def _run_timer(self) -> None:
        interval = self.interval_seconds
        while not self._stopped:
            await self._sleep(interval)
            if self._stopped:
                break
            if self._in_flight:
                logger.warning("Previous Airtable poll still running; skipping this tick")
                continue
            self._in_flight = True
            self._cycle_task = asyncio.create_task(self._run_cycle())

    async def _run_cycle(self) -> None:
        try:
            new_items = await run_poll_cycle(self.state, self._client, self.config, self._clock)
            if new_items and not self._stopped:
                result = self._emit(new_items)
                if inspect.isawaitable(result):
                    await result
        except Exception as e:
            logger.error(f"Airtable polling error: {e}")
        finally:
            self._in_flight = False


async def start_polling(
    config: TriggerConfig | Mapping[str, Any],
    credentials: AirtableCredentials | Mapping[str, Any],
    emit: Emit,
    **kwargs: Any,
) -> PollingHandle:
    """Validate configuration and credentials, start a trigger, return its handle."""
    if not isinstance(config, TriggerConfig):
        config = TriggerConfig(**config)
    if not isinstance(credentials, AirtableCredentials):
        credentials = AirtableCredentials.from_mapping(credentials)
    trigger = AirtableTrigger(config, credentials, emit, **kwargs)
    return await trigger.start()


def stop_polling(handle: PollingHandle) -> None:
    handle.cancel()
