"""
Tiered execution of EventBus listeners.

CRITICAL and HIGH listeners run one after another under a timeout. NORMAL
listeners run concurrently and are awaited. LOW listeners are scheduled as
background tasks and not awaited.

Sync callbacks run inline on the event loop. Observers in this client are
small state updates and the session owns a single loop.

A failing listener is logged and counted; it never propagates into the
publisher.
"""

from __future__ import annotations

import asyncio
import inspect
from logging import Logger
from typing import Any, Optional

from fightslot.core.event.metrics import EventMetricsRecorder
from fightslot.core.event.types import EventListener, EventPayload, ListenerPriority


def handle_listener_error(
    *,
    logger: Logger,
    event_name: str,
    listener: EventListener,
    exc: BaseException,
    metrics: Optional[EventMetricsRecorder],
) -> None:
    if metrics is not None:
        metrics.record_error(event_name)

    logger.error(
        "EventBus listener error",
        extra={
            "event_name": event_name,
            "listener_id": listener.identifier,
            "priority": listener.priority.name,
            "error": str(exc),
            "error_type": type(exc).__name__,
        },
        exc_info=not isinstance(exc, asyncio.TimeoutError),
    )


class EventScheduler:
    def __init__(self) -> None:
        # Strong refs so LOW-tier tasks are not garbage collected mid-flight
        self._background_tasks: set[asyncio.Task[Any]] = set()

    async def execute(
        self,
        *,
        event_name: str,
        payload: EventPayload,
        listeners: list[EventListener],
        metrics: Optional[EventMetricsRecorder],
        logger: Logger,
        critical_timeout: Optional[float],
        high_timeout: Optional[float],
    ) -> list[Any]:
        """
        Run ``listeners`` (already ordered) and return awaited results.

        LOW-tier results are not part of the return value.
        """
        results: list[Any] = []
        normal: list[EventListener] = []
        low: list[EventListener] = []

        for listener in listeners:
            if listener.priority is ListenerPriority.CRITICAL:
                results.append(
                    await self._run_with_timeout(
                        listener, event_name, payload, metrics, logger, critical_timeout
                    )
                )
            elif listener.priority is ListenerPriority.HIGH:
                results.append(
                    await self._run_with_timeout(
                        listener, event_name, payload, metrics, logger, high_timeout
                    )
                )
            elif listener.priority is ListenerPriority.NORMAL:
                normal.append(listener)
            else:
                low.append(listener)

        if normal:
            results.extend(
                await asyncio.gather(
                    *[
                        self._run_listener(lst, event_name, payload, metrics, logger)
                        for lst in normal
                    ]
                )
            )

        if low:
            loop = asyncio.get_running_loop()
            for listener in low:
                task = loop.create_task(
                    self._run_listener(listener, event_name, payload, metrics, logger),
                    name=f"eventbus-low-{event_name}-{listener.identifier}",
                )
                self._background_tasks.add(task)
                task.add_done_callback(self._background_tasks.discard)

        return results

    async def _run_with_timeout(
        self,
        listener: EventListener,
        event_name: str,
        payload: EventPayload,
        metrics: Optional[EventMetricsRecorder],
        logger: Logger,
        timeout: Optional[float],
    ) -> Any:
        if timeout is None or timeout <= 0:
            return await self._run_listener(listener, event_name, payload, metrics, logger)

        try:
            return await asyncio.wait_for(
                self._run_listener(listener, event_name, payload, metrics, logger),
                timeout=timeout,
            )
        except asyncio.TimeoutError as exc:
            logger.error(
                "EventBus listener timeout",
                extra={
                    "event_name": event_name,
                    "listener_id": listener.identifier,
                    "timeout_seconds": timeout,
                },
            )
            handle_listener_error(
                logger=logger,
                event_name=event_name,
                listener=listener,
                exc=exc,
                metrics=metrics,
            )
            return None

    async def _run_listener(
        self,
        listener: EventListener,
        event_name: str,
        payload: EventPayload,
        metrics: Optional[EventMetricsRecorder],
        logger: Logger,
    ) -> Any:
        try:
            result = listener.callback(payload)
            if inspect.isawaitable(result):
                result = await result
            return result
        except Exception as exc:
            handle_listener_error(
                logger=logger,
                event_name=event_name,
                listener=listener,
                exc=exc,
                metrics=metrics,
            )
            return None

    def get_background_task_count(self) -> int:
        return len(self._background_tasks)

    async def drain(self) -> None:
        """Wait for outstanding LOW-tier tasks."""
        if self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)
