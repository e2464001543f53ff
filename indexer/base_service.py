"""
Supervised listeners for long-running aaindex services.

A service declares its listeners (coroutines that consume a stream until
cancelled) by overriding :meth:`BaseService.listeners`.  Each listener runs
in its own task under :meth:`BaseService._supervise`: an exception is
logged and the listener re-subscribes after ``retry_delay`` seconds, so a
dropped Redis connection pauses a listener instead of ending it.

Work triggered by a message goes through :meth:`BaseService._spawn`, which
tracks the task until it finishes and logs its failure.  :meth:`stop`
cancels listeners and in-flight work alike and never raises.
"""

from __future__ import annotations

import abc
import asyncio
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Coroutine

from core.logger import BoundLogger, get_logger
from core.message_bus import MessageBus

Listener = Callable[[], Awaitable[None]]


class BaseService(abc.ABC):
    """Runs a set of stream listeners and the handler tasks they spawn."""

    def __init__(self, service_id: str, bus: MessageBus, retry_delay: float = 1.0) -> None:
        self.service_id = service_id
        self.bus = bus
        self.retry_delay = retry_delay
        self.log: BoundLogger = get_logger(service_id)
        self._running = False
        self._listeners: dict[str, asyncio.Task[None]] = {}
        self._inflight: set[asyncio.Task[Any]] = set()
        self._last_heartbeat: datetime | None = None
        self._restart_count = 0
        self._failed_count = 0

    @abc.abstractmethod
    def listeners(self) -> dict[str, Listener]:
        """Name -> listener coroutine function."""

    # -- lifecycle -----------------------------------------------------------

    async def start(self) -> None:
        if self._running:
            self.log.warning("Service already running.")
            return

        self._running = True
        for name, listen in self.listeners().items():
            self._listeners[name] = asyncio.create_task(
                self._supervise(name, listen), name=f"{self.service_id}:{name}",
            )
        self.log.info("Service started with listeners: %s", ", ".join(self._listeners))

    async def stop(self) -> None:
        self._running = False
        tasks = [*self._listeners.values(), *self._inflight]
        for task in tasks:
            task.cancel()
        for result in await asyncio.gather(*tasks, return_exceptions=True):
            if isinstance(result, Exception):
                self.log.warning("Task ended with %r during shutdown", result, extra={"error": str(result)})
        self._listeners.clear()
        self._inflight.clear()
        self.log.info("Service stopped.")

    async def _supervise(self, name: str, listen: Listener) -> None:
        while self._running:
            self._last_heartbeat = datetime.now(timezone.utc)
            try:
                await listen()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                self._restart_count += 1
                self.log.exception(
                    "Listener %s failed, restarting in %.1fs", name, self.retry_delay,
                    extra={"error": str(exc)},
                )
            else:
                self.log.warning("Listener %s ended, restarting in %.1fs", name, self.retry_delay)
            await asyncio.sleep(self.retry_delay)

    # -- handler tasks -------------------------------------------------------

    def _spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task[Any]:
        task = asyncio.create_task(coro, name=name)
        self._inflight.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._inflight.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._failed_count += 1
            self.log.error(
                "Handler %s failed: %s", task.get_name(), exc,
                exc_info=exc, extra={"error": str(exc)},
            )

    # -- health --------------------------------------------------------------

    def health(self) -> dict[str, Any]:
        return {
            "service_id": self.service_id,
            "running": self._running,
            "last_heartbeat": (
                self._last_heartbeat.isoformat() if self._last_heartbeat else None
            ),
            "listeners": sorted(name for name, t in self._listeners.items() if not t.done()),
            "listener_restarts": self._restart_count,
            "failed": self._failed_count,
            "inflight": len(self._inflight),
        }
