"""Graceful shutdown coordination for the gateway's background services."""

from __future__ import annotations

import asyncio
import logging
import signal
import threading
import weakref
from datetime import timedelta

logger = logging.getLogger(__name__)


class ShutdownReceiver:
    """One subscriber's view of the shutdown broadcast."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def _deliver(self) -> None:
        self._event.set()

    async def recv(self) -> None:
        """Wait until a shutdown signal arrives and consume it."""
        await self._event.wait()
        self._event.clear()

    def try_recv(self) -> bool:
        """Consume a pending shutdown signal if there is one; report whether there was."""
        if self._event.is_set():
            self._event.clear()
            return True
        return False


class ShutdownCoordinator:
    """Broadcasts a single shutdown signal to every subscribed receiver."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._initiated = False
        self._receivers: weakref.WeakSet[ShutdownReceiver] = weakref.WeakSet()

    def is_shutdown_initiated(self) -> bool:
        return self._initiated

    def subscribe(self) -> ShutdownReceiver:
        """Create a receiver that sees shutdown signals sent from now on."""
        receiver = ShutdownReceiver()
        with self._lock:
            self._receivers.add(receiver)
        return receiver

    def initiate_shutdown(self) -> None:
        """Start shutdown; only the first call broadcasts."""
        with self._lock:
            if self._initiated:
                return
            self._initiated = True
            receivers = list(self._receivers)
        logger.info("Initiating graceful shutdown...")
        if not receivers:
            logger.warning("Failed to send shutdown signal: no active receivers")
        for receiver in receivers:
            receiver._deliver()

    async def wait_for_shutdown_signal(self) -> None:
        """Wait for SIGINT or SIGTERM, then initiate shutdown."""
        loop = asyncio.get_running_loop()
        received: asyncio.Future[signal.Signals] = loop.create_future()

        def _on_signal(signum: signal.Signals) -> None:
            if not received.done():
                received.set_result(signum)

        wanted = [signal.SIGINT]
        if hasattr(signal, "SIGTERM"):
            wanted.append(signal.SIGTERM)

        loop_handled: list[signal.Signals] = []
        previous: dict[signal.Signals, object] = {}
        for signum in wanted:
            try:
                loop.add_signal_handler(signum, _on_signal, signum)
                loop_handled.append(signum)
            except (NotImplementedError, RuntimeError):
                previous[signum] = signal.signal(
                    signum,
                    lambda num, _frame: loop.call_soon_threadsafe(
                        _on_signal, signal.Signals(num)
                    ),
                )
        try:
            signum = await received
        finally:
            for handled in loop_handled:
                loop.remove_signal_handler(handled)
            for handled, handler in previous.items():
                signal.signal(handled, handler)

        if signum == signal.SIGINT:
            logger.info("Received Ctrl+C signal")
        else:
            logger.info("Received SIGTERM signal")
        self.initiate_shutdown()

    async def wait_for_tasks_completion(self, timeout_seconds: float) -> bool:
        """Give background tasks a short grace period, bounded by the timeout.

        Returns True when the grace period ended before the timeout.
        """
        logger.info(
            "Waiting up to %s seconds for background tasks to complete...", timeout_seconds
        )
        grace = 2.0
        if timeout_seconds < grace:
            await asyncio.sleep(timeout_seconds)
            logger.warning(
                "Shutdown timeout reached, some tasks may not have completed gracefully"
            )
            return False
        await asyncio.sleep(grace)
        logger.info("Background tasks completed shutdown")
        return True


class ShutdownAwareTask:
    """Helper for background loops that must stop when shutdown begins."""

    def __init__(self, coordinator: ShutdownCoordinator) -> None:
        self._receiver = coordinator.subscribe()

    def should_shutdown(self) -> bool:
        return self._receiver.try_recv()

    async def wait_or_shutdown(self, duration: float | timedelta) -> bool:
        """Sleep for ``duration``; return True early if shutdown is signalled."""
        seconds = duration.total_seconds() if isinstance(duration, timedelta) else duration
        try:
            await asyncio.wait_for(self._receiver.recv(), seconds)
        except asyncio.TimeoutError:
            return False
        return True