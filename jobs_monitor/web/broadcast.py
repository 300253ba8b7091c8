"""
Event Broadcast Channel

Fans log lines out to every connected WebSocket subscriber and prunes
subscribers that stop answering liveness pings.

Each subscriber owns a bounded queue drained by its own sender task, so a
slow or broken connection never blocks publish() or the other subscribers,
and frames reach each subscriber in publish order.
"""
import asyncio
import json
import logging
import uuid
from typing import List, Optional, Set

from fastapi import WebSocketDisconnect

from jobs_monitor.domain.errors import TransportFailure
from jobs_monitor.domain.ports import ChannelTransport
from jobs_monitor.infrastructure.logging import get_logger


WELCOME_MESSAGE = "Connected to Amazon Jobs Monitor"
CHANNEL_LOGGER_NAME = "jobs_monitor.channel"

NORMAL_CLOSURE = 1000
GOING_AWAY = 1001
ABNORMAL_CLOSURE = 1006

PING_FRAME = json.dumps({"type": "ping"})
HEARTBEAT_RESPONSE_FRAME = json.dumps({"type": "heartbeat_response"})


def log_frame(message: str) -> str:
    """Serialize a log line as a server frame."""
    return json.dumps({"log": message}, ensure_ascii=False)


class Subscription:
    """
    One connected subscriber.

    Frames are queued with enqueue() and written by the channel's sender
    task for this subscription.
    """

    def __init__(self, transport: ChannelTransport, queue_size: int = 1000):
        self.id = uuid.uuid4().hex[:8]
        self.transport = transport
        self.is_alive = True
        self.close_code: Optional[int] = None
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self.sender: Optional[asyncio.Task] = None
        self._closed = asyncio.Event()

    @property
    def is_closed(self) -> bool:
        return self._closed.is_set()

    def enqueue(self, frame: str) -> None:
        """
        Queue a frame for delivery.

        Raises:
            TransportFailure: If the subscription is closed or its queue is full
        """
        if self.is_closed:
            raise TransportFailure(f"Subscriber {self.id} is closed")
        try:
            self.queue.put_nowait(frame)
        except asyncio.QueueFull:
            raise TransportFailure(f"Subscriber {self.id} queue is full")

    def mark_closed(self, code: Optional[int] = None) -> None:
        if self.close_code is None and code is not None:
            self.close_code = code
        self._closed.set()

    async def wait_closed(self) -> None:
        await self._closed.wait()

    def __repr__(self) -> str:
        return f"Subscription(id={self.id!r}, alive={self.is_alive}, closed={self.is_closed})"


class EventBroadcastChannel:
    """
    Set of live subscribers plus the fan-out of log events.

    publish() is synchronous so it can serve as a logging sink; it may be
    called from any thread once start() has bound the channel to a loop.
    """

    def __init__(
        self,
        ping_interval: float = 30.0,
        queue_size: int = 1000,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the channel.

        Args:
            ping_interval: Seconds between liveness checks
            queue_size: Per-subscriber outbound queue bound
            logger: Diagnostic logger (must not be broadcast)
        """
        self._ping_interval = ping_interval
        self._queue_size = queue_size
        self._logger = logger or get_logger("channel")
        self._subscribers: Set[Subscription] = set()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._liveness_task: Optional[asyncio.Task] = None

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @property
    def subscribers(self) -> List[Subscription]:
        return list(self._subscribers)

    @property
    def is_started(self) -> bool:
        return self._liveness_task is not None and not self._liveness_task.done()

    # ============ Lifecycle ============

    async def start(self) -> None:
        """Bind to the running loop and start the liveness timer."""
        self._loop = asyncio.get_running_loop()
        if self.is_started:
            return
        self._liveness_task = asyncio.create_task(
            self._liveness_loop(), name="channel-liveness"
        )
        self._logger.info("Event channel started (ping every %.0fs)", self._ping_interval)

    async def stop(self) -> None:
        """Cancel the liveness timer and close every subscriber."""
        task = self._liveness_task
        self._liveness_task = None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        for subscription in list(self._subscribers):
            await self._terminate(subscription, GOING_AWAY)

        self._logger.info("Event channel stopped")

    # ============ Subscribers ============

    async def subscribe(self, transport: ChannelTransport) -> Subscription:
        """
        Register an endpoint and send it the welcome frame.

        Raises:
            TransportFailure: If the welcome frame cannot be sent
        """
        if self._loop is None:
            self._loop = asyncio.get_running_loop()

        subscription = Subscription(transport, queue_size=self._queue_size)
        try:
            await transport.send_text(log_frame(WELCOME_MESSAGE))
        except Exception as e:
            subscription.mark_closed(ABNORMAL_CLOSURE)
            raise TransportFailure(f"Welcome frame failed: {e}") from e

        self._subscribers.add(subscription)
        subscription.sender = asyncio.create_task(
            self._deliver(subscription), name=f"channel-sender-{subscription.id}"
        )
        self._logger.info(
            "Subscriber %s connected (%d total)", subscription.id, len(self._subscribers)
        )
        return subscription

    async def unsubscribe(self, subscription: Subscription, code: Optional[int] = None) -> None:
        """Remove a subscriber; nothing published afterwards reaches it."""
        if subscription not in self._subscribers:
            subscription.mark_closed(code)
            return

        self._subscribers.discard(subscription)
        subscription.mark_closed(code)

        sender = subscription.sender
        if sender is not None and sender is not asyncio.current_task() and not sender.done():
            sender.cancel()
            try:
                await sender
            except asyncio.CancelledError:
                pass

        self._logger.info(
            "Subscriber %s disconnected (code: %s, %d left)",
            subscription.id, subscription.close_code, len(self._subscribers),
        )

    # ============ Publishing ============

    def publish(self, message: str) -> Optional[int]:
        """
        Deliver {"log": message} to every open subscriber.

        Per-subscriber failures are logged and skipped. Called from another
        thread, the fan-out is handed to the loop and runs later.

        Returns:
            Number of subscribers the frame was queued for, or None when
            the fan-out was handed to the loop thread
        """
        frame = log_frame(message)
        if self._loop is not None and not self._on_loop_thread():
            if self._loop.is_closed():
                return 0
            self._loop.call_soon_threadsafe(self._fan_out, frame)
            return None
        return self._fan_out(frame)

    def _on_loop_thread(self) -> bool:
        try:
            return asyncio.get_running_loop() is self._loop
        except RuntimeError:
            return False

    def _fan_out(self, frame: str) -> int:
        delivered = 0
        for subscription in list(self._subscribers):
            if subscription.is_closed:
                continue
            try:
                subscription.enqueue(frame)
                delivered += 1
            except TransportFailure as e:
                self._logger.warning("Dropped frame: %s", e)
        return delivered

    async def _deliver(self, subscription: Subscription) -> None:
        """Sender task: drain the queue in order until the subscriber goes away."""
        while True:
            frame = await subscription.queue.get()
            try:
                await subscription.transport.send_text(frame)
            except Exception as e:
                failure = TransportFailure(f"Send to {subscription.id} failed: {e}")
                self._logger.warning(str(failure))
                await self.unsubscribe(subscription, ABNORMAL_CLOSURE)
                return

    # ============ Inbound frames ============

    def handle_frame(self, subscription: Subscription, raw: str) -> None:
        """Process one client frame. Malformed frames are ignored."""
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            self._logger.warning("Ignoring malformed frame from %s: %r", subscription.id, raw)
            return

        if not isinstance(data, dict):
            self._logger.warning("Ignoring non-object frame from %s: %r", subscription.id, raw)
            return

        # Any well-formed frame proves the client is still there
        subscription.is_alive = True
        frame_type = data.get("type")
        if frame_type == "heartbeat":
            try:
                subscription.enqueue(HEARTBEAT_RESPONSE_FRAME)
            except TransportFailure as e:
                self._logger.warning("Heartbeat response dropped: %s", e)
        elif frame_type != "pong":
            self._logger.debug("Unknown frame type from %s: %r", subscription.id, frame_type)

    async def _receive(self, subscription: Subscription) -> None:
        while True:
            try:
                raw = await subscription.transport.receive_text()
            except WebSocketDisconnect as e:
                subscription.mark_closed(e.code)
                return
            except Exception as e:
                self._logger.warning(
                    "Receive from %s failed: %s", subscription.id, TransportFailure(str(e))
                )
                subscription.mark_closed(ABNORMAL_CLOSURE)
                return
            self.handle_frame(subscription, raw)

    async def serve(self, transport: ChannelTransport) -> int:
        """
        Run one connection from subscribe to unsubscribe.

        Returns:
            The close code of the connection
        """
        try:
            subscription = await self.subscribe(transport)
        except TransportFailure as e:
            self._logger.warning(str(e))
            return ABNORMAL_CLOSURE

        receiver = asyncio.create_task(self._receive(subscription))
        closed = asyncio.create_task(subscription.wait_closed())
        try:
            await asyncio.wait({receiver, closed}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (receiver, closed):
                if not task.done():
                    task.cancel()
            await asyncio.gather(receiver, closed, return_exceptions=True)
            await self.unsubscribe(subscription)

        return subscription.close_code or NORMAL_CLOSURE

    # ============ Liveness ============

    async def check_liveness(self) -> List[Subscription]:
        """
        Run one liveness cycle.

        Subscribers that did not answer the previous ping are closed with
        code 1001; the rest are marked pending and pinged.

        Returns:
            Subscriptions that were terminated
        """
        terminated = []
        for subscription in list(self._subscribers):
            if not subscription.is_alive:
                terminated.append(subscription)
                await self._terminate(subscription, GOING_AWAY)
                continue

            subscription.is_alive = False
            try:
                subscription.enqueue(PING_FRAME)
            except TransportFailure as e:
                self._logger.warning("Ping dropped: %s", e)

        if terminated:
            self._logger.info("Liveness check closed %d subscriber(s)", len(terminated))
        return terminated

    async def _liveness_loop(self) -> None:
        while True:
            await asyncio.sleep(self._ping_interval)
            await self.check_liveness()

    async def _terminate(self, subscription: Subscription, code: int) -> None:
        subscription.mark_closed(code)
        try:
            await subscription.transport.close(code=code)
        except Exception as e:
            self._logger.debug("Close of %s failed: %s", subscription.id, e)
        await self.unsubscribe(subscription, code)
