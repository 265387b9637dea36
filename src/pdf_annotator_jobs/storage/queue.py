"""In-process queue transport with at-least-once delivery."""

from __future__ import annotations

import asyncio
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Self

import aiojobs
import structlog

from pdf_annotator_jobs.jobs.codec import encode
from pdf_annotator_jobs.jobs.exceptions import TransportError


if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from pdf_annotator_jobs.config import QueuesConfig

    MessageHandler = Callable[[Any], Awaitable[None]]


__all__ = ["InProcessQueue", "QueueMessage"]


@dataclass(slots=True)
class QueueMessage:
    """A message held by the transport.

    Attributes:
        queue_name: Queue the message was sent to.
        body: Encoded message text exactly as handed to consumers.
        message_id: Transport-assigned identifier.
        dequeue_count: Number of deliveries attempted so far.
        inserted_at: When the message was enqueued.
        last_error: Message of the most recent failed delivery.
    """

    queue_name: str
    body: str
    message_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    dequeue_count: int = 0
    inserted_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    last_error: str | None = None


class InProcessQueue:
    """Queue transport delivering messages to registered consumers.

    Emulates a hosted storage-queue runtime inside the service process:
    payloads are encoded with the queue codec, each message is delivered to
    the consumer registered for its queue on an ``aiojobs.Scheduler``, and a
    delivery that raises is retried until ``max_dequeue_count`` deliveries
    have failed, after which the message moves to ``<queue>-poison``.
    Delivery is at-least-once; consumers must be idempotent.

    Example:
        ```python
        queue = InProcessQueue(config=settings.queues)
        queue.register(settings.queues.export, export_worker.handle)

        async with queue:
            await queue.send_queue_message("q-export", {"jobId": "..."})
            await queue.drain()
        ```
    """

    DEFAULT_WORKERS = 2
    DEFAULT_MAX_DEQUEUE_COUNT = 5
    DEFAULT_PENDING_LIMIT = 10000
    POISON_SUFFIX = "-poison"

    def __init__(
        self,
        *,
        workers: int | None = None,
        max_dequeue_count: int | None = None,
        redelivery_delay: float | None = None,
        pending_limit: int | None = None,
        config: QueuesConfig | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            workers: Maximum concurrent deliveries. Overrides config.
            max_dequeue_count: Deliveries before a message is poisoned.
                Overrides config.
            redelivery_delay: Seconds to wait before redelivering a failed
                message. Overrides config.
            pending_limit: Maximum deliveries waiting for a worker slot.
            config: QueuesConfig providing the defaults.
        """
        if config is not None:
            default_workers = config.workers
            default_max = config.max_dequeue_count
            default_delay = config.redelivery_delay_seconds
        else:
            default_workers = self.DEFAULT_WORKERS
            default_max = self.DEFAULT_MAX_DEQUEUE_COUNT
            default_delay = 0.0

        self._workers = workers if workers is not None else default_workers
        self._max_dequeue_count = (
            max_dequeue_count if max_dequeue_count is not None else default_max
        )
        self._redelivery_delay = float(
            redelivery_delay if redelivery_delay is not None else default_delay,
        )
        self._pending_limit = pending_limit or self.DEFAULT_PENDING_LIMIT

        self._scheduler: aiojobs.Scheduler | None = None
        self._handlers: dict[str, MessageHandler] = {}
        self._unconsumed: defaultdict[str, list[QueueMessage]] = defaultdict(list)
        self._poison: defaultdict[str, list[QueueMessage]] = defaultdict(list)
        self._in_flight = 0
        self._idle = asyncio.Event()
        self._idle.set()
        self._logger = structlog.get_logger(__name__)

    @property
    def is_running(self) -> bool:
        """Return True if the scheduler accepts deliveries."""
        return self._scheduler is not None and not self._scheduler.closed

    @property
    def max_dequeue_count(self) -> int:
        """Return the number of deliveries before a message is poisoned."""
        return self._max_dequeue_count

    async def __aenter__(self) -> Self:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.stop()

    def register(self, queue_name: str, handler: MessageHandler) -> None:
        """Register the consumer of ``queue_name``.

        Raises:
            ValueError: A consumer is already registered for the queue.
        """
        if queue_name in self._handlers:
            msg = f"Queue already has a consumer: {queue_name}"
            raise ValueError(msg)
        self._handlers[queue_name] = handler

    async def start(self) -> None:
        """Start the delivery scheduler."""
        if self.is_running:
            return

        self._scheduler = aiojobs.Scheduler(
            limit=self._workers,
            pending_limit=self._pending_limit,
            close_timeout=10.0,
        )
        self._logger.info(
            "queue_transport_started",
            workers=self._workers,
            max_dequeue_count=self._max_dequeue_count,
            queues=sorted(self._handlers),
        )

    async def stop(self, *, timeout: float | None = None) -> None:  # noqa: ASYNC109
        """Wait for in-flight deliveries, then close the scheduler."""
        if self._scheduler is None or self._scheduler.closed:
            return

        self._logger.info("queue_transport_stopping", in_flight=self._in_flight)
        await self._scheduler.wait_and_close(timeout=timeout)
        self._logger.info("queue_transport_stopped")

    async def send_queue_message(
        self,
        queue_name: str,
        payload: dict[str, Any],
    ) -> None:
        """Encode ``payload`` and enqueue it.

        Messages for a queue without a registered consumer are retained and
        can be inspected with :meth:`messages`.

        Raises:
            TransportError: The transport has not been started.
        """
        if self._scheduler is None or self._scheduler.closed:
            msg = f"Queue transport is not running: {queue_name}"
            raise TransportError(msg, operation="send")

        message = QueueMessage(queue_name=queue_name, body=encode(payload))

        if queue_name not in self._handlers:
            self._unconsumed[queue_name].append(message)
            self._logger.warning(
                "queue_message_unconsumed",
                queue=queue_name,
                message_id=message.message_id,
            )
            return

        self._in_flight += 1
        self._idle.clear()
        try:
            await self._scheduler.spawn(self._deliver(message))
        except Exception:
            self._finish_delivery()
            raise

        self._logger.debug(
            "queue_message_sent",
            queue=queue_name,
            message_id=message.message_id,
        )

    async def _deliver(self, message: QueueMessage) -> None:
        handler = self._handlers[message.queue_name]
        log = self._logger.bind(
            queue=message.queue_name,
            message_id=message.message_id,
        )
        try:
            while True:
                message.dequeue_count += 1
                try:
                    await handler(message.body)
                except Exception as exc:  # noqa: BLE001
                    message.last_error = str(exc) or type(exc).__name__
                    if message.dequeue_count >= self._max_dequeue_count:
                        poison_queue = message.queue_name + self.POISON_SUFFIX
                        self._poison[poison_queue].append(message)
                        log.error(
                            "queue_message_poisoned",
                            poison_queue=poison_queue,
                            dequeue_count=message.dequeue_count,
                            error=message.last_error,
                        )
                        return
                    log.warning(
                        "queue_message_redelivering",
                        dequeue_count=message.dequeue_count,
                        error=message.last_error,
                    )
                    if self._redelivery_delay:
                        await asyncio.sleep(self._redelivery_delay)
                else:
                    log.debug(
                        "queue_message_delivered",
                        dequeue_count=message.dequeue_count,
                    )
                    return
        finally:
            self._finish_delivery()

    def _finish_delivery(self) -> None:
        self._in_flight -= 1
        if self._in_flight == 0:
            self._idle.set()

    async def drain(self) -> None:
        """Wait until every sent message has been delivered or poisoned."""
        await self._idle.wait()

    def messages(self, queue_name: str) -> list[QueueMessage]:
        """Return messages retained for a queue with no consumer.

        Poisoned messages are found under ``<queue>-poison``.
        """
        if queue_name.endswith(self.POISON_SUFFIX):
            return list(self._poison.get(queue_name, []))
        return list(self._unconsumed.get(queue_name, []))
