"""
Stage runner.

Consumes one topic for one stage worker. Each assigned partition is
processed blocking: one event is handled to completion (including all
retries) and acked before the next one is fetched, which preserves
per-document order. Partitions run concurrently on a thread pool.

A delivery whose handling raised (e.g. the follow-up event could not
be published) is nacked and redelivered; handling is idempotent, so
redelivery is safe. Shutdown stops polling and lets in-flight events
finish.

Dependencies: concurrent.futures, threading, signal (stdlib)
System role: Process-level driver for stage workers
"""

from concurrent.futures import ThreadPoolExecutor
import logging
import signal
import threading
import time

from docflow.boundary.bus.base import Delivery, TopicBus
from docflow.core.exceptions import BusUnavailableError, MessageParseError
from docflow.core.pipeline.models.events import decode_event
from docflow.core.pipeline.models.results import StageOutcome
from docflow.core.pipeline.stages.base import StageWorker
from docflow.observability.log_utils import log_exception_with_context

logger = logging.getLogger(__name__)


class StageRunner:
    """Poll-handle-ack loop for one stage."""

    def __init__(
        self,
        worker: StageWorker,
        bus: TopicBus,
        concurrency: int | None = None,
        poll_timeout: float = 1.0,
        failure_backoff: float = 1.0,
    ) -> None:
        """
        Initialize runner.

        Args:
            worker: Stage worker with a consumed topic
            bus: Topic bus
            concurrency: Consumer threads (defaults to the bus partition count)
            poll_timeout: Seconds to wait for a message on each poll
            failure_backoff: Pause after a nacked delivery
        """
        if worker.consumes is None:
            raise ValueError(f"Stage {worker.name} does not consume a topic")
        self.worker = worker
        self.bus = bus
        self.concurrency = concurrency or bus.partitions
        self.poll_timeout = poll_timeout
        self.failure_backoff = failure_backoff
        self._stop = threading.Event()
        self.nacked = 0

    @property
    def topic(self):
        return self.worker.consumes

    def assigned_partitions(self, slot: int) -> list[int]:
        """Partitions polled by consumer thread `slot`."""
        partitions = [p for p in range(self.bus.partitions) if p % self.concurrency == slot]
        return partitions or [slot % self.bus.partitions]

    def stop(self) -> None:
        """Stop polling; in-flight events finish."""
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def install_signal_handlers(self) -> None:
        """Stop on SIGTERM/SIGINT (main thread only)."""
        def _handler(signum, _frame):
            logger.info(f"{__name__}:signal - Received {signal.Signals(signum).name}, shutting down")
            self.stop()

        signal.signal(signal.SIGTERM, _handler)
        signal.signal(signal.SIGINT, _handler)

    def run(self) -> None:
        """Consume until stop() is called."""
        logger.info(
            f"{__name__}:run - Starting {self.worker.name} on {self.topic.value}",
            extra={"concurrency": self.concurrency, "partitions": self.bus.partitions},
        )
        with ThreadPoolExecutor(
            max_workers=self.concurrency,
            thread_name_prefix=f"docflow-{self.worker.name}",
        ) as pool:
            futures = [pool.submit(self._consume, slot) for slot in range(self.concurrency)]
            for future in futures:
                future.result()
        logger.info(f"{__name__}:run - {self.worker.name} stopped")

    def _consume(self, slot: int) -> None:
        partitions = self.assigned_partitions(slot)
        wait = self.poll_timeout / max(len(partitions), 1)
        while not self._stop.is_set():
            idle = True
            for partition in partitions:
                if self._stop.is_set():
                    break
                try:
                    deliveries = self.bus.poll(self.topic, partition, max_messages=1, timeout=wait)
                except BusUnavailableError as e:
                    logger.warning(f"{__name__}:_consume - Poll failed on partition {partition}: {e}")
                    self._stop.wait(self.failure_backoff)
                    continue
                for delivery in deliveries:
                    idle = False
                    try:
                        self.process_delivery(delivery)
                    except Exception as e:
                        log_exception_with_context(
                            logger,
                            f"{__name__}:_consume - Delivery on partition {partition} failed, redelivering",
                            e,
                            offset=delivery.offset,
                        )
                        self._nack(delivery)
                        self._stop.wait(self.failure_backoff)
            if idle and wait <= 0:
                time.sleep(0.05)

    def process_delivery(self, delivery: Delivery) -> StageOutcome | None:
        """
        Decode, handle and acknowledge one delivery.

        Args:
            delivery: Message from the bus

        Returns:
            StageOutcome | None: None when the message was unreadable or nacked
        """
        try:
            event = decode_event(delivery.topic, delivery.payload)
        except MessageParseError as e:
            # Without a doc_id there is nothing to re-drive; drop it
            log_exception_with_context(
                logger,
                f"{__name__}:process_delivery - Dropping unreadable message on {delivery.topic.value}",
                e,
                offset=delivery.offset,
            )
            self._ack(delivery)
            return None

        try:
            outcome = self.worker.handle(event)
        except Exception as e:
            log_exception_with_context(
                logger,
                f"{__name__}:process_delivery - {self.worker.name} could not complete, redelivering",
                e,
                doc_id=event.doc_id,
                delivery_count=delivery.delivery_count,
            )
            self._nack(delivery)
            self.nacked += 1
            if self.failure_backoff:
                self._stop.wait(self.failure_backoff)
            return None

        self._ack(delivery)
        return outcome

    def _ack(self, delivery: Delivery) -> None:
        try:
            self.bus.ack(delivery)
        except BusUnavailableError as e:
            # Redelivered after the visibility timeout; handling is idempotent
            logger.warning(
                f"{__name__}:_ack - Ack failed on {delivery.topic.value}, "
                f"message will be redelivered: {e}",
                extra={"offset": delivery.offset},
            )

    def _nack(self, delivery: Delivery) -> None:
        try:
            self.bus.nack(delivery)
        except BusUnavailableError as e:
            logger.warning(
                f"{__name__}:_nack - Nack failed on {delivery.topic.value}, "
                f"redelivery waits for the visibility timeout: {e}",
                extra={"offset": delivery.offset},
            )

    def drain(self, max_events: int | None = None) -> list[StageOutcome]:
        """
        Handle every currently available message, then return.

        Args:
            max_events: Optional upper bound on handled messages

        Returns:
            list[StageOutcome]: Outcomes in handling order
        """
        outcomes: list[StageOutcome] = []
        # Partitions whose head message was nacked sit out this drain
        blocked: set[int] = set()
        progressed = True
        while progressed:
            progressed = False
            for partition in range(self.bus.partitions):
                if partition in blocked:
                    continue
                for delivery in self.bus.poll(self.topic, partition, max_messages=1, timeout=0):
                    nacked = self.nacked
                    outcome = self.process_delivery(delivery)
                    if self.nacked != nacked:
                        blocked.add(partition)
                        continue
                    progressed = True
                    if outcome is not None:
                        outcomes.append(outcome)
                    if max_events is not None and len(outcomes) >= max_events:
                        return outcomes
        return outcomes


def drain_pipeline(runners: list[StageRunner], max_rounds: int = 100) -> list[StageOutcome]:
    """
    Drain runners in pipeline order until no stage has work left.

    Args:
        runners: Runners ordered by stage
        max_rounds: Safety bound on passes

    Returns:
        list[StageOutcome]: All outcomes
    """
    outcomes: list[StageOutcome] = []
    for _ in range(max_rounds):
        handled = []
        for runner in runners:
            handled.extend(runner.drain())
        if not handled:
            break
        outcomes.extend(handled)
    return outcomes
