"""
In-memory topic bus.

Partitioned append-only logs with one committed offset per
(group, topic, partition). A partition hands out its next message only
after the previous one is acked, matching blocking per-partition
consumption; nacked messages are redelivered from the committed offset.

Dependencies: threading (stdlib)
System role: Bus backend for tests and single-process runs
"""

from collections import defaultdict
import logging
import threading

from docflow.boundary.bus.base import Delivery, TopicBus, partition_for
from docflow.core.pipeline.models.events import PipelineEvent, Topic, decode_event, encode_event

logger = logging.getLogger(__name__)


class InMemoryTopicBus(TopicBus):
    """Thread-safe in-process implementation of TopicBus."""

    def __init__(self, partitions: int = 4, group: str = "docflow") -> None:
        """
        Initialize empty logs.

        Args:
            partitions: Partitions per topic
            group: Consumer group owning the committed offsets
        """
        self.partitions = partitions
        self._group = group
        self._lock = threading.Condition()
        # topic -> partition -> [(key, payload)]
        self._logs: dict[Topic, list[list[tuple[str, str]]]] = defaultdict(
            lambda: [[] for _ in range(self.partitions)]
        )
        self._committed: dict[tuple[Topic, int], int] = defaultdict(int)
        self._inflight: dict[tuple[Topic, int], set[int]] = defaultdict(set)
        self._acked: dict[tuple[Topic, int], set[int]] = defaultdict(set)
        self._deliveries: dict[tuple[Topic, int, int], int] = defaultdict(int)
        self._published: dict[Topic, list[str]] = defaultdict(list)

    def publish(self, topic: Topic, event: PipelineEvent) -> None:
        topic = Topic(topic)
        payload = encode_event(event)
        partition = partition_for(event.doc_id, self.partitions)
        with self._lock:
            self._logs[topic][partition].append((event.doc_id, payload))
            self._published[topic].append(payload)
            self._lock.notify_all()
        logger.debug(
            f"{__name__}:publish - {topic.value}[{partition}] doc_id={event.doc_id}",
        )

    def poll(
        self,
        topic: Topic,
        partition: int,
        max_messages: int = 1,
        timeout: float = 0.0,
    ) -> list[Delivery]:
        topic = Topic(topic)
        slot = (topic, partition)
        with self._lock:
            if timeout > 0 and not self._available(slot):
                self._lock.wait_for(lambda: self._available(slot), timeout=timeout)
            if not self._available(slot):
                return []
            start = self._committed[slot]
            log = self._logs[topic][partition]
            deliveries = []
            for offset in range(start, min(start + max_messages, len(log))):
                key, payload = log[offset]
                self._inflight[slot].add(offset)
                self._deliveries[(topic, partition, offset)] += 1
                deliveries.append(
                    Delivery(
                        topic=topic,
                        partition=partition,
                        offset=offset,
                        key=key,
                        payload=payload,
                        delivery_count=self._deliveries[(topic, partition, offset)],
                    )
                )
            return deliveries

    def ack(self, delivery: Delivery) -> None:
        slot = (delivery.topic, delivery.partition)
        with self._lock:
            self._inflight[slot].discard(delivery.offset)
            self._acked[slot].add(delivery.offset)
            while self._committed[slot] in self._acked[slot]:
                self._acked[slot].discard(self._committed[slot])
                self._committed[slot] += 1
            self._lock.notify_all()

    def nack(self, delivery: Delivery) -> None:
        slot = (delivery.topic, delivery.partition)
        with self._lock:
            # Redeliver everything from the committed offset
            self._inflight[slot].clear()
            self._acked[slot] = {o for o in self._acked[slot] if o < delivery.offset}
            self._lock.notify_all()
        logger.info(
            f"{__name__}:nack - {delivery.topic.value}[{delivery.partition}] "
            f"offset {delivery.offset} returned for redelivery",
        )

    def _available(self, slot: tuple[Topic, int]) -> bool:
        topic, partition = slot
        return not self._inflight[slot] and self._committed[slot] < len(self._logs[topic][partition])

    # Inspection helpers

    def events(self, topic: Topic) -> list[PipelineEvent]:
        """Every event published to a topic, in publish order."""
        with self._lock:
            payloads = list(self._published[Topic(topic)])
        return [decode_event(topic, payload) for payload in payloads]

    def pending(self, topic: Topic | None = None) -> int:
        """Number of messages not yet committed for the group."""
        topics = [Topic(topic)] if topic else list(self._logs)
        with self._lock:
            return sum(
                len(self._logs[t][p]) - self._committed[(t, p)]
                for t in topics
                for p in range(self.partitions)
            )
