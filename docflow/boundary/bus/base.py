"""
Topic bus interface.

Ordered, partitioned, at-least-once channels carrying pipeline events.
All events for one doc_id hash to one partition, which gives a single
consumer per-document ordering. A delivery stays pending until acked;
a nacked or abandoned delivery is redelivered.

Dependencies: docflow.core.pipeline.models.events
System role: Abstract bus used by stage workers and runners
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
import hashlib

from docflow.core.pipeline.models.events import PipelineEvent, Topic


def partition_for(key: str, partitions: int) -> int:
    """Stable partition of a key (doc_id) across processes."""
    digest = hashlib.sha256(key.encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big") % partitions


@dataclass
class Delivery:
    """One consumed message, acknowledged through the bus that produced it."""

    topic: Topic
    partition: int
    offset: int | str
    key: str
    payload: str
    receipt: str | None = None
    delivery_count: int = 1
    attributes: dict[str, str] = field(default_factory=dict)


class TopicBus(ABC):
    """Partitioned topic log with consumer-group acknowledgement."""

    partitions: int = 1

    @abstractmethod
    def publish(self, topic: Topic, event: PipelineEvent) -> None:
        """
        Append an event to a topic, keyed by its doc_id.

        Raises:
            BusUnavailableError: When the bus cannot be reached
        """

    @abstractmethod
    def poll(
        self,
        topic: Topic,
        partition: int,
        max_messages: int = 1,
        timeout: float = 0.0,
    ) -> list[Delivery]:
        """Fetch the next unacked messages of a partition, in order."""

    @abstractmethod
    def ack(self, delivery: Delivery) -> None:
        """Mark a delivery as processed."""

    @abstractmethod
    def nack(self, delivery: Delivery) -> None:
        """Return a delivery for redelivery."""

    def ping(self) -> bool:
        """Readiness probe."""
        return True
