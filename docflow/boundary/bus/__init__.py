"""
Message bus boundary.

Exports: TopicBus, Delivery, InMemoryTopicBus, SqsTopicBus, get_bus
"""

from docflow.boundary.bus.base import Delivery, TopicBus, partition_for
from docflow.boundary.bus.memory import InMemoryTopicBus
from docflow.boundary.bus.sqs import SqsTopicBus
from docflow.configs.bus import BusSettings


def get_bus(settings: BusSettings) -> TopicBus:
    """
    Create the configured bus backend.

    Args:
        settings: Bus settings

    Returns:
        TopicBus: In-memory or SQS bus
    """
    if settings.backend == "sqs":
        return SqsTopicBus(
            region=settings.region,
            queue_prefix=settings.queue_prefix,
            endpoint_url=settings.endpoint_url,
            wait_time_seconds=settings.wait_time_seconds,
            visibility_timeout=settings.visibility_timeout,
        )
    return InMemoryTopicBus(partitions=settings.partitions, group=settings.consumer_group)


__all__ = [
    "Delivery",
    "InMemoryTopicBus",
    "SqsTopicBus",
    "TopicBus",
    "get_bus",
    "partition_for",
]
