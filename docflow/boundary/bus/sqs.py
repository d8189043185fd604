"""
SQS FIFO topic bus.

One FIFO queue per topic. MessageGroupId is the doc_id, so SQS keeps
per-document order and holds back later messages of a group while one
is in flight; that replaces explicit partitions. Ack deletes the
message, nack resets its visibility for immediate redelivery.

Dependencies: boto3
System role: Production bus backend
"""

import logging

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from docflow.boundary.bus.base import Delivery, TopicBus
from docflow.core.exceptions import BusUnavailableError
from docflow.core.pipeline.models.events import PipelineEvent, Topic, encode_event

logger = logging.getLogger(__name__)


class SqsTopicBus(TopicBus):
    """TopicBus backed by SQS FIFO queues."""

    partitions = 1

    def __init__(
        self,
        region: str = "ap-southeast-2",
        queue_prefix: str = "docflow-",
        endpoint_url: str | None = None,
        wait_time_seconds: int = 10,
        visibility_timeout: int = 300,
        client=None,
    ) -> None:
        """
        Initialize SQS client.

        Args:
            region: AWS region
            queue_prefix: Queue name prefix; queue is {prefix}{topic}.fifo
            endpoint_url: Optional endpoint override
            wait_time_seconds: Long-poll wait time
            visibility_timeout: Seconds before an unacked message is redelivered
            client: Pre-built boto3 SQS client (tests)
        """
        self._queue_prefix = queue_prefix
        self._wait_time_seconds = wait_time_seconds
        self._visibility_timeout = visibility_timeout
        self._client = client or boto3.client(
            "sqs",
            region_name=region,
            endpoint_url=endpoint_url,
            config=Config(connect_timeout=5, read_timeout=wait_time_seconds + 10),
        )
        self._queue_urls: dict[Topic, str] = {}

    def queue_name(self, topic: Topic) -> str:
        return f"{self._queue_prefix}{Topic(topic).value}.fifo"

    def _queue_url(self, topic: Topic) -> str:
        topic = Topic(topic)
        if topic not in self._queue_urls:
            try:
                response = self._client.get_queue_url(QueueName=self.queue_name(topic))
            except (ClientError, BotoCoreError) as e:
                raise BusUnavailableError(
                    f"Queue lookup failed for {topic.value}",
                    details={"queue": self.queue_name(topic), "error": str(e)},
                ) from e
            self._queue_urls[topic] = response["QueueUrl"]
        return self._queue_urls[topic]

    def publish(self, topic: Topic, event: PipelineEvent) -> None:
        try:
            self._client.send_message(
                QueueUrl=self._queue_url(topic),
                MessageBody=encode_event(event),
                MessageGroupId=event.doc_id,
                MessageDeduplicationId=event.event_id,
            )
        except (ClientError, BotoCoreError) as e:
            raise BusUnavailableError(
                f"Failed to publish to {Topic(topic).value}",
                details={"doc_id": event.doc_id, "error": str(e)},
            ) from e
        logger.debug(f"{__name__}:publish - {Topic(topic).value} doc_id={event.doc_id}")

    def poll(
        self,
        topic: Topic,
        partition: int = 0,
        max_messages: int = 1,
        timeout: float | None = None,
    ) -> list[Delivery]:
        wait = self._wait_time_seconds if timeout is None else int(min(max(timeout, 0), 20))
        try:
            response = self._client.receive_message(
                QueueUrl=self._queue_url(topic),
                MaxNumberOfMessages=max(1, min(max_messages, 10)),
                WaitTimeSeconds=wait,
                VisibilityTimeout=self._visibility_timeout,
                MessageSystemAttributeNames=["ApproximateReceiveCount", "MessageGroupId"],
            )
        except (ClientError, BotoCoreError) as e:
            raise BusUnavailableError(
                f"Failed to receive from {Topic(topic).value}",
                details={"error": str(e)},
            ) from e

        deliveries = []
        for message in response.get("Messages", []):
            attributes = message.get("Attributes", {})
            deliveries.append(
                Delivery(
                    topic=Topic(topic),
                    partition=0,
                    offset=message["MessageId"],
                    key=attributes.get("MessageGroupId", ""),
                    payload=message["Body"],
                    receipt=message["ReceiptHandle"],
                    delivery_count=int(attributes.get("ApproximateReceiveCount", "1")),
                    attributes=attributes,
                )
            )
        return deliveries

    def ack(self, delivery: Delivery) -> None:
        try:
            self._client.delete_message(
                QueueUrl=self._queue_url(delivery.topic),
                ReceiptHandle=delivery.receipt,
            )
        except (ClientError, BotoCoreError) as e:
            raise BusUnavailableError(
                "Failed to delete message",
                details={"message_id": delivery.offset, "error": str(e)},
            ) from e

    def nack(self, delivery: Delivery) -> None:
        try:
            self._client.change_message_visibility(
                QueueUrl=self._queue_url(delivery.topic),
                ReceiptHandle=delivery.receipt,
                VisibilityTimeout=0,
            )
        except (ClientError, BotoCoreError) as e:
            # The message reappears after the visibility timeout anyway
            logger.warning(
                f"{__name__}:nack - change_message_visibility failed: {e}",
                extra={"message_id": delivery.offset},
            )

    def ping(self) -> bool:
        try:
            for topic in Topic:
                self._queue_url(topic)
        except BusUnavailableError:
            return False
        return True
