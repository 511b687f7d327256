# src/arrakis/sqs/client
"""
Amazon SQS client with adaptive long polling.

`AdaptiveSQSClient` wraps a boto3 SQS client. Before each receive it asks the
AdaptivePollingController for a wait time, clamps it to the SQS ceiling, and
after the call reports the number of messages received back to the controller.
Deleting messages is passed straight through.

Typical usage:
    >>> client = AdaptiveSQSClient(region_name="us-east-1")
    >>> messages = client.receive_messages(queue_url)
    >>> for message in messages:
    >>>     ...
    >>>     client.delete_message(queue_url, message["ReceiptHandle"])

Transport errors raised by boto3 propagate unchanged; the controller is only
updated after a successful receive.
"""
import logging

from typing import Any, Dict, List, Optional, Sequence, Tuple

import boto3

from arrakis.core.config import SQS_DEFAULT_MAX_MESSAGES, PollingConfig
from arrakis.core.controller import AdaptivePollingController

logger = logging.getLogger(__name__)

SQS_MAX_MESSAGES_LIMIT = 10


class AdaptiveSQSClient:
    """
    SQS receive/delete operations driven by an adaptive polling controller.

    Attributes:
        client: Underlying boto3 SQS client.
        config (PollingConfig): Polling configuration shared with the controller.
        controller (AdaptivePollingController): Decides wait times from observed volume.
    """

    def __init__(
        self,
        sqs_client: Any = None,
        config: Optional[PollingConfig] = None,
        controller: Optional[AdaptivePollingController] = None,
        **boto_kwargs: Any,
    ) -> None:
        if controller is not None:
            self.controller = controller
            self.config = controller.config
        else:
            self.config = config if config is not None else PollingConfig()
            self.controller = AdaptivePollingController(self.config)
        self.client = sqs_client if sqs_client is not None else boto3.client("sqs", **boto_kwargs)

    @classmethod
    def from_endpoint(
        cls,
        endpoint_url: str,
        region_name: str = "us-east-1",
        aws_access_key_id: str = "test",
        aws_secret_access_key: str = "test",
        config: Optional[PollingConfig] = None,
    ) -> "AdaptiveSQSClient":
        """
        Build a client for a custom SQS endpoint such as LocalStack.

        Args:
            endpoint_url (str): Endpoint URL, e.g. "http://localhost:4566".
            region_name (str): Signing region.
            aws_access_key_id (str): Static access key.
            aws_secret_access_key (str): Static secret key.
            config (Optional[PollingConfig]): Polling configuration.

        Returns:
            AdaptiveSQSClient: The configured client.
        """
        return cls(
            config=config,
            endpoint_url=endpoint_url,
            region_name=region_name,
            aws_access_key_id=aws_access_key_id,
            aws_secret_access_key=aws_secret_access_key,
        )

    def enable_adaptive_polling(self) -> None:
        self.controller.enable()

    def disable_adaptive_polling(self) -> None:
        self.controller.disable()

    def is_adaptive_polling_enabled(self) -> bool:
        return self.controller.is_enabled()

    def current_wait_time(self) -> int:
        """Wait time for the next receive, clamped to the queue's maximum."""
        return min(self.controller.next_wait_time(), self.config.max_wait_seconds)

    def receive_messages(
        self,
        queue_url: str,
        max_messages: Optional[int] = SQS_DEFAULT_MAX_MESSAGES,
        message_attribute_names: Optional[Sequence[str]] = None,
    ) -> List[Dict[str, Any]]:
        """
        Receive up to `max_messages` messages using the adaptive wait time.

        Args:
            queue_url (str): URL of the queue.
            max_messages (Optional[int]): 1..10; 0 or None means 10.
            message_attribute_names (Optional[Sequence[str]]): Message attributes to fetch.

        Returns:
            List[Dict[str, Any]]: The received messages (possibly empty).

        Raises:
            ValueError: If `queue_url` is empty or `max_messages` is out of range.
            botocore.exceptions.ClientError: If the receive call fails.
        """
        _, messages = self.receive_batch(queue_url, max_messages, message_attribute_names)
        return messages

    def receive_batch(
        self,
        queue_url: str,
        max_messages: Optional[int] = SQS_DEFAULT_MAX_MESSAGES,
        message_attribute_names: Optional[Sequence[str]] = None,
    ) -> Tuple[int, List[Dict[str, Any]]]:
        """Same as `receive_messages` but also returns the wait time that was requested."""
        if not queue_url:
            raise ValueError("queue_url is required")
        if not max_messages:
            max_messages = SQS_DEFAULT_MAX_MESSAGES
        if not (1 <= max_messages <= SQS_MAX_MESSAGES_LIMIT):
            raise ValueError(f"max_messages must be between 1 and {SQS_MAX_MESSAGES_LIMIT}")

        wait_seconds = self.current_wait_time()
        request: Dict[str, Any] = {
            "QueueUrl": queue_url,
            "MaxNumberOfMessages": max_messages,
            "VisibilityTimeout": self.config.visibility_timeout_seconds,
            "WaitTimeSeconds": wait_seconds,
        }
        if message_attribute_names:
            request["MessageAttributeNames"] = list(message_attribute_names)

        response = self.client.receive_message(**request)
        messages = response.get("Messages", [])
        self.controller.observe(len(messages))

        logger.debug(
            "[AdaptiveSQS] Received %d messages from %s (wait=%ds)",
            len(messages), queue_url, wait_seconds,
        )
        return wait_seconds, messages

    def delete_message(self, queue_url: str, receipt_handle: str) -> Dict[str, Any]:
        """
        Delete a processed message.

        Raises:
            ValueError: If `queue_url` or `receipt_handle` is empty.
            botocore.exceptions.ClientError: If the delete call fails.
        """
        if not queue_url:
            raise ValueError("queue_url is required")
        if not receipt_handle:
            raise ValueError("receipt_handle is required")
        return self.client.delete_message(QueueUrl=queue_url, ReceiptHandle=receipt_handle)
