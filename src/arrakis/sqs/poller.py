# src/arrakis/sqs/poller
import logging
import threading
import time

from typing import Any, Callable, Dict, List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from arrakis.core.circular_trace import make_trace_row
from arrakis.core.poll_stats import PollingStats
from arrakis.sqs.client import AdaptiveSQSClient

logger = logging.getLogger(__name__)

TRANSPORT_BACKOFF_SECONDS = 1.0

MessageHandler = Callable[[Dict[str, Any]], None]


class QueuePoller:
    """
    Runs receive → handle → delete loops against one queue.

    All workers share the client's controller, so the wait time reflects the
    combined volume seen by every worker. Handler failures leave the message on
    the queue for redelivery after its visibility timeout.

    Attributes:
        client (AdaptiveSQSClient): Client used for receive and delete.
        queue_url (str): Queue to poll.
        handler (MessageHandler): Called once per received message.
        workers (int): Number of polling threads.
        delete_on_success (bool): Delete each message after its handler returns.
        trace: Optional CircularPollTrace or RollingPollTrace receiving one row per poll.
    """

    def __init__(
        self,
        client: AdaptiveSQSClient,
        queue_url: str,
        handler: MessageHandler,
        workers: int = 1,
        delete_on_success: bool = True,
        max_messages: int = 10,
        trace: Any = None,
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be >= 1")
        self.client = client
        self.queue_url = queue_url
        self.handler = handler
        self.workers = workers
        self.delete_on_success = delete_on_success
        self.max_messages = max_messages
        self.trace = trace

        self._stop = threading.Event()
        self._budget_lock = threading.Lock()
        self._polls_left: Optional[int] = None
        self._trace_lock = threading.Lock()
        self._poll_index = 0

    @property
    def stats(self) -> PollingStats:
        return self.client.controller.stats

    def stop(self) -> None:
        """Ask every worker to exit after its current poll."""
        self._stop.set()

    def run(self, max_polls: Optional[int] = None) -> PollingStats:
        """
        Poll until `stop()` is called or `max_polls` receive calls have been made.

        Args:
            max_polls (Optional[int]): Total receive calls across all workers; None means unbounded.

        Returns:
            PollingStats: The controller's statistics.
        """
        self._stop.clear()
        self._polls_left = max_polls
        logger.info("Starting %d poller worker(s) for %s", self.workers, self.queue_url)

        threads: List[threading.Thread] = [
            threading.Thread(target=self._worker, name=f"arrakis-poller-{i}", daemon=True)
            for i in range(self.workers)
        ]
        for thread in threads:
            thread.start()
        try:
            for thread in threads:
                thread.join()
        except KeyboardInterrupt:
            logger.info("Interrupted, stopping pollers...")
            self.stop()
            for thread in threads:
                thread.join()

        logger.info("Poller for %s stopped", self.queue_url)
        return self.stats

    def _take_poll_slot(self) -> bool:
        with self._budget_lock:
            if self._polls_left is None:
                return True
            if self._polls_left <= 0:
                return False
            self._polls_left -= 1
            return True

    def _worker(self) -> None:
        while not self._stop.is_set() and self._take_poll_slot():
            self.poll_once()

    def poll_once(self) -> int:
        """
        Perform one receive and process the returned messages.

        Returns:
            int: Number of messages handled successfully.
        """
        try:
            wait_seconds, messages = self.client.receive_batch(self.queue_url, self.max_messages)
        except (ClientError, BotoCoreError) as e:
            self.stats.log_transport_error()
            logger.error("Receive from %s failed: %s", self.queue_url, e)
            self._stop.wait(TRANSPORT_BACKOFF_SECONDS)
            return 0

        self._record_trace(wait_seconds, len(messages))

        handled = 0
        for message in messages:
            if self._handle(message):
                handled += 1
        return handled

    def _handle(self, message: Dict[str, Any]) -> bool:
        message_id = message.get("MessageId", "<unknown>")
        try:
            self.handler(message)
        except Exception:
            self.stats.log_handler_error()
            logger.exception("Handler failed for message %s; leaving it for redelivery", message_id)
            return False

        if self.delete_on_success:
            try:
                self.client.delete_message(self.queue_url, message["ReceiptHandle"])
            except (ClientError, BotoCoreError) as e:
                self.stats.log_transport_error()
                logger.error("Delete of message %s failed: %s", message_id, e)
                return False
        return True

    def _record_trace(self, wait_seconds: int, message_count: int) -> None:
        if self.trace is None:
            return
        snapshot = self.client.controller.snapshot()
        with self._trace_lock:
            self._poll_index += 1
            self.trace.append(make_trace_row(
                self._poll_index, time.time(), wait_seconds, message_count, snapshot,
            ))
