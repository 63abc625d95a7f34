from __future__ import annotations

import logging
import random
import time
from typing import Callable, Dict, Optional

from models.message import PollResult, ReplyOutcome
from services.gmail_service import GmailService
from services.reply_sender import ReplySender

LOGGER = logging.getLogger(__name__)

REPLY_HEADERS = ("References", "In-Reply-To")


def random_interval(min_seconds: int = 45, max_seconds: int = 120, rng: Optional[random.Random] = None) -> Callable[[], int]:
    """Return a function yielding uniformly random whole seconds in [min_seconds, max_seconds]."""
    source = rng or random.Random()

    def interval() -> int:
        return source.randint(min_seconds, max_seconds)

    return interval


def is_reply(headers: Dict[str, str]) -> bool:
    """A message carrying an In-Reply-To or References header is a reply."""
    return any(name.lower() in headers for name in REPLY_HEADERS)


class PollLoop:
    """Watch a label and answer every new top-level message once."""

    def __init__(
        self,
        gmail: GmailService,
        sender: ReplySender,
        label_id: str,
        interval: Optional[Callable[[], float]] = None,
        sleep: Callable[[float], None] = time.sleep,
        on_iteration: Optional[Callable[[PollResult], None]] = None,
    ):
        self._gmail = gmail
        self._sender = sender
        self._label_id = label_id
        self._interval = interval or random_interval()
        self._sleep = sleep
        self._on_iteration = on_iteration

    def run_once(self) -> PollResult:
        result = PollResult()
        messages = self._gmail.list_messages(self._label_id)
        result.listed = len(messages)
        LOGGER.info("Found %s new messages", len(messages))

        for message in messages:
            headers = self._gmail.get_message_headers(message.id, REPLY_HEADERS)
            if is_reply(headers):
                LOGGER.info("Skipping reply message %s", message.id)
                result.skipped_replies += 1
                continue

            outcome = self._sender.send_reply(message.thread_id)
            if outcome is ReplyOutcome.SENT:
                result.replies_sent += 1
                LOGGER.info("Sent reply message to thread %s", message.thread_id)
            elif outcome is ReplyOutcome.ALREADY_REPLIED:
                result.already_replied += 1
            else:
                result.failed += 1

            self._gmail.modify_labels(message.id, add=[self._label_id])

        if self._on_iteration:
            self._on_iteration(result)
        return result

    def run(self, max_iterations: Optional[int] = None) -> int:
        """Poll until max_iterations is reached, or forever when it is None.

        Returns the number of completed iterations. Errors raised while
        listing messages or reading headers end the loop.
        """
        iterations = 0
        while max_iterations is None or iterations < max_iterations:
            self.run_once()
            iterations += 1
            if max_iterations is not None and iterations >= max_iterations:
                break
            delay = self._interval()
            LOGGER.info("Waiting for %s seconds...", delay)
            self._sleep(delay)
        return iterations
