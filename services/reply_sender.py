from __future__ import annotations

import logging

from models.message import MailMessage, ReplyContext, ReplyOutcome
from services.errors import AddressParseError, ApiError
from services.gmail_service import GmailService, build_raw_message
from services.label_manager import LabelManager
from services.persistence_service import RepliedStore
from utils.address import parse_from_header
from utils.config import INBOX_LABEL_ID, UNREAD_LABEL_ID, ResponderConfig

LOGGER = logging.getLogger(__name__)


class ReplySender:
    """Send the canned reply to the first message of a thread, at most once."""

    def __init__(
        self,
        gmail: GmailService,
        labels: LabelManager,
        replied_store: RepliedStore,
        config: ResponderConfig,
    ):
        self._gmail = gmail
        self._labels = labels
        self._replied = replied_store
        self._config = config

    def send_reply(self, thread_id: str) -> ReplyOutcome:
        if self._replied.contains(thread_id):
            LOGGER.info("Message %s already replied to", thread_id)
            return ReplyOutcome.ALREADY_REPLIED

        try:
            return self._reply_to_thread(thread_id)
        except ApiError as exc:
            LOGGER.error("Error replying to thread %s: %s", thread_id, exc)
            return ReplyOutcome.FAILED

    def _reply_to_thread(self, thread_id: str) -> ReplyOutcome:
        messages = self._gmail.get_thread(thread_id)
        if not messages:
            LOGGER.warning("Thread %s has no messages", thread_id)
            return ReplyOutcome.FAILED
        original = messages[0]
        if self._replied.contains(original.id):
            LOGGER.info("Message %s already replied to", original.id)
            return ReplyOutcome.ALREADY_REPLIED

        try:
            sender = parse_from_header(original.sender)
        except AddressParseError as exc:
            LOGGER.error("Not replying to message %s: %s", original.id, exc)
            return ReplyOutcome.INVALID_SENDER

        self._gmail.modify_labels(original.id, add=[UNREAD_LABEL_ID], remove=[INBOX_LABEL_ID])

        context = ReplyContext(name=sender.local_part, address=sender.address, subject=original.subject)
        raw = build_raw_message(
            to=sender.address,
            subject=f"Re: {original.subject}",
            body=self._config.reply_template(context),
            in_reply_to=original.rfc822_id,
            references=original.header("references"),
        )
        self._gmail.send_message(raw, thread_id=original.thread_id)
        LOGGER.info("Reply sent to %s for message %s", sender.address, original.id)

        try:
            self._mark_replied(original)
        except ApiError as exc:
            LOGGER.error("Reply sent but labelling message %s failed: %s", original.id, exc)
        self._replied.add(original.id)
        return ReplyOutcome.SENT

    def _mark_replied(self, original: MailMessage) -> None:
        replied_label_id = self._labels.ensure_label(self._config.replied_label_name)
        self._gmail.modify_labels(original.id, add=[replied_label_id], remove=[INBOX_LABEL_ID])
        LOGGER.info("Added label %s to message %s", self._config.replied_label_name, original.id)
