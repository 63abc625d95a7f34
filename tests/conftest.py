"""Shared fixtures for tests."""

from __future__ import annotations

import base64
import email
from email.header import decode_header, make_header
from typing import Dict, List, Optional, Sequence

import pytest

from models.message import Label, MailMessage, MessageRef
from services.errors import ApiError
from services.label_manager import LabelManager
from services.persistence_service import InMemoryRepliedStore
from services.reply_sender import ReplySender
from utils.config import ResponderConfig

SYSTEM_LABELS = [Label(name="INBOX", id="INBOX"), Label(name="UNREAD", id="UNREAD"), Label(name="SENT", id="SENT")]


class FakeGmailService:
    """In-memory stand-in for GmailService that records every call."""

    def __init__(self, labels: Optional[List[Label]] = None):
        self.labels: List[Label] = list(SYSTEM_LABELS if labels is None else labels)
        self.messages: Dict[str, MailMessage] = {}
        self.sent: List[Dict[str, Optional[str]]] = []
        self.modifications: List[tuple] = []
        self.created_labels: List[str] = []
        self.header_requests: List[str] = []
        self.fail_on: set[str] = set()

    def add_message(self, message_id: str, thread_id: Optional[str] = None, label_ids=("INBOX", "UNREAD"), **headers) -> MailMessage:
        normalized = {name.replace("_", "-").lower(): value for name, value in headers.items()}
        message = MailMessage(
            id=message_id,
            thread_id=thread_id or message_id,
            headers=normalized,
            label_ids=list(label_ids),
        )
        self.messages[message_id] = message
        return message

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.fail_on:
            raise ApiError(f"{operation} failed (500): boom", status=500)

    def list_messages(self, label_id: str) -> List[MessageRef]:
        self._maybe_fail("list_messages")
        return [
            MessageRef(id=message.id, thread_id=message.thread_id)
            for message in self.messages.values()
            if label_id in message.label_ids
        ]

    def get_message_headers(self, message_id: str, header_names: Sequence[str]) -> Dict[str, str]:
        self._maybe_fail("get_message_headers")
        self.header_requests.append(message_id)
        wanted = {name.lower() for name in header_names}
        return {name: value for name, value in self.messages[message_id].headers.items() if name in wanted}

    def get_thread(self, thread_id: str) -> List[MailMessage]:
        self._maybe_fail("get_thread")
        return [message for message in self.messages.values() if message.thread_id == thread_id]

    def modify_labels(self, message_id: str, add: Sequence[str] = (), remove: Sequence[str] = ()) -> Dict:
        self._maybe_fail("modify_labels")
        self.modifications.append((message_id, tuple(add), tuple(remove)))
        message = self.messages[message_id]
        for label_id in add:
            if label_id not in message.label_ids:
                message.label_ids.append(label_id)
        message.label_ids = [label_id for label_id in message.label_ids if label_id not in remove]
        return {"id": message_id, "labelIds": list(message.label_ids)}

    def send_message(self, raw: str, thread_id: Optional[str] = None) -> Dict:
        self._maybe_fail("send_message")
        self.sent.append({"raw": raw, "threadId": thread_id})
        return {"id": f"sent-{len(self.sent)}", "threadId": thread_id}

    def list_labels(self) -> List[Label]:
        self._maybe_fail("list_labels")
        return list(self.labels)

    def create_label(self, name: str) -> Label:
        self._maybe_fail("create_label")
        label = Label(name=name, id=f"Label_{len(self.labels) + 1}")
        self.labels.append(label)
        self.created_labels.append(name)
        return label


def decode_raw(raw: str) -> email.message.Message:
    return email.message_from_bytes(base64.urlsafe_b64decode(raw))


def decoded_subject(message: email.message.Message) -> str:
    return str(make_header(decode_header(message["Subject"])))


@pytest.fixture
def gmail() -> FakeGmailService:
    return FakeGmailService()


@pytest.fixture
def replied_store() -> InMemoryRepliedStore:
    return InMemoryRepliedStore()


@pytest.fixture
def responder_config() -> ResponderConfig:
    return ResponderConfig()


@pytest.fixture
def sender(gmail, replied_store, responder_config) -> ReplySender:
    return ReplySender(gmail, LabelManager(gmail), replied_store, responder_config)
