from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


@dataclass(slots=True, frozen=True)
class Label:
    name: str
    id: str


@dataclass(slots=True, frozen=True)
class MessageRef:
    """Entry returned by the message listing call."""

    id: str
    thread_id: str


@dataclass(slots=True)
class MailMessage:
    """Gmail message reduced to the headers the responder reads."""

    id: str
    thread_id: str
    headers: Dict[str, str] = field(default_factory=dict)
    label_ids: List[str] = field(default_factory=list)

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.headers.get(name.lower(), default)

    @property
    def sender(self) -> Optional[str]:
        return self.header("from")

    @property
    def subject(self) -> str:
        return self.header("subject", "") or ""

    @property
    def rfc822_id(self) -> Optional[str]:
        return self.header("message-id")


@dataclass(slots=True, frozen=True)
class Address:
    display_name: str
    address: str

    @property
    def local_part(self) -> str:
        return self.address.rsplit("@", 1)[0]


@dataclass(slots=True, frozen=True)
class ReplyContext:
    """Values available to the reply template."""

    name: str
    address: str
    subject: str


@dataclass(slots=True)
class PollResult:
    listed: int = 0
    replies_sent: int = 0
    skipped_replies: int = 0
    already_replied: int = 0
    failed: int = 0


class ReplyOutcome(str, Enum):
    SENT = "sent"
    ALREADY_REPLIED = "already_replied"
    INVALID_SENDER = "invalid_sender"
    FAILED = "failed"
