from __future__ import annotations

import base64
import logging
from email.mime.text import MIMEText
from typing import Any, Dict, List, Optional, Sequence

from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from models.message import Label, MailMessage, MessageRef
from services.auth_service import AuthService
from services.errors import ApiError

LOGGER = logging.getLogger(__name__)

THREAD_HEADERS = ("From", "Subject", "Message-ID", "References")


class GmailService:
    """Wrapper around the Gmail API for the operations we need."""

    def __init__(self, client: Any, user_id: str = "me"):
        self._client = client
        self._user_id = user_id

    @classmethod
    def from_auth(cls, auth_service: AuthService, user_id: str = "me") -> "GmailService":
        creds = auth_service.authenticate()
        return cls(build("gmail", "v1", credentials=creds, cache_discovery=False), user_id)

    @property
    def user_id(self) -> str:
        return self._user_id

    def list_messages(self, label_id: str) -> List[MessageRef]:
        """Return the first page of messages carrying label_id."""
        response = self._execute(
            "List messages",
            self._client.users().messages().list(userId=self.user_id, labelIds=[label_id]),
        )
        messages = response.get("messages", []) or []
        if response.get("nextPageToken"):
            LOGGER.warning("More messages are labelled %s than fit on one page; the rest wait for later polls", label_id)
        LOGGER.info("Found %s messages labelled %s", len(messages), label_id)
        return [MessageRef(id=item["id"], thread_id=item.get("threadId", item["id"])) for item in messages]

    def get_message_headers(self, message_id: str, header_names: Sequence[str]) -> Dict[str, str]:
        response = self._execute(
            f"Get message {message_id}",
            self._client.users()
            .messages()
            .get(userId=self.user_id, id=message_id, format="metadata", metadataHeaders=list(header_names)),
        )
        return _headers_to_dict(response.get("payload", {}).get("headers", []))

    def get_thread(self, thread_id: str) -> List[MailMessage]:
        response = self._execute(
            f"Get thread {thread_id}",
            self._client.users()
            .threads()
            .get(userId=self.user_id, id=thread_id, format="metadata", metadataHeaders=list(THREAD_HEADERS)),
        )
        return [_to_mail_message(item) for item in response.get("messages", []) or []]

    def modify_labels(
        self,
        message_id: str,
        add: Sequence[str] = (),
        remove: Sequence[str] = (),
    ) -> Dict:
        if not add and not remove:
            LOGGER.debug("No label changes supplied for message %s", message_id)
            return {}
        body: Dict[str, List[str]] = {}
        if add:
            body["addLabelIds"] = list(add)
        if remove:
            body["removeLabelIds"] = list(remove)
        response = self._execute(
            f"Modify labels of {message_id}",
            self._client.users().messages().modify(userId=self.user_id, id=message_id, body=body),
        )
        LOGGER.info("Updated labels of message %s (add=%s, remove=%s)", message_id, list(add), list(remove))
        return response

    def send_message(self, raw: str, thread_id: Optional[str] = None) -> Dict:
        body: Dict[str, str] = {"raw": raw}
        if thread_id:
            body["threadId"] = thread_id
        response = self._execute(
            "Send message",
            self._client.users().messages().send(userId=self.user_id, body=body),
        )
        LOGGER.debug("Gmail accepted message %s", response.get("id"))
        return response

    def list_labels(self) -> List[Label]:
        response = self._execute("List labels", self._client.users().labels().list(userId=self.user_id))
        return [Label(name=item["name"], id=item["id"]) for item in response.get("labels", []) or []]

    def create_label(self, name: str) -> Label:
        body = {"name": name, "labelListVisibility": "labelShow", "messageListVisibility": "show"}
        response = self._execute(
            f"Create label {name}",
            self._client.users().labels().create(userId=self.user_id, body=body),
        )
        return Label(name=response.get("name", name), id=response["id"])

    def _execute(self, action: str, request: Any) -> Dict:
        try:
            return request.execute()
        except HttpError as exc:
            LOGGER.error("%s failed: %s", action, exc)
            raise ApiError.from_http_error(action, exc) from exc


def build_raw_message(
    to: str,
    subject: str,
    body: str,
    in_reply_to: Optional[str] = None,
    references: Optional[str] = None,
) -> str:
    """Encode a UTF-8 plain text message as the base64url payload Gmail expects."""
    message = MIMEText(body, "plain", "utf-8")
    message["To"] = to
    message["Subject"] = subject
    if in_reply_to:
        message["In-Reply-To"] = in_reply_to
        message["References"] = f"{references} {in_reply_to}".strip() if references else in_reply_to
    return base64.urlsafe_b64encode(message.as_bytes()).decode("ascii")


def _to_mail_message(item: Dict) -> MailMessage:
    return MailMessage(
        id=item["id"],
        thread_id=item.get("threadId", item["id"]),
        headers=_headers_to_dict(item.get("payload", {}).get("headers", [])),
        label_ids=list(item.get("labelIds", [])),
    )


def _headers_to_dict(headers: Sequence[Dict[str, str]]) -> Dict[str, str]:
    mapped: Dict[str, str] = {}
    for header in headers:
        name = header.get("name", "").lower()
        value = header.get("value", "")
        mapped[name] = value
    return mapped
