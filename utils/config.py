from __future__ import annotations

import base64
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from dotenv import load_dotenv

from models.message import ReplyContext

DEFAULT_LABEL_NAME = "UNREAD"
DEFAULT_REPLIED_LABEL_NAME = "REPLIED"
INBOX_LABEL_ID = "INBOX"
UNREAD_LABEL_ID = "UNREAD"

DEFAULT_REPLY_TEMPLATE = (
    "Dear {name},\n"
    "\n"
    "Thank you for contacting us regarding {subject}. We appreciate your interest.\n"
    "\n"
    "Best regards,\n"
    "The Support Team"
)

ReplyTemplate = Callable[[ReplyContext], str]


def template_from_text(text: str) -> ReplyTemplate:
    """Build a reply template from a str.format pattern.

    Supported placeholders are {name}, {address} and {subject}.
    """

    def render(context: ReplyContext) -> str:
        return text.format(name=context.name, address=context.address, subject=context.subject)

    return render


default_reply_template: ReplyTemplate = template_from_text(DEFAULT_REPLY_TEMPLATE)


@dataclass(slots=True)
class ResponderConfig:
    label_name: str = DEFAULT_LABEL_NAME
    replied_label_name: str = DEFAULT_REPLIED_LABEL_NAME
    reply_template: ReplyTemplate = field(default=default_reply_template)


@dataclass(slots=True)
class AppConfig:
    credentials_file: Path
    token_file: Path
    user_id: str
    replied_ids_file: Path
    stats_file: Path
    log_dir: Path
    log_level: str
    min_interval: int
    max_interval: int
    responder: ResponderConfig


def _resolve_path(value: str | None, fallback: str) -> Path:
    candidate = Path(value or fallback)
    if not candidate.is_absolute():
        candidate = Path.cwd() / candidate
    return candidate


def _maybe_write_secret_file(target: Path, inline_value: str | None, b64_value: str | None) -> None:
    if not inline_value and not b64_value:
        return
    target.parent.mkdir(parents=True, exist_ok=True)
    if inline_value:
        target.write_text(inline_value, encoding="utf-8")
        return
    try:
        decoded = base64.b64decode(b64_value or "", validate=True)
    except ValueError as exc:
        raise ValueError(f"Failed to decode base64 secret payload for {target.name}") from exc
    target.write_bytes(decoded)


def _load_reply_template(path_value: Optional[str]) -> ReplyTemplate:
    if not path_value:
        return default_reply_template
    template_path = _resolve_path(path_value, "")
    if not template_path.exists():
        raise FileNotFoundError(f"Missing reply template file: {template_path}")
    return template_from_text(template_path.read_text(encoding="utf-8"))


def load_config(env_file: str | os.PathLike[str] | None = None) -> AppConfig:
    """Load configuration values from a .env file and environment variables."""

    if env_file:
        load_dotenv(env_file, override=False)
    else:
        load_dotenv(override=False)

    credentials_file = _resolve_path(os.getenv("GOOGLE_CLIENT_SECRETS"), "credentials.json")
    token_file = _resolve_path(os.getenv("GOOGLE_TOKEN_PATH"), "token.json")
    replied_ids_file = _resolve_path(os.getenv("REPLIED_IDS_FILE"), "repliedIds.json")
    stats_file = _resolve_path(os.getenv("STATS_FILE"), "data/stats.json")
    log_dir = _resolve_path(os.getenv("LOG_DIR"), "logs")

    _maybe_write_secret_file(
        credentials_file,
        os.getenv("GOOGLE_CLIENT_SECRETS_JSON"),
        os.getenv("GOOGLE_CLIENT_SECRETS_B64"),
    )
    _maybe_write_secret_file(
        token_file,
        os.getenv("GOOGLE_TOKEN_JSON"),
        os.getenv("GOOGLE_TOKEN_B64"),
    )

    min_interval = int(os.getenv("POLL_MIN_SECONDS", "45"))
    max_interval = int(os.getenv("POLL_MAX_SECONDS", "120"))
    if min_interval < 0 or max_interval < min_interval:
        raise ValueError(
            f"Invalid poll interval bounds: POLL_MIN_SECONDS={min_interval}, POLL_MAX_SECONDS={max_interval}"
        )

    responder = ResponderConfig(
        label_name=os.getenv("RESPONDER_LABEL", DEFAULT_LABEL_NAME),
        replied_label_name=os.getenv("REPLIED_LABEL", DEFAULT_REPLIED_LABEL_NAME),
        reply_template=_load_reply_template(os.getenv("REPLY_TEMPLATE_FILE")),
    )

    return AppConfig(
        credentials_file=credentials_file,
        token_file=token_file,
        user_id=os.getenv("GMAIL_USER_ID", "me"),
        replied_ids_file=replied_ids_file,
        stats_file=stats_file,
        log_dir=log_dir,
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        min_interval=min_interval,
        max_interval=max_interval,
        responder=responder,
    )
