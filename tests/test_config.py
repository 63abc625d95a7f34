from __future__ import annotations

import base64
from pathlib import Path

import pytest

from models.message import ReplyContext
from utils.config import load_config

ENV_NAMES = (
    "GOOGLE_CLIENT_SECRETS",
    "GOOGLE_TOKEN_PATH",
    "GOOGLE_CLIENT_SECRETS_JSON",
    "GOOGLE_CLIENT_SECRETS_B64",
    "GOOGLE_TOKEN_JSON",
    "GOOGLE_TOKEN_B64",
    "GMAIL_USER_ID",
    "RESPONDER_LABEL",
    "REPLIED_LABEL",
    "REPLY_TEMPLATE_FILE",
    "REPLIED_IDS_FILE",
    "STATS_FILE",
    "POLL_MIN_SECONDS",
    "POLL_MAX_SECONDS",
    "LOG_DIR",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path: Path):
    # setenv first so that values loaded from .env files are undone after the test
    for name in ENV_NAMES:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)


def test_defaults(tmp_path: Path) -> None:
    config = load_config(tmp_path / "missing.env")

    assert config.user_id == "me"
    assert config.token_file == tmp_path / "token.json"
    assert config.replied_ids_file == tmp_path / "repliedIds.json"
    assert (config.min_interval, config.max_interval) == (45, 120)
    assert config.responder.label_name == "UNREAD"
    assert config.responder.replied_label_name == "REPLIED"
    body = config.responder.reply_template(ReplyContext(name="jane", address="jane@example.com", subject="Help"))
    assert body.splitlines()[0] == "Dear jane,"
    assert "regarding Help" in body


def test_env_file_values(tmp_path: Path) -> None:
    template = tmp_path / "reply.txt"
    template.write_text("Hello {name}, about {subject}", encoding="utf-8")
    env_file = tmp_path / ".env"
    env_file.write_text(
        "\n".join(
            [
                "RESPONDER_LABEL=Support",
                "REPLIED_LABEL=Answered",
                f"REPLY_TEMPLATE_FILE={template}",
                "POLL_MIN_SECONDS=5",
                "POLL_MAX_SECONDS=10",
                "REPLIED_IDS_FILE=state/replied.json",
            ]
        ),
        encoding="utf-8",
    )

    config = load_config(env_file)

    assert config.responder.label_name == "Support"
    assert config.responder.replied_label_name == "Answered"
    assert (config.min_interval, config.max_interval) == (5, 10)
    assert config.replied_ids_file == tmp_path / "state" / "replied.json"
    rendered = config.responder.reply_template(ReplyContext(name="bo", address="bo@x.io", subject="Q"))
    assert rendered == "Hello bo, about Q"


def test_inline_secrets_are_written(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("GOOGLE_TOKEN_JSON", '{"refresh_token": "r"}')
    monkeypatch.setenv("GOOGLE_CLIENT_SECRETS_B64", base64.b64encode(b'{"installed": {}}').decode())

    config = load_config(tmp_path / "missing.env")

    assert config.token_file.read_text(encoding="utf-8") == '{"refresh_token": "r"}'
    assert config.credentials_file.read_bytes() == b'{"installed": {}}'


def test_invalid_interval_bounds(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("POLL_MIN_SECONDS", "120")
    monkeypatch.setenv("POLL_MAX_SECONDS", "45")

    with pytest.raises(ValueError):
        load_config(tmp_path / "missing.env")


def test_missing_template_file(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("REPLY_TEMPLATE_FILE", "nope.txt")

    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.env")
