from __future__ import annotations

import logging

from services.errors import ApiError
from services.gmail_service import GmailService

LOGGER = logging.getLogger(__name__)


class LabelManager:
    """Resolve label names to ids, creating labels that do not exist yet."""

    def __init__(self, gmail: GmailService):
        self._gmail = gmail

    def ensure_label(self, label_name: str) -> str:
        # Names are matched exactly; there is no locking against other processes.
        try:
            for label in self._gmail.list_labels():
                if label.name == label_name:
                    LOGGER.debug("Label %s already exists as %s", label_name, label.id)
                    return label.id
            created = self._gmail.create_label(label_name)
        except ApiError as exc:
            LOGGER.error("Error retrieving or creating label %s: %s", label_name, exc)
            raise
        LOGGER.info("Created label %s with id %s", label_name, created.id)
        return created.id
