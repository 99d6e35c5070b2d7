"""
Mock Email Service
==================

Logs email operations and keeps them in memory instead of sending.
"""

import logging
from typing import List, Optional

from .interface import EmailMessage, EmailServiceInterface

logger = logging.getLogger(__name__)


class MockEmailService(EmailServiceInterface):
    """Mock email service for tests and development. Always succeeds."""

    def __init__(self):
        self.sent_messages: List[EmailMessage] = []

    def send(self, message: EmailMessage) -> bool:
        logger.info(f"[MOCK EMAIL] To: {message.to}, Subject: {message.subject}")
        self.sent_messages.append(message)
        return True

    def send_bulk(self, messages: List[EmailMessage]) -> int:
        logger.info(f"[MOCK EMAIL] Bulk send: {len(messages)} emails")
        for message in messages:
            self.send(message)
        return len(messages)

    def clear_sent_messages(self):
        self.sent_messages.clear()

    def get_sent_count(self) -> int:
        return len(self.sent_messages)

    def get_last_message(self) -> Optional[EmailMessage]:
        return self.sent_messages[-1] if self.sent_messages else None
