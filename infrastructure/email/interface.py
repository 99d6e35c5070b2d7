"""
Email Service Interface
========================

Abstract base class defining the contract for outgoing transactional email
(order confirmations, shipment notifications, payout notices).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass
class EmailMessage:
    """
    Represents an outgoing email.

    Attributes:
        subject: Email subject line
        body: Plain text body
        to: List of recipient email addresses
        from_email: Sender address (uses DEFAULT_FROM_EMAIL if None)
        html_body: Optional HTML alternative
        reply_to: Optional reply-to addresses (e.g. the vendor's contact email)
        headers: Extra headers such as a template key for tracking
    """

    subject: str
    body: str
    to: List[str]
    from_email: Optional[str] = None
    html_body: Optional[str] = None
    reply_to: List[str] = field(default_factory=list)
    headers: Dict[str, str] = field(default_factory=dict)


class EmailServiceInterface(ABC):
    """
    Abstract interface for email delivery.

    Concrete implementations:
        - SMTPEmailService: Django email backend
        - MockEmailService: in-memory outbox for tests and local development
    """

    @abstractmethod
    def send(self, message: EmailMessage) -> bool:
        """
        Send a single email message.

        Returns:
            True if the backend accepted the message

        Raises:
            EmailException: If the backend fails
        """
        pass

    @abstractmethod
    def send_bulk(self, messages: List[EmailMessage]) -> int:
        """
        Send several messages, returning how many were accepted.

        Raises:
            EmailException: If the backend fails
        """
        pass


class EmailException(Exception):
    """Base exception for email operations."""

    pass
