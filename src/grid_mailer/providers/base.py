"""Base delivery client interface."""

from abc import ABC, abstractmethod
from typing import Optional

from ..models import MessageModel, SendResult


class BaseDeliveryClient(ABC):
    """Abstract base class for delivery clients."""

    @abstractmethod
    async def send(
        self, message: MessageModel, correlation_id: Optional[str] = None
    ) -> SendResult:
        """Deliver a built message with a single attempt.

        Args:
            message: Validated message
            correlation_id: Optional correlation ID for tracking

        Returns:
            SendResult describing the accepted request

        Raises:
            DeliveryFailedError: If the provider rejects the request or cannot be reached
        """
        pass
