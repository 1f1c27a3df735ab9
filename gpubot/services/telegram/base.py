from abc import ABC, abstractmethod


class MessageDelivery(ABC):
    @abstractmethod
    async def send_message(
        self,
        chat_id: int,
        text: str,
        reply_to_message_id: int | None = None,
    ) -> dict:
        """Send an HTML-formatted message. Raises DeliveryError on failure."""
        ...
