"""Messaging channel port: hands a prepared deep link to the customer's messenger."""

from abc import ABC, abstractmethod


class MessagingChannel(ABC):
    @abstractmethod
    def open(self, link: str, order_number: str) -> dict:
        """Deliver or open the deep link.

        Returns:
            dict with keys: message_id, status ("opened" or "failed")
        """
        ...
