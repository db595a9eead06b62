"""Fake messaging channel: records opened links for testing."""

from uuid import uuid4

from ordering.messaging.port import MessagingChannel


class FakeMessagingChannel(MessagingChannel):
    def __init__(self):
        self.opened_links: list[dict] = []

    def open(self, link: str, order_number: str) -> dict:
        message_id = f"msg-{uuid4().hex[:12]}"
        self.opened_links.append({"message_id": message_id, "link": link, "order_number": order_number})
        return {"message_id": message_id, "status": "opened"}

    def links_for(self, order_number: str) -> list[str]:
        return [entry["link"] for entry in self.opened_links if entry["order_number"] == order_number]

    def reset(self):
        self.opened_links.clear()
