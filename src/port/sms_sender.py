from typing import Protocol


class SmsSender(Protocol):
    """Outbound text-message delivery."""
    def send(self, phone: str, body: str) -> None:
        """Deliver body to a local 10-digit phone number. Raise DispatchError on failure."""
        ...
