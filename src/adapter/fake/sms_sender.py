"""In-memory implementation of SmsSender for testing."""

from domain.model.errors import DispatchError


class FakeSmsSender:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: list[tuple[str, str]] = []

    def send(self, phone: str, body: str) -> None:
        if self.fail:
            raise DispatchError()
        self.sent.append((phone, body))

    @property
    def last_body(self) -> str | None:
        return self.sent[-1][1] if self.sent else None
