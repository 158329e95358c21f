"""Abstract interface for chat transports."""
from abc import ABC, abstractmethod

from infectoscan.router import TriageRouter


class BotClient(ABC):
    @abstractmethod
    def run(self, router: TriageRouter) -> None: ...

    @abstractmethod
    async def send_message(self, to: str, text: str) -> bool: ...

    @abstractmethod
    async def send_photo(self, to: str, photo: bytes) -> bool: ...
