from abc import ABC, abstractmethod
from typing import Optional


class Clipboard(ABC):
    """Text access to the local system clipboard."""

    @abstractmethod
    def _read_text(self) -> Optional[str]:
        pass

    @abstractmethod
    def _write_text(self, text: str) -> bool:
        pass

    def read_text(self) -> Optional[str]:
        try:
            return self._read_text()
        except Exception:
            return None

    def write_text(self, text: str) -> bool:
        try:
            return self._write_text(text)
        except Exception:
            return False
