import json
import logging
from pathlib import Path
from typing import Optional

from clypsync.models import is_valid_pin, validate_pin
from clypsync.models.room import DEFAULT_PIN_LENGTH

logger = logging.getLogger(__name__)

STORAGE_KEY = "clypsync-pin"


class RoomStateFile:
    """Remembers which room this device has joined."""

    def __init__(self, path: Optional[Path] = None, pin_length: int = DEFAULT_PIN_LENGTH):
        if path is None:
            path = Path.home() / ".clypsync" / "state.json"
        self.path = path
        self.pin_length = pin_length

    def _load(self) -> dict:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable state file {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")

    def read(self) -> Optional[str]:
        pin = self._load().get(STORAGE_KEY)
        if not is_valid_pin(pin, self.pin_length):
            return None
        return pin

    def write(self, pin: str) -> None:
        validate_pin(pin, self.pin_length)
        data = self._load()
        data[STORAGE_KEY] = pin
        self._save(data)
        logger.info(f"Joined room {pin}")

    def clear(self) -> None:
        data = self._load()
        if data.pop(STORAGE_KEY, None) is None:
            return
        self._save(data)
        logger.info("Left room")
