from typing import Optional

from clypsync.exceptions import InvalidPinError

DEFAULT_PIN_LENGTH = 4


def is_valid_pin(pin: Optional[str], length: int = DEFAULT_PIN_LENGTH) -> bool:
    return bool(pin) and len(pin) == length and pin.isascii() and pin.isdigit()


def validate_pin(pin: str, length: int = DEFAULT_PIN_LENGTH) -> str:
    if not is_valid_pin(pin, length):
        raise InvalidPinError(f"Room PIN must be exactly {length} digits")
    return pin


def room_channel(pin: str) -> str:
    return f"room:{pin}:events"
