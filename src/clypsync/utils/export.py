import json
from dataclasses import dataclass
from typing import Sequence

from clypsync.models import Paste, PasteKind

FORMATS = ("json", "txt")
ORDERS = ("newest", "oldest")
TEXT_SEPARATOR = "\n\n===\n\n"


@dataclass(frozen=True)
class Export:
    filename: str
    content: str
    mime_type: str


def export_pastes(pastes: Sequence[Paste], room_code: str, fmt: str = "json",
                  order: str = "newest") -> Export:
    """Render a room's pastes for download.

    ``pastes`` is expected newest first, as held by a room session. The text
    format only includes text pastes.
    """
    if fmt not in FORMATS:
        raise ValueError(f"Unsupported export format: {fmt!r}")
    if order not in ORDERS:
        raise ValueError(f"Unsupported export order: {order!r}")

    ordered = list(reversed(pastes)) if order == "oldest" else list(pastes)

    if fmt == "json":
        content = json.dumps(
            [
                {
                    "content": paste.content,
                    "type": paste.kind.value,
                    "created_at": paste.created_at.isoformat(),
                }
                for paste in ordered
            ],
            indent=2,
        )
        return Export(f"clypsync-{room_code}.json", content, "application/json")

    content = TEXT_SEPARATOR.join(
        paste.content for paste in ordered if paste.kind is PasteKind.TEXT)
    return Export(f"clypsync-{room_code}.txt", content, "text/plain")
