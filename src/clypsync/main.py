#!/usr/bin/env python3

import argparse
import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator, List, Optional, Sequence

from clypsync.clipboard import Clipboard, get_clipboard
from clypsync.config import ClypSyncConfig
from clypsync.exceptions import ClypSyncError, DisplayError, ValidationError
from clypsync.models import ImageFile, Paste, PasteKind
from clypsync.services import ImageStorageCoordinator, PasteService, RoomSession
from clypsync.utils import RoomStateFile, export_pastes

logger = logging.getLogger(__name__)


def _time_ago(created_at: datetime, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    seconds = max(0, int((now - created_at).total_seconds()))
    for unit, size in (("day", 86400), ("hour", 3600), ("minute", 60)):
        if seconds >= size:
            count = seconds // size
            return f"{count} {unit}{'s' if count != 1 else ''} ago"
    return "just now"


class ClypSyncApp:

    def __init__(self, config: ClypSyncConfig, clipboard: Optional[Clipboard] = None):
        self.config = config
        self.state = RoomStateFile(config.state_file, config.pin_length)
        self._clipboard = clipboard
        self.images: Optional[ImageStorageCoordinator] = None

    @property
    def clipboard(self) -> Optional[Clipboard]:
        if self._clipboard is None:
            try:
                self._clipboard = get_clipboard()
            except (NotImplementedError, ImportError) as e:
                logger.warning(f"Clipboard unavailable: {e}")
        return self._clipboard

    def current_pin(self, override: Optional[str] = None) -> str:
        pin = override or self.state.read()
        if not pin:
            raise ClypSyncError("Not in a room. Run 'clypsync join PIN' first.")
        return pin

    @asynccontextmanager
    async def session(self, pin: str, *, auto_copy: bool = False,
                      on_change=None) -> AsyncIterator[RoomSession]:
        store = self.config.create_store()
        try:
            pastes = PasteService(
                store,
                timeout=self.config.request_timeout,
                max_text_length=self.config.max_text_length,
            )
            self.images = ImageStorageCoordinator(
                self.config.create_bucket(),
                max_bytes=self.config.max_image_bytes,
                timeout=self.config.request_timeout,
            )
            room = RoomSession(
                pin,
                pastes,
                self.images,
                clipboard=self.clipboard,
                on_change=on_change,
                auto_copy=auto_copy,
                pin_length=self.config.pin_length,
            )
            async with room:
                yield room
        finally:
            await store.close()

    async def render(self, pastes: Sequence[Paste], limit: Optional[int] = None) -> None:
        if not pastes:
            print("No pastes yet.")
            return

        shown = list(pastes)[:limit] if limit else list(pastes)
        for paste in shown:
            if paste.kind is PasteKind.IMAGE:
                try:
                    await self.images.locate(paste.content)
                    body = f"[image] {paste.content}"
                except DisplayError:
                    body = "[image unavailable]"
            else:
                body = paste.content
            print(f"{paste.id}  {_time_ago(paste.created_at):>15}  {body}")

        hidden = len(pastes) - len(shown)
        if hidden > 0:
            print(f"... {hidden} more")

    async def list(self, pin: str, limit: Optional[int] = None) -> None:
        async with self.session(pin) as room:
            await self.render(room.pastes, limit)

    async def watch(self, pin: str, auto_copy: bool = True) -> None:
        changed = asyncio.Event()
        async with self.session(pin, auto_copy=auto_copy,
                                on_change=lambda _: changed.set()) as room:
            print(f"Room {pin}. Watching for changes, Ctrl+C to stop.")
            await self.render(room.pastes)
            while True:
                await changed.wait()
                changed.clear()
                print("-" * 40)
                await self.render(room.pastes)

    async def add_text(self, pin: str, text: Optional[str]) -> Paste:
        if text is None:
            text = await asyncio.to_thread(self.clipboard.read_text) if self.clipboard else None
            if not text:
                raise ClypSyncError("Clipboard is empty")
        async with self.session(pin) as room:
            paste = await room.add(text, PasteKind.TEXT)
        print(f"Paste added: {paste.id}")
        return paste

    async def add_image(self, pin: str, path: Path) -> Paste:
        try:
            image = ImageFile.from_path(path)
        except OSError as e:
            raise ClypSyncError(f"Cannot read {path}: {e.strerror}") from e
        async with self.session(pin) as room:
            paste = await room.add(image, PasteKind.IMAGE)
        print(f"Image uploaded: {paste.content}")
        return paste

    async def delete(self, pin: str, paste_id: str) -> None:
        async with self.session(pin) as room:
            await room.delete_one(paste_id)
        print("Paste deleted")

    async def clear(self, pin: str) -> None:
        async with self.session(pin) as room:
            await room.clear_all()
        print("All pastes cleared!")

    async def copy(self, pin: str, paste_id: str) -> None:
        async with self.session(pin) as room:
            if not room.get(paste_id):
                raise ClypSyncError(f"No paste with id {paste_id}")
            copied = await room.copy(paste_id)
        if not copied:
            raise ClypSyncError("Failed to copy")
        print("Copied to clipboard!")

    async def export(self, pin: str, fmt: str, order: str, output: Optional[Path]) -> Path:
        async with self.session(pin) as room:
            result = export_pastes(room.pastes, pin, fmt=fmt, order=order)
        target = output or Path(result.filename)
        target.write_text(result.content, encoding="utf-8")
        print(f"Exported as {target}")
        return target

    def serve(self) -> None:
        import uvicorn

        from clypsync.api import create_app

        uvicorn.run(create_app(self.config), host=self.config.api_host,
                    port=self.config.api_port)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="clypsync",
        description="Share a clipboard feed between devices using a room PIN")
    parser.add_argument("--pin", help="Use this room instead of the joined one")
    parser.add_argument("--env-file", type=Path, help="Path to a .env file")
    parser.add_argument("-v", "--verbose", action="store_true")

    commands = parser.add_subparsers(dest="command", required=True)

    join = commands.add_parser("join", help="Join a room")
    join.add_argument("room_pin")
    commands.add_parser("leave", help="Leave the joined room")

    listing = commands.add_parser("list", help="Show the room's pastes")
    listing.add_argument("--limit", type=int)

    watch = commands.add_parser("watch", help="Follow the room live")
    watch.add_argument("--no-auto-copy", action="store_true",
                       help="Do not copy the newest paste on start")

    add = commands.add_parser("add", help="Add a text paste")
    source = add.add_mutually_exclusive_group(required=True)
    source.add_argument("text", nargs="?")
    source.add_argument("--from-clipboard", action="store_true")

    add_image = commands.add_parser("add-image", help="Upload an image paste")
    add_image.add_argument("path", type=Path)

    delete = commands.add_parser("delete", help="Delete one paste")
    delete.add_argument("paste_id")

    clear = commands.add_parser("clear", help="Delete every paste in the room")
    clear.add_argument("-y", "--yes", action="store_true")

    copy = commands.add_parser("copy", help="Copy a paste to the clipboard")
    copy.add_argument("paste_id")

    export = commands.add_parser("export", help="Export the room's pastes")
    export.add_argument("--format", choices=("json", "txt"), default="json")
    export.add_argument("--order", choices=("newest", "oldest"), default="newest")
    export.add_argument("--output", type=Path)

    commands.add_parser("serve", help="Serve image URLs over HTTP")
    return parser


def run(app: ClypSyncApp, args: argparse.Namespace) -> None:
    if args.command == "join":
        app.state.write(args.room_pin)
        print(f"Joined room {args.room_pin}")
        return
    if args.command == "leave":
        app.state.clear()
        print("Left room")
        return
    if args.command == "serve":
        app.serve()
        return

    pin = app.current_pin(args.pin)
    if args.command == "list":
        asyncio.run(app.list(pin, args.limit))
    elif args.command == "watch":
        asyncio.run(app.watch(pin, auto_copy=not args.no_auto_copy))
    elif args.command == "add":
        asyncio.run(app.add_text(pin, None if args.from_clipboard else args.text))
    elif args.command == "add-image":
        asyncio.run(app.add_image(pin, args.path))
    elif args.command == "delete":
        asyncio.run(app.delete(pin, args.paste_id))
    elif args.command == "clear":
        if not args.yes:
            answer = input(f"Clear all pastes in room {pin}? This cannot be undone. [y/N] ")
            if answer.strip().lower() not in {"y", "yes"}:
                return
        asyncio.run(app.clear(pin))
    elif args.command == "copy":
        asyncio.run(app.copy(pin, args.paste_id))
    elif args.command == "export":
        asyncio.run(app.export(pin, args.format, args.order, args.output))


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format='%(levelname)s: %(message)s')

    app = ClypSyncApp(ClypSyncConfig.from_env(env_path=args.env_file))
    try:
        run(app, args)
    except ValidationError as e:
        print(f"Rejected: {e.reason}", file=sys.stderr)
        return 1
    except ClypSyncError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nStopped.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
