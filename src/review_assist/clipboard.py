"""Clipboard delivery.

Two paths, tried in order:
- fast path: a clipboard writer that is available right now (native utilities)
- fallback: a hidden, off-screen text container whose full contents are selected
  and copied with a synchronous copy command

Either the whole text lands on the clipboard or `ClipboardUnavailable` is raised.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from contextlib import contextmanager
from typing import Any, Iterator, Optional, Protocol, Sequence, Tuple

from .errors import ClipboardUnavailable

logger = logging.getLogger(__name__)

CLIPBOARD_COMMANDS: Tuple[Tuple[str, ...], ...] = (
    ("pbcopy",),
    ("wl-copy",),
    ("xclip", "-selection", "clipboard"),
    ("xsel", "--clipboard", "--input"),
    ("clip",),
)


class ClipboardWriter(Protocol):
    def is_available(self) -> bool: ...

    async def write_text(self, text: str) -> None: ...


class CopySurface(Protocol):
    """A place to stage text in a hidden container and run the copy command."""

    def create_container(self, text: str) -> Any: ...

    def select_all(self, container: Any) -> None: ...

    def exec_copy(self, container: Any) -> bool: ...

    def remove_container(self, container: Any) -> None: ...


@contextmanager
def hidden_container(surface: CopySurface, text: str) -> Iterator[Any]:
    """Create the staging container and always remove it afterward."""
    container = surface.create_container(text)
    try:
        yield container
    finally:
        surface.remove_container(container)


async def copy_to_clipboard(
    text: str,
    *,
    fast_path: Optional[ClipboardWriter] = None,
    fallback: Optional[CopySurface] = None,
) -> None:
    """Copy `text` in full, or raise ClipboardUnavailable."""
    if fast_path is not None and fast_path.is_available():
        try:
            await fast_path.write_text(text)
            logger.debug("Copied %d characters with the native clipboard", len(text))
            return
        except Exception as exc:
            logger.warning("Native clipboard write failed: %s", exc)

    if fallback is None:
        raise ClipboardUnavailable("Failed to copy to clipboard")

    logger.debug("Using fallback copy method")
    try:
        with hidden_container(fallback, text) as container:
            fallback.select_all(container)
            copied = fallback.exec_copy(container)
    except Exception as exc:
        logger.error("Failed to copy using fallback method: %s", exc)
        raise ClipboardUnavailable("Failed to copy to clipboard") from exc
    if not copied:
        raise ClipboardUnavailable("Copy command failed")


class CommandClipboard:
    """Writes through the first native clipboard utility found on PATH."""

    def __init__(self, commands: Sequence[Tuple[str, ...]] = CLIPBOARD_COMMANDS):
        self._commands = commands

    def _command(self) -> Optional[Tuple[str, ...]]:
        for command in self._commands:
            if shutil.which(command[0]):
                return command
        return None

    def is_available(self) -> bool:
        return self._command() is not None

    async def write_text(self, text: str) -> None:
        command = self._command()
        if command is None:
            raise ClipboardUnavailable("No clipboard utility found")
        # clip.exe reads UTF-16 with a BOM; the others read UTF-8.
        encoding = "utf-16" if command[0] == "clip" else "utf-8"
        process = await asyncio.create_subprocess_exec(
            *command,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
        _, stderr = await process.communicate(text.encode(encoding))
        if process.returncode != 0:
            raise ClipboardUnavailable(
                f"{command[0]} exited with {process.returncode}: "
                f"{stderr.decode('utf-8', 'replace').strip()}"
            )


class TkCopySurface:
    """
    Off-screen Tk text widget, selected in full and copied with `<<Copy>>`.

    On X11 the copied text stays available only while a clipboard manager
    takes ownership once the hidden window is destroyed.
    """

    def create_container(self, text: str) -> Any:
        import tkinter as tk

        root = tk.Tk()
        try:
            root.withdraw()
            root.geometry("1x1-10000-10000")
            widget = tk.Text(root)
            widget.insert("1.0", text)
            widget.pack()
        except Exception:
            root.destroy()
            raise
        return widget

    def select_all(self, container: Any) -> None:
        container.focus_set()
        container.tag_add("sel", "1.0", "end-1c")

    def exec_copy(self, container: Any) -> bool:
        root = container.winfo_toplevel()
        root.clipboard_clear()
        container.event_generate("<<Copy>>")
        root.update()
        return root.clipboard_get() == container.get("1.0", "end-1c")

    def remove_container(self, container: Any) -> None:
        container.winfo_toplevel().destroy()
