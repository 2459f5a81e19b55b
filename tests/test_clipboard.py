import asyncio
import sys
import types

import pytest

from review_assist.clipboard import (
    CommandClipboard,
    TkCopySurface,
    copy_to_clipboard,
    hidden_container,
)
from review_assist.errors import ClipboardUnavailable


class _FakeWriter:
    def __init__(self, available=True, fail=False):
        self.available = available
        self.fail = fail
        self.clipboard = None

    def is_available(self):
        return self.available

    async def write_text(self, text):
        if self.fail:
            raise PermissionError("denied")
        self.clipboard = text


class _FakeSurface:
    """Tracks staged containers the way a page tracks its DOM nodes."""

    def __init__(self, copy_result=True, raise_on_copy=False):
        self.copy_result = copy_result
        self.raise_on_copy = raise_on_copy
        self.containers = []
        self.clipboard = None
        self.selected = None

    def create_container(self, text):
        container = {"value": text}
        self.containers.append(container)
        return container

    def select_all(self, container):
        self.selected = container["value"]

    def exec_copy(self, container):
        if self.raise_on_copy:
            raise RuntimeError("execCommand unsupported")
        if self.copy_result:
            self.clipboard = self.selected
        return self.copy_result

    def remove_container(self, container):
        self.containers.remove(container)


def test_fast_path_copies_exact_text():
    writer = _FakeWriter()
    surface = _FakeSurface()
    asyncio.run(copy_to_clipboard("hello", fast_path=writer, fallback=surface))
    assert writer.clipboard == "hello"
    assert surface.containers == []
    assert surface.clipboard is None


def test_disabled_fast_path_uses_fallback_and_leaves_no_container():
    writer = _FakeWriter(available=False)
    surface = _FakeSurface()
    asyncio.run(copy_to_clipboard("hello", fast_path=writer, fallback=surface))
    assert surface.clipboard == "hello"
    assert surface.containers == []


def test_failing_fast_path_falls_back():
    surface = _FakeSurface()
    asyncio.run(copy_to_clipboard("多行\n文本", fast_path=_FakeWriter(fail=True), fallback=surface))
    assert surface.clipboard == "多行\n文本"


def test_copy_command_reporting_failure_raises_and_cleans_up():
    surface = _FakeSurface(copy_result=False)
    with pytest.raises(ClipboardUnavailable, match="Copy command failed"):
        asyncio.run(copy_to_clipboard("hello", fallback=surface))
    assert surface.containers == []


def test_copy_command_raising_is_wrapped_and_cleans_up():
    surface = _FakeSurface(raise_on_copy=True)
    with pytest.raises(ClipboardUnavailable) as excinfo:
        asyncio.run(copy_to_clipboard("hello", fast_path=_FakeWriter(available=False), fallback=surface))
    assert isinstance(excinfo.value.__cause__, RuntimeError)
    assert surface.containers == []


def test_no_paths_available_raises():
    with pytest.raises(ClipboardUnavailable):
        asyncio.run(copy_to_clipboard("hello", fast_path=_FakeWriter(available=False)))


def test_hidden_container_removed_on_error():
    surface = _FakeSurface()
    with pytest.raises(KeyError):
        with hidden_container(surface, "x"):
            assert len(surface.containers) == 1
            raise KeyError("boom")
    assert surface.containers == []


def test_command_clipboard_picks_first_tool_on_path(monkeypatch):
    monkeypatch.setattr(
        "review_assist.clipboard.shutil.which",
        lambda name: "/usr/bin/xsel" if name == "xsel" else None,
    )
    clipboard = CommandClipboard()
    assert clipboard.is_available()
    assert clipboard._command() == ("xsel", "--clipboard", "--input")


def test_command_clipboard_unavailable_without_tools(monkeypatch):
    monkeypatch.setattr("review_assist.clipboard.shutil.which", lambda name: None)
    clipboard = CommandClipboard()
    assert not clipboard.is_available()
    with pytest.raises(ClipboardUnavailable):
        asyncio.run(clipboard.write_text("hello"))


def test_tk_surface_destroys_root_when_setup_fails(monkeypatch):
    destroyed = []

    class _Root:
        def withdraw(self):
            pass

        def geometry(self, spec):
            pass

        def destroy(self):
            destroyed.append(True)

    def broken_text(root):
        raise RuntimeError("no display")

    fake_tk = types.SimpleNamespace(Tk=_Root, Text=broken_text)
    monkeypatch.setitem(sys.modules, "tkinter", fake_tk)

    with pytest.raises(RuntimeError, match="no display"):
        TkCopySurface().create_container("hello")
    assert destroyed == [True]
