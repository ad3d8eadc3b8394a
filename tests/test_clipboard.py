import subprocess

import pytest

from clypsync.clipboard import factory
from clypsync.clipboard.linux import LinuxClipboard


class Completed:
    def __init__(self, stdout: bytes = b""):
        self.stdout = stdout


def test_factory_picks_linux(monkeypatch):
    monkeypatch.setattr(factory.platform, "system", lambda: "Linux")
    assert factory.get_clipboard_class() is LinuxClipboard


def test_factory_rejects_unknown_platform(monkeypatch):
    monkeypatch.setattr(factory.platform, "system", lambda: "Plan9")
    with pytest.raises(NotImplementedError):
        factory.get_clipboard()


@pytest.fixture
def x11(monkeypatch):
    monkeypatch.delenv("WAYLAND_DISPLAY", raising=False)
    monkeypatch.setattr("clypsync.clipboard.linux.shutil.which",
                        lambda name: "/usr/bin/xclip" if name == "xclip" else None)
    calls = []

    def fake_run(command, input=None, **kwargs):
        calls.append((command, input))
        return Completed(stdout="from xclip".encode("utf-8"))

    monkeypatch.setattr("clypsync.clipboard.linux.subprocess.run", fake_run)
    return calls


def test_linux_write_uses_xclip(x11):
    assert LinuxClipboard().write_text("héllo") is True
    assert x11 == [(["xclip", "-selection", "clipboard"], "héllo".encode("utf-8"))]


def test_linux_read_uses_xclip(x11):
    assert LinuxClipboard().read_text() == "from xclip"
    assert x11[0][0] == ["xclip", "-selection", "clipboard", "-o"]


def test_linux_prefers_wayland(monkeypatch):
    monkeypatch.setenv("WAYLAND_DISPLAY", "wayland-0")
    monkeypatch.setattr("clypsync.clipboard.linux.shutil.which", lambda name: f"/usr/bin/{name}")
    calls = []
    monkeypatch.setattr("clypsync.clipboard.linux.subprocess.run",
                        lambda command, **kwargs: calls.append(command) or Completed())

    assert LinuxClipboard().write_text("hi") is True
    assert calls == [["wl-copy"]]


def test_linux_without_tools_reports_failure(monkeypatch):
    monkeypatch.delenv("WAYLAND_DISPLAY", raising=False)
    monkeypatch.setattr("clypsync.clipboard.linux.shutil.which", lambda name: None)

    clipboard = LinuxClipboard()
    assert clipboard.write_text("hi") is False
    assert clipboard.read_text() is None


def test_linux_command_failure_reports_failure(monkeypatch):
    monkeypatch.delenv("WAYLAND_DISPLAY", raising=False)
    monkeypatch.setattr("clypsync.clipboard.linux.shutil.which", lambda name: "/usr/bin/xclip")

    def failing_run(command, **kwargs):
        raise subprocess.CalledProcessError(1, command)

    monkeypatch.setattr("clypsync.clipboard.linux.subprocess.run", failing_run)

    assert LinuxClipboard().write_text("hi") is False
