import logging

import pytest

from nanobanana.preview import launch_previews, viewer_command


@pytest.mark.parametrize(
    "platform,command",
    [
        ("darwin", ["open", "/o/a.png"]),
        ("win32", ["cmd", "/c", "start", "", "/o/a.png"]),
        ("linux", ["xdg-open", "/o/a.png"]),
    ],
)
def test_viewer_command(platform, command):
    assert viewer_command("/o/a.png", platform) == command


@pytest.mark.asyncio
async def test_failures_are_logged_not_raised(caplog):
    opened = []

    async def opener(path):
        if path.endswith("b.png"):
            raise RuntimeError("no display")
        opened.append(path)

    with caplog.at_level(logging.WARNING, logger="nanobanana.preview"):
        await launch_previews(["/o/a.png", "/o/b.png", "/o/c.png"], opener)

    assert opened == ["/o/a.png", "/o/c.png"]
    assert "Failed to open preview for /o/b.png: no display" in caplog.text


@pytest.mark.asyncio
async def test_nothing_to_open():
    async def opener(path):
        raise AssertionError("should not be called")

    await launch_previews([], opener)
