# =============================================================================
# Pytest Configuration and Fixtures
# =============================================================================
# Shared fixtures for the ojterm test suite.
#
# Network access is replaced by httpx.MockTransport, and images are built
# in memory with Pillow, so no test touches the network or the filesystem
# outside tmp directories.
# =============================================================================

import asyncio
import re
import tempfile
from io import BytesIO
from pathlib import Path

import httpx
import pytest
from PIL import Image

from ojterm.rendering import GraphicsProtocol, RenderEngine

ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")


def strip_ansi(text: str) -> str:
    """Remove ANSI styling codes (not graphics escapes)."""
    return ANSI_RE.sub("", text)


def make_png(width: int = 2, height: int = 2, color=(255, 0, 0), noise: bool = False) -> bytes:
    """Build PNG bytes for a solid (or noisy) image."""
    if noise:
        image = Image.effect_noise((width, height), 64).convert("RGB")
    else:
        image = Image.new("RGB", (width, height), color)
    output = BytesIO()
    image.save(output, format="PNG")
    return output.getvalue()


class RecordingHandler:
    """
    MockTransport handler that serves canned responses per URL.

    Unknown URLs raise a connection error, like an unreachable host.
    """

    def __init__(self, responses: dict[str, httpx.Response] | None = None) -> None:
        self.responses = responses or {}
        self.requests: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        if url in self.responses:
            return self.responses[url]
        raise httpx.ConnectError(f"cannot connect to {url}", request=request)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def png_bytes():
    """A small solid red PNG."""
    return make_png()


@pytest.fixture
def handler():
    """A fresh request recorder with no canned responses."""
    return RecordingHandler()


@pytest.fixture
def render_with(handler):
    """
    Render a fragment through a mocked HTTP client.

    Usage:
        >>> render_with("<img src='http://x/a.png'>", GraphicsProtocol.KITTY)
    """
    def run(
        fragment: str,
        protocol: GraphicsProtocol = GraphicsProtocol.DISABLED,
        **kwargs,
    ) -> str:
        async def go() -> str:
            transport = httpx.MockTransport(handler)
            async with httpx.AsyncClient(transport=transport) as client:
                engine = RenderEngine(protocol, client=client, **kwargs)
                return await engine.render(fragment)

        return asyncio.run(go())

    return run


@pytest.fixture
def sample_statement():
    """A problem statement fragment as served by the judge."""
    return """
    <!-- statement -->
    <h2>Description</h2>
    <div>Given <b>n</b> integers,   print their <i>sum</i>.</div>
    <p>Input is read from <mark>standard input</mark>.<br>One number per line.</p>
    <pre>3
1 2
3</pre>
    """
