# =============================================================================
# Rendering Engine
# =============================================================================
# Turns a fragment of judge markup (problem statement, compiler diagnostic)
# into text that can be written straight to the terminal.
#
# This is the main entry point for the rendering module. It:
#   - Parses the fragment with BeautifulSoup
#   - Walks the tree depth-first, in document order
#   - Collapses whitespace everywhere except inside <pre>
#   - Styles elements with ANSI codes once their children are rendered
#   - Fetches and encodes <img> elements inline
#
# Image failures never escape: each one becomes a placeholder in the text.
# =============================================================================

import logging
from dataclasses import dataclass, replace
from typing import Mapping

import httpx
from bs4 import BeautifulSoup
from bs4.element import (
    CData,
    Comment,
    Declaration,
    Doctype,
    NavigableString,
    ProcessingInstruction,
    Tag,
)

from ojterm.rendering.images import (
    ImageError,
    decode_image,
    encode_image,
    fetch_image,
    image_placeholder,
    image_url,
)
from ojterm.rendering.protocol import GraphicsProtocol, detect_protocol
from ojterm.rendering.text import (
    IMAGE_TAG,
    LINE_BREAK_TAG,
    PREFORMATTED_TAG,
    apply_style,
    normalize_whitespace,
)

logger = logging.getLogger(__name__)

DEFAULT_FETCH_TIMEOUT = 10.0  # Seconds

# Node types that never produce output
IGNORABLE_NODES = (Comment, Doctype, Declaration, ProcessingInstruction, CData)


@dataclass(frozen=True)
class RenderContext:
    """
    State passed down the tree walk.

    Attributes:
        preserve_whitespace: True inside a <pre> subtree.
        protocol: Graphics protocol for images.
    """
    preserve_whitespace: bool = False
    protocol: GraphicsProtocol = GraphicsProtocol.AUTO


class RenderEngine:
    """
    Renders markup fragments for terminal display.

    The engine holds settings only; every render() call owns its own tree,
    context and HTTP client, so one engine can serve concurrent renders.

    Usage:
        >>> engine = RenderEngine(GraphicsProtocol.KITTY)
        >>> text = await engine.render("<p>Hello <b>World</b></p>")
        >>> sys.stdout.write(text)

    Attributes:
        protocol: Requested graphics protocol (may be AUTO).
        client: HTTP client used for images. If None, one is opened for
                each render() call and closed afterwards.
        timeout: Fetch timeout in seconds for clients we open ourselves.
        base_url: Base for relative image URLs (placeholders still show
                  the src as written).
    """

    def __init__(
        self,
        protocol: GraphicsProtocol = GraphicsProtocol.AUTO,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_FETCH_TIMEOUT,
        base_url: str | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.protocol = protocol
        self.client = client
        self.timeout = timeout
        self.base_url = base_url
        self._environ = environ

    async def render(self, fragment: str) -> str:
        """
        Render a markup fragment.

        Args:
            fragment: HTML fragment text.

        Returns:
            Terminal text with ANSI styling and image escape sequences.
        """
        if not fragment:
            return ""
        soup = BeautifulSoup(fragment, "html.parser")
        return await self.render_node(soup)

    async def render_node(self, node) -> str:
        """
        Render an already parsed tree (a BeautifulSoup Tag or string).

        AUTO is resolved here, once, so the environment is read a single
        time per render.
        """
        protocol = detect_protocol(self.protocol, self._environ)
        context = RenderContext(protocol=protocol)

        if self.client is not None or protocol is GraphicsProtocol.DISABLED:
            return await self._walk(node, context, self.client)

        async with self._open_client() as client:
            return await self._walk(node, context, client)

    def _open_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, follow_redirects=True)

    async def _walk(
        self,
        node,
        context: RenderContext,
        client: httpx.AsyncClient | None,
    ) -> str:
        """Recursively render node and its descendants."""
        if isinstance(node, IGNORABLE_NODES):
            return ""

        if isinstance(node, NavigableString):
            text = str(node)
            if context.preserve_whitespace:
                return text
            return normalize_whitespace(text)

        if not isinstance(node, Tag):
            return ""

        tag = node.name.lower()

        if tag == IMAGE_TAG:
            src = node.get("src")
            if src is None:
                return ""
            return await self.render_image(src, context.protocol, client=client)

        if tag == LINE_BREAK_TAG:
            return "\n"

        if tag == PREFORMATTED_TAG and not context.preserve_whitespace:
            context = replace(context, preserve_whitespace=True)

        parts = []
        for child in node.children:
            parts.append(await self._walk(child, context, client))
        return apply_style(tag, "".join(parts))

    async def render_image(
        self,
        src: str,
        protocol: GraphicsProtocol,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> str:
        """
        Fetch, decode and encode one image.

        Never raises for image problems: every failure is logged and
        returned as an "[Image src ...]" placeholder.

        Args:
            src: The img element's src attribute.
            protocol: Requested protocol (AUTO is resolved first).
            client: HTTP client to fetch with. Falls back to self.client,
                    then to a client opened just for this image.
        """
        src = src.strip()
        if not src:
            return ""

        protocol = detect_protocol(protocol, self._environ)
        if protocol is GraphicsProtocol.DISABLED:
            return image_placeholder(src)

        if client is None:
            client = self.client
        try:
            url = image_url(src, self.base_url)
            if client is None:
                async with self._open_client() as own_client:
                    data = await fetch_image(own_client, url)
            else:
                data = await fetch_image(client, url)
            image = decode_image(data)
            return encode_image(image, protocol)
        except ImageError as e:
            logger.warning(f"Image {src} {e.stage}: {e}")
            return image_placeholder(src, e.stage)


async def render(
    fragment: str,
    protocol: GraphicsProtocol = GraphicsProtocol.AUTO,
    *,
    client: httpx.AsyncClient | None = None,
    base_url: str | None = None,
) -> str:
    """
    Render a markup fragment for the terminal.

    Example:
        >>> await render("<pre>  a\\n  b</pre>", GraphicsProtocol.DISABLED)
        '  a\\n  b'
    """
    engine = RenderEngine(protocol, client=client, base_url=base_url)
    return await engine.render(fragment)
