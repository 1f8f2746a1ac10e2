# =============================================================================
# Terminal Image Rendering
# =============================================================================
# Converts images referenced by problem statements into terminal graphics.
#
# Supported protocols:
#   - Sixel: Bitmap graphics protocol, supported by xterm, mlterm, etc.
#   - Kitty: Raw truecolor pixels, base64 encoded, sent in 4096-byte chunks
#   - iTerm: A PNG file transferred inline in one escape sequence
#
# The process:
#   1. Fetch image bytes from the URL
#   2. Guess the container format and decode to an RGB pixel buffer
#   3. Convert the buffer to the chosen protocol's escape sequence
#
# Every stage raises an ImageError subclass on failure. The rendering engine
# turns those into "[Image src ...]" placeholders.
# =============================================================================

import base64
import logging
from dataclasses import dataclass
from io import BytesIO
from typing import Callable
from urllib.parse import urljoin

import httpx

from ojterm.rendering.protocol import GraphicsProtocol

logger = logging.getLogger(__name__)

# Kitty limits each escape sequence to 4096 bytes of payload
KITTY_CHUNK_SIZE = 4096

# Sixel terminals have at most 256 color registers
SIXEL_MAX_COLORS = 256


@dataclass
class DecodedImage:
    """
    A decoded image as a raw pixel buffer.

    Attributes:
        width: Width in pixels.
        height: Height in pixels.
        pixels: RGB888 data, row-major, 3 bytes per pixel, no padding.
    """
    width: int
    height: int
    pixels: bytes

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    def check(self, error: type["ImageEncodeError"]) -> None:
        """Raise error unless the buffer holds exactly width*height pixels."""
        if self.width <= 0 or self.height <= 0:
            raise error(f"empty image ({self.width}x{self.height})")
        expected = self.width * self.height * 3
        if len(self.pixels) != expected:
            raise error(
                f"pixel buffer is {len(self.pixels)} bytes, expected {expected}"
            )


# =============================================================================
# Fetching and Decoding
# =============================================================================

def image_url(src: str, base_url: str | None = None) -> str:
    """
    Resolve an img src against base_url.

    Raises:
        ImageFetchError: If the joined URL is malformed (e.g. a broken
                         IPv6 host), since it can never be fetched.
    """
    if not base_url:
        return src
    try:
        return urljoin(base_url, src)
    except ValueError as e:
        raise ImageFetchError(f"invalid image URL {src!r}: {e}") from e


async def fetch_image(client: httpx.AsyncClient, url: str) -> bytes:
    """
    Download image bytes.

    Args:
        client: HTTP client to fetch with (its timeout applies).
        url: Absolute image URL.

    Raises:
        ImageFetchError: On transport errors, timeouts and HTTP error codes.
    """
    logger.debug(f"Fetching image {url}")
    try:
        response = await client.get(url)
        response.raise_for_status()
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        raise ImageFetchError(str(e)) from e
    return response.content


def decode_image(data: bytes) -> DecodedImage:
    """
    Decode image bytes (PNG, JPEG, GIF, etc.) to an RGB pixel buffer.

    Raises:
        ImageFormatError: If the container format can't be identified.
        ImageDecodeError: If the format is known but decoding fails.
    """
    from PIL import Image, UnidentifiedImageError

    try:
        image = Image.open(BytesIO(data))
    except UnidentifiedImageError as e:
        raise ImageFormatError(str(e)) from e
    except Exception as e:
        raise ImageDecodeError(str(e)) from e

    try:
        image.load()
        rgb = image.convert("RGB")
    except Exception as e:
        raise ImageDecodeError(str(e)) from e

    return DecodedImage(width=rgb.width, height=rgb.height, pixels=rgb.tobytes())


# =============================================================================
# Sixel
# =============================================================================

def encode_sixel(image: DecodedImage) -> str:
    """
    Render image as Sixel graphics.

    The image is quantized to a 256-color palette (Floyd-Steinberg
    dithering), then each 6-pixel-high band is written once per color
    that appears in it. Each sixel character encodes a 1x6 pixel column.

    Raises:
        SixelEncodeError: If the buffer can't be converted.
    """
    from PIL import Image

    image.check(SixelEncodeError)
    try:
        raster = Image.frombytes("RGB", image.size, image.pixels)
        quantized = raster.quantize(
            colors=SIXEL_MAX_COLORS,
            dither=Image.Dither.FLOYDSTEINBERG,
        )
    except Exception as e:
        raise SixelEncodeError(str(e)) from e

    palette = quantized.getpalette() or []
    indices = quantized.tobytes()   # One palette index per pixel
    width, height = image.size

    # DCS introducer: 1:1 pixel aspect, keep background
    parts = ["\x1bP0;1;0q", f'"1;1;{width};{height}']

    color_count = min(len(palette) // 3, SIXEL_MAX_COLORS)
    for i in range(color_count):
        r, g, b = palette[i * 3:i * 3 + 3]
        parts.append(
            f"#{i};2;{round(r * 100 / 255)};{round(g * 100 / 255)};{round(b * 100 / 255)}"
        )

    bands = []
    for band_top in range(0, height, 6):
        # color index -> sixel bit pattern for every column in this band
        columns: dict[int, list[int]] = {}
        for bit in range(min(6, height - band_top)):
            offset = (band_top + bit) * width
            for x, color in enumerate(indices[offset:offset + width]):
                pattern = columns.get(color)
                if pattern is None:
                    pattern = columns[color] = [0] * width
                pattern[x] |= 1 << bit

        band = []
        for color in sorted(columns):
            band.append(f"#{color}{_sixel_rle(columns[color])}$")
        bands.append("".join(band))

    # "-" moves to the next band, the string terminator ends the image
    parts.append("-".join(bands))
    parts.append("\x1b\\")
    return "".join(parts)


def _sixel_rle(pattern: list[int]) -> str:
    """Run-length encode sixel values (!<count><char> for runs of 3+)."""
    parts = []
    i = 0
    while i < len(pattern):
        value = pattern[i]
        count = 1
        while i + count < len(pattern) and pattern[i + count] == value:
            count += 1

        char = chr(value + 63)
        if count >= 3:
            parts.append(f"!{count}{char}")
        else:
            parts.append(char * count)
        i += count
    return "".join(parts)


# =============================================================================
# Kitty
# =============================================================================

def frame_kitty_payload(payload: str, width: int, height: int) -> list[str]:
    """
    Split base64 pixel data into Kitty graphics protocol frames.

    Format: \\033_G<key>=<value>,...;<payload>\\033\\\\
    We use: f=24 (RGB), s/v (pixel size), a=T (transmit and display).

    Payloads of up to KITTY_CHUNK_SIZE characters fit in a single frame.
    Longer payloads are sent as a first frame with m=1 followed by
    continuation frames that only carry m (1 = more data, 0 = last chunk).

    Args:
        payload: Base64 text (ASCII, so slicing by characters is safe).
        width: Image width in pixels.
        height: Image height in pixels.

    Returns:
        Frames in emission order.
    """
    header = f"f=24,s={width},v={height},a=T"
    if len(payload) <= KITTY_CHUNK_SIZE:
        return [f"\033_G{header};{payload}\033\\"]

    frames = [f"\033_G{header},m=1;{payload[:KITTY_CHUNK_SIZE]}\033\\"]
    rest = payload[KITTY_CHUNK_SIZE:]
    chunks = [rest[i:i + KITTY_CHUNK_SIZE] for i in range(0, len(rest), KITTY_CHUNK_SIZE)]
    for i, chunk in enumerate(chunks):
        more = 0 if i == len(chunks) - 1 else 1
        frames.append(f"\033_Gm={more};{chunk}\033\\")
    return frames


def encode_kitty(image: DecodedImage) -> str:
    """
    Render image using the Kitty graphics protocol.

    Raises:
        KittyEncodeError: If the pixel buffer is malformed.
    """
    image.check(KittyEncodeError)
    payload = base64.standard_b64encode(image.pixels).decode("ascii")
    return "".join(frame_kitty_payload(payload, image.width, image.height))


# =============================================================================
# iTerm
# =============================================================================

def encode_iterm(image: DecodedImage) -> str:
    """
    Render image using the iTerm2 inline image protocol.

    Format:
        OSC 1337 ; File=[args] : base64 PNG BEL
    where size is the PNG's byte length (not the base64 length) and
    doNotMoveCursor=1 leaves the cursor where it was.

    Raises:
        ITermEncodeError: If the PNG can't be produced.
    """
    from PIL import Image

    image.check(ITermEncodeError)
    try:
        # RGB -> RGBA gives a fully opaque alpha channel
        raster = Image.frombytes("RGB", image.size, image.pixels).convert("RGBA")
        output = BytesIO()
        raster.save(output, format="PNG")
    except Exception as e:
        raise ITermEncodeError(str(e)) from e

    png_data = output.getvalue()
    b64_data = base64.standard_b64encode(png_data).decode("ascii")
    return (
        f"\033]1337;File=inline=1;size={len(png_data)};"
        f"width={image.width}px;height={image.height}px;doNotMoveCursor=1:"
        f"{b64_data}\a"
    )


# Concrete protocol -> encoder
ENCODERS: dict[GraphicsProtocol, Callable[[DecodedImage], str]] = {
    GraphicsProtocol.SIXEL: encode_sixel,
    GraphicsProtocol.KITTY: encode_kitty,
    GraphicsProtocol.ITERM: encode_iterm,
}


def encode_image(image: DecodedImage, protocol: GraphicsProtocol) -> str:
    """
    Encode image for a concrete protocol.

    Raises:
        ValueError: For DISABLED or AUTO, which have no encoder.
        ImageEncodeError: If encoding fails.
    """
    encoder = ENCODERS.get(protocol)
    if encoder is None:
        raise ValueError(f"No image encoder for protocol {protocol.value!r}")
    return encoder(image)


def image_placeholder(src: str, stage: str | None = None) -> str:
    """
    Text shown in place of an image.

    Without a stage this is the "images disabled" form, which ends with a
    newline; with a stage it describes where rendering failed.
    """
    if stage is None:
        return f"[Image src {src}]\n"
    return f"[Image src {src} {stage}]"


# =============================================================================
# Exceptions
# =============================================================================

class ImageError(Exception):
    """Base class for image failures. stage is shown in the placeholder."""
    stage = "failed"


class ImageFetchError(ImageError):
    """Raised when image bytes can't be downloaded."""
    stage = "fetch failed"


class ImageFormatError(ImageError):
    """Raised when the image container format can't be identified."""
    stage = "cannot guess format"


class ImageDecodeError(ImageError):
    """Raised when a recognized image can't be decoded to pixels."""
    stage = "cannot be decoded"


class ImageEncodeError(ImageError):
    """Raised when pixels can't be converted to a terminal protocol."""
    stage = "cannot be encoded"


class SixelEncodeError(ImageEncodeError):
    stage = "cannot be encoded as sixel"


class KittyEncodeError(ImageEncodeError):
    stage = "cannot be encoded into kitty image protocol"


class ITermEncodeError(ImageEncodeError):
    stage = "cannot be encoded into iTerm inline image"
