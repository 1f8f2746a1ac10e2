# =============================================================================
# Tests for image decoding and the terminal graphics encoders
# =============================================================================

import asyncio
import base64
from io import BytesIO

import httpx
import pytest
from PIL import Image

from conftest import RecordingHandler, make_png
from ojterm.rendering.images import (
    KITTY_CHUNK_SIZE,
    DecodedImage,
    ImageDecodeError,
    ImageFetchError,
    ImageFormatError,
    ITermEncodeError,
    KittyEncodeError,
    SixelEncodeError,
    decode_image,
    encode_image,
    encode_iterm,
    encode_kitty,
    encode_sixel,
    fetch_image,
    frame_kitty_payload,
    image_placeholder,
    image_url,
)
from ojterm.rendering.protocol import GraphicsProtocol


def solid(width, height, color=(10, 20, 30)) -> DecodedImage:
    return DecodedImage(width=width, height=height, pixels=bytes(color) * (width * height))


# -----------------------------------------------------------------------------
# Decoding
# -----------------------------------------------------------------------------

class TestDecodeImage:
    def test_png(self):
        image = decode_image(make_png(3, 2, (1, 2, 3)))
        assert image.size == (3, 2)
        assert image.pixels == bytes((1, 2, 3)) * 6

    def test_converts_to_rgb(self):
        output = BytesIO()
        Image.new("RGBA", (2, 1), (9, 8, 7, 0)).save(output, format="PNG")
        image = decode_image(output.getvalue())
        assert len(image.pixels) == 2 * 1 * 3

    def test_unknown_format(self):
        with pytest.raises(ImageFormatError):
            decode_image(b"definitely not an image")

    def test_truncated_data(self):
        data = make_png(64, 64, noise=True)
        with pytest.raises(ImageDecodeError):
            decode_image(data[: len(data) // 2])

    def test_stage_names(self):
        assert ImageFormatError.stage == "cannot guess format"
        assert ImageDecodeError.stage == "cannot be decoded"
        assert ImageFetchError.stage == "fetch failed"


# -----------------------------------------------------------------------------
# Fetching
# -----------------------------------------------------------------------------

def fetch_with(handler, url):
    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await fetch_image(client, url)
    return asyncio.run(go())


class TestFetchImage:
    def test_returns_body(self, png_bytes):
        handler = RecordingHandler({"http://x/a.png": httpx.Response(200, content=png_bytes)})
        assert fetch_with(handler, "http://x/a.png") == png_bytes

    def test_connection_error(self):
        with pytest.raises(ImageFetchError):
            fetch_with(RecordingHandler(), "http://bad")

    def test_http_error_status(self):
        handler = RecordingHandler({"http://x/a.png": httpx.Response(404)})
        with pytest.raises(ImageFetchError):
            fetch_with(handler, "http://x/a.png")

    def test_relative_url(self):
        with pytest.raises(ImageFetchError):
            fetch_with(RecordingHandler(), "/images/a.png")


class TestImageUrl:
    def test_without_base_url(self):
        assert image_url("a.png") == "a.png"

    def test_joined_with_base_url(self):
        assert image_url("../img/a.png", "http://judge.example/problem/1/") == "http://judge.example/problem/img/a.png"

    def test_absolute_src_wins(self):
        assert image_url("https://cdn.example/a.png", "http://judge.example/") == "https://cdn.example/a.png"

    def test_malformed_host(self):
        with pytest.raises(ImageFetchError, match="Invalid IPv6 URL"):
            image_url("http://[bad/x.png", "http://judge.example/")


# -----------------------------------------------------------------------------
# Kitty
# -----------------------------------------------------------------------------

class TestKittyFrames:
    def test_exactly_one_chunk(self):
        frames = frame_kitty_payload("A" * KITTY_CHUNK_SIZE, 4, 5)
        assert frames == [f"\x1b_Gf=24,s=4,v=5,a=T;{'A' * 4096}\x1b\\"]

    def test_one_character_over(self):
        frames = frame_kitty_payload("A" * 4096 + "B", 4, 5)
        assert frames == [
            f"\x1b_Gf=24,s=4,v=5,a=T,m=1;{'A' * 4096}\x1b\\",
            "\x1b_Gm=0;B\x1b\\",
        ]

    def test_many_chunks(self):
        payload = "".join(chr(ord("a") + i % 26) for i in range(3 * 4096 + 10))
        frames = frame_kitty_payload(payload, 1, 1)
        assert len(frames) == 4
        assert frames[0].startswith("\x1b_Gf=24,s=1,v=1,a=T,m=1;")
        assert frames[1].startswith("\x1b_Gm=1;")
        assert frames[2].startswith("\x1b_Gm=1;")
        assert frames[3].startswith("\x1b_Gm=0;")

        # Chunks split on character offsets and rejoin to the payload
        rejoined = "".join(frame.split(";", 1)[1][:-2] for frame in frames)
        assert rejoined == payload

    def test_exact_multiple_ends_with_last_flag(self):
        frames = frame_kitty_payload("A" * 4096 * 2, 1, 1)
        assert len(frames) == 2
        assert frames[1] == f"\x1b_Gm=0;{'A' * 4096}\x1b\\"

    def test_small_image(self):
        image = solid(2, 1, (255, 0, 0))
        payload = base64.standard_b64encode(image.pixels).decode("ascii")
        assert encode_kitty(image) == f"\x1b_Gf=24,s=2,v=1,a=T;{payload}\x1b\\"

    def test_large_image_is_chunked(self):
        # 1025 pixels = 3075 bytes = 4100 base64 characters
        image = solid(1025, 1)
        output = encode_kitty(image)
        assert output.count("\x1b_G") == 2
        assert ",m=1;" in output
        assert output.endswith("\x1b\\") and "\x1b_Gm=0;" in output

    def test_32x32_fits_one_frame(self):
        # 1024 pixels = 3072 bytes = exactly 4096 base64 characters
        output = encode_kitty(solid(32, 32))
        assert output.count("\x1b_G") == 1
        assert "m=" not in output

    def test_bad_buffer(self):
        with pytest.raises(KittyEncodeError):
            encode_kitty(DecodedImage(width=2, height=2, pixels=b"\x00" * 5))


# -----------------------------------------------------------------------------
# iTerm
# -----------------------------------------------------------------------------

class TestITerm:
    def test_frame_format(self):
        output = encode_iterm(solid(3, 2))
        prefix, payload = output[:-1].split(":", 1)
        assert output.startswith("\x1b]1337;File=inline=1;size=")
        assert output.endswith("\x07")
        assert prefix.endswith(";width=3px;height=2px;doNotMoveCursor=1")

        png_data = base64.standard_b64decode(payload)
        assert f"size={len(png_data)};" in prefix

    def test_png_is_opaque(self):
        output = encode_iterm(solid(3, 2, (5, 6, 7)))
        png_data = base64.standard_b64decode(output[:-1].split(":", 1)[1])
        image = Image.open(BytesIO(png_data))
        assert image.format == "PNG"
        assert image.mode == "RGBA"
        assert image.size == (3, 2)
        assert image.getpixel((0, 0)) == (5, 6, 7, 255)

    def test_single_frame_regardless_of_size(self):
        output = encode_iterm(solid(200, 200))
        assert output.count("\x1b]1337;") == 1

    def test_empty_image(self):
        with pytest.raises(ITermEncodeError):
            encode_iterm(DecodedImage(width=0, height=0, pixels=b""))


# -----------------------------------------------------------------------------
# Sixel
# -----------------------------------------------------------------------------

class TestSixel:
    def test_structure(self):
        output = encode_sixel(solid(4, 7, (255, 0, 0)))
        assert output.startswith('\x1bP0;1;0q"1;1;4;7')
        assert output.endswith("\x1b\\")
        # Seven rows need two 6-pixel bands
        assert output.count("-") == 1

    def test_run_length_encoding(self):
        # One full band of a single color: every column is all six bits set
        output = encode_sixel(solid(10, 6, (0, 0, 255)))
        assert "!10~" in output

    def test_palette_registers(self):
        output = encode_sixel(solid(2, 2, (255, 255, 255)))
        assert ";2;100;100;100" in output

    def test_empty_image(self):
        with pytest.raises(SixelEncodeError):
            encode_sixel(DecodedImage(width=0, height=3, pixels=b""))

    def test_bad_buffer(self):
        with pytest.raises(SixelEncodeError):
            encode_sixel(DecodedImage(width=1, height=1, pixels=b"\x00"))


# -----------------------------------------------------------------------------
# Dispatch and placeholders
# -----------------------------------------------------------------------------

class TestEncodeImage:
    def test_dispatch(self):
        image = solid(2, 2)
        assert encode_image(image, GraphicsProtocol.KITTY) == encode_kitty(image)
        assert encode_image(image, GraphicsProtocol.ITERM) == encode_iterm(image)
        assert encode_image(image, GraphicsProtocol.SIXEL) == encode_sixel(image)

    @pytest.mark.parametrize("protocol", [GraphicsProtocol.AUTO, GraphicsProtocol.DISABLED])
    def test_no_encoder(self, protocol):
        with pytest.raises(ValueError):
            encode_image(solid(1, 1), protocol)


def test_placeholders():
    assert image_placeholder("http://x/y.png") == "[Image src http://x/y.png]\n"
    assert image_placeholder("a.png", "fetch failed") == "[Image src a.png fetch failed]"
