from typing import Any, Dict, List

import pyvips
import pytest
import requests

from sheettiles.core.errors import RenderError
from sheettiles.rendering.http import HttpRasterizer
from sheettiles.rendering.vips import VipsRasterizer, decode_image, is_pdf


def _png(width: int, height: int, bands: int = 3) -> bytes:
    return pyvips.Image.black(width, height, bands=bands).write_to_buffer(".png")


class FakeResponse:
    def __init__(self, status_code: int, content: bytes = b"", text: str = "") -> None:
        self.status_code = status_code
        self.content = content
        self.text = text


class StubSession:
    def __init__(self, response: Any) -> None:
        self.response = response
        self.calls: List[Dict[str, Any]] = []

    def post(self, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"url": url, **kwargs})
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


def test_is_pdf() -> None:
    assert is_pdf(b"%PDF-1.7\n...")
    assert not is_pdf(_png(2, 2))


def test_decode_image_flattens_alpha() -> None:
    rgba = pyvips.Image.black(12, 7, bands=4).write_to_buffer(".png")
    source = decode_image(rgba)
    assert (source.width, source.height, source.bands) == (12, 7, 3)
    assert source.pixels[:3] == b"\xff\xff\xff"


def test_decode_image_flattens_16bit_alpha_onto_white() -> None:
    rgba16 = (
        pyvips.Image.black(8, 6, bands=4)
        .cast("ushort")
        .copy(interpretation="rgb16")
        .write_to_buffer(".png")
    )
    source = decode_image(rgba16)
    assert (source.width, source.height, source.bands) == (8, 6, 3)
    assert source.pixels == b"\xff" * (8 * 6 * 3)


def test_decode_image_rejects_garbage() -> None:
    with pytest.raises(RenderError):
        decode_image(b"definitely not an image")


def test_vips_rasterizer_accepts_prerendered_pages() -> None:
    source = VipsRasterizer().render(_png(30, 20))
    assert (source.width, source.height) == (30, 20)


def test_vips_rasterizer_rejects_empty_document() -> None:
    with pytest.raises(RenderError):
        VipsRasterizer().render(b"")
    with pytest.raises(ValueError):
        VipsRasterizer(scale=0)


def test_http_rasterizer_posts_document() -> None:
    session = StubSession(FakeResponse(200, content=_png(16, 9)))
    rasterizer = HttpRasterizer("https://render.internal/page", timeout=5, scale=4.0, session=session)  # type: ignore[arg-type]

    source = rasterizer.render(b"%PDF-1.7 page")

    assert (source.width, source.height) == (16, 9)
    call = session.calls[0]
    assert call["url"] == "https://render.internal/page"
    assert call["data"] == b"%PDF-1.7 page"
    assert call["timeout"] == 5
    assert call["params"] == {"scale": 4.0}


@pytest.mark.parametrize(
    "response",
    [FakeResponse(502, text="bad gateway"), requests.Timeout("slow")],
)
def test_http_rasterizer_failures(response: Any) -> None:
    rasterizer = HttpRasterizer("https://render.internal/page", session=StubSession(response))  # type: ignore[arg-type]
    with pytest.raises(RenderError):
        rasterizer.render(b"%PDF-1.7 page")
