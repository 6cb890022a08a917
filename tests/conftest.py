from typing import Callable, List

import pytest

from sheettiles.core.errors import RenderError
from sheettiles.core.models import SourceImage


def make_source(width: int, height: int, bands: int = 3) -> SourceImage:
    size = width * height * bands
    pattern = bytes(range(256)) * (size // 256 + 1)
    return SourceImage(width=width, height=height, bands=bands, pixels=pattern[:size])


class StubRasterizer:
    def __init__(self, source: SourceImage | None = None, *, error: str | None = None) -> None:
        self._source = source
        self._error = error
        self.calls: List[bytes] = []

    def render(self, document: bytes) -> SourceImage:
        self.calls.append(document)
        if self._error:
            raise RenderError(self._error)
        assert self._source is not None
        return self._source


@pytest.fixture()
def source_factory() -> Callable[..., SourceImage]:
    return make_source
