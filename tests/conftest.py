import io
import os

import pytest
from PIL import Image

from image_transcoder_api.codec import PillowCodec
from image_transcoder_api.errors import EncodeFailed


def image_bytes(img: Image.Image, fmt: str = "PNG") -> bytes:
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


def noise_image(width: int, height: int) -> Image.Image:
    return Image.frombytes("RGB", (width, height), os.urandom(width * height * 3))


class ScriptedCodec:
    """Codec whose encoded size per quality is given by a function."""

    def __init__(self, size_for_quality, fail_at=None):
        self.size_for_quality = size_for_quality
        self.fail_at = fail_at
        self.decoded = []
        self.calls = []

    def decode(self, data):
        self.decoded.append(data)
        return data

    def encode(self, image, output_format, quality=None):
        self.calls.append(quality)
        if quality == self.fail_at:
            raise ValueError("encoder exploded")
        return b"x" * self.size_for_quality(quality)


class SpyCodec(PillowCodec):
    def __init__(self):
        self.calls = []

    def encode(self, image, output_format, quality=None):
        self.calls.append(quality)
        return super().encode(image, output_format, quality)


class BrokenCodec(PillowCodec):
    def encode(self, image, output_format, quality=None):
        raise EncodeFailed("codec unavailable", quality=quality)


@pytest.fixture
def codec():
    return PillowCodec()


@pytest.fixture
def spy_codec():
    return SpyCodec()


@pytest.fixture
def scripted_codec():
    return ScriptedCodec


@pytest.fixture
def broken_codec():
    return BrokenCodec()


@pytest.fixture
def noise_png():
    """Random RGB noise: barely compressible in any format."""
    def make(width=128, height=128):
        return image_bytes(noise_image(width, height))
    return make


@pytest.fixture
def tiny_png():
    return image_bytes(Image.new("RGB", (4, 4), (200, 30, 30)))


@pytest.fixture
def wide_png():
    return image_bytes(Image.new("RGB", (200, 100), (10, 120, 240)))
