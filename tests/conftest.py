import io

import pytest
from PIL import Image, ImageDraw


def _encode(img: Image.Image, fmt: str = "PNG") -> bytes:
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def make_image_bytes():
    """Factory: encoded image bytes of the given size/colour/mode."""
    def _make(width=1000, height=2000, color=(30, 120, 200), mode="RGB", fmt="PNG"):
        return _encode(Image.new(mode, (width, height), color), fmt)
    return _make


@pytest.fixture
def receipt_png() -> bytes:
    """Portrait phone screenshot: white page, green banner, dark amount text band."""
    img = Image.new("RGB", (1000, 2000), (255, 255, 255))
    draw = ImageDraw.Draw(img)
    draw.rectangle([0, 0, 1000, 250], fill=(20, 160, 90))
    draw.rectangle([250, 500, 750, 620], fill=(15, 15, 15))
    draw.text((300, 700), "EGP 1,250.00", fill=(0, 0, 0))
    return _encode(img)
