"""Tests for ImageFormat."""

import pytest

from previewgen.image_format import ImageFormat


@pytest.mark.parametrize('name,expected', [
    ('JPEG', ImageFormat.JPEG),
    ('MPO', ImageFormat.JPEG),
    ('png', ImageFormat.PNG),
    ('WEBP', ImageFormat.WEBP),
    ('GIF', ImageFormat.OTHER),
    ('TIFF', ImageFormat.OTHER),
    (None, ImageFormat.OTHER),
])
def test_from_pil(name, expected):
    assert ImageFormat.from_pil(name) is expected


def test_content_types():
    assert ImageFormat.JPEG.content_type == 'image/jpeg'
    assert ImageFormat.PNG.content_type == 'image/png'
    assert ImageFormat.WEBP.content_type == 'image/webp'


def test_extensions():
    assert ImageFormat.WEBP.extension == '.webp'
    assert ImageFormat.OTHER.extension == '.jpg'
