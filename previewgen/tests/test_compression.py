"""Tests for the compression/budget stage."""

import dataclasses
import io

import pytest
from PIL import Image, ImageChops

from previewgen import compression
from previewgen.compression import PreviewCompressor, encode, quality_ladder
from previewgen.config import PreviewConfig
from previewgen.errors import DecodeError, DimensionError
from previewgen.image_format import ImageFormat
from previewgen.resize import normalize


def produce(compressor, normalized, apply_watermark=True):
    return compressor.produce(
        normalized.data,
        normalized.width,
        normalized.height,
        normalized.original_format,
        apply_watermark=apply_watermark,
    )


class TestQualityLadder:
    """Tests for quality_ladder."""

    def test_default_ladder(self):
        """Test coarse steps above the midpoint, fine steps below."""
        assert quality_ladder(PreviewConfig()) == [85, 75, 65, 55, 50, 45, 40, 35, 30, 25, 20]

    def test_floor_always_included(self):
        """Test the floor is tried even when steps skip past it."""
        config = PreviewConfig(jpeg_quality_start=50, jpeg_quality_floor=22, jpeg_fine_step=10)
        assert quality_ladder(config) == [50, 40, 30, 22]

    def test_start_equals_floor(self):
        config = PreviewConfig(jpeg_quality_start=30, jpeg_quality_floor=30)
        assert quality_ladder(config) == [30]


class TestWatermark:
    """Tests for watermark compositing."""

    def test_large_image_gets_tiled_pattern(self, mocker):
        """Test the tile repeats every tile_size pixels on large images."""
        compressor = PreviewCompressor(PreviewConfig())
        fit = mocker.spy(compression.ImageOps, 'fit')

        result = compressor.apply_watermark(Image.new('RGB', (1000, 900), 'black'))

        assert fit.call_count == 0
        assert result.size == (1000, 900)
        assert result.getextrema()[0][1] > 0
        for x, y in [(150, 180), (200, 200), (230, 260), (260, 150)]:
            assert result.getpixel((x, y)) == result.getpixel((x + 400, y))
            assert result.getpixel((x, y)) == result.getpixel((x, y + 400))

    def test_small_image_gets_single_fitted_tile(self, mocker):
        """Test images smaller than the tile get one stretched copy."""
        compressor = PreviewCompressor(PreviewConfig())
        fit = mocker.spy(compression.ImageOps, 'fit')

        result = compressor.apply_watermark(Image.new('RGBA', (300, 300), (0, 0, 0, 0)))

        fit.assert_called_once()
        assert fit.call_args[0][1] == (300, 300)
        assert result.mode == 'RGBA'
        assert result.getchannel('A').getextrema()[1] > 0

    def test_one_small_dimension_uses_single_tile(self, mocker):
        """Test a wide but short image is not tiled."""
        compressor = PreviewCompressor(PreviewConfig())
        fit = mocker.spy(compression.ImageOps, 'fit')

        compressor.apply_watermark(Image.new('RGB', (1200, 300), 'black'))

        fit.assert_called_once()

    def test_rgb_stays_rgb(self):
        compressor = PreviewCompressor(PreviewConfig())
        result = compressor.apply_watermark(Image.new('RGB', (500, 500), 'gray'))
        assert result.mode == 'RGB'

    def test_prepare_without_watermark_is_untouched(self, photo_bytes):
        """Test the clean path is pixel-identical to the resize output."""
        normalized = normalize(photo_bytes)
        compressor = PreviewCompressor(PreviewConfig())

        clean = compressor.prepare(normalized.data, normalized.width, normalized.height, False)
        marked = compressor.prepare(normalized.data, normalized.width, normalized.height, True)
        resized = Image.open(io.BytesIO(normalized.data))

        assert ImageChops.difference(clean, resized).getbbox() is None
        assert ImageChops.difference(marked, resized).getbbox() is not None

    def test_prepare_maps_decompression_bomb(self, sample_png_bytes, mocker):
        """Test Pillow's bomb guard surfaces as a DecodeError."""
        compressor = PreviewCompressor(PreviewConfig())
        mocker.patch(
            'previewgen.compression.Image.open',
            side_effect=Image.DecompressionBombError("too many pixels"),
        )

        with pytest.raises(DecodeError):
            compressor.prepare(sample_png_bytes, 100, 100, False)

    def test_prepare_rejects_wrong_dimensions(self, sample_png_bytes):
        compressor = PreviewCompressor(PreviewConfig())
        with pytest.raises(DimensionError):
            compressor.prepare(sample_png_bytes, 50, 50, False)


class TestJpegLadder:
    """Tests for the lossy compression path."""

    def test_stops_at_first_quality_within_budget(self, mocker):
        """Test the search returns as soon as an attempt fits."""
        compressor = PreviewCompressor(PreviewConfig(max_bytes=50_000))
        fake = mocker.patch.object(
            compression, 'encode',
            side_effect=lambda img, fmt, quality=None, colors=None: b'x' * (quality * 1000),
        )

        data, fmt = compressor._compress_lossy(Image.new('RGB', (100, 100)))

        assert fmt is ImageFormat.JPEG
        assert len(data) == 50_000
        assert [c.kwargs['quality'] for c in fake.call_args_list] == [85, 75, 65, 55, 50]

    def test_falls_back_to_resize_then_webp(self, mocker):
        """Test the floor miss leads to a downsized JPEG then WebP."""
        compressor = PreviewCompressor(PreviewConfig(max_bytes=10))
        fake = mocker.patch.object(compression, 'encode', return_value=b'x' * 100)

        data, fmt = compressor._compress_lossy(Image.new('RGB', (400, 200)))

        assert fmt is ImageFormat.WEBP
        calls = fake.call_args_list
        assert len(calls) == len(quality_ladder(compressor.config)) + 2
        resized_jpeg, webp = calls[-2], calls[-1]
        assert resized_jpeg.args[0].size == (300, 150)
        assert resized_jpeg.args[1] is ImageFormat.JPEG
        assert resized_jpeg.kwargs['quality'] == 30
        assert webp.args[0].size == (300, 150)
        assert webp.args[1] is ImageFormat.WEBP
        assert webp.kwargs['quality'] == 40

    def test_budget_convergence(self, photo_bytes, mocker):
        """Test a photo over budget at q85 fits before the quality floor."""
        config = PreviewConfig()
        normalized = normalize(photo_bytes, config)
        compressor = PreviewCompressor(config)
        img = compressor.prepare(normalized.data, normalized.width, normalized.height, False)
        high = len(encode(img, ImageFormat.JPEG, quality=85))
        low = len(encode(img, ImageFormat.JPEG, quality=20))
        config.max_bytes = (high + low) // 2
        spy = mocker.spy(compression, 'encode')

        result = produce(compressor, normalized, apply_watermark=False)

        assert result.format is ImageFormat.JPEG
        assert result.size <= config.max_bytes
        assert result.width == normalized.width
        assert spy.call_args.kwargs['quality'] > config.jpeg_quality_floor

    def test_last_resort_returned_over_budget(self, noise_bytes, caplog):
        """Test an incompressible image still produces a preview."""
        compressor = PreviewCompressor(PreviewConfig(max_bytes=1024))
        normalized = normalize(noise_bytes)
        lossy = dataclasses.replace(normalized, original_format=ImageFormat.JPEG)

        result = produce(compressor, lossy)

        assert result.format is ImageFormat.WEBP
        assert result.size > 1024
        assert (result.width, result.height) == (600, 450)
        assert 'exceeds budget' in caplog.text

    def test_alpha_flattened_for_jpeg(self):
        """Test transparent pixels become white in JPEG output."""
        img = Image.new('RGBA', (20, 20), (0, 0, 0, 0))

        data = encode(img, ImageFormat.JPEG, quality=90)

        decoded = Image.open(io.BytesIO(data))
        assert decoded.mode == 'RGB'
        assert all(channel > 240 for channel in decoded.getpixel((10, 10)))


class TestPngLadder:
    """Tests for the PNG compression path."""

    def test_png_stays_png_with_alpha(self, icon_png_bytes):
        """Test a transparent icon remains a PNG with transparency."""
        compressor = PreviewCompressor(PreviewConfig())
        normalized = normalize(icon_png_bytes)

        result = produce(compressor, normalized)

        assert result.format is ImageFormat.PNG
        decoded = Image.open(io.BytesIO(result.data))
        assert decoded.format == 'PNG'
        assert decoded.convert('RGBA').getchannel('A').getextrema()[0] < 255

    def test_png_palette_quantized(self, icon_png_bytes):
        compressor = PreviewCompressor(PreviewConfig())
        result = produce(compressor, normalize(icon_png_bytes), apply_watermark=False)
        assert Image.open(io.BytesIO(result.data)).mode == 'P'

    def test_png_downsized_before_lossy(self, mocker):
        """Test an oversized PNG is retried smaller with fewer colours."""
        compressor = PreviewCompressor(PreviewConfig(max_bytes=50))
        sizes = iter([100, 40])
        fake = mocker.patch.object(
            compression, 'encode',
            side_effect=lambda img, fmt, quality=None, colors=None: b'x' * next(sizes),
        )

        data, fmt = compressor._compress_png(Image.new('RGBA', (400, 400)))

        assert fmt is ImageFormat.PNG
        assert len(data) == 40
        first, second = fake.call_args_list
        assert first.kwargs['colors'] == 256
        assert second.args[0].size == (300, 300)
        assert second.kwargs['colors'] == 64

    def test_png_last_resort_is_webp(self, noise_bytes):
        """Test a PNG that cannot fit falls back to WebP."""
        compressor = PreviewCompressor(PreviewConfig(max_bytes=1024))
        normalized = normalize(noise_bytes)

        result = produce(compressor, normalized)

        assert result.format is ImageFormat.WEBP
        assert (result.width, result.height) == (600, 450)


class TestScenarios:
    """End-to-end compression scenarios."""

    def test_large_photo(self, large_photo_bytes):
        """Test 4000x3000 JPEG, 60KB budget, 1024 max width."""
        config = PreviewConfig(max_width=1024, max_bytes=60 * 1024)
        normalized = normalize(large_photo_bytes, config)

        result = produce(PreviewCompressor(config), normalized)

        assert result.format in (ImageFormat.JPEG, ImageFormat.WEBP)
        assert result.size <= 60 * 1024
        assert result.width == 1024
        assert abs(result.height - 768) <= 1

    def test_clean_and_watermarked_differ(self, photo_bytes):
        compressor = PreviewCompressor(PreviewConfig())
        normalized = normalize(photo_bytes)

        clean = produce(compressor, normalized, apply_watermark=False)
        marked = produce(compressor, normalized, apply_watermark=True)

        assert clean.data != marked.data

    def test_result_properties(self, sample_image_bytes):
        result = produce(PreviewCompressor(PreviewConfig()), normalize(sample_image_bytes))
        assert result.content_type == 'image/jpeg'
        assert result.extension == '.jpg'
        assert result.size == len(result.data)


def test_encode_rejects_other():
    with pytest.raises(ValueError):
        encode(Image.new('RGB', (10, 10)), ImageFormat.OTHER)

