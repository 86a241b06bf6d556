"""Tests for the raster codec."""

import base64

import numpy as np
import pytest

from visreg.raster import (
    RasterDecodeError,
    content_hash,
    decode_data_url,
    encode_data_url,
    load_rgba,
    mime_for_format,
    raster_info,
    rgba_to_data_url,
)


class TestDataUrls:
    def test_encode_decode(self, png_factory):
        data = png_factory(3, 2)
        url = encode_data_url(data)
        assert url.startswith("data:image/png;base64,")
        assert decode_data_url(url) == ("image/png", data)

    def test_percent_encoded_payload(self):
        assert decode_data_url("data:text/plain,hello%20world") == ("text/plain", b"hello world")

    @pytest.mark.parametrize("url", [
        "",
        "https://example.com/image.png",
        "data:image/png;base64,!!!not-base64!!!",
    ])
    def test_rejects_malformed(self, url):
        with pytest.raises(RasterDecodeError):
            decode_data_url(url)

    def test_mime_for_format(self):
        assert mime_for_format("jpeg") == "image/jpeg"
        assert mime_for_format("PNG") == "image/png"
        assert mime_for_format("bmp") == "image/png"


class TestDecoding:
    def test_load_rgba(self, png_factory):
        data = png_factory(5, 4, (10, 20, 30, 255), patches=[(1, 1, 2, 2, (200, 0, 0, 128))])
        pixels = load_rgba(encode_data_url(data))

        assert pixels.shape == (4, 5, 4)
        assert pixels.dtype == np.uint8
        assert tuple(pixels[0, 0]) == (10, 20, 30, 255)
        assert tuple(pixels[2, 2]) == (200, 0, 0, 128)
        assert pixels.flags.writeable is False

    def test_load_rgba_rejects_non_images(self):
        url = "data:text/plain;base64," + base64.b64encode(b"hello").decode()
        with pytest.raises(RasterDecodeError, match="unsupported mime"):
            load_rgba(url)

    def test_load_rgba_rejects_corrupt_bytes(self):
        url = "data:image/png;base64," + base64.b64encode(b"\x89PNG garbage").decode()
        with pytest.raises(RasterDecodeError):
            load_rgba(url)

    def test_oversized_image_is_a_decode_error(self, oversized_png):
        with pytest.raises(RasterDecodeError):
            load_rgba(encode_data_url(oversized_png))
        with pytest.raises(RasterDecodeError):
            raster_info(oversized_png)

    def test_raster_info(self, png_factory):
        assert raster_info(png_factory(7, 3)) == (7, 3, 32)

    def test_rgba_round_trip_through_data_url(self):
        pixels = np.zeros((2, 3, 4), dtype=np.uint8)
        pixels[..., 3] = 255
        pixels[1, 2] = (1, 2, 3, 255)
        assert np.array_equal(load_rgba(rgba_to_data_url(pixels)), pixels)


class TestContentHash:
    def test_deterministic(self, png_factory):
        data = png_factory(2, 2)
        assert content_hash(data) == content_hash(bytes(data))
        assert len(content_hash(data)) == 64

    def test_differs_for_different_bytes(self, png_factory):
        assert content_hash(png_factory(2, 2)) != content_hash(png_factory(2, 3))
