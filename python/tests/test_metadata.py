"""Tests for EXIF extraction and metadata consistency."""

import io
from datetime import datetime

import numpy as np
import pytest
from PIL import Image

from authentica.exceptions import MalformedImage
from authentica.metadata import (
    TAG_DATETIME,
    TAG_DATETIME_ORIGINAL,
    TAG_EXIF_IFD,
    TAG_MAKE,
    TAG_MODEL,
    TAG_SOFTWARE,
    ImageMetadata,
    analyze_metadata,
    extract_metadata,
    parse_date,
)

from conftest import make_image


def _jpeg_with_exif(make="TestMake", model="T-1000", date="2020:01:01 10:00:00",
                    software=None, original=None) -> bytes:
    img = Image.new("RGB", (32, 24), color=(90, 120, 150))
    exif = Image.Exif()
    if make is not None:
        exif[TAG_MAKE] = make
    if model is not None:
        exif[TAG_MODEL] = model
    if software is not None:
        exif[TAG_SOFTWARE] = software
    exif[TAG_DATETIME] = date
    if original is not None:
        exif[TAG_EXIF_IFD] = {TAG_DATETIME_ORIGINAL: original}
    buf = io.BytesIO()
    img.save(buf, format="JPEG", exif=exif)
    return buf.getvalue()


def _blank():
    return make_image(np.zeros((24, 32, 3), dtype=np.uint8))


class TestParseDate:
    def test_exif_format(self):
        assert parse_date("2021:06:15 08:30:00") == datetime(2021, 6, 15, 8, 30)

    def test_iso_format(self):
        assert parse_date("2021-06-15T08:30:00Z") == datetime(2021, 6, 15, 8, 30)

    def test_unparseable(self):
        assert parse_date("last tuesday") is None
        assert parse_date(None) is None


class TestExtractMetadata:
    def test_png_without_exif(self, png_bytes):
        meta = extract_metadata(png_bytes)
        assert meta.format == "png"
        assert meta.dimensions == "64x64"
        assert meta.exif == {}
        assert meta.creation_date is None

    def test_jpeg_with_exif(self):
        meta = extract_metadata(_jpeg_with_exif())
        assert meta.make == "TestMake"
        assert meta.model == "T-1000"
        assert meta.creation_date == datetime(2020, 1, 1, 10, 0)
        assert meta.dimensions == "32x24"

    def test_garbage(self):
        with pytest.raises(MalformedImage):
            extract_metadata(b"\x00\x01\x02\x03")


class TestMetadataConsistency:
    def test_missing_exif_penalized(self, png_bytes, gradient_image):
        score = analyze_metadata(gradient_image, extract_metadata(png_bytes))
        assert score.normalized_score == pytest.approx(0.8)
        assert score.consistent
        assert "No EXIF metadata found" in score.findings

    def test_clean_exif(self):
        image = make_image(np.zeros((24, 32, 3), dtype=np.uint8))
        score = analyze_metadata(image, extract_metadata(_jpeg_with_exif()))
        assert score.normalized_score == 1.0
        assert score.details["device"] == {"make": "TestMake", "model": "T-1000"}

    def test_created_after_modified(self):
        image = make_image(np.zeros((24, 32, 3), dtype=np.uint8))
        score = analyze_metadata(
            image,
            extract_metadata(_jpeg_with_exif()),
            modified_at="2019-01-01T00:00:00",
        )
        assert score.normalized_score == pytest.approx(0.7)
        assert any("later than" in f for f in score.findings)

    def test_requires_metadata(self, gradient_image):
        with pytest.raises(ValueError):
            analyze_metadata(gradient_image, None)

    def test_editing_software_penalized(self):
        data = _jpeg_with_exif(make=None, model=None, software="Adobe Photoshop 2024")
        score = analyze_metadata(_blank(), extract_metadata(data))
        # editing tool 0.4 + no camera 0.2
        assert score.normalized_score == pytest.approx(0.4)
        assert not score.consistent
        assert "Image edited with Adobe Photoshop 2024" in score.findings
        assert "Camera information missing" in score.findings
        assert score.details["edited"] is True

    def test_ordinary_software_not_penalized(self):
        data = _jpeg_with_exif(software="Firmware 1.02")
        score = analyze_metadata(_blank(), extract_metadata(data))
        assert score.normalized_score == 1.0
        assert score.details["edited"] is False

    def test_camera_only_checked_when_exif_present(self, png_bytes, gradient_image):
        score = analyze_metadata(gradient_image, extract_metadata(png_bytes))
        assert "Camera information missing" not in score.findings

    def test_make_alone_is_enough(self):
        data = _jpeg_with_exif(model=None)
        score = analyze_metadata(_blank(), extract_metadata(data))
        assert score.normalized_score == 1.0

    def test_capture_gap_penalized(self):
        data = _jpeg_with_exif(date="2023:06:01 00:00:00", original="2020:01:01 00:00:00")
        meta = extract_metadata(data)
        assert meta.original_date == datetime(2020, 1, 1)
        assert meta.modify_date == datetime(2023, 6, 1)
        score = analyze_metadata(_blank(), meta)
        assert score.normalized_score == pytest.approx(0.85)
        assert "File modified 1247 days after capture" in score.findings

    def test_capture_gap_within_a_day(self):
        meta = ImageMetadata(
            format="jpeg",
            dimensions="32x24",
            has_alpha=False,
            exif={TAG_MAKE: "TestMake"},
            make="TestMake",
            original_date=datetime(2020, 1, 1, 8, 0),
            modify_date=datetime(2020, 1, 1, 20, 0),
        )
        score = analyze_metadata(_blank(), meta)
        assert score.normalized_score == 1.0
        assert score.details["capture_gap_days"] == pytest.approx(0.5)

    def test_penalties_are_tunable(self):
        data = _jpeg_with_exif(make=None, model=None, software="GIMP 2.10")
        score = analyze_metadata(
            _blank(),
            extract_metadata(data),
            editing_software_penalty=0.1,
            missing_camera_penalty=0.0,
        )
        assert score.normalized_score == pytest.approx(0.9)

    def test_penalties_floor_at_zero(self):
        data = _jpeg_with_exif(make=None, model=None, software="Lightroom",
                               date="2023:06:01 00:00:00", original="2020:01:01 00:00:00")
        score = analyze_metadata(
            _blank(),
            extract_metadata(data),
            modified_at="2019-01-01T00:00:00",
        )
        # 0.3 + 0.4 + 0.2 + 0.15 exceeds 1.0
        assert score.normalized_score == 0.0

    def test_score_ignores_decoded_size(self, gradient_image):
        meta = extract_metadata(_jpeg_with_exif())
        assert meta.dimensions != f"{gradient_image.width}x{gradient_image.height}"
        score = analyze_metadata(gradient_image, meta)
        assert score.normalized_score == analyze_metadata(_blank(), meta).normalized_score
        assert score.findings == ()
