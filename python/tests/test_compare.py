"""Tests for the perceptual comparator."""

import numpy as np
import pytest

from authentica.compare import PerceptualComparator, levenshtein, sequence_similarity
from authentica.types import ContentType

from conftest import encode, make_image


@pytest.fixture()
def comparator():
    return PerceptualComparator()


class TestLevenshtein:
    @pytest.mark.parametrize("a,b,expected", [
        ("kitten", "sitting", 3),
        ("flaw", "lawn", 2),
        ("", "abc", 3),
        ("abc", "abc", 0),
        ("abc", "ac", 1),
        ("ac", "abc", 1),
    ])
    def test_distance(self, a, b, expected):
        assert levenshtein(a, b) == expected

    def test_similarity_of_empty_strings(self):
        assert sequence_similarity("", "") == 1.0

    def test_similarity(self):
        assert sequence_similarity("kitten", "sitting") == pytest.approx(1 - 3 / 7)


class TestImageComparison:
    def test_identical_copy(self, comparator, gradient_image):
        copy = make_image(gradient_image.array().copy())
        result = comparator.compare(gradient_image, copy, ContentType.IMAGE)
        assert result.score == pytest.approx(1.0)
        assert result.variant_score == 0.1
        assert result.alteration_score == 0.1
        assert result.error is None

    def test_against_black(self, comparator):
        white = make_image(np.full((32, 32, 3), 255, dtype=np.uint8))
        black = make_image(np.zeros((32, 32, 3), dtype=np.uint8))
        result = comparator.compare(white, black, ContentType.IMAGE)
        assert result.score < 0.1
        assert result.alteration_score == 0.9

    def test_gradient_against_black(self, comparator, gradient_image):
        black = make_image(np.zeros((64, 64, 3), dtype=np.uint8))
        result = comparator.compare(gradient_image, black, ContentType.IMAGE)
        assert result.score < 0.7
        assert result.alteration_score == 0.9

    def test_compared_at_smaller_size(self, comparator, gradient_image):
        small = make_image(np.zeros((16, 20, 3), dtype=np.uint8))
        result = comparator.compare(gradient_image, small, ContentType.IMAGE)
        assert result.details["compared_size"] == (20, 16)

    def test_encoded_bytes(self, comparator, gradient_array):
        data = encode(gradient_array, "PNG")
        result = comparator.compare(data, data, ContentType.IMAGE)
        assert result.score == pytest.approx(1.0)

    def test_localized_edit(self, comparator, gradient_array):
        edited = gradient_array.copy()
        edited[:16, :16] = 255
        result = comparator.compare(make_image(gradient_array), make_image(edited), ContentType.IMAGE)
        assert 0.5 < result.score < 1.0
        assert result.alteration_score >= 0.6


class TestTextComparison:
    def test_identical(self, comparator):
        result = comparator.compare("the quick brown fox", "the quick brown fox", ContentType.TEXT)
        assert result.score == 1.0
        assert result.variant_score == 0.0
        assert result.alteration_score == 0.1

    def test_completely_different(self, comparator):
        result = comparator.compare("aaaa", "zzzz", ContentType.TEXT)
        assert result.score == 0.0
        assert result.alteration_score == 0.9
        assert result.variant_score == 1.0

    def test_bytes_input(self, comparator):
        result = comparator.compare(b"hello world", "hello world", ContentType.TEXT)
        assert result.score == 1.0


class TestUnsupported:
    @pytest.mark.parametrize("content_type", [ContentType.AUDIO, ContentType.VIDEO, ContentType.DOCUMENT])
    def test_zero_score_with_error(self, comparator, content_type):
        result = comparator.compare(b"a", b"b", content_type)
        assert result.score == 0.0
        assert result.variant_score == 0.0
        assert result.alteration_score == 0.0
        assert result.error
