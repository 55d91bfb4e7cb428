"""Tests for the Authentica analysis engine."""

import numpy as np
import pytest

import authentica
from authentica import Authentica
from authentica import ela
from authentica.config import WeightConfig
from authentica.exceptions import CodecFailure, ConfigurationError, MalformedImage
from authentica.types import (
    AnalysisOptions,
    ArchiveRecord,
    ContentType,
    FusionPolicy,
    Verdict,
)

from conftest import make_image

CONTEXT_FREE = {
    "lighting",
    "structural_coherence",
    "noise_pattern",
    "artifacts",
    "sharpness",
    "ela",
    "residual",
    "ai_detection",
}


class TestAnalyzeImage:
    def test_default_run(self, engine, gradient_image):
        result = engine.analyze_image(gradient_image)
        assert result.policy is FusionPolicy.ADDITIVE
        assert set(result.signals) == CONTEXT_FREE
        assert 0.0 <= result.suspicion_score <= 100.0
        assert result.final_score == pytest.approx(100.0 - result.suspicion_score)
        assert isinstance(result.verdict, Verdict)
        assert result.explanation

    def test_scores_within_range(self, engine, noise_image):
        result = engine.analyze_image(noise_image)
        for signal in result.signals.values():
            assert 0.0 <= signal.normalized_score <= signal.scale

    def test_weighted_policy(self, engine, gradient_image):
        result = engine.analyze_image(gradient_image, AnalysisOptions(policy=FusionPolicy.WEIGHTED))
        assert result.policy is FusionPolicy.WEIGHTED
        # ai_detection + ela + residual carry 0.6 of the default weight
        assert result.confidence == pytest.approx(60.0)

    def test_policy_by_name(self, engine, gradient_image):
        result = engine.analyze_image(gradient_image, AnalysisOptions(policy="weighted"))
        assert result.policy is FusionPolicy.WEIGHTED

    def test_deterministic(self, engine, noise_image):
        first = engine.analyze_image(noise_image)
        second = engine.analyze_image(noise_image)
        assert first.final_score == second.final_score
        assert first.findings == second.findings
        for name in first.signals:
            assert first.signals[name].normalized_score == second.signals[name].normalized_score

    def test_parallel_matches_sequential(self, gradient_image):
        sequential = Authentica(max_workers=1).analyze_image(gradient_image)
        parallel = Authentica(max_workers=4).analyze_image(gradient_image)
        assert parallel.final_score == sequential.final_score
        assert dict(parallel.breakdown) == dict(sequential.breakdown)

    def test_signal_selection(self, engine, gradient_image):
        result = engine.analyze_image(gradient_image, AnalysisOptions(signals=["lighting"]))
        assert set(result.signals) == {"lighting"}
        assert result.breakdown["lighting"].analyzed
        assert not result.breakdown["sharpness"].analyzed

    def test_parameter_override(self, engine, quadrant_image):
        options = AnalysisOptions(params={"lighting": {"grid": 2}})
        result = engine.analyze_image(quadrant_image, options)
        assert not result.signals["lighting"].consistent
        assert result.suspicion_score >= 30.0
        assert result.breakdown["lighting"].contribution == 30.0

    def test_custom_weights(self, gradient_image):
        engine = Authentica(weights=WeightConfig({"ela": 1.0}))
        result = engine.analyze_image(gradient_image, AnalysisOptions(policy=FusionPolicy.WEIGHTED))
        assert set(result.breakdown) == {"ela"}
        assert result.confidence == pytest.approx(100.0)


class TestFailureIsolation:
    def test_analyzer_exception_becomes_neutral(self, engine, gradient_image):
        options = AnalysisOptions(params={"artifacts": {"sample_stride": 0}})
        result = engine.analyze_image(gradient_image, options)
        assert result.signals["artifacts"].is_neutral
        assert not result.breakdown["artifacts"].analyzed
        assert result.signals["lighting"].error is None

    def test_codec_failure_becomes_neutral(self, engine, gradient_image, monkeypatch):
        def broken(image, quality=95):
            raise CodecFailure("no encoder")

        monkeypatch.setattr(ela, "jpeg_round_trip", broken)
        result = engine.analyze_image(gradient_image, AnalysisOptions(policy=FusionPolicy.WEIGHTED))
        assert result.signals["ela"].is_neutral
        assert not result.breakdown["ela"].analyzed
        assert result.confidence == pytest.approx(40.0)


class TestValidation:
    def test_not_a_raster(self, engine):
        with pytest.raises(MalformedImage):
            engine.analyze_image(b"\x89PNG")

    def test_undecodable_bytes(self, engine):
        with pytest.raises(MalformedImage):
            engine.analyze_bytes(b"not an image at all")

    def test_unknown_signal(self, engine, gradient_image):
        with pytest.raises(ConfigurationError):
            engine.analyze_image(gradient_image, AnalysisOptions(signals=["tarot"]))

    def test_unknown_parameter(self, engine, gradient_image):
        with pytest.raises(ConfigurationError):
            engine.analyze_image(gradient_image, AnalysisOptions(params={"ela": {"qualty": 80}}))

    def test_unknown_policy(self, engine, gradient_image):
        with pytest.raises(ConfigurationError):
            engine.analyze_image(gradient_image, AnalysisOptions(policy="majority-vote"))

    def test_zero_weights(self, engine, gradient_image):
        with pytest.raises(ConfigurationError):
            engine.analyze_image(gradient_image, AnalysisOptions(weights={"ela": 0.0}))

    def test_invalid_worker_count(self):
        with pytest.raises(ConfigurationError):
            Authentica(max_workers=0)


class TestContextSignals:
    def test_bytes_add_metadata(self, engine, png_bytes):
        result = engine.analyze_bytes(png_bytes)
        metadata = result.signals["metadata_consistency"]
        assert not metadata.is_neutral
        assert metadata.normalized_score == pytest.approx(0.8)

    def test_modified_at_passed_through(self, engine, png_bytes):
        result = engine.analyze_bytes(png_bytes, AnalysisOptions(modified_at="2024-02-03T04:05:06"))
        details = result.signals["metadata_consistency"].details
        assert details["modification_date"] == "2024-02-03T04:05:06"

    def test_references_add_match_signals(self, engine, gradient_image):
        references = [ArchiveRecord("copy", make_image(gradient_image.array().copy()))]
        result = engine.analyze_image(gradient_image, AnalysisOptions(references=references))
        assert result.signals["historical_match"].normalized_score == pytest.approx(1.0)
        assert result.signals["alteration_detection"].normalized_score == 0.1

    def test_references_of_other_type_skip_signals(self, engine, gradient_image):
        references = [ArchiveRecord("note", "some text", content_type=ContentType.TEXT)]
        result = engine.analyze_image(gradient_image, AnalysisOptions(references=references))
        assert "historical_match" not in result.signals


class TestAnalyzeFrames:
    @pytest.mark.parametrize("workers", [1, 3])
    def test_bad_frame_isolated(self, gradient_image, gray_image, workers):
        engine = Authentica(max_workers=workers)
        report = engine.analyze_frames([gradient_image, "not a frame", gray_image])
        assert len(report.frames) == 3
        assert [f.index for f in report.frames] == [0, 1, 2]
        assert report.frames[0].ok and report.frames[2].ok
        assert not report.frames[1].ok
        assert "RasterImage" in report.frames[1].error
        assert report.analyzed == 2
        assert report.failed == 1
        assert any("Frame 1 failed" in f for f in report.findings)

        expected = np.mean([
            report.frames[0].assessment.suspicion_score,
            report.frames[2].assessment.suspicion_score,
        ])
        assert report.mean_suspicion == pytest.approx(expected)
        assert report.verdict is not None

    def test_empty_batch(self, engine):
        report = engine.analyze_frames([])
        assert report.verdict is None
        assert report.analyzed == 0

    def test_all_frames_failed(self, engine):
        report = engine.analyze_frames([None, None])
        assert report.verdict is None
        assert report.failed == 2

    def test_invalid_options_raise(self, engine, gradient_image):
        with pytest.raises(ConfigurationError):
            engine.analyze_frames([gradient_image], AnalysisOptions(signals=["nope"]))


class TestShortcuts:
    def test_module_analyze_image(self, gradient_image):
        result = authentica.analyze_image(gradient_image)
        assert result.policy is FusionPolicy.ADDITIVE

    def test_module_compare(self, gradient_image):
        result = authentica.compare(gradient_image, gradient_image)
        assert result.score == pytest.approx(1.0)

    def test_engine_compare_text(self, engine):
        result = engine.compare("same words", "same words", ContentType.TEXT)
        assert result.score == 1.0

    def test_engine_compare_unsupported(self, engine):
        result = engine.compare(b"x", b"y", ContentType.AUDIO)
        assert result.score == 0.0
        assert result.error
