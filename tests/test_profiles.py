"""Tests for slicer profiles."""

import pytest

from gcode_report.profiles import (
    SlicerProfile,
    create_classifier,
    create_segmenter_config,
    profile_for_slicer,
)
from gcode_report.segmenter import FeedRateClassifier, MarkerClassifier, SegmenterConfig


class TestSlicerProfile:
    """Test SlicerProfile enum."""

    def test_all_profiles_exist(self):
        """Test that all expected profiles are defined."""
        assert SlicerProfile.GENERIC.value == "generic"
        assert SlicerProfile.CURA.value == "cura"
        assert SlicerProfile.PRUSA.value == "prusa"
        assert SlicerProfile.ORCA.value == "orca"
        assert SlicerProfile.BAMBU.value == "bambu"
        assert SlicerProfile.SIMPLIFY3D.value == "simplify3d"


class TestCreateSegmenterConfig:
    """Test create_segmenter_config factory."""

    def test_generic_uses_defaults(self):
        """Test that the generic profile equals the default config."""
        assert create_segmenter_config(SlicerProfile.GENERIC) == SegmenterConfig()

    def test_cura_profile(self):
        """Test Cura thresholds."""
        config = create_segmenter_config(SlicerProfile.CURA)

        assert config.min_layer_z_step == 0.05
        assert config.wipe_max_retraction == 1.0

    def test_bambu_profile_fine_layers(self):
        """Test that Bambu accepts finer layer steps than Prusa."""
        bambu = create_segmenter_config(SlicerProfile.BAMBU)
        prusa = create_segmenter_config(SlicerProfile.PRUSA)

        assert bambu.min_layer_z_step < prusa.min_layer_z_step

    def test_all_profiles_valid(self):
        """Test that every profile creates a valid config."""
        for profile in SlicerProfile:
            config = create_segmenter_config(profile)
            assert isinstance(config, SegmenterConfig)
            assert config.min_layer_z_step > 0

    def test_invalid_profile(self):
        """Test that an invalid profile raises."""
        with pytest.raises(ValueError, match="Unknown slicer profile"):
            create_segmenter_config("not_a_profile")


class TestCreateClassifier:
    """Test create_classifier factory."""

    def test_generic_uses_feed_rate(self):
        """Test that unknown slicers fall back to the feed-rate classifier."""
        assert isinstance(create_classifier(SlicerProfile.GENERIC), FeedRateClassifier)

    @pytest.mark.parametrize(
        "profile",
        [SlicerProfile.CURA, SlicerProfile.PRUSA, SlicerProfile.ORCA, SlicerProfile.BAMBU],
    )
    def test_marked_slicers_use_markers(self, profile):
        """Test that marker-writing slicers classify by marker."""
        assert isinstance(create_classifier(profile), MarkerClassifier)

    def test_invalid_profile(self):
        """Test that an invalid profile raises."""
        with pytest.raises(ValueError, match="Unknown slicer profile"):
            create_classifier("cura")


class TestProfileForSlicer:
    """Test slicer name lookup."""

    @pytest.mark.parametrize(
        "name,profile",
        [
            ("Cura", SlicerProfile.CURA),
            ("PrusaSlicer", SlicerProfile.PRUSA),
            ("SuperSlicer", SlicerProfile.PRUSA),
            ("OrcaSlicer", SlicerProfile.ORCA),
            ("BambuStudio", SlicerProfile.BAMBU),
            ("Simplify3D", SlicerProfile.SIMPLIFY3D),
        ],
    )
    def test_known_slicers(self, name, profile):
        """Test that detected slicer names map to profiles."""
        assert profile_for_slicer(name) is profile

    def test_unknown_slicer(self):
        """Test that unknown or missing names use the generic profile."""
        assert profile_for_slicer("KISSlicer") is SlicerProfile.GENERIC
        assert profile_for_slicer(None) is SlicerProfile.GENERIC
