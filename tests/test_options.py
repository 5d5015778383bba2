"""Tests for layout/options.py — merging, mapping loader, validation."""

from __future__ import annotations

import logging

import pytest

from netlayout.errors import InvalidOptionError, LayoutError
from netlayout.graph import Direction
from netlayout.layout.options import EdgeRouting, LayoutConstraint, LayoutOptions


class TestMergedOver:
    def test_unset_fields_take_defaults(self):
        defaults = LayoutOptions(node_spacing=250.0, layer_spacing=400.0)
        merged = LayoutOptions(node_spacing=100.0).merged_over(defaults)
        assert merged.node_spacing == 100.0
        assert merged.layer_spacing == 400.0

    def test_false_overrides_true(self):
        defaults = LayoutOptions(respect_manual_positions=True)
        merged = LayoutOptions(respect_manual_positions=False).merged_over(defaults)
        assert merged.respect_manual_positions is False

    def test_constraints_carried(self):
        constraint = LayoutConstraint(type="align", nodes=("a", "b"))
        merged = LayoutOptions(constraints=(constraint,)).merged_over(LayoutOptions())
        assert merged.constraints == (constraint,)

    def test_frozen(self):
        with pytest.raises(AttributeError):
            LayoutOptions().node_spacing = 5.0  # type: ignore[misc]


class TestFromMapping:
    def test_camel_case_keys(self):
        opts = LayoutOptions.from_mapping(
            {"nodeSpacing": 120, "edgeRouting": "orthogonal", "respectManualPositions": False, "deviceColumns": 4}
        )
        assert opts.node_spacing == 120
        assert opts.edge_routing is EdgeRouting.ORTHOGONAL
        assert opts.respect_manual_positions is False
        assert opts.device_columns == 4

    def test_snake_case_keys(self):
        assert LayoutOptions.from_mapping({"layer_spacing": 90}).layer_spacing == 90

    def test_min_location_size_mapping(self):
        opts = LayoutOptions.from_mapping({"minLocationSize": {"width": 300, "height": 200}})
        assert opts.min_location_size == (300.0, 200.0)

    def test_direction(self):
        assert LayoutOptions.from_mapping({"direction": "LR"}).direction is Direction.LR

    def test_constraints(self):
        opts = LayoutOptions.from_mapping({"constraints": [{"type": "align", "nodes": ["a", "b"]}]})
        assert opts.constraints == (LayoutConstraint(type="align", nodes=("a", "b")),)

    def test_none_values_skipped(self):
        assert LayoutOptions.from_mapping({"nodeSpacing": None}).node_spacing is None

    def test_unknown_key_warns(self, caplog):
        with caplog.at_level(logging.WARNING, logger="netlayout.layout.options"):
            opts = LayoutOptions.from_mapping({"wobble": 3})
        assert opts == LayoutOptions()
        assert "wobble" in caplog.text


class TestValidation:
    def test_bad_routing(self):
        with pytest.raises(InvalidOptionError, match="edgeRouting"):
            LayoutOptions.from_mapping({"edgeRouting": "zigzag"})

    def test_non_numeric_spacing(self):
        with pytest.raises(InvalidOptionError):
            LayoutOptions.from_mapping({"nodeSpacing": "wide"})

    def test_columns_must_be_positive(self):
        with pytest.raises(InvalidOptionError, match="at least 1"):
            LayoutOptions.from_mapping({"deviceColumns": 0})

    def test_missing_size_key(self):
        with pytest.raises(InvalidOptionError):
            LayoutOptions.from_mapping({"minLocationSize": {"width": 10}})

    def test_is_layout_error_and_value_error(self):
        with pytest.raises(LayoutError):
            LayoutOptions.from_mapping({"deviceColumns": "three"})
        with pytest.raises(ValueError):
            LayoutOptions.from_mapping({"deviceColumns": "three"})

    def test_min_location_size_pair(self):
        assert LayoutOptions.from_mapping({"minLocationSize": [300, 200]}).min_location_size == (300.0, 200.0)

    @pytest.mark.parametrize(
        "value",
        [200, "200x150", [1, 2, 3], {"width": "wide", "height": 10}, ["a", "b"]],
    )
    def test_malformed_min_location_size(self, value):
        with pytest.raises(InvalidOptionError, match="minLocationSize"):
            LayoutOptions.from_mapping({"minLocationSize": value})

    @pytest.mark.parametrize(
        "value",
        [5, [{"nodes": ["a"]}], ["align"], [{"type": "align", "nodes": "ab"}], [{"type": "align", "options": 3}]],
    )
    def test_malformed_constraints(self, value):
        with pytest.raises(InvalidOptionError, match="constraints"):
            LayoutOptions.from_mapping({"constraints": value})

    @pytest.mark.parametrize("value", ["false", "true", 0, 1])
    def test_manual_positions_needs_real_bool(self, value):
        with pytest.raises(InvalidOptionError, match="respectManualPositions"):
            LayoutOptions.from_mapping({"respectManualPositions": value})

    def test_manual_positions_bool_kept(self):
        assert LayoutOptions.from_mapping({"respectManualPositions": True}).respect_manual_positions is True
