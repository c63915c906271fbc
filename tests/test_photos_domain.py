"""Tests for photo domain models."""

import pytest

from photo_gallery.domain.photos import CropRect, CropUnit, Layout


def test_layout_parse_falls_back_to_square() -> None:
    assert Layout.parse("2x1") is Layout.HORIZONTAL
    assert Layout.parse("3x3") is Layout.SQUARE
    assert Layout.parse(None) is Layout.SQUARE


def test_layout_span_and_aspect() -> None:
    assert Layout.VERTICAL.span == (1, 2)
    assert Layout.VERTICAL.aspect == 0.5
    assert Layout.HORIZONTAL.span == (2, 1)
    assert Layout.HORIZONTAL.aspect == 2
    assert Layout.LARGE.aspect == 1
    assert Layout.SQUARE.label == "Square (1×1)"


def test_crop_rect_decodes_stored_json() -> None:
    rect = CropRect.from_json(
        '{"x": 10, "y": 5, "width": 50, "height": 25, "unit": "%"}'
    )

    assert rect == CropRect(x=10, y=5, width=50, height=25, unit=CropUnit.PERCENT)
    assert CropRect.from_json(rect.to_json()) == rect


@pytest.mark.parametrize(
    "raw",
    ["not json", "[]", '{"x": 1}', '{"x": 1, "y": 1, "width": 1, "height": 1, "unit": "em"}'],
)
def test_crop_rect_rejects_malformed_json(raw: str) -> None:
    with pytest.raises(ValueError):
        CropRect.from_json(raw)


def test_crop_rect_unit_conversion() -> None:
    percent = CropRect(x=10, y=20, width=50, height=25, unit=CropUnit.PERCENT)

    pixels = percent.to_pixels(400, 200)

    assert pixels == CropRect(x=40, y=40, width=200, height=50, unit=CropUnit.PIXEL)
    assert pixels.to_percent(400, 200) == percent
    assert pixels.to_pixels(1, 1) is pixels


def test_crop_rect_degenerate() -> None:
    assert CropRect(x=0, y=0, width=0, height=10).is_degenerate
    assert CropRect(x=0, y=0, width=10, height=-1).is_degenerate
    assert not CropRect(x=0, y=0, width=1, height=1).is_degenerate


def test_crop_rect_with_non_finite_values_is_degenerate() -> None:
    nan = float("nan")
    inf = float("inf")

    assert CropRect(x=0, y=0, width=nan, height=nan).is_degenerate
    assert CropRect(x=nan, y=0, width=10, height=10).is_degenerate
    assert CropRect(x=0, y=0, width=inf, height=10).is_degenerate
