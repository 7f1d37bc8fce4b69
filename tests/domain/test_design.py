"""Tests for theme normalization."""

import pytest

from resume_tailor.domain.design import Theme, build_theme, normalize_color, normalize_font, theme_changes, theme_from_dict
from resume_tailor.errors import ValidationError


class TestNormalize:
    @pytest.mark.parametrize(
        "value,expected",
        [("#ABC", "#aabbcc"), ("1E3A8A", "#1e3a8a"), ("navy", "#1e3a8a"), ("Dark Blue", "#1e40af")],
    )
    def test_colors(self, value, expected):
        assert normalize_color(value) == expected

    def test_unknown_color(self):
        assert normalize_color("sparkly") is None
        assert normalize_color("") is None

    def test_fonts_and_aliases(self):
        assert normalize_font("roboto") == "Roboto"
        assert normalize_font("TNR") == "Times New Roman"
        assert normalize_font("open_sans") == "Open Sans"
        assert normalize_font("Comic Sans") is None


class TestBuildTheme:
    def test_defaults(self):
        theme = build_theme()
        assert theme == Theme()

    def test_overrides_are_normalized(self):
        theme = build_theme(font_family="helvetica neue", color_hex="#F00", layout="Classic")
        assert theme.font_family == "Helvetica"
        assert theme.color_hex == "#ff0000"
        assert theme.layout == "classic"

    def test_base_values_are_kept(self):
        base = build_theme(font_family="Lato")
        assert build_theme(base, color_hex="teal").font_family == "Lato"

    @pytest.mark.parametrize(
        "kwargs",
        [{"font_family": "Papyrus"}, {"color_hex": "#12"}, {"layout": "fancy"}, {"spacing": "huge"}, {"density": "x"}],
    )
    def test_rejects_unknown_values(self, kwargs):
        with pytest.raises(ValidationError):
            build_theme(**kwargs)

    def test_theme_from_dict_ignores_unknown_keys(self):
        theme = theme_from_dict({"font_family": "Inter", "shadow": "large", "spacing": 3})
        assert theme.font_family == "Inter"
        assert theme.spacing == "normal"


def test_theme_changes_are_style_records():
    before = Theme()
    after = build_theme(before, font_family="Inter", color_hex="#000000")
    records = theme_changes(before, after)
    assert [r.pointer for r in records] == ["/theme/font_family", "/theme/color_hex"]
    assert all(r.scope == "style" for r in records)
    assert records[0].before == "Arial" and records[0].after == "Inter"
    assert theme_changes(after, after) == []
