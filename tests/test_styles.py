from __future__ import annotations

import pytest

from restyle.core.exceptions import SerializationError
from restyle.styles.colors import canonical_color, is_color
from restyle.styles.normalizer import StyleNormalizer
from restyle.styles.schema import PROPERTY_SCHEMA, canonical_name, to_kebab
from restyle.styles.validator import StyleValidator


def test_property_names_are_canonicalized_to_camel_case():
    assert canonical_name("backgroundColor") == "backgroundColor"
    assert canonical_name("background-color") == "backgroundColor"
    assert canonical_name("BACKGROUNDCOLOR") == "backgroundColor"
    assert canonical_name("not-a-property") is None
    assert to_kebab("borderTopLeftRadius") == "border-top-left-radius"


def test_schema_covers_every_category():
    categories = {spec.category for spec in PROPERTY_SCHEMA.values()}
    assert categories == {"layout", "box-model", "typography", "color", "border", "flex-grid", "effects", "interaction"}
    assert len(PROPERTY_SCHEMA) >= 70


def test_localized_colors_map_to_hex_and_css_names_pass_through():
    assert canonical_color("Azul") == "#3b82f6"
    assert canonical_color("blue") == "blue"
    assert is_color("#abc")
    assert is_color("rgba(0, 0, 0, 0.5)")
    assert is_color("hsl(210, 50%, 40%)")
    assert is_color("currentColor")
    assert not is_color("bluish")


def test_normalizer_appends_default_unit_to_bare_lengths():
    normalized = StyleNormalizer().normalize(
        {"width": 100, "height": "10", "maxWidth": "100%", "padding": "8", "margin": "4 8", "top": 0}
    )
    assert normalized == {
        "width": "100px",
        "height": "10px",
        "maxWidth": "100%",
        "padding": "8px",
        "margin": "4 8",
        "top": "0",
    }


def test_normalizer_lowercases_colors_and_enums_and_keeps_unknown_keys():
    normalized = StyleNormalizer().normalize({"color": "VERMELHO", "display": "FLEX", "glow": "yes"})
    assert normalized == {"color": "#ef4444", "display": "flex", "glow": "yes"}


def test_normalizer_honours_configured_unit():
    assert StyleNormalizer(default_length_unit="rem").normalize({"fontSize": 2}) == {"fontSize": "2rem"}


def test_line_height_stays_unitless():
    assert StyleNormalizer().normalize({"lineHeight": 1.5}) == {"lineHeight": "1.5"}


def test_validation_is_partial():
    result = StyleValidator().validate({"color": "blue", "colour": "red", "fontSize": "huge"})
    assert result.valid == {"color": "blue"}
    assert "Invalid CSS property: colour" in result.errors
    assert "Invalid value for fontSize: huge" in result.errors
    assert not result.is_valid
    assert any("Did you mean 'color'" in suggestion for suggestion in result.suggestions)


def test_validation_accepts_each_value_kind():
    result = StyleValidator().validate(
        {
            "backgroundColor": "#3b82f6",
            "width": "calc(100% - 10px)",
            "height": "auto",
            "display": "Inline-Block",
            "opacity": "0.4",
            "zIndex": 10,
            "borderRadius": "4px 8px 4px 8px",
            "fontFamily": "Georgia, serif",
            "margin": "inherit",
        }
    )
    assert result.is_valid
    assert len(result.valid) == 9


@pytest.mark.parametrize(
    ("prop", "value"),
    [
        ("opacity", "1.5"),
        ("zIndex", "2.5"),
        ("opacity", "nan"),
        ("flexGrow", "inf"),
        ("flexGrow", "Infinity"),
        ("padding", "1px 2px 3px 4px 5px"),
        ("padding", "1px wide"),
        ("fontFamily", "Arial; color: red"),
        ("fontFamily", "   "),
        ("display", "sideways"),
        ("color", True),
    ],
)
def test_validation_rejects_bad_values(prop, value):
    result = StyleValidator().validate({prop: value})
    assert result.valid == {}
    assert result.errors


def test_validation_accepts_json_text_and_rejects_malformed_json():
    validator = StyleValidator()
    assert validator.validate('{"color": "red"}').valid == {"color": "red"}
    with pytest.raises(SerializationError):
        validator.validate("{color: red")


def test_validation_is_idempotent():
    validator = StyleValidator()
    styles = {"color": "red", "bogus": 1, "fontSize": "huge"}
    first = validator.validate(styles)
    second = validator.validate(styles)
    assert second.valid == first.valid
    assert second.errors == first.errors
    assert validator.validate(first.valid).is_valid


def test_unknown_property_is_dropped_and_reported_once():
    result = StyleValidator().validate({"color": "red", "bogusProp": "x"})
    assert result.valid == {"color": "red"}
    assert result.errors == ["Invalid CSS property: bogusProp"]
    assert not result.is_valid


def test_bare_margin_gets_pixels_before_validation():
    result = StyleValidator().validate(StyleNormalizer().normalize({"marginTop": "10"}))
    assert result.valid == {"marginTop": "10px"}
    assert result.errors == []
