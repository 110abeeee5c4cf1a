"""
Measurement conversion for free-text recipe lines.

Rewrites unit expressions between metric and imperial units using one
regular expression per unit family.

Conversion Rules (metric -> imperial):
- Weight: g -> oz (x0.035274, one decimal, "0.7 oz")
- Weight: kg -> lb (x2.20462, one decimal, "4.4 lb")
- Volume: ml / ml's / mls -> fl oz (x0.033814, one decimal, "4.1 fl oz")
- Temperature: °C -> °F (x9/5 + 32, integer, "199°F")
- Length: cm -> inches (x0.393701, one decimal, "7.9 inches")

Imperial -> metric uses the reciprocal factors: oz -> integer g,
lb/lbs -> one decimal kg, fl oz -> integer ml, °F -> integer °C,
inch/inches -> one decimal cm.

Ranges such as "10-15g", "10-15cm" or "90-95°C" are converted first, as a
unit, so both bounds share one unit label ("0.4-0.5 oz", "194-203°F").
Anything without a number directly in
front of a recognised unit ("a pinch of salt", "5mg") is left untouched.
"""

import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Tuple

# Number: integer or decimal, not glued to a preceding word or number
_NUMBER = r"(?<![\w.])([0-9]+\.?[0-9]*)"

GRAMS_PER_OUNCE_FACTOR = 0.035274
POUNDS_PER_KILOGRAM = 2.20462
FLUID_OUNCES_PER_MILLILITER = 0.033814
INCHES_PER_CENTIMETER = 0.393701


@dataclass(frozen=True)
class UnitRule:
    """One unit family in one direction: a pattern and how to rewrite a value."""

    name: str
    pattern: "re.Pattern[str]"
    convert: Callable[[float], str]


def _celsius_to_fahrenheit(value: float) -> float:
    return value * 9 / 5 + 32


def _fahrenheit_to_celsius(value: float) -> float:
    return (value - 32) * 5 / 9


# Order matters only for readability: every pattern requires the number to be
# directly followed by its own unit token, so "kg" is never read as "g" and
# "mg" matches nothing.
METRIC_TO_IMPERIAL: List[UnitRule] = [
    UnitRule(
        "weight",
        re.compile(_NUMBER + r"\s?g\b"),
        lambda v: f"{v * GRAMS_PER_OUNCE_FACTOR:.1f} oz",
    ),
    UnitRule(
        "weight_large",
        re.compile(_NUMBER + r"\s?kg\b"),
        lambda v: f"{v * POUNDS_PER_KILOGRAM:.1f} lb",
    ),
    UnitRule(
        "volume",
        re.compile(_NUMBER + r"\s*ml'?s?\b", re.IGNORECASE),
        lambda v: f"{v * FLUID_OUNCES_PER_MILLILITER:.1f} fl oz",
    ),
    UnitRule(
        "temperature",
        re.compile(_NUMBER + r"°C\b"),
        lambda v: f"{_celsius_to_fahrenheit(v):.0f}°F",
    ),
    UnitRule(
        "length",
        re.compile(_NUMBER + r"\s?cm\b"),
        lambda v: f"{v * INCHES_PER_CENTIMETER:.1f} inches",
    ),
]

IMPERIAL_TO_METRIC: List[UnitRule] = [
    UnitRule(
        "weight",
        re.compile(_NUMBER + r" ?oz\b"),
        lambda v: f"{v / GRAMS_PER_OUNCE_FACTOR:.0f}g",
    ),
    UnitRule(
        "weight_large",
        re.compile(_NUMBER + r" ?lbs?\b"),
        lambda v: f"{v / POUNDS_PER_KILOGRAM:.1f}kg",
    ),
    UnitRule(
        "volume",
        re.compile(_NUMBER + r" ?fl oz\b"),
        lambda v: f"{v / FLUID_OUNCES_PER_MILLILITER:.0f}ml",
    ),
    UnitRule(
        "temperature",
        re.compile(_NUMBER + r"°F\b"),
        lambda v: f"{_fahrenheit_to_celsius(v):.0f}°C",
    ),
    UnitRule(
        "length",
        re.compile(_NUMBER + r" ?inch(?:es)?\b"),
        lambda v: f"{v / INCHES_PER_CENTIMETER:.1f}cm",
    ),
]

# Ranges: "<n1>-<n2><unit>", optional whitespace around the dash and before the
# unit. Unit case rules match the single-value patterns (only ml ignores case).
METRIC_RANGE = re.compile(
    _NUMBER + r"\s*-\s*([0-9]+\.?[0-9]*)\s*(kg|g|(?i:ml'?s?)|cm|°C)\b"
)
IMPERIAL_RANGE = re.compile(
    _NUMBER + r"\s*-\s*([0-9]+\.?[0-9]*)\s*(fl oz|oz|lbs?|inch(?:es)?|°F)\b"
)

# unit token -> (function of one bound, suffix appended after the upper bound)
_METRIC_RANGE_UNITS: Dict[str, Tuple[Callable[[float], str], str]] = {
    "g": (lambda v: f"{v * GRAMS_PER_OUNCE_FACTOR:.1f}", " oz"),
    "kg": (lambda v: f"{v * POUNDS_PER_KILOGRAM:.1f}", " lb"),
    "ml": (lambda v: f"{v * FLUID_OUNCES_PER_MILLILITER:.1f}", " fl oz"),
    "cm": (lambda v: f"{v * INCHES_PER_CENTIMETER:.1f}", " inches"),
    "°C": (lambda v: f"{_celsius_to_fahrenheit(v):.0f}", "°F"),
}
_IMPERIAL_RANGE_UNITS: Dict[str, Tuple[Callable[[float], str], str]] = {
    "oz": (lambda v: f"{v / GRAMS_PER_OUNCE_FACTOR:.0f}", " g"),
    "fl oz": (lambda v: f"{v / FLUID_OUNCES_PER_MILLILITER:.0f}", " ml"),
    "lb": (lambda v: f"{v / POUNDS_PER_KILOGRAM:.1f}", " kg"),
    "inch": (lambda v: f"{v / INCHES_PER_CENTIMETER:.1f}", " cm"),
    "°F": (lambda v: f"{_fahrenheit_to_celsius(v):.0f}", "°C"),
}


def _range_unit_key(unit: str) -> str:
    if unit.lower().startswith("ml"):
        return "ml"
    if unit.startswith("lb"):
        return "lb"
    if unit.startswith("inch"):
        return "inch"
    return unit


def _replace_matches(
    text: str, pattern: "re.Pattern[str]", rewrite: Callable[["re.Match[str]"], str]
) -> str:
    """
    Replace every match of pattern in text.

    Matches are collected against the original text and replaced rightmost
    first, so earlier offsets stay valid while the string changes length.
    """
    matches = list(pattern.finditer(text))
    for match in reversed(matches):
        text = text[: match.start()] + rewrite(match) + text[match.end():]
    return text


def convert_ranges(text: str, to_imperial: bool) -> str:
    """Convert range expressions ("10-15g") so both bounds share one unit."""
    pattern = METRIC_RANGE if to_imperial else IMPERIAL_RANGE
    units = _METRIC_RANGE_UNITS if to_imperial else _IMPERIAL_RANGE_UNITS

    def rewrite(match: "re.Match[str]") -> str:
        convert_bound, suffix = units[_range_unit_key(match.group(3))]
        low = convert_bound(float(match.group(1)))
        high = convert_bound(float(match.group(2)))
        return f"{low}-{high}{suffix}"

    return _replace_matches(text, pattern, rewrite)


def convert(text: str, to_imperial: bool) -> str:
    """
    Rewrite every recognised unit expression in text.

    Args:
        text: Free-text ingredient or preparation line
        to_imperial: True for metric -> imperial, False for imperial -> metric

    Returns:
        The text with each recognised quantity converted; everything else
        is returned unchanged.

    Example:
        >>> convert("Heat 200ml water to 93°C", to_imperial=True)
        'Heat 6.8 fl oz water to 199°F'
    """
    if not text:
        return text

    result = convert_ranges(text, to_imperial)
    rules = METRIC_TO_IMPERIAL if to_imperial else IMPERIAL_TO_METRIC
    for rule in rules:
        result = _replace_matches(
            result, rule.pattern, lambda m, rule=rule: rule.convert(float(m.group(1)))
        )
    return result


def convert_lines(lines, to_imperial: bool) -> List[str]:
    """Convert each line of an ingredient or preparation list."""
    return [convert(line, to_imperial) for line in lines]
