"""Declarative type coercion.

A value converts only when its runtime type differs from the declared
target and the conversion is unambiguous. Anything else yields the
``ConversionSkipped`` outcome and the caller leaves the field untouched.
"""

import math
import re
from typing import Any

from fieldops.core.errors import ConversionSkipped
from fieldops.lib.partitioning.registry import TargetType, TypeRule

_INTEGER_LITERAL = re.compile(r"^[+-]?\d+$")
_DECIMAL_LITERAL = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")


def is_number(value: Any) -> bool:
    """True for int/float values (booleans excluded)."""
    return isinstance(value, int | float) and not isinstance(value, bool)


def _to_number(value: str) -> Any:
    text = value.strip()
    if _INTEGER_LITERAL.match(text):
        try:
            return int(text)
        except ValueError:
            # Beyond the interpreter's int-string digit limit.
            return ConversionSkipped
    if _DECIMAL_LITERAL.match(text):
        number = float(text)
        if math.isfinite(number):
            return number
    return ConversionSkipped


def _to_string(value: Any) -> Any:
    if isinstance(value, bool) or not is_number(value):
        return ConversionSkipped
    if isinstance(value, float):
        if not math.isfinite(value):
            return ConversionSkipped
        if value.is_integer():
            return str(int(value))
    try:
        return str(value)
    except ValueError:
        return ConversionSkipped


def parse_number(value: Any) -> int | float | None:
    """Return a finite number from a number or a strict numeric string, else None."""
    if isinstance(value, str):
        value = _to_number(value)
    if not is_number(value):
        return None
    try:
        return value if math.isfinite(value) else None
    except OverflowError:
        return None


def convert_value(value: Any, target: TargetType) -> Any:
    """Convert a value to the target type.

    Args:
        value: The stored value.
        target: Declared target type.

    Returns:
        The converted value, or ``ConversionSkipped`` when the value already
        has the target type, is null, or is not unambiguously convertible.
    """
    if value is None:
        return ConversionSkipped
    if target is TargetType.NUMBER:
        if isinstance(value, str):
            return _to_number(value)
        return ConversionSkipped
    if target is TargetType.STRING:
        if isinstance(value, str):
            return ConversionSkipped
        return _to_string(value)
    return ConversionSkipped


def coerce_fields(document: dict[str, Any], rules: tuple[TypeRule, ...]) -> dict[str, Any]:
    """Return the converted values for every rule-governed field that needs it.

    Fields that are absent, already typed, or skipped are not included.
    """
    updates: dict[str, Any] = {}
    for rule in rules:
        if rule.field not in document:
            continue
        converted = convert_value(document[rule.field], rule.target)
        if converted is not ConversionSkipped:
            updates[rule.field] = converted
    return updates
