"""Utilities for coercing configuration values into canonical types."""

from __future__ import annotations

from typing import Optional

_METHOD_ALIASES = {
    "chessboard": "chessboard",
    "cityblock": "cityblock",
    "quasi-euclidean": "quasi-euclidean",
    "quasi_euclidean": "quasi-euclidean",
    "quasieuclidean": "quasi-euclidean",
}


def coerce_method(value: object, fallback: str) -> str:

    """Return a canonical distance method name.

    Parameters
    ----------
    value : object
        Free-form method indicator supplied by configuration. Strings are
        normalised by trimming whitespace and lowering the case; underscore
        and run-together spellings of ``quasi-euclidean`` are accepted.
    fallback : str
        Method to fall back to when ``value`` cannot be mapped onto one of
        ``'chessboard'``, ``'cityblock'`` or ``'quasi-euclidean'``.

    Returns
    -------
    str
        Either the canonical method string or ``fallback``.
    """
    method = str(value or fallback).strip().lower()
    return _METHOD_ALIASES.get(method, fallback)


def coerce_float(value: object, fallback: float) -> float:
    """Cast ``value`` to ``float`` while guarding against config noise.

    Parameters
    ----------
    value : object
        Arbitrary configuration token that should represent a floating point
        number. Strings and numeric values are accepted.
    fallback : float
        Value returned when the cast fails.

    Returns
    -------
    float
        ``value`` converted to ``float`` or ``fallback`` if conversion fails.
    """
    try:
        return float(value)
    except (TypeError, ValueError):
        return fallback


def coerce_int(value: object, fallback: int, minimum: Optional[int] = None) -> int:
    """Cast ``value`` to ``int`` while preserving a safe default.

    Parameters
    ----------
    value : object
        Candidate integer encoded as a number or string.
    fallback : int
        Value returned when ``value`` cannot be interpreted as an integer.
    minimum : int, optional
        Values below ``minimum`` are replaced by ``fallback``.

    Returns
    -------
    int
        ``value`` converted to ``int`` or ``fallback`` on error.
    """
    try:
        result = int(value)
    except (TypeError, ValueError):
        return fallback
    if minimum is not None and result < minimum:
        return fallback
    return result


def coerce_bool(value: object, fallback: bool) -> bool:
    """Interpret ``value`` as a boolean using common textual conventions.

    Parameters
    ----------
    value : object
        Configuration token that should represent ``True`` or ``False``. Truthy
        and falsy strings, numbers, and actual booleans are recognised.
    fallback : bool
        Value returned when ``value`` cannot be interpreted reliably.

    Returns
    -------
    bool
        Parsed boolean or ``fallback`` if the conversion is ambiguous.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "1", "yes", "on"}:
            return True
        if lowered in {"false", "0", "no", "off"}:
            return False
    if isinstance(value, (int, float)):
        return bool(value)
    return fallback
