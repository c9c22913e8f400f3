"""
MedProof Canonical JSON Encoding

Ensures logically identical study protocols and public signals produce
identical byte representations.

Output matches JSON.stringify with sorted keys for strings, integers and
floats written without an exponent. Floats that Python writes in exponent
form do not match (1e-07 here, 1e-7 in JavaScript); protocols shared with
JavaScript services should carry such values as strings.
"""

import json
import math
from typing import Any, Dict, List, Union


def canonicalize(obj: Any) -> bytes:
    """
    Convert an object to canonical JSON bytes.

    Rules:
    - Object keys sorted lexicographically (Unicode code point order)
    - No whitespace between tokens (compact form)
    - UTF-8 encoding, no ASCII escaping
    - Integral floats encoded as integers (7.0 -> 7)
    - NaN and Infinity rejected
    - Arrays preserve order; objects inside arrays are sorted too

    Returns:
        UTF-8 encoded bytes of canonical JSON
    """
    canonical = _canonicalize_value(obj)
    return json.dumps(
        canonical,
        separators=(',', ':'),
        ensure_ascii=False,
        allow_nan=False,
    ).encode('utf-8')


def canonicalize_str(obj: Any) -> str:
    """Return canonical JSON as string."""
    return canonicalize(obj).decode('utf-8')


def _canonicalize_value(value: Any) -> Any:
    """Recursively canonicalize a value."""
    if value is None:
        return None
    elif isinstance(value, bool):
        return value
    elif isinstance(value, int):
        return value
    elif isinstance(value, float):
        return _canonicalize_number(value)
    elif isinstance(value, str):
        return value
    elif isinstance(value, dict):
        return _canonicalize_object(value)
    elif isinstance(value, (list, tuple)):
        return _canonicalize_array(value)
    else:
        raise ValueError(f"Cannot canonicalize type: {type(value)}")


def _canonicalize_number(value: float) -> Union[int, float]:
    """
    Give every number a single encoding.

    JSON.stringify renders 7.0 as "7"; json.dumps renders it as "7.0".
    Integral floats are folded to int so both sides agree.
    """
    if math.isnan(value) or math.isinf(value):
        raise ValueError(f"Cannot canonicalize non-finite number: {value}")
    if value.is_integer():
        return int(value)
    return value


def _canonicalize_object(obj: Dict[str, Any]) -> Dict[str, Any]:
    """Canonicalize an object by sorting keys lexicographically."""
    for key in obj:
        if not isinstance(key, str):
            raise ValueError(f"Object keys must be strings, got {type(key)}")
    sorted_keys = sorted(obj.keys())
    return {k: _canonicalize_value(obj[k]) for k in sorted_keys}


def _canonicalize_array(arr: Union[List, tuple]) -> List:
    """Canonicalize an array, preserving order."""
    return [_canonicalize_value(item) for item in arr]
