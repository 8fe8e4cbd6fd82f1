"""
jcs.py - JSON Canonicalization Scheme (RFC 8785 style)

Every digest on the ledger is computed over these bytes, so the engine and
the offline verifier must agree on them exactly.

Constraints:
1. Strings: UTF-8, NFC only.
2. Numbers: no NaN/Infinity; integral floats are written as integers
   (30.0 -> "30"), no "+" in exponents.
3. Objects: keys sorted by UTF-16 code units.
4. Arrays: order preserved.
"""

import json
import math
import struct
import unicodedata


def _float_to_string(f: float) -> str:
    if math.isnan(f) or math.isinf(f):
        raise ValueError("NaN and Infinity are not permitted in JSON")

    if f == 0.0:
        # RFC 8785 keeps the sign of zero
        packed = struct.pack('>d', f)
        if packed[0] & 0x80:
            return "-0"
        return "0"

    if f.is_integer() and abs(f) < 1e21:
        return str(int(f))

    s = json.dumps(f, allow_nan=False)
    if 'e+' in s:
        s = s.replace('e+', 'e')
    return s


def canonicalize(data) -> bytes:
    """
    Returns the canonical bytes of the given Python object.
    Recursive implementation to ensure strict sorting.
    """
    if data is None:
        return b'null'

    if isinstance(data, bool):
        return b'true' if data else b'false'

    if isinstance(data, int):
        return str(data).encode('utf-8')

    if isinstance(data, float):
        return _float_to_string(data).encode('utf-8')

    if isinstance(data, str):
        normalized = unicodedata.normalize('NFC', data)
        return json.dumps(normalized, ensure_ascii=False, separators=(',', ':')).encode('utf-8')

    if isinstance(data, (list, tuple)):
        return b'[' + b','.join(canonicalize(item) for item in data) + b']'

    if isinstance(data, dict):
        def utf16_sort_key(s: str) -> bytes:
            return s.encode('utf-16-be')

        for key in data:
            if not isinstance(key, str):
                raise TypeError(f"Object keys must be strings, got {type(key)}")

        parts = []
        for key in sorted(data.keys(), key=utf16_sort_key):
            key_bytes = json.dumps(key, ensure_ascii=False, separators=(',', ':')).encode('utf-8')
            parts.append(key_bytes + b':' + canonicalize(data[key]))

        return b'{' + b','.join(parts) + b'}'

    raise TypeError(f"Type {type(data)} not serializable to JCS")

