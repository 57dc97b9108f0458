from typing import Any


def sanitize_for_mongo(value: Any) -> Any:
    """
    Recursively sanitize values so they are acceptable by MongoDB/BSON.

    - ints wider than 8 bytes become strings (gas prices, salt nonces)
    - dicts and lists are handled recursively
    """
    if isinstance(value, bool):
        return value

    if isinstance(value, int):
        # BSON only has int64
        min_int64 = -(2**63)
        max_int64 = 2**63 - 1
        if min_int64 <= value <= max_int64:
            return value
        return str(value)

    if isinstance(value, dict):
        return {k: sanitize_for_mongo(v) for k, v in value.items()}

    if isinstance(value, list):
        return [sanitize_for_mongo(v) for v in value]

    if isinstance(value, tuple):
        return tuple(sanitize_for_mongo(v) for v in value)

    # str, float, None pass through
    return value
