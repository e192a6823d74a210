"""
Shared helpers: percentiles, fast JSON and JSON extraction from model replies
"""

import math
from typing import Any, Optional, Sequence, Union

import orjson


def json_dumps(obj: Any, *, indent: bool = False) -> str:
    """Serialize with orjson, stringifying unknown types"""
    option = orjson.OPT_INDENT_2 if indent else 0
    return orjson.dumps(obj, default=str, option=option).decode("utf-8")


def json_loads(data: Union[str, bytes]) -> Any:
    """Deserialize with orjson; raises orjson.JSONDecodeError (a ValueError)"""
    return orjson.loads(data)


def percentile(values: Sequence[float], p: float) -> float:
    """
    Nearest-rank percentile over unsorted values.

    ``p`` is a fraction in [0, 1]. Returns 0.0 for an empty sequence.
    """
    if not values:
        return 0.0
    ordered = sorted(values)
    index = min(len(ordered) - 1, max(0, math.floor(len(ordered) * p)))
    return float(ordered[index])


def format_number(value: float) -> str:
    """Render 1000.0 as '1000' and 0.05 as '0.05' for threshold rules"""
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.4f}".rstrip("0").rstrip(".")


def extract_json_span(text: str, opener: str = "{") -> Optional[str]:
    """
    Return the first top-level JSON object (or array) embedded in free text.

    Braces inside string literals are ignored. Returns None when the first
    opener is never balanced, e.g. for a truncated reply; later openers are
    not tried.
    """
    closer = "}" if opener == "{" else "]"
    start = text.find(opener)
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == opener:
            depth += 1
        elif char == closer:
            depth -= 1
            if depth == 0:
                return text[start:index + 1]
    return None
