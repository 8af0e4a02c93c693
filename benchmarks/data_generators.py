"""
Test data generators for datalist parsing benchmarks.

Every generator builds a Python value and renders it twice: as a datalist
document and as the equivalent JSON, so the datalist parser can be timed
against JSON parsers on the same data:
- Different sizes (small/large)
- Different complexity levels (flat/nested/mixed)
- String-heavy content with escape sequences
"""

import json
import random
import string
from typing import Any

# Constants for random data generation
_INT_TYPE = 1
_FLOAT_TYPE = 2
_STRING_TYPE = 3
_BOOL_TYPE = 4
_ESCAPE_PROBABILITY = 0.3
_ESCAPES = {"\n": "\\n", "\t": "\\t", '"': '\\"'}


def generate_test_data(data_type: str) -> tuple[str, str]:
    """Returns ``(datalist_document, json_document)`` for a data type."""
    generators = {
        "small_object": _generate_small_object,
        "large_object": _generate_large_object,
        "mixed_array": _generate_mixed_array,
        "nested_structure": _generate_nested_structure,
        "string_heavy": _generate_string_heavy,
    }

    if data_type not in generators:
        raise ValueError(f"Unknown data type: {data_type}")

    value = generators[data_type]()
    return render_datalist(value), json.dumps(value)


def render_datalist(value: Any) -> str:
    """Renders a dict at the root as a bracket-less ``key = value`` map."""
    if isinstance(value, dict):
        return "\n".join(
            f"{key} = {_render_value(item)}" for key, item in value.items()
        )
    return _render_value(value)


def _render_value(value: Any) -> str:
    if value is None:
        return "nil"
    if value is True:
        return "true"
    if value is False:
        return "false"
    if isinstance(value, int | float):
        return repr(value)
    if isinstance(value, str):
        body = "".join(_ESCAPES.get(char, char) for char in value)
        return f'"{body}"'
    if isinstance(value, dict):
        items = " ".join(
            f"{key}={_render_value(item)}" for key, item in value.items()
        )
        return "{" + items + "}"
    if isinstance(value, list):
        return "(" + " ".join(_render_value(item) for item in value) + ")"
    raise TypeError(f"Cannot render {type(value).__name__}")


def _generate_small_object() -> dict[str, Any]:
    """Generates a small object (< 1KB) with basic key-value pairs."""
    return {
        "id": 12345,
        "name": "Alice Johnson",
        "email": "alice@example.com",
        "active": True,
        "balance": 1234.56,
        "metadata": {"created": "2024-01-15T10:30:00Z", "source": "api"},
    }


def _generate_large_object() -> dict[str, Any]:
    """Generates a large object (> 10KB) with many fields."""
    return {
        "user_id": random.randint(1000000, 9999999),
        "profile": {
            "first_name": _random_string(10),
            "last_name": _random_string(12),
            "email": f"{_random_string(8)}@{_random_string(6)}.com",
            "language": random.choice(["en", "es", "fr", "de", "zh"]),
            "notifications": {
                "email": random.choice([True, False]),
                "sms": random.choice([True, False]),
            },
        },
        "transactions": [
            {
                "id": f"txn_{i:06d}",
                "amount": round(random.uniform(1.0, 1000.0), 2),
                "currency": random.choice(["USD", "EUR", "GBP", "JPY"]),
                "description": f"Payment for {_random_string(20)}",
                "status": random.choice(["completed", "pending", "failed"]),
            }
            for i in range(50)
        ],
        "activity_log": [
            {
                "action": random.choice(["login", "logout", "purchase"]),
                "ip_address": ".".join(
                    str(random.randint(1, 255)) for _ in range(4)
                ),
                "user_agent": f"Mozilla/5.0 ({_random_string(20)})",
            }
            for _ in range(30)
        ],
    }


def _generate_mixed_array() -> dict[str, Any]:
    """Generates a large array with mixed data types."""
    array: list[Any] = []

    for i in range(200):
        choice = random.randint(1, 5)
        if choice == _INT_TYPE:
            array.append(random.randint(-1000, 1000))
        elif choice == _FLOAT_TYPE:
            array.append(round(random.uniform(-100.0, 100.0), 3))
        elif choice == _STRING_TYPE:
            array.append(_random_string(random.randint(5, 30)))
        elif choice == _BOOL_TYPE:
            array.append(random.choice([True, False]))
        else:
            array.append(
                {
                    "index": i,
                    "value": _random_string(10),
                    "score": round(random.uniform(0, 100), 2),
                }
            )

    return {"items": array}


def _generate_nested_structure() -> dict[str, Any]:
    """Generates a deeply nested structure."""

    def create_nested_dict(depth: int) -> dict[str, Any]:
        if depth <= 0:
            return {"value": _random_string(10)}

        return {
            "level": depth,
            "data": _random_string(15),
            "items": [create_nested_dict(depth - 1) for _ in range(3)],
            "nested": create_nested_dict(depth - 1),
        }

    return create_nested_dict(6)


def _generate_string_heavy() -> dict[str, Any]:
    """Generates many strings that need escape sequences."""

    def create_escaped_string() -> str:
        chars = []
        for _ in range(50):
            if random.random() < _ESCAPE_PROBABILITY:
                chars.append(random.choice(list(_ESCAPES)))
            else:
                chars.append(
                    random.choice(string.ascii_letters + string.digits + " ")
                )
        return "".join(chars)

    return {
        "strings": [create_escaped_string() for _ in range(100)],
        "mixed_content": {
            f"key_{i}": {
                "description": create_escaped_string(),
                "content": 'Content with \n newlines \t tabs and " quotes',
            }
            for i in range(20)
        },
    }


def _random_string(length: int) -> str:
    """Generates a random string of specified length."""
    return "".join(random.choices(string.ascii_letters, k=length))
