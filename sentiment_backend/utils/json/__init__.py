"""JSON utilities package"""

from .json_repair import (
    repair_json,
    parse_json_object
)

__all__ = [
    'repair_json',
    'parse_json_object'
]
