"""
Beacon Utilities Package

Tolerant JSON field decoding (decoding) and derived portfolio metrics (metrics).
Metrics depend on beacon.models, so import them from beacon.utils.metrics.
"""

from beacon.utils.decoding import decode_integer, decode_number, decode_optional_number, decode_timestamp

__all__ = [
    "decode_number",
    "decode_integer",
    "decode_optional_number",
    "decode_timestamp",
]
