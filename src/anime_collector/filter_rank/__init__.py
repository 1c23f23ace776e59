"""
Filtering of collected catalog records.

Only the fan-dub attribution rule exists today: records are kept when the
configured dub group appears as a whole word in their ``fandubbers`` list.
"""

from .rules import DEFAULT_FANDUB_TOKEN, accepts, filter_records

__all__ = [
    "DEFAULT_FANDUB_TOKEN",
    "accepts",
    "filter_records",
]
