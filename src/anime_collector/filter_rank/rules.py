"""
Fan-dub attribution filter.

A record passes when one of its ``fandubbers`` entries contains the configured
group name as a whole word, case-insensitively.
"""
import re
from collections.abc import Iterable

from ..core.models import CatalogRecord
from ..utils.log import get_logger

log = get_logger(__name__)

DEFAULT_FANDUB_TOKEN = "AniLibria"


def fandub_pattern(token: str) -> re.Pattern[str]:
    return re.compile(rf"\b{re.escape(token)}\b", re.I)


def accepts(record: CatalogRecord, token: str = DEFAULT_FANDUB_TOKEN) -> bool:
    """Return True if any fandubber entry matches ``token`` as a standalone word."""
    pattern = fandub_pattern(token)
    keep = any(pattern.search(fandubber) for fandubber in record.fandubbers)
    if keep:
        log.info("fandub_accepted", anime_id=record.id, token=token)
    else:
        log.info("fandub_rejected", anime_id=record.id, token=token, fandubbers=record.fandubbers)
    return keep


def filter_records(records: Iterable[CatalogRecord], token: str = DEFAULT_FANDUB_TOKEN) -> list[CatalogRecord]:
    """Keep records accepted by :func:`accepts`, preserving order."""
    return [rec for rec in records if accepts(rec, token)]
