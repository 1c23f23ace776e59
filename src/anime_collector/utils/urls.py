"""URL composition and repair helpers."""

import re
from urllib.parse import urljoin, urlsplit

# A host prefix repeated back to back, with or without its scheme, e.g.
# "https://shikimori.onehttps://shikimori.one/...", "//kodik.info//kodik.info/..."
# or "https://kodik.info//kodik.info/...". The repeat must end at a path, query,
# fragment or the end of the string so a longer host is left alone.
DOUBLED_PREFIX_RE = re.compile(
    r"^((?:[a-z][a-z0-9+.-]*:)?)//([^/:?#]+)(?:(?:[a-z][a-z0-9+.-]*:)?//\2)+(?=[/?#]|$)",
    re.IGNORECASE,
)


def fix_url(url: str | None) -> str | None:
    """Collapse an accidentally doubled host prefix back to one occurrence.

    No-op for correct URLs, empty strings and ``None``.
    """
    if not url:
        return url
    return DOUBLED_PREFIX_RE.sub(r"\1//\2", url)


def join_url(base: str, ref: str | None) -> str:
    """Resolve ``ref`` against ``base``.

    Absolute and protocol-relative references are returned unchanged, so a
    path that already carries the host is never prefixed twice.
    """
    if not ref:
        return ""
    parts = urlsplit(ref)
    if parts.scheme or ref.startswith("//"):
        return ref
    if base.startswith("//"):
        # urljoin drops a protocol-relative base; keep it as the player expects
        return base.rstrip("/") + "/" + ref.lstrip("/")
    return urljoin(base.rstrip("/") + "/", ref.lstrip("/"))


def asset_url(asset_base_url: str, anime_id: str | int, filename: str) -> str:
    """Build an asset-store URL for one anime, e.g. ``<base>/anime/100/poster.jpeg``."""
    return f"{asset_base_url.rstrip('/')}/anime/{anime_id}/{filename}"
