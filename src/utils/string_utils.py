import re
import unicodedata
from datetime import datetime, timezone

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def truncate_text(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length - 3] + "..."


def strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def slugify(title: str, max_length: int = 100) -> str:
    """Lower-case, drop diacritics, collapse non-alphanumerics to single hyphens."""
    slug = _NON_ALNUM.sub("-", strip_accents(title.lower())).strip("-")
    return slug[:max_length].rstrip("-")


def utcnow() -> datetime:
    """Naive UTC now, matching how DateTime columns are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def iso_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
