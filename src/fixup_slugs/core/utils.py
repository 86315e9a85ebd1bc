"""Text normalization for slugs."""

import re
import unicodedata

# National romanisation of the Georgian Mkhedruli alphabet.
GEORGIAN_TO_LATIN = {
    "ა": "a", "ბ": "b", "გ": "g", "დ": "d", "ე": "e", "ვ": "v", "ზ": "z",
    "თ": "t", "ი": "i", "კ": "k", "ლ": "l", "მ": "m", "ნ": "n", "ო": "o",
    "პ": "p", "ჟ": "zh", "რ": "r", "ს": "s", "ტ": "t", "უ": "u", "ფ": "p",
    "ქ": "q", "ღ": "gh", "ყ": "q", "შ": "sh", "ჩ": "ch", "ც": "ts", "ძ": "dz",
    "წ": "ts", "ჭ": "ch", "ხ": "kh", "ჯ": "j", "ჰ": "h",
}

_TRANSLIT = str.maketrans(GEORGIAN_TO_LATIN)
_SEPARATORS = re.compile(r"[\s_/\\|–—−]+")

SLUG_RE = re.compile(r"^[a-z0-9]+(-[a-z0-9]+)*$")


def normalize(text: str) -> str:
    """
    Convert display text to a URL-safe slug.

    - Lowercase
    - Transliterate Georgian letters to Latin
    - Unicode normalize (NFKD), drop combining marks
    - Convert whitespace, underscores, slashes and dashes to `-`
    - Drop everything else outside `[a-z0-9-]`
    - Collapse multiple `-` to single, strip leading/trailing `-`

    Never fails; text with nothing mappable gives an empty string.

    Examples:
        >>> normalize("Oil Change")
        'oil-change'
        >>> normalize("ძრავის დიაგნოსტიკა")
        'dzravis-diagnostika'
    """
    if not text:
        return ""

    text = text.lower().translate(_TRANSLIT)

    # Unicode normalize (NFKD) and drop combining marks
    text = unicodedata.normalize("NFKD", text)
    text = "".join(c for c in text if not unicodedata.combining(c)).lower()

    text = _SEPARATORS.sub("-", text)
    text = re.sub(r"[^a-z0-9-]", "", text)
    text = re.sub(r"-+", "-", text)
    return text.strip("-")


def truncate_slug(slug: str, limit: int) -> str:
    """Cut a slug to at most `limit` characters without a dangling hyphen."""
    if len(slug) <= limit:
        return slug
    return slug[:limit].rstrip("-")


def preview_slug(text: str, fallback: str = "service") -> str:
    """Slug shown while an operator types; no uniqueness guarantee."""
    return normalize(text) or fallback


def is_slug_shaped(slug: str) -> bool:
    return bool(SLUG_RE.match(slug))
