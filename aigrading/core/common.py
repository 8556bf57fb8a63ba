import html
import re
from typing import Optional


_pattern_tags = re.compile(r"<[^>]*>")
_pattern_block_end = re.compile(r"</(p|div|li|h[1-6]|tr)\s*>|<br\s*/?>", re.IGNORECASE)


def strip_tags(markup: Optional[str]) -> str:
    """Remove HTML tags from editor content and decode entities."""
    if not markup:
        return ""
    # Keep paragraph boundaries readable before dropping the tags
    text = _pattern_block_end.sub("\n", markup)
    text = _pattern_tags.sub("", text)
    return html.unescape(text).strip()


def has_text(value: Optional[str]) -> bool:
    return bool(value and value.strip())


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))
