"""
Markup to plain-text reduction used for length-based diffing.
"""

import re

SCRIPT_PATTERN = re.compile(r"<script\b[^>]*>.*?</script\s*>", re.IGNORECASE | re.DOTALL)
STYLE_PATTERN = re.compile(r"<style\b[^>]*>.*?</style\s*>", re.IGNORECASE | re.DOTALL)
COMMENT_PATTERN = re.compile(r"<!--.*?-->", re.DOTALL)
TAG_PATTERN = re.compile(r"<[^>]*>")
WHITESPACE_PATTERN = re.compile(r"\s+")


def normalize(markup: str) -> str:
    """
    Reduce markup to whitespace-normalized plain text.

    Script and style blocks and comments are removed entirely. Every other tag
    is replaced with a single space so adjacent inline elements stay separate
    words.

    Args:
        markup: HTML string (any input is accepted)

    Returns:
        Plain text with single spaces, trimmed
    """
    if not isinstance(markup, str) or not markup:
        return ""

    text = SCRIPT_PATTERN.sub(" ", markup)
    text = STYLE_PATTERN.sub(" ", text)
    text = COMMENT_PATTERN.sub(" ", text)
    text = TAG_PATTERN.sub(" ", text)
    return WHITESPACE_PATTERN.sub(" ", text).strip()
