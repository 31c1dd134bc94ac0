"""
Keyword categorization of link and control texts.

Pure functions returning a fixed enumerated category.
"""

import re

from .models import ControlCategory, LinkCategory

# Checked in order; the first category with a matching keyword wins
LINK_KEYWORDS: list[tuple[LinkCategory, tuple[str, ...]]] = [
    (
        LinkCategory.ACCOUNT,
        (
            "log in",
            "login",
            "sign in",
            "signin",
            "sign up",
            "signup",
            "register",
            "account",
            "profile",
            "my orders",
            "wishlist",
            "logout",
            "log out",
        ),
    ),
    (
        LinkCategory.SUPPORT,
        (
            "help",
            "support",
            "contact",
            "faq",
            "returns",
            "shipping",
            "customer service",
            "docs",
            "documentation",
            "track order",
        ),
    ),
    (
        LinkCategory.MAIN,
        (
            "home",
            "shop",
            "products",
            "product",
            "services",
            "about",
            "blog",
            "pricing",
            "solutions",
            "features",
            "store",
            "collections",
            "categories",
            "new arrivals",
            "sale",
        ),
    ),
]

CONTROL_KEYWORDS: list[tuple[ControlCategory, tuple[str, ...]]] = [
    (
        ControlCategory.PURCHASE,
        (
            "add to cart",
            "add to bag",
            "add to basket",
            "buy",
            "checkout",
            "check out",
            "purchase",
            "order now",
            "pre-order",
            "cart",
            "basket",
        ),
    ),
    (ControlCategory.SEARCH, ("search", "find", "filter")),
    (
        ControlCategory.FORM,
        ("submit", "send", "subscribe", "sign up", "sign in", "log in", "login", "apply"),
    ),
    (
        ControlCategory.NAVIGATION,
        ("next", "previous", "prev", "back", "more", "menu", "close", "open", "show", "load"),
    ),
]


def _matches(text: str, keyword: str) -> bool:
    # Word-boundary match so "buy" does not match "buyer's guide" and "sale" not "wholesale"
    return re.search(rf"(?<![a-z]){re.escape(keyword)}(?![a-z])", text) is not None


def categorize_link(text: str) -> LinkCategory:
    """
    Categorize a navigation link by its text.

    Args:
        text: Link text

    Returns:
        LinkCategory (OTHER when nothing matches)
    """
    lowered = (text or "").casefold()
    for category, keywords in LINK_KEYWORDS:
        if any(_matches(lowered, keyword) for keyword in keywords):
            return category
    return LinkCategory.OTHER


def categorize_control(text: str) -> ControlCategory:
    """
    Categorize an interactive control by its label.

    Args:
        text: Button text, value or title

    Returns:
        ControlCategory (OTHER when nothing matches)
    """
    lowered = (text or "").casefold()
    for category, keywords in CONTROL_KEYWORDS:
        if any(_matches(lowered, keyword) for keyword in keywords):
            return category
    return ControlCategory.OTHER
