"""
Content unit classifier.

Walks the settled document, extracts typed content units per category and
tests each one for presence in the pre-execution snapshot.
"""

import html
import re
from collections import Counter
from collections.abc import Callable, Iterator
from dataclasses import dataclass

from .categorize import categorize_control, categorize_link
from .document import DocumentQuery, ElementView
from .models import (
    CATEGORY_NAMES,
    CategoryFinding,
    CategoryFindings,
    ContentUnit,
    ControlCategory,
    LinkCategory,
    PricingSummary,
    ReviewSummary,
)

PRICE_PATTERN = re.compile(r"[$£€¥₹¢]|\d+\.\d{2}")
CURRENCY_PATTERN = re.compile(r"[$£€¥₹¢]")
RATING_PATTERN = re.compile(
    r"\d(?:\.\d+)?\s*(?:/|out of)\s*\d+"
    r"|\d(?:\.\d+)?\s*stars?"
    r"|[★⭐]"
    r"|\d[\d,]*\s*(?:reviews?|ratings?)",
    re.IGNORECASE,
)
RATING_SCALE_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*(?:/|out of)\s*(\d+)", re.IGNORECASE)
RATING_STARS_PATTERN = re.compile(r"(?<![\d.])(\d(?:\.\d+)?)\s*stars?", re.IGNORECASE)
ALNUM_PATTERN = re.compile(r"\w")
RATING_TOKEN_PATTERN = re.compile(r"[\w★⭐☆]")


def element_text(element: ElementView) -> str:
    return element.text


def control_text(element: ElementView) -> str:
    return (
        element.text
        or element.attr("value").strip()
        or element.attr("title").strip()
        or element.attr("aria-label").strip()
    )


def review_text(element: ElementView) -> str:
    # Star widgets often carry the rating only in their label
    if ALNUM_PATTERN.search(element.text):
        return element.text
    return element.attr("aria-label").strip() or element.attr("title").strip() or element.text


def media_text(element: ElementView) -> str:
    if element.tag == "figcaption":
        return element.text
    return (
        element.attr("alt").strip()
        or element.attr("title").strip()
        or element.attr("aria-label").strip()
        or element.attr("src").strip()
    )


@dataclass(frozen=True)
class CategoryRule:
    """
    Fixed selection rule for one content category.

    Attributes:
        name: Category name
        selector: CSS selector for candidate elements
        min_length: Tokens shorter than this are discarded as noise
        token_length: Tokens are truncated to this many characters
        example_length: Examples are truncated to this many characters
        text_pattern: Candidate text must match this pattern when set
        text_source: Reads the candidate text from an element
        prefix_variants: Also search for the whitespace-free and short-prefix forms
        token_pattern: Tokens without a match are discarded as noise
        skip_nested: Ignore candidates inside another candidate of the same rule
    """

    name: str
    selector: str
    min_length: int = 3
    token_length: int = 50
    example_length: int = 50
    text_pattern: re.Pattern | None = None
    text_source: Callable[[ElementView], str] = element_text
    prefix_variants: bool = False
    token_pattern: re.Pattern = ALNUM_PATTERN
    skip_nested: bool = False


DEFAULT_RULES: tuple[CategoryRule, ...] = (
    CategoryRule(
        name="navigation",
        selector=(
            'nav a, .nav a, .navigation a, .menu a, header a, [role="navigation"] a'
        ),
        token_length=50,
        prefix_variants=True,
    ),
    CategoryRule(
        name="headings",
        selector='h1, h2, h3, h4, h5, h6, [role="heading"], .heading, .title',
        token_length=30,
        example_length=60,
    ),
    CategoryRule(
        name="pricing",
        selector=(
            '[class*="price"], [class*="cost"], [class*="dollar"], '
            "[data-price], .currency, .amount, .fee, .rate"
        ),
        min_length=2,
        token_length=30,
        example_length=30,
        text_pattern=PRICE_PATTERN,
        skip_nested=True,
    ),
    CategoryRule(
        name="inventory",
        selector=(
            '[class*="stock"], [class*="inventory"], [class*="availability"], '
            '[data-stock], [data-availability], [itemprop="availability"]'
        ),
        token_length=40,
        example_length=40,
    ),
    CategoryRule(
        name="reviews",
        selector=(
            '[class*="review"], [class*="rating"], [itemprop="ratingValue"], '
            '[itemprop="reviewCount"], [data-rating]'
        ),
        min_length=1,
        token_length=40,
        example_length=40,
        text_pattern=RATING_PATTERN,
        text_source=review_text,
        token_pattern=RATING_TOKEN_PATTERN,
    ),
    CategoryRule(
        name="interactive",
        selector=(
            'button, input[type="button"], input[type="submit"], '
            '.btn, [role="button"], .button, [onclick]'
        ),
        min_length=2,
        token_length=30,
        example_length=30,
        text_source=control_text,
    ),
    CategoryRule(
        name="media",
        selector="img, video, audio, figcaption",
        token_length=60,
        example_length=60,
        text_source=media_text,
    ),
)


class ContentClassifier:
    """
    Classifies settled-document content units into categories.

    Presence is tested by case-insensitive substring containment against both
    the raw markup and its normalized text, so only content with no trace in
    the pre-execution document is reported missing.
    """

    def __init__(self, example_limit: int = 3, rules: tuple[CategoryRule, ...] = DEFAULT_RULES):
        """
        Initialize the classifier.

        Args:
            example_limit: Maximum number of missing examples kept per category
            rules: Selection rules, one per category
        """
        names = [rule.name for rule in rules]
        unknown = set(names) - set(CATEGORY_NAMES)
        if unknown:
            raise ValueError(f"Unknown categories in rules: {sorted(unknown)}")

        self.example_limit = example_limit
        self.rules = rules

    @property
    def selectors(self) -> list[str]:
        """Selectors a document snapshot must be able to answer."""
        return [rule.selector for rule in self.rules]

    def classify(
        self, raw_markup: str, raw_text: str, settled_document: DocumentQuery
    ) -> CategoryFindings:
        """
        Classify settled content against the pre-execution snapshot.

        Args:
            raw_markup: Response body before any script ran
            raw_text: Normalized text of raw_markup
            settled_document: Document after scripts and network settled

        Returns:
            CategoryFindings for all categories
        """
        haystacks = self._haystacks(raw_markup, raw_text)

        categories: dict[str, CategoryFinding] = {}
        units_by_category: dict[str, list[ContentUnit]] = {}

        for rule in self.rules:
            units = list(self.extract_units(rule, settled_document, haystacks))
            units_by_category[rule.name] = units

            missing = [unit for unit in units if not unit.found_in_raw]
            categories[rule.name] = CategoryFinding(
                total=len(units),
                missing=len(missing),
                examples=tuple(
                    unit.text[: rule.example_length] for unit in missing[: self.example_limit]
                ),
            )

        return CategoryFindings(
            categories=categories,
            pricing=self._pricing_summary(units_by_category.get("pricing", [])),
            reviews=self._review_summary(units_by_category.get("reviews", [])),
            link_breakdown=self._link_breakdown(units_by_category.get("navigation", [])),
            control_breakdown=self._control_breakdown(units_by_category.get("interactive", [])),
        )

    def extract_units(
        self,
        rule: CategoryRule,
        document: DocumentQuery,
        haystacks: tuple[str, ...],
    ) -> Iterator[ContentUnit]:
        """
        Yield content units for one rule.

        Args:
            rule: Category rule to apply
            document: Settled document
            haystacks: Case-folded raw markup and raw text

        Yields:
            ContentUnit per candidate that survives the noise filter
        """
        for element in document.select(rule.selector):
            if rule.skip_nested and element.nested:
                continue

            text = re.sub(r"\s+", " ", rule.text_source(element) or "").strip()
            if rule.text_pattern is not None and not rule.text_pattern.search(text):
                continue

            token = text.casefold()[: rule.token_length].strip()
            if len(token) < rule.min_length or not rule.token_pattern.search(token):
                continue

            yield ContentUnit(
                category=rule.name,
                text=text,
                locator_hint=element.locator_hint,
                found_in_raw=self._found_in_raw(token, rule, haystacks),
            )

    @staticmethod
    def _haystacks(raw_markup: str, raw_text: str) -> tuple[str, ...]:
        # Entities are decoded so "Tom &amp; Jerry" in markup matches "tom & jerry"
        markup = (raw_markup or "").casefold()
        text = html.unescape(raw_text or "").casefold()
        return markup, text

    @staticmethod
    def _found_in_raw(token: str, rule: CategoryRule, haystacks: tuple[str, ...]) -> bool:
        terms = [token]
        if rule.prefix_variants:
            terms.append(re.sub(r"\s+", "", token))
            terms.append(token[:10])

        return any(term and term in haystack for term in terms for haystack in haystacks)

    @staticmethod
    def _pricing_summary(units: list[ContentUnit]) -> PricingSummary:
        if not units:
            return PricingSummary()

        symbols: Counter[str] = Counter()
        amounts: list[float] = []
        for unit in units:
            symbols.update(CURRENCY_PATTERN.findall(unit.text))
            amount = parse_price(unit.text)
            if amount is not None:
                amounts.append(amount)

        currency = symbols.most_common(1)[0][0] if symbols else None
        return PricingSummary(
            currency=currency,
            minimum=min(amounts) if amounts else None,
            maximum=max(amounts) if amounts else None,
        )

    @staticmethod
    def _review_summary(units: list[ContentUnit]) -> ReviewSummary:
        ratings = []
        for unit in units:
            rating = parse_rating(unit.text)
            if rating is not None:
                ratings.append(rating)
        return ReviewSummary(ratings=tuple(ratings))

    @staticmethod
    def _link_breakdown(units: list[ContentUnit]) -> dict[LinkCategory, int]:
        counts = Counter(categorize_link(unit.text) for unit in units if not unit.found_in_raw)
        return {category: counts[category] for category in LinkCategory if counts[category]}

    @staticmethod
    def _control_breakdown(units: list[ContentUnit]) -> dict[ControlCategory, int]:
        counts = Counter(categorize_control(unit.text) for unit in units if not unit.found_in_raw)
        return {category: counts[category] for category in ControlCategory if counts[category]}


def parse_price(text: str) -> float | None:
    """
    Parse the first amount in a price text.

    Handles thousands separators ("1,299.00", "1.299,00") and decimal commas
    ("19,99").
    """
    match = re.search(r"\d{1,3}(?:,\d{3})+(?:\.\d+)?", text)
    if match:
        return float(match.group().replace(",", ""))

    match = re.search(r"\d{1,3}(?:\.\d{3})+,\d{2}(?!\d)", text)
    if match:
        return float(match.group().replace(".", "").replace(",", "."))

    match = re.search(r"(\d+),(\d{2})(?!\d)", text)
    if match:
        return float(f"{match.group(1)}.{match.group(2)}")

    match = re.search(r"\d+(?:\.\d+)?", text)
    if match:
        return float(match.group())
    return None


def parse_rating(text: str) -> float | None:
    """
    Parse a rating normalized to a 5-point scale.

    Accepts "4.5/5", "8 out of 10", "4 stars" and runs of full star glyphs.
    """
    match = RATING_SCALE_PATTERN.search(text)
    if match:
        value, scale = float(match.group(1)), float(match.group(2))
        if 0 < scale and 0 <= value <= scale:
            return round(value / scale * 5, 2)

    match = RATING_STARS_PATTERN.search(text)
    if match:
        value = float(match.group(1))
        if 0 <= value <= 5:
            return value

    stars = text.count("★")
    if 1 <= stars <= 5:
        return float(stars)
    return None
