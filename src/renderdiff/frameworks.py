"""
Client-side framework detection from markup signatures.
"""

import re

FRAMEWORK_PATTERNS: dict[str, list[re.Pattern]] = {
    "React": [
        re.compile(r"data-reactroot", re.IGNORECASE),
        re.compile(r"_reactInternalFiber", re.IGNORECASE),
        re.compile(r"react(-dom)?\.(?:development|production)\.min\.js", re.IGNORECASE),
        re.compile(r"__webpack_require__.*react", re.IGNORECASE),
    ],
    "Vue.js": [
        re.compile(r"vue\.(?:js|min\.js)", re.IGNORECASE),
        re.compile(r"data-v-[a-f0-9]{8}", re.IGNORECASE),
        re.compile(r"__vue__", re.IGNORECASE),
        re.compile(r"Vue\.component", re.IGNORECASE),
    ],
    "Angular": [
        re.compile(r'ng-version="[\d.]+"', re.IGNORECASE),
        re.compile(r"angular\.(?:js|min\.js)", re.IGNORECASE),
        re.compile(r"\[ng-app\]", re.IGNORECASE),
        re.compile(r"_angular_", re.IGNORECASE),
    ],
    "Next.js": [
        re.compile(r"__NEXT_DATA__", re.IGNORECASE),
        re.compile(r"_next/static", re.IGNORECASE),
    ],
    "Nuxt.js": [
        re.compile(r"__NUXT__", re.IGNORECASE),
        re.compile(r"_nuxt/", re.IGNORECASE),
    ],
    "Svelte": [
        re.compile(r"svelte/internal", re.IGNORECASE),
        re.compile(r"\.svelte-", re.IGNORECASE),
        re.compile(r"svelte\.js", re.IGNORECASE),
    ],
    "Alpine.js": [
        re.compile(r"x-data\s*=", re.IGNORECASE),
        re.compile(r"alpine\.(?:js|min\.js)", re.IGNORECASE),
        re.compile(r"@click\s*=", re.IGNORECASE),
    ],
    "jQuery": [
        re.compile(r"jquery[.-][\d.]+(?:\.min)?\.js", re.IGNORECASE),
        re.compile(r"\$\(document\)\.ready", re.IGNORECASE),
        re.compile(r"\$\(['\"`][^'\"`]+['\"`]\)"),
    ],
}

# jQuery signatures are common in unrelated code, so it needs more evidence
MIN_MATCHES = {"jQuery": 2}

MODERN_FRAMEWORKS = ("React", "Vue.js", "Angular", "Next.js", "Nuxt.js", "Svelte")


def detect_frameworks(raw_markup: str, settled_markup: str) -> list[str]:
    """
    Detect frameworks from signatures in either snapshot.

    Args:
        raw_markup: Pre-execution markup
        settled_markup: Settled markup

    Returns:
        Framework names in FRAMEWORK_PATTERNS order
    """
    combined = f"{raw_markup or ''}\n{settled_markup or ''}"
    detected = []
    for name, patterns in FRAMEWORK_PATTERNS.items():
        matches = sum(1 for pattern in patterns if pattern.search(combined))
        if matches >= MIN_MATCHES.get(name, 1):
            detected.append(name)
    return detected


def merge_frameworks(*groups: list[str] | tuple[str, ...]) -> list[str]:
    """Merge framework lists, keeping first-seen order without duplicates."""
    merged: list[str] = []
    for group in groups:
        for name in group:
            if name not in merged:
                merged.append(name)
    return merged
