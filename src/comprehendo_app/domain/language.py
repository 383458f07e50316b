"""Supported languages and their display names."""

from __future__ import annotations

LANGUAGES: dict[str, str] = {
    "zh": "中文",
    "en": "English",
    "fil": "Filipino",
    "fr": "Français",
    "de": "Deutsch",
    "el": "Ελληνικά",
    "he": "עברית",
    "hi": "हिंदी",
    "it": "Italiano",
    "ja": "日本語",
    "ko": "한국어",
    "pl": "Polski",
    "pt": "Português",
    "ru": "Русский",
    "es": "Español",
    "th": "ไทย",
}

# Passages are not generated in these languages yet.
_EXCLUDED_LEARNING_LANGUAGES = frozenset({"zh", "ja", "ko"})

LEARNING_LANGUAGES: dict[str, str] = {
    code: name for code, name in LANGUAGES.items() if code not in _EXCLUDED_LEARNING_LANGUAGES
}


def language_name(code: str) -> str:
    """Return display name for a supported language code."""
    try:
        return LANGUAGES[code]
    except KeyError:
        raise ValueError(f"Unsupported language code: {code}") from None


def is_learning_language(code: str) -> bool:
    return code in LEARNING_LANGUAGES
