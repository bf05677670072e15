"""Resolution of multilingual text values.

A LangText is either a plain string or a mapping from language code to string.
Resolution never raises; anything that cannot be turned into text degrades to
``NOT_AVAILABLE``.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

NOT_AVAILABLE = "N/A"

LANG_CODE_PATTERN = r"^[a-z]{2,3}(-[A-Z]{2,3})?$"
LANG_CODE_RE = re.compile(LANG_CODE_PATTERN)


def is_language_code(key: Any) -> bool:
    return isinstance(key, str) and LANG_CODE_RE.match(key) is not None


def resolve(value: Any, lang: str, fallback_lang: str | None = None) -> str:
    """Resolve a LangText value to display text.

    Args:
        value: Plain string, language map, or anything else
        lang: Preferred language code (exact match)
        fallback_lang: Optional second choice

    Returns:
        The resolved string, or ``"N/A"`` when nothing usable is present
    """
    if isinstance(value, str):
        return value
    if isinstance(value, Mapping) and value:
        if lang in value:
            picked = value[lang]
        elif fallback_lang and fallback_lang in value:
            picked = value[fallback_lang]
        else:
            picked = next(iter(value.values()))
        if isinstance(picked, str):
            return picked
    return NOT_AVAILABLE


def resolve_pair(
    value: Any, primary: str, secondary: str | None = None
) -> tuple[str, str | None]:
    """Main text plus an optional subtitle in the secondary language.

    The subtitle is only returned for multilingual exams (secondary differs
    from primary) and only when it reads differently from the main text.
    """
    main = resolve(value, primary)
    if not secondary or secondary == primary:
        return main, None
    sub = resolve(value, secondary, primary)
    if sub == main or sub == NOT_AVAILABLE:
        return main, None
    return main, sub


def resolve_options(
    options: Any, lang: str, fallback_lang: str | None = None
) -> list[Any]:
    """Pick the option list to present for either options encoding.

    A list of option values is returned as-is (each item is resolved when
    rendered). For a language map the list for ``lang``, then
    ``fallback_lang``, then the first language is returned.
    """
    if isinstance(options, list):
        return list(options)
    if isinstance(options, Mapping) and options:
        if lang in options:
            picked = options[lang]
        elif fallback_lang and fallback_lang in options:
            picked = options[fallback_lang]
        else:
            picked = next(iter(options.values()))
        if isinstance(picked, list):
            return list(picked)
    return []
