"""Data normalization utilities for price parsing and text assembly."""

import re
from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional


class PriceNormalizer:
    """Price parsing utilities.

    Feed prices are usually integers but older feed versions and manual
    entries deliver strings like "5,500 ₪".
    """

    @staticmethod
    def clean_price_string(raw: str) -> Optional[Decimal]:
        """Parse a price string and extract numeric value.

        Handles various formats:
        - "5,500 ₪" -> 5500
        - "₪ 4200" -> 4200
        - "3,900.50" -> 3900.50

        Args:
            raw: Raw price string

        Returns:
            Decimal price value, or None if parsing fails
        """
        if not raw:
            return None

        cleaned = raw.replace("₪", "").replace("ש\"ח", "").replace("ש״ח", "")
        cleaned = cleaned.replace(",", "").strip()

        # Remove any remaining non-digit/non-decimal characters
        cleaned = re.sub(r"[^\d.]", "", cleaned)

        if not cleaned:
            return None

        try:
            return Decimal(cleaned)
        except InvalidOperation:
            return None


def join_nonempty(parts: Iterable[Optional[str]], separator: str = ", ") -> str:
    """Join the non-blank parts with a separator.

    Missing or whitespace-only parts are skipped, so the result never has
    leading, trailing or doubled separators.
    """
    return separator.join(str(p).strip() for p in parts if p is not None and str(p).strip())


def absolute_url(url: Optional[str]) -> Optional[str]:
    """Turn protocol-relative image URLs into https URLs; drop anything else."""
    if not url:
        return None
    if url.startswith("//"):
        return f"https:{url}"
    if url.startswith("http"):
        return url
    return None
