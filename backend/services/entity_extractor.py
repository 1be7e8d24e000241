"""
Entity extraction for travel queries.

Finds country names (and a few common aliases) in free text using a fixed
vocabulary. Matching is case-insensitive and whole-word only; there is no
fuzzy or partial matching.
"""

import logging
import re
from typing import Dict, Iterable, List, Optional, Pattern

logger = logging.getLogger(__name__)


COUNTRY_VOCABULARY = (
    "United States", "USA", "Canada", "Mexico", "UK", "United Kingdom", "England",
    "France", "Germany", "Italy", "Spain", "Japan", "China", "India", "Australia",
    "Brazil", "Argentina", "South Africa", "Egypt", "UAE", "Dubai", "Saudi Arabia",
    "Russia", "Singapore", "Thailand", "Vietnam", "Malaysia", "Indonesia",
    "Philippines", "South Korea", "North Korea", "New Zealand", "Ireland",
    "Scotland", "Wales", "Netherlands", "Belgium", "Switzerland", "Austria",
    "Sweden", "Norway", "Denmark", "Finland", "Poland", "Greece", "Turkey",
    "Israel", "Kenya", "Nigeria", "Ghana", "Morocco", "Algeria", "Tunisia", "Chile",
    "Peru", "Colombia", "Venezuela", "Portugal", "Croatia", "Serbia", "Romania",
    "Ukraine", "Kazakhstan", "Pakistan", "Bangladesh", "Nepal", "Sri Lanka",
    "Jordan", "Qatar", "Bahrain", "Kuwait", "Oman", "Iceland", "Greenland", "Cuba",
    "Jamaica", "Haiti", "Dominican Republic", "Panama", "Costa Rica", "Guatemala",
    "Honduras", "El Salvador", "Belize", "Mongolia", "Taiwan", "Hong Kong", "Macau",
)


class EntityExtractor:
    """Extracts known country names from message text."""

    def __init__(self, vocabulary: Optional[Iterable[str]] = None):
        """
        Args:
            vocabulary: Country names/aliases to recognise (defaults to COUNTRY_VOCABULARY)
        """
        names = tuple(vocabulary) if vocabulary is not None else COUNTRY_VOCABULARY
        # One entry per case-insensitive spelling; the first spelling given wins
        unique: Dict[str, str] = {}
        for name in names:
            unique.setdefault(name.lower(), name)
        # Longest first so multi-word names win over any shorter prefix
        self._names: List[str] = sorted(unique.values(), key=len, reverse=True)
        self._pattern: Pattern = self._build_pattern(self._names)

    @staticmethod
    def _build_pattern(names: List[str]) -> Pattern:
        # Group n<i> is names[i]. IGNORECASE also matches letters str.lower() does not fold
        # (dotless i, long s), so the matched text is not a reliable lookup key
        alternatives = '|'.join(f'(?P<n{index}>{re.escape(name)})' for index, name in enumerate(names))
        return re.compile(rf'\b(?:{alternatives})\b', re.IGNORECASE)

    def extract(self, text: Optional[str]) -> List[str]:
        """
        Extract distinct country names from text.

        Args:
            text: Raw user message

        Returns:
            Canonical country names in order of first occurrence, without duplicates.
            Empty when nothing matches.
        """
        if not text:
            return []

        found: List[str] = []
        for match in self._pattern.finditer(text):
            name = self._names[int(match.lastgroup[1:])]
            if name not in found:
                found.append(name)

        if found:
            logger.debug(f"Extracted countries: {', '.join(found)}")
        return found
