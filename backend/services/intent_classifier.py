"""
Intent classification for travel queries.

The routing label depends only on whether a known country was mentioned:
any recognised country gives "country", otherwise "general". Message
semantics are deliberately ignored, so "I do NOT want to go to France" is
still a France query.
"""

from dataclasses import dataclass, field
import logging
from typing import List, Optional

from models.conversation import QueryType
from services.entity_extractor import EntityExtractor

logger = logging.getLogger(__name__)


@dataclass
class QueryDetails:
    """
    Result of analysing a single message.

    Attributes:
        countries: Extracted country names, in order of first occurrence
        query_type: Either "general" or "country"
    """
    countries: List[str] = field(default_factory=list)
    query_type: str = QueryType.GENERAL

    @property
    def country(self) -> Optional[str]:
        """Best-guess country: the first one mentioned."""
        return self.countries[0] if self.countries else None


class IntentClassifier:
    """Derives the query type from extracted entities."""

    def __init__(self, extractor: Optional[EntityExtractor] = None):
        self.extractor = extractor or EntityExtractor()

    @staticmethod
    def classify(has_entities: bool) -> str:
        return QueryType.COUNTRY if has_entities else QueryType.GENERAL

    def analyze(self, message: str) -> QueryDetails:
        """Extract countries from the message and classify it."""
        countries = self.extractor.extract(message)
        query_type = self.classify(bool(countries))
        logger.info(f"Classification: {query_type} (countries={countries or 'none'}) - {message[:50]}")
        return QueryDetails(countries=countries, query_type=query_type)
