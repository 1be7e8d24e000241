"""Prompt templates and selection by query type."""
from dataclasses import dataclass
import logging
import string
from typing import Dict, List, Optional, Sequence, Tuple

from models.conversation import Message, QueryType, Role

logger = logging.getLogger(__name__)

# Used when a country template is selected but no country is known
DEFAULT_COUNTRY = "the destination"


GENERAL_SYSTEM_PROMPT = """You are a professional passport and visa advisory agent helping users plan their international travel.
You provide information about visa requirements, application processes, and travel documentation needed for different countries.
Think carefully through all scenarios and please provide your best guidance and reasoning.

If the user asks about specific visa information, explain:
1. Visa types available (tourist, business, work, student, etc.)
2. If the country offers visa-free travel, visa-on-arrival, or e-visa options
3. General processing times and fees
4. Basic document requirements
5. Any special considerations or recent changes

Always clarify that this is general information and official government sources should be consulted for the most up-to-date requirements.
Also suggest that users contact the relevant embassy or consulate for their specific case."""


COUNTRY_SYSTEM_PROMPT = """You are analyzing visa requirements for travel to {country}.

Focus on:
1. Available visa types for {country}
2. If {country} offers visa-free access, visa-on-arrival, or e-visa to citizens of various countries
3. Typical processing times and fees for {country} visas
4. Required documents for {country} visa applications
5. Special considerations for {country} (health requirements, return ticket, proof of funds, etc.)

Remember to advise that this is general information and the user should verify with the {country} embassy or official government website."""


@dataclass(frozen=True)
class PromptTemplate:
    """
    A system prompt with named slots, followed by the conversation window.

    Attributes:
        name: Template identifier (matches a query type)
        system_template: str.format-style system prompt
    """
    name: str
    system_template: str

    @property
    def slots(self) -> Tuple[str, ...]:
        """Named placeholders in the system template."""
        names = [field for _, field, _, _ in string.Formatter().parse(self.system_template) if field]
        return tuple(dict.fromkeys(names))

    def render(self, messages: Sequence[Message], **values: str) -> List[Dict[str, str]]:
        """
        Render the template into chat-completion messages.

        Args:
            messages: Conversation window placed after the system prompt
            **values: Slot values; missing slots raise KeyError

        Returns:
            List of {"role", "content"} dicts, system prompt first
        """
        system = Message(role=Role.SYSTEM, content=self.system_template.format(**values))
        return [system.to_chat()] + [message.to_chat() for message in messages]


GENERAL_TEMPLATE = PromptTemplate(name=QueryType.GENERAL, system_template=GENERAL_SYSTEM_PROMPT)
COUNTRY_TEMPLATE = PromptTemplate(name=QueryType.COUNTRY, system_template=COUNTRY_SYSTEM_PROMPT)


class PromptSelector:
    """Maps a query type to a prompt template; anything unrecognised gets the general one."""

    def __init__(
        self,
        general: PromptTemplate = GENERAL_TEMPLATE,
        country: PromptTemplate = COUNTRY_TEMPLATE,
    ):
        self._templates = {
            QueryType.GENERAL: general,
            QueryType.COUNTRY: country,
        }
        self._default = general

    def select(self, query_type: Optional[str]) -> PromptTemplate:
        key = (query_type or "").strip().lower()
        return self._templates.get(key, self._default)

    def render(
        self,
        query_type: Optional[str],
        messages: Sequence[Message],
        country: Optional[str] = None,
    ) -> List[Dict[str, str]]:
        """Select the template for query_type and render it with the window."""
        template = self.select(query_type)
        values = {}
        if "country" in template.slots:
            values["country"] = country or DEFAULT_COUNTRY
        logger.debug(f"Rendering '{template.name}' prompt with {len(messages)} messages")
        return template.render(messages, **values)
