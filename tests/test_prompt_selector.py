"""Unit tests for PromptSelector and PromptTemplate."""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from models.conversation import Message, QueryType, Role
from services.prompt_selector import (
    PromptSelector, PromptTemplate, GENERAL_TEMPLATE, COUNTRY_TEMPLATE, DEFAULT_COUNTRY,
)


class TestPromptTemplate:
    """Test suite for PromptTemplate."""

    def test_slots(self):
        """Test that named placeholders are discovered once each."""
        assert COUNTRY_TEMPLATE.slots == ("country",)
        assert GENERAL_TEMPLATE.slots == ()

    def test_render_places_system_first(self):
        """Test that the system prompt precedes the conversation window."""
        template = PromptTemplate(name="t", system_template="Advise on {country}.")
        window = [Message(role=Role.USER, content="Hi")]

        rendered = template.render(window, country="Peru")

        assert rendered == [
            {"role": "system", "content": "Advise on Peru."},
            {"role": "user", "content": "Hi"},
        ]

    def test_render_missing_slot_raises(self):
        """Test that rendering without a required slot fails loudly."""
        with pytest.raises(KeyError):
            COUNTRY_TEMPLATE.render([])


class TestPromptSelector:
    """Test suite for PromptSelector."""

    @pytest.fixture
    def selector(self):
        return PromptSelector()

    def test_select_country(self, selector):
        assert selector.select(QueryType.COUNTRY) is COUNTRY_TEMPLATE

    def test_select_general(self, selector):
        assert selector.select(QueryType.GENERAL) is GENERAL_TEMPLATE

    @pytest.mark.parametrize("query_type", [None, "", "weather", "COUNTRYSIDE"])
    def test_unknown_defaults_to_general(self, selector, query_type):
        """Test that unrecognised or missing types fall back to the general template."""
        assert selector.select(query_type) is GENERAL_TEMPLATE

    def test_select_is_case_insensitive(self, selector):
        assert selector.select("Country") is COUNTRY_TEMPLATE

    def test_render_country_prompt(self, selector):
        """Test the Japan scenario renders the country template with Japan."""
        window = [Message(role=Role.USER, content="What visa do I need for Japan?")]

        rendered = selector.render(QueryType.COUNTRY, window, country="Japan")

        assert rendered[0]["role"] == "system"
        assert "visa requirements for travel to Japan" in rendered[0]["content"]
        assert "{country}" not in rendered[0]["content"]
        assert rendered[1] == {"role": "user", "content": "What visa do I need for Japan?"}

    def test_render_country_prompt_without_country(self, selector):
        """Test the placeholder is used when no country is known."""
        rendered = selector.render(QueryType.COUNTRY, [], country=None)

        assert f"travel to {DEFAULT_COUNTRY}" in rendered[0]["content"]

    def test_render_general_prompt(self, selector):
        """Test the general scenario renders the general template."""
        window = [Message(role=Role.USER, content="How long can I stay abroad?")]

        rendered = selector.render(QueryType.GENERAL, window, country="Japan")

        assert "passport and visa advisory agent" in rendered[0]["content"]
        assert "Japan" not in rendered[0]["content"]
        assert len(rendered) == 2
