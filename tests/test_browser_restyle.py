from __future__ import annotations

import asyncio

import pytest

from restyle.core.pipeline import CommandPipeline
from tests.helpers import BLUE_REPLY, FakeInterpreter, managed_document


@pytest.mark.integration
@pytest.mark.parametrize("browser_name", ["chrome", "firefox"])
def test_live_restyle_and_undo(browser_name):
    with managed_document(browser_name) as document:
        pipeline = CommandPipeline(document, FakeInterpreter(BLUE_REPLY))
        card = document.query_all(".featured")[0]
        assert pipeline.resolver.add(card)
        assert card.get_attribute("data-restyle-selected") == "true"

        result = asyncio.run(pipeline.process("make it blue"))
        assert result.success
        assert document.computed_style(card, "color") == "rgb(0, 0, 255)"
        assert card.get_attribute("data-restyle-selected") is None

        undo = asyncio.run(pipeline.process("undo"))
        assert undo.success
        assert document.get_own_style(card, "color") == ""
        assert document.get_own_style(card, "padding") == "4px"


@pytest.mark.integration
@pytest.mark.parametrize("browser_name", ["chrome", "firefox"])
def test_live_selector_generation(browser_name):
    with managed_document(browser_name) as document:
        pipeline = CommandPipeline(document, FakeInterpreter(BLUE_REPLY))
        second_card = document.query_all(".card")[1]
        selector = pipeline.resolver.generate_selector(second_card)
        assert document.query_all(selector) == [second_card]
        assert pipeline.resolver.generate_selector(document.query_all("#cta")[0]) == "#cta"
