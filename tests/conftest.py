"""Fixtures for end-to-end pipeline tests."""

import pytest

from research_workflow.config import Config
from research_workflow.workflow import ResearchWorkflow
from tests.fakes import FakeConverter, ScriptedAnalyzer, ScriptedDrafter


@pytest.fixture
def make_workflow():
    def factory(converter=None, analyzer=None, drafter=None, **config):
        return ResearchWorkflow(
            converter=converter or FakeConverter(),
            analyzer=analyzer or ScriptedAnalyzer(),
            drafter=drafter or ScriptedDrafter(),
            config=Config(**config),
        )

    return factory
