from __future__ import annotations

from pathlib import Path

import pytest

from restyle.config.loader import ConfigLoader
from restyle.core.document import HtmlDocument
from restyle.core.resolver import ResolverRegistry, TargetResolver
from restyle.logging.artifacts import ArtifactManager
from tests.helpers import SAMPLE_PAGE


@pytest.fixture(scope="session", autouse=True)
def reset_artifacts_for_test_run():
    artifacts_root = Path(__file__).resolve().parents[1] / "artifacts"
    manager = ArtifactManager(artifacts_root)
    manager.reset()
    return manager


@pytest.fixture()
def engine_config():
    config_path = Path(__file__).resolve().parents[1] / "config" / "engine.json"
    return ConfigLoader.load(config_path)


@pytest.fixture()
def document():
    return HtmlDocument(SAMPLE_PAGE)


@pytest.fixture()
def registry():
    return ResolverRegistry()


@pytest.fixture()
def resolver(document, registry):
    resolver = TargetResolver(document)
    registry.activate(resolver)
    return resolver
