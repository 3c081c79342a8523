"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from indexer.config import Settings
from indexer.search.schema import IndexSchema

ES_INDEX = "http://es.test:9200/pass/"
REPOSITORY = "http://fcrepo.test:8080/fcrepo/rest"
PASS_PREFIX = "http://oapass.org/ns/pass#"


@pytest.fixture
def settings() -> Settings:
    """Create test settings."""
    return Settings(
        _env_file=None,
        broker_url="redis://localhost:6379/0",
        queue="indexer",
        es_index=ES_INDEX,
        repository_user="admin",
        repository_pass="moo",
        type_prefix=PASS_PREFIX,
        shutdown_timeout=2.0,
    )


@pytest.fixture
def mapping_properties() -> dict[str, dict[str, str]]:
    """Property definitions of a small test mapping."""
    return {
        "@id": {"type": "keyword"},
        "@type": {"type": "keyword"},
        "name": {"type": "text"},
        "awardNumber": {"type": "keyword"},
        "projectName": {"type": "text"},
        "projectName_suggest": {"type": "completion"},
        "journalName": {"type": "text"},
        "journalName_suggest": {"type": "completion"},
    }


@pytest.fixture
def index_config(mapping_properties: dict[str, dict[str, str]]) -> dict[str, object]:
    """Index configuration as returned by GET on an existing index."""
    return {"pass": {"mappings": {"properties": mapping_properties}, "settings": {}}}


@pytest.fixture
def schema(mapping_properties: dict[str, dict[str, str]]) -> IndexSchema:
    """Schema matching the test mapping."""
    return IndexSchema.from_properties(set(mapping_properties))
