"""Search index schema, document normalization and index access."""

from indexer.search.completion import tokenize
from indexer.search.gateway import IndexGateway, document_id, load_index_configuration
from indexer.search.normalizer import normalize
from indexer.search.schema import IndexSchema

__all__ = [
    "IndexGateway",
    "IndexSchema",
    "document_id",
    "load_index_configuration",
    "normalize",
    "tokenize",
]
