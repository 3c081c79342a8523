"""Repository resource access."""

from indexer.repository.gateway import ACCEPT_HEADER, PREFER_HEADER, ResourceGateway

__all__ = ["ACCEPT_HEADER", "PREFER_HEADER", "ResourceGateway"]
