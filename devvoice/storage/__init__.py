"""Workspace persistence for recordings."""

from .metadata_store import MetadataStore

__all__ = [
    'MetadataStore',
]
