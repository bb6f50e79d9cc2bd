# ABOUTME: Registry persistence layer
# ABOUTME: JSON-file registries of lore, category and image entries, merged additively across runs

"""
Persistence Layer: Save and retrieve registry entries

This layer handles:
- Pydantic models for registry entries
- Loading, saving and exact-ID lookup of JSON registries
- Additive, first-write-wins merging of newly observed entities

Data Flow: extraction/ records → Registries on disk → core/ phases
"""

from .models import LORE_CLASSES, ArticleRef, EntityClass, ImageEntry, RegistryEntry, RegistryModel
from .registry import (
    MergeResult,
    RegistryStore,
    category_registry,
    find_by_id,
    image_registry,
    index_by_id,
    lore_registry,
    merge_entries,
)

__all__ = [
    "ArticleRef",
    "EntityClass",
    "ImageEntry",
    "LORE_CLASSES",
    "MergeResult",
    "RegistryEntry",
    "RegistryModel",
    "RegistryStore",
    "category_registry",
    "find_by_id",
    "image_registry",
    "index_by_id",
    "lore_registry",
    "merge_entries",
]
