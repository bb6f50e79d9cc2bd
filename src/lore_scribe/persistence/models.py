# ABOUTME: Pydantic models for registry entries persisted as JSON arrays
# ABOUTME: Field names serialize as camelCase to match the exported records

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class EntityClass(str, Enum):
    """Closed set of entity classes found in exported records."""

    ARTICLE = "Article"
    PERSON = "Person"
    LOCATION = "Location"
    ORGANIZATION = "Organization"
    SPECIES = "Species"
    ITEM = "Item"
    CATEGORY = "Category"
    IMAGE = "Image"


# Classes that produce a document and live in the lore registry
LORE_CLASSES = frozenset(
    {
        EntityClass.ARTICLE,
        EntityClass.PERSON,
        EntityClass.LOCATION,
        EntityClass.ORGANIZATION,
        EntityClass.SPECIES,
        EntityClass.ITEM,
    }
)


class RegistryModel(BaseModel):
    """Shared config: camelCase aliases on disk, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    id: str
    extracted: bool = Field(default=False, description="Output artifact already produced")

    def mark_extracted(self) -> bool:
        """Set extracted=True. Returns True when the flag actually changed."""
        if self.extracted:
            return False
        self.extracted = True
        return True


class ArticleRef(BaseModel):
    """An article listed by a category."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    id: str
    title: str | None = None
    slug: str | None = None
    entity_class: str | None = None


class RegistryEntry(RegistryModel):
    """Metadata for one lore or category entity."""

    entity_class: EntityClass
    title: str = ""
    slug: str = ""
    url: str

    # Raw markup
    content: str | None = None
    side_panel_top: str | None = None
    side_panel_bottom: str | None = None

    # Foreign keys into the same registry family
    cover_id: str | None = None
    category_id: str | None = None
    parent_id: str | None = None

    # Derived by the tree builder / lore path assignment
    reference_path: str | None = None

    # Category-only indexes
    children: list[str] | None = None
    articles: list[ArticleRef] | None = None

    @property
    def is_category(self) -> bool:
        return self.entity_class == EntityClass.CATEGORY


class ImageEntry(RegistryModel):
    """Metadata for one downloadable image."""

    url: str
    filename: str
    entity_class: EntityClass = EntityClass.IMAGE
    title: str = ""
    page_url: str | None = None
