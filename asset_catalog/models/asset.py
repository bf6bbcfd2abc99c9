"""Canonical data asset records returned to every caller."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class CanonicalModel(BaseModel):
    """Immutable model serialized with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class ColumnSchema(CanonicalModel):
    """One column of an asset, in ordinal order."""

    column_name: str
    data_type: str
    is_nullable: bool = True
    description: Optional[str] = None


class LineageEdge(CanonicalModel):
    """A directed dependency: the referencing object depends on the referenced one."""

    referenced_object_id: str
    referencing_object_id: str
    referenced_domain: Optional[str] = None
    referencing_domain: Optional[str] = None
    dependency_type: Optional[str] = None

    referenced_database: Optional[str] = None
    referenced_schema: Optional[str] = None
    referenced_object_name: Optional[str] = None
    referencing_database: Optional[str] = None
    referencing_schema: Optional[str] = None
    referencing_object_name: Optional[str] = None

    def edge_key(self) -> tuple[str, str, Optional[str]]:
        """Identity used to de-duplicate edges."""
        return (self.referenced_object_id, self.referencing_object_id, self.dependency_type)


def _unique(values: list[str]) -> list[str]:
    seen: set[str] = set()
    unique: list[str] = []
    for value in values:
        if value not in seen:
            seen.add(value)
            unique.append(value)
    return unique


class DataAsset(CanonicalModel):
    """
    The single unified asset shape produced regardless of originating source.

    ``tags`` and ``business_glossary_terms`` behave as sets: duplicates are
    dropped and first-occurrence order is kept so output stays deterministic.
    """

    id: str
    source: str
    name: str
    location: str
    column_count: int = Field(default=0, ge=0)
    sample_record_count: Optional[int] = None
    description: Optional[str] = None
    owner: Optional[str] = None
    is_sensitive: bool = False
    last_modified: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    columns: list[ColumnSchema] = Field(default_factory=list, alias="schema")
    tags: list[str] = Field(default_factory=list)
    business_glossary_terms: list[str] = Field(default_factory=list)
    lineage: list[LineageEdge] = Field(default_factory=list)

    raw_schema_for_ai: str = Field(default="", alias="rawSchemaForAI")
    raw_query: Optional[str] = None
    sample_data: Optional[list[dict[str, Any]]] = None

    @field_validator("tags", "business_glossary_terms")
    @classmethod
    def dedupe_values(cls, values: list[str]) -> list[str]:
        return _unique(values)

    @model_validator(mode="after")
    def check_column_count(self) -> "DataAsset":
        if self.columns and self.column_count != len(self.columns):
            raise ValueError(
                f"columnCount ({self.column_count}) does not match schema length "
                f"({len(self.columns)}) for asset {self.id}"
            )
        return self


def render_schema_for_ai(columns: list[ColumnSchema]) -> str:
    """Compact ``name:type`` encoding consumed by the tag-suggestion assistant."""
    return ", ".join(f"{c.column_name}:{c.data_type}" for c in columns)
