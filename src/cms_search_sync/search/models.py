"""
Search Index Data Models

This module defines the wire-level models exchanged with the search service:
field descriptors, index definitions, configured search fields and batch
submission results.

Field descriptors serialize to the Azure Cognitive Search REST field shape
(``name``, ``type``, ``key``, ``searchable`` ...) via ``to_wire()``.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


SearchDocument = Dict[str, Any]

KEY_FIELD = "Id"

# Treats the entire content of a field as a single token
KEYWORD_ANALYZER = "keyword"


class DataType(str, Enum):
    """EDM data types supported by the index schema."""

    STRING = "Edm.String"
    BOOLEAN = "Edm.Boolean"
    INT32 = "Edm.Int32"
    DATE_TIME_OFFSET = "Edm.DateTimeOffset"
    STRING_COLLECTION = "Collection(Edm.String)"


class FieldDescriptor(BaseModel):
    """
    A single field of the search index schema.
    """

    name: str = Field(..., min_length=1)
    type: DataType = DataType.STRING
    key: bool = False
    filterable: bool = False
    sortable: bool = False
    searchable: bool = False
    facetable: bool = False
    retrievable: bool = True
    analyzer: Optional[str] = None

    model_config = ConfigDict(extra="forbid", frozen=True)

    def to_wire(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "name": self.name,
            "type": self.type.value,
            "key": self.key,
            "filterable": self.filterable,
            "sortable": self.sortable,
            "searchable": self.searchable,
            "facetable": self.facetable,
            "retrievable": self.retrievable,
        }
        if self.analyzer:
            payload["analyzer"] = self.analyzer
        return payload


SearchFieldType = Literal["string", "collection", "int", "bool", "date"]

_FIELD_TYPE_MAP: Dict[str, DataType] = {
    "string": DataType.STRING,
    "collection": DataType.STRING_COLLECTION,
    "int": DataType.INT32,
    "bool": DataType.BOOLEAN,
    "date": DataType.DATE_TIME_OFFSET,
}


class SearchFieldConfig(BaseModel):
    """
    A configured custom field mapped from a CMS property.

    A field with a non-empty ``parser_type`` is a computed field: its value
    comes from a registered parser instead of a CMS property.
    """

    name: str = Field(..., min_length=1)
    type: SearchFieldType = "string"
    parser_type: Optional[str] = None
    is_grid_json: bool = False

    searchable: bool = True
    filterable: bool = False
    sortable: bool = False
    facetable: bool = False
    retrievable: bool = True
    analyzer: Optional[str] = None

    model_config = ConfigDict(extra="forbid", frozen=True)

    @property
    def is_computed(self) -> bool:
        return bool(self.parser_type and self.parser_type.strip())

    def to_descriptor(self) -> FieldDescriptor:
        data_type = _FIELD_TYPE_MAP[self.type]
        return FieldDescriptor(
            name=self.name,
            type=data_type,
            # Azure rejects searchable on non-string fields
            searchable=self.searchable and data_type in (
                DataType.STRING,
                DataType.STRING_COLLECTION,
            ),
            filterable=self.filterable,
            sortable=self.sortable and data_type != DataType.STRING_COLLECTION,
            facetable=self.facetable,
            retrievable=self.retrievable,
            analyzer=self.analyzer,
        )


class IndexDefinition(BaseModel):
    """
    Complete index definition sent when (re)creating the search index.
    """

    name: str = Field(..., min_length=1)
    fields: List[FieldDescriptor]
    scoring_profiles: List[Dict[str, Any]] = Field(default_factory=list)
    analyzers: List[Dict[str, Any]] = Field(default_factory=list)

    def to_wire(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "fields": [f.to_wire() for f in self.fields],
            "scoringProfiles": list(self.scoring_profiles),
            "analyzers": list(self.analyzers),
        }


class SubmissionResult(BaseModel):
    """
    Outcome of a batch submission. Partial failures are reported here rather
    than raised.
    """

    success: bool = True
    message: str = ""
    failed_keys: List[str] = Field(default_factory=list)
