"""
Indexing Package

Schema derivation, document transformation, computed fields and the
paginated reindex pipeline.
"""

from .admin import IndexAdministrator
from .paginator import ReindexPaginator, ReindexStatus
from .parsers import ComputedFieldParser, ComputedFieldRegistry, computed_field_parser
from .properties import PropertyResolver
from .schema import SchemaBuilder
from .transformer import DocumentTransformer

__all__ = [
    "IndexAdministrator",
    "ReindexPaginator",
    "ReindexStatus",
    "ComputedFieldParser",
    "ComputedFieldRegistry",
    "computed_field_parser",
    "PropertyResolver",
    "SchemaBuilder",
    "DocumentTransformer",
]
