"""
Column matcher for spreadsheet imports.

Maps the headers of an uploaded file to the semantic field schema using each
field's alias list: an exact pass first, then a substring fallback.
"""

from typing import Iterable, Optional, Sequence
import structlog

from models.import_fields import FieldKey, SemanticField, SEMANTIC_FIELDS

logger = structlog.get_logger(__name__)


def normalize_header(header: str) -> str:
    """Lowercase and trim a header for comparison."""
    return str(header).lower().strip()


def match_field(headers: Sequence[str], field: SemanticField) -> Optional[str]:
    """
    Find the source header for one field.

    Pass 1: first header (file order) whose normalized text equals an alias.
    Pass 2, only when pass 1 found nothing: first header where the normalized
    text contains an alias or an alias contains it; aliases are tried in
    declared order for each header.

    Returns:
        The header as it appears in the file, or None
    """
    aliases = set(field.aliases)
    for header in headers:
        if normalize_header(header) in aliases:
            return header

    for header in headers:
        normalized = normalize_header(header)
        # An empty header is a substring of every alias
        if not normalized:
            continue
        for alias in field.aliases:
            if alias in normalized or normalized in alias:
                return header

    return None


def match_columns(
    headers: Sequence[str],
    fields: Iterable[SemanticField] = SEMANTIC_FIELDS,
) -> dict[FieldKey, Optional[str]]:
    """
    Seed a column mapping for every field.

    Fields are matched independently, so two fields can end up bound to the
    same header.

    Args:
        headers: Headers in file order
        fields: Semantic fields to fill

    Returns:
        Mapping of field key to header, None where nothing matched
    """
    mapping: dict[FieldKey, Optional[str]] = {}
    for field in fields:
        mapping[field.key] = match_field(headers, field)

    bound = [h for h in mapping.values() if h is not None]
    if len(bound) != len(set(bound)):
        logger.warning(
            "header_bound_to_multiple_fields",
            mapping={k.value: v for k, v in mapping.items()}
        )

    logger.debug(
        "columns_matched",
        header_count=len(headers),
        matched=sum(1 for v in mapping.values() if v is not None)
    )

    return mapping
