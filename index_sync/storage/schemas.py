"""
Schema translation for qdrant-index-sync.

Maps the application's open-ended field model onto the fixed remote schema:
semantic types to remote data types, legacy analyzer names to canonical
analyzer ids, and internal field names to remote-legal identifiers.
"""

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from ..errors import UnsupportedTypeError
from ..models.fields import (
    AnalyzerName, FieldDescriptor, IndexSchema, RemoteDataType, RemoteField,
    SemanticType, FIELD_NAME_ESCAPE, KEY_FIELD_NAME, SPECIAL_FIELD_PREFIX,
    TYPE_FIELD_NAME
)

logger = logging.getLogger(__name__)


# Separator marking a legacy fully-qualified analyzer type name
ANALYZER_QUALIFIER_SEPARATOR = ","

# Fixed analyzer for the key and type fields
SYSTEM_FIELD_ANALYZER = AnalyzerName.WHITESPACE

# Checked in order, first substring match wins
LEGACY_ANALYZER_TABLE: Tuple[Tuple[str, AnalyzerName], ...] = (
    ("StandardAnalyzer", AnalyzerName.STANDARD),
    ("WhitespaceAnalyzer", AnalyzerName.WHITESPACE),
    ("SimpleAnalyzer", AnalyzerName.SIMPLE),
    ("KeywordAnalyzer", AnalyzerName.KEYWORD),
    ("StopAnalyzer", AnalyzerName.STOP),
    ("ArabicAnalyzer", AnalyzerName.ARABIC),
    ("BrazilianAnalyzer", AnalyzerName.PORTUGUESE_BRAZIL),
    ("ChineseAnalyzer", AnalyzerName.CHINESE_SIMPLIFIED),
    ("CzechAnalyzer", AnalyzerName.CZECH),
    ("DutchAnalyzer", AnalyzerName.DUTCH),
    ("FrenchAnalyzer", AnalyzerName.FRENCH),
    ("GermanAnalyzer", AnalyzerName.GERMAN),
    ("RussianAnalyzer", AnalyzerName.RUSSIAN),
)

_CANONICAL_ANALYZERS: Dict[str, AnalyzerName] = {
    a.value.lower(): a for a in AnalyzerName
}

_DATA_TYPE_MAP: Dict[SemanticType, RemoteDataType] = {
    SemanticType.TEXT: RemoteDataType.STRING,
    SemanticType.INTEGER: RemoteDataType.INT32,
    SemanticType.LONG: RemoteDataType.INT64,
    SemanticType.DOUBLE: RemoteDataType.DOUBLE,
    SemanticType.DATETIME: RemoteDataType.DATE_TIME_OFFSET,
}


def sanitize_field_name(name: str) -> str:
    """
    Convert a local field name to a remote-legal identifier.

    Internal names start with the reserved prefix, which the remote store
    rejects; they get one escape letter prepended. Other names are unchanged.

    Example:
        >>> sanitize_field_name("__NodeId")
        'z__NodeId'
        >>> sanitize_field_name("title")
        'title'
    """
    if name.startswith(SPECIAL_FIELD_PREFIX):
        return f"{FIELD_NAME_ESCAPE}{name}"
    return name


def restore_field_name(name: str) -> str:
    """Invert sanitize_field_name by stripping exactly one escape letter"""
    if name.startswith(FIELD_NAME_ESCAPE + SPECIAL_FIELD_PREFIX):
        return name[len(FIELD_NAME_ESCAPE):]
    return name


def translate_data_type(field_type: str, field_name: str = "") -> RemoteDataType:
    """
    Map a declared semantic type to a remote data type.

    Raises:
        UnsupportedTypeError: For coarse date granularities, which have no
            remote equivalent.
    """
    semantic_type = SemanticType.parse(field_type)
    if semantic_type.is_coarse_date:
        raise UnsupportedTypeError(field_type, field_name)
    return _DATA_TYPE_MAP[semantic_type]


def translate_analyzer(name: Optional[str]) -> str:
    """
    Map an analyzer name to a canonical remote analyzer id.

    Names containing the qualifier separator are legacy fully-qualified type
    names and are matched by substring against LEGACY_ANALYZER_TABLE.
    Unqualified names are taken as canonical ids. Anything unrecognised falls
    back to the standard analyzer.
    """
    if not name:
        return AnalyzerName.STANDARD.value

    if ANALYZER_QUALIFIER_SEPARATOR not in name:
        canonical = _CANONICAL_ANALYZERS.get(name.strip().lower())
        if canonical is None:
            logger.debug(f"Unknown analyzer '{name}', using standard")
            return AnalyzerName.STANDARD.value
        return canonical.value

    for marker, analyzer in LEGACY_ANALYZER_TABLE:
        if marker in name:
            return analyzer.value

    logger.debug(f"No legacy analyzer matches '{name}', using standard")
    return AnalyzerName.STANDARD.value


def translate_field(
    descriptor: FieldDescriptor,
    default_analyzer: str = AnalyzerName.STANDARD.value
) -> RemoteField:
    """
    Translate a declared field to a remote field specification.

    Args:
        descriptor: Declared field
        default_analyzer: Analyzer for string fields without an analyzer hint

    Returns:
        Remote field with sanitized name

    Raises:
        UnsupportedTypeError: If the declared type has no remote equivalent
    """
    data_type = translate_data_type(descriptor.type, descriptor.name)
    is_string = data_type == RemoteDataType.STRING

    return RemoteField(
        name=sanitize_field_name(descriptor.name),
        data_type=data_type,
        is_searchable=is_string,
        is_sortable=descriptor.enable_sorting,
        analyzer=translate_analyzer(descriptor.analyzer or default_analyzer) if is_string else None
    )


def get_system_fields() -> List[RemoteField]:
    """The key and type-discriminator fields present in every index"""
    return [
        RemoteField(
            name=sanitize_field_name(KEY_FIELD_NAME),
            data_type=RemoteDataType.STRING,
            is_key=True,
            is_sortable=True,
            is_searchable=True,
            analyzer=SYSTEM_FIELD_ANALYZER.value
        ),
        RemoteField(
            name=sanitize_field_name(TYPE_FIELD_NAME),
            data_type=RemoteDataType.STRING,
            is_searchable=True,
            analyzer=SYSTEM_FIELD_ANALYZER.value
        ),
    ]


def build_index_schema(
    index_name: str,
    field_groups: Mapping[str, Iterable[FieldDescriptor]],
    default_analyzer: str = AnalyzerName.STANDARD.value
) -> IndexSchema:
    """
    Build the complete remote schema from all declared field groups.

    Fields are taken in declaration order across groups; a name declared by
    several groups keeps its first declaration. The key and type fields are
    appended last and override any declared field of the same name.

    Args:
        index_name: Remote index identifier
        field_groups: Declared fields keyed by logical type
        default_analyzer: Analyzer for string fields without a hint

    Returns:
        Validated index schema
    """
    system_fields = get_system_fields()
    reserved = {f.name for f in system_fields}

    fields: List[RemoteField] = []
    seen = set()
    for group, descriptors in field_groups.items():
        for descriptor in descriptors:
            remote = translate_field(descriptor, default_analyzer)
            if remote.name in reserved:
                logger.debug(f"Ignoring declared system field {descriptor.name} in group {group}")
                continue
            if remote.name in seen:
                continue
            seen.add(remote.name)
            fields.append(remote)

    fields.extend(system_fields)

    return IndexSchema(
        name=index_name,
        fields=fields,
        key_field_name=sanitize_field_name(KEY_FIELD_NAME),
        type_field_name=sanitize_field_name(TYPE_FIELD_NAME)
    )


def build_document(
    key: str,
    values: Mapping[str, object],
    item_type: Optional[str] = None
) -> Dict[str, str]:
    """
    Build a remote document from local field values.

    Every field name is sanitized and every value string-encoded; the key
    field is always set from ``key`` and the type field from ``item_type``
    when given.
    """
    document = {
        sanitize_field_name(name): "" if value is None else str(value)
        for name, value in values.items()
    }
    document[sanitize_field_name(KEY_FIELD_NAME)] = str(key)
    if item_type is not None:
        document[sanitize_field_name(TYPE_FIELD_NAME)] = item_type
    return document
