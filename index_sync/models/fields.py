"""
Field and schema models for qdrant-index-sync.

Covers the locally declared field model (FieldDescriptor) and the strongly
typed remote schema (RemoteField, IndexSchema) it is translated into.
"""

from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# Reserved prefix for engine-internal field names
SPECIAL_FIELD_PREFIX = "__"

# Remote field names must start with a letter
FIELD_NAME_ESCAPE = "z"

KEY_FIELD_NAME = "__NodeId"
TYPE_FIELD_NAME = "__IndexType"


class SemanticType(Enum):
    """Semantic field types declared by the application"""
    TEXT = "text"
    INTEGER = "integer"
    LONG = "long"
    DOUBLE = "double"
    DATETIME = "datetime"

    # Coarse date granularities
    DATE_DAY = "date-day"
    DATE_HOUR = "date-hour"
    DATE_MINUTE = "date-minute"
    DATE_MONTH = "date-month"
    DATE_YEAR = "date-year"

    @property
    def is_coarse_date(self) -> bool:
        return self in _COARSE_DATES

    @classmethod
    def parse(cls, value: str) -> "SemanticType":
        """
        Parse a declared type string.

        Matching is case-insensitive and treats '.', '_' and '-' alike, so
        "date.day", "DATE_DAY" and "date-day" are the same type. Unknown
        types are treated as text.
        """
        normalized = (value or "").strip().lower().replace(".", "-").replace("_", "-")
        return _TYPE_ALIASES.get(normalized, cls.TEXT)


_COARSE_DATES = {
    SemanticType.DATE_DAY,
    SemanticType.DATE_HOUR,
    SemanticType.DATE_MINUTE,
    SemanticType.DATE_MONTH,
    SemanticType.DATE_YEAR,
}

_TYPE_ALIASES = {
    "text": SemanticType.TEXT,
    "fulltext": SemanticType.TEXT,
    "fulltextsortable": SemanticType.TEXT,
    "raw": SemanticType.TEXT,
    "string": SemanticType.TEXT,
    "int": SemanticType.INTEGER,
    "integer": SemanticType.INTEGER,
    "number": SemanticType.INTEGER,
    "long": SemanticType.LONG,
    "float": SemanticType.DOUBLE,
    "double": SemanticType.DOUBLE,
    "datetime": SemanticType.DATETIME,
    "date": SemanticType.DATETIME,
    "date-day": SemanticType.DATE_DAY,
    "date-hour": SemanticType.DATE_HOUR,
    "date-minute": SemanticType.DATE_MINUTE,
    "date-month": SemanticType.DATE_MONTH,
    "date-year": SemanticType.DATE_YEAR,
}


class RemoteDataType(Enum):
    """Data types supported by the remote index schema"""
    STRING = "Edm.String"
    INT32 = "Edm.Int32"
    INT64 = "Edm.Int64"
    DOUBLE = "Edm.Double"
    DATE_TIME_OFFSET = "Edm.DateTimeOffset"


class AnalyzerName(Enum):
    """Canonical analyzer identifiers of the remote index"""
    STANDARD = "standard"
    WHITESPACE = "whitespace"
    SIMPLE = "simple"
    KEYWORD = "keyword"
    STOP = "stop"
    ARABIC = "ar.lucene"
    PORTUGUESE_BRAZIL = "pt-BR.lucene"
    CHINESE_SIMPLIFIED = "zh-Hans.lucene"
    CZECH = "cs.lucene"
    DUTCH = "nl.lucene"
    FRENCH = "fr.lucene"
    GERMAN = "de.lucene"
    RUSSIAN = "ru.lucene"


class FieldDescriptor(BaseModel):
    """Field declaration read from the application's field source"""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    name: str
    type: str = "text"
    enable_sorting: bool = False
    analyzer: Optional[str] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v:
            raise ValueError('Field name cannot be empty')
        return v

    @property
    def semantic_type(self) -> SemanticType:
        return SemanticType.parse(self.type)


class RemoteField(BaseModel):
    """Field specification of the remote index schema"""
    model_config = ConfigDict(frozen=True)

    name: str
    data_type: RemoteDataType
    is_key: bool = False
    is_searchable: bool = False
    is_sortable: bool = False
    analyzer: Optional[str] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Remote identifiers must begin with a letter"""
        if not v or not v[0].isalpha():
            raise ValueError(f'Remote field name must start with a letter: {v!r}')
        return v

    @model_validator(mode='after')
    def validate_analyzer(self) -> 'RemoteField':
        if self.analyzer is not None and self.data_type != RemoteDataType.STRING:
            raise ValueError(f'Analyzer is only valid on string fields: {self.name}')
        return self


class IndexSchema(BaseModel):
    """
    Complete remote index definition.

    Immutable once built; any change to the field set requires deleting and
    recreating the remote index.
    """
    model_config = ConfigDict(frozen=True)

    name: str
    fields: List[RemoteField] = Field(default_factory=list)
    key_field_name: str
    type_field_name: str

    @model_validator(mode='after')
    def validate_fields(self) -> 'IndexSchema':
        names = [f.name for f in self.fields]
        duplicates = {n for n in names if names.count(n) > 1}
        if duplicates:
            raise ValueError(f'Duplicate field names: {sorted(duplicates)}')

        keys = [f for f in self.fields if f.is_key]
        if len(keys) != 1:
            raise ValueError(f'Index schema must have exactly one key field, got {len(keys)}')
        if keys[0].name != self.key_field_name:
            raise ValueError(f'Key field must be {self.key_field_name}, got {keys[0].name}')
        if keys[0].data_type != RemoteDataType.STRING:
            raise ValueError('Key field must be a string field')

        type_field = self.get_field(self.type_field_name)
        if type_field is None or type_field.data_type != RemoteDataType.STRING:
            raise ValueError(f'Type field {self.type_field_name} must be present and string typed')
        return self

    def get_field(self, name: str) -> Optional[RemoteField]:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    @property
    def key_field(self) -> RemoteField:
        return self.get_field(self.key_field_name)

    @property
    def type_field(self) -> RemoteField:
        return self.get_field(self.type_field_name)

    @property
    def field_names(self) -> List[str]:
        return [f.name for f in self.fields]
