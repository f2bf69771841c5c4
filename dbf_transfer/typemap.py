"""One table describing every DBF field type we accept.

Each entry bundles the value decoder with the destination column type, so the
reader, the DDL generator and both loaders look at the same definition of a
type tag.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional

import sqlalchemy as sa

from . import values
from .errors import FormatError


def _as_datetime(value):
    # DATE fields decode to date but land in DATETIME columns
    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime(value.year, value.month, value.day)
    return value


@dataclass(frozen=True)
class FieldType:
    tag: str
    label: str
    decode: Callable
    column_type: Callable[[Any], sa.types.TypeEngine]
    coerce: Optional[Callable[[Any], Any]] = None


FIELD_TYPES: Dict[str, FieldType] = {
    ft.tag: ft
    for ft in (
        FieldType("C", "Character", values.decode_character, lambda f: sa.VARCHAR(f.length)),
        FieldType("I", "Integer", values.decode_integer, lambda f: sa.Integer()),
        FieldType(
            "N",
            "Numeric",
            values.decode_numeric,
            lambda f: sa.Numeric(precision=f.length + 1, scale=f.decimal_count),
        ),
        FieldType("F", "Float", values.decode_float, lambda f: sa.Float()),
        FieldType("L", "Logical", values.decode_logical, lambda f: sa.Boolean()),
        FieldType("D", "Date", values.decode_date, lambda f: sa.DateTime(), _as_datetime),
        FieldType("T", "DateTime", values.decode_timestamp, lambda f: sa.DateTime()),
        FieldType("M", "Memo", values.decode_memo, lambda f: sa.Text()),
        # Vendor markers: the column is kept, its content is not.
        FieldType("W", "Blob", values.decode_nothing, lambda f: sa.Text()),
        FieldType("G", "General", values.decode_nothing, lambda f: sa.Text()),
        FieldType("0", "NullFlags", values.decode_nothing, lambda f: sa.Integer()),
    )
}


def lookup_field_type(tag: str) -> FieldType:
    """Return the FieldType for ``tag`` or fail for tags we cannot load."""
    try:
        return FIELD_TYPES[tag]
    except KeyError:
        raise FormatError(f"Unsupported DBF field type '{tag}'") from None


def null_default_for(type_: sa.types.TypeEngine):
    """Value bound instead of NULL: 0 for numbers, '' for text, else NULL."""
    if isinstance(type_, (sa.Integer, sa.Numeric, sa.Float)):
        return 0
    if isinstance(type_, sa.String):
        return ""
    return None


def decode_field(data: bytes, field, codec: values.TextCodec = values.ASCII):
    """Decode one field window, tagging any failure with the field's ordinal and name."""
    try:
        return field.field_type.decode(data, field, codec)
    except FormatError as e:
        raise e.with_context(
            f"field #{field.no} ({field.name})", field_no=field.no, field_name=field.name
        ) from e


@dataclass(frozen=True)
class ColumnSpec:
    """Destination column derived from one field descriptor.

    Built once per field; ``column()`` feeds the DDL and ``parameter()`` /
    ``bind()`` feed the inserts.
    """

    name: str
    field: Any
    type_: sa.types.TypeEngine
    null_default: Any

    @property
    def nullable(self) -> bool:
        return self.null_default is None

    @property
    def precision(self) -> Optional[int]:
        return getattr(self.type_, "precision", None)

    @property
    def scale(self) -> Optional[int]:
        return getattr(self.type_, "scale", None)

    @property
    def width(self) -> Optional[int]:
        return getattr(self.type_, "length", None)

    @property
    def param_name(self) -> str:
        # Positional: column names are reserved by insert() for its own parameters.
        return f"p{self.field.no}"

    def column(self) -> sa.Column:
        return sa.Column(self.name, self.type_, nullable=self.nullable)

    def parameter(self) -> sa.sql.elements.BindParameter:
        return sa.bindparam(self.param_name, type_=self.type_)

    def bind(self, value):
        """Turn a decoded value into the value sent to the database."""
        if value is None:
            return self.null_default
        coerce = self.field.field_type.coerce
        return coerce(value) if coerce else value


def column_spec(field) -> ColumnSpec:
    type_ = field.field_type.column_type(field)
    return ColumnSpec(
        name=field.name.lower(),
        field=field,
        type_=type_,
        null_default=null_default_for(type_),
    )


def map_fields(fields) -> List[ColumnSpec]:
    """Column specs for ``fields``, in descriptor order."""
    return [column_spec(field) for field in fields]
