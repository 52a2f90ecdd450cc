import json
from datetime import date, datetime
from typing import Any, ClassVar, Dict, List, Mapping, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ocsclient.errors import ParseError

# record key holding the text of an XML element that also carries attributes
TEXT_KEY = "#text"


def attribute_text(value: Any) -> str:
    """Render a wire value the decoder does not recognize as text.

    Strings are kept verbatim, null becomes "" and anything else (numbers,
    booleans, sub-trees) becomes compact JSON so the value survives untouched.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def wire_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return "\n".join(wire_text(v) for v in value)
    return str(value)


def nested_records(value: Any, entity_type: Type["Entity"]) -> List[Any]:
    if value is None or value == "":
        return []
    if isinstance(value, list):
        return value
    if isinstance(value, str) and entity_type.text_key:
        # <video>url</video>
        return [value]
    if isinstance(value, Mapping):
        # XML wrapper element: <children><comment>..</comment></children>
        for tag in entity_type.xml_elements:
            if set(value) == {tag}:
                inner = value[tag]
                return inner if isinstance(inner, list) else [inner]
        return [value]
    raise ParseError(f"expected nested {entity_type.type_tag} records, got {type(value).__name__}")


class Entity(BaseModel):
    """Base of every decoded OCS object.

    Subclasses declare their recognized wire keys as pydantic field aliases.
    ``from_fields`` splits a format-neutral record into recognized values and
    ``extended_attributes`` so the decoder never fails on keys it does not know.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, coerce_numbers_to_str=True)

    type_tag: ClassVar[str] = ""
    xml_elements: ClassVar[Tuple[str, ...]] = ()
    # wire key -> entity type decoded recursively into a list
    nested: ClassVar[Dict[str, Type["Entity"]]] = {}
    # attribute names that are built by _prepare rather than read off the wire
    derived: ClassVar[Tuple[str, ...]] = ()
    extra_wire_keys: ClassVar[Tuple[str, ...]] = ()
    # wire key that receives the element text of <tag attr="..">text</tag>
    text_key: ClassVar[str] = ""

    id: str = ""
    extended_attributes: Dict[str, str] = Field(default_factory=dict)

    @classmethod
    def nested_types(cls) -> Dict[str, Type["Entity"]]:
        return cls.nested

    @classmethod
    def _wire_fields(cls) -> Dict[str, Any]:
        out = {}
        for name, info in cls.model_fields.items():
            if name == "extended_attributes" or name in cls.derived:
                continue
            out[info.alias or name] = (name, info)
        return out

    @classmethod
    def field_names(cls) -> Tuple[str, ...]:
        names = list(cls._wire_fields())
        names.extend(key for key in cls.extra_wire_keys if key not in names)
        return tuple(names)

    @classmethod
    def _prepare(cls, known: Dict[str, Any]) -> Dict[str, Any]:
        fields = cls._wire_fields()
        nested = cls.nested_types()
        values = {}
        for key, value in known.items():
            if key in nested:
                sub_type = nested[key]
                values[key] = [sub_type.from_fields(record) for record in nested_records(value, sub_type)]
                continue
            entry = fields.get(key)
            if entry is None or value is None:
                continue
            if value == "" and entry[1].annotation is not str:
                continue
            values[key] = value
        return values

    @classmethod
    def _recognizes(cls, key: str) -> bool:
        """Hook for wire keys that cannot be listed up front (numbered keys)."""
        return False

    @classmethod
    def from_fields(cls, fields: Mapping[str, Any]) -> "Entity":
        if isinstance(fields, str) and cls.text_key:
            fields = {TEXT_KEY: fields}
        if not isinstance(fields, Mapping):
            raise ParseError(f"{cls.type_tag or cls.__name__} record is not an object")

        fields = dict(fields)
        if TEXT_KEY in fields:
            text = fields.pop(TEXT_KEY)
            if cls.text_key:
                fields.setdefault(cls.text_key, text)
            elif text:
                fields[TEXT_KEY] = text

        names = set(cls.field_names())
        known, extended = {}, {}
        for key, value in fields.items():
            if key in names or cls._recognizes(key):
                known[key] = value
            else:
                extended[key] = attribute_text(value)

        values = cls._prepare(known)
        values["extended_attributes"] = extended
        try:
            return cls.model_validate(values)
        except ValidationError as e:
            raise ParseError(
                f"invalid {cls.type_tag or cls.__name__} record: {e.error_count()} field error(s)",
                details=e.errors(include_url=False),
            ) from e

    def to_fields(self) -> Dict[str, str]:
        out = {}
        for key, (name, _info) in self._wire_fields().items():
            if key in self.nested_types():
                continue
            out[key] = wire_text(getattr(self, name))
        for key, value in self.extended_attributes.items():
            out.setdefault(key, value)
        return out

    @property
    def is_valid(self) -> bool:
        return bool(self.id)
