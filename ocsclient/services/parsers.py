import json
import logging
import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Tuple, Type, Union

from pydantic import ValidationError

from ocsclient.errors import ParseError
from ocsclient.models.enums import WireFormat
from ocsclient.schemas.base import TEXT_KEY, Entity
from ocsclient.schemas.envelopes import Envelope
from ocsclient.schemas.registry import resolve_entity_type

logger = logging.getLogger(__name__)

ENVELOPE_KEYS = ("status", "statuscode", "message", "totalitems", "itemsperpage")


@dataclass
class ParseResult:
    envelope: Envelope
    items: List[Entity] = field(default_factory=list)
    skipped: int = 0


class FormatParser(ABC):
    """Envelope parser for one wire format.

    Only this layer knows the format. It turns the payload into format-neutral
    records (mappings of key to text or sub-tree) and hands each record to the
    entity type's ``from_fields``.
    """

    wire_format: WireFormat

    @abstractmethod
    def decode_envelope(self, raw: Union[bytes, str]) -> Tuple[Envelope, Any]:
        """Return the envelope and an opaque payload handle (None when absent)."""

    @abstractmethod
    def _records(self, payload: Any, entity_type: Type[Entity]) -> List[Any]:
        ...

    @abstractmethod
    def _record(self, payload: Any, entity_type: Type[Entity]) -> Any:
        ...

    def parse(self, raw, entity_type=None, *, many: bool = False, lenient: bool = True) -> ParseResult:
        entity_type = resolve_entity_type(entity_type)
        envelope, payload = self.decode_envelope(raw)

        # a failed envelope never yields entities, even if it carries data
        if not envelope.is_ok or entity_type is None:
            return ParseResult(envelope)

        if not many:
            if payload is None:
                raise ParseError(f"successful envelope without {entity_type.type_tag} data")
            return ParseResult(envelope, [entity_type.from_fields(self._record(payload, entity_type))])

        if payload is None:
            return ParseResult(envelope)

        items = []
        skipped = 0
        for index, record in enumerate(self._records(payload, entity_type)):
            try:
                items.append(entity_type.from_fields(record))
            except ParseError as e:
                if not lenient:
                    raise ParseError(f"element {index}: {e}", details=e.details) from e
                skipped += 1
                logger.warning("Dropping malformed %s element %d: %s", entity_type.type_tag, index, e)
        return ParseResult(envelope, items, skipped)

    @staticmethod
    def _envelope(fields: Mapping[str, Any]) -> Envelope:
        try:
            return Envelope.model_validate({k: fields[k] for k in ENVELOPE_KEYS if k in fields})
        except ValidationError as e:
            raise ParseError(f"invalid envelope: {e.error_count()} field error(s)",
                             details=e.errors(include_url=False)) from e


class JsonParser(FormatParser):
    wire_format = WireFormat.JSON

    def decode_envelope(self, raw):
        try:
            doc = json.loads(raw)
        except (ValueError, TypeError) as e:
            raise ParseError(f"malformed JSON document: {e}") from e

        if isinstance(doc, dict) and isinstance(doc.get("ocs"), dict):
            doc = doc["ocs"]
        if not isinstance(doc, dict):
            raise ParseError(f"JSON envelope must be an object, got {type(doc).__name__}")

        meta = doc.get("meta")
        envelope = self._envelope(meta if isinstance(meta, dict) else doc)
        return envelope, doc.get("data")

    def _records(self, payload, entity_type):
        if not isinstance(payload, list):
            raise ParseError(f"expected a {entity_type.type_tag} array, got {type(payload).__name__}")
        return payload

    def _record(self, payload, entity_type):
        if not isinstance(payload, dict):
            raise ParseError(f"expected a {entity_type.type_tag} object, got {type(payload).__name__}")
        return payload


def element_value(element: ET.Element) -> Any:
    """Turn an XML element into text (leaf) or a mapping of child tag to value.

    Attributes become keys of the mapping; a leaf with attributes keeps its
    text under ``TEXT_KEY``. Repeated child tags collect into a list in
    document order and win over an attribute of the same name.
    """
    children = list(element)
    if not children:
        if not element.attrib:
            return element.text or ""
        return {**element.attrib, TEXT_KEY: element.text or ""}

    out = {}
    for child in children:
        value = element_value(child)
        if child.tag in out:
            existing = out[child.tag]
            if isinstance(existing, list):
                existing.append(value)
            else:
                out[child.tag] = [existing, value]
        else:
            out[child.tag] = value
    for key, value in element.attrib.items():
        out.setdefault(key, value)
    return out


class XmlParser(FormatParser):
    wire_format = WireFormat.XML

    root_tag = "ocs"
    data_tags = ("data", "list")

    def decode_envelope(self, raw):
        try:
            root = ET.fromstring(raw)
        except ET.ParseError as e:
            raise ParseError(f"malformed XML document: {e}") from e

        if root.tag != self.root_tag:
            raise ParseError(f"unexpected XML root element <{root.tag}>")

        meta = root.find("meta")
        source = meta if meta is not None else root
        fields = {child.tag: (child.text or "").strip() for child in source if child.tag in ENVELOPE_KEYS}
        envelope = self._envelope(fields)

        data: Optional[ET.Element] = None
        for tag in self.data_tags:
            data = root.find(tag)
            if data is not None:
                break
        return envelope, data

    def _records(self, payload, entity_type):
        return [element_value(child) for child in payload if child.tag in entity_type.xml_elements]

    def _record(self, payload, entity_type):
        for child in payload:
            if child.tag in entity_type.xml_elements:
                return element_value(child)
        raise ParseError(f"no <{'|'.join(entity_type.xml_elements)}> element in data")


_PARSERS = {
    WireFormat.XML: XmlParser(),
    WireFormat.JSON: JsonParser(),
}


def parser_for(wire_format: Union[WireFormat, str]) -> FormatParser:
    try:
        return _PARSERS[WireFormat(wire_format)]
    except ValueError:
        raise ValueError(f"Unsupported wire format {wire_format!r}") from None
