"""Encode single instances as standalone ``.rbxmx`` XML fragments.

A fragment carries one instance's class and properties. Children are never
written into a fragment; the walker only produces fragments for childless
instances.

Example fragment::

    <roblox version="4">
      <Item class="Part" referent="RBX0">
        <Properties>
          <bool name="Anchored">true</bool>
          <Struct name="Color">
            <double name="B">0.0</double>
            ...
          </Struct>
        </Properties>
      </Item>
    </roblox>
"""

from __future__ import annotations

import base64
import binascii
import re
import xml.etree.ElementTree as ET
from typing import Dict, Mapping

from .errors import FragmentCodecError
from .variants import (
    BINARY_STRING,
    BOOL,
    FLOAT64,
    INT64,
    STRING,
    STRUCT,
    Variant,
    variant_kind,
)

FRAGMENT_SUFFIX = ".rbxmx"
FRAGMENT_VERSION = "4"

_TAG_FOR_KIND = {
    STRING: "string",
    BOOL: "bool",
    INT64: "int64",
    FLOAT64: "double",
    BINARY_STRING: "BinaryString",
    STRUCT: "Struct",
}
_KIND_FOR_TAG = {tag: kind for kind, tag in _TAG_FOR_KIND.items()}
_INVALID_XML_CHARS = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ufffe\uffff]")


def is_fragment_name(name: str) -> bool:
    """Return ``True`` when a file name marks its contents as a fragment."""

    return name.lower().endswith(FRAGMENT_SUFFIX)


class FragmentCodec:
    """Convert between instance properties and fragment bytes."""

    def encode(
        self, properties: Mapping[str, Variant], *, class_name: str = "Instance"
    ) -> bytes:
        """Return the fragment for an instance with ``properties``.

        Properties are written in name order so equal inputs always produce
        identical bytes.

        Raises:
            FragmentCodecError: If a property value has no fragment encoding.
        """

        document = ET.Element("roblox", {"version": FRAGMENT_VERSION})
        item = ET.SubElement(document, "Item", {"class": class_name, "referent": "RBX0"})
        container = ET.SubElement(item, "Properties")
        self._write_properties(container, properties)

        ET.indent(document, space="  ")
        data = ET.tostring(document, encoding="utf-8", xml_declaration=False)
        # Parsers fold raw CRs into newlines; character references survive.
        return data.replace(b"\r", b"&#13;") + b"\n"

    def decode(self, data: bytes) -> Dict[str, Variant]:
        """Return the properties stored in the first item of a fragment.

        Raises:
            FragmentCodecError: If ``data`` is not a well-formed fragment.
        """

        try:
            document = ET.fromstring(data)
        except ET.ParseError as exc:
            raise FragmentCodecError(f"Fragment is not valid XML: {exc}") from exc

        if document.tag != "roblox":
            raise FragmentCodecError(
                f"Fragment root must be <roblox>, found <{document.tag}>"
            )
        item = document.find("Item")
        if item is None:
            raise FragmentCodecError("Fragment does not contain an <Item>")

        container = item.find("Properties")
        if container is None:
            return {}
        return self._read_properties(container)

    def _write_properties(
        self, parent: ET.Element, properties: Mapping[str, Variant]
    ) -> None:
        for name in sorted(properties):
            value = properties[name]
            try:
                kind = variant_kind(value)
            except TypeError as exc:
                raise FragmentCodecError(
                    f"Property '{name}' cannot be stored in a fragment: {exc}"
                ) from exc

            element = ET.SubElement(parent, _TAG_FOR_KIND[kind], {"name": name})
            if isinstance(value, Mapping):
                self._write_properties(element, value)
            elif isinstance(value, bool):
                element.text = "true" if value else "false"
            elif isinstance(value, (int, float)):
                element.text = repr(value)
            elif isinstance(value, (bytes, bytearray)):
                element.text = base64.b64encode(value).decode("ascii")
            else:
                if _INVALID_XML_CHARS.search(value):
                    raise FragmentCodecError(
                        f"Property '{name}' contains characters XML cannot carry"
                    )
                element.text = value

    def _read_properties(self, parent: ET.Element) -> Dict[str, Variant]:
        properties: Dict[str, Variant] = {}
        for element in parent:
            name = element.get("name")
            if not name:
                raise FragmentCodecError(f"<{element.tag}> property has no name")
            kind = _KIND_FOR_TAG.get(element.tag)
            if kind is None:
                raise FragmentCodecError(
                    f"Property '{name}' uses unknown type <{element.tag}>"
                )
            properties[name] = self._read_value(name, kind, element)
        return properties

    def _read_value(self, name: str, kind: str, element: ET.Element) -> Variant:
        text = element.text or ""
        if kind == STRUCT:
            return self._read_properties(element)
        if kind == STRING:
            return text
        if kind == BOOL:
            if text not in ("true", "false"):
                raise FragmentCodecError(f"Property '{name}' has invalid bool {text!r}")
            return text == "true"
        try:
            if kind == INT64:
                return int(text)
            if kind == FLOAT64:
                return float(text)
            return base64.b64decode(text.strip().encode("ascii"), validate=True)
        except (ValueError, binascii.Error) as exc:
            raise FragmentCodecError(
                f"Property '{name}' has an invalid {element.tag} value"
            ) from exc


__all__ = ["FRAGMENT_SUFFIX", "FragmentCodec", "is_fragment_name"]
