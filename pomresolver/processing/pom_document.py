"""
Namespace-free element access over POM documents.
"""

import xml.etree.ElementTree as ET
from pathlib import Path
from typing import List, Optional, Union

from ..core.exceptions import ErrorContext, FetchError, ParseError


def local_name(element: ET.Element) -> str:
    """Tag name with any ``{namespace}`` prefix removed."""
    tag = element.tag
    return tag.split('}', 1)[1] if tag.startswith('{') else tag


def parse_document(source: Union[str, Path]) -> ET.Element:
    """Parse a descriptor file and return its root element."""
    try:
        return ET.parse(str(source)).getroot()
    except ET.ParseError as e:
        raise ParseError(
            f"Invalid POM XML in {source}: {e}",
            file_path=str(source),
            context=ErrorContext(component="pom_document", operation="parse_document"),
            cause=e,
        ) from e
    except OSError as e:
        raise FetchError(
            f"Can't read POM {source}: {e}",
            context=ErrorContext(component="pom_document", operation="parse_document", file_path=str(source)),
            cause=e,
        ) from e


def parse_string(content: Union[str, bytes]) -> ET.Element:
    """Parse descriptor content held in memory."""
    try:
        return ET.fromstring(content)
    except ET.ParseError as e:
        raise ParseError(
            f"Invalid POM XML: {e}",
            context=ErrorContext(component="pom_document", operation="parse_string"),
            cause=e,
        ) from e


def get_child(element: ET.Element, name: str) -> Optional[ET.Element]:
    """First direct child called ``name``."""
    for child in element:
        if isinstance(child.tag, str) and local_name(child) == name:
            return child
    return None


def get_body(element: Optional[ET.Element]) -> Optional[str]:
    """Stripped text of an element; ``None`` when absent or blank."""
    if element is None or element.text is None:
        return None
    text = element.text.strip()
    return text or None


def get_child_body(element: ET.Element, name: str) -> Optional[str]:
    return get_body(get_child(element, name))


def get_child_list(element: ET.Element, name: Optional[str] = None) -> List[ET.Element]:
    """Direct element children, optionally filtered by tag name."""
    return [
        child for child in element
        if isinstance(child.tag, str) and (name is None or local_name(child) == name)
    ]


def get_container_list(element: ET.Element, container: str, name: str) -> List[ET.Element]:
    """Children called ``name`` of the ``container`` child, e.g. licenses/license."""
    container_element = get_child(element, container)
    if container_element is None:
        return []
    return get_child_list(container_element, name)


def to_boolean(text: Optional[str], default: bool = False) -> bool:
    if text is None or not text.strip():
        return default
    return text.strip().lower() == "true"
