"""
XML Tree Nodes
==============

Thin, read-only node abstraction over lxml elements.

Feed extraction only ever needs a handful of questions answered about an
element: its local name, its namespace, its attributes, its element children
and its text. ``XmlNode`` answers exactly those, so the resolvers and parsers
never touch lxml directly.
"""

import re
from html.entities import name2codepoint
from typing import Dict, Iterator, List, Optional, Tuple, Union

from lxml import etree

from ..utils.exceptions import MalformedDocumentError


ATOM_NS = "http://www.w3.org/2005/Atom"
RSS1_NS = "http://purl.org/rss/1.0/"
CONTENT_NS = "http://purl.org/rss/1.0/modules/content/"
DC_NS = "http://purl.org/dc/elements/1.1/"
MEDIA_RSS_NS = "http://search.yahoo.com/mrss/"

_XML_DECL_ENCODING = re.compile(
    r'(<\?xml[^>]*encoding=["\'])([^"\']+)(["\'][^>]*\?>)', re.IGNORECASE
)

# HTML named entities are undefined in XML; CDATA sections are matched so they stay untouched
_NAMED_ENTITY = re.compile(rb"<!\[CDATA\[.*?\]\]>|&([A-Za-z][A-Za-z0-9]{1,31});", re.DOTALL)
_XML_ENTITIES = frozenset({"amp", "lt", "gt", "quot", "apos"})

_STRICT_PARSER = etree.XMLParser(
    ns_clean=True,
    recover=False,
    collect_ids=False,
    resolve_entities=False,
    no_network=True,
)
_RECOVER_PARSER = etree.XMLParser(
    ns_clean=True,
    recover=True,
    collect_ids=False,
    resolve_entities=False,
    no_network=True,
)


def _split_tag(tag: str):
    """Split a Clark-notation tag into (namespace, local name)."""
    if tag.startswith("{"):
        namespace, _, local = tag[1:].partition("}")
        return namespace, local
    return None, tag


def _is_element(node) -> bool:
    # Comments and processing instructions carry a callable tag
    return isinstance(node.tag, str)


def _text_content(element) -> str:
    parts = [element.text or ""]
    for child in element:
        if _is_element(child):
            parts.append(_text_content(child))
        parts.append(child.tail or "")
    return "".join(parts)


class XmlNode:
    """Read-only view of a single XML element."""

    __slots__ = ("_element", "name", "namespace")

    def __init__(self, element):
        self._element = element
        self.namespace, self.name = _split_tag(element.tag)

    def __repr__(self) -> str:
        if self.namespace:
            return f"XmlNode({{{self.namespace}}}{self.name})"
        return f"XmlNode({self.name})"

    def __eq__(self, other) -> bool:
        return isinstance(other, XmlNode) and other._element is self._element

    def __hash__(self) -> int:
        return hash(id(self._element))

    @property
    def attributes(self) -> Dict[str, str]:
        """Attribute map keyed by attribute name.

        Namespaced attributes keep their Clark-notation key.
        """
        return dict(self._element.attrib)

    def get(self, name: str) -> Optional[str]:
        """Return the attribute value or None when missing."""
        return self._element.get(name)

    def has_attribute(self, name: str) -> bool:
        return name in self._element.attrib

    @property
    def default_namespace(self) -> Optional[str]:
        """Default namespace (``xmlns``) in scope for this element."""
        return self._element.nsmap.get(None)

    @property
    def children(self) -> List["XmlNode"]:
        """Direct element children in document order."""
        return [XmlNode(child) for child in self._element if _is_element(child)]

    def iter_children(self, name: str) -> Iterator["XmlNode"]:
        """Direct children whose local name is ``name``, in any namespace."""
        for child in self._element:
            if _is_element(child) and _split_tag(child.tag)[1] == name:
                yield XmlNode(child)

    def find_children(self, name: str, namespace: Optional[str] = None) -> List["XmlNode"]:
        """All direct children named ``name``; optionally restricted to a namespace."""
        return [
            child
            for child in self.iter_children(name)
            if namespace is None or child.namespace == namespace
        ]

    def find_child(self, name: str) -> Optional["XmlNode"]:
        """First direct child named ``name`` in any namespace."""
        return next(self.iter_children(name), None)

    def find_path(self, *names: str) -> Optional["XmlNode"]:
        """Follow a chain of direct-child names, taking the first match at each step.

        Mirrors the ``a > b > c`` selector: the first ``b`` that has a ``c``
        child wins, not just the first ``b``.
        """
        if not names:
            return self
        head, rest = names[0], names[1:]
        for child in self.iter_children(head):
            found = child.find_path(*rest)
            if found is not None:
                return found
        return None

    def has_descendant(self, name: str) -> bool:
        """Whether any descendant element has local name ``name``."""
        for element in self._element.iterdescendants():
            if _is_element(element) and _split_tag(element.tag)[1] == name:
                return True
        return False

    @property
    def text(self) -> str:
        """Full text content, including descendant element text."""
        return _text_content(self._element)

    @property
    def direct_text(self) -> Optional[str]:
        """Own text nodes only, descendant element text excluded.

        Returns the trimmed text, or None when nothing but whitespace remains.
        """
        parts = [self._element.text or ""]
        parts.extend(child.tail or "" for child in self._element)
        return "".join(parts).strip() or None

    def child_text(self, name: str) -> Optional[str]:
        """Trimmed text of the first direct child ``name``; None when missing or blank."""
        child = self.find_child(name)
        if child is None:
            return None
        return child.text.strip() or None


def _replace_html_entities(content: bytes) -> bytes:
    """Rewrite HTML named entities such as ``&nbsp;`` as character references."""

    def replace(match):
        if match.group(1) is None:
            return match.group(0)
        name = match.group(1).decode("ascii")
        if name in _XML_ENTITIES or name not in name2codepoint:
            return match.group(0)
        return b"&#%d;" % name2codepoint[name]

    return _NAMED_ENTITY.sub(replace, content)


class XmlDocument:
    """A parsed XML document.

    ``recovered`` is set when the text was not well-formed and the tree was
    rebuilt by lxml's recovering parser. Such a tree may be missing content,
    for example when a download was cut short; ``recovery_errors`` keeps the
    messages of the errors the parser worked around.
    """

    __slots__ = ("_root", "recovered", "recovery_errors")

    def __init__(
        self, root_element, recovered: bool = False, recovery_errors: Tuple[str, ...] = ()
    ):
        self._root = root_element
        self.recovered = recovered
        self.recovery_errors = recovery_errors

    @property
    def root(self) -> XmlNode:
        return XmlNode(self._root)

    def serialize(self) -> str:
        """Serialize the root element back to XML text."""
        return etree.tostring(self._root, encoding="unicode")

    @classmethod
    def parse(cls, content: Union[str, bytes]) -> "XmlDocument":
        """Parse XML text, recovering from common well-formedness errors.

        Raises:
            MalformedDocumentError: If no element tree can be built
        """
        if isinstance(content, str):
            content = content.lstrip("\ufeff")
            # lxml rejects str input that declares an encoding; we emit UTF-8
            # bytes so the declaration has to agree with them.
            if content.lstrip().startswith("<?xml"):
                content = _XML_DECL_ENCODING.sub(r"\1utf-8\3", content, count=1)
            content = content.encode("utf-8")

        try:
            return cls._build(etree.fromstring(content, parser=_STRICT_PARSER), content)
        except etree.XMLSyntaxError:
            pass

        # Feeds often carry HTML entities; with those rewritten the text may be well-formed
        cleaned = _replace_html_entities(content)
        if cleaned != content:
            try:
                return cls._build(etree.fromstring(cleaned, parser=_STRICT_PARSER), cleaned)
            except etree.XMLSyntaxError:
                pass

        try:
            root = etree.fromstring(cleaned, parser=_RECOVER_PARSER)
        except etree.XMLSyntaxError as e:
            raise MalformedDocumentError(f"Failed to parse XML content: {e}")

        errors = tuple(entry.message for entry in _RECOVER_PARSER.error_log)
        return cls._build(root, cleaned, recovered=True, recovery_errors=errors)

    @classmethod
    def _build(cls, root, content: bytes, **kwargs) -> "XmlDocument":
        if root is None:
            preview = content[:200].decode("utf-8", errors="replace").strip()
            if preview:
                raise MalformedDocumentError(
                    f"Failed to parse XML: content is not XML (starts with {preview!r})"
                )
            raise MalformedDocumentError("Failed to parse XML: received empty content")

        return cls(root, **kwargs)


def parse_xml(content: Union[str, bytes]) -> XmlDocument:
    """Parse ``content`` into an ``XmlDocument``."""
    return XmlDocument.parse(content)
