"""Collection path patterns and identity extraction.

A collection path alternates collection ids and document ids and always
ends on a collection: ``users/{userId}/orders``. Document positions may be
wildcards; each wildcard names an identity field whose value is taken from
the matching segment of a concrete document path such as
``users/u1/orders/o42``.

Placeholder forms:
    {name}   named wildcard
    {} or *  unnamed wildcard, named param1, param2, ... by position
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Tuple, Union

from firestore_mirror.lib.errors import PathMismatchError, PatternError
from firestore_mirror.lib.schema import IDENTIFIER_PATTERN

__all__ = [
    "LiteralSegment",
    "WildcardSegment",
    "CollectionPathPattern",
    "IdentityField",
    "IdentityResult",
    "parse_collection_path",
    "extract_identity",
]

WILDCARD_TOKEN = "*"
DEFAULT_PARAM_PREFIX = "param"


@dataclass(frozen=True)
class LiteralSegment:
    """A fixed collection or document id."""

    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class WildcardSegment:
    """A document position bound to an identity field name."""

    name: str
    position: int  # index of the segment within the pattern

    def __str__(self) -> str:
        return "{" + self.name + "}"


Segment = Union[LiteralSegment, WildcardSegment]


@dataclass(frozen=True)
class IdentityField:
    name: str
    value: str


@dataclass(frozen=True)
class IdentityResult:
    """Terminal document id plus the ordered ancestor identity fields."""

    id: str
    id_fields: Tuple[IdentityField, ...]


@dataclass(frozen=True)
class CollectionPathPattern:
    """Parsed collection path: literal segments and named wildcards."""

    segments: Tuple[Segment, ...]

    @property
    def wildcards(self) -> Tuple[WildcardSegment, ...]:
        return tuple(s for s in self.segments if isinstance(s, WildcardSegment))

    @property
    def id_field_names(self) -> Tuple[str, ...]:
        return tuple(w.name for w in self.wildcards)

    @property
    def has_wildcards(self) -> bool:
        return any(isinstance(s, WildcardSegment) for s in self.segments)

    @property
    def collection_id(self) -> str:
        """Id of the collection the documents live in (last segment)."""
        return self.segments[-1].name

    def matches(self, document_path: str) -> bool:
        """Check whether a concrete document path belongs to this pattern."""
        parts = _split(document_path)
        if len(parts) != len(self.segments) + 1 or not all(parts):
            return False
        for segment, part in zip(self.segments, parts):
            if isinstance(segment, LiteralSegment) and segment.name != part:
                return False
        return True

    def __str__(self) -> str:
        return "/".join(str(s) for s in self.segments)


def _split(path: str) -> list:
    return path.strip("/").split("/")


def _parse_segment(raw_path: str, text: str, position: int, ordinal: int) -> Segment:
    opens = text.count("{")
    closes = text.count("}")

    if opens == 0 and closes == 0:
        if text == WILDCARD_TOKEN:
            return WildcardSegment(name=f"{DEFAULT_PARAM_PREFIX}{ordinal}", position=position)
        return LiteralSegment(name=text)

    if opens != 1 or closes != 1 or not (text.startswith("{") and text.endswith("}")):
        raise PatternError(
            f"Mismatched or misplaced braces in segment '{text}'",
            pattern=raw_path,
            segment=text,
        )

    name = text[1:-1].strip()
    if not name:
        return WildcardSegment(name=f"{DEFAULT_PARAM_PREFIX}{ordinal}", position=position)
    if not IDENTIFIER_PATTERN.match(name):
        raise PatternError(
            f"Wildcard name '{name}' is not a valid column name",
            pattern=raw_path,
            segment=text,
        )
    return WildcardSegment(name=name, position=position)


def parse_collection_path(raw_path: str) -> CollectionPathPattern:
    """Parse a raw collection path into a CollectionPathPattern.

    Args:
        raw_path: Collection path, e.g. ``users/{userId}/orders``

    Returns:
        CollectionPathPattern

    Raises:
        PatternError: If the path is empty, has empty segments, mismatched
            braces, a wildcard in a collection position, repeated wildcard
            names, or does not end on a collection
    """
    if raw_path is None or not raw_path.strip().strip("/"):
        raise PatternError("Collection path is empty", pattern=raw_path)

    parts = _split(raw_path.strip())
    if any(not part for part in parts):
        raise PatternError("Collection path contains an empty segment", pattern=raw_path)

    if len(parts) % 2 == 0:
        raise PatternError(
            "Collection path must end on a collection id, not a document id",
            pattern=raw_path,
            details={"segment_count": len(parts)},
        )

    segments = []
    seen_names = set()
    ordinal = 0
    for position, text in enumerate(parts):
        is_wildcard_text = text == WILDCARD_TOKEN or "{" in text or "}" in text
        if is_wildcard_text:
            ordinal += 1
        segment = _parse_segment(raw_path, text, position, ordinal)

        if isinstance(segment, WildcardSegment):
            # Collection ids sit at even positions, document ids at odd ones
            if position % 2 == 0:
                raise PatternError(
                    f"Wildcard '{text}' is in a collection position",
                    pattern=raw_path,
                    segment=text,
                    suggestion="Wildcards may only replace parent document ids.",
                )
            if segment.name in seen_names:
                raise PatternError(
                    f"Wildcard name '{segment.name}' is used more than once",
                    pattern=raw_path,
                    segment=text,
                )
            seen_names.add(segment.name)
        segments.append(segment)

    return CollectionPathPattern(segments=tuple(segments))


def extract_identity(pattern: CollectionPathPattern, document: Any) -> IdentityResult:
    """Derive the document id and identity fields from a concrete path.

    Args:
        pattern: Parsed collection path pattern
        document: Concrete document path, or an object exposing ``.path``

    Returns:
        IdentityResult with one IdentityField per wildcard, in pattern order

    Raises:
        PathMismatchError: If the path does not have one ancestor id per
            pattern document position, or a literal segment differs
    """
    path = document if isinstance(document, str) else getattr(document, "path", None)
    if not isinstance(path, str) or not path.strip("/"):
        raise PathMismatchError(
            "Document has no usable path",
            pattern=str(pattern),
            path=repr(path),
        )

    parts = _split(path)
    if len(parts) != len(pattern.segments) + 1 or not all(parts):
        expected = len(pattern.segments) // 2
        available = max(len(parts) - 1, 0) // 2
        raise PathMismatchError(
            f"Document path has {available} ancestor id(s), pattern expects {expected}",
            pattern=str(pattern),
            path=path,
        )

    id_fields = []
    for segment, part in zip(pattern.segments, parts):
        if isinstance(segment, WildcardSegment):
            id_fields.append(IdentityField(name=segment.name, value=part))
        elif segment.name != part:
            raise PathMismatchError(
                f"Segment '{part}' does not match '{segment.name}'",
                pattern=str(pattern),
                path=path,
            )

    return IdentityResult(id=parts[-1], id_fields=tuple(id_fields))
