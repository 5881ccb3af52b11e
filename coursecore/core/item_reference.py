"""
coursecore/core/item_reference.py
Curriculum item references

A course curriculum interleaves lessons and quizzes from both content tiers in
one ordered list. Internally each entry is an ItemRef(kind, id); the
"{kind}-{id}" string form is used only when reading from or writing to the
store and the wire.

    ItemRef.parse("brandQuiz-4f1c")  -> ItemRef(kind=BRAND_QUIZ, id="4f1c")
    str(ItemRef(ItemKind.LESSON, "9a")) -> "lesson-9a"

Kinds never contain "-", ids may: the string is split on the first dash.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List

from coursecore.errors import BadRequestError, ErrorCode


class ContentTier(str, Enum):
    """The two parallel content universes."""
    GLOBAL = "global"
    BRAND = "brand"


class ItemKind(str, Enum):
    """Reference prefixes persisted in Course.curriculum. Values are wire format."""
    LESSON = "lesson"
    QUIZ = "quiz"
    BRAND_LESSON = "brandLesson"
    BRAND_QUIZ = "brandQuiz"

    @property
    def tier(self) -> ContentTier:
        if self in (ItemKind.BRAND_LESSON, ItemKind.BRAND_QUIZ):
            return ContentTier.BRAND
        return ContentTier.GLOBAL

    @property
    def is_quiz(self) -> bool:
        return self in (ItemKind.QUIZ, ItemKind.BRAND_QUIZ)

    @classmethod
    def for_entity(cls, tier: ContentTier, is_quiz: bool) -> "ItemKind":
        if tier == ContentTier.BRAND:
            return cls.BRAND_QUIZ if is_quiz else cls.BRAND_LESSON
        return cls.QUIZ if is_quiz else cls.LESSON


_KINDS_BY_PREFIX = {kind.value: kind for kind in ItemKind}


@dataclass(frozen=True)
class ItemRef:
    """Tagged reference to one lesson or quiz in either tier."""
    kind: ItemKind
    id: str

    def __post_init__(self):
        if not self.id:
            raise BadRequestError(
                "Item reference id cannot be empty",
                code=ErrorCode.INVALID_REFERENCE,
            )

    def __str__(self) -> str:
        return f"{self.kind.value}-{self.id}"

    @property
    def tier(self) -> ContentTier:
        return self.kind.tier

    @classmethod
    def parse(cls, raw: str) -> "ItemRef":
        """Parse the persisted "{kind}-{id}" form. Raises BadRequestError if malformed."""
        if not isinstance(raw, str) or "-" not in raw:
            raise BadRequestError(
                f"Malformed curriculum reference: {raw!r}",
                code=ErrorCode.INVALID_REFERENCE,
                details={"reference": raw},
            )
        prefix, item_id = raw.split("-", 1)
        kind = _KINDS_BY_PREFIX.get(prefix)
        if kind is None or not item_id:
            raise BadRequestError(
                f"Malformed curriculum reference: {raw!r}",
                code=ErrorCode.INVALID_REFERENCE,
                details={"reference": raw, "allowed_kinds": sorted(_KINDS_BY_PREFIX)},
            )
        return cls(kind=kind, id=item_id)

    @classmethod
    def is_well_formed(cls, raw: str) -> bool:
        try:
            cls.parse(raw)
        except BadRequestError:
            return False
        return True


def parse_references(raw_refs: Iterable[str]) -> List[ItemRef]:
    """Parse a whole curriculum, preserving order."""
    return [ItemRef.parse(raw) for raw in raw_refs]


def serialize_references(refs: Iterable[ItemRef]) -> List[str]:
    return [str(ref) for ref in refs]
