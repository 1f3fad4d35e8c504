"""
schema.fields - Target-field definitions for spreadsheet imports.

A FieldDefinition says where a spreadsheet column can land: its key in
the destination table, the keywords a column header is matched
against, and its DataType.  ENUM fields carry an OptionSet that folds
many raw spellings onto one canonical label.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional


class DataType(str, enum.Enum):
    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    ENUM = "enum"


class Fallback(str, enum.Enum):
    """What an OptionSet returns for a value none of its options accept."""
    PASS_THROUGH = "pass_through"     # trimmed raw string
    NULL = "null"
    DEFAULT = "default"               # OptionSet.default


@dataclass(frozen=True)
class Option:
    label: str
    accepted: tuple[str, ...] = ()        # case-insensitive exact matches
    contains: tuple[str, ...] = ()        # case-insensitive substrings

    def matches(self, lowered: str) -> bool:
        if lowered in (a.lower() for a in self.accepted):
            return True
        return any(c.lower() in lowered for c in self.contains)


@dataclass(frozen=True)
class OptionSet:
    """
    Ordered options; the first option that accepts a value wins, which
    also settles sets whose accepted values overlap.
    """
    options: tuple[Option, ...]
    fallback: Fallback = Fallback.PASS_THROUGH
    default: Optional[str] = None

    def resolve(self, raw: str) -> Optional[str]:
        text = raw.strip()
        lowered = text.lower()
        for opt in self.options:
            if opt.matches(lowered):
                return opt.label
        if self.fallback is Fallback.NULL:
            return None
        if self.fallback is Fallback.DEFAULT:
            return self.default
        return text

    def labels(self) -> list[str]:
        return [o.label for o in self.options]

    def to_dict(self) -> dict:
        return {
            "options": [
                {"label": o.label, "values": list(o.accepted), "contains": list(o.contains)}
                for o in self.options
            ],
            "fallback": self.fallback.value,
            "default": self.default,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "OptionSet":
        return cls(
            options=tuple(
                Option(
                    label=o["label"],
                    accepted=tuple(o.get("values", ())),
                    contains=tuple(o.get("contains", ())),
                )
                for o in data.get("options", [])
            ),
            fallback=Fallback(data.get("fallback", Fallback.PASS_THROUGH.value)),
            default=data.get("default"),
        )


@dataclass(frozen=True)
class FieldDefinition:
    key: str
    display_name: str
    keywords: tuple[str, ...]
    target_tables: tuple[str, ...]
    data_type: DataType = DataType.TEXT
    required: bool = False
    options: Optional[OptionSet] = None
    is_custom: bool = False
    name_en: str = ""

    def __post_init__(self):
        if not self.key:
            raise ValueError("field key must not be empty")
        if not self.target_tables:
            raise ValueError(f"field {self.key!r} has no target table")
        if self.data_type is DataType.ENUM and self.options is None:
            raise ValueError(f"enum field {self.key!r} needs an option set")

    @property
    def target_table(self) -> str:
        return self.target_tables[0]

    def to_dict(self) -> dict:
        d = {
            "key": self.key,
            "display_name": self.display_name,
            "name_en": self.name_en,
            "keywords": list(self.keywords),
            "target_tables": list(self.target_tables),
            "data_type": self.data_type.value,
            "required": self.required,
            "is_custom": self.is_custom,
        }
        if self.options is not None:
            d["options"] = self.options.to_dict()
        return d

    @classmethod
    def from_dict(cls, data: dict) -> "FieldDefinition":
        options = data.get("options")
        return cls(
            key=data["key"],
            display_name=data.get("display_name") or data["key"],
            name_en=data.get("name_en", ""),
            keywords=tuple(data.get("keywords", ())),
            target_tables=tuple(data.get("target_tables", ())),
            data_type=DataType(data.get("data_type", DataType.TEXT.value)),
            required=bool(data.get("required", False)),
            options=OptionSet.from_dict(options) if options else None,
            is_custom=bool(data.get("is_custom", False)),
        )


def custom_field(
    name_ar: str,
    name_en: str,
    target_tables: list[str] | tuple[str, ...],
    data_type: str = "text",
    keywords: list[str] | tuple[str, ...] = (),
    options: Optional[list[dict]] = None,
) -> FieldDefinition:
    """
    Build a custom FieldDefinition from an admin form payload.

    The key is the English name, lower-cased with whitespace collapsed to
    underscores.  Both names join the keyword list so a column titled
    exactly like the field is always a high-confidence match.  The form's
    "select" type is an ENUM whose unknown values pass through unchanged.
    """
    name_ar = (name_ar or "").strip()
    name_en = (name_en or "").strip()
    if not name_ar or not name_en:
        raise ValueError("custom field needs both an Arabic and an English name")
    if not target_tables:
        raise ValueError("custom field needs at least one target table")

    kind = "enum" if data_type == "select" else data_type
    try:
        dtype = DataType(kind)
    except ValueError:
        raise ValueError(f"unknown data type {data_type!r}") from None

    option_set = None
    if dtype is DataType.ENUM:
        if not options:
            raise ValueError("select field needs at least one option")
        option_set = OptionSet(
            options=tuple(
                Option(
                    label=o["label"],
                    accepted=tuple(dict.fromkeys(
                        [o["label"]] + [v.strip() for v in o.get("values", ()) if v.strip()]
                    )),
                )
                for o in options
            ),
            fallback=Fallback.PASS_THROUGH,
        )

    words = [k.strip().lower() for k in keywords if k and k.strip()]
    words += [name_ar.lower(), name_en.lower()]

    return FieldDefinition(
        key="_".join(name_en.lower().split()),
        display_name=name_ar,
        name_en=name_en,
        keywords=tuple(dict.fromkeys(words)),
        target_tables=tuple(target_tables),
        data_type=dtype,
        options=option_set,
        is_custom=True,
    )
