"""
schema.registry - Built-in + admin-defined field catalogue.

A FieldRegistry is an explicit object handed to the column mapper and
the value transformer.  Built-in fields are fixed at construction;
custom fields are registered and unregistered at runtime and every
lookup reads the live set, so the next mapping run sees a change
immediately.  When a path is given the custom set is persisted as JSON
after each change.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

from schema.builtin import BUILTIN_FIELDS, KNOWN_TABLES, get_profile
from schema.fields import FieldDefinition

logger = logging.getLogger(__name__)


class FieldRegistry:

    def __init__(
        self,
        builtins: Optional[dict[str, tuple[FieldDefinition, ...]]] = None,
        path: str | Path | None = None,
    ):
        self._builtins = dict(BUILTIN_FIELDS if builtins is None else builtins)
        self._custom: dict[str, FieldDefinition] = {}
        self._path = Path(path) if path else None

    # ── Construction / persistence ────────────────────────────────────

    @classmethod
    def load(cls, path: str | Path) -> "FieldRegistry":
        """Registry with custom fields read from `path` (missing file → none)."""
        registry = cls(path=path)
        p = Path(path)
        if p.exists():
            with open(p, encoding="utf-8") as fh:
                data = json.load(fh)
            for item in data.get("custom_fields", []):
                item["is_custom"] = True
                defn = FieldDefinition.from_dict(item)
                registry._custom[defn.key] = defn
            logger.info(f"Loaded {len(registry._custom)} custom fields from {p}")
        return registry

    def save(self) -> None:
        if self._path is None:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"custom_fields": [d.to_dict() for d in self._custom.values()]}
        with open(self._path, "w", encoding="utf-8") as fh:
            json.dump(payload, fh, ensure_ascii=False, indent=2)

    # ── Mutation ──────────────────────────────────────────────────────

    def register(self, defn: FieldDefinition) -> FieldDefinition:
        """Add or replace a custom field (keyed by `key`)."""
        if not defn.keywords:
            raise ValueError(f"custom field {defn.key!r} has no keywords")
        unknown = [t for t in defn.target_tables if t not in KNOWN_TABLES]
        if unknown:
            raise ValueError(f"unknown target table(s): {', '.join(unknown)}")
        if not defn.is_custom:
            defn = FieldDefinition.from_dict({**defn.to_dict(), "is_custom": True})

        for table in defn.target_tables:
            if any(b.key == defn.key for b in self._builtins.get(table, ())):
                logger.warning(
                    f"Custom field {defn.key!r} is shadowed by the built-in field in {table}"
                )

        self._custom[defn.key] = defn
        self.save()
        return defn

    def unregister(self, key: str) -> bool:
        removed = self._custom.pop(key, None) is not None
        if removed:
            self.save()
        return removed

    def snapshot(self) -> tuple[FieldDefinition, ...]:
        """Current custom fields, in registration order."""
        return tuple(self._custom.values())

    # ── Lookup ────────────────────────────────────────────────────────

    def fields_for(self, table: str) -> list[FieldDefinition]:
        """Built-ins of `table` plus custom fields targeting it; built-ins win on key."""
        out = list(self._builtins.get(table, ()))
        seen = {d.key for d in out}
        for defn in self._custom.values():
            if table in defn.target_tables and defn.key not in seen:
                out.append(defn)
                seen.add(defn.key)
        return out

    def all_fields(self) -> list[FieldDefinition]:
        """Cross-table view: every known table's fields, first key occurrence wins."""
        tables = list(self._builtins) + [t for t in KNOWN_TABLES if t not in self._builtins]
        return _dedupe(d for t in tables for d in self.fields_for(t))

    def fields_for_import(self, import_type: str) -> list[FieldDefinition]:
        """Fields one spreadsheet of `import_type` may populate."""
        profile = get_profile(import_type)
        fields = self.fields_for(profile.table)
        for table in profile.related_tables:
            fields.extend(d for d in self.fields_for(table) if d.is_custom)
        return _dedupe(fields)

    def get(self, key: str, import_type: Optional[str] = None) -> Optional[FieldDefinition]:
        pool = self.fields_for_import(import_type) if import_type else self.all_fields()
        for defn in pool:
            if defn.key == key:
                return defn
        return None

    def available_fields(self, import_type: str) -> list[dict]:
        """Choices for manual column assignment; the first entry means 'ignore'."""
        choices = [{"value": "", "label": "تجاهل هذا العمود"}]
        for defn in self.fields_for_import(import_type):
            label = f"{defn.display_name} (مخصص)" if defn.is_custom else defn.display_name
            choices.append({"value": defn.key, "label": label, "is_custom": defn.is_custom})
        return choices


def _dedupe(fields) -> list[FieldDefinition]:
    out: list[FieldDefinition] = []
    seen: set[str] = set()
    for defn in fields:
        if defn.key not in seen:
            out.append(defn)
            seen.add(defn.key)
    return out
