"""
import_engine.row_processor - Transform and write one spreadsheet row.

Single-responsibility: given a raw row dict, build its canonical record
through the column mappings, then insert or update it by natural key
and replace its inline child collections.  Raises RowError for rows
that cannot be imported; store exceptions propagate unchanged.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from db.store import Store
from import_engine.column_mapper import ColumnMapping
from import_engine.dates import DateOrder
from import_engine.report import ImportRowResult, Outcome
from import_engine.transformer import is_blank, transform
from schema.builtin import ImportProfile
from schema.fields import FieldDefinition


class RowError(Exception):
    """Raised when a row cannot be imported."""
    pass


class RowProcessor:

    def __init__(
        self,
        profile: ImportProfile,
        mappings: list[ColumnMapping],
        fields_by_key: dict[str, FieldDefinition],
        order: DateOrder = DateOrder.DAY_FIRST,
        today: Optional[date] = None,
    ):
        self.profile = profile
        self.mappings = [m for m in mappings if m.is_mapped and m.field_key in fields_by_key]
        self.fields_by_key = fields_by_key
        self.order = order
        self.today = today

    def build_record(self, row: dict) -> dict:
        """
        Canonical record for `row`: built-in values by key, custom values
        under "extra", child collections as lists under their field key.
        """
        record: dict = {}
        extra: dict = {}

        for mapping in self.mappings:
            defn = self.fields_by_key[mapping.field_key]
            raw = row.get(mapping.source_column)

            child = self.profile.children.get(defn.key)
            if child is not None and not defn.is_custom:
                record[defn.key] = _split_list(raw, child.separator)
                continue

            value = transform(raw, defn, self.order, self.today)
            if defn.is_custom:
                # Blank custom cells leave the stored value alone
                if value is not None:
                    extra[defn.key] = value.isoformat() if isinstance(value, date) else value
            else:
                record[defn.key] = value

        if extra:
            record["extra"] = extra
        return record

    def validate(self, record: dict):
        for key in self.profile.natural_key:
            if is_blank(record.get(key)):
                raise RowError(f"Missing required identifier: {key}")

    def process(self, store: Store, row: dict) -> ImportRowResult:
        """Write one row.  Raises RowError, or whatever the store raises."""
        record = self.build_record(row)
        self.validate(record)

        profile = self.profile
        children = {k: record.pop(k) for k in list(record) if k in profile.children}
        key = {k: record[k] for k in profile.natural_key}
        identifier = str(record[profile.identifier_field])
        display_name = str(record.get(profile.name_field) or "")

        existing = store.get(profile.table, key)
        if existing is not None:
            values = _drop_none(record)
            if "extra" in values:
                values["extra"] = {**existing.get("extra", {}), **values["extra"]}
            store.update(profile.table, key, values)
            record_id = existing["id"]
            outcome = Outcome.UPDATED
            display_name = display_name or str(existing.get(profile.name_field) or "")
        else:
            values = {**profile.insert_defaults, **_drop_none(record)}
            for target, source in profile.copy_defaults.items():
                if is_blank(values.get(target)):
                    values[target] = values.get(source)
            created = store.insert(profile.table, [values])
            record_id = created[0]["id"]
            outcome = Outcome.INSERTED

        for field_key, items in children.items():
            # Empty lists leave existing children in place
            if not items:
                continue
            child = profile.children[field_key]
            store.delete(child.table, {child.parent_column: record_id})
            store.insert(child.table, [
                {child.parent_column: record_id, child.value_column: item} for item in items
            ])

        return ImportRowResult(identifier, display_name, outcome)


def _split_list(raw, separator: str) -> list[str]:
    if is_blank(raw):
        return []
    return [item.strip() for item in str(raw).split(separator) if item.strip()]


def _drop_none(record: dict) -> dict:
    return {k: v for k, v in record.items() if v is not None}
