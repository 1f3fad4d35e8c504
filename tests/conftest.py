"""Shared fixtures: temporary SQLite store, field registry, Flask client."""

import io

import pytest
from openpyxl import Workbook

from db import SqlStore, init_db
from schema import FieldRegistry


@pytest.fixture
def store(tmp_path):
    session_factory = init_db(f"sqlite:///{tmp_path / 'test.sqlite'}")
    return SqlStore(session_factory)


@pytest.fixture
def registry(tmp_path):
    return FieldRegistry(path=tmp_path / "custom_fields.json")


@pytest.fixture
def app(tmp_path):
    from main import create_app

    app = create_app(
        db_url=f"sqlite:///{tmp_path / 'api.sqlite'}",
        custom_fields_path=tmp_path / "api_fields.json",
    )
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


def make_workbook(sheets: dict[str, list[list]]) -> bytes:
    """Serialise {sheet title: rows} to .xlsx bytes."""
    wb = Workbook()
    wb.remove(wb.active)
    for title, rows in sheets.items():
        ws = wb.create_sheet(title)
        for row in rows:
            ws.append(row)
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


@pytest.fixture
def workbook():
    return make_workbook
