from __future__ import annotations

import pytest

from forms_demo.gateway.app import create_app
from forms_demo.policy.policy import basic_auth_header
from forms_demo.runtime.storage.forms_db import FormsDB

ADMIN_USER = "admin"
ADMIN_PASSWORD = "abcd efgh ijkl mnop"


@pytest.fixture
def db(tmp_path):
    store = FormsDB(tmp_path / "forms.sqlite3")
    store.startup()
    yield store
    store.close()


@pytest.fixture
def make_app(db):
    def _make(*, abilities_enabled: bool = True):
        return create_app(
            db,
            abilities_enabled=abilities_enabled,
            admin_username=ADMIN_USER,
            admin_app_password=ADMIN_PASSWORD,
        )

    return _make


@pytest.fixture
def admin_headers():
    return basic_auth_header(ADMIN_USER, ADMIN_PASSWORD)
