# Shared pytest fixtures
from __future__ import annotations
import tempfile
from pathlib import Path
from typing import Any

import psycopg2
import pytest

from contact_io.logging.init import reset_logging


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture(autouse=True)
def _clean_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def sample_config_yaml() -> str:
    return """organization_id: org-1
display_id:
  prefix: CON
  width: 3
tag_separator: ";"
export_directory: ./exports
error_log_directory: ./logs
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "contacts.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def sample_csv() -> str:
    return (
        "Name,Email,Company,Tags,LinkedIn URL\n"
        "Alice Smith,alice@example.com,Acme,VIP; Client,https://linkedin.com/in/alice\n"
        'Bob Jones,bob@example.com,"Widgets, Inc",,\n'
        ",nobody@example.com,Acme,,\n"
    )


class FakeCursor:
    """Scripted stand-in for a psycopg2 cursor.

    Answers the statements issued by contact_io.db.contacts and keeps
    SAVEPOINT / ROLLBACK TO SAVEPOINT semantics for inserted rows.
    """

    def __init__(
        self,
        companies: dict[str, str] | None = None,
        tags: dict[str, str] | None = None,
        last_display_id: str | None = None,
        fail_insert_for: set[str] | None = None,
        fail_tags_for: set[str] | None = None,
    ) -> None:
        self.companies = companies or {}  # id -> name
        self.tags = tags or {}  # id -> name
        self.last_display_id = last_display_id
        self.fail_insert_for = fail_insert_for or set()
        self.fail_tags_for = fail_tags_for or set()
        self.statements: list[str] = []
        self.contacts: list[dict[str, Any]] = []
        self.contact_tags: list[tuple[str, str]] = []
        self.committed = False
        self.rolled_back = False
        self._mark: tuple[int, int] = (0, 0)
        self._result: list[tuple[Any, ...]] = []
        self._next_id = 100

    # --- DB-API surface -------------------------------------------------
    def execute(self, sql: str, params: Any = None) -> None:
        s = " ".join(sql.split())
        self.statements.append(s)
        self._result = []
        if s.startswith("SAVEPOINT"):
            self._mark = (len(self.contacts), len(self.contact_tags))
        elif s.startswith("ROLLBACK TO SAVEPOINT"):
            del self.contacts[self._mark[0]:]
            del self.contact_tags[self._mark[1]:]
        elif s == "ROLLBACK":
            self.rolled_back = True
        elif s == "COMMIT":
            self.committed = True
        elif s.startswith("SELECT display_id FROM contacts"):
            if self.last_display_id:
                self._result = [(self.last_display_id,)]
        elif s.startswith("SELECT id, name FROM crm_clients"):
            self._result = list(self.companies.items())
        elif s.startswith("SELECT id, name FROM tags"):
            self._result = list(self.tags.items())
        elif s.startswith("INSERT INTO contacts"):
            name = params[2]
            if name in self.fail_insert_for:
                raise psycopg2.Error(f'duplicate key value violates unique constraint "contacts_email_key" ({name})')
            self._next_id += 1
            contact_id = f"c{self._next_id}"
            self.contacts.append(
                {
                    "id": contact_id,
                    "organization_id": params[0],
                    "display_id": params[1],
                    "name": name,
                    "email": params[3],
                    "company_id": params[6],
                    "social_profiles": params[9].adapted,
                }
            )
            self._result = [(contact_id,)]

    def insert_tags(self, argslist: list[tuple[str, str]]) -> None:
        for contact_id, tag_id in argslist:
            contact = next(c for c in self.contacts if c["id"] == contact_id)
            if contact["name"] in self.fail_tags_for:
                raise psycopg2.Error('insert or update on table "contact_tags" violates foreign key constraint')
            self.contact_tags.append((contact_id, tag_id))

    def fetchone(self):
        return self._result[0] if self._result else None

    def fetchall(self):
        return list(self._result)

    def close(self) -> None:
        pass

    def __enter__(self) -> FakeCursor:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()


@pytest.fixture()
def fake_cursor_cls(monkeypatch):
    import contact_io.db.contacts as db_mod

    def fake_execute_values(cursor, sql, argslist, **kwargs):
        cursor.statements.append(sql)
        cursor.insert_tags(list(argslist))

    monkeypatch.setattr(db_mod, "execute_values", fake_execute_values)
    return FakeCursor
