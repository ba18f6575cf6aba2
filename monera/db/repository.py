"""
Repository layer - ORM-like CRUD over the Core tables.

Route handlers call `db.<model>.<operation>(...)` the same way everywhere:

    user = db.user.find_unique({"email": "a@b.io"})
    jobs = db.job.find_many({"status": "PUBLISHED"}, order_by="-created_at", take=20)
    db.application.update({"id": app_id}, {"status": "REVIEWING"})

`where` is a dict of column -> value. A list/tuple/set value means IN,
None means IS NULL. `order_by` is a column name, "-name" for descending,
or a list of those. Rows come back as plain dicts.
"""

import uuid
from typing import Any, Dict, Iterable, List, Optional, Union

from sqlalchemy import Table, and_, delete, func, insert, select, true, update

from monera.db import schema
from monera.db.postgres import get_db_session

Where = Optional[Dict[str, Any]]
OrderBy = Optional[Union[str, List[str]]]


class TableRepository:
    """CRUD for one table."""

    def __init__(self, table: Table):
        self.table = table
        self._pk = list(table.primary_key.columns)

    # ------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------

    def _column(self, name: str):
        try:
            return self.table.c[name]
        except KeyError:
            raise ValueError(f"Unknown column '{name}' on {self.table.name}") from None

    def _where(self, where: Where):
        clauses = []
        for name, value in (where or {}).items():
            col = self._column(name)
            if value is None:
                clauses.append(col.is_(None))
            elif isinstance(value, (list, tuple, set, frozenset)):
                clauses.append(col.in_(list(value)))
            else:
                clauses.append(col == value)
        return and_(true(), *clauses)

    def _order(self, order_by: OrderBy):
        if not order_by:
            return []
        if isinstance(order_by, str):
            order_by = [order_by]
        result = []
        for item in order_by:
            if item.startswith("-"):
                result.append(self._column(item[1:]).desc())
            else:
                result.append(self._column(item).asc())
        return result

    def _pk_where(self, row: dict) -> dict:
        return {col.name: row[col.name] for col in self._pk}

    def _prepare_create(self, data: dict) -> dict:
        values = dict(data)
        cols = self.table.c
        if "id" in cols and len(self._pk) == 1 and self._pk[0].name == "id" and not values.get("id"):
            values["id"] = str(uuid.uuid4())
        now = schema.utcnow()
        for stamp in ("created_at", "updated_at"):
            if stamp in cols and values.get(stamp) is None:
                values[stamp] = now
        return values

    def _prepare_update(self, data: dict) -> dict:
        values = dict(data)
        if "updated_at" in self.table.c and "updated_at" not in values:
            values["updated_at"] = schema.utcnow()
        return values

    # ------------------------------------------------------------
    # reads
    # ------------------------------------------------------------

    def find_many(
        self,
        where: Where = None,
        order_by: OrderBy = None,
        skip: Optional[int] = None,
        take: Optional[int] = None,
    ) -> List[dict]:
        stmt = select(self.table).where(self._where(where)).order_by(*self._order(order_by))
        if skip:
            stmt = stmt.offset(skip)
        if take is not None:
            stmt = stmt.limit(take)
        with get_db_session() as session:
            return [dict(row._mapping) for row in session.execute(stmt)]

    def find_first(self, where: Where = None, order_by: OrderBy = None) -> Optional[dict]:
        rows = self.find_many(where, order_by=order_by, take=1)
        return rows[0] if rows else None

    def find_unique(self, where: Dict[str, Any]) -> Optional[dict]:
        if not where:
            raise ValueError("find_unique needs a where clause")
        return self.find_first(where)

    def count(self, where: Where = None) -> int:
        stmt = select(func.count()).select_from(self.table).where(self._where(where))
        with get_db_session() as session:
            return session.execute(stmt).scalar_one()

    # ------------------------------------------------------------
    # writes
    # ------------------------------------------------------------

    def create(self, data: Dict[str, Any]) -> dict:
        values = self._prepare_create(data)
        with get_db_session() as session:
            session.execute(insert(self.table).values(**values))
        return self.find_unique(self._pk_where(values))

    def create_many(self, rows: Iterable[Dict[str, Any]]) -> int:
        prepared = [self._prepare_create(r) for r in rows]
        if not prepared:
            return 0
        with get_db_session() as session:
            session.execute(insert(self.table), prepared)
        return len(prepared)

    def update(self, where: Dict[str, Any], data: Dict[str, Any]) -> Optional[dict]:
        """Update the first matching row; returns the fresh row or None."""
        row = self.find_first(where)
        if not row:
            return None
        key = self._pk_where(row)
        values = self._prepare_update(data)
        with get_db_session() as session:
            session.execute(update(self.table).where(self._where(key)).values(**values))
        key.update({k: v for k, v in values.items() if k in key})
        return self.find_unique(key)

    def update_many(self, where: Where, data: Dict[str, Any]) -> int:
        values = self._prepare_update(data)
        with get_db_session() as session:
            result = session.execute(update(self.table).where(self._where(where)).values(**values))
            return result.rowcount

    def delete(self, where: Dict[str, Any]) -> int:
        if not where:
            raise ValueError("Refusing to delete without a where clause")
        with get_db_session() as session:
            result = session.execute(delete(self.table).where(self._where(where)))
            return result.rowcount

    def upsert(self, where: Dict[str, Any], create: Dict[str, Any], update: Dict[str, Any]) -> dict:
        existing = self.find_first(where)
        if existing:
            return self.update(self._pk_where(existing), update) if update else existing
        return self.create({**where, **create})

    def replace(self, where: Dict[str, Any], rows: Iterable[Dict[str, Any]]) -> int:
        """Delete matching rows and insert `rows` in one transaction (link tables)."""
        prepared = [self._prepare_create(r) for r in rows]
        with get_db_session() as session:
            session.execute(delete(self.table).where(self._where(where)))
            if prepared:
                session.execute(insert(self.table), prepared)
        return len(prepared)


class Database:
    """One repository per table."""

    def __init__(self):
        self.user = TableRepository(schema.users)
        self.talent_profile = TableRepository(schema.talent_profiles)
        self.talent_skill = TableRepository(schema.talent_skills)
        self.recruiter_profile = TableRepository(schema.recruiter_profiles)
        self.company = TableRepository(schema.companies)
        self.skill = TableRepository(schema.skills)
        self.job = TableRepository(schema.jobs)
        self.job_skill = TableRepository(schema.job_skills)
        self.application = TableRepository(schema.applications)
        self.saved_job = TableRepository(schema.saved_jobs)
        self.notification = TableRepository(schema.notifications)
        self.conversation = TableRepository(schema.conversations)
        self.message = TableRepository(schema.messages)
        self.talent_request = TableRepository(schema.talent_requests)
        self.audit_log = TableRepository(schema.audit_logs)
        self.system_setting = TableRepository(schema.system_settings)
        self.newsletter_subscriber = TableRepository(schema.newsletter_subscribers)


db = Database()
