from datetime import datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError

from models import db
from models.kv_entry import KvEntry
from storage.base import KeyValueStore, StorageUnavailable


class SqlStore(KeyValueStore):
    """
    Store backed by the kv_entries table. Must be used inside an
    application context (every request handler is).
    """

    name = "sql"

    def _row(self, key: str, now: datetime):
        row = KvEntry.query.filter_by(key=key).first()
        if row is not None and row.is_expired(now):
            db.session.delete(row)
            db.session.flush()
            return None
        return row

    def _fail(self, exc: Exception):
        db.session.rollback()
        raise StorageUnavailable(str(exc)) from exc

    def get(self, key):
        try:
            row = self._row(key, datetime.utcnow())
            db.session.commit()
            return row.value if row else None
        except SQLAlchemyError as exc:
            self._fail(exc)

    def set(self, key, value, ex=None):
        now = datetime.utcnow()
        try:
            row = self._row(key, now)
            if row is None:
                row = KvEntry(key=key, value="")
                db.session.add(row)
            row.value = str(value)
            row.expires_at = now + timedelta(seconds=ex) if ex else None
            db.session.commit()
        except SQLAlchemyError as exc:
            self._fail(exc)

    def incr(self, key):
        try:
            row = self._row(key, datetime.utcnow())
            if row is None:
                row = KvEntry(key=key, value="0", expires_at=None)
                db.session.add(row)
            count = int(row.value) + 1
            row.value = str(count)
            db.session.commit()
            return count
        except SQLAlchemyError as exc:
            self._fail(exc)

    def expire(self, key, seconds):
        now = datetime.utcnow()
        try:
            row = self._row(key, now)
            if row is None:
                db.session.commit()
                return False
            row.expires_at = now + timedelta(seconds=seconds)
            db.session.commit()
            return True
        except SQLAlchemyError as exc:
            self._fail(exc)

    def delete(self, key):
        try:
            KvEntry.query.filter_by(key=key).delete()
            db.session.commit()
        except SQLAlchemyError as exc:
            self._fail(exc)
