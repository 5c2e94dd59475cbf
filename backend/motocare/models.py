# Overview: SQLAlchemy model backing the key-value snapshot store.

from .extensions import db
from .time_utils import to_utc_z, utcnow


class KeyValueEntry(db.Model):
    """
    One serialized collection (parts, transactions, ...) per row.

    The value is an opaque JSON document; there is no schema version and
    no per-entity table.
    """
    __tablename__ = "kv_entries"

    key = db.Column(db.String(128), primary_key=True)
    value = db.Column(db.Text, nullable=False)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "size": len(self.value or ""),
            "updated_at": to_utc_z(self.updated_at),
        }
