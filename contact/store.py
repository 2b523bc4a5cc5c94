"""
contact/store.py -- Append-only persistence for contact-form messages.

There is no update or delete method on purpose: messages are a log.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, Integer, MetaData, String, Table, Text
from sqlalchemy.engine import Engine

from auth.store import make_engine
from contact.models import ContactMessage

metadata = MetaData()

_messages = Table(
    "contact_messages",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("email", String(255), nullable=False),
    Column("subject", String(255)),
    Column("message", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
)


class ContactStore:
    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)
        metadata.create_all(self.engine)

    def create_message(self, message: ContactMessage) -> int:
        """Append a message and return its ID."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _messages.insert().values(
                    name=message.name,
                    email=message.email,
                    subject=message.subject,
                    message=message.message,
                    created_at=datetime.now(timezone.utc).isoformat(timespec="microseconds"),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def list_messages(self, limit: Optional[int] = None) -> list[ContactMessage]:
        """Return messages newest first. Used by the management CLI only."""
        stmt = _messages.select().order_by(_messages.c.created_at.desc(), _messages.c.id.desc())
        if limit is not None:
            stmt = stmt.limit(limit)
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [
            ContactMessage(
                id=r.id,
                name=r.name,
                email=r.email,
                subject=r.subject,
                message=r.message,
                created_at=r.created_at,
            )
            for r in rows
        ]

    def close(self) -> None:
        self.engine.dispose()
