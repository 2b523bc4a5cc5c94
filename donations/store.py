"""
donations/store.py -- SQLAlchemy-backed persistence for donation requests.

Uses SQLAlchemy Core (not ORM) so the dataclasses in donations/models.py stay
the authoritative domain representation. Swapping SQLite for PostgreSQL is a
connection string change.

Pattern: Repository + Data Mapper. DonationStore is the repository;
_row_to_donation is the mapper. The lifecycle manager never touches SQL.

Conditional writes:
  update_status() and delete_pending() put the expected current status in the
  WHERE clause. Two admins racing to approve and reject the same request
  cannot both win -- the second statement matches zero rows and the caller
  reports a conflict. No row is ever read-modified-written.

Timestamps are stored as fixed-width ISO 8601 UTC strings (microsecond
precision) so lexical ORDER BY and >= comparisons agree with time order.

Security: all queries use bound parameters. No f-strings in SQL.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import Column, Index, Integer, MetaData, String, Table, Text, case, func, select
from sqlalchemy.engine import Engine

from auth.store import make_engine
from donations.models import (
    STATUS_APPROVED,
    STATUS_PENDING,
    STATUS_REJECTED,
    Donation,
    DonationSummary,
)

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_donations = Table(
    "donations",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("owner_id", Integer, nullable=False),
    Column("type", String(10), nullable=False),
    Column("details", Text),
    Column("status", String(10), nullable=False, server_default=STATUS_PENDING),
    # Snapshot of the owner's profile at submission time
    Column("full_name", String(255)),
    Column("email", String(255)),
    Column("contact", String(50)),
    Column("address", Text),
    Column("blood_group", String(5)),
    # Appointment
    Column("hospital", String(255), nullable=False),
    Column("preferred_date", String(32), nullable=False),
    Column("time", String(16), nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32)),
    Index("ix_donations_owner_id", "owner_id"),
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def format_ts(dt: datetime) -> str:
    """Render a datetime as the fixed-width UTC string the store sorts on."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _now_iso() -> str:
    return format_ts(datetime.now(timezone.utc))


# Newest first; equal timestamps fall back to insertion (id) order.
_ORDER = (_donations.c.created_at.desc(), _donations.c.id.asc())


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class DonationStore:
    """Repository for Donation records.

    Usage:
        store = DonationStore("sqlite:///portal.db")
        donation_id = store.create_donation(donation)
        store.update_status(donation_id, "approved")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)
        metadata.create_all(self.engine)

    def create_donation(self, donation: Donation) -> int:
        """Insert a donation request and return its ID.

        created_at defaults to now; callers may pass one explicitly (imports,
        tests that need deterministic ordering).
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _donations.insert().values(
                    owner_id=donation.owner_id,
                    type=donation.type,
                    details=donation.details,
                    status=donation.status,
                    full_name=donation.full_name,
                    email=donation.email,
                    contact=donation.contact,
                    address=donation.address,
                    blood_group=donation.blood_group,
                    hospital=donation.hospital,
                    preferred_date=donation.preferred_date,
                    time=donation.time,
                    created_at=donation.created_at or _now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_donation(self, donation_id: int) -> Optional[Donation]:
        """Fetch a single donation by ID. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_donations.select().where(_donations.c.id == donation_id)).fetchone()
        return _row_to_donation(row) if row is not None else None

    def list_donations(self, owner_id: Optional[int] = None, status: Optional[str] = None) -> list[Donation]:
        """Return donations newest first, optionally narrowed by owner and/or status."""
        stmt = _donations.select()
        if owner_id is not None:
            stmt = stmt.where(_donations.c.owner_id == owner_id)
        if status is not None:
            stmt = stmt.where(_donations.c.status == status)
        with self.engine.connect() as conn:
            rows = conn.execute(stmt.order_by(*_ORDER)).fetchall()
        return [_row_to_donation(r) for r in rows]

    def update_status(self, donation_id: int, status: str, from_status: str = STATUS_PENDING) -> bool:
        """Move a donation from from_status to status in a single conditional UPDATE.

        Returns True if the row was updated. False means either the id does not
        exist or its status was no longer from_status; the caller tells the two
        apart with get_donation().
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _donations.update()
                .where((_donations.c.id == donation_id) & (_donations.c.status == from_status))
                .values(status=status, updated_at=_now_iso())
            )
            conn.commit()
        return result.rowcount > 0

    def delete_pending(self, donation_id: int, owner_id: int) -> bool:
        """Delete a donation only if owner_id owns it and it is still pending.

        owner_id is part of the WHERE clause so a donor can never delete
        someone else's request even if they guess its id.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _donations.delete().where(
                    (_donations.c.id == donation_id)
                    & (_donations.c.owner_id == owner_id)
                    & (_donations.c.status == STATUS_PENDING)
                )
            )
            conn.commit()
        return result.rowcount > 0

    def summarize(self, now: Optional[datetime] = None) -> DonationSummary:
        """Return status totals and created-within-window counts in one query.

        Windows: today (since 00:00 UTC), this_week (last 7 days),
        this_month (last 30 days). Uses conditional aggregation --
        COUNT(CASE WHEN ... THEN 1 END) -- instead of one query per bucket.
        """
        now = now or datetime.now(timezone.utc)
        start_of_day = format_ts(now.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0))
        week_ago = format_ts(now - timedelta(days=7))
        month_ago = format_ts(now - timedelta(days=30))

        col = _donations.c
        stmt = select(
            func.count(col.id).label("total"),
            func.count(case((col.status == STATUS_PENDING, 1))).label("pending"),
            func.count(case((col.status == STATUS_APPROVED, 1))).label("approved"),
            func.count(case((col.status == STATUS_REJECTED, 1))).label("rejected"),
            func.count(case((col.created_at >= start_of_day, 1))).label("today"),
            func.count(case((col.created_at >= week_ago, 1))).label("this_week"),
            func.count(case((col.created_at >= month_ago, 1))).label("this_month"),
        )
        with self.engine.connect() as conn:
            row = conn.execute(stmt).fetchone()
        return DonationSummary(
            total=row.total,
            pending=row.pending,
            approved=row.approved,
            rejected=row.rejected,
            today=row.today,
            this_week=row.this_week,
            this_month=row.this_month,
        )

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_donation(row) -> Donation:
    return Donation(
        id=row.id,
        owner_id=row.owner_id,
        type=row.type,
        details=row.details,
        status=row.status,
        full_name=row.full_name,
        email=row.email,
        contact=row.contact,
        address=row.address,
        blood_group=row.blood_group,
        hospital=row.hospital,
        preferred_date=row.preferred_date,
        time=row.time,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
