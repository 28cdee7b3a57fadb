"""Persistence layer for payable domain records."""
from __future__ import annotations

from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, NamedTuple, Optional, Tuple

import psycopg2
import psycopg2.extras
from psycopg2 import sql
from psycopg2.extensions import connection as PgConnection
from psycopg2.extensions import cursor as PgCursor

from ...database import ConnectionFactory
from .errors import DependencyError
from .models import (
    Appointment,
    DomainRecord,
    PaymentStatus,
    RecordRef,
    RecordStatus,
    RecordType,
    RentalListing,
    WebhookErrorEntry,
)


class _TableSpec(NamedTuple):
    table: str
    payment_reference_column: str
    paid_status: RecordStatus


_TABLES: Dict[RecordType, _TableSpec] = {
    RecordType.APPOINTMENT: _TableSpec("appointments", "stripe_payment_intent_id", RecordStatus.CONFIRMED),
    # Listings stay pending after payment until an admin approves them.
    RecordType.RENTAL_LISTING: _TableSpec("rental_listings", "stripe_payment_id", RecordStatus.PENDING),
}


def paid_status_for(record_type: RecordType) -> RecordStatus:
    return _TABLES[record_type].paid_status


@contextmanager
def managed_connection(
    factory: ConnectionFactory, conn: Optional[PgConnection] = None
) -> Iterator[Tuple[PgConnection, bool]]:
    """Context manager that manages transaction boundaries for optional connections."""

    if conn is not None:
        yield conn, False
        return

    connection = factory()
    try:
        yield connection, True
        connection.commit()
    except Exception:
        connection.rollback()
        raise
    finally:
        connection.close()


def _row_to_appointment(row: dict) -> Appointment:
    return Appointment(
        record_id=str(row["id"]),
        payment_status=PaymentStatus(row.get("payment_status") or PaymentStatus.UNPAID.value),
        status=RecordStatus(row.get("status") or RecordStatus.PENDING.value),
        correlation_session_id=row.get("stripe_session_id"),
        payment_reference=row.get("stripe_payment_intent_id"),
        contact_name=row.get("full_name"),
        contact_email=row.get("email"),
        contact_phone=row.get("phone"),
        services=list(row.get("services") or []),
        appointment_date=_optional_text(row.get("appointment_date")),
        appointment_time=_optional_text(row.get("appointment_time")),
        location=row.get("location"),
        description=row.get("description"),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_rental_listing(row: dict) -> RentalListing:
    price = row.get("price")
    return RentalListing(
        record_id=str(row["id"]),
        payment_status=PaymentStatus(row.get("payment_status") or PaymentStatus.UNPAID.value),
        status=RecordStatus(row.get("status") or RecordStatus.PENDING.value),
        correlation_session_id=row.get("stripe_session_id"),
        payment_reference=row.get("stripe_payment_id"),
        contact_name=row.get("contact_name"),
        contact_email=row.get("contact_email"),
        contact_phone=row.get("contact_phone"),
        user_id=_optional_text(row.get("user_id")),
        title=row.get("title"),
        address=row.get("address"),
        property_type=row.get("property_type"),
        price=float(price) if price is not None else None,
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_record(record_type: RecordType, row: dict) -> DomainRecord:
    if record_type == RecordType.RENTAL_LISTING:
        return _row_to_rental_listing(row)
    return _row_to_appointment(row)


def _optional_text(value: object) -> Optional[str]:
    return None if value is None else str(value)


class PostgresRecordRepository:
    """Concrete repository reading and updating records in PostgreSQL.

    Every mutation is a single ``UPDATE ... RETURNING`` statement so the
    database's per-row atomicity is the only concurrency control.
    """

    def __init__(self, connection_factory: ConnectionFactory, *, conn: Optional[PgConnection] = None) -> None:
        self._connection_factory = connection_factory
        self._conn = conn

    @contextmanager
    def _cursor(self) -> Iterable[PgCursor]:
        try:
            with managed_connection(self._connection_factory, self._conn) as (connection, managed):
                cursor = connection.cursor(cursor_factory=psycopg2.extras.RealDictCursor)
                try:
                    yield cursor
                    if managed:
                        connection.commit()
                except Exception:
                    if managed:
                        connection.rollback()
                    raise
                finally:
                    cursor.close()
        except psycopg2.Error as exc:
            raise DependencyError(f"database error: {exc}") from exc

    def get(self, ref: RecordRef) -> Optional[DomainRecord]:
        spec = _TABLES[ref.record_type]
        with self._cursor() as cursor:
            cursor.execute(
                sql.SQL("SELECT * FROM {} WHERE id = %s LIMIT 1").format(sql.Identifier(spec.table)),
                (ref.record_id,),
            )
            row = cursor.fetchone()
            return _row_to_record(ref.record_type, row) if row else None

    def find_by_session(self, session_id: str) -> Optional[RecordRef]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                SELECT 'appointment' AS record_type, id::text AS record_id
                FROM appointments
                WHERE stripe_session_id = %(session_id)s
                UNION ALL
                SELECT 'rental_listing' AS record_type, id::text AS record_id
                FROM rental_listings
                WHERE stripe_session_id = %(session_id)s
                LIMIT 1
                """,
                {"session_id": session_id},
            )
            row = cursor.fetchone()
            if not row:
                return None
            return RecordRef(record_type=RecordType(row["record_type"]), record_id=row["record_id"])

    def mark_paid(
        self,
        ref: RecordRef,
        *,
        session_id: str,
        payment_reference: Optional[str] = None,
    ) -> Optional[DomainRecord]:
        spec = _TABLES[ref.record_type]
        with self._cursor() as cursor:
            cursor.execute(
                sql.SQL(
                    """
                    UPDATE {table}
                    SET payment_status = %(payment_status)s,
                        status = %(status)s,
                        stripe_session_id = %(session_id)s,
                        {reference} = COALESCE(%(payment_reference)s, {reference}),
                        updated_at = NOW()
                    WHERE id = %(record_id)s
                      AND payment_status <> %(paid)s
                    RETURNING *
                    """
                ).format(
                    table=sql.Identifier(spec.table),
                    reference=sql.Identifier(spec.payment_reference_column),
                ),
                {
                    "payment_status": PaymentStatus.PAID.value,
                    "status": spec.paid_status.value,
                    "session_id": session_id,
                    "payment_reference": payment_reference,
                    "paid": PaymentStatus.PAID.value,
                    "record_id": ref.record_id,
                },
            )
            row = cursor.fetchone()
            return _row_to_record(ref.record_type, row) if row else None

    def mark_expired(self, ref: RecordRef) -> Optional[DomainRecord]:
        spec = _TABLES[ref.record_type]
        with self._cursor() as cursor:
            cursor.execute(
                sql.SQL(
                    """
                    UPDATE {table}
                    SET payment_status = %(payment_status)s,
                        status = %(status)s,
                        updated_at = NOW()
                    WHERE id = %(record_id)s
                      AND payment_status <> %(paid)s
                    RETURNING *
                    """
                ).format(table=sql.Identifier(spec.table)),
                {
                    "payment_status": PaymentStatus.EXPIRED.value,
                    "status": RecordStatus.CANCELLED.value,
                    "paid": PaymentStatus.PAID.value,
                    "record_id": ref.record_id,
                },
            )
            row = cursor.fetchone()
            return _row_to_record(ref.record_type, row) if row else None

    def attach_session(self, ref: RecordRef, session_id: str) -> Optional[DomainRecord]:
        spec = _TABLES[ref.record_type]
        with self._cursor() as cursor:
            cursor.execute(
                sql.SQL(
                    """
                    UPDATE {table}
                    SET stripe_session_id = %s, updated_at = NOW()
                    WHERE id = %s
                    RETURNING *
                    """
                ).format(table=sql.Identifier(spec.table)),
                (session_id, ref.record_id),
            )
            row = cursor.fetchone()
            return _row_to_record(ref.record_type, row) if row else None

    def record_webhook_error(self, entry: WebhookErrorEntry) -> None:
        with self._cursor() as cursor:
            cursor.execute(
                """
                INSERT INTO webhook_errors (
                    event_id,
                    event_type,
                    error_message,
                    metadata,
                    created_at
                )
                VALUES (%s, %s, %s, %s, %s)
                """,
                (
                    entry.event_id,
                    entry.event_type,
                    entry.error_message,
                    psycopg2.extras.Json(entry.metadata),
                    entry.occurred_at,
                ),
            )


__all__ = ["PostgresRecordRepository", "managed_connection", "paid_status_for"]
