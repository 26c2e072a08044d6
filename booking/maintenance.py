"""Database maintenance helpers for the booking app."""
from __future__ import annotations

__all__ = ["add_overlap_exclusion", "drop_overlap_exclusion", "OVERLAP_CONSTRAINT"]


OVERLAP_CONSTRAINT = "appointment_no_overlap_per_staff"


def add_overlap_exclusion(schema_editor) -> None:
    """Forbid overlapping active appointments for one stylist.

    The unique constraint on ``(staff, appointment_date, start_time)`` only
    catches two bookings starting at the same minute. On PostgreSQL an
    exclusion constraint over the ``[start, end)`` range of every
    non-cancelled appointment also catches partial overlaps. Other
    databases rely on the row locks taken while booking.
    """
    if schema_editor.connection.vendor != "postgresql":
        return

    statements = [
        "CREATE EXTENSION IF NOT EXISTS btree_gist;",
        f"ALTER TABLE booking_appointment DROP CONSTRAINT IF EXISTS {OVERLAP_CONSTRAINT};",
        f"ALTER TABLE booking_appointment ADD CONSTRAINT {OVERLAP_CONSTRAINT} "
        "EXCLUDE USING gist ("
        "staff_id WITH =, "
        "tsrange(appointment_date + start_time, appointment_date + end_time, '[)') WITH &&"
        ") WHERE (status <> 'cancelled' AND staff_id IS NOT NULL);",
    ]
    for statement in statements:
        schema_editor.execute(statement)


def drop_overlap_exclusion(schema_editor) -> None:
    if schema_editor.connection.vendor != "postgresql":
        return
    schema_editor.execute(
        f"ALTER TABLE booking_appointment DROP CONSTRAINT IF EXISTS {OVERLAP_CONSTRAINT};"
    )
