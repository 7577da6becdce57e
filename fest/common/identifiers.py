"""Sequential human-readable identifiers.

Participant IDs look like ``PID260001`` and team IDs like ``TID260001``:
kind prefix, two-digit year, zero-padded sequence. The generator reads the
highest existing value and increments it, which is not atomic on its own;
the ``pid`` and ``tid`` columns carry unique constraints so a race turns into
an IntegrityError instead of a duplicate identifier.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from fest.auth.models import User
from fest.registrations.models import Registration

PID_PREFIX = "PID"
TID_PREFIX = "TID"
SEQUENCE_WIDTH = 4
SCAN_BATCH = 50


def year_suffix(year: Optional[int] = None) -> str:
    if year is None:
        year = datetime.utcnow().year
    return f"{year % 100:02d}"


def format_identifier(kind: str, year: int, sequence: int) -> str:
    return f"{kind}{year_suffix(year)}{sequence:0{SEQUENCE_WIDTH}d}"


def parse_sequence(kind: str, identifier: Optional[str]) -> Optional[int]:
    """
    Return the numeric sequence of an identifier, ignoring its year digits.

    Anything that does not look like ``<kind><YY><digits>`` yields None
    rather than raising.
    """
    if not identifier or not identifier.startswith(kind):
        return None
    year_part = identifier[len(kind):len(kind) + 2]
    digits = identifier[len(kind) + 2:]
    if len(year_part) != 2 or not year_part.isdigit():
        return None
    if not digits or not digits.isdigit():
        return None
    return int(digits)


async def highest_sequence(db: AsyncSession, column, kind: str, *criteria) -> int:
    """
    Highest valid sequence stored in ``column`` for identifiers of ``kind``.

    Sequences are written zero-padded, so ordering by length and then by the
    text after the year digits matches numeric order and only the head of
    that ordering is read. Malformed values sort in among the valid ones and
    are skipped; the scan pages on until it finds a valid one.
    """
    sequence = func.substr(column, len(kind) + 3)
    stmt = (
        select(column)
        .where(column.like(f"{kind}%"), *criteria)
        .order_by(func.length(column).desc(), sequence.desc())
        .limit(SCAN_BATCH)
    )
    offset = 0
    while True:
        result = await db.execute(stmt.offset(offset))
        values = result.scalars().all()
        for value in values:
            parsed = parse_sequence(kind, value)
            if parsed is not None:
                return parsed
        if len(values) < SCAN_BATCH:
            return 0
        offset += SCAN_BATCH


async def generate_pid(db: AsyncSession, year: Optional[int] = None) -> str:
    """Next participant ID within the given (default: current) year."""
    if year is None:
        year = datetime.utcnow().year
    prefix = f"{PID_PREFIX}{year_suffix(year)}"
    highest = await highest_sequence(db, User.pid, PID_PREFIX, User.pid.like(f"{prefix}%"))
    return format_identifier(PID_PREFIX, year, highest + 1)


async def generate_tid(db: AsyncSession, year: Optional[int] = None) -> str:
    """
    Next team ID. All teams share one sequence, whatever year prefix the
    earlier TIDs carry.
    """
    if year is None:
        year = datetime.utcnow().year
    highest = await highest_sequence(db, Registration.tid, TID_PREFIX)
    return format_identifier(TID_PREFIX, year, highest + 1)


async def ensure_tid(db: AsyncSession, registration: Registration) -> Optional[str]:
    """Assign a TID once a registration has a team name and none yet."""
    if registration.team_name and not registration.tid:
        registration.tid = await generate_tid(db)
    return registration.tid
