"""
FIREDESK Referrals - Store Models & Queries

A referral is an immutable routing record: once inserted it is never updated
or deleted. It references, but does not own, the incident or alert it routes.
"""
import sqlite3
import uuid
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Dict, List, Optional

from ..db import connection, _ts
from ..errors import ValidationError


class ReferralDataType(str, Enum):
    INCIDENT = "incident"
    ALERT = "alert"


class Direction(str, Enum):
    INCOMING = "incoming"
    OUTGOING = "outgoing"
    ALL = "all"


@dataclass(frozen=True)
class Referral:
    referral_id: str
    data_type: str
    data_id: str
    from_station_id: str
    to_station_id: str
    reason: str
    created_at: str
    alert_id: Optional[str] = None
    created_by: Optional[str] = None

    def to_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Referral":
        return cls(**dict(row))


class ReferralRepository:
    """Insert and read only."""

    @staticmethod
    def create(conn: sqlite3.Connection, data_type: ReferralDataType, data_id: str,
               alert_id: Optional[str], from_station_id: str, to_station_id: str,
               reason: str, created_by: Optional[str] = None) -> Referral:
        referral = Referral(
            referral_id=uuid.uuid4().hex,
            data_type=ReferralDataType(data_type).value,
            data_id=data_id,
            alert_id=alert_id,
            from_station_id=from_station_id,
            to_station_id=to_station_id,
            reason=reason,
            created_at=_ts(),
            created_by=created_by,
        )
        conn.execute("""
            INSERT INTO Referrals (referral_id, data_type, data_id, alert_id, from_station_id,
                                   to_station_id, reason, created_at, created_by)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (referral.referral_id, referral.data_type, referral.data_id, referral.alert_id,
              referral.from_station_id, referral.to_station_id, referral.reason,
              referral.created_at, referral.created_by))
        return referral

    @staticmethod
    def get(referral_id: str, conn: sqlite3.Connection = None) -> Optional[Referral]:
        with connection(conn) as c:
            row = c.execute("SELECT * FROM Referrals WHERE referral_id = ?", (referral_id,)).fetchone()
        return Referral.from_row(row) if row else None

    @staticmethod
    def for_station(station_id: str, direction: str = Direction.ALL,
                    conn: sqlite3.Connection = None) -> List[Referral]:
        """Referrals touching a station, newest first."""
        try:
            direction = Direction(direction or Direction.ALL)
        except ValueError:
            raise ValidationError.single(
                "direction", "InvalidDirection",
                "Direction must be one of: incoming, outgoing, all.",
            )
        if direction == Direction.INCOMING:
            where, params = "to_station_id = ?", (station_id,)
        elif direction == Direction.OUTGOING:
            where, params = "from_station_id = ?", (station_id,)
        else:
            where, params = "to_station_id = ? OR from_station_id = ?", (station_id, station_id)
        with connection(conn) as c:
            rows = c.execute(
                f"SELECT * FROM Referrals WHERE {where} ORDER BY created_at DESC, rowid DESC",
                params,
            ).fetchall()
        return [Referral.from_row(r) for r in rows]
