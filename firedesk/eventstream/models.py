"""
FIREDESK Event Stream - Database Models & Query Helpers
"""
import json
from typing import Optional, List, Dict, Tuple

from ..db import get_conn


def init_eventstream_schema():
    """Create event_stream table if it doesn't exist."""
    conn = get_conn()
    c = conn.cursor()
    c.execute("""
        CREATE TABLE IF NOT EXISTS event_stream (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            timestamp TEXT NOT NULL,
            event_type TEXT NOT NULL,
            category TEXT DEFAULT 'system',
            severity TEXT DEFAULT 'info',
            incident_id TEXT,
            alert_id TEXT,
            station_id TEXT,
            user TEXT,
            summary TEXT,
            details_json TEXT
        )
    """)
    for col in ("timestamp", "incident_id", "station_id", "event_type", "category"):
        c.execute(f"CREATE INDEX IF NOT EXISTS idx_es_{col} ON event_stream ({col})")
    conn.commit()
    conn.close()


def insert_event(
    timestamp: str,
    event_type: str,
    category: str = "system",
    severity: str = "info",
    incident_id: Optional[str] = None,
    alert_id: Optional[str] = None,
    station_id: Optional[str] = None,
    user: Optional[str] = None,
    summary: Optional[str] = None,
    details: Optional[Dict] = None,
) -> int:
    """Insert an event and return its ID."""
    conn = get_conn()
    c = conn.cursor()
    c.execute("""
        INSERT INTO event_stream
            (timestamp, event_type, category, severity, incident_id, alert_id, station_id, user, summary, details_json)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
    """, (
        timestamp, event_type, category, severity,
        incident_id, alert_id, station_id, user, summary,
        json.dumps(details) if details else None,
    ))
    event_id = c.lastrowid
    conn.commit()
    conn.close()
    return event_id


_FILTER_KEYS = ("category", "event_type", "incident_id", "alert_id", "station_id", "severity")


def _where(filters: Dict) -> Tuple[str, List]:
    conditions = []
    params = []
    for key in _FILTER_KEYS:
        val = filters.get(key)
        if val is not None:
            conditions.append(f"{key} = ?")
            params.append(val)
    since = filters.get("since")
    if since:
        conditions.append("timestamp >= ?")
        params.append(since)
    where = (" WHERE " + " AND ".join(conditions)) if conditions else ""
    return where, params


def query_events(limit: int = 50, offset: int = 0, **filters) -> List[Dict]:
    """Query events with filters, newest first."""
    where, params = _where(filters)
    conn = get_conn()
    rows = conn.execute(
        f"SELECT * FROM event_stream{where} ORDER BY id DESC LIMIT ? OFFSET ?",
        params + [limit, offset]
    ).fetchall()
    conn.close()

    events = []
    for r in rows:
        e = dict(r)
        raw = e.pop("details_json", None)
        e["details"] = json.loads(raw) if raw else None
        events.append(e)
    return events


def count_events(**filters) -> int:
    """Count events matching filters."""
    where, params = _where(filters)
    conn = get_conn()
    row = conn.execute(f"SELECT COUNT(*) as cnt FROM event_stream{where}", params).fetchone()
    conn.close()
    return row["cnt"] if row else 0
