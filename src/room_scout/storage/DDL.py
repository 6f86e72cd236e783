_DDL = """
CREATE TABLE IF NOT EXISTS listings (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    url          TEXT NOT NULL UNIQUE,
    content      TEXT NOT NULL DEFAULT '{}',
    scraped_at   TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    liked        INTEGER NOT NULL DEFAULT 0,
    status       TEXT NOT NULL DEFAULT 'pending',
    done         INTEGER NOT NULL DEFAULT 0,
    walking_time TEXT,
    transit_time TEXT,
    cycling_time TEXT,
    latitude     REAL,
    longitude    REAL
);
"""

# Columns added after the first release; appended to older databases on startup.
_LATE_COLUMNS: dict[str, str] = {
    "status": "TEXT NOT NULL DEFAULT 'complete'",
    "done": "INTEGER NOT NULL DEFAULT 0",
    "walking_time": "TEXT",
    "transit_time": "TEXT",
    "cycling_time": "TEXT",
    "latitude": "REAL",
    "longitude": "REAL",
}
