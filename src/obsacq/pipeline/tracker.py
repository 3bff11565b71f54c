"""SQLite-based acquisition state tracker.

Records every acquisition attempt (discovered, delivered or failed) so a
run can report progress and post-run statistics.
"""

import sqlite3
import logging
import json
from pathlib import Path
from datetime import datetime, timezone
from typing import Optional, Dict, List
import threading

import pandas as pd

logger = logging.getLogger(__name__)


class AcquisitionTracker:
    """Tracks observations through acquisition.

    **Database Schema:**

    SQLite table `acquisition`:

    - obs_id: "<utdate>_<obsnum>" (e.g. 20020101_5)
    - instrument, utdate, obsnum
    - status: discovered, delivered, failed
    - files: JSON list of staged basenames
    - strategy: loop name that found the observation
    - num_frames, error_kind, error_message
    - Timestamps: discovered_at, delivered_at, updated_at (ISO format)

    A flag observation can be delivered several times as its flag file
    grows; each delivery appends its files and bumps ``deliveries``.

    **Typical Usage:**

        tracker = AcquisitionTracker(db_path)
        tracker.record_delivery(obs, "UFTI", "flag", files=["f20020101_00005.nc"])
        stats = tracker.get_statistics()
        df = tracker.to_dataframe()
        tracker.close()
    """

    def __init__(self, db_path: Path | str):
        """Initialize tracker.

        Parameters
        ----------
        db_path : Path or str
            Path to SQLite database file. Created if doesn't exist.
            Typically: <data_out>/logs/{instrument}_{utdate}_acquisition.db
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._conn = None
        self._lock = threading.Lock()

        self._init_database()
        logger.info("Acquisition tracker initialized: %s", self.db_path)

    def _get_connection(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def _init_database(self):
        """Create database schema if it doesn't exist."""
        conn = self._get_connection()

        with self._lock:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS acquisition (
                    obs_id TEXT PRIMARY KEY,
                    instrument TEXT NOT NULL,
                    utdate TEXT NOT NULL,
                    obsnum INTEGER NOT NULL,

                    strategy TEXT,
                    status TEXT DEFAULT 'discovered',
                    files TEXT DEFAULT '[]',
                    num_frames INTEGER DEFAULT 0,
                    deliveries INTEGER DEFAULT 0,

                    error_kind TEXT,
                    error_message TEXT,

                    discovered_at TEXT,
                    delivered_at TEXT,
                    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
                )
            """)

            conn.execute("CREATE INDEX IF NOT EXISTS idx_status ON acquisition(status)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_utdate ON acquisition(utdate)")

            conn.commit()

    @staticmethod
    def obs_key(obs) -> str:
        return f"{obs.utdate}_{obs.obsnum}"

    def _ensure(self, conn, obs, instrument: str, strategy: Optional[str]):
        """Insert the observation row if it is new. Caller holds the lock."""
        conn.execute("""
            INSERT OR IGNORE INTO acquisition
            (obs_id, instrument, utdate, obsnum, strategy, discovered_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """, (
            self.obs_key(obs),
            instrument,
            obs.utdate,
            obs.obsnum,
            strategy,
            datetime.now(timezone.utc).isoformat(),
        ))

    def record_delivery(self, obs, instrument: str, strategy: Optional[str],
                        files: List[str], num_frames: int = 1):
        """Mark an observation delivered, appending ``files`` to its list.

        Parameters
        ----------
        obs : ObservationId
        instrument : str
        strategy : str, optional
            Loop name.
        files : list of str
            Staged basenames of this delivery.
        num_frames : int
            Frames built from them.
        """
        conn = self._get_connection()
        now = datetime.now(timezone.utc).isoformat()

        with self._lock:
            self._ensure(conn, obs, instrument, strategy)
            row = conn.execute(
                "SELECT files, num_frames FROM acquisition WHERE obs_id = ?",
                (self.obs_key(obs),),
            ).fetchone()
            known = json.loads(row["files"] or "[]")
            known.extend(f for f in files if f not in known)

            conn.execute("""
                UPDATE acquisition
                SET status = 'delivered',
                    files = ?,
                    num_frames = ?,
                    deliveries = deliveries + 1,
                    error_kind = NULL,
                    error_message = NULL,
                    delivered_at = ?,
                    updated_at = ?
                WHERE obs_id = ?
            """, (
                json.dumps(known),
                (row["num_frames"] or 0) + num_frames,
                now,
                now,
                self.obs_key(obs),
            ))
            conn.commit()

        logger.debug("Recorded delivery: %s", obs)

    def record_failure(self, obs, instrument: str, strategy: Optional[str],
                       kind: str, message: str):
        """Mark an observation failed with the error kind and message."""
        conn = self._get_connection()
        now = datetime.now(timezone.utc).isoformat()

        with self._lock:
            self._ensure(conn, obs, instrument, strategy)
            conn.execute("""
                UPDATE acquisition
                SET status = 'failed',
                    error_kind = ?,
                    error_message = ?,
                    updated_at = ?
                WHERE obs_id = ?
            """, (kind, message, now, self.obs_key(obs)))
            conn.commit()

        logger.debug("Recorded failure: %s (%s)", obs, kind)

    def get_status(self, obs) -> Optional[Dict]:
        """Row for an observation as a dict (``files`` decoded), None if unknown."""
        conn = self._get_connection()

        with self._lock:
            row = conn.execute(
                "SELECT * FROM acquisition WHERE obs_id = ?", (self.obs_key(obs),)
            ).fetchone()

        if not row:
            return None
        record = dict(row)
        record["files"] = json.loads(record["files"] or "[]")
        return record

    def get_statistics(self, utdate: Optional[str] = None) -> Dict:
        """Summary counts.

        Returns
        -------
        dict
            - `total`: observations seen
            - `delivered`: observations delivered at least once
            - `failed`: observations whose last attempt failed
            - `deliveries`: deliveries, counting repeats of growing flags
            - `frames`: frames built
        """
        conn = self._get_connection()

        where_clause = "WHERE utdate = ?" if utdate else ""
        params = (utdate,) if utdate else ()

        with self._lock:
            row = conn.execute(f"""
                SELECT
                    COUNT(*) as total,
                    SUM(CASE WHEN status = 'delivered' THEN 1 ELSE 0 END) as delivered,
                    SUM(CASE WHEN status = 'failed' THEN 1 ELSE 0 END) as failed,
                    SUM(deliveries) as deliveries,
                    SUM(num_frames) as frames
                FROM acquisition
                {where_clause}
            """, params).fetchone()

        stats = dict(row) if row else {}
        return {k: (v or 0) for k, v in stats.items()}

    def to_dataframe(self) -> pd.DataFrame:
        """All rows as a DataFrame ordered by observation number."""
        conn = self._get_connection()

        with self._lock:
            df = pd.read_sql_query("SELECT * FROM acquisition ORDER BY utdate, obsnum", conn)
        return df

    def close(self):
        """Close database connection. Safe to call multiple times."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
