"""Terminal plan archive for audit trails."""

import json
import sqlite3
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, Optional

import structlog

from ..data.models import ProcurementPlan
from ..data.report import ProcurementReport
from ..errors import PersistenceError
from ..utils.time import format_timestamp, utc_now


@dataclass
class ArchivedPlan:
    """Archived plan with its report."""
    id: int
    plan_id: str
    contract_id: str
    good: str
    status: str
    units_to_source: int
    units_purchased: int
    plan_data: dict[str, Any]
    report_data: dict[str, Any]
    archived_at: str


class PlanArchive:
    """SQLite-backed store of finished procurement plans.

    Archived plans are read for audit only; execution never resumes from them.
    """

    def __init__(self, db_path: str = "plans.db"):
        self.db_path = Path(db_path) if db_path != ":memory:" else db_path
        self.logger = structlog.get_logger("plan.archive")
        self._lock = threading.Lock()
        self._memory_conn: Optional[sqlite3.Connection] = None
        if db_path == ":memory:":
            self._memory_conn = sqlite3.connect(":memory:", check_same_thread=False)
            self._memory_conn.row_factory = sqlite3.Row

        self._init_database()

    def _init_database(self) -> None:
        """Initialize database schema."""
        with self._get_connection("init") as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS plans (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    plan_id TEXT NOT NULL UNIQUE,
                    contract_id TEXT NOT NULL,
                    good TEXT NOT NULL,
                    status TEXT NOT NULL,
                    units_to_source INTEGER NOT NULL,
                    units_purchased INTEGER NOT NULL,
                    plan_data TEXT NOT NULL,
                    report_data TEXT NOT NULL,
                    archived_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_plans_contract_id ON plans(contract_id)
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_plans_status ON plans(status)
            """)
            conn.commit()

    @contextmanager
    def _get_connection(self, operation: str) -> Iterator[sqlite3.Connection]:
        """Get database connection, translating sqlite errors."""
        if self._memory_conn is not None:
            conn = self._memory_conn
            try:
                yield conn
            except sqlite3.Error as e:
                conn.rollback()
                self.logger.error("Database error", operation=operation, error=str(e))
                raise PersistenceError(
                    f"plan archive {operation} failed: {e}", operation=operation, target=":memory:"
                ) from e
            return

        conn = None
        try:
            conn = sqlite3.connect(self.db_path, timeout=30.0)
            conn.row_factory = sqlite3.Row
            yield conn
        except sqlite3.Error as e:
            if conn:
                conn.rollback()
            self.logger.error("Database error", operation=operation, error=str(e))
            raise PersistenceError(
                f"plan archive {operation} failed: {e}", operation=operation, target=str(self.db_path)
            ) from e
        finally:
            if conn:
                conn.close()

    def archive(self, plan: ProcurementPlan, report: ProcurementReport) -> int:
        """
        Store a terminal plan and its report.

        Args:
            plan: Plan in COMPLETED, PARTIAL or FAILED status
            report: Report produced for the plan

        Returns:
            Row id of the archived plan

        Raises:
            PersistenceError: If the plan is not terminal or the write fails
        """
        if not plan.is_terminal:
            raise PersistenceError(
                f"plan {plan.plan_id} is {plan.status.value}, only terminal plans are archived",
                operation="archive",
                target=plan.plan_id,
            )

        with self._lock:
            with self._get_connection("archive") as conn:
                cursor = conn.execute("""
                    INSERT OR REPLACE INTO plans (
                        plan_id, contract_id, good, status, units_to_source,
                        units_purchased, plan_data, report_data, archived_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """, (
                    plan.plan_id,
                    plan.contract_id,
                    plan.good,
                    plan.status.value,
                    plan.units_to_source,
                    plan.units_purchased,
                    json.dumps(plan.to_dict()),
                    json.dumps(report.to_dict()),
                    format_timestamp(utc_now()),
                ))
                conn.commit()
                row_id = cursor.lastrowid

        self.logger.info(
            "Plan archived",
            plan_id=plan.plan_id,
            contract_id=plan.contract_id,
            status=plan.status.value,
            row_id=row_id
        )
        return row_id

    def get(self, plan_id: str) -> Optional[ArchivedPlan]:
        """Get an archived plan by plan id."""
        with self._get_connection("get") as conn:
            row = conn.execute("""
                SELECT * FROM plans WHERE plan_id = ?
            """, (plan_id,)).fetchone()

        return self._row_to_archived_plan(row) if row else None

    def list_by_contract(self, contract_id: str) -> list[ArchivedPlan]:
        """All archived attempts for a contract, oldest first."""
        with self._get_connection("list_by_contract") as conn:
            rows = conn.execute("""
                SELECT * FROM plans WHERE contract_id = ? ORDER BY archived_at, id
            """, (contract_id,)).fetchall()

        return [self._row_to_archived_plan(row) for row in rows]

    def get_stats(self) -> dict[str, Any]:
        """Get archive statistics."""
        with self._get_connection("get_stats") as conn:
            total_count = conn.execute("SELECT COUNT(*) FROM plans").fetchone()[0]

            status_counts = {}
            for row in conn.execute("""
                SELECT status, COUNT(*) as count FROM plans GROUP BY status
            """):
                status_counts[row[0]] = row[1]

            units = conn.execute("""
                SELECT COALESCE(SUM(units_purchased), 0) FROM plans
            """).fetchone()[0]

        return {
            "total_plans": total_count,
            "plans_by_status": status_counts,
            "units_purchased": units,
        }

    def close(self) -> None:
        if self._memory_conn is not None:
            self._memory_conn.close()
            self._memory_conn = None

    def _row_to_archived_plan(self, row: sqlite3.Row) -> ArchivedPlan:
        """Convert database row to ArchivedPlan object."""
        return ArchivedPlan(
            id=row["id"],
            plan_id=row["plan_id"],
            contract_id=row["contract_id"],
            good=row["good"],
            status=row["status"],
            units_to_source=row["units_to_source"],
            units_purchased=row["units_purchased"],
            plan_data=json.loads(row["plan_data"]),
            report_data=json.loads(row["report_data"]),
            archived_at=row["archived_at"],
        )
