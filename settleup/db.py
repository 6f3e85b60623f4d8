from contextlib import contextmanager
from typing import Any, Dict, Iterable, List, Optional, Tuple

from mysql.connector import pooling

from .config import config
from .errors import NotFoundError
from .models import Allocation, ExpenseRecord, GroupSnapshot, PaymentRecord, SplitPolicy
from .money import Money


class Database:
    def __init__(self, settings=None) -> None:
        self.settings = settings or config
        self._pool: Optional[pooling.MySQLConnectionPool] = None

    @property
    def pool(self) -> pooling.MySQLConnectionPool:
        # created on first use so importing the app never needs a live server
        if self._pool is None:
            self._pool = pooling.MySQLConnectionPool(
                pool_name="settleup_pool",
                pool_size=self.settings.DB_POOL_SIZE,
                host=self.settings.DB_HOST,
                port=self.settings.DB_PORT,
                user=self.settings.DB_USER,
                password=self.settings.DB_PASSWORD,
                database=self.settings.DB_NAME,
                auth_plugin="mysql_native_password",
            )
        return self._pool

    @contextmanager
    def connection(self):
        conn = self.pool.get_connection()
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def cursor(self, dictionary: bool = True):
        with self.connection() as conn:
            cursor = conn.cursor(dictionary=dictionary)
            try:
                yield cursor
                conn.commit()
            except Exception:
                conn.rollback()
                raise
            finally:
                cursor.close()

    @contextmanager
    def snapshot_cursor(self):
        """Cursor inside a read-only transaction with a consistent snapshot."""
        with self.connection() as conn:
            conn.start_transaction(consistent_snapshot=True, readonly=True)
            cursor = conn.cursor(dictionary=True)
            try:
                yield cursor
                conn.commit()
            except Exception:
                conn.rollback()
                raise
            finally:
                cursor.close()

    def fetch_all(self, query: str, params: Optional[Iterable[Any]] = None) -> Iterable[Dict[str, Any]]:
        with self.cursor() as cursor:
            cursor.execute(query, params or ())
            return cursor.fetchall()


class MySQLGroupRepository:
    """GroupRepository over the service's MySQL schema.

    Payers live in ``expense_contributions``, owed amounts in
    ``expense_shares`` and direct settlements in ``payments``.
    """

    def __init__(self, database: Database, currency: Optional[str] = None) -> None:
        self.db = database
        self.currency = currency or database.settings.DEFAULT_CURRENCY

    def fetch_group_members(self, group_id: int) -> List[int]:
        with self.db.cursor() as cursor:
            return _members(cursor, group_id)

    def fetch_group_expenses(self, group_id: int) -> List[ExpenseRecord]:
        with self.db.cursor() as cursor:
            _require_group(cursor, group_id)
            return _expenses(cursor, group_id, self.currency)

    def fetch_group_payments(self, group_id: int) -> List[PaymentRecord]:
        with self.db.cursor() as cursor:
            _require_group(cursor, group_id)
            return _payments(cursor, group_id, self.currency)

    def fetch_groups_for_user(self, user_id: int) -> List[int]:
        rows = self.db.fetch_all(
            "SELECT group_id FROM group_members WHERE user_id=%s ORDER BY group_id",
            (user_id,),
        )
        return [row["group_id"] for row in rows]

    def fetch_group_snapshot(self, group_id: int) -> GroupSnapshot:
        with self.db.snapshot_cursor() as cursor:
            members = _members(cursor, group_id)
            expenses = _expenses(cursor, group_id, self.currency)
            payments = _payments(cursor, group_id, self.currency)
        return GroupSnapshot(
            group_id=group_id,
            members=tuple(members),
            expenses=tuple(expenses),
            payments=tuple(payments),
            currency=self.currency,
        )


def _require_group(cursor, group_id: int) -> None:
    cursor.execute("SELECT id FROM `groups` WHERE id=%s", (group_id,))
    if cursor.fetchone() is None:
        raise NotFoundError(f"group {group_id!r} not found", code="group_not_found")


def _members(cursor, group_id: int) -> List[int]:
    _require_group(cursor, group_id)
    cursor.execute(
        "SELECT user_id FROM group_members WHERE group_id=%s ORDER BY user_id",
        (group_id,),
    )
    return [row["user_id"] for row in cursor.fetchall()]


def _expenses(cursor, group_id: int, default_currency: str) -> List[ExpenseRecord]:
    cursor.execute(
        """
        SELECT id, title, amount, currency, split_type
        FROM expenses
        WHERE group_id=%s
        ORDER BY id
        """,
        (group_id,),
    )
    expenses = cursor.fetchall()
    if not expenses:
        return []

    expense_ids = [exp["id"] for exp in expenses]
    placeholders = ", ".join(["%s"] * len(expense_ids))

    cursor.execute(
        f"""
        SELECT expense_id, user_id, SUM(amount) AS amount
        FROM expense_contributions
        WHERE expense_id IN ({placeholders})
        GROUP BY expense_id, user_id
        """,
        expense_ids,
    )
    payers_map = _group_rows(cursor.fetchall(), "amount")

    cursor.execute(
        f"""
        SELECT expense_id, user_id, SUM(share_amount) AS amount
        FROM expense_shares
        WHERE expense_id IN ({placeholders})
        GROUP BY expense_id, user_id
        """,
        expense_ids,
    )
    shares_map = _group_rows(cursor.fetchall(), "amount")

    records = []
    for expense in expenses:
        currency = expense.get("currency") or default_currency
        records.append(
            ExpenseRecord(
                amount=Money.of(expense["amount"], currency),
                policy=SplitPolicy.parse(expense.get("split_type") or SplitPolicy.EQUAL),
                payers=tuple(
                    Allocation(user_id, Money.of(amount, currency))
                    for user_id, amount in payers_map.get(expense["id"], [])
                ),
                owed=tuple(
                    Allocation(user_id, Money.of(amount, currency))
                    for user_id, amount in shares_map.get(expense["id"], [])
                ),
                expense_id=expense["id"],
                group_id=group_id,
                description=expense.get("title") or "",
            )
        )
    return records


def _payments(cursor, group_id: int, default_currency: str) -> List[PaymentRecord]:
    cursor.execute(
        """
        SELECT id, paid_by, paid_to, amount, currency
        FROM payments
        WHERE group_id=%s
        ORDER BY id
        """,
        (group_id,),
    )
    return [
        PaymentRecord(
            amount=Money.of(row["amount"], row.get("currency") or default_currency),
            paid_by=row["paid_by"],
            paid_to=row["paid_to"],
            payment_id=row["id"],
            group_id=group_id,
        )
        for row in cursor.fetchall()
    ]


def _group_rows(rows: Iterable[Dict[str, Any]], column: str) -> Dict[int, List[Tuple[int, Any]]]:
    grouped: Dict[int, List[Tuple[int, Any]]] = {}
    for row in rows:
        grouped.setdefault(row["expense_id"], []).append((row["user_id"], row[column] or 0))
    return grouped
