import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from ...domain.models import (
    Content,
    ContentTypeStats,
    Subscription,
    SubscriptionStatus,
    User,
    UserSummary,
)
from ...domain.ports.persistence import PersistenceGateway

_USER_SORT_COLUMNS = {
    "created_at": "u.created_at",
    "email": "u.email",
    "first_name": "u.first_name",
    "last_name": "u.last_name",
}


class SQLitePersistence(PersistenceGateway):
    """SQLite-backed implementation of the persistence gateway."""

    def __init__(self, path: Path) -> None:
        if str(path) != ":memory:":
            path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._lock = threading.Lock()
        self._initialize()

    def _initialize(self) -> None:
        with self._conn:
            self._conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    email TEXT NOT NULL UNIQUE,
                    password_hash TEXT NOT NULL,
                    first_name TEXT NOT NULL,
                    last_name TEXT NOT NULL,
                    is_verified INTEGER NOT NULL DEFAULT 0,
                    is_admin INTEGER NOT NULL DEFAULT 0,
                    verification_token TEXT UNIQUE,
                    verification_expires_at TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS subscriptions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL UNIQUE,
                    status TEXT NOT NULL DEFAULT 'trial',
                    trial_start_date TEXT NOT NULL,
                    trial_end_date TEXT NOT NULL,
                    stripe_customer_id TEXT,
                    stripe_subscription_id TEXT UNIQUE,
                    stripe_price_id TEXT,
                    stripe_current_period_end TEXT,
                    trial_reminder_sent INTEGER NOT NULL DEFAULT 0,
                    trial_expired_email_sent INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    CHECK (stripe_subscription_id IS NULL OR stripe_customer_id IS NOT NULL),
                    FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
                );

                CREATE INDEX IF NOT EXISTS idx_subscriptions_customer
                    ON subscriptions(stripe_customer_id);

                CREATE INDEX IF NOT EXISTS idx_subscriptions_status_trial_end
                    ON subscriptions(status, trial_end_date);

                CREATE TABLE IF NOT EXISTS contents (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    content_type TEXT NOT NULL,
                    topic TEXT NOT NULL,
                    keywords TEXT,
                    generated_content TEXT NOT NULL,
                    word_count INTEGER NOT NULL,
                    created_at TEXT NOT NULL,
                    FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
                );

                CREATE INDEX IF NOT EXISTS idx_contents_user_created
                    ON contents(user_id, created_at DESC);
                """
            )

    def close(self) -> None:
        self._conn.close()

    # UserRepository API ----------------------------------------------------
    def create_user_with_subscription(
        self,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
        verification_token: Optional[str],
        verification_expires_at: Optional[datetime],
        trial_start_date: datetime,
        trial_end_date: datetime,
    ) -> Tuple[User, Subscription]:
        now = self._now()
        with self._lock, self._conn:
            cur = self._conn.execute(
                """
                INSERT INTO users (
                    email, password_hash, first_name, last_name, is_verified, is_admin,
                    verification_token, verification_expires_at, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, 0, 0, ?, ?, ?, ?)
                """,
                (
                    email.lower(),
                    password_hash,
                    first_name,
                    last_name,
                    verification_token,
                    self._iso(verification_expires_at),
                    now,
                    now,
                ),
            )
            user_id = cur.lastrowid
            self._conn.execute(
                """
                INSERT INTO subscriptions (
                    user_id, status, trial_start_date, trial_end_date, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    user_id,
                    SubscriptionStatus.TRIAL.value,
                    self._iso(trial_start_date),
                    self._iso(trial_end_date),
                    now,
                    now,
                ),
            )
            user_row = self._fetch_one("SELECT * FROM users WHERE id = ?", (user_id,))
            sub_row = self._fetch_one("SELECT * FROM subscriptions WHERE user_id = ?", (user_id,))
        if not user_row or not sub_row:
            raise RuntimeError("Failed to persist user.")
        return self._row_to_user(user_row), self._row_to_subscription(sub_row)

    def get_user_by_id(self, user_id: int) -> Optional[User]:
        with self._lock:
            row = self._fetch_one("SELECT * FROM users WHERE id = ?", (user_id,))
        return self._row_to_user(row) if row else None

    def get_user_by_email(self, email: str) -> Optional[User]:
        with self._lock:
            row = self._fetch_one("SELECT * FROM users WHERE email = ?", (email.lower(),))
        return self._row_to_user(row) if row else None

    def get_user_by_verification_token(self, token: str) -> Optional[User]:
        with self._lock:
            row = self._fetch_one("SELECT * FROM users WHERE verification_token = ?", (token,))
        return self._row_to_user(row) if row else None

    def mark_email_verified(self, user_id: int) -> User:
        with self._lock, self._conn:
            self._conn.execute(
                """
                UPDATE users
                SET is_verified = 1, verification_token = NULL,
                    verification_expires_at = NULL, updated_at = ?
                WHERE id = ?
                """,
                (self._now(), user_id),
            )
            row = self._fetch_one("SELECT * FROM users WHERE id = ?", (user_id,))
        if not row:
            raise LookupError(f"User {user_id} not found.")
        return self._row_to_user(row)

    def update_verification_token(self, user_id: int, token: str, expires_at: datetime) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                """
                UPDATE users
                SET verification_token = ?, verification_expires_at = ?, updated_at = ?
                WHERE id = ?
                """,
                (token, self._iso(expires_at), self._now(), user_id),
            )

    def set_admin(self, user_id: int, is_admin: bool = True) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                "UPDATE users SET is_admin = ?, updated_at = ? WHERE id = ?",
                (int(is_admin), self._now(), user_id),
            )

    def list_users(
        self,
        *,
        search: Optional[str],
        status: Optional[SubscriptionStatus],
        sort_by: str,
        descending: bool,
        offset: int,
        limit: int,
    ) -> Tuple[List[UserSummary], int]:
        column = _USER_SORT_COLUMNS.get(sort_by)
        if column is None:
            raise ValueError(f"Cannot sort users by {sort_by!r}.")
        clauses: List[str] = []
        params: List[Any] = []
        if search:
            pattern = f"%{search}%"
            clauses.append("(u.email LIKE ? OR u.first_name LIKE ? OR u.last_name LIKE ?)")
            params.extend([pattern, pattern, pattern])
        if status is not None:
            clauses.append("s.status = ?")
            params.append(status.value)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        base = f"FROM users u LEFT JOIN subscriptions s ON s.user_id = u.id {where}"
        direction = "DESC" if descending else "ASC"

        with self._lock:
            total = self._conn.execute(f"SELECT COUNT(*) {base}", params).fetchone()[0]
            user_rows = self._conn.execute(
                f"SELECT u.* {base} ORDER BY {column} {direction}, u.id {direction} LIMIT ? OFFSET ?",
                [*params, limit, offset],
            ).fetchall()
            user_ids = [row["id"] for row in user_rows]
            subscriptions: Dict[int, Subscription] = {}
            counts: Dict[int, int] = {}
            if user_ids:
                placeholders = ", ".join("?" for _ in user_ids)
                for row in self._conn.execute(
                    f"SELECT * FROM subscriptions WHERE user_id IN ({placeholders})", user_ids
                ):
                    subscriptions[row["user_id"]] = self._row_to_subscription(row)
                for row in self._conn.execute(
                    f"""
                    SELECT user_id, COUNT(*) AS total FROM contents
                    WHERE user_id IN ({placeholders}) GROUP BY user_id
                    """,
                    user_ids,
                ):
                    counts[row["user_id"]] = row["total"]

        summaries = [
            UserSummary(
                user=self._row_to_user(row),
                subscription=subscriptions.get(row["id"]),
                content_count=counts.get(row["id"], 0),
            )
            for row in user_rows
        ]
        return summaries, total

    def count_users(self, created_since: Optional[datetime] = None) -> int:
        query = "SELECT COUNT(*) FROM users"
        params: List[Any] = []
        if created_since is not None:
            query += " WHERE created_at >= ?"
            params.append(self._iso(created_since))
        with self._lock:
            return self._conn.execute(query, params).fetchone()[0]

    # SubscriptionStore API -------------------------------------------------
    def get_subscription_by_user_id(self, user_id: int) -> Optional[Subscription]:
        return self._get_subscription("user_id", user_id)

    def get_subscription_by_stripe_subscription_id(self, stripe_subscription_id: str) -> Optional[Subscription]:
        return self._get_subscription("stripe_subscription_id", stripe_subscription_id)

    def get_subscription_by_customer_id(self, stripe_customer_id: str) -> Optional[Subscription]:
        return self._get_subscription("stripe_customer_id", stripe_customer_id)

    def activate_subscription(
        self, user_id: int, stripe_customer_id: str, stripe_subscription_id: str
    ) -> Optional[Subscription]:
        return self._update_subscription(
            "user_id = ?",
            (user_id,),
            stripe_customer_id=stripe_customer_id,
            stripe_subscription_id=stripe_subscription_id,
            status=SubscriptionStatus.ACTIVE.value,
        )

    def sync_stripe_subscription(
        self,
        stripe_subscription_id: str,
        *,
        status: SubscriptionStatus,
        stripe_price_id: Optional[str],
        current_period_end: Optional[datetime],
    ) -> Optional[Subscription]:
        return self._update_subscription(
            "stripe_subscription_id = ?",
            (stripe_subscription_id,),
            status=status.value,
            stripe_price_id=stripe_price_id,
            stripe_current_period_end=self._iso(current_period_end),
        )

    def detach_stripe_subscription(self, stripe_subscription_id: str) -> Optional[Subscription]:
        return self._update_subscription(
            "stripe_subscription_id = ?",
            (stripe_subscription_id,),
            status=SubscriptionStatus.CANCELED.value,
            stripe_subscription_id=None,
        )

    def set_status_for_customer(
        self,
        stripe_customer_id: str,
        status: SubscriptionStatus,
        *,
        only_from: Optional[SubscriptionStatus] = None,
    ) -> Optional[Subscription]:
        condition = "stripe_customer_id = ?"
        params: Tuple[Any, ...] = (stripe_customer_id,)
        if only_from is not None:
            condition += " AND status = ?"
            params += (only_from.value,)
        return self._update_subscription(condition, params, status=status.value)

    def set_status(self, subscription_id: int, status: SubscriptionStatus) -> Subscription:
        updated = self._update_subscription("id = ?", (subscription_id,), status=status.value)
        if updated is None:
            raise LookupError(f"Subscription {subscription_id} not found.")
        return updated

    def expire_trial(self, subscription_id: int, now: datetime) -> bool:
        return self._conditional_update(
            """
            UPDATE subscriptions SET status = ?, updated_at = ?
            WHERE id = ? AND status = ? AND trial_end_date < ?
            """,
            (
                SubscriptionStatus.EXPIRED.value,
                self._now(),
                subscription_id,
                SubscriptionStatus.TRIAL.value,
                self._iso(now),
            ),
        )

    def list_trials_for_reminder(
        self, window_start: datetime, window_end: datetime
    ) -> List[Tuple[Subscription, User]]:
        return self._list_trials_with_users(
            """
            s.status = ? AND s.trial_reminder_sent = 0
            AND s.trial_end_date >= ? AND s.trial_end_date < ?
            """,
            (SubscriptionStatus.TRIAL.value, self._iso(window_start), self._iso(window_end)),
        )

    def list_trials_for_expiry_notice(
        self, window_start: datetime, window_end: datetime
    ) -> List[Tuple[Subscription, User]]:
        return self._list_trials_with_users(
            """
            s.status = ? AND s.trial_expired_email_sent = 0
            AND s.trial_end_date >= ? AND s.trial_end_date <= ?
            AND s.stripe_subscription_id IS NULL
            """,
            (SubscriptionStatus.TRIAL.value, self._iso(window_start), self._iso(window_end)),
        )

    def claim_trial_reminder(self, subscription_id: int) -> bool:
        return self._set_flag("trial_reminder_sent", subscription_id, claimed=True)

    def release_trial_reminder(self, subscription_id: int) -> None:
        self._set_flag("trial_reminder_sent", subscription_id, claimed=False)

    def claim_trial_expired_email(self, subscription_id: int) -> bool:
        return self._set_flag("trial_expired_email_sent", subscription_id, claimed=True)

    def release_trial_expired_email(self, subscription_id: int) -> None:
        self._set_flag("trial_expired_email_sent", subscription_id, claimed=False)

    def mark_trial_expired(self, subscription_id: int) -> bool:
        return self._conditional_update(
            "UPDATE subscriptions SET status = ?, updated_at = ? WHERE id = ? AND status = ?",
            (
                SubscriptionStatus.EXPIRED.value,
                self._now(),
                subscription_id,
                SubscriptionStatus.TRIAL.value,
            ),
        )

    def count_subscriptions(self, status: SubscriptionStatus) -> int:
        with self._lock:
            return self._conn.execute(
                "SELECT COUNT(*) FROM subscriptions WHERE status = ?", (status.value,)
            ).fetchone()[0]

    def count_active_trials(self, now: datetime) -> int:
        with self._lock:
            return self._conn.execute(
                "SELECT COUNT(*) FROM subscriptions WHERE status = ? AND trial_end_date > ?",
                (SubscriptionStatus.TRIAL.value, self._iso(now)),
            ).fetchone()[0]

    # ContentRepository API -------------------------------------------------
    def create_content(
        self,
        user_id: int,
        content_type: str,
        topic: str,
        keywords: Optional[str],
        generated_content: str,
        word_count: int,
    ) -> Content:
        with self._lock, self._conn:
            cur = self._conn.execute(
                """
                INSERT INTO contents (
                    user_id, content_type, topic, keywords, generated_content, word_count, created_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (user_id, content_type, topic, keywords, generated_content, word_count, self._now()),
            )
            row = self._fetch_one("SELECT * FROM contents WHERE id = ?", (cur.lastrowid,))
        if not row:
            raise RuntimeError("Failed to persist content.")
        return self._row_to_content(row)

    def list_content(
        self,
        user_id: int,
        *,
        content_type: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[Content], int]:
        condition = "user_id = ?"
        params: List[Any] = [user_id]
        if content_type:
            condition += " AND content_type = ?"
            params.append(content_type)
        with self._lock:
            total = self._conn.execute(
                f"SELECT COUNT(*) FROM contents WHERE {condition}", params
            ).fetchone()[0]
            rows = self._conn.execute(
                f"""
                SELECT * FROM contents WHERE {condition}
                ORDER BY created_at DESC, id DESC LIMIT ? OFFSET ?
                """,
                [*params, limit, offset],
            ).fetchall()
        return [self._row_to_content(row) for row in rows], total

    def get_content(self, content_id: int, user_id: int) -> Optional[Content]:
        with self._lock:
            row = self._fetch_one(
                "SELECT * FROM contents WHERE id = ? AND user_id = ?", (content_id, user_id)
            )
        return self._row_to_content(row) if row else None

    def delete_content(self, content_id: int, user_id: int) -> bool:
        with self._lock, self._conn:
            cur = self._conn.execute(
                "DELETE FROM contents WHERE id = ? AND user_id = ?", (content_id, user_id)
            )
            return cur.rowcount > 0

    def get_content_stats(self, user_id: int) -> List[ContentTypeStats]:
        with self._lock:
            rows = self._conn.execute(
                """
                SELECT content_type, COUNT(*) AS total, COALESCE(SUM(word_count), 0) AS words
                FROM contents WHERE user_id = ?
                GROUP BY content_type ORDER BY content_type
                """,
                (user_id,),
            ).fetchall()
        return [
            ContentTypeStats(content_type=row["content_type"], count=row["total"], total_words=row["words"])
            for row in rows
        ]

    def count_content(self, created_since: Optional[datetime] = None) -> int:
        query = "SELECT COUNT(*) FROM contents"
        params: List[Any] = []
        if created_since is not None:
            query += " WHERE created_at >= ?"
            params.append(self._iso(created_since))
        with self._lock:
            return self._conn.execute(query, params).fetchone()[0]

    # Helpers ----------------------------------------------------------------
    def _fetch_one(self, query: str, params: Tuple[Any, ...]) -> Optional[sqlite3.Row]:
        return self._conn.execute(query, params).fetchone()

    def _get_subscription(self, column: str, value: Any) -> Optional[Subscription]:
        with self._lock:
            row = self._fetch_one(f"SELECT * FROM subscriptions WHERE {column} = ?", (value,))
        return self._row_to_subscription(row) if row else None

    def _update_subscription(
        self, condition: str, params: Tuple[Any, ...], **fields: Any
    ) -> Optional[Subscription]:
        assignments = ", ".join(f"{name} = ?" for name in fields)
        values = [*fields.values(), self._now()]
        with self._lock, self._conn:
            row = self._fetch_one(f"SELECT id FROM subscriptions WHERE {condition}", params)
            if not row:
                return None
            self._conn.execute(
                f"UPDATE subscriptions SET {assignments}, updated_at = ? WHERE id = ?",
                (*values, row["id"]),
            )
            updated = self._fetch_one("SELECT * FROM subscriptions WHERE id = ?", (row["id"],))
        return self._row_to_subscription(updated) if updated else None

    def _conditional_update(self, statement: str, params: Tuple[Any, ...]) -> bool:
        with self._lock, self._conn:
            cur = self._conn.execute(statement, params)
            return cur.rowcount == 1

    def _set_flag(self, column: str, subscription_id: int, *, claimed: bool) -> bool:
        return self._conditional_update(
            f"UPDATE subscriptions SET {column} = ?, updated_at = ? WHERE id = ? AND {column} = ?",
            (int(claimed), self._now(), subscription_id, int(not claimed)),
        )

    def _list_trials_with_users(
        self, condition: str, params: Tuple[Any, ...]
    ) -> List[Tuple[Subscription, User]]:
        with self._lock:
            sub_rows = self._conn.execute(
                f"SELECT s.* FROM subscriptions s WHERE {condition} ORDER BY s.trial_end_date ASC",
                params,
            ).fetchall()
            pairs = []
            for sub_row in sub_rows:
                user_row = self._fetch_one("SELECT * FROM users WHERE id = ?", (sub_row["user_id"],))
                if user_row:
                    pairs.append((self._row_to_subscription(sub_row), self._row_to_user(user_row)))
        return pairs

    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat(timespec="microseconds")

    @staticmethod
    def _iso(value: Optional[datetime]) -> Optional[str]:
        # Fixed-width UTC text keeps string comparison in SQL equal to time order.
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat(timespec="microseconds")

    @staticmethod
    def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
        if not value:
            return None
        try:
            result = datetime.fromisoformat(value)
        except ValueError:
            # Fallback for legacy formats without 'T'
            result = datetime.strptime(value, "%Y-%m-%d %H:%M:%S")
        if result.tzinfo is None:
            return result.replace(tzinfo=timezone.utc)
        return result.astimezone(timezone.utc)

    def _row_to_user(self, row: sqlite3.Row) -> User:
        return User(
            id=row["id"],
            email=row["email"],
            password_hash=row["password_hash"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            is_verified=bool(row["is_verified"]),
            is_admin=bool(row["is_admin"]),
            verification_token=row["verification_token"],
            verification_expires_at=self._parse_datetime(row["verification_expires_at"]),
            created_at=self._parse_datetime(row["created_at"]),
            updated_at=self._parse_datetime(row["updated_at"]),
        )

    def _row_to_subscription(self, row: sqlite3.Row) -> Subscription:
        return Subscription(
            id=row["id"],
            user_id=row["user_id"],
            status=SubscriptionStatus(row["status"]),
            trial_start_date=self._parse_datetime(row["trial_start_date"]),
            trial_end_date=self._parse_datetime(row["trial_end_date"]),
            stripe_customer_id=row["stripe_customer_id"],
            stripe_subscription_id=row["stripe_subscription_id"],
            stripe_price_id=row["stripe_price_id"],
            stripe_current_period_end=self._parse_datetime(row["stripe_current_period_end"]),
            trial_reminder_sent=bool(row["trial_reminder_sent"]),
            trial_expired_email_sent=bool(row["trial_expired_email_sent"]),
            created_at=self._parse_datetime(row["created_at"]),
            updated_at=self._parse_datetime(row["updated_at"]),
        )

    def _row_to_content(self, row: sqlite3.Row) -> Content:
        return Content(
            id=row["id"],
            user_id=row["user_id"],
            content_type=row["content_type"],
            topic=row["topic"],
            keywords=row["keywords"],
            generated_content=row["generated_content"],
            word_count=row["word_count"],
            created_at=self._parse_datetime(row["created_at"]),
        )
