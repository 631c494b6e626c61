"""SQLite storage for groups, members, expenses and payments."""

import json
import secrets
import sqlite3
import string
import uuid
from datetime import datetime
from pathlib import Path

from .models import Expense, Group, Member, Payment


def new_id() -> str:
    """Generate a new record id."""
    return uuid.uuid4().hex


def generate_code(length: int = 6) -> str:
    """Generate a join code of uppercase letters and digits."""
    alphabet = string.ascii_uppercase + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))


class Database:
    """SQLite database manager."""

    def __init__(self, db_path: Path):
        """Initialize database connection."""
        self.db_path = db_path
        self.conn = sqlite3.connect(str(db_path))
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA foreign_keys = ON")
        self._init_schema()

    def _init_schema(self):
        """Initialize database schema."""
        cursor = self.conn.cursor()

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS ledger_groups (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                code TEXT,
                is_private INTEGER NOT NULL DEFAULT 0,
                archived INTEGER NOT NULL DEFAULT 0,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

        # Members keep join order through the rowid
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS members (
                id TEXT PRIMARY KEY,
                group_id TEXT NOT NULL REFERENCES ledger_groups(id) ON DELETE CASCADE,
                name TEXT NOT NULL,
                joined_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS expenses (
                id TEXT PRIMARY KEY,
                group_id TEXT NOT NULL REFERENCES ledger_groups(id) ON DELETE CASCADE,
                description TEXT NOT NULL,
                amount REAL NOT NULL,
                paid_by TEXT NOT NULL,
                participants TEXT NOT NULL,
                split_mode TEXT NOT NULL DEFAULT 'equally',
                split_data TEXT,
                date TIMESTAMP NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS payments (
                id TEXT PRIMARY KEY,
                group_id TEXT NOT NULL REFERENCES ledger_groups(id) ON DELETE CASCADE,
                from_name TEXT NOT NULL,
                to_name TEXT NOT NULL,
                amount REAL NOT NULL,
                date TIMESTAMP NOT NULL,
                registered_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

        self.conn.commit()

    def close(self):
        """Close database connection."""
        self.conn.close()

    # ========================================================================
    # Group operations
    # ========================================================================

    def create_group(
        self,
        name: str,
        member_names: list[str],
        is_private: bool = False,
        code: str | None = None,
    ) -> Group:
        """Create a group together with its initial members."""
        group = Group(
            id=new_id(), name=name, code=code or generate_code(), is_private=is_private
        )
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO ledger_groups (id, name, code, is_private, archived, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                group.id,
                group.name,
                group.code,
                int(group.is_private),
                int(group.archived),
                group.created_at.isoformat(),
            ),
        )
        self.conn.commit()

        for member_name in member_names:
            group.members.append(self.add_member(group.id, member_name))

        return group

    def get_group(self, group_id: str) -> Group | None:
        """Get a group and its members by id."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT id, name, code, is_private, archived, created_at
            FROM ledger_groups
            WHERE id = ?
            """,
            (group_id,),
        )
        row = cursor.fetchone()
        if not row:
            return None

        return self._group_from_row(row)

    def list_groups(self) -> list[Group]:
        """Get all groups, oldest first."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT id, name, code, is_private, archived, created_at
            FROM ledger_groups
            ORDER BY created_at, rowid
            """
        )
        return [self._group_from_row(row) for row in cursor.fetchall()]

    def update_group(self, group: Group):
        """Save a group's name, visibility and archived flag."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            UPDATE ledger_groups
            SET name = ?, is_private = ?, archived = ?
            WHERE id = ?
            """,
            (group.name, int(group.is_private), int(group.archived), group.id),
        )
        self.conn.commit()

    def _group_from_row(self, row: sqlite3.Row) -> Group:
        return Group(
            id=row["id"],
            name=row["name"],
            code=row["code"],
            members=self.get_members(row["id"]),
            is_private=bool(row["is_private"]),
            archived=bool(row["archived"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    # ========================================================================
    # Member operations
    # ========================================================================

    def add_member(self, group_id: str, name: str) -> Member:
        """Add a member to a group."""
        member = Member(id=new_id(), name=name)
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO members (id, group_id, name, joined_at)
            VALUES (?, ?, ?, ?)
            """,
            (member.id, group_id, member.name, member.joined_at.isoformat()),
        )
        self.conn.commit()
        return member

    def remove_member(self, group_id: str, member_id: str) -> bool:
        """Remove a member from a group. Returns True if a row was removed."""
        cursor = self.conn.cursor()
        cursor.execute(
            "DELETE FROM members WHERE group_id = ? AND id = ?",
            (group_id, member_id),
        )
        self.conn.commit()
        return cursor.rowcount > 0

    def get_members(self, group_id: str) -> list[Member]:
        """Get a group's members in join order."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT id, name, joined_at
            FROM members
            WHERE group_id = ?
            ORDER BY rowid
            """,
            (group_id,),
        )
        return [
            Member(
                id=row["id"],
                name=row["name"],
                joined_at=datetime.fromisoformat(row["joined_at"]),
            )
            for row in cursor.fetchall()
        ]

    # ========================================================================
    # Expense operations
    # ========================================================================

    def save_expense(self, expense: Expense) -> Expense:
        """Insert or replace an expense, assigning an id if it has none."""
        if not expense.id:
            expense = expense.model_copy(update={"id": new_id()})

        split_data = expense.split_data
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO expenses (
                id, group_id, description, amount, paid_by, participants,
                split_mode, split_data, date, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                description = excluded.description,
                amount = excluded.amount,
                paid_by = excluded.paid_by,
                participants = excluded.participants,
                split_mode = excluded.split_mode,
                split_data = excluded.split_data,
                date = excluded.date
            """,
            (
                expense.id,
                expense.group_id,
                expense.description,
                expense.amount,
                expense.paid_by,
                json.dumps(expense.participants),
                expense.split_mode,
                json.dumps(split_data) if split_data is not None else None,
                expense.date.isoformat(),
                expense.created_at.isoformat(),
            ),
        )
        self.conn.commit()
        return expense

    def get_expense(self, expense_id: str) -> Expense | None:
        """Get an expense by id."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT * FROM expenses WHERE id = ?", (expense_id,))
        row = cursor.fetchone()
        return self._expense_from_row(row) if row else None

    def get_expenses_by_group(self, group_id: str) -> list[Expense]:
        """Get a group's expenses, oldest first."""
        cursor = self.conn.cursor()
        cursor.execute(
            "SELECT * FROM expenses WHERE group_id = ? ORDER BY date, rowid",
            (group_id,),
        )
        return [self._expense_from_row(row) for row in cursor.fetchall()]

    def delete_expense(self, expense_id: str) -> bool:
        """Delete an expense. Returns True if a row was removed."""
        cursor = self.conn.cursor()
        cursor.execute("DELETE FROM expenses WHERE id = ?", (expense_id,))
        self.conn.commit()
        return cursor.rowcount > 0

    def _expense_from_row(self, row: sqlite3.Row) -> Expense:
        return Expense(
            id=row["id"],
            group_id=row["group_id"],
            description=row["description"],
            amount=row["amount"],
            paid_by=row["paid_by"],
            participants=json.loads(row["participants"]),
            split_mode=row["split_mode"],
            split_data=json.loads(row["split_data"]) if row["split_data"] else None,
            date=datetime.fromisoformat(row["date"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    # ========================================================================
    # Payment operations
    # ========================================================================

    def save_payment(self, payment: Payment) -> Payment:
        """Insert a payment, assigning an id if it has none."""
        if not payment.id:
            payment = payment.model_copy(update={"id": new_id()})

        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO payments (
                id, group_id, from_name, to_name, amount, date, registered_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                payment.id,
                payment.group_id,
                payment.from_member,
                payment.to_member,
                payment.amount,
                payment.date.isoformat(),
                payment.registered_at.isoformat(),
            ),
        )
        self.conn.commit()
        return payment

    def get_payments_by_group(self, group_id: str) -> list[Payment]:
        """Get a group's payments, oldest first."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT id, group_id, from_name, to_name, amount, date, registered_at
            FROM payments
            WHERE group_id = ?
            ORDER BY date, rowid
            """,
            (group_id,),
        )
        return [
            Payment(
                id=row["id"],
                group_id=row["group_id"],
                from_member=row["from_name"],
                to_member=row["to_name"],
                amount=row["amount"],
                date=datetime.fromisoformat(row["date"]),
                registered_at=datetime.fromisoformat(row["registered_at"]),
            )
            for row in cursor.fetchall()
        ]

    def delete_payment(self, payment_id: str) -> bool:
        """Delete a payment. Returns True if a row was removed."""
        cursor = self.conn.cursor()
        cursor.execute("DELETE FROM payments WHERE id = ?", (payment_id,))
        self.conn.commit()
        return cursor.rowcount > 0
