import sqlite3
import threading
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from ...domain.exceptions import EmailAlreadyExistsError, PhoneAlreadyExistsError
from ...domain.models import (
    Conversation,
    Farmer,
    Message,
    Order,
    OrderItem,
    OrderStatus,
    Product,
    RefreshToken,
    Role,
    User,
    UserInfo,
)
from ...domain.ports.persistence import PersistenceGateway


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
                    role TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS user_info (
                    user_id INTEGER PRIMARY KEY,
                    first_name TEXT NOT NULL,
                    last_name TEXT NOT NULL,
                    phone_number TEXT NOT NULL UNIQUE,
                    birth_date TEXT,
                    gender TEXT,
                    FOREIGN KEY(user_id) REFERENCES users(id)
                );

                CREATE TABLE IF NOT EXISTS farmers (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL UNIQUE,
                    farm_name TEXT NOT NULL,
                    farm_location TEXT,
                    bio TEXT,
                    is_verified INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    FOREIGN KEY(user_id) REFERENCES users(id)
                );

                CREATE TABLE IF NOT EXISTS refresh_tokens (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    token_hash TEXT NOT NULL UNIQUE,
                    expires_at TEXT NOT NULL,
                    revoked INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
                );

                CREATE INDEX IF NOT EXISTS idx_refresh_tokens_user
                    ON refresh_tokens(user_id, revoked);

                CREATE TABLE IF NOT EXISTS products (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    farmer_id INTEGER NOT NULL,
                    name TEXT NOT NULL,
                    description TEXT,
                    price REAL NOT NULL,
                    unit TEXT NOT NULL,
                    minimum_order_quantity REAL NOT NULL DEFAULT 1,
                    max_available_quantity REAL,
                    is_in_stock INTEGER NOT NULL DEFAULT 1,
                    is_organic INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    FOREIGN KEY(farmer_id) REFERENCES farmers(id)
                );

                CREATE TABLE IF NOT EXISTS orders (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    customer_id INTEGER NOT NULL,
                    status TEXT NOT NULL,
                    total_price REAL NOT NULL,
                    notes TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    FOREIGN KEY(customer_id) REFERENCES users(id)
                );

                CREATE INDEX IF NOT EXISTS idx_orders_customer
                    ON orders(customer_id, created_at DESC);

                CREATE TABLE IF NOT EXISTS order_items (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    order_id INTEGER NOT NULL,
                    product_id INTEGER NOT NULL,
                    quantity REAL NOT NULL,
                    price REAL NOT NULL,
                    FOREIGN KEY(order_id) REFERENCES orders(id) ON DELETE CASCADE,
                    FOREIGN KEY(product_id) REFERENCES products(id)
                );

                CREATE INDEX IF NOT EXISTS idx_order_items_order
                    ON order_items(order_id);

                CREATE TABLE IF NOT EXISTS conversations (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    initiator_id INTEGER NOT NULL,
                    recipient_id INTEGER NOT NULL,
                    participant_low INTEGER NOT NULL,
                    participant_high INTEGER NOT NULL,
                    product_id INTEGER,
                    title TEXT,
                    is_active INTEGER NOT NULL DEFAULT 1,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    deleted_at TEXT,
                    UNIQUE(participant_low, participant_high),
                    FOREIGN KEY(initiator_id) REFERENCES users(id),
                    FOREIGN KEY(recipient_id) REFERENCES users(id),
                    FOREIGN KEY(product_id) REFERENCES products(id)
                );

                CREATE TABLE IF NOT EXISTS messages (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    conversation_id INTEGER NOT NULL,
                    sender_id INTEGER NOT NULL,
                    content TEXT NOT NULL,
                    is_read INTEGER NOT NULL DEFAULT 0,
                    last_notification_sent TEXT,
                    created_at TEXT NOT NULL,
                    deleted_at TEXT,
                    FOREIGN KEY(conversation_id) REFERENCES conversations(id),
                    FOREIGN KEY(sender_id) REFERENCES users(id)
                );

                CREATE INDEX IF NOT EXISTS idx_messages_conversation
                    ON messages(conversation_id, created_at);

                CREATE INDEX IF NOT EXISTS idx_messages_unread
                    ON messages(is_read, created_at);
                """
            )

    def close(self) -> None:
        self._conn.close()

    # UserRepository API ----------------------------------------------------
    def get_user_by_email(self, email: str) -> Optional[User]:
        with self._lock:
            cur = self._conn.execute("SELECT * FROM users WHERE email = ?", (email.lower(),))
            row = cur.fetchone()
        return self._row_to_user(row) if row else None

    def get_user_by_id(self, user_id: int) -> Optional[User]:
        with self._lock:
            cur = self._conn.execute("SELECT * FROM users WHERE id = ?", (user_id,))
            row = cur.fetchone()
        return self._row_to_user(row) if row else None

    def phone_number_exists(self, phone_number: str) -> bool:
        with self._lock:
            cur = self._conn.execute(
                "SELECT 1 FROM user_info WHERE phone_number = ?", (phone_number,)
            )
            return cur.fetchone() is not None

    def create_user(self, email: str, password_hash: str, role: Role) -> User:
        now = self._now()
        with self._lock, self._conn:
            user_id = self._insert_user_locked(email, password_hash, role, now)
            cur = self._conn.execute("SELECT * FROM users WHERE id = ?", (user_id,))
            row = cur.fetchone()
        if not row:
            raise RuntimeError("Failed to persist user.")
        return self._row_to_user(row)

    def create_account(
        self,
        email: str,
        password_hash: str,
        role: Role,
        *,
        first_name: str,
        last_name: str,
        phone_number: str,
        birth_date: Optional[date] = None,
        gender: Optional[str] = None,
        farm_name: Optional[str] = None,
        farm_location: Optional[str] = None,
        bio: Optional[str] = None,
    ) -> User:
        now = self._now()
        try:
            return self._create_account(
                email,
                password_hash,
                role,
                now,
                first_name=first_name,
                last_name=last_name,
                phone_number=phone_number,
                birth_date=birth_date,
                gender=gender,
                farm_name=farm_name,
                farm_location=farm_location,
                bio=bio,
            )
        except sqlite3.IntegrityError as exc:
            # A concurrent registration won the race past the service checks.
            if "phone_number" in str(exc):
                raise PhoneAlreadyExistsError(phone_number) from exc
            if "email" in str(exc):
                raise EmailAlreadyExistsError(email) from exc
            raise

    def _create_account(
        self,
        email: str,
        password_hash: str,
        role: Role,
        now: str,
        *,
        first_name: str,
        last_name: str,
        phone_number: str,
        birth_date: Optional[date],
        gender: Optional[str],
        farm_name: Optional[str],
        farm_location: Optional[str],
        bio: Optional[str],
    ) -> User:
        with self._lock, self._conn:
            user_id = self._insert_user_locked(email, password_hash, role, now)
            self._conn.execute(
                """
                INSERT INTO user_info (
                    user_id, first_name, last_name, phone_number, birth_date, gender
                )
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    user_id,
                    first_name,
                    last_name,
                    phone_number,
                    birth_date.isoformat() if birth_date else None,
                    gender,
                ),
            )
            if role is Role.FARMER:
                self._conn.execute(
                    """
                    INSERT INTO farmers (user_id, farm_name, farm_location, bio, is_verified, created_at)
                    VALUES (?, ?, ?, ?, 0, ?)
                    """,
                    (user_id, farm_name or f"{first_name} {last_name}", farm_location, bio, now),
                )
            cur = self._conn.execute("SELECT * FROM users WHERE id = ?", (user_id,))
            row = cur.fetchone()
        if not row:
            raise RuntimeError("Failed to persist account.")
        return self._row_to_user(row)

    def update_user_password(self, user_id: int, password_hash: str) -> User:
        now = self._now()
        with self._lock, self._conn:
            self._conn.execute(
                "UPDATE users SET password_hash = ?, updated_at = ? WHERE id = ?",
                (password_hash, now, user_id),
            )
            cur = self._conn.execute("SELECT * FROM users WHERE id = ?", (user_id,))
            row = cur.fetchone()
        if not row:
            raise ValueError(f"User {user_id} not found.")
        return self._row_to_user(row)

    def get_user_info(self, user_id: int) -> Optional[UserInfo]:
        with self._lock:
            cur = self._conn.execute("SELECT * FROM user_info WHERE user_id = ?", (user_id,))
            row = cur.fetchone()
        if not row:
            return None
        return UserInfo(
            user_id=row["user_id"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            phone_number=row["phone_number"],
            birth_date=date.fromisoformat(row["birth_date"]) if row["birth_date"] else None,
            gender=row["gender"],
        )

    def get_farmer_by_user_id(self, user_id: int) -> Optional[Farmer]:
        with self._lock:
            cur = self._conn.execute("SELECT * FROM farmers WHERE user_id = ?", (user_id,))
            row = cur.fetchone()
        if not row:
            return None
        return Farmer(
            id=row["id"],
            user_id=row["user_id"],
            farm_name=row["farm_name"],
            farm_location=row["farm_location"],
            bio=row["bio"],
            is_verified=bool(row["is_verified"]),
            created_at=self._parse_datetime(row["created_at"]),
        )

    def _insert_user_locked(self, email: str, password_hash: str, role: Role, now: str) -> int:
        cur = self._conn.execute(
            """
            INSERT INTO users (email, password_hash, role, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (email.lower(), password_hash, role.value, now, now),
        )
        return cur.lastrowid

    # RefreshTokenRepository API --------------------------------------------
    def create_refresh_token(self, user_id: int, token_hash: str, expires_at: datetime) -> RefreshToken:
        with self._lock, self._conn:
            token_id = self._insert_refresh_token_locked(user_id, token_hash, expires_at)
            cur = self._conn.execute("SELECT * FROM refresh_tokens WHERE id = ?", (token_id,))
            row = cur.fetchone()
        if not row:
            raise RuntimeError("Failed to persist refresh token.")
        return self._row_to_refresh_token(row)

    def get_refresh_token(self, token_id: int) -> Optional[RefreshToken]:
        with self._lock:
            cur = self._conn.execute("SELECT * FROM refresh_tokens WHERE id = ?", (token_id,))
            row = cur.fetchone()
        return self._row_to_refresh_token(row) if row else None

    def get_refresh_token_by_hash(self, token_hash: str) -> Optional[RefreshToken]:
        with self._lock:
            cur = self._conn.execute(
                "SELECT * FROM refresh_tokens WHERE token_hash = ?", (token_hash,)
            )
            row = cur.fetchone()
        return self._row_to_refresh_token(row) if row else None

    def revoke_refresh_token(self, token_id: int) -> bool:
        with self._lock, self._conn:
            cur = self._conn.execute(
                "UPDATE refresh_tokens SET revoked = 1, updated_at = ? WHERE id = ? AND revoked = 0",
                (self._now(), token_id),
            )
            return cur.rowcount > 0

    def revoke_all_refresh_tokens(self, user_id: int) -> int:
        with self._lock, self._conn:
            cur = self._conn.execute(
                "UPDATE refresh_tokens SET revoked = 1, updated_at = ? WHERE user_id = ? AND revoked = 0",
                (self._now(), user_id),
            )
            return cur.rowcount

    def rotate_refresh_token(
        self,
        token_id: int,
        new_token_hash: str,
        expires_at: datetime,
    ) -> Optional[RefreshToken]:
        with self._lock, self._conn:
            cur = self._conn.execute(
                "UPDATE refresh_tokens SET revoked = 1, updated_at = ? WHERE id = ? AND revoked = 0",
                (self._now(), token_id),
            )
            if cur.rowcount == 0:
                return None
            cur = self._conn.execute("SELECT user_id FROM refresh_tokens WHERE id = ?", (token_id,))
            user_id = cur.fetchone()["user_id"]
            new_id = self._insert_refresh_token_locked(user_id, new_token_hash, expires_at)
            cur = self._conn.execute("SELECT * FROM refresh_tokens WHERE id = ?", (new_id,))
            row = cur.fetchone()
        return self._row_to_refresh_token(row)

    def get_active_refresh_tokens(self, user_id: int, now: datetime) -> List[RefreshToken]:
        with self._lock:
            cur = self._conn.execute(
                """
                SELECT * FROM refresh_tokens
                WHERE user_id = ? AND revoked = 0 AND expires_at > ?
                ORDER BY created_at DESC, id DESC
                """,
                (user_id, self._to_iso(now)),
            )
            rows = cur.fetchall()
        return [self._row_to_refresh_token(row) for row in rows]

    def _insert_refresh_token_locked(self, user_id: int, token_hash: str, expires_at: datetime) -> int:
        now = self._now()
        cur = self._conn.execute(
            """
            INSERT INTO refresh_tokens (user_id, token_hash, expires_at, revoked, created_at, updated_at)
            VALUES (?, ?, ?, 0, ?, ?)
            """,
            (user_id, token_hash, self._to_iso(expires_at), now, now),
        )
        return cur.lastrowid

    # ProductRepository API -------------------------------------------------
    _PRODUCT_SELECT = """
        SELECT p.*, f.user_id AS farmer_user_id, f.farm_name AS farm_name
        FROM products p
        JOIN farmers f ON f.id = p.farmer_id
    """

    def create_product(
        self,
        farmer_id: int,
        name: str,
        description: Optional[str],
        price: float,
        unit: str,
        minimum_order_quantity: float,
        max_available_quantity: Optional[float],
        is_in_stock: bool,
        is_organic: bool,
    ) -> Product:
        now = self._now()
        with self._lock, self._conn:
            cur = self._conn.execute(
                """
                INSERT INTO products (
                    farmer_id, name, description, price, unit, minimum_order_quantity,
                    max_available_quantity, is_in_stock, is_organic, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    farmer_id,
                    name,
                    description,
                    price,
                    unit,
                    minimum_order_quantity,
                    max_available_quantity,
                    int(is_in_stock),
                    int(is_organic),
                    now,
                    now,
                ),
            )
            product_id = cur.lastrowid
            cur = self._conn.execute(self._PRODUCT_SELECT + " WHERE p.id = ?", (product_id,))
            row = cur.fetchone()
        if not row:
            raise RuntimeError("Failed to persist product.")
        return self._row_to_product(row)

    def get_product(self, product_id: int) -> Optional[Product]:
        with self._lock:
            cur = self._conn.execute(self._PRODUCT_SELECT + " WHERE p.id = ?", (product_id,))
            row = cur.fetchone()
        return self._row_to_product(row) if row else None

    def update_product(
        self,
        product_id: int,
        *,
        price: Optional[float] = None,
        minimum_order_quantity: Optional[float] = None,
        max_available_quantity: Optional[float] = None,
        is_in_stock: Optional[bool] = None,
    ) -> Product:
        updates = []
        params: List[Any] = []
        if price is not None:
            updates.append("price = ?")
            params.append(price)
        if minimum_order_quantity is not None:
            updates.append("minimum_order_quantity = ?")
            params.append(minimum_order_quantity)
        if max_available_quantity is not None:
            updates.append("max_available_quantity = ?")
            params.append(max_available_quantity)
        if is_in_stock is not None:
            updates.append("is_in_stock = ?")
            params.append(int(is_in_stock))

        if updates:
            updates.append("updated_at = ?")
            params.append(self._now())
            params.append(product_id)
            statement = f"UPDATE products SET {', '.join(updates)} WHERE id = ?"
            with self._lock, self._conn:
                self._conn.execute(statement, params)
        product = self.get_product(product_id)
        if product is None:
            raise ValueError(f"Product {product_id} not found.")
        return product

    # OrderRepository API ---------------------------------------------------
    _ORDER_SELECT = """
        SELECT o.*, u.email AS customer_email,
               ui.first_name AS customer_first_name, ui.last_name AS customer_last_name
        FROM orders o
        JOIN users u ON u.id = o.customer_id
        LEFT JOIN user_info ui ON ui.user_id = o.customer_id
    """

    def create_order(
        self,
        customer_id: int,
        notes: Optional[str],
        lines: Sequence[Tuple[int, float, float]],
        total_price: float,
    ) -> Order:
        now = self._now()
        with self._lock, self._conn:
            cur = self._conn.execute(
                """
                INSERT INTO orders (customer_id, status, total_price, notes, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (customer_id, OrderStatus.PROCESSING.value, total_price, notes, now, now),
            )
            order_id = cur.lastrowid
            self._conn.executemany(
                "INSERT INTO order_items (order_id, product_id, quantity, price) VALUES (?, ?, ?, ?)",
                [(order_id, product_id, quantity, price) for product_id, quantity, price in lines],
            )
            orders = self._load_orders_locked(
                self._conn.execute(self._ORDER_SELECT + " WHERE o.id = ?", (order_id,)).fetchall()
            )
        if not orders:
            raise RuntimeError("Failed to persist order.")
        return orders[0]

    def get_order(self, order_id: int) -> Optional[Order]:
        with self._lock:
            rows = self._conn.execute(self._ORDER_SELECT + " WHERE o.id = ?", (order_id,)).fetchall()
            orders = self._load_orders_locked(rows)
        return orders[0] if orders else None

    def transition_order_status(
        self,
        order_id: int,
        from_status: OrderStatus,
        to_status: OrderStatus,
    ) -> bool:
        with self._lock, self._conn:
            cur = self._conn.execute(
                "UPDATE orders SET status = ?, updated_at = ? WHERE id = ? AND status = ?",
                (to_status.value, self._now(), order_id, from_status.value),
            )
            return cur.rowcount == 1

    def get_orders_for_customer(self, customer_id: int, limit: int, offset: int) -> Tuple[List[Order], int]:
        with self._lock:
            total = self._conn.execute(
                "SELECT COUNT(*) FROM orders WHERE customer_id = ?", (customer_id,)
            ).fetchone()[0]
            rows = self._conn.execute(
                self._ORDER_SELECT
                + " WHERE o.customer_id = ? ORDER BY o.created_at DESC, o.id DESC LIMIT ? OFFSET ?",
                (customer_id, limit, offset),
            ).fetchall()
            orders = self._load_orders_locked(rows)
        return orders, total

    def get_orders_for_farmer(self, farmer_id: int, limit: int, offset: int) -> Tuple[List[Order], int]:
        farmer_filter = """
            o.id IN (
                SELECT oi.order_id FROM order_items oi
                JOIN products p ON p.id = oi.product_id
                WHERE p.farmer_id = ?
            )
        """
        with self._lock:
            total = self._conn.execute(
                f"SELECT COUNT(*) FROM orders o WHERE {farmer_filter}", (farmer_id,)
            ).fetchone()[0]
            rows = self._conn.execute(
                self._ORDER_SELECT
                + f" WHERE {farmer_filter} ORDER BY o.created_at DESC, o.id DESC LIMIT ? OFFSET ?",
                (farmer_id, limit, offset),
            ).fetchall()
            orders = self._load_orders_locked(rows)
        return orders, total

    def _load_orders_locked(self, rows: Iterable[sqlite3.Row]) -> List[Order]:
        orders = [self._row_to_order(row) for row in rows]
        if not orders:
            return orders
        by_id: Dict[int, Order] = {order.id: order for order in orders}
        placeholders = ", ".join("?" for _ in by_id)
        cur = self._conn.execute(
            f"""
            SELECT oi.*, p.name AS product_name, p.farmer_id AS farmer_id,
                   f.user_id AS farmer_user_id, f.farm_name AS farm_name
            FROM order_items oi
            JOIN products p ON p.id = oi.product_id
            JOIN farmers f ON f.id = p.farmer_id
            WHERE oi.order_id IN ({placeholders})
            ORDER BY oi.id ASC
            """,
            list(by_id),
        )
        for row in cur.fetchall():
            by_id[row["order_id"]].items.append(
                OrderItem(
                    id=row["id"],
                    order_id=row["order_id"],
                    product_id=row["product_id"],
                    product_name=row["product_name"],
                    farmer_id=row["farmer_id"],
                    farmer_user_id=row["farmer_user_id"],
                    farm_name=row["farm_name"],
                    quantity=row["quantity"],
                    price=row["price"],
                )
            )
        return orders

    # ConversationRepository API --------------------------------------------
    def find_or_create_conversation(
        self,
        initiator_id: int,
        recipient_id: int,
        product_id: Optional[int],
        title: Optional[str],
    ) -> Tuple[Conversation, bool]:
        low, high = sorted((initiator_id, recipient_id))
        now = self._now()
        with self._lock, self._conn:
            cur = self._conn.execute(
                """
                INSERT INTO conversations (
                    initiator_id, recipient_id, participant_low, participant_high,
                    product_id, title, is_active, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, 1, ?, ?)
                ON CONFLICT(participant_low, participant_high) DO NOTHING
                """,
                (initiator_id, recipient_id, low, high, product_id, title, now, now),
            )
            created = cur.rowcount == 1
            if not created:
                self._conn.execute(
                    """
                    UPDATE conversations
                    SET is_active = 1, deleted_at = NULL, updated_at = ?
                    WHERE participant_low = ? AND participant_high = ?
                      AND (is_active = 0 OR deleted_at IS NOT NULL)
                    """,
                    (now, low, high),
                )
            cur = self._conn.execute(
                "SELECT * FROM conversations WHERE participant_low = ? AND participant_high = ?",
                (low, high),
            )
            row = cur.fetchone()
        if not row:
            raise RuntimeError("Failed to persist conversation.")
        return self._row_to_conversation(row), created

    def get_conversation(self, conversation_id: int) -> Optional[Conversation]:
        with self._lock:
            cur = self._conn.execute(
                "SELECT * FROM conversations WHERE id = ? AND deleted_at IS NULL",
                (conversation_id,),
            )
            row = cur.fetchone()
        return self._row_to_conversation(row) if row else None

    def get_active_conversations_for_user(self, user_id: int) -> List[Conversation]:
        with self._lock:
            cur = self._conn.execute(
                """
                SELECT * FROM conversations
                WHERE is_active = 1 AND deleted_at IS NULL
                  AND (initiator_id = ? OR recipient_id = ?)
                ORDER BY created_at DESC, id DESC
                """,
                (user_id, user_id),
            )
            rows = cur.fetchall()
        return [self._row_to_conversation(row) for row in rows]

    def set_conversation_active(self, conversation_id: int, is_active: bool) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                "UPDATE conversations SET is_active = ?, updated_at = ? WHERE id = ?",
                (int(is_active), self._now(), conversation_id),
            )

    # MessageRepository API -------------------------------------------------
    def create_message(self, conversation_id: int, sender_id: int, content: str) -> Message:
        now = self._now()
        with self._lock, self._conn:
            cur = self._conn.execute(
                """
                INSERT INTO messages (conversation_id, sender_id, content, is_read, created_at)
                VALUES (?, ?, ?, 0, ?)
                """,
                (conversation_id, sender_id, content, now),
            )
            message_id = cur.lastrowid
            cur = self._conn.execute("SELECT * FROM messages WHERE id = ?", (message_id,))
            row = cur.fetchone()
        if not row:
            raise RuntimeError("Failed to persist message.")
        return self._row_to_message(row)

    def get_message(self, message_id: int) -> Optional[Message]:
        with self._lock:
            cur = self._conn.execute(
                "SELECT * FROM messages WHERE id = ? AND deleted_at IS NULL", (message_id,)
            )
            row = cur.fetchone()
        return self._row_to_message(row) if row else None

    def get_messages_for_conversation(self, conversation_id: int) -> List[Message]:
        with self._lock:
            cur = self._conn.execute(
                """
                SELECT * FROM messages
                WHERE conversation_id = ? AND deleted_at IS NULL
                ORDER BY created_at ASC, id ASC
                """,
                (conversation_id,),
            )
            rows = cur.fetchall()
        return [self._row_to_message(row) for row in rows]

    def mark_messages_read(self, conversation_id: int, reader_id: int) -> int:
        with self._lock, self._conn:
            cur = self._conn.execute(
                """
                UPDATE messages SET is_read = 1
                WHERE conversation_id = ? AND sender_id != ? AND is_read = 0
                  AND deleted_at IS NULL
                """,
                (conversation_id, reader_id),
            )
            return cur.rowcount

    def count_unread_messages(self, conversation_id: int, reader_id: int) -> int:
        with self._lock:
            cur = self._conn.execute(
                """
                SELECT COUNT(*) FROM messages
                WHERE conversation_id = ? AND sender_id != ? AND is_read = 0
                  AND deleted_at IS NULL
                """,
                (conversation_id, reader_id),
            )
            return cur.fetchone()[0]

    def find_unread_messages_older_than(self, cutoff: datetime) -> List[Message]:
        cutoff_iso = self._to_iso(cutoff)
        with self._lock:
            cur = self._conn.execute(
                """
                SELECT * FROM messages
                WHERE is_read = 0 AND deleted_at IS NULL AND created_at < ?
                  AND (last_notification_sent IS NULL OR last_notification_sent < ?)
                ORDER BY created_at ASC, id ASC
                """,
                (cutoff_iso, cutoff_iso),
            )
            rows = cur.fetchall()
        return [self._row_to_message(row) for row in rows]

    def mark_notification_sent(self, message_id: int, sent_at: datetime) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                "UPDATE messages SET last_notification_sent = ? WHERE id = ?",
                (self._to_iso(sent_at), message_id),
            )

    # Helpers ----------------------------------------------------------------
    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).replace(microsecond=0).isoformat()

    @staticmethod
    def _to_iso(value: datetime) -> str:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).replace(microsecond=0).isoformat()

    @staticmethod
    def _parse_datetime(value: str) -> datetime:
        result = datetime.fromisoformat(value)
        if result.tzinfo is None:
            return result.replace(tzinfo=timezone.utc)
        return result.astimezone(timezone.utc)

    def _row_to_user(self, row: sqlite3.Row) -> User:
        return User(
            id=row["id"],
            email=row["email"],
            password_hash=row["password_hash"],
            role=Role(row["role"]),
            created_at=self._parse_datetime(row["created_at"]),
            updated_at=self._parse_datetime(row["updated_at"]),
        )

    def _row_to_refresh_token(self, row: sqlite3.Row) -> RefreshToken:
        return RefreshToken(
            id=row["id"],
            user_id=row["user_id"],
            token_hash=row["token_hash"],
            expires_at=self._parse_datetime(row["expires_at"]),
            revoked=bool(row["revoked"]),
            created_at=self._parse_datetime(row["created_at"]),
        )

    def _row_to_product(self, row: sqlite3.Row) -> Product:
        return Product(
            id=row["id"],
            farmer_id=row["farmer_id"],
            farmer_user_id=row["farmer_user_id"],
            farm_name=row["farm_name"],
            name=row["name"],
            description=row["description"],
            price=row["price"],
            unit=row["unit"],
            minimum_order_quantity=row["minimum_order_quantity"],
            max_available_quantity=row["max_available_quantity"],
            is_in_stock=bool(row["is_in_stock"]),
            is_organic=bool(row["is_organic"]),
            created_at=self._parse_datetime(row["created_at"]),
            updated_at=self._parse_datetime(row["updated_at"]),
        )

    def _row_to_order(self, row: sqlite3.Row) -> Order:
        customer_name = None
        if row["customer_first_name"] is not None:
            customer_name = f"{row['customer_first_name']} {row['customer_last_name']}".strip()
        return Order(
            id=row["id"],
            customer_id=row["customer_id"],
            customer_email=row["customer_email"],
            customer_name=customer_name,
            status=OrderStatus(row["status"]),
            total_price=row["total_price"],
            notes=row["notes"],
            created_at=self._parse_datetime(row["created_at"]),
            updated_at=self._parse_datetime(row["updated_at"]),
        )

    def _row_to_conversation(self, row: sqlite3.Row) -> Conversation:
        return Conversation(
            id=row["id"],
            initiator_id=row["initiator_id"],
            recipient_id=row["recipient_id"],
            product_id=row["product_id"],
            title=row["title"],
            is_active=bool(row["is_active"]),
            created_at=self._parse_datetime(row["created_at"]),
            updated_at=self._parse_datetime(row["updated_at"]),
        )

    def _row_to_message(self, row: sqlite3.Row) -> Message:
        return Message(
            id=row["id"],
            conversation_id=row["conversation_id"],
            sender_id=row["sender_id"],
            content=row["content"],
            is_read=bool(row["is_read"]),
            last_notification_sent=self._parse_datetime(row["last_notification_sent"])
            if row["last_notification_sent"]
            else None,
            created_at=self._parse_datetime(row["created_at"]),
        )
