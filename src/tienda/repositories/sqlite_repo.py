from __future__ import annotations

import json
import shutil
import sqlite3
from collections import defaultdict
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

from tienda.config import BASE_CURRENCY
from tienda.domain.errors import InsufficientStockError, NotFoundError, StoreError
from tienda.domain.models import (
    Category,
    Customer,
    ExchangeRate,
    Payment,
    Product,
    Sale,
    SaleLineItem,
    customer_key,
)


DEFAULT_RATES = (
    (BASE_CURRENCY, "Dólar", "$", 1.0),
    ("COP", "Peso Colombiano", "$", 4150.0),
    ("VES", "Bolívar", "Bs.", 52.0),
)

_PRODUCT_COLUMNS = """
    p.id, p.name, p.description, p.price, p.stock, p.category_id, p.image_url, p.created_at,
    c.id, c.name, c.description, c.created_at
"""

# total_paid is always derived from the payments ledger
_SALE_COLUMNS = """
    s.id, s.customer_name, s.total, s.notes, s.currency, s.rates_json, s.created_at,
    COALESCE((SELECT SUM(pg.amount_in_base) FROM payments pg WHERE pg.sale_id = s.id), 0)
"""


def _now_iso() -> str:
    return datetime.now().replace(microsecond=0).isoformat(sep=" ")


class SqliteRepository:
    def __init__(self, db_path: Path | str):
        self.db_path = str(db_path)

    def _conn(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(self.db_path)
            conn.execute("PRAGMA foreign_keys = ON;")
        except sqlite3.Error as exc:
            raise StoreError(f"Could not open database {self.db_path}: {exc}") from exc
        return conn

    def init_db(self) -> None:
        self.run_migrations()

    def run_migrations(self) -> None:
        conn = self._conn()
        backup_path = self._create_pre_migration_backup()
        try:
            cur = conn.cursor()
            cur.execute("BEGIN")
            cur.execute("CREATE TABLE IF NOT EXISTS schema_migrations (version INTEGER PRIMARY KEY, applied_at TEXT NOT NULL)")
            cur.execute("SELECT COALESCE(MAX(version), 0) FROM schema_migrations")
            current_version = int(cur.fetchone()[0])

            migrations = [
                (1, self._migration_v1_base),
                (2, self._migration_v2_default_rates),
            ]

            for version, migration in migrations:
                if version <= current_version:
                    continue
                migration(cur)
                cur.execute(
                    "INSERT INTO schema_migrations (version, applied_at) VALUES (?, datetime('now'))",
                    (version,),
                )
            conn.commit()
        except Exception as exc:
            conn.rollback()
            self._restore_pre_migration_backup(backup_path)
            raise RuntimeError(
                "Database migration failed. Original database restored from automatic backup."
            ) from exc
        finally:
            conn.close()

    def _create_pre_migration_backup(self) -> Path | None:
        db_file = Path(self.db_path)
        if not db_file.exists() or db_file.stat().st_size == 0:
            return None
        backup_file = db_file.with_name(f"{db_file.stem}.pre_migration_{datetime.now().strftime('%Y%m%d%H%M%S')}.bak")
        shutil.copy2(db_file, backup_file)
        return backup_file

    def _restore_pre_migration_backup(self, backup_path: Path | None) -> None:
        if backup_path is None or not backup_path.exists():
            return
        shutil.copy2(backup_path, self.db_path)

    def _migration_v1_base(self, cur: sqlite3.Cursor) -> None:
        cur.execute(
            """
        CREATE TABLE IF NOT EXISTS settings (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
        """
        )

        cur.execute(
            """
        CREATE TABLE IF NOT EXISTS exchange_rates (
            currency TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            symbol TEXT NOT NULL,
            rate REAL NOT NULL CHECK(rate > 0),
            active INTEGER NOT NULL DEFAULT 1 CHECK(active IN (0,1)),
            updated_at TEXT NOT NULL
        )
        """
        )

        cur.execute(
            """
        CREATE TABLE IF NOT EXISTS categories (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            description TEXT,
            created_at TEXT NOT NULL
        )
        """
        )

        cur.execute(
            """
        CREATE TABLE IF NOT EXISTS products (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            description TEXT,
            price REAL NOT NULL CHECK(price >= 0),
            stock INTEGER NOT NULL DEFAULT 0 CHECK(stock >= 0),
            category_id INTEGER,
            image_url TEXT,
            created_at TEXT NOT NULL,
            FOREIGN KEY(category_id) REFERENCES categories(id) ON DELETE SET NULL
        )
        """
        )

        cur.execute(
            """
        CREATE TABLE IF NOT EXISTS customers (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            name_key TEXT NOT NULL UNIQUE,
            created_at TEXT NOT NULL
        )
        """
        )

        cur.execute(
            """
        CREATE TABLE IF NOT EXISTS sales (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            customer_name TEXT NOT NULL,
            total REAL NOT NULL CHECK(total >= 0),
            notes TEXT,
            currency TEXT NOT NULL,
            rates_json TEXT NOT NULL DEFAULT '{}',
            created_at TEXT NOT NULL
        )
        """
        )

        cur.execute(
            """
        CREATE TABLE IF NOT EXISTS sale_items (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            sale_id INTEGER NOT NULL,
            product_id INTEGER,
            product_name TEXT NOT NULL,
            quantity INTEGER NOT NULL CHECK(quantity > 0),
            unit_price REAL NOT NULL CHECK(unit_price >= 0),
            FOREIGN KEY(sale_id) REFERENCES sales(id) ON DELETE CASCADE,
            FOREIGN KEY(product_id) REFERENCES products(id) ON DELETE SET NULL
        )
        """
        )

        cur.execute(
            """
        CREATE TABLE IF NOT EXISTS payments (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            sale_id INTEGER NOT NULL,
            amount REAL NOT NULL CHECK(amount > 0),
            currency TEXT NOT NULL,
            rate REAL NOT NULL CHECK(rate > 0),
            amount_in_base REAL NOT NULL CHECK(amount_in_base >= 0),
            method TEXT NOT NULL,
            reference TEXT,
            created_at TEXT NOT NULL,
            FOREIGN KEY(sale_id) REFERENCES sales(id) ON DELETE CASCADE
        )
        """
        )

        cur.execute("CREATE INDEX IF NOT EXISTS idx_sales_created_at ON sales(created_at)")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_sale_items_sale ON sale_items(sale_id)")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_payments_sale ON payments(sale_id)")

    def _migration_v2_default_rates(self, cur: sqlite3.Cursor) -> None:
        now = _now_iso()
        for currency, name, symbol, rate in DEFAULT_RATES:
            cur.execute(
                """
                INSERT OR IGNORE INTO exchange_rates (currency, name, symbol, rate, active, updated_at)
                VALUES (?, ?, ?, ?, 1, ?)
                """,
                (currency, name, symbol, rate, now),
            )

    # ---------- Settings ----------
    def get_setting(self, key: str) -> Optional[str]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("SELECT value FROM settings WHERE key = ?", (key,))
        row = cur.fetchone()
        conn.close()
        return str(row[0]) if row else None

    def set_setting(self, key: str, value: str) -> None:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            """
            INSERT INTO settings (key, value, updated_at) VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at
        """,
            (key, value, _now_iso()),
        )
        conn.commit()
        conn.close()

    # ---------- Exchange rates ----------
    def list_exchange_rates(self, active_only: bool = True) -> list[ExchangeRate]:
        conn = self._conn()
        try:
            cur = conn.cursor()
            cur.execute(
                f"""
                SELECT currency, name, symbol, rate, active, updated_at
                FROM exchange_rates
                {"WHERE active = 1" if active_only else ""}
                ORDER BY currency
            """
            )
            rows = cur.fetchall()
        except sqlite3.Error as exc:
            raise StoreError(f"Could not read exchange rates: {exc}") from exc
        finally:
            conn.close()
        return [
            ExchangeRate(
                currency=str(r[0]),
                name=str(r[1]),
                symbol=str(r[2]),
                rate=float(r[3]),
                active=int(r[4]),
                updated_at=str(r[5]),
            )
            for r in rows
        ]

    def update_exchange_rate(self, currency: str, rate: float) -> bool:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            "UPDATE exchange_rates SET rate=?, updated_at=? WHERE currency=?",
            (float(rate), _now_iso(), currency),
        )
        changed = cur.rowcount > 0
        conn.commit()
        conn.close()
        return bool(changed)

    def upsert_exchange_rate(self, currency: str, name: str, symbol: str, rate: float, active: int = 1) -> None:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            """
            INSERT INTO exchange_rates (currency, name, symbol, rate, active, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(currency) DO UPDATE SET
                name=excluded.name, symbol=excluded.symbol, rate=excluded.rate,
                active=excluded.active, updated_at=excluded.updated_at
        """,
            (currency, name, symbol, float(rate), int(active), _now_iso()),
        )
        conn.commit()
        conn.close()

    # ---------- Categories ----------
    def list_categories(self) -> list[Category]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("SELECT id, name, description, created_at FROM categories ORDER BY created_at DESC, id DESC")
        rows = cur.fetchall()
        conn.close()
        return [Category(id=int(r[0]), name=str(r[1]), description=r[2], created_at=str(r[3])) for r in rows]

    def get_category(self, category_id: int) -> Optional[Category]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("SELECT id, name, description, created_at FROM categories WHERE id=?", (int(category_id),))
        r = cur.fetchone()
        conn.close()
        if not r:
            return None
        return Category(id=int(r[0]), name=str(r[1]), description=r[2], created_at=str(r[3]))

    def add_category(self, name: str, description: Optional[str]) -> int:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            "INSERT INTO categories (name, description, created_at) VALUES (?, ?, ?)",
            (name, description, _now_iso()),
        )
        cid = int(cur.lastrowid)
        conn.commit()
        conn.close()
        return cid

    def update_category(self, category_id: int, name: str, description: Optional[str]) -> bool:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            "UPDATE categories SET name=?, description=? WHERE id=?",
            (name, description, int(category_id)),
        )
        changed = cur.rowcount > 0
        conn.commit()
        conn.close()
        return bool(changed)

    def delete_category(self, category_id: int) -> bool:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("DELETE FROM categories WHERE id=?", (int(category_id),))
        changed = cur.rowcount > 0
        conn.commit()
        conn.close()
        return bool(changed)

    def count_categories(self) -> int:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("SELECT COUNT(*) FROM categories")
        n = int(cur.fetchone()[0])
        conn.close()
        return n

    # ---------- Products ----------
    @staticmethod
    def _product_from_row(r) -> Product:
        category = None
        if r[8] is not None:
            category = Category(id=int(r[8]), name=str(r[9]), description=r[10], created_at=str(r[11]))
        return Product(
            id=int(r[0]),
            name=str(r[1]),
            description=r[2],
            price=float(r[3]),
            stock=int(r[4]),
            category_id=(int(r[5]) if r[5] is not None else None),
            image_url=r[6],
            created_at=str(r[7]),
            category=category,
        )

    def add_product(
        self,
        name: str,
        description: Optional[str],
        price: float,
        stock: int,
        category_id: Optional[int],
        image_url: Optional[str],
    ) -> int:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            """
            INSERT INTO products (name, description, price, stock, category_id, image_url, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
            (name, description, float(price), int(stock), category_id, image_url, _now_iso()),
        )
        pid = int(cur.lastrowid)
        conn.commit()
        conn.close()
        return pid

    def update_product(
        self,
        product_id: int,
        name: str,
        description: Optional[str],
        price: float,
        stock: int,
        category_id: Optional[int],
        image_url: Optional[str],
    ) -> bool:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            """
            UPDATE products
            SET name=?, description=?, price=?, stock=?, category_id=?, image_url=?
            WHERE id=?
        """,
            (name, description, float(price), int(stock), category_id, image_url, int(product_id)),
        )
        changed = cur.rowcount > 0
        conn.commit()
        conn.close()
        return bool(changed)

    def delete_product(self, product_id: int) -> bool:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("DELETE FROM products WHERE id=?", (int(product_id),))
        changed = cur.rowcount > 0
        conn.commit()
        conn.close()
        return bool(changed)

    def list_products(self) -> list[Product]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            f"""
            SELECT {_PRODUCT_COLUMNS}
            FROM products p
            LEFT JOIN categories c ON c.id = p.category_id
            ORDER BY p.stock DESC, p.created_at DESC, p.id DESC
        """
        )
        rows = cur.fetchall()
        conn.close()
        return [self._product_from_row(r) for r in rows]

    def get_product_by_id(self, product_id: int) -> Optional[Product]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            f"""
            SELECT {_PRODUCT_COLUMNS}
            FROM products p
            LEFT JOIN categories c ON c.id = p.category_id
            WHERE p.id=?
        """,
            (int(product_id),),
        )
        r = cur.fetchone()
        conn.close()
        if not r:
            return None
        return self._product_from_row(r)

    def list_low_stock(self, threshold: int = 5, limit: int = 5) -> list[Product]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            f"""
            SELECT {_PRODUCT_COLUMNS}
            FROM products p
            LEFT JOIN categories c ON c.id = p.category_id
            WHERE p.stock <= ?
            ORDER BY p.stock ASC, p.name ASC
            LIMIT ?
        """,
            (int(threshold), int(limit)),
        )
        rows = cur.fetchall()
        conn.close()
        return [self._product_from_row(r) for r in rows]

    def count_products(self) -> int:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("SELECT COUNT(*) FROM products")
        n = int(cur.fetchone()[0])
        conn.close()
        return n

    # ---------- Customers ----------
    def list_customers(self) -> list[Customer]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("SELECT id, name, created_at FROM customers ORDER BY name COLLATE NOCASE")
        rows = cur.fetchall()
        conn.close()
        return [Customer(id=int(r[0]), name=str(r[1]), created_at=str(r[2])) for r in rows]

    def get_customer_by_name(self, name: str) -> Optional[Customer]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("SELECT id, name, created_at FROM customers WHERE name_key=?", (customer_key(name),))
        r = cur.fetchone()
        conn.close()
        if not r:
            return None
        return Customer(id=int(r[0]), name=str(r[1]), created_at=str(r[2]))

    def _upsert_customer(self, cur: sqlite3.Cursor, name: str, created_at: str) -> bool:
        cur.execute(
            "INSERT OR IGNORE INTO customers (name, name_key, created_at) VALUES (?, ?, ?)",
            (name.strip(), customer_key(name), created_at),
        )
        return cur.rowcount > 0

    def upsert_customer(self, name: str) -> Customer:
        conn = self._conn()
        cur = conn.cursor()
        self._upsert_customer(cur, name, _now_iso())
        conn.commit()
        conn.close()
        customer = self.get_customer_by_name(name)
        if customer is None:
            raise StoreError(f"Customer could not be saved: {name!r}")
        return customer

    # ---------- Sales ----------
    def create_sale(
        self,
        created_at: str,
        customer_name: str,
        notes: Optional[str],
        currency: str,
        rates: dict[str, float],
        items: Iterable[dict],
    ) -> int:
        """Customer upsert, sale header, line items and stock decrements in one transaction.

        items: [{product_id, product_name, quantity, unit_price}]
        """
        items = list(items)
        total = round(sum(float(it["unit_price"]) * int(it["quantity"]) for it in items), 2)

        conn = self._conn()
        conn.isolation_level = None
        cur = conn.cursor()
        try:
            cur.execute("BEGIN IMMEDIATE")
            self._upsert_customer(cur, customer_name, created_at)

            cur.execute(
                """
                INSERT INTO sales (customer_name, total, notes, currency, rates_json, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
            """,
                (customer_name.strip(), float(total), notes, currency, json.dumps(rates, sort_keys=True), created_at),
            )
            sale_id = int(cur.lastrowid)

            for it in items:
                cur.execute(
                    "UPDATE products SET stock = stock - ? WHERE id = ? AND stock >= ?",
                    (int(it["quantity"]), int(it["product_id"]), int(it["quantity"])),
                )
                if cur.rowcount == 0:
                    cur.execute("SELECT 1 FROM products WHERE id=?", (int(it["product_id"]),))
                    if cur.fetchone() is None:
                        raise NotFoundError(f"Product no longer exists: {it['product_name']}")
                    raise InsufficientStockError(
                        f"Not enough stock for {it['product_name']}. Requested: {it['quantity']}"
                    )
                cur.execute(
                    """
                    INSERT INTO sale_items (sale_id, product_id, product_name, quantity, unit_price)
                    VALUES (?, ?, ?, ?, ?)
                """,
                    (sale_id, int(it["product_id"]), str(it["product_name"]), int(it["quantity"]), float(it["unit_price"])),
                )

            conn.commit()
            return sale_id
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @staticmethod
    def _sale_from_row(r, items=(), payments=()) -> Sale:
        return Sale(
            id=int(r[0]),
            customer_name=str(r[1]),
            total=float(r[2]),
            notes=(r[3] if r[3] is not None else None),
            currency=str(r[4]),
            rates={str(k): float(v) for k, v in json.loads(r[5] or "{}").items()},
            created_at=str(r[6]),
            total_paid=float(r[7]),
            items=tuple(items),
            payments=tuple(payments),
        )

    def list_sales(self, limit: Optional[int] = None) -> list[Sale]:
        conn = self._conn()
        cur = conn.cursor()
        sql = f"SELECT {_SALE_COLUMNS} FROM sales s ORDER BY s.created_at DESC, s.id DESC"
        if limit is not None:
            cur.execute(sql + " LIMIT ?", (int(limit),))
        else:
            cur.execute(sql)
        rows = cur.fetchall()
        conn.close()
        return [self._sale_from_row(r) for r in rows]

    def list_sales_between(self, start_iso: str, end_iso: str) -> list[Sale]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            f"""
            SELECT {_SALE_COLUMNS}
            FROM sales s
            WHERE s.created_at >= ? AND s.created_at < ?
            ORDER BY s.created_at DESC, s.id DESC
        """,
            (start_iso, end_iso),
        )
        rows = cur.fetchall()
        conn.close()
        return [self._sale_from_row(r) for r in rows]

    def get_sale(self, sale_id: int) -> Optional[Sale]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(f"SELECT {_SALE_COLUMNS} FROM sales s WHERE s.id = ?", (int(sale_id),))
        r = cur.fetchone()
        conn.close()
        if not r:
            return None
        return self._sale_from_row(r, self.sale_items_for_sale(sale_id), self.payments_for_sale(sale_id))

    def sale_items_for_sale(self, sale_id: int) -> list[SaleLineItem]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            """
            SELECT id, sale_id, product_id, product_name, quantity, unit_price
            FROM sale_items
            WHERE sale_id = ?
            ORDER BY id
        """,
            (int(sale_id),),
        )
        rows = cur.fetchall()
        conn.close()
        return [
            SaleLineItem(
                id=int(r[0]),
                sale_id=int(r[1]),
                product_id=(int(r[2]) if r[2] is not None else None),
                product_name=str(r[3]),
                quantity=int(r[4]),
                unit_price=float(r[5]),
            )
            for r in rows
        ]

    def sale_product_names(self) -> dict[int, list[str]]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("SELECT sale_id, product_name FROM sale_items ORDER BY id")
        rows = cur.fetchall()
        conn.close()
        out: dict[int, list[str]] = defaultdict(list)
        for sale_id, name in rows:
            out[int(sale_id)].append(str(name).lower())
        return dict(out)

    def delete_sale(self, sale_id: int) -> bool:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("DELETE FROM sales WHERE id=?", (int(sale_id),))
        changed = cur.rowcount > 0
        conn.commit()
        conn.close()
        return bool(changed)

    def count_sales(self, since_iso: Optional[str] = None) -> int:
        conn = self._conn()
        cur = conn.cursor()
        if since_iso is None:
            cur.execute("SELECT COUNT(*) FROM sales")
        else:
            cur.execute("SELECT COUNT(*) FROM sales WHERE created_at >= ?", (since_iso,))
        n = int(cur.fetchone()[0])
        conn.close()
        return n

    def revenue_since(self, since_iso: str) -> float:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("SELECT COALESCE(SUM(total), 0) FROM sales WHERE created_at >= ?", (since_iso,))
        total = float(cur.fetchone()[0])
        conn.close()
        return total

    # ---------- Payments ----------
    def add_payment(
        self,
        sale_id: int,
        amount: float,
        currency: str,
        rate: float,
        amount_in_base: float,
        method: str,
        reference: Optional[str],
        created_at: str,
    ) -> int:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            """
            INSERT INTO payments (sale_id, amount, currency, rate, amount_in_base, method, reference, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """,
            (int(sale_id), float(amount), currency, float(rate), float(amount_in_base), method, reference, created_at),
        )
        pid = int(cur.lastrowid)
        conn.commit()
        conn.close()
        return pid

    def payments_for_sale(self, sale_id: int) -> list[Payment]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            """
            SELECT id, sale_id, amount, currency, rate, amount_in_base, method, reference, created_at
            FROM payments
            WHERE sale_id = ?
            ORDER BY created_at DESC, id DESC
        """,
            (int(sale_id),),
        )
        rows = cur.fetchall()
        conn.close()
        return [Payment(*r) for r in rows]

    def list_payments_between(self, start_iso: str, end_iso: str) -> list[Payment]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            """
            SELECT id, sale_id, amount, currency, rate, amount_in_base, method, reference, created_at
            FROM payments
            WHERE created_at >= ? AND created_at < ?
            ORDER BY created_at DESC, id DESC
        """,
            (start_iso, end_iso),
        )
        rows = cur.fetchall()
        conn.close()
        return [Payment(*r) for r in rows]
