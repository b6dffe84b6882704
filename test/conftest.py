import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


def make_repo(tmp_path: Path, name: str = "tienda.db"):
    from tienda.repositories.sqlite_repo import SqliteRepository

    repo = SqliteRepository(tmp_path / name)
    repo.init_db()
    return repo


def make_currency(repo):
    from tienda.services.currency_service import CurrencyService

    currency = CurrencyService(repo)
    currency.refresh()
    return currency


def set_created_at(repo, table: str, row_id: int, created_at: str) -> None:
    conn = repo._conn()
    cur = conn.cursor()
    cur.execute(f"UPDATE {table} SET created_at=? WHERE id=?", (created_at, int(row_id)))
    conn.commit()
    conn.close()
