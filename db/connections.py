from pathlib import Path
from typing import Any, Dict, Optional
import aiosqlite


async def connect(db_path: str, pragmas: Optional[Dict[str, str]] = None, **kwargs: Any) -> aiosqlite.Connection:
    """Open an aiosqlite connection and apply sensible pragmas.

    - Sets `row_factory` to `aiosqlite.Row` for named access.
    - Enables foreign keys by default.
    - Applies any additional PRAGMA settings supplied in `pragmas`.
    - Extra keyword arguments (e.g. `isolation_level`, `timeout`) are passed
      to `aiosqlite.connect`.

    Returns an open connection; caller is responsible for closing it.
    """
    conn = await aiosqlite.connect(db_path, **kwargs)
    conn.row_factory = aiosqlite.Row

    await conn.execute("PRAGMA foreign_keys = ON")
    if pragmas:
        for k, v in pragmas.items():
            await conn.execute(f"PRAGMA {k} = {v}")

    await conn.commit()
    return conn


async def init_db(db_path: str, schema_path: Optional[str] = None) -> None:
    """Apply the SQL schema to a SQLite database file.

    If `schema_path` is not provided this function will look for `schema.sql`
    next to this module (i.e. `db/schema.sql`). The bundled schema only uses
    `CREATE ... IF NOT EXISTS`, so applying it to an existing database is safe.
    """
    schema_file = (
        Path(schema_path) if schema_path else Path(__file__).parent / "schema.sql"
    )

    if not schema_file.exists():
        raise FileNotFoundError(f"Schema file not found: {schema_file}")

    sql = schema_file.read_text()

    conn = await connect(db_path)
    try:
        await conn.executescript(sql)
        await conn.commit()
    finally:
        await conn.close()


async def ensure_db(db_path: str, schema_path: Optional[str] = None) -> None:
    """Create the database file if needed and make sure the schema exists."""
    db_file = Path(db_path)
    # Ensure parent directory exists
    if db_file.parent and not db_file.parent.exists():
        db_file.parent.mkdir(parents=True, exist_ok=True)

    await init_db(db_path, schema_path)
