from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

# Decimal columns are TEXT so SQLite keeps them exact.
SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS products (
      id TEXT PRIMARY KEY,
      position INTEGER NOT NULL,
      shop_type TEXT NOT NULL,
      name TEXT NOT NULL,
      category TEXT NOT NULL DEFAULT '',
      sku TEXT NOT NULL DEFAULT '',
      purchase_price TEXT NOT NULL,
      selling_price TEXT NOT NULL,
      unit_type TEXT NOT NULL,
      stock TEXT NOT NULL,
      low_stock_threshold TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS sales (
      seq INTEGER PRIMARY KEY AUTOINCREMENT,
      id TEXT NOT NULL UNIQUE,
      shop_type TEXT NOT NULL,
      created_at TEXT NOT NULL,
      customer_name TEXT,
      customer_phone TEXT,
      total_amount TEXT NOT NULL,
      payment_mode TEXT NOT NULL,
      total_profit TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS sale_items (
      sale_id TEXT NOT NULL REFERENCES sales (id),
      line_no INTEGER NOT NULL,
      product_id TEXT NOT NULL,
      product_name TEXT NOT NULL,
      quantity TEXT NOT NULL,
      unit_price TEXT NOT NULL,
      subtotal TEXT NOT NULL,
      PRIMARY KEY (sale_id, line_no)
    )
    """,
    "CREATE INDEX IF NOT EXISTS ix_products_shop_type ON products (shop_type)",
    "CREATE INDEX IF NOT EXISTS ix_sales_shop_type ON sales (shop_type)",
]


def create_db_engine(database_url: str) -> Engine:
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False

    engine = create_engine(database_url, connect_args=connect_args)

    if engine.dialect.name == "sqlite":

        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, _record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    with engine.begin() as connection:
        for statement in SCHEMA:
            connection.execute(text(statement))
