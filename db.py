import sqlite3
from pathlib import Path
from contextlib import contextmanager

from config import settings

DATABASE_PATH = Path(settings.DATABASE_PATH)
if not DATABASE_PATH.is_absolute():
    DATABASE_PATH = Path(__file__).parent / DATABASE_PATH


def get_connection() -> sqlite3.Connection:
    DATABASE_PATH.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(DATABASE_PATH)
    conn.row_factory = sqlite3.Row
    return conn


@contextmanager
def get_cursor():
    """Yield a cursor inside a single transaction.

    Everything written through the cursor is committed together when the
    block exits normally. If the block raises, the connection is closed
    without committing and all of its writes are discarded.
    """
    conn = get_connection()
    cursor = conn.cursor()
    try:
        yield cursor
        conn.commit()
    finally:
        conn.close()


def init_database(reset: bool = False):
    if reset and DATABASE_PATH.exists():
        DATABASE_PATH.unlink()

    conn = get_connection()
    cursor = conn.cursor()

    # Delivery agents table
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS delivery_agents (
            agent_id TEXT PRIMARY KEY,
            first_name TEXT NOT NULL,
            last_name TEXT NOT NULL,
            email TEXT UNIQUE,
            phone TEXT UNIQUE NOT NULL,
            vehicle_type TEXT NOT NULL,
            vehicle_number TEXT NOT NULL,
            delivery_zone TEXT,
            is_active BOOLEAN DEFAULT TRUE,
            is_online BOOLEAN DEFAULT FALSE,
            latitude REAL,
            longitude REAL,
            location_updated_at TIMESTAMP,
            rating REAL DEFAULT 5.0,
            rating_count INTEGER DEFAULT 0,
            total_deliveries INTEGER DEFAULT 0,
            completed_deliveries INTEGER DEFAULT 0,
            earnings_total REAL DEFAULT 0,
            earnings_this_month REAL DEFAULT 0,
            earnings_month TEXT,
            created_at TIMESTAMP NOT NULL
        )
    """)

    # Orders table: the full order lives in `document` as JSON,
    # the other columns are projections used for filtering and sorting
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS orders (
            order_id TEXT PRIMARY KEY,
            order_number TEXT UNIQUE NOT NULL,
            status TEXT NOT NULL,
            delivery_agent_id TEXT,
            payment_status TEXT NOT NULL,
            customer_name TEXT NOT NULL,
            customer_phone TEXT NOT NULL,
            created_at TIMESTAMP NOT NULL,
            accepted_at TIMESTAMP,
            delivered_at TIMESTAMP,
            version INTEGER NOT NULL DEFAULT 0,
            document TEXT NOT NULL,
            FOREIGN KEY (delivery_agent_id) REFERENCES delivery_agents(agent_id)
        )
    """)

    # Create indexes for common queries
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_orders_status_created ON orders(status, created_at)")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_orders_agent_status ON orders(delivery_agent_id, status)")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_orders_customer_phone ON orders(customer_phone)")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_orders_created ON orders(created_at)")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_agents_active ON delivery_agents(is_active)")

    conn.commit()
    conn.close()
    print(f"Database initialized at {DATABASE_PATH}")


def get_table_counts() -> dict:
    with get_cursor() as cursor:
        counts = {}
        tables = ["delivery_agents", "orders"]
        for table in tables:
            try:
                cursor.execute(f"SELECT COUNT(*) FROM {table}")
                counts[table] = cursor.fetchone()[0]
            except sqlite3.OperationalError:
                counts[table] = 0
        return counts
