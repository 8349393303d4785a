# cantinaxl/core/database.py
import asyncpg
from cantinaxl.core.config import settings
import logging
import json

logger = logging.getLogger(__name__)

async def get_db_connection():
    conn = await asyncpg.connect(settings.DATABASE_URL)
    try:
        yield conn
    finally:
        await conn.close()

async def create_tables():
    conn = await asyncpg.connect(settings.DATABASE_URL)
    try:
        await conn.execute('''
        CREATE TABLE IF NOT EXISTS activity_logs (
            id SERIAL PRIMARY KEY,
            action VARCHAR(255) NOT NULL,
            entity_type VARCHAR(50) NOT NULL,
            entity_id VARCHAR(64),
            details JSONB,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
        )
        ''')

        await conn.execute('''
        CREATE TABLE IF NOT EXISTS orders (
            id SERIAL PRIMARY KEY,
            reference VARCHAR(64) UNIQUE NOT NULL,
            amount INTEGER NOT NULL,
            currency VARCHAR(8) NOT NULL,
            status VARCHAR(20) NOT NULL DEFAULT 'pending',
            concept TEXT,
            gateway_transaction_id VARCHAR(64),
            failure_reason TEXT,
            payment_link_id VARCHAR(64),
            payment_link_hash VARCHAR(64),
            short_url TEXT,
            customer_email VARCHAR(255),
            package_id VARCHAR(64),
            package_quantity INTEGER NOT NULL DEFAULT 1,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
        )
        ''')

        await conn.execute('''
        CREATE INDEX IF NOT EXISTS idx_orders_status ON orders (status)
        ''')

        logger.info("Database tables created successfully")
    except Exception as e:
        logger.error(f"Error creating database tables: {e}")
        raise
    finally:
        await conn.close()

async def log_activity(conn, action, entity_type, entity_id=None, details=None):
    """Record a payment event in the activity log"""
    if details is not None and not isinstance(details, str):
        try:
            details = json.dumps(details)
        except (TypeError, ValueError):
            details = str(details)
    await conn.execute('''
        INSERT INTO activity_logs (action, entity_type, entity_id, details)
        VALUES ($1, $2, $3, $4)
    ''', action, entity_type, entity_id, details)
