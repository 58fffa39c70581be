"""SQLite schema management (code-first approach)."""

import logging

from src.core import db_client


logger = logging.getLogger(__name__)


# Central list of all collections in the schema, in dependency order
COLLECTIONS = [
    "homes",
    "assets",
    "template_packs",
    "maintenance_templates",
    "recurring_schedules",
    "tasks",
    "activity_logs",
]

_AUDIT_COLUMNS = """
    created TEXT NOT NULL,
    updated TEXT NOT NULL"""


_TABLES: dict[str, str] = {
    "homes": f"""
        CREATE TABLE IF NOT EXISTS homes (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id TEXT NOT NULL,
            name TEXT NOT NULL,
            address TEXT,{_AUDIT_COLUMNS}
        )""",
    "assets": f"""
        CREATE TABLE IF NOT EXISTS assets (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            home_id INTEGER NOT NULL REFERENCES homes (id) ON DELETE CASCADE,
            name TEXT NOT NULL,
            category TEXT NOT NULL DEFAULT 'OTHER',
            manufacturer TEXT,
            model_number TEXT,{_AUDIT_COLUMNS}
        )""",
    "template_packs": f"""
        CREATE TABLE IF NOT EXISTS template_packs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL UNIQUE,
            description TEXT,
            category TEXT,
            is_active INTEGER NOT NULL DEFAULT 1,{_AUDIT_COLUMNS}
        )""",
    "maintenance_templates": f"""
        CREATE TABLE IF NOT EXISTS maintenance_templates (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            category TEXT NOT NULL DEFAULT 'OTHER',
            default_frequency TEXT NOT NULL,
            estimated_duration_minutes INTEGER,
            difficulty TEXT NOT NULL DEFAULT 'EASY',
            instructions TEXT NOT NULL DEFAULT '[]',
            required_tools TEXT NOT NULL DEFAULT '[]',
            safety_notes TEXT NOT NULL DEFAULT '[]',
            pack_id INTEGER REFERENCES template_packs (id) ON DELETE SET NULL,
            is_active INTEGER NOT NULL DEFAULT 1,{_AUDIT_COLUMNS}
        )""",
    "recurring_schedules": f"""
        CREATE TABLE IF NOT EXISTS recurring_schedules (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            asset_id INTEGER NOT NULL REFERENCES assets (id) ON DELETE CASCADE,
            template_id INTEGER NOT NULL REFERENCES maintenance_templates (id) ON DELETE CASCADE,
            frequency TEXT NOT NULL,
            custom_frequency_days INTEGER,
            next_due_date TEXT NOT NULL,
            last_completed_date TEXT,
            is_active INTEGER NOT NULL DEFAULT 1,{_AUDIT_COLUMNS},
            UNIQUE (asset_id, template_id)
        )""",
    "tasks": f"""
        CREATE TABLE IF NOT EXISTS tasks (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            home_id INTEGER NOT NULL REFERENCES homes (id) ON DELETE CASCADE,
            asset_id INTEGER REFERENCES assets (id) ON DELETE SET NULL,
            template_id INTEGER REFERENCES maintenance_templates (id) ON DELETE SET NULL,
            schedule_id INTEGER REFERENCES recurring_schedules (id) ON DELETE SET NULL,
            title TEXT NOT NULL,
            description TEXT,
            due_date TEXT NOT NULL,
            priority TEXT NOT NULL DEFAULT 'MEDIUM',
            status TEXT NOT NULL DEFAULT 'PENDING',
            notes TEXT,
            completed_at TEXT,
            completion_notes TEXT,{_AUDIT_COLUMNS},
            UNIQUE (schedule_id, due_date)
        )""",
    "activity_logs": f"""
        CREATE TABLE IF NOT EXISTS activity_logs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            home_id INTEGER REFERENCES homes (id) ON DELETE CASCADE,
            activity_type TEXT NOT NULL,
            entity_type TEXT NOT NULL,
            entity_id TEXT NOT NULL,
            entity_name TEXT NOT NULL,
            description TEXT NOT NULL,
            metadata TEXT,{_AUDIT_COLUMNS}
        )""",
}

_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_assets_home ON assets (home_id)",
    "CREATE INDEX IF NOT EXISTS idx_templates_pack ON maintenance_templates (pack_id)",
    "CREATE INDEX IF NOT EXISTS idx_schedules_due ON recurring_schedules (is_active, next_due_date)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_status_due ON tasks (status, due_date)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_home ON tasks (home_id)",
    "CREATE INDEX IF NOT EXISTS idx_activity_home ON activity_logs (home_id)",
]


def get_table_ddl(collection_name: str) -> str:
    """Get the CREATE TABLE statement for a collection.

    Raises:
        KeyError: If the collection is not part of the schema
    """
    return _TABLES[collection_name]


async def init_db(*, db_path: str | None = None) -> None:
    """Create every table and index that does not exist yet.

    Safe to call on every startup; existing tables are left untouched.
    """
    conn = await db_client.get_connection(db_path=db_path)

    for collection in COLLECTIONS:
        await conn.execute(get_table_ddl(collection))
        logger.debug("Ensured table", extra={"collection": collection})

    for index_sql in _INDEXES:
        await conn.execute(index_sql)

    await conn.commit()
    logger.info("Database schema initialized", extra={"collections": len(COLLECTIONS)})
