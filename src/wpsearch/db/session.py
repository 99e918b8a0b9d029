from typing import Optional

from wpsearch.config.settings import config
from wpsearch.db.manager import DatabaseManager

_db_manager: Optional[DatabaseManager] = None


def get_db_manager() -> DatabaseManager:
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager(config.database_url)
        _db_manager.init_db()
    return _db_manager
