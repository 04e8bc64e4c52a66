"""
Alembic migrations for the time_entries database.

Revisions live in versions/ and are run from code by SchemaStore; there is
no alembic.ini. Revision ids keep the timestamped names the schema has
always used, so existing databases line up with them.
"""

from pathlib import Path
from typing import List, Optional

from alembic.config import Config
from alembic.script import ScriptDirectory
from sqlalchemy.engine import Connection

MIGRATIONS_DIR = Path(__file__).parent

# A database created before migrations were tracked already has everything this revision creates
BASELINE_REVISION = "20251018000000_initial_create"


def alembic_config(db_url: str, connection: Optional[Connection] = None) -> Config:
    """
    Build an Alembic Config without an ini file.

    Args:
        db_url: SQLAlchemy URL, used when no connection is given
        connection: Open connection the migrations should run on
    """
    config = Config()
    # Config values go through ConfigParser interpolation
    config.set_main_option("script_location", str(MIGRATIONS_DIR).replace("%", "%%"))
    config.set_main_option("sqlalchemy.url", db_url.replace("%", "%%"))
    if connection is not None:
        config.attributes["connection"] = connection
    return config


def revision_chain(config: Optional[Config] = None) -> List[str]:
    """All revision ids, oldest first"""
    script = ScriptDirectory.from_config(config or alembic_config("sqlite://"))
    return [revision.revision for revision in reversed(list(script.walk_revisions()))]
