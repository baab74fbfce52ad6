from pathlib import Path
import os
import sys

# Ensure repo root is on sys.path and is the working directory.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
os.chdir(ROOT)

from leaselock.config import settings
from leaselock.db import create_lock_table, get_engine, lock_table_ddl
from leaselock.logging import setup_logging
from leaselock.provider.executor import SqlAlchemyExecutor

if __name__ == '__main__':
    setup_logging()
    engine = get_engine(settings.database())
    configuration = settings.to_configuration(SqlAlchemyExecutor(engine))
    create_lock_table(engine, configuration)
    print(lock_table_ddl(configuration).strip())
    print('Lock table ready at', engine.url.render_as_string(hide_password=True), '| table:', configuration.table_name)
