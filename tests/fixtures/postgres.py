import logging
import pathlib
import sys

import dbmap
import pytest

HERE = pathlib.Path(pathlib.Path(__file__).resolve()).parent
sys.path.insert(0, str(HERE.parent))
import config

logger = logging.getLogger(__name__)


@pytest.fixture(scope='session')
def psql_docker(request):
    """Session-scoped PostgreSQL container using testcontainers.

    Testcontainers automatically:
    - Assigns a random available port
    - Waits for the database to be ready
    - Handles cleanup when the session ends

    Skips the requesting tests when no Docker daemon is reachable.
    """
    testcontainers_postgres = pytest.importorskip('testcontainers.postgres')
    container = testcontainers_postgres.PostgresContainer(
        image='postgres:16',
        username=config.postgres.username,
        password=config.postgres.password,
        dbname=config.postgres.database,
        driver=None,
    )

    try:
        container.start()
    except Exception as e:
        pytest.skip(f'PostgreSQL container unavailable: {e}')

    config.postgres.hostname = container.get_container_host_ip()
    config.postgres.port = int(container.get_exposed_port(5432))
    logger.info(f'PostgreSQL container started at '
                f'{config.postgres.hostname}:{config.postgres.port}')

    def finalizer():
        dbmap.dispose_all_engines()
        container.stop()
        logger.info('PostgreSQL container stopped')

    request.addfinalizer(finalizer)
    return container


def stage_items_table(db):
    db.execute('drop table if exists items')
    db.execute('drop sequence if exists sq_items')
    db.execute('create table items (id serial primary key, name varchar(50), qty integer)')


@pytest.fixture
def pg_conn(psql_docker):
    """Function-scoped handle with an empty ``items`` table.
    """
    db = dbmap.connect('postgres', config=config)
    try:
        stage_items_table(db)
        yield db
    finally:
        db.close()
