import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from commonmodel.models.common_model import CommonModel

_SCHEMA = [
    "CREATE TABLE roles (id INTEGER PRIMARY KEY, name VARCHAR(50))",
    """
    CREATE TABLE users (
        id INTEGER PRIMARY KEY,
        name VARCHAR(100),
        email VARCHAR(100),
        status INTEGER,
        role_id INTEGER,
        password VARCHAR(100),
        updated_at VARCHAR(20)
    )
    """,
    "CREATE TABLE orders (id INTEGER PRIMARY KEY, status VARCHAR(20), date VARCHAR(10), customer VARCHAR(50))",
]

_ROWS = [
    "INSERT INTO roles (id, name) VALUES (1, 'admin'), (2, 'editor')",
    """
    INSERT INTO users (id, name, email, status, role_id) VALUES
        (1, 'John Smith', 'john@x.com', 1, 1),
        (2, 'Jane Doe', 'jane@x.com', 1, 2),
        (3, 'Bob Johnson', 'bob@x.com', 0, 1),
        (4, 'Alice', 'alice@john.io', 1, NULL)
    """,
    """
    INSERT INTO orders (id, status, date, customer) VALUES
        (1, 'pending', '2024-01-03', 'acme'),
        (2, 'canceled', '2024-01-05', 'acme'),
        (3, 'shipped', '2024-01-01', 'globex'),
        (4, 'returned', '2024-01-04', 'globex'),
        (5, 'shipped', '2024-01-02', 'initech')
    """,
]


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    with engine.begin() as connection:
        for statement in _SCHEMA + _ROWS:
            connection.exec_driver_sql(statement)
    yield engine
    engine.dispose()


@pytest.fixture
def model(engine):
    return CommonModel(engine)