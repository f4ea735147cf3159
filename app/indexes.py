from typing import Any, Dict, List, Optional, Sequence, Union

from sqlalchemy import Index, MetaData, Table, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import NoSuchTableError
from sqlalchemy.orm import Query, Session
from sqlalchemy.sql.expression import ClauseElement

from errors import NotFoundError
from logger import get_logger

logger = get_logger(__name__)

# (name, table, columns) for the columns the reporting queries filter,
# join or sort on beyond the foreign keys indexed by the schema itself
RECOMMENDED_INDEXES = (
    ("idx_users_role", "users", ("role",)),
    ("idx_properties_location", "properties", ("location",)),
    ("idx_properties_price", "properties", ("price_per_night",)),
    ("idx_bookings_status", "bookings", ("status",)),
    ("idx_bookings_dates", "bookings", ("start_date", "end_date")),
    ("idx_reviews_rating", "reviews", ("rating",)),
)

_INDEX_MARKERS = ("using index", "using covering index", "index scan", "index only scan")


def _reflect(engine: Engine, table: str) -> Table:
    # a private MetaData keeps ad-hoc indexes out of the declarative schema
    try:
        return Table(table, MetaData(), autoload_with=engine)
    except NoSuchTableError as e:
        raise NotFoundError("Table", table) from e


def default_index_name(table: str, columns: Sequence[str]) -> str:
    return "idx_{}_{}".format(table, "_".join(columns))


def create_index(
    engine: Engine, table: str, columns: Sequence[str], name: Optional[str] = None, unique: bool = False
) -> str:
    name = name or default_index_name(table, columns)
    reflected = _reflect(engine, table)
    for column in columns:
        if column not in reflected.c:
            raise NotFoundError("Column", f"{table}.{column}")
    index = Index(name, *[reflected.c[column] for column in columns], unique=unique)
    index.create(bind=engine, checkfirst=True)
    logger.info("Index %s on %s(%s) ready", name, table, ", ".join(columns))
    return name


def drop_index(engine: Engine, name: str, table: str) -> None:
    reflected = _reflect(engine, table)
    for index in reflected.indexes:
        if index.name == name:
            index.drop(bind=engine)
            logger.info("Index %s dropped", name)
            return
    raise NotFoundError("Index", name)


def list_indexes(engine: Engine, table: str) -> List[Dict[str, Any]]:
    return [
        {"name": ix["name"], "columns": list(ix["column_names"]), "unique": bool(ix["unique"])}
        for ix in inspect(engine).get_indexes(table)
    ]


def create_recommended_indexes(engine: Engine) -> List[str]:
    return [create_index(engine, table, columns, name=name) for name, table, columns in RECOMMENDED_INDEXES]


# ---------- Execution plans ----------
def explain(db: Session, statement: Union[str, Query, ClauseElement], params: Optional[dict] = None) -> List[Dict[str, Any]]:
    # plan rows come back in the engine's own shape: detail on SQLite, QUERY PLAN on PostgreSQL
    dialect = db.get_bind().dialect
    prefix = "EXPLAIN QUERY PLAN " if dialect.name == "sqlite" else "EXPLAIN "
    if isinstance(statement, Query):
        statement = statement.statement
    if isinstance(statement, str):
        result = db.execute(text(prefix + statement), params or {})
    else:
        # inline the parameters so the plan is for the concrete values
        compiled = statement.compile(dialect=dialect, compile_kwargs={"literal_binds": True})
        result = db.connection().exec_driver_sql(prefix + str(compiled))
    return [dict(row._mapping) for row in result]


def uses_index(plan: List[Dict[str, Any]], index_name: Optional[str] = None) -> bool:
    """True when some plan step reads through an index (``index_name`` if given)."""
    for row in plan:
        step = " ".join(str(value) for value in row.values()).lower()
        if not any(marker in step for marker in _INDEX_MARKERS):
            continue
        if index_name is None or index_name.lower() in step:
            return True
    return False
