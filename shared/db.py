"""
Database utility functions for connecting to dealer MySQL databases and running aggregate queries.
"""

import logging
from contextlib import contextmanager
from typing import Any, Iterator, List, Mapping, Optional, Sequence, Tuple

import pymysql
import pymysql.cursors

from shared.security import is_safe

logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT = 60

Query = Tuple[str, Optional[Mapping[str, Any]]]


def get_conn(info: Mapping[str, Any], connect_timeout: int = DEFAULT_CONNECT_TIMEOUT):
    """
    Create a new pymysql connection.
    Args:
        info: Mapping with host, user, password and database keys.
        connect_timeout (int): Seconds allowed for connection setup. Queries are not bounded.
    Returns:
        pymysql.connections.Connection: Database connection returning dict rows.
    """
    return pymysql.connect(
        host=info.get("host") or "",
        user=info.get("user") or "",
        password=info.get("password") or "",
        database=info.get("database") or None,
        port=int(info.get("port") or 3306),
        connect_timeout=connect_timeout,
        cursorclass=pymysql.cursors.DictCursor,
    )


@contextmanager
def connection(info: Mapping[str, Any], connect_timeout: int = DEFAULT_CONNECT_TIMEOUT) -> Iterator[Any]:
    """
    Open a connection for the duration of a with-block and close it on every exit path.
    """
    conn = get_conn(info, connect_timeout)
    try:
        yield conn
    finally:
        try:
            conn.close()
        except pymysql.err.Error:
            # already closed by the server, nothing left to release
            logger.warning("Connection to %s was already closed", info.get("host"))


def run_query(conn, sql: str, params: Optional[Mapping[str, Any]] = None) -> List[dict]:
    """
    Run one read-only statement with bound parameters.
    Args:
        conn: pymysql connection.
        sql (str): SELECT statement using %(name)s placeholders.
        params: Values bound to the placeholders.
    Returns:
        list: Rows as dicts keyed by column alias.
    Raises:
        ValueError: If the statement is not read-only.
    """
    if not is_safe(sql):
        raise ValueError("Refusing to run a statement that writes")
    with conn.cursor() as cur:
        cur.execute(sql, params)
        return list(cur.fetchall())


def run_queries(conn, queries: Sequence[Query]) -> List[List[dict]]:
    """
    Run several aggregate queries on one connection.
    A pymysql connection can't be shared between threads, so the statements
    go out back to back; row-sets come back in the order they were given.
    """
    return [run_query(conn, sql, params) for sql, params in queries]
