"""
SQL safety and identifier validation utilities.
"""

import re
from typing import Iterable, List

from shared.errors import ConfigurationError

WRITE_RE = re.compile(
    r"\b(INSERT|UPDATE|DELETE|ALTER|DROP|TRUNCATE|MERGE|CALL|GRANT|REVOKE|REPLACE\s+INTO|LOAD\s+DATA)\b",
    re.I,
)
LITERAL_RE = re.compile(r"'(?:[^'\\]|\\.)*'")

# dealer ids are hex/uuid strings, integralink codes are numeric
IDENTIFIER_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9-]{0,63}$")


def is_safe(sql: str) -> bool:
    """
    Check if a SQL query is read-only (safe for execution).
    Args:
        sql (str): SQL query.
    Returns:
        bool: True if safe, False if it contains write operations.
    """
    # literals such as tasks.name = 'Call' are data, not statements
    return not WRITE_RE.search(LITERAL_RE.sub("''", sql))


def validate_identifiers(values: Iterable[str], field: str) -> List[str]:
    """
    Check externally supplied identifiers against the allow-list pattern.
    Args:
        values: Identifiers from the job payload.
        field (str): Payload field name, used in the error message.
    Returns:
        list: The identifiers, stripped, in their original order.
    Raises:
        ConfigurationError: If any identifier does not match.
    """
    cleaned = []
    for value in values:
        value = str(value).strip()
        if not IDENTIFIER_RE.match(value):
            raise ConfigurationError(f"Invalid value in {field}: {value!r}")
        cleaned.append(value)
    return cleaned
