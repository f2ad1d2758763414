"""
Resolve dealer database credentials, either from the index database or from the dealer API.
"""

import logging
from typing import List, Optional, Sequence

import httpx
import pymysql
from pydantic import BaseModel

from shared.db import run_query
from shared.errors import CredentialLookupError
from shared.security import validate_identifiers

logger = logging.getLogger(__name__)

DEALER_DB_INFO_SQL = """
    SELECT dealer.iddealer, dealer.internal_code, dealer.name AS dealerName,
           `database`.name, `database`.user, `database`.password, databaseserver.IP
    FROM dealer
    INNER JOIN instance ON instance.idinstance = dealer.instance_idinstance
    INNER JOIN `database` ON `database`.iddatabase = instance.database_iddatabase
    INNER JOIN databaseserver ON databaseserver.iddatabaseserver = `database`.databaseServer_iddatabaseServer
    WHERE dealer.iddealer IN %(dealer_ids)s
"""


class DealerConnectionInfo(BaseModel):
    dealer_id: Optional[str] = None
    dealer_code: Optional[str] = None
    dealer_name: str = ""
    host: str = ""
    database: str = ""
    user: str = ""
    password: str = ""

    def conn_info(self) -> dict:
        return {
            "host": self.host,
            "database": self.database,
            "user": self.user,
            "password": self.password,
        }

    def constants(self) -> dict:
        """Dealer identity fields stamped on every report row."""
        return {
            "dealerId": self.dealer_id,
            "dealerCode": self.dealer_code,
            "dealerName": self.dealer_name,
        }


def lookup_dealers(conn, dealer_ids: Sequence[str]) -> List[DealerConnectionInfo]:
    """
    Fetch connection info for dealers from the index database.
    Args:
        conn: Connection to the index database.
        dealer_ids: Dealer ids from the job payload.
    Returns:
        list: One entry per dealer found.
    Raises:
        CredentialLookupError: If the lookup query fails.
    """
    ids = tuple(validate_identifiers(dealer_ids, "dealerIDs"))
    try:
        rows = run_query(conn, DEALER_DB_INFO_SQL, {"dealer_ids": ids})
    except pymysql.MySQLError as e:
        raise CredentialLookupError(f"Dealer credential lookup failed: {e}") from e

    dealers = [
        DealerConnectionInfo(
            dealer_id=row["iddealer"],
            dealer_code=row.get("internal_code"),
            dealer_name=row.get("dealerName") or "",
            host=row.get("IP") or "",
            database=row.get("name") or "",
            user=row.get("user") or "",
            password=row.get("password") or "",
        )
        for row in rows
    ]
    found = {d.dealer_id for d in dealers}
    missing = [i for i in ids if i not in found]
    if missing:
        logger.warning("No database info for dealer id(s): %s", ", ".join(missing))
    return dealers


class UnotifiApiClient:
    """
    Client for the Unotifi dealers API.
    Args:
        base_url (str): API root, e.g. 'https://unotifi.example/'.
        token (str): API token, sent as a query parameter.
    """

    dealers_endpoint = "api/dealers"

    def __init__(self, base_url: str, token: str, timeout: float = 30.0):
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.token = token
        self.timeout = timeout

    def get_dealers(self) -> List[dict]:
        try:
            r = httpx.get(
                f"{self.base_url}{self.dealers_endpoint}",
                params={"token": self.token},
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
            r.raise_for_status()
            return list(r.json()["data"])
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
            raise CredentialLookupError(f"Error getting dealers: {e}") from e

    def get_dealer_connections(self, integralink_codes: Sequence[str]) -> List[DealerConnectionInfo]:
        """
        Connection info for the dealers with the given integralink codes, in API order.
        """
        codes = set(validate_identifiers(integralink_codes, "dealershipIntegralinkCodes"))
        connections = []
        for dealer in self.get_dealers():
            code = str(dealer.get("integralinkCode"))
            if code not in codes:
                continue
            try:
                database = dealer["instance"]["database"]
                connections.append(
                    DealerConnectionInfo(
                        dealer_code=code,
                        dealer_name=f"Dealership {code}",
                        host=database["databaseServer"]["IP"],
                        database=database["name"],
                        user=database["user"],
                        password=database["password"],
                    )
                )
            except (KeyError, TypeError) as e:
                raise CredentialLookupError(f"Dealer {code} has no database info") from e
        return connections
