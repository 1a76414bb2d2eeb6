# Copyright DataStax, Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

from couchconn.exceptions import BadResponseException, ContentNotFoundException
from couchconn.utils.request_tools import HttpMethod

if TYPE_CHECKING:
    from couchconn.communication import Communication


logger = logging.getLogger(__name__)


def encode_path_component(component: str) -> str:
    """Percent-encode a name for use as a single URL path segment."""
    return quote(component, safe="")


def database_path(name: str) -> str:
    return f"/{encode_path_component(name)}"


class Database:
    """
    A reference to a database on the server.

    This is a thin handle: it holds the database name and the communication
    shared with the Connection that created it. It has no lifecycle of its
    own, so deleting the database through the connection leaves this object
    around, and subsequent requests through it surface the server's
    "not found" errors.

    This class is not meant for direct instantiation by the user, rather
    it is obtained from the `get_db`, `create_db`, `ensure_db_exists` and
    `list_dbs` methods of Connection.

    Args:
        communication: the Communication shared with the spawning connection.
        name: the database name.

    Example:
        >>> my_db = connection.ensure_db_exists("my_db")
        >>> my_db.exists()
        True
    """

    def __init__(self, communication: Communication, name: str) -> None:
        self.communication = communication
        self.name = name

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}(name="{self.name}", communication={self.communication})'

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, Database):
            return all(
                [
                    self.name == other.name,
                    self.communication is other.communication,
                ]
            )
        else:
            return False

    @property
    def path(self) -> str:
        return database_path(self.name)

    def exists(self) -> bool:
        """
        Check whether the database exists on the server.

        Returns:
            True if a HEAD request for the database succeeds, False if the
            server answers "not found". Other errors are raised.
        """
        try:
            self.communication.get_raw_data(self.path, HttpMethod.HEAD)
            return True
        except ContentNotFoundException:
            return False

    def info(self) -> dict[str, Any]:
        """
        Get the information the server holds about this database
        (document count, sizes, update sequence, ...).

        Returns:
            a dictionary as returned by the server.
        """
        logger.info(f"getting info for database '{self.name}'")
        response = self.communication.get_data(self.path, HttpMethod.GET)
        if not isinstance(response, dict):
            raise BadResponseException(
                text=f"Faulty response from database info for '{self.name}'.",
                raw_response=response,
            )
        logger.info(f"finished getting info for database '{self.name}'")
        return response


__all__ = [
    "Database",
]
