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
import re
from typing import Any, Iterable, Sequence

import httpx
from typing_extensions import Self

from couchconn.authentication import User, UserWideType
from couchconn.cluster import ClusterConnection, NodeConnection
from couchconn.communication import Communication
from couchconn.constants import AuthType, CallerType
from couchconn.database import Database, database_path, encode_path_component
from couchconn.exceptions import (
    BadResponseException,
    ContentNotFoundException,
    DatabaseNotCreatableException,
    DatabaseNotDeletableException,
    DatabaseUnavailableException,
)
from couchconn.settings.defaults import (
    ACTIVE_TASKS_PATH,
    ALL_DBS_PATH,
    CLUSTER_SUPPORT_MIN_MAJOR_VERSION,
    DEFAULT_LOCAL_CLUSTER_NODE_PORT,
    DEFAULT_REQUEST_TIMEOUT_MS,
    DEFAULT_UUIDS_COUNT,
    RESERVED_DB_NAME_PREFIXES,
    SESSION_PATH,
    UNKNOWN_MAJOR_VERSION,
    USER_DOC_ID_PREFIX,
    USER_DOC_TYPE,
    USERS_ALL_DOCS_PATH,
    USERS_DB_PATH,
    UUIDS_PATH,
)
from couchconn.utils.request_tools import HttpMethod

logger = logging.getLogger(__name__)

MAJOR_VERSION_PATTERN = re.compile(r"^\s*([+-]?\d+)")


def _parse_major_version(version: str) -> int:
    major_part = version.split(".", 1)[0]
    match = MAJOR_VERSION_PATTERN.match(major_part)
    if match is None:
        return UNKNOWN_MAJOR_VERSION
    return int(match.group(1))


def _is_reserved_db_name(name: str) -> bool:
    return name.startswith(RESERVED_DB_NAME_PREFIXES)


def _user_path(name: str) -> str:
    return f"{USERS_DB_PATH}/{USER_DOC_ID_PREFIX}{encode_path_component(name)}"


class Connection:
    """
    The entry point for working with a CouchDB server: a logical,
    possibly authenticated, session with one server instance.

    All requests go through a Communication object, which is shared (never
    copied) with every Database, ClusterConnection and NodeConnection this
    connection creates, so they all see the same credentials and session.

    Args:
        server_url: the base URL of the server, e.g. "http://localhost:5984".
            If a `communication` is also passed, its server URL is updated.
        user: the credentials, as a User or a (username, password) tuple.
            Ignored if a `communication` is passed.
        auth_type: the authentication mode, as an AuthType or one of the
            strings "none", "basic", "cookie", "auth" (case-insensitive).
            Defaults to no authentication. Ignored if a `communication`
            is passed.
        communication: an existing Communication to share.
        http_client: an `httpx.Client` for the Communication built internally.
        timeout_ms: a timeout, in milliseconds, for each HTTP request made
            by the Communication built internally.
        callers: (name, version) pairs identifying the calling application
            in the User-Agent header of the Communication built internally.

    Example:
        >>> from couchconn import Connection
        >>> connection = Connection(
        ...     "http://localhost:5984",
        ...     user=("admin", "secret"),
        ...     auth_type="cookie",
        ... )
        >>> connection.login()
        >>> connection.get_couchdb_version()
        '3.3.3'
        >>> my_db = connection.ensure_db_exists("my_db")
    """

    def __init__(
        self,
        server_url: str | None = None,
        user: UserWideType = None,
        auth_type: AuthType | str | None = None,
        *,
        communication: Communication | None = None,
        http_client: httpx.Client | None = None,
        timeout_ms: int | None = DEFAULT_REQUEST_TIMEOUT_MS,
        callers: Sequence[CallerType] = [],
    ) -> None:
        if communication is not None:
            self.communication = communication
            if server_url is not None:
                self.communication.set_server_url(server_url)
        elif server_url is not None:
            self.communication = Communication(
                server_url,
                user=user,
                auth_type=auth_type if auth_type is not None else AuthType.NONE,
                timeout_ms=timeout_ms,
                callers=callers,
                http_client=http_client,
            )
        else:
            raise ValueError(
                "Either a server URL or a Communication must be provided "
                "to create a Connection."
            )
        self.couchdb_version: str | None = None
        self.couchdb_major: int = UNKNOWN_MAJOR_VERSION

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(communication={self.communication})"

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, Connection):
            return self.communication is other.communication
        else:
            return False

    def lowest_level(self) -> Communication:
        """The Communication object shared by this connection."""
        return self.communication

    def get_timeout(self) -> int | None:
        """The timeout, in milliseconds, for each request to the server."""
        return self.communication.get_timeout()

    def set_timeout(self, timeout_ms: int | None) -> Self:
        self.communication.set_timeout(timeout_ms)
        return self

    def get_server_url(self) -> str:
        return self.communication.get_server_url()

    def set_server_url(self, server_url: str) -> Self:
        self.communication.set_server_url(server_url)
        return self

    def get_user(self) -> User:
        return self.communication.get_user()

    def set_user(self, user: UserWideType) -> Self:
        self.communication.set_user(user)
        return self

    def get_auth_type(self) -> AuthType:
        return self.communication.get_auth_type()

    def get_auth_type_readable(self) -> str:
        """The auth mode as one of "none", "basic", "auth"."""
        return self.communication.get_auth_type_readable()

    def set_auth_type(self, auth_type: AuthType | str) -> Self:
        """
        Set the authentication mode.

        Args:
            auth_type: an AuthType, or a case-insensitive string among
                "none", "basic", "cookie" and "auth" (the latter two both
                denoting the cookie mode).
        """
        self.communication.set_auth_type(auth_type)
        return self

    def get_couchdb_info(self) -> dict[str, Any]:
        """
        Query the root of the server for its welcome information and
        record the version it reports.

        The version string is stored in `couchdb_version` (empty if the
        server reports none) and its leading integer in `couchdb_major`
        (-1 if it cannot be parsed).

        Returns:
            the dictionary returned by the server.
        """
        response = self.communication.get_data(
            "", HttpMethod.GET, server_root=True
        )
        if not isinstance(response, dict):
            raise BadResponseException(
                text="Faulty response from server info query.",
                raw_response=response,
            )
        version = response.get("version")
        self.couchdb_version = version if isinstance(version, str) else ""
        self.couchdb_major = _parse_major_version(self.couchdb_version)
        logger.debug(
            f"server version: '{self.couchdb_version}' (major: {self.couchdb_major})"
        )
        return response

    def get_couchdb_version(self) -> str:
        """
        Query the server for its version. No caching takes place: the
        server is queried at each invocation.

        Example:
            >>> connection.get_couchdb_version()
            '3.3.3'
        """
        self.get_couchdb_info()
        return self.couchdb_version or ""

    def get_major_version(self) -> int:
        """
        Query the server for the major version number, i.e. the leading
        integer of its version. Returns -1 if unknown.
        """
        self.get_couchdb_info()
        return self.couchdb_major

    def get_supports_clusters(self) -> bool:
        """Whether the server is cluster-aware (major version 2 and above)."""
        return self.get_major_version() >= CLUSTER_SUPPORT_MIN_MAJOR_VERSION

    def get_uuids(self, count: int = DEFAULT_UUIDS_COUNT) -> list[str]:
        """
        Have the server generate UUIDs.

        Args:
            count: how many UUIDs to generate.

        Returns:
            a list of `count` UUID strings.
        """
        response = self.communication.get_data(
            UUIDS_PATH, HttpMethod.GET, request_params={"count": count}
        )
        if not isinstance(response, dict) or not isinstance(
            response.get("uuids"), list
        ):
            raise BadResponseException(
                text="Faulty response from UUID generation.",
                raw_response=response,
            )
        return [str(uuid) for uuid in response["uuids"]]

    def get_active_tasks(self) -> list[Any]:
        """The list of tasks (compactions, replications, ...) running on the server."""
        response = self.communication.get_data(ACTIVE_TASKS_PATH, HttpMethod.GET)
        if not isinstance(response, list):
            raise BadResponseException(
                text="Faulty response from active tasks query.",
                raw_response=response,
            )
        return response

    def _get_all_db_names(self) -> list[str]:
        response = self.communication.get_data(ALL_DBS_PATH, HttpMethod.GET)
        if not isinstance(response, list):
            raise DatabaseUnavailableException(
                text="Faulty response from database list query."
            )
        return [str(name) for name in response]

    def list_db_names(self) -> list[str]:
        """
        List the names of the databases on the server, except those
        beginning with '_' or 'shards/' (reserved for internal use).

        Example:
            >>> connection.list_db_names()
            ['alpha', 'beta']
        """
        logger.info("getting list of database names")
        db_names = [
            name for name in self._get_all_db_names() if not _is_reserved_db_name(name)
        ]
        logger.info("finished getting list of database names")
        return db_names

    def list_all_db_names(self) -> list[str]:
        """
        List the names of all databases on the server, reserved ones included.

        Example:
            >>> connection.list_all_db_names()
            ['_replicator', '_users', 'alpha', 'beta']
        """
        logger.info("getting list of all database names")
        db_names = self._get_all_db_names()
        logger.info("finished getting list of all database names")
        return db_names

    def list_dbs(self) -> list[Database]:
        """Same as `list_db_names`, but returning Database objects."""
        return [Database(self.communication, name) for name in self.list_db_names()]

    def list_all_dbs(self) -> list[Database]:
        """Same as `list_all_db_names`, but returning Database objects."""
        return [
            Database(self.communication, name) for name in self.list_all_db_names()
        ]

    def get_db(self, name: str) -> Database:
        """
        Get a reference to an existing database.

        Args:
            name: the database name.

        Returns:
            a Database object.

        Raises:
            ContentNotFoundException if the database does not exist. Other
            errors from the server are raised as they are.
        """
        self.communication.get_raw_data(database_path(name), HttpMethod.HEAD)
        return Database(self.communication, name)

    def db_exists(self, name: str) -> bool:
        """
        Check whether a database exists.

        Returns:
            True if the database exists, False if the server reports it
            as not found. Other errors are raised.
        """
        try:
            self.get_db(name)
            return True
        except ContentNotFoundException:
            return False

    def create_db(self, name: str) -> Database:
        """
        Create a database.

        Args:
            name: the database name.

        Returns:
            a Database object for the newly-created database.

        Raises:
            DatabaseNotCreatableException if the server refuses the creation
            (e.g. because the database exists already): the server's reason,
            if any, is the exception text.
        """
        logger.info(f"creating database '{name}'")
        response = self.communication.get_data(
            database_path(name), HttpMethod.PUT, raise_api_errors=False
        )
        if not isinstance(response, dict):
            raise BadResponseException(
                text="Faulty response from database creation.",
                raw_response=response,
            )
        if "error" in response:
            logger.warning(f"Unable to create database '{name}': {response}")
            raise DatabaseNotCreatableException(
                text=response.get("reason"), database_name=name
            )
        if response.get("ok") is not True:
            raise DatabaseNotCreatableException(database_name=name)
        logger.info(f"finished creating database '{name}'")
        return Database(self.communication, name)

    def remove_db(self, name: str) -> Self:
        """
        Delete a database, with all its contents.
        Caution: this is an irreversible operation.

        Args:
            name: the database name.

        Raises:
            DatabaseNotDeletableException if the server refuses the deletion
            (e.g. because the database does not exist): the server's reason,
            if any, is the exception text.
        """
        logger.info(f"deleting database '{name}'")
        response = self.communication.get_data(
            database_path(name), HttpMethod.DELETE, raise_api_errors=False
        )
        if not isinstance(response, dict):
            raise BadResponseException(
                text="Faulty response from database deletion.",
                raw_response=response,
            )
        if "error" in response:
            logger.warning(f"Unable to delete database '{name}': {response}")
            raise DatabaseNotDeletableException(
                text=response.get("reason"), database_name=name
            )
        if response.get("ok") is not True:
            raise DatabaseNotDeletableException(database_name=name)
        logger.info(f"finished deleting database '{name}'")
        return self

    def ensure_db_exists(self, name: str) -> Database:
        """
        Get a database, creating it if it does not exist yet.

        Only a "not found" outcome of the existence check leads to the
        creation attempt; any other error is raised unchanged.

        Returns:
            a Database object.
        """
        try:
            return self.get_db(name)
        except ContentNotFoundException:
            pass
        return self.create_db(name)

    def ensure_db_is_deleted(self, name: str) -> Self:
        """
        Delete a database if it exists.

        A database found not to exist, as well as a deletion refused by the
        server, count as success. Any other error is raised.
        """
        try:
            self.remove_db(name)
        except (ContentNotFoundException, DatabaseNotDeletableException) as exc:
            logger.info(f"database '{name}' not deleted, proceeding: {exc}")
        return self

    def login(self) -> Self:
        """
        Log in to the server with the current user's credentials.

        This is a no-op if the auth mode is NONE. In COOKIE mode, the
        session cookie obtained is kept for the subsequent requests. In
        BASIC mode the login just validates the credentials: the session
        opened on the server is closed right away.

        In any case, the auth mode when this method returns (or raises)
        is the one it had when the method was called.
        """
        auth_type = self.communication.get_auth_type()
        if auth_type == AuthType.NONE:
            return self

        user = self.communication.get_user()
        payload = {"name": user.username, "password": user.password}
        logger.info("logging in")
        # a stale session cookie must play no part in this login
        with self.communication.temporarily_set_auth_type(AuthType.BASIC):
            self.communication.get_data(SESSION_PATH, HttpMethod.POST, payload)
            if auth_type == AuthType.BASIC:
                self.communication.set_auth_type(AuthType.COOKIE)
                self.logout()
        logger.info("finished logging in")
        return self

    def get_login_info(self) -> Any:
        """
        Return the information about the current session, as returned
        by the server, in COOKIE mode. In any other mode, return None.
        """
        if self.communication.get_auth_type() == AuthType.COOKIE:
            return self.communication.get_data(SESSION_PATH, HttpMethod.GET)
        return None

    def logout(self) -> Self:
        """
        Close the current session on the server and forget the session
        cookie, in COOKIE mode. In any other mode, do nothing.
        """
        if self.communication.get_auth_type() == AuthType.COOKIE:
            logger.info("logging out")
            self.communication.get_data(SESSION_PATH, HttpMethod.DELETE)
            self.communication.clear_session()
            logger.info("finished logging out")
        return self

    def create_user(
        self,
        name: str | User,
        password: str | None = None,
        roles: Iterable[str] | None = None,
    ) -> Any:
        """
        Create (or update) a user on the server.

        Args:
            name: the user name, or a User whose name and password are used.
            password: the user password. An empty or missing password is
                sent as null. Ignored if `name` is a User.
            roles: the roles granted to the user. Defaults to no roles.

        Returns:
            the response from the server.

        Example:
            >>> connection.create_user("alice", "s3cret", roles=["reader"])
            {'ok': True, 'id': 'org.couchdb.user:alice', 'rev': '1-...'}
        """
        if isinstance(name, User):
            username, user_password = name.username, name.password
        else:
            username, user_password = name, password or ""
        payload = {
            "name": username,
            "password": user_password or None,
            "roles": list(roles) if roles is not None else [],
            "type": USER_DOC_TYPE,
        }
        logger.info(f"creating user '{username}'")
        response = self.communication.get_data(
            _user_path(username), HttpMethod.PUT, payload
        )
        logger.info(f"finished creating user '{username}'")
        return response

    def get_user_info(self, name: str) -> Any:
        """Return the user document, as stored on the server, for a user."""
        return self.communication.get_data(_user_path(name), HttpMethod.GET)

    def delete_user(self, name: str, rev: str | None = None) -> Any:
        """
        Delete a user from the server.

        Args:
            name: the user name.
            rev: the current revision of the user document, as required
                by the server to delete it.

        Returns:
            the response from the server.
        """
        logger.info(f"deleting user '{name}'")
        response = self.communication.get_data(
            _user_path(name),
            HttpMethod.DELETE,
            request_params={"rev": rev} if rev is not None else None,
        )
        logger.info(f"finished deleting user '{name}'")
        return response

    def list_user_names(self) -> list[str]:
        """
        List the names of the users defined on the server.

        Example:
            >>> connection.list_user_names()
            ['alice', 'bob']
        """
        response = self.communication.get_data(USERS_ALL_DOCS_PATH, HttpMethod.GET)
        if not isinstance(response, dict) or not isinstance(
            response.get("rows"), list
        ):
            raise BadResponseException(
                text="Faulty response from user list query.",
                raw_response=response,
            )
        user_names: list[str] = []
        for row in response["rows"]:
            doc_id = str(row.get("id") or "") if isinstance(row, dict) else ""
            if doc_id.startswith("_"):
                continue
            if doc_id.startswith(USER_DOC_ID_PREFIX):
                doc_id = doc_id[len(USER_DOC_ID_PREFIX) :]
            if doc_id:
                user_names.append(doc_id)
        return user_names

    def upgrade_to_cluster_connection(
        self, node_local_port: int = DEFAULT_LOCAL_CLUSTER_NODE_PORT
    ) -> ClusterConnection | None:
        """
        Get a handle to the cluster, if the server supports clustering.

        Args:
            node_local_port: the port, reachable from localhost on the nodes,
                that gives access to the node-local interface.

        Returns:
            a ClusterConnection for servers of major version 2 and above,
            None otherwise.
        """
        if self.get_supports_clusters():
            return ClusterConnection(node_local_port, self.communication)
        return None

    def upgrade_to_node_connection(
        self, node_local_port: int = DEFAULT_LOCAL_CLUSTER_NODE_PORT
    ) -> NodeConnection:
        """
        Get a handle to a server node, regardless of the server topology.

        Args:
            node_local_port: the port, reachable from localhost on the nodes,
                that gives access to the node-local interface.

        Returns:
            for a server without cluster support, a NodeConnection without
            node name standing for the server itself; otherwise, the
            NodeConnection for the first node of the cluster.
        """
        if not self.get_supports_clusters():
            return NodeConnection(node_local_port, None, self.communication)
        return ClusterConnection(node_local_port, self.communication).first_node()


def make_connection(*pargs: Any, **kwargs: Any) -> Connection:
    """Create a Connection. All arguments are passed to the Connection class."""
    return Connection(*pargs, **kwargs)


__all__ = [
    "Connection",
    "make_connection",
]
