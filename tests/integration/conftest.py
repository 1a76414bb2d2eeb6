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

"""
Fixtures for the tests against a live CouchDB server, located through
the COUCHDB_* environment variables (or a .env file).
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from couchconn import Connection

from ..preprocess_env import COUCHDB_AUTH_TYPE, COUCHDB_URL, COUCHDB_USER

LIVE_TEST_DB_NAME = "couchconn_test_db"
LIVE_TEST_USER_NAME = "couchconn_test_user"


@pytest.fixture(scope="session")
def live_connection() -> Iterator[Connection]:
    if COUCHDB_URL is None:
        pytest.skip("No live CouchDB server configured (COUCHDB_URL).")
    connection = Connection(
        COUCHDB_URL,
        user=COUCHDB_USER,
        auth_type=COUCHDB_AUTH_TYPE,
        callers=[("couchconn-tests", None)],
    )
    connection.login()
    yield connection
    connection.logout()
    connection.lowest_level().close()


@pytest.fixture
def live_test_db_name(live_connection: Connection) -> Iterator[str]:
    live_connection.ensure_db_is_deleted(LIVE_TEST_DB_NAME)
    yield LIVE_TEST_DB_NAME
    live_connection.ensure_db_is_deleted(LIVE_TEST_DB_NAME)


__all__ = [
    "LIVE_TEST_DB_NAME",
    "LIVE_TEST_USER_NAME",
]
