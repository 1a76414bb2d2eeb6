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
Main conftest for shared fixtures.
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from pytest_httpserver import HTTPServer

from couchconn import Communication, Connection


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers", "describe(text): a human-readable description of the test"
    )


@pytest.fixture
def communication(httpserver: HTTPServer) -> Iterator[Communication]:
    """A Communication targeting the mock server, without authentication."""
    with Communication(httpserver.url_for("/")) as comm:
        yield comm


@pytest.fixture
def connection(communication: Communication) -> Connection:
    """A Connection on the mock server, without authentication."""
    return Connection(communication=communication)


def expect_server_version(httpserver: HTTPServer, version: str) -> None:
    """Make the mock server answer the root query once with the given version."""
    httpserver.expect_oneshot_request("/", method="GET").respond_with_json(
        {"couchdb": "Welcome", "version": version}
    )
