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

import pytest
from pytest_httpserver import HTTPServer

from couchconn import (
    ClusterConnection,
    Communication,
    Connection,
    NodeConnection,
    make_connection,
)
from couchconn.authentication import User
from couchconn.constants import AuthType
from couchconn.exceptions import BadResponseException

from ..conftest import expect_server_version


class TestConnectionConstruction:
    @pytest.mark.describe("test of Connection construction from a URL")
    def test_connection_from_url(self) -> None:
        conn = Connection("http://localhost:5984")
        assert conn.get_server_url() == "http://localhost:5984"
        assert conn.get_auth_type() == AuthType.NONE
        assert conn.get_user() == User()
        assert conn.couchdb_major == -1
        assert conn.couchdb_version is None

    @pytest.mark.describe("test of Connection construction with credentials")
    def test_connection_with_credentials(self) -> None:
        conn = make_connection(
            "http://localhost:5984", ("alice", "pwd"), "basic", timeout_ms=500
        )
        assert conn.get_user() == User("alice", "pwd")
        assert conn.get_auth_type() == AuthType.BASIC
        assert conn.get_timeout() == 500

    @pytest.mark.describe("test of Connection construction sharing a Communication")
    def test_connection_shared_communication(self) -> None:
        comm = Communication("http://localhost:5984", auth_type="cookie")
        conn1 = Connection(communication=comm)
        conn2 = Connection("http://otherhost:5984", communication=comm)
        assert conn1.lowest_level() is comm
        assert conn2.lowest_level() is comm
        assert conn1 == conn2
        # the URL change went to the shared communication
        assert conn1.get_server_url() == "http://otherhost:5984"
        assert conn1.get_auth_type() == AuthType.COOKIE

    @pytest.mark.describe("test of Connection construction without a target")
    def test_connection_no_target(self) -> None:
        with pytest.raises(ValueError):
            Connection()

    @pytest.mark.describe("test of Connection accessors delegating to Communication")
    def test_connection_accessors(self) -> None:
        conn = Connection("http://localhost:5984")
        (
            conn.set_server_url("http://h:1")
            .set_user(User("bob", "pw"))
            .set_auth_type("Auth")
            .set_timeout(10)
        )
        comm = conn.lowest_level()
        assert comm.get_server_url() == "http://h:1"
        assert comm.get_user() == User("bob", "pw")
        assert comm.get_auth_type() == AuthType.COOKIE
        assert conn.get_auth_type_readable() == "auth"
        assert comm.get_timeout() == 10
        conn.set_auth_type(AuthType.BASIC)
        assert conn.get_auth_type_readable() == "basic"


class TestConnectionServerInfo:
    @pytest.mark.describe("test of server version and major version detection")
    def test_server_version(
        self, httpserver: HTTPServer, connection: Connection
    ) -> None:
        expect_server_version(httpserver, "2.3.1")
        assert connection.get_couchdb_version() == "2.3.1"
        assert connection.couchdb_major == 2

        expect_server_version(httpserver, "2.3.1")
        assert connection.get_major_version() == 2

        expect_server_version(httpserver, "vNext")
        assert connection.get_major_version() == -1
        assert connection.couchdb_version == "vNext"

        expect_server_version(httpserver, "10")
        assert connection.get_major_version() == 10
        httpserver.check_assertions()

    @pytest.mark.describe("test of server version fetched at each call")
    def test_server_version_refetched(
        self, httpserver: HTTPServer, connection: Connection
    ) -> None:
        expect_server_version(httpserver, "1.7.2")
        expect_server_version(httpserver, "3.3.3")
        assert connection.get_major_version() == 1
        assert connection.get_major_version() == 3

    @pytest.mark.describe("test of server info without version")
    def test_server_info_no_version(
        self, httpserver: HTTPServer, connection: Connection
    ) -> None:
        httpserver.expect_oneshot_request("/").respond_with_json({"couchdb": "Hi"})
        assert connection.get_couchdb_info() == {"couchdb": "Hi"}
        assert connection.couchdb_version == ""
        assert connection.couchdb_major == -1

    @pytest.mark.describe("test of server info with a faulty response")
    def test_server_info_faulty(
        self, httpserver: HTTPServer, connection: Connection
    ) -> None:
        httpserver.expect_oneshot_request("/").respond_with_json(["not", "an", "object"])
        with pytest.raises(BadResponseException):
            connection.get_couchdb_info()

    @pytest.mark.describe("test of cluster support detection")
    def test_supports_clusters(
        self, httpserver: HTTPServer, connection: Connection
    ) -> None:
        expect_server_version(httpserver, "1.6.1")
        assert connection.get_supports_clusters() is False
        expect_server_version(httpserver, "2.0.0")
        assert connection.get_supports_clusters() is True
        expect_server_version(httpserver, "unknown")
        assert connection.get_supports_clusters() is False

    @pytest.mark.describe("test of UUID generation")
    def test_get_uuids(self, httpserver: HTTPServer, connection: Connection) -> None:
        httpserver.expect_oneshot_request(
            "/_uuids", query_string="count=3"
        ).respond_with_json({"uuids": ["a", "b", "c"]})
        assert connection.get_uuids(3) == ["a", "b", "c"]

        httpserver.expect_oneshot_request(
            "/_uuids", query_string="count=10"
        ).respond_with_json({"uuids": "nope"})
        with pytest.raises(BadResponseException):
            connection.get_uuids()

    @pytest.mark.describe("test of active tasks query")
    def test_get_active_tasks(
        self, httpserver: HTTPServer, connection: Connection
    ) -> None:
        tasks = [{"type": "replication", "pid": "<0.1.0>"}]
        httpserver.expect_oneshot_request("/_active_tasks").respond_with_json(tasks)
        assert connection.get_active_tasks() == tasks

        httpserver.expect_oneshot_request("/_active_tasks").respond_with_json({})
        with pytest.raises(BadResponseException):
            connection.get_active_tasks()


class TestConnectionUpgrade:
    @pytest.mark.describe("test of cluster upgrade on a non-clustered server")
    def test_upgrade_non_clustered(
        self, httpserver: HTTPServer, connection: Connection
    ) -> None:
        expect_server_version(httpserver, "1.7.2")
        assert connection.upgrade_to_cluster_connection() is None

        expect_server_version(httpserver, "1.7.2")
        node = connection.upgrade_to_node_connection(15986)
        assert isinstance(node, NodeConnection)
        assert node.node_name is None
        assert node.node_local_port == 15986
        assert node.communication is connection.lowest_level()

    @pytest.mark.describe("test of cluster upgrade on a clustered server")
    def test_upgrade_clustered(
        self, httpserver: HTTPServer, connection: Connection
    ) -> None:
        expect_server_version(httpserver, "3.3.3")
        cluster = connection.upgrade_to_cluster_connection()
        assert isinstance(cluster, ClusterConnection)
        assert cluster.node_local_port == 5986
        assert cluster.communication is connection.lowest_level()

        expect_server_version(httpserver, "3.3.3")
        httpserver.expect_oneshot_request("/_membership").respond_with_json(
            {
                "all_nodes": ["couchdb@node2", "couchdb@node1"],
                "cluster_nodes": ["couchdb@node1", "couchdb@node2"],
            }
        )
        node = connection.upgrade_to_node_connection()
        assert node.node_name == "couchdb@node2"
        assert node.communication is connection.lowest_level()
        httpserver.check_assertions()

    @pytest.mark.describe("test of node upgrade on a cluster without nodes")
    def test_upgrade_clustered_no_nodes(
        self, httpserver: HTTPServer, connection: Connection
    ) -> None:
        expect_server_version(httpserver, "3.3.3")
        httpserver.expect_oneshot_request("/_membership").respond_with_json(
            {"all_nodes": [], "cluster_nodes": []}
        )
        with pytest.raises(BadResponseException):
            connection.upgrade_to_node_connection()
