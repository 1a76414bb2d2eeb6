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

from couchconn import ClusterConnection, Communication, NodeConnection
from couchconn.exceptions import BadResponseException

MEMBERSHIP = {
    "all_nodes": ["couchdb@node2.local", "couchdb@node1.local"],
    "cluster_nodes": ["couchdb@node1.local", "couchdb@node2.local"],
}


class TestNodeConnection:
    @pytest.mark.describe("test of node configuration on a named node")
    def test_node_config_named(
        self, httpserver: HTTPServer, communication: Communication
    ) -> None:
        node = NodeConnection(5986, "couchdb@127.0.0.1", communication)
        httpserver.expect_oneshot_request(
            "/_node/couchdb@127.0.0.1/_config"
        ).respond_with_json({"couchdb": {"max_dbs_open": "500"}})
        httpserver.expect_oneshot_request(
            "/_node/couchdb@127.0.0.1/_config/couchdb"
        ).respond_with_json({"max_dbs_open": "500"})
        httpserver.expect_oneshot_request(
            "/_node/couchdb@127.0.0.1/_config/couchdb/max_dbs_open"
        ).respond_with_json("500")

        assert node.get_config() == {"couchdb": {"max_dbs_open": "500"}}
        assert node.get_config("couchdb") == {"max_dbs_open": "500"}
        assert node.get_config("couchdb", "max_dbs_open") == "500"
        httpserver.check_assertions()

    @pytest.mark.describe("test of node configuration on a non-clustered server")
    def test_node_config_unnamed(
        self, httpserver: HTTPServer, communication: Communication
    ) -> None:
        node = NodeConnection(5986, None, communication)
        httpserver.expect_oneshot_request("/_config/log/level").respond_with_json(
            "info"
        )
        assert node.get_config("log", "level") == "info"

        with pytest.raises(ValueError):
            node.get_config(key="level")

    @pytest.mark.describe("test of node handle equality")
    def test_node_equality(self, communication: Communication) -> None:
        node1 = NodeConnection(5986, "n1", communication)
        assert node1 == NodeConnection(5986, "n1", communication)
        assert node1 != NodeConnection(5987, "n1", communication)
        assert node1 != NodeConnection(5986, "n2", communication)
        with Communication("http://localhost:5984") as other_comm:
            assert node1 != NodeConnection(5986, "n1", other_comm)


class TestClusterConnection:
    @pytest.mark.describe("test of cluster node listing")
    def test_cluster_nodes(
        self, httpserver: HTTPServer, communication: Communication
    ) -> None:
        httpserver.expect_request("/_membership").respond_with_json(MEMBERSHIP)
        cluster = ClusterConnection(5986, communication)

        assert cluster.list_node_names() == [
            "couchdb@node2.local",
            "couchdb@node1.local",
        ]
        assert len(cluster) == 2
        nodes = list(cluster)
        assert [node.node_name for node in nodes] == cluster.list_node_names()
        assert all(node.node_local_port == 5986 for node in nodes)
        assert all(node.communication is communication for node in nodes)
        assert cluster.first_node() == nodes[0]

    @pytest.mark.describe("test of cluster node listing with faulty responses")
    def test_cluster_faulty(
        self, httpserver: HTTPServer, communication: Communication
    ) -> None:
        cluster = ClusterConnection(5986, communication)
        httpserver.expect_oneshot_request("/_membership").respond_with_json(
            {"cluster_nodes": []}
        )
        with pytest.raises(BadResponseException):
            cluster.list_node_names()

        httpserver.expect_oneshot_request("/_membership").respond_with_json(
            {"all_nodes": "couchdb@node1.local"}
        )
        with pytest.raises(BadResponseException):
            cluster.nodes()

        httpserver.expect_oneshot_request("/_membership").respond_with_json(
            {"all_nodes": []}
        )
        with pytest.raises(BadResponseException):
            cluster.first_node()
