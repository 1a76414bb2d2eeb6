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
from typing import TYPE_CHECKING, Any, Iterator

from couchconn.database import encode_path_component
from couchconn.exceptions import BadResponseException
from couchconn.settings.defaults import MEMBERSHIP_PATH
from couchconn.utils.request_tools import HttpMethod

if TYPE_CHECKING:
    from couchconn.communication import Communication


logger = logging.getLogger(__name__)


class NodeConnection:
    """
    A handle for per-node administration of the server.

    For a clustered server each node of the cluster gets its own handle,
    identified by the node name. A single-node (non-clustered) server is
    represented by a handle without node name.

    This class is not meant for direct instantiation by the user, rather
    it is obtained through the `upgrade_to_node_connection` method of
    Connection or from a ClusterConnection.

    Args:
        node_local_port: the port, reachable from the node's localhost, giving
            access to the node-local interface. It is recorded for reference
            only: all requests, including `get_config`, go through the
            server URL of the shared communication.
        node_name: the name of the node in the cluster (e.g.
            "couchdb@127.0.0.1"), or None for a non-clustered server.
        communication: the Communication shared with the spawning connection.
    """

    def __init__(
        self,
        node_local_port: int,
        node_name: str | None,
        communication: Communication,
    ) -> None:
        self.node_local_port = node_local_port
        self.node_name = node_name
        self.communication = communication

    def __repr__(self) -> str:
        parts = [
            f"node_local_port={self.node_local_port}",
            f"node_name={self.node_name}",
        ]
        return f"{self.__class__.__name__}({', '.join(parts)})"

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, NodeConnection):
            return all(
                [
                    self.node_local_port == other.node_local_port,
                    self.node_name == other.node_name,
                    self.communication is other.communication,
                ]
            )
        else:
            return False

    def _config_path(self, section: str | None, key: str | None) -> str:
        if self.node_name:
            base_path = f"/_node/{encode_path_component(self.node_name)}/_config"
        else:
            base_path = "/_config"
        if section is None:
            return base_path
        if key is None:
            return f"{base_path}/{encode_path_component(section)}"
        return f"{base_path}/{encode_path_component(section)}/{encode_path_component(key)}"

    def get_config(self, section: str | None = None, key: str | None = None) -> Any:
        """
        Read the configuration of this node.

        Args:
            section: a configuration section (e.g. "couchdb"). If omitted,
                the whole configuration is returned.
            key: a key within the section. Requires `section`.

        Returns:
            a dictionary (whole configuration or section) or the string
            value of a single key.
        """
        if key is not None and section is None:
            raise ValueError("A configuration key requires a section.")
        return self.communication.get_data(
            self._config_path(section, key), HttpMethod.GET
        )


class ClusterConnection:
    """
    A handle for a clustered server, seen as an ordered collection of nodes.

    The nodes are those reported by the server's membership endpoint, in the
    order the server lists them. The list is fetched anew at each access.

    This class is not meant for direct instantiation by the user, rather
    it is obtained through the `upgrade_to_cluster_connection` method of
    Connection.

    Args:
        node_local_port: the node-local port, passed on to the node handles.
        communication: the Communication shared with the spawning connection.

    Example:
        >>> cluster = connection.upgrade_to_cluster_connection()
        >>> if cluster is not None:
        ...     print(cluster.list_node_names())
        ['couchdb@node1.local', 'couchdb@node2.local']
    """

    def __init__(self, node_local_port: int, communication: Communication) -> None:
        self.node_local_port = node_local_port
        self.communication = communication

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(node_local_port={self.node_local_port})"

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, ClusterConnection):
            return all(
                [
                    self.node_local_port == other.node_local_port,
                    self.communication is other.communication,
                ]
            )
        else:
            return False

    def __iter__(self) -> Iterator[NodeConnection]:
        return iter(self.nodes())

    def __len__(self) -> int:
        return len(self.list_node_names())

    def list_node_names(self) -> list[str]:
        """
        Query the server for the names of all nodes in the cluster.

        Returns:
            the node names, in the order returned by the server.
        """
        logger.info("getting list of cluster nodes")
        response = self.communication.get_data(MEMBERSHIP_PATH, HttpMethod.GET)
        if not isinstance(response, dict) or not isinstance(
            response.get("all_nodes"), list
        ):
            raise BadResponseException(
                text="Faulty response from cluster membership query.",
                raw_response=response,
            )
        logger.info("finished getting list of cluster nodes")
        return [str(node_name) for node_name in response["all_nodes"]]

    def nodes(self) -> list[NodeConnection]:
        return [
            NodeConnection(self.node_local_port, node_name, self.communication)
            for node_name in self.list_node_names()
        ]

    def first_node(self) -> NodeConnection:
        """
        Return the handle for the first node in the cluster ordering.

        Raises:
            BadResponseException if the server reports no nodes at all.
        """
        node_names = self.list_node_names()
        if not node_names:
            raise BadResponseException(
                text="The cluster membership query returned no nodes.",
                raw_response=None,
            )
        return NodeConnection(self.node_local_port, node_names[0], self.communication)


__all__ = [
    "ClusterConnection",
    "NodeConnection",
]
