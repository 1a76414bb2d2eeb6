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

import importlib.metadata


def get_version() -> str:
    try:
        return importlib.metadata.version(__package__ or __name__)

    # If the package is not installed, the version cannot be known
    except importlib.metadata.PackageNotFoundError:
        return "unknown"


__version__: str = get_version()


import couchconn.constants  # noqa: E402
from couchconn.authentication import User  # noqa: E402
from couchconn.cluster import ClusterConnection, NodeConnection  # noqa: E402
from couchconn.communication import Communication  # noqa: E402
from couchconn.connection import Connection, make_connection  # noqa: E402
from couchconn.constants import AuthType  # noqa: E402
from couchconn.database import Database  # noqa: E402

__all__ = [
    "AuthType",
    "ClusterConnection",
    "Communication",
    "Connection",
    "Database",
    "NodeConnection",
    "User",
    "__version__",
    "make_connection",
]
