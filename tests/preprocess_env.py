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
Bottleneck entrypoint for reading os.environ (and a .env file, if present)
and exposing its contents as (normalized) regular variables.
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

from couchconn.authentication import User
from couchconn.constants import AuthType

load_dotenv()

COUCHDB_URL: str | None = os.environ.get("COUCHDB_URL") or None
COUCHDB_USERNAME: str | None = os.environ.get("COUCHDB_USERNAME") or None
COUCHDB_PASSWORD: str | None = os.environ.get("COUCHDB_PASSWORD") or None
COUCHDB_AUTH_TYPE: AuthType = AuthType.coerce(
    os.environ.get("COUCHDB_AUTH_TYPE") or "cookie"
)

IS_LIVE_COUCHDB: bool = COUCHDB_URL is not None

COUCHDB_USER: User | None = None
if COUCHDB_USERNAME and COUCHDB_PASSWORD:
    COUCHDB_USER = User(username=COUCHDB_USERNAME, password=COUCHDB_PASSWORD)
