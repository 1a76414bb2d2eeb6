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

# Names for the authentication modes
AUTH_TYPE_NONE = "none"
AUTH_TYPE_BASIC = "basic"
AUTH_TYPE_COOKIE = "cookie"
# legacy readable name for the cookie mode
AUTH_TYPE_COOKIE_READABLE = "auth"

# Defaults/settings for requests to the server
DEFAULT_REQUEST_TIMEOUT_MS = 30000
DEFAULT_LOCAL_CLUSTER_NODE_PORT = 5986
DEFAULT_UUIDS_COUNT = 10
SESSION_COOKIE_NAME = "AuthSession"

# Server paths
SESSION_PATH = "/_session"
ALL_DBS_PATH = "/_all_dbs"
ACTIVE_TASKS_PATH = "/_active_tasks"
UUIDS_PATH = "/_uuids"
MEMBERSHIP_PATH = "/_membership"
USERS_DB_PATH = "/_users"
USERS_ALL_DOCS_PATH = "/_users/_all_docs"
USER_DOC_ID_PREFIX = "org.couchdb.user:"
USER_DOC_TYPE = "user"

# Database names starting with these are reserved/internal to the server
RESERVED_DB_NAME_PREFIXES = ("_", "shards/")
# Minimum major version for which the server is cluster-aware
CLUSTER_SUPPORT_MIN_MAJOR_VERSION = 2
UNKNOWN_MAJOR_VERSION = -1

# Settings for redacting secrets in string representations and logging
SECRETS_REDACT_ENDING = "..."
SECRETS_REDACT_CHAR = "*"
SECRETS_REDACT_ENDING_LENGTH = 3
FIXED_SECRET_PLACEHOLDER = "***"
DEFAULT_AUTH_HEADER = "Authorization"
DEFAULT_COOKIE_HEADER = "Cookie"
DEFAULT_REDACTED_HEADER_NAMES = {
    DEFAULT_AUTH_HEADER,
    DEFAULT_COOKIE_HEADER,
}
# Top-level payload members never logged as they are
REDACTED_PAYLOAD_FIELDS = {"password"}
