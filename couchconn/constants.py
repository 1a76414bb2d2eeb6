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

from typing import Optional, Tuple

from couchconn.settings.defaults import (
    AUTH_TYPE_BASIC,
    AUTH_TYPE_COOKIE,
    AUTH_TYPE_COOKIE_READABLE,
    AUTH_TYPE_NONE,
)
from couchconn.utils.str_enum import StrEnum

CallerType = Tuple[Optional[str], Optional[str]]


class AuthType(StrEnum):
    """
    Admitted authentication modes for a connection to the server.

    Exactly one of them is active at any time on a given communication:
        NONE: requests are anonymous.
        BASIC: every request carries HTTP basic-auth credentials.
        COOKIE: requests carry the session cookie obtained at login.

    Besides the member names and values, the legacy readable name "auth"
    is accepted (case-insensitively) for the cookie mode.
    """

    NONE = AUTH_TYPE_NONE
    BASIC = AUTH_TYPE_BASIC
    COOKIE = AUTH_TYPE_COOKIE

    @classmethod
    def _aliases(cls) -> dict[str, str]:
        return {AUTH_TYPE_COOKIE_READABLE: "COOKIE"}

    @property
    def readable(self) -> str:
        if self is AuthType.COOKIE:
            return AUTH_TYPE_COOKIE_READABLE
        return str(self.value)


__all__ = [
    "AuthType",
    "CallerType",
]
