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

import base64
from dataclasses import dataclass
from typing import Tuple, Union

from typing_extensions import override

from couchconn.settings.defaults import (
    FIXED_SECRET_PLACEHOLDER,
    SECRETS_REDACT_CHAR,
    SECRETS_REDACT_ENDING,
    SECRETS_REDACT_ENDING_LENGTH,
)


def _redact_secret(secret: str, max_length: int, hide_if_short: bool = True) -> str:
    """
    Return a shortened-if-necessary version of a 'secret' string (with ellipsis).

    Args:
        secret: a secret string to redact
        max_length: if the secret and the fixed ending exceed this size,
            shortening takes place.
        hide_if_short: this controls what to do when the input secret is
            shorter, i.e. when no shortening takes place.
            if False, the secret is returned as-is;
            If True, a masked string is returned of the same length as secret.

    Returns:
        a 'redacted' form of the secret string as per the rules outlined above.
    """
    secret_len = len(secret)
    if secret_len + SECRETS_REDACT_ENDING_LENGTH > max_length:
        return (
            secret[: max_length - SECRETS_REDACT_ENDING_LENGTH] + SECRETS_REDACT_ENDING
        )
    else:
        if hide_if_short:
            return SECRETS_REDACT_CHAR * len(secret)
        else:
            return secret


@dataclass(frozen=True)
class User:
    """
    The credentials of a server user: a username/password pair.

    An empty password stands for "no password" (e.g. when creating a user
    whose password is to be left untouched).

    The __str__ / __repr__ methods never expose the password.

    Args:
        username: the name of the user.
        password: the corresponding password.

    Example:
        >>> from couchconn import Connection
        >>> from couchconn.authentication import User
        >>> connection = Connection(
        ...     "http://localhost:5984",
        ...     user=User("admin", "secret"),
        ...     auth_type="cookie",
        ... )
    """

    username: str = ""
    password: str = ""

    @override
    def __repr__(self) -> str:
        _r_username = _redact_secret(self.username, 6, hide_if_short=False)
        _r_password = FIXED_SECRET_PLACEHOLDER if self.password else ""
        return f'{self.__class__.__name__}("username={_r_username}, password={_r_password}")'

    @staticmethod
    def _b64(cleartext: str) -> str:
        return base64.b64encode(cleartext.encode()).decode()

    def basic_auth_header(self) -> str:
        """The value of the 'Authorization' header for HTTP basic auth."""
        return f"Basic {self._b64(f'{self.username}:{self.password}')}"


UserWideType = Union[User, Tuple[str, str], None]


def coerce_user(user: UserWideType) -> User:
    if isinstance(user, User):
        return user
    elif user is None:
        return User()
    else:
        username, password = user
        return User(username=username, password=password)


__all__ = [
    "User",
    "coerce_user",
]
