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

from dataclasses import dataclass
from typing import Any

import httpx


class CouchDBException(Exception):
    """
    Any exception occurred while talking to the server and specific to
    this library, such as:
      - the server returns a response with an unexpected shape,
      - a database cannot be created or deleted,
      - a requested resource is not found,
      - a request times out.
    """

    def __init__(self, text: str | None = None):
        Exception.__init__(self, text or "")


@dataclass
class BadResponseException(CouchDBException):
    """
    The server response is malformed in that it is not valid JSON, or it
    does not have the expected field(s), or they are of the wrong type.

    Attributes:
        text: a text message about the exception.
        raw_response: the response returned by the server, if it could be parsed.
    """

    text: str
    raw_response: Any

    def __init__(
        self,
        text: str,
        raw_response: Any = None,
    ) -> None:
        super().__init__(text)
        self.text = text
        self.raw_response = raw_response


@dataclass
class DatabaseUnavailableException(CouchDBException):
    """
    The list of databases could not be obtained from the server.

    Attributes:
        text: a text message about the exception.
    """

    text: str | None

    def __init__(self, text: str | None = None) -> None:
        super().__init__(text)
        self.text = text


@dataclass
class DatabaseNotCreatableException(CouchDBException):
    """
    The server refused to create a database.

    Attributes:
        text: the reason given by the server, if any.
        database_name: the name of the database.
    """

    text: str | None
    database_name: str | None

    def __init__(
        self, text: str | None = None, *, database_name: str | None = None
    ) -> None:
        super().__init__(text)
        self.text = text
        self.database_name = database_name


@dataclass
class DatabaseNotDeletableException(CouchDBException):
    """
    The server refused to delete a database.

    Attributes:
        text: the reason given by the server, if any.
        database_name: the name of the database.
    """

    text: str | None
    database_name: str | None

    def __init__(
        self, text: str | None = None, *, database_name: str | None = None
    ) -> None:
        super().__init__(text)
        self.text = text
        self.database_name = database_name


@dataclass
class CouchDBHttpException(CouchDBException, httpx.HTTPStatusError):
    """
    A request to the server resulted in an HTTP 4xx or 5xx response.

    The server usually describes the failure with a JSON body such as
    `{"error": "not_found", "reason": "Database does not exist."}`:
    both members are extracted when present.

    Status-specific subclasses are chosen by `from_httpx_error`.

    Attributes:
        text: a text message about the exception.
        error: the "error" member of the response body, if any.
        reason: the "reason" member of the response body, if any.
    """

    text: str | None
    error: str | None
    reason: str | None

    def __init__(
        self,
        text: str | None,
        *,
        httpx_error: httpx.HTTPStatusError,
        error: str | None = None,
        reason: str | None = None,
    ) -> None:
        CouchDBException.__init__(self, text)
        httpx.HTTPStatusError.__init__(
            self,
            message=str(httpx_error),
            request=httpx_error.request,
            response=httpx_error.response,
        )
        self.text = text
        self.httpx_error = httpx_error
        self.error = error
        self.reason = reason

    def __str__(self) -> str:
        return self.text or str(self.httpx_error)

    @property
    def status_code(self) -> int | None:
        if isinstance(self.response, httpx.Response):
            return self.response.status_code
        return None

    @classmethod
    def from_httpx_error(
        cls,
        httpx_error: httpx.HTTPStatusError,
        **kwargs: Any,
    ) -> CouchDBHttpException:
        """Parse a httpx status error into this exception (or a subclass)."""

        raw_response: dict[str, Any]
        # the attempt to extract a response structure cannot afford failure.
        try:
            raw_response = httpx_error.response.json()
            if not isinstance(raw_response, dict):
                raw_response = {}
        except Exception:
            raw_response = {}
        error = raw_response.get("error")
        reason = raw_response.get("reason")
        error_str = error if isinstance(error, str) else None
        reason_str = reason if isinstance(reason, str) else None
        if error_str and reason_str:
            text = f"{error_str}: {reason_str}. {str(httpx_error)}"
        elif error_str or reason_str:
            text = f"{error_str or reason_str}. {str(httpx_error)}"
        else:
            text = str(httpx_error)

        try:
            status_code = httpx_error.response.status_code
        except Exception:
            status_code = None
        exc_class = _HTTP_EXCEPTION_CLASS_MAP.get(status_code, cls)  # type: ignore[arg-type]
        return exc_class(
            text=text,
            httpx_error=httpx_error,
            error=error_str,
            reason=reason_str,
            **kwargs,
        )


class UnauthorizedException(CouchDBHttpException):
    """The server answered 401: missing or wrong credentials."""


class ForbiddenException(CouchDBHttpException):
    """The server answered 403: the user lacks the required permissions."""


class ContentNotFoundException(CouchDBHttpException):
    """
    The server answered 404: the requested resource (database, document,
    user, ...) does not exist.
    """


class ConflictException(CouchDBHttpException):
    """The server answered 409: a document update conflict."""


class PreconditionFailedException(CouchDBHttpException):
    """The server answered 412, e.g. when creating a database that exists."""


_HTTP_EXCEPTION_CLASS_MAP: dict[int, type[CouchDBHttpException]] = {
    401: UnauthorizedException,
    403: ForbiddenException,
    404: ContentNotFoundException,
    409: ConflictException,
    412: PreconditionFailedException,
}


@dataclass
class CouchDBTimeoutException(CouchDBException):
    """
    A request to the server timed out.

    Attributes:
        text: a textual description of the error
        timeout_type: this denotes the phase of the HTTP request when the event
            occurred ("connect", "read", "write", "pool") or "generic" if there is
            not a specific request associated to the exception.
        endpoint: if the timeout is tied to a specific request, this is the
            URL that the request was targeting.
        raw_payload:  if the timeout is tied to a specific request, this is the
            associated payload (as a string).
    """

    text: str
    timeout_type: str
    endpoint: str | None
    raw_payload: str | None

    def __init__(
        self,
        text: str,
        *,
        timeout_type: str,
        endpoint: str | None,
        raw_payload: str | None,
    ) -> None:
        super().__init__(text)
        self.text = text
        self.timeout_type = timeout_type
        self.endpoint = endpoint
        self.raw_payload = raw_payload


@dataclass
class CouchDBCommunicationException(CouchDBException):
    """
    The server could not be reached, or the connection broke down
    (for any reason other than a timeout).

    Attributes:
        text: a textual description of the error
        endpoint: the URL that the request was targeting, if known.
    """

    text: str
    endpoint: str | None

    def __init__(self, text: str, *, endpoint: str | None = None) -> None:
        super().__init__(text)
        self.text = text
        self.endpoint = endpoint
