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

import json
import logging
from contextlib import contextmanager
from types import TracebackType
from typing import Any, Iterable, Iterator, Sequence

import httpx

from couchconn.authentication import User, UserWideType, coerce_user
from couchconn.constants import AuthType, CallerType
from couchconn.exceptions import (
    BadResponseException,
    CouchDBHttpException,
    _TimeoutContext,
    to_couchdb_communication_exception,
    to_couchdb_timeout_exception,
)
from couchconn.settings.defaults import (
    DEFAULT_AUTH_HEADER,
    DEFAULT_COOKIE_HEADER,
    DEFAULT_REDACTED_HEADER_NAMES,
    DEFAULT_REQUEST_TIMEOUT_MS,
    FIXED_SECRET_PLACEHOLDER,
    REDACTED_PAYLOAD_FIELDS,
    SESSION_COOKIE_NAME,
)
from couchconn.utils.request_tools import (
    HttpMethod,
    log_httpx_request,
    log_httpx_response,
    to_httpx_timeout,
)
from couchconn.utils.user_agents import (
    compose_full_user_agent,
    detect_couchconn_user_agent,
)

logger = logging.getLogger(__name__)


class Communication:
    """
    The object actually talking to the server: it issues the HTTP requests,
    takes care of JSON (de)serialization of payloads and responses and
    applies the authentication mode currently in force.

    A single Communication is shared, by reference, between a Connection and
    all the Database, ClusterConnection and NodeConnection objects spawned
    from it: they all observe the same server URL, credentials, session
    cookie and timeout.

    Thread-safety: the underlying `httpx.Client` can be used from several
    threads at once, but the mutable session state held here (server URL,
    user, auth mode, session cookie, timeout) is not guarded by any lock.
    Callers sharing an instance across threads must not change that state
    (which includes logging in and out) while other threads issue requests.

    Args:
        server_url: the base URL of the server, e.g. "http://localhost:5984".
        user: the credentials for the BASIC and COOKIE modes.
        auth_type: the authentication mode (an AuthType or its name).
        timeout_ms: a timeout, in milliseconds, for each HTTP request.
            Zero or None means no timeout.
        callers: a list of (name, version) pairs, prepended to the
            library's own in the User-Agent header.
        headers: additional headers to send with every request. Entries
            with a None value are dropped.
        redacted_header_names: names of headers whose value must never be
            logged, in addition to the authentication-related ones.
        http_client: an `httpx.Client` to use for the requests. If omitted,
            a new one is created and owned by this object (see `close`).
    """

    def __init__(
        self,
        server_url: str,
        user: UserWideType = None,
        auth_type: AuthType | str = AuthType.NONE,
        *,
        timeout_ms: int | None = DEFAULT_REQUEST_TIMEOUT_MS,
        callers: Sequence[CallerType] = [],
        headers: dict[str, str | None] = {},
        redacted_header_names: Iterable[str] | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        self.server_url = server_url.rstrip("/")
        self.user = coerce_user(user)
        self.auth_type = AuthType.coerce(auth_type)
        self.timeout_ms = timeout_ms
        self.callers = callers
        self.headers = headers
        self.redacted_header_names = set(redacted_header_names or [])
        self.upper_full_redacted_header_names = {
            header_name.upper()
            for header_name in (
                self.redacted_header_names | DEFAULT_REDACTED_HEADER_NAMES
            )
        }
        self.session_cookie: str | None = None
        self._owns_client = http_client is None
        self.client = http_client if http_client is not None else httpx.Client()

        full_user_agent_string = compose_full_user_agent(
            list(self.callers) + [detect_couchconn_user_agent()]
        )
        self.caller_header: dict[str, str] = (
            {"User-Agent": full_user_agent_string} if full_user_agent_string else {}
        )
        self.base_headers: dict[str, str] = {
            k: v
            for k, v in {
                **{
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                },
                **self.caller_header,
                **self.headers,
            }.items()
            if v is not None
        }

    def __repr__(self) -> str:
        pieces = [
            f'server_url="{self.server_url}"',
            f"user={self.user}",
            f"auth_type={self.auth_type.value}",
            f"timeout_ms={self.timeout_ms}",
        ]
        inner_desc = ", ".join(pieces)
        return f"{self.__class__.__name__}({inner_desc})"

    def __enter__(self) -> Communication:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None = None,
        exc_value: BaseException | None = None,
        traceback: TracebackType | None = None,
    ) -> None:
        self.close()

    def close(self) -> None:
        """Close the HTTP client, if it was created by this object."""
        if self._owns_client:
            self.client.close()

    def get_server_url(self) -> str:
        return self.server_url

    def set_server_url(self, server_url: str) -> None:
        self.server_url = server_url.rstrip("/")

    def get_user(self) -> User:
        return self.user

    def set_user(self, user: UserWideType) -> None:
        self.user = coerce_user(user)

    def get_auth_type(self) -> AuthType:
        return self.auth_type

    def get_auth_type_readable(self) -> str:
        return self.auth_type.readable

    def set_auth_type(self, auth_type: AuthType | str) -> None:
        self.auth_type = AuthType.coerce(auth_type)

    def get_timeout(self) -> int | None:
        return self.timeout_ms

    def set_timeout(self, timeout_ms: int | None) -> None:
        self.timeout_ms = timeout_ms

    def clear_session(self) -> None:
        """Forget the session cookie obtained at login, if any."""
        self.session_cookie = None

    @contextmanager
    def temporarily_set_auth_type(self, auth_type: AuthType | str) -> Iterator[None]:
        """
        Switch to the given auth mode for the duration of a `with` block.

        The mode in force when entering the block is restored on exit,
        whether the block completes or raises (and regardless of any
        further mode changes made within the block).
        """
        previous_auth_type = self.auth_type
        self.auth_type = AuthType.coerce(auth_type)
        try:
            yield
        finally:
            self.auth_type = previous_auth_type

    def _compose_request_url(self, path: str, server_root: bool) -> str:
        if server_root:
            # the root of the server, whatever the path in the server URL
            base_url = httpx.URL(self.server_url)
            return f"{base_url.scheme}://{base_url.netloc.decode('ascii')}/"
        if path:
            return "/".join([self.server_url, path.lstrip("/")])
        else:
            return self.server_url

    def _compose_auth_headers(self) -> dict[str, str]:
        if self.auth_type == AuthType.BASIC:
            if self.user.username:
                return {DEFAULT_AUTH_HEADER: self.user.basic_auth_header()}
        elif self.auth_type == AuthType.COOKIE:
            if self.session_cookie:
                return {
                    DEFAULT_COOKIE_HEADER: f"{SESSION_COOKIE_NAME}={self.session_cookie}"
                }
        return {}

    def _loggable_headers(self, full_headers: dict[str, str]) -> dict[str, str]:
        return {
            k: v
            if k.upper() not in self.upper_full_redacted_header_names
            else FIXED_SECRET_PLACEHOLDER
            for k, v in full_headers.items()
        }

    @staticmethod
    def _loggable_payload(payload: Any | None) -> Any | None:
        if isinstance(payload, dict):
            return {
                k: v
                if k not in REDACTED_PAYLOAD_FIELDS or v is None
                else FIXED_SECRET_PLACEHOLDER
                for k, v in payload.items()
            }
        return payload

    @staticmethod
    def _encode_payload(payload: Any | None) -> str | None:
        if payload is not None:
            return json.dumps(
                payload,
                allow_nan=False,
                separators=(",", ":"),
                ensure_ascii=False,
            )
        else:
            return None

    def _capture_session_cookie(self, raw_response: httpx.Response) -> None:
        # the session cookie is managed here and sent only in COOKIE mode:
        # it must not linger in the client jar, which would send it always.
        new_cookie = raw_response.cookies.get(SESSION_COOKIE_NAME)
        if new_cookie is not None:
            self.session_cookie = new_cookie or None
        self.client.cookies.delete(SESSION_COOKIE_NAME)

    def _request(
        self,
        *,
        http_method: str,
        path: str,
        payload: Any | None = None,
        server_root: bool = False,
        request_params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        request_url = self._compose_request_url(path, server_root=server_root)
        timeout_context = _TimeoutContext(request_ms=self.timeout_ms, label="timeout_ms")
        encoded_payload = self._encode_payload(payload)
        full_headers = {**self.base_headers, **self._compose_auth_headers()}
        log_httpx_request(
            http_method=http_method,
            full_url=request_url,
            request_params=request_params,
            redacted_request_headers=self._loggable_headers(full_headers),
            encoded_payload=self._encode_payload(self._loggable_payload(payload)),
            timeout_context=timeout_context,
        )
        httpx_timeout_s = to_httpx_timeout(timeout_context)

        try:
            raw_response = self.client.request(
                method=http_method,
                url=request_url,
                content=encoded_payload.encode()
                if encoded_payload is not None
                else None,
                params=request_params,
                timeout=httpx_timeout_s,
                headers=full_headers,
            )
        except httpx.TimeoutException as timeout_exc:
            raise to_couchdb_timeout_exception(
                timeout_exc, timeout_context=timeout_context
            )
        except httpx.TransportError as transport_exc:
            raise to_couchdb_communication_exception(transport_exc)

        self._capture_session_cookie(raw_response)
        log_httpx_response(response=raw_response)
        return raw_response

    @staticmethod
    def _to_http_exception(raw_response: httpx.Response) -> CouchDBHttpException:
        try:
            raw_response.raise_for_status()
        except httpx.HTTPStatusError as http_exc:
            return CouchDBHttpException.from_httpx_error(http_exc)
        raise ValueError(f"Not an error response: {raw_response.status_code}")

    @staticmethod
    def _parse_json_response(raw_response: httpx.Response) -> Any:
        return json.loads(raw_response.text)

    def get_raw_data(
        self,
        path: str,
        method: str = HttpMethod.GET,
    ) -> httpx.Response:
        """
        Issue a request and return the raw response, without reading it as JSON.

        Args:
            path: the path of the request, relative to the server URL.
            method: the HTTP verb (typically "HEAD" for existence checks).

        Returns:
            the `httpx.Response` (status code, headers, raw content).

        Raises:
            CouchDBHttpException, or one of its status-specific subclasses
            (e.g. ContentNotFoundException for a 404), for non-2xx responses.
        """
        raw_response = self._request(http_method=method, path=path)
        if not raw_response.is_success:
            raise self._to_http_exception(raw_response)
        return raw_response

    def get_data(
        self,
        path: str,
        method: str = HttpMethod.GET,
        payload: Any | None = None,
        *,
        server_root: bool = False,
        request_params: dict[str, Any] | None = None,
        raise_api_errors: bool = True,
    ) -> Any:
        """
        Issue a request and return the JSON value found in the response.

        Args:
            path: the path of the request, relative to the server URL.
            method: the HTTP verb.
            payload: a JSON-serializable value to send as the request body.
            server_root: if True, `path` is ignored and the request targets
                the root of the server, disregarding any path in the server URL.
            request_params: query parameters for the request.
            raise_api_errors: if False, non-2xx responses whose body is a JSON
                object are returned like successful ones, for the caller to
                inspect their "error"/"reason" members.

        Returns:
            the parsed JSON value (dict, list, str, number, bool or None).

        Raises:
            CouchDBHttpException (or a subclass) for non-2xx responses, unless
            suppressed as described above.
            BadResponseException if the response body is not valid JSON.
        """
        raw_response = self._request(
            http_method=method,
            path=path,
            payload=payload,
            server_root=server_root,
            request_params=request_params,
        )
        if not raw_response.is_success:
            http_exc = self._to_http_exception(raw_response)
            if not raise_api_errors:
                try:
                    error_body = self._parse_json_response(raw_response)
                except ValueError:
                    error_body = None
                if isinstance(error_body, dict):
                    logger.debug(
                        f"Returning error response from {method} {path}: {error_body}"
                    )
                    return error_body
            logger.warning(f"Communication about to raise from: {http_exc}")
            raise http_exc

        try:
            return self._parse_json_response(raw_response)
        except ValueError:
            raise BadResponseException(
                text=f"Unparseable response from server to {method} '{path}'.",
                raw_response=raw_response.text,
            )


__all__ = [
    "Communication",
]
