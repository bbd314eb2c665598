"""Remote API gateway for the Dashboard REST API (v1).

One method per domain verb. Each method issues exactly one HTTP request,
classifies the outcome and decodes the JSON body into a typed record.

ERROR CLASSIFICATION:
- TransportError: no status code was obtained (connection, TLS, timeout)
- NotFoundError: a read returned 404
- ConflictError: any other status than the one expected for the verb
- DecodeError: the body was not JSON or did not match the record shape

No retries are performed here. A fault surfaces on the first attempt so the
caller can decide whether to re-run the whole reconciliation.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import requests
from pydantic import ValidationError

from .config import DEFAULT_BASE_URL, Config
from .models import Network, NetworkCreateRequest, NetworkUpdateRequest, Organization
from .security import ApiKeyCredential, get_api_key_credential

logger = logging.getLogger(__name__)

HTTP_OK = 200
HTTP_CREATED = 201
HTTP_NO_CONTENT = 204
HTTP_NOT_FOUND = 404

USER_AGENT = "meraki-connector/0.1.0"


class GatewayError(Exception):
    """Base class for remote call failures.

    Carries the endpoint, the submitted body and the raw response body so the
    failure can be diagnosed from the error alone.
    """

    def __init__(
        self,
        message: str,
        *,
        method: str | None = None,
        url: str | None = None,
        request_body: str | None = None,
        status_code: int | None = None,
        response_body: str | None = None,
    ) -> None:
        self.method = method
        self.url = url
        self.request_body = request_body
        self.status_code = status_code
        self.response_body = response_body
        super().__init__(message)

    def __str__(self) -> str:
        parts = [self.args[0] if self.args else self.__class__.__name__]
        if self.method and self.url:
            parts.append(f"endpoint: {self.method} {self.url}")
        if self.status_code is not None:
            parts.append(f"status: {self.status_code}")
        if self.request_body:
            parts.append(f"request body: {self.request_body}")
        if self.response_body:
            parts.append(f"response body: {self.response_body}")
        return ", ".join(parts)


class TransportError(GatewayError):
    """Connection or IO failure before a status code was obtained."""


class DecodeError(GatewayError):
    """Malformed or unexpected JSON body."""


class ConflictError(GatewayError):
    """Unexpected HTTP status for the attempted verb."""


class NotFoundError(GatewayError):
    """The remote record does not exist."""


class MerakiGateway:
    """Typed client for the organization and network endpoints.

    The credential and base URL are fixed at construction. The instance is
    shared by reference between every resource of a session.
    """

    def __init__(
        self,
        credential: ApiKeyCredential,
        base_url: str = DEFAULT_BASE_URL,
        timeout_seconds: float | None = None,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize the gateway.

        Args:
            credential: Bearer token used for every request.
            base_url: API root including the /api/v1 version path.
            timeout_seconds: Optional per-call deadline. None waits indefinitely.
            session: HTTP session to reuse. A new one is created if omitted.
        """
        self._credential = credential
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds
        self._session = session if session is not None else requests.Session()
        self._session.headers.update(
            {
                "Accept": "application/json",
                "User-Agent": USER_AGENT,
                **credential.authorization_header,
            }
        )

    @classmethod
    def from_config(
        cls,
        config: Config,
        session: requests.Session | None = None,
    ) -> MerakiGateway:
        """Build a gateway from validated configuration."""
        return cls(
            credential=get_api_key_credential(config.api_key),
            base_url=config.api_root,
            timeout_seconds=config.request_timeout_seconds,
            session=session,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> MerakiGateway:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Organizations
    # -------------------------------------------------------------------------

    def list_organizations(self) -> list[Organization]:
        """Enumerate every organization visible to the credential."""
        url = f"{self._base_url}/organizations"
        data = self._request("GET", url, expected_status=HTTP_OK, action="list organizations")
        if not isinstance(data, list):
            raise DecodeError(
                "Expected a JSON array of organizations",
                method="GET",
                url=url,
                response_body=_truncate(json.dumps(data)),
            )
        return [self._decode(Organization, item, "GET", url) for item in data]

    def get_organization(self, org_id: str) -> Organization:
        url = f"{self._base_url}/organizations/{org_id}"
        data = self._request("GET", url, expected_status=HTTP_OK, action="get organization")
        return self._decode(Organization, data, "GET", url)

    # -------------------------------------------------------------------------
    # Networks
    # -------------------------------------------------------------------------

    def create_network(self, org_id: str, request: NetworkCreateRequest) -> Network:
        """Create a network. Anything but 201 Created is a ConflictError."""
        url = f"{self._base_url}/organizations/{org_id}/networks"
        data = self._request(
            "POST",
            url,
            expected_status=HTTP_CREATED,
            action="create network",
            payload=request.to_payload(),
        )
        return self._decode(Network, data, "POST", url)

    def get_network(self, network_id: str, org_id: str | None = None) -> Network:
        """Fetch a network, scoped to its organization when org_id is given."""
        if org_id:
            url = f"{self._base_url}/organizations/{org_id}/networks/{network_id}"
        else:
            url = f"{self._base_url}/networks/{network_id}"
        data = self._request("GET", url, expected_status=HTTP_OK, action="get network")
        return self._decode(Network, data, "GET", url)

    def update_network(self, network_id: str, request: NetworkUpdateRequest) -> Network:
        """Submit a partial update. Only fields set on the request are sent."""
        url = f"{self._base_url}/networks/{network_id}"
        data = self._request(
            "PUT",
            url,
            expected_status=HTTP_OK,
            action="update network",
            payload=request.to_payload(),
        )
        return self._decode(Network, data, "PUT", url)

    def delete_network(self, network_id: str) -> None:
        """Delete a network. Anything but 204 No Content is a ConflictError."""
        url = f"{self._base_url}/networks/{network_id}"
        self._request("DELETE", url, expected_status=HTTP_NO_CONTENT, action="delete network")

    # -------------------------------------------------------------------------
    # Plumbing
    # -------------------------------------------------------------------------

    def _request(
        self,
        method: str,
        url: str,
        *,
        expected_status: int,
        action: str,
        payload: dict[str, Any] | None = None,
    ) -> Any:
        body = json.dumps(payload) if payload is not None else None
        headers = {"Content-Type": "application/json"} if body is not None else None

        if method != "GET":
            # Audit trail: mutating calls are logged before transmission
            logger.info(
                f"Submitting {action} request",
                extra={"method": method, "url": url, "request_body": body},
            )
        else:
            logger.debug("Sending request", extra={"method": method, "url": url})

        try:
            response = self._session.request(
                method,
                url,
                data=body,
                headers=headers,
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            raise TransportError(
                f"Failed to {action}: {e}",
                method=method,
                url=url,
                request_body=body,
            ) from e

        if response.status_code != expected_status:
            error_class = (
                NotFoundError
                if method == "GET" and response.status_code == HTTP_NOT_FOUND
                else ConflictError
            )
            raise error_class(
                f"Failed to {action}",
                method=method,
                url=url,
                request_body=body,
                status_code=response.status_code,
                response_body=response.text,
            )

        if expected_status == HTTP_NO_CONTENT:
            return None

        try:
            return response.json()
        except ValueError as e:
            raise DecodeError(
                f"Failed to {action}: response is not valid JSON",
                method=method,
                url=url,
                request_body=body,
                status_code=response.status_code,
                response_body=_truncate(response.text),
            ) from e

    def _decode(self, model: type[Any], data: Any, method: str, url: str) -> Any:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            errors = "; ".join(
                f"{'.'.join(str(x) for x in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            raise DecodeError(
                f"Unexpected {model.__name__} shape: {errors}",
                method=method,
                url=url,
                response_body=_truncate(json.dumps(data, default=str)),
            ) from e


# Bound on response bodies embedded in decode errors
MAX_ERROR_BODY_CHARS = 2000


def _truncate(text: str | None) -> str | None:
    if text is None or len(text) <= MAX_ERROR_BODY_CHARS:
        return text
    return text[:MAX_ERROR_BODY_CHARS] + "..."
