"""
LicensingGateway: async JSON:API client for the Keygen licensing service.

Covers the calls the activation/heartbeat lifecycle needs: scoped key
validation, machine and process resources, and process pings.
"""

import json
from typing import Any, Optional
from urllib.parse import quote

import httpx

from license_heartbeat.common.config import HeartbeatSettings
from license_heartbeat.common.exceptions import GatewayError
from license_heartbeat.common.logging import get_logger
from license_heartbeat.common.schemas import Machine, Process, ValidationResult

logger = get_logger("gateway")

JSONAPI_MEDIA_TYPE = "application/vnd.api+json"


class LicensingGateway:
    """
    Asynchronous HTTP client for the licensing API.

    Every call is a single request: no retries and no client-side timeout.
    Failures surface as GatewayError.
    """

    def __init__(
        self,
        settings: HeartbeatSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        self._http = httpx.AsyncClient(
            base_url=settings.account_url,
            timeout=None,
            transport=transport,
            headers={"Accept": JSONAPI_MEDIA_TYPE},
        )

    @staticmethod
    def _license_headers(key: str) -> dict[str, str]:
        return {"Authorization": f"License {key}"}

    async def _request(
        self,
        method: str,
        path: str,
        key: Optional[str] = None,
        body: Optional[dict[str, Any]] = None,
        allow_no_content: bool = False,
    ) -> Optional[dict[str, Any]]:
        """Central HTTP method with JSON:API error envelope handling.

        A non-empty ``errors`` collection is a failure whatever the status.
        With ``allow_no_content``, any 2xx status returns None without
        reading the body.
        """
        headers = self._license_headers(key) if key else {}
        kwargs: dict[str, Any] = {"headers": headers}
        if body is not None:
            headers["Content-Type"] = JSONAPI_MEDIA_TYPE
            kwargs["content"] = json.dumps(body)

        try:
            resp = await self._http.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error("%s %s failed: %s", method, path, e)
            raise GatewayError(
                [{"title": "Network error", "detail": str(e)}],
                message=f"Request to {path} failed: {e}",
            ) from e

        if allow_no_content and resp.is_success:
            return None

        try:
            doc = resp.json()
        except ValueError as e:
            # JSONDecodeError and UnicodeDecodeError both land here.
            raise GatewayError(
                [{"title": "Invalid response", "detail": "Response body is not valid JSON"}],
                status_code=resp.status_code,
            ) from e

        errors = doc.get("errors") if isinstance(doc, dict) else None
        if errors:
            logger.warning("%s %s returned errors (status %s)", method, path, resp.status_code)
            raise GatewayError(errors, status_code=resp.status_code)
        if not resp.is_success or not isinstance(doc, dict):
            raise GatewayError(
                [{"title": "Unexpected response", "detail": f"HTTP {resp.status_code}"}],
                status_code=resp.status_code,
            )
        return doc

    @staticmethod
    def _resource_data(doc: dict[str, Any]) -> dict[str, Any]:
        """Return the primary resource object of a document."""
        data = doc.get("data")
        if not isinstance(data, dict) or "id" not in data:
            raise GatewayError(
                [{"title": "Invalid response", "detail": "Response has no resource data"}]
            )
        return data

    @staticmethod
    def _resource_path(kind: str, resource_id: str) -> str:
        return f"/{kind}/{quote(resource_id, safe='')}"

    # ── Licenses ──

    async def validate_key(self, fingerprint: str, key: str) -> ValidationResult:
        """Validate a license key scoped to a machine fingerprint."""
        doc = await self._request(
            "POST",
            "/licenses/actions/validate-key",
            body={"meta": {"scope": {"fingerprint": fingerprint}, "key": key}},
        )
        return ValidationResult.from_document(doc)

    # ── Machines ──

    async def create_machine(self, fingerprint: str, license_id: str, key: str) -> Machine:
        """Activate a machine for a license."""
        doc = await self._request(
            "POST",
            "/machines",
            key=key,
            body={
                "data": {
                    "type": "machines",
                    "attributes": {"fingerprint": fingerprint},
                    "relationships": {
                        "license": {"data": {"type": "licenses", "id": license_id}},
                    },
                }
            },
        )
        return Machine.from_resource(self._resource_data(doc))

    async def retrieve_machine(self, machine_id: str, key: str) -> Machine:
        """Retrieve a machine by id or fingerprint."""
        doc = await self._request("GET", self._resource_path("machines", machine_id), key=key)
        return Machine.from_resource(self._resource_data(doc))

    async def delete_machine(self, machine_id: str, key: str) -> None:
        """Deactivate a machine, releasing its seat."""
        await self._request(
            "DELETE", self._resource_path("machines", machine_id), key=key, allow_no_content=True
        )

    # ── Processes ──

    async def create_process(self, pid: str, machine_id: str, key: str) -> Process:
        """Spawn a process resource for a machine."""
        doc = await self._request(
            "POST",
            "/processes",
            key=key,
            body={
                "data": {
                    "type": "processes",
                    "attributes": {"pid": pid},
                    "relationships": {
                        "machine": {"data": {"type": "machines", "id": machine_id}},
                    },
                }
            },
        )
        return Process.from_resource(self._resource_data(doc))

    async def retrieve_process(self, process_id: str, key: str) -> Process:
        doc = await self._request("GET", self._resource_path("processes", process_id), key=key)
        return Process.from_resource(self._resource_data(doc))

    async def delete_process(self, process_id: str, key: str) -> None:
        """Kill a process resource."""
        await self._request(
            "DELETE", self._resource_path("processes", process_id), key=key, allow_no_content=True
        )

    async def ping_process(self, process_id: str, key: str) -> Process:
        """Send a heartbeat ping for a process."""
        doc = await self._request(
            "POST", self._resource_path("processes", process_id) + "/actions/ping", key=key
        )
        return Process.from_resource(self._resource_data(doc))

    # ── Lifecycle ──

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._http.aclose()

    async def __aenter__(self) -> "LicensingGateway":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
