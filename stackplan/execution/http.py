"""HTTP provisioning backend.

POSTs each operation as JSON to a remote provisioning service and reads the
outcome from the response body::

    POST {url}
    {"operation": "create", "nodeId": "UiBucket", "kind": "Bucket",
     "resolvedProperties": {...}, "dependsOn": [], "depth": 0}

    200 {"status": "succeeded", "outputs": {"bucketName": "..."}}
    200 {"status": "failed", "error": "BucketAlreadyExists"}

Non-2xx replies are reported as failed operations.  Transport errors and
unreadable bodies raise BackendError.
"""

from __future__ import annotations

import time
from typing import Any

import httpx
import structlog

from stackplan.errors import BackendError
from stackplan.execution.backend import ProvisioningBackend
from stackplan.models.plan import OperationResult, OperationStatus, ProvisionOperation
from stackplan.planner.render import operation_to_dict

_log = structlog.get_logger(component="execution.http")


class HttpProvisioningBackend(ProvisioningBackend):
    """Delivers operations to a remote provisioning endpoint.

    Args:
        url:     Full endpoint URL.
        headers: Optional extra headers (e.g. Authorization).
        timeout: HTTP request timeout in seconds. Defaults to 30.
        client:  Pre-built AsyncClient (tests pass one with a MockTransport).
    """

    def __init__(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not url:
            raise ValueError("Backend url must not be empty")
        self._url = url
        self._headers = {"Content-Type": "application/json", **(headers or {})}
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def backend_name(self) -> str:
        return "http"

    async def provision(self, operation: ProvisionOperation) -> OperationResult:
        t_start = time.monotonic()
        try:
            response = await self._client.post(self._url, json=operation_to_dict(operation), headers=self._headers)
        except httpx.TimeoutException as exc:
            _log.warning("backend_request_timeout", node_id=operation.node_id, url=self._url)
            raise BackendError(f"Timed out provisioning '{operation.node_id}'") from exc
        except httpx.HTTPError as exc:
            _log.warning("backend_http_error", node_id=operation.node_id, error=str(exc))
            raise BackendError(f"HTTP error provisioning '{operation.node_id}': {exc}") from exc

        duration_ms = (time.monotonic() - t_start) * 1000.0
        if not response.is_success:
            _log.warning(
                "backend_non_2xx_response",
                node_id=operation.node_id,
                status_code=response.status_code,
                body=response.text[:200],
            )
            return OperationResult(
                node_id=operation.node_id,
                status=OperationStatus.FAILED,
                error=f"HTTP {response.status_code}: {response.text[:200]}",
                duration_ms=duration_ms,
            )

        body = self._parse_body(operation.node_id, response)
        try:
            status = OperationStatus(body.get("status", OperationStatus.SUCCEEDED.value))
        except ValueError as exc:
            raise BackendError(f"Unknown status {body.get('status')!r} for '{operation.node_id}'") from exc
        outputs = body.get("outputs") or {}
        if not isinstance(outputs, dict):
            raise BackendError(f"Outputs for '{operation.node_id}' are not an object")
        return OperationResult(
            node_id=operation.node_id,
            status=status,
            outputs=outputs,
            error=body.get("error"),
            duration_ms=duration_ms,
        )

    async def close(self) -> None:
        await self._client.aclose()

    @staticmethod
    def _parse_body(node_id: str, response: httpx.Response) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError as exc:
            raise BackendError(f"Unreadable response for '{node_id}'") from exc
        if not isinstance(body, dict):
            raise BackendError(f"Response for '{node_id}' is not an object")
        return body
