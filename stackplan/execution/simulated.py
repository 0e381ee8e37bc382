"""In-memory provisioning backend.

Produces deterministic, provider-shaped outputs for every resource kind
without touching any cloud API.  Used for dry runs, the ``deploy`` CLI
command without a backend URL, and tests.  Failures can be injected per
node id.
"""

from __future__ import annotations

import asyncio
import hashlib
import time
from collections.abc import Callable, Iterable
from typing import Any

import structlog

from stackplan.execution.backend import ProvisioningBackend
from stackplan.models.kinds import ResourceKind
from stackplan.models.plan import OperationResult, OperationStatus, OperationType, ProvisionOperation

_log = structlog.get_logger(component="execution.simulated")

_OutputFactory = Callable[[str, dict[str, Any], "_Context"], dict[str, Any]]


class _Context:
    def __init__(self, account: str, region: str, node_id: str) -> None:
        self.account = account
        self.region = region
        self.suffix = hashlib.sha256(f"{account}/{region}/{node_id}".encode()).hexdigest()

    def short(self, length: int = 8) -> str:
        return self.suffix[:length]


def _slug(node_id: str) -> str:
    return "".join(ch if ch.isalnum() else "-" for ch in node_id).lower()


def _bucket(node_id: str, props: dict[str, Any], ctx: _Context) -> dict[str, Any]:
    name = props.get("bucketName") or f"{_slug(node_id)}-{ctx.short()}"
    return {
        "bucketName": name,
        "arn": f"arn:aws:s3:::{name}",
        "websiteDomainName": f"{name}.s3-website-{ctx.region}.amazonaws.com",
        "regionalDomainName": f"{name}.s3.{ctx.region}.amazonaws.com",
    }


def _bucket_deployment(node_id: str, props: dict[str, Any], ctx: _Context) -> dict[str, Any]:
    return {"deploymentId": f"deploy-{ctx.short()}"}


def _origin_access_identity(node_id: str, props: dict[str, Any], ctx: _Context) -> dict[str, Any]:
    return {"id": f"E{ctx.short(13).upper()}", "canonicalUserId": ctx.suffix}


def _distribution(node_id: str, props: dict[str, Any], ctx: _Context) -> dict[str, Any]:
    distribution_id = f"E{ctx.short(13).upper()}"
    return {
        "distributionId": distribution_id,
        "domainName": f"d{ctx.short(13)}.cloudfront.net",
        "arn": f"arn:aws:cloudfront::{ctx.account}:distribution/{distribution_id}",
    }


def _certificate(node_id: str, props: dict[str, Any], ctx: _Context) -> dict[str, Any]:
    return {"arn": props["certificateArn"]}


def _hosted_zone(node_id: str, props: dict[str, Any], ctx: _Context) -> dict[str, Any]:
    return {
        "hostedZoneId": props["hostedZoneId"],
        "zoneName": props["zoneName"],
        "nameServers": [f"ns-{ctx.short(3)}-{index}.awsdns.com" for index in range(4)],
    }


def _alias_record(node_id: str, props: dict[str, Any], ctx: _Context) -> dict[str, Any]:
    return {"fqdn": str(props["recordName"]).rstrip(".") + "."}


def _function(node_id: str, props: dict[str, Any], ctx: _Context) -> dict[str, Any]:
    name = props.get("functionName") or f"{node_id}-{ctx.short(12).upper()}"
    return {
        "functionName": name,
        "arn": f"arn:aws:lambda:{ctx.region}:{ctx.account}:function:{name}",
    }


def _rest_api(node_id: str, props: dict[str, Any], ctx: _Context) -> dict[str, Any]:
    api_id = ctx.short(10)
    return {
        "restApiId": api_id,
        "rootResourceId": ctx.suffix[10:20],
        "url": f"https://{api_id}.execute-api.{ctx.region}.amazonaws.com/prod/",
    }


def _api_resource(node_id: str, props: dict[str, Any], ctx: _Context) -> dict[str, Any]:
    return {"resourceId": ctx.short(6), "path": f"/{props['pathPart']}"}


def _api_method(node_id: str, props: dict[str, Any], ctx: _Context) -> dict[str, Any]:
    return {"methodId": f"{props['resource']}-{props['httpMethod']}"}


def _api_key(node_id: str, props: dict[str, Any], ctx: _Context) -> dict[str, Any]:
    return {"keyId": ctx.short(10)}


def _table(node_id: str, props: dict[str, Any], ctx: _Context) -> dict[str, Any]:
    name = props.get("tableName") or f"{node_id}-{ctx.short(12).upper()}"
    return {
        "tableName": name,
        "arn": f"arn:aws:dynamodb:{ctx.region}:{ctx.account}:table/{name}",
    }


def _secret(node_id: str, props: dict[str, Any], ctx: _Context) -> dict[str, Any]:
    name = props.get("secretName") or f"{node_id}-{ctx.short(12)}"
    return {
        "arn": f"arn:aws:secretsmanager:{ctx.region}:{ctx.account}:secret:{name}-{ctx.short(6)}",
        "secretName": name,
        "secretValue": ctx.suffix[20:52],
    }


_OUTPUT_FACTORIES: dict[ResourceKind, _OutputFactory] = {
    ResourceKind.BUCKET: _bucket,
    ResourceKind.BUCKET_DEPLOYMENT: _bucket_deployment,
    ResourceKind.ORIGIN_ACCESS_IDENTITY: _origin_access_identity,
    ResourceKind.DISTRIBUTION: _distribution,
    ResourceKind.CERTIFICATE: _certificate,
    ResourceKind.HOSTED_ZONE: _hosted_zone,
    ResourceKind.ALIAS_RECORD: _alias_record,
    ResourceKind.FUNCTION: _function,
    ResourceKind.REST_API: _rest_api,
    ResourceKind.API_RESOURCE: _api_resource,
    ResourceKind.API_METHOD: _api_method,
    ResourceKind.API_KEY: _api_key,
    ResourceKind.TABLE: _table,
    ResourceKind.SECRET: _secret,
}


class SimulatedBackend(ProvisioningBackend):
    """Deterministic fake provider.

    Args:
        account:  Account id baked into generated ARNs.
        region:   Region baked into generated ARNs and domain names.
        fail_on:  Node ids whose operations report ``failed``.
        latency:  Seconds each operation sleeps, to exercise concurrency.
    """

    def __init__(
        self,
        account: str = "000000000000",
        region: str = "us-east-1",
        fail_on: Iterable[str] = (),
        latency: float = 0.0,
    ) -> None:
        self._account = account or "000000000000"
        self._region = region or "us-east-1"
        self._fail_on = frozenset(fail_on)
        self._latency = latency
        self.calls: list[ProvisionOperation] = []
        self.in_flight = 0
        self.max_in_flight = 0

    @property
    def backend_name(self) -> str:
        return "simulated"

    async def provision(self, operation: ProvisionOperation) -> OperationResult:
        t_start = time.monotonic()
        self.calls.append(operation)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self._latency > 0:
                await asyncio.sleep(self._latency)
        finally:
            self.in_flight -= 1

        duration_ms = (time.monotonic() - t_start) * 1000.0
        if operation.node_id in self._fail_on:
            _log.info("simulated_failure", node_id=operation.node_id, operation=operation.operation.value)
            return OperationResult(
                node_id=operation.node_id,
                status=OperationStatus.FAILED,
                error=f"simulated failure for {operation.kind.value} '{operation.node_id}'",
                duration_ms=duration_ms,
            )

        outputs: dict[str, Any] = {}
        if operation.operation is not OperationType.DELETE:
            ctx = _Context(self._account, self._region, operation.node_id)
            outputs = _OUTPUT_FACTORIES[operation.kind](operation.node_id, operation.resolved_properties, ctx)
        return OperationResult(
            node_id=operation.node_id,
            status=OperationStatus.SUCCEEDED,
            outputs=outputs,
            duration_ms=duration_ms,
        )
