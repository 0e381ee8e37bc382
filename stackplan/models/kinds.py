"""Resource kind catalog.

Every ResourceNode carries a ``kind`` tag.  The catalog records, per kind,
which properties must be present and which outputs the provisioning backend
produces once the resource exists.  ``primary_output`` is what a bare
reference to the node (``Reference(node_id)``) resolves to.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class ResourceKind(StrEnum):
    """Managed-service resource types a topology may declare."""

    BUCKET = "Bucket"
    BUCKET_DEPLOYMENT = "BucketDeployment"
    ORIGIN_ACCESS_IDENTITY = "OriginAccessIdentity"
    DISTRIBUTION = "Distribution"
    CERTIFICATE = "Certificate"
    HOSTED_ZONE = "HostedZone"
    ALIAS_RECORD = "AliasRecord"
    FUNCTION = "Function"
    REST_API = "RestApi"
    API_RESOURCE = "ApiResource"
    API_METHOD = "ApiMethod"
    API_KEY = "ApiKey"
    TABLE = "Table"
    SECRET = "Secret"


@dataclass(frozen=True)
class KindSchema:
    """Property and output contract of one resource kind."""

    required: tuple[str, ...]
    outputs: tuple[str, ...]
    primary_output: str


KIND_SCHEMAS: dict[ResourceKind, KindSchema] = {
    ResourceKind.BUCKET: KindSchema(
        required=(),
        outputs=("bucketName", "arn", "websiteDomainName", "regionalDomainName"),
        primary_output="bucketName",
    ),
    ResourceKind.BUCKET_DEPLOYMENT: KindSchema(
        required=("destinationBucket", "sources"),
        outputs=("deploymentId",),
        primary_output="deploymentId",
    ),
    ResourceKind.ORIGIN_ACCESS_IDENTITY: KindSchema(
        required=(),
        outputs=("id", "canonicalUserId"),
        primary_output="id",
    ),
    ResourceKind.DISTRIBUTION: KindSchema(
        required=("defaultBehavior",),
        outputs=("distributionId", "domainName", "arn"),
        primary_output="distributionId",
    ),
    ResourceKind.CERTIFICATE: KindSchema(
        required=("certificateArn",),
        outputs=("arn",),
        primary_output="arn",
    ),
    ResourceKind.HOSTED_ZONE: KindSchema(
        required=("zoneName", "hostedZoneId"),
        outputs=("hostedZoneId", "zoneName", "nameServers"),
        primary_output="hostedZoneId",
    ),
    ResourceKind.ALIAS_RECORD: KindSchema(
        required=("zone", "recordName", "target"),
        outputs=("fqdn",),
        primary_output="fqdn",
    ),
    ResourceKind.FUNCTION: KindSchema(
        required=("runtime", "handler", "code"),
        outputs=("functionName", "arn"),
        primary_output="arn",
    ),
    ResourceKind.REST_API: KindSchema(
        required=(),
        outputs=("restApiId", "rootResourceId", "url"),
        primary_output="restApiId",
    ),
    ResourceKind.API_RESOURCE: KindSchema(
        required=("restApi", "parent", "pathPart"),
        outputs=("resourceId", "path"),
        primary_output="resourceId",
    ),
    ResourceKind.API_METHOD: KindSchema(
        required=("restApi", "resource", "httpMethod", "integration"),
        outputs=("methodId",),
        primary_output="methodId",
    ),
    ResourceKind.API_KEY: KindSchema(
        required=("restApi",),
        outputs=("keyId",),
        primary_output="keyId",
    ),
    ResourceKind.TABLE: KindSchema(
        required=("partitionKey",),
        outputs=("tableName", "arn"),
        primary_output="tableName",
    ),
    ResourceKind.SECRET: KindSchema(
        required=(),
        outputs=("arn", "secretName", "secretValue"),
        primary_output="arn",
    ),
}


def schema_for(kind: ResourceKind) -> KindSchema:
    """Return the schema registered for *kind*."""
    return KIND_SCHEMAS[kind]
