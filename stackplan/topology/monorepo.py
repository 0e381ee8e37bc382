"""Built-in "monorepo" topology.

Static UI served from a bucket through a CDN distribution aliased in DNS,
two serverless functions behind a REST API guarded by an API key whose value
lives in a secret, and a key-value table.

Dependencies (dependent: prerequisites)::

    UiDeployment:     UiBucket
    SiteDistribution: UiBucket, CertificateImportedFromUsEast1, CloudfrontOAI
    SiteAliasRecord:  HostedZone, SiteDistribution
    ApiKey:           RestApi, Secret
    DemoResource:     RestApi
    DemoGetMethod:    RestApi, DemoResource, DemoLambda
    (Foobar* mirror Demo*)
"""

from __future__ import annotations

import json

from stackplan.models.config import DeploymentConfig
from stackplan.models.kinds import ResourceKind
from stackplan.models.resources import Topology
from stackplan.topology.builder import TopologyBuilder

_LAMBDA_DEFAULTS = {
    "architecture": "arm64",
    "runtime": "nodejs18.x",
    "memorySize": 512,
    "handler": "index.handler",
}

_SECRET_EXCLUDED_CHARACTERS = " %+~`#$&*()|[]{}:;<>?!'/@\"\\"


def build_monorepo_topology(config: DeploymentConfig) -> Topology:
    """Declare the monorepo stack.

    Raises MissingConfigError when the domain name, hosted zone id or
    certificate ARN is not configured.
    """
    domain_name = config.require("domain_name")
    hosted_zone_id = config.require("hosted_zone_id")
    certificate_arn = config.require("certificate_arn")

    stack = TopologyBuilder(config.stack_name, config)

    # Static site
    ui_bucket = stack.add(
        "UiBucket",
        ResourceKind.BUCKET,
        bucketName=config.ui_bucket_name,
        removalPolicy="destroy",
        autoDeleteObjects=True,
        websiteIndexDocument="index.html",
        websiteErrorDocument="index.html",
    )
    stack.add(
        "UiDeployment",
        ResourceKind.BUCKET_DEPLOYMENT,
        destinationBucket=ui_bucket.ref(),
        sources=["./ui/dist/my-app"],
    )

    # DNS, certificate and distribution.  Zone and certificate already exist
    # and are imported by id / ARN; the certificate must live in us-east-1.
    hosted_zone = stack.add(
        "HostedZone",
        ResourceKind.HOSTED_ZONE,
        zoneName=domain_name,
        hostedZoneId=hosted_zone_id,
        imported=True,
    )
    certificate = stack.add(
        "CertificateImportedFromUsEast1",
        ResourceKind.CERTIFICATE,
        certificateArn=certificate_arn,
        imported=True,
    )
    origin_identity = stack.add(
        "CloudfrontOAI",
        ResourceKind.ORIGIN_ACCESS_IDENTITY,
        comment=f"OAI for {config.stack_name}",
    )
    distribution = stack.add(
        "SiteDistribution",
        ResourceKind.DISTRIBUTION,
        certificate=certificate.ref(),
        defaultRootObject="index.html",
        domainNames=[domain_name],
        minimumProtocolVersion="TLSv1.2_2021",
        errorResponses=[
            {
                "httpStatus": 403,
                "responseHttpStatus": 403,
                "responsePagePath": "/error.html",
                "ttlSeconds": 60,
            }
        ],
        defaultBehavior={
            "origin": {
                "domainName": ui_bucket.ref("regionalDomainName"),
                "originAccessIdentity": origin_identity.ref(),
            },
            "compress": True,
            "allowedMethods": ["GET", "HEAD", "OPTIONS"],
            "viewerProtocolPolicy": "redirect-to-https",
        },
    )
    stack.add(
        "SiteAliasRecord",
        ResourceKind.ALIAS_RECORD,
        recordName=domain_name,
        zone=hosted_zone.ref(),
        target=distribution.ref("domainName"),
    )

    # Functions
    demo_lambda = stack.add("DemoLambda", ResourceKind.FUNCTION, code="./services/demo", **_LAMBDA_DEFAULTS)
    foobar_lambda = stack.add("FoobarLambda", ResourceKind.FUNCTION, code="./services/foobar", **_LAMBDA_DEFAULTS)

    # API guarded by a key stored in a generated secret
    api = stack.add("RestApi", ResourceKind.REST_API, apiKeySourceType="HEADER")
    secret = stack.add(
        "Secret",
        ResourceKind.SECRET,
        generateSecretString={
            "generateStringKey": "api_key",
            "secretStringTemplate": json.dumps({"username": "web_user"}),
            "excludeCharacters": _SECRET_EXCLUDED_CHARACTERS,
        },
    )
    stack.add(
        "ApiKey",
        ResourceKind.API_KEY,
        restApi=api.ref(),
        apiKeyName="web-app-key",
        value=secret.ref("secretValue"),
    )
    for path_part, function in (("demo", demo_lambda), ("foobar", foobar_lambda)):
        prefix = path_part.capitalize()
        resource = stack.add(
            f"{prefix}Resource",
            ResourceKind.API_RESOURCE,
            restApi=api.ref(),
            parent=api.ref("rootResourceId"),
            pathPart=path_part,
        )
        stack.add(
            f"{prefix}GetMethod",
            ResourceKind.API_METHOD,
            restApi=api.ref(),
            resource=resource.ref(),
            httpMethod="GET",
            integration={"type": "AWS_PROXY", "function": function.ref()},
            apiKeyRequired=True,
        )

    # Table
    stack.add(
        "MyFirstDynamoDBTable",
        ResourceKind.TABLE,
        tableName="my-first-dynamodb-table",
        partitionKey={"name": "id", "type": "S"},
    )

    stack.output(
        "UiBucketDomainOutput",
        ui_bucket.ref("websiteDomainName"),
        description="The website domain name for the UI bucket",
        export_name="ui-bucket:domain-name",
    )
    stack.output(
        "API Key ID",
        secret.ref("secretValue"),
        description="The api key for getting access",
    )
    return stack.build()
