#!/usr/bin/env python3
"""
SES Email API CDK Application

Deploys an API for sending single-recipient email through Amazon SES and
logging every message's lifecycle (queued, sent, delivered, opened,
clicked, bounced, complained, rejected) to DynamoDB:
- SesConfigStack: optional SES domain verification with DKIM and feedback topic
- SesApplicationStack: configuration set, log table, Lambda functions and API

Deployment:
    cdk deploy --all
    cdk deploy --all -c zoneName=example.com -c hostedZoneId=Z123 -c configureDomain=true
"""

import os

import aws_cdk as cdk

from stacks import AppAttributes, DomainAttributes, SesApplicationStack, SesConfigStack


def main() -> None:
    """Create the CDK app and its stacks."""
    app = cdk.App()

    app_attr = AppAttributes.from_context(app.node)
    domain_attr = DomainAttributes.from_context(app.node)

    # Use account details from the default AWS CLI credentials
    env = cdk.Environment(
        account=os.environ.get("CDK_DEFAULT_ACCOUNT"),
        region=os.environ.get("CDK_DEFAULT_REGION"),
    )

    if domain_attr.configure_domain:
        SesConfigStack(
            app,
            "SesConfigStack",
            domain_attr=domain_attr,
            description="SES Domain Configuration Stack",
            env=env,
        )

    if not app_attr.allow_cidr and not app_attr.use_api_key:
        print("WARNING: The API will be open to the public")

    application_stack = SesApplicationStack(
        app,
        "SesApplicationStack",
        app_attr=app_attr,
        domain_attr=domain_attr,
        description="SES Email Application Stack",
        env=env,
    )

    cdk.Tags.of(application_stack).add("Application", app_attr.app_name)

    app.synth()


if __name__ == "__main__":
    main()
