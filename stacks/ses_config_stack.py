"""
SES Domain Configuration Stack

Verifies the sending domain in SES with Easy DKIM records published to the
Route53 hosted zone, and forwards bounce and complaint feedback for the
domain to an SNS topic with email subscribers.
"""

from typing import Any

from aws_cdk import (
    CfnOutput,
    Stack,
    aws_iam as iam,
    aws_route53 as route53,
    aws_ses as ses,
    aws_sns as sns,
    aws_sns_subscriptions as sns_subscriptions,
    custom_resources as cr,
)
from constructs import Construct

from .settings import DomainAttributes

FEEDBACK_TYPES = ["Bounce", "Complaint"]


class SesConfigStack(Stack):
    """
    CDK Stack for the SES sending domain.

    Args:
        scope: CDK app or parent construct
        construct_id: Unique identifier for this stack
        domain_attr: Email domain settings; hosted_zone_id is required
        **kwargs: Additional stack properties
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        domain_attr: DomainAttributes,
        **kwargs: Any,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        if not domain_attr.hosted_zone_id:
            raise ValueError("hostedZoneId is required to configure the SES domain")

        zone = route53.PublicHostedZone.from_public_hosted_zone_attributes(
            self,
            "Zone",
            zone_name=domain_attr.zone_name,
            hosted_zone_id=domain_attr.hosted_zone_id,
        )

        self.domain_identity = ses.EmailIdentity(
            self,
            "DomainIdentity",
            identity=ses.Identity.public_hosted_zone(zone),
            dkim_signing=True,
        )

        self.feedback_topic = sns.Topic(
            self,
            "FeedbackTopic",
            display_name=f"SES bounce and complaint notifications for {domain_attr.zone_name}",
        )
        self.feedback_topic.grant_publish(iam.ServicePrincipal("ses.amazonaws.com"))
        for email in domain_attr.notif_list:
            self.feedback_topic.add_subscription(sns_subscriptions.EmailSubscription(email))

        self._attach_feedback_topic(domain_attr.zone_name)

        CfnOutput(
            self,
            "FeedbackTopicArn",
            description="SNS topic receiving bounce and complaint notifications",
            value=self.feedback_topic.topic_arn,
        )

    def _attach_feedback_topic(self, identity: str) -> None:
        """SES has no CloudFormation property for identity notification topics."""
        policy = cr.AwsCustomResourcePolicy.from_statements([
            iam.PolicyStatement(
                effect=iam.Effect.ALLOW,
                actions=["ses:SetIdentityNotificationTopic"],
                resources=["*"],
            )
        ])

        for notification_type in FEEDBACK_TYPES:
            resource = cr.AwsCustomResource(
                self,
                f"{notification_type}NotificationTopic",
                on_update=cr.AwsSdkCall(
                    service="SES",
                    action="setIdentityNotificationTopic",
                    parameters={
                        "Identity": identity,
                        "NotificationType": notification_type,
                        "SnsTopic": self.feedback_topic.topic_arn,
                    },
                    physical_resource_id=cr.PhysicalResourceId.of(f"{identity}-{notification_type}"),
                ),
                on_delete=cr.AwsSdkCall(
                    service="SES",
                    action="setIdentityNotificationTopic",
                    parameters={
                        "Identity": identity,
                        "NotificationType": notification_type,
                    },
                ),
                policy=policy,
                install_latest_aws_sdk=False,
            )
            resource.node.add_dependency(self.domain_identity)
