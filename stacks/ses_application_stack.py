"""
SES Application Stack

Deploys the email API:
- SES configuration set publishing sending events to an SNS topic
- DynamoDB log table with a destination index and TTL expiry
- Lambda functions to send email, log notifications and query logs
- REST API with optional API key, usage quota, CIDR allow list and custom domain
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from aws_cdk import (
    CfnOutput,
    Duration,
    RemovalPolicy,
    Stack,
    aws_apigateway as apigw,
    aws_certificatemanager as acm,
    aws_dynamodb as dynamodb,
    aws_iam as iam,
    aws_lambda as lambda_,
    aws_logs as logs,
    aws_route53 as route53,
    aws_route53_targets as route53_targets,
    aws_secretsmanager as secretsmanager,
    aws_ses as ses,
    aws_sns as sns,
    aws_sns_subscriptions as sns_subscriptions,
)
from constructs import Construct

from .settings import AppAttributes, DomainAttributes

# Repository root; the Lambda asset is the ses_email_api package inside it
PROJECT_ROOT = Path(__file__).resolve().parent.parent
LAMBDA_ASSET_EXCLUDE = [
    "**",
    "!ses_email_api",
    "!ses_email_api/**",
    "ses_email_api/**/__pycache__",
    "ses_email_api/**/*.pyc",
]

DESTINATION_INDEX_NAME = "destinationIdx"
API_BASE_PATH = "email"

SENDING_EVENTS = [
    ses.EmailSendingEvent.SEND,
    ses.EmailSendingEvent.DELIVERY,
    ses.EmailSendingEvent.OPEN,
    ses.EmailSendingEvent.CLICK,
    ses.EmailSendingEvent.REJECT,
    ses.EmailSendingEvent.BOUNCE,
    ses.EmailSendingEvent.COMPLAINT,
]


class SesApplicationStack(Stack):
    """
    CDK Stack for the SES email sending and logging API.

    Args:
        scope: CDK app or parent construct
        construct_id: Unique identifier for this stack
        app_attr: Application settings
        domain_attr: Email and API domain settings
        **kwargs: Additional stack properties
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        app_attr: AppAttributes,
        domain_attr: DomainAttributes,
        **kwargs: Any,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        self.app_attr = app_attr
        self.domain_attr = domain_attr
        self.configuration_set_name = f"{app_attr.app_name}ConfigSet"
        self.api_key_secret: Optional[secretsmanager.Secret] = None

        self.notifications_topic = self._create_ses_configuration()
        self.log_table = self._create_log_table()
        self._create_lambda_functions()
        self.api = self._create_api()
        self._create_api_methods()
        self._create_outputs()

    # SES configuration ===================================================

    def _create_ses_configuration(self) -> sns.Topic:
        """Create the configuration set and route its events to SNS."""
        app_name = self.app_attr.app_name

        topic = sns.Topic(
            self,
            f"{app_name}NotificationsTopic",
            display_name=f"SES Email Notifications for {app_name}",
        )
        topic.grant_publish(iam.ServicePrincipal("ses.amazonaws.com"))

        config_set = ses.ConfigurationSet(
            self,
            "ConfigurationSet",
            configuration_set_name=self.configuration_set_name,
        )
        config_set.add_event_destination(
            "SnsEventDestination",
            configuration_set_event_destination_name=f"{app_name}Notifications",
            destination=ses.EventDestination.sns_topic(topic),
            events=SENDING_EVENTS,
        )

        # Addresses added here receive an SES verification email
        for i, email in enumerate(self.app_attr.email_list):
            ses.EmailIdentity(
                self,
                f"EmailIdentity{i + 1}",
                identity=ses.Identity.email(email),
                configuration_set=config_set,
            )

        return topic

    # DynamoDB log table ==================================================

    def _create_log_table(self) -> dynamodb.Table:
        """Create the email log table and its destination index."""
        table = dynamodb.Table(
            self,
            "LogTable",
            table_name=f"{self.app_attr.app_name}LogTable",
            partition_key=dynamodb.Attribute(name="MessageId", type=dynamodb.AttributeType.STRING),
            sort_key=dynamodb.Attribute(name="LogTime", type=dynamodb.AttributeType.STRING),
            billing_mode=dynamodb.BillingMode.PAY_PER_REQUEST,
            time_to_live_attribute="ExpiryTime",
            removal_policy=RemovalPolicy.DESTROY,
        )

        # Index for destination (email address) lookups
        table.add_global_secondary_index(
            index_name=DESTINATION_INDEX_NAME,
            partition_key=dynamodb.Attribute(name="Destination", type=dynamodb.AttributeType.STRING),
            sort_key=dynamodb.Attribute(name="LogTime", type=dynamodb.AttributeType.STRING),
            projection_type=dynamodb.ProjectionType.ALL,
        )

        return table

    # Lambda functions ====================================================

    def _create_function(
        self, construct_id: str, handler: str, description: str, environment: Dict[str, str]
    ) -> lambda_.Function:
        log_group = logs.LogGroup(
            self,
            f"{construct_id}LogGroup",
            retention=logs.RetentionDays.ONE_MONTH,
            removal_policy=RemovalPolicy.DESTROY,
        )

        function = lambda_.Function(
            self,
            construct_id,
            description=description,
            runtime=lambda_.Runtime.PYTHON_3_12,
            handler=handler,
            code=lambda_.Code.from_asset(str(PROJECT_ROOT), exclude=LAMBDA_ASSET_EXCLUDE),
            timeout=Duration.seconds(10),
            memory_size=256,
            environment={
                "APP_NAME": self.app_attr.app_name,
                "LOG_TABLE_NAME": self.log_table.table_name,
                "LOG_EXPIRY": str(self.app_attr.log_expiry),
                "METRICS_NAMESPACE": self.app_attr.metrics_namespace,
                "LOG_LEVEL": "INFO",
                **environment,
            },
            log_group=log_group,
        )

        function.add_to_role_policy(
            iam.PolicyStatement(
                effect=iam.Effect.ALLOW,
                actions=["cloudwatch:PutMetricData"],
                resources=["*"],
                conditions={
                    "StringEquals": {"cloudwatch:namespace": self.app_attr.metrics_namespace}
                },
            )
        )

        return function

    def _create_lambda_functions(self) -> None:
        """Create the send, notification log and query log functions."""
        self.send_email_function = self._create_function(
            "SendEmailFunction",
            "ses_email_api.handlers.send_email.lambda_handler",
            "Send Email API function",
            {
                "CONFIGURATION_SET_NAME": self.configuration_set_name,
                "DEFAULT_FROM_ADDRESS": f"{self.app_attr.default_from}@{self.domain_attr.zone_name}",
            },
        )
        self.log_table.grant_write_data(self.send_email_function)
        self.send_email_function.add_to_role_policy(
            iam.PolicyStatement(
                effect=iam.Effect.ALLOW,
                actions=["ses:SendEmail"],
                resources=["*"],
            )
        )

        self.notification_log_function = self._create_function(
            "NotificationLogFunction",
            "ses_email_api.handlers.notification_log.lambda_handler",
            "SES notifications log function",
            {},
        )
        self.notifications_topic.add_subscription(
            sns_subscriptions.LambdaSubscription(self.notification_log_function)
        )
        self.log_table.grant_write_data(self.notification_log_function)

        self.query_log_function = self._create_function(
            "QueryLogFunction",
            "ses_email_api.handlers.query_log.lambda_handler",
            "SES query log function",
            {
                "UTC_OFFSET": self.app_attr.utc_offset,
                "DESTINATION_ID_INDEX": DESTINATION_INDEX_NAME,
            },
        )
        self.log_table.grant_read_data(self.query_log_function)

    # API =================================================================

    def _create_api_policy(self) -> iam.PolicyDocument:
        """Restrict access to the API by source IP address if required."""
        source_cidrs = self.app_attr.allow_cidr or ["0.0.0.0/0"]
        return iam.PolicyDocument(
            statements=[
                iam.PolicyStatement(
                    principals=[iam.AnyPrincipal()],
                    actions=["execute-api:Invoke"],
                    resources=["execute-api:/*"],
                    effect=iam.Effect.DENY,
                    conditions={"NotIpAddress": {"aws:SourceIp": source_cidrs}},
                ),
                iam.PolicyStatement(
                    principals=[iam.AnyPrincipal()],
                    actions=["execute-api:Invoke"],
                    resources=["execute-api:/*"],
                    effect=iam.Effect.ALLOW,
                ),
            ]
        )

    def _create_api(self) -> apigw.RestApi:
        app_name = self.app_attr.app_name
        api = apigw.RestApi(
            self,
            f"{app_name}Api",
            rest_api_name=f"{app_name}Api",
            description=f"{app_name} API",
            deploy_options=apigw.StageOptions(stage_name="v1", description="V1 Deployment"),
            endpoint_types=[apigw.EndpointType.REGIONAL],
            policy=self._create_api_policy(),
        )

        if self.domain_attr.use_custom_domain:
            self._create_custom_domain(api)

        usage_plan = apigw.UsagePlan(
            self,
            "DefaultUsagePlan",
            name=f"{app_name} Default Usage Plan",
            api_stages=[apigw.UsagePlanPerApiStage(api=api, stage=api.deployment_stage)],
            quota=apigw.QuotaSettings(limit=self.app_attr.daily_quota, period=apigw.Period.DAY)
            if self.app_attr.daily_quota
            else None,
        )

        if self.app_attr.use_api_key:
            # The key is generated into a secret and can be read from there
            self.api_key_secret = secretsmanager.Secret(
                self,
                f"{app_name}ApiKeySecret",
                description=f"{app_name} API Key",
                generate_secret_string=secretsmanager.SecretStringGenerator(
                    secret_string_template=json.dumps({"API_URL": api.url}),
                    generate_string_key="API_KEY",
                    exclude_punctuation=True,
                ),
            )
            usage_plan.add_api_key(
                apigw.ApiKey(
                    self,
                    f"{app_name}ApiKey",
                    description=f"{app_name} API Key",
                    value=self.api_key_secret.secret_value_from_json("API_KEY").unsafe_unwrap(),
                    enabled=True,
                )
            )

        return api

    def _create_custom_domain(self, api: apigw.RestApi) -> None:
        """Map the API to <apiHostname>.<zoneName>/email with an alias record."""
        zone_name = self.domain_attr.zone_name
        zone = route53.HostedZone.from_hosted_zone_attributes(
            self,
            "Zone",
            zone_name=zone_name,
            hosted_zone_id=self.domain_attr.hosted_zone_id,
        )
        api_domain_name = f"{self.domain_attr.api_hostname}.{zone_name}"

        if self.domain_attr.certificate_arn:
            certificate = acm.Certificate.from_certificate_arn(
                self, "Certificate", self.domain_attr.certificate_arn
            )
        else:
            certificate = acm.Certificate(
                self,
                "Certificate",
                domain_name=f"*.{zone_name}",
                validation=acm.CertificateValidation.from_dns(zone),
            )

        api_domain = apigw.DomainName(
            self,
            "ApiDomain",
            domain_name=api_domain_name,
            certificate=certificate,
            endpoint_type=apigw.EndpointType.REGIONAL,
            security_policy=apigw.SecurityPolicy.TLS_1_2,
        )
        apigw.BasePathMapping(
            self,
            "PathMapping",
            base_path=API_BASE_PATH,
            domain_name=api_domain,
            rest_api=api,
        )
        route53.ARecord(
            self,
            "ApiAlias",
            zone=zone,
            record_name=api_domain_name,
            target=route53.RecordTarget.from_alias(route53_targets.ApiGatewayDomain(api_domain)),
        )

        CfnOutput(
            self,
            "CustomUrl",
            description="API URL base path",
            value=f"https://{api_domain_name}/{API_BASE_PATH}/",
        )

    def _method_responses(self) -> List[apigw.MethodResponse]:
        response_model = apigw.Model(
            self,
            "ResponseModel",
            rest_api=self.api,
            content_type="application/json",
            schema=apigw.JsonSchema(
                schema=apigw.JsonSchemaVersion.DRAFT7,
                title="JsonResponse",
                type=apigw.JsonSchemaType.OBJECT,
                properties={
                    "success": apigw.JsonSchema(type=apigw.JsonSchemaType.BOOLEAN),
                    "message": apigw.JsonSchema(type=apigw.JsonSchemaType.STRING),
                    "requestId": apigw.JsonSchema(type=apigw.JsonSchemaType.STRING),
                },
            ),
        )
        return [
            apigw.MethodResponse(status_code=code, response_models={"application/json": response_model})
            for code in ("200", "400", "500")
        ]

    @staticmethod
    def _error_responses(fields: List[str]) -> List[apigw.IntegrationResponse]:
        """
        Integration responses that turn the ApiError JSON in errorMessage
        back into a JSON body. 500 responses hide the internal message.
        """
        parse = "#set ($errorMessageObj = $util.parseJson($input.path('$.errorMessage')))\n"
        client_fields = ",\n".join(f'  "{f}" : "$errorMessageObj.{f}"' for f in ["message", *fields])
        server_fields = ",\n".join(
            ['  "message" : "Internal server error"'] + [f'  "{f}" : "$errorMessageObj.{f}"' for f in fields]
        )
        return [
            apigw.IntegrationResponse(status_code="200"),
            apigw.IntegrationResponse(
                selection_pattern=".*:400.*",
                status_code="400",
                response_templates={"application/json": f"{parse}{{\n{client_fields}\n}}"},
            ),
            apigw.IntegrationResponse(
                selection_pattern=".*:500.*",
                status_code="500",
                response_templates={"application/json": f"{parse}{{\n{server_fields}\n}}"},
            ),
        ]

    def _create_api_methods(self) -> None:
        use_api_key = self.app_attr.use_api_key
        method_responses = self._method_responses()
        request_context = (
            '"context": {\n'
            '    "resourcePath": "$context.resourcePath",\n'
            '    "requestId": "$context.requestId"\n'
            "  }"
        )

        send_integration = apigw.LambdaIntegration(
            self.send_email_function,
            proxy=False,
            passthrough_behavior=apigw.PassthroughBehavior.WHEN_NO_TEMPLATES,
            request_templates={
                "application/json": f'{{\n  "params": $input.json(\'$\'),\n  {request_context}\n}}'
            },
            integration_responses=self._error_responses(["requestId", "sourceId"]),
        )
        send_root = self.api.root.add_resource("send")
        send_root.add_method(
            "POST",
            send_integration,
            method_responses=method_responses,
            api_key_required=use_api_key,
        )

        query_template = (
            "{\n"
            '  "params": {\n'
            "    \"messageId\": \"$input.params('messageid')\",\n"
            "    \"destination\": \"$input.params('destination')\",\n"
            "    \"exclusiveStartKey\": \"$input.params('exclusivestartkey')\"\n"
            "  },\n"
            f"  {request_context}\n"
            "}"
        )
        query_root = self.api.root.add_resource("query")
        for path, param in (("message-id", "messageid"), ("destination", "destination")):
            integration = apigw.LambdaIntegration(
                self.query_log_function,
                proxy=False,
                request_parameters={
                    f"integration.request.path.{param}": f"method.request.path.{param}",
                    "integration.request.querystring.exclusivestartkey": "method.request.querystring.exclusivestartkey",
                },
                request_templates={"application/json": query_template},
                integration_responses=self._error_responses(["requestId"]),
            )
            query_root.add_resource(path).add_resource(f"{{{param}}}").add_method(
                "GET",
                integration,
                method_responses=method_responses,
                request_parameters={
                    f"method.request.path.{param}": True,
                    "method.request.querystring.exclusivestartkey": False,
                },
                api_key_required=use_api_key,
            )

    def _create_outputs(self) -> None:
        CfnOutput(self, "ApiUrl", description="API base URL", value=self.api.url)
        CfnOutput(self, "LogTableName", description="Email log table", value=self.log_table.table_name)
        CfnOutput(
            self,
            "NotificationsTopicArn",
            description="SNS topic receiving SES sending events",
            value=self.notifications_topic.topic_arn,
        )
        if self.api_key_secret is not None:
            CfnOutput(
                self,
                "ApiKeySecretArn",
                description=f"{self.app_attr.app_name} API Key Arn",
                value=self.api_key_secret.secret_arn,
            )
