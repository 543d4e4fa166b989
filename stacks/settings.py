"""
Deployment settings read from CDK context.

Defaults live in cdk.json and any key can be overridden on the command line,
e.g. cdk deploy -c zoneName=example.com -c logExpiry=90
"""

from dataclasses import dataclass, field
from typing import Any, List

from constructs import Node


def _as_list(value: Any) -> List[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    return [str(v) for v in value]


def _as_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes")
    return bool(value)


@dataclass(frozen=True)
class DomainAttributes:
    """Email domain and optional custom API domain."""

    configure_domain: bool = False
    zone_name: str = "example.com"
    hosted_zone_id: str = ""
    api_hostname: str = ""
    certificate_arn: str = ""
    notif_list: List[str] = field(default_factory=list)

    @property
    def use_custom_domain(self) -> bool:
        return bool(self.zone_name and self.hosted_zone_id and self.api_hostname)

    @classmethod
    def from_context(cls, node: Node) -> "DomainAttributes":
        ctx = node.try_get_context
        return cls(
            configure_domain=_as_bool(ctx("configureDomain"), False),
            zone_name=ctx("zoneName") or cls.zone_name,
            hosted_zone_id=ctx("hostedZoneId") or "",
            api_hostname=ctx("apiHostname") or "",
            certificate_arn=ctx("certificateArn") or "",
            notif_list=_as_list(ctx("notifList")),
        )


@dataclass(frozen=True)
class AppAttributes:
    """Application level settings passed to the Lambda functions and API."""

    app_name: str = "sesEmailApp"
    utc_offset: str = "+00:00"
    default_from: str = "no-reply"
    email_list: List[str] = field(default_factory=list)
    use_api_key: bool = True
    allow_cidr: List[str] = field(default_factory=list)
    daily_quota: int = 0
    log_expiry: int = 0
    metrics_namespace: str = "SesEmailApi"

    @classmethod
    def from_context(cls, node: Node) -> "AppAttributes":
        ctx = node.try_get_context
        return cls(
            app_name=ctx("appName") or cls.app_name,
            utc_offset=ctx("utcOffset") or cls.utc_offset,
            default_from=ctx("defaultFrom") or cls.default_from,
            email_list=_as_list(ctx("emailList")),
            use_api_key=_as_bool(ctx("useApiKey"), True),
            allow_cidr=_as_list(ctx("allowCidr")),
            daily_quota=int(ctx("dailyQuota") or 0),
            log_expiry=int(ctx("logExpiry") or 0),
            metrics_namespace=ctx("metricsNamespace") or cls.metrics_namespace,
        )
