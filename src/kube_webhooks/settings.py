"""Centralized kube-webhooks settings using pydantic-settings.

This module provides a single source of truth for the bootstrap and webhook
server configuration loaded from environment variables. Uses pydantic for
automatic validation, type coercion, and documentation.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from kube_webhooks.constants import DEFAULT_RENEWAL_THRESHOLD_DAYS, DEFAULT_VALIDITY_DAYS


class Settings(BaseSettings):
    """Configuration loaded from environment variables.

    All settings have sensible defaults except ``service_name``, which the
    bootstrap needs to derive the certificate SANs. Override via environment
    variables as documented per field.
    """

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Resources receiving the caBundle
    admission_config_name: str = Field(
        default="",
        description=(
            "Name of the Validating/MutatingWebhookConfiguration to patch "
            "(empty to skip)"
        ),
        validation_alias="ADMISSION_CONFIG_NAME",
    )
    crd_group: str = Field(
        default="",
        description="API group of the CRDs whose conversion webhook is patched (empty to skip)",
        validation_alias="CRD_GROUP",
    )

    # Certificate secret
    secret_namespace: str = Field(
        default="default",
        description="Namespace of the certificate secret",
        validation_alias="SECRET_NAMESPACE",
    )
    secret_name: str = Field(
        default="webhook-tls-certificate",
        description="Name of the certificate secret",
        validation_alias="SECRET_NAME",
    )

    # Service in front of the webhook server
    service_namespace: str = Field(
        default="default",
        description="Namespace of the webhook service",
        validation_alias="SERVICE_NAMESPACE",
    )
    service_name: str = Field(
        default="",
        description="Name of the webhook service (required for bootstrap)",
        validation_alias="SERVICE_NAME",
    )

    # Certificate lifetimes
    cert_validity_days: int = Field(
        default=DEFAULT_VALIDITY_DAYS,
        ge=1,
        description="Lifetime of the leaf certificate in days",
        validation_alias="CERT_VALIDITY_DAYS",
    )
    renewal_threshold_days: int = Field(
        default=DEFAULT_RENEWAL_THRESHOLD_DAYS,
        ge=0,
        description="Renew the leaf certificate when it expires within this many days",
        validation_alias="RENEWAL_THRESHOLD_DAYS",
    )

    # Logging configuration
    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    json_logs: bool = Field(
        default=True,
        validation_alias="JSON_LOGS",
        description="Enable JSON formatted logging for structured log aggregation",
    )
    correlation_ids: bool = Field(
        default=True,
        validation_alias="CORRELATION_IDS",
        description="Enable correlation IDs in logs for request tracing",
    )
    log_health_probes: bool = Field(
        default=False,
        validation_alias="LOG_HEALTH_PROBES",
        description="Log /healthz and /metrics requests",
    )

    # Webhook server
    webhook_host: str = Field(
        default="0.0.0.0",
        description="Address the webhook server listens on",
        validation_alias="WEBHOOK_HOST",
    )
    webhook_port: int = Field(
        default=8443,
        description="Port the webhook server listens on",
        validation_alias="WEBHOOK_PORT",
    )
    cert_dir: str = Field(
        default="/mnt/cert",
        description="Directory where the certificate secret is mounted",
        validation_alias="CERT_DIR",
    )


# Global settings instance - initialized once at module import
settings = Settings()
