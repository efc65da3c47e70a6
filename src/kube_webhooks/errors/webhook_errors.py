"""
Error hierarchy for the webhook TLS lifecycle.

Expected outcomes (a missing Secret, a lost create race) are returned as
values by the store. Everything in this module is fatal for the current
bootstrap step: the caller decides whether to exit so that the supervisor
restarts the whole step.
"""

import kopf


class WebhookTLSError(Exception):
    """
    Base error class for all kube-webhooks exceptions.

    Provides categorization, retry behavior, and user guidance for resolution.
    """

    def __init__(
        self,
        message: str,
        category: str,
        retryable: bool = False,
        user_action: str | None = None,
        cause: Exception | None = None,
    ):
        """
        Initialize webhook TLS error.

        Args:
            message: Human-readable error description
            category: Error category (transport, record, apply, configuration)
            retryable: Whether restarting the step may succeed without intervention
            user_action: What the user should do to resolve the issue
            cause: Underlying exception that caused this error
        """
        super().__init__(message)
        self.category = category
        self.retryable = retryable
        self.user_action = user_action
        self.cause = cause

    def as_kopf_error(self):
        """Convert to appropriate kopf exception type."""
        if self.retryable:
            return kopf.TemporaryError(str(self))
        return kopf.PermanentError(str(self))

    def __str__(self) -> str:
        """Enhanced string representation with user guidance."""
        base_msg = super().__str__()
        if self.user_action:
            return f"{base_msg}\nAction required: {self.user_action}"
        return base_msg


class TransportError(WebhookTLSError):
    """The Kubernetes API could not be reached or rejected the credentials."""

    def __init__(
        self,
        message: str,
        reason: str | None = None,
        status: int | None = None,
        cause: Exception | None = None,
    ):
        if reason:
            message = f"{message} (reason: {reason})"

        # Permission problems will not go away on restart
        retryable = status not in {401, 403}

        super().__init__(
            message=f"Kubernetes API error: {message}",
            category="transport",
            retryable=retryable,
            user_action="Check RBAC permissions and cluster connectivity",
            cause=cause,
        )
        self.reason = reason
        self.status = status


class MalformedRecordError(WebhookTLSError):
    """The certificate Secret exists but does not have the expected shape."""

    def __init__(
        self,
        namespace: str,
        name: str,
        missing_keys: list[str] | None = None,
        detail: str | None = None,
    ):
        message = f"Certificate secret {namespace}/{name} has the wrong shape"
        if missing_keys:
            message = f"{message}: missing {', '.join(missing_keys)}"
        elif detail:
            message = f"{message}: {detail}"

        super().__init__(
            message=message,
            category="record",
            retryable=False,
            user_action=(
                "Delete the secret to let it be regenerated, or fix it manually "
                "if it is managed by another tool"
            ),
        )
        self.namespace = namespace
        self.name = name
        self.missing_keys = missing_keys or []


class CertificateBootstrapError(WebhookTLSError):
    """The certificate bundle could neither be created nor read back."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            category="bootstrap",
            retryable=True,
            user_action="Restart the bootstrap step",
        )


class ApplyFailureError(WebhookTLSError):
    """The API server rejected an apply of a resource carrying a caBundle."""

    def __init__(
        self,
        kind: str,
        name: str,
        reason: str | None = None,
        cause: Exception | None = None,
    ):
        message = f"Could not apply {kind} {name}"
        if reason:
            message = f"{message}: {reason}"

        super().__init__(
            message=message,
            category="apply",
            retryable=True,
            user_action=f"Check that the service account may patch {kind} resources",
            cause=cause,
        )
        self.kind = kind
        self.name = name


class NoTargetsFoundError(WebhookTLSError):
    """No admission webhook configuration with the given name exists."""

    def __init__(self, config_name: str):
        super().__init__(
            message=f"No admission configuration named {config_name} was found on the cluster",
            category="configuration",
            retryable=False,
            user_action=(
                "Install the ValidatingWebhookConfiguration and/or "
                "MutatingWebhookConfiguration before bootstrapping TLS"
            ),
        )
        self.config_name = config_name


class ConfigurationError(WebhookTLSError):
    """Error in the bootstrap configuration."""

    def __init__(self, message: str, user_action: str | None = None):
        super().__init__(
            message=message,
            category="configuration",
            retryable=False,
            user_action=user_action or "Review and correct configuration",
        )


class ConversionError(WebhookTLSError):
    """Raised by a conversion callback when a resource cannot be converted."""

    def __init__(self, message: str):
        super().__init__(message=message, category="conversion", retryable=False)
