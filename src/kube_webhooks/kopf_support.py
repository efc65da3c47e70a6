"""
Glue for operators built with kopf.

Register the bootstrap as a startup handler and let kopf serve its admission
handlers with the managed certificate:

    import kopf
    from kube_webhooks.kopf_support import admission_webhook_server, startup_bootstrap

    kopf.on.startup()(startup_bootstrap)

    @kopf.on.startup()
    def configure(settings: kopf.OperatorSettings, **_):
        settings.admission.server = admission_webhook_server()
        settings.admission.managed = None
"""

import asyncio
import logging
import os

import kopf

from kube_webhooks.bootstrap import bootstrap_tls
from kube_webhooks.constants import TLS_CERT_KEY, TLS_KEY_KEY
from kube_webhooks.errors import WebhookTLSError
from kube_webhooks.settings import Settings
from kube_webhooks.settings import settings as default_settings
from kube_webhooks.utils.kubernetes import get_kubernetes_client

logger = logging.getLogger(__name__)


def admission_webhook_server(
    settings: Settings | None = None,
) -> kopf.WebhookServer:
    """Build a kopf webhook server presenting the mounted leaf certificate."""
    settings = settings or default_settings
    return kopf.WebhookServer(
        port=settings.webhook_port,
        host=settings.webhook_host,
        certfile=os.path.join(settings.cert_dir, TLS_CERT_KEY),
        pkeyfile=os.path.join(settings.cert_dir, TLS_KEY_KEY),
    )


async def startup_bootstrap(
    settings: Settings | None = None, **kwargs
) -> None:
    """
    kopf startup handler running the TLS bootstrap in a worker thread.

    Retryable failures become ``kopf.TemporaryError`` so kopf retries the
    handler; everything else stops the operator with ``kopf.PermanentError``.
    """
    # kopf passes its own OperatorSettings as ``settings``
    app_settings = settings if isinstance(settings, Settings) else default_settings
    try:
        await asyncio.to_thread(bootstrap_tls, get_kubernetes_client(), app_settings)
    except WebhookTLSError as e:
        logger.error(
            f"Webhook TLS bootstrap failed: {e}",
            extra={"error_type": type(e).__name__},
        )
        raise e.as_kopf_error() from e
    logger.info("Webhook TLS bootstrap finished")
