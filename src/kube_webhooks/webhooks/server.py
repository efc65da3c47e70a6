"""
HTTPS server dispatching webhook reviews to handlers.

Handlers are callables taking a ``WebhookRequest`` and returning it (sync or
async). Admission reviews are allowed before the handler runs, so a handler
only has to act when it wants to deny, warn or mutate.
"""

import inspect
import logging
import os
import ssl
from collections.abc import Awaitable, Callable
from typing import Any

from aiohttp.web import (
    Application,
    AppRunner,
    Request,
    Response,
    TCPSite,
    json_response,
)
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from kube_webhooks.constants import ADMISSION_REVIEW_KIND, TLS_CERT_KEY, TLS_KEY_KEY
from kube_webhooks.observability.logging import set_correlation_id
from kube_webhooks.observability.metrics import (
    get_metrics_registry,
    record_webhook_request,
)
from kube_webhooks.webhooks.admission import allow
from kube_webhooks.webhooks.review import WebhookRequest

logger = logging.getLogger(__name__)

WebhookHandler = Callable[
    [WebhookRequest], WebhookRequest | Awaitable[WebhookRequest]
]


def create_ssl_context(cert_dir: str) -> ssl.SSLContext:
    """Server TLS context from the ``tls.crt``/``tls.key`` mounted in ``cert_dir``."""
    context = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
    context.load_cert_chain(
        certfile=os.path.join(cert_dir, TLS_CERT_KEY),
        keyfile=os.path.join(cert_dir, TLS_KEY_KEY),
    )
    return context


class WebhookServer:
    """HTTP(S) server for admission and conversion webhooks."""

    def __init__(
        self,
        port: int = 8443,
        host: str = "0.0.0.0",
        cert_dir: str | None = None,
    ):
        """
        Initialize webhook server.

        Args:
            port: Port to serve webhooks on
            host: Host interface to bind to
            cert_dir: Directory holding tls.crt and tls.key; plain HTTP when None
        """
        self.port = port
        self.host = host
        self.cert_dir = cert_dir
        self.app = Application()
        self.runner: AppRunner | None = None
        self.site: TCPSite | None = None
        # Set up routes
        self._setup_routes()

    def _setup_routes(self) -> None:
        """Set up built-in HTTP routes."""
        self.app.router.add_get("/healthz", self._healthz_handler)
        self.app.router.add_get("/metrics", self._metrics_handler)

    def add_webhook(self, path: str, handler: WebhookHandler, **assigns: Any) -> None:
        """
        Route POST requests on ``path`` to ``handler``.

        Args:
            path: URL path configured in the webhook's clientConfig.service.path
            handler: Callable handling the review
            **assigns: Values made available to the handler via ``review.assigns``
        """

        async def dispatch(request: Request) -> Response:
            return await self._dispatch(request, path, handler, assigns)

        self.app.router.add_post(path, dispatch)
        logger.debug(f"Registered webhook handler on {path}")

    async def _dispatch(
        self,
        request: Request,
        path: str,
        handler: WebhookHandler,
        assigns: dict[str, Any],
    ) -> Response:
        try:
            body = await request.json()
        except ValueError:
            return json_response({"error": "request body is not valid JSON"}, status=400)

        if (
            not isinstance(body, dict)
            or not isinstance(body.get("request"), dict)
            or not body["request"].get("uid")
        ):
            return json_response(
                {"error": "request body is not a review (missing request.uid)"},
                status=400,
            )

        review = WebhookRequest.from_body(body, **assigns)
        set_correlation_id(review.uid)
        logger.debug(
            f"Processing {review.kind} request on {path}",
            extra={"review_uid": review.uid},
        )

        if review.kind == ADMISSION_REVIEW_KIND:
            allow(review)

        try:
            result = handler(review)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            logger.error(
                f"Webhook handler on {path} failed: {e}",
                exc_info=True,
                extra={"review_uid": review.uid, "error_type": type(e).__name__},
            )
            return json_response(
                {"error": f"{type(e).__name__}. Check logs for details."}, status=500
            )

        review = result if result is not None else review
        record_webhook_request(path, review.kind, review.response.get("allowed"))
        return json_response(review.to_response_body())

    async def _metrics_handler(self, request: Request) -> Response:
        """Handle /metrics endpoint for Prometheus scraping."""
        try:
            metrics_data = generate_latest(get_metrics_registry())
            return Response(
                body=metrics_data, headers={"Content-Type": CONTENT_TYPE_LATEST}
            )
        except Exception as e:
            logger.error(f"Failed to generate metrics: {e}")
            return Response(
                text=f"Error generating metrics: {type(e).__name__}. Check logs for details.",
                status=500,
            )

    async def _healthz_handler(self, request: Request) -> Response:
        """Handle /healthz endpoint for Kubernetes probes."""
        return Response(text="ok")

    async def start(self) -> None:
        """Start the webhook server."""
        ssl_context = create_ssl_context(self.cert_dir) if self.cert_dir else None
        try:
            self.runner = AppRunner(self.app)
            await self.runner.setup()

            self.site = TCPSite(
                self.runner, self.host, self.port, ssl_context=ssl_context
            )
            await self.site.start()

            scheme = "https" if ssl_context else "http"
            logger.info(f"Webhook server started on {scheme}://{self.host}:{self.port}")
        except Exception as e:
            logger.error(f"Failed to start webhook server: {e}")
            raise

    async def stop(self) -> None:
        """Stop the webhook server."""
        if self.site:
            await self.site.stop()
            self.site = None

        if self.runner:
            await self.runner.cleanup()
            self.runner = None

        logger.info("Webhook server stopped")

    async def __aenter__(self):
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.stop()
