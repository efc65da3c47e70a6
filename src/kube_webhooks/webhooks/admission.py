"""
Admission control helpers and request routing.

The helpers operate on a ``WebhookRequest`` in place and return it, so they
can be chained inside a handler:

    handler = AdmissionControlHandler()

    @handler.validate("example.com/v1/cogs")
    def validate_cog(review):
        check_immutable(review, ["spec", "size"])
        return check_allowed_values(review, ["spec", "color"], ["red", "blue"])

Register the handler with the webhook server once per webhook type:

    server.add_webhook("/admission-review/validating", handler, webhook_type="validating")
"""

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from kube_webhooks.constants import DEFAULT_DENY_CODE
from kube_webhooks.webhooks.review import WebhookRequest

logger = logging.getLogger(__name__)

MUTATING = "mutating"
VALIDATING = "validating"

AdmissionCallback = Callable[[WebhookRequest], WebhookRequest | None]


def allow(review: WebhookRequest) -> WebhookRequest:
    """Respond by allowing the operation."""
    review.response["allowed"] = True
    return review


def deny(
    review: WebhookRequest, message: str | None = None, code: int = DEFAULT_DENY_CODE
) -> WebhookRequest:
    """
    Respond by denying the operation.

    Args:
        review: Request token
        message: Reason shown to the user; without it no status is set
        code: HTTP status code reported in the response status

    Returns:
        The same token
    """
    review.response["allowed"] = False
    if message is not None:
        review.response["status"] = {"code": code, "message": message}
    return review


def add_warning(review: WebhookRequest, warning: str) -> WebhookRequest:
    """Add a warning to the response. The newest warning comes first."""
    review.response["warnings"] = [warning, *review.response.get("warnings", [])]
    return review


def _get_in(data: Any, path: list[str]) -> Any:
    for key in path:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def _field_path(field: list[str]) -> str:
    return "." + ".".join(field)


def check_immutable(review: WebhookRequest, field: list[str]) -> WebhookRequest:
    """Deny the request if ``field`` differs between the old and the new object."""
    new_value = _get_in(review.request.get("object"), field)
    old_value = _get_in(review.request.get("oldObject"), field)

    if new_value == old_value:
        return review
    return deny(review, f"The field {_field_path(field)} is immutable.")


def check_allowed_values(
    review: WebhookRequest, field: list[str], allowed_values: list[Any]
) -> WebhookRequest:
    """
    Deny the request if ``field`` is set to a value outside ``allowed_values``.

    An unset field passes; use the CRD schema to make fields required.
    """
    value = _get_in(review.request.get("object"), field)

    if value is None or value in allowed_values:
        return review
    return deny(
        review,
        f"The field {_field_path(field)} must contain one of the values in "
        f"{json.dumps(allowed_values)} but it's currently set to {json.dumps(value)}.",
    )


def parse_resource(resource: str) -> dict[str, str]:
    """
    Parse "group/version/plural" or "version/plural" (core group).

    Raises:
        ValueError: If ``resource`` has another shape
    """
    parts = resource.split("/")
    if len(parts) == 3:
        group, version, plural = parts
    elif len(parts) == 2:
        group = ""
        version, plural = parts
    else:
        raise ValueError(
            "resource has to be given in the form group/version/plural, e.g. "
            f'example.com/v1/someresources or v1/pods. You passed "{resource}"'
        )
    return {"group": group, "version": version, "resource": plural.lower()}


@dataclass(frozen=True)
class _Route:
    webhook_type: str
    resource: tuple[tuple[str, str], ...]
    subresource: str | None
    callback: AdmissionCallback

    def matches(self, webhook_type: str | None, request: dict[str, Any]) -> bool:
        if webhook_type != self.webhook_type:
            return False
        requested = request.get("resource") or {}
        if any(requested.get(key) != value for key, value in self.resource):
            return False
        # No subresource registered means any subresource
        return self.subresource is None or request.get("subResource") == self.subresource


class AdmissionControlHandler:
    """
    Routes admission reviews to callbacks by webhook type and resource.

    The first registered callback matching the review's webhook type
    (taken from the ``webhook_type`` assign), group, version, plural and
    subresource handles it. Reviews matching no callback pass through
    unchanged.
    """

    def __init__(self):
        self._routes: list[_Route] = []

    def mutate(self, resource: str, subresource: str | None = None):
        """Register a callback for mutating reviews of ``resource``."""
        return self._register(MUTATING, resource, subresource)

    def validate(self, resource: str, subresource: str | None = None):
        """Register a callback for validating reviews of ``resource``."""
        return self._register(VALIDATING, resource, subresource)

    def _register(self, webhook_type: str, resource: str, subresource: str | None):
        pattern = tuple(parse_resource(resource).items())

        def decorator(callback: AdmissionCallback) -> AdmissionCallback:
            self._routes.append(_Route(webhook_type, pattern, subresource, callback))
            return callback

        return decorator

    def __call__(self, review: WebhookRequest) -> WebhookRequest:
        webhook_type = review.assigns.get("webhook_type")
        for route in self._routes:
            if route.matches(webhook_type, review.request):
                logger.debug(
                    f"Dispatching {webhook_type} review to {route.callback.__name__}",
                    extra={"review_uid": review.uid},
                )
                result = route.callback(review)
                return review if result is None else result
        return review
