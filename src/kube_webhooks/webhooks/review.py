"""
Request token passed through webhook handlers.

A ``WebhookRequest`` wraps one AdmissionReview or ConversionReview. Handlers
receive it, fill in ``response`` and hand it back; the server renders it as
the review the API server expects in return.
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class WebhookRequest:
    """A review received from the API server and the response being built."""

    api_version: str
    kind: str
    request: dict[str, Any]
    response: dict[str, Any]
    assigns: dict[str, Any] = field(default_factory=dict)
    halted: bool = False

    @classmethod
    def from_body(cls, body: dict[str, Any], **assigns: Any) -> "WebhookRequest":
        """
        Build a request token from a decoded review body.

        Args:
            body: JSON body sent by the API server
            **assigns: Values forwarded to handlers (e.g. ``webhook_type``)

        Returns:
            Token whose response already carries the request uid
        """
        request = body.get("request") or {}
        return cls(
            api_version=body.get("apiVersion"),
            kind=body.get("kind"),
            request=request,
            response={"uid": request.get("uid")},
            assigns=dict(assigns),
        )

    @property
    def uid(self) -> str | None:
        return self.request.get("uid")

    def to_response_body(self) -> dict[str, Any]:
        """Render the review returned to the API server."""
        return {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "response": self.response,
        }
