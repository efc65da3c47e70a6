"""
CRD conversion webhook handler.

Subclass ``ResourceConversionHandler`` and implement ``convert``:

    class CogConversion(ResourceConversionHandler):
        def convert(self, resource, desired_api_version):
            if resource["apiVersion"] == "example.com/v1alpha1":
                raise ConversionError("v1alpha1 cannot be converted")
            return {**resource, "apiVersion": desired_api_version}
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

from kube_webhooks.errors import ConversionError
from kube_webhooks.webhooks.review import WebhookRequest

logger = logging.getLogger(__name__)


class ResourceConversionHandler(ABC):
    """Converts every object of a ConversionReview with ``convert``."""

    @abstractmethod
    def convert(
        self, resource: dict[str, Any], desired_api_version: str
    ) -> dict[str, Any]:
        """
        Convert ``resource`` to ``desired_api_version``.

        Raises:
            ConversionError: If the resource cannot be converted
        """

    def __call__(self, review: WebhookRequest) -> WebhookRequest:
        desired_api_version = review.request.get("desiredAPIVersion")
        result: dict[str, Any] = {"status": "Success"}
        converted_objects = []

        for resource in review.request.get("objects") or []:
            try:
                converted_objects.append(self.convert(resource, desired_api_version))
            except ConversionError as e:
                logger.warning(
                    f"Conversion to {desired_api_version} failed: {e}",
                    extra={"review_uid": review.uid, "error_type": "ConversionError"},
                )
                result = {"status": "Failed", "message": str(e)}

        review.response["result"] = result
        review.response["convertedObjects"] = converted_objects
        return review
