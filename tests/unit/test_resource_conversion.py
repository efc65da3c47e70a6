"""Unit tests for the CRD conversion handler."""

import pytest

from kube_webhooks.errors import ConversionError
from kube_webhooks.webhooks.conversion import ResourceConversionHandler
from kube_webhooks.webhooks.review import WebhookRequest


class CogConversion(ResourceConversionHandler):
    def convert(self, resource, desired_api_version):
        if resource["apiVersion"] == "example.com/v1alpha1":
            raise ConversionError("V1Alpha1 cannot be converted to V1.")
        return {
            **resource,
            "apiVersion": desired_api_version,
            "metadata": {**resource["metadata"], "labels": {"foo": "bar"}},
        }


def _cog(api_version: str, name: str) -> dict:
    return {"apiVersion": api_version, "kind": "Cog", "metadata": {"name": name}}


def _review(objects) -> WebhookRequest:
    return WebhookRequest.from_body(
        {
            "apiVersion": "apiextensions.k8s.io/v1",
            "kind": "ConversionReview",
            "request": {
                "uid": "5e4f3a1c",
                "desiredAPIVersion": "example.com/v1",
                "objects": objects,
            },
        }
    )


def test_converts_every_object():
    review = CogConversion()(
        _review([_cog("example.com/v1beta1", "a"), _cog("example.com/v1beta1", "b")])
    )

    assert review.response["uid"] == "5e4f3a1c"
    assert review.response["result"] == {"status": "Success"}
    converted = review.response["convertedObjects"]
    assert [obj["apiVersion"] for obj in converted] == ["example.com/v1"] * 2
    assert [obj["metadata"]["name"] for obj in converted] == ["a", "b"]
    assert converted[0]["metadata"]["labels"] == {"foo": "bar"}


def test_failure_marks_result_failed():
    review = CogConversion()(
        _review(
            [
                _cog("example.com/v1beta1", "a"),
                _cog("example.com/v1alpha1", "b"),
                _cog("example.com/v1beta1", "c"),
            ]
        )
    )

    assert review.response["result"] == {
        "status": "Failed",
        "message": "V1Alpha1 cannot be converted to V1.",
    }
    # Objects that did convert are still reported
    assert [obj["metadata"]["name"] for obj in review.response["convertedObjects"]] == [
        "a",
        "c",
    ]


def test_empty_request():
    review = CogConversion()(_review([]))

    assert review.response["result"] == {"status": "Success"}
    assert review.response["convertedObjects"] == []
    assert review.to_response_body()["kind"] == "ConversionReview"


def test_handler_without_convert_cannot_be_created():
    class Incomplete(ResourceConversionHandler):
        pass

    with pytest.raises(TypeError, match="convert"):
        Incomplete()
