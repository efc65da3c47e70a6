"""Unit tests for certificate generation, renewal and expiry checks."""

from datetime import UTC, datetime, timedelta

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from kube_webhooks.utils.certificates import (
    generate_bundle,
    is_stale,
    leaf_not_after,
    renew_bundle,
    service_dns_names,
)
from tests.fixtures.manifests import SERVICE_NAME, SERVICE_NAMESPACE

NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=UTC)


def _load(pem: bytes) -> x509.Certificate:
    return x509.load_pem_x509_certificate(pem)


def _public_bytes(certificate: x509.Certificate) -> bytes:
    return certificate.public_key().public_bytes(
        serialization.Encoding.DER, serialization.PublicFormat.SubjectPublicKeyInfo
    )


class TestServiceDnsNames:
    def test_three_names_in_order(self):
        assert service_dns_names("svc", "ns") == ["svc", "svc.ns", "svc.ns.svc"]


class TestGenerateBundle:
    """Test generation of a fresh CA and leaf certificate."""

    def test_leaf_sans_match_service(self, bundle):
        san = (
            _load(bundle.tls_crt)
            .extensions.get_extension_for_class(x509.SubjectAlternativeName)
            .value
        )
        assert san.get_values_for_type(x509.DNSName) == [
            SERVICE_NAME,
            f"{SERVICE_NAME}.{SERVICE_NAMESPACE}",
            f"{SERVICE_NAME}.{SERVICE_NAMESPACE}.svc",
        ]

    def test_subjects(self, bundle):
        ca = _load(bundle.ca_crt)
        leaf = _load(bundle.tls_crt)

        assert ca.subject.get_attributes_for_oid(NameOID.COMMON_NAME)[0].value == (
            "Operator Root CA"
        )
        assert ca.issuer == ca.subject
        assert leaf.issuer == ca.subject
        assert leaf.subject.get_attributes_for_oid(NameOID.COMMON_NAME)[0].value == (
            "Operator Admission Control Cert"
        )
        assert leaf.subject.get_attributes_for_oid(NameOID.COUNTRY_NAME)[0].value == "CH"

    def test_ca_is_certificate_authority(self, bundle):
        ca = _load(bundle.ca_crt)
        constraints = ca.extensions.get_extension_for_class(x509.BasicConstraints)
        assert constraints.critical is True
        assert constraints.value.ca is True
        assert ca.extensions.get_extension_for_class(x509.KeyUsage).value.key_cert_sign

    def test_leaf_is_server_certificate(self, bundle):
        leaf = _load(bundle.tls_crt)
        assert leaf.extensions.get_extension_for_class(x509.BasicConstraints).value.ca is False
        usages = leaf.extensions.get_extension_for_class(x509.ExtendedKeyUsage).value
        assert ExtendedKeyUsageOID.SERVER_AUTH in usages

    def test_keys_are_p256(self, bundle):
        for pem in (bundle.ca_key, bundle.tls_key):
            key = serialization.load_pem_private_key(pem, password=None)
            assert isinstance(key, ec.EllipticCurvePrivateKey)
            assert key.curve.name == "secp256r1"

    def test_leaf_key_matches_leaf_certificate(self, bundle):
        key = serialization.load_pem_private_key(bundle.tls_key, password=None)
        assert key.public_key().public_bytes(
            serialization.Encoding.DER, serialization.PublicFormat.SubjectPublicKeyInfo
        ) == _public_bytes(_load(bundle.tls_crt))

    def test_leaf_signed_by_ca(self, bundle):
        ca = _load(bundle.ca_crt)
        leaf = _load(bundle.tls_crt)
        # Raises InvalidSignature if the CA did not sign the leaf
        ca.public_key().verify(
            leaf.signature,
            leaf.tbs_certificate_bytes,
            ec.ECDSA(hashes.SHA256()),
        )

    def test_validity_window(self):
        generated = generate_bundle(SERVICE_NAME, SERVICE_NAMESPACE, validity_days=10, now=NOW)
        leaf = _load(generated.tls_crt)

        assert leaf.not_valid_after_utc == NOW + timedelta(days=10)
        # Backdated for clock drift
        assert leaf.not_valid_before_utc == NOW - timedelta(minutes=5)
        # CA outlives any leaf
        assert _load(generated.ca_crt).not_valid_after_utc > NOW + timedelta(days=365 * 50)

    def test_default_leaf_lifetime_is_395_days(self):
        generated = generate_bundle(SERVICE_NAME, SERVICE_NAMESPACE, now=NOW)
        assert leaf_not_after(generated.tls_crt) == NOW + timedelta(days=395)

    def test_each_bundle_has_its_own_ca(self, bundle):
        other = generate_bundle(SERVICE_NAME, SERVICE_NAMESPACE)
        assert other.ca_key != bundle.ca_key
        assert other.ca_crt != bundle.ca_crt


class TestIsStale:
    """Test the renewal decision around the 30 day threshold."""

    @pytest.mark.parametrize(
        "validity_days,expected",
        [
            (29, True),
            (30, False),
            (31, False),
        ],
    )
    def test_threshold_boundary(self, validity_days, expected):
        generated = generate_bundle(
            SERVICE_NAME, SERVICE_NAMESPACE, validity_days=validity_days, now=NOW
        )
        assert is_stale(generated.tls_crt, now=NOW) is expected

    def test_one_second_past_threshold_is_stale(self):
        generated = generate_bundle(SERVICE_NAME, SERVICE_NAMESPACE, validity_days=30, now=NOW)
        assert is_stale(generated.tls_crt, now=NOW + timedelta(seconds=1)) is True

    def test_custom_threshold(self):
        generated = generate_bundle(SERVICE_NAME, SERVICE_NAMESPACE, validity_days=10, now=NOW)
        assert is_stale(generated.tls_crt, now=NOW, threshold_days=5) is False
        assert is_stale(generated.tls_crt, now=NOW, threshold_days=11) is True

    def test_fresh_bundle_is_not_stale(self, bundle):
        assert is_stale(bundle.tls_crt) is False

    def test_garbage_raises_value_error(self):
        with pytest.raises(ValueError):
            is_stale(b"not a certificate")


class TestRenewBundle:
    """Test re-issuing the leaf certificate against the existing CA."""

    @pytest.fixture
    def stale_bundle(self):
        return generate_bundle(SERVICE_NAME, SERVICE_NAMESPACE, validity_days=10, now=NOW)

    def test_ca_and_leaf_key_unchanged(self, stale_bundle):
        renewed = renew_bundle(stale_bundle, now=NOW + timedelta(days=5))

        assert renewed.ca_crt == stale_bundle.ca_crt
        assert renewed.ca_key == stale_bundle.ca_key
        assert renewed.tls_key == stale_bundle.tls_key
        assert renewed.tls_crt != stale_bundle.tls_crt

    def test_identity_preserved(self, stale_bundle):
        old = _load(stale_bundle.tls_crt)
        new = _load(renew_bundle(stale_bundle, now=NOW + timedelta(days=5)).tls_crt)

        assert _public_bytes(new) == _public_bytes(old)
        assert new.subject == old.subject
        assert new.extensions.get_extension_for_class(
            x509.SubjectAlternativeName
        ).value == old.extensions.get_extension_for_class(x509.SubjectAlternativeName).value
        assert new.serial_number != old.serial_number

    def test_not_after_increases(self, stale_bundle):
        renewed = renew_bundle(stale_bundle, now=NOW + timedelta(days=5))

        assert leaf_not_after(renewed.tls_crt) > leaf_not_after(stale_bundle.tls_crt)
        assert leaf_not_after(renewed.tls_crt) == NOW + timedelta(days=5 + 395)

    def test_renewed_leaf_signed_by_same_ca(self, stale_bundle):
        renewed = renew_bundle(stale_bundle)
        ca = _load(renewed.ca_crt)
        leaf = _load(renewed.tls_crt)
        ca.public_key().verify(
            leaf.signature, leaf.tbs_certificate_bytes, ec.ECDSA(hashes.SHA256())
        )

    def test_unparseable_ca_key_raises_value_error(self, stale_bundle):
        broken = stale_bundle.model_copy(update={"ca_key": b"garbage"})
        with pytest.raises(ValueError):
            renew_bundle(broken)
