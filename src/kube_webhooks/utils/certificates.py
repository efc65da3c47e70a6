"""
Certificate generation, renewal and expiry checks.

A self-signed EC CA signs a single leaf certificate for the webhook service.
The CA is never rotated here. Renewal re-issues the leaf certificate over the
public key, subject and SANs of the previous one, so ``tls.key`` stays the
same across renewals and only ``tls.crt`` changes.
"""

from datetime import UTC, datetime, timedelta

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from kube_webhooks.constants import (
    CA_COMMON_NAME,
    CA_VALIDITY_DAYS,
    CERTIFICATE_BACKDATE_SECONDS,
    DEFAULT_RENEWAL_THRESHOLD_DAYS,
    DEFAULT_VALIDITY_DAYS,
    LEAF_COMMON_NAME,
    SUBJECT_COUNTRY,
    SUBJECT_LOCALITY,
    SUBJECT_ORGANIZATION,
    SUBJECT_STATE,
)
from kube_webhooks.models.bundle import CertificateBundle


def service_dns_names(service_name: str, service_namespace: str) -> list[str]:
    """DNS names under which the API server reaches the webhook service."""
    return [
        service_name,
        f"{service_name}.{service_namespace}",
        f"{service_name}.{service_namespace}.svc",
    ]


def _subject(common_name: str) -> x509.Name:
    return x509.Name(
        [
            x509.NameAttribute(NameOID.COUNTRY_NAME, SUBJECT_COUNTRY),
            x509.NameAttribute(NameOID.STATE_OR_PROVINCE_NAME, SUBJECT_STATE),
            x509.NameAttribute(NameOID.LOCALITY_NAME, SUBJECT_LOCALITY),
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, SUBJECT_ORGANIZATION),
            x509.NameAttribute(NameOID.COMMON_NAME, common_name),
        ]
    )


def _validity(now: datetime | None, days: int) -> tuple[datetime, datetime]:
    now = now or datetime.now(UTC)
    return now - timedelta(seconds=CERTIFICATE_BACKDATE_SECONDS), now + timedelta(
        days=days
    )


def _private_key_pem(key: ec.EllipticCurvePrivateKey) -> bytes:
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    )


def _certificate_pem(certificate: x509.Certificate) -> bytes:
    return certificate.public_bytes(serialization.Encoding.PEM)


def generate_ca(
    now: datetime | None = None,
) -> tuple[x509.Certificate, ec.EllipticCurvePrivateKey]:
    """
    Generate the self-signed root CA.

    Args:
        now: Reference time for the validity window (defaults to current UTC time)

    Returns:
        Tuple of CA certificate and CA private key
    """
    ca_key = ec.generate_private_key(ec.SECP256R1())
    subject = _subject(CA_COMMON_NAME)
    not_before, not_after = _validity(now, CA_VALIDITY_DAYS)

    ca_cert = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(subject)
        .public_key(ca_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before)
        .not_valid_after(not_after)
        .add_extension(x509.BasicConstraints(ca=True, path_length=1), critical=True)
        .add_extension(
            x509.KeyUsage(
                digital_signature=True,
                content_commitment=False,
                key_encipherment=False,
                data_encipherment=False,
                key_agreement=False,
                key_cert_sign=True,
                crl_sign=True,
                encipher_only=False,
                decipher_only=False,
            ),
            critical=True,
        )
        .add_extension(
            x509.SubjectKeyIdentifier.from_public_key(ca_key.public_key()),
            critical=False,
        )
        .sign(ca_key, hashes.SHA256())
    )
    return ca_cert, ca_key


def issue_leaf_certificate(
    public_key: ec.EllipticCurvePublicKey,
    subject: x509.Name,
    subject_alt_name: x509.SubjectAlternativeName | None,
    ca_cert: x509.Certificate,
    ca_key: ec.EllipticCurvePrivateKey,
    validity_days: int = DEFAULT_VALIDITY_DAYS,
    now: datetime | None = None,
) -> x509.Certificate:
    """
    Issue a server certificate for ``public_key`` signed by the CA.

    Args:
        public_key: Public key the certificate is issued for
        subject: Subject distinguished name
        subject_alt_name: SAN extension value (omitted when None)
        ca_cert: Issuing CA certificate
        ca_key: Issuing CA private key
        validity_days: Lifetime of the certificate in days
        now: Reference time for the validity window

    Returns:
        The signed leaf certificate
    """
    not_before, not_after = _validity(now, validity_days)

    builder = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(ca_cert.subject)
        .public_key(public_key)
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before)
        .not_valid_after(not_after)
        .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
        .add_extension(
            x509.KeyUsage(
                digital_signature=True,
                content_commitment=False,
                key_encipherment=True,
                data_encipherment=False,
                key_agreement=False,
                key_cert_sign=False,
                crl_sign=False,
                encipher_only=False,
                decipher_only=False,
            ),
            critical=True,
        )
        .add_extension(
            x509.ExtendedKeyUsage(
                [ExtendedKeyUsageOID.SERVER_AUTH, ExtendedKeyUsageOID.CLIENT_AUTH]
            ),
            critical=False,
        )
        .add_extension(
            x509.SubjectKeyIdentifier.from_public_key(public_key), critical=False
        )
        .add_extension(
            x509.AuthorityKeyIdentifier.from_issuer_public_key(ca_key.public_key()),
            critical=False,
        )
    )
    if subject_alt_name is not None:
        builder = builder.add_extension(subject_alt_name, critical=False)

    return builder.sign(ca_key, hashes.SHA256())


def generate_bundle(
    service_name: str,
    service_namespace: str,
    validity_days: int = DEFAULT_VALIDITY_DAYS,
    now: datetime | None = None,
) -> CertificateBundle:
    """
    Generate a fresh CA and a leaf certificate for the webhook service.

    Args:
        service_name: Name of the Service in front of the webhook server
        service_namespace: Namespace of that Service
        validity_days: Lifetime of the leaf certificate in days
        now: Reference time for the validity windows

    Returns:
        New certificate bundle
    """
    ca_cert, ca_key = generate_ca(now)

    leaf_key = ec.generate_private_key(ec.SECP256R1())
    subject_alt_name = x509.SubjectAlternativeName(
        [
            x509.DNSName(dns_name)
            for dns_name in service_dns_names(service_name, service_namespace)
        ]
    )
    leaf_cert = issue_leaf_certificate(
        leaf_key.public_key(),
        _subject(LEAF_COMMON_NAME),
        subject_alt_name,
        ca_cert,
        ca_key,
        validity_days=validity_days,
        now=now,
    )

    return CertificateBundle(
        ca_crt=_certificate_pem(ca_cert),
        ca_key=_private_key_pem(ca_key),
        tls_crt=_certificate_pem(leaf_cert),
        tls_key=_private_key_pem(leaf_key),
    )


def renew_bundle(
    bundle: CertificateBundle,
    validity_days: int = DEFAULT_VALIDITY_DAYS,
    now: datetime | None = None,
) -> CertificateBundle:
    """
    Re-issue the leaf certificate of ``bundle`` against its existing CA.

    The new certificate keeps the public key, subject and SANs of the old
    one. CA certificate, CA key and leaf key are carried over byte for byte.

    Args:
        bundle: Bundle whose leaf certificate should be renewed
        validity_days: Lifetime of the new leaf certificate in days
        now: Reference time for the validity window

    Returns:
        Bundle with a new ``tls.crt``

    Raises:
        ValueError: If a certificate or the CA key cannot be parsed
        TypeError: If the CA key is encrypted
    """
    ca_cert = x509.load_pem_x509_certificate(bundle.ca_crt)
    ca_key = serialization.load_pem_private_key(bundle.ca_key, password=None)
    old_cert = x509.load_pem_x509_certificate(bundle.tls_crt)

    try:
        subject_alt_name = old_cert.extensions.get_extension_for_class(
            x509.SubjectAlternativeName
        ).value
    except x509.ExtensionNotFound:
        subject_alt_name = None

    new_cert = issue_leaf_certificate(
        old_cert.public_key(),
        old_cert.subject,
        subject_alt_name,
        ca_cert,
        ca_key,
        validity_days=validity_days,
        now=now,
    )
    return bundle.model_copy(update={"tls_crt": _certificate_pem(new_cert)})


def leaf_not_after(certificate_pem: bytes) -> datetime:
    """Expiry (``notAfter``) of a PEM encoded certificate as an aware UTC datetime."""
    return x509.load_pem_x509_certificate(certificate_pem).not_valid_after_utc


def is_stale(
    certificate_pem: bytes,
    now: datetime | None = None,
    threshold_days: int = DEFAULT_RENEWAL_THRESHOLD_DAYS,
) -> bool:
    """
    Decide whether a leaf certificate must be renewed.

    A certificate expiring exactly ``threshold_days`` from ``now`` is still
    fresh; anything expiring earlier is stale.

    Args:
        certificate_pem: PEM encoded leaf certificate
        now: Reference time (defaults to current UTC time)
        threshold_days: Renewal look-ahead in days

    Returns:
        True if the certificate expires within the threshold

    Raises:
        ValueError: If the certificate cannot be parsed
    """
    now = now or datetime.now(UTC)
    return leaf_not_after(certificate_pem) < now + timedelta(days=threshold_days)
