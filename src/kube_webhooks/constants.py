"""
Constants used throughout kube-webhooks.

This module defines all constant values used by the library including:
- Secret keys of the certificate bundle
- Certificate subjects and lifetimes
- API versions and kinds of the resources carrying a caBundle
- Labels and field manager names
"""

# Secret keys (same layout as cert-manager issued secrets)
CA_CERT_KEY = "ca.crt"
CA_KEY_KEY = "ca.key"
TLS_CERT_KEY = "tls.crt"
TLS_KEY_KEY = "tls.key"
BUNDLE_KEYS = (CA_CERT_KEY, CA_KEY_KEY, TLS_CERT_KEY, TLS_KEY_KEY)

# Certificate lifetimes (in days)
DEFAULT_VALIDITY_DAYS = 365 + 30
DEFAULT_RENEWAL_THRESHOLD_DAYS = 30
CA_VALIDITY_DAYS = 365 * 100
# notBefore is moved back by this many seconds to tolerate clock drift
CERTIFICATE_BACKDATE_SECONDS = 5 * 60

# Distinguished names of the generated certificates
SUBJECT_COUNTRY = "CH"
SUBJECT_STATE = "ZH"
SUBJECT_LOCALITY = "Zurich"
SUBJECT_ORGANIZATION = "Operator"
CA_COMMON_NAME = "Operator Root CA"
LEAF_COMMON_NAME = "Operator Admission Control Cert"

# API versions and kinds
ADMISSION_REGISTRATION_API_VERSION = "admissionregistration.k8s.io/v1"
VALIDATING_WEBHOOK_CONFIGURATION = "ValidatingWebhookConfiguration"
MUTATING_WEBHOOK_CONFIGURATION = "MutatingWebhookConfiguration"
CRD_API_VERSION = "apiextensions.k8s.io/v1"
CRD_KIND = "CustomResourceDefinition"
CONVERSION_STRATEGY_WEBHOOK = "Webhook"

# Page size used when listing CustomResourceDefinitions
CRD_LIST_PAGE_SIZE = 100

# Server-side apply
FIELD_MANAGER = "kube-webhooks"
APPLY_PATCH_CONTENT_TYPE = "application/apply-patch+yaml"

# Label constants
MANAGED_BY_LABEL_KEY = "app.kubernetes.io/managed-by"
MANAGED_BY_LABEL_VALUE = "kube-webhooks"

# Review envelopes
ADMISSION_REVIEW_KIND = "AdmissionReview"
CONVERSION_REVIEW_KIND = "ConversionReview"
DEFAULT_DENY_CODE = 400
