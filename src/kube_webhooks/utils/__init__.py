"""
Utils package - Utility modules for the webhook TLS lifecycle.

Contains helper modules for:
- Kubernetes client management and server-side apply
- Certificate generation, renewal and expiry checks
- Reading and writing the certificate Secret
"""
