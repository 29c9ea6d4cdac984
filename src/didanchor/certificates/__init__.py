# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Certificate issuance via a mutual-nonce challenge/response."""

from .certificate import UNREVOCABLE_OUTPOINT, Certificate
from .issuer import (
    INTERNAL_ERROR_BODY,
    CertificateChallenge,
    CertificateIssuer,
    CertificateRequest,
    IssuanceResult,
    derive_serial_number,
    validate_request,
)
from .master import MasterCertificate
from .nonce import NonceTracker, create_nonce, verify_nonce

__all__ = [
    "INTERNAL_ERROR_BODY",
    "UNREVOCABLE_OUTPOINT",
    "Certificate",
    "CertificateChallenge",
    "CertificateIssuer",
    "CertificateRequest",
    "IssuanceResult",
    "MasterCertificate",
    "NonceTracker",
    "create_nonce",
    "derive_serial_number",
    "validate_request",
    "verify_nonce",
]
