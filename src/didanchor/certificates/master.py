# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Master keyring: per-field symmetric keys, encrypted between subject and certifier.

Each certificate field is encrypted under its own random AES-256-GCM key
with ``bsv-sdk``'s :class:`EncryptedMessage` framing. The master keyring
holds those keys, each encrypted with a key derived between the subject and
the certifier under the protocol and key id that
:func:`get_certificate_encryption_details` assigns to the field, so keyrings
produced here open in any BRC-100 wallet and vice versa.
"""

from __future__ import annotations

import base64
import binascii
import logging
import secrets

from bsv.auth.cert_encryption import get_certificate_encryption_details
from bsv.encrypted_message import EncryptedMessage

from ..core.exceptions import DecryptionError
from ..crypto.keys import SYMMETRIC_KEY_BYTES, KeyringWallet, ProtocolID

logger = logging.getLogger(__name__)


def field_encryption_details(name: str) -> tuple[ProtocolID, str]:
    """Protocol and key id protecting the keyring entry of field ``name``."""
    protocol, key_id = get_certificate_encryption_details(name, None)
    return (protocol["security_level"], protocol["protocol"]), key_id


class MasterCertificate:
    """Field encryption helpers for the subject and the certifier."""

    @staticmethod
    async def create_certificate_fields(
        wallet: KeyringWallet,
        certifier: str,
        fields: dict[str, str],
    ) -> tuple[dict[str, str], dict[str, str]]:
        """Encrypt plaintext fields for submission to ``certifier``.

        Returns:
            ``(certificate_fields, master_keyring)``, both keyed by field name
            with base64 values.
        """
        certificate_fields: dict[str, str] = {}
        master_keyring: dict[str, str] = {}
        for name, value in fields.items():
            field_key = secrets.token_bytes(SYMMETRIC_KEY_BYTES)
            encrypted_value = EncryptedMessage.aes_gcm_encrypt(field_key, value.encode("utf-8"))
            protocol_id, key_id = field_encryption_details(name)
            encrypted_key = await wallet.encrypt(field_key, protocol_id, key_id, certifier)
            certificate_fields[name] = base64.b64encode(encrypted_value).decode("ascii")
            master_keyring[name] = base64.b64encode(encrypted_key).decode("ascii")
        return certificate_fields, master_keyring

    @staticmethod
    async def decrypt_field(
        wallet: KeyringWallet,
        master_keyring: dict[str, str],
        name: str,
        value: str,
        counterparty: str,
    ) -> str:
        """Decrypt one field with its keyring entry.

        Raises:
            DecryptionError: The keyring entry is missing, or either the key
                or the value fails to decrypt.
        """
        encrypted_key = master_keyring.get(name)
        if not encrypted_key:
            raise DecryptionError(f"Master keyring has no entry for field '{name}'", field=name)
        protocol_id, key_id = field_encryption_details(name)
        try:
            field_key = await wallet.decrypt(
                base64.b64decode(encrypted_key, validate=True),
                protocol_id,
                key_id,
                counterparty,
            )
            if len(field_key) != SYMMETRIC_KEY_BYTES:
                raise DecryptionError(f"Keyring entry holds a {len(field_key)}-byte key")
            ciphertext = base64.b64decode(value, validate=True)
        except DecryptionError as e:
            raise DecryptionError(f"Failed to decrypt field '{name}': {e.message}", field=name) from e
        except (binascii.Error, ValueError) as e:
            raise DecryptionError(f"Field '{name}' is not valid base64", field=name) from e

        try:
            plaintext = EncryptedMessage.aes_gcm_decrypt(field_key, ciphertext)
        except ValueError as e:
            raise DecryptionError(f"Failed to decrypt field '{name}': value failed authentication", field=name) from e
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecryptionError(f"Field '{name}' is not valid utf-8", field=name) from e

    @staticmethod
    async def decrypt_fields(
        wallet: KeyringWallet,
        master_keyring: dict[str, str],
        fields: dict[str, str],
        counterparty: str,
    ) -> dict[str, str]:
        """Decrypt every field; the first failure aborts."""
        if not master_keyring:
            raise DecryptionError("A master keyring is required to decrypt fields")
        decrypted: dict[str, str] = {}
        for name, value in fields.items():
            decrypted[name] = await MasterCertificate.decrypt_field(wallet, master_keyring, name, value, counterparty)
        logger.debug(f"Decrypted {len(decrypted)} certificate fields")
        return decrypted
