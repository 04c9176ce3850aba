"""
Gift card secret decryption.

Stored format: `iv:auth_tag:ciphertext`, each part hex encoded, AES-256-GCM
with a 16-byte IV and 16-byte tag.
"""

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from src.service.autobooking.domain.exception.booking_flow_errors import MalformedSecretError


IV_LENGTH = 16
AUTH_TAG_LENGTH = 16


class GiftCardCipher:
    def __init__(self, *, key_hex: str) -> None:
        key = bytes.fromhex(key_hex)
        if len(key) != 32:
            raise ValueError('Gift card encryption key must be 32 bytes')
        self._aesgcm = AESGCM(key)

    def decrypt(self, encrypted: str) -> str:
        parts = encrypted.split(':')
        if len(parts) != 3:
            raise MalformedSecretError('Stored secret is not in iv:authTag:ciphertext format')

        try:
            iv, auth_tag, ciphertext = (bytes.fromhex(part) for part in parts)
        except ValueError:
            raise MalformedSecretError('Stored secret is not valid hex') from None

        if len(iv) != IV_LENGTH or len(auth_tag) != AUTH_TAG_LENGTH:
            raise MalformedSecretError('Stored secret has an invalid IV or auth tag length')

        try:
            # AESGCM expects the tag appended to the ciphertext
            plaintext = self._aesgcm.decrypt(iv, ciphertext + auth_tag, None)
        except InvalidTag:
            raise MalformedSecretError('Stored secret failed authentication') from None

        try:
            return plaintext.decode('utf-8')
        except UnicodeDecodeError:
            raise MalformedSecretError('Stored secret is not valid UTF-8') from None

    def encrypt(self, plaintext: str, *, iv: bytes) -> str:
        """Inverse of decrypt; used to seed stores and tests."""
        sealed = self._aesgcm.encrypt(iv, plaintext.encode('utf-8'), None)
        ciphertext, auth_tag = sealed[:-AUTH_TAG_LENGTH], sealed[-AUTH_TAG_LENGTH:]
        return f'{iv.hex()}:{auth_tag.hex()}:{ciphertext.hex()}'
