"""
Code signing for manifests and directives.

Signatures are RSA PKCS#1 v1.5 over SHA-256 of the exact JSON text placed in a
multipart part. They travel in the part's ``expo-signature`` header as a
structured-field dictionary (RFC 8941):

    sig="<base64 signature>", keyid="main"

The signer must receive the already-serialized payload. Re-serializing on the
client side of this call would reorder keys and break verification.
"""

import base64
from pathlib import Path
from typing import Dict, Optional, Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa


DEFAULT_KEY_ID = "main"


def _serialize_string(value: str) -> str:
    """Serialize an sf-string: printable ASCII, quotes and backslashes escaped."""
    for char in value:
        if ord(char) < 0x20 or ord(char) > 0x7E:
            raise ValueError(f"Structured header strings must be printable ASCII: {value!r}")
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _validate_key(key: str) -> str:
    if not key:
        raise ValueError("Structured header keys cannot be empty")
    if not (key[0].islower() or key[0] == "*"):
        raise ValueError(f"Invalid structured header key: {key!r}")
    allowed = set("abcdefghijklmnopqrstuvwxyz0123456789_-.*")
    if any(char not in allowed for char in key):
        raise ValueError(f"Invalid structured header key: {key!r}")
    return key


def serialize_dictionary(items: Dict[str, str]) -> str:
    """
    Serialize string members into a structured-field dictionary.

    Args:
        items: Ordered mapping of dictionary keys to string values

    Returns:
        Header value such as ``sig="abc", keyid="main"``

    Raises:
        ValueError: If a key or value cannot be represented
    """
    return ", ".join(
        f"{_validate_key(key)}={_serialize_string(value)}"
        for key, value in items.items()
    )


class ManifestSigner:
    """
    Detached RSA/SHA-256 signer for protocol payloads.

    Attributes:
        key_id: Identifier reported to clients in the ``keyid`` member
    """

    def __init__(self, private_key: rsa.RSAPrivateKey, key_id: str = DEFAULT_KEY_ID):
        if not isinstance(private_key, rsa.RSAPrivateKey):
            raise ValueError("Code signing requires an RSA private key")
        self._private_key = private_key
        self.key_id = key_id

    @classmethod
    def from_pem(
        cls,
        pem_data: Union[str, bytes],
        key_id: str = DEFAULT_KEY_ID,
        password: Optional[bytes] = None,
    ) -> "ManifestSigner":
        """
        Build a signer from PEM-encoded private key material.

        Raises:
            ValueError: If the PEM data is not a loadable RSA private key
        """
        if isinstance(pem_data, str):
            pem_data = pem_data.encode("utf-8")
        try:
            private_key = serialization.load_pem_private_key(pem_data, password=password)
        except (ValueError, TypeError) as e:
            raise ValueError(f"Invalid private key: {e}")
        return cls(private_key, key_id=key_id)

    @classmethod
    def from_pem_file(cls, path: str, key_id: str = DEFAULT_KEY_ID) -> "ManifestSigner":
        """
        Load the private key stored at ``path``.

        Raises:
            FileNotFoundError: If the key file does not exist
            ValueError: If the file is not a loadable RSA private key
        """
        return cls.from_pem(Path(path).read_bytes(), key_id=key_id)

    def sign(self, payload: str) -> str:
        """
        Sign serialized payload text.

        Args:
            payload: The exact JSON text that will be transmitted

        Returns:
            Base64-encoded RSA-SHA256 signature
        """
        signature = self._private_key.sign(
            payload.encode("utf-8"),
            padding.PKCS1v15(),
            hashes.SHA256(),
        )
        return base64.b64encode(signature).decode("ascii")

    def signature_header(self, payload: str) -> str:
        """Return the ``expo-signature`` header value for ``payload``."""
        return serialize_dictionary({"sig": self.sign(payload), "keyid": self.key_id})

    def verify(self, payload: str, signature_b64: str) -> bool:
        """Verify a signature produced by :meth:`sign` against the public key."""
        try:
            self._private_key.public_key().verify(
                base64.b64decode(signature_b64),
                payload.encode("utf-8"),
                padding.PKCS1v15(),
                hashes.SHA256(),
            )
        except (InvalidSignature, ValueError):
            return False
        return True

    def public_key_pem(self) -> str:
        """PEM (SubjectPublicKeyInfo) encoding of the matching public key."""
        return self._private_key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        ).decode("ascii")
