#!/usr/bin/env python3
"""
Code Signing Key Setup Tool

Generates the RSA key pair used to sign update manifests:
- private-key.pem: kept on the server, referenced by PRIVATE_KEY_PATH
- public-key.pem: embedded in the client app so it can verify manifests

Usage:
    python3 setup_signing_key.py                      # Generate into ./keys
    python3 setup_signing_key.py --out-dir /etc/ota   # Custom directory
    python3 setup_signing_key.py --validate           # Validate PRIVATE_KEY_PATH
"""

import argparse
import os
import platform
import sys
from pathlib import Path

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from backend.src.utils.signing import ManifestSigner


class SigningKeyManager:
    """Manages code signing key generation and validation"""

    ENV_VAR_NAME = "PRIVATE_KEY_PATH"
    PRIVATE_KEY_FILE = "private-key.pem"
    PUBLIC_KEY_FILE = "public-key.pem"
    KEY_SIZE = 2048

    def __init__(self):
        self.platform_name = platform.system()

    def generate_private_key(self) -> rsa.RSAPrivateKey:
        """Generate a new RSA private key."""
        return rsa.generate_private_key(public_exponent=65537, key_size=self.KEY_SIZE)

    def write_key_pair(self, private_key: rsa.RSAPrivateKey, out_dir: Path) -> tuple[Path, Path]:
        """
        Write the key pair as PEM files.

        The private key file is restricted to the owner (chmod 600) where the
        platform supports it.

        Returns:
            tuple: (private key path, public key path)
        """
        out_dir.mkdir(parents=True, exist_ok=True)
        private_path = out_dir / self.PRIVATE_KEY_FILE
        public_path = out_dir / self.PUBLIC_KEY_FILE

        private_path.write_bytes(
            private_key.private_bytes(
                encoding=serialization.Encoding.PEM,
                format=serialization.PrivateFormat.PKCS8,
                encryption_algorithm=serialization.NoEncryption(),
            )
        )
        if self.platform_name != "Windows":
            os.chmod(private_path, 0o600)

        public_path.write_text(ManifestSigner(private_key).public_key_pem())
        return private_path, public_path

    def validate_key_file(self, path: str) -> tuple[bool, str]:
        """
        Check a PEM file holds an RSA private key that can sign and verify.

        Returns:
            tuple: (is_valid, message)
        """
        try:
            signer = ManifestSigner.from_pem_file(path)
        except (OSError, ValueError) as e:
            return False, f"Cannot load key: {e}"

        sample = '{"check":true}'
        if not signer.verify(sample, signer.sign(sample)):
            return False, "Key produced a signature it cannot verify"
        return True, "Key is a valid RSA private key"

    def get_setup_instructions(self, private_path: Path, public_path: Path) -> str:
        """Instructions for wiring the generated keys into server and client."""
        lines = [
            f"\n{'='*70}",
            "SETUP INSTRUCTIONS",
            f"{'='*70}\n",
            "Server: add to backend/.env (or the service environment):",
            f"   {self.ENV_VAR_NAME}={private_path.resolve()}",
            "\nClient: configure code signing in the app config with the",
            f"public key {public_path.resolve()} and keyid \"main\".",
            "\nNEVER commit the private key to version control.",
            f"\n{'='*70}\n",
        ]
        return "\n".join(lines)

    def generate(self, out_dir: Path, force: bool = False) -> None:
        """Generate and write a new key pair."""
        private_path = out_dir / self.PRIVATE_KEY_FILE
        if private_path.exists() and not force:
            print(f"❌ {private_path} already exists. Use --force to overwrite it.")
            print("Clients holding the old public key will reject manifests signed with a new key.")
            sys.exit(1)

        print(f"Generating {self.KEY_SIZE}-bit RSA key pair...")
        private_path, public_path = self.write_key_pair(self.generate_private_key(), out_dir)

        is_valid, message = self.validate_key_file(str(private_path))
        if not is_valid:
            print(f"\n❌ Generated key validation failed: {message}")
            sys.exit(1)

        print(f"✓ Private key: {private_path}")
        print(f"✓ Public key:  {public_path}")
        print(self.get_setup_instructions(private_path, public_path))

    def validate_configured_key(self) -> None:
        """Validate the key referenced by PRIVATE_KEY_PATH."""
        key_path = os.environ.get(self.ENV_VAR_NAME)
        if not key_path:
            print(f"❌ {self.ENV_VAR_NAME} is not set.")
            print("\nRun without --validate to generate a key pair.")
            sys.exit(1)

        is_valid, message = self.validate_key_file(key_path)
        if is_valid:
            print(f"✓ {message}: {key_path}")
        else:
            print(f"❌ {message}")
            sys.exit(1)


def main():
    """Main entry point for the signing key setup tool."""
    parser = argparse.ArgumentParser(
        description="OTA Updates Server - Code Signing Key Setup Tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python3 setup_signing_key.py                     # Generate keys into ./keys
  python3 setup_signing_key.py --out-dir /etc/ota  # Generate keys elsewhere
  python3 setup_signing_key.py --validate          # Validate PRIVATE_KEY_PATH
        """
    )

    parser.add_argument(
        "--out-dir",
        type=Path,
        default=Path("keys"),
        help="Directory to write private-key.pem and public-key.pem (default: ./keys)"
    )

    parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing key pair"
    )

    parser.add_argument(
        "--validate",
        action="store_true",
        help="Validate the key referenced by PRIVATE_KEY_PATH instead of generating one"
    )

    args = parser.parse_args()

    manager = SigningKeyManager()

    if args.validate:
        manager.validate_configured_key()
    else:
        manager.generate(args.out_dir, force=args.force)


if __name__ == "__main__":
    main()
