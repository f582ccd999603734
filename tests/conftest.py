from __future__ import annotations

import json
import sys
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

_REPO_ROOT = Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from fidou2f.cose import ES256
from fidou2f.utils import sha256, websafe_encode
from fidou2f.webauthn import AttestationObject, AuthenticatorData


RP_ID = "example.com"
CREDENTIAL_ID = bytes(range(64))


def make_attestation_certificate(
    private_key: ec.EllipticCurvePrivateKey,
) -> bytes:
    """Self-signed U2F style attestation certificate, DER encoded."""
    name = x509.Name(
        [
            x509.NameAttribute(NameOID.COUNTRY_NAME, "SE"),
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Example Authenticators"),
            x509.NameAttribute(
                NameOID.ORGANIZATIONAL_UNIT_NAME, "Authenticator Attestation"
            ),
            x509.NameAttribute(NameOID.COMMON_NAME, "Example U2F EE Serial 1234"),
        ]
    )
    now = datetime.now(timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(private_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=365))
        .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
        .sign(private_key, hashes.SHA256())
    )
    return cert.public_bytes(serialization.Encoding.DER)


@dataclass
class Registration:
    """A fido-u2f registration built from freshly generated keys."""

    attestation_key: ec.EllipticCurvePrivateKey
    certificate: bytes
    credential_key: ec.EllipticCurvePrivateKey
    cose_key: ES256
    auth_data: AuthenticatorData
    client_data_json: bytes
    signature: bytes
    fmt: str = "fido-u2f"

    @property
    def client_data_hash(self) -> bytes:
        return sha256(self.client_data_json)

    def attestation_object(
        self,
        *,
        auth_data: Optional[bytes] = None,
        fmt: Optional[str] = None,
        sig: Optional[bytes] = None,
        x5c: Optional[List[bytes]] = None,
    ) -> AttestationObject:
        return AttestationObject.create(
            fmt if fmt is not None else self.fmt,
            auth_data if auth_data is not None else self.auth_data,
            {
                "sig": sig if sig is not None else self.signature,
                "x5c": x5c if x5c is not None else [self.certificate],
            },
        )

    def response(
        self,
        *,
        attestation_object: Optional[bytes] = None,
        client_data_json: Optional[bytes] = None,
    ) -> Dict[str, Any]:
        if attestation_object is None:
            attestation_object = self.attestation_object()
        if client_data_json is None:
            client_data_json = self.client_data_json
        return {
            "id": websafe_encode(self.auth_data.credential_id),
            "type": "public-key",
            "response": {
                "attestationObject": websafe_encode(attestation_object),
                "clientDataJSON": websafe_encode(client_data_json),
            },
        }


def build_registration(
    *,
    flags: int = 0x41,
    credential_id: bytes = CREDENTIAL_ID,
    attestation_key: Optional[ec.EllipticCurvePrivateKey] = None,
) -> Registration:
    attestation_key = attestation_key or ec.generate_private_key(ec.SECP256R1())
    certificate = make_attestation_certificate(attestation_key)
    credential_key = ec.generate_private_key(ec.SECP256R1())
    cose_key = ES256.from_cryptography_key(credential_key.public_key())

    rp_id_hash = sha256(RP_ID.encode())
    auth_data = AuthenticatorData.create(
        rp_id_hash, flags, 0, credential_id, cose_key
    )
    client_data_json = json.dumps(
        {
            "type": "webauthn.create",
            "challenge": websafe_encode(b"registration-challenge-0123456789"),
            "origin": f"https://{RP_ID}",
        },
        separators=(",", ":"),
    ).encode()

    signature_base = (
        b"\x00"
        + rp_id_hash
        + sha256(client_data_json)
        + credential_id
        + cose_key.to_uncompressed_point()
    )
    signature = attestation_key.sign(signature_base, ec.ECDSA(hashes.SHA256()))

    return Registration(
        attestation_key=attestation_key,
        certificate=certificate,
        credential_key=credential_key,
        cose_key=cose_key,
        auth_data=auth_data,
        client_data_json=client_data_json,
        signature=signature,
    )


@pytest.fixture
def registration() -> Registration:
    return build_registration()


@pytest.fixture
def make_registration():
    return build_registration


@pytest.fixture
def ec_private_key() -> ec.EllipticCurvePrivateKey:
    return ec.generate_private_key(ec.SECP256R1())
