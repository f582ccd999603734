# Copyright (c) 2018 Yubico AB
# All rights reserved.
#
#   Redistribution and use in source and binary forms, with or
#   without modification, are permitted provided that the following
#   conditions are met:
#
#    1. Redistributions of source code must retain the above copyright
#       notice, this list of conditions and the following disclaimer.
#    2. Redistributions in binary form must reproduce the above
#       copyright notice, this list of conditions and the following
#       disclaimer in the documentation and/or other materials provided
#       with the distribution.
#
# THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS
# "AS IS" AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT
# LIMITED TO, THE IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS
# FOR A PARTICULAR PURPOSE ARE DISCLAIMED. IN NO EVENT SHALL THE
# COPYRIGHT HOLDER OR CONTRIBUTORS BE LIABLE FOR ANY DIRECT, INDIRECT,
# INCIDENTAL, SPECIAL, EXEMPLARY, OR CONSEQUENTIAL DAMAGES (INCLUDING,
# BUT NOT LIMITED TO, PROCUREMENT OF SUBSTITUTE GOODS OR SERVICES;
# LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION) HOWEVER
# CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN CONTRACT, STRICT
# LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING IN
# ANY WAY OUT OF THE USE OF THIS SOFTWARE, EVEN IF ADVISED OF THE
# POSSIBILITY OF SUCH DAMAGE.

from __future__ import annotations

import abc

from dataclasses import dataclass
from enum import IntEnum, unique
from functools import wraps
from typing import Any, List, Mapping, Type

from cryptography import x509
from cryptography.exceptions import (
    InvalidSignature as _InvalidSignature,
    UnsupportedAlgorithm,
)
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec

from ..errors import (
    InvalidAttestation,
    InvalidInput,
    InvalidKeyMaterial,
    MalformedInput,
    UnsupportedType,
)
from ..webauthn import AuthenticatorData


@unique
class AttestationType(IntEnum):
    """Supported attestation types."""

    BASIC = 1
    SELF = 2
    ATT_CA = 3
    ANON_CA = 4
    NONE = 0


@dataclass(frozen=True)
class AttestationResult:
    """The result of verifying an attestation."""

    attestation_type: AttestationType
    trust_path: List[bytes]


def catch_builtins(f):
    """Utility decoractor to wrap common exceptions related to MalformedInput.

    Exceptions which are already part of the attestation error hierarchy pass
    through unchanged.
    """

    @wraps(f)
    def inner(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except InvalidAttestation:
            raise
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise MalformedInput(e)

    return inner


def load_pem_public_key(pem: str) -> ec.EllipticCurvePublicKey:
    """Load the EC public key from a PEM certificate or PEM public key.

    :param pem: PEM text with a CERTIFICATE or PUBLIC KEY block.
    :return: The public key.
    """
    data = pem.encode("ascii") if isinstance(pem, str) else bytes(pem)
    try:
        if b"-----BEGIN CERTIFICATE-----" in data:
            public_key = x509.load_pem_x509_certificate(data).public_key()
        else:
            public_key = serialization.load_pem_public_key(data)
    except (ValueError, UnsupportedAlgorithm) as e:
        raise InvalidKeyMaterial(f"Unable to load key material: {e}")
    if not isinstance(public_key, ec.EllipticCurvePublicKey):
        raise InvalidKeyMaterial(
            f"Expected an EC public key, got {type(public_key).__name__}"
        )
    return public_key


def verify_signature(signature: bytes, data: bytes, pem: str) -> bool:
    """Verify an ECDSA/SHA-256 signature using a PEM key or certificate.

    The curve is taken from the key. A signature which does not match, or is
    not a valid DER ECDSA signature, gives False rather than an exception.

    :param signature: DER encoded ECDSA signature.
    :param data: The exact bytes which were signed.
    :param pem: PEM encoded certificate or public key.
    :return: True if the signature is valid.
    :raises InvalidInput: If signature or data is not bytes-like.
    """
    for name, value in (("signature", signature), ("data", data)):
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise InvalidInput(
                f"{name} must be bytes-like, got {type(value).__name__}"
            )
    public_key = load_pem_public_key(pem)
    try:
        public_key.verify(bytes(signature), bytes(data), ec.ECDSA(hashes.SHA256()))
    except _InvalidSignature:
        return False
    return True


class Attestation(abc.ABC):
    """Implements verification of a specific attestation type."""

    @abc.abstractmethod
    def verify(
        self,
        statement: Mapping[str, Any],
        auth_data: AuthenticatorData,
        client_data_hash: bytes,
    ) -> AttestationResult:
        """Verifies attestation statement.

        :return: An AttestationResult if successful.
        """

    @staticmethod
    def for_type(fmt: str) -> Type[Attestation]:
        """Get an Attestation subclass type for the given format."""
        for cls in Attestation.__subclasses__():
            if getattr(cls, "FORMAT", None) == fmt:
                return cls

        class TypedUnsupportedAttestation(UnsupportedAttestation):
            def __init__(self):
                super().__init__(fmt)

        return TypedUnsupportedAttestation


class UnsupportedAttestation(Attestation):
    def __init__(self, fmt=None):
        self.fmt = fmt

    def verify(self, statement, auth_data, client_data_hash):
        raise UnsupportedType(auth_data, self.fmt)
