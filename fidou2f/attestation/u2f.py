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

from .base import (
    Attestation,
    AttestationType,
    AttestationResult,
    catch_builtins,
    verify_signature,
)
from ..cose import cose_to_uncompressed_point
from ..errors import (
    InvalidSignature,
    MalformedInput,
    UnsupportedType,
    UserNotPresent,
)
from ..pem import asn1_to_pem
from ..utils import sha256, websafe_decode
from ..webauthn import AttestationObject, AuthenticatorData

from typing import Any, Mapping, Optional

import logging

logger = logging.getLogger(__name__)

RESERVED_BYTE = b"\x00"


def _check_user_present(auth_data: AuthenticatorData) -> None:
    if not auth_data.is_user_present():
        logger.warning(
            "User presence flag not set (flags 0x%02x) for credential %s",
            auth_data.flags,
            auth_data.credential_id.hex(),
        )
        raise UserNotPresent("User was not present during registration!")


def _statement_signature(statement: Mapping[str, Any]) -> bytes:
    signature = statement["sig"]
    if not isinstance(signature, bytes):
        raise MalformedInput(
            f"fido-u2f attestation sig must be a byte string, got "
            f"{type(signature).__name__}"
        )
    return signature


class FidoU2FAttestation(Attestation):
    FORMAT = "fido-u2f"

    @catch_builtins
    def verify(self, statement, auth_data, client_data_hash):
        _check_user_present(auth_data)
        x5c = statement["x5c"]
        public_key = cose_to_uncompressed_point(auth_data.credential_public_key)
        valid = FidoU2FAttestation.verify_signature(
            auth_data.rp_id_hash,
            client_data_hash,
            auth_data.credential_id,
            public_key,
            x5c[0],
            _statement_signature(statement),
        )
        if not valid:
            raise InvalidSignature()
        return AttestationResult(AttestationType.BASIC, list(x5c))

    @staticmethod
    def build_signature_base(
        app_param: bytes, client_param: bytes, key_handle: bytes, public_key: bytes
    ) -> bytes:
        """Construct the data signed by a U2F attestation certificate.

        :param app_param: SHA256 hash of the RP ID.
        :param client_param: SHA256 hash of the client data.
        :param key_handle: The credential ID.
        :param public_key: The credential public key as a 65 byte point.
        :return: 0x00 || app_param || client_param || key_handle || public_key
        """
        return RESERVED_BYTE + app_param + client_param + key_handle + public_key

    @staticmethod
    def verify_signature(
        app_param, client_param, key_handle, public_key, cert_bytes, signature
    ) -> bool:
        m = FidoU2FAttestation.build_signature_base(
            app_param, client_param, key_handle, public_key
        )
        return verify_signature(signature, m, asn1_to_pem(cert_bytes))


def _member(obj: Any, *names: str) -> Any:
    """Read the first of names present as a key or attribute of obj."""
    for name in names:
        if isinstance(obj, Mapping):
            if name in obj:
                return obj[name]
        elif hasattr(obj, name):
            return getattr(obj, name)
    raise MalformedInput(f"Registration response is missing {names[0]}")


def _decode_client_data(client_data_json: Any) -> bytes:
    if not isinstance(client_data_json, (str, bytes)):
        raise MalformedInput(
            f"clientDataJSON must be a string, got {type(client_data_json).__name__}"
        )
    try:
        return websafe_decode(client_data_json)
    except (ValueError, UnicodeEncodeError) as e:
        raise MalformedInput(f"clientDataJSON is not valid base64url: {e}")


@catch_builtins
def verify_attestation(
    response: Any, *, client_data_hash: Optional[bytes] = None
) -> bool:
    """Verify the fido-u2f attestation of a registration response.

    :param response: The registration response, holding
        ``response.attestationObject`` and ``response.clientDataJSON`` as
        websafe-base64 strings. Mappings and objects are both accepted.
    :param client_data_hash: SHA256 hash of the client data, if already known.
        When given, clientDataJSON is not read.
    :return: True if the attestation signature is valid, False if not.
    :raises MalformedInput: If the response could not be decoded.
    :raises MalformedAuthenticatorData: If the authenticator data is truncated.
    :raises UnsupportedKeyFormat: If the credential key is not EC2 P-256.
    :raises UserNotPresent: If the user presence flag is not set.
    :raises InvalidKeyMaterial: If the attestation certificate is not valid.
    :raises UnsupportedType: If the attestation format is not fido-u2f.
    """
    inner = _member(response, "response")
    attestation = AttestationObject.from_websafe(
        _member(inner, "attestationObject", "attestation_object")
    )
    auth_data = attestation.auth_data
    logger.debug(
        "Decoded %r attestation, credential ID length %d",
        attestation.fmt,
        len(auth_data.credential_id),
    )
    if attestation.fmt != FidoU2FAttestation.FORMAT:
        raise UnsupportedType(auth_data, attestation.fmt)

    _check_user_present(auth_data)

    if client_data_hash is None:
        client_data = _decode_client_data(
            _member(inner, "clientDataJSON", "client_data_json")
        )
        client_data_hash = sha256(client_data)

    public_key = cose_to_uncompressed_point(auth_data.credential_public_key)
    statement = attestation.att_stmt
    try:
        signature = _statement_signature(statement)
        x5c = statement["x5c"]
        certificate = x5c[0]
    except (KeyError, IndexError, TypeError) as e:
        raise MalformedInput(f"Invalid fido-u2f attestation statement: {e!r}")

    valid = FidoU2FAttestation.verify_signature(
        auth_data.rp_id_hash,
        client_data_hash,
        auth_data.credential_id,
        public_key,
        certificate,
        signature,
    )
    if valid:
        logger.debug(
            "Attestation signature valid for credential %s",
            auth_data.credential_id.hex(),
        )
    else:
        logger.warning(
            "Attestation signature invalid for credential %s",
            auth_data.credential_id.hex(),
        )
    return valid
