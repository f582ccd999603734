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

from .errors import MalformedAuthenticatorData, MalformedInput
from .utils import ByteBuffer, websafe_decode

from enum import IntFlag, unique
from types import MappingProxyType
from typing import Any, Mapping, Union

import struct

import cbor2


class AuthenticatorData(bytes):
    """Binary encoding of the authenticator data of a registration.

    :param _: The binary representation of the authenticator data.
    :ivar rp_id_hash: SHA256 hash of the RP ID.
    :ivar flags: The flags of the authenticator data, see
        AuthenticatorData.FLAG.
    :ivar counter: The signature counter of the authenticator.
    :ivar aaguid: The AAGUID of the authenticator (all zero for U2F devices).
    :ivar credential_id: The credential ID.
    :ivar credential_public_key: The CBOR encoded COSE public key, including
        any data trailing it.
    """

    @unique
    class FLAG(IntFlag):
        """Authenticator data flags

        See https://www.w3.org/TR/webauthn/#sec-authenticator-data for details
        """

        UP = 0x01
        UV = 0x04
        BE = 0x08
        BS = 0x10
        AT = 0x40
        ED = 0x80

    RP_ID_HASH_LENGTH = 32
    AAGUID_LENGTH = 16

    def __init__(self, _):
        super().__init__()

        reader = ByteBuffer(self)
        try:
            self.rp_id_hash = reader.read(self.RP_ID_HASH_LENGTH)
            self.flags = reader.read_uint(1)
            self.counter = reader.read_uint(4)
            self.aaguid = reader.read(self.AAGUID_LENGTH)
            cred_id_len = reader.read_uint(2)
            self.credential_id = reader.read(cred_id_len)
        except ValueError as e:
            raise MalformedAuthenticatorData(
                f"Authenticator data was {len(self)} bytes: {e}"
            )

        self.credential_public_key = reader.read_rest()
        if not self.credential_public_key:
            raise MalformedAuthenticatorData(
                "Authenticator data is missing the credential public key"
            )

    @classmethod
    def create(
        cls,
        rp_id_hash: bytes,
        flags: int,
        counter: int,
        credential_id: bytes,
        public_key: Union[bytes, Mapping[int, Any]],
        aaguid: bytes = b"\0" * 16,
    ) -> AuthenticatorData:
        """Create an AuthenticatorData instance.

        :param rp_id_hash: SHA256 hash of the RP ID.
        :param flags: Flags of the AuthenticatorData.
        :param counter: Signature counter of the authenticator data.
        :param credential_id: The credential ID.
        :param public_key: A COSE key, either a mapping or its CBOR encoding.
        :param aaguid: The AAGUID of the authenticator.
        :return: The authenticator data.
        """
        if not isinstance(public_key, (bytes, bytearray)):
            public_key = cbor2.dumps(dict(public_key))
        return cls(
            rp_id_hash
            + struct.pack(">BI", flags, counter)
            + aaguid
            + struct.pack(">H", len(credential_id))
            + credential_id
            + bytes(public_key)
        )

    def is_user_present(self) -> bool:
        """Return true if the User Present flag is set."""
        return bool(self.flags & AuthenticatorData.FLAG.UP)

    def is_user_verified(self) -> bool:
        """Return true if the User Verified flag is set."""
        return bool(self.flags & AuthenticatorData.FLAG.UV)

    def is_attested(self) -> bool:
        """Return true if the Attested credential data flag is set."""
        return bool(self.flags & AuthenticatorData.FLAG.AT)

    def has_extension_data(self) -> bool:
        """Return true if the Extenstion data flag is set."""
        return bool(self.flags & AuthenticatorData.FLAG.ED)

    def __repr__(self):
        return (
            f"AuthenticatorData(rp_id_hash: {self.rp_id_hash.hex()}, "
            f"flags: 0x{self.flags:02x}, counter: {self.counter}, "
            f"aaguid: {self.aaguid.hex()}, "
            f"credential_id: {self.credential_id.hex()})"
        )


def parse_authenticator_data(data: bytes) -> AuthenticatorData:
    """Turn ``attestationObject.authData`` into structured data."""
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise MalformedAuthenticatorData(
            f"Authenticator data must be bytes, got {type(data).__name__}"
        )
    return AuthenticatorData(bytes(data))


# CTAP2 authenticatorMakeCredential responses use integer keys for the same
# three members.
_CTAP_KEYS = {1: "fmt", 2: "authData", 3: "attStmt"}


class AttestationObject(bytes):
    """Binary CBOR encoded attestation object.

    :param _: The binary representation of the attestation object.
    :ivar fmt: The type of attestation used.
    :ivar auth_data: The attested authenticator data.
    :ivar att_stmt: The attestation statement, as a read-only mapping.
    """

    def __init__(self, _):
        super().__init__()

        try:
            data = cbor2.loads(self)
        except (cbor2.CBORDecodeError, ValueError, EOFError) as e:
            raise MalformedInput(f"attestationObject is not valid CBOR: {e}")
        if not isinstance(data, Mapping):
            raise MalformedInput("attestationObject must be a CBOR map")
        data = {_CTAP_KEYS.get(k, k): v for k, v in data.items()}

        try:
            fmt = data["fmt"]
            auth_data = data["authData"]
            att_stmt = data["attStmt"]
        except KeyError as e:
            raise MalformedInput(f"attestationObject is missing {e}")
        if not isinstance(fmt, str):
            raise MalformedInput("attestationObject fmt must be a text string")
        if not isinstance(auth_data, bytes):
            raise MalformedInput("attestationObject authData must be a byte string")
        if not isinstance(att_stmt, Mapping):
            raise MalformedInput("attestationObject attStmt must be a map")

        self.fmt: str = fmt
        self.auth_data = parse_authenticator_data(auth_data)
        self.att_stmt: Mapping[str, Any] = MappingProxyType(dict(att_stmt))

    @classmethod
    def create(
        cls, fmt: str, auth_data: bytes, att_stmt: Mapping[str, Any]
    ) -> AttestationObject:
        """Create an AttestationObject instance.

        :param fmt: The type of attestation used.
        :param auth_data: Binary representation of the authenticator data.
        :param att_stmt: The attestation statement.
        :return: The attestation object.
        """
        return cls(
            cbor2.dumps(
                {"fmt": fmt, "authData": bytes(auth_data), "attStmt": dict(att_stmt)}
            )
        )

    @classmethod
    def from_websafe(cls, data: str) -> AttestationObject:
        """Decode a websafe-base64 encoded attestation object."""
        if not isinstance(data, (str, bytes)):
            raise MalformedInput(
                f"attestationObject must be a string, got {type(data).__name__}"
            )
        try:
            raw = websafe_decode(data)
        except (ValueError, UnicodeEncodeError) as e:
            raise MalformedInput(f"attestationObject is not valid base64url: {e}")
        return cls(raw)

    def __repr__(self):
        return (
            f"AttestationObject(fmt: {self.fmt!r}, auth_data: {self.auth_data!r}, "
            f"att_stmt: {dict(self.att_stmt)!r})"
        )
