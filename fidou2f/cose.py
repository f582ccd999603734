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

from .errors import UnsupportedKeyFormat
from .utils import bytes2int, int2bytes
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, types
from io import BytesIO
from typing import Any, Mapping, Type, TypeVar

import cbor2

# COSE_Key labels used by EC2 keys (RFC 8152, section 13.1.1):
#
# +------+-------+-------+---------+----------------------------------+
# | name | key   | label | type    | description                      |
# |      | type  |       |         |                                  |
# +------+-------+-------+---------+----------------------------------+
# | crv  | 2     | -1    | int /   | EC Curve identifier - Taken from |
# |      |       |       | tstr    | the COSE Curves registry         |
# | x    | 2     | -2    | bstr    | X Coordinate                     |
# | y    | 2     | -3    | bstr /  | Y Coordinate                     |
# |      |       |       | bool    |                                  |
# +------+-------+-------+---------+----------------------------------+
KTY = 1
ALG = 3
CRV = -1
X = -2
Y = -3

KTY_EC2 = 2
CRV_P256 = 1

UNCOMPRESSED_POINT_TAG = b"\x04"
COORDINATE_LENGTH = 32


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class CoseKey(dict):
    """A COSE formatted public key.

    :param _: The COSE key paramters.
    :cvar ALGORITHM: COSE algorithm identifier.
    """

    ALGORITHM: int = None  # type: ignore

    def verify(self, message: bytes, signature: bytes) -> None:
        """Validates a digital signature over a given message.

        :param message: The message which was signed.
        :param signature: The signature to check.
        """
        raise NotImplementedError("Signature verification not supported.")

    @classmethod
    def from_cryptography_key(
        cls: Type[T_CoseKey], public_key: types.PublicKeyTypes
    ) -> T_CoseKey:
        """Converts a PublicKey object from Cryptography into a COSE key.

        :param public_key: An EC public key.
        :return: A CoseKey.
        """
        raise NotImplementedError("Creation from cryptography not supported.")


T_CoseKey = TypeVar("T_CoseKey", bound=CoseKey)


class ES256(CoseKey):
    ALGORITHM = -7
    _HASH_ALG = hashes.SHA256()

    def verify(self, message, signature):
        self.to_cryptography_key().verify(
            signature, message, ec.ECDSA(self._HASH_ALG)
        )

    def to_cryptography_key(self) -> ec.EllipticCurvePublicKey:
        return ec.EllipticCurvePublicKey.from_encoded_point(
            ec.SECP256R1(), self.to_uncompressed_point()
        )

    def to_uncompressed_point(self) -> bytes:
        """Encodes the key as a 65 byte uncompressed SECP256R1 point."""
        return UNCOMPRESSED_POINT_TAG + self[X] + self[Y]

    @classmethod
    def parse(cls, cose: Mapping[int, Any]) -> ES256:
        """Create an ES256 key from a decoded COSE_Key map.

        Only the members needed to use the key are checked: kty must be EC2,
        and crv and alg, when present, must be P-256 and ES256.
        """
        if not isinstance(cose, Mapping):
            raise UnsupportedKeyFormat("COSE key must be a map")
        if not _is_int(cose.get(KTY)) or cose[KTY] != KTY_EC2:
            raise UnsupportedKeyFormat(f"Unsupported COSE key type: {cose.get(KTY)!r}")
        crv = cose.get(CRV, CRV_P256)
        if not _is_int(crv) or crv != CRV_P256:
            raise UnsupportedKeyFormat(f"Unsupported elliptic curve: {crv!r}")
        alg = cose.get(ALG, cls.ALGORITHM)
        if not _is_int(alg) or alg != cls.ALGORITHM:
            raise UnsupportedKeyFormat(f"Unsupported COSE algorithm: {alg!r}")
        for label, name in ((X, "x"), (Y, "y")):
            value = cose.get(label)
            if not isinstance(value, bytes) or len(value) != COORDINATE_LENGTH:
                raise UnsupportedKeyFormat(
                    f"COSE key {name}-coordinate must be {COORDINATE_LENGTH} bytes"
                )
        return cls(cose)

    @classmethod
    def from_cryptography_key(cls, public_key):
        if not isinstance(public_key, ec.EllipticCurvePublicKey):
            raise UnsupportedKeyFormat("Public key is not an EC key")
        if not isinstance(public_key.curve, ec.SECP256R1):
            raise UnsupportedKeyFormat("Public key is not on SECP256R1")
        pn = public_key.public_numbers()
        return cls(
            {
                KTY: KTY_EC2,
                ALG: cls.ALGORITHM,
                CRV: CRV_P256,
                X: int2bytes(pn.x, COORDINATE_LENGTH),
                Y: int2bytes(pn.y, COORDINATE_LENGTH),
            }
        )

    @classmethod
    def from_ctap1(cls, data: bytes) -> ES256:
        """Creates an ES256 key from a CTAP1 formatted public key byte string.

        :param data: A 65 byte SECP256R1 public key.
        :return: A ES256 key.
        """
        if len(data) != 65 or data[:1] != UNCOMPRESSED_POINT_TAG:
            raise UnsupportedKeyFormat("Not an uncompressed SECP256R1 point")
        return cls(
            {KTY: KTY_EC2, ALG: cls.ALGORITHM, CRV: CRV_P256, X: data[1:33], Y: data[33:65]}
        )

    def __repr__(self):
        return (
            f"ES256(x: {bytes2int(self[X]):064x}, y: {bytes2int(self[Y]):064x})"
        )


def decode_cose_key(data: bytes) -> ES256:
    """Decodes the first CBOR item of data as an ES256 COSE key.

    Anything following the key (such as extension data) is left unread.
    """
    with BytesIO(bytes(data)) as fp:
        try:
            cose = cbor2.CBORDecoder(fp).decode()
        except (cbor2.CBORDecodeError, ValueError, EOFError) as e:
            raise UnsupportedKeyFormat(f"COSE key is not valid CBOR: {e}")
    return ES256.parse(cose)


def cose_to_uncompressed_point(data: bytes) -> bytes:
    """Converts a CBOR encoded EC2 COSE key to ``0x04 || x || y``."""
    return decode_cose_key(data).to_uncompressed_point()
