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

"""Conversion of DER certificates and raw EC points to PEM text."""

from __future__ import annotations

from .errors import InvalidInput

import base64
import binascii
import re

# DER header of a SubjectPublicKeyInfo holding an uncompressed P-256 point:
#
#   SEQUENCE {
#     SEQUENCE {
#       OBJECT IDENTIFIER 1.2.840.10045.2.1    (ecPublicKey)
#       OBJECT IDENTIFIER 1.2.840.10045.3.1.7  (prime256v1)
#     }
#     BIT STRING (66 bytes, 0 unused bits) <65 byte point follows>
#   }
#
# Only valid for 65 byte points; a different curve needs a new header.
EC_P256_SPKI_PREFIX = bytes.fromhex(
    "3059"  # SEQUENCE, 89 bytes
    "3013"  # SEQUENCE, 19 bytes
    "06072a8648ce3d0201"  # OID ecPublicKey
    "06082a8648ce3d030107"  # OID prime256v1
    "034200"  # BIT STRING, 66 bytes, 0 unused bits
)

PEM_LINE_LENGTH = 64

_PEM_RE = re.compile(
    r"-----BEGIN (?P<label>[A-Z0-9 ]+)-----\s*(?P<body>.*?)\s*-----END (?P=label)-----",
    re.DOTALL,
)


def _is_uncompressed_point(data: bytes) -> bool:
    return len(data) == 65 and data[0] == 0x04


def asn1_to_pem(data: bytes) -> str:
    """Convert a DER certificate or a raw public key to PEM text.

    A 65 byte buffer starting with 0x04 is taken to be an uncompressed P-256
    point and is wrapped in a SubjectPublicKeyInfo ("PUBLIC KEY"). Anything
    else is assumed to be a DER encoded X.509 certificate ("CERTIFICATE").

    :param data: Certificate or public key bytes.
    :return: PEM text, one trailing newline per line.
    """
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise InvalidInput(f"asn1_to_pem: expected bytes, got {type(data).__name__}")
    der = bytes(data)

    if _is_uncompressed_point(der):
        der = EC_P256_SPKI_PREFIX + der
        label = "PUBLIC KEY"
    else:
        label = "CERTIFICATE"

    b64 = base64.b64encode(der).decode("ascii")
    lines = [b64[i : i + PEM_LINE_LENGTH] for i in range(0, len(b64), PEM_LINE_LENGTH)]
    return (
        f"-----BEGIN {label}-----\n"
        + "".join(line + "\n" for line in lines)
        + f"-----END {label}-----\n"
    )


def pem_to_der(pem: str) -> bytes:
    """Extract the DER bytes from the first PEM block in the text."""
    if isinstance(pem, (bytes, bytearray)):
        pem = pem.decode("ascii")
    if not isinstance(pem, str):
        raise InvalidInput(f"pem_to_der: expected str, got {type(pem).__name__}")
    match = _PEM_RE.search(pem)
    if not match:
        raise InvalidInput("No PEM block found")
    try:
        return base64.b64decode("".join(match.group("body").split()), validate=True)
    except binascii.Error as e:
        raise InvalidInput(f"PEM body is not valid base64: {e}")
