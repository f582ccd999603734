import pytest
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from fidou2f.attestation.base import load_pem_public_key, verify_signature
from fidou2f.cose import ES256
from fidou2f.errors import InvalidInput, InvalidKeyMaterial
from fidou2f.pem import asn1_to_pem

from .conftest import make_attestation_certificate


MESSAGE = b"\x00" + b"\x11" * 32 + b"\x22" * 32 + b"key-handle" + b"\x04" + b"\x33" * 64


def _sign(private_key, message=MESSAGE):
    return private_key.sign(message, ec.ECDSA(hashes.SHA256()))


def _public_key_pem(private_key):
    point = ES256.from_cryptography_key(private_key.public_key()).to_uncompressed_point()
    return asn1_to_pem(point)


def _flip_bit(data, index, bit=0):
    flipped = bytearray(data)
    flipped[index] ^= 1 << bit
    return bytes(flipped)


def test_valid_signature_with_public_key(ec_private_key):
    assert verify_signature(_sign(ec_private_key), MESSAGE, _public_key_pem(ec_private_key))


def test_valid_signature_with_certificate(ec_private_key):
    pem = asn1_to_pem(make_attestation_certificate(ec_private_key))
    assert verify_signature(_sign(ec_private_key), MESSAGE, pem) is True


@pytest.mark.parametrize("index", [-1, -5, -20, -33])
def test_flipped_signature_bit(ec_private_key, index):
    signature = _sign(ec_private_key)
    assert verify_signature(
        _flip_bit(signature, index), MESSAGE, _public_key_pem(ec_private_key)
    ) is False


def test_flipped_message_bit(ec_private_key):
    signature = _sign(ec_private_key)
    assert not verify_signature(
        signature, _flip_bit(MESSAGE, 40, 3), _public_key_pem(ec_private_key)
    )


def test_different_key(ec_private_key):
    other_key = ec.generate_private_key(ec.SECP256R1())
    assert verify_signature(
        _sign(ec_private_key), MESSAGE, _public_key_pem(other_key)
    ) is False


@pytest.mark.parametrize("signature", [b"", b"\x30\x00", b"\x00" * 72, b"garbage"])
def test_malformed_signature_is_false(ec_private_key, signature):
    assert verify_signature(signature, MESSAGE, _public_key_pem(ec_private_key)) is False


def test_curve_comes_from_key():
    private_key = ec.generate_private_key(ec.SECP384R1())
    pem = asn1_to_pem(make_attestation_certificate(private_key))
    assert verify_signature(_sign(private_key), MESSAGE, pem)


@pytest.mark.parametrize(
    "pem",
    [
        "-----BEGIN CERTIFICATE-----\nAAAA\n-----END CERTIFICATE-----\n",
        "-----BEGIN PUBLIC KEY-----\nAAAA\n-----END PUBLIC KEY-----\n",
        asn1_to_pem(b"\x30\x03\x02\x01\x01"),
        "no pem here",
    ],
)
def test_unparsable_key_material(ec_private_key, pem):
    with pytest.raises(InvalidKeyMaterial):
        verify_signature(_sign(ec_private_key), MESSAGE, pem)


def test_non_ec_key_is_rejected():
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    pem = private_key.public_key().public_bytes(
        serialization.Encoding.PEM, serialization.PublicFormat.SubjectPublicKeyInfo
    )
    with pytest.raises(InvalidKeyMaterial, match="EC public key"):
        load_pem_public_key(pem.decode())


@pytest.mark.parametrize("signature", [5, 0, [1, 2, 3], "3045", None])
def test_signature_must_be_bytes(ec_private_key, signature):
    with pytest.raises(InvalidInput):
        verify_signature(signature, MESSAGE, _public_key_pem(ec_private_key))


def test_data_must_be_bytes(ec_private_key):
    with pytest.raises(InvalidInput):
        verify_signature(_sign(ec_private_key), 10**10, _public_key_pem(ec_private_key))


def test_bytes_like_signature(ec_private_key):
    signature = bytearray(_sign(ec_private_key))
    assert verify_signature(
        memoryview(signature), bytearray(MESSAGE), _public_key_pem(ec_private_key)
    ) is True
