import itertools

import cbor2
import pytest
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec

from fidou2f.cose import ES256, cose_to_uncompressed_point, decode_cose_key
from fidou2f.errors import UnsupportedKeyFormat


def _cose(x, y, overrides=None):
    key = {1: 2, 3: -7, -1: 1, -2: x, -3: y}
    for label, value in (overrides or {}).items():
        if value is None:
            key.pop(label)
        else:
            key[label] = value
    return cbor2.dumps(key)


def test_converts_to_uncompressed_point():
    x = bytes(range(32))
    y = bytes(range(32, 64))

    point = cose_to_uncompressed_point(_cose(x, y))

    assert point == b"\x04" + x + y
    assert len(point) == 65


def test_distinct_coordinates_give_distinct_points():
    coordinates = [bytes([a]) * 32 for a in (0x00, 0x01, 0x7F, 0xFF)]
    points = {
        cose_to_uncompressed_point(_cose(x, y))
        for x, y in itertools.product(coordinates, repeat=2)
    }

    assert len(points) == len(coordinates) ** 2
    assert all(p[0] == 0x04 and len(p) == 65 for p in points)


def test_optional_members_may_be_absent():
    x, y = b"\x01" * 32, b"\x02" * 32
    assert cose_to_uncompressed_point(_cose(x, y, {-1: None, 3: None})) == (
        b"\x04" + x + y
    )


def test_trailing_data_is_ignored():
    x, y = b"\x01" * 32, b"\x02" * 32
    data = _cose(x, y) + cbor2.dumps({"credProtect": 2})
    assert cose_to_uncompressed_point(data) == b"\x04" + x + y


@pytest.mark.parametrize(
    "overrides",
    [
        {1: 3},  # RSA
        {1: 1},  # OKP
        {1: None},
        {-1: 2},  # P-384
        {3: -35},  # ES384
        {3: -8},  # EdDSA
        {-1: True},
        {1: 2.0},
        {3: -7.0},
    ],
)
def test_rejects_other_key_types(overrides):
    with pytest.raises(UnsupportedKeyFormat):
        cose_to_uncompressed_point(_cose(b"\x01" * 32, b"\x02" * 32, overrides))


@pytest.mark.parametrize(
    "x, y",
    [
        (b"\x01" * 31, b"\x02" * 32),
        (b"\x01" * 32, b"\x02" * 33),
        (b"\x01" * 48, b"\x02" * 48),
        (b"\x01" * 32, True),
        ("x" * 32, b"\x02" * 32),
    ],
)
def test_rejects_bad_coordinates(x, y):
    with pytest.raises(UnsupportedKeyFormat):
        cose_to_uncompressed_point(_cose(x, y))


@pytest.mark.parametrize("data", [b"", b"\xa5\x01", b"\xff\xff", cbor2.dumps([1, 2])])
def test_rejects_non_map_cbor(data):
    with pytest.raises(UnsupportedKeyFormat):
        cose_to_uncompressed_point(data)


def test_cryptography_key_round_trip(ec_private_key):
    public_key = ec_private_key.public_key()
    cose_key = ES256.from_cryptography_key(public_key)

    assert cose_key[1] == 2
    assert cose_key[3] == -7
    assert cose_key.to_cryptography_key().public_numbers() == public_key.public_numbers()
    assert decode_cose_key(cbor2.dumps(dict(cose_key))) == cose_key


def test_from_ctap1():
    private_key = ec.generate_private_key(ec.SECP256R1())
    point = ES256.from_cryptography_key(private_key.public_key()).to_uncompressed_point()

    assert ES256.from_ctap1(point).to_uncompressed_point() == point
    with pytest.raises(UnsupportedKeyFormat):
        ES256.from_ctap1(b"\x02" + point[1:33])


def test_rejects_other_curves():
    private_key = ec.generate_private_key(ec.SECP384R1())
    with pytest.raises(UnsupportedKeyFormat):
        ES256.from_cryptography_key(private_key.public_key())


def test_verify(ec_private_key):
    cose_key = ES256.from_cryptography_key(ec_private_key.public_key())
    signature = ec_private_key.sign(b"message", ec.ECDSA(hashes.SHA256()))

    cose_key.verify(b"message", signature)
    with pytest.raises(InvalidSignature):
        cose_key.verify(b"other message", signature)
