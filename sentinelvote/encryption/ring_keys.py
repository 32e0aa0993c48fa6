# sentinelvote/encryption/ring_keys.py
"""Key issuance and public-key folding for linkable ring signatures.

The ring-signature scheme itself lives outside this service; what the election
needs is a way to issue key pairs to voters and to fold every registered public
key into a single anonymity-set artifact that voters later sign against.
``EcRingKeyService.sign`` covers simulation runs: an ECDSA signature over the
folded digest and the message, plus a link tag derived from the signing key
and the folded set. It hides nothing about the signer.

``Signer`` is the capability the rest of the application depends on, so tests
can swap in a deterministic double. ``EcRingKeyService`` is the production
implementation on top of ``cryptography``.

A folded set is a PEM block carrying the curve and hash names as headers, a
digest over the member keys, and the uncompressed EC points of the members in
the order they were supplied.
"""

import base64
import hashlib
from enum import IntEnum
from typing import List, NamedTuple, Protocol, Tuple

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec

from sentinelvote.errors import CryptoPrimitiveError

DEFAULT_CURVE = "prime256v1"
DEFAULT_HASH = "sha3-256"
DEFAULT_ENCODING = "PEM"
DEFAULT_FOLDING_MODE = "hashes"
MIN_RING_SIZE = 2

FOLDED_PEM_LABEL = "FOLDED PUBLIC KEYS"
SIGNATURE_PEM_LABEL = "RING SIGNATURE"

CURVES = {
    "prime256v1": ec.SECP256R1,
    "secp384r1": ec.SECP384R1,
    "secp521r1": ec.SECP521R1,
}

HASHES = {
    "sha3-256": "sha3_256",
    "sha3-512": "sha3_512",
    "sha256": "sha256",
    "sha512": "sha512",
}

SIGNATURE_HASHES = {
    "sha3-256": hashes.SHA3_256,
    "sha3-512": hashes.SHA3_512,
    "sha256": hashes.SHA256,
    "sha512": hashes.SHA512,
}

FOLDING_MODES = ("hashes",)


class CryptoStatus(IntEnum):
    SUCCESS = 0
    UNSUPPORTED_CURVE = 1
    UNSUPPORTED_HASH = 2
    UNSUPPORTED_ENCODING = 3
    UNSUPPORTED_FOLDING_MODE = 4
    INVALID_PRIVATE_KEY = 5
    INVALID_PUBLIC_KEY = 6
    INSUFFICIENT_PUBLIC_KEYS = 7
    DUPLICATE_PUBLIC_KEYS = 8
    MIXED_CURVES = 9
    INVALID_FOLDED_PUBLIC_KEYS = 10
    SIGNER_NOT_IN_RING = 11


STATUS_MESSAGES = {
    CryptoStatus.SUCCESS: "Success.",
    CryptoStatus.UNSUPPORTED_CURVE: "Unsupported curve name.",
    CryptoStatus.UNSUPPORTED_HASH: "Unsupported hash algorithm.",
    CryptoStatus.UNSUPPORTED_ENCODING: "Unsupported output encoding.",
    CryptoStatus.UNSUPPORTED_FOLDING_MODE: "Unsupported folding mode.",
    CryptoStatus.INVALID_PRIVATE_KEY: "Private key could not be loaded.",
    CryptoStatus.INVALID_PUBLIC_KEY: "Public key could not be loaded.",
    CryptoStatus.INSUFFICIENT_PUBLIC_KEYS: "Insufficient number of public keys.",
    CryptoStatus.DUPLICATE_PUBLIC_KEYS: "Public keys are not unique.",
    CryptoStatus.MIXED_CURVES: "Public keys do not share a curve.",
    CryptoStatus.INVALID_FOLDED_PUBLIC_KEYS: "Folded public keys could not be loaded.",
    CryptoStatus.SIGNER_NOT_IN_RING: "Signing key is not a member of the folded public keys.",
}


def crypto_error(status):
    return CryptoPrimitiveError(status, STATUS_MESSAGES[status])


class Signer(Protocol):
    def generate_private_key(self, curve: str = DEFAULT_CURVE) -> str: ...

    def derive_public_key(self, private_key_pem: str) -> str: ...

    def generate_key_pair(self, curve: str = DEFAULT_CURVE) -> Tuple[str, str]: ...

    def fold_public_keys(self, public_keys: List[str], hash_algorithm: str = DEFAULT_HASH,
                         encoding: str = DEFAULT_ENCODING,
                         mode: str = DEFAULT_FOLDING_MODE) -> str: ...

    def sign(self, private_key_pem: str, message: str, folded_public_keys: str) -> str: ...


class EcRingKeyService:
    def generate_private_key(self, curve=DEFAULT_CURVE):
        curve_cls = CURVES.get(curve)
        if curve_cls is None:
            raise crypto_error(CryptoStatus.UNSUPPORTED_CURVE)
        private_key = ec.generate_private_key(curve_cls())
        pem = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption())
        return pem.decode()

    def derive_public_key(self, private_key_pem):
        private_key = self._load_private_key(private_key_pem)
        pem = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo)
        return pem.decode()

    def generate_key_pair(self, curve=DEFAULT_CURVE):
        """Return ``(private_pem, public_pem)``."""
        private_pem = self.generate_private_key(curve)
        return private_pem, self.derive_public_key(private_pem)

    def fold_public_keys(self, public_keys, hash_algorithm=DEFAULT_HASH,
                         encoding=DEFAULT_ENCODING, mode=DEFAULT_FOLDING_MODE):
        hash_name = HASHES.get(hash_algorithm)
        if hash_name is None:
            raise crypto_error(CryptoStatus.UNSUPPORTED_HASH)
        if encoding != "PEM":
            raise crypto_error(CryptoStatus.UNSUPPORTED_ENCODING)
        if mode not in FOLDING_MODES:
            raise crypto_error(CryptoStatus.UNSUPPORTED_FOLDING_MODE)
        if len(public_keys) < MIN_RING_SIZE:
            raise crypto_error(CryptoStatus.INSUFFICIENT_PUBLIC_KEYS)

        points = []
        curve_name = None
        for pem in public_keys:
            public_key = self._load_public_key(pem)
            if curve_name is None:
                curve_name = public_key.curve.name
            elif public_key.curve.name != curve_name:
                raise crypto_error(CryptoStatus.MIXED_CURVES)
            points.append(public_key.public_bytes(
                encoding=serialization.Encoding.X962,
                format=serialization.PublicFormat.UncompressedPoint))
        if len(set(points)) != len(points):
            raise crypto_error(CryptoStatus.DUPLICATE_PUBLIC_KEYS)

        digest = hashlib.new(hash_name)
        for point in points:
            digest.update(hashlib.new(hash_name, point).digest())

        body = base64.encodebytes(b"".join(points)).decode()
        return (
            f"-----BEGIN {FOLDED_PEM_LABEL}-----\n"
            f"CurveName: {_openssl_curve_name(curve_name)}\n"
            f"HasherName: {hash_algorithm}\n"
            f"Digest: {digest.hexdigest()}\n"
            "\n"
            f"{body}"
            f"-----END {FOLDED_PEM_LABEL}-----\n"
        )

    def sign(self, private_key_pem, message, folded_public_keys):
        """Sign ``message`` against a folded set the signing key belongs to.

        The result is a PEM block carrying a link tag, which is the same for
        every signature one key makes against one folded set, and the
        signature over the folded digest and the message.
        """
        private_key = self._load_private_key(private_key_pem)
        folded = load_folded_public_keys(folded_public_keys)
        point = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.X962,
            format=serialization.PublicFormat.UncompressedPoint)
        if point not in folded.points:
            raise crypto_error(CryptoStatus.SIGNER_NOT_IN_RING)

        hash_name = HASHES[folded.hash_algorithm]
        scalar = private_key.private_numbers().private_value
        link_tag = hashlib.new(hash_name, bytes.fromhex(folded.digest) + scalar.to_bytes(
            (private_key.curve.key_size + 7) // 8, "big")).hexdigest()

        data = bytes.fromhex(folded.digest) + message.encode("utf-8")
        signature = private_key.sign(data, ec.ECDSA(SIGNATURE_HASHES[folded.hash_algorithm]()))
        body = base64.encodebytes(signature).decode()
        return (
            f"-----BEGIN {SIGNATURE_PEM_LABEL}-----\n"
            f"HasherName: {folded.hash_algorithm}\n"
            f"LinkTag: {link_tag}\n"
            "\n"
            f"{body}"
            f"-----END {SIGNATURE_PEM_LABEL}-----\n"
        )

    @staticmethod
    def _load_private_key(pem):
        try:
            private_key = serialization.load_pem_private_key(pem.encode(), password=None)
        except (ValueError, TypeError, UnsupportedAlgorithm):
            raise crypto_error(CryptoStatus.INVALID_PRIVATE_KEY)
        if not isinstance(private_key, ec.EllipticCurvePrivateKey):
            raise crypto_error(CryptoStatus.INVALID_PRIVATE_KEY)
        return private_key

    @staticmethod
    def _load_public_key(pem):
        try:
            public_key = serialization.load_pem_public_key(pem.encode())
        except (ValueError, TypeError, UnsupportedAlgorithm):
            raise crypto_error(CryptoStatus.INVALID_PUBLIC_KEY)
        if not isinstance(public_key, ec.EllipticCurvePublicKey):
            raise crypto_error(CryptoStatus.INVALID_PUBLIC_KEY)
        return public_key


def _openssl_curve_name(name):
    return "prime256v1" if name == "secp256r1" else name


class FoldedPublicKeySet(NamedTuple):
    curve_name: str
    hash_algorithm: str
    digest: str
    points: List[bytes]


def load_folded_public_keys(folded_pem):
    """Parse a folded set produced by ``EcRingKeyService.fold_public_keys``."""
    lines = folded_pem.strip().splitlines() if isinstance(folded_pem, str) else []
    if len(lines) < 3 or lines[0] != f"-----BEGIN {FOLDED_PEM_LABEL}-----" \
            or lines[-1] != f"-----END {FOLDED_PEM_LABEL}-----":
        raise crypto_error(CryptoStatus.INVALID_FOLDED_PUBLIC_KEYS)

    headers = {}
    body = []
    in_body = False
    for line in lines[1:-1]:
        if in_body:
            body.append(line)
        elif not line:
            in_body = True
        else:
            name, _, value = line.partition(":")
            headers[name.strip()] = value.strip()

    curve_cls = CURVES.get(headers.get("CurveName"))
    if curve_cls is None or headers.get("HasherName") not in HASHES or "Digest" not in headers:
        raise crypto_error(CryptoStatus.INVALID_FOLDED_PUBLIC_KEYS)
    try:
        raw = base64.b64decode("".join(body), validate=True)
        bytes.fromhex(headers["Digest"])
    except ValueError:
        raise crypto_error(CryptoStatus.INVALID_FOLDED_PUBLIC_KEYS)

    point_size = 1 + 2 * ((curve_cls.key_size + 7) // 8)
    if not raw or len(raw) % point_size:
        raise crypto_error(CryptoStatus.INVALID_FOLDED_PUBLIC_KEYS)
    points = [raw[i:i + point_size] for i in range(0, len(raw), point_size)]
    return FoldedPublicKeySet(headers["CurveName"], headers["HasherName"], headers["Digest"], points)
