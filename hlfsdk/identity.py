"""Identities loaded from PEM certificates and private keys."""

from __future__ import annotations

import base64
import binascii
import os
import re
import stat
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterator, Protocol

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.x509.oid import NameOID

MSP_ADMIN_CERTS_PATH = "admincerts"
MSP_CA_CERTS_PATH = "cacerts"
MSP_INTERMEDIATE_CERTS_PATH = "intermediatecerts"
MSP_TLS_CA_CERTS_PATH = "tlscacerts"
MSP_TLS_INTERMEDIATE_CERTS_PATH = "tlsintermediatecerts"
MSP_KEYSTORE_PATH = "keystore"
MSP_SIGN_CERTS_PATH = "signcerts"
MSP_USERS_CERTS_PATH = "user"
MSP_OU_CERTS_PATH = "ou"
MSP_CONFIG_FILE = "config.yaml"


class IdentityError(Exception):
    """Base error of identity loading."""

    default_message = "identity error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class NoFilesInDirectoryError(IdentityError):
    default_message = "no files in directory"


class NoPEMContentError(IdentityError):
    default_message = "no pem content"


class KeyNotFoundError(IdentityError):
    default_message = "key not found"


class CryptoSuite(Protocol):
    def sign(self, msg: bytes, key: Any) -> bytes: ...

    def verify(self, public_key: Any, msg: bytes, sig: bytes) -> None: ...


def admin_certs_path(msp_path: str) -> str:
    return os.path.join(msp_path, MSP_ADMIN_CERTS_PATH)


def keystore_path(msp_path: str) -> str:
    return os.path.join(msp_path, MSP_KEYSTORE_PATH)


def sign_certs_path(msp_path: str) -> str:
    return os.path.join(msp_path, MSP_SIGN_CERTS_PATH)


def _file_contents(directory: str) -> Iterator[bytes]:
    """Yield the contents of regular files in ``directory``, ordered by name."""
    try:
        names = sorted(os.listdir(directory))
    except FileNotFoundError:
        raise
    except OSError as exc:
        raise IdentityError(f"read directory={directory}: {exc}") from exc

    for name in names:
        full_name = os.path.join(directory, name)
        try:
            info = os.stat(full_name)
        except OSError:
            continue
        if stat.S_ISDIR(info.st_mode):
            continue
        try:
            with open(full_name, "rb") as handle:
                content = handle.read()
        except OSError as exc:
            raise IdentityError(f"read from file={full_name}: {exc}") from exc
        yield content


def read_first_file(directory: str) -> bytes:
    """Return the content of the first regular file in ``directory``."""
    for content in _file_contents(directory):
        return content
    raise NoFilesInDirectoryError()


def read_files(directory: str) -> list[bytes]:
    """Return the contents of all regular files in ``directory``."""
    os.stat(directory)
    return list(_file_contents(directory))


_PEM_BLOCK = re.compile(
    rb"-----BEGIN ([^\r\n-]*)-----\r?\n(.*?)-----END \1-----", re.DOTALL
)


def _pem_blocks(data: bytes) -> Iterator[tuple[str, bytes]]:
    for match in _PEM_BLOCK.finditer(data):
        lines = (line.strip() for line in match.group(2).splitlines())
        body = b"".join(line for line in lines if line and b":" not in line)
        try:
            der = base64.b64decode(body, validate=True)
        except (binascii.Error, ValueError):
            continue
        yield match.group(1).decode("ascii", "replace"), der


def _first_pem_block(data: bytes) -> bytes:
    for _, der in _pem_blocks(data):
        return der
    raise NoPEMContentError()


def pem_encode(cert_raw: bytes) -> bytes:
    """Encode DER certificate bytes as a PEM block."""
    encoded = base64.b64encode(cert_raw)
    lines = [encoded[i : i + 64] for i in range(0, len(encoded), 64)]
    body = b"".join(line + b"\n" for line in lines)
    return b"-----BEGIN CERTIFICATE-----\n" + body + b"-----END CERTIFICATE-----\n"


def load_certificate(cert_raw: bytes) -> x509.Certificate:
    """Parse the first PEM block of ``cert_raw`` as an X.509 certificate."""
    der = _first_pem_block(cert_raw)
    try:
        return x509.load_der_x509_certificate(der)
    except ValueError as exc:
        raise IdentityError(f"parse certificate: {exc}") from exc


def load_key(key_raw: bytes) -> Any:
    """Parse the first PEM block of ``key_raw`` as a private key."""
    der = _first_pem_block(key_raw)
    try:
        return serialization.load_der_private_key(der, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise IdentityError(f"parse key: {exc}") from exc


def _public_key_der(public_key: Any) -> bytes:
    return public_key.public_bytes(
        serialization.Encoding.DER, serialization.PublicFormat.SubjectPublicKeyInfo
    )


def _key_matches_cert(cert_raw: bytes, key_raw: bytes) -> bool:
    try:
        certs = [
            x509.load_der_x509_certificate(der)
            for block_type, der in _pem_blocks(cert_raw)
            if block_type == "CERTIFICATE"
        ]
        if not certs:
            return False
        key_der = next(
            (
                der
                for block_type, der in _pem_blocks(key_raw)
                if block_type == "PRIVATE KEY" or block_type.endswith(" PRIVATE KEY")
            ),
            None,
        )
        if key_der is None:
            return False
        key = serialization.load_der_private_key(key_der, password=None)
        return _public_key_der(certs[0].public_key()) == _public_key_der(key.public_key())
    except (ValueError, TypeError, UnsupportedAlgorithm, AttributeError):
        return False


def key_for_cert(cert_raw: bytes, key_dir: str) -> Any:
    """Find the private key in ``key_dir`` that matches the certificate."""
    try:
        with os.scandir(key_dir) as scan:
            entries = sorted(scan, key=lambda entry: entry.name)
    except OSError as exc:
        raise IdentityError(f"read key dir: {exc}") from exc

    for entry in entries:
        if entry.is_dir(follow_symlinks=False):
            continue
        try:
            with open(os.path.join(key_dir, entry.name), "rb") as handle:
                key_raw = handle.read()
        except OSError as exc:
            raise IdentityError(f"read key file: {exc}") from exc
        if not _key_matches_cert(cert_raw, key_raw):
            continue
        return load_key(key_raw)

    raise KeyNotFoundError(
        f"key dir = {key_dir}, files: {len(entries)}: {KeyNotFoundError.default_message}"
    )


def key_pair_for_cert(cert_raw: bytes, key_dir: str) -> tuple[x509.Certificate, Any]:
    """Return the certificate and its matching private key from ``key_dir``."""
    key = key_for_cert(cert_raw, key_dir)
    return load_certificate(cert_raw), key


@dataclass(frozen=True)
class IdentityIdentifier:
    """MSP id and common name that name an identity."""

    msp_id: str
    id: str


def _common_name(cert: x509.Certificate) -> str:
    attributes = cert.subject.get_attributes_for_oid(NameOID.COMMON_NAME)
    if not attributes:
        return ""
    value = attributes[-1].value
    return value.decode("utf-8", "replace") if isinstance(value, bytes) else str(value)


@dataclass
class Identity:
    """A certificate of an MSP, optionally with its private key."""

    msp_id: str
    certificate: x509.Certificate
    private_key: Any = None

    @property
    def public_key(self) -> Any:
        return self.certificate.public_key()

    @property
    def der(self) -> bytes:
        return self.certificate.public_bytes(serialization.Encoding.DER)

    def pem(self) -> bytes:
        return pem_encode(self.der)

    def identifier(self) -> IdentityIdentifier:
        return IdentityIdentifier(msp_id=self.msp_id, id=_common_name(self.certificate))

    def signing_identity(self, crypto_suite: CryptoSuite) -> SigningIdentity:
        return SigningIdentity(identity=self, crypto_suite=crypto_suite)


def _varint(value: int) -> bytes:
    out = bytearray()
    while True:
        low = value & 0x7F
        value >>= 7
        if value:
            out.append(low | 0x80)
        else:
            out.append(low)
            return bytes(out)


def _length_delimited(field_number: int, data: bytes) -> bytes:
    if not data:
        return b""
    return _varint(field_number << 3 | 2) + _varint(len(data)) + data


@dataclass
class SigningIdentity:
    """An identity that signs and verifies through a crypto suite."""

    identity: Identity
    crypto_suite: CryptoSuite

    @property
    def msp_id(self) -> str:
        return self.identity.msp_id

    def anonymous(self) -> bool:
        return False

    def expires_at(self) -> datetime:
        """Return the moment the certificate stops being valid, in UTC."""
        cert = self.identity.certificate
        try:
            return cert.not_valid_after_utc
        except AttributeError:
            return cert.not_valid_after.replace(tzinfo=timezone.utc)

    def identifier(self) -> IdentityIdentifier:
        return self.identity.identifier()

    def verify(self, msg: bytes, sig: bytes) -> None:
        self.crypto_suite.verify(self.identity.public_key, msg, sig)

    def sign(self, msg: bytes) -> bytes:
        return self.crypto_suite.sign(msg, self.identity.private_key)

    def serialize(self) -> bytes:
        """Encode the MSP id and PEM certificate as a serialized identity message."""
        return _length_delimited(1, self.identity.msp_id.encode("utf-8")) + _length_delimited(
            2, self.identity.pem()
        )


def _rewrap(prefix: str, exc: IdentityError) -> IdentityError:
    return type(exc)(f"{prefix}: {exc}")


def from_bytes_without_signing(msp_id: str, cert_raw: bytes) -> Identity:
    """Build an identity from a PEM certificate, without a private key."""
    try:
        cert = load_certificate(cert_raw)
    except IdentityError as exc:
        raise _rewrap("certificate", exc) from exc
    return Identity(msp_id=msp_id, certificate=cert)


def from_bytes(msp_id: str, cert_raw: bytes, key_raw: bytes) -> Identity:
    """Build an identity from a PEM certificate and a PEM private key."""
    try:
        cert = load_certificate(cert_raw)
    except IdentityError as exc:
        raise _rewrap("certificate", exc) from exc
    try:
        key = load_key(key_raw)
    except IdentityError as exc:
        raise _rewrap("key", exc) from exc
    return Identity(msp_id=msp_id, certificate=cert, private_key=key)


def from_cert_key_path(msp_id: str, cert_path: str, key_path: str) -> Identity:
    """Build an identity from a certificate file and a key file."""
    try:
        with open(cert_path, "rb") as handle:
            cert_pem = handle.read()
    except OSError as exc:
        raise IdentityError(f"read certificate from file={cert_path}: {exc}") from exc
    try:
        with open(key_path, "rb") as handle:
            key_pem = handle.read()
    except OSError as exc:
        raise IdentityError(f"read key from file={key_path}: {exc}") from exc
    return from_bytes(msp_id, cert_pem, key_pem)


def first_from_path(msp_id: str, cert_dir: str, key_dir: str) -> Identity:
    """Build an identity from the first certificate in ``cert_dir``."""
    cert_raw = read_first_file(cert_dir)
    cert, key = key_pair_for_cert(cert_raw, key_dir)
    return Identity(msp_id=msp_id, certificate=cert, private_key=key)


def list_from_path(msp_id: str, cert_dir: str, key_dir: str) -> list[Identity]:
    """Build an identity for every certificate in ``cert_dir``."""
    identities = []
    for cert_raw in read_files(cert_dir):
        cert, key = key_pair_for_cert(cert_raw, key_dir)
        identities.append(Identity(msp_id=msp_id, certificate=cert, private_key=key))
    return identities


def certificates_from_path(cert_dir: str) -> list[x509.Certificate]:
    """Parse every certificate file in ``cert_dir``."""
    return [load_certificate(cert_raw) for cert_raw in read_files(cert_dir)]


def signer_from_msp_path(msp_id: str, msp_path: str) -> Identity:
    """Load the signing identity of an MSP directory."""
    return first_from_path(msp_id, sign_certs_path(msp_path), keystore_path(msp_path))