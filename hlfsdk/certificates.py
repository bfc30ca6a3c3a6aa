"""Certificates of channel MSPs and the Fabric version a channel runs."""

from __future__ import annotations

import base64
import binascii
import enum
import hashlib
import re
from dataclasses import dataclass
from typing import Iterable, Mapping

from hlfsdk.mspconfig import FabricMSPConfig


class FabricVersion(str, enum.Enum):
    """Major Fabric version of a channel."""

    UNDEFINED = "undefined"
    V1 = "1"
    V2 = "2"


class CertType(str, enum.Enum):
    """Role of a certificate within its MSP."""

    CA = "ca"
    INTERMEDIATE = "intermediate"
    ADMIN = "admin"

    def __str__(self) -> str:
        return self.value


class CertificateDecodeError(ValueError):
    """Certificate bytes hold no PEM block."""


@dataclass(frozen=True)
class Certificate:
    """A PEM certificate of an MSP with its SHA-256 fingerprint."""

    data: bytes
    fingerprint: bytes
    msp_id: str
    type: CertType
    msp_name: str


def fabric_version_is_v2(is_v2: bool) -> FabricVersion:
    return FabricVersion.V2 if is_v2 else FabricVersion.V1


def fabric_version_from_capabilities(
    capabilities: Mapping[str, object] | Iterable[str] | None,
) -> FabricVersion:
    """Tell the Fabric version from channel capabilities.

    Without capabilities the version is undefined; a ``V2_0`` capability
    means version 2, anything else version 1.
    """
    if capabilities is None:
        return FabricVersion.UNDEFINED
    return FabricVersion.V2 if "V2_0" in capabilities else FabricVersion.V1


_PEM_BLOCK = re.compile(
    rb"-----BEGIN ([^\r\n-]*)-----\r?\n(.*?)-----END \1-----", re.DOTALL
)


def _first_pem_der(data: bytes) -> bytes | None:
    for match in _PEM_BLOCK.finditer(data):
        lines = (line.strip() for line in match.group(2).splitlines())
        body = b"".join(line for line in lines if line and b":" not in line)
        try:
            return base64.b64decode(body, validate=True)
        except (binascii.Error, ValueError):
            continue
    return None


def calc_certificate_sha256(der: bytes) -> bytes:
    """Return the SHA-256 digest of DER certificate bytes."""
    return hashlib.sha256(der).digest()


def new_certificate(cert: bytes, cert_type: CertType, msp_id: str, msp_name: str) -> Certificate:
    """Describe a PEM certificate; the fingerprint is taken over its DER bytes."""
    der = _first_pem_der(cert)
    if der is None:
        raise CertificateDecodeError(f"decode {CertType(cert_type)} cert of {msp_id}")
    return Certificate(
        data=cert,
        fingerprint=calc_certificate_sha256(der),
        msp_id=msp_id,
        type=CertType(cert_type),
        msp_name=msp_name,
    )


def msp_certificates(msp_name: str, fabric_msp_config: FabricMSPConfig) -> list[Certificate]:
    """Return root, intermediate and admin certificates of an MSP, in that order."""
    groups = (
        (CertType.CA, fabric_msp_config.root_certs),
        (CertType.INTERMEDIATE, fabric_msp_config.intermediate_certs),
        (CertType.ADMIN, fabric_msp_config.admins),
    )
    return [
        new_certificate(cert, cert_type, fabric_msp_config.name, msp_name)
        for cert_type, certs in groups
        for cert in certs
    ]