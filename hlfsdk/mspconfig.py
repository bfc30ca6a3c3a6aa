"""Fabric MSP configuration read from an MSP directory and written back as files."""

from __future__ import annotations

import os
import posixpath
import re
from dataclasses import dataclass, field
from typing import Any, Mapping

import yaml

from hlfsdk.identity import (
    MSP_ADMIN_CERTS_PATH,
    MSP_CA_CERTS_PATH,
    MSP_CONFIG_FILE,
    MSP_INTERMEDIATE_CERTS_PATH,
    MSP_OU_CERTS_PATH,
    MSP_SIGN_CERTS_PATH,
    MSP_TLS_CA_CERTS_PATH,
    MSP_TLS_INTERMEDIATE_CERTS_PATH,
    IdentityError,
    read_files,
)

_MSP_CRLS_PATH = "crls"
_PEM = re.compile(rb"-----BEGIN ([^\r\n-]*)-----\r?\n.*?-----END \1-----", re.DOTALL)


@dataclass
class FabricOUIdentifier:
    """An organizational unit and the certificate that issues it."""

    certificate: bytes = b""
    organizational_unit_identifier: str = ""


@dataclass
class FabricNodeOUs:
    """Organizational units that classify clients, peers, admins and orderers."""

    enable: bool = False
    client_ou_identifier: FabricOUIdentifier | None = None
    peer_ou_identifier: FabricOUIdentifier | None = None
    admin_ou_identifier: FabricOUIdentifier | None = None
    orderer_ou_identifier: FabricOUIdentifier | None = None


@dataclass
class FabricMSPConfig:
    """Certificates and settings of one MSP."""

    name: str = ""
    root_certs: list[bytes] = field(default_factory=list)
    intermediate_certs: list[bytes] = field(default_factory=list)
    admins: list[bytes] = field(default_factory=list)
    revocation_list: list[bytes] = field(default_factory=list)
    signing_cert: bytes = b""
    organizational_unit_identifiers: list[FabricOUIdentifier] = field(default_factory=list)
    tls_root_certs: list[bytes] = field(default_factory=list)
    tls_intermediate_certs: list[bytes] = field(default_factory=list)
    fabric_node_ous: FabricNodeOUs | None = None


class MSPFiles(dict):
    """Files of an MSP directory, keyed by their relative path."""

    def add(self, path: str, content: bytes) -> None:
        self[path] = content

    def merge(self, files: Mapping[str, bytes]) -> None:
        self.update(files)

    def merge_to_path(self, merge_path: str, files: Mapping[str, bytes]) -> None:
        """Add ``files`` with every path placed under ``merge_path``."""
        for file_path, content in files.items():
            self[posixpath.normpath(posixpath.join(merge_path, file_path))] = content


_ROLE_KEYS = (
    ("client", "ClientOUIdentifier", "client_ou_identifier"),
    ("peer", "PeerOUIdentifier", "peer_ou_identifier"),
    ("admin", "AdminOUIdentifier", "admin_ou_identifier"),
    ("orderer", "OrdererOUIdentifier", "orderer_ou_identifier"),
)


def _roles(node_ous: FabricNodeOUs) -> tuple[tuple[str, str, FabricOUIdentifier | None], ...]:
    return (
        ("client", "ClientOUIdentifier", node_ous.client_ou_identifier),
        ("peer", "PeerOUIdentifier", node_ous.peer_ou_identifier),
        ("admin", "AdminOUIdentifier", node_ous.admin_ou_identifier),
        ("orderer", "OrdererOUIdentifier", node_ous.orderer_ou_identifier),
    )


def _pem_material(directory: str) -> list[bytes]:
    """Contents of the PEM files of ``directory``; other files are skipped."""
    return [content for content in read_files(directory) if _PEM.search(content)]


def _optional_pem_material(directory: str) -> list[bytes]:
    try:
        return _pem_material(directory)
    except FileNotFoundError:
        return []


def _as_mapping(value: Any, what: str) -> Mapping:
    if not isinstance(value, Mapping):
        raise IdentityError(f"{what}: expected a mapping, got {type(value).__name__}")
    return value


def _read_config_yaml(msp_dir: str) -> Mapping:
    path = os.path.join(msp_dir, MSP_CONFIG_FILE)
    try:
        with open(path, "rb") as handle:
            raw = handle.read()
    except FileNotFoundError:
        return {}
    try:
        settings = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise IdentityError(f"failed unmarshalling configuration file {path}: {exc}") from exc
    if settings is None:
        return {}
    return _as_mapping(settings, f"configuration file {path}")


def _optional_file(msp_dir: str, relative: Any) -> bytes:
    if not relative:
        return b""
    try:
        with open(os.path.join(msp_dir, str(relative)), "rb") as handle:
            return handle.read()
    except OSError:
        return b""


def _ou_identifiers(msp_dir: str, raw: Any) -> list[FabricOUIdentifier]:
    identifiers = []
    for item in raw or []:
        item = _as_mapping(item, "OrganizationalUnitIdentifiers")
        cert_path = os.path.join(msp_dir, str(item.get("Certificate") or ""))
        try:
            with open(cert_path, "rb") as handle:
                certificate = handle.read()
        except OSError as exc:
            raise IdentityError(f"could not read certificate file {cert_path}: {exc}") from exc
        identifiers.append(
            FabricOUIdentifier(
                certificate=certificate,
                organizational_unit_identifier=str(item.get("OrganizationalUnitIdentifier") or ""),
            )
        )
    return identifiers


def _node_ous(msp_dir: str, raw: Any) -> FabricNodeOUs | None:
    if raw is None:
        return None
    raw = _as_mapping(raw, "NodeOUs")
    identifiers: dict[str, FabricOUIdentifier] = {}
    for _, key, attribute in _ROLE_KEYS:
        entry = raw.get(key)
        if not entry:
            continue
        entry = _as_mapping(entry, key)
        ou = str(entry.get("OrganizationalUnitIdentifier") or "")
        if not ou:
            continue
        identifiers[attribute] = FabricOUIdentifier(
            certificate=_optional_file(msp_dir, entry.get("Certificate")),
            organizational_unit_identifier=ou,
        )
    return FabricNodeOUs(enable=bool(raw.get("Enable", False)), **identifiers)


def _load_msp_config(msp_id: str, msp_dir: str) -> FabricMSPConfig:
    sign_dir = os.path.join(msp_dir, MSP_SIGN_CERTS_PATH)
    signcerts = _optional_pem_material(sign_dir)
    if not signcerts:
        raise IdentityError(f"could not load a valid signer certificate from directory {sign_dir}")

    ca_dir = os.path.join(msp_dir, MSP_CA_CERTS_PATH)
    cacerts = _optional_pem_material(ca_dir)
    if not cacerts:
        raise IdentityError(f"could not load a valid ca certificate from directory {ca_dir}")

    settings = _read_config_yaml(msp_dir)
    return FabricMSPConfig(
        name=msp_id,
        root_certs=cacerts,
        intermediate_certs=_optional_pem_material(
            os.path.join(msp_dir, MSP_INTERMEDIATE_CERTS_PATH)
        ),
        admins=_optional_pem_material(os.path.join(msp_dir, MSP_ADMIN_CERTS_PATH)),
        revocation_list=_optional_pem_material(os.path.join(msp_dir, _MSP_CRLS_PATH)),
        signing_cert=signcerts[0],
        organizational_unit_identifiers=_ou_identifiers(
            msp_dir, settings.get("OrganizationalUnitIdentifiers")
        ),
        tls_root_certs=_optional_pem_material(os.path.join(msp_dir, MSP_TLS_CA_CERTS_PATH)),
        tls_intermediate_certs=_optional_pem_material(
            os.path.join(msp_dir, MSP_TLS_INTERMEDIATE_CERTS_PATH)
        ),
        fabric_node_ous=_node_ous(msp_dir, settings.get("NodeOUs")),
    )


def fabric_msp_config_from_path(msp_id: str, msp_dir: str) -> FabricMSPConfig:
    """Read the MSP configuration stored in ``msp_dir``."""
    try:
        return _load_msp_config(msp_id, msp_dir)
    except (IdentityError, OSError) as exc:
        raise IdentityError(f"get local msp config from path={msp_dir}: {exc}") from exc


def serialized_cert_name(path: str, pos: int) -> str:
    return f"{path}/cert_{pos}.pem"


def serialize_msp(fabric_msp_config: FabricMSPConfig) -> MSPFiles:
    """Lay an MSP configuration out as the files of an MSP directory."""
    files = MSPFiles()
    groups = (
        (MSP_ADMIN_CERTS_PATH, fabric_msp_config.admins),
        (MSP_CA_CERTS_PATH, fabric_msp_config.root_certs),
        (MSP_INTERMEDIATE_CERTS_PATH, fabric_msp_config.intermediate_certs),
        (MSP_TLS_CA_CERTS_PATH, fabric_msp_config.tls_root_certs),
        (MSP_TLS_INTERMEDIATE_CERTS_PATH, fabric_msp_config.tls_intermediate_certs),
    )
    for directory, certs in groups:
        for pos, cert in enumerate(certs):
            files.add(serialized_cert_name(directory, pos), cert)

    node_ous = fabric_msp_config.fabric_node_ous
    if node_ous is not None and node_ous.enable:
        section: dict[str, Any] = {"Enable": True}
        for stem, key, identifier in _roles(node_ous):
            if identifier is None or not identifier.organizational_unit_identifier:
                continue
            entry: dict[str, str] = {}
            if identifier.certificate:
                file_name = posixpath.join(MSP_OU_CERTS_PATH, f"{stem}.pem")
                files.add(file_name, identifier.certificate)
                entry["Certificate"] = file_name
            entry["OrganizationalUnitIdentifier"] = identifier.organizational_unit_identifier
            section[key] = entry
        files.add(
            MSP_CONFIG_FILE,
            yaml.safe_dump({"NodeOUs": section}, sort_keys=False).encode("utf-8"),
        )
    return files