import datetime

import pytest
import yaml
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from hlfsdk.identity import IdentityError
from hlfsdk.mspconfig import (
    FabricMSPConfig,
    FabricNodeOUs,
    FabricOUIdentifier,
    MSPFiles,
    fabric_msp_config_from_path,
    serialize_msp,
    serialized_cert_name,
)


def _cert_pem(common_name):
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.datetime.now(datetime.timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=30))
        .sign(key, hashes.SHA256())
    )
    return cert.public_bytes(serialization.Encoding.PEM)


@pytest.fixture(scope="module")
def ca_pem():
    return _cert_pem("ca.org1.example.com")


@pytest.fixture(scope="module")
def sign_pem():
    return _cert_pem("peer0.org1.example.com")


def _node_ous(cert):
    return FabricNodeOUs(
        enable=True,
        client_ou_identifier=FabricOUIdentifier(cert, "client"),
        peer_ou_identifier=FabricOUIdentifier(cert, "peer"),
        admin_ou_identifier=FabricOUIdentifier(cert, "admin"),
        orderer_ou_identifier=FabricOUIdentifier(cert, "orderer"),
    )


def _write(base, files):
    for rel, content in files.items():
        path = base / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)


def test_serialized_cert_name():
    assert serialized_cert_name("cacerts", 0) == "cacerts/cert_0.pem"


def test_msp_files_add_and_merge():
    files = MSPFiles()
    files.add("a.pem", b"a")
    files.merge({"b.pem": b"b", "a.pem": b"c"})
    assert files == {"a.pem": b"c", "b.pem": b"b"}


def test_msp_files_merge_to_path():
    files = MSPFiles()
    files.merge_to_path("msp", {"cacerts/cert_0.pem": b"x"})
    assert files == {"msp/cacerts/cert_0.pem": b"x"}


def test_serialize_without_node_ous(ca_pem, sign_pem):
    config = FabricMSPConfig(
        name="Org1MSP",
        root_certs=[ca_pem],
        admins=[sign_pem],
        tls_root_certs=[ca_pem, sign_pem],
    )
    files = serialize_msp(config)
    assert files == {
        "admincerts/cert_0.pem": sign_pem,
        "cacerts/cert_0.pem": ca_pem,
        "tlscacerts/cert_0.pem": ca_pem,
        "tlscacerts/cert_1.pem": sign_pem,
    }


def test_serialize_with_node_ous(ca_pem):
    config = FabricMSPConfig(name="Org1MSP", root_certs=[ca_pem], fabric_node_ous=_node_ous(ca_pem))
    files = serialize_msp(config)
    assert len(files) == 6
    assert files["ou/client.pem"] == ca_pem
    assert files["ou/orderer.pem"] == ca_pem
    section = yaml.safe_load(files["config.yaml"])["NodeOUs"]
    assert section["Enable"] is True
    assert section["PeerOUIdentifier"] == {
        "Certificate": "ou/peer.pem",
        "OrganizationalUnitIdentifier": "peer",
    }


def test_serialize_skips_empty_identifiers_and_certificates(ca_pem):
    node_ous = FabricNodeOUs(
        enable=True,
        client_ou_identifier=FabricOUIdentifier(b"", "client"),
        peer_ou_identifier=FabricOUIdentifier(ca_pem, ""),
    )
    files = serialize_msp(FabricMSPConfig(fabric_node_ous=node_ous))
    assert set(files) == {"config.yaml"}
    section = yaml.safe_load(files["config.yaml"])["NodeOUs"]
    assert section == {"Enable": True, "ClientOUIdentifier": {"OrganizationalUnitIdentifier": "client"}}


def test_serialize_disabled_node_ous_writes_no_config(ca_pem):
    node_ous = _node_ous(ca_pem)
    node_ous.enable = False
    files = serialize_msp(FabricMSPConfig(root_certs=[ca_pem], fabric_node_ous=node_ous))
    assert set(files) == {"cacerts/cert_0.pem"}


def test_round_trip_through_directory(tmp_path, ca_pem, sign_pem):
    original = FabricMSPConfig(
        name="Org1MSP",
        root_certs=[ca_pem],
        admins=[sign_pem],
        fabric_node_ous=_node_ous(ca_pem),
    )
    _write(tmp_path, serialize_msp(original))
    _write(tmp_path, {"signcerts/cert.pem": sign_pem})

    loaded = fabric_msp_config_from_path("Org1MSP", str(tmp_path))
    assert loaded.name == "Org1MSP"
    assert loaded.root_certs == [ca_pem]
    assert loaded.admins == [sign_pem]
    assert loaded.intermediate_certs == []
    assert loaded.signing_cert == sign_pem
    assert loaded.fabric_node_ous == original.fabric_node_ous


def test_non_pem_files_are_skipped(tmp_path, ca_pem, sign_pem):
    _write(
        tmp_path,
        {"cacerts/ca.pem": ca_pem, "cacerts/notes.txt": b"plain", "signcerts/cert.pem": sign_pem},
    )
    loaded = fabric_msp_config_from_path("Org1MSP", str(tmp_path))
    assert loaded.root_certs == [ca_pem]
    assert loaded.fabric_node_ous is None


def test_organizational_unit_identifiers_are_read(tmp_path, ca_pem, sign_pem):
    config_yaml = yaml.safe_dump(
        {
            "OrganizationalUnitIdentifiers": [
                {"Certificate": "cacerts/ca.pem", "OrganizationalUnitIdentifier": "dept1"}
            ]
        }
    ).encode()
    _write(
        tmp_path,
        {"cacerts/ca.pem": ca_pem, "signcerts/cert.pem": sign_pem, "config.yaml": config_yaml},
    )
    loaded = fabric_msp_config_from_path("Org1MSP", str(tmp_path))
    assert loaded.organizational_unit_identifiers == [FabricOUIdentifier(ca_pem, "dept1")]


def test_missing_cacerts_raises(tmp_path, sign_pem):
    _write(tmp_path, {"signcerts/cert.pem": sign_pem})
    with pytest.raises(IdentityError, match="ca certificate"):
        fabric_msp_config_from_path("Org1MSP", str(tmp_path))


def test_missing_signcerts_raises(tmp_path, ca_pem):
    _write(tmp_path, {"cacerts/ca.pem": ca_pem})
    with pytest.raises(IdentityError, match="signer certificate"):
        fabric_msp_config_from_path("Org1MSP", str(tmp_path))