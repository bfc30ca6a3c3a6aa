import datetime
from types import SimpleNamespace

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from hlfsdk.identity import IdentityError
from hlfsdk.msp import msp_from_config, msp_from_path
from hlfsdk.mspconfig import FabricMSPConfig, FabricNodeOUs, FabricOUIdentifier

MSP_ID = "Org1MSP"

CONFIG_YAML = b"""NodeOUs:
  Enable: true
  ClientOUIdentifier:
    Certificate: cacerts/localhost-7054-ca-org1.pem
    OrganizationalUnitIdentifier: client
  PeerOUIdentifier:
    Certificate: cacerts/localhost-7054-ca-org1.pem
    OrganizationalUnitIdentifier: peer
  AdminOUIdentifier:
    Certificate: cacerts/localhost-7054-ca-org1.pem
    OrganizationalUnitIdentifier: admin
  OrdererOUIdentifier:
    Certificate: cacerts/localhost-7054-ca-org1.pem
    OrganizationalUnitIdentifier: orderer
"""


def _name(cn):
    return x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, cn)])


def _builder(subject, issuer, public_key):
    now = datetime.datetime.now(datetime.timezone.utc)
    return (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer)
        .public_key(public_key)
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=30))
    )


def _issue(ca_key, ca_cert, cn):
    key = ec.generate_private_key(ec.SECP256R1())
    cert = _builder(_name(cn), ca_cert.subject, key.public_key()).sign(ca_key, hashes.SHA256())
    key_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )
    return cert.public_bytes(serialization.Encoding.PEM), key_pem


def _write(base, files):
    for rel, content in files.items():
        path = base / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)


@pytest.fixture(scope="module")
def org1(tmp_path_factory):
    root = tmp_path_factory.mktemp("org1")
    ca_key = ec.generate_private_key(ec.SECP256R1())
    ca_name = _name("ca.org1.example.com")
    ca_cert = (
        _builder(ca_name, ca_name, ca_key.public_key())
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .sign(ca_key, hashes.SHA256())
    )
    ca_pem = ca_cert.public_bytes(serialization.Encoding.PEM)
    peer_cert, peer_key = _issue(ca_key, ca_cert, "peer0.org1.example.com")
    admin_cert, admin_key = _issue(ca_key, ca_cert, "Admin@org1.example.com")

    peer_files = {
        "cacerts/localhost-7054-ca-org1.pem": ca_pem,
        "signcerts/cert.pem": peer_cert,
        "keystore/peer_sk": peer_key,
        "config.yaml": CONFIG_YAML,
    }
    _write(root / "Org1MSPPeer", peer_files)
    _write(
        root / "Org1MSPAdmin",
        {
            "cacerts/localhost-7054-ca-org1.pem": ca_pem,
            "signcerts/cert.pem": admin_cert,
            "keystore/admin_sk": admin_key,
        },
    )
    _write(
        root / "Org1MSPPeerAndAdmin",
        {
            **peer_files,
            "admincerts/cert.pem": admin_cert,
            "keystore/admin_sk": admin_key,
        },
    )
    return SimpleNamespace(
        root=root,
        ca_pem=ca_pem,
        peer_cert=peer_cert,
        peer_key=peer_key,
        admin_cert=admin_cert,
        admin_key=admin_key,
        peer_dir=str(root / "Org1MSPPeer"),
        admin_dir=str(root / "Org1MSPAdmin"),
        both_dir=str(root / "Org1MSPPeerAndAdmin"),
    )


def _fabric_msp_config(ca_pem):
    return FabricMSPConfig(
        name=MSP_ID,
        root_certs=[ca_pem],
        intermediate_certs=[],
        fabric_node_ous=FabricNodeOUs(
            enable=True,
            client_ou_identifier=FabricOUIdentifier(ca_pem, "client"),
            peer_ou_identifier=FabricOUIdentifier(ca_pem, "peer"),
            admin_ou_identifier=FabricOUIdentifier(ca_pem, "admin"),
            orderer_ou_identifier=FabricOUIdentifier(ca_pem, "orderer"),
        ),
    )


def test_load_peer_msp_from_dir(org1):
    msp = msp_from_path(MSP_ID, org1.peer_dir)

    assert msp.msp_identifier == MSP_ID
    assert len(msp.admins) == 0
    assert msp.signer.pem() == org1.peer_cert

    config = msp.msp_config
    assert config.root_certs == [org1.ca_pem]
    assert config.intermediate_certs == []
    assert config.organizational_unit_identifiers == []
    assert config.fabric_node_ous.enable is True
    assert config.fabric_node_ous.client_ou_identifier.certificate == org1.ca_pem
    assert config.fabric_node_ous.peer_ou_identifier.certificate == org1.ca_pem
    assert config.fabric_node_ous.admin_ou_identifier.certificate == org1.ca_pem
    assert config.fabric_node_ous.orderer_ou_identifier.certificate == org1.ca_pem


def test_serialize_msp_config(org1):
    files = msp_from_path(MSP_ID, org1.peer_dir).serialize()

    assert len(files) == 6
    assert files["cacerts/cert_0.pem"] == org1.ca_pem
    assert files["ou/admin.pem"] == org1.ca_pem
    assert files["ou/peer.pem"] == org1.ca_pem
    assert files["ou/client.pem"] == org1.ca_pem
    assert files["ou/orderer.pem"] == org1.ca_pem
    assert "config.yaml" in files


def test_msp_from_fabric_msp_config(org1):
    fabric_config = _fabric_msp_config(org1.ca_pem)
    msp = msp_from_config(fabric_config)
    assert msp.msp_config is fabric_config
    assert msp.signer is None
    assert msp.msp_identifier == MSP_ID
    assert len(msp.serialize()) == 6


def test_peer_and_admin_from_separate_dirs(org1):
    msp = msp_from_path(MSP_ID, org1.peer_dir, admin_msp_path=org1.admin_dir)

    assert len(msp.admins) == 1
    assert msp.admins[0].pem() == org1.admin_cert
    assert msp.signer.pem() == org1.peer_cert


def test_peer_and_admin_from_one_dir(org1):
    msp = msp_from_path(MSP_ID, org1.both_dir)

    assert len(msp.admins) == 1
    assert msp.admins[0].pem() == org1.admin_cert
    assert msp.signer.pem() == org1.peer_cert


def test_admin_or_signer(org1):
    with_admin = msp_from_path(MSP_ID, org1.both_dir, skip_config=True)
    without_admin = msp_from_path(MSP_ID, org1.peer_dir, skip_config=True)
    assert with_admin.admin_or_signer().pem() == org1.admin_cert
    assert without_admin.admin_or_signer().pem() == org1.peer_cert


def test_skip_config_leaves_config_empty(org1):
    msp = msp_from_path(MSP_ID, org1.peer_dir, skip_config=True)
    assert msp.msp_config is None
    assert msp.msp_identifier == ""
    with pytest.raises(IdentityError):
        msp.serialize()


def test_sign_cert_contents_take_precedence(org1):
    msp = msp_from_path(
        MSP_ID, org1.peer_dir, sign_cert=org1.admin_cert, sign_key=org1.admin_key, skip_config=True
    )
    assert msp.signer.pem() == org1.admin_cert
    assert msp.signer.msp_id == MSP_ID


def test_sign_cert_paths_take_precedence(org1):
    msp = msp_from_path(
        MSP_ID,
        org1.peer_dir,
        sign_cert_path=str(org1.root / "Org1MSPAdmin" / "signcerts" / "cert.pem"),
        sign_key_path=str(org1.root / "Org1MSPAdmin" / "keystore" / "admin_sk"),
        skip_config=True,
    )
    assert msp.signer.pem() == org1.admin_cert


def test_users_loaded_with_msp_keystore(org1):
    user_dir = str(org1.root / "Org1MSPAdmin" / "signcerts")
    msp = msp_from_path(MSP_ID, org1.both_dir, user_paths=[user_dir], skip_config=True)
    assert [user.pem() for user in msp.users] == [org1.admin_cert]


def test_users_without_matching_key_raise(org1):
    user_dir = str(org1.root / "Org1MSPAdmin" / "signcerts")
    with pytest.raises(IdentityError, match="read users identity"):
        msp_from_path(MSP_ID, org1.peer_dir, user_paths=[user_dir], skip_config=True)


def test_missing_user_path_raises(org1, tmp_path):
    with pytest.raises(IdentityError, match="read users identity"):
        msp_from_path(
            MSP_ID, org1.peer_dir, user_paths=[str(tmp_path / "absent")], skip_config=True
        )


def test_missing_admin_msp_path_raises(org1, tmp_path):
    with pytest.raises(IdentityError, match="read admin identity"):
        msp_from_path(MSP_ID, org1.peer_dir, admin_msp_path=str(tmp_path / "absent"))


def test_missing_signcerts_raises(tmp_path):
    with pytest.raises(IdentityError, match="read signer identity"):
        msp_from_path(MSP_ID, str(tmp_path), skip_config=True)