# hlfsdk

Client-side building blocks for working with a Hyperledger Fabric network.
The package has these modules:

- `hlfsdk.identity`: load X.509 certificates and PKCS#8 private keys from PEM
  data or files, find the key in a keystore folder that matches a certificate,
  and wrap them as an `Identity`. A `SigningIdentity` signs and verifies through
  a crypto suite you supply (any object with `sign(msg, key)` and
  `verify(public_key, msg, sig)`) and serializes the MSP id and PEM certificate
  as a serialized-identity message.
- `hlfsdk.mspconfig`: read an MSP folder (`signcerts`, `cacerts`,
  `intermediatecerts`, `admincerts`, `crls`, `tlscacerts`,
  `tlsintermediatecerts`, `config.yaml`) into a `FabricMSPConfig`, and lay a
  configuration out again as `MSPFiles` (relative path to content) with
  `serialize_msp`.
- `hlfsdk.msp`: `msp_from_path` loads the signer, admin and user identities of
  an MSP together with its configuration; `msp_from_config` wraps an existing
  `FabricMSPConfig`.
- `hlfsdk.mspsettings`: `MSPSettings`, the MSP section of a client
  configuration, which decides whether the identity comes from inline PEM
  bytes, from certificate and key paths, or from an MSP folder.
- `hlfsdk.discovery` and `hlfsdk.endpoints`: containers for discovered
  endorsers, orderers and peers grouped by MSP id, and an `EndpointsMapper`
  that replaces discovered addresses with configured hosts and TLS settings.
- `hlfsdk.localdiscovery`: a `LocalConfigProvider` that answers chaincode and
  channel queries from a list of channels in configuration, taking endorsing
  MSPs from the chaincode's signature policy (`AND`, `OR`, `OutOf`).
- `hlfsdk.compositekey`: build and split ledger composite keys.
- `hlfsdk.txflags`: per-transaction validation codes of a block.
- `hlfsdk.certificates`: root, intermediate and admin certificates of an MSP
  with their SHA-256 fingerprints, and the Fabric version told from channel
  capabilities.

## Installation

```
pip install hlfsdk
```

Python 3.10 or later is required. The package depends on `cryptography` and
`pyyaml`.

## Usage

### Load an MSP

```python
from hlfsdk.msp import msp_from_path

msp = msp_from_path("Org1MSP", "crypto/peerOrganizations/org1/peers/peer0/msp")
signer = msp.admin_or_signer()
print(msp.msp_identifier)
print(signer.pem().decode())
```

Admins can come from a separate MSP folder, and the folder's configuration can
be skipped when only identities are wanted:

```python
msp = msp_from_path(
    "Org1MSP",
    "path/to/peer/msp",
    admin_msp_path="path/to/admin/msp",
    skip_config=True,
)
```

Inline PEM bytes (`sign_cert`, `sign_key`) take precedence over
`sign_cert_path` and `sign_key_path`, which take precedence over the
`signcerts` folder. Folders given in `user_paths` must exist.

Serialize a loaded MSP configuration to files:

```python
msp = msp_from_path("Org1MSP", "path/to/peer/msp")
for name, content in msp.serialize().items():
    print(name, len(content))
```

This yields paths such as `cacerts/cert_0.pem`, `ou/peer.pem` and
`config.yaml` (when NodeOUs are enabled). `serialize` raises `IdentityError`
when no configuration was loaded.

### MSP settings

```python
from hlfsdk.mspsettings import MSPSettings

settings = MSPSettings(id="Org1MSP", path="path/to/msp")
signer = settings.signer()
```

Incomplete settings raise `MSPSettingsError`.

### Identities

```python
from hlfsdk.identity import from_cert_key_path

identity = from_cert_key_path("Org1MSP", "signcerts/cert.pem", "keystore/key_sk")
print(identity.identifier())        # IdentityIdentifier(msp_id=..., id=<common name>)
```

### Composite keys

```python
from hlfsdk.compositekey import create_composite_key, split_composite_key

key = create_composite_key("asset", ["owner", "42"])
object_type, attributes = split_composite_key(key)   # ("asset", ["owner", "42"])
```

Attributes containing U+0000 or U+10FFFF raise `CompositeKeyError`.

### Validation flags

```python
from hlfsdk.txflags import TxValidationCode, new_flags_with_values

flags = new_flags_with_values(3, TxValidationCode.VALID)
flags.set_flag(1, TxValidationCode.MVCC_READ_CONFLICT)
assert flags.is_invalid(1)
```

`new_flags(size)` starts every transaction as `NOT_VALIDATED`.

### Local discovery

```python
from hlfsdk.endpoints import EndpointConfig, EndpointsMapper
from hlfsdk.localdiscovery import new_local_config_provider

mapper = EndpointsMapper([EndpointConfig(host="orderer:7050")])
provider = new_local_config_provider(
    {
        "channels": [
            {
                "name": "mychannel",
                "chaincodes": [{"name": "basic", "version": "1.0", "policy": "AND('Org1MSP.member')"}],
                "orderers": [{"host": "orderer:7050"}],
            }
        ]
    },
    mapper,
)
chaincode = provider.chaincode("mychannel", "basic")
print(chaincode.orderers())
print(chaincode.endorsers())
```

An unknown channel raises `ChannelNotFoundError`; a known channel without the
chaincode raises `NoChaincodesError`.

### Certificates and Fabric version

```python
from hlfsdk.certificates import fabric_version_from_capabilities, msp_certificates

for cert in msp_certificates("Org1", msp.msp_config):
    print(cert.type, cert.msp_id, cert.fingerprint.hex())

print(fabric_version_from_capabilities({"V2_0": {}}))   # FabricVersion.V2
```

## What the package does not do

The package opens no network connections. There is no gossip discovery client,
no peer or orderer client, and no way to send proposals or transactions.
`LocalConfigProvider.local_peers` always raises `DiscoveryError`, since local
configuration lists no peers. Blocks, envelopes and channel configuration
transactions are not parsed; `hlfsdk.certificates` works from an already
loaded `FabricMSPConfig`.

## Running the tests

```
pip install -e ".[test]"
pytest
```