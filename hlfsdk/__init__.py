"""Client-side helpers for Hyperledger Fabric: MSP identities, local discovery, composite keys, validation flags and MSP certificates."""

__version__ = "0.1.0"