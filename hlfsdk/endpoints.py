"""Mapping of discovered addresses to configured hosts and TLS settings."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Protocol

from hlfsdk.discovery import (
    ChaincodeInfo,
    ChannelInfo,
    Endpoint,
    HostEndpoint,
    LocalPeers,
    TlsConfig,
)


class ConnectionMapper(Protocol):
    def map_connection(self, address: str) -> Endpoint: ...


@dataclass(frozen=True)
class EndpointConfig:
    """A configured endpoint: its address, optional override and TLS settings."""

    host: str
    host_override: str = ""
    tls_config: TlsConfig = field(default_factory=TlsConfig)


class EndpointsMapper:
    """Maps discovered addresses to configured endpoints."""

    def __init__(self, endpoints: Iterable[EndpointConfig]) -> None:
        self._by_address: dict[str, Endpoint] = {
            e.host: Endpoint(host=e.host_override or e.host, tls_config=e.tls_config)
            for e in endpoints
        }

    def map_connection(self, address: str) -> Endpoint:
        """Return the configured endpoint for ``address``, or an empty one."""
        return self._by_address.get(address) or Endpoint()

    def tls_config_for_address(self, address: str) -> TlsConfig:
        """Return the TLS settings for ``address``; TLS is off when unknown."""
        endpoint = self._by_address.get(address)
        return endpoint.tls_config if endpoint else TlsConfig(enabled=False)

    def tls_endpoint_for_address(self, address: str) -> str:
        """Return the host to dial for ``address``."""
        endpoint = self._by_address.get(address)
        return endpoint.host if endpoint else address


def add_tls_configs(
    endpoints: list[HostEndpoint], mapper: ConnectionMapper
) -> list[HostEndpoint]:
    """Replace each address with its mapped host and TLS settings, in place."""
    for host_endpoint in endpoints:
        for address in host_endpoint.host_addresses:
            conn = mapper.map_connection(address.host)
            address.tls_config = conn.tls_config
            address.host = conn.host
    return endpoints


@dataclass
class ChaincodeTLSView:
    """Chaincode discovery result with configured TLS settings applied."""

    target: ChaincodeInfo
    tls_mapper: ConnectionMapper

    def endorsers(self) -> list[HostEndpoint]:
        return add_tls_configs(self.target.endorsers(), self.tls_mapper)

    def orderers(self) -> list[HostEndpoint]:
        return add_tls_configs(self.target.orderers(), self.tls_mapper)

    @property
    def chaincode_name(self) -> str:
        return self.target.chaincode_name

    @property
    def chaincode_version(self) -> str:
        return self.target.chaincode_version

    @property
    def channel_name(self) -> str:
        return self.target.channel_name


@dataclass
class ChannelTLSView:
    """Channel discovery result with configured TLS settings applied."""

    target: ChannelInfo
    tls_mapper: ConnectionMapper

    def orderers(self) -> list[HostEndpoint]:
        return add_tls_configs(self.target.orderers(), self.tls_mapper)

    @property
    def channel_name(self) -> str:
        return self.target.channel_name


@dataclass
class LocalPeersTLSView:
    """Local peers with configured TLS settings applied."""

    target: LocalPeers
    tls_mapper: ConnectionMapper

    def peers(self) -> list[HostEndpoint]:
        return add_tls_configs(self.target.peers(), self.tls_mapper)