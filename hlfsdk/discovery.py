"""Discovered endorsers, orderers and peers, grouped by MSP id."""

from __future__ import annotations

import enum
import threading
from dataclasses import dataclass, field
from typing import Mapping, Sequence


class DiscoveryError(Exception):
    """Base error of service discovery."""

    default_message = "discovery failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class NoChannelsError(DiscoveryError):
    default_message = "channels not found"


class ChannelNotFoundError(DiscoveryError):
    default_message = "channel not found"


class NoChaincodesError(DiscoveryError):
    default_message = "no chaincodes on channel"


class UnknownProviderError(DiscoveryError):
    default_message = "unknown discovery provider (forgotten import?)"


class ServiceDiscoveryType(str, enum.Enum):
    """Supported kinds of service discovery."""

    LOCAL = "local"
    GOSSIP = "gossip"


@dataclass(frozen=True)
class TlsConfig:
    """TLS settings of a connection."""

    enabled: bool = False


@dataclass
class Endpoint:
    """A single host address with its TLS settings."""

    host: str = ""
    tls_config: TlsConfig = field(default_factory=TlsConfig)


@dataclass
class HostEndpoint:
    """Host addresses that belong to one MSP."""

    msp_id: str
    host_addresses: list[Endpoint] = field(default_factory=list)


def hosts_to_endpoints(hosts: Mapping[str, Sequence[str]]) -> list[HostEndpoint]:
    """Turn a mapping of MSP id to host addresses into fresh host endpoints."""
    return [
        HostEndpoint(msp_id=msp_id, host_addresses=[Endpoint(host=h) for h in addresses])
        for msp_id, addresses in hosts.items()
    ]


class _HostBook:
    """Thread-safe mapping of MSP id to host addresses."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._hosts: dict[str, list[str]] = {}

    def add(self, msp_id: str, host: str) -> None:
        with self._lock:
            self._hosts.setdefault(msp_id, []).append(host)

    def endpoints(self) -> list[HostEndpoint]:
        with self._lock:
            return hosts_to_endpoints(self._hosts)


class ChaincodeInfo:
    """Endorsers, orderers and peers found for a chaincode on a channel."""

    def __init__(self, chaincode_name: str, chaincode_version: str, channel_name: str) -> None:
        self.chaincode_name = chaincode_name
        self.chaincode_version = chaincode_version
        self.channel_name = channel_name
        self._endorsers = _HostBook()
        self._orderers = _HostBook()
        self._peers = _HostBook()

    def endorsers(self) -> list[HostEndpoint]:
        return self._endorsers.endpoints()

    def orderers(self) -> list[HostEndpoint]:
        return self._orderers.endpoints()

    def add_endorser(self, msp_id: str, host: str) -> None:
        self._endorsers.add(msp_id, host)

    def add_orderer(self, msp_id: str, host: str) -> None:
        self._orderers.add(msp_id, host)

    def add_peer(self, msp_id: str, host: str) -> None:
        self._peers.add(msp_id, host)


class ChannelInfo:
    """Orderers found for a channel."""

    def __init__(self, channel_name: str) -> None:
        self.channel_name = channel_name
        self._orderers = _HostBook()

    def orderers(self) -> list[HostEndpoint]:
        return self._orderers.endpoints()

    def add_orderer(self, msp_id: str, host: str) -> None:
        self._orderers.add(msp_id, host)


class LocalPeers:
    """Peers known to the local node."""

    def __init__(self) -> None:
        self._peers = _HostBook()

    def peers(self) -> list[HostEndpoint]:
        return self._peers.endpoints()

    def add_peer(self, msp_id: str, host: str) -> None:
        self._peers.add(msp_id, host)