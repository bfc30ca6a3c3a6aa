"""Discovery of channels and chaincodes from local configuration."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Mapping

from hlfsdk.discovery import (
    ChaincodeInfo,
    ChannelInfo,
    ChannelNotFoundError,
    DiscoveryError,
    NoChaincodesError,
    TlsConfig,
)
from hlfsdk.endpoints import (
    ChaincodeTLSView,
    ChannelTLSView,
    ConnectionMapper,
    EndpointConfig,
)


class PolicyError(ValueError):
    """An endorsement policy expression could not be parsed."""


@dataclass
class DiscoveryChaincode:
    """A chaincode of a channel as given in local configuration."""

    name: str
    version: str = ""
    policy: str = ""


@dataclass
class DiscoveryChannel:
    """A channel with its chaincodes and orderers as given in local configuration."""

    name: str
    chaincodes: list[DiscoveryChaincode] = field(default_factory=list)
    orderers: list[EndpointConfig] = field(default_factory=list)


_PRINCIPAL = re.compile(r"^([A-Za-z0-9.-]+)([.])(admin|member|client|peer|orderer)$")
_AND_GATES = {"And", "and", "AND"}
_OR_GATES = {"Or", "or", "OR"}
_OUT_OF_GATES = {"OutOf", "outof", "OUTOF"}
_NAME = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_NUMBER = re.compile(r"[0-9]+(?:\.[0-9]+)?")


class _Gate:
    """Marker for an evaluated policy gate."""


class _PolicyParser:
    """Parses a signature policy expression, collecting its principals' MSP ids."""

    def __init__(self, text: str) -> None:
        self._text = text
        self._pos = 0
        self.msp_ids: list[str] = []

    def parse(self) -> list[str]:
        node = self._expression()
        self._skip_spaces()
        if self._pos != len(self._text):
            raise PolicyError(f"unexpected input at position {self._pos}")
        if not isinstance(node, _Gate):
            raise PolicyError("policy must be a gate expression")
        return self.msp_ids

    def _skip_spaces(self) -> None:
        while self._pos < len(self._text) and self._text[self._pos].isspace():
            self._pos += 1

    def _peek(self) -> str:
        self._skip_spaces()
        return self._text[self._pos] if self._pos < len(self._text) else ""

    def _expect(self, char: str) -> None:
        if self._peek() != char:
            raise PolicyError(f"expected {char!r} at position {self._pos}")
        self._pos += 1

    def _expression(self) -> Any:
        char = self._peek()
        if char in ("'", '"'):
            return self._string(char)
        number = _NUMBER.match(self._text, self._pos)
        if number:
            self._pos = number.end()
            return float(number.group())
        name = _NAME.match(self._text, self._pos)
        if name:
            self._pos = name.end()
            return self._call(name.group())
        raise PolicyError(f"unexpected input at position {self._pos}")

    def _string(self, quote: str) -> str:
        end = self._text.find(quote, self._pos + 1)
        if end < 0:
            raise PolicyError(f"unterminated string at position {self._pos}")
        value = self._text[self._pos + 1 : end]
        self._pos = end + 1
        return value

    def _call(self, name: str) -> _Gate:
        if name not in _AND_GATES | _OR_GATES | _OUT_OF_GATES:
            raise PolicyError(f"unknown function {name}")
        self._expect("(")
        args: list[Any] = []
        if self._peek() != ")":
            args.append(self._expression())
            while self._peek() == ",":
                self._pos += 1
                args.append(self._expression())
        self._expect(")")
        return self._gate(name, args)

    def _gate(self, name: str, args: list[Any]) -> _Gate:
        if name in _AND_GATES:
            threshold, principals = len(args), args
        elif name in _OR_GATES:
            threshold, principals = 1, args
        else:
            if not args or not isinstance(args[0], float):
                raise PolicyError("unrecognized type, expected a number")
            threshold, principals = int(args[0]), args[1:]

        if not principals:
            raise PolicyError(f"{name} expects at least one principal")
        if threshold < 0 or threshold > len(principals) + 1:
            raise PolicyError(
                f"invalid t-out-of-n predicate, t {threshold}, n {len(principals)}"
            )

        for principal in principals:
            if isinstance(principal, _Gate):
                continue
            if not isinstance(principal, str):
                raise PolicyError(f"unexpected type {type(principal).__name__}")
            match = _PRINCIPAL.match(principal)
            if match is None:
                raise PolicyError(f"error parsing principal {principal}")
            self.msp_ids.append(match.group(1))
        return _Gate()


def msps_from_policy(policy: str) -> list[str]:
    """Return the MSP id of every principal of a signature policy, in policy order."""
    try:
        return _PolicyParser(policy).parse()
    except PolicyError as exc:
        raise PolicyError(f"failed to parse policy: {exc}") from exc


def _lookup(raw: Mapping, key: str) -> Any:
    for name, value in raw.items():
        if isinstance(name, str) and name.lower() == key:
            return value
    return None


def _as_str(value: Any, name: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise TypeError(f"'{name}' expected a string, got {type(value).__name__}")
    return value


def _as_list(value: Any, name: str) -> list:
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        raise TypeError(f"'{name}' expected a list, got {type(value).__name__}")
    return list(value)


def _as_mapping(value: Any, name: str) -> Mapping:
    if not isinstance(value, Mapping):
        raise TypeError(f"'{name}' expected a map, got {type(value).__name__}")
    return value


def _decode_endpoint(raw: Any) -> EndpointConfig:
    if isinstance(raw, EndpointConfig):
        return raw
    raw = _as_mapping(raw, "orderers")
    tls_raw = _lookup(raw, "tlsconfig")
    tls_config = TlsConfig()
    if tls_raw is not None:
        enabled = _lookup(_as_mapping(tls_raw, "tlsconfig"), "enabled")
        if enabled is not None and not isinstance(enabled, bool):
            raise TypeError(f"'enabled' expected a bool, got {type(enabled).__name__}")
        tls_config = TlsConfig(enabled=bool(enabled))
    return EndpointConfig(
        host=_as_str(_lookup(raw, "host"), "host"),
        host_override=_as_str(_lookup(raw, "hostoverride"), "hostoverride"),
        tls_config=tls_config,
    )


def _decode_chaincode(raw: Any) -> DiscoveryChaincode:
    if isinstance(raw, DiscoveryChaincode):
        return raw
    raw = _as_mapping(raw, "chaincodes")
    return DiscoveryChaincode(
        name=_as_str(_lookup(raw, "name"), "name"),
        version=_as_str(_lookup(raw, "version"), "version"),
        policy=_as_str(_lookup(raw, "policy"), "policy"),
    )


def _decode_channel(raw: Any) -> DiscoveryChannel:
    if isinstance(raw, DiscoveryChannel):
        return raw
    raw = _as_mapping(raw, "channels")
    return DiscoveryChannel(
        name=_as_str(_lookup(raw, "name"), "name"),
        chaincodes=[
            _decode_chaincode(c) for c in _as_list(_lookup(raw, "chaincodes"), "chaincodes")
        ],
        orderers=[_decode_endpoint(o) for o in _as_list(_lookup(raw, "orderers"), "orderers")],
    )


class LocalConfigProvider:
    """Answers discovery queries from channels listed in configuration."""

    def __init__(self, channels: list[DiscoveryChannel], tls_mapper: ConnectionMapper) -> None:
        self.channels = channels
        self.tls_mapper = tls_mapper

    def chaincode(self, channel_name: str, cc_name: str) -> ChaincodeTLSView:
        """Return orderers and endorsing MSPs of a chaincode on a channel."""
        channel_found = False
        for channel in self.channels:
            if channel.name != channel_name:
                continue
            channel_found = True
            for cc in channel.chaincodes:
                if cc.name != cc_name:
                    continue
                info = ChaincodeInfo(cc.name, cc.version, channel_name)
                for orderer in channel.orderers:
                    info.add_orderer("", orderer.host)
                for msp_id in msps_from_policy(cc.policy):
                    # peers are expected to be in the pool already; config holds no address
                    info.add_endorser(msp_id, "")
                return ChaincodeTLSView(info, self.tls_mapper)

        if channel_found:
            raise NoChaincodesError()
        raise ChannelNotFoundError()

    def channel(self, channel_name: str) -> ChannelTLSView:
        """Return the orderers of a channel."""
        for channel in self.channels:
            if channel.name == channel_name:
                info = ChannelInfo(channel_name)
                for orderer in channel.orderers:
                    info.add_orderer("", orderer.host)
                return ChannelTLSView(info, self.tls_mapper)
        raise ChannelNotFoundError()

    def local_peers(self):
        """Local configuration lists no peers, so this always fails."""
        raise DiscoveryError("local peers are not available from local configuration")


def new_local_config_provider(
    options: Mapping[str, Any] | None, tls_mapper: ConnectionMapper
) -> LocalConfigProvider:
    """Build a provider from discovery options holding a ``channels`` list."""
    try:
        if options is None:
            channels: list[DiscoveryChannel] = []
        else:
            options = _as_mapping(options, "options")
            channels = [
                _decode_channel(c) for c in _as_list(_lookup(options, "channels"), "channels")
            ]
    except (TypeError, ValueError) as exc:
        raise DiscoveryError(f"decode params: {exc}") from exc
    return LocalConfigProvider(channels, tls_mapper)