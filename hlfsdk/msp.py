"""MSP loaded from disk: signer, admin and user identities plus its configuration."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from hlfsdk.identity import (
    Identity,
    IdentityError,
    admin_certs_path,
    first_from_path,
    from_bytes,
    from_cert_key_path,
    keystore_path,
    list_from_path,
    sign_certs_path,
)
from hlfsdk.mspconfig import (
    FabricMSPConfig,
    MSPFiles,
    fabric_msp_config_from_path,
    serialize_msp,
)

_log = logging.getLogger(__name__)


@dataclass
class MSPConfig:
    """Identities parsed from an MSP folder, with the folder's configuration."""

    signer: Identity | None = None
    admins: list[Identity] = field(default_factory=list)
    users: list[Identity] = field(default_factory=list)
    msp_config: FabricMSPConfig | None = None

    @property
    def msp_identifier(self) -> str:
        return self.msp_config.name if self.msp_config is not None else ""

    def admin_or_signer(self) -> Identity | None:
        """Return the first admin identity, or the signer when there is none."""
        return self.admins[0] if self.admins else self.signer

    def serialize(self) -> MSPFiles:
        if self.msp_config is None:
            raise IdentityError("msp config is not loaded")
        return serialize_msp(self.msp_config)


def msp_from_config(fabric_msp_config: FabricMSPConfig) -> MSPConfig:
    """Wrap an MSP configuration; there is no signer in that case."""
    return MSPConfig(msp_config=fabric_msp_config)


def msp_from_path(
    msp_id: str,
    msp_path: str,
    *,
    admin_msp_path: str = "",
    sign_cert_path: str = "",
    sign_key_path: str = "",
    sign_cert: bytes = b"",
    sign_key: bytes = b"",
    user_paths: Iterable[str] = (),
    skip_config: bool = False,
) -> MSPConfig:
    """Load an MSP from the filesystem.

    Explicit certificate and key contents take precedence over their paths,
    which take precedence over the signcerts folder of ``msp_path``.
    """
    admin_certs = admin_certs_path(msp_path)
    sign_certs = sign_certs_path(msp_path)
    keystore = keystore_path(msp_path)
    _log.debug("load msp id=%s path=%s", msp_id, msp_path)

    config = MSPConfig()

    if sign_cert and sign_key:
        config.signer = from_bytes(msp_id, sign_cert, sign_key)
    elif sign_cert_path and sign_key_path:
        config.signer = from_cert_key_path(msp_id, sign_cert_path, sign_key_path)

    if admin_msp_path:
        _log.debug("load admin identities from separate msp path %s", admin_msp_path)
        try:
            config.admins = list_from_path(
                msp_id, sign_certs_path(admin_msp_path), keystore_path(admin_msp_path)
            )
        except (IdentityError, OSError) as exc:
            raise IdentityError(f"read admin identity from={admin_msp_path}: {exc}") from exc
    elif admin_certs:
        try:
            config.admins = list_from_path(msp_id, admin_certs, keystore)
        except FileNotFoundError:
            config.admins = []
        except (IdentityError, OSError) as exc:
            raise IdentityError(f"read admin identity from={admin_certs}: {exc}") from exc
    _log.debug("admin identities loaded: %d", len(config.admins))

    for user_path in user_paths:
        try:
            config.users.extend(list_from_path(msp_id, user_path, keystore))
        except (IdentityError, OSError) as exc:
            raise IdentityError(f"read users identity from={user_path}: {exc}") from exc

    if sign_certs and config.signer is None:
        try:
            config.signer = first_from_path(msp_id, sign_certs, keystore)
        except (IdentityError, OSError) as exc:
            raise IdentityError(f"read signer identity from={sign_certs}: {exc}") from exc

    if not skip_config:
        config.msp_config = fabric_msp_config_from_path(msp_id, msp_path)

    return config