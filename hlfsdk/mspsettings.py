"""MSP settings as they appear in client configuration."""

from __future__ import annotations

from dataclasses import dataclass

from hlfsdk.identity import Identity
from hlfsdk.msp import MSPConfig, msp_from_path


class MSPSettingsError(ValueError):
    """MSP settings are incomplete or name no signer."""


@dataclass(frozen=True)
class MSPSettings:
    """Where an MSP's identity comes from.

    ``sign_cert`` and ``sign_key`` take precedence over ``sign_cert_path`` and
    ``sign_key_path``, which take precedence over ``path``.
    """

    id: str = ""
    path: str = ""
    sign_cert_path: str = ""
    sign_key_path: str = ""
    sign_cert: bytes = b""
    sign_key: bytes = b""

    def signer(self) -> Identity:
        """Load the signing identity only, without the MSP configuration."""
        config = self.msp(skip_config=True)
        if config.signer is None:
            raise MSPSettingsError("signer not found")
        return config.signer

    def msp(self, skip_config: bool = False) -> MSPConfig:
        """Load the MSP these settings describe."""
        if not self.id:
            raise MSPSettingsError("MSP ID is empty")

        if self.sign_cert or self.sign_key:
            if not self.sign_cert:
                raise MSPSettingsError("MSP signcert is empty")
            if not self.sign_key:
                raise MSPSettingsError("MSP signkey is empty")
            return msp_from_path(
                self.id,
                "",
                sign_cert=self.sign_cert,
                sign_key=self.sign_key,
                skip_config=skip_config,
            )

        if self.sign_cert_path or self.sign_key_path:
            if not self.sign_cert_path:
                raise MSPSettingsError("MSP signcert path is empty")
            if not self.sign_key_path:
                raise MSPSettingsError("MSP signkey path is empty")
            return msp_from_path(
                self.id,
                "",
                sign_cert_path=self.sign_cert_path,
                sign_key_path=self.sign_key_path,
                skip_config=skip_config,
            )

        if not self.path:
            raise MSPSettingsError("MSP path is empty")

        return msp_from_path(self.id, self.path, skip_config=skip_config)