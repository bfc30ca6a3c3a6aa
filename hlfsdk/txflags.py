"""Per-transaction validation codes of a block."""

from __future__ import annotations

import enum


class TxValidationCode(enum.IntEnum):
    """Validation result a committer assigns to a transaction."""

    VALID = 0
    NIL_ENVELOPE = 1
    BAD_PAYLOAD = 2
    BAD_COMMON_HEADER = 3
    BAD_CREATOR_SIGNATURE = 4
    INVALID_ENDORSER_TRANSACTION = 5
    INVALID_CONFIG_TRANSACTION = 6
    UNSUPPORTED_TX_PAYLOAD = 7
    BAD_PROPOSAL_TXID = 8
    DUPLICATE_TXID = 9
    ENDORSEMENT_POLICY_FAILURE = 10
    MVCC_READ_CONFLICT = 11
    PHANTOM_READ_CONFLICT = 12
    UNKNOWN_TX_TYPE = 13
    TARGET_CHAIN_NOT_FOUND = 14
    MARSHAL_TX_ERROR = 15
    NIL_TXACTION = 16
    EXPIRED_CHAINCODE = 17
    CHAINCODE_VERSION_CONFLICT = 18
    BAD_HEADER_EXTENSION = 19
    BAD_CHANNEL_HEADER = 20
    BAD_RESPONSE_PAYLOAD = 21
    BAD_RWSET = 22
    ILLEGAL_WRITESET = 23
    INVALID_WRITESET = 24
    INVALID_CHAINCODE = 25
    NOT_VALIDATED = 254
    INVALID_OTHER_REASON = 255


class ValidationFlags(bytearray):
    """One validation code byte per transaction of a block."""

    def set_flag(self, tx_index: int, flag: int) -> None:
        """Assign a validation code to the transaction at ``tx_index``."""
        self[tx_index] = int(flag)

    def flag(self, tx_index: int) -> TxValidationCode | int:
        """Return the validation code of the transaction at ``tx_index``.

        Codes without a known name are returned as plain integers.
        """
        value = self[tx_index]
        try:
            return TxValidationCode(value)
        except ValueError:
            return value

    def is_valid(self, tx_index: int) -> bool:
        return self.is_set_to(tx_index, TxValidationCode.VALID)

    def is_invalid(self, tx_index: int) -> bool:
        return not self.is_valid(tx_index)

    def is_set_to(self, tx_index: int, flag: int) -> bool:
        return self.flag(tx_index) == flag


def new_flags_with_values(size: int, value: int) -> ValidationFlags:
    """Create ``size`` flags, each set to ``value``."""
    return ValidationFlags(bytes([int(value)]) * size)


def new_flags(size: int) -> ValidationFlags:
    """Create ``size`` flags, each set to NOT_VALIDATED."""
    return new_flags_with_values(size, TxValidationCode.NOT_VALIDATED)