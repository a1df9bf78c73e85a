"""
Copyright (c) 2009 Satoshi Nakamoto
Distributed under the MIT/X11 software license

Error categories raised by scriptlab
"""

from typing import Optional

__all__ = [
    "ScriptlabError",
    "ParseError",
    "OutOfRangeError",
    "OwnershipError",
    "FundsError",
    "InsufficientFundsError",
    "DustError",
    "ExecutionError",
    "AcceptanceError",
    "ConsistencyError",
    "ContextError",
    "ServiceError",
    "ParameterError",
]


class ScriptlabError(Exception):
    """
    Base class for every error raised by this package
    """

    pass


class ParseError(ScriptlabError):
    """
    Malformed ASM, hex, script bytes or transaction bytes
    """

    def __init__(self, message: str, position: Optional[int] = None):
        if position is not None:
            message = f"{message} (at byte {position})"
        super().__init__(message)
        self.position = position


class OutOfRangeError(ScriptlabError):
    """
    An output or input index outside the transaction
    """

    pass


class OwnershipError(ScriptlabError):
    """
    The signing key does not control the referenced output
    """

    pass


class FundsError(ScriptlabError):
    """
    Not enough value to pay the requested amounts and fee
    """

    pass


class InsufficientFundsError(FundsError):
    pass


class DustError(FundsError):
    """
    The resulting payout would fall below the dust floor
    """

    pass


class ExecutionError(ScriptlabError):
    """
    A script operation failed while executing
    """

    pass


class AcceptanceError(ScriptlabError):
    """
    Execution completed but the final stack was rejected
    """

    pass


class ConsistencyError(ScriptlabError):
    """
    A constructed transaction does not carry the unlocking script asked for
    """

    pass


class ContextError(ScriptlabError):
    """
    Missing or malformed transaction context (txids, addresses, keys)
    """

    pass


class ServiceError(ScriptlabError):
    """
    A fetch or broadcast request failed
    """

    pass


class ParameterError(ScriptlabError, ValueError):
    """
    A builder argument outside its valid range (amount, fee rate, lock time)
    """

    pass
