"""
Messages exchanged on the broadcast bus and the per-participant DKG states.
"""
from dataclasses import dataclass, field
from typing import Dict, Union

from common.identifier import Identifier
from distributed_keygen.dkg import Round1Package, Round1SecretPackage, Round2Package, Round2SecretPackage
from distributed_keygen.keys import KeyPackage, PublicKeyPackage


@dataclass(frozen=True)
class Round1Message:
    """Broadcast to everyone."""
    sender_id: Identifier
    round1_package: Round1Package


@dataclass(frozen=True)
class Round2Message:
    """
    Broadcast to everyone but meant for for_id only. Nothing ties sender_id or
    for_id to the real origin or destination; receivers simply filter on for_id.
    """
    sender_id: Identifier
    for_id: Identifier
    round2_package: Round2Package


Message = Union[Round1Message, Round2Message]


@dataclass(frozen=True)
class AwaitingRound1:
    local_secret: Round1SecretPackage = field(repr=False)
    received_round1: Dict[Identifier, Round1Package]


@dataclass(frozen=True)
class AwaitingRound2:
    local_secret: Round2SecretPackage = field(repr=False)
    received_round1: Dict[Identifier, Round1Package]
    received_round2: Dict[Identifier, Round2Package]


DkgState = Union[AwaitingRound1, AwaitingRound2]


@dataclass(frozen=True)
class DkgOutput:
    """Terminal result of one participant's DKG run."""
    key_package: KeyPackage
    public_key_package: PublicKeyPackage


def describe(item) -> str:
    """Short description of a state or message for error and log lines."""
    if isinstance(item, AwaitingRound1):
        return f"AwaitingRound1(received_round1={len(item.received_round1)})"
    if isinstance(item, AwaitingRound2):
        return (
            f"AwaitingRound2(received_round1={len(item.received_round1)}, "
            f"received_round2={len(item.received_round2)})"
        )
    if isinstance(item, Round1Message):
        return f"Round1(sender_id={item.sender_id})"
    if isinstance(item, Round2Message):
        return f"Round2(sender_id={item.sender_id}, for_id={item.for_id})"
    return repr(item)
