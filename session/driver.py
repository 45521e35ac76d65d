"""
Composition root: runs a whole signing session with either key-establishment
strategy.
"""
import asyncio
import logging
from typing import Dict, List, Optional

from common.config import SessionConfig
from common.errors import ParticipantFailure, ProtocolError, SessionAborted, SessionTimeout
from common.identifier import Identifier
from common.schnorr import Signature
from distributed_keygen.broadcast import BroadcastChannel
from distributed_keygen.keygen_protocol import DkgParticipant
from distributed_keygen.keys import validate_parameters
from distributed_keygen.messages import DkgOutput
from trusted_dealer import coordinator as trusted_dealer
from trusted_dealer.coordinator import Coordinator

logger = logging.getLogger(__name__)


async def _run_participant(
    participant: DkgParticipant,
    channel: BroadcastChannel,
    root_causes: Dict[Identifier, BaseException],
) -> DkgOutput:
    try:
        return await participant.run()
    except SessionAborted:
        raise
    except Exception as exc:
        # the others can no longer finish; closing lets them fail fast instead of waiting for the timeout
        logger.error("Participant %s failed: %r", participant.id, exc)
        root_causes.setdefault(participant.id, exc)
        channel.close()
        raise


def _check_public_key_packages(outputs: Dict[Identifier, DkgOutput]) -> None:
    packages = [output.public_key_package for output in outputs.values()]
    if any(package != packages[0] for package in packages[1:]):
        raise ProtocolError("Participants derived different public key packages")


async def run_distributed_key_generation(
    max_signers: int,
    min_signers: int,
    config: Optional[SessionConfig] = None,
    rng=None,
) -> Dict[Identifier, DkgOutput]:
    """
    Spawn max_signers participants on one broadcast channel and join all of them.

    The first participant is the leader: its failure is raised as the failure
    of the run. If the leader only aborted because a peer failed first and
    closed the channel, the peer's error is raised in its place, wrapped in
    ParticipantFailure when config.require_all_participants is set. Failures
    of the other participants after a successful leader raise
    ParticipantFailure when config.require_all_participants is set, and are
    only logged otherwise.

    Returns:
        A dictionary {identifier: DkgOutput} of every participant that finished.
    """
    config = config or SessionConfig()
    validate_parameters(max_signers, min_signers)

    channel = BroadcastChannel(config.capacity_for(max_signers))
    participants: List[DkgParticipant] = [
        DkgParticipant(max_signers, min_signers, channel, threshold_policy=config.threshold_policy, rng=rng)
        for _ in range(max_signers)
    ]
    if len({p.id for p in participants}) != len(participants):
        raise ProtocolError("Two participants derived the same identifier")

    leader = participants[0]
    logger.info("Starting DKG with %d participants, threshold %d, policy %s, leader %s",
                max_signers, min_signers, config.threshold_policy.value, leader.id)

    root_causes: Dict[Identifier, BaseException] = {}
    tasks = [asyncio.ensure_future(_run_participant(p, channel, root_causes)) for p in participants]
    try:
        results = await asyncio.wait_for(asyncio.gather(*tasks, return_exceptions=True), timeout=config.dkg_timeout)
    except asyncio.TimeoutError:
        pending = [p.id for p in participants if not p.finished]
        raise SessionTimeout(
            f"Key generation did not finish within {config.dkg_timeout}s; {len(pending)} participant(s) still waiting"
        ) from None
    finally:
        channel.close()

    outputs = {}
    failures = {}
    for participant, result in zip(participants, results):
        if isinstance(result, BaseException):
            failures[participant.id] = result
        else:
            outputs[participant.id] = result

    if leader.id in failures:
        if leader.id not in root_causes and root_causes:
            # the leader lost the channel to a peer that failed first
            root_cause = next(iter(root_causes.values()))
            if config.require_all_participants:
                raise ParticipantFailure(failures) from root_cause
            raise root_cause
        raise failures[leader.id]
    if failures:
        if config.require_all_participants:
            raise ParticipantFailure(failures)
        for identifier, exc in failures.items():
            logger.warning("Ignoring failure of participant %s: %r", identifier, exc)

    _check_public_key_packages(outputs)
    return {identifier: outputs[identifier] for identifier in sorted(outputs)}


def sign_via_trusted_dealer(message: bytes, max_signers: int, min_signers: int, rng=None) -> Signature:
    return trusted_dealer.sign(message, max_signers, min_signers, rng=rng)


def sign_via_distributed_dealer(
    message: bytes,
    max_signers: int,
    min_signers: int,
    config: Optional[SessionConfig] = None,
    rng=None,
) -> Signature:
    """
    Establish keys with a DKG run, then sign with every participant that
    finished it. Blocks until both steps are done.
    """
    outputs = asyncio.run(run_distributed_key_generation(max_signers, min_signers, config=config, rng=rng))

    public_key_package = next(iter(outputs.values())).public_key_package
    coordinator = Coordinator.from_key_packages(
        [output.key_package for output in outputs.values()], public_key_package, rng=rng
    )
    return coordinator.sign(message)
