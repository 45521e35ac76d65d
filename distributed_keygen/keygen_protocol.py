"""
Participant-side state machine of the distributed key generation.

Each participant owns one state slot holding either AwaitingRound1,
AwaitingRound2 or, once finished, nothing (the DkgOutput is kept instead).
Handling a message takes the state out of the slot, builds the successor from
it and puts the successor back, so a half-updated state is never observable.
"""
import logging
import secrets
from typing import Optional

from common.config import ThresholdPolicy
from common.errors import ProtocolError, SessionAborted
from common.identifier import Identifier
from distributed_keygen.broadcast import BroadcastChannel
from distributed_keygen.dkg import dkg_round1, dkg_round2, dkg_round3
from distributed_keygen.messages import (
    AwaitingRound1, AwaitingRound2, DkgOutput, DkgState, Message,
    Round1Message, Round2Message, describe,
)

logger = logging.getLogger(__name__)

_SYSTEM_RANDOM = secrets.SystemRandom()


class ParticipantLogAdapter(logging.LoggerAdapter):
    def process(self, msg, kwargs):
        return f"[Participant {self.extra['participant']}] {msg}", kwargs


class DkgParticipant:
    """
    One DKG participant. Subscribes to the channel on construction, so every
    participant of a session must be created before any of them starts.
    """

    def __init__(
        self,
        max_signers: int,
        min_signers: int,
        channel: BroadcastChannel,
        threshold_policy: ThresholdPolicy = ThresholdPolicy.STRICT,
        identifier: Optional[Identifier] = None,
        rng=None,
    ) -> None:
        if identifier is None:
            seed = f"id-{(rng or _SYSTEM_RANDOM).getrandbits(64)}"
            identifier = Identifier.derive(seed.encode())
        self.id = identifier
        self.max_signers = max_signers
        self.min_signers = min_signers
        self.threshold_policy = threshold_policy
        self.rng = rng

        self._channel = channel
        self.subscription = channel.subscribe()
        self._state: Optional[DkgState] = None
        self.output: Optional[DkgOutput] = None

        self.log = ParticipantLogAdapter(logger, {"participant": str(identifier)})

    @property
    def state(self) -> Optional[DkgState]:
        return self._state

    @property
    def finished(self) -> bool:
        return self.output is not None

    def start(self) -> Optional[DkgOutput]:
        """
        Run part 1 and publish the round 1 package. Returns the output if the
        threshold policy needs no peer packages at all.
        """
        if self._state is not None or self.output is not None:
            raise ProtocolError(f"Participant {self.id} has already started")

        secret_package, round1_package = dkg_round1(self.id, self.max_signers, self.min_signers, rng=self.rng)
        self._channel.publish(Round1Message(sender_id=self.id, round1_package=round1_package))
        self._state = AwaitingRound1(local_secret=secret_package, received_round1={})
        self.log.debug("Published round 1 package")

        return self._advance()

    def handle(self, message: Message) -> Optional[DkgOutput]:
        """
        Process one message. Returns the DkgOutput once the participant has
        finished; messages arriving after that are ignored.
        """
        if self.output is not None:
            self.log.debug("Finished, ignoring %s", describe(message))
            return self.output
        if self._state is None:
            # not started yet, or a previous transition failed and consumed the state
            raise ProtocolError(f"Participant {self.id} has no live state for {describe(message)}")

        state, self._state = self._state, None
        self._state = self._accumulate(state, message)
        return self._advance()

    def _accumulate(self, state: DkgState, message: Message) -> DkgState:
        if isinstance(state, AwaitingRound1) and isinstance(message, Round1Message):
            if message.sender_id == self.id:
                return state
            received = dict(state.received_round1)
            received[message.sender_id] = message.round1_package
            self.log.debug("Round 1 packages: %d, need %d",
                           len(received), self.threshold_policy.required(self.min_signers, self.max_signers))
            return AwaitingRound1(local_secret=state.local_secret, received_round1=received)

        if isinstance(state, AwaitingRound2) and isinstance(message, Round2Message):
            # NOTE: no authentication, for_id only says which participant should keep the package
            if message.sender_id == self.id or message.for_id != self.id:
                return state
            received = dict(state.received_round2)
            received[message.sender_id] = message.round2_package
            self.log.debug("Round 2 packages: %d, need %d",
                           len(received), self.threshold_policy.required(self.min_signers, self.max_signers))
            return AwaitingRound2(
                local_secret=state.local_secret,
                received_round1=state.received_round1,
                received_round2=received,
            )

        raise ProtocolError(f"Unexpected message {describe(message)} for state {describe(state)}")

    def _threshold_met(self, received: int) -> bool:
        return self.threshold_policy.is_met(received, self.min_signers, self.max_signers)

    def _advance(self) -> Optional[DkgOutput]:
        while True:
            state = self._state

            if isinstance(state, AwaitingRound1) and self._threshold_met(len(state.received_round1)):
                self._state = None
                round2_secret, round2_packages = dkg_round2(state.local_secret, state.received_round1)
                for for_id, package in round2_packages.items():
                    self._channel.publish(Round2Message(sender_id=self.id, for_id=for_id, round2_package=package))
                self._state = AwaitingRound2(
                    local_secret=round2_secret,
                    received_round1=state.received_round1,
                    received_round2={},
                )
                self.log.info("Round 1 threshold reached with %d packages, sent %d round 2 packages",
                              len(state.received_round1), len(round2_packages))
                continue

            if isinstance(state, AwaitingRound2) and self._threshold_met(len(state.received_round2)):
                self._state = None
                key_package, public_key_package = dkg_round3(
                    state.local_secret, state.received_round1, state.received_round2
                )
                self.output = DkgOutput(key_package=key_package, public_key_package=public_key_package)
                self.subscription.close()
                self.log.info("Key generation complete")
                return self.output

            return None

    async def run(self) -> DkgOutput:
        """
        Drive the participant from its own subscription until it finishes.

        Raises:
            SessionAborted: the channel closed before the key package was derived.
            ProtocolError: a message arrived that the current state cannot accept.
            CryptoError: a primitive rejected the accumulated packages.
        """
        try:
            if self._state is None and self.output is None:
                self.start()
            while self.output is None:
                try:
                    message = await self.subscription.recv()
                except SessionAborted as exc:
                    self.log.warning("Channel closed in state %s", describe(self._state))
                    raise SessionAborted(
                        f"Participant {self.id} lost the channel before finishing key generation"
                    ) from exc
                self.handle(message)
            return self.output
        finally:
            self.subscription.close()
