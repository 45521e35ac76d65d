import asyncio
import random

from common.config import ThresholdPolicy
from common.errors import CryptoError, ProtocolError, SessionAborted
from common.identifier import Identifier
from distributed_keygen.broadcast import BroadcastChannel
from distributed_keygen.dkg import Round2Package
from distributed_keygen.keygen_protocol import DkgParticipant
from distributed_keygen.messages import AwaitingRound1, AwaitingRound2, Round1Message, Round2Message


def make_participants(n, t, policy=ThresholdPolicy.STRICT, seed=0):
    channel = BroadcastChannel(capacity=100)
    rng = random.Random(seed)
    participants = [
        DkgParticipant(n, t, channel, threshold_policy=policy, identifier=Identifier.from_int(i), rng=rng)
        for i in range(1, n + 1)
    ]
    return channel, participants


def pump(participants):
    """Deliver every buffered message until no participant has anything left to read."""
    progressed = True
    while progressed:
        progressed = False
        for participant in participants:
            while not participant.finished:
                message = participant.subscription.try_recv()
                if message is None:
                    break
                participant.handle(message)
                progressed = True


def test_run_protocol_successful():
    print("[Test 1] Five participants, threshold 3, reach the same public key package")
    channel, participants = make_participants(5, 3)
    for participant in participants:
        participant.start()
    pump(participants)

    assert all(p.finished for p in participants), "Every participant should finish"
    public_key_package = participants[0].output.public_key_package
    for participant in participants:
        output = participant.output
        assert output.public_key_package == public_key_package
        assert output.public_key_package.to_bytes() == public_key_package.to_bytes()
        assert output.key_package.identifier == participant.id
        assert output.key_package.verifying_share == public_key_package.verifying_shares[participant.id]
        assert output.key_package.verifying_key == public_key_package.verifying_key
        assert participant.state is None
    print("✓ [Test 1] Passed")


def test_self_messages_never_counted():
    print("[Test 2] A participant's own round 1 package is never accumulated")
    _, participants = make_participants(3, 2)
    for participant in participants:
        participant.start()
    pump(participants)

    # strict policy needs 3 peer packages, only 2 peers exist: everyone stays in round 1
    for participant in participants:
        state = participant.state
        assert isinstance(state, AwaitingRound1)
        assert participant.id not in state.received_round1
        assert len(state.received_round1) == 2
    print("✓ [Test 2] Passed")


def test_all_peers_policy_completes_where_strict_stalls():
    _, participants = make_participants(3, 2, policy=ThresholdPolicy.ALL_PEERS)
    for participant in participants:
        participant.start()
    pump(participants)
    assert all(p.finished for p in participants)


def test_all_peers_policy_is_consistent_for_any_threshold():
    for n, t in ((2, 1), (2, 2), (4, 1), (4, 4)):
        _, participants = make_participants(n, t, policy=ThresholdPolicy.ALL_PEERS, seed=n * 10 + t)
        for participant in participants:
            participant.start()
        pump(participants)

        assert all(p.finished for p in participants), f"n={n}, t={t} should finish"
        public_key_package = participants[0].output.public_key_package
        for participant in participants:
            assert participant.output.public_key_package == public_key_package
            assert participant.output.key_package.verifying_share == public_key_package.verifying_shares[participant.id]


def test_duplicate_round1_overwrites():
    print("[Test 3] Duplicate round 1 packages overwrite instead of appending")
    channel, (alice, bob, carol) = make_participants(3, 1)
    alice.start()
    bob.start()
    carol.start()
    watcher = channel.subscribe()

    messages = []
    while True:
        message = alice.subscription.try_recv()
        if message is None:
            break
        messages.append(message)
    bob_message = next(m for m in messages if m.sender_id == bob.id)
    carol_message = next(m for m in messages if m.sender_id == carol.id)

    alice.handle(bob_message)
    alice.handle(bob_message)
    assert isinstance(alice.state, AwaitingRound1)
    assert len(alice.state.received_round1) == 1

    # the second distinct sender crosses the strict threshold (> 1) exactly once
    alice.handle(carol_message)
    assert isinstance(alice.state, AwaitingRound2)
    sent = []
    while True:
        message = watcher.try_recv()
        if message is None:
            break
        sent.append(message)
    round2_sent = [m for m in sent if isinstance(m, Round2Message)]
    assert len(round2_sent) == 2
    assert {m.for_id for m in round2_sent} == {bob.id, carol.id}
    print("✓ [Test 3] Passed")


def _alice_in_round2():
    channel, (alice, bob, carol) = make_participants(3, 1)
    for participant in (alice, bob, carol):
        participant.start()
    while True:
        message = alice.subscription.try_recv()
        if message is None:
            break
        alice.handle(message)
    assert isinstance(alice.state, AwaitingRound2)
    return channel, alice, bob, carol


def test_round2_for_other_participant_ignored():
    print("[Test 4] Round 2 packages addressed to someone else are ignored")
    _, alice, bob, carol = _alice_in_round2()

    alice.handle(Round2Message(sender_id=bob.id, for_id=carol.id, round2_package=Round2Package(signing_share=5)))
    alice.handle(Round2Message(sender_id=alice.id, for_id=alice.id, round2_package=Round2Package(signing_share=6)))

    assert isinstance(alice.state, AwaitingRound2)
    assert alice.state.received_round2 == {}
    print("✓ [Test 4] Passed")


def test_duplicate_round2_overwrites():
    _, alice, bob, _ = _alice_in_round2()
    first = Round2Message(sender_id=bob.id, for_id=alice.id, round2_package=Round2Package(signing_share=5))
    second = Round2Message(sender_id=bob.id, for_id=alice.id, round2_package=Round2Package(signing_share=7))

    alice.handle(first)
    alice.handle(second)

    assert isinstance(alice.state, AwaitingRound2)
    assert alice.state.received_round2 == {bob.id: Round2Package(signing_share=7)}


def test_unexpected_message_is_protocol_error():
    print("[Test 5] A round 2 message in round 1 is a protocol violation")
    _, (alice, bob, _) = make_participants(3, 1)
    alice.start()
    try:
        alice.handle(Round2Message(sender_id=bob.id, for_id=alice.id, round2_package=Round2Package(signing_share=1)))
        raise AssertionError("Expected ProtocolError")
    except ProtocolError as e:
        assert "AwaitingRound1" in str(e)
        assert "Round2" in str(e)
    print("✓ [Test 5] Passed")


def test_round1_message_in_round2_is_protocol_error():
    _, alice, bob, _ = _alice_in_round2()
    try:
        alice.handle(Round1Message(sender_id=bob.id, round1_package=None))
        raise AssertionError("Expected ProtocolError")
    except ProtocolError as e:
        assert "AwaitingRound2" in str(e)
        assert "Round1" in str(e)


def test_finished_participant_ignores_messages():
    print("[Test 6] Messages after completion change nothing")
    _, participants = make_participants(3, 1)
    for participant in participants:
        participant.start()
    pump(participants)
    alice, bob, _ = participants
    output = alice.output
    assert output is not None

    stray = Round2Message(sender_id=bob.id, for_id=alice.id, round2_package=Round2Package(signing_share=1))
    assert alice.handle(stray) is output
    assert alice.handle(Round1Message(sender_id=bob.id, round1_package=None)) is output
    assert alice.output is output
    assert alice.state is None
    print("✓ [Test 6] Passed")


def test_single_participant_finishes_on_start():
    _, (solo,) = make_participants(1, 1, policy=ThresholdPolicy.ALL_PEERS)
    output = solo.start()
    assert output is not None
    assert output.public_key_package.verifying_key == output.key_package.verifying_share


def test_invalid_parameters_raise_crypto_error():
    channel = BroadcastChannel()
    participant = DkgParticipant(3, 0, channel, identifier=Identifier.from_int(1))
    try:
        participant.start()
        raise AssertionError("Expected CryptoError for min_signers = 0")
    except CryptoError:
        pass


def test_channel_closed_before_completion_aborts():
    print("[Test 7] Closing the channel mid-run aborts the participant")

    async def scenario():
        channel, (alice, _, _) = make_participants(3, 2)
        task = asyncio.ensure_future(alice.run())
        await asyncio.sleep(0.01)
        assert not task.done()
        channel.close()
        await asyncio.wait_for(task, timeout=1)

    try:
        asyncio.run(scenario())
        raise AssertionError("Expected SessionAborted")
    except SessionAborted:
        print("✓ [Test 7] Passed")


def test_concurrent_run():
    print("[Test 8] Participants running as tasks all finish")

    async def scenario():
        _, participants = make_participants(5, 3)
        return await asyncio.wait_for(asyncio.gather(*(p.run() for p in participants)), timeout=60)

    outputs = asyncio.run(scenario())
    assert len(outputs) == 5
    assert all(o.public_key_package == outputs[0].public_key_package for o in outputs)
    print("✓ [Test 8] Passed")


if __name__ == "__main__":
    test_run_protocol_successful()
    test_self_messages_never_counted()
    test_all_peers_policy_completes_where_strict_stalls()
    test_all_peers_policy_is_consistent_for_any_threshold()
    test_duplicate_round1_overwrites()
    test_round2_for_other_participant_ignored()
    test_duplicate_round2_overwrites()
    test_unexpected_message_is_protocol_error()
    test_round1_message_in_round2_is_protocol_error()
    test_finished_participant_ignores_messages()
    test_single_participant_finishes_on_start()
    test_invalid_parameters_raise_crypto_error()
    test_channel_closed_before_completion_aborts()
    test_concurrent_run()
