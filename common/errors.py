"""Error hierarchy shared by the keygen, signing and session layers."""

from typing import Any, Dict, Optional


class ThresholdSignatureError(Exception):
    """Base class for every error raised by this package."""


class CryptoError(ThresholdSignatureError, ValueError):
    """
    Raised by the primitive layer for malformed or inconsistent input.

    Never retried: the same input fails the same way.
    """

    def __init__(self, message: str, culprit: Optional[Any] = None):
        super().__init__(message)
        self.culprit = culprit


class InvalidParameters(CryptoError):
    pass


class IncorrectNumberOfPackages(CryptoError):
    pass


class InvalidProofOfKnowledge(CryptoError):
    pass


class InvalidSecretShare(CryptoError):
    pass


class IncorrectCommitment(CryptoError):
    pass


class IncorrectNumberOfCommitments(CryptoError):
    pass


class UnknownIdentifier(CryptoError):
    pass


class InvalidSignatureShare(CryptoError):
    pass


class ProtocolError(ThresholdSignatureError):
    """A participant saw a message or request its current state cannot accept."""


class SessionAborted(ThresholdSignatureError):
    """The transport closed before the participant reached its final state."""


class SessionTimeout(SessionAborted):
    pass


class VerificationFailure(ThresholdSignatureError):
    """The aggregated signature did not verify although every share was honest."""


class ParticipantFailure(ThresholdSignatureError):
    """One or more non-leader participants of a distributed run failed."""

    def __init__(self, failures: Dict[Any, BaseException]):
        self.failures = failures
        summary = ", ".join(f"{pid}: {exc!r}" for pid, exc in failures.items())
        super().__init__(f"{len(failures)} participant(s) failed: {summary}")
