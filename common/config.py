"""
Session configuration for the trusted-dealer and distributed-dealer flows.
"""
import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class ThresholdPolicy(Enum):
    """
    When a DKG participant stops collecting packages for the current round.

    STRICT advances once strictly more than min_signers peer packages are held,
    i.e. min_signers + 1 of them. This is one more than "min_signers including
    oneself" and only matches the DKG primitives, which want max_signers - 1
    packages, when max_signers == min_signers + 2. ALL_PEERS waits for exactly
    max_signers - 1 peer packages.
    """
    STRICT = "strict"
    ALL_PEERS = "all_peers"

    def required(self, min_signers: int, max_signers: int) -> int:
        if self is ThresholdPolicy.STRICT:
            return min_signers + 1
        return max_signers - 1

    def is_met(self, received: int, min_signers: int, max_signers: int) -> bool:
        if self is ThresholdPolicy.STRICT:
            return received > min_signers
        return received >= max_signers - 1


# Defaults, overridable through the environment
SESSION_CONFIG: Dict[str, Any] = {
    "threshold_policy": ThresholdPolicy.STRICT.value,
    # Per-subscriber backlog of the broadcast bus; None sizes it from max_signers
    "broadcast_capacity": None,
    # Seconds the session driver waits for every DKG participant
    "dkg_timeout": 30.0,
    # Fail a distributed run when any participant fails, not only the leader
    "require_all_participants": True,
}

MIN_BROADCAST_CAPACITY = 1000


def _env_flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class SessionConfig:
    threshold_policy: ThresholdPolicy = ThresholdPolicy(SESSION_CONFIG["threshold_policy"])
    broadcast_capacity: Optional[int] = SESSION_CONFIG["broadcast_capacity"]
    dkg_timeout: float = SESSION_CONFIG["dkg_timeout"]
    require_all_participants: bool = SESSION_CONFIG["require_all_participants"]

    def capacity_for(self, max_signers: int) -> int:
        if self.broadcast_capacity is not None:
            return self.broadcast_capacity
        return max(MIN_BROADCAST_CAPACITY, 4 * max_signers)

    @classmethod
    def from_env(cls, environ=None) -> "SessionConfig":
        """
        Build a config from THRESHOLD_POLICY, BROADCAST_CAPACITY, DKG_TIMEOUT and
        REQUIRE_ALL_PARTICIPANTS, falling back to SESSION_CONFIG.
        """
        environ = os.environ if environ is None else environ
        config = cls()

        policy = environ.get("THRESHOLD_POLICY")
        if policy:
            try:
                config.threshold_policy = ThresholdPolicy(policy.strip().lower())
            except ValueError:
                raise ValueError(
                    f"THRESHOLD_POLICY must be one of {[p.value for p in ThresholdPolicy]}, got {policy!r}"
                ) from None

        capacity = environ.get("BROADCAST_CAPACITY")
        if capacity:
            config.broadcast_capacity = int(capacity)
            if config.broadcast_capacity < 1:
                raise ValueError("BROADCAST_CAPACITY must be positive")

        timeout = environ.get("DKG_TIMEOUT")
        if timeout:
            config.dkg_timeout = float(timeout)

        require_all = environ.get("REQUIRE_ALL_PARTICIPANTS")
        if require_all:
            config.require_all_participants = _env_flag(require_all)

        return config
