"""
Vote gating pipeline.

Each layer is a predicate returning a GateDecision. Layers are evaluated
lazily in a fixed priority order and the first denial wins:

    Closed -> Throttled -> voted marker -> token Duplicate
           -> fingerprint Duplicate -> commit-race Duplicate

Only the final commit produces durable state.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Mapping, Optional

from ..models.device_binding import DeviceBinding
from ..models.poll import Poll
from .device_binding import DeviceBindingResolver
from .fingerprint import FingerprintHasher
from .fingerprint_block import FingerprintBlockStore
from .rate_limiter import RateLimiter, RateLimitResult
from .vote_commit import CommitOutcome, VoteCommitTransaction


class GateOutcome(str, Enum):
    ALLOWED = "allowed"
    CLOSED = "closed"
    THROTTLED = "throttled"
    DUPLICATE = "duplicate"


@dataclass(frozen=True)
class GateDecision:
    outcome: GateOutcome
    reason: Optional[str] = None
    rate_limit: Optional[RateLimitResult] = None

    @property
    def allowed(self) -> bool:
        return self.outcome is GateOutcome.ALLOWED


ALLOW = GateDecision(GateOutcome.ALLOWED)


def check_poll_open(poll: Optional[Poll]) -> GateDecision:
    if poll is None or not poll.is_open:
        return GateDecision(GateOutcome.CLOSED, reason="poll_closed")
    return ALLOW


def check_rate_limit(limiter: RateLimiter, identity: str) -> GateDecision:
    result = limiter.check(identity)
    if not result.allowed:
        return GateDecision(GateOutcome.THROTTLED, reason="rate_limited", rate_limit=result)
    return GateDecision(GateOutcome.ALLOWED, rate_limit=result)


def check_voted_marker(marked_binding: Optional[DeviceBinding]) -> GateDecision:
    if marked_binding is not None and marked_binding.has_voted:
        return GateDecision(GateOutcome.DUPLICATE, reason="cookie")
    return ALLOW


def check_binding(binding: DeviceBinding) -> GateDecision:
    if binding.has_voted:
        return GateDecision(GateOutcome.DUPLICATE, reason="token")
    return ALLOW


def check_fingerprint(store: FingerprintBlockStore, poll_id: int, signature: str) -> GateDecision:
    if store.is_blocked(poll_id, signature):
        return GateDecision(GateOutcome.DUPLICATE, reason="fingerprint")
    return ALLOW


def first_denial(*checks: Callable[[], GateDecision]) -> GateDecision:
    """Run checks in order; return the first non-allowed decision, else the last decision."""
    decision = ALLOW
    for check in checks:
        decision = check()
        if not decision.allowed:
            return decision
    return decision


@dataclass
class VoteAttempt:
    poll: Optional[Poll]
    option: int
    identity: str
    voter_hash: str
    server_signals: Mapping[str, Any]
    client_signals: Optional[Mapping[str, Any]] = None
    presented_token: Optional[str] = None
    voted_marker_token: Optional[str] = None


@dataclass
class VoteResult:
    decision: GateDecision
    rate_limit: Optional[RateLimitResult] = None
    binding: Optional[DeviceBinding] = None
    raw_token: Optional[str] = None
    token_created: bool = False
    vote_id: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.decision.allowed


class VotePipeline:
    def __init__(
        self,
        limiter: RateLimiter,
        hasher: FingerprintHasher,
        resolver: Optional[DeviceBindingResolver] = None,
        block_store: Optional[FingerprintBlockStore] = None,
        committer: Optional[VoteCommitTransaction] = None,
    ):
        self.limiter = limiter
        self.hasher = hasher
        self.resolver = resolver or DeviceBindingResolver()
        self.block_store = block_store or FingerprintBlockStore()
        self.committer = committer or VoteCommitTransaction(self.block_store)

    def submit(self, attempt: VoteAttempt) -> VoteResult:
        result = VoteResult(decision=ALLOW)

        def rate_gate() -> GateDecision:
            decision = check_rate_limit(self.limiter, attempt.identity)
            result.rate_limit = decision.rate_limit
            return decision

        def marker_gate() -> GateDecision:
            if not attempt.voted_marker_token:
                return ALLOW
            return check_voted_marker(self.resolver.find(attempt.poll.id, attempt.voted_marker_token))

        decision = first_denial(
            lambda: check_poll_open(attempt.poll),
            rate_gate,
            marker_gate,
        )
        if not decision.allowed:
            result.decision = decision
            return result

        # Minted bindings stay transient until commit
        resolved = self.resolver.resolve(attempt.poll.id, attempt.presented_token, persist=False)
        result.binding = resolved.binding
        result.raw_token = resolved.raw_token
        result.token_created = resolved.created

        signature = self.hasher.fingerprint(attempt.server_signals, attempt.client_signals)

        decision = first_denial(
            lambda: check_binding(resolved.binding),
            lambda: check_fingerprint(self.block_store, attempt.poll.id, signature),
        )
        if not decision.allowed:
            result.decision = decision
            return result

        committed = self.committer.commit(
            poll_id=attempt.poll.id,
            option=attempt.option,
            binding=resolved.binding,
            signature=signature,
            voter_hash=attempt.voter_hash,
        )
        if committed.outcome is not CommitOutcome.SUCCESS:
            result.decision = GateDecision(GateOutcome.DUPLICATE, reason=committed.outcome.value)
            return result

        result.decision = GateDecision(GateOutcome.ALLOWED, rate_limit=result.rate_limit)
        result.vote_id = str(committed.vote.id)
        return result
