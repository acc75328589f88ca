"""
Atomic vote commit.

Races are reproduced deterministically: both "handlers" pass every
pre-check before either commits, then commit in sequence.
"""
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from pollguard.models.device_binding import DeviceBinding
from pollguard.models.fingerprint_block import FingerprintBlock
from pollguard.models.vote import Vote
from pollguard.services.device_binding import DeviceBindingResolver
from pollguard.services.exceptions import StorageError
from pollguard.services.fingerprint_block import FingerprintBlockStore
from pollguard.services.vote_commit import CommitOutcome, VoteCommitTransaction

SIG_A = "a" * 64
SIG_B = "b" * 64


@pytest.fixture
def resolver():
    return DeviceBindingResolver()


@pytest.fixture
def committer():
    return VoteCommitTransaction()


class TestCommitSuccess:
    def test_persists_vote_binding_and_block_together(self, db, poll, resolver, committer):
        binding = resolver.resolve(poll.id, None).binding

        result = committer.commit(poll.id, 3, binding, SIG_A, "voter-hash")

        assert result.outcome is CommitOutcome.SUCCESS
        stored = db.session.get(DeviceBinding, binding.id)
        assert stored.status == DeviceBinding.STATUS_VOTED
        assert stored.voted_at is not None
        assert stored.fingerprint_signature == SIG_A

        vote = Vote.query.one()
        assert vote.option == 3
        assert vote.device_binding_id == binding.id
        assert FingerprintBlock.query.filter_by(poll_id=poll.id, signature=SIG_A).count() == 1

    def test_transient_binding_is_created_by_commit(self, db, poll, resolver, committer):
        resolved = resolver.resolve(poll.id, None, persist=False)

        result = committer.commit(poll.id, 1, resolved.binding, SIG_A, "voter-hash")

        assert result.ok
        stored = resolver.find(poll.id, resolved.raw_token)
        assert stored is not None
        assert stored.status == DeviceBinding.STATUS_VOTED


class TestCommitRaces:
    def test_same_token_twice_yields_one_success(self, db, poll, resolver, committer):
        binding = resolver.resolve(poll.id, None).binding

        first = committer.commit(poll.id, 1, binding, SIG_A, "vh")
        second = committer.commit(poll.id, 2, binding, SIG_B, "vh")

        assert first.outcome is CommitOutcome.SUCCESS
        assert second.outcome is CommitOutcome.ALREADY_VOTED
        assert Vote.query.count() == 1
        assert FingerprintBlock.query.count() == 1
        assert not FingerprintBlockStore().is_blocked(poll.id, SIG_B)

    def test_same_signature_distinct_tokens_yields_one_success(self, db, poll, resolver, committer):
        store = FingerprintBlockStore()
        a = resolver.resolve(poll.id, None).binding
        b = resolver.resolve(poll.id, None).binding
        assert not store.is_blocked(poll.id, SIG_A)

        first = committer.commit(poll.id, 1, a, SIG_A, "vh-a")
        second = committer.commit(poll.id, 1, b, SIG_A, "vh-b")

        assert first.outcome is CommitOutcome.SUCCESS
        assert second.outcome is CommitOutcome.CONFLICT
        assert Vote.query.count() == 1

        loser = db.session.get(DeviceBinding, b.id)
        assert loser.status == DeviceBinding.STATUS_ACTIVE
        assert loser.voted_at is None
        assert loser.fingerprint_signature is None

    def test_transient_binding_loses_signature_race_without_trace(self, db, poll, resolver, committer):
        winner = resolver.resolve(poll.id, None).binding
        committer.commit(poll.id, 1, winner, SIG_A, "vh")

        loser = resolver.resolve(poll.id, None, persist=False)
        result = committer.commit(poll.id, 1, loser.binding, SIG_A, "vh")

        assert result.outcome is CommitOutcome.CONFLICT
        assert resolver.find(poll.id, loser.raw_token) is None
        assert DeviceBinding.query.count() == 1


class TestCommitFailure:
    def test_storage_error_leaves_no_partial_state(self, db, poll, resolver, committer):
        binding = resolver.resolve(poll.id, None).binding

        with patch.object(
            FingerprintBlockStore,
            "insert",
            side_effect=OperationalError("INSERT", {}, Exception("database is locked")),
        ):
            with pytest.raises(StorageError):
                committer.commit(poll.id, 1, binding, SIG_A, "vh")

        assert Vote.query.count() == 0
        assert FingerprintBlock.query.count() == 0
        assert db.session.get(DeviceBinding, binding.id).status == DeviceBinding.STATUS_ACTIVE
