class PollGuardError(Exception):
    """Base class for vote-gating failures that callers are expected to handle."""


class TokenCollisionError(PollGuardError):
    """A freshly minted device token matched an existing binding."""


class StorageError(PollGuardError):
    """
    A storage transaction could not complete and was rolled back.
    No partial state is retained; the operation is safe to retry.
    """
