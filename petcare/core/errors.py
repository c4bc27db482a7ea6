# petcare/core/errors.py
"""Error taxonomy for the care engine.

None of these are fatal: each has a fallback at the point where it is caught.
"""


class PetCareError(Exception):
    """Base class for all care engine errors."""


class PersistenceCorrupt(PetCareError):
    """The persisted record is missing fields or cannot be parsed."""


class IdentityMismatch(PetCareError):
    """The persisted pet is not the pet that was requested."""

    def __init__(self, expected: str, found: str):
        super().__init__(f"Saved pet {found!r} does not match requested pet {expected!r}")
        self.expected = expected
        self.found = found


class PreconditionRejected(PetCareError):
    """A care action was refused; state is unchanged and nothing was charged."""

    def __init__(self, kind: str, reason: str):
        super().__init__(f"{kind} rejected: {reason}")
        self.kind = kind
        self.reason = reason


class UnknownArchetype(PetCareError):
    """The archetype is not one of dog, cat, parrot or rabbit."""

    def __init__(self, value):
        super().__init__(f"Unknown pet archetype: {value!r}")
        self.value = value
