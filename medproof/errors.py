"""
MedProof error taxonomy.

Input errors on commitment and proof generation are raised as typed
exceptions. Verification failure is never an exception; it is carried in
a VerificationResult.
"""


class MedProofError(ValueError):
    """Base class for all MedProof input errors."""

    def __init__(self, message: str, field: str = None):
        super().__init__(message)
        self.field = field

    def to_dict(self):
        d = {"error": type(self).__name__, "message": str(self)}
        if self.field:
            d["field"] = self.field
        return d


class InvalidProtocol(MedProofError):
    """A study protocol is missing required canonical fields or is malformed."""


class InvalidStats(MedProofError):
    """Medical statistics or salt violate structural invariants."""
