"""Error taxonomy of the patient records core.

Every error carries an HTTP-style ``status_code`` so the transport layer
that wraps these services can map them without a lookup table.
"""


class PatientRecordsError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(PatientRecordsError):
    """A referenced patient, visit or lab test does not exist."""

    status_code = 404


class ConflictError(PatientRecordsError):
    """National-ID collision with a different name, or a store-level
    uniqueness violation."""

    status_code = 409


class ValidationError(PatientRecordsError):
    """Malformed input: undecodable photo, missing or badly shaped field."""

    status_code = 400


class AllocationError(PatientRecordsError):
    """The patient identifier sequence could not be read."""

    status_code = 500
