"""
Exception Taxonomy

Two families live here. Data controller errors are raised by storage-facing
code and never leave a resolver. ActionBankError subclasses are what resolvers
and the service raise to callers; each carries a stable code and the HTTP
status the API layer maps it to.
"""


class DataControllerError(Exception):
    """Base class for storage-layer failures"""


class DataDoesNotExistError(DataControllerError):
    """No record exists for the requested identifier"""


class InvalidDataError(DataControllerError, ValueError):
    """A raw record or argument bag failed strict shape validation"""


class UserExistsError(DataControllerError):
    """Another user already has this username"""


class EmailExistsError(DataControllerError):
    """Another user already has this email"""


class ActionBankError(Exception):
    """Base class for errors surfaced to API callers"""

    code = "ACTION_BANK_ERROR"
    http_status = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message}


class InvalidInputError(ActionBankError):
    """Arguments are missing or malformed"""

    code = "INVALID_INPUT"
    http_status = 400


class QueryDataError(ActionBankError):
    """A query could not be satisfied"""

    code = "QUERY_DATA_EXCEPTION"
    http_status = 400


class MutateDataError(ActionBankError):
    """A mutation could not be applied"""

    code = "MUTATE_DATA_EXCEPTION"
    http_status = 400


class AuthenticationError(ActionBankError):
    """Credentials or token are missing or wrong"""

    code = "UNAUTHENTICATED"
    http_status = 401


class ForbiddenError(ActionBankError):
    """A guard denied the operation"""

    code = "FORBIDDEN"
    http_status = 403

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message)
