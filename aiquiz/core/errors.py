"""
Domain exceptions.

Services raise these; the API layer maps them to HTTP responses
(see aiquiz.api.errors).
"""


class AIQuizError(Exception):
    """Base exception for all AIQuiz errors."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(AIQuizError):
    """A referenced document does not exist."""

    status_code = 404


class DuplicateEmailError(AIQuizError):
    """Another user already owns this email address."""

    status_code = 400

    def __init__(self, email: str, message: str = "El email ya está en uso"):
        self.email = email
        super().__init__(message)


class InvitationError(AIQuizError):
    """A professor invitation cannot be issued for this user."""

    status_code = 400


class DuplicateAcronymError(AIQuizError):
    """Another subject already uses this acronym."""

    status_code = 400

    def __init__(self, acronym: str, message: str = "Ya existe una asignatura con ese acrónimo"):
        self.acronym = acronym
        super().__init__(message)
