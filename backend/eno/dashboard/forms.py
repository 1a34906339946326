# Overview: Form-level validation errors raised before any remote write.


class FormValidationError(ValueError):
    """A form is incomplete or inconsistent. message is shown to the user as-is."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.message = message
        self.field = field


REQUIRED_FIELDS_MESSAGE = "Veuillez remplir tous les champs obligatoires"
