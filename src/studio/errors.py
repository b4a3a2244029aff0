"""Exception types shared by the store, the editor and the quiz engine."""


class StudioError(Exception):
    """Base class for all studio errors."""


class ValidationError(StudioError):
    """A required field is missing or invalid. Maps to HTTP 400."""


class NotFoundError(StudioError):
    """The requested document does not exist. Maps to HTTP 404."""


class PdfImportError(StudioError):
    """A PDF could not be opened or rendered."""


class ScriptureLookupError(StudioError):
    """A scripture reference could not be parsed or fetched."""
