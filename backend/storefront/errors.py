class CatalogError(Exception):
    """Base class for errors surfaced to API callers as {"error": message}."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(CatalogError):
    """Malformed or invariant-violating input. Nothing was written."""

    status_code = 400


class NotFoundError(CatalogError):
    status_code = 404


class StoreError(CatalogError):
    """The relational store failed. Callers decide whether to retry."""

    status_code = 500


class ConfigurationError(CatalogError):
    status_code = 500


class PaymentError(CatalogError):
    status_code = 502
