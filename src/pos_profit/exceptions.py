"""Domain-specific exceptions for the POS profitability core.

This module defines custom exceptions that are part of the public API.
All exceptions inherit from ProfitAPIError for easy catching.
"""


class ProfitAPIError(Exception):
    """Base exception for all POS profitability errors.

    Users can catch this exception to handle any error raised by the
    reconciliation pipeline.
    """

    pass


class ConfigError(ProfitAPIError):
    """Raised when there is a configuration error.

    This exception is raised when:
    - Required ERP connection settings are missing from the environment
    - An unknown period mode or incomplete period parameters are given
    - A branch rules file cannot be loaded or parsed
    """

    pass


class SessionError(ProfitAPIError):
    """Raised when no valid ERP session is available.

    The pipeline short-circuits before issuing any remote call.
    """

    pass


class DataQualityError(ProfitAPIError):
    """Raised when an ERP record is missing a required field.

    This exception is raised when:
    - A record has no ``id``
    - An order has no ``date_order`` or an unparseable one
    - A line has no product or parent order reference
    """

    pass


class ExtractionError(ProfitAPIError):
    """Raised when a call to the ERP fails.

    This exception is raised when:
    - Network connection to the ERP fails
    - The ERP rejects the credentials
    - The JSON-RPC endpoint returns an error payload
    """

    pass
