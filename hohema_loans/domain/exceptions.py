"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidLoanInputError(DomainException):
    """Principal, rate, term or earnings figures are out of range"""

    pass


class InvalidStepDataError(DomainException):
    """Wizard step payload is missing a required field"""

    pass


class InvalidStepTransitionError(DomainException):
    """Client tried to skip ahead in the application wizard"""

    pass


class InvalidStateTransitionError(DomainException):
    """Loan status change not allowed from the current status"""

    pass


class ApplicationNotFoundError(DomainException):
    """Loan application does not exist or belongs to another user"""

    pass


class SettingsNotConfiguredError(DomainException):
    """System settings row has not been initialized"""

    pass


class PinVerificationError(DomainException):
    """Signing PIN is missing, expired, wrong or locked out"""

    pass


class WhatsAppAPIError(DomainException):
    """WhatsApp Cloud API returned an error or is unavailable"""

    pass
