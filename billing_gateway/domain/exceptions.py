"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidConfigurationError(DomainException):
    """Debit count or cycle period is not usable"""

    pass


class AdvanceAlreadyExistsError(DomainException):
    """Account already has a funded advance; debits are correlated by account only"""

    pass


class DebitNotFoundError(DomainException):
    """No debit transaction with the given id"""

    pass


class InvalidStatusTransitionError(DomainException):
    """Debit status change not allowed by the lifecycle"""

    pass


class PerformerWebhookError(DomainException):
    """Transaction Performer webhook could not be delivered"""

    pass
