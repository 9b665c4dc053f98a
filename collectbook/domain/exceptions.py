"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ConfigurationError(DomainException):
    """Required configuration is missing or invalid"""

    pass


class InvalidAmountError(DomainException):
    """Adjustment amount is not a positive decimal"""

    pass


class NotFoundError(DomainException):
    """Requested record does not exist"""

    pass


class MemberNotFoundError(NotFoundError):
    def __init__(self, member_id):
        super().__init__(f"Member {member_id} not found")
        self.member_id = member_id


class AdjustmentNotFoundError(NotFoundError):
    def __init__(self, adjustment_id):
        super().__init__(f"Adjustment {adjustment_id} not found")
        self.adjustment_id = adjustment_id


class DuplicateEntryError(DomainException):
    """An adjustment of the same kind was already posted today for this member"""

    def __init__(self, member_id, kind, member_name: str = ""):
        who = member_name or str(member_id)
        super().__init__(f"{kind.ledger.value.title()} for {who} has already been updated today.")
        self.member_id = member_id
        self.kind = kind
        self.member_name = member_name


class ReversalOrderError(DomainException):
    """Only the latest adjustment on a member's ledger may be reversed"""

    pass
