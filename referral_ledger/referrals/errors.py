class ReferralError(Exception):
    pass


class ReferralNotFoundError(ReferralError):
    pass


class ReferralInactiveError(ReferralError):
    pass


class ReferralPolicyError(ReferralError):
    pass


class ReferralConflictError(ReferralError):
    pass
