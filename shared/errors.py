"""
Ошибки операций начисления наград
"""


class RewardError(Exception):
    """Базовая ошибка операций с балансом"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(RewardError):
    """Аккаунт не найден"""

    def __init__(self, message: str = "User not found."):
        super().__init__(message)


class InputInvalid(RewardError):
    """Отсутствует или некорректно обязательное поле"""
    pass


class InternalFailure(RewardError):
    """Неожиданная ошибка хранилища"""
    pass


# ========== Нарушения бизнес-правил ==========

class BusinessRuleViolation(RewardError):
    """Лимит достигнут, уже получено, условие не выполнено"""
    pass


class NoGemsAvailable(BusinessRuleViolation):
    def __init__(self, message: str = "You have no gems to claim."):
        super().__init__(message)


class DailyLimitReached(BusinessRuleViolation):
    def __init__(self, limit: int):
        super().__init__(f"You have reached your daily claim limit of {limit} gems.")
        self.limit = limit


class NoReferralDataToday(BusinessRuleViolation):
    def __init__(self, message: str = "No referral data for today."):
        super().__init__(message)


class ThresholdNotMet(BusinessRuleViolation):
    def __init__(self, required: int, current: int):
        super().__init__(
            f"You need {required} referrals today to claim this voucher (you have {current})."
        )
        self.required = required
        self.current = current


class AlreadyClaimed(BusinessRuleViolation):
    def __init__(self, message: str = "Voucher already claimed today."):
        super().__init__(message)


class AlreadyVerified(BusinessRuleViolation):
    def __init__(self, message: str = "User is already verified."):
        super().__init__(message)


class NotQualified(BusinessRuleViolation):
    def __init__(self, observed, required):
        super().__init__(
            f"Your balance is {observed}. You need at least {required} to complete this task."
        )
        self.observed = observed
        self.required = required


# ========== Внешние сервисы ==========

class ExternalServiceFailure(RewardError):
    """Внешний сервис недоступен или вернул ошибку"""
    pass


class VerificationUnavailable(ExternalServiceFailure):
    def __init__(self, message: str = "Verification service is unavailable. Please try again later."):
        super().__init__(message)
