# ============================================================================
# Custom Exceptions
# ============================================================================
from typing import Any, Dict, Optional

class PlatformException(Exception):
    """Base exception for the practice rewards platform"""
    def __init__(
        self,
        detail: str,
        status_code: int = 400,
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None
    ):
        self.detail = detail
        self.status_code = status_code
        self.error_code = error_code or "PLATFORM_ERROR"
        self.extra = extra or {}
        super().__init__(self.detail)

# ============================================================================
# Not found (never retried)
# ============================================================================
class NotFound(PlatformException):
    def __init__(self, detail: str, error_code: str = "NOT_FOUND", **extra):
        super().__init__(detail=detail, status_code=404, error_code=error_code, extra=extra)

class SessionNotFound(NotFound):
    def __init__(self, session_id):
        super().__init__(f"Session not found: {session_id}", "SESSION_NOT_FOUND")

class StudentNotFound(NotFound):
    def __init__(self, student_id):
        super().__init__(f"Student not found: {student_id}", "STUDENT_NOT_FOUND")

class PetNotFound(NotFound):
    def __init__(self, detail: str = "Pet not found or not owned"):
        super().__init__(detail, "PET_NOT_FOUND")

class DailyStatusNotFound(NotFound):
    def __init__(self, day):
        super().__init__(f"No daily status recorded for {day}", "DAILY_STATUS_NOT_FOUND")

class RewardNotFound(NotFound):
    def __init__(self, reward_id):
        super().__init__(f"Reward not found: {reward_id}", "REWARD_NOT_FOUND")

# ============================================================================
# Conflict / already done
# ============================================================================
class Conflict(PlatformException):
    def __init__(self, detail: str, error_code: str = "CONFLICT", **extra):
        super().__init__(detail=detail, status_code=409, error_code=error_code, extra=extra)

class SessionAlreadyCompleted(Conflict):
    def __init__(self, session_id):
        super().__init__(f"Session already completed: {session_id}", "SESSION_ALREADY_COMPLETED")

class AnswerAlreadySubmitted(Conflict):
    def __init__(self, question_id):
        super().__init__(
            f"Question already answered in this session: {question_id}",
            "ANSWER_ALREADY_SUBMITTED"
        )

class AlreadySpun(Conflict):
    def __init__(self):
        super().__init__("Already spun today", "ALREADY_SPUN")

class PetMaxTier(Conflict):
    def __init__(self):
        super().__init__("Pet is already at max tier", "PET_MAX_TIER")

class ActiveSubscription(Conflict):
    def __init__(self):
        super().__init__(
            "Cannot unlink a child with an active paid subscription",
            "ACTIVE_SUBSCRIPTION"
        )

# ============================================================================
# Insufficient resource (actionable, not a bug)
# ============================================================================
class InsufficientResource(PlatformException):
    def __init__(self, detail: str, error_code: str, status_code: int = 402, **extra):
        super().__init__(detail=detail, status_code=status_code, error_code=error_code, extra=extra)

class InsufficientCoins(InsufficientResource):
    def __init__(self, have: int, need: int):
        super().__init__("Insufficient coins", "INSUFFICIENT_COINS", have=have, need=need)

class InsufficientFood(InsufficientResource):
    def __init__(self, have: int, need: int):
        super().__init__("Not enough food", "INSUFFICIENT_FOOD", have=have, need=need)

class DailySessionLimitReached(InsufficientResource):
    def __init__(self, used: int, limit: int):
        super().__init__(
            f"Daily session limit reached ({used} of {limit})",
            "DAILY_SESSION_LIMIT_REACHED",
            status_code=429,
            used=used,
            limit=limit
        )

class NotEnoughFoodFed(InsufficientResource):
    def __init__(self, current: int, required: int):
        super().__init__(
            f"Not enough food fed yet, need {required - current} more",
            "NOT_ENOUGH_FOOD_FED",
            status_code=409,
            current=current,
            required=required
        )

# ============================================================================
# Invalid input (caller bug)
# ============================================================================
class InvalidInput(PlatformException):
    def __init__(self, detail: str, error_code: str = "INVALID_INPUT", **extra):
        super().__init__(detail=detail, status_code=400, error_code=error_code, extra=extra)

class EmptyQuestionList(InvalidInput):
    def __init__(self):
        super().__init__("Questions list cannot be empty", "EMPTY_QUESTION_LIST")

class InvalidCombination(InvalidInput):
    def __init__(self, detail: str):
        super().__init__(detail, "INVALID_COMBINATION")

class InvalidSpinReward(InvalidInput):
    def __init__(self, reward: int, allowed):
        super().__init__(
            f"Invalid reward amount {reward}. Must be one of {sorted(allowed)}.",
            "INVALID_SPIN_REWARD"
        )

class InvalidAmount(InvalidInput):
    def __init__(self, detail: str = "Amount must be positive"):
        super().__init__(detail, "INVALID_AMOUNT")

class QuestionNotInSession(InvalidInput):
    def __init__(self, question_id):
        super().__init__(f"Question {question_id} is not part of this session", "QUESTION_NOT_IN_SESSION")

class PetPoolEmpty(PlatformException):
    def __init__(self, rarity: str):
        super().__init__(
            detail=f"No pets available for rarity {rarity}",
            status_code=503,
            error_code="PET_POOL_EMPTY"
        )
