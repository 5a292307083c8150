"""Errors raised by the recommendation engine"""


class RecommendationError(Exception):
    """Base class for recommendation engine errors"""


class NotRecommendableError(RecommendationError):
    """Raised when an interaction targets a category that was never registered"""

    def __init__(self, category: str):
        self.category = category
        super().__init__(f"Category '{category}' has not been registered as recommendable")


class UndefinedSimilarityError(RecommendationError, ArithmeticError):
    """Raised when a user has no rated items, so similarity has no denominator"""

    def __init__(self, user_id: str, other_user_id: str):
        self.user_id = user_id
        self.other_user_id = other_user_id
        super().__init__(
            f"Similarity between '{user_id}' and '{other_user_id}' is undefined: "
            f"'{user_id}' has not rated anything"
        )


class ConcurrentUpdateError(RecommendationError):
    """Raised when a transaction keeps losing to concurrent writers"""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"Transaction aborted after {attempts} conflicting attempts")
