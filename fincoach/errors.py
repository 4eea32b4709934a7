class FinCoachError(Exception):
    """Base class for errors surfaced to API callers."""


class DuplicateBudgetError(FinCoachError):
    def __init__(self, category: str):
        self.category = category
        super().__init__(f'Budget for category "{category}" already exists')


class ConversationNotFoundError(FinCoachError):
    def __init__(self, conversation_id: str):
        self.conversation_id = conversation_id
        super().__init__("Conversation not found")


# ---------- AI ----------
class AIError(FinCoachError):
    pass


class AIConfigurationError(AIError):
    def __init__(self, message: str = "OPENAI_API_KEY is not set in environment variables"):
        super().__init__(message)


class InvalidAPIKeyError(AIError):
    def __init__(self, message: str = "Invalid API key. Please check your OPENAI_API_KEY in .env.local"):
        super().__init__(message)


class RateLimitedError(AIError):
    def __init__(self, message: str = "Rate limit exceeded. Please wait a moment and try again."):
        super().__init__(message)


class AIResponseError(AIError):
    def __init__(self, message: str = "Failed to get response from AI. Please try again."):
        super().__init__(message)


# ---------- BANK ----------
class BankServiceError(FinCoachError):
    pass

