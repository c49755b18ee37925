"""Remote store and identity synchronization constants."""

QUIZ_SESSIONS_COLLECTION: str = "quizSessions"
USERS_COLLECTION: str = "users"

USER_FETCH_ATTEMPTS: int = 3
USER_FETCH_RETRY_DELAY_SECONDS: float = 1.0

DEFAULT_DISPLAY_NAME: str = "Anonymous"
