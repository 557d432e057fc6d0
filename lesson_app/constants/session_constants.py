"""Session, join and progress constants shared across core, server and UI."""

JOIN_CODE_LENGTH: int = 6
JOIN_CODE_ALPHABET: str = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
JOIN_CODE_MAX_ATTEMPTS: int = 10

SIGN_IN_REDIRECT_DELAY_SECONDS: float = 1.5
STUDENT_SESSION_PATH: str = "/student/session/{session_id}"

ANONYMOUS_LABEL_TEMPLATE: str = "Student {position}"
DEFAULT_SLIDE_TITLE: str = "Untitled Slide"
DEFAULT_LESSON_TITLE: str = "New Lesson"

IMAGE_BUCKET: str = "lesson-images"

DEFAULT_TTS_VOICE_ID: str = "pNInz6obpgDQGcFmaJgB"
DEFAULT_TTS_MODEL_ID: str = "eleven_monolingual_v1"
TTS_API_KEY_SETTING: str = "elevenlabs_api_key"

DEFAULT_CELEBRATION_PHRASE: str = "Great job! 🎉"
CELEBRATION_DURATION_MS: int = 3000
# Preset id -> (phrase, screen effect)
CELEBRATION_PRESETS: dict[str, tuple[str, str]] = {
    "superstar": ("Superstar! 🌟", "stars"),
    "champion": ("Champion! 🏆", "gold"),
    "genius": ("Genius Move! 🧠✨", "rainbow"),
    "perfect": ("Perfect! 💯", "gold"),
    "awesome": ("Awesome! 🎯", "stars"),
    "brilliant": ("Brilliant work! ⭐", "gold"),
    "amazing": ("Amazing! 🌟", "stars"),
    "excellent": ("Excellent! 🏆", "gold"),
}

DEFAULT_AI_ENDPOINT: str = "https://openrouter.ai/api/v1/chat/completions"
DEFAULT_AI_MODELS_URL: str = "https://openrouter.ai/api/v1/models"
DEFAULT_AI_MODEL: str = "openai/gpt-4o-mini"
DEFAULT_AI_TEMPERATURE: float = 0.7
AI_API_KEY_SETTING: str = "openrouter_api_key"
AI_MAX_HISTORY_MESSAGES: int = 20
AI_SYSTEM_PROMPT: str = (
    "You are a patient classroom assistant. Help the student understand the slide "
    "they are looking at. Give hints and explanations instead of final answers."
)
