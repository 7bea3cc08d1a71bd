"""Configuration constants.

Centralizes magic numbers and fixed values shared by the solver, chat and
auth modules. Environment-driven settings live in ``mathfluent.cli.providers``.
"""

# Live query bounds (most recent N messages)
ROOM_MESSAGE_LIMIT = 100
DIRECT_MESSAGE_LIMIT = 50

# Store collections
ROOMS_COLLECTION = "chatRooms"
DIRECT_THREADS_COLLECTION = "directMessageThreads"
USERS_COLLECTION = "users"
MESSAGES_SUBCOLLECTION = "messages"

# Mock auth
SESSION_STORAGE_KEY = "mathfluent-user"
AUTH_SIMULATED_DELAY = 0.5  # Seconds, mimics a network round trip

# Solver display
DIRECT_ANSWER_THRESHOLD = 200  # Characters; a single longer step is a "direct answer"

# Avatar placeholders
AVATAR_URL_TEMPLATE = "https://picsum.photos/seed/{seed}/40/40"

# Chat room form bounds
ROOM_NAME_MIN_LENGTH = 3
ROOM_NAME_MAX_LENGTH = 50
ROOM_DESCRIPTION_MAX_LENGTH = 200

MATH_TOPICS = [
    "General Math",
    "Algebra",
    "Calculus",
    "Geometry",
    "Trigonometry",
    "Statistics",
    "Linear Algebra",
    "Differential Equations",
    "Probability",
    "Number Theory",
]

SKILL_LEVELS = [
    "Elementary",
    "Middle School",
    "High School",
    "College Freshman",
    "College Advanced",
    "Beginner",
    "Intermediate",
    "Advanced",
]
