"""Direct-message thread identifiers."""


def direct_thread_id(user_id_1: str, user_id_2: str) -> str:
    """Return the thread id shared by two users, whoever initiates."""
    return "_".join(sorted([user_id_1, user_id_2]))
