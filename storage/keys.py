"""Key naming shared by the key/value backends."""

SHARED_SCOPE = 'shared'
PERSONAL_SCOPE = 'personal'


def storage_key(key: str, shared: bool) -> str:
    """
    Build the backend key for a logical key and its visibility scope.

    Args:
        key: Logical key, e.g. 'survey-events'
        shared: True for data visible to every user

    Returns:
        Scoped key such as 'shared/survey-events'
    """
    scope = SHARED_SCOPE if shared else PERSONAL_SCOPE
    return f"{scope}/{key}"
