"""Format patterns shared by the validation and persistence compilers."""
import re

EMAIL_PATTERN = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

OBJECT_ID_PATTERN = r"^[0-9a-fA-F]{24}$"

PASSWORD_SYMBOLS = "@$!%*?&#"
PASSWORD_PATTERN = (
    r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&#])[A-Za-z\d@$!%*?&#]{8,}$"
)


def pattern_source(pattern: str | re.Pattern) -> tuple[str, int]:
    """Split a pattern given as source text or compiled object into (source, flags)."""
    if isinstance(pattern, re.Pattern):
        # Compiled str patterns always carry re.UNICODE; keep only the user's flags.
        return pattern.pattern, pattern.flags & ~re.UNICODE
    return pattern, 0
