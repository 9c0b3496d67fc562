import re
from typing import Optional

EMAIL_PATTERN = re.compile(
    r"^[a-zA-Z0-9_+&*-]+(?:\.[a-zA-Z0-9_+&*-]+)*@(?:[a-zA-Z0-9-]+\.)+[a-zA-Z]{2,7}$"
)


class EmailValidator:
    """Member email syntax check.

    Local part: letters, digits and ``_+&*-`` in dot-separated runs.
    Domain: one or more dotted labels followed by a 2-7 letter TLD.
    """

    @staticmethod
    def normalize_email(raw: Optional[str]) -> str:
        if raw is None:
            return ""
        return raw.strip()

    @staticmethod
    def is_valid_email(email: Optional[str]) -> bool:
        if not email:
            return False
        return EMAIL_PATTERN.fullmatch(email) is not None
