import re

# letters, digits, spaces and ' - . ,
_NAME_RE = re.compile(r"^[\w '\-.,]+$")


def _clean_name(value: str, *, label: str, min_len: int, max_len: int) -> str:
    name = (value or "").strip()
    if not name:
        raise ValueError(f"{label} cannot be empty")
    if len(name) < min_len:
        raise ValueError(f"{label} must be at least {min_len} characters")
    if len(name) > max_len:
        raise ValueError(f"{label} cannot exceed {max_len} characters")
    if "_" in name or not _NAME_RE.match(name):
        raise ValueError(f"{label} contains invalid characters")
    return name


def clean_family_name(name: str) -> str:
    return _clean_name(name, label="Family name", min_len=2, max_len=50)


def clean_display_name(name: str) -> str:
    return _clean_name(name, label="Display name", min_len=1, max_len=30)
