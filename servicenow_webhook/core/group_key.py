import hashlib
from typing import Dict


def canonical_labels(group_labels: Dict[str, str]) -> str:
    """Render labels sorted by name as `[{name value} {name value}]`.

    Keys written by earlier deployments used this exact rendering, so it must
    not change or existing incidents stop matching their alert group.
    """
    pairs = sorted(group_labels.items())
    return "[" + " ".join(f"{{{name} {value}}}" for name, value in pairs) + "]"


def get_group_key(group_labels: Dict[str, str]) -> str:
    return hashlib.md5(canonical_labels(group_labels).encode("utf-8")).hexdigest()
