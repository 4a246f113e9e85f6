"""Squad Beyond widget identifier generation."""
import random
import re
from typing import Iterable, Optional, Set, Tuple

PART_ID_PREFIX = "sb-part-"
PART_CLASS_PREFIX = "sb-custom-part-"
WIDGET_WRAPPER_CLASS = "sb-custom"

SB_ID_CHARS = "abcdefghijklmnopqrstuvwxyz0123456789"
SB_ID_LENGTH = 20


def generate_sb_id(rng: Optional[random.Random] = None) -> str:
    """Random SB-compatible id such as ``lzl4c3xplgsrjpr0rhq0a``."""
    rng = rng or random.Random()
    return "".join(rng.choice(SB_ID_CHARS) for _ in range(SB_ID_LENGTH))


def generate_part_number(rng: Optional[random.Random] = None) -> int:
    """Five digit numeric part id."""
    rng = rng or random.Random()
    return rng.randint(10000, 99999)


class IdAllocator:
    """
    Hands out (part id, part class) pairs that are unique within one build.

    Create one per build call; ids already present in the document are
    passed in ``existing`` so a fresh id never equals an old one.
    """

    def __init__(self, seed: Optional[int] = None, existing: Iterable[str] = ()):
        self.rng = random.Random(seed)
        self.used: Set[str] = set(existing)

    def new_pair(self) -> Tuple[str, str]:
        part_id = self._fresh(lambda: f"{PART_ID_PREFIX}{generate_part_number(self.rng)}")
        part_class = self._fresh(lambda: f"{PART_CLASS_PREFIX}{generate_sb_id(self.rng)}")
        return part_id, part_class

    def _fresh(self, make) -> str:
        value = make()
        while value in self.used:
            value = make()
        self.used.add(value)
        return value


def part_class_of(classes: Iterable[str]) -> str:
    """The ``sb-custom-part-*`` class in a class list, or ""."""
    for cls in classes:
        if cls.startswith(PART_CLASS_PREFIX):
            return cls
    return ""


def replace_selector(css_text: str, prefix: str, old: str, new: str) -> str:
    """Rewrite ``#old`` / ``.old`` selectors, matching whole identifiers only."""
    pattern = re.compile(re.escape(prefix + old) + r"(?![\w-])")
    return pattern.sub(lambda _: prefix + new, css_text)
