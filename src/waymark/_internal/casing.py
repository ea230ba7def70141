"""Name casing for controller and action lookup.

Route fields name controllers and actions the way they appear in urls
(``user-profile``, ``show_all``, ``showAll``). Classes and methods are
looked up by their Python names.
"""

import re

_WORD_BOUNDARY = re.compile(r"[^0-9a-zA-Z]+")
_CAMEL_HUMP = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def _words(name: str) -> list[str]:
    return [word for word in _WORD_BOUNDARY.split(_CAMEL_HUMP.sub(" ", name)) if word]


def studly_case(name: str) -> str:
    """``"user-profile"`` -> ``"UserProfile"``."""
    return "".join(word[:1].upper() + word[1:] for word in _words(name))


def snake_case(name: str) -> str:
    """``"show-all"`` and ``"showAll"`` -> ``"show_all"``."""
    return "_".join(word.lower() for word in _words(name))
