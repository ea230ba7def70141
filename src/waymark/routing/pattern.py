"""Glob-style route patterns compiled to explicit token matchers.

Wildcards::

    ?          a single character, not '/'
    *          one or more characters, not '/'
    /**        any number of trailing path segments (including none)
    #          one or more digits
    [abc]      character 'a', 'b' or 'c'
    [a-z]      character 'a' to 'z' ('[!a-z]' or '[^a-z]' negates)
    {png,gif}  'png' or 'gif' (the admitted option is captured)

Escape characters using URL encoding, so ``%5B`` for a literal ``[``.

A compiled pattern is a tuple of frozen token objects. Matching walks the
tokens over the path with a memo of ``(token, position)`` states, so a
pattern is never retried from the same state twice and matching stays
polynomial in pattern and path length. There is no regex underneath.
"""

from collections.abc import Iterator
from dataclasses import dataclass
from functools import lru_cache
from urllib.parse import unquote

_DIGITS = frozenset("0123456789")

# (end position, captured alternation options)
_Step = tuple[int, tuple[str, ...]]


@dataclass(frozen=True, slots=True)
class Literal:
    """Exact text."""

    text: str

    def advance(self, path: str, pos: int) -> Iterator[_Step]:
        if path.startswith(self.text, pos):
            yield pos + len(self.text), ()


@dataclass(frozen=True, slots=True)
class AnyChar:
    """``?``: one character other than ``/``."""

    def advance(self, path: str, pos: int) -> Iterator[_Step]:
        if pos < len(path) and path[pos] != "/":
            yield pos + 1, ()


@dataclass(frozen=True, slots=True)
class AnyRun:
    """``*``: one or more characters other than ``/``."""

    def advance(self, path: str, pos: int) -> Iterator[_Step]:
        stop = path.find("/", pos)
        if stop == -1:
            stop = len(path)
        for end in range(stop, pos, -1):
            yield end, ()


@dataclass(frozen=True, slots=True)
class DigitRun:
    """``#``: one or more ASCII digits."""

    def advance(self, path: str, pos: int) -> Iterator[_Step]:
        stop = pos
        while stop < len(path) and path[stop] in _DIGITS:
            stop += 1
        for end in range(stop, pos, -1):
            yield end, ()


@dataclass(frozen=True, slots=True)
class CharClass:
    """``[...]``: one character from a set of ranges. Never matches ``/``."""

    ranges: tuple[tuple[str, str], ...]
    negated: bool = False

    def contains(self, char: str) -> bool:
        hit = any(lo <= char <= hi for lo, hi in self.ranges)
        return hit != self.negated

    def advance(self, path: str, pos: int) -> Iterator[_Step]:
        if pos < len(path) and path[pos] != "/" and self.contains(path[pos]):
            yield pos + 1, ()


@dataclass(frozen=True, slots=True)
class Alternation:
    """``{a,b}``: one of several literal options, captured."""

    options: tuple[str, ...]

    def advance(self, path: str, pos: int) -> Iterator[_Step]:
        for option in self.options:
            if path.startswith(option, pos):
                yield pos + len(option), (option,)


@dataclass(frozen=True, slots=True)
class TrailingSegments:
    """``/**``: nothing, or a ``/`` followed by anything."""

    def advance(self, path: str, pos: int) -> Iterator[_Step]:
        if pos < len(path) and path[pos] == "/":
            for end in range(len(path), pos, -1):
                yield end, ()
        yield pos, ()


Token = Literal | AnyChar | AnyRun | DigitRun | CharClass | Alternation | TrailingSegments


@dataclass(frozen=True, slots=True)
class PatternMatch:
    """Result of a successful match."""

    pattern: str
    path: str
    groups: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class CompiledPattern:
    """A route pattern compiled to a sequence of token matchers.

    Usage::

        pattern = compile_pattern("/images/*.{png,gif}")
        pattern.test("/images/logo.png")           # True
        pattern.match("/images/logo.gif").groups   # ("gif",)
    """

    source: str
    tokens: tuple[Token, ...]

    def test(self, path: str) -> bool:
        """Whether *path* matches the whole pattern."""
        return self.match(path) is not None

    def match(self, path: str) -> PatternMatch | None:
        """Match *path* against the whole pattern.

        A trailing ``/`` on the path is ignored, unless the path is ``/``.
        """
        path = trim_trailing_slash(path)
        memo: dict[tuple[int, int], tuple[str, ...] | None] = {}
        groups = self._match_from(path, 0, 0, memo)
        if groups is None:
            return None
        return PatternMatch(pattern=self.source, path=path, groups=groups)

    def _match_from(
        self,
        path: str,
        index: int,
        pos: int,
        memo: dict[tuple[int, int], tuple[str, ...] | None],
    ) -> tuple[str, ...] | None:
        key = (index, pos)
        if key in memo:
            return memo[key]

        result: tuple[str, ...] | None = None
        if index == len(self.tokens):
            if pos == len(path):
                result = ()
        else:
            for end, captured in self.tokens[index].advance(path, pos):
                rest = self._match_from(path, index + 1, end, memo)
                if rest is not None:
                    result = captured + rest
                    break

        memo[key] = result
        return result


def trim_trailing_slash(value: str) -> str:
    """Strip trailing slashes, keeping a bare ``/`` intact."""
    if value == "/":
        return value
    return value.rstrip("/") or "/"


def _parse_class(body: str) -> CharClass:
    negated = body[:1] in ("!", "^")
    if negated:
        body = body[1:]
    chars = unquote(body)

    ranges: list[tuple[str, str]] = []
    i = 0
    while i < len(chars):
        if i + 2 < len(chars) and chars[i + 1] == "-":
            ranges.append((chars[i], chars[i + 2]))
            i += 3
        else:
            ranges.append((chars[i], chars[i]))
            i += 1
    return CharClass(ranges=tuple(ranges), negated=negated)


def tokenize(pattern: str) -> tuple[Token, ...]:
    """Split a glob pattern into tokens.

    Literal text is URL-decoded after the wildcards are recognised, so an
    encoded wildcard character is matched literally. An unterminated ``[``
    or ``{`` is an ordinary character.
    """
    tokens: list[Token] = []
    literal: list[str] = []

    def flush() -> None:
        if literal:
            tokens.append(Literal(unquote("".join(literal))))
            literal.clear()

    i = 0
    while i < len(pattern):
        char = pattern[i]

        if pattern.startswith("/**", i):
            flush()
            tokens.append(TrailingSegments())
            i += 3
            while i < len(pattern) and pattern[i] == "*":
                i += 1
            continue

        if char == "?":
            flush()
            tokens.append(AnyChar())
        elif char == "*":
            flush()
            tokens.append(AnyRun())
            while i + 1 < len(pattern) and pattern[i + 1] == "*":
                i += 1
        elif char == "#":
            flush()
            tokens.append(DigitRun())
        elif char == "[" and (close := pattern.find("]", i + 1)) > i + 1:
            flush()
            tokens.append(_parse_class(pattern[i + 1 : close]))
            i = close
        elif char == "{" and (close := pattern.find("}", i + 1)) != -1:
            flush()
            options = tuple(unquote(option) for option in pattern[i + 1 : close].split(","))
            tokens.append(Alternation(options=options))
            i = close
        else:
            literal.append(char)
        i += 1

    flush()
    return tuple(tokens)


@lru_cache(maxsize=512)
def compile_pattern(pattern: str) -> CompiledPattern:
    """Compile a glob route pattern. Results are cached."""
    source = trim_trailing_slash(pattern) if pattern else pattern
    return CompiledPattern(source=source, tokens=tokenize(source))


def fnmatch(pattern: str, path: str) -> bool:
    """Match *path* against the wildcard *pattern*."""
    return compile_pattern(pattern).test(path)
