"""Extract a code payload from free-form model output.

Models wrap code in markdown fences, prepend explanations, or get cut off
mid-declaration when they hit an output limit. The normalizer tries, in
order:

1. Fenced code blocks (the longest one wins)
2. Complete declarations with a balanced brace body (the longest one wins)
3. Unterminated declarations or a cut-off import, closed best-effort
4. The whole text as-is
"""

import logging
import re
from dataclasses import dataclass

from ctxgen.domain.errors import ResponseParseError
from ctxgen.domain.models.parsed_payload import ParsedPayload

logger = logging.getLogger(__name__)

TRUNCATION_WARNING = (
    "Response appears to be truncated. The generated code may be incomplete."
)
PLACEHOLDER_BODY = "  // response was truncated here; complete this block\n"

# Language tag (and any info string after it) only counts when the fence
# line ends before another backtick
_FENCE_RE = re.compile(r"```(?:[\w+#.-]+[^`\n]*\n|[ \t]*\n?)(.*?)```", re.DOTALL)

_DECLARATION_RE = re.compile(
    r"^[ \t]*(?:export[ \t]+(?:default[ \t]+)?)?(?:async[ \t]+)?"
    r"(?:function\*?[ \t]*\w*|const[ \t]+\w+|let[ \t]+\w+|class[ \t]+\w+|interface[ \t]+\w+|type[ \t]+\w+)",
    re.MULTILINE,
)
_IMPORT_LINE_RE = re.compile(r"^[ \t]*import\b")
_COMPLETE_IMPORT_RE = re.compile(r"""(?:from[ \t]+|^[ \t]*import[ \t]+)(['"])[^'"\n]+\1[ \t]*;?[ \t]*$""")


@dataclass(frozen=True, slots=True)
class _Span:
    start: int
    end: int
    depth: int = 0  # Unclosed braces left at end of text


class ResponseNormalizer:
    """Parses raw model output into a ParsedPayload."""

    def parse(self, raw_text: str) -> ParsedPayload:
        """Parse raw output.

        Raises:
            ResponseParseError: If the text is empty or whitespace-only
        """
        if not raw_text or not raw_text.strip():
            raise ResponseParseError("Empty response from provider")

        payload = (
            self._from_fences(raw_text)
            or self._from_complete_declarations(raw_text)
            or self._from_truncated(raw_text)
        )
        if payload is None:
            logger.debug("No code structure found; using full response text")
            payload = ParsedPayload(code=raw_text.strip())

        if payload.was_truncated:
            logger.warning(TRUNCATION_WARNING)
        elif len(payload.code) < 100:
            logger.debug(f"Parsed code is short ({len(payload.code)} chars); it may be incomplete")
        return payload

    def _from_fences(self, text: str) -> ParsedPayload | None:
        matches = list(_FENCE_RE.finditer(text))
        if not matches:
            return None
        # max() keeps the first of equal-length blocks
        best = max(matches, key=lambda m: len(m.group(1).strip()))
        code = best.group(1).strip()
        if not code:
            return None
        return ParsedPayload(code=code, explanation=_explanation(text, best.start(), best.end()))

    def _from_complete_declarations(self, text: str) -> ParsedPayload | None:
        spans = [s for s in self._declaration_spans(text) if s.depth == 0]
        if not spans:
            return None
        best = max(spans, key=lambda s: s.end - s.start)
        return ParsedPayload(
            code=text[best.start:best.end].strip(),
            explanation=_explanation(text, best.start, best.end),
        )

    def _from_truncated(self, text: str) -> ParsedPayload | None:
        open_spans = [s for s in self._declaration_spans(text) if s.depth > 0]
        if open_spans:
            first = min(open_spans, key=lambda s: s.start)
            code = text[first.start:].rstrip()
            closing = "".join("}\n" for _ in range(first.depth)).rstrip("\n")
            return ParsedPayload(
                code=f"{code}\n{PLACEHOLDER_BODY}{closing}",
                explanation=TRUNCATION_WARNING,
                was_truncated=True,
            )

        start = _trailing_cut_import(text)
        if start is not None:
            return ParsedPayload(
                code=text[start:].strip(),
                explanation=TRUNCATION_WARNING,
                was_truncated=True,
            )
        return None

    def _declaration_spans(self, text: str) -> list[_Span]:
        spans = []
        for match in _DECLARATION_RE.finditer(text):
            brace = _opening_brace(text, match.end())
            if brace is None:
                continue
            close, depth = _match_braces(text, brace)
            start = _extend_over_imports(text, match.start())
            if close is None:
                spans.append(_Span(start=start, end=len(text), depth=depth))
            else:
                spans.append(_Span(start=start, end=close + 1))
        return spans


def _explanation(text: str, start: int, end: int) -> str | None:
    rest = (text[:start] + text[end:]).strip()
    return rest or None


def _opening_brace(text: str, pos: int) -> int | None:
    """Index of the brace opening the declaration body, if the statement has one."""
    for i in range(pos, len(text)):
        ch = text[i]
        if ch == "{":
            return i
        if ch == ";":
            return None
        if ch == "\n" and text[i + 1:i + 2] == "\n":
            return None
    return None


def _match_braces(text: str, start: int) -> tuple[int | None, int]:
    """Find the brace closing the one at ``start``.

    Quoted strings and comments are skipped. A quote with no partner on the
    same line is treated as plain text (apostrophes in JSX copy). Returns
    (index, 0) when the body is balanced, or (None, open_depth) when the
    text ends first.
    """
    depth = 0
    i = start
    n = len(text)
    while i < n:
        ch = text[i]
        if ch in "'\"`":
            end = _closing_quote(text, i)
            if end is not None:
                i = end + 1
                continue
        elif text.startswith("//", i):
            newline = text.find("\n", i)
            i = n if newline == -1 else newline + 1
            continue
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            i = n if end == -1 else end + 2
            continue
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i, 0
        i += 1
    return None, max(depth, 1)


def _closing_quote(text: str, start: int) -> int | None:
    quote = text[start]
    # Template literals may span lines, plain strings may not
    limit = len(text) if quote == "`" else text.find("\n", start)
    if limit == -1:
        limit = len(text)
    i = start + 1
    while i < limit:
        if text[i] == "\\":
            i += 2
            continue
        if text[i] == quote:
            return i
        i += 1
    return None


def _extend_over_imports(text: str, start: int) -> int:
    """Move ``start`` back over the import lines directly above it."""
    lines_before = text[:start].split("\n")
    offset = start - len(lines_before[-1])
    for line in reversed(lines_before[:-1]):
        if not line.strip() or _IMPORT_LINE_RE.match(line):
            offset -= len(line) + 1
            continue
        break
    while offset < start and text[offset] in " \t\n":
        offset += 1
    return offset


def _trailing_cut_import(text: str) -> int | None:
    """Start of the import block when the text ends inside an import statement."""
    lines = text.rstrip().split("\n")
    last_import = None
    for index in range(len(lines) - 1, -1, -1):
        if _IMPORT_LINE_RE.match(lines[index]):
            last_import = index
            break
    if last_import is None:
        return None

    statement = "\n".join(lines[last_import:])
    open_list = "{" in statement and "}" not in statement
    cut_line = last_import == len(lines) - 1 and not _COMPLETE_IMPORT_RE.search(statement)
    if not (open_list or cut_line):
        return None

    first = last_import
    while first > 0 and (_IMPORT_LINE_RE.match(lines[first - 1]) or not lines[first - 1].strip()):
        first -= 1
    while not lines[first].strip():
        first += 1
    return sum(len(line) + 1 for line in lines[:first])
