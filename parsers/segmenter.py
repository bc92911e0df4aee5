"""Line and field segmentation for delimited statement exports.

Statement exports mix newline conventions, quote free-text columns and use
different field delimiters. Splitting here is total: it never raises, and a
line that cannot be split comes back as a single-field row.
"""

import re

CANDIDATE_DELIMITERS = (",", ";", "\t", "|")
QUOTE_CHARS = ('"', "'")

_NEWLINE = re.compile(r"\r\n|\n|\r")


def split_lines(text: str) -> list[str]:
    """Split raw text into lines, dropping lines that are blank after trimming."""
    if not text:
        return []
    return [line for line in _NEWLINE.split(text) if line.strip()]


def _count_unquoted(line: str, delimiter: str) -> int:
    count = 0
    for i, char in enumerate(line):
        if char != delimiter:
            continue
        before = line[i - 1] if i > 0 else ""
        after = line[i + 1] if i + 1 < len(line) else ""
        if before in QUOTE_CHARS or after in QUOTE_CHARS:
            continue
        count += 1
    return count


def detect_delimiter(text: str) -> str:
    """Guess the field delimiter from the first non-empty line.

    Occurrences immediately next to a quote character are ignored. Ties go
    to the earlier candidate; comma when nothing is found.
    """
    lines = split_lines(text)
    if not lines:
        return ","
    first = lines[0]
    counts = [(_count_unquoted(first, d), d) for d in CANDIDATE_DELIMITERS]
    best_count = max(count for count, _ in counts)
    if best_count == 0:
        return ","
    for count, delimiter in counts:
        if count == best_count:
            return delimiter
    return ","


def _strip_quote_pair(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] == '"':
        return value[1:-1]
    return value


def split_fields(line: str, delimiter: str = ",", trim: bool = True) -> list[str]:
    """Split one line into fields, honouring double-quoted segments.

    A ``"`` not preceded by a backslash toggles the quoted state and is
    dropped; delimiters inside quotes are kept as text.
    """
    values: list[str] = []
    current: list[str] = []
    in_quotes = False

    for i, char in enumerate(line):
        if char == '"' and (i == 0 or line[i - 1] != "\\"):
            in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            values.append("".join(current))
            current = []
        else:
            current.append(char)
    values.append("".join(current))

    if trim:
        values = [v.strip() for v in values]
    return [_strip_quote_pair(v) for v in values]
