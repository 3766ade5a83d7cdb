"""Split a SQL batch into individual statements.

Drivers execute one statement per call, so a migration file is cut on
top-level semicolons. Semicolons inside string literals, quoted identifiers,
comments, PostgreSQL dollar-quoted bodies and SQLite trigger bodies do not
end a statement.
"""

import re

_DOLLAR_TAG_RE = re.compile(r"\$([A-Za-z_][A-Za-z0-9_]*)?\$")
_LEADING_NOISE_RE = re.compile(r"(?:\s+|--[^\n]*(?:\n|$)|/\*.*?\*/)*", re.DOTALL)
_WORD_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_$]*")

# Statements that would end or nest the transaction a unit runs in
TRANSACTION_KEYWORDS = frozenset(
    {"BEGIN", "START", "COMMIT", "END", "ROLLBACK", "ABORT", "SAVEPOINT", "RELEASE"}
)


class StatementSplitError(ValueError):
    """The batch has an unterminated literal or comment."""


def leading_keyword(statement: str) -> str:
    """First keyword of ``statement`` in upper case, skipping comments."""
    match = _WORD_RE.match(statement, _LEADING_NOISE_RE.match(statement).end())
    return match.group(0).upper() if match else ""


def _opens_trigger(head: list[str]) -> bool:
    if len(head) < 2 or head[0] != "CREATE":
        return False
    if head[1] == "TRIGGER":
        return True
    return len(head) > 2 and head[1] in ("TEMP", "TEMPORARY") and head[2] == "TRIGGER"


def split_statements(sql: str) -> list[str]:
    """Split ``sql`` into statements without their terminating semicolons.

    Fragments holding only whitespace or comments are dropped. Inside a
    ``CREATE TRIGGER`` statement, ``BEGIN`` and ``CASE`` open a block that
    ``END`` closes, and semicolons only count once every block is closed.

    Args:
        sql: Contents of a migration file.

    Returns:
        Statements in source order.

    Raises:
        StatementSplitError: If a quote, comment or dollar body is left open.
    """
    statements: list[str] = []
    start = 0
    i = 0
    n = len(sql)
    has_code = False
    head: list[str] = []
    in_trigger = False
    depth = 0

    while i < n:
        ch = sql[i]
        nxt = sql[i + 1] if i + 1 < n else ""

        if ch == "-" and nxt == "-":
            end = sql.find("\n", i)
            i = n if end == -1 else end + 1
            continue

        if ch == "/" and nxt == "*":
            # PostgreSQL block comments nest
            level = 1
            j = i + 2
            while j < n and level:
                if sql.startswith("/*", j):
                    level += 1
                    j += 2
                elif sql.startswith("*/", j):
                    level -= 1
                    j += 2
                else:
                    j += 1
            if level:
                raise StatementSplitError(f"Unterminated block comment at offset {i}")
            i = j
            continue

        if ch in ("'", '"'):
            j = i + 1
            while True:
                j = sql.find(ch, j)
                if j == -1:
                    kind = "string literal" if ch == "'" else "quoted identifier"
                    raise StatementSplitError(f"Unterminated {kind} at offset {i}")
                if sql.startswith(ch * 2, j):
                    j += 2
                    continue
                break
            has_code = True
            i = j + 1
            continue

        if ch == "$":
            match = _DOLLAR_TAG_RE.match(sql, i)
            if match:
                tag = match.group(0)
                end = sql.find(tag, match.end())
                if end == -1:
                    raise StatementSplitError(
                        f"Unterminated dollar-quoted body {tag} at offset {i}"
                    )
                has_code = True
                i = end + len(tag)
                continue

        word_match = _WORD_RE.match(sql, i)
        if word_match:
            word = word_match.group(0)
            upper = word.upper()
            if len(head) < 3:
                head.append(upper)
                in_trigger = in_trigger or _opens_trigger(head)
            if in_trigger and sql[i - 1 : i] != ".":
                if upper in ("BEGIN", "CASE"):
                    depth += 1
                elif upper == "END" and depth:
                    depth -= 1
            has_code = True
            i += len(word)
            continue

        if ch == ";":
            if in_trigger and depth:
                i += 1
                continue
            if has_code:
                statements.append(sql[start:i].strip())
            start = i + 1
            has_code = False
            head = []
            in_trigger = False
            depth = 0
            i += 1
            continue

        if not ch.isspace():
            has_code = True
        i += 1

    if has_code:
        statements.append(sql[start:].strip())

    return statements
