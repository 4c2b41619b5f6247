"""Comment-aware helpers for raw SQL batch files.

Deployment SQL is executed verbatim, so nothing here rewrites statements.
The sqlglot tokenizer is used only to locate comments and statement
boundaries: string literals, quoted identifiers and PostgreSQL dollar-quoted
bodies that contain ``--`` or ``;`` are therefore handled correctly.  When
the tokenizer rejects a file the helpers degrade to the conservative
behaviour (treat the file as non-empty; submit it as one statement).
"""

from __future__ import annotations

import logging
import re

import sqlglot
from sqlglot.errors import TokenError
from sqlglot.tokens import Token, TokenType

logger = logging.getLogger(__name__)

_DIALECT = "postgres"

_LINE_COMMENT_RE = re.compile(r"--[^\n]*")
_BLOCK_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)


def _tokenize(sql: str) -> list[Token] | None:
    try:
        return sqlglot.tokenize(sql, read=_DIALECT)
    except TokenError as exc:
        logger.debug("Tokenizer rejected SQL batch: %s", exc)
        return None


def strip_comments(sql: str) -> str:
    """Remove ``--`` line comments and ``/* */`` block comments (regex based)."""
    cleaned = _BLOCK_COMMENT_RE.sub("", sql)
    return _LINE_COMMENT_RE.sub("", cleaned)


def has_sql_content(sql: str) -> bool:
    """Return ``True`` if *sql* contains at least one token besides comments.

    A file holding only comments, semicolons, and whitespace is treated exactly
    as if it did not exist.
    """
    if not sql.strip():
        return False

    tokens = _tokenize(sql)
    if tokens is None:
        return bool(strip_comments(sql).strip(" \t\r\n;"))

    return any(token.token_type != TokenType.SEMICOLON for token in tokens)


def split_statements(sql: str) -> list[str]:
    """Split a batch into individual statements, preserving original text.

    Each returned statement is a verbatim slice of *sql* (trailing semicolon
    removed, surrounding whitespace trimmed).  Comment-only fragments are
    dropped.
    """
    tokens = _tokenize(sql)
    if tokens is None:
        stripped = sql.strip()
        return [stripped] if has_sql_content(stripped) else []

    statements: list[str] = []
    start: int | None = None
    end: int = 0
    for token in tokens:
        if token.token_type == TokenType.SEMICOLON:
            if start is not None:
                statements.append(sql[start : end + 1].strip())
            start = None
            continue
        if start is None:
            start = token.start
        end = token.end

    if start is not None:
        statements.append(sql[start : end + 1].strip())

    return [stmt for stmt in statements if stmt]
