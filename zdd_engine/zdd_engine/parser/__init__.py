"""SQL text helpers: comment detection and statement splitting."""

from zdd_engine.parser.sql_text import has_sql_content, split_statements, strip_comments

__all__ = [
    "has_sql_content",
    "split_statements",
    "strip_comments",
]
