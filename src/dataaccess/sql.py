"""
Named parameter marker rewriting.

Command text refers to parameters as ``@name``. Drivers expect their own
paramstyle (``:name`` for sqlite3, ``%(name)s`` for psycopg), so text
commands are tokenized once and every marker outside string literals,
quoted identifiers and comments is rendered through the strategy:

    SQL → Tokenize → Render markers → Driver SQL
"""
import re
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum, auto


class TokenType(Enum):
    """Token types identified during SQL parsing."""
    SQL_TEXT = auto()
    STRING_LITERAL = auto()
    COMMENT = auto()
    NAMED_MARKER = auto()       # @name
    SYSTEM_VARIABLE = auto()    # @@identity


@dataclass(slots=True)
class Token:
    """Token from SQL parsing."""
    type: TokenType
    text: str
    start: int
    end: int
    name: str | None = None


_TOKENIZE = re.compile(r"""
    (?P<string>'(?:[^']|'')*'|"(?:[^"]|"")*")
    |(?P<comment>--[^\n]*|/\*.*?\*/)
    |(?P<sysvar>@@\w+)
    |(?P<marker>@(?P<mname>[A-Za-z_][A-Za-z0-9_$#]*))
""", re.VERBOSE | re.DOTALL)


def tokenize_sql(sql: str) -> list[Token]:
    """Parse SQL into tokens in a single pass.

    Parameters
        sql: SQL command text

    Returns
        List of tokens preserving all SQL text
    """
    tokens = []
    last_end = 0

    for match in _TOKENIZE.finditer(sql):
        start, end = match.span()

        if start > last_end:
            tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:start], last_end, start))

        if match.group('string'):
            tokens.append(Token(TokenType.STRING_LITERAL, match.group(0), start, end))
        elif match.group('comment'):
            tokens.append(Token(TokenType.COMMENT, match.group(0), start, end))
        elif match.group('sysvar'):
            tokens.append(Token(TokenType.SYSTEM_VARIABLE, match.group(0), start, end))
        else:
            tokens.append(Token(TokenType.NAMED_MARKER, match.group(0), start, end,
                                name=match.group('mname')))
        last_end = end

    if last_end < len(sql):
        tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:], last_end, len(sql)))

    return tokens


def marker_names(sql: str) -> list[str]:
    """Names of the ``@name`` markers in order of appearance, without duplicates."""
    names: list[str] = []
    for token in tokenize_sql(sql):
        if token.type == TokenType.NAMED_MARKER and token.name not in names:
            names.append(token.name)
    return names


def standardize_placeholders(sql: str, render: Callable[[str], str],
                             escape_percent: bool = False) -> str:
    """Replace every ``@name`` marker with ``render(name)``.

    Parameters
        sql: SQL command text
        render: Callable producing the driver placeholder for a parameter name
        escape_percent: Double literal ``%`` signs (pyformat drivers)

    Returns
        SQL in the driver's paramstyle
    """
    if not sql:
        return sql

    result = []
    for token in tokenize_sql(sql):
        if token.type == TokenType.NAMED_MARKER:
            result.append(render(token.name))
        elif escape_percent:
            result.append(token.text.replace('%', '%%'))
        else:
            result.append(token.text)
    return ''.join(result)
