"""Lexer/tokenizer for rule descriptions.

Converts a rule string such as ``required|between(1, 10)`` into a stream of
tokens for the rule parser. Only literal data is recognised inside argument
lists; there are no operators beyond the leading minus of a number.

Token types:
- Literals: NUMBER, STRING, BOOLEAN, NULL
- Identifiers: IDENTIFIER (validator names, object keys)
- Punctuation: LPAREN, RPAREN, LBRACKET, RBRACKET, LBRACE, RBRACE, COMMA, COLON
- Separator: PIPE
"""

import re
from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator


class TokenType(Enum):
    """Types of tokens in a rule description."""

    # Literals
    NUMBER = auto()
    STRING = auto()
    BOOLEAN = auto()
    NULL = auto()

    # Identifiers
    IDENTIFIER = auto()

    # Sign
    MINUS = auto()       # -

    # Punctuation
    LPAREN = auto()      # (
    RPAREN = auto()      # )
    LBRACKET = auto()    # [
    RBRACKET = auto()    # ]
    LBRACE = auto()      # {
    RBRACE = auto()      # }
    COMMA = auto()       # ,
    COLON = auto()       # :

    # Rule separator
    PIPE = auto()        # |

    # End of input
    EOF = auto()


@dataclass(frozen=True)
class Token:
    """A single token from the lexer.

    Attributes:
        type: The token type
        value: The token's value (number, string content, identifier name, etc.)
        position: Character position in the source string
    """

    type: TokenType
    value: str | int | float | bool | None
    position: int

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.value!r}, pos={self.position})"


class LexerError(Exception):
    """Error during lexical analysis."""

    def __init__(self, message: str, position: int):
        self.position = position
        super().__init__(f"{message} at position {position}")


# Token patterns (order matters - longer matches first)
TOKEN_PATTERNS = [
    # Whitespace (skip)
    (r"\s+", None),

    (r"\|", TokenType.PIPE),
    (r"-", TokenType.MINUS),

    # Punctuation
    (r"\(", TokenType.LPAREN),
    (r"\)", TokenType.RPAREN),
    (r"\[", TokenType.LBRACKET),
    (r"\]", TokenType.RBRACKET),
    (r"\{", TokenType.LBRACE),
    (r"\}", TokenType.RBRACE),
    (r",", TokenType.COMMA),
    (r":", TokenType.COLON),

    # Numbers (integer and float, optional exponent)
    (r"\d+\.\d+(?:[eE][+-]?\d+)?", TokenType.NUMBER),
    (r"\.\d+", TokenType.NUMBER),
    (r"\d+(?:[eE][+-]?\d+)?", TokenType.NUMBER),

    # Strings (double or single quoted)
    (r'"([^"\\]|\\.)*"', TokenType.STRING),
    (r"'([^'\\]|\\.)*'", TokenType.STRING),

    # Keywords and identifiers
    (r"[a-zA-Z_][a-zA-Z0-9_]*", TokenType.IDENTIFIER),
]

# Keywords that map to literal tokens (matched case-insensitively)
KEYWORDS = {
    "true": (TokenType.BOOLEAN, True),
    "false": (TokenType.BOOLEAN, False),
    "null": (TokenType.NULL, None),
    "none": (TokenType.NULL, None),
}

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "\\": "\\", '"': '"', "'": "'"}


class Lexer:
    """Tokenizer for rule descriptions.

    Usage:
        lexer = Lexer('required|minLength(3)')
        for token in lexer:
            print(token)
    """

    def __init__(self, source: str):
        self.source = source
        self.position = 0
        self._compiled_patterns = [
            (re.compile(pattern), token_type)
            for pattern, token_type in TOKEN_PATTERNS
        ]

    def __iter__(self) -> Iterator[Token]:
        """Iterate over all tokens in the source."""
        while True:
            token = self.next_token()
            yield token
            if token.type == TokenType.EOF:
                break

    def next_token(self) -> Token:
        """Get the next token from the source."""
        while self.position < len(self.source):
            for pattern, token_type in self._compiled_patterns:
                match = pattern.match(self.source, self.position)
                if not match:
                    continue

                value = match.group()
                start_pos = self.position
                self.position += len(value)

                if token_type is None:
                    break

                if token_type == TokenType.NUMBER:
                    if "." in value or "e" in value.lower():
                        return Token(token_type, float(value), start_pos)
                    return Token(token_type, int(value), start_pos)

                if token_type == TokenType.STRING:
                    return Token(token_type, self._unescape_string(value[1:-1]), start_pos)

                if token_type == TokenType.IDENTIFIER:
                    keyword = KEYWORDS.get(value.lower())
                    if keyword:
                        return Token(keyword[0], keyword[1], start_pos)

                return Token(token_type, value, start_pos)
            else:
                raise LexerError(
                    f"Unexpected character '{self.source[self.position]}'",
                    self.position,
                )

        return Token(TokenType.EOF, None, self.position)

    def _unescape_string(self, s: str) -> str:
        """Process escape sequences in a string.

        Unknown sequences keep their backslash so regular expressions such as
        ``'^\\d+$'`` survive unchanged.
        """
        result = []
        i = 0
        while i < len(s):
            if s[i] == "\\" and i + 1 < len(s):
                next_char = s[i + 1]
                if next_char in _ESCAPES:
                    result.append(_ESCAPES[next_char])
                else:
                    result.append("\\" + next_char)
                i += 2
            else:
                result.append(s[i])
                i += 1
        return "".join(result)

    def tokenize(self) -> list[Token]:
        """Tokenize the entire source and return list of tokens."""
        return list(self)
