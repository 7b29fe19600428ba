"""Parser for rule descriptions.

Grammar:

    rule     := segment ("|" segment)*
    segment  := NAME [ "(" [ literal ("," literal)* ] ")" ]
    literal  := ["-"] NUMBER | STRING | BOOLEAN | NULL | array | object
    array    := "[" [ literal ("," literal)* ] "]"
    object   := "{" [ key ":" literal ("," key ":" literal)* ] "}"
    key      := NAME | STRING

Arguments are parsed straight into Python values. Nothing is ever evaluated,
so a rule string taken from configuration cannot run code.
"""

from dataclasses import dataclass, field
from typing import Any

from formtree.rules.lexer import Lexer, Token, TokenType


@dataclass(frozen=True)
class RuleCall:
    """One parsed rule segment: a validator name and its literal arguments."""

    name: str
    args: tuple[Any, ...] = field(default_factory=tuple)

    def __str__(self) -> str:
        if not self.args:
            return self.name
        return f"{self.name}({', '.join(repr(a) for a in self.args)})"


class ParseError(Exception):
    """Error during parsing."""

    def __init__(self, message: str, token: Token):
        self.token = token
        self.position = token.position
        super().__init__(f"{message} at position {token.position}")


class RuleParser:
    """Recursive descent parser for rule descriptions.

    Usage:
        parser = RuleParser('required|between(1, 10)')
        calls = parser.parse()
    """

    def __init__(self, source: str):
        self.source = source
        self.tokens = Lexer(source).tokenize()
        self.position = 0

    def parse(self) -> list[RuleCall]:
        """Parse the whole description and return its segments in order."""
        calls = [self._parse_segment()]

        while self._match(TokenType.PIPE):
            self._advance()
            calls.append(self._parse_segment())

        if not self._is_at_end():
            raise ParseError(
                f"Unexpected token '{self._current().value}'",
                self._current(),
            )

        return calls

    # -------------------------------------------------------------------------
    # Helper methods
    # -------------------------------------------------------------------------

    def _current(self) -> Token:
        if self.position >= len(self.tokens):
            return Token(TokenType.EOF, None, len(self.source))
        return self.tokens[self.position]

    def _is_at_end(self) -> bool:
        return self._current().type == TokenType.EOF

    def _advance(self) -> Token:
        token = self._current()
        self.position += 1
        return token

    def _match(self, *types: TokenType) -> bool:
        return self._current().type in types

    def _consume(self, token_type: TokenType, message: str) -> Token:
        if self._current().type == token_type:
            return self._advance()
        raise ParseError(message, self._current())

    # -------------------------------------------------------------------------
    # Grammar
    # -------------------------------------------------------------------------

    def _parse_segment(self) -> RuleCall:
        name_token = self._consume(TokenType.IDENTIFIER, "Expected validator name")
        name = str(name_token.value)

        if not self._match(TokenType.LPAREN):
            return RuleCall(name)

        self._advance()
        args = self._parse_sequence(TokenType.RPAREN, "Expected ')' after arguments")
        return RuleCall(name, tuple(args))

    def _parse_sequence(self, closing: TokenType, message: str) -> list[Any]:
        items: list[Any] = []

        if not self._match(closing):
            items.append(self._parse_literal())

            while self._match(TokenType.COMMA):
                self._advance()
                items.append(self._parse_literal())

        self._consume(closing, message)
        return items

    def _parse_literal(self) -> Any:
        token = self._current()

        if token.type == TokenType.MINUS:
            self._advance()
            number = self._consume(TokenType.NUMBER, "Expected number after '-'")
            return -number.value  # type: ignore[operator]

        if token.type in (TokenType.NUMBER, TokenType.STRING, TokenType.BOOLEAN, TokenType.NULL):
            self._advance()
            return token.value

        if token.type == TokenType.LBRACKET:
            self._advance()
            return self._parse_sequence(TokenType.RBRACKET, "Expected ']' after array elements")

        if token.type == TokenType.LBRACE:
            return self._parse_object()

        if token.type == TokenType.IDENTIFIER:
            raise ParseError(
                f"Bare name '{token.value}' is not a literal; quote it as a string",
                token,
            )

        raise ParseError(f"Unexpected token '{token.value}'", token)

    def _parse_object(self) -> dict[str, Any]:
        self._consume(TokenType.LBRACE, "Expected '{'")

        pairs: dict[str, Any] = {}

        if not self._match(TokenType.RBRACE):
            key, value = self._parse_object_pair()
            pairs[key] = value

            while self._match(TokenType.COMMA):
                self._advance()
                key, value = self._parse_object_pair()
                pairs[key] = value

        self._consume(TokenType.RBRACE, "Expected '}' after object")
        return pairs

    def _parse_object_pair(self) -> tuple[str, Any]:
        if self._match(TokenType.STRING, TokenType.IDENTIFIER):
            key = str(self._advance().value)
        else:
            raise ParseError("Expected string or identifier as object key", self._current())

        self._consume(TokenType.COLON, "Expected ':' after object key")
        return key, self._parse_literal()


def parse_rule(source: str) -> list[RuleCall]:
    """Convenience function to parse a rule description.

    Args:
        source: The rule string, e.g. ``"required|maxLength(20)"``

    Returns:
        The parsed segments in declaration order
    """
    return RuleParser(source).parse()
