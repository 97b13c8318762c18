"""
lscript Parser
==============
Recursive-descent parser that turns the token stream produced by the Lexer
into a compiled Grammar.

Parsing happens in two passes:
  1. Syntax: statements are read into patterns, templates and expression
     nodes. Errors are accumulated; the parser re-synchronises on `;` and
     reports every problem in one ParseError.
  2. Semantics: constants are evaluated, the axiom is built, command names
     and symbol arities are checked, weights are validated. The first
     semantic error aborts compilation.

Statements:
  - let <name> = <expr>;
  - ignore <symbols>;
  - axiom <word>;
  - replace [<left> <] <pred>[(<names>)] [> <right>] by <word> [when <expr>] [: <expr>];
  - interpret <symbol>[(<names>)] ... as <Command>[(<exprs>)];
"""
import logging
from collections import defaultdict
from dataclasses import dataclass, field

from .commands import BRANCH_CLOSE, BRANCH_OPEN, is_symbol, lookup
from .errors import ArityError, Diagnostic, ParseError, WeightError
from .evaluator import FUNCTIONS, Evaluator
from .grammar import (
    Command, Grammar, InterpretationRule, Module, ModulePattern,
    ModuleTemplate, Production,
)
from .lexer import Lexer, Token, TokenType
from .nodes import (
    ASTNode, BinaryOpNode, CallNode, NumberNode, RangeNode, UnaryOpNode,
    VariableNode,
)

logger = logging.getLogger(__name__)


# Token types that stand for themselves when they appear inside a word
WORD_SYMBOL_TOKENS = {
    TokenType.PLUS, TokenType.MINUS, TokenType.SLASH, TokenType.CARET,
    TokenType.LT, TokenType.GT, TokenType.AMP, TokenType.PIPE,
    TokenType.BACKSLASH, TokenType.DOT, TokenType.LBRACKET, TokenType.RBRACKET,
}

RELATIONAL_OPS = {
    TokenType.LT, TokenType.GT, TokenType.EQ,
    TokenType.LTE, TokenType.GTE, TokenType.NEQ,
}
ADDITIVE_OPS = {TokenType.PLUS, TokenType.MINUS}
MULTIPLICATIVE_OPS = {TokenType.STAR, TokenType.SLASH, TokenType.PERCENT}
UNARY_OPS = {TokenType.MINUS, TokenType.PLUS, TokenType.BANG}

STATEMENT_KEYWORDS = {
    TokenType.KW_LET, TokenType.KW_IGNORE, TokenType.KW_AXIOM,
    TokenType.KW_REPLACE, TokenType.KW_INTERPRET,
}


class _Resync(Exception):
    """Raised after a diagnostic is recorded to abandon the current statement."""


@dataclass
class _WordItem:
    """One symbol read from a word, with its parenthesized list if any."""
    symbol: str
    line: int
    col: int
    names: list[str] = field(default_factory=list)
    args: list[ASTNode] = field(default_factory=list)
    has_list: bool = False


@dataclass
class _RawProduction:
    left: list[_WordItem]
    predecessor: _WordItem
    right: list[_WordItem]
    successor: list[_WordItem]
    condition: ASTNode | None
    weight: ASTNode | None
    token: Token


@dataclass
class _RawInterpretation:
    symbols: list[_WordItem]
    command_token: Token
    args: list[ASTNode]


class Parser:
    """
    Recursive-descent parser for L-system scripts.

    Usage:
        parser = Parser(tokens)
        grammar = parser.parse()
    """

    def __init__(self, tokens: list[Token]):
        self.tokens = tokens
        self.pos = 0
        self.diagnostics: list[Diagnostic] = []

        self._name = ""
        self._name_token: Token | None = None
        self._lets: list[tuple[Token, ASTNode]] = []
        self._axioms: list[tuple[Token, list[_WordItem]]] = []
        self._ignored: list[_WordItem] = []
        self._productions: list[_RawProduction] = []
        self._interpretations: list[_RawInterpretation] = []

    def _current(self) -> Token:
        return self.tokens[self.pos]

    def _peek(self, offset: int = 1) -> Token:
        idx = self.pos + offset
        if idx >= len(self.tokens):
            return self.tokens[-1]  # EOF
        return self.tokens[idx]

    def _advance(self) -> Token:
        token = self.tokens[self.pos]
        if self.pos < len(self.tokens) - 1:
            self.pos += 1
        return token

    def _check(self, *token_types: TokenType) -> bool:
        return self._current().type in token_types

    def _expect(self, token_type: TokenType, what: str) -> Token:
        token = self._current()
        if token.type != token_type:
            self._fail(f"Expected {what}, got {self._describe(token)}")
        return self._advance()

    def _describe(self, token: Token) -> str:
        if token.type == TokenType.EOF:
            return "end of input"
        return f"{token.type.name} ({token.value!r})"

    def _record_error(self, message: str, token: Token | None = None):
        """Record a diagnostic with location, continue parsing."""
        token = token or self._current()
        self.diagnostics.append(Diagnostic(message, token.line, token.col))

    def _fail(self, message: str, token: Token | None = None):
        self._record_error(message, token)
        raise _Resync(message)

    def _synchronize(self):
        """Skip to just after the next `;`, or stop at `}` / EOF."""
        while not self._check(TokenType.SEMICOLON, TokenType.RBRACE, TokenType.EOF):
            self._advance()
        if self._check(TokenType.SEMICOLON):
            self._advance()

    # ─────────────────────────────────────────────────────────
    #  Top-Level Parsing
    # ─────────────────────────────────────────────────────────

    def parse(self) -> Grammar:
        """Parse the token stream and compile it into a Grammar."""
        try:
            self._parse_header()
        except _Resync:
            raise ParseError.from_diagnostics(self.diagnostics) from None

        while not self._check(TokenType.RBRACE, TokenType.EOF):
            try:
                self._parse_statement()
            except _Resync:
                self._synchronize()

        try:
            self._expect(TokenType.RBRACE, "'}' closing the lsystem block")
            self._expect(TokenType.EOF, "end of input after the lsystem block")
        except _Resync:
            pass

        if self.diagnostics:
            raise ParseError.from_diagnostics(self.diagnostics)

        grammar = self._build_grammar()
        logger.debug(
            "Compiled lsystem %s: %d production(s), %d interpretation rule(s), %d constant(s)",
            grammar.name, len(grammar.productions),
            len(grammar.interpretations), len(grammar.constants),
        )
        return grammar

    def _parse_header(self):
        """Parse: lsystem <Name> {"""
        self._expect(TokenType.KW_LSYSTEM, "'lsystem'")
        self._name_token = self._expect(TokenType.IDENTIFIER, "lsystem name")
        self._name = self._name_token.value
        self._expect(TokenType.LBRACE, "'{' after lsystem name")

    def _parse_statement(self):
        token = self._current()
        match token.type:
            case TokenType.KW_LET:
                self._parse_let()
            case TokenType.KW_IGNORE:
                self._parse_ignore()
            case TokenType.KW_AXIOM:
                self._parse_axiom()
            case TokenType.KW_REPLACE:
                self._parse_replace()
            case TokenType.KW_INTERPRET:
                self._parse_interpret()
            case _:
                self._fail(
                    f"Expected let, ignore, axiom, replace or interpret, "
                    f"got {self._describe(token)}"
                )

    # ─────────────────────────────────────────────────────────
    #  Statements
    # ─────────────────────────────────────────────────────────

    def _parse_let(self):
        """Parse: let <name> = <expr>;"""
        self._advance()  # consume 'let'
        name_token = self._expect(TokenType.IDENTIFIER, "constant name after 'let'")
        self._expect(TokenType.EQ, "'=' in let statement")
        expr = self._parse_expression()
        self._expect(TokenType.SEMICOLON, "';' after let statement")
        self._lets.append((name_token, expr))

    def _parse_ignore(self):
        """Parse: ignore <symbols>;"""
        self._advance()  # consume 'ignore'
        items = self._parse_word({TokenType.SEMICOLON}, params=None)
        self._expect(TokenType.SEMICOLON, "';' after ignore statement")
        self._ignored.extend(items)

    def _parse_axiom(self):
        """Parse: axiom <word>;"""
        token = self._advance()  # consume 'axiom'
        items = self._parse_word({TokenType.SEMICOLON}, params="args")
        self._expect(TokenType.SEMICOLON, "';' after axiom")
        if not items:
            self._fail("Axiom must contain at least one symbol", token)
        self._axioms.append((token, items))

    def _parse_replace(self):
        """Parse: replace [<left> <] <pred>(<names>) [> <right>] by <word> [when <expr>] [: <expr>];"""
        token = self._advance()  # consume 'replace'

        lhs_stops = {TokenType.LT, TokenType.GT, TokenType.KW_BY}
        first = self._parse_word(lhs_stops, params="names")
        left: list[_WordItem] = []
        right: list[_WordItem] = []

        if self._check(TokenType.LT):
            self._advance()
            left = first
            predecessor = self._parse_word({TokenType.GT, TokenType.KW_BY}, params="names")
        else:
            predecessor = first

        if self._check(TokenType.GT):
            self._advance()
            right = self._parse_word({TokenType.KW_BY}, params="names")

        if len(predecessor) != 1:
            self._fail(
                f"Predecessor must be exactly one symbol, got {len(predecessor)}",
                token,
            )
        for item in left + right:
            if item.symbol in (BRANCH_OPEN, BRANCH_CLOSE):
                self._fail("Brackets are not allowed in context patterns",
                           Token(TokenType.LBRACKET, item.symbol, item.line, item.col))

        self._expect(TokenType.KW_BY, "'by' in replace statement")
        successor = self._parse_word(
            {TokenType.KW_WHEN, TokenType.COLON, TokenType.SEMICOLON}, params="args"
        )

        condition = None
        if self._check(TokenType.KW_WHEN):
            self._advance()
            condition = self._parse_expression()

        weight = None
        if self._check(TokenType.COLON):
            self._advance()
            weight = self._parse_expression()

        self._expect(TokenType.SEMICOLON, "';' after replace statement")
        self._productions.append(_RawProduction(
            left=left, predecessor=predecessor[0], right=right,
            successor=successor, condition=condition, weight=weight, token=token,
        ))

    def _parse_interpret(self):
        """Parse: interpret <symbol>[(<names>)] ... as <Command>[(<exprs>)];"""
        token = self._advance()  # consume 'interpret'
        symbols = self._parse_word({TokenType.KW_AS, TokenType.SEMICOLON}, params="names")
        if not symbols:
            self._fail("Expected at least one symbol after 'interpret'", token)
        self._expect(TokenType.KW_AS, "'as' in interpret statement")
        command_token = self._expect(TokenType.IDENTIFIER, "command name after 'as'")

        args: list[ASTNode] = []
        if self._check(TokenType.LPAREN):
            args = self._parse_argument_list()

        self._expect(TokenType.SEMICOLON, "';' after interpret statement")
        self._interpretations.append(_RawInterpretation(symbols, command_token, args))

    # ─────────────────────────────────────────────────────────
    #  Words
    # ─────────────────────────────────────────────────────────

    def _parse_word(self, stops: set[TokenType], params: str | None) -> list[_WordItem]:
        """
        Read symbols until a stop token.

        Identifier and number tokens are split into one symbol per character,
        so `ABA` and `1[0]0` read as words. A parenthesized list right after
        a symbol belongs to that symbol only: parameter names when params is
        "names", argument expressions when "args", and an error when None.
        """
        items: list[_WordItem] = []
        while not self._check(*stops) and not self._check(TokenType.EOF, TokenType.RBRACE):
            token = self._current()

            if token.type in (TokenType.IDENTIFIER, TokenType.NUMBER):
                chars = token.value
            elif token.type in WORD_SYMBOL_TOKENS:
                chars = token.value
            elif token.type in STATEMENT_KEYWORDS:
                self._fail(f"Missing ';' before {token.value!r}")
            else:
                self._fail(f"Unexpected {self._describe(token)} in word")

            for i, ch in enumerate(chars):
                if not is_symbol(ch):
                    self._fail(f"{ch!r} is not a valid symbol",
                               Token(token.type, ch, token.line, token.col + i))
                items.append(_WordItem(ch, token.line, token.col + i))
            self._advance()

            if self._check(TokenType.LPAREN):
                item = items[-1]
                if params is None:
                    self._fail(f"Symbol {item.symbol!r} cannot take parameters here")
                item.has_list = True
                if params == "names":
                    item.names = self._parse_name_list()
                else:
                    item.args = self._parse_argument_list()
        return items

    def _parse_name_list(self) -> list[str]:
        """Parse: ( [name {, name}] )"""
        self._expect(TokenType.LPAREN, "'('")
        names: list[str] = []
        if not self._check(TokenType.RPAREN):
            names.append(self._expect(TokenType.IDENTIFIER, "parameter name").value)
            while self._check(TokenType.COMMA):
                self._advance()
                names.append(self._expect(TokenType.IDENTIFIER, "parameter name").value)
        self._expect(TokenType.RPAREN, "')' closing parameter names")
        return names

    def _parse_argument_list(self) -> list[ASTNode]:
        """Parse: ( [expr {, expr}] )"""
        self._expect(TokenType.LPAREN, "'('")
        args: list[ASTNode] = []
        if not self._check(TokenType.RPAREN):
            args.append(self._parse_expression())
            while self._check(TokenType.COMMA):
                self._advance()
                args.append(self._parse_expression())
        self._expect(TokenType.RPAREN, "')' closing argument list")
        return args

    # ─────────────────────────────────────────────────────────
    #  Expressions (lowest to highest precedence)
    # ─────────────────────────────────────────────────────────

    def _parse_expression(self) -> ASTNode:
        return self._parse_or()

    def _parse_binary(self, operators: set[TokenType], operand) -> ASTNode:
        left = operand()
        while self._check(*operators):
            op = self._advance()
            right = operand()
            left = BinaryOpNode(operator=op.value, left=left, right=right,
                                line=op.line, col=op.col)
        return left

    def _parse_or(self) -> ASTNode:
        return self._parse_binary({TokenType.PIPE}, self._parse_and)

    def _parse_and(self) -> ASTNode:
        return self._parse_binary({TokenType.AMP}, self._parse_relational)

    def _parse_relational(self) -> ASTNode:
        return self._parse_binary(RELATIONAL_OPS, self._parse_additive)

    def _parse_additive(self) -> ASTNode:
        return self._parse_binary(ADDITIVE_OPS, self._parse_multiplicative)

    def _parse_multiplicative(self) -> ASTNode:
        return self._parse_binary(MULTIPLICATIVE_OPS, self._parse_power)

    def _parse_power(self) -> ASTNode:
        """Exponentiation is right-associative: 2^3^2 = 2^(3^2)."""
        base = self._parse_unary()
        if self._check(TokenType.CARET):
            op = self._advance()
            exponent = self._parse_power()
            return BinaryOpNode(operator="^", left=base, right=exponent,
                                line=op.line, col=op.col)
        return base

    def _parse_unary(self) -> ASTNode:
        if self._check(*UNARY_OPS):
            op = self._advance()
            operand = self._parse_unary()
            return UnaryOpNode(operator=op.value, operand=operand, line=op.line, col=op.col)
        return self._parse_primary()

    def _parse_primary(self) -> ASTNode:
        token = self._current()

        if token.type == TokenType.NUMBER:
            self._advance()
            return NumberNode(value=float(token.value), line=token.line, col=token.col)

        if token.type == TokenType.RANGE:
            self._advance()
            low, high = (float(part) for part in token.value.split(".."))
            if high < low:
                self._fail(f"Empty random range {token.value}", token)
            return RangeNode(low=low, high=high, line=token.line, col=token.col)

        if token.type == TokenType.IDENTIFIER:
            self._advance()
            if self._check(TokenType.LPAREN):
                if token.value not in FUNCTIONS:
                    self._fail(f"Unknown function '{token.value}'", token)
                args = self._parse_argument_list()
                return CallNode(func_name=token.value, args=args, line=token.line, col=token.col)
            return VariableNode(name=token.value, line=token.line, col=token.col)

        if token.type == TokenType.LPAREN:
            self._advance()
            inner = self._parse_expression()
            self._expect(TokenType.RPAREN, "')' closing group")
            return inner

        self._fail(f"Expected expression, got {self._describe(token)}")

    # ─────────────────────────────────────────────────────────
    #  Semantic pass
    # ─────────────────────────────────────────────────────────

    def _build_grammar(self) -> Grammar:
        constants = self._evaluate_constants()
        evaluator = Evaluator(constants)
        arities: dict[str, tuple[int, int, int]] = {}

        def declare(symbol: str, arity: int, line: int, col: int):
            seen = arities.get(symbol)
            if seen is None:
                arities[symbol] = (arity, line, col)
            elif seen[0] != arity:
                raise ArityError(
                    f"Symbol '{symbol}' used with {arity} parameter(s), "
                    f"but with {seen[0]} at L{seen[1]}:{seen[2]}",
                    line, col,
                )

        # Axiom
        if not self._axioms:
            raise ParseError("Missing axiom statement", self._name_token.line, self._name_token.col)
        if len(self._axioms) > 1:
            dup = self._axioms[1][0]
            raise ParseError("Duplicate axiom statement", dup.line, dup.col)
        axiom_modules = []
        for item in self._axioms[0][1]:
            declare(item.symbol, len(item.args), item.line, item.col)
            params = tuple(evaluator.evaluate(arg) for arg in item.args)
            axiom_modules.append(Module(item.symbol, params))

        # Productions
        productions = []
        for raw in self._productions:
            productions.append(self._build_production(raw, evaluator, declare))
        self._check_group_weights(productions)

        # Interpretation table
        interpretations: dict[str, InterpretationRule] = {}
        for raw in self._interpretations:
            info = lookup(raw.command_token.value)
            if info is None:
                raise ParseError(
                    f"Unknown command '{raw.command_token.value}'",
                    raw.command_token.line, raw.command_token.col,
                )
            if len(raw.args) != info.arity:
                raise ArityError(
                    f"{info.name} takes {info.arity} argument(s), got {len(raw.args)}",
                    raw.command_token.line, raw.command_token.col,
                )
            command = Command(info, tuple(raw.args))
            for item in raw.symbols:
                if item.symbol in interpretations:
                    prev = interpretations[item.symbol]
                    raise ParseError(
                        f"Duplicate interpretation for '{item.symbol}' "
                        f"(first declared at L{prev.line}:{prev.col})",
                        item.line, item.col,
                    )
                self._check_unique_names([item], item)
                declare(item.symbol, len(item.names), item.line, item.col)
                interpretations[item.symbol] = InterpretationRule(
                    item.symbol, tuple(item.names), command, item.line, item.col,
                )

        return Grammar(
            name=self._name,
            axiom=tuple(axiom_modules),
            productions=tuple(productions),
            interpretations=interpretations,
            constants=constants,
            arities={symbol: entry[0] for symbol, entry in arities.items()},
            ignored=frozenset(item.symbol for item in self._ignored),
        )

    def _evaluate_constants(self) -> dict[str, float]:
        constants: dict[str, float] = {}
        for name_token, expr in self._lets:
            if name_token.value in constants:
                raise ParseError(f"Duplicate constant '{name_token.value}'",
                                 name_token.line, name_token.col)
            constants[name_token.value] = Evaluator(constants).evaluate(expr)
        return constants

    def _check_unique_names(self, items: list[_WordItem], anchor: _WordItem):
        seen: set[str] = set()
        for item in items:
            for name in item.names:
                if name in seen:
                    raise ParseError(f"Duplicate parameter name '{name}'", anchor.line, anchor.col)
                seen.add(name)

    def _build_production(self, raw: _RawProduction, evaluator: Evaluator, declare) -> Production:
        pattern_items = raw.left + [raw.predecessor] + raw.right
        self._check_unique_names(pattern_items, raw.predecessor)
        for item in pattern_items:
            declare(item.symbol, len(item.names), item.line, item.col)
        for item in raw.successor:
            declare(item.symbol, len(item.args), item.line, item.col)

        weight = 1.0
        if raw.weight is not None:
            weight = evaluator.evaluate(raw.weight)
            if weight < 0.0:
                raise WeightError(f"Negative production weight {weight}",
                                  raw.token.line, raw.token.col)

        def pattern(item: _WordItem) -> ModulePattern:
            return ModulePattern(item.symbol, tuple(item.names), item.line, item.col)

        return Production(
            predecessor=pattern(raw.predecessor),
            successor=tuple(
                ModuleTemplate(item.symbol, tuple(item.args), item.line, item.col)
                for item in raw.successor
            ),
            left_context=tuple(pattern(item) for item in raw.left),
            right_context=tuple(pattern(item) for item in raw.right),
            condition=raw.condition,
            weight=weight,
            line=raw.token.line,
            col=raw.token.col,
        )

    def _check_group_weights(self, productions: list[Production]):
        groups: dict[tuple, list[Production]] = defaultdict(list)
        for production in productions:
            groups[production.group_key].append(production)
        for members in groups.values():
            if sum(p.weight for p in members) == 0.0:
                first = members[0]
                raise WeightError(
                    f"Weights of the productions for '{first.predecessor}' sum to zero",
                    first.line, first.col,
                )


def compile_source(source: str) -> Grammar:
    """Lex, parse and compile one `lsystem` block."""
    return Parser(Lexer(source).tokenize()).parse()


def parse_expression(source: str) -> ASTNode:
    """Parse a standalone expression such as `x * 2 + sin(a)`."""
    parser = Parser(Lexer(source).tokenize())
    try:
        node = parser._parse_expression()
        parser._expect(TokenType.EOF, "end of expression")
    except _Resync:
        raise ParseError.from_diagnostics(parser.diagnostics) from None
    return node
