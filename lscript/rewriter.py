"""
lscript Rewriter
================
Applies a Grammar's productions to a Word, generation by generation.

Each generation is a single left-to-right pass over the current word. For
every module the rewriter collects the productions whose predecessor,
contexts and condition all match, then:

    none kept   -> module copied unchanged
    one kept    -> applied
    several     -> one drawn with probability weight / sum

Context search is bracket-aware: when looking left, whole `[...]` branches
are skipped and a `[` is stepped over into the parent branch; when looking
right, whole branches are skipped and a `]` ends the search.
"""
import logging
from collections import defaultdict
from typing import Iterator

import numpy as np

from .commands import BRANCH_CLOSE, BRANCH_OPEN
from .config import DEFAULT_SEED
from .errors import ArityError, ConfigurationError, GrowthLimitError, WeightError
from .evaluator import Evaluator
from .grammar import Grammar, Module, ModulePattern, Production, Word

logger = logging.getLogger(__name__)


class Rewriter:
    """
    Rewrites words with the productions of one Grammar.

    Usage:
        rewriter = Rewriter(grammar, seed=42)
        word = rewriter.generate(5)

    Pass `rng` to share one numpy Generator with the turtle interpreter.
    """

    def __init__(self, grammar: Grammar, rng: np.random.Generator | None = None,
                 seed: int = DEFAULT_SEED, max_modules: int | None = None):
        self.grammar = grammar
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self.max_modules = max_modules
        self.evaluator = Evaluator(grammar.constants, self.rng)

        self._productions: dict[str, list[Production]] = defaultdict(list)
        for production in grammar.productions:
            self._productions[production.predecessor.symbol].append(production)

    # ─────────────────────────────────────────────────────────
    #  Generations
    # ─────────────────────────────────────────────────────────

    def generate(self, n: int) -> Word:
        """Rewrite the axiom n times and return the last word (n = 0 gives the axiom)."""
        word = self.grammar.axiom
        for word in self.iter_generations(n):
            pass
        return word

    def iter_generations(self, n: int) -> Iterator[Word]:
        """Yield the word after each of n generations."""
        if n < 0:
            raise ConfigurationError(f"Generation count must be >= 0, got {n}")
        word = self.grammar.axiom
        for generation in range(1, n + 1):
            word = self.rewrite(word)
            logger.debug("%s generation %d: %d module(s)",
                         self.grammar.name, generation, len(word))
            yield word

    def rewrite(self, word: Word) -> Word:
        """Run one generation over word and return the new word."""
        result: list[Module] = []
        for index in range(len(word)):
            result.extend(self._rewrite_module(word, index))
            if self.max_modules is not None and len(result) > self.max_modules:
                raise GrowthLimitError(
                    f"Word grew past {self.max_modules} modules while rewriting "
                    f"module {index} '{word[index]}'"
                )
        return tuple(result)

    # ─────────────────────────────────────────────────────────
    #  Production selection
    # ─────────────────────────────────────────────────────────

    def _rewrite_module(self, word: Word, index: int) -> tuple[Module, ...]:
        module = word[index]
        candidates = self._productions.get(module.symbol)
        if not candidates:
            return (module,)

        kept: list[tuple[Production, dict[str, float]]] = []
        for production in candidates:
            bindings = self._match(production, word, index)
            if bindings is None:
                continue
            if production.condition is not None and not self.evaluator.truthy(
                    production.condition, bindings):
                continue
            kept.append((production, bindings))

        if not kept:
            return (module,)
        if len(kept) == 1:
            production, bindings = kept[0]
        else:
            production, bindings = kept[self._draw(kept, index, module)]
        return self._apply(production, bindings)

    def _draw(self, kept: list[tuple[Production, dict[str, float]]],
              index: int, module: Module) -> int:
        """Pick one index with probability weight / sum."""
        cumulative = np.cumsum([production.weight for production, _ in kept])
        total = cumulative[-1]
        if total <= 0.0:
            raise WeightError(
                f"Matching productions for module {index} '{module}' have zero total weight",
                kept[0][0].line, kept[0][0].col,
            )
        r = self.rng.random() * total
        return min(int(np.searchsorted(cumulative, r, side="right")), len(kept) - 1)

    def _apply(self, production: Production, bindings: dict[str, float]) -> tuple[Module, ...]:
        return tuple(
            Module(template.symbol,
                   tuple(self.evaluator.evaluate(arg, bindings) for arg in template.args))
            for template in production.successor
        )

    # ─────────────────────────────────────────────────────────
    #  Matching
    # ─────────────────────────────────────────────────────────

    def _match(self, production: Production, word: Word,
               index: int) -> dict[str, float] | None:
        """Bindings for every parameter name if production applies at index, else None."""
        bindings: dict[str, float] = {}
        self._bind(production.predecessor, word[index], index, bindings)

        if production.left_context:
            if not self._match_left(production.left_context, word, index, bindings):
                return None
        if production.right_context:
            if not self._match_right(production.right_context, word, index, bindings):
                return None
        return bindings

    def _bind(self, pattern: ModulePattern, module: Module, index: int,
              bindings: dict[str, float]):
        if pattern.arity != module.arity:
            raise ArityError(
                f"Module {index} '{module}' has {module.arity} parameter(s), "
                f"pattern '{pattern}' expects {pattern.arity}",
                pattern.line, pattern.col,
            )
        bindings.update(zip(pattern.params, module.params))

    def _match_left(self, patterns: tuple[ModulePattern, ...], word: Word,
                    index: int, bindings: dict[str, float]) -> bool:
        j = index - 1
        for pattern in reversed(patterns):
            j = self._skip_left(word, j)
            if j < 0 or word[j].symbol != pattern.symbol:
                return False
            self._bind(pattern, word[j], j, bindings)
            j -= 1
        return True

    def _skip_left(self, word: Word, j: int) -> int:
        """Move j back to the nearest module visible as left context, or -1."""
        ignored = self.grammar.ignored
        while j >= 0:
            symbol = word[j].symbol
            if symbol == BRANCH_CLOSE:
                # Skip the whole sibling branch
                depth = 1
                j -= 1
                while j >= 0 and depth > 0:
                    if word[j].symbol == BRANCH_CLOSE:
                        depth += 1
                    elif word[j].symbol == BRANCH_OPEN:
                        depth -= 1
                    j -= 1
            elif symbol == BRANCH_OPEN or symbol in ignored:
                j -= 1
            else:
                return j
        return -1

    def _match_right(self, patterns: tuple[ModulePattern, ...], word: Word,
                     index: int, bindings: dict[str, float]) -> bool:
        j = index + 1
        for pattern in patterns:
            j = self._skip_right(word, j)
            if j >= len(word) or word[j].symbol != pattern.symbol:
                return False
            self._bind(pattern, word[j], j, bindings)
            j += 1
        return True

    def _skip_right(self, word: Word, j: int) -> int:
        """Move j forward to the nearest module visible as right context, or len(word)."""
        ignored = self.grammar.ignored
        while j < len(word):
            symbol = word[j].symbol
            if symbol == BRANCH_OPEN:
                depth = 1
                j += 1
                while j < len(word) and depth > 0:
                    if word[j].symbol == BRANCH_OPEN:
                        depth += 1
                    elif word[j].symbol == BRANCH_CLOSE:
                        depth -= 1
                    j += 1
            elif symbol == BRANCH_CLOSE:
                # End of the current branch
                return len(word)
            elif symbol in ignored:
                j += 1
            else:
                return j
        return len(word)
