"""
lscript Engine
==============
Facade tying the pipeline together:

    source -> compile_source -> Grammar -> Rewriter -> Word -> TurtleInterpreter -> TurtleOutput

plus a small factory that caches generated words and turtle outputs so an
application can redraw the same system without rewriting it again.
"""
import logging
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from .config import EngineConfig
from .grammar import Grammar, Word, word_to_string
from .parser import compile_source
from .rewriter import Rewriter
from .turtle import TurtleInterpreter, TurtleOutput

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """Final word and turtle output of one run."""
    word: Word
    output: TurtleOutput

    @property
    def word_string(self) -> str:
        return word_to_string(self.word)

    def vertex_buffer(self) -> np.ndarray:
        return self.output.vertex_buffer()


class LSystem:
    """
    A compiled script bound to a configuration.

    Usage:
        system = LSystem.from_source(source, EngineConfig(iterations=4))
        result = system.run()
        print(result.word_string, len(result.output.vertices))
    """

    def __init__(self, grammar: Grammar, config: EngineConfig | None = None):
        self.grammar = grammar
        self.config = config or EngineConfig()

    @classmethod
    def from_source(cls, source: str, config: EngineConfig | None = None) -> "LSystem":
        return cls(compile_source(source), config)

    @classmethod
    def from_file(cls, path: str | Path, config: EngineConfig | None = None) -> "LSystem":
        return cls.from_source(Path(path).read_text(encoding="utf-8"), config)

    @property
    def name(self) -> str:
        return self.grammar.name

    def _rng(self) -> np.random.Generator:
        return np.random.default_rng(self.config.seed)

    def generate(self, iterations: int | None = None) -> Word:
        """Rewrite the axiom; defaults to config.iterations generations."""
        n = self.config.iterations if iterations is None else iterations
        rewriter = Rewriter(self.grammar, rng=self._rng(),
                            max_modules=self.config.max_modules)
        return rewriter.generate(n)

    def interpret(self, word: Word) -> TurtleOutput:
        """
        Interpret word with a generator freshly seeded from config.seed.

        Range arguments draw from that fresh generator, so for stochastic
        scripts the stream can differ from run(), which continues the
        generator the rewriter used.
        """
        return TurtleInterpreter(self.grammar, self.config, rng=self._rng()).interpret(word)

    def run(self, iterations: int | None = None) -> RunResult:
        """Generate then interpret, sharing one seeded generator."""
        n = self.config.iterations if iterations is None else iterations
        rng = self._rng()
        word = Rewriter(self.grammar, rng=rng,
                        max_modules=self.config.max_modules).generate(n)
        output = TurtleInterpreter(self.grammar, self.config, rng=rng).interpret(word)
        logger.debug("Ran %s for %d generation(s), seed %d: %d module(s), %d vertices",
                     self.name, n, self.config.seed, len(word), len(output.vertices))
        return RunResult(word, output)


class LSystemFactory:
    """
    Caches words per (name, iterations, seed) and run results per
    (name, config). Systems are identified by their `lsystem` name only.

    `render` caches `LSystem.run`, so a cached output is the same vertex
    stream a direct run gives for that config.
    """

    def __init__(self):
        self._words: dict[tuple[str, int, int], Word] = {}
        self._runs: dict[tuple[str, EngineConfig], RunResult] = {}

    def generate(self, system: LSystem, iterations: int | None = None) -> Word:
        n = system.config.iterations if iterations is None else iterations
        key = (system.name, n, system.config.seed)
        if key not in self._words:
            logger.debug("Cache miss for word %s", key)
            self._words[key] = system.generate(n)
        return self._words[key]

    def run(self, system: LSystem) -> RunResult:
        """Word and turtle output of system.run(), computed once per config."""
        key = (system.name, system.config)
        if key not in self._runs:
            logger.debug("Cache miss for run %s", key)
            result = system.run()
            self._runs[key] = result
            word_key = (system.name, system.config.iterations, system.config.seed)
            self._words.setdefault(word_key, result.word)
        return self._runs[key]

    def render(self, system: LSystem) -> TurtleOutput:
        return self.run(system).output

    def clear(self):
        self._words.clear()
        self._runs.clear()

    def __len__(self) -> int:
        return len(self._words) + len(self._runs)
