# services/markov.py
from __future__ import annotations
import logging
import random
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from typequest.app.config import GeneratorSettings

log = logging.getLogger(__name__)

TOKEN_RE = re.compile(r"\b[\w']+\b|[.,!?;]")
SENTENCE_END_RE = re.compile(r"[.!?]$")
SPACE_BEFORE_PUNCT_RE = re.compile(r"\s+([.,!?;])")

State = Tuple[str, ...]


def tokenize(text: str) -> List[str]:
    """Words (apostrophes kept) and standalone punctuation marks."""
    return TOKEN_RE.findall(text or "")


def format_tokens(tokens: Iterable[str]) -> str:
    return SPACE_BEFORE_PUNCT_RE.sub(r"\1", " ".join(tokens))


@dataclass(frozen=True)
class MarkovModel:
    order: int
    transitions: Dict[State, List[str]] = field(default_factory=dict)
    start_states: List[State] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.start_states

    @classmethod
    def build(cls, corpus_text: str, order: int) -> "MarkovModel":
        tokens = tokenize(corpus_text)
        transitions: Dict[State, List[str]] = {}
        starts: List[State] = []
        for i in range(len(tokens) - order):
            state = tuple(tokens[i:i + order])
            # every occurrence is stored, so frequent successors weigh more
            transitions.setdefault(state, []).append(tokens[i + order])
            if i == 0 or tokens[i][:1].isupper():
                starts.append(state)
        return cls(order=order, transitions=transitions, start_states=starts)


class MarkovTextGenerator:
    def __init__(self, order: Optional[int] = None, rng: Optional[random.Random] = None,
                 settings: Optional[GeneratorSettings] = None):
        self.settings = settings or GeneratorSettings()
        self.order = order if order is not None else self.settings.order
        if self.order < 1:
            raise ValueError("order must be >= 1")
        self.rng = rng or random.Random()
        self.model = MarkovModel(order=self.order)

    def train(self, corpus_text: str) -> None:
        # full rebuild; the old model stays readable until the swap
        self.model = MarkovModel.build(corpus_text, self.order)
        log.info(
            "Trained order-%d chain: %d states, %d sentence starts",
            self.order, len(self.model.transitions), len(self.model.start_states),
        )

    def generate(self, min_length: Optional[int] = None) -> str:
        if min_length is None:
            min_length = self.settings.default_min_length
        min_length = max(1, int(min_length))
        model = self.model
        if model.is_empty:
            log.warning("Generator has no sentence starts; using fallback sentence")
            return self.settings.fallback_sentence

        # the opening state alone may exceed the cap when order is large
        cap = max(self.settings.safety_cap_factor * min_length, model.order)
        current = self.rng.choice(model.start_states)
        output = list(current)
        while len(output) < cap:
            if len(output) >= min_length and SENTENCE_END_RE.search(output[-1]):
                break
            options = model.transitions.get(current)
            if not options:
                break  # dead end
            output.append(self.rng.choice(options))
            current = tuple(output[-model.order:])
        return format_tokens(output)

    def generate_focused(self, focus_keys: Iterable[str], min_length: Optional[int] = None,
                         candidates: int = 5) -> str:
        """Best of `candidates` sentences by density of `focus_keys`."""
        focus = {k.lower() for k in focus_keys if k}
        best, best_score = None, -1.0
        for _ in range(max(1, candidates)):
            sentence = self.generate(min_length)
            if not focus:
                return sentence
            hits = sum(1 for ch in sentence.lower() if ch in focus)
            score = hits / len(sentence)
            if score > best_score:
                best, best_score = sentence, score
        return best
