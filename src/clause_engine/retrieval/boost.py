"""Rule-based score boosts applied on top of lexical overlap."""

from __future__ import annotations

from collections.abc import Sequence

from clause_engine.config import BoostRule


class BoostEvaluator:
    """Resolves which boost rules a query activates and scores chunks with them.

    Term overlap under-ranks exclusion lists because they are written in a
    different vocabulary than the question ("Annexure I: items not payable"
    versus "is a nebulizer kit payable?"). A rule whose trigger phrase
    appears in the query adds a fixed bonus to every chunk that contains one
    of its signal phrases, large enough to outrank ordinary matches.
    """

    def __init__(self, rules: Sequence[BoostRule]) -> None:
        self.rules = list(rules)

    def active_rules(self, query: str) -> list[BoostRule]:
        lowered = query.lower()
        return [
            rule
            for rule in self.rules
            if any(trigger.lower() in lowered for trigger in rule.triggers)
        ]

    @staticmethod
    def bonus(text: str, rules: Sequence[BoostRule]) -> float:
        lowered = text.lower()
        return sum(
            rule.bonus
            for rule in rules
            if any(signal.lower() in lowered for signal in rule.signals)
        )
