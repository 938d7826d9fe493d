"""Grouped card moves that can be performed and rolled back exactly.

A :class:`Transaction` is a list of :class:`TransactionSegment` objects plus
the score bonus it awards when committed and the extra cost charged if it is
later undone. Segments remember their source collection at the moment they
are added, not when they are performed, so a later segment can move cards an
earlier segment of the same transaction has not moved yet.
"""

from __future__ import annotations

import logging
from typing import Iterator, List, Optional, Sequence

from klondike.common import Card, CardCollection

logger = logging.getLogger(__name__)


class TransactionSegment:
    """One group move: ``cards`` from ``source`` onto ``destination``."""

    def __init__(self, cards: Sequence[Card], source: CardCollection, destination: CardCollection) -> None:
        self.cards: List[Card] = list(cards)
        self.source = source
        self.destination = destination
        self._return_order = self._stack_order(self.cards)

    @staticmethod
    def _stack_order(cards: List[Card]) -> List[Card]:
        # Order the cards held in their owning collection when the segment was made.
        def position(card: Card) -> int:
            owner = card.current_collection()
            return owner.index(card) if owner is not None and card in owner else 0

        return sorted(cards, key=position)

    def _move_cards_to(self, destination: CardCollection, cards: List[Card]) -> None:
        for card in cards:
            destination.put(card)

    def perform(self) -> None:
        self._move_cards_to(self.destination, self.cards)

    def rollback(self) -> None:
        self._move_cards_to(self.source, self._return_order)

    def __repr__(self) -> str:
        return f"TransactionSegment({self.cards!r}, {self.source.name!r} -> {self.destination.name!r})"


class Transaction:
    def __init__(self, bonus: int = 0, undo_cost: int = 0) -> None:
        self.segments: List[TransactionSegment] = []
        self.bonus = bonus
        self.undo_cost = undo_cost

    def add(self, cards: Sequence[Card], destination: CardCollection) -> Optional[TransactionSegment]:
        cards = list(cards)
        if not cards:
            logger.warning("Ignoring transaction segment with no cards")
            return None

        source = cards[0].collection
        if source is None:
            logger.warning("Ignoring transaction segment for ownerless cards %r", cards)
            return None
        if any(card.collection is not source for card in cards[1:]):
            logger.warning("Ignoring transaction segment for cards from several collections %r", cards)
            return None

        segment = TransactionSegment(cards, source, destination)
        self.segments.append(segment)
        return segment

    def add_score_bonus(self, bonus: int) -> None:
        self.bonus += bonus

    def add_undo_penalty(self, penalty: int) -> None:
        self.undo_cost += penalty

    def perform(self) -> None:
        for segment in self.segments:
            segment.perform()

    def rollback(self) -> None:
        for segment in reversed(self.segments):
            segment.rollback()

    def __repr__(self) -> str:
        return f"Transaction(bonus={self.bonus}, undo_cost={self.undo_cost}, segments={self.segments!r})"


class TransactionLog:
    """History of committed transactions; only the newest can be undone."""

    def __init__(self) -> None:
        self._stack: List[Transaction] = []

    def push(self, transaction: Transaction) -> None:
        self._stack.append(transaction)

    def pop(self) -> Optional[Transaction]:
        if self._stack:
            return self._stack.pop()
        return None

    def last(self) -> Optional[Transaction]:
        return self._stack[-1] if self._stack else None

    def __contains__(self, transaction: object) -> bool:
        return any(t is transaction for t in self._stack)

    def __len__(self) -> int:
        return len(self._stack)

    def __iter__(self) -> Iterator[Transaction]:
        return iter(list(self._stack))
