# piles.py - stock, waste, foundation and tableau rules
import logging
import random
from typing import Callable, List, Optional, Protocol, Sequence

from klondike import common as C
from klondike.settings import DEFAULT_RULES, ScoringRules

logger = logging.getLogger(__name__)


class DropTarget(Protocol):
    """A pile that can receive a held group of cards."""

    def can_drop(self, cards: Sequence[C.Card]) -> bool: ...

    def drop(self, cards: Sequence[C.Card], transaction) -> None: ...

    # Optional. A target that owns the cards' origin is skipped on release.
    def owns(self, collection: C.CardCollection) -> bool: ...

class Talon:
    def __init__(self):
        self.cards = C.CardCollection("talon")

    def top(self) -> Optional[C.Card]:
        return self.cards.top()


class Deck:
    """The stock: all 52 cards, face down, shuffled on creation."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()
        self.cards = C.CardCollection("stock", face_up=False)
        for card in C.make_deck():
            self.cards.put(card)
        self.shuffle()

    def shuffle(self):
        # Fisher-Yates, in place
        pile = self.cards.cards
        for i in range(len(pile) - 1, 0, -1):
            j = self.rng.randint(0, i)
            pile[i], pile[j] = pile[j], pile[i]

    def draw(self) -> Optional[C.Card]:
        return self.cards.draw()

    def tap(
        self,
        talon: Talon,
        create_transaction: Callable,
        rules: ScoringRules = DEFAULT_RULES,
    ) -> bool:
        """Draw the top card onto the talon, or recycle the talon when empty.

        Returns True when a transaction was committed.
        """
        if len(self.cards) > 0:
            transaction = create_transaction(0, rules.draw_undo_cost)
            transaction.add(self.cards.cards[-1:], talon.cards)
            return transaction.commit()

        # Reversed so the stock is drawn in the same order as before.
        cards_to_return = list(reversed(talon.cards.cards))
        if len(cards_to_return) <= 1:
            return False
        transaction = create_transaction(rules.recycle_bonus, rules.recycle_undo_cost)
        transaction.add(cards_to_return, self.cards)
        transaction.add(cards_to_return[-1:], talon.cards)
        return transaction.commit()


class Foundation:
    def __init__(self, suit: int):
        self.suit = suit
        self.cards = C.CardCollection(f"foundation {C.SUIT_NAMES[suit].lower()}")

    def top(self) -> Optional[C.Card]:
        return self.cards.top()

    def is_complete(self) -> bool:
        top = self.top()
        return top is not None and top.rank == C.KING

    def owns(self, collection) -> bool:
        return collection is self.cards

    def can_drop(self, cards: Sequence[C.Card]) -> bool:
        if len(cards) != 1:
            return False
        card = cards[0]
        top = self.top()
        previous_rank = top.rank if top is not None else 0
        return card.suit == self.suit and card.rank == previous_rank + 1

    def drop(self, cards: Sequence[C.Card], transaction) -> None:
        if len(cards) != 1:
            return
        transaction.add(cards, self.cards)


class TableauPile:
    def __init__(self, index: int = 0):
        self.index = index
        self.face_down = C.CardCollection(f"tableau {index} face down", face_up=False)
        self.visible = C.CardCollection(f"tableau {index}")

    def update(self):
        """Flip the top face-down card when nothing is showing."""
        if len(self.visible) == 0 and len(self.face_down) > 0:
            self.visible.put(self.face_down.draw())

    def all_cards(self) -> List[C.Card]:
        return list(self.face_down.cards) + list(self.visible.cards)

    def top(self) -> Optional[C.Card]:
        return self.visible.top()

    def owns(self, collection) -> bool:
        return collection is self.visible or collection is self.face_down

    def card_stack(self, card: C.Card) -> List[C.Card]:
        """The visible run from ``card`` up to the top of the pile."""
        if card not in self.visible:
            return []
        return self.visible.cards[self.visible.index(card):]

    def can_drop(self, cards: Sequence[C.Card]) -> bool:
        if not cards:
            return False
        lead = cards[0]
        top = self.visible.top()
        if top is None:
            return lead.rank == C.KING
        return lead.rank == top.rank - 1 and lead.color() != top.color()

    def drop(self, cards: Sequence[C.Card], transaction) -> None:
        transaction.add(cards, self.visible)

    def extend_with_reveal(self, transaction, rules: ScoringRules = DEFAULT_RULES) -> bool:
        """Add the flip of the next face-down card to a move that emptied this pile."""
        if len(self.visible) > 0 or len(self.face_down) == 0:
            return False
        transaction.add(self.face_down.cards[-1:], self.visible)
        transaction.add_score_bonus(rules.reveal_bonus)
        transaction.add_undo_penalty(rules.reveal_undo_cost)
        logger.debug("Tableau %d reveals %r", self.index, self.face_down.top())
        return True
