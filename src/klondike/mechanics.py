import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from klondike import common as C

logger = logging.getLogger(__name__)


class HandOccupiedError(RuntimeError):
    """Raised when a pickup starts while cards are still held."""


@dataclass(frozen=True)
class Position:
    x: float = 0
    y: float = 0


ReturnCallback = Callable[[List[C.Card]], None]
MovedCallback = Callable[[object], None]


def _is_origin(target, origin) -> bool:
    """The pile the cards came from never takes them back as a move."""
    owns = getattr(target, "owns", None)
    return owns is not None and owns(origin)


class DragController:
    """
    One drag at a time: cards picked up go into a holding collection (the
    hand) and on release either move onto the first accepting drop target
    through a committed transaction, or go back where they came from.

    Owners wire it as follows:
      - call pick_up(cards, position, on_return, on_moved) when a drag starts
      - call release(targets) when the pointer is let go, passing the drop
        targets under the cards in registration order
      - call cancel() to abandon a drag; the cards are returned
    """

    def __init__(self, create_transaction: Callable[..., object]):
        self._create_transaction = create_transaction
        self.hand = C.CardCollection("hand", holding=True)
        self.position = Position()
        self._on_return: Optional[ReturnCallback] = None
        self._on_moved: Optional[MovedCallback] = None

    @property
    def holding(self) -> bool:
        return len(self.hand) > 0

    @property
    def cards(self) -> List[C.Card]:
        return list(self.hand.cards)

    def pick_up(
        self,
        cards: Sequence[C.Card],
        initial_position: Position = Position(),
        on_return: Optional[ReturnCallback] = None,
        on_moved: Optional[MovedCallback] = None,
    ) -> bool:
        if self.holding:
            raise HandOccupiedError(f"Already holding {self.hand.cards!r}")
        cards = list(cards)
        if not cards:
            return False
        if any(card.collection is None for card in cards):
            logger.warning("Refusing to pick up cards that are not in play: %r", cards)
            return False
        for card in cards:
            self.hand.put(card)
        self.position = initial_position
        self._on_return = on_return
        self._on_moved = on_moved
        return True

    def _return_cards(self, cards: List[C.Card]):
        for card in cards:
            if card.collection is not None:
                card.collection.put(card)
            else:
                logger.warning("Held card %r has no collection to return to", card)

    def release(self, candidate_targets: Sequence[object]) -> bool:
        """Resolve the drag. Returns True if the cards were dropped."""
        if not self.holding:
            return False
        held = self.cards
        origin = held[0].collection
        try:
            target = next(
                (t for t in candidate_targets if not _is_origin(t, origin) and t.can_drop(held)),
                None,
            )
            if target is not None:
                transaction = self._create_transaction(0)
                target.drop(held, transaction)
                if transaction.segments:
                    if self._on_moved is not None:
                        self._on_moved(transaction)
                    transaction.commit()
                    return True
                logger.warning("%r accepted %r but added no move", target, held)
            (self._on_return or self._return_cards)(held)
            if self.holding:
                self._return_cards(self.cards)
            return False
        finally:
            self._on_return = None
            self._on_moved = None
            self.position = Position()

    def cancel(self) -> None:
        self.release(())
