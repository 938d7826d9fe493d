"""The game session: piles, transaction log, score and the current drag.

Everything a front-end needs goes through :class:`GameSession`. Moves are
only ever applied by committing a transaction, so :meth:`GameSession.undo`
can roll any of them back exactly.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from klondike import common as C
from klondike.mechanics import DragController, Position
from klondike.piles import Deck, DropTarget, Foundation, TableauPile, Talon
from klondike.settings import DEFAULT_RULES, ScoringRules
from klondike.transaction import Transaction, TransactionLog, TransactionSegment

logger = logging.getLogger(__name__)

TABLEAU_PILES = 7
FOUNDATION_SUITS = (C.HEARTS, C.DIAMONDS, C.SPADES, C.CLUBS)


class TransactionController:
    """Handle used to build up one transaction and commit it to a session."""

    def __init__(self, session: "GameSession", transaction: Transaction) -> None:
        self._session = session
        self.transaction = transaction

    @property
    def segments(self) -> List[TransactionSegment]:
        return self.transaction.segments

    def add(self, cards: Sequence[C.Card], destination: C.CardCollection) -> None:
        self.transaction.add(cards, destination)

    def add_score_bonus(self, bonus: int) -> None:
        self.transaction.add_score_bonus(bonus)

    def add_undo_penalty(self, penalty: int) -> None:
        self.transaction.add_undo_penalty(penalty)

    def commit(self) -> bool:
        return self._session.commit(self.transaction)


@dataclass(frozen=True)
class TableauView:
    face_down: Tuple[C.Card, ...]
    visible: Tuple[C.Card, ...]


@dataclass(frozen=True)
class SessionView:
    stock: Tuple[C.Card, ...]
    talon: Tuple[C.Card, ...]
    foundations: Tuple[Tuple[C.Card, ...], ...]
    tableau: Tuple[TableauView, ...]
    hand: Tuple[C.Card, ...]
    score: int
    won: bool


class GameSession:
    def __init__(self, rules: Optional[ScoringRules] = None, rng: Optional[random.Random] = None) -> None:
        self.rules = rules or DEFAULT_RULES
        self.rng = rng or random.Random()
        self.new_game()

    # ---------- Setup ----------
    def new_game(self) -> None:
        self.stock = Deck(self.rng)
        self.talon = Talon()
        self.foundations = [Foundation(suit) for suit in FOUNDATION_SUITS]
        self.tableau = [TableauPile(i) for i in range(TABLEAU_PILES)]
        for i, pile in enumerate(self.tableau):
            for _ in range(i + 1):
                pile.face_down.put(self.stock.draw())
            pile.update()
        self.talon.cards.put(self.stock.draw())
        self.log = TransactionLog()
        self.score = self.rules.starting_score
        self.drag = DragController(self.create_transaction)
        logger.debug("New game dealt, %d cards left in stock", len(self.stock.cards))

    # ---------- Transactions ----------
    def create_transaction(self, bonus: int = 0, undo_cost: int = 0) -> TransactionController:
        return TransactionController(self, Transaction(bonus, undo_cost))

    def _set_score(self, value: int) -> None:
        self.score = max(value, 0)

    def commit(self, transaction: Transaction) -> bool:
        if transaction in self.log:
            logger.warning("Attempted to commit transaction twice: %r", transaction)
            return False
        transaction.perform()
        self.log.push(transaction)
        self._set_score(self.score + transaction.bonus)
        logger.debug("Committed %r, score %d", transaction, self.score)
        return True

    def undo(self) -> bool:
        if self.drag.holding:
            logger.warning("Cannot undo while cards are held")
            return False
        transaction = self.log.pop()
        if transaction is None:
            logger.debug("Nothing to undo")
            return False
        transaction.rollback()
        self._set_score(self.score - transaction.bonus - transaction.undo_cost)
        logger.debug("Undid %r, score %d", transaction, self.score)
        return True

    @property
    def can_undo(self) -> bool:
        return len(self.log) > 0 and not self.drag.holding

    @property
    def moves(self) -> int:
        return len(self.log)

    # ---------- Stock ----------
    def tap_stock(self) -> bool:
        if self.drag.holding:
            return False
        return self.stock.tap(self.talon, self.create_transaction, self.rules)

    # ---------- Dragging ----------
    def drop_targets(self) -> List[DropTarget]:
        return [*self.tableau, *self.foundations]

    def pick_up(self, cards, initial_position=Position(), on_return=None, on_moved=None) -> bool:
        return self.drag.pick_up(cards, initial_position, on_return, on_moved)

    def pick_up_from_tableau(self, index: int, card: C.Card, initial_position: Position = Position()) -> bool:
        pile = self.tableau[index]
        stack = pile.card_stack(card)
        if not stack:
            return False

        def moved(transaction):
            pile.extend_with_reveal(transaction, self.rules)

        return self.drag.pick_up(stack, initial_position, on_moved=moved)

    def pick_up_from_talon(self, initial_position: Position = Position()) -> bool:
        top = self.talon.top()
        if top is None:
            return False
        return self.drag.pick_up([top], initial_position)

    def pick_up_from_foundation(self, index: int, initial_position: Position = Position()) -> bool:
        top = self.foundations[index].top()
        if top is None:
            return False
        return self.drag.pick_up([top], initial_position)

    def release(self, targets: Optional[Iterable[DropTarget]] = None) -> bool:
        if targets is None:
            targets = self.drop_targets()
        return self.drag.release(list(targets))

    def cancel_drag(self) -> None:
        self.drag.cancel()

    # ---------- Queries ----------
    @property
    def is_won(self) -> bool:
        return all(f.is_complete() for f in self.foundations)

    def all_collections(self) -> List[C.CardCollection]:
        collections = [self.stock.cards, self.talon.cards]
        collections += [f.cards for f in self.foundations]
        for pile in self.tableau:
            collections += [pile.face_down, pile.visible]
        collections.append(self.drag.hand)
        return collections

    def view(self) -> SessionView:
        return SessionView(
            stock=self.stock.cards.snapshot(),
            talon=self.talon.cards.snapshot(),
            foundations=tuple(f.cards.snapshot() for f in self.foundations),
            tableau=tuple(TableauView(p.face_down.snapshot(), p.visible.snapshot()) for p in self.tableau),
            hand=self.drag.hand.snapshot(),
            score=self.score,
            won=self.is_won,
        )
