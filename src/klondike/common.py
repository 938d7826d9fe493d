# common.py - cards, card collections and shared table constants
from typing import Iterator, List, Optional, Tuple

# ---------- Configuration ----------
SCREEN_W, SCREEN_H = 1100, 760
GREEN_TABLE = (2, 100, 40)
TABLE_BG = GREEN_TABLE

CARD_W, CARD_H = 100, 140
CARD_RADIUS = 10
CARD_GAP_X = 18
CARD_GAP_Y = 26
TOP_BAR_H = 60

# Colors
BLACK = (20, 20, 20)
WHITE = (245, 245, 245)
RED = (200, 20, 20)
BLUE = (34, 96, 200)
GOLD = (230, 190, 80)
LIGHT = (220, 220, 220)

SUITS = ["♠", "♥", "♦", "♣"]  # 0..3
SUIT_NAMES = ["Spades", "Hearts", "Diamonds", "Clubs"]
RANK_TO_TEXT = {1: "A", 11: "J", 12: "Q", 13: "K"}
for _r in range(2, 11):
    RANK_TO_TEXT[_r] = str(_r)

SPADES, HEARTS, DIAMONDS, CLUBS = 0, 1, 2, 3
ACE, KING = 1, 13
RANKS = range(ACE, KING + 1)


def is_red(suit):
    return suit in (HEARTS, DIAMONDS)


def suit_color(suit):
    return "red" if is_red(suit) else "black"


# ---------- Cards & Collections ----------
class Card:
    """A playing card with a back-reference to the collection holding it.

    ``collection`` is the permanent owner. ``temporary_collection`` is set
    while the card sits in a holding collection (the hand during a drag) so
    that the permanent owner survives until the move resolves.
    """

    __slots__ = ("_suit", "_rank", "collection", "temporary_collection")

    def __init__(self, suit, rank):
        if suit not in range(4):
            raise ValueError(f"Unknown suit index: {suit}")
        if rank not in RANKS:
            raise ValueError(f"Rank out of range: {rank}")
        self._suit = suit
        self._rank = rank
        self.collection: Optional["CardCollection"] = None
        self.temporary_collection: Optional["CardCollection"] = None

    @property
    def suit(self):
        return self._suit

    @property
    def rank(self):
        return self._rank

    @property
    def label(self):
        return f"{RANK_TO_TEXT[self._rank]} of {SUIT_NAMES[self._suit]}"

    def color(self):
        return suit_color(self._suit)

    def is_red(self):
        return is_red(self._suit)

    def current_collection(self) -> Optional["CardCollection"]:
        if self.temporary_collection is not None:
            return self.temporary_collection
        return self.collection

    def __repr__(self):
        return f"{RANK_TO_TEXT[self._rank]}{SUITS[self._suit]}"


class CardCollection:
    """Ordered stack of cards; the last card is the top.

    A card lives in at most one collection: ``put`` detaches it from wherever
    it currently is before appending it here. A holding collection only
    records provisional ownership, leaving ``card.collection`` untouched.
    """

    def __init__(self, name: str = "", holding: bool = False, face_up: bool = True):
        self.name = name
        self.holding = holding
        self.face_up = face_up
        self.cards: List[Card] = []

    def put(self, card: Card):
        current = card.current_collection()
        if current is not None:
            current.cards.remove(card)
        self.cards.append(card)
        if self.holding:
            card.temporary_collection = self
        else:
            card.collection = self
            card.temporary_collection = None

    def draw(self) -> Optional[Card]:
        if not self.cards:
            return None
        card = self.cards.pop()
        card.collection = None
        card.temporary_collection = None
        return card

    def top(self) -> Optional[Card]:
        return self.cards[-1] if self.cards else None

    def index(self, card: Card) -> int:
        return self.cards.index(card)

    def snapshot(self) -> Tuple[Card, ...]:
        return tuple(self.cards)

    def __len__(self):
        return len(self.cards)

    def __iter__(self) -> Iterator[Card]:
        return iter(list(self.cards))

    def __contains__(self, card):
        return card in self.cards

    def __repr__(self):
        return f"CardCollection({self.name!r}, {self.cards!r})"


def make_deck() -> List[Card]:
    return [Card(suit, rank) for suit in range(4) for rank in RANKS]
