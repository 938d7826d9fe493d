import random

import pytest

from klondike import common as C
from klondike.piles import Deck, Foundation, TableauPile, Talon
from klondike.settings import ScoringRules
from klondike.transaction import Transaction


class _Controller:
    """Stand-in for a session transaction handle that commits immediately."""

    def __init__(self, bonus=0, undo_cost=0):
        self.transaction = Transaction(bonus, undo_cost)
        self.committed = []

    def add(self, cards, destination):
        self.transaction.add(cards, destination)

    def add_score_bonus(self, bonus):
        self.transaction.add_score_bonus(bonus)

    def add_undo_penalty(self, penalty):
        self.transaction.add_undo_penalty(penalty)

    def commit(self):
        self.transaction.perform()
        self.committed.append(self.transaction)
        return True


def _collect(*specs):
    home = C.CardCollection("home")
    cards = [C.Card(suit, rank) for suit, rank in specs]
    for card in cards:
        home.put(card)
    return cards


class _NoSwapRandom:
    def randint(self, a, b):
        return b


# ---------- Deck ----------
def test_deck_builds_all_cards_face_down():
    deck = Deck(random.Random(7))
    assert len(deck.cards) == 52
    assert deck.cards.face_up is False
    assert len({(c.suit, c.rank) for c in deck.cards}) == 52
    assert all(c.collection is deck.cards for c in deck.cards)


def test_shuffle_is_fisher_yates_driven_by_rng():
    deck = Deck(_NoSwapRandom())
    assert [(c.suit, c.rank) for c in deck.cards] == [(c.suit, c.rank) for c in C.make_deck()]


def test_shuffle_places_a_card_uniformly():
    deck = Deck(random.Random(20240611))
    ace = next(c for c in deck.cards if c.suit == C.SPADES and c.rank == C.ACE)
    runs = 5200
    counts = [0] * 52
    for _ in range(runs):
        deck.shuffle()
        counts[deck.cards.index(ace)] += 1
    expected = runs / 52
    chi_square = sum((n - expected) ** 2 / expected for n in counts)
    # 51 degrees of freedom; 100 is far beyond the 0.9999 quantile.
    assert chi_square < 100


def test_deck_draw_until_empty():
    deck = Deck(random.Random(1))
    drawn = [deck.draw() for _ in range(52)]
    assert all(card is not None for card in drawn)
    assert deck.draw() is None


def test_tap_draws_one_card_to_talon():
    deck = Deck(random.Random(3))
    talon = Talon()
    top = deck.cards.top()
    created = []

    def create(bonus, undo_cost):
        created.append(_Controller(bonus, undo_cost))
        return created[-1]

    assert deck.tap(talon, create) is True
    assert talon.cards.cards == [top]
    assert len(deck.cards) == 51
    t = created[0].transaction
    assert (t.bonus, t.undo_cost, len(t.segments)) == (0, 50, 1)


def test_tap_on_empty_stock_recycles_talon():
    deck = Deck(random.Random(3))
    talon = Talon()
    drawn = deck.cards.cards[-3:][::-1]
    for card in drawn:
        talon.cards.put(card)
    while len(deck.cards):
        deck.draw()
    created = []

    def create(bonus, undo_cost):
        created.append(_Controller(bonus, undo_cost))
        return created[-1]

    assert deck.tap(talon, create, ScoringRules()) is True
    # The first card drawn originally is back on the talon, the rest wait in order.
    assert talon.cards.cards == [drawn[0]]
    assert deck.cards.cards == [drawn[2], drawn[1]]
    t = created[0].transaction
    assert (t.bonus, t.undo_cost, len(t.segments)) == (-250, 50, 2)

    t.rollback()
    assert talon.cards.cards == drawn
    assert len(deck.cards) == 0


@pytest.mark.parametrize("talon_size", [0, 1])
def test_tap_with_empty_stock_and_small_talon_is_noop(talon_size):
    deck = Deck(random.Random(3))
    talon = Talon()
    for card in deck.cards.cards[-talon_size:] if talon_size else []:
        talon.cards.put(card)
    while len(deck.cards):
        deck.draw()
    before = talon.cards.snapshot()

    def create(bonus, undo_cost):
        raise AssertionError("no transaction expected")

    assert deck.tap(talon, create) is False
    assert talon.cards.snapshot() == before


# ---------- Foundation ----------
def test_empty_foundation_accepts_only_its_ace():
    f = Foundation(C.HEARTS)
    ace_h, ace_s, two_h = _collect((C.HEARTS, 1), (C.SPADES, 1), (C.HEARTS, 2))
    assert f.can_drop([ace_h])
    assert not f.can_drop([ace_s])
    assert not f.can_drop([two_h])


def test_foundation_accepts_next_rank_of_same_suit_only():
    f = Foundation(C.CLUBS)
    ace, two, three, two_s = _collect((C.CLUBS, 1), (C.CLUBS, 2), (C.CLUBS, 3), (C.SPADES, 2))
    f.cards.put(ace)
    assert f.can_drop([two])
    assert not f.can_drop([three])
    assert not f.can_drop([two_s])
    assert not f.can_drop([two, three])
    assert not f.can_drop([])


def test_foundation_drop_adds_one_segment_without_score_change():
    f = Foundation(C.DIAMONDS)
    (ace,) = _collect((C.DIAMONDS, 1))
    t = Transaction()
    f.drop([ace], t)
    assert len(t.segments) == 1
    assert t.segments[0].destination is f.cards
    assert (t.bonus, t.undo_cost) == (0, 0)


def test_foundation_drop_ignores_groups():
    f = Foundation(C.DIAMONDS)
    t = Transaction()
    f.drop(_collect((C.DIAMONDS, 1), (C.DIAMONDS, 2)), t)
    assert t.segments == []


def test_foundation_complete_when_topped_by_king():
    f = Foundation(C.SPADES)
    assert not f.is_complete()
    for card in _collect(*[(C.SPADES, r) for r in C.RANKS]):
        f.cards.put(card)
    assert f.is_complete()


# ---------- Tableau ----------
def test_empty_tableau_accepts_only_king_lead():
    pile = TableauPile()
    king, queen, queen_s = _collect((C.HEARTS, 13), (C.CLUBS, 12), (C.SPADES, 12))
    assert pile.can_drop([king, queen])
    assert not pile.can_drop([queen_s])
    assert not pile.can_drop([])


@pytest.mark.parametrize(
    "top, lead, ok",
    [
        ((C.SPADES, 9), (C.DIAMONDS, 8), True),
        ((C.HEARTS, 9), (C.CLUBS, 8), True),
        ((C.SPADES, 9), (C.CLUBS, 8), False),
        ((C.HEARTS, 9), (C.DIAMONDS, 8), False),
        ((C.SPADES, 9), (C.HEARTS, 7), False),
        ((C.SPADES, 9), (C.HEARTS, 10), False),
    ],
)
def test_tableau_accepts_descending_alternating_colors(top, lead, ok):
    pile = TableauPile()
    top_card, lead_card = _collect(top, lead)
    pile.visible.put(top_card)
    assert pile.can_drop([lead_card]) is ok


def test_can_drop_does_not_mutate():
    pile = TableauPile()
    f = Foundation(C.HEARTS)
    top, lead = _collect((C.SPADES, 9), (C.HEARTS, 8))
    pile.visible.put(top)
    home = lead.collection
    for _ in range(3):
        pile.can_drop([lead])
        f.can_drop([lead])
    assert pile.visible.cards == [top]
    assert len(f.cards) == 0
    assert lead.collection is home


def test_card_stack_is_run_to_top():
    pile = TableauPile()
    nine, eight, seven = _collect((C.CLUBS, 9), (C.DIAMONDS, 8), (C.CLUBS, 7))
    for card in (nine, eight, seven):
        pile.visible.put(card)
    assert pile.card_stack(eight) == [eight, seven]
    assert pile.card_stack(seven) == [seven]
    (stranger,) = _collect((C.HEARTS, 2))
    assert pile.card_stack(stranger) == []


def test_update_flips_one_card():
    pile = TableauPile(2)
    cards = _collect((C.CLUBS, 2), (C.CLUBS, 3), (C.CLUBS, 4))
    for card in cards:
        pile.face_down.put(card)
    pile.update()
    assert pile.face_down.cards == cards[:2]
    assert pile.visible.cards == cards[2:]
    pile.update()
    assert len(pile.visible) == 1


def test_reveal_extends_transaction_when_visible_is_empty():
    pile = TableauPile(4)
    hidden, shown = _collect((C.CLUBS, 5), (C.HEARTS, 6))
    pile.face_down.put(hidden)
    pile.visible.put(shown)
    assert not pile.extend_with_reveal(Transaction())

    dest = C.CardCollection("dest")
    t = Transaction()
    t.add([shown], dest)
    t.perform()
    assert pile.extend_with_reveal(t)
    assert (t.bonus, t.undo_cost) == (100, 250)
    t.segments[-1].perform()
    assert pile.visible.cards == [hidden]
    t.rollback()
    assert pile.face_down.cards == [hidden]
    assert pile.visible.cards == [shown]


def test_reveal_skipped_without_face_down_cards():
    pile = TableauPile()
    t = Transaction()
    assert not pile.extend_with_reveal(t)
    assert t.segments == [] and t.bonus == 0
