# scene.py - pygame table for a Klondike session
from typing import Optional, Tuple

import pygame

from klondike import common as C
from klondike.mechanics import Position
from klondike.session import GameSession
from klondike.settings import load_settings

# Fonts are initialized via setup_fonts() AFTER pygame.init() in __main__.py
FONT_UI = None
FONT_TITLE = None
FONT_CORNER_RANK = None


def setup_fonts():
    global FONT_UI, FONT_TITLE, FONT_CORNER_RANK
    name = pygame.font.get_default_font()
    FONT_UI = pygame.font.SysFont(name, 26, bold=True)
    FONT_TITLE = pygame.font.SysFont(name, 44, bold=True)
    FONT_CORNER_RANK = pygame.font.SysFont(name, 28, bold=True)


# Suit glyphs in sixths of the glyph size around its centre:
# (circles as (cx, cy, r), polygons as point lists).
_STEM = [(-0.5, 1.0), (0.5, 1.0), (1.2, 3.0), (-1.2, 3.0)]
SUIT_GLYPHS = {
    C.HEARTS: ([(-1.4, -1.0, 1.5), (1.4, -1.0, 1.5)], [[(-2.8, -0.5), (2.8, -0.5), (0, 2.8)]]),
    C.DIAMONDS: ([], [[(0, -3.0), (2.2, 0), (0, 3.0), (-2.2, 0)]]),
    C.SPADES: ([(-1.4, 0.6, 1.4), (1.4, 0.6, 1.4)], [[(-2.8, 0.3), (2.8, 0.3), (0, -3.0)], _STEM]),
    C.CLUBS: ([(0, -1.2, 1.4), (-1.5, 0.6, 1.4), (1.5, 0.6, 1.4)], [_STEM]),
}


def draw_suit_shape(surface, center, suit, color, size=42):
    x, y = center
    unit = size / 6

    def at(px, py):
        return round(x + px * unit), round(y + py * unit)

    circles, polygons = SUIT_GLYPHS[suit]
    for cx, cy, r in circles:
        pygame.draw.circle(surface, color, at(cx, cy), max(1, round(r * unit)))
    for points in polygons:
        pygame.draw.polygon(surface, color, [at(px, py) for px, py in points])


_card_face_cache = {}
_card_back_cache = None


def get_card_surface(card: C.Card):
    key = (card.suit, card.rank)
    if key in _card_face_cache:
        return _card_face_cache[key]
    surf = pygame.Surface((C.CARD_W, C.CARD_H), pygame.SRCALPHA)
    pygame.draw.rect(surf, C.WHITE, (0, 0, C.CARD_W, C.CARD_H), border_radius=C.CARD_RADIUS)
    pygame.draw.rect(surf, C.BLACK, (0, 0, C.CARD_W, C.CARD_H), width=3, border_radius=C.CARD_RADIUS)
    color = C.RED if card.is_red() else C.BLACK
    rtxt = FONT_CORNER_RANK.render(C.RANK_TO_TEXT[card.rank], True, color)
    surf.blit(rtxt, (10, 10))
    draw_suit_shape(surf, (C.CARD_W // 2, C.CARD_H // 2), card.suit, color, size=48)
    _card_face_cache[key] = surf
    return surf


def get_back_surface():
    global _card_back_cache
    if _card_back_cache is not None:
        return _card_back_cache
    surf = pygame.Surface((C.CARD_W, C.CARD_H), pygame.SRCALPHA)
    pygame.draw.rect(surf, C.WHITE, (0, 0, C.CARD_W, C.CARD_H), border_radius=C.CARD_RADIUS)
    pygame.draw.rect(surf, C.BLACK, (0, 0, C.CARD_W, C.CARD_H), width=3, border_radius=C.CARD_RADIUS)
    inset = 8
    inner = pygame.Rect(inset, inset, C.CARD_W - 2 * inset, C.CARD_H - 2 * inset)
    pygame.draw.rect(surf, C.BLUE, inner, border_radius=8)
    _card_back_cache = surf
    return surf


class PileLayout:
    """Screen placement of one collection (or a face-down/visible pair)."""

    def __init__(self, x, y, fan_y=0):
        self.x, self.y = x, y
        self.fan_y = fan_y

    def rect_for_index(self, idx):
        return pygame.Rect(self.x, self.y + idx * self.fan_y, C.CARD_W, C.CARD_H)

    def top_rect(self, count):
        return self.rect_for_index(max(0, count - 1))

    def hit(self, pos, count) -> Optional[int]:
        """Index of the card under pos, -1 for an empty slot, None for a miss."""
        if count == 0:
            return -1 if self.rect_for_index(0).collidepoint(pos) else None
        for i in reversed(range(count)):
            if self.rect_for_index(i).collidepoint(pos):
                return i
        return None

    def draw(self, screen, *collections: C.CardCollection, top_only=False):
        """Draw the collections fanned in order; each shows faces or backs by its face_up flag."""
        cards = [(card, collection.face_up) for collection in collections for card in collection]
        if top_only:
            cards = cards[-1:]
        if not cards:
            pygame.draw.rect(screen, C.LIGHT, self.rect_for_index(0), width=2, border_radius=C.CARD_RADIUS)
        for i, (card, face_up) in enumerate(cards):
            surf = get_card_surface(card) if face_up else get_back_surface()
            screen.blit(surf, self.rect_for_index(i).topleft)


class KlondikeGameScene:
    def __init__(self, app, session: Optional[GameSession] = None):
        self.app = app
        self.session = session or GameSession(rules=load_settings())
        top_y = C.TOP_BAR_H + 30
        step = C.CARD_W + C.CARD_GAP_X
        self.stock_layout = PileLayout(40, top_y)
        self.talon_layout = PileLayout(40 + step, top_y)
        self.foundation_layouts = [PileLayout(40 + (3 + i) * step, top_y) for i in range(4)]
        self.tableau_layouts = [
            PileLayout(40 + i * step, top_y + C.CARD_H + 40, fan_y=C.CARD_GAP_Y + 2) for i in range(7)
        ]
        # Pointer position at the press that started the current drag.
        self.drag_anchor: Tuple[int, int] = (0, 0)
        self.mouse: Tuple[int, int] = (0, 0)

    # ---------- Hit-testing ----------
    def _start_drag(self, pos):
        self.drag_anchor = pos
        self.mouse = pos

    def _pick_up_at(self, pos) -> bool:
        s = self.session
        if s.drag.holding:
            return False
        if s.talon.top() is not None and self.talon_layout.rect_for_index(0).collidepoint(pos):
            rect = self.talon_layout.rect_for_index(0)
            if s.pick_up_from_talon(Position(rect.x, rect.y)):
                self._start_drag(pos)
                return True
        for fi, layout in enumerate(self.foundation_layouts):
            rect = layout.rect_for_index(0)
            if s.foundations[fi].top() is not None and rect.collidepoint(pos):
                if s.pick_up_from_foundation(fi, Position(rect.x, rect.y)):
                    self._start_drag(pos)
                    return True
        for ti, layout in enumerate(self.tableau_layouts):
            pile = s.tableau[ti]
            cards = pile.all_cards()
            hi = layout.hit(pos, len(cards))
            if hi is None or hi < len(pile.face_down):
                continue
            rect = layout.rect_for_index(hi)
            if s.pick_up_from_tableau(ti, cards[hi], Position(rect.x, rect.y)):
                self._start_drag(pos)
                return True
        return False

    def held_rect(self):
        start = self.session.drag.position
        dx = self.mouse[0] - self.drag_anchor[0]
        dy = self.mouse[1] - self.drag_anchor[1]
        return pygame.Rect(int(start.x) + dx, int(start.y) + dy, C.CARD_W, C.CARD_H)

    def colliding_targets(self):
        """Drop targets under the held cards, tableau piles first."""
        s = self.session
        held = self.held_rect()
        areas = [
            (pile, layout.top_rect(len(pile.all_cards())))
            for pile, layout in zip(s.tableau, self.tableau_layouts)
        ]
        areas += [(f, layout.rect_for_index(0)) for f, layout in zip(s.foundations, self.foundation_layouts)]
        return [target for target, rect in areas if rect.colliderect(held)]

    # ---------- Event handling ----------
    def handle_event(self, e):
        s = self.session
        if e.type == pygame.MOUSEBUTTONDOWN and e.button == 1:
            if s.drag.holding:
                # The button-up of the last drag never arrived.
                self.mouse = e.pos
                s.release(self.colliding_targets())
                return
            if self.stock_layout.rect_for_index(0).collidepoint(e.pos):
                s.tap_stock()
                return
            self._pick_up_at(e.pos)
        elif e.type == pygame.MOUSEMOTION:
            self.mouse = e.pos
        elif e.type == pygame.MOUSEBUTTONUP and e.button == 1:
            if s.drag.holding:
                self.mouse = e.pos
                s.release(self.colliding_targets())
        elif e.type == pygame.KEYDOWN:
            if e.key == pygame.K_n:
                s.cancel_drag()
                s.new_game()
            elif e.key == pygame.K_u:
                s.undo()
            elif e.key == pygame.K_ESCAPE:
                pygame.event.post(pygame.event.Event(pygame.QUIT, {}))

    def draw(self, screen):
        s = self.session
        screen.fill(C.TABLE_BG)
        pygame.draw.rect(screen, (0, 0, 0), (0, 0, C.SCREEN_W, C.TOP_BAR_H))
        title = FONT_TITLE.render("Klondike", True, C.WHITE)
        screen.blit(title, (20, 8))
        hud = FONT_UI.render(f"Score: {s.score}   Moves: {s.moves}   N: New  U: Undo  ESC: Quit", True, C.WHITE)
        screen.blit(hud, (C.SCREEN_W - hud.get_width() - 20, 18))

        self.stock_layout.draw(screen, s.stock.cards, top_only=True)
        self.talon_layout.draw(screen, s.talon.cards, top_only=True)
        for f, layout in zip(s.foundations, self.foundation_layouts):
            layout.draw(screen, f.cards, top_only=True)
        for pile, layout in zip(s.tableau, self.tableau_layouts):
            layout.draw(screen, pile.face_down, pile.visible)

        if s.drag.holding:
            held = self.held_rect()
            for i, card in enumerate(s.drag.cards):
                screen.blit(get_card_surface(card), (held.x, held.y + i * (C.CARD_GAP_Y + 2)))

        if s.is_won:
            msg = FONT_TITLE.render("You won! Press N for a new game.", True, C.GOLD)
            screen.blit(msg, (C.SCREEN_W // 2 - msg.get_width() // 2, C.SCREEN_H - 80))
