"""Tests for the board rendering (colors disabled via NO_COLOR in conftest)."""

from datetime import timedelta

from board import BAR_EMPTY, BAR_FULL, IDLE_TEXT, MIN_COL_WIDTH, SEP, BoardView, progress_bar
from conftest import T0, make_board, running_timer
from models import Board, Card
from theme import read_env_file, resolve_palette


class TestProgressBar:
    def test_empty_half_full(self):
        assert progress_bar(0, 10) == BAR_EMPTY * 10
        assert progress_bar(50, 10) == BAR_FULL * 5 + BAR_EMPTY * 5
        assert progress_bar(100, 10) == BAR_FULL * 10

    def test_overtime_and_negative_are_clamped(self):
        assert progress_bar(150, 4) == BAR_FULL * 4
        assert progress_bar(-20, 4) == BAR_EMPTY * 4

    def test_minimum_width(self):
        assert len(progress_bar(30, 0)) == 1


class TestRender:
    def board(self):
        return make_board(
            (1, "Front"), (2, ""),
            cards={1: [Card(1, "Bar", 0, running_timer(30)), Card(2, "Door")]},
        )

    def test_empty_board_hint(self):
        lines = BoardView(Board.empty(), T0).render(80)
        assert lines == ["No sections yet. Try: stations section add"]

    def test_headers_and_cards(self):
        lines = BoardView(self.board(), T0 + timedelta(minutes=10)).render(80)
        assert "1. FRONT" in lines[0]
        assert "2. <UNNAMED>" in lines[0]
        assert set(lines[1].replace(SEP.strip(), "").replace(" ", "")) == {"-"}
        body = "\n".join(lines[2:])
        assert "1. Bar" in body
        assert "20:00 " + BAR_FULL in body
        assert "2. Door" in body
        assert IDLE_TEXT in body
        assert "(empty)" in body

    def test_overtime_shows_plus(self):
        lines = BoardView(self.board(), T0 + timedelta(minutes=31)).render(80)
        assert "+01:00 " + BAR_FULL * 5 in "\n".join(lines)

    def test_columns_fill_the_terminal(self):
        lines = BoardView(self.board(), T0).render(80)
        assert len(lines[0]) == 80

    def test_narrow_terminal_keeps_minimum_width(self):
        view = BoardView(self.board(), T0)
        widths = view._compute_column_widths(10)
        assert all(w == MIN_COL_WIDTH for w in widths.values())

    def test_long_names_are_truncated(self):
        board = make_board((1, "Front"), cards={1: [Card(1, "x" * 60)]})
        lines = BoardView(board, T0).render(30)
        assert any(line.endswith("…") for line in lines)
        assert all(len(line) <= 30 for line in lines)

    def test_muted_marker(self):
        lines = BoardView(self.board(), T0, muted=True).render(80)
        assert lines[-1] == "(alarm muted)"


class TestPalette:
    def test_env_file_overrides(self, tmp_path, monkeypatch):
        monkeypatch.delenv("STATIONS_WARNING", raising=False)
        monkeypatch.delenv("STATIONS_ORANGE", raising=False)
        env = tmp_path / ".env"
        env.write_text("# colors\nSTATIONS_WARNING=ffcc00\nSTATIONS_ORANGE=nothex\nOTHER=#123456\n")
        assert read_env_file(env) == {"STATIONS_WARNING": "#ffcc00"}
        palette = resolve_palette(env)
        assert palette["STATIONS_WARNING"] == "#ffcc00"
        assert palette["STATIONS_ORANGE"] == "#FFA94D"

    def test_environment_wins(self, tmp_path, monkeypatch):
        env = tmp_path / ".env"
        env.write_text("STATIONS_PRIMARY=#000000\n")
        monkeypatch.setenv("STATIONS_PRIMARY", "#ffffff")
        assert resolve_palette(env)["STATIONS_PRIMARY"] == "#ffffff"

    def test_missing_file(self, tmp_path):
        assert read_env_file(tmp_path / "nope") == {}
