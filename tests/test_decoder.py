"""Tests for the incremental protocol decoder."""

from __future__ import annotations

import pytest

from design_stream.decoder import StreamDecoder, decode_chunks
from design_stream.events import (
    DecoderEvent,
    MessageReceived,
    ProjectIconSuggested,
    ProjectNameSuggested,
    ScreenCompleted,
    ScreenOpened,
    ScreenUpdated,
)
from design_stream.models import ParseMode, Screen


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def feed_all(decoder: StreamDecoder, chunks: list[str]) -> list[DecoderEvent]:
    events: list[DecoderEvent] = []
    for chunk in chunks:
        events.extend(decoder.feed(chunk))
    return events


def completed(events: list[DecoderEvent]) -> list[Screen]:
    return [e.screen for e in events if isinstance(e, ScreenCompleted)]


def split_every(text: str, size: int) -> list[str]:
    return [text[i : i + size] for i in range(0, len(text), size)]


# ===================================================================
# Basic transitions
# ===================================================================


class TestSingleScreen:
    """Tests for one screen fed as a whole."""

    def test_start_body_end(self) -> None:
        decoder = StreamDecoder()
        events = decoder.feed("<!-- SCREEN_START: Home -->body<!-- SCREEN_END -->")

        assert events[0] == ScreenOpened(name="Home", is_edit=False)
        assert completed(events) == [Screen(name="Home", html="body")]
        assert decoder.state.mode is ParseMode.IDLE
        assert decoder.state.current is None

    def test_html_is_trimmed(self) -> None:
        decoder = StreamDecoder()
        events = decoder.feed("<!-- SCREEN_START: Home -->\n  <div></div>\n<!-- SCREEN_END -->")
        assert completed(events)[0].html == "<div></div>"

    def test_edit_screen(self, edit_document: str) -> None:
        decoder = StreamDecoder()
        events = decoder.feed(edit_document)

        assert MessageReceived(text="Made the header bigger.") in events
        assert ScreenOpened(name="Home", is_edit=True) in events
        screens = completed(events)
        assert len(screens) == 1
        assert screens[0].is_edit is True
        assert screens[0].html == '<h1 class="text-4xl">Today</h1>'

    def test_grid_and_root_carried_to_screen(self) -> None:
        decoder = StreamDecoder()
        events = decoder.feed("<!-- SCREEN_START: Home [1,2] [ROOT] -->x<!-- SCREEN_END -->")
        assert events[0] == ScreenOpened(
            name="Home", is_edit=False, grid_col=1, grid_row=2, is_root=True
        )
        assert completed(events) == [
            Screen(name="Home", html="x", grid_col=1, grid_row=2, is_root=True)
        ]

    def test_opened_before_any_html(self) -> None:
        decoder = StreamDecoder()
        events = decoder.feed("<!-- SCREEN_START: Home -->")
        assert events == [ScreenOpened(name="Home", is_edit=False)]
        assert decoder.state.mode is ParseMode.IN_SCREEN


class TestRelaxedStart:
    """Tests for start tags missing their closing marker."""

    def test_newline_boundary(self) -> None:
        decoder = StreamDecoder()
        events = decoder.feed("<!-- SCREEN_START: Profile\n<p>hi</p><!-- SCREEN_END -->")
        assert completed(events) == [Screen(name="Profile", html="<p>hi</p>")]

    def test_tag_boundary(self) -> None:
        decoder = StreamDecoder()
        events = decoder.feed("<!-- SCREEN_START: Profile<p>hi</p><!-- SCREEN_END -->")
        assert completed(events) == [Screen(name="Profile", html="<p>hi</p>")]


# ===================================================================
# Multiple tags per chunk
# ===================================================================


class TestMultipleScreens:
    """Tests for draining several screens from one chunk."""

    def test_two_screens_in_one_chunk(self) -> None:
        decoder = StreamDecoder()
        events = decoder.feed(
            "<!-- SCREEN_START: A -->aaa<!-- SCREEN_END -->\n"
            "<!-- SCREEN_START: B -->bbb<!-- SCREEN_END -->"
        )
        screens = completed(events)
        assert [s.name for s in screens] == ["A", "B"]
        assert [s.html for s in screens] == ["aaa", "bbb"]

    def test_screen_then_start_of_next(self) -> None:
        decoder = StreamDecoder()
        events = decoder.feed(
            "<!-- SCREEN_START: A -->a<!-- SCREEN_END --><!-- SCREEN_START: B -->b"
        )
        assert [s.name for s in completed(events)] == ["A"]
        assert events[-2] == ScreenOpened(name="B", is_edit=False)
        assert events[-1] == ScreenUpdated(name="B", html="b")
        assert decoder.state.mode is ParseMode.IN_SCREEN

    def test_event_order(self) -> None:
        decoder = StreamDecoder()
        events = decoder.feed(
            "<!-- SCREEN_START: A -->a<!-- SCREEN_END --><!-- SCREEN_START: B -->b<!-- SCREEN_END -->"
        )
        kinds = [(type(e).__name__, getattr(e, "name", None)) for e in events]
        assert kinds == [
            ("ScreenOpened", "A"),
            ("ScreenCompleted", None),
            ("ScreenOpened", "B"),
            ("ScreenCompleted", None),
        ]

    def test_duplicate_names_are_independent(self) -> None:
        decoder = StreamDecoder()
        decoder.feed(
            "<!-- SCREEN_START: Home -->v1<!-- SCREEN_END -->"
            "<!-- SCREEN_START: Home -->v2<!-- SCREEN_END -->"
        )
        assert [(s.name, s.html) for s in decoder.screens] == [("Home", "v1"), ("Home", "v2")]

    def test_full_document(self, prototype_document: str) -> None:
        decoder = StreamDecoder()
        events = decoder.feed(prototype_document)

        assert events[:3] == [
            MessageReceived(text="Here is your habit tracker!"),
            ProjectNameSuggested(name="Habit Tracker"),
            ProjectIconSuggested(icon="✅"),
        ]
        screens = completed(events)
        assert screens[0] == Screen(
            name="Home",
            html='<div class="p-4">\n  <h1>Today</h1>\n</div>',
            grid_col=0,
            grid_row=0,
            is_root=True,
        )
        assert screens[1].name == "Stats"
        assert screens[1].html == "<section><!-- chart --><canvas></canvas></section>"
        assert (screens[1].grid_col, screens[1].grid_row, screens[1].is_root) == (1, 0, False)


# ===================================================================
# Chunk boundaries
# ===================================================================


class TestChunkBoundaries:
    """Splitting the input anywhere yields the same screens."""

    def test_split_mid_tag(self) -> None:
        decoder = StreamDecoder()
        events = feed_all(
            decoder, ["<!-- SCREEN_ST", "ART: Home -->bo", "dy<!-- SCREEN_END -->"]
        )
        assert completed(events) == [Screen(name="Home", html="body")]

    def test_split_inside_end_tag(self) -> None:
        decoder = StreamDecoder()
        events = feed_all(
            decoder,
            ["<!-- SCREEN_START: Home -->body<!-- SCR", "EEN_END", " -->"],
        )
        assert completed(events) == [Screen(name="Home", html="body")]

    def test_split_inside_message_while_in_screen(self) -> None:
        decoder = StreamDecoder()
        events = feed_all(
            decoder,
            ["<!-- SCREEN_START: A -->x<!-- MESS", "AGE: hold on -->y<!-- SCREEN_END -->"],
        )
        assert MessageReceived(text="hold on") in events
        assert completed(events) == [Screen(name="A", html="xy")]

    def test_close_on_next_line_any_split(self) -> None:
        document = "<!-- SCREEN_START: Home\n-->body<!-- SCREEN_END -->"
        for offset in range(1, len(document)):
            _, screens = decode_chunks([document[:offset], document[offset:]])
            assert [s.html for s in screens] == ["body"], offset

    @pytest.mark.parametrize("size", [1, 2, 3, 5, 7, 16, 64])
    def test_fixed_size_chunks(self, prototype_document: str, size: int) -> None:
        _, whole = decode_chunks([prototype_document])
        _, chunked = decode_chunks(split_every(prototype_document, size))
        assert chunked == whole
        assert len(whole) == 2

    @pytest.mark.parametrize("size", [1, 4, 9])
    def test_fixed_size_chunks_metadata(self, prototype_document: str, size: int) -> None:
        events, _ = decode_chunks(split_every(prototype_document, size))
        assert [e for e in events if isinstance(e, MessageReceived)] == [
            MessageReceived(text="Here is your habit tracker!")
        ]
        assert ProjectNameSuggested(name="Habit Tracker") in events
        assert ProjectIconSuggested(icon="✅") in events

    def test_every_two_way_split(self) -> None:
        document = (
            "<!-- SCREEN_START: Home [0,0] -->a<!-- b -->c<!-- SCREEN_END -->"
            "<!-- SCREEN_EDIT: List -->\n<ul></ul>\n<!-- SCREEN_END -->"
        )
        _, expected = decode_chunks([document])
        for offset in range(1, len(document)):
            _, screens = decode_chunks([document[:offset], document[offset:]])
            assert screens == expected, offset


# ===================================================================
# Incremental updates
# ===================================================================


class TestPartialUpdates:
    """Tests for ScreenUpdated snapshots."""

    def test_updates_grow(self) -> None:
        decoder = StreamDecoder()
        decoder.feed("<!-- SCREEN_START: Home -->")
        first = decoder.feed("<div>")
        second = decoder.feed("hello")
        assert first == [ScreenUpdated(name="Home", html="<div>")]
        assert second == [ScreenUpdated(name="Home", html="<div>hello")]

    def test_held_back_tail_not_in_update(self) -> None:
        decoder = StreamDecoder()
        decoder.feed("<!-- SCREEN_START: Home -->")
        events = decoder.feed("<p>x</p><!-- SCREEN_")
        assert events == [ScreenUpdated(name="Home", html="<p>x</p>")]
        assert decoder.state.pending == "<!-- SCREEN_"

    def test_no_update_when_nothing_appended(self) -> None:
        decoder = StreamDecoder()
        decoder.feed("<!-- SCREEN_START: Home -->")
        assert decoder.feed("<!-") == []


# ===================================================================
# Metadata and scan order
# ===================================================================


class TestMetadata:
    """Tests for message, name and icon handling around screens."""

    def test_message_while_idle(self) -> None:
        decoder = StreamDecoder()
        assert decoder.feed("<!-- MESSAGE: Hi -->") == [MessageReceived(text="Hi")]

    def test_message_inside_open_screen_is_not_html(self) -> None:
        decoder = StreamDecoder()
        events = decoder.feed(
            "<!-- SCREEN_START: A --><div><!-- MESSAGE: working -->x</div><!-- SCREEN_END -->"
        )
        assert MessageReceived(text="working") in events
        assert completed(events)[0].html == "<div>x</div>"

    def test_message_after_screen_in_same_chunk(self) -> None:
        decoder = StreamDecoder()
        events = decoder.feed(
            "<!-- SCREEN_START: A -->a<!-- SCREEN_END -->\n<!-- MESSAGE: done -->"
        )
        assert MessageReceived(text="done") in events

    def test_message_swallows_following_tags_without_close(self) -> None:
        """Messages are scanned first, so a message missing its close wins."""
        decoder = StreamDecoder()
        events = decoder.feed("<!-- MESSAGE: hi\n<!-- SCREEN_START: A -->")
        assert events == [MessageReceived(text="hi\n<!-- SCREEN_START: A")]
        assert decoder.state.mode is ParseMode.IDLE

    def test_start_wins_over_earlier_edit(self) -> None:
        decoder = StreamDecoder()
        events = decoder.feed("<!-- SCREEN_EDIT: Old --><!-- SCREEN_START: New -->")
        assert events == [ScreenOpened(name="New", is_edit=False)]

    def test_start_not_recognised_while_in_screen(self) -> None:
        decoder = StreamDecoder()
        events = decoder.feed(
            "<!-- SCREEN_START: A -->x<!-- SCREEN_START: B -->y<!-- SCREEN_END -->"
        )
        screens = completed(events)
        assert len(screens) == 1
        assert screens[0].html == "x<!-- SCREEN_START: B -->y"

    def test_end_ignored_while_idle(self) -> None:
        decoder = StreamDecoder()
        assert decoder.feed("<!-- SCREEN_END -->") == []
        assert decoder.screens == []

    def test_text_before_start_discarded(self) -> None:
        decoder = StreamDecoder()
        events = decoder.feed("Sure! Here you go.\n<!-- SCREEN_START: A -->a<!-- SCREEN_END -->")
        assert completed(events)[0].html == "a"


# ===================================================================
# Finish
# ===================================================================


class TestFinish:
    """Tests for finish() on the decoder."""

    def test_recovers_open_screen(self) -> None:
        decoder = StreamDecoder()
        decoder.feed("<!-- SCREEN_START: Draft -->partial")
        events = decoder.finish()
        assert events == [ScreenCompleted(screen=Screen(name="Draft", html="partial", recovered=True))]
        assert decoder.screens[-1].name == "Draft"
        assert decoder.state.mode is ParseMode.IDLE

    def test_recovery_keeps_held_back_tail(self) -> None:
        decoder = StreamDecoder()
        decoder.feed("<!-- SCREEN_START: Draft -->a<!-- unfinished")
        (event,) = decoder.finish()
        assert isinstance(event, ScreenCompleted)
        assert event.screen.html == "a<!-- unfinished"

    def test_recovered_edit_keeps_flag(self) -> None:
        decoder = StreamDecoder()
        decoder.feed("<!-- SCREEN_EDIT: Home -->new header")
        (event,) = decoder.finish()
        assert isinstance(event, ScreenCompleted)
        assert event.screen.is_edit is True

    def test_nothing_to_recover(self) -> None:
        decoder = StreamDecoder()
        decoder.feed("<!-- SCREEN_START: A -->a<!-- SCREEN_END -->")
        assert decoder.finish() == []

    def test_finish_is_idempotent(self) -> None:
        decoder = StreamDecoder()
        decoder.feed("<!-- SCREEN_START: Draft -->partial")
        assert len(decoder.finish()) == 1
        assert decoder.finish() == []

    def test_feed_after_finish_raises(self) -> None:
        decoder = StreamDecoder()
        decoder.finish()
        with pytest.raises(RuntimeError):
            decoder.feed("x")
