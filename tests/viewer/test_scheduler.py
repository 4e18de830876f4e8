"""Tests for the latest-wins render scheduler.

Tests cover:
- Rapid navigation collapsing to the most recent request
- Cancelled tasks never committing to the surface
- Same-target requests, clamping and zoom stepping
- Failures reported to the error callback without stopping the scheduler
- Document replacement and shutdown
"""

import threading
import time

import pytest

from PdfInsight.Transport.errors import DecodeFailed, LoadCancelled
from PdfInsight.Viewer.scheduler import ZOOM_LEVELS, RenderScheduler, normalize_page_text
from PdfInsight.Viewer.surface import Surface
from support import FakeDecoder

PDF = b"%PDF-1.7 fake"
WAIT = 5


class Recorder:
    def __init__(self):
        self.rendered = []
        self.errors = []

    def on_rendered(self, page, total, scale):
        self.rendered.append((page, total, scale))

    def on_error(self, message):
        self.errors.append(message)


@pytest.fixture
def decoder():
    return FakeDecoder(pages=10)


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def scheduler(decoder, recorder):
    sched = RenderScheduler(decoder, on_rendered=recorder.on_rendered, on_error=recorder.on_error)
    sched.load(PDF)
    yield sched
    sched.close()


def _pages(decoder):
    return [page for page, _ in decoder.rendered]


class TestLatestWins:
    def test_burst_renders_only_last_request(self, scheduler, decoder, recorder):
        entered, release = decoder.block(1)
        assert scheduler.request_page(1)
        assert entered.wait(WAIT)

        for page in (2, 3, 4):
            scheduler.request_page(page)
        state = scheduler.get_state()
        assert state.rendering.page == 1
        assert state.pending.page == 4

        release.set()
        assert scheduler.wait_idle(WAIT)
        assert _pages(decoder) == [1, 4]
        assert scheduler.surface.frame.page == 4
        assert recorder.rendered == [(4, 10, 1.0)]

    def test_cancelled_task_never_commits(self, scheduler, decoder):
        entered, release = decoder.block(1)
        scheduler.request_page(1)
        assert entered.wait(WAIT)
        scheduler.request_page(2)
        release.set()
        assert scheduler.wait_idle(WAIT)
        assert scheduler.surface.commits == 1
        assert scheduler.surface.frame.page == 2
        assert scheduler.surface.text_for(1) is None

    def test_returning_to_in_flight_page_renders_it_again(self, scheduler, decoder):
        entered, release = decoder.block(1)
        scheduler.request_page(1)
        assert entered.wait(WAIT)
        scheduler.request_page(2)
        scheduler.request_page(1)
        release.set()
        assert scheduler.wait_idle(WAIT)
        assert _pages(decoder) == [1, 1]
        assert scheduler.surface.frame.page == 1

    def test_zoom_burst_coalesces(self, scheduler, decoder):
        entered, release = decoder.block(1)
        scheduler.request_page(1)
        assert entered.wait(WAIT)
        scheduler.zoom_in()
        scheduler.zoom_in()
        scheduler.zoom_in()
        release.set()
        assert scheduler.wait_idle(WAIT)
        assert decoder.rendered == [(1, 1.0), (1, 2.0)]
        assert scheduler.surface.frame.scale == 2.0

    def test_at_most_one_render_in_flight(self):
        active = []
        overlap = threading.Event()
        lock = threading.Lock()
        original = FakeDecoder.load

        class Tracking(FakeDecoder):
            def load(self, data):
                document = original(self, data)
                get_page = document.get_page

                def tracked(number):
                    page = get_page(number)
                    render = page.render

                    def wrapped(viewport):
                        with lock:
                            active.append(number)
                            if len(active) > 1:
                                overlap.set()
                        try:
                            return render(viewport)
                        finally:
                            with lock:
                                active.remove(number)

                    page.render = wrapped
                    return page

                document.get_page = tracked
                return document

        sched = RenderScheduler(Tracking(pages=50))
        sched.load(PDF)
        try:
            for page in range(1, 51):
                sched.request_page(page)
            assert sched.wait_idle(WAIT)
        finally:
            sched.close()
        assert not overlap.is_set()
        assert sched.surface.frame.page == 50


class TestRequests:
    def test_same_target_is_noop(self, scheduler, decoder):
        assert scheduler.request_page(3)
        assert scheduler.wait_idle(WAIT)
        assert not scheduler.request_page(3)
        assert scheduler.wait_idle(WAIT)
        assert _pages(decoder) == [3]

    def test_render_current_forces(self, scheduler, decoder):
        scheduler.request_page(3)
        assert scheduler.wait_idle(WAIT)
        assert scheduler.render_current()
        assert scheduler.wait_idle(WAIT)
        assert _pages(decoder) == [3, 3]

    def test_same_as_in_flight_is_noop(self, scheduler, decoder):
        entered, release = decoder.block(2)
        scheduler.request_page(2)
        assert entered.wait(WAIT)
        assert not scheduler.request_page(2)
        release.set()
        assert scheduler.wait_idle(WAIT)
        assert _pages(decoder) == [2]

    @pytest.mark.parametrize("requested,expected", [(0, 1), (-5, 1), (11, 10), (999, 10)])
    def test_page_clamped(self, scheduler, requested, expected):
        scheduler.request_page(requested)
        assert scheduler.current_page == expected
        assert scheduler.wait_idle(WAIT)
        assert scheduler.surface.frame.page == expected

    def test_requests_before_load_ignored(self, decoder):
        sched = RenderScheduler(decoder)
        try:
            assert not sched.request_page(2)
            assert not sched.render_current()
            assert sched.get_state().total_pages == 0
        finally:
            sched.close()

    def test_invalid_scale(self, scheduler):
        with pytest.raises(ValueError):
            scheduler.set_scale(0)

    def test_page_text_normalized(self, scheduler):
        assert scheduler.get_page_text(4) == "Page 4 body text"

    def test_text_layer_published_with_frame(self, scheduler):
        scheduler.request_page(5)
        assert scheduler.wait_idle(WAIT)
        assert scheduler.surface.text_for(5) == "Page 5 body text"


class TestZoom:
    def test_zoom_in_steps_through_levels(self, scheduler):
        seen = []
        while scheduler.zoom_in():
            seen.append(scheduler.scale)
        assert seen == list(ZOOM_LEVELS[ZOOM_LEVELS.index(1.0) + 1 :])
        assert scheduler.scale == ZOOM_LEVELS[-1]

    def test_zoom_out_stops_at_minimum(self, scheduler):
        while scheduler.zoom_out():
            pass
        assert scheduler.scale == ZOOM_LEVELS[0]
        assert not scheduler.zoom_out()

    def test_off_grid_scale_snaps(self, scheduler):
        scheduler.set_scale(1.1)
        scheduler.zoom_in()
        assert scheduler.scale == 1.5
        scheduler.set_scale(1.1)
        scheduler.zoom_out()
        assert scheduler.scale == 1.0

    def test_reset_zoom(self, scheduler):
        scheduler.zoom_in()
        assert scheduler.reset_zoom()
        assert scheduler.scale == 1.0
        assert not scheduler.reset_zoom()


class TestFailures:
    def test_error_reported_and_scheduler_continues(self, scheduler, decoder, recorder):
        decoder.failing.add(6)
        scheduler.request_page(6)
        assert scheduler.wait_idle(WAIT)
        assert recorder.errors == ["cannot paint page 6"]
        assert scheduler.surface.frame is None

        scheduler.request_page(7)
        assert scheduler.wait_idle(WAIT)
        assert scheduler.surface.frame.page == 7

    def test_failed_target_retried_with_render_current(self, scheduler, decoder):
        decoder.failing.add(6)
        scheduler.request_page(6)
        assert scheduler.wait_idle(WAIT)
        decoder.failing.clear()
        assert not scheduler.request_page(6)
        assert scheduler.render_current()
        assert scheduler.wait_idle(WAIT)
        assert scheduler.surface.frame.page == 6

    def test_cancellation_is_not_an_error(self, scheduler, decoder, recorder):
        entered, release = decoder.block(1)
        scheduler.request_page(1)
        assert entered.wait(WAIT)
        scheduler.request_page(2)
        release.set()
        assert scheduler.wait_idle(WAIT)
        assert recorder.errors == []


class TestLifecycle:
    def test_load_rejects_non_pdf(self, decoder):
        sched = RenderScheduler(decoder)
        try:
            with pytest.raises(DecodeFailed):
                sched.load(b"<html>")
        finally:
            sched.close()

    def test_reload_closes_previous_document(self, scheduler, decoder):
        scheduler.request_page(4)
        assert scheduler.wait_idle(WAIT)
        assert scheduler.load(PDF) == 10
        assert decoder.documents[0].closed
        assert scheduler.current_page == 1

    def test_reload_cancels_in_flight_render(self, scheduler, decoder):
        entered, release = decoder.block(3)
        scheduler.request_page(3)
        assert entered.wait(WAIT)

        in_flight = scheduler._active
        loader = threading.Thread(target=scheduler.load, args=(PDF,))
        loader.start()
        deadline = time.monotonic() + WAIT
        while not in_flight.cancelled and time.monotonic() < deadline:
            time.sleep(0.01)
        assert in_flight.cancelled
        release.set()
        loader.join(WAIT)
        assert not loader.is_alive()
        assert scheduler.surface.frame is None
        assert decoder.documents[0].closed

    def test_close_releases_document(self, decoder):
        sched = RenderScheduler(decoder, Surface())
        sched.load(PDF)
        sched.request_page(2)
        sched.close()
        assert decoder.documents[0].closed
        assert not sched.request_page(3)

    def test_load_after_close_is_refused(self, decoder):
        sched = RenderScheduler(decoder)
        sched.close()
        with pytest.raises(LoadCancelled):
            sched.load(PDF)
        assert decoder.documents == []
        assert sched.get_state().total_pages == 0

    def test_close_while_decoding_releases_new_document(self):
        class ClosingDecoder(FakeDecoder):
            def load(self, data):
                document = super().load(data)
                sched.close()
                return document

        decoder = ClosingDecoder()
        sched = RenderScheduler(decoder)
        with pytest.raises(LoadCancelled):
            sched.load(PDF)
        assert decoder.documents[0].closed
        assert sched._document is None


def test_normalize_page_text():
    assert normalize_page_text("  a\n\tb   c ") == "a b c"
