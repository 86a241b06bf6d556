"""Tests for responsive and animation capture."""

import pytest

from visreg.capture import scripts
from visreg.capture.engine import CaptureEngine
from visreg.capture.orchestrators import frame_count
from visreg.models.config import CaptureOptionsOverride, Viewport
from visreg.models.errors import ErrorCode


VIEWPORTS = [
    Viewport(width=1920, height=1080),
    Viewport(width=768, height=1024),
    Viewport(width=375, height=812),
]


def _engine(control, sleep) -> CaptureEngine:
    engine = CaptureEngine(control, sleep=sleep)
    engine.configure_retry(max_retries=1, retry_delay=0.0)
    return engine


class TestCaptureResponsive:
    @pytest.mark.asyncio
    async def test_failure_is_isolated_and_order_kept(self, control_factory, recording_sleep):
        control = control_factory(fail_widths={768})
        results = await _engine(control, recording_sleep).capture_responsive(
            "https://example.com", VIEWPORTS,
        )

        assert [r.success for r in results] == [True, False, True]
        assert results[0].screenshot.name == "1920x1080"
        assert results[2].screenshot.name == "375x812"
        assert results[1].error.code == ErrorCode.BROWSER_ERROR

    @pytest.mark.asyncio
    async def test_names_and_tags(self, fake_control, recording_sleep):
        results = await _engine(fake_control, recording_sleep).capture_responsive(
            "https://example.com", VIEWPORTS[:1],
        )
        shot = results[0].screenshot
        assert shot.tags == ("responsive", "1920x1080")
        assert shot.viewport.width == 1920

    @pytest.mark.asyncio
    async def test_invalid_viewport_only_fails_its_slot(self, fake_control, recording_sleep):
        viewports = [Viewport(width=0, height=600), Viewport(width=800, height=600)]
        results = await _engine(fake_control, recording_sleep).capture_responsive(
            "https://example.com", viewports,
        )
        assert results[0].error.code == ErrorCode.INVALID_VIEWPORT
        assert results[1].success is True

    @pytest.mark.asyncio
    async def test_concurrent_results_keep_input_order(self, fake_control, recording_sleep):
        results = await _engine(fake_control, recording_sleep).capture_responsive(
            "https://example.com", VIEWPORTS, concurrency=3,
        )
        assert [r.screenshot.name for r in results] == ["1920x1080", "768x1024", "375x812"]

    @pytest.mark.asyncio
    async def test_options_are_shared(self, fake_control, recording_sleep):
        await _engine(fake_control, recording_sleep).capture_responsive(
            "https://example.com", VIEWPORTS[:2], options=CaptureOptionsOverride(full_page=True),
        )
        assert all(call["full_page"] for call in fake_control.calls_to("screenshot"))

    @pytest.mark.asyncio
    async def test_empty_viewport_list(self, fake_control, recording_sleep):
        engine = _engine(fake_control, recording_sleep)
        assert await engine.capture_responsive("https://example.com", []) == []

    @pytest.mark.asyncio
    async def test_rejects_bad_concurrency(self, fake_control, recording_sleep):
        with pytest.raises(ValueError):
            await _engine(fake_control, recording_sleep).capture_responsive(
                "https://example.com", VIEWPORTS, concurrency=0,
            )


class TestCaptureAnimationFrames:
    @pytest.mark.parametrize("duration_ms,fps,expected", [
        (1000, 30, 30),
        (500, 10, 5),
        (50, 10, 1),   # 0.5 rounds up
        (40, 10, 0),
        (0, 30, 0),
        (1000, 1, 1),
    ])
    def test_frame_count(self, duration_ms, fps, expected):
        assert frame_count(duration_ms, fps) == expected

    @pytest.mark.asyncio
    async def test_frames_are_sampled_once_per_interval(self, fake_control, recording_sleep):
        frames = await _engine(fake_control, recording_sleep).capture_animation_frames(
            "https://example.com", ".spinner", duration_ms=500, fps=10,
        )

        assert [f.name for f in frames] == [f"Animation Frame {n}" for n in range(1, 6)]
        assert frames[2].tags == ("animation", "frame-3")
        assert all(f.selector == ".spinner" for f in frames)
        assert recording_sleep.delays == pytest.approx([0.1] * 5)
        # The page is loaded once; frames reuse it
        assert fake_control.calls_to("navigate") == ["https://example.com"]

    @pytest.mark.asyncio
    async def test_animations_are_left_running(self, fake_control, recording_sleep):
        await _engine(fake_control, recording_sleep).capture_animation_frames(
            "https://example.com", ".spinner", duration_ms=100, fps=10,
        )
        injected = [css for script, css in fake_control.calls_to("evaluate") if script == scripts.INJECT_STYLE]
        assert injected
        assert all("animation-duration" not in css for css in injected)

    @pytest.mark.asyncio
    async def test_page_is_prepared_once(self, fake_control, recording_sleep):
        await _engine(fake_control, recording_sleep).capture_animation_frames(
            "https://example.com", ".spinner", duration_ms=500, fps=10,
        )
        injected = [args for args in fake_control.calls_to("evaluate") if args[0] == scripts.INJECT_STYLE]
        assert len(injected) == 1
        assert fake_control.calls_to("resize") == [(1920, 1080)]
        assert len(fake_control.calls_to("screenshot")) == 5
        assert all(not call["disable_animations"] for call in fake_control.calls_to("screenshot"))

    @pytest.mark.asyncio
    async def test_failed_frames_are_dropped(self, control_factory, recording_sleep):
        control = control_factory(screenshot_errors=[RuntimeError("odd"), RuntimeError("odd")])
        frames = await _engine(control, recording_sleep).capture_animation_frames(
            "https://example.com", ".spinner", duration_ms=300, fps=10,
        )
        # Frame 1 exhausts both attempts; frames 2 and 3 succeed
        assert [f.name for f in frames] == ["Animation Frame 2", "Animation Frame 3"]

    @pytest.mark.asyncio
    async def test_missing_element_yields_no_frames(self, control_factory, recording_sleep):
        control = control_factory(element_exists=False)
        frames = await _engine(control, recording_sleep).capture_animation_frames(
            "https://example.com", "#nothing", duration_ms=1000, fps=30,
        )
        assert frames == []
        assert control.calls_to("screenshot") == []

    @pytest.mark.asyncio
    async def test_navigation_failure_yields_no_frames(self, control_factory, recording_sleep):
        control = control_factory(navigate_errors=[RuntimeError("net::ERR_CONNECTION_REFUSED")])
        frames = await _engine(control, recording_sleep).capture_animation_frames(
            "https://example.com", ".spinner", duration_ms=1000, fps=30,
        )
        assert frames == []

    @pytest.mark.asyncio
    async def test_invalid_input_yields_no_frames(self, fake_control, recording_sleep):
        engine = _engine(fake_control, recording_sleep)
        assert await engine.capture_animation_frames("bad url", ".x", 1000) == []
        assert await engine.capture_animation_frames("https://example.com", "<b>", 1000) == []
        assert fake_control.calls == []

    @pytest.mark.asyncio
    async def test_unavailable_control_yields_no_frames(self, recording_sleep):
        engine = CaptureEngine(None, sleep=recording_sleep)
        assert await engine.capture_animation_frames("https://example.com", ".x", 1000) == []
