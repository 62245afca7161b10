#!/usr/bin/env python3
"""
Render loop state machine

One call to ``step()`` runs a full frame on the render thread:

    PROCESS_INPUT -> SYNC_DATA -> DRAW -> PRESENT

and leaves the loop in RUNNING until the next tick. The loop enters STOPPED
when the running flag is cleared, the window reports it should close, or the
user asks to quit; ``finish()`` then shuts the ingest side down and releases
GPU resources, in that order.

The loop talks to the GPU only through a renderer object and to the window
only through a surface object, so it runs headless in tests:

    renderer: set_viewport(w, h), upload(snapshot), begin_frame(),
              draw_grid(mvp), draw_axes(mvp), draw_points(mvp), release()
    surface:  present(), should_close() -> bool, set_cursor_captured(bool)
"""

import logging
import time
from collections import deque
from typing import Callable, Optional

from .context import ViewerContext
from .enums import GRID_ROTATION_KEYS, PAN_KEYS, Key, MouseButton, RenderState
from .errors import GpuError
from .inputEvents import (CloseEvent, CursorWarpEvent, FocusLostEvent, InputEvent, KeyEvent,
                          MouseButtonEvent, MouseMoveEvent, ResizeEvent, ScrollEvent)

logger = logging.getLogger(__name__)


class RenderLoop:
    """Per-frame driver: input, data sync, draw passes, present."""

    def __init__(self, context: ViewerContext, renderer, surface=None,
                 clock: Callable[[], float] = time.perf_counter):
        self.context = context
        self.renderer = renderer
        self.surface = surface
        self._clock = clock

        self.state = RenderState.RUNNING
        self._events = deque()
        self._last_time: Optional[float] = None
        self._finished = False

        # Statistics
        self.frame_count = 0
        self.gpu_error_count = 0
        self.fps = 0.0
        self._fps_frames = 0
        self._fps_start: Optional[float] = None

    # =========================================================================
    # Public API
    # =========================================================================

    def post_event(self, event: InputEvent):
        """Queue an input event for the next ProcessInput step."""
        self._events.append(event)

    @property
    def is_stopped(self) -> bool:
        return self.state is RenderState.STOPPED

    def stop(self):
        """Request termination; takes effect at the next frame boundary."""
        self.context.stop()

    def step(self, dt: Optional[float] = None) -> bool:
        """Run one frame. Returns False once the loop is stopped.

        Args:
            dt: frame time in seconds; measured from the clock when omitted
        """
        if self.state is RenderState.STOPPED:
            return False
        if self._should_stop():
            self._enter_stopped()
            return False

        if dt is None:
            dt = self._delta_time()

        self.state = RenderState.PROCESS_INPUT
        self.process_input(dt)
        if self._should_stop():
            self._enter_stopped()
            return False

        self.state = RenderState.SYNC_DATA
        self.sync_data()

        self.state = RenderState.DRAW
        self.draw()

        self.state = RenderState.PRESENT
        self.present()

        self.state = RenderState.RUNNING
        self.frame_count += 1
        self._update_fps()
        return True

    def run(self, max_frames: Optional[int] = None):
        """Drive frames back to back until stopped (for toolkits without their own loop)."""
        frames = 0
        while self.step():
            frames += 1
            if max_frames is not None and frames >= max_frames:
                break

    def finish(self):
        """Stop the loop, join the ingest worker, then release GPU resources."""
        if self._finished:
            return
        self._finished = True
        if self.state is not RenderState.STOPPED:
            self._enter_stopped()
        self.context.shutdown_ingest()
        self.renderer.release()
        logger.info("Render loop finished after %d frames", self.frame_count)

    # =========================================================================
    # Frame phases
    # =========================================================================

    def process_input(self, dt: float):
        while self._events:
            self._handle_event(self._events.popleft())

        held = self.context.input.held_keys
        if not held:
            return

        pan_x = pan_y = 0.0
        for key in held:
            direction = PAN_KEYS.get(key)
            if direction:
                pan_x += direction[0]
                pan_y += direction[1]
        if pan_x or pan_y:
            self.context.camera.pan(pan_x, pan_y, dt)

        rotation_step = self.context.config.grid_rotation_speed * dt
        for key in held:
            rotation = GRID_ROTATION_KEYS.get(key)
            if rotation:
                axis, sign = rotation
                self.context.grid.rotate(axis, sign * rotation_step)

    def sync_data(self):
        snapshot = self.context.store.snapshot_if_dirty()
        if snapshot is None:
            return
        uploaded = False
        try:
            self.renderer.upload(snapshot)
            uploaded = True
        except GpuError as e:
            self.gpu_error_count += 1
            logger.error("GPU error while uploading %d points: %s", snapshot.count, e.description)
        else:
            logger.debug("Uploaded %d points (generation %d)", snapshot.count, snapshot.generation)
        finally:
            # Keep the data pending so a later frame retries the upload
            if not uploaded:
                self.context.store.mark_dirty()

    def draw(self):
        ctx = self.context
        projection, view = ctx.camera.matrices(ctx.viewport)
        view_projection = projection @ view

        self._run_pass("clear", self.renderer.begin_frame)
        self._run_pass("grid", self.renderer.draw_grid, view_projection @ ctx.grid.model_matrix())
        self._run_pass("axes", self.renderer.draw_axes, view_projection)
        if ctx.show_points:
            self._run_pass("points", self.renderer.draw_points, view_projection)

    def present(self):
        if self.surface is not None:
            self._run_pass("present", self.surface.present)

    # =========================================================================
    # Input handling
    # =========================================================================

    def _handle_event(self, event: InputEvent):
        ctx = self.context
        inp = ctx.input

        if isinstance(event, KeyEvent):
            if event.pressed:
                if event.key not in inp.held_keys:
                    self._on_key_pressed(event.key)
                inp.held_keys.add(event.key)
            else:
                inp.held_keys.discard(event.key)

        elif isinstance(event, MouseMoveEvent):
            self._on_mouse_move(event.x, event.y)

        elif isinstance(event, MouseButtonEvent):
            if event.button is MouseButton.LEFT:
                inp.dragging = event.pressed
                if event.pressed:
                    inp.last_x, inp.last_y = event.x, event.y
                    inp.first_mouse = False

        elif isinstance(event, CursorWarpEvent):
            inp.last_x, inp.last_y = event.x, event.y
            inp.first_mouse = False

        elif isinstance(event, ScrollEvent):
            ctx.camera.zoom(event.steps)

        elif isinstance(event, ResizeEvent):
            ctx.set_viewport(event.width, event.height)
            self._run_pass("viewport", self.renderer.set_viewport, *ctx.viewport)

        elif isinstance(event, FocusLostEvent):
            self._on_focus_lost()

        elif isinstance(event, CloseEvent):
            inp.close_requested = True

        else:
            logger.warning("Ignoring unknown input event %r", event)

    def _on_key_pressed(self, key: Key):
        ctx = self.context
        inp = ctx.input
        if key is Key.F1:
            inp.cursor_captured = not inp.cursor_captured
            if inp.cursor_captured:
                inp.first_mouse = True
            if self.surface is not None:
                self.surface.set_cursor_captured(inp.cursor_captured)
            logger.info("Cursor capture %s", "on" if inp.cursor_captured else "off")
        elif key is Key.R:
            ctx.camera.reset()
        elif key is Key.P:
            ctx.show_points = not ctx.show_points
            logger.info("Point cloud rendering: %s", "enabled" if ctx.show_points else "disabled")
        elif key is Key.DELETE:
            ctx.store.clear()
            logger.info("Cleared all points")
        elif key is Key.ESCAPE:
            inp.close_requested = True

    def _on_focus_lost(self):
        inp = self.context.input
        inp.held_keys.clear()
        inp.dragging = False
        if inp.cursor_captured:
            inp.cursor_captured = False
            if self.surface is not None:
                self.surface.set_cursor_captured(False)
            logger.info("Cursor capture off (focus lost)")

    def _on_mouse_move(self, x: float, y: float):
        inp = self.context.input
        if not (inp.cursor_captured or inp.dragging):
            return
        if inp.first_mouse:
            inp.last_x, inp.last_y = x, y
            inp.first_mouse = False
            return

        dx = x - inp.last_x
        dy = inp.last_y - y  # window y grows downward
        inp.last_x, inp.last_y = x, y
        self.context.camera.orbit(dx, dy)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _should_stop(self) -> bool:
        if self.context.input.close_requested:
            return True
        if self.surface is not None and self.surface.should_close():
            return True
        return not self.context.is_running()

    def _enter_stopped(self):
        self.state = RenderState.STOPPED
        self.context.stop()
        logger.info("Render loop stopped")

    def _run_pass(self, name: str, func, *args):
        try:
            func(*args)
        except GpuError as e:
            self.gpu_error_count += 1
            logger.error("GPU error during %s pass: %s", name, e.description)

    def _delta_time(self) -> float:
        now = self._clock()
        if self._last_time is None:
            self._last_time = now
            return 0.0
        delta = now - self._last_time
        self._last_time = now
        return max(0.0, delta)

    def _update_fps(self):
        now = self._clock()
        if self._fps_start is None:
            self._fps_start = now
            self._fps_frames = 0
            return
        self._fps_frames += 1
        elapsed = now - self._fps_start
        if elapsed >= 1.0:
            self.fps = self._fps_frames / elapsed
            self._fps_start = now
            self._fps_frames = 0
