#!/usr/bin/env python3
"""
Qt OpenGL widget for the cloudPeek viewer

The widget owns the GL context and the frame timer. Qt input events are turned
into viewer input events and queued on the render loop; every timer tick runs
one frame through RenderLoop.step().
"""

import logging
from typing import Optional

from PyQt5 import QtWidgets
from PyQt5.QtCore import QPoint, Qt, QTimer
from PyQt5.QtGui import QCursor
from PyQt5.QtOpenGL import QGLFormat, QGLWidget

from .context import ViewerContext
from .enums import Key, MouseButton
from .errors import ViewerSetupError
from .inputEvents import (CursorWarpEvent, FocusLostEvent, KeyEvent, MouseButtonEvent,
                          MouseMoveEvent, ResizeEvent, ScrollEvent)
from .renderLoop import RenderLoop
from .renderer import GLRenderer

logger = logging.getLogger(__name__)

QT_KEYS = {
    Qt.Key_Left: Key.LEFT,
    Qt.Key_Right: Key.RIGHT,
    Qt.Key_Up: Key.UP,
    Qt.Key_Down: Key.DOWN,
    Qt.Key_A: Key.A,
    Qt.Key_D: Key.D,
    Qt.Key_W: Key.W,
    Qt.Key_S: Key.S,
    Qt.Key_Q: Key.Q,
    Qt.Key_E: Key.E,
    Qt.Key_Z: Key.Z,
    Qt.Key_X: Key.X,
    Qt.Key_C: Key.C,
    Qt.Key_V: Key.V,
    Qt.Key_F1: Key.F1,
    Qt.Key_R: Key.R,
    Qt.Key_P: Key.P,
    Qt.Key_Delete: Key.DELETE,
    Qt.Key_Escape: Key.ESCAPE,
}

QT_BUTTONS = {
    Qt.LeftButton: MouseButton.LEFT,
    Qt.RightButton: MouseButton.RIGHT,
    Qt.MiddleButton: MouseButton.MIDDLE,
}

# One notch of a standard mouse wheel
WHEEL_STEP = 120.0


def core_profile_format() -> QGLFormat:
    """OpenGL 3.3 core profile, double buffered, with depth buffer."""
    fmt = QGLFormat()
    fmt.setVersion(3, 3)
    fmt.setProfile(QGLFormat.CoreProfile)
    fmt.setDoubleBuffer(True)
    fmt.setDepth(True)
    fmt.setSwapInterval(1)
    return fmt


class PointCloudGLWidget(QGLWidget):
    """OpenGL widget that renders a ViewerContext through a RenderLoop.

    Also acts as the loop's surface: present(), should_close() and
    set_cursor_captured().
    """

    def __init__(self, context: ViewerContext, parent=None):
        super(PointCloudGLWidget, self).__init__(core_profile_format(), parent)
        self.context = context
        self.render_loop: Optional[RenderLoop] = None
        self.setup_error: Optional[ViewerSetupError] = None
        self._shut_down = False
        self._cursor_captured = False

        # Buffers are swapped by the loop's PRESENT step
        self.setAutoBufferSwap(False)

        self.update_timer = QTimer(self)
        self.update_timer.timeout.connect(self._tick)
        self.update_timer.start(context.config.frame_interval_ms)

        self.setMouseTracking(True)
        self.setFocusPolicy(Qt.StrongFocus)
        self.setFocus()

    # =========================================================================
    # GL lifecycle
    # =========================================================================

    def initializeGL(self):
        renderer = GLRenderer(self.context.config)
        try:
            renderer.initialize()
        except ViewerSetupError as e:
            logger.critical("Viewer setup failed: %s", e)
            self.setup_error = e
            self.update_timer.stop()
            self.context.stop()
            QTimer.singleShot(0, self._close_window)
            return

        self.render_loop = RenderLoop(self.context, renderer, surface=self)
        self.render_loop.post_event(ResizeEvent(*self._framebuffer_size()))

    def resizeGL(self, width, height):
        if self.render_loop is not None:
            self.render_loop.post_event(ResizeEvent(*self._framebuffer_size()))

    def paintGL(self):
        if self.render_loop is None:
            return
        try:
            running = self.render_loop.step()
        except Exception:
            # PyQt aborts the process on exceptions escaping a virtual override
            logger.exception("Unexpected error while rendering a frame")
            self.render_loop.stop()
            running = False
        if not running:
            self.update_timer.stop()
            QTimer.singleShot(0, self._close_window)

    def _tick(self):
        if self.render_loop is not None and self.render_loop.is_stopped:
            self.update_timer.stop()
            self._close_window()
            return
        self.updateGL()

    def _framebuffer_size(self):
        ratio = self.devicePixelRatio()
        return int(self.width() * ratio), int(self.height() * ratio)

    def _close_window(self):
        window = self.window()
        if window is not None:
            window.close()

    def shutdown(self):
        """Stop rendering, join the ingest worker and free GPU resources."""
        if self._shut_down:
            return
        self._shut_down = True
        self.update_timer.stop()
        if self.render_loop is not None:
            # GL objects can only be deleted with the context current
            self.makeCurrent()
            try:
                self.render_loop.finish()
            finally:
                self.doneCurrent()
        else:
            self.context.shutdown_ingest()

    # =========================================================================
    # Surface interface
    # =========================================================================

    def present(self):
        self.swapBuffers()

    def should_close(self) -> bool:
        return self._shut_down

    def set_cursor_captured(self, captured: bool):
        self._cursor_captured = captured
        if captured:
            self.setCursor(Qt.BlankCursor)
            self.grabMouse()
            self._warp_to_center()
        else:
            self.releaseMouse()
            self.unsetCursor()

    def _center(self) -> QPoint:
        return QPoint(self.width() // 2, self.height() // 2)

    def _warp_to_center(self):
        """Put the hidden cursor back in the middle so motion never hits the screen edge."""
        center = self._center()
        self._post(CursorWarpEvent(center.x(), center.y()))
        QCursor.setPos(self.mapToGlobal(center))

    # =========================================================================
    # Qt events
    # =========================================================================

    def _post(self, event):
        if self.render_loop is not None:
            self.render_loop.post_event(event)

    def keyPressEvent(self, event):
        key = QT_KEYS.get(event.key())
        if key is None:
            super().keyPressEvent(event)
            return
        if not event.isAutoRepeat():
            self._post(KeyEvent(key, True))

    def keyReleaseEvent(self, event):
        key = QT_KEYS.get(event.key())
        if key is None:
            super().keyReleaseEvent(event)
            return
        if not event.isAutoRepeat():
            self._post(KeyEvent(key, False))

    def mousePressEvent(self, event):
        button = QT_BUTTONS.get(event.button())
        if button is not None:
            self._post(MouseButtonEvent(button, True, event.x(), event.y()))
            self.setFocus()

    def mouseReleaseEvent(self, event):
        button = QT_BUTTONS.get(event.button())
        if button is not None:
            self._post(MouseButtonEvent(button, False, event.x(), event.y()))

    def mouseMoveEvent(self, event):
        if self._cursor_captured and event.pos() == self._center():
            # Echo of our own warp; the loop already knows the cursor is here
            return
        self._post(MouseMoveEvent(event.x(), event.y()))
        if self._cursor_captured:
            self._warp_to_center()

    def focusOutEvent(self, event):
        # Keys held now will never deliver their release
        self._post(FocusLostEvent())
        super().focusOutEvent(event)

    def wheelEvent(self, event):
        delta = event.angleDelta().y()
        if delta:
            self._post(ScrollEvent(delta / WHEEL_STEP))


class ViewerWindow(QtWidgets.QMainWindow):
    """Main window hosting the GL widget; shows point count and frame rate in the title"""

    def __init__(self, context: ViewerContext, parent=None):
        super().__init__(parent)
        self.context = context
        self.base_title = context.config.window_title
        self.setWindowTitle(self.base_title)
        self.resize(context.config.window_width, context.config.window_height)

        self.gl_widget = PointCloudGLWidget(context, self)
        self.setCentralWidget(self.gl_widget)

        self.status_timer = QTimer(self)
        self.status_timer.timeout.connect(self._update_title)
        self.status_timer.start(1000)

    def _update_title(self):
        loop = self.gl_widget.render_loop
        fps = loop.fps if loop is not None else 0.0
        self.setWindowTitle(
            f"{self.base_title} - {self.context.store.point_count:,} points - {fps:.0f} FPS")

    def closeEvent(self, event):
        self.status_timer.stop()
        self.gl_widget.shutdown()
        logger.info("Viewer window closed")
        super().closeEvent(event)
